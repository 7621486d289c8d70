from setuptools import setup, find_packages

setup(
    name="speakwrite",
    version="0.1.0",
    description="Voice-to-text service with streaming transcription and a terminal recorder",
    author="",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyaudio>=0.2.11",
        "numpy>=1.21.0",
        "rich>=12.5.0",
        "pydantic>=2.0.0",
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
        "aiohttp>=3.9.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-aiohttp>=1.0.4",
        ],
    },
    entry_points={
        "console_scripts": [
            "speakwrite=speakwrite.main:main",
        ],
    },
)
