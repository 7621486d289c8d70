"""SpeakWrite: streaming voice-to-text with saved history and custom dictionaries."""

__version__ = "0.1.0"
