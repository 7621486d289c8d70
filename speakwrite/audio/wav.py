"""WAV container helpers for uploading raw PCM."""

import io
import wave


def encode_wav(pcm: bytes, sample_rate: int = 16000, channels: int = 1, sample_width: int = 2) -> bytes:
    """Wrap raw PCM samples in a WAV container.

    Args:
        pcm: Little-endian PCM samples
        sample_rate: Sample rate in Hz
        channels: Number of interleaved channels
        sample_width: Bytes per sample

    Returns:
        Complete WAV file bytes
    """
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buffer.getvalue()
