import io
import wave
from typing import Iterator

SAMPLE_RATE = 16000
SAMPLE_WIDTH = 2
CHANNELS = 1


def pcm_to_wav(audio_bytes: bytes, sample_rate: int = SAMPLE_RATE) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(CHANNELS)   # mono
        wf.setsampwidth(SAMPLE_WIDTH)   # 16bit
        wf.setframerate(sample_rate)
        wf.writeframes(audio_bytes)
    return buffer.getvalue()


def iter_chunks(audio_bytes: bytes, chunk_size: int) -> Iterator[bytes]:
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    for offset in range(0, len(audio_bytes), chunk_size):
        yield audio_bytes[offset:offset + chunk_size]


def silence(duration: float = 1.0, sample_rate: int = SAMPLE_RATE) -> bytes:
    return b"\x00" * (int(sample_rate * duration) * SAMPLE_WIDTH * CHANNELS)


def duration_seconds(audio_bytes: bytes, sample_rate: int = SAMPLE_RATE) -> float:
    return len(audio_bytes) / (sample_rate * SAMPLE_WIDTH * CHANNELS)


def chunk_duration(chunk_size: int, sample_rate: int = SAMPLE_RATE) -> float:
    """Playback time of a PCM16 mono chunk, used to pace real-time streaming."""
    return chunk_size / (sample_rate * SAMPLE_WIDTH * CHANNELS)
