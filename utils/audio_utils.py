"""WAV helpers for raw PCM16 audio."""

import io
import time
import wave
from pathlib import Path


def pcm16_to_wav(pcm_data: bytes, *, sample_rate: int, channels: int = 1, sample_width: int = 2) -> bytes:
    """Wrap little-endian PCM16 samples in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as writer:
        writer.setnchannels(channels)
        writer.setsampwidth(sample_width)
        writer.setframerate(sample_rate)
        writer.writeframes(pcm_data)
    return buffer.getvalue()


def save_debug_audio(audio: bytes, directory: str, *, extension: str = "wav") -> Path:
    """Write synthesized audio to `tts_output_<ms>.<extension>` and return the path."""
    target_dir = Path(directory).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / f"tts_output_{int(time.time() * 1000)}.{extension}"
    path.write_bytes(audio)
    return path
