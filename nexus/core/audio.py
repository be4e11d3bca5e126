"""
Audio Transcoding Module

Converts captured audio (webm/ogg/mp4/wav... anything ffmpeg can decode) to
the canonical PCM the recognizer expects: 16 kHz, mono, signed 16-bit
little-endian, headerless.

Usage:
    from nexus.core.audio import AudioTranscoder

    transcoder = AudioTranscoder()
    pcm = await transcoder.convert(raw_bytes)
"""

import array
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from nexus.config import settings
from nexus.exceptions import ConversionError
from nexus.logger import get_logger

logger = get_logger(__name__)

TARGET_SAMPLE_RATE = 16000
TARGET_CHANNELS = 1
BYTES_PER_SAMPLE = 2


def pcm_duration_ms(pcm: bytes, sample_rate: int = TARGET_SAMPLE_RATE) -> float:
    """Duration of mono 16-bit PCM in milliseconds."""
    return len(pcm) / (BYTES_PER_SAMPLE * sample_rate) * 1000


def has_sound(pcm: bytes, threshold: int = 1000) -> bool:
    """
    Check whether any sample's amplitude exceeds the threshold.

    Args:
        pcm: Little-endian signed 16-bit mono PCM
        threshold: Absolute sample value that counts as sound
    """
    usable = len(pcm) - (len(pcm) % BYTES_PER_SAMPLE)
    if usable <= 0:
        return False
    samples = array.array("h")
    samples.frombytes(pcm[:usable])
    if sys.byteorder == "big":
        samples.byteswap()
    return any(s > threshold or s < -threshold for s in samples)


class AudioTranscoder:
    """
    ffmpeg-backed transcoder from compressed audio to canonical PCM.

    The ffmpeg process is fed through stdin and read from stdout; nothing
    touches disk unless a debug dump directory is configured.
    """

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        timeout_s: Optional[float] = None,
        debug_dump_dir: Optional[str] = None,
    ):
        self._ffmpeg = ffmpeg_path or settings.audio.ffmpeg_path
        self._timeout_s = timeout_s or settings.audio.convert_timeout_s
        dump_dir = debug_dump_dir if debug_dump_dir is not None else settings.audio.debug_dump_dir
        self._dump_dir = Path(dump_dir) if dump_dir else None

    def build_command(self) -> List[str]:
        """ffmpeg arguments for stdin -> s16le PCM on stdout."""
        return [
            self._ffmpeg,
            "-i", "pipe:0",
            "-ar", str(TARGET_SAMPLE_RATE),
            "-ac", str(TARGET_CHANNELS),
            "-f", "s16le",
            "-acodec", "pcm_s16le",
            "-y",
            "pipe:1",
        ]

    async def convert(self, raw: bytes) -> bytes:
        """
        Decode and resample raw audio to PCM.

        Raises:
            ConversionError: If ffmpeg is missing, fails, times out,
                or produces no output
        """
        cmd = self.build_command()
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise ConversionError(f"ffmpeg not found at '{self._ffmpeg}'") from exc
        except OSError as exc:
            raise ConversionError(f"ffmpeg could not start: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(input=raw), timeout=self._timeout_s
            )
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise ConversionError(f"ffmpeg timed out after {self._timeout_s:.0f}s") from exc
        except asyncio.CancelledError:
            process.kill()
            raise

        if process.returncode != 0:
            err_log = (stderr or b"").decode("utf-8", errors="replace")
            tail = "\n".join(err_log.splitlines()[-5:])
            raise ConversionError(
                f"ffmpeg failed (code {process.returncode})", stderr_tail=tail
            )

        if not stdout:
            raise ConversionError("ffmpeg produced no audio")

        logger.debug(
            f"Converted {len(raw)} bytes -> {len(stdout)} PCM bytes "
            f"({pcm_duration_ms(stdout):.0f}ms)"
        )
        self._dump(raw, stdout)
        return stdout

    def _dump(self, raw: bytes, pcm: bytes) -> None:
        """Keep the last raw/PCM buffers for diagnosis when enabled."""
        if self._dump_dir is None:
            return
        try:
            self._dump_dir.mkdir(parents=True, exist_ok=True)
            (self._dump_dir / "last_audio.bin").write_bytes(raw)
            (self._dump_dir / "last_pcm.raw").write_bytes(pcm)
        except OSError as e:
            logger.warning(f"Could not write audio debug dump: {e}")
