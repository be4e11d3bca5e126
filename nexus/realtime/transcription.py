"""
Transcription orchestration: uploaded audio in, transcript out.

Pipeline:
1. Reject uploads too small to contain speech
2. Transcode to 16 kHz mono PCM with ffmpeg
3. Reject PCM too short to recognise
4. Stream the PCM to the speech backend and collect final results

Every failure degrades to an unsuccessful, empty result; the caller never
sees an exception.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from nexus.config import settings
from nexus.core.audio import AudioTranscoder, has_sound, pcm_duration_ms
from nexus.exceptions import BackendUnavailable, ConversionTooShort, NexusError
from nexus.logger import get_logger
from .stt_stream import StreamingTranscriber

logger = get_logger(__name__)


@dataclass
class TranscriptionResult:
    """Outcome of one transcription request."""
    success: bool
    text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "text": self.text}

    @classmethod
    def failed(cls) -> "TranscriptionResult":
        return cls(success=False, text="")


class TranscriptionService:
    """
    Transcribes one uploaded audio chunk.

    Usage:
        service = TranscriptionService()
        result = await service.transcribe(upload_bytes)
        if result.success:
            print(result.text)
    """

    def __init__(
        self,
        transcoder: Optional[AudioTranscoder] = None,
        transcriber: Optional[StreamingTranscriber] = None,
        min_raw_bytes: Optional[int] = None,
        min_pcm_bytes: Optional[int] = None,
        silence_threshold: Optional[int] = None,
    ):
        self._transcoder = transcoder or AudioTranscoder()
        self._transcriber = transcriber or StreamingTranscriber()
        self._min_raw_bytes = min_raw_bytes or settings.audio.min_raw_bytes
        self._min_pcm_bytes = min_pcm_bytes or settings.audio.min_pcm_bytes
        self._silence_threshold = silence_threshold or settings.audio.silence_threshold

    @property
    def is_configured(self) -> bool:
        return self._transcriber.is_configured

    async def transcribe(self, raw: bytes) -> TranscriptionResult:
        """Run the full pipeline; never raises."""
        try:
            text = await self._run(raw)
        except ConversionTooShort as e:
            logger.info(f"Skipping transcription: {e}")
            return TranscriptionResult.failed()
        except NexusError as e:
            logger.warning(f"Transcription failed: {e}")
            return TranscriptionResult.failed()
        except Exception as e:
            logger.exception(f"Unexpected transcription failure: {e}")
            return TranscriptionResult.failed()

        if not text:
            logger.info("Transcription produced no text")
            return TranscriptionResult.failed()

        logger.info(f"Transcribed: {text[:80]}")
        return TranscriptionResult(success=True, text=text)

    async def _run(self, raw: bytes) -> str:
        if not self._transcriber.is_configured:
            raise BackendUnavailable("Speech recognition not configured")

        if len(raw) < self._min_raw_bytes:
            raise ConversionTooShort(len(raw), self._min_raw_bytes, stage="raw")

        pcm = await self._transcoder.convert(raw)
        if len(pcm) < self._min_pcm_bytes:
            raise ConversionTooShort(len(pcm), self._min_pcm_bytes, stage="pcm")

        if not has_sound(pcm, self._silence_threshold):
            logger.info(
                f"No samples above {self._silence_threshold} in "
                f"{pcm_duration_ms(pcm):.0f}ms of audio, transcribing anyway"
            )

        return await self._transcriber.transcribe(pcm)
