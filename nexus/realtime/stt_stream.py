"""
Streaming Speech-to-Text Module

Transcribes a PCM buffer over a duplex recognition stream:
- Sender half pushes fixed-size PCM chunks, then closes the input side
- Receiver half consumes partial/final events from stream open until the
  backend closes the event channel
- Both halves run as concurrent tasks and are joined before the transcript
  is read; a stream fault reported by the backend fails the whole call

The backend sits behind RecognitionSession. AzureRecognitionSession adapts
the Azure Speech SDK's callback model (SDK threads) to an async iterator.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import AsyncIterator, Callable, List, Optional

import azure.cognitiveservices.speech as speechsdk

from nexus.config import settings
from nexus.exceptions import BackendUnavailable, ConversionTooShort, StreamError
from nexus.logger import get_logger
from .events import RecognitionEvent

logger = get_logger(__name__)

_CLOSED = object()


class TranscriptAggregator:
    """
    Accumulates final recognition results into a transcript.

    Each non-empty final result contributes its best alternative followed by
    one space; the joined text is trimmed once when read. Partial results are
    tracked for display but never become part of the transcript.
    """

    def __init__(self):
        self._parts: List[str] = []
        self._last_partial = ""
        self.partial_count = 0
        self.final_count = 0

    def add(self, event: RecognitionEvent) -> None:
        if event.is_partial:
            self.partial_count += 1
            self._last_partial = event.text
            return

        self.final_count += 1
        self._last_partial = ""
        text = event.text
        if text:
            self._parts.append(text + " ")

    @property
    def transcript(self) -> str:
        return "".join(self._parts).strip()

    @property
    def last_partial(self) -> str:
        return self._last_partial

    @property
    def event_count(self) -> int:
        return self.partial_count + self.final_count


class RecognitionSession(ABC):
    """
    One duplex stream to a speech-recognition backend.

    Lifecycle: start() -> send()* -> close_input() while events() is being
    consumed -> stop(). events() ends when the backend closes the channel.
    """

    @abstractmethod
    async def start(self) -> None:
        """Open the stream."""

    @abstractmethod
    async def send(self, chunk: bytes) -> None:
        """Push one PCM chunk."""

    @abstractmethod
    async def close_input(self) -> None:
        """Signal end of audio. The only end-of-input signal."""

    @abstractmethod
    def events(self) -> AsyncIterator[RecognitionEvent]:
        """Recognition events in arrival order."""

    @abstractmethod
    async def stop(self) -> None:
        """Release backend resources. Safe to call more than once."""

    @property
    @abstractmethod
    def error(self) -> Optional[str]:
        """Stream fault reported by the backend, if any."""


class AzureRecognitionSession(RecognitionSession):
    """
    Azure Speech continuous recognition over a PCM push stream.

    SDK callbacks fire on SDK threads and are handed to the event loop with
    call_soon_threadsafe.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        region: Optional[str] = None,
        language: Optional[str] = None,
        sample_rate: Optional[int] = None,
    ):
        self._speech_config = speechsdk.SpeechConfig(
            subscription=api_key or settings.speech.api_key,
            region=region or settings.speech.region,
        )
        self._speech_config.speech_recognition_language = language or settings.speech.language

        stream_format = speechsdk.audio.AudioStreamFormat(
            samples_per_second=sample_rate or settings.speech.sample_rate,
            bits_per_sample=16,
            channels=1,
        )
        self._push_stream = speechsdk.audio.PushAudioInputStream(stream_format=stream_format)
        self._audio_config = speechsdk.audio.AudioConfig(stream=self._push_stream)

        self._recognizer: Optional[speechsdk.SpeechRecognizer] = None
        self._queue: asyncio.Queue = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._error: Optional[str] = None
        self._channel_closed = False
        self._input_closed = False
        self._stopped = False

    def _create_recognizer(self) -> speechsdk.SpeechRecognizer:
        recognizer = speechsdk.SpeechRecognizer(
            speech_config=self._speech_config,
            audio_config=self._audio_config,
        )
        recognizer.recognizing.connect(self._on_recognizing)
        recognizer.recognized.connect(self._on_recognized)
        recognizer.session_stopped.connect(self._on_session_stopped)
        recognizer.canceled.connect(self._on_canceled)
        return recognizer

    # ========================================================================
    # Event Handlers (called from SDK thread)
    # ========================================================================

    def _on_recognizing(self, evt: speechsdk.SpeechRecognitionEventArgs) -> None:
        if evt.result.reason != speechsdk.ResultReason.RecognizingSpeech:
            return
        self._emit(RecognitionEvent(alternatives=[evt.result.text], is_partial=True))

    def _on_recognized(self, evt: speechsdk.SpeechRecognitionEventArgs) -> None:
        if evt.result.reason != speechsdk.ResultReason.RecognizedSpeech:
            return
        self._emit(RecognitionEvent(alternatives=[evt.result.text], is_partial=False))

    def _on_session_stopped(self, evt: speechsdk.SessionEventArgs) -> None:
        logger.debug(f"STT session stopped: {evt.session_id}")
        self._emit(_CLOSED)

    def _on_canceled(self, evt: speechsdk.SpeechRecognitionCanceledEventArgs) -> None:
        details = evt.cancellation_details
        if details.reason == speechsdk.CancellationReason.Error:
            self._error = f"{details.error_code}: {details.error_details}"
            logger.error(f"STT stream error: {self._error}")
            self._emit(_CLOSED)
        elif details.reason == speechsdk.CancellationReason.EndOfStream:
            logger.debug("STT end of stream")
        else:
            logger.debug(f"STT cancelled: {details.reason}")

    def _emit(self, item: object) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, item)

    # ========================================================================
    # RecognitionSession
    # ========================================================================

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._recognizer = self._create_recognizer()
        await asyncio.to_thread(lambda: self._recognizer.start_continuous_recognition_async().get())
        logger.debug("STT stream opened")

    async def send(self, chunk: bytes) -> None:
        self._push_stream.write(chunk)

    async def close_input(self) -> None:
        if not self._input_closed:
            self._input_closed = True
            self._push_stream.close()

    async def events(self) -> AsyncIterator[RecognitionEvent]:
        while not self._channel_closed:
            item = await self._queue.get()
            if item is _CLOSED:
                self._channel_closed = True
                return
            yield item

    async def stop(self) -> None:
        if self._stopped or self._recognizer is None:
            return
        self._stopped = True
        await self.close_input()
        try:
            await asyncio.to_thread(lambda: self._recognizer.stop_continuous_recognition_async().get())
        except Exception as e:
            logger.debug(f"Error stopping recognizer: {e}")

    @property
    def error(self) -> Optional[str]:
        return self._error


class StreamingTranscriber:
    """
    Transcription client: PCM in, final transcript out.

    Usage:
        transcriber = StreamingTranscriber()
        text = await transcriber.transcribe(pcm_bytes)
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], RecognitionSession]] = None,
        chunk_size: Optional[int] = None,
        min_pcm_bytes: Optional[int] = None,
        timeout_s: Optional[float] = None,
        on_partial: Optional[Callable[[str], None]] = None,
    ):
        self._session_factory = session_factory
        self._chunk_size = chunk_size or settings.speech.chunk_size_bytes
        self._min_pcm_bytes = min_pcm_bytes or settings.audio.min_pcm_bytes
        self._timeout_s = timeout_s or settings.speech.stream_timeout_s
        self._on_partial = on_partial

    @property
    def is_configured(self) -> bool:
        """An injected session factory counts as configured."""
        if self._session_factory is not None:
            return True
        return settings.speech.is_configured

    def _new_session(self) -> RecognitionSession:
        if self._session_factory is not None:
            return self._session_factory()
        return AzureRecognitionSession()

    async def transcribe(self, pcm: bytes) -> str:
        """
        Stream PCM to the backend and return the final transcript.

        Raises:
            BackendUnavailable: If credentials/region are not configured
            ConversionTooShort: If the PCM is below the minimum size
            StreamError: On backend stream faults or timeout
        """
        if not self.is_configured:
            raise BackendUnavailable(
                "Speech recognition not configured. Set AZURE_SPEECH_API_KEY and AZURE_SPEECH_REGION"
            )
        if len(pcm) < self._min_pcm_bytes:
            raise ConversionTooShort(len(pcm), self._min_pcm_bytes, stage="pcm")

        session = self._new_session()
        aggregator = TranscriptAggregator()

        try:
            await asyncio.wait_for(
                self._run_duplex(session, pcm, aggregator), timeout=self._timeout_s
            )
        except asyncio.TimeoutError as exc:
            raise StreamError(
                f"transcription stream timed out after {self._timeout_s:.0f}s"
            ) from exc
        finally:
            await session.stop()

        if session.error:
            raise StreamError(session.error)

        logger.info(
            f"Transcribed {len(pcm)} PCM bytes: events={aggregator.event_count}, "
            f"finals={aggregator.final_count}, chars={len(aggregator.transcript)}"
        )
        return aggregator.transcript

    async def _run_duplex(
        self,
        session: RecognitionSession,
        pcm: bytes,
        aggregator: TranscriptAggregator,
    ) -> None:
        """Start the receiver, then the sender, and join both."""
        await session.start()
        receiver = asyncio.create_task(self._receive(session, aggregator))
        sender = asyncio.create_task(self._send(session, pcm))
        try:
            await asyncio.gather(sender, receiver)
        finally:
            for task in (sender, receiver):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sender, receiver, return_exceptions=True)

    async def _send(self, session: RecognitionSession, pcm: bytes) -> None:
        sent = 0
        try:
            for offset in range(0, len(pcm), self._chunk_size):
                chunk = pcm[offset:offset + self._chunk_size]
                await session.send(chunk)
                sent += len(chunk)
                # Let the receiver drain between chunks
                await asyncio.sleep(0)
        except Exception as e:
            raise StreamError(f"send error after {sent} bytes: {e}") from e
        finally:
            await session.close_input()
        logger.debug(f"Sent {sent} PCM bytes")

    async def _receive(self, session: RecognitionSession, aggregator: TranscriptAggregator) -> None:
        async for event in session.events():
            aggregator.add(event)
            if event.is_partial:
                logger.debug(f"Partial: {event.text[:50]}")
                if self._on_partial is not None:
                    self._on_partial(event.text)
            else:
                logger.debug(f"Final: {event.text[:50]}")
