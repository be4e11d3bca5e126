"""
FastAPI Backend Server

Exposes the live interview copilot to the browser UI:
- /live/*: streamed answers, chunk transcription, session memory
- /interview/*: sessions and request/response coaching, coding help,
  feedback and translation
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from nexus import __version__
from nexus.config import settings
from nexus.core.assistant import InterviewAssistant
from nexus.core.sessions import InterviewSessionStore
from nexus.exceptions import BackendUnavailable, InvalidRequest
from nexus.logger import get_logger, init_logging
from nexus.messages import msg
from nexus.realtime.answer_stream import AnswerRequest, AnswerStreamer
from nexus.realtime.llm_stream import AsyncLLMStream
from nexus.realtime.memory import InMemorySessionStore
from nexus.realtime.prompts import InterviewContext
from nexus.realtime.transcription import TranscriptionService

logger = get_logger(__name__)


# Pydantic models for API
class InterviewContextModel(BaseModel):
    role: str = ""
    company: str = ""
    job_description: str = ""
    model: str = ""


class StreamAnswerRequest(BaseModel):
    question: str = ""
    session_id: Optional[str] = None
    profile: Optional[Dict[str, Any]] = None
    interview_context: Optional[InterviewContextModel] = None


class AssistRequest(BaseModel):
    question: str = ""
    session_id: Optional[str] = None
    context: str = ""
    interview_type: Optional[str] = None
    language: Optional[str] = None
    assistance_level: str = "medium"
    profile: Optional[Dict[str, Any]] = None


class FeedbackRequest(BaseModel):
    question: str = ""
    user_response: str = ""
    session_id: Optional[str] = None
    interview_type: Optional[str] = None


class CodingAssistRequest(BaseModel):
    problem_description: str = ""
    language: str = "python"
    current_code: str = ""
    hints_only: bool = False


class SessionStartRequest(BaseModel):
    profile: Optional[Dict[str, Any]] = None


class TranslateRequest(BaseModel):
    text: str = ""
    target_language: str = ""


class TranscribeResponse(BaseModel):
    success: bool
    text: str


class MemoryStatusResponse(BaseModel):
    questions_count: int
    has_context: bool


class TranslateResponse(BaseModel):
    original: str
    translated: str
    target_language: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup resources."""
    init_logging()
    settings.validate_all()

    memory = InMemorySessionStore()
    app.state.memory = memory
    app.state.answer_streamer = AnswerStreamer(AsyncLLMStream(), memory)
    app.state.transcription = TranscriptionService()
    app.state.assistant = InterviewAssistant()
    app.state.sessions = InterviewSessionStore()

    logger.info(
        f"Services ready: generation={'on' if settings.anthropic.is_configured else 'off'}, "
        f"speech={'on' if settings.speech.is_configured else 'off'}"
    )

    yield

    app.state.answer_streamer = None
    app.state.transcription = None
    app.state.assistant = None
    app.state.sessions = None


# Create FastAPI app
app = FastAPI(
    title="NEXUS AI Interview Copilot API",
    description="Streaming answers and transcription for live interviews",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware - uses configurable origins from settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_service(request: Request, name: str) -> Any:
    """Get a service from app state."""
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=msg("error.service_not_ready"))
    return service


def to_context(model: Optional[InterviewContextModel]) -> Optional[InterviewContext]:
    if model is None:
        return None
    return InterviewContext(
        role=model.role,
        company=model.company,
        job_description=model.job_description,
        model=model.model,
    )


@app.get("/")
async def root():
    return {"name": "NEXUS AI", "version": __version__, "status": "running"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/live/health")
async def live_health():
    """Backend configuration as seen by the live endpoints."""
    return {
        "status": "healthy",
        "generation_configured": settings.anthropic.is_configured,
        "speech_configured": settings.speech.is_configured,
    }


# ============================================================================
# Live interview
# ============================================================================

@app.post("/live/stream-answer")
async def stream_answer(body: StreamAnswerRequest, request: Request):
    """Stream an answer as server-sent events."""
    streamer: AnswerStreamer = get_service(request, "answer_streamer")

    try:
        prepared = streamer.prepare(AnswerRequest(
            question=body.question,
            session_id=body.session_id,
            context=to_context(body.interview_context),
            profile=body.profile,
        ))
    except InvalidRequest as e:
        raise HTTPException(status_code=400, detail=str(e))

    async def generate() -> AsyncGenerator[str, None]:
        events = streamer.stream(prepared)
        try:
            async for event in events:
                if await request.is_disconnected():
                    logger.info(f"Client disconnected, session={prepared.session_id}")
                    break
                yield event.to_sse()
        finally:
            # Cancels the producer and releases the backend stream
            await events.aclose()

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@app.post("/live/transcribe-chunk", response_model=TranscribeResponse)
async def transcribe_chunk(request: Request, file: UploadFile = File(...)):
    """Transcribe one recorded audio chunk. Failures return success=false."""
    service: TranscriptionService = get_service(request, "transcription")
    raw = await file.read()
    logger.debug(f"Received audio chunk: {len(raw)} bytes, type={file.content_type}")
    result = await service.transcribe(raw)
    return result.to_dict()


@app.get("/live/memory-status", response_model=MemoryStatusResponse)
async def memory_status(request: Request, session_id: Optional[str] = None):
    memory: InMemorySessionStore = get_service(request, "memory")
    status = memory.status(session_id or settings.memory.default_session_id)
    return status.to_dict()


@app.post("/live/clear-memory")
async def clear_memory(request: Request, session_id: Optional[str] = None):
    """Clear interview memory for a session."""
    memory: InMemorySessionStore = get_service(request, "memory")
    memory.clear(session_id or settings.memory.default_session_id)
    return {"success": True, "message": msg("memory.cleared")}


# ============================================================================
# Request/response assistance
# ============================================================================

def _assist_error(e: Exception, label: str) -> HTTPException:
    if isinstance(e, InvalidRequest):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, BackendUnavailable):
        logger.error(f"{label} unavailable: {e}")
        return HTTPException(status_code=503, detail=msg("error.generation_not_configured"))
    logger.error(f"{label} error: {e}")
    return HTTPException(status_code=500, detail=str(e))


@app.post("/interview/session/start")
async def start_session(
    request: Request,
    interview_type: str = "mixed",
    language: str = "en",
    body: Optional[SessionStartRequest] = None,
):
    """Open an interview session; assistance requests may reference its id."""
    sessions: InterviewSessionStore = get_service(request, "sessions")
    session = sessions.start(
        interview_type=interview_type,
        language=language,
        profile=body.profile if body else None,
    )
    return {
        "session_id": session.session_id,
        "message": msg("session.started"),
        "interview_type": session.interview_type,
        "language": session.language,
        "started_at": session.started_at,
    }


@app.post("/interview/session/{session_id}/end")
async def end_session(session_id: str, request: Request):
    sessions: InterviewSessionStore = get_service(request, "sessions")
    session = sessions.end(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=msg("error.session_not_found"))
    return {
        "session_id": session_id,
        "message": msg("session.ended"),
        "duration_seconds": round(session.duration_s, 3),
    }


@app.post("/interview/assist")
async def interview_assist(body: AssistRequest, request: Request):
    """Suggested answer with key points."""
    assistant: InterviewAssistant = get_service(request, "assistant")
    sessions: InterviewSessionStore = get_service(request, "sessions")

    # Fields left out of the request come from the named session
    session = sessions.get(body.session_id)
    profile = body.profile
    interview_type = body.interview_type
    language = body.language
    if session is not None:
        profile = profile if profile is not None else session.profile
        interview_type = interview_type or session.interview_type
        language = language or session.language

    try:
        result = await asyncio.to_thread(
            assistant.assist,
            body.question,
            profile=profile,
            interview_type=interview_type or "mixed",
            context=body.context,
            assistance_level=body.assistance_level,
            language=language or "en",
        )
        return result.to_dict()
    except Exception as e:
        raise _assist_error(e, "Assist")


@app.post("/interview/coding-assist")
async def interview_coding_assist(body: CodingAssistRequest, request: Request):
    """Approach, code and complexity for a coding problem."""
    assistant: InterviewAssistant = get_service(request, "assistant")
    try:
        result = await asyncio.to_thread(
            assistant.coding_assist,
            body.problem_description,
            language=body.language,
            current_code=body.current_code,
            hints_only=body.hints_only,
        )
        return result.to_dict()
    except Exception as e:
        raise _assist_error(e, "Coding assist")


@app.post("/interview/feedback")
async def interview_feedback(body: FeedbackRequest, request: Request):
    """Score and critique a candidate's answer."""
    assistant: InterviewAssistant = get_service(request, "assistant")
    sessions: InterviewSessionStore = get_service(request, "sessions")
    session = sessions.get(body.session_id)
    interview_type = body.interview_type or (session.interview_type if session else "mixed")
    try:
        result = await asyncio.to_thread(
            assistant.feedback,
            body.question,
            body.user_response,
            interview_type=interview_type,
        )
        return result.to_dict()
    except Exception as e:
        raise _assist_error(e, "Feedback")


@app.post("/interview/translate", response_model=TranslateResponse)
async def interview_translate(body: TranslateRequest, request: Request):
    assistant: InterviewAssistant = get_service(request, "assistant")
    try:
        translated = await asyncio.to_thread(
            assistant.translate, body.text, body.target_language
        )
    except Exception as e:
        raise _assist_error(e, "Translate")
    return TranslateResponse(
        original=body.text,
        translated=translated,
        target_language=body.target_language,
    )


def main() -> None:
    import uvicorn

    init_logging()
    uvicorn.run(
        "api_server:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    main()
