"""
NEXUS AI - Live Interview Copilot

Real-time backend that helps a candidate during a live interview.

This package provides:
- Streaming answer generation with per-session interview memory
- Audio transcription over a duplex speech-recognition stream
- Request/response interview assistance (coaching, feedback, translation)

Layout:
- nexus.core: backend adapters (generation API, audio transcoding, assistance)
- nexus.realtime: streaming orchestration (events, memory, answer relay, STT)
"""

__version__ = "2.0.0"

from nexus.config import settings

__all__ = ["settings", "__version__"]
