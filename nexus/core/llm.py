"""
LLM Provider Module

Request/response access to the text generation backend (Anthropic Messages
API). The streaming counterpart lives in nexus.realtime.llm_stream.

Architecture:
- LLMProvider: Abstract base class defining the interface
- AnthropicLLMProvider: Concrete implementation over HTTP (requests)
- Message/ChatResponse dataclasses for type safety

Usage:
    from nexus.core.llm import AnthropicLLMProvider, Message

    llm = AnthropicLLMProvider()
    response = llm.chat(
        [Message(role="user", content="Hello!")],
        system="You are a helpful assistant.",
    )
    print(response.content)
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from nexus.config import settings
from nexus.exceptions import BackendUnavailable
from nexus.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Message:
    """
    Represents a chat turn.

    Attributes:
        role: Message role ("user" or "assistant"; the system prompt is separate)
        content: Message content text
    """
    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        """Convert to API-compatible dictionary."""
        return {"role": self.role, "content": self.content}


@dataclass
class ChatResponse:
    """
    Response from a request/response generation call.

    Attributes:
        content: Concatenated text of all text content blocks
        model: Model that produced the response
        usage: Token usage statistics
        stop_reason: Why generation stopped
    """
    content: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)
    stop_reason: str = ""

    @property
    def input_tokens(self) -> int:
        return self.usage.get("input_tokens", 0)

    @property
    def output_tokens(self) -> int:
        return self.usage.get("output_tokens", 0)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


def build_request_body(
    messages: List[Message],
    system: Optional[str],
    model: str,
    max_tokens: int,
    stream: bool = False,
) -> Dict[str, Any]:
    """Build a Messages API request body."""
    body: Dict[str, Any] = {
        "model": model,
        "max_tokens": max_tokens,
        "messages": [m.to_dict() for m in messages],
    }
    if system:
        body["system"] = system
    if stream:
        body["stream"] = True
    return body


def build_headers(api_key: str, api_version: str) -> Dict[str, str]:
    """HTTP headers for every Messages API call."""
    return {
        "x-api-key": api_key,
        "anthropic-version": api_version,
        "content-type": "application/json",
    }


def extract_text(data: Dict[str, Any]) -> str:
    """Concatenate the text blocks of a Messages API response."""
    parts = []
    for block in data.get("content") or []:
        if isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def parse_retry_after(value: Optional[str], attempt: int) -> float:
    """Seconds to wait before retrying a 429; exponential backoff when absent or unparseable."""
    try:
        delay = float(value)
    except (TypeError, ValueError):
        return float(2 ** attempt)
    return delay if delay >= 0 else float(2 ** attempt)


class LLMProvider(ABC):
    """
    Abstract base class for request/response LLM providers.
    """

    @abstractmethod
    def chat(
        self,
        messages: List[Message],
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> ChatResponse:
        """
        Generate a single complete response.

        Args:
            messages: Ordered user/assistant turns
            system: System prompt
            model: Model override
            max_tokens: Output cap override

        Returns:
            ChatResponse with generated content
        """
        pass


class AnthropicLLMProvider(LLMProvider):
    """
    Anthropic Messages API provider.

    Features:
    - Static API key attached to every call
    - Missing key reported at call time as BackendUnavailable
    - Retry with exponential backoff; honours Retry-After on HTTP 429

    Example:
        llm = AnthropicLLMProvider()
        response = llm.chat([Message(role="user", content="Hi")], system="Be brief.")
        print(response.content, response.total_tokens)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        api_version: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        max_retries: int = 3
    ):
        """
        Initialize the provider.

        Args:
            api_key: API key (defaults to settings)
            url: Messages endpoint URL (defaults to settings)
            api_version: anthropic-version header (defaults to settings)
            model: Default model (defaults to settings)
            max_tokens: Default output cap (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
            max_retries: Maximum attempts per call
        """
        self.api_key = api_key if api_key is not None else settings.anthropic.api_key
        self.url = url or settings.anthropic.messages_url
        self.api_version = api_version or settings.anthropic.api_version
        self.model = model or settings.anthropic.default_model
        self.max_tokens = max_tokens or settings.anthropic.max_tokens
        self.timeout = timeout or settings.anthropic.read_timeout_s
        self.max_retries = max_retries

        logger.info(
            f"Initialized AnthropicLLMProvider: model={self.model}, "
            f"max_tokens={self.max_tokens}, configured={bool(self.api_key)}"
        )

    def chat(
        self,
        messages: List[Message],
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> ChatResponse:
        """
        Generate a complete response.

        Raises:
            BackendUnavailable: If no API key is configured
            requests.RequestException: If the call fails after retries
        """
        if not self.api_key:
            raise BackendUnavailable("ANTHROPIC_API_KEY is not configured")

        model = model or self.model
        body = build_request_body(messages, system, model, max_tokens or self.max_tokens)
        headers = build_headers(self.api_key, self.api_version)

        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                response = requests.post(
                    self.url,
                    headers=headers,
                    json=body,
                    timeout=self.timeout
                )

                if response.status_code == 429:
                    last_exception = requests.HTTPError(
                        f"429 rate limited after {attempt + 1} attempts", response=response
                    )
                    if attempt < self.max_retries - 1:
                        retry_after = parse_retry_after(response.headers.get("Retry-After"), attempt)
                        logger.warning(f"Rate limited, retrying in {retry_after}s")
                        time.sleep(retry_after)
                    continue

                response.raise_for_status()
                data = response.json()

                return ChatResponse(
                    content=extract_text(data),
                    model=data.get("model", model),
                    usage=data.get("usage", {}),
                    stop_reason=data.get("stop_reason") or "",
                )

            except requests.RequestException as e:
                last_exception = e
                logger.warning(f"API call failed (attempt {attempt + 1}/{self.max_retries}): {e}")
                if attempt < self.max_retries - 1:
                    time.sleep(2 ** attempt)

        raise last_exception or RuntimeError("Failed to get chat completion")
