"""
Gemini API Client

Async wrapper around LangChain's ChatGoogleGenerativeAI with response caching
and image attachments. Without an API key the client stays in mock mode and
returns clearly-labelled placeholder responses.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Sequence, Tuple, Union
from enum import Enum
import os
import base64
import hashlib
from datetime import datetime

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from oncovector.utils import get_logger

logger = get_logger(__name__)


class GeminiModel(str, Enum):
    """Gemini models used by the pipeline."""
    FLASH_2_5 = "gemini-2.5-flash"  # Stable standard
    FLASH_2_5_LITE = "gemini-2.5-flash-lite"
    PRO_2_5 = "gemini-2.5-pro"  # High reasoning
    FLASH_2_0 = "gemini-2.0-flash"


@dataclass
class GeminiConfig:
    """Configuration for Gemini client."""
    api_key: Optional[str] = field(default_factory=lambda: os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"))
    model: Union[GeminiModel, str] = GeminiModel.FLASH_2_5
    temperature: float = 0.2

    max_output_tokens: int = 4096
    top_p: float = 0.8
    top_k: int = 40

    # Structured output ("application/json" for JSON mode)
    response_mime_type: Optional[str] = None

    request_timeout_seconds: int = 60
    max_retries: int = 2


@dataclass
class GeminiResponse:
    """Structured response from Gemini."""
    text: str
    model: str
    finish_reason: str = "STOP"
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0
    is_mock: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "model": self.model,
            "finish_reason": self.finish_reason,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "latency_ms": round(self.latency_ms, 2),
            "is_mock": self.is_mock,
            "error": self.error,
        }


ImagePart = Tuple[bytes, str]  # (raw bytes, mime type)


class GeminiClient:
    """Client for Google Gemini API."""

    def __init__(self, config: Optional[GeminiConfig] = None):
        """
        Initialize Gemini client.

        Args:
            config: Optional configuration, uses defaults if not provided
        """
        self.config = config or GeminiConfig()
        self._llm = None
        self._request_count = 0
        self._last_request_time = None
        self._initialized = False
        self._cache: Dict[str, Tuple[datetime, str]] = {}
        self._cache_ttl_seconds = 900
        self._cache_max_entries = 500

        self._initialize()

    def _initialize(self):
        if not self.config.api_key:
            logger.warning("No Gemini API key provided - mock mode enabled")
            self._initialized = False
            return

        try:
            self._llm = ChatGoogleGenerativeAI(
                model=self._model_name,
                temperature=self.config.temperature,
                max_output_tokens=self.config.max_output_tokens,
                top_p=self.config.top_p,
                top_k=self.config.top_k,
                timeout=self.config.request_timeout_seconds,
                max_retries=self.config.max_retries,
                google_api_key=self.config.api_key,
                response_mime_type=self.config.response_mime_type,
            )
            self._initialized = True
            logger.info(f"LangChain Gemini client initialized with model: {self._model_name}")
        except Exception as e:
            logger.error(f"Failed to initialize LangChain Gemini: {e}")
            self._initialized = False

    @property
    def is_available(self) -> bool:
        return self._initialized

    @property
    def _model_name(self) -> str:
        """Resolve model name whether config.model is an enum or a plain string."""
        m = self.config.model
        return m.value if hasattr(m, "value") else str(m)

    async def generate_async(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        images: Sequence[ImagePart] = (),
        use_cache: bool = True
    ) -> GeminiResponse:
        """
        Generate a response, optionally grounded on attached images.

        Transport and API failures are not raised: they come back as a mock
        response with `error` set, and callers decide whether that is fatal.
        """
        if not self.is_available:
            return self._mock_response(prompt)

        cache_key = None
        if use_cache:
            cache_key = self._get_cache_key(prompt, system_instruction, images)
            cached = self._get_from_cache(cache_key)
            if cached is not None:
                logger.info(f"Cache hit for prompt hash {cache_key[:8]}")
                return GeminiResponse(
                    text=cached,
                    model=f"{self._model_name} (cached)",
                    finish_reason="CACHED",
                    latency_ms=1.0,
                )

        start_time = datetime.now()
        try:
            response = await self._llm.ainvoke(self._build_messages(prompt, system_instruction, images))

            latency = (datetime.now() - start_time).total_seconds() * 1000
            text = response.content if hasattr(response, "content") else str(response)
            if isinstance(text, list):
                text = "".join(part.get("text", "") if isinstance(part, dict) else str(part) for part in text)

            prompt_tokens = 0
            completion_tokens = 0
            usage = getattr(response, "usage_metadata", None)
            if usage:
                prompt_tokens = usage.get("input_tokens", 0)
                completion_tokens = usage.get("output_tokens", 0)

            self._request_count += 1
            self._last_request_time = datetime.now()

            if use_cache and cache_key:
                self._add_to_cache(cache_key, text)

            return GeminiResponse(
                text=text,
                model=self._model_name,
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                latency_ms=latency,
            )

        except Exception as e:
            logger.error(f"Async Gemini generation failed: {e}")
            return self._mock_response(prompt, error=str(e))

    @staticmethod
    def _build_messages(
        prompt: str,
        system_instruction: Optional[str],
        images: Sequence[ImagePart],
    ) -> List[Any]:
        messages: List[Any] = []
        if system_instruction:
            messages.append(SystemMessage(content=system_instruction))
        if images:
            content: List[Dict[str, Any]] = [{"type": "text", "text": prompt}]
            for data, mime_type in images:
                encoded = base64.b64encode(data).decode("ascii")
                content.append({
                    "type": "image_url",
                    "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
                })
            messages.append(HumanMessage(content=content))
        else:
            messages.append(HumanMessage(content=prompt))
        return messages

    def _mock_response(self, prompt: str, error: Optional[str] = None) -> GeminiResponse:
        """Placeholder response when Gemini is unavailable or the call failed."""
        if error:
            mock_text = f"[MOCK RESPONSE - Error: {error}]"
        else:
            mock_text = "[MOCK RESPONSE - Gemini unavailable]"

        return GeminiResponse(
            text=mock_text,
            model="mock",
            finish_reason="MOCK",
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(mock_text.split()),
            latency_ms=10.0,
            is_mock=True,
            error=error or "Gemini unavailable",
        )

    def _get_cache_key(
        self,
        prompt: str,
        system_instruction: Optional[str],
        images: Sequence[ImagePart] = (),
    ) -> str:
        # Whitespace-insensitive; images contribute their content digest
        normalized = " ".join(prompt.split())
        digests = ",".join(hashlib.md5(data).hexdigest() for data, _ in images)
        content = f"{self._model_name}|||{system_instruction or ''}|||{normalized}|||{digests}"
        return hashlib.md5(content.encode()).hexdigest()

    def _get_from_cache(self, cache_key: str) -> Optional[str]:
        if cache_key in self._cache:
            cached_time, cached_text = self._cache[cache_key]
            age = (datetime.now() - cached_time).total_seconds()
            if age < self._cache_ttl_seconds:
                return cached_text
            del self._cache[cache_key]
        return None

    def _add_to_cache(self, cache_key: str, text: str):
        self._cache[cache_key] = (datetime.now(), text)
        if len(self._cache) > self._cache_max_entries:
            oldest_key = min(self._cache.keys(), key=lambda k: self._cache[k][0])
            del self._cache[oldest_key]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "is_available": self.is_available,
            "model": self._model_name,
            "request_count": self._request_count,
            "cached_entries": len(self._cache),
            "last_request": self._last_request_time.isoformat() if self._last_request_time else None
        }
