"""
Text-generation port and its HTTP implementation.

Everything generative in elicit goes through ``TextGenerator.generate``:
one prompt in, one string out. ``LLMClient`` implements it over any
OpenAI-compatible /chat/completions endpoint, with an optional second
provider tried when the primary returns 429.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

import requests

from ..core.errors import ConfigurationError, GenerationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"


@runtime_checkable
class TextGenerator(Protocol):
    """Anything that turns a prompt into text."""

    def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        ...


class LLMAPIError(Exception):
    """Raised when the LLM endpoint returns an error or cannot be reached."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"LLM API error {status_code}: {message}")


def load_dotenv() -> None:
    """Load the first .env found into os.environ (only vars not already set)."""
    for parent in [Path.cwd()] + list(Path.cwd().parents):
        env_path = parent / ".env"
        if env_path.exists():
            for line in env_path.read_text().splitlines():
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" in line:
                    key, value = line.split("=", 1)
                    key, value = key.strip(), value.strip()
                    if key and key not in os.environ:
                        os.environ[key] = value
            break


@dataclass
class LLMClient:
    """
    HTTP wrapper for OpenAI-compatible /chat/completions endpoints.

    Configure via environment variables:
        LLM_API_KEY / OPENAI_API_KEY: API key
        LLM_BASE_URL: API base URL (default: OpenAI)
        LLM_MODEL: default model name
        LLM_FALLBACK_BASE_URL / LLM_FALLBACK_MODEL / LLM_FALLBACK_API_KEY:
            secondary provider tried on 429
    """

    api_key: str = ""
    model: str = ""
    base_url: str = ""
    timeout: float = 30.0
    _fallback: Optional[Tuple[str, str, str]] = field(default=None, repr=False)

    def __post_init__(self):
        load_dotenv()
        if not self.base_url:
            self.base_url = os.environ.get("LLM_BASE_URL", DEFAULT_BASE_URL).strip().rstrip("/")
        if not self.model:
            self.model = os.environ.get("LLM_MODEL", DEFAULT_MODEL).strip()
        if not self.api_key:
            self.api_key = self._load_api_key()
        self._fallback = self._load_fallback()

    def _load_api_key(self) -> str:
        for env_var in ("LLM_API_KEY", "OPENAI_API_KEY"):
            key = os.environ.get(env_var, "").strip()
            if key:
                return key
        return ""

    def _load_fallback(self) -> Optional[Tuple[str, str, str]]:
        fb_url = os.environ.get("LLM_FALLBACK_BASE_URL", "").strip().rstrip("/")
        fb_key = os.environ.get("LLM_FALLBACK_API_KEY", "").strip()
        if not fb_url or not fb_key:
            return None
        fb_model = os.environ.get("LLM_FALLBACK_MODEL", "").strip() or self.model
        logger.info(f"[LLMClient] Fallback provider: {fb_url} ({fb_model})")
        return (fb_url, fb_model, fb_key)

    def _headers(self, api_key: Optional[str] = None) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key or self.api_key}",
            "Content-Type": "application/json",
        }

    def _do_request(self, url: str, body: Dict[str, Any], api_key: Optional[str] = None) -> str:
        """Make a single chat completion request. Returns content or raises LLMAPIError."""
        try:
            resp = requests.post(url, headers=self._headers(api_key), json=body, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.warning(f"[LLMClient] Request timed out after {self.timeout}s")
            raise LLMAPIError(408, "Request timed out")
        except requests.exceptions.ConnectionError as e:
            logger.warning(f"[LLMClient] Connection error: {e}")
            raise LLMAPIError(0, f"Connection error: {e}")

        if resp.status_code == 200:
            data = resp.json()
            try:
                return data["choices"][0]["message"].get("content") or ""
            except (KeyError, IndexError, TypeError):
                raise LLMAPIError(200, "Malformed completion payload")

        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After", "?")
            raise LLMAPIError(429, f"Rate limited (Retry-After: {retry_after}s)")

        raise LLMAPIError(resp.status_code, resp.text)

    def chat_completion(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.1,
        max_tokens: int = 512,
        model_override: Optional[str] = None,
    ) -> str:
        """
        Call /chat/completions on the primary provider, once.
        On 429, tries the fallback provider once if configured.

        Raises LLMAPIError on failure.
        """
        if not self.api_key:
            raise ConfigurationError("No LLM_API_KEY or OPENAI_API_KEY found in env or .env file")

        body: Dict[str, Any] = {
            "model": model_override or self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        url = f"{self.base_url}/chat/completions"

        try:
            return self._do_request(url, body)
        except LLMAPIError as e:
            if e.status_code != 429:
                raise
            if not self._fallback:
                logger.warning("[LLMClient] Rate limited (429), no fallback, failing fast")
                raise
            fb_url, fb_model, fb_key = self._fallback
            logger.info(f"[LLMClient] Primary rate-limited, trying fallback ({fb_url})")
            try:
                return self._do_request(
                    f"{fb_url}/chat/completions", {**body, "model": fb_model}, api_key=fb_key
                )
            except LLMAPIError as fb_e:
                logger.warning(f"[LLMClient] Fallback also failed: {fb_e}")
                raise e from fb_e

    def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """TextGenerator implementation. Transport failures become GenerationError."""
        try:
            return self.chat_completion(
                [{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except LLMAPIError as e:
            raise GenerationError(str(e)) from e

    @property
    def is_available(self) -> bool:
        """Check if the client has an API key configured."""
        return bool(self.api_key)
