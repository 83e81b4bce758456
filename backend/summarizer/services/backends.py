"""
Generative Backends

One class per text-generation provider, all exposing the same contract:

    await backend.generate_content(prompt) -> cleaned text

Each backend checks its API key before use, makes exactly one provider call
(no internal retries), maps provider status codes through its own error table
and runs the output through the shared cleaning step.
"""
import logging
from typing import Dict, Optional, Tuple, Type

import google.generativeai as genai
from openai import AsyncOpenAI

from summarizer.exceptions import (
    BackendErrorKind,
    BackendRequestFailed,
    BackendUnavailable,
    ConfigurationError,
)
from summarizer.services.output_cleaning import clean_model_output
from summarizer.settings import Settings, get_settings

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a direct and concise summarizer. Respond only with the summary in the "
    "requested language, without any prefixes or meta-commentary. Keep all markdown "
    "formatting intact. If the language is Chinese, ensure the summary is in fluent, "
    "natural Chinese."
)

ErrorTable = Dict[int, Tuple[BackendErrorKind, str]]


def _status_code(exc: Exception) -> Optional[int]:
    """Best-effort HTTP status from an SDK exception"""
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


class GenerativeBackend:
    """Base class for text-generation providers"""

    name: str = ""
    display_name: str = ""
    error_table: ErrorTable = {}

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def api_key(self) -> Optional[str]:
        raise NotImplementedError

    def is_configured(self) -> bool:
        """True if the provider credential is present"""
        return bool(self.api_key)

    async def generate_content(self, prompt: str) -> str:
        """
        Generate text for a prompt.

        Raises:
            BackendUnavailable: If no API key is configured
            BackendRequestFailed: If the provider call fails
        """
        if not self.is_configured():
            raise BackendUnavailable(self.display_name)

        try:
            raw = await self._generate(prompt)
        except BackendRequestFailed:
            raise
        except Exception as e:
            error = self.map_error(e)
            logger.error(
                f"{self.display_name} request failed "
                f"(status={error.code}, kind={error.kind.value}): {e}"
            )
            raise error from e

        return clean_model_output(raw)

    async def _generate(self, prompt: str) -> str:
        raise NotImplementedError

    def map_error(self, exc: Exception) -> BackendRequestFailed:
        """Translate a provider exception through this backend's error table"""
        code = _status_code(exc)
        entry = self.error_table.get(code) if code is not None else None
        if entry:
            kind, message = entry
            return BackendRequestFailed(self.display_name, kind, message, code=code, details=str(exc))
        return BackendRequestFailed(
            self.display_name, BackendErrorKind.UNKNOWN, str(exc) or type(exc).__name__,
            code=code, details=repr(exc)
        )


class GeminiBackend(GenerativeBackend):
    """Google Gemini via google-generativeai"""

    name = "gemini"
    display_name = "Google Gemini"
    error_table = {
        400: (BackendErrorKind.MALFORMED, "Invalid request - the prompt was rejected by Gemini"),
        401: (BackendErrorKind.AUTHENTICATION, "Authentication failed - invalid API key"),
        403: (BackendErrorKind.AUTHENTICATION, "Authentication failed - API key lacks permission"),
        404: (BackendErrorKind.MALFORMED, "Model not found"),
        429: (BackendErrorKind.RATE_LIMITED, "Rate limit or quota exceeded"),
        500: (BackendErrorKind.SERVER_ERROR, "Internal server error"),
        503: (BackendErrorKind.SERVER_ERROR, "Service unavailable - server overloaded"),
        504: (BackendErrorKind.SERVER_ERROR, "Request timed out on the server"),
    }

    @property
    def api_key(self) -> Optional[str]:
        return self.settings.gemini_api_key

    async def _generate(self, prompt: str) -> str:
        genai.configure(api_key=self.api_key)
        model = genai.GenerativeModel(
            self.settings.gemini_model,
            system_instruction=SYSTEM_INSTRUCTION,
        )
        response = await model.generate_content_async(
            prompt,
            generation_config=genai.GenerationConfig(
                temperature=self.settings.llm_temperature,
                max_output_tokens=self.settings.llm_max_tokens,
            ),
        )
        return response.text


class ChatCompletionBackend(GenerativeBackend):
    """Providers reachable through the OpenAI chat-completions API"""

    base_url: Optional[str] = None

    def __init__(self, settings: Optional[Settings] = None):
        super().__init__(settings)
        self.client: Optional[AsyncOpenAI] = None

    @property
    def model(self) -> str:
        raise NotImplementedError

    def _get_client(self) -> AsyncOpenAI:
        if self.client is None:
            self.client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
            logger.info(f"{self.display_name} client initialized with model: {self.model}")
        return self.client

    async def _generate(self, prompt: str) -> str:
        response = await self._get_client().chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt}
            ],
            temperature=self.settings.llm_temperature,
            max_tokens=self.settings.llm_max_tokens,
        )

        if hasattr(response, 'usage') and response.usage:
            logger.info(
                f"{self.display_name} usage - Input: {response.usage.prompt_tokens}, "
                f"Output: {response.usage.completion_tokens}"
            )

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class GroqBackend(ChatCompletionBackend):
    name = "groq"
    display_name = "Groq"
    error_table = {
        400: (BackendErrorKind.MALFORMED, "Invalid request format"),
        401: (BackendErrorKind.AUTHENTICATION, "Authentication failed - invalid API key"),
        404: (BackendErrorKind.MALFORMED, "Model not found"),
        413: (BackendErrorKind.MALFORMED, "Request too large for the model"),
        422: (BackendErrorKind.MALFORMED, "Invalid request parameters"),
        429: (BackendErrorKind.RATE_LIMITED, "Rate limit reached"),
        498: (BackendErrorKind.SERVER_ERROR, "Capacity exceeded - server overloaded"),
        500: (BackendErrorKind.SERVER_ERROR, "Internal server error"),
        502: (BackendErrorKind.SERVER_ERROR, "Bad gateway"),
        503: (BackendErrorKind.SERVER_ERROR, "Service unavailable - server overloaded"),
    }

    @property
    def api_key(self) -> Optional[str]:
        return self.settings.groq_api_key

    @property
    def base_url(self) -> str:
        return self.settings.groq_base_url

    @property
    def model(self) -> str:
        return self.settings.groq_model


class OpenAIBackend(ChatCompletionBackend):
    name = "gpt4"
    display_name = "GPT-4"
    error_table = {
        400: (BackendErrorKind.MALFORMED, "Invalid request format"),
        401: (BackendErrorKind.AUTHENTICATION, "Authentication failed - invalid API key"),
        403: (BackendErrorKind.AUTHENTICATION, "Access denied for this model or region"),
        404: (BackendErrorKind.MALFORMED, "Model not found"),
        429: (BackendErrorKind.RATE_LIMITED, "Rate limit reached"),
        500: (BackendErrorKind.SERVER_ERROR, "Internal server error"),
        503: (BackendErrorKind.SERVER_ERROR, "Service unavailable - server overloaded"),
    }

    @property
    def api_key(self) -> Optional[str]:
        return self.settings.openai_api_key

    @property
    def model(self) -> str:
        return self.settings.openai_model

    def map_error(self, exc: Exception) -> BackendRequestFailed:
        # OpenAI reports an exhausted quota as a 429 with its own error code
        if getattr(exc, "code", None) == "insufficient_quota":
            return BackendRequestFailed(
                self.display_name, BackendErrorKind.QUOTA,
                "Insufficient quota - check your plan and billing details",
                code=_status_code(exc), details=str(exc)
            )
        return super().map_error(exc)


class DeepSeekBackend(ChatCompletionBackend):
    name = "deepseek"
    display_name = "DeepSeek"
    error_table = {
        400: (BackendErrorKind.MALFORMED, "Invalid request format"),
        401: (BackendErrorKind.AUTHENTICATION, "Authentication failed - invalid API key"),
        402: (BackendErrorKind.QUOTA, "Insufficient balance - please top up your account"),
        422: (BackendErrorKind.MALFORMED, "Invalid request parameters"),
        429: (BackendErrorKind.RATE_LIMITED, "Rate limit reached - too many requests"),
        500: (BackendErrorKind.SERVER_ERROR, "Internal server error"),
        503: (BackendErrorKind.SERVER_ERROR, "Server overloaded"),
    }

    @property
    def api_key(self) -> Optional[str]:
        return self.settings.deepseek_api_key

    @property
    def base_url(self) -> str:
        return self.settings.deepseek_base_url

    @property
    def model(self) -> str:
        return self.settings.deepseek_model


BACKEND_CLASSES: Dict[str, Type[GenerativeBackend]] = {
    cls.name: cls for cls in (GeminiBackend, GroqBackend, OpenAIBackend, DeepSeekBackend)
}


def create_backends(settings: Optional[Settings] = None) -> Dict[str, GenerativeBackend]:
    """Instantiate every known backend, keyed by name"""
    settings = settings or get_settings()
    return {name: cls(settings) for name, cls in BACKEND_CLASSES.items()}


def get_backend(backends: Dict[str, GenerativeBackend], name: str) -> GenerativeBackend:
    """
    Look up a backend by name.

    Raises:
        ConfigurationError: If no backend has that name
    """
    backend = backends.get(name)
    if backend is None:
        choices = ", ".join(b.display_name or n for n, b in backends.items())
        raise ConfigurationError(
            f"Invalid AI model selected. Please choose from: {choices}",
            f"Unknown backend '{name}'"
        )
    return backend


def backend_availability(backends: Dict[str, GenerativeBackend]) -> Dict[str, bool]:
    """Which backends currently have credentials"""
    return {name: backend.is_configured() for name, backend in backends.items()}
