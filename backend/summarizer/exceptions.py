"""
Summarizer Exceptions

Every failure the pipeline can report to a caller is one of these types.
The orchestrator is the single place where they are turned into error events.

    SummarizerError
    ├── ReferenceInvalid
    ├── TranscriptUnavailable
    ├── ConfigurationError
    │   └── BackendUnavailable
    ├── BackendRequestFailed
    ├── EmptyGenerationResult
    ├── DuplicateRequest
    ├── PersistenceFailure
    └── UploadInvalid
"""
from enum import Enum
from typing import Optional


class SummarizerError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        message: Short human-readable message
        details: Longer diagnostic string shown alongside the message
    """

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details or message
        super().__init__(message)


class ReferenceInvalid(SummarizerError):
    """Raised when a video locator cannot be resolved to an 11-char identifier"""


class TranscriptUnavailable(SummarizerError):
    """Raised when no transcript source could produce text"""


class ConfigurationError(SummarizerError):
    """Raised for invalid backend names and missing credentials"""


class BackendUnavailable(ConfigurationError):
    """Raised when a backend is selected but its API key is not configured"""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(
            f"{provider} API key is not configured. Please add your API key in "
            f"the settings or choose a different model."
        )


class BackendErrorKind(str, Enum):
    """Provider failure categories shared by every backend"""
    AUTHENTICATION = "authentication"
    QUOTA = "quota"
    MALFORMED = "malformed"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


class BackendRequestFailed(SummarizerError):
    """Raised when a provider call fails.

    Attributes:
        provider: Display name of the backend
        kind: Mapped failure category
        code: Provider status code, when one was reported
        hint: Remediation hint attached by the orchestrator
    """

    def __init__(
        self,
        provider: str,
        kind: BackendErrorKind,
        message: str,
        code: Optional[int] = None,
        details: Optional[str] = None
    ):
        self.provider = provider
        self.kind = kind
        self.code = code
        self.hint: Optional[str] = None
        super().__init__(f"{provider} API error: {message}", details)


class EmptyGenerationResult(SummarizerError):
    """Raised when the final generation returns no content"""

    def __init__(self, message: str = "No summary content generated"):
        super().__init__(message)


class DuplicateRequest(SummarizerError):
    """Raised when an identical request is already being processed"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(
            "This summary is already being generated. Please wait for the "
            "current request to finish.",
            f"Duplicate request for {key}"
        )


class PersistenceFailure(SummarizerError):
    """Raised by the record store; never fatal to a generated summary"""


class UploadInvalid(SummarizerError):
    """Raised for bad subtitle uploads (extension, identifier, missing file)"""
