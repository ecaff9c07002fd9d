"""Error types shared by the tailoring pipeline, the store and the web layer."""

from typing import List, Optional


class ResumeMatchError(Exception):
    """Base class for errors surfaced to the user."""

    retryable = False


class ValidationError(ResumeMatchError):
    """
    Raised when a resume is missing fields required for tailoring.

    Attributes:
        errors: Human-readable description of each missing field
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Resume is incomplete: " + ", ".join(self.errors))


class ServiceUnavailable(ResumeMatchError):
    """Transport-level failure talking to the language model or a store."""

    retryable = True

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class MalformedResponse(ResumeMatchError):
    """
    The language model replied, but not with the JSON shape we asked for.

    Attributes:
        message: What went wrong while parsing
        raw_text: The reply text, kept for logging
    """

    def __init__(self, message: str, raw_text: str = ""):
        self.message = message
        self.raw_text = raw_text
        snippet = raw_text[:200] + "..." if len(raw_text) > 200 else raw_text
        super().__init__(f"{message}: {snippet!r}" if raw_text else message)


class NotFound(ResumeMatchError):
    """Lookup of a user or application that does not exist."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")
