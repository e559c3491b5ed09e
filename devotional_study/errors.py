"""Exception hierarchy for study generation and quiz sessions."""
from __future__ import annotations


class StudyError(Exception):
    """Base class for everything this package raises on purpose."""


class MalformedResponse(StudyError):
    """No JSON object could be recovered from a provider response.

    ``raw`` keeps the original text for diagnostics; it is never shown to
    the user, who only gets a "try again".
    """

    def __init__(self, reason: str, raw: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.raw = raw


class ProviderError(StudyError):
    """The generative provider call failed."""

    status_code: int | None = None

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class QuotaExceeded(ProviderError):
    status_code = 429


class AuthenticationFailed(ProviderError):
    status_code = 401


class SafetyRejected(ProviderError):
    pass


class QuizError(StudyError):
    """Misuse of a quiz engine by its caller."""


class AnswerMismatch(QuizError):
    """The submitted answer does not fit the current question type."""


class QuizStateError(QuizError):
    """The operation is not valid in the engine's current state."""


_QUOTA_HINTS = ("quota", "rate limit", "rate-limit", "too many requests")
_AUTH_HINTS = ("api key", "unauthorized", "authentication", "permission")
_SAFETY_HINTS = ("safety", "content policy", "blocked")


def classify_http_error(status_code: int, message: str = "") -> ProviderError:
    """Map a provider HTTP failure onto the matching ProviderError subclass."""
    text = message.lower()
    if status_code == 429 or any(h in text for h in _QUOTA_HINTS):
        return QuotaExceeded(message or "provider quota exceeded", status_code)
    if status_code in (401, 403) or any(h in text for h in _AUTH_HINTS):
        return AuthenticationFailed(message or "provider rejected credentials", status_code)
    if any(h in text for h in _SAFETY_HINTS):
        return SafetyRejected(message or "provider refused the request", status_code)
    return ProviderError(message or f"provider returned HTTP {status_code}", status_code)
