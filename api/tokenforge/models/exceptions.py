"""Custom exception classes for TokenForge.

Boundary failures (LLM transport, unparseable model output, undecodable
images) each get a dedicated type so callers can decide what is fatal:
moodboard problems degrade gracefully, token generation problems end the run.
"""

from typing import Dict, Any, Optional, List

from fastapi.responses import JSONResponse


class TokenForgeError(Exception):
    """Base exception for all TokenForge errors."""

    # Message safe to show to end users; subclasses override.
    public_message = "Internal server error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class OpenRouterException(TokenForgeError):
    """Raised when the LLM completion API call fails."""

    def __init__(self,
                 message: str,
                 status_code: Optional[int] = None,
                 model: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.model = model
        super().__init__(message, details)


class GuardrailsValidationException(TokenForgeError):
    """Raised when parsed model output violates a JSON-schema contract."""

    def __init__(self, contract_name: str, errors: List[str]):
        self.contract_name = contract_name
        self.validation_errors = errors
        message = f"Guardrails validation failed for {contract_name}"
        details = {"contract": contract_name, "validation_errors": errors}
        super().__init__(message, details)


class ExtractionFailed(TokenForgeError):
    """Raised when an image cannot be decoded for palette extraction."""

    public_message = "Could not analyze image colors."

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Palette extraction failed: {reason}", {"reason": reason})


class AnalysisParseError(TokenForgeError):
    """Raised when the moodboard model output is not the expected JSON."""

    def __init__(self, message: str, raw: Optional[str] = None):
        self.raw = raw
        details = {"raw_preview": raw[:200]} if raw else {}
        super().__init__(message, details)


class AnalysisError(TokenForgeError):
    """Single error surfaced for any moodboard analysis failure."""

    public_message = "Moodboard analysis error"

    def __init__(self, message: str = "Moodboard analysis error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class TokenParseError(TokenForgeError):
    """Raised when the token model output is not a well-formed token set."""

    def __init__(self, message: str, raw: Optional[str] = None):
        self.raw = raw
        details = {"raw_preview": raw[:200]} if raw else {}
        super().__init__(message, details)


class TokenGenerationError(TokenForgeError):
    """Single error surfaced for any token generation failure."""

    public_message = "Token generation error"

    def __init__(self, message: str = "Token generation error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class StepIncompleteError(TokenForgeError):
    """Raised when advancing a wizard step whose required fields are unset."""

    def __init__(self, step: str, missing: List[str]):
        self.step = step
        self.missing = missing
        message = f"Step '{step}' is missing required fields: {', '.join(missing)}"
        super().__init__(message, {"step": step, "missing": missing})


class StepTransitionError(TokenForgeError):
    """Raised when a wizard action is not allowed in the current step."""

    def __init__(self, step: str, action: str):
        self.step = step
        self.action = action
        super().__init__(f"Cannot {action} from step '{step}'", {"step": step, "action": action})


# JSON response converters for FastAPI
def to_error_response(exc: TokenForgeError, status_code: int = 500) -> JSONResponse:
    """Convert a TokenForge exception to the public `{error}` body."""
    return JSONResponse(status_code=status_code, content={"error": exc.public_message})


def analysis_to_response(exc: AnalysisError) -> JSONResponse:
    return to_error_response(exc, status_code=500)


def token_generation_to_response(exc: TokenGenerationError) -> JSONResponse:
    return to_error_response(exc, status_code=500)


def extraction_to_response(exc: ExtractionFailed) -> JSONResponse:
    """Undecodable uploads are a client problem."""
    return to_error_response(exc, status_code=422)


# Exception handler registry
EXCEPTION_HANDLERS = {
    AnalysisError: analysis_to_response,
    TokenGenerationError: token_generation_to_response,
    ExtractionFailed: extraction_to_response,
}
