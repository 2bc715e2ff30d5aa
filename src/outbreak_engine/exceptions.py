"""
Exceptions raised by the outbreak engine.

Only configuration problems and collaborator I/O failures are errors.
Missing data (unknown unit, empty observation sets) is a valid no-signal
state and never raises.
"""

from typing import Any, Dict, Optional


class OutbreakEngineError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (Context: {context_str})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "message": self.message,
            "context": self.context,
            "exception_type": self.__class__.__name__,
        }


class ConfigurationError(OutbreakEngineError):
    """Raised at startup when engine settings are invalid."""

    def __init__(self, message: str, errors: Optional[list] = None):
        self.errors = errors or []
        super().__init__(message, context={"errors": self.errors} if self.errors else None)


class CollaboratorError(OutbreakEngineError):
    """Raised when the observation store or alert sink fails."""

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.service = service
        self.status_code = status_code
        context = {k: v for k, v in {"service": service, "status_code": status_code}.items() if v is not None}
        super().__init__(message, context=context)


class SchedulerShutdownError(OutbreakEngineError):
    """Raised when a sweep is requested after the scheduler was shut down."""
