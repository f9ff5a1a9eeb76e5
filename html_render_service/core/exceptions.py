"""
Custom exception classes for the HTML Render Service.

Every failure surfaced by the render pipeline is a `RenderError` carrying an
`ErrorKind`. The kind decides the HTTP status the API layer answers with.
"""
from enum import Enum
from typing import List, Optional, Tuple


class ErrorKind(str, Enum):
    """Classification of a surfaced render failure."""
    EMPTY_INPUT = "EmptyInput"
    NO_ENGINE_AVAILABLE = "NoEngineAvailable"
    LOAD_TIMEOUT = "LoadTimeout"
    LOAD_FAILURE = "LoadFailure"
    CAPTURE_FAILURE = "CaptureFailure"
    SESSION_CLOSED_PREMATURELY = "SessionClosedPrematurely"

    @property
    def http_status(self) -> int:
        """400 for user errors, 500 for everything the engine side caused."""
        if self is ErrorKind.EMPTY_INPUT:
            return 400
        return 500


class RenderServiceError(Exception):
    """
    Base class for all custom exceptions in the HTML Render Service.

    Attributes:
        message (str): A human-readable description of the error.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


# --- Configuration Related Exceptions ---
class ConfigurationError(RenderServiceError):
    """
    Raised for errors related to application configuration, such as a setting
    holding a value of the wrong type or outside its allowed range.
    """
    def __init__(self, message: str):
        super().__init__(message)


# --- Component Related Exceptions ---
class ComponentError(RenderServiceError):
    """
    A general base class for errors originating from within a specific component
    (e.g., ExecutableResolver, EngineSession, RenderOrchestrator).

    Attributes:
        component_name (str): Name of the component where the error originated.
    """
    def __init__(self, component_name: str, message: str):
        full_message = f"Error in component '{component_name}': {message}"
        super().__init__(full_message)
        self.component_name = component_name


class RenderError(ComponentError):
    """
    A classified failure of one stage of the render pipeline.

    Attributes:
        kind (ErrorKind): The stage-level classification of the failure.
        detail (str): The underlying message, without the component prefix.
        original_exception (Optional[Exception]): The exception that caused it, if any.
    """
    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        component_name: str = "RenderOrchestrator",
        original_exception: Optional[Exception] = None,
    ):
        detail = message
        if original_exception is not None:
            detail += f" (Original exception: {original_exception})"
        super().__init__(component_name=component_name, message=detail)
        self.kind = kind
        self.detail = detail
        self.original_exception = original_exception

    @property
    def http_status(self) -> int:
        return self.kind.http_status


class InputError(RenderError):
    """Raised when a request carries no usable markup."""
    def __init__(self, message: str = "No HTML provided"):
        super().__init__(ErrorKind.EMPTY_INPUT, message, component_name="RenderOrchestrator")


class ResolutionError(RenderError):
    """
    Raised when no rendering-engine executable could be launched.

    Attributes:
        attempts (List[Tuple[Optional[str], Exception]]): Every candidate tried, in order,
            with the error it failed with. `None` stands for the launcher's bundled default.
        last_error (Optional[Exception]): The error of the final attempt.
    """
    def __init__(self, attempts: List[Tuple[Optional[str], Exception]]):
        self.attempts = attempts
        self.last_error = attempts[-1][1] if attempts else None
        super().__init__(
            ErrorKind.NO_ENGINE_AVAILABLE,
            f"No rendering engine could be launched after {len(attempts)} attempt(s)",
            component_name="ExecutableResolver",
            original_exception=self.last_error,
        )


class SessionError(RenderError):
    """Raised for failures inside a single engine session (load, capture, engine death)."""
    def __init__(self, kind: ErrorKind, message: str, original_exception: Optional[Exception] = None):
        super().__init__(kind, message, component_name="EngineSession", original_exception=original_exception)
