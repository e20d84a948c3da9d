"""Error types raised by the case chat client."""

from typing import Any, Optional


class CaseChatError(Exception):
    """Base class for client errors."""


class FormValidationError(CaseChatError):
    """Input rejected locally before any request is made.

    ``str(error)`` is the message shown inline next to the form.
    """


class StepInputError(CaseChatError):
    """An action that does not belong to the step's input type."""


class BackendError(CaseChatError):
    """Transport failure or non-2xx reply from the workflow backend."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def server_message(self) -> Optional[str]:
        if isinstance(self.payload, dict):
            msg = self.payload.get("message")
            return str(msg) if msg else None
        return None


class SessionExpiredError(BackendError):
    """The backend answered 401; the auth session has been torn down."""

    def __init__(self, message: str = "Unauthorized. Please login again."):
        super().__init__(message, status_code=401)
