"""Authentication session shared by every outbound request."""

import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class AuthSession:
    """Holds the bearer token between login and logout.

    Created once per client and handed to everything that talks to the
    backend. Logout listeners run on explicit logout and on any 401, which is
    where a UI hooks its redirect back to the login screen.
    """

    def __init__(self, token: Optional[str] = None):
        self._token = token
        self._logout_listeners: List[Callable[[], None]] = []

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    def login(self, token: str) -> None:
        if not token:
            raise ValueError("token must be non-empty")
        self._token = token
        logger.info("Session started")

    def logout(self) -> None:
        was_authenticated = self.is_authenticated
        self._token = None
        if was_authenticated:
            logger.info("Session ended")
        for listener in list(self._logout_listeners):
            try:
                listener()
            except Exception:
                logger.exception("Logout listener failed")

    def on_logout(self, listener: Callable[[], None]) -> None:
        self._logout_listeners.append(listener)

    def authorization_header(self) -> Optional[str]:
        return f"Bearer {self._token}" if self._token else None
