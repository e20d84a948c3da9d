"""Login and signup flows.

Both validate locally first, call the backend without a bearer token, and on
success start the auth session with the returned token.
"""

import logging
from typing import Any, Dict, Mapping

from .errors import BackendError, FormValidationError
from .services.webhook_client import WebhookClient
from .validation import validate_login, validate_signup

logger = logging.getLogger(__name__)


def _start_session(client: WebhookClient, data: Any) -> Dict[str, Any]:
    token = data.get("token") if isinstance(data, dict) else None
    if not token:
        raise FormValidationError("Token not returned from API")
    client.session.login(token)
    return data


async def login(client: WebhookClient, email: str, password: str) -> Dict[str, Any]:
    validate_login(email, password)
    try:
        data = await client.login(email, password)
    except BackendError as e:
        if e.status_code is None:
            logger.error("Login request failed: %s", e)
            raise FormValidationError("Something went wrong, please try again.") from e
        raise FormValidationError(e.server_message or "Invalid email or password") from e
    return _start_session(client, data)


async def sign_up(client: WebhookClient, form: Mapping[str, Any]) -> Dict[str, Any]:
    payload = validate_signup(form)
    try:
        data = await client.sign_up(payload)
    except BackendError as e:
        if e.status_code is None:
            logger.error("Signup request failed: %s", e)
            raise FormValidationError("An error occurred. Please try again.") from e
        raise FormValidationError(e.server_message or "Signup failed. Please try again.") from e
    return _start_session(client, data)
