"""Async client for the workflow backend's webhook endpoints.

Every authenticated call carries the session's bearer token. A 401 on any of
them tears the session down (which is where the UI redirects to login) and
raises :class:`SessionExpiredError`. Other failures surface as
:class:`BackendError`; nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from ..config import build_api_url, get_settings
from ..errors import BackendError, SessionExpiredError
from ..schemas.message import Case, ChatMessage, UserDetails
from ..session import AuthSession

logger = logging.getLogger(__name__)


def case_display_name(case_id: Any, case_name: Optional[str]) -> str:
    return case_name or f"Case #{case_id}"


class WebhookClient:
    """Thin wrapper over ``httpx.AsyncClient`` for the ``/webhook/*`` API."""

    def __init__(
        self,
        session: AuthSession,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.session = session
        self.base_url = base_url or settings.api_base_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.webhook_timeout_seconds
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> 'WebhookClient':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # --- transport -------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        data: Optional[Mapping[str, Any]] = None,
        files: Optional[Sequence[Any]] = None,
        authenticated: bool = True,
    ) -> httpx.Response:
        url = build_api_url(path, self.base_url)
        headers: Dict[str, str] = {}
        if authenticated:
            auth = self.session.authorization_header()
            if auth:
                headers["Authorization"] = auth
        try:
            response = await self._client.request(
                method, url, json=json, data=data, files=files, headers=headers
            )
        except httpx.HTTPError as e:
            logger.warning("Request %s %s failed: %s", method, path, e)
            raise BackendError(f"{method} {path} failed: {e}") from e

        if authenticated and response.status_code == 401:
            logger.info("401 from %s; ending session", path)
            self.session.logout()
            raise SessionExpiredError()
        return response

    @staticmethod
    def _decode(response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(
                f"{path} returned a non-JSON body", status_code=response.status_code
            ) from e

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._request(method, path, **kwargs)
        data = self._decode(response, path)
        if not response.is_success:
            raise BackendError(
                f"{path} returned {response.status_code}",
                status_code=response.status_code,
                payload=data,
            )
        return data

    # --- endpoints -------------------------------------------------------

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        return await self._call(
            "POST", "/login", json={"email": email, "password": password}, authenticated=False
        )

    async def sign_up(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._call("POST", "/sign-up-user", json=dict(payload), authenticated=False)

    async def user_details(self) -> UserDetails:
        data = await self._call("GET", "/user-details")
        return UserDetails.model_validate(data or {})

    async def create_case(self, name: str, case_type: str) -> Case:
        data = await self._call("POST", "/create-case", json={"name": name, "type": case_type})
        return Case.model_validate(data)

    async def load_case_conversation(self, case_id: Any) -> List[ChatMessage]:
        data = await self._call("POST", "/load-case-conversation", json={"caseId": case_id})
        chat = data.get("chat") if isinstance(data, dict) else None
        messages: List[ChatMessage] = []
        for item in chat or []:
            try:
                messages.append(ChatMessage.model_validate(item))
            except ValueError:
                logger.warning("Dropping malformed history entry for case %s: %r", case_id, item)
        return messages

    async def initiate_chat(self, case_id: Any, case_name: Optional[str], case_type: Optional[str]) -> Any:
        return await self._call(
            "POST",
            "/initiate-chat",
            json={
                "caseId": case_id,
                "caseName": case_display_name(case_id, case_name),
                "caseType": case_type or "",
            },
        )

    async def send_text(
        self, case_id: Any, case_name: Optional[str], case_type: Optional[str], message: str
    ) -> Any:
        return await self._call(
            "POST",
            "/ai-resp",
            json={
                "caseId": case_id,
                "caseName": case_display_name(case_id, case_name),
                "caseType": case_type or "",
                "content": {"message": message},
                "type": "text",
            },
        )

    async def send_documents(
        self, case_id: Any, case_name: Optional[str], case_type: Optional[str], documents: Sequence[Any]
    ) -> Any:
        """Upload staged documents as multipart, one ``file_<n>`` part each."""
        files = [
            (f"file_{index}", (doc.name, doc.content, doc.content_type or "application/octet-stream"))
            for index, doc in enumerate(documents)
        ]
        form = {
            "caseId": str(case_id),
            "caseName": case_display_name(case_id, case_name),
            "caseType": case_type or "",
            "type": "document",
        }
        return await self._call("POST", "/ai-resp", data=form, files=files)
