"""Webhook pass-through router.

Each ``/webhook/<name>`` route forwards the request body (and the caller's
Authorization header) to the same path on the workflow backend, then relays
the backend's status code and JSON body unchanged. When the backend cannot be
reached or answers with something that is not JSON, the caller gets a 500 with
a short route-specific error.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhook"])


class UpstreamError(Exception):
    """The workflow backend could not be reached or returned a non-JSON body."""


def get_http_client(request: Request) -> httpx.AsyncClient:
    """The app-wide client opened by the lifespan handler in ``main``."""
    return request.app.state.http_client


async def forward_request(
    client: httpx.AsyncClient,
    settings: Settings,
    endpoint: str,
    method: str,
    body: Any = None,
    auth_header: Optional[str] = None,
    *,
    raw_body: Optional[bytes] = None,
    content_type: Optional[str] = None,
) -> httpx.Response:
    headers: Dict[str, str] = {"Content-Type": content_type or "application/json"}
    if auth_header:
        headers["Authorization"] = auth_header
    if raw_body is not None:
        content = raw_body
    elif body is not None:
        content = json.dumps(body).encode("utf-8")
    else:
        content = None
        if method == "GET":
            headers.pop("Content-Type")
    url = f"{settings.webhook_base_url.rstrip('/')}{endpoint}"
    try:
        return await client.request(method, url, content=content, headers=headers)
    except httpx.HTTPError as e:
        raise UpstreamError(f"forwarding to {endpoint} failed: {e}") from e


def relay(response: httpx.Response) -> JSONResponse:
    try:
        data = response.json()
    except ValueError as e:
        raise UpstreamError(f"non-JSON reply ({response.status_code})") from e
    return JSONResponse(status_code=response.status_code, content=data)


async def read_json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return None
    return json.loads(raw)


async def _proxy(
    request: Request,
    client: httpx.AsyncClient,
    settings: Settings,
    endpoint: str,
    method: str,
    failure_message: str,
    *,
    with_auth: bool = True,
) -> JSONResponse:
    try:
        body = await read_json_body(request) if method != "GET" else None
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})
    auth_header = request.headers.get("authorization") if with_auth else None
    try:
        response = await forward_request(client, settings, endpoint, method, body, auth_header)
        return relay(response)
    except UpstreamError:
        logger.exception("[webhook] %s %s failed", method, endpoint)
        return JSONResponse(status_code=500, content={"error": failure_message})


@router.post("/login")
async def handle_login(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    return await _proxy(request, client, settings, "/login", "POST",
                        "Failed to process login request", with_auth=False)


@router.post("/sign-up-user")
async def handle_sign_up_user(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    return await _proxy(request, client, settings, "/sign-up-user", "POST",
                        "Failed to process sign up request", with_auth=False)


@router.get("/user-details")
async def handle_user_details(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    return await _proxy(request, client, settings, "/user-details", "GET",
                        "Failed to fetch user details")


@router.post("/create-case")
async def handle_create_case(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    return await _proxy(request, client, settings, "/create-case", "POST",
                        "Failed to create case")


@router.post("/load-case-conversation")
async def handle_load_case_conversation(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    return await _proxy(request, client, settings, "/load-case-conversation", "POST",
                        "Failed to load case conversation")


@router.post("/initiate-chat")
async def handle_initiate_chat(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    return await _proxy(request, client, settings, "/initiate-chat", "POST",
                        "Failed to initiate chat")


@router.post("/ai-resp")
async def handle_ai_response(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" not in content_type:
        return await _proxy(request, client, settings, "/ai-resp", "POST",
                            "Failed to get AI response")

    # File upload: pass the multipart body through untouched so the boundary
    # in the Content-Type header still matches.
    raw = await request.body()
    logger.info("[webhook] forwarding multipart ai-resp (%d bytes)", len(raw))
    try:
        response = await forward_request(
            client, settings, "/ai-resp", "POST",
            auth_header=request.headers.get("authorization"),
            raw_body=raw,
            content_type=content_type,
        )
        return relay(response)
    except UpstreamError:
        logger.exception("[webhook] multipart ai-resp failed")
        return JSONResponse(status_code=500, content={"error": "Failed to process file upload"})
