"""Push delivery. Every failure comes back as a ``DispatchResult``, never as an exception."""

from __future__ import annotations

import json
import os
import uuid
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Protocol

import anyio
import httpx
import structlog
from pydantic import BaseModel

import config
from segmentation.errors import ConfigurationError

logger = structlog.get_logger()

FCM_SCOPES = ["https://www.googleapis.com/auth/firebase.messaging"]
FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
STUB_HISTORY = 100


class DispatchResult(BaseModel):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def failure(error: str) -> DispatchResult:
    return DispatchResult(success=False, error=(error or "send failed")[:1000])


class PushDispatcher(Protocol):
    async def send(self, token: Optional[str], title: str, body: str, image: Optional[str] = None) -> DispatchResult:
        ...


def payload_problem(token: Optional[str], title: str, body: str) -> Optional[str]:
    if not token or not token.strip():
        return "FCM token is required"
    if not title or not body:
        return "Title and description are required"
    return None


class StubDispatcher:
    """Accepts every well-formed message without leaving the process."""

    def __init__(self, history: int = STUB_HISTORY) -> None:
        # most recent sends only; the stub runs inside the long-lived API process
        self.sent: Deque[Dict[str, Any]] = deque(maxlen=history)

    async def send(self, token: Optional[str], title: str, body: str, image: Optional[str] = None) -> DispatchResult:
        problem = payload_problem(token, title, body)
        if problem:
            return failure(problem)
        message_id = f"stub-{uuid.uuid4().hex}"
        self.sent.append({"token": token, "title": title, "body": body, "image": image, "message_id": message_id})
        return DispatchResult(success=True, message_id=message_id)


def load_service_account(raw: str = "", path: str = "") -> Optional[dict]:
    if raw:
        try:
            return json.loads(raw)
        except ValueError:
            return None
    if path and os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError):
            return None
    return None


def service_account_token_provider(sa: dict) -> Callable[[], Awaitable[str]]:
    """OAuth2 access tokens for FCM, refreshed in a worker thread when stale."""
    from google.auth.transport.requests import Request
    from google.oauth2 import service_account

    creds = service_account.Credentials.from_service_account_info(sa, scopes=FCM_SCOPES)

    async def provide() -> str:
        if not creds.valid:
            await anyio.to_thread.run_sync(creds.refresh, Request())
        return creds.token

    return provide


class FcmDispatcher:
    """Firebase Cloud Messaging HTTP v1 sender."""

    def __init__(
        self,
        project_id: str,
        token_provider: Callable[[], Awaitable[str]],
        timeout: float = 12,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = FCM_SEND_URL.format(project_id=project_id)
        self.token_provider = token_provider
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def send(self, token: Optional[str], title: str, body: str, image: Optional[str] = None) -> DispatchResult:
        problem = payload_problem(token, title, body)
        if problem:
            return failure(problem)

        notification = {"title": title, "body": body}
        if image:
            notification["image"] = image
        payload = {"message": {"token": token, "notification": notification}}

        try:
            access_token = await self.token_provider()
        except Exception as exc:
            logger.warning("push.fcm_auth_failed", error=str(exc))
            return failure(f"FCM auth failed: {exc}")

        try:
            r = await self.client.post(self.url, headers={"Authorization": f"Bearer {access_token}"}, json=payload)
        except httpx.HTTPError as exc:
            return failure(f"FCM request failed: {exc.__class__.__name__}: {exc}")

        if 200 <= r.status_code < 300:
            try:
                data = r.json()
            except ValueError:
                data = None
            message_id = data.get("name") if isinstance(data, dict) else None
            return DispatchResult(success=True, message_id=message_id)
        return failure(r.text or f"FCM error status={r.status_code}")


def build_dispatcher() -> PushDispatcher:
    mode = config.PUSH_MODE
    if mode == "stub":
        return StubDispatcher()
    if mode == "fcm":
        sa = load_service_account(config.FCM_SERVICE_ACCOUNT_JSON, config.FCM_SERVICE_ACCOUNT_PATH)
        if not sa or not config.FCM_PROJECT_ID:
            raise ConfigurationError("FCM not configured: set FCM_PROJECT_ID and a service account")
        return FcmDispatcher(
            config.FCM_PROJECT_ID,
            service_account_token_provider(sa),
            timeout=config.DISPATCH_TIMEOUT_SECONDS,
        )
    raise ConfigurationError(f"unknown PUSH_MODE {mode!r}")
