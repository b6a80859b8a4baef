"""
Async HTTP client for the Hive Community API.

Plays the part of the browser front end: logs in, keeps the session in a
``SessionManager`` between runs and re-validates it on demand.

    async with HiveCommunityClient("http://localhost:8000/api/v1") as client:
        session = await client.login(email, password)
        status = await client.check_auth_status()
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from hivecommunity.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    HiveError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from hivecommunity.services.session_manager import AuthStatus, SessionDescriptor, SessionManager

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def error_from_response(response: httpx.Response) -> HiveError:
    """Rebuild the server's typed error from its JSON body"""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = body.get("message") or f"HTTP {response.status_code}"
    code = body.get("code", "HTTP_ERROR")
    details = body.get("details") or {}

    if response.status_code == 401:
        return AuthenticationError(message, code=code)
    if response.status_code == 403:
        return AuthorizationError(message)
    if response.status_code == 404:
        return NotFoundError(details.get("resource_type", "Resource"), details.get("resource_id", ""), message)
    if response.status_code == 422:
        return ValidationError(message, errors=details.get("errors"), missing_fields=details.get("missing_fields"))
    if response.status_code >= 500:
        return ServiceError(message)

    error = HiveError(message, code=code, details=details)
    error.status_code = response.status_code
    return error


class HiveCommunityClient:
    def __init__(
        self,
        base_url: str,
        session_manager: Optional[SessionManager] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.session_manager = session_manager or SessionManager(hive_credential_check=self._check_hive_session)
        if self.session_manager.hive_credential_check is None:
            self.session_manager.hive_credential_check = self._check_hive_session
        self._http = httpx.AsyncClient(base_url=base_url.rstrip("/"), transport=transport, timeout=timeout)

    async def __aenter__(self) -> "HiveCommunityClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, auth: bool = False,
                       admin_token: Optional[str] = None, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if auth:
            token = await self.session_manager.retrieve_token()
            if not token:
                raise AuthenticationError("Not logged in", code="NOT_AUTHENTICATED")
            headers["Authorization"] = f"Bearer {token}"
        if admin_token:
            headers["X-Admin-Token"] = admin_token

        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ServiceError("Cannot connect to server. Is the backend running?", operation=path) from e

        if response.status_code >= 400:
            raise error_from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ==================== SESSION ====================

    async def login(self, email: str, password: str) -> SessionDescriptor:
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        await self.session_manager.store_token(data["access_token"])
        return await self.session_manager.store(data["user_type"], data["session"])

    async def logout(self) -> None:
        await self.session_manager.clear()

    async def _check_hive_session(self, hive_id: str, email: str) -> bool:
        data = await self._request("GET", "/auth/session", auth=True)
        return bool(data.get("valid"))

    async def check_auth_status(self) -> AuthStatus:
        return await self.session_manager.check_auth_status()

    # ==================== APPLICATIONS ====================

    async def submit_hive_application(self, payload: Dict[str, Any]) -> str:
        data = await self._request("POST", "/hives/applications", json=payload)
        return data["id"]

    async def submit_member_application(self, payload: Dict[str, Any]) -> str:
        data = await self._request("POST", "/members/applications", json=payload)
        return data["id"]

    async def approved_hives(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/hives/approved")

    async def pending_member_applications(self, limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        return await self._request(
            "GET", "/members/applications", auth=True, params={"limit": limit, "offset": offset}
        )

    async def approve_member(self, application_id: str, note: str = "") -> Dict[str, Any]:
        return await self._request(
            "POST", f"/members/applications/{application_id}/approve", auth=True, json={"note": note}
        )

    async def reject_member(self, application_id: str, note: str = "") -> Dict[str, Any]:
        return await self._request(
            "POST", f"/members/applications/{application_id}/reject", auth=True, json={"note": note}
        )

    # ==================== VOLUNTEERING ====================

    async def volunteer_opportunities(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/volunteers/opportunities")

    async def apply_for_volunteer(self, opportunity_id: str, payload: Optional[Dict[str, Any]] = None) -> str:
        data = await self._request(
            "POST", f"/volunteers/opportunities/{opportunity_id}/apply", auth=True, json=payload or {}
        )
        return data["id"]

    async def notifications(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/volunteers/notifications", auth=True)

    async def mark_notification_read(self, notification_id: str) -> bool:
        data = await self._request("POST", f"/volunteers/notifications/{notification_id}/read", auth=True)
        return bool(data.get("success"))
