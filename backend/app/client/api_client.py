"""
CampusQA API client

Async httpx client that keeps the session alive the way the web client does:

- the access token is held in memory and sent as a bearer header
- the refresh token lives only in the cookie jar (httpOnly cookie)
- a 401 on an authenticated request triggers exactly one refresh and one
  retry of that request
- concurrent 401s share a single refresh call
- if the refresh is rejected, all credentials are dropped and
  SessionExpiredError is raised

Usage:
    async with CampusQAClient("http://localhost:4000") as client:
        await client.login("21cs001", "S3cret!pass")
        questions = await client.list_questions(q="dbms")
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger("campusqa.client")

AUTH_PATH = "/api/auth"

# Requests that manage the session themselves and are never retried
SESSION_PATHS = {f"{AUTH_PATH}/login", f"{AUTH_PATH}/refresh", f"{AUTH_PATH}/logout"}


class APIError(Exception):
    """Non-2xx response from the API"""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(f"{status_code} {code or ''}: {message}".strip())

    @classmethod
    def from_response(cls, response: httpx.Response) -> "APIError":
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        return cls(
            response.status_code,
            body.get("message") or response.reason_phrase,
            body.get("code"),
            body.get("details"),
        )


class SessionExpiredError(APIError):
    """Refresh failed; the client is anonymous again"""

    def __init__(self, message: str = "Session expired. Please log in again."):
        super().__init__(401, message, code="SESSION_EXPIRED")


class CampusQAClient:
    """Session-aware client for the CampusQA HTTP API"""

    def __init__(
        self,
        base_url: str = "http://localhost:4000",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self._refresh_lock = asyncio.Lock()
        self.access_token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None

    async def __aenter__(self) -> "CampusQAClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    # ==================== SESSION ====================

    async def login(self, identifier: str, password: str) -> Dict[str, Any]:
        response = await self._http.post(
            f"{AUTH_PATH}/login", json={"identifier": identifier, "password": password}
        )
        if response.is_error:
            raise APIError.from_response(response)

        data = response.json()
        self.access_token = data["accessToken"]
        self.user = data.get("user")
        return data

    async def logout(self) -> None:
        try:
            response = await self._http.post(f"{AUTH_PATH}/logout")
            if response.is_error:
                logger.warning(f"Logout returned {response.status_code}")
        finally:
            self._drop_credentials()

    def _drop_credentials(self) -> None:
        self.access_token = None
        self.user = None
        self._http.cookies.clear()

    async def _refresh(self, stale_token: str) -> None:
        """
        Replace stale_token with a fresh access token.

        Callers that arrive while a refresh is running wait for it and reuse
        its outcome instead of issuing their own.
        """
        async with self._refresh_lock:
            if self.access_token is None:
                raise SessionExpiredError()
            if self.access_token != stale_token:
                return

            response = await self._http.post(f"{AUTH_PATH}/refresh")
            if response.is_error:
                logger.info(f"Refresh rejected ({response.status_code}), dropping session")
                self._drop_credentials()
                raise SessionExpiredError()

            self.access_token = response.json()["accessToken"]

    # ==================== REQUESTS ====================

    async def _send(self, method: str, url: str, token: Optional[str], **kwargs) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return await self._http.request(method, url, headers=headers, **kwargs)

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request, refreshing the session once on a 401"""
        token = self.access_token
        response = await self._send(method, url, token, **kwargs)

        if response.status_code != 401 or token is None or url in SESSION_PATHS:
            return response

        await self._refresh(token)
        return await self._send(method, url, self.access_token, **kwargs)

    async def _json(self, method: str, url: str, **kwargs) -> Any:
        response = await self.request(method, url, **kwargs)
        if response.is_error:
            raise APIError.from_response(response)
        return response.json()

    # ==================== API ====================

    async def me(self) -> Dict[str, Any]:
        data = await self._json("GET", f"{AUTH_PATH}/me")
        self.user = data["user"]
        return self.user

    async def join_community(self) -> bool:
        data = await self._json("POST", "/api/membership/join")
        return data["joinedCommunity"]

    async def list_questions(self, q: Optional[str] = None, category: Optional[str] = None,
                             unanswered: bool = False) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if q:
            params["q"] = q
        if category:
            params["category"] = category
        if unanswered:
            params["unanswered"] = "true"
        data = await self._json("GET", "/api/questions", params=params)
        return data["questions"]

    async def get_question(self, question_id: str) -> Dict[str, Any]:
        return await self._json("GET", f"/api/questions/{question_id}")

    async def ask(self, title: str, description: str, category: str,
                  tags: Optional[List[str]] = None) -> str:
        data = await self._json("POST", "/api/questions", json={
            "title": title,
            "description": description,
            "category": category,
            "tags": tags or [],
        })
        return data["id"]

    async def answer(self, question_id: str, body: str) -> str:
        data = await self._json("POST", f"/api/questions/{question_id}/answers", json={"body": body})
        return data["id"]

    async def accept(self, question_id: str, answer_id: str) -> None:
        await self._json("POST", f"/api/questions/{question_id}/answers/{answer_id}/accept")

    async def toggle_like(self, question_id: str, answer_id: str) -> Dict[str, Any]:
        return await self._json("POST", f"/api/questions/{question_id}/answers/{answer_id}/like")

    async def contributors(self, sort_by: str = "reputation", year: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"sortBy": sort_by}
        if year:
            params["year"] = year
        data = await self._json("GET", "/api/contributors", params=params)
        return data["users"]

    async def leaderboard(self) -> List[Dict[str, Any]]:
        data = await self._json("GET", "/api/leaderboard")
        return data["entries"]
