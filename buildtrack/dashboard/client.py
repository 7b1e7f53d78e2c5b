"""
HTTP client for the BuildTrack API.

Every call goes through `send()`, which unwraps the `{success, data, error}`
envelope. Transport failures become NetworkError; a non-2xx status or
`success: false` becomes APIError carrying the server's message.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from buildtrack.config import get_settings
from buildtrack.dashboard.errors import APIError, NetworkError

settings = get_settings()
logger = logging.getLogger(__name__)


class ApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url or settings.API_BASE_URL
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            timeout=timeout,
            follow_redirects=True,
        )
        if token:
            self.set_token(token)

    def set_token(self, token: str) -> None:
        self._client.headers["Authorization"] = f"Bearer {token}"

    async def login(self, email: str, password: str) -> str:
        """Password login; the bearer token is kept for later calls"""
        try:
            response = await self._client.post("/auth/login", data={"username": email, "password": password})
        except httpx.RequestError as e:
            raise NetworkError(f"Network error: {e}") from e
        if response.is_error:
            raise APIError(self._error_message(response), status_code=response.status_code)
        token = response.json()["access_token"]
        self.set_token(token)
        return token

    async def send(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Issue a request and return the full success envelope"""
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise NetworkError(f"Network error: {e}") from e

        body = self._json(response)
        if response.is_error or not isinstance(body, dict) or not body.get("success"):
            message = self._error_message(response, body)
            logger.warning(f"{method} {path} -> {response.status_code}: {message}")
            raise APIError(message, status_code=response.status_code)
        return body

    async def request(self, method: str, path: str, **kwargs) -> Any:
        body = await self.send(method, path, **kwargs)
        return body.get("data")

    async def get(self, path: str, params: Optional[dict] = None) -> Any:
        return await self.request("GET", path, params=_clean(params))

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def patch(self, path: str, json: Any = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str, params: Optional[dict] = None) -> Any:
        return await self.request("DELETE", path, params=_clean(params))

    async def upload_file(
        self,
        project_id: int,
        filename: str,
        content: bytes,
        content_type: str,
        description: Optional[str] = None,
        is_public: bool = False,
        tags: Optional[List[str]] = None,
    ) -> str:
        """Upload one file to the project library and return its public URL"""
        form = {"projectId": str(project_id), "isPublic": "true" if is_public else "false"}
        if description:
            form["description"] = description
        if tags:
            form["tags"] = ",".join(tags)

        data = await self.request(
            "POST", "/files/",
            data=form,
            files={"file": (filename, content, content_type)},
        )
        return data["url"]

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    @classmethod
    def _error_message(cls, response: httpx.Response, body: Any = None) -> Optional[str]:
        body = body if body is not None else cls._json(response)
        if isinstance(body, dict):
            return body.get("error") or body.get("detail")
        return None


def _clean(params: Optional[dict]) -> Optional[dict]:
    """Drop unset query parameters"""
    if params is None:
        return None
    return {k: v for k, v in params.items() if v is not None}
