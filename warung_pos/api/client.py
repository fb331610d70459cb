from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from warung_pos.config import API_BASE_URL, REQUEST_TIMEOUT
from warung_pos.constants import ERROR_NO_TOKEN, ERROR_SESSION_EXPIRED
from warung_pos.db.dao import CredentialDAO
from warung_pos.errors import (
    AuthorizationError,
    ConflictError,
    SessionExpiredError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason or f"HTTP status: {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or response.reason or "Unknown error")
    return response.reason or "Unknown error"


class ApiClient:
    """
    Authenticated JSON client for the POS backend.

    Every call is a coroutine: the blocking `requests` round trip runs in a
    worker thread so the event loop keeps serving other operator actions.
    """

    def __init__(
        self,
        credentials: Optional[CredentialDAO] = None,
        base_url: str = API_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def _get_headers(self, auth: bool) -> Dict[str, str]:
        """Authorization header from the stored credential."""
        headers = {"Accept": "application/json"}
        if not auth:
            return headers
        token = self.credentials.get_token() if self.credentials else None
        if not token:
            raise SessionExpiredError(ERROR_NO_TOKEN, status_code=401)
        headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        data: Optional[Dict[str, Any]],
        params: Optional[Dict[str, Any]],
    ) -> requests.Response:
        return self.session.request(
            method=method,
            url=url,
            headers=headers,
            json=data,
            params=params,
            timeout=self.timeout,
        )

    async def request(
        self,
        method: str,
        path: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        auth: bool = True,
    ) -> Any:
        """Send one request and return the decoded JSON body."""
        url = f"{self.base_url}{path}"
        headers = self._get_headers(auth)

        try:
            response = await asyncio.to_thread(self._send, method, url, headers, data, params)
        except requests.RequestException as e:
            logger.error(f"POS API request failed: {method} {url} - {e}")
            raise TransportError(f"Network error: {e}") from e

        self._raise_for_status(method, url, response)

        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    def _raise_for_status(self, method: str, url: str, response: requests.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        if status == 401:
            logger.warning(f"Session rejected by backend: {method} {url}")
            if self.credentials:
                self.credentials.clear()
            raise SessionExpiredError(ERROR_SESSION_EXPIRED, status_code=401)

        message = _error_message(response)
        logger.error(f"POS API error: {method} {url} - {status} {message}")

        if status in (400, 422):
            raise ValidationError(message)
        if status == 403:
            raise AuthorizationError(message)
        if status == 409:
            raise ConflictError(message, detail=message)
        raise TransportError(f"API Error: {status} - {message}", status_code=status, detail=message)

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, data: Optional[Dict[str, Any]] = None, auth: bool = True) -> Any:
        return await self.request("POST", path, data=data, auth=auth)

    async def put(self, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PUT", path, data=data)

    async def patch(self, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PATCH", path, data=data)
