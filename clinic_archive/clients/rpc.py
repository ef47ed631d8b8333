"""
RPC Transport
POSTs remote procedure calls to the managed backend's /rest/v1/rpc endpoint
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
import structlog

from clinic_archive.core.config import RPC_CONFIG
from clinic_archive.core.exceptions import TransportError

logger = structlog.get_logger()


class RpcTransport(ABC):
    """Issues a single remote procedure call and returns its decoded body"""

    @abstractmethod
    async def call(self, function: str, params: Dict[str, Any]) -> Any:
        """
        Call a remote procedure.

        Args:
            function: Procedure name
            params: Named procedure arguments

        Returns:
            Decoded JSON response body

        Raises:
            TransportError: network failure, timeout, HTTP error status or
                a body that is not JSON
        """
        pass


class HttpRpcTransport(RpcTransport):
    """
    httpx-backed transport.

    A shared client may be injected for connection pooling; otherwise a
    short-lived client is opened per call. Timeouts come from httpx and are
    never retried here.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or RPC_CONFIG["base_url"]).rstrip("/")
        self.api_key = api_key if api_key is not None else RPC_CONFIG["api_key"]
        self.access_token = access_token
        self.timeout = timeout or RPC_CONFIG["timeout"]
        self._client = client

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
        bearer = self.access_token or self.api_key
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    async def call(self, function: str, params: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/{function}"
        try:
            if self._client is not None:
                response = await self._client.post(url, json=params, headers=self._headers())
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                    response = await client.post(url, json=params, headers=self._headers())
        except httpx.TimeoutException as e:
            logger.warning("RPC timed out", function=function, error=str(e))
            raise TransportError(f"Request to '{function}' timed out") from e
        except httpx.HTTPError as e:
            logger.warning("RPC transport failed", function=function, error=str(e))
            raise TransportError(f"Request to '{function}' failed: {e.__class__.__name__}") from e

        if response.status_code >= 400:
            detail = self._error_detail(response)
            logger.warning(
                "RPC returned error status",
                function=function,
                status_code=response.status_code,
                detail=detail,
            )
            raise TransportError(f"HTTP error {response.status_code}: {detail}")

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Malformed response from '{function}'") from e

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)[:200]
        return str(body)[:200]
