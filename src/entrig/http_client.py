"""
HTTP Client for the Entrig SDK

Handles JSON-over-HTTPS communication with the Entrig backend: bearer
authentication, connection pooling, transport-level retries and mapping of
failures onto the SDK's error taxonomy.

Requests are sent once unless the caller opts in with ``retry=True``.
Registration and delivery status writes are not idempotent and must never be
replayed by the transport.
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from entrig.exceptions import BackendRejectedError, NetworkError, NotInitializedError, TimeoutError

logger = logging.getLogger(__name__)


class HTTPClient:
    """
    HTTP client for Entrig backend requests.

    Features:
    - Bearer authentication with the SDK API key
    - Opt-in retry with exponential backoff on 429/5xx
    - Connection pooling
    - Non-2xx and malformed responses raised as BackendRejectedError
    - Transport failures raised as NetworkError
    """

    RETRY_STATUSES = (429, 500, 502, 503, 504)

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: int = 30,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        pool_connections: int = 4,
        pool_maxsize: int = 4,
        session: requests.Session | None = None,
    ) -> None:
        """
        Initialize HTTP client.

        Args:
            base_url: Base URL for the backend
            api_key: API key sent as a bearer token
            timeout: Request timeout in seconds
            max_retries: Maximum number of retries for ``retry=True`` requests
            backoff_factor: Backoff factor for exponential backoff
            pool_connections: Number of connection pools
            pool_maxsize: Maximum size of connection pool
            session: Optional pre-built session used for every request (tests inject one)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor

        if session is not None:
            self.session = session
            self.retry_session = session
        else:
            self.session = requests.Session()
            self.retry_session = requests.Session()
            self._setup_connection_pooling(pool_connections, pool_maxsize)

    def _setup_connection_pooling(self, pool_connections: int, pool_maxsize: int) -> None:
        """Setup HTTP connection pooling; only ``retry_session`` retries."""
        single = HTTPAdapter(
            pool_connections=pool_connections,
            pool_maxsize=pool_maxsize,
            max_retries=0,
        )
        retrying = HTTPAdapter(
            pool_connections=pool_connections,
            pool_maxsize=pool_maxsize,
            max_retries=Retry(
                total=self.max_retries,
                backoff_factor=self.backoff_factor,
                status_forcelist=list(self.RETRY_STATUSES),
                allowed_methods=["POST"],
                raise_on_status=False,
            ),
        )
        for prefix in ("http://", "https://"):
            self.session.mount(prefix, single)
            self.retry_session.mount(prefix, retrying)

    def _get_headers(self) -> dict[str, str]:
        """Request headers with bearer authentication."""
        if not self.api_key:
            raise NotInitializedError("API key not set. Call initialize() first.")
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "User-Agent": "Entrig-Python-SDK/1.0",
        }

    def _handle_response(self, response: requests.Response) -> dict[str, Any]:
        """
        Decode a response, raising on anything but a 2xx.

        Returns:
            Decoded JSON object; ``{"message": text}`` for non-JSON bodies

        Raises:
            BackendRejectedError: On a non-2xx status
        """
        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}

        if not isinstance(data, dict):
            data = {"data": data}

        if 200 <= response.status_code < 300:
            return data

        error_message = data.get("message") or data.get("error") or "Request rejected"
        raise BackendRejectedError(
            str(error_message),
            status_code=response.status_code,
            body=data,
        )

    def post(
        self,
        endpoint: str,
        data: dict[str, Any] | None = None,
        retry: bool = False,
    ) -> dict[str, Any]:
        """
        Make a POST request.

        Args:
            endpoint: API endpoint, e.g. ``/register``
            data: Request body
            retry: Retry on 429/5xx and connection failures; only for idempotent endpoints

        Returns:
            Response data
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        headers = self._get_headers()
        session = self.retry_session if retry else self.session

        try:
            response = session.post(url, json=data or {}, headers=headers, timeout=self.timeout)
            logger.debug(f"POST {url} - Status: {response.status_code}")
            return self._handle_response(response)
        except requests.Timeout as e:
            logger.error(f"Request timeout: {e}")
            raise TimeoutError(f"Request timeout after {self.timeout}s", cause=e) from e
        except requests.ConnectionError as e:
            logger.error(f"Connection error: {e}")
            raise NetworkError(f"Connection error: {str(e)}", cause=e) from e
        except requests.RequestException as e:
            logger.error(f"Request error: {e}")
            raise NetworkError(f"Request error: {str(e)}", cause=e) from e

    def close(self) -> None:
        """Close the sessions."""
        self.session.close()
        if self.retry_session is not self.session:
            self.retry_session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
