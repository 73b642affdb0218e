"""
HTTP Client - Timeout-bounded HTTP requests for nodes.

All HTTP calls use a timeout. Failures are classified so callers can tell
an error response apart from a request that never got an answer and from
a request that could not be sent at all.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import requests
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import RequestException, Timeout

from .basenode import NodeExecutionError


logger = logging.getLogger(__name__)

# Default timeout in seconds
DEFAULT_TIMEOUT = 30.0


class HttpStatusError(NodeExecutionError):
    """A response arrived with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        reason: str,
        response_body: Optional[str] = None,
        url: Optional[str] = None,
        method: Optional[str] = None,
    ):
        self.status_code = status_code
        self.reason = reason
        self.response_body = response_body
        self.url = url
        self.method = method
        super().__init__(f"HTTP {status_code}: {reason}")


class HttpNoResponseError(NodeExecutionError):
    """The request was sent but no response came back (timeout, connection failure)."""

    def __init__(self, url: str, timeout: Optional[float] = None, detail: Optional[str] = None):
        self.url = url
        self.timeout = timeout
        self.detail = detail
        super().__init__("No response received from server")


class HttpSetupError(NodeExecutionError):
    """The request could not be constructed or sent."""

    def __init__(self, detail: str, url: Optional[str] = None):
        self.detail = detail
        self.url = url
        super().__init__(f"Request failed: {detail}")


class HttpResponse:
    """
    Wrapper for HTTP response with convenient accessors.
    """

    def __init__(self, response: requests.Response):
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def reason(self) -> str:
        return self._response.reason or ""

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._response.headers)

    @property
    def text(self) -> str:
        return self._response.text

    @property
    def data(self) -> Any:
        """Body decoded as JSON, falling back to text."""
        try:
            return self._response.json()
        except ValueError:
            return self._response.text

    @property
    def ok(self) -> bool:
        """True if status code is 2xx."""
        return 200 <= self.status_code < 300

    def raise_for_status(self) -> None:
        """Raise HttpStatusError if status code is not 2xx."""
        if not self.ok:
            request = self._response.request
            raise HttpStatusError(
                status_code=self.status_code,
                reason=self.reason,
                response_body=self.text[:1000] if self.text else None,
                url=str(self._response.url),
                method=request.method if request is not None else None,
            )


class HttpClient:
    """
    HTTP client with timeout enforcement.

    Usage:
        client = HttpClient(timeout=10)
        response = client.request("GET", "https://api.example.com/users")
        response.raise_for_status()
        data = response.data
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        default_headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            timeout: Default timeout in seconds
            default_headers: Headers to include in all requests
        """
        self.timeout = timeout
        self.headers: Dict[str, str] = default_headers or {}

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        """
        Make HTTP request with timeout enforcement.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, etc.)
            url: Full request URL
            headers: Additional headers (merged with defaults)
            body: dict/list bodies are sent as JSON, anything else as raw data
            timeout: Override default timeout

        Returns:
            HttpResponse wrapper

        Raises:
            HttpNoResponseError: If the request timed out or the connection failed
            HttpSetupError: If the request could not be built or sent
        """
        if headers is not None and not isinstance(headers, Mapping):
            raise HttpSetupError(f"headers must be a mapping, got {type(headers).__name__}", url=url)
        request_headers = {**self.headers, **(headers or {})}
        request_timeout = timeout or self.timeout

        json_body = body if isinstance(body, (dict, list)) else None
        raw_body = body if json_body is None else None

        logger.debug(f"{method.upper()} {url}")

        try:
            response = requests.request(
                method=method.upper(),
                url=url,
                headers=request_headers,
                json=json_body,
                data=raw_body,
                timeout=request_timeout,
            )
            return HttpResponse(response)

        except (Timeout, RequestsConnectionError) as e:
            raise HttpNoResponseError(url=url, timeout=request_timeout, detail=str(e)) from e

        except RequestException as e:
            raise HttpSetupError(str(e), url=url) from e

        except (TypeError, ValueError) as e:
            # Unserializable body, malformed header values
            raise HttpSetupError(str(e), url=url) from e
