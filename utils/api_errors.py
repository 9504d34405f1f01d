"""Error taxonomy and classifiers for remote API calls.

Every client in the harness reduces whatever its transport raises to one of
three kinds:

``TRANSIENT``
    Network failures, timeouts, throttling and 5xx answers. Retried by
    :class:`utils.invoker.ResilientInvoker` while the policy allows it.
``UNAUTHORIZED``
    The bearer token was rejected. Never retried by the invoker; the caller
    refreshes credentials and invokes again.
``UNKNOWN``
    Everything else. Fatal to the current test step.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Iterable, Optional

import httpx

_BODY_PREVIEW_CHARS = 500

_OAUTH_UNAUTHORIZED_CODES = frozenset(
    {"invalid_grant", "invalid_client", "unauthorized_client", "invalid_token"}
)


class ErrorKind(str, Enum):
    TRANSIENT = "transient"
    UNAUTHORIZED = "unauthorized"
    UNKNOWN = "unknown"


class ApiError(Exception):
    """Base class for classified API failures."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        if status_code is None and isinstance(cause, httpx.HTTPStatusError):
            status_code = cause.response.status_code
        if body is None and isinstance(cause, httpx.HTTPStatusError):
            body = _response_text(cause.response)
        self.status_code = status_code
        self.body = body

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""

    def full_message(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status: {self.status_code}")
        if self.body:
            parts.append(f"body: {self.body[:_BODY_PREVIEW_CHARS]}")
        return "; ".join(parts)

    @staticmethod
    def from_kind(
        kind: ErrorKind, message: str, cause: Optional[BaseException] = None
    ) -> "ApiError":
        error_cls = _KIND_TO_ERROR[kind]
        return error_cls(message, cause)


class ApiTransientError(ApiError):
    kind = ErrorKind.TRANSIENT


class ApiUnauthorizedError(ApiError):
    kind = ErrorKind.UNAUTHORIZED


class ApiUnknownError(ApiError):
    kind = ErrorKind.UNKNOWN


_KIND_TO_ERROR = {
    ErrorKind.TRANSIENT: ApiTransientError,
    ErrorKind.UNAUTHORIZED: ApiUnauthorizedError,
    ErrorKind.UNKNOWN: ApiUnknownError,
}


class WaitTimeoutError(TimeoutError):
    """Raised when a polled condition did not hold before the deadline."""

    def __init__(self, message: str, *, last_status: Any = None, timeout: float = 0.0):
        super().__init__(message)
        self.last_status = last_status
        self.timeout = timeout


Classifier = Callable[[BaseException], ErrorKind]


def _response_text(response: httpx.Response) -> str:
    try:
        return response.text
    except (httpx.ResponseNotRead, UnicodeDecodeError):
        return ""


def is_not_found(exc: BaseException) -> bool:
    return isinstance(exc, ApiError) and exc.status_code == 404


def classify_status(status_code: int) -> ErrorKind:
    if status_code in (401, 403):
        return ErrorKind.UNAUTHORIZED
    if status_code == 429 or 500 <= status_code < 600:
        return ErrorKind.TRANSIENT
    return ErrorKind.UNKNOWN


def classify_http_error(exc: BaseException) -> ErrorKind:
    """Default classifier for clients talking HTTP through :mod:`httpx`."""

    if isinstance(exc, ApiError):
        return exc.kind
    if isinstance(exc, httpx.HTTPStatusError):
        return classify_status(exc.response.status_code)
    # TimeoutException and NetworkError are both TransportError subclasses.
    if isinstance(exc, httpx.TransportError):
        return ErrorKind.TRANSIENT
    return ErrorKind.UNKNOWN


def classify_oauth_error(exc: BaseException) -> ErrorKind:
    """Classifier for the OAuth token endpoint.

    Keycloak answers rejected credentials with ``400`` plus an OAuth error code
    instead of ``401``, so those are mapped to ``UNAUTHORIZED`` here.
    """

    if isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 400:
        try:
            payload = exc.response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get("error") in _OAUTH_UNAUTHORIZED_CODES:
            return ErrorKind.UNAUTHORIZED
    return classify_http_error(exc)


def raise_for_status(
    response: httpx.Response, expected: int | Iterable[int]
) -> httpx.Response:
    """Raise :class:`httpx.HTTPStatusError` unless the status is ``expected``."""

    allowed = {expected} if isinstance(expected, int) else set(expected)
    if response.status_code in allowed:
        return response
    request = response.request
    raise httpx.HTTPStatusError(
        f"Unexpected status {response.status_code} for {request.method} {request.url}"
        f" (expected {sorted(allowed)})",
        request=request,
        response=response,
    )
