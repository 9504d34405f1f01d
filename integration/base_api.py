"""Common plumbing for the harness' REST API clients."""

from __future__ import annotations

import asyncio
import logging
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Protocol,
    Type,
    TypeVar,
)

import httpx
from pydantic import BaseModel, ValidationError

from utils.api_errors import (
    ApiUnauthorizedError,
    ApiUnknownError,
    Classifier,
    classify_http_error,
    raise_for_status,
)
from utils.async_http import AsyncHTTP
from utils.invoker import AttemptHook, Operation, ResilientInvoker
from utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class TokenSource(Protocol):
    """Anything able to hand out, and renew, a bearer token."""

    async def get_token(self) -> str: ...

    async def renew(self) -> str: ...


class BaseApi:
    """Wrapper around :class:`AsyncHTTP` that routes every call through a
    :class:`ResilientInvoker`.

    ``classifier`` is the per-service strategy that maps transport failures to
    an :class:`utils.api_errors.ErrorKind`. When a ``token_source`` is given,
    a rejected token is renewed once and the call invoked again.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        token_source: Optional[TokenSource] = None,
        policy: Optional[RetryPolicy] = None,
        classifier: Classifier = classify_http_error,
        timeout: Optional[float] = None,
        http: Optional[AsyncHTTP] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_attempt: Optional[AttemptHook] = None,
    ) -> None:
        if not base_url and http is None:
            raise EnvironmentError(f"{type(self).__name__} base URL is not configured.")
        self._http = http or AsyncHTTP(base_url=base_url.rstrip("/"), timeout=timeout)
        self._token = token
        self._token_source = token_source
        self._invoker = ResilientInvoker(
            policy, classifier=classifier, sleep=sleep, on_attempt=on_attempt
        )

    @property
    def invoker(self) -> ResilientInvoker:
        return self._invoker

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Invocation helpers
    # ------------------------------------------------------------------
    async def retry(
        self,
        operation: Operation,
        *,
        description: str = "API call",
        prepare: Optional[Callable[[], Awaitable[Any]]] = None,
    ) -> Any:
        """Run ``operation`` through the invoker, renewing the token on 401/403.

        ``prepare`` is awaited before each invocation, outside the invoker, so
        failures in it are not retried per attempt.
        """

        if prepare is not None:
            await prepare()
        try:
            return await self._invoker.invoke(operation, description=description)
        except ApiUnauthorizedError as exc:
            if self._token_source is None:
                raise
            logger.info(
                "Access token rejected; renewing credentials",
                extra={"call": description, "status": exc.status_code},
            )
            await self._token_source.renew()
            if prepare is not None:
                await prepare()
            return await self._invoker.invoke(operation, description=description)

    async def _auth_headers(self) -> Dict[str, str]:
        if self._token_source is not None:
            token = await self._token_source.get_token()
        else:
            token = self._token
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        expected: int | Iterable[int] = 200,
        json: Optional[Any] = None,
        params: Optional[Mapping[str, Any]] = None,
        description: Optional[str] = None,
    ) -> httpx.Response:
        headers: Dict[str, str] = {}

        async def resolve_headers() -> None:
            headers.clear()
            headers.update(await self._auth_headers())

        async def call() -> httpx.Response:
            response = await self._http.request(
                method, path, json=json, params=params, headers=dict(headers)
            )
            return raise_for_status(response, expected)

        return await self.retry(
            call, description=description or f"{method} {path}", prepare=resolve_headers
        )

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ApiUnknownError(
                f"Response of {response.request.method} {response.request.url}"
                " is not valid JSON",
                exc,
                status_code=response.status_code,
                body=response.text,
            ) from exc

    @classmethod
    def _model(cls, response: httpx.Response, model: Type[ModelT], payload: Any = None) -> ModelT:
        """Validate ``payload`` (the response JSON by default) as ``model``."""

        if payload is None:
            payload = cls._json(response)
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise ApiUnknownError(
                f"Response of {response.request.method} {response.request.url}"
                f" does not match {model.__name__}",
                exc,
                status_code=response.status_code,
                body=response.text,
            ) from exc

    @staticmethod
    def _compact(params: Mapping[str, Any]) -> Dict[str, Any]:
        return {key: value for key, value in params.items() if value is not None}
