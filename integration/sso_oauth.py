"""Keycloak OAuth helpers used to obtain bearer tokens for the management APIs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from utils.api_errors import ApiUnauthorizedError, ApiUnknownError, classify_oauth_error
from utils.async_http import AsyncHTTP
from utils.invoker import ResilientInvoker
from utils.logging_setup import mask_secret
from utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

TOKEN_PATH = "/auth/realms/{realm}/protocol/openid-connect/token"


@dataclass
class KeycloakUser:
    """Tokens issued for one authenticated principal."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    token_type: str = "Bearer"

    def is_expired(self, leeway: int = 0) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) >= self.expires_at - timedelta(seconds=leeway)

    @classmethod
    def from_token_response(cls, payload: Dict[str, Any]) -> "KeycloakUser":
        access_token = payload.get("access_token")
        if not access_token:
            raise ApiUnknownError("OAuth response did not include an access token")

        expires_at: Optional[datetime] = None
        expires_in = payload.get("expires_in")
        if expires_in:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))

        return cls(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            expires_at=expires_at,
            token_type=payload.get("token_type") or "Bearer",
        )


class KeycloakOAuth:
    """Exchange credentials for tokens at a Keycloak realm's token endpoint."""

    def __init__(
        self,
        keycloak_uri: str,
        realm: str,
        client_id: str,
        *,
        redirect_uri: Optional[str] = None,
        policy: Optional[RetryPolicy] = None,
        timeout: Optional[float] = None,
        http: Optional[AsyncHTTP] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if not keycloak_uri:
            raise EnvironmentError("SSO Keycloak URI is not configured.")
        self.realm = realm
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.token_path = TOKEN_PATH.format(realm=realm)
        self._http = http or AsyncHTTP(base_url=keycloak_uri.rstrip("/"), timeout=timeout)
        self._invoker = ResilientInvoker(
            policy, classifier=classify_oauth_error, sleep=sleep
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _token_request(self, form: Dict[str, str], description: str) -> KeycloakUser:
        async def call():
            response = await self._http.post(
                self.token_path,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            response.raise_for_status()
            return response.json()

        payload = await self._invoker.invoke(call, description=description)
        return KeycloakUser.from_token_response(payload)

    async def login(self, username: str, password: str) -> KeycloakUser:
        """Authenticate a user with the resource-owner password grant."""

        logger.info("Authenticate user %s against realm %s", username, self.realm)
        form = {
            "grant_type": "password",
            "client_id": self.client_id,
            "username": username,
            "password": password,
            "scope": "openid",
        }
        return await self._token_request(form, f"SSO login of {username}")

    async def login_client_credentials(
        self, client_id: str, client_secret: str
    ) -> KeycloakUser:
        """Authenticate a service account with the client-credentials grant."""

        logger.info(
            "Authenticate service account %s (secret %s)",
            client_id,
            mask_secret(client_secret),
        )
        form = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        }
        return await self._token_request(form, f"SSO login of {client_id}")

    async def refresh(self, user: KeycloakUser) -> KeycloakUser:
        if not user.refresh_token:
            raise ApiUnauthorizedError("No refresh token available for the session")
        form = {
            "grant_type": "refresh_token",
            "client_id": self.client_id,
            "refresh_token": user.refresh_token,
        }
        return await self._token_request(form, "SSO token refresh")


class KeycloakLoginSession:
    """Keep one user logged in and hand out a valid access token.

    Expired tokens are refreshed; when the refresh token itself is rejected the
    session logs in again with the stored credentials.
    """

    def __init__(
        self,
        oauth: KeycloakOAuth,
        username: str,
        password: str,
        *,
        leeway: int = 30,
    ) -> None:
        self._oauth = oauth
        self._username = username
        self._password = password
        self._leeway = max(0, leeway)
        self._user: Optional[KeycloakUser] = None
        self._lock = asyncio.Lock()

    @property
    def user(self) -> Optional[KeycloakUser]:
        return self._user

    async def login(self) -> KeycloakUser:
        async with self._lock:
            self._user = await self._oauth.login(self._username, self._password)
            return self._user

    async def get_token(self) -> str:
        async with self._lock:
            if self._user is None:
                self._user = await self._oauth.login(self._username, self._password)
            elif self._user.is_expired(self._leeway):
                self._user = await self._refresh_or_login(self._user)
            return self._user.access_token

    async def renew(self) -> str:
        """Force a token refresh after the API rejected the current one."""

        async with self._lock:
            if self._user is None:
                self._user = await self._oauth.login(self._username, self._password)
            else:
                self._user = await self._refresh_or_login(self._user)
            return self._user.access_token

    async def _refresh_or_login(self, user: KeycloakUser) -> KeycloakUser:
        try:
            return await self._oauth.refresh(user)
        except ApiUnauthorizedError:
            logger.info("Refresh token rejected; logging in %s again", self._username)
            return await self._oauth.login(self._username, self._password)
