"""
Credential store: client credentials and the access/refresh token pair.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

from chzzk_open.events import EventDispatcher, EventName
from chzzk_open.exceptions import ApiError, AuthorizationError, ConfigurationError
from chzzk_open.http import HttpClient
from chzzk_open.models import TokenPair

logger = logging.getLogger(__name__)

TOKEN_PATH = "/auth/v1/token"
REVOKE_PATH = "/auth/v1/token/revoke"

# Subtracted from expiresIn so a token is never used right at its deadline
EXPIRY_BUFFER_SEC = 10


def _token_content(data: Any) -> Dict[str, Any]:
    """Token endpoints answer either {content: {...}} or the bare object."""
    if isinstance(data, dict) and isinstance(data.get("content"), dict):
        return data["content"]
    return data if isinstance(data, dict) else {}


class CredentialStore:
    """
    Holds the client id/secret and the current token pair.

    The chat session only ever reads the current access token through
    ensure_valid_token(); issuing and refreshing tokens happens here.
    """

    def __init__(
        self,
        http: HttpClient,
        client_id: Optional[str],
        client_secret: Optional[str],
        *,
        access_token: str = "",
        refresh_token: str = "",
        auto_refresh: bool = True,
        refresh_threshold_ms: int = 5 * 60 * 1000,
        auth_url: str = "https://chzzk.naver.com/account-interlock",
        events: Optional[EventDispatcher] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._http = http
        self.client_id = client_id
        self.client_secret = client_secret
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.auto_refresh = auto_refresh
        self.refresh_threshold_ms = refresh_threshold_ms
        self._auth_url = auth_url
        self._events = events or EventDispatcher()
        self._clock = clock

        self.expires_at: Optional[float] = None
        self._refreshing: Optional[asyncio.Future] = None

    def _require_client_credentials(self) -> None:
        if not self.client_id or not self.client_secret:
            raise ConfigurationError("client_id and client_secret are required")

    def client_headers(self) -> Dict[str, str]:
        """Headers for Client-authenticated endpoints."""
        self._require_client_credentials()
        return {
            "Client-Id": self.client_id,
            "Client-Secret": self.client_secret,
        }

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        """URL the user opens in a browser to obtain an authorization code."""
        self._require_client_credentials()
        params = urlencode({
            "clientId": self.client_id,
            "redirectUri": redirect_uri,
            "state": state,
        })
        return f"{self._auth_url}?{params}"

    def set_tokens(self, tokens: TokenPair) -> None:
        """Store a freshly issued token pair and its expiry."""
        self.access_token = tokens.access_token
        if tokens.refresh_token:
            self.refresh_token = tokens.refresh_token

        if tokens.expires_in:
            self.expires_at = (
                self._clock() + tokens.expires_in - EXPIRY_BUFFER_SEC
            )
        else:
            self.expires_at = None

    async def _request_token(self, body: Dict[str, Any], action: str) -> TokenPair:
        data = await self._http.request(
            "POST", TOKEN_PATH, json_body=body, action=action
        )
        content = _token_content(data)
        if not content.get("accessToken"):
            raise AuthorizationError(f"{action}: no access token in response")

        tokens = TokenPair.model_validate(content)
        self.set_tokens(tokens)
        return tokens

    async def issue_token(self, code: str, state: str) -> TokenPair:
        """Exchange an authorization code for a token pair."""
        self._require_client_credentials()
        body = {
            "grantType": "authorization_code",
            "clientId": self.client_id,
            "clientSecret": self.client_secret,
            "code": code,
            "state": state,
        }
        tokens = await self._request_token(body, "Failed to issue access token")
        logger.info("Issued new access token")
        return tokens

    async def refresh(self) -> TokenPair:
        """
        Refresh the access token now.

        Concurrent callers share the same in-flight refresh.

        Raises:
            AuthorizationError: If there is no refresh token or refresh failed
        """
        if self._refreshing is not None:
            return await asyncio.shield(self._refreshing)

        self._refreshing = asyncio.ensure_future(self._do_refresh())
        try:
            return await asyncio.shield(self._refreshing)
        finally:
            self._refreshing = None

    async def _do_refresh(self) -> TokenPair:
        try:
            if not self.refresh_token:
                raise AuthorizationError("No refresh token configured")
            self._require_client_credentials()

            body = {
                "grantType": "refresh_token",
                "refreshToken": self.refresh_token,
                "clientId": self.client_id,
                "clientSecret": self.client_secret,
            }
            try:
                tokens = await self._request_token(
                    body, "Failed to refresh access token"
                )
            except ApiError as e:
                raise AuthorizationError(str(e), status=e.status) from e

        except (AuthorizationError, ConfigurationError) as e:
            logger.error(f"Token refresh failed: {e}")
            self._events.emit(
                EventName.TOKEN_EXPIRED,
                {"timestamp": int(self._clock() * 1000), "error": e},
            )
            raise

        logger.info("Access token refreshed")
        self._events.emit(
            EventName.TOKEN_REFRESH,
            {"timestamp": int(self._clock() * 1000)},
        )
        return tokens

    async def revoke(self, token: str, token_type_hint: str = "access_token") -> Any:
        """Revoke an access or refresh token and forget it locally."""
        self._require_client_credentials()
        body = {
            "clientId": self.client_id,
            "clientSecret": self.client_secret,
            "token": token,
            "tokenTypeHint": token_type_hint,
        }
        data = await self._http.request(
            "POST", REVOKE_PATH, json_body=body, action="Failed to revoke token"
        )

        if token_type_hint == "access_token" and token == self.access_token:
            self.access_token = ""
            self.expires_at = None
        elif token_type_hint == "refresh_token" and token == self.refresh_token:
            self.refresh_token = ""

        return data

    def needs_refresh(self) -> bool:
        """True when the token is within the refresh threshold of expiry."""
        if not (self.auto_refresh and self.refresh_token and self.expires_at):
            return False
        return self._clock() + self.refresh_threshold_ms / 1000 > self.expires_at

    async def ensure_valid_token(self) -> str:
        """
        Return a usable access token, refreshing proactively if needed.

        Raises:
            AuthorizationError: If no access token is set or refresh failed
        """
        if not self.access_token:
            raise AuthorizationError(
                "Access token is not set. Issue one with issue_token() first."
            )

        if self.needs_refresh():
            logger.info("Access token close to expiry, refreshing")
            await self.refresh()

        return self.access_token
