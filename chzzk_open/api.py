"""
Authenticated REST access with proactive and reactive token refresh.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

from chzzk_open.auth import CredentialStore
from chzzk_open.exceptions import ApiError, AuthorizationError
from chzzk_open.http import HttpClient

logger = logging.getLogger(__name__)

OPEN_API_PREFIX = "/open/v1/"


class AuthMode(str, Enum):
    """How a request authenticates."""

    USER = "user"  # Authorization: Bearer <access token>
    CLIENT = "client"  # Client-Id / Client-Secret headers
    NONE = "none"


class ApiClient:
    """
    Sends REST calls through the credential store.

    Before a user-authenticated /open/v1/* call the access token is
    refreshed if it is close to expiry. A 401 is retried exactly once after
    an out-of-band refresh; a second 401 is final.
    """

    def __init__(self, http: HttpClient, credentials: CredentialStore):
        self._http = http
        self._credentials = credentials

    @property
    def credentials(self) -> CredentialStore:
        return self._credentials

    def _headers(
        self,
        auth: AuthMode,
        token: Optional[str],
        extra: Optional[Dict[str, str]],
    ) -> Dict[str, str]:
        headers = dict(extra or {})
        if auth is AuthMode.USER:
            headers["Authorization"] = f"Bearer {token}"
        elif auth is AuthMode.CLIENT:
            headers.update(self._credentials.client_headers())
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        auth: AuthMode = AuthMode.USER,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Any] = None,
        json_body: Optional[Any] = None,
        action: str = "API request failed",
    ) -> Any:
        """
        Perform a REST call.

        Raises:
            AuthorizationError: If the token is missing, cannot be refreshed,
                or the call is still unauthorized after one refresh
            ApiError: For any other HTTP or network failure
        """
        token = None
        if auth is AuthMode.USER:
            if path.startswith(OPEN_API_PREFIX):
                token = await self._credentials.ensure_valid_token()
            else:
                token = self._credentials.access_token

        try:
            return await self._http.request(
                method,
                path,
                headers=self._headers(auth, token, headers),
                params=params,
                json_body=json_body,
                action=action,
            )
        except ApiError as e:
            if e.status != 401:
                raise
            first_failure = e

        if not (self._credentials.auto_refresh and self._credentials.refresh_token):
            raise AuthorizationError(str(first_failure), status=401) from first_failure

        logger.info(f"Unauthorized on {method} {path}, refreshing token and retrying once")
        await self._credentials.refresh()

        if auth is AuthMode.USER:
            token = self._credentials.access_token

        try:
            return await self._http.request(
                method,
                path,
                headers=self._headers(auth, token, headers),
                params=params,
                json_body=json_body,
                action=action,
            )
        except ApiError as e:
            if e.status == 401:
                raise AuthorizationError(
                    f"{action}: still unauthorized after token refresh",
                    status=401,
                ) from e
            raise
