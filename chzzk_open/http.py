"""
HTTP plumbing for the Chzzk Open API.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from chzzk_open.exceptions import ApiError

logger = logging.getLogger(__name__)


def _error_message(action: str, data: Any) -> str:
    if isinstance(data, dict) and data.get("message"):
        return f"{action}: {data['message']}"
    if data:
        return f"{action}: {json.dumps(data, ensure_ascii=False)}"
    return f"{action}: empty error response"


class HttpClient:
    """
    Thin aiohttp wrapper: verb, path, headers, body in; parsed JSON out.

    Non-2xx responses and network failures raise ApiError.
    """

    def __init__(self, base_url: str, timeout: float = 10.0):
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._session

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Any] = None,
        json_body: Optional[Any] = None,
        action: str = "API request failed",
    ) -> Any:
        """
        Perform one HTTP request.

        Args:
            method: HTTP verb
            path: Path below the base URL, e.g. /open/v1/users/me
            headers: Extra request headers
            params: Query parameters (dict or list of pairs)
            json_body: JSON request body
            action: Human readable prefix for error messages

        Returns:
            Parsed JSON body, or None for an empty body

        Raises:
            ApiError: On non-2xx status or network error
        """
        url = f"{self._base_url}{path}"
        session = self._get_session()

        logger.debug(f"{method} {path}")

        try:
            async with session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json_body,
            ) as response:
                text = await response.text()
                data = None
                if text:
                    try:
                        data = json.loads(text)
                    except json.JSONDecodeError:
                        data = {"message": text}

                if response.status >= 400:
                    code = data.get("code") if isinstance(data, dict) else None
                    raise ApiError(
                        _error_message(action, data),
                        status=response.status,
                        code=code,
                        data=data,
                    )

                return data

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ApiError(
                f"{action}: no response from server ({e})"
            ) from e

    async def close(self) -> None:
        """Close the underlying session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
