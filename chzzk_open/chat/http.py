"""
HTTP API for obtaining chat access tokens.
"""

import logging

from chzzk_open.api import ApiClient, AuthMode
from chzzk_open.exceptions import ConfigurationError, ProtocolError

logger = logging.getLogger(__name__)

CHAT_ACCESS_TOKEN_PATH = "/open/v1/chats/access-token"


async def get_chat_access_token(api: ApiClient, channel_id: str) -> str:
    """
    Exchange a channel ID for a short-lived chat access token.

    Args:
        api: Authenticated API client
        channel_id: The Chzzk channel ID

    Returns:
        The chat access token

    Raises:
        ConfigurationError: If channel_id is empty
        AuthorizationError: If the API access token is unusable
        ApiError: If the HTTP call failed
        ProtocolError: If a successful response has no content.accessToken
    """
    if not channel_id:
        raise ConfigurationError("Channel ID is required")

    data = await api.request(
        "GET",
        CHAT_ACCESS_TOKEN_PATH,
        auth=AuthMode.USER,
        params={"channelId": channel_id},
        action="Failed to get chat access token",
    )

    content = data.get("content") if isinstance(data, dict) else None
    access_token = content.get("accessToken") if isinstance(content, dict) else None

    if not access_token:
        raise ProtocolError("No chat access token in response", raw=data)

    logger.info(f"Obtained chat access token for channel {channel_id}")
    return access_token
