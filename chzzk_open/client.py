"""
Chzzk Open API client: REST calls plus the realtime chat session.
"""

import logging
from functools import partial
from typing import Any, Dict, List, Optional

from chzzk_open.api import ApiClient, AuthMode
from chzzk_open.auth import CredentialStore
from chzzk_open.chat.client import ChzzkChatClient
from chzzk_open.chat.http import get_chat_access_token
from chzzk_open.events import EventDispatcher
from chzzk_open.exceptions import ConfigurationError
from chzzk_open.http import HttpClient
from chzzk_open.models import Config, TokenPair

logger = logging.getLogger(__name__)


class ChzzkClient:
    """
    One client instance: a dispatcher, a credential store, a REST client
    and a chat session, all isolated from other instances.

    Usage:
        async with ChzzkClient(config) as client:
            client.on("chatMessage", lambda m: print(m.nickname, m.message))
            await client.connect_chat(channel_id)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        http: Optional[HttpClient] = None,
        **chat_options,
    ):
        self.config = config or Config()
        self.events = EventDispatcher()

        self.http = http or HttpClient(
            self.config.api_base_url,
            timeout=self.config.request_timeout_sec,
        )
        self.credentials = CredentialStore(
            self.http,
            self.config.client_id,
            self.config.client_secret,
            access_token=self.config.access_token,
            refresh_token=self.config.refresh_token,
            auto_refresh=self.config.auto_refresh_token,
            refresh_threshold_ms=self.config.token_refresh_threshold_ms,
            auth_url=self.config.auth_url,
            events=self.events,
        )
        self.api = ApiClient(self.http, self.credentials)

        options = {
            "chat_url": self.config.chat_url,
            "connect_timeout": self.config.connect_timeout_sec,
            "max_reconnect_attempts": self.config.max_reconnect_attempts,
            "reconnect_base_delay": self.config.reconnect_base_delay_sec,
            "heartbeat_interval": self.config.heartbeat_interval_sec,
        }
        options.update(chat_options)
        self.chat = ChzzkChatClient(
            partial(get_chat_access_token, self.api),
            self.events,
            **options,
        )

    async def __aenter__(self) -> "ChzzkClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Disconnect chat and release HTTP resources."""
        await self.chat.disconnect()
        await self.http.close()
        logger.debug("Client closed")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event_name, handler):
        return self.events.on(event_name, handler)

    def off(self, event_name, handler) -> None:
        self.events.off(event_name, handler)

    def once(self, event_name, handler):
        return self.events.once(event_name, handler)

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def get_authorization_url(self, redirect_uri: str, state: str) -> str:
        return self.credentials.authorization_url(redirect_uri, state)

    async def issue_token(self, code: str, state: str) -> TokenPair:
        return await self.credentials.issue_token(code, state)

    async def refresh_token(self) -> TokenPair:
        return await self.credentials.refresh()

    async def revoke_token(self, token: str, token_type_hint: str = "access_token") -> Any:
        return await self.credentials.revoke(token, token_type_hint)

    # ------------------------------------------------------------------
    # Chat session
    # ------------------------------------------------------------------

    async def connect_chat(self, channel_id: str) -> None:
        await self.chat.connect(channel_id)

    async def disconnect_chat(self) -> None:
        await self.chat.disconnect()

    # ------------------------------------------------------------------
    # REST resources
    # ------------------------------------------------------------------

    async def get_my_user_info(self) -> Any:
        return await self.api.request(
            "GET", "/open/v1/users/me", action="Failed to get user info"
        )

    async def get_channels(self, channel_ids: List[str]) -> Any:
        return await self.api.request(
            "GET",
            "/open/v1/channels",
            auth=AuthMode.CLIENT,
            params=[("channelIds", channel_id) for channel_id in channel_ids],
            action="Failed to get channels",
        )

    async def get_channel(self, channel_id: str) -> Any:
        """Single-channel convenience wrapper around get_channels()."""
        result = await self.get_channels([channel_id])
        content = result.get("content") if isinstance(result, dict) else None
        channels = content.get("channels") if isinstance(content, dict) else None
        if channels and result.get("code") == 200:
            return {**result, "content": channels[0]}
        return result

    async def search_category(self, query: str, size: int = 20) -> Any:
        return await self.api.request(
            "GET",
            "/open/v1/categories/search",
            auth=AuthMode.CLIENT,
            params={"query": query, "size": size},
            action="Failed to search categories",
        )

    async def get_live_list(self, size: int = 20, next_cursor: Optional[str] = None) -> Any:
        params: Dict[str, Any] = {"size": size}
        if next_cursor:
            params["next"] = next_cursor
        return await self.api.request(
            "GET",
            "/open/v1/lives",
            auth=AuthMode.CLIENT,
            params=params,
            action="Failed to get live list",
        )

    async def get_stream_key(self) -> Any:
        return await self.api.request(
            "GET", "/open/v1/streams/key", action="Failed to get stream key"
        )

    async def get_live_setting(self) -> Any:
        return await self.api.request(
            "GET", "/open/v1/lives/setting", action="Failed to get live setting"
        )

    async def update_live_setting(self, setting: Dict[str, Any]) -> Any:
        return await self.api.request(
            "PATCH",
            "/open/v1/lives/setting",
            json_body=setting,
            action="Failed to update live setting",
        )

    async def send_chat_message(self, message: str) -> Any:
        if not message:
            raise ConfigurationError("Message is required")
        return await self.api.request(
            "POST",
            "/open/v1/chats/send",
            json_body={"message": message},
            action="Failed to send chat message",
        )

    async def set_chat_notice(
        self,
        message: Optional[str] = None,
        message_id: Optional[str] = None,
    ) -> Any:
        if not message and not message_id:
            raise ConfigurationError("Either message or message_id is required")

        body = {}
        if message:
            body["message"] = message
        if message_id:
            body["messageId"] = message_id
        return await self.api.request(
            "POST",
            "/open/v1/chats/notice",
            json_body=body,
            action="Failed to set chat notice",
        )

    async def get_chat_settings(self) -> Any:
        return await self.api.request(
            "GET", "/open/v1/chats/settings", action="Failed to get chat settings"
        )

    async def update_chat_settings(self, settings: Dict[str, Any]) -> Any:
        return await self.api.request(
            "PUT",
            "/open/v1/chats/settings",
            json_body=settings,
            action="Failed to update chat settings",
        )

    async def get_drops_reward_claims(
        self,
        page_from: Optional[int] = None,
        page_size: Optional[int] = None,
        claim_id: Optional[str] = None,
        channel_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
        category_id: Optional[str] = None,
        fulfillment_state: Optional[str] = None,
    ) -> Any:
        filters = {
            "page.from": page_from,
            "page.size": page_size,
            "claimId": claim_id,
            "channelId": channel_id,
            "campaignId": campaign_id,
            "categoryId": category_id,
            "fulfillmentState": fulfillment_state,
        }
        return await self.api.request(
            "GET",
            "/open/v1/drops/reward-claims",
            auth=AuthMode.CLIENT,
            params={k: v for k, v in filters.items() if v is not None},
            action="Failed to get drops reward claims",
        )

    async def update_drops_reward_claims(
        self,
        claim_ids: List[str],
        fulfillment_state: str,
    ) -> Any:
        if not claim_ids:
            raise ConfigurationError("At least one claim ID is required")
        return await self.api.request(
            "PUT",
            "/open/v1/drops/reward-claims",
            auth=AuthMode.CLIENT,
            json_body={"claimIds": claim_ids, "fulfillmentState": fulfillment_state},
            action="Failed to update drops reward claims",
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def _search(self, path: str, query: str, action: str, **filters) -> Any:
        if not query:
            raise ConfigurationError("Search query is required")
        return await self.api.request(
            "GET",
            path,
            auth=AuthMode.CLIENT,
            params=_page_params(query=query, **filters),
            action=action,
        )

    async def search_lives(
        self,
        query: str,
        size: Optional[int] = None,
        next_cursor: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> Any:
        return await self._search(
            "/open/v1/search/lives",
            query,
            "Failed to search lives",
            size=size,
            next=next_cursor,
            categoryId=category_id,
        )

    async def search_channels(
        self,
        query: str,
        size: Optional[int] = None,
        next_cursor: Optional[str] = None,
    ) -> Any:
        return await self._search(
            "/open/v1/search/channels",
            query,
            "Failed to search channels",
            size=size,
            next=next_cursor,
        )

    async def search(
        self,
        query: str,
        size: Optional[int] = None,
        next_cursor: Optional[str] = None,
    ) -> Any:
        """Combined search over channels, lives and VODs."""
        return await self._search(
            "/open/v1/search", query, "Failed to search", size=size, next=next_cursor
        )

    # ------------------------------------------------------------------
    # VODs
    # ------------------------------------------------------------------

    async def get_vods(
        self,
        channel_id: Optional[str] = None,
        size: Optional[int] = None,
        next_cursor: Optional[str] = None,
    ) -> Any:
        return await self.api.request(
            "GET",
            "/open/v1/vods",
            auth=AuthMode.CLIENT,
            params=_page_params(channelId=channel_id, size=size, next=next_cursor),
            action="Failed to get VOD list",
        )

    async def get_vod(self, vod_id: str) -> Any:
        return await self.api.request(
            "GET",
            _vod_path(vod_id),
            auth=AuthMode.CLIENT,
            action="Failed to get VOD",
        )

    async def get_my_vods(
        self,
        size: Optional[int] = None,
        next_cursor: Optional[str] = None,
    ) -> Any:
        return await self.api.request(
            "GET",
            "/open/v1/vods/my",
            params=_page_params(size=size, next=next_cursor),
            action="Failed to get my VOD list",
        )

    async def create_vod_upload_url(self, metadata: Dict[str, Any]) -> Any:
        """
        Create an upload URL for a new VOD.

        metadata needs a title; description, categoryId, tags and
        visibility (PUBLIC, PRIVATE, UNLISTED) are optional.
        """
        if not metadata or not metadata.get("title"):
            raise ConfigurationError("VOD title is required")
        return await self.api.request(
            "POST",
            "/open/v1/vods/upload-urls",
            json_body=metadata,
            action="Failed to create VOD upload URL",
        )

    async def update_vod_metadata(self, vod_id: str, metadata: Dict[str, Any]) -> Any:
        return await self.api.request(
            "PATCH",
            _vod_path(vod_id),
            json_body=metadata,
            action="Failed to update VOD metadata",
        )

    async def delete_vod(self, vod_id: str) -> Any:
        return await self.api.request(
            "DELETE", _vod_path(vod_id), action="Failed to delete VOD"
        )

    # ------------------------------------------------------------------
    # Followers and subscribers
    # ------------------------------------------------------------------

    async def get_my_followers(
        self,
        size: Optional[int] = None,
        next_cursor: Optional[str] = None,
    ) -> Any:
        return await self.api.request(
            "GET",
            "/open/v1/users/me/followers",
            params=_page_params(size=size, next=next_cursor),
            action="Failed to get followers",
        )

    async def get_my_followings(
        self,
        size: Optional[int] = None,
        next_cursor: Optional[str] = None,
    ) -> Any:
        return await self.api.request(
            "GET",
            "/open/v1/users/me/followings",
            params=_page_params(size=size, next=next_cursor),
            action="Failed to get followings",
        )

    async def follow_channel(self, channel_id: str) -> Any:
        return await self.api.request(
            "POST", _follow_path(channel_id), action="Failed to follow channel"
        )

    async def unfollow_channel(self, channel_id: str) -> Any:
        return await self.api.request(
            "DELETE", _follow_path(channel_id), action="Failed to unfollow channel"
        )

    async def get_my_subscribers(
        self,
        size: Optional[int] = None,
        next_cursor: Optional[str] = None,
    ) -> Any:
        return await self.api.request(
            "GET",
            "/open/v1/users/me/subscribers",
            params=_page_params(size=size, next=next_cursor),
            action="Failed to get subscribers",
        )

    async def get_my_subscriber_stats(self) -> Any:
        return await self.api.request(
            "GET",
            "/open/v1/users/me/subscriber-stats",
            action="Failed to get subscriber stats",
        )

    async def get_my_subscriptions(self) -> Any:
        return await self.api.request(
            "GET",
            "/open/v1/users/me/subscriptions",
            action="Failed to get subscriptions",
        )


def _page_params(**params) -> Dict[str, Any]:
    """Query parameters with unset values left out."""
    return {k: v for k, v in params.items() if v is not None and v != ""}


def _vod_path(vod_id: str) -> str:
    if not vod_id:
        raise ConfigurationError("VOD ID is required")
    return f"/open/v1/vods/{vod_id}"


def _follow_path(channel_id: str) -> str:
    if not channel_id:
        raise ConfigurationError("Channel ID is required")
    return f"/open/v1/channels/{channel_id}/follow"
