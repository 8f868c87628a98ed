"""Data models and schemas for the Chzzk Open API client."""

from typing import Optional

from pydantic import BaseModel, Field


class TokenPair(BaseModel):
    """Token response from /auth/v1/token."""

    access_token: str = Field(alias="accessToken")
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
    token_type: Optional[str] = Field(default=None, alias="tokenType")
    expires_in: Optional[int] = Field(default=None, alias="expiresIn")
    scope: Optional[str] = None

    model_config = {"populate_by_name": True}


class Config(BaseModel):
    """Configuration model."""

    # Chzzk API credentials
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    access_token: str = ""
    refresh_token: str = ""

    # Token refresh settings
    auto_refresh_token: bool = True
    token_refresh_threshold_ms: int = 5 * 60 * 1000

    # Endpoints
    api_base_url: str = "https://openapi.chzzk.naver.com"
    auth_url: str = "https://chzzk.naver.com/account-interlock"
    chat_url: str = "wss://chat.chzzk.naver.com/chat"

    # Chat settings
    max_reconnect_attempts: int = 5
    reconnect_base_delay_sec: float = 1.0
    heartbeat_interval_sec: float = 30.0
    connect_timeout_sec: float = 10.0

    # HTTP settings
    request_timeout_sec: float = 10.0
