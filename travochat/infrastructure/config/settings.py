"""
Unified Configuration Settings - Single Source of Truth
=======================================================
All widget configuration using Pydantic Settings.

Endpoint paths, HTTP methods and payload field names differ between chat
service deployments, so every one of them is configurable here rather than
hard-coded in the gateways.
"""

from pydantic_settings import BaseSettings
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from enum import Enum


class LogLevel(str, Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class HttpMethod(str, Enum):
    """HTTP methods supported by the gateways"""
    GET = "GET"
    POST = "POST"


class ResponseLayout(str, Enum):
    """Where the session/user fields of a response body live"""
    TOP_LEVEL = "top_level"   # {"statusCode": 200, "userId": "42", "session": 7}
    NESTED = "nested"         # {"data": {"userId": "42", "session": 7}}


class ChannelProtocol(str, Enum):
    """Wire protocol spoken on the realtime connection"""
    STOMP = "stomp"   # STOMP 1.2 frames over websocket (SockJS raw endpoint)
    RAW = "raw"       # Plain JSON text frames


class ChannelScope(str, Enum):
    """How inbound traffic is scoped to a session"""
    BROADCAST = "broadcast"   # One topic shared by every session
    SESSION = "session"       # Topic suffixed with the session id


# === HTTP GATEWAY CONFIGURATION ===

class EndpointSettings(BaseModel):
    """
    One HTTP endpoint of the chat service.

    Request field names map our parameter names to the names the deployment
    expects; response field names say where to read each value from.
    """
    method: HttpMethod = Field(default=HttpMethod.POST)
    path: str = Field(..., description="Path relative to the API base URL")
    layout: ResponseLayout = Field(default=ResponseLayout.NESTED)
    data_field: str = Field(default="data", description="Envelope key for NESTED layout")
    request_fields: dict[str, str] = Field(default_factory=dict)
    response_fields: dict[str, str] = Field(default_factory=dict)

    @field_validator('path')
    @classmethod
    def validate_path(cls, v):
        if not v.startswith('/'):
            raise ValueError(f"Endpoint path must start with '/': {v!r}")
        return v

    def request_field(self, name: str) -> str:
        return self.request_fields.get(name, name)

    def response_field(self, name: str) -> str:
        return self.response_fields.get(name, name)


def _register_endpoint() -> EndpointSettings:
    return EndpointSettings(
        method=HttpMethod.POST,
        path="/register",
        layout=ResponseLayout.NESTED,
        request_fields={"name": "name", "email": "email"},
        response_fields={
            "status_code": "statusCode",
            "message": "message",
            "user_id": "id",
            "session_id": "session",
        },
    )


def _check_endpoint() -> EndpointSettings:
    return EndpointSettings(
        method=HttpMethod.POST,
        path="/check",
        layout=ResponseLayout.NESTED,
        request_fields={"email": "email"},
        response_fields={"user_id": "userId", "session_id": "session"},
    )


def _start_endpoint() -> EndpointSettings:
    return EndpointSettings(
        method=HttpMethod.POST,
        path="/start",
        layout=ResponseLayout.TOP_LEVEL,
        request_fields={"user_id": "userId"},
        response_fields={
            "status_code": "statusCode",
            "user_id": "userId",
            "session_id": "session",
        },
    )


class ApiSettings(BaseSettings):
    """Registration / identity / session HTTP service"""
    base_url: str = Field(default="http://localhost:8080", description="Chat service base URL")
    timeout_seconds: float = Field(default=10.0, description="Total timeout per gateway call")
    connect_timeout_seconds: float = Field(default=5.0, description="TCP connect timeout per gateway call")
    user_agent: str = Field(default="travochat/1.0")
    success_status_code: int = Field(default=200, description="Body statusCode meaning success")

    register: EndpointSettings = Field(default_factory=_register_endpoint)
    check: EndpointSettings = Field(default_factory=_check_endpoint)
    start: EndpointSettings = Field(default_factory=_start_endpoint)

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip('/')

    @field_validator('timeout_seconds', 'connect_timeout_seconds')
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("Timeouts must be > 0")
        return v

    class Config:
        env_prefix = "CHAT_API_"


# === REALTIME CHANNEL CONFIGURATION ===

class RealtimeSettings(BaseSettings):
    """Realtime message bus configuration"""
    url: str = Field(default="ws://localhost:8080/ws/websocket", description="Websocket URL of the message bus")
    protocol: ChannelProtocol = Field(default=ChannelProtocol.STOMP)
    topic: str = Field(default="/topic/messages", description="Broadcast topic inbound messages arrive on")
    destination: str = Field(default="/app/chat", description="Destination outbound messages are published to")
    scope: ChannelScope = Field(default=ChannelScope.BROADCAST)
    filter_by_session: bool = Field(default=False, description="Drop inbound messages tagged with another session")

    connect_timeout_seconds: float = Field(default=10.0)
    ping_interval: Optional[float] = Field(default=20.0, description="Websocket ping interval, None disables")
    ping_timeout: Optional[float] = Field(default=30.0)
    close_timeout: float = Field(default=5.0)

    stomp_host: str = Field(default="/", description="STOMP virtual host header")
    heartbeat_ms: int = Field(default=0, description="STOMP heart-beat interval offered to the broker")

    @field_validator('connect_timeout_seconds', 'close_timeout')
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("Timeouts must be > 0")
        return v

    @model_validator(mode='after')
    def validate_url(self):
        if not (self.url.startswith("ws://") or self.url.startswith("wss://")):
            raise ValueError(f"Realtime URL must be a ws:// or wss:// URL: {self.url!r}")
        return self

    class Config:
        env_prefix = "CHAT_REALTIME_"


# === PREFERENCE STORAGE CONFIGURATION ===

class StorageSettings(BaseSettings):
    """Client-side preference storage"""
    path: Optional[str] = Field(default=".travochat/preferences.json", description="JSON preference file, None keeps preferences in memory")

    class Config:
        env_prefix = "CHAT_STORAGE_"


# === LOGGING CONFIGURATION ===

class LoggingSettings(BaseSettings):
    """Logging configuration"""
    level: LogLevel = Field(default=LogLevel.INFO)
    file_enabled: bool = Field(default=False)
    console_enabled: bool = Field(default=True)
    structured_logging: bool = Field(default=True)
    log_dir: str = Field(default="logs")
    max_file_size_mb: int = Field(default=10)
    backup_count: int = Field(default=3)

    class Config:
        env_prefix = "LOG_"


# === MAIN SETTINGS ===

class ChatSettings(BaseSettings):
    """Main widget settings - Single Source of Truth"""

    app_name: str = Field(default="travochat")
    version: str = Field(default="1.0.0")

    api: ApiSettings = Field(default_factory=ApiSettings)
    realtime: RealtimeSettings = Field(default_factory=RealtimeSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    class Config:
        env_file = ".env"
        env_nested_delimiter = "__"  # Allows API__BASE_URL=https://chat.example.com
        case_sensitive = False
        extra = "ignore"
