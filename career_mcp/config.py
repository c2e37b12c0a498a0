"""Configuration management for MCP server."""

import os
from typing import Any, Dict, Literal, Optional
import json
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class NotionConfig(BaseModel):
    """Notion API configuration."""
    api_token: Optional[str] = None
    timeout_ms: int = 30000
    initiatives_db_id: Optional[str] = None
    achievements_db_id: Optional[str] = None
    tasks_db_id: Optional[str] = None


class TransportConfig(BaseModel):
    """Transport configuration."""
    type: Literal["stdio", "websocket"] = "stdio"
    host: str = "localhost"
    port: int = 3000
    ping_interval: float = 20.0
    ping_timeout: float = 20.0
    max_message_size: int = 10 * 1024 * 1024


class ServerConfig(BaseSettings):
    """Main server configuration."""

    # Server settings
    server_name: str = "mcp-career-intelligence-server"
    server_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "info"
    instructions: Optional[str] = None

    # Protocol settings
    require_initialization: bool = False
    page_size: int = Field(default=50, ge=1)

    # Tool settings
    tool_timeout: float = 30.0

    # Metrics
    metrics_port: Optional[int] = None

    # Transport
    transport: TransportConfig = Field(default_factory=TransportConfig)

    # API configurations
    notion: NotionConfig = Field(default_factory=NotionConfig)

    class Config:
        env_file = ".env"
        env_nested_delimiter = "__"
        case_sensitive = False
        extra = "ignore"

    @classmethod
    def from_file(cls, config_file: str) -> "ServerConfig":
        """Load configuration from JSON file."""
        with open(config_file, "r") as f:
            config_data = json.load(f)
        return cls(**config_data)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() in ("1", "true", "yes")


def load_config(
    config_file: Optional[str] = None,
    use_env: bool = True
) -> ServerConfig:
    """Load configuration from file or environment."""

    if config_file and os.path.exists(config_file):
        config = ServerConfig.from_file(config_file)
    elif use_env:
        config = ServerConfig.from_env()
    else:
        config = ServerConfig()

    # Override with environment variables if specified
    if use_env:
        # Notion configuration from environment
        api_token = os.getenv("NOTION_API_TOKEN") or os.getenv("NOTION_API_KEY")
        if api_token:
            config.notion.api_token = api_token
        if os.getenv("NOTION_INITIATIVES_DB_ID"):
            config.notion.initiatives_db_id = os.getenv("NOTION_INITIATIVES_DB_ID")
        if os.getenv("NOTION_ACHIEVEMENTS_DB_ID"):
            config.notion.achievements_db_id = os.getenv("NOTION_ACHIEVEMENTS_DB_ID")
        if os.getenv("NOTION_TASKS_DB_ID"):
            config.notion.tasks_db_id = os.getenv("NOTION_TASKS_DB_ID")

        # Transport configuration
        if os.getenv("TRANSPORT_TYPE"):
            config.transport.type = os.getenv("TRANSPORT_TYPE")
        if os.getenv("TRANSPORT_HOST"):
            config.transport.host = os.getenv("TRANSPORT_HOST")
        if os.getenv("TRANSPORT_PORT"):
            config.transport.port = int(os.getenv("TRANSPORT_PORT"))

        # Protocol
        if os.getenv("REQUIRE_INITIALIZATION"):
            config.require_initialization = _env_flag("REQUIRE_INITIALIZATION")

        # Metrics
        if os.getenv("METRICS_PORT"):
            config.metrics_port = int(os.getenv("METRICS_PORT"))

    return config


def create_sample_config() -> Dict[str, Any]:
    """Create a sample configuration for reference."""
    return {
        "server_name": "mcp-career-intelligence-server",
        "server_version": "1.0.0",
        "debug": False,
        "log_level": "info",
        "require_initialization": False,
        "page_size": 50,
        "tool_timeout": 30.0,
        "metrics_port": 9090,
        "transport": {
            "type": "websocket",
            "host": "0.0.0.0",
            "port": 3000,
            "ping_interval": 20.0,
            "ping_timeout": 20.0,
            "max_message_size": 10485760
        },
        "notion": {
            "api_token": "secret_your-notion-integration-token",
            "timeout_ms": 30000,
            "initiatives_db_id": "your-initiatives-database-id",
            "achievements_db_id": "your-achievements-database-id",
            "tasks_db_id": "your-tasks-database-id"
        }
    }
