"""Tests for configuration loading."""

import json

from career_mcp.config import ServerConfig, create_sample_config, load_config


class TestConfig:
    """Test configuration sources and overrides."""

    def test_defaults(self):
        """Test default values."""
        config = ServerConfig()

        assert config.transport.type == "stdio"
        assert config.transport.port == 3000
        assert config.require_initialization is False
        assert config.page_size == 50

    def test_sample_config_is_valid(self):
        """Test the sample configuration loads."""
        config = ServerConfig(**create_sample_config())

        assert config.transport.type == "websocket"
        assert config.notion.tasks_db_id == "your-tasks-database-id"

    def test_from_file(self, tmp_path):
        """Test loading a JSON file."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"server_name": "from-file", "tool_timeout": 5}))

        config = load_config(str(path), use_env=False)

        assert config.server_name == "from-file"
        assert config.tool_timeout == 5

    def test_environment_overrides(self, monkeypatch):
        """Test explicit environment variables win."""
        monkeypatch.setenv("NOTION_API_KEY", "secret_env")
        monkeypatch.setenv("NOTION_TASKS_DB_ID", "db-tasks")
        monkeypatch.setenv("TRANSPORT_TYPE", "websocket")
        monkeypatch.setenv("TRANSPORT_PORT", "8765")
        monkeypatch.setenv("REQUIRE_INITIALIZATION", "true")

        config = load_config()

        assert config.notion.api_token == "secret_env"
        assert config.notion.tasks_db_id == "db-tasks"
        assert config.transport.type == "websocket"
        assert config.transport.port == 8765
        assert config.require_initialization is True
