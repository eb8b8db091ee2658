"""Unit tests for MCP configuration loading."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from lens_cli.mcp.config import MCPConfig, MCPServerConfig


class TestMCPServerConfig:
    """Test MCPServerConfig validation."""

    def test_valid_http_config(self):
        """Test valid HTTP transport configuration."""
        config = MCPServerConfig(
            transport="http",
            url="https://example.com/mcp",
            description="Test server",
        )
        assert config.transport == "http"
        assert config.url == "https://example.com/mcp"
        assert config.binary_path is None

    def test_valid_stdio_config(self):
        """Test valid stdio transport configuration."""
        config = MCPServerConfig(
            command="node",
            args=["/opt/qodana/index.js", "--verbose"],
            env={"SOME_VAR": "value"},
        )
        assert config.transport == "stdio"
        assert config.binary_path == "/opt/qodana/index.js"
        assert config.env == {"SOME_VAR": "value"}

    def test_type_key_accepted(self):
        """Test that the `type` key written by some clients maps to transport."""
        config = MCPServerConfig.model_validate({"type": "sse", "url": "https://x/sse"})
        assert config.transport == "sse"

    def test_http_requires_url(self):
        """Test that HTTP transport requires a URL."""
        with pytest.raises(ValidationError) as exc_info:
            MCPServerConfig(transport="http")
        assert "http transport requires a URL" in str(exc_info.value)

    def test_args_without_command(self):
        """Test that a server path can be read without a command."""
        config = MCPServerConfig.model_validate({"args": ["/opt/qodana/index.js"]})
        assert config.command is None
        assert config.binary_path == "/opt/qodana/index.js"


class TestMCPConfig:
    """Test MCPConfig file handling."""

    def _write(self, path: Path, servers: dict) -> Path:
        path.write_text(json.dumps({"mcpServers": servers}))
        return path

    def test_load_missing_file(self, tmp_path: Path):
        """Test that a missing file has no servers."""
        config = MCPConfig(tmp_path / ".mcp.json")

        assert not config.exists()
        assert config.raw_servers() == {}
        assert config.get_server("qodana") is None
        assert not config.mentions("GEMINI_API_KEY")

    def test_get_server(self, tmp_path: Path):
        """Test looking up named servers."""
        path = self._write(
            tmp_path / ".mcp.json",
            {
                "qodana": {"command": "node", "args": ["/srv/qodana.js"]},
                "remote": {"type": "http", "url": "https://example.com/mcp"},
            },
        )
        config = MCPConfig(path)

        assert set(config.raw_servers()) == {"qodana", "remote"}
        assert config.get_server("qodana").binary_path == "/srv/qodana.js"
        assert config.get_server("remote").transport == "http"
        assert config.get_server("gemini-reviewer") is None

    def test_server_without_args(self, tmp_path: Path):
        """Test that a server without args has no binary path."""
        path = self._write(tmp_path / ".mcp.json", {"qodana": {"command": "qodana-mcp"}})

        assert MCPConfig(path).get_server("qodana").binary_path is None

    def test_other_invalid_servers_ignored(self, tmp_path: Path):
        """Test that entries other than the requested one are not validated."""
        path = self._write(
            tmp_path / ".mcp.json",
            {
                "qodana": {"command": "node", "args": ["/srv/qodana.js"]},
                "stream": {"type": "streamable-http", "url": "https://x"},
                "broken": {"type": "http"},
            },
        )

        assert MCPConfig(path).get_server("qodana").binary_path == "/srv/qodana.js"

    def test_invalid_json_raises(self, tmp_path: Path):
        """Test that malformed JSON raises RuntimeError."""
        path = tmp_path / ".mcp.json"
        path.write_text("{not json")

        with pytest.raises(RuntimeError, match="Failed to load MCP config"):
            MCPConfig(path).get_server("qodana")

    def test_invalid_requested_server_raises(self, tmp_path: Path):
        """Test that the requested entry failing validation raises RuntimeError."""
        path = self._write(tmp_path / ".mcp.json", {"broken": {"type": "http"}})

        with pytest.raises(RuntimeError, match="server 'broken' is invalid"):
            MCPConfig(path).get_server("broken")

    def test_non_object_root_raises(self, tmp_path: Path):
        """Test that a JSON array at the root raises RuntimeError."""
        path = tmp_path / ".mcp.json"
        path.write_text("[]")

        with pytest.raises(RuntimeError, match="not an object"):
            MCPConfig(path).raw_servers()

    def test_mentions(self, tmp_path: Path):
        """Test raw text search over the config file."""
        path = self._write(
            tmp_path / ".mcp.json",
            {"gemini-reviewer": {"command": "node", "args": ["x"], "env": {"GEMINI_API_KEY": "k"}}},
        )
        config = MCPConfig(path)

        assert config.mentions("GEMINI_API_KEY")
        assert not config.mentions("OPENAI_API_KEY")
