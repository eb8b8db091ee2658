"""MCP configuration loading.

Reads the project-level .mcp.json used by the review loop:

{
  "mcpServers": {
    "server-name": {
      "command": "node",            // for stdio transport
      "args": ["/path/to/index.js"],
      "env": {...},                 // optional environment variables
      "type": "stdio" | "http",     // optional, defaults to stdio
      "url": "https://...",         // for HTTP transport
      "description": "..."          // optional description
    }
  }
}

Preflight checks only need the first argument of a named server, which is the
path of the server script. Entries are validated one at a time so a server
this tool does not understand never hides the one being checked.
"""

import json
import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)


class MCPServerConfig(BaseModel):
    """Configuration for a single MCP server."""

    transport: Literal["http", "sse", "stdio"] = "stdio"
    url: str | None = None
    command: str | None = None
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    description: str | None = None

    @model_validator(mode="before")
    @classmethod
    def accept_type_alias(cls, data: Any) -> Any:
        """Accept the `type` key some clients write instead of `transport`."""
        if isinstance(data, dict) and "transport" not in data and "type" in data:
            data = {**data, "transport": data["type"]}
        return data

    @model_validator(mode="after")
    def validate_transport_requirements(self) -> "MCPServerConfig":
        """Validate that transport-specific requirements are met."""
        if self.transport in ("http", "sse") and not self.url:
            msg = f"{self.transport} transport requires a URL"
            raise ValueError(msg)
        return self

    @property
    def binary_path(self) -> str | None:
        """First command argument, the server script for node-style servers."""
        return self.args[0] if self.args else None


class MCPConfig:
    """Read-only view over an MCP config file."""

    def __init__(self, config_path: Path) -> None:
        """Initialize MCP config.

        Args:
            config_path: Path to the .mcp.json file
        """
        self.config_path = config_path

    def exists(self) -> bool:
        """Whether the config file is present."""
        return self.config_path.is_file()

    def _load_error(self, reason: Any) -> RuntimeError:
        return RuntimeError(f"Failed to load MCP config from {self.config_path}: {reason}")

    def raw_servers(self) -> dict[str, Any]:
        """Read the `mcpServers` object without validating its entries.

        Returns:
            Mapping of server names to their raw JSON entries. Empty if the
            file does not exist.

        Raises:
            RuntimeError: If the file is not valid JSON or `mcpServers` is not an object
        """
        if not self.exists():
            logger.debug("No MCP config at %s", self.config_path)
            return {}

        try:
            with self.config_path.open(encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise self._load_error(e) from e

        if not isinstance(data, dict):
            raise self._load_error("top-level value is not an object")
        servers = data.get("mcpServers", {})
        if not isinstance(servers, dict):
            raise self._load_error("mcpServers is not an object")
        return servers

    def get_server(self, name: str) -> MCPServerConfig | None:
        """Get configuration for a specific server.

        Only the named entry is validated.

        Args:
            name: Server name/identifier

        Returns:
            Server configuration or None if not found

        Raises:
            RuntimeError: If the file is unreadable or the named entry is invalid
        """
        entry = self.raw_servers().get(name)
        if entry is None:
            return None
        try:
            return MCPServerConfig.model_validate(entry)
        except ValidationError as e:
            raise self._load_error(f"server '{name}' is invalid: {e}") from e

    def mentions(self, text: str) -> bool:
        """Whether the raw config file contains the given text."""
        if not self.exists():
            return False
        try:
            return text in self.config_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.debug("Could not read %s: %s", self.config_path, e)
            return False
