"""Gateway configuration loaded from environment variables."""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the PilotFrame gateway.

    Values come from the environment (case-insensitive) or a local .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Specification store (control plane)
    control_plane_url: str = "http://localhost:4000"
    control_plane_token: str = ""
    store_timeout: float = 30.0

    # MCP server identity
    mcp_server_name: str = "pilotframe-mcp"
    mcp_server_version: str = "0.2.0"
    mcp_protocol_version: str = "2024-11-05"

    # Spelling advertised in tools/list; both spellings are accepted on tools/call
    tool_naming: Literal["flat", "hierarchical"] = "flat"
    # Prefixes added by client-side tool bridges, stripped in this order
    client_prefixes: list[str] = ["mcp__pilotframe__", "mcp_pilotframe_", "mcp_"]

    # HTTP gateway
    gateway_host: str = "0.0.0.0"
    gateway_port: int = 8000
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
