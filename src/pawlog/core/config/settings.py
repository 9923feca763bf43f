"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pawlog server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: there is no auth layer in front of the tools.
    pawlog_host: str = "127.0.0.1"
    pawlog_port: int = 8001
    pawlog_log_level: str = "info"
    pawlog_allow_insecure_bind: bool = False

    # Remote spreadsheet endpoint (web app URL)
    remote_url: str = ""
    use_remote: bool = True
    # None means the transport default (no explicit timeout).
    remote_timeout_seconds: float | None = None

    # Local store
    db_path: str = "~/.pawlog/pawlog.db"
    encryption_key: str = ""

    # Period cache
    period_cache_ttl_seconds: float = 300.0

    # Subjects / medicines / lab fields. Empty means the packaged catalog.
    catalog_path: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
