from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "FLOW_SETUP_",
        "extra": "ignore",
    }

    # Flow distribution
    flow_root: Path = Path(".")
    flow_context: str = "Development"  # Development | Production[/Sub] | Testing
    command_name: str = "flow"  # rendered into {{flowCommand}} hints

    # Health checks (YAML with healthchecks.compiletime / healthchecks.runtime)
    healthchecks_file: Path = Path("healthchecks.yaml")

    # Full tracebacks of failed checks land here, named by reference code
    exception_log_dir: Path | None = Path("Data/Logs/Exceptions")

    # Persistence backend (empty driver = not configured)
    db_driver: str = ""  # pdo_sqlite | pdo_mysql | mysqli | pdo_pgsql
    db_host: str = "127.0.0.1"
    db_port: int | None = None  # driver default when unset
    db_name: str = ""
    db_user: str = ""
    db_password: str = ""
    db_path: str = ""  # sqlite file
    db_connect_timeout: float = 5.0
    migrations_dir: Path = Path("Migrations")

    # Reverse proxies trusted for forwarded headers (comma separated or "*")
    trusted_proxies: str = ""

    # CLI: runtime checks run in a subprocess
    runtime_subprocess_timeout: int = 300

    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8081

    # Logging
    log_level: str = "INFO"

    def resolve_path(self, path: Path) -> Path:
        """Resolve ``path`` against the distribution root unless absolute."""
        return path if path.is_absolute() else self.flow_root / path

    def backend_options(self) -> dict[str, object]:
        """Persistence backend options; empty when no driver is configured."""
        if not self.db_driver:
            return {}
        return {
            "driver": self.db_driver,
            "host": self.db_host,
            "port": self.db_port,
            "dbname": self.db_name,
            "user": self.db_user,
            "password": self.db_password,
            "path": self.db_path,
        }

    def trusted_proxy_list(self) -> list[str]:
        return [p.strip() for p in self.trusted_proxies.split(",") if p.strip()]


settings = Settings()


def get_settings() -> Settings:
    return settings
