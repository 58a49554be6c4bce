from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from notedex.tracking.file_types import WILDCARD_TYPES


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="NOTEDEX_", env_file=".env", extra="ignore")

    # Vault settings
    vault_path: Path = Path(".")
    file_types: list[str] = ["markdown"]  # type classes, "all" tracks every file
    default_extension: str = "md"
    ignore_filenames: list[str] = [".gitignore", ".ignore"]

    # Watcher settings
    event_queue_size: int = 65536
    use_polling: bool = False  # polling observer, e.g. for network drives
    poll_interval: float = 2.0  # seconds between polls of the polling observer

    # Web server settings
    host: str = "127.0.0.1"
    port: int = 8000

    log_level: str = "INFO"  # Can be DEBUG, INFO, WARNING, ERROR, CRITICAL

    @property
    def allows_extensionless(self) -> bool:
        """Whether files without an extension count as documents."""
        return any(name in WILDCARD_TYPES for name in self.file_types)


settings = Settings()
