"""Configuration module for DavNotes."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config
_USER_ENV = Path.home() / ".davnotes" / ".env"
load_dotenv(_USER_ENV)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class DavNotesConfig(BaseModel):
    """Configuration for the WebDAV note client."""

    # Server connection
    server_url: Optional[str] = Field(
        default_factory=lambda: os.getenv("DAVNOTES_SERVER_URL") or None
    )
    username: Optional[str] = Field(
        default_factory=lambda: os.getenv("DAVNOTES_USERNAME") or None
    )
    password: Optional[str] = Field(
        default_factory=lambda: os.getenv("DAVNOTES_PASSWORD") or None
    )
    # Request timeout in seconds
    timeout: float = Field(
        default_factory=lambda: float(os.getenv("DAVNOTES_TIMEOUT", "30"))
    )
    # Self-hosted servers commonly use self-signed certificates
    verify_tls: bool = Field(
        default_factory=lambda: _env_flag("DAVNOTES_VERIFY_TLS", "false")
    )
    # Collection holding the canonical {id}.json records
    notes_dir: str = Field(
        default_factory=lambda: os.getenv("DAVNOTES_NOTES_DIR", "notes")
    )
    # Collection holding the {title}.md mirror documents
    mirror_dir: str = Field(
        default_factory=lambda: os.getenv("DAVNOTES_MIRROR_DIR", "notes-md")
    )
    # Device identifier written into new notes
    device_id: str = Field(
        default_factory=lambda: os.getenv("DAVNOTES_DEVICE_ID", "davnotes-cli")
    )
    # Logging
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("DAVNOTES_LOG_DIR"))
            if os.getenv("DAVNOTES_LOG_DIR")
            else None
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("DAVNOTES_LOG_LEVEL", "INFO").upper()
    )

    @model_validator(mode="after")
    def _validate_config(self) -> "DavNotesConfig":
        """Reject settings that would produce unusable request URLs."""
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        for name in ("notes_dir", "mirror_dir"):
            value = getattr(self, name).strip("/")
            if not value:
                raise ValueError(f"{name} cannot be empty")
            setattr(self, name, value)
        return self

    def has_credentials(self) -> bool:
        """Whether server URL, username and password are all set."""
        return bool(self.server_url and self.username and self.password is not None)


# Create a global config instance
config = DavNotesConfig()
