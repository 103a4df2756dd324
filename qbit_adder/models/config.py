"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from urllib.parse import urlsplit

from pydantic import BaseModel, Field, field_validator

DEFAULT_URL = "http://127.0.0.1:8080"

# Seconds. Existence checks are short so a slow WebUI never blocks an add.
DEFAULT_LOGIN_TIMEOUT = 10
DEFAULT_CHECK_TIMEOUT = 8
DEFAULT_ADD_TIMEOUT = 60


class ConnectionConfig(BaseModel):
    """A validated configuration model for the WebUI connection."""

    # Connection
    url: str = DEFAULT_URL
    username: str = ""
    password: str = Field(default="", repr=False)

    # Network timeouts
    login_timeout: float = DEFAULT_LOGIN_TIMEOUT
    check_timeout: float = DEFAULT_CHECK_TIMEOUT
    add_timeout: float = DEFAULT_ADD_TIMEOUT

    # Logging
    json_log: bool = False

    # Internal fields not loaded from INI file
    config_path: str = Field(default="", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Requires an absolute http(s) URL and drops any trailing slash."""
        if not v:
            raise ValueError("WebUI URL cannot be empty.")
        parts = urlsplit(v)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(
                f"WebUI URL must start with http:// or https://, got: {v}"
            )
        return v.rstrip("/")

    @field_validator("login_timeout", "check_timeout", "add_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Ensures every network call keeps a finite, positive time budget."""
        if v <= 0 or v > 600:
            raise ValueError("Timeouts must be between 0 and 600 seconds.")
        return v

    @property
    def has_credentials(self) -> bool:
        """Authentication is skipped entirely when no username is configured."""
        return bool(self.username)

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
