"""Configuration management for the Mermaid Service.

All settings are loaded with Pydantic Settings from environment variables
carrying the ``MERMAID_`` prefix, falling back to a ``.env`` file in the
working directory and then to the defaults below.

Example .env file:
    MERMAID_SERVER_PORT=8080
    MERMAID_CACHE_SIZE=512
    MERMAID_EXTERNAL_INDEX=true
    MERMAID_RESOURCE_DIR=/srv/mermaid-service

Configuration is read once at startup and never changes while the server
runs.  Any invalid value surfaces as :class:`ConfigError` from
:func:`load_config`, so the process refuses to start rather than serving with
a half-valid setup.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mermaid_service.core.exceptions import ConfigError

INDEX_FILENAME = "index.html"


class ServiceConfig(BaseSettings):
    """Startup configuration for the Mermaid Service.

    Attributes
    ----------
    Server:
        server_host : str
            Bind address for uvicorn.
        server_port : int
            Listen port (1-65535).

    Cache:
        cache_size : int
            Number of rendered diagrams kept in memory.  Must be positive.

    Landing page:
        external_index : bool
            Serve ``index.html`` from ``resource_dir`` instead of the copy
            bundled with the package.  Handy while editing the page.
        resource_dir : Path | None
            Directory holding the external ``index.html``.  Required when
            ``external_index`` is set.

    Renderer:
        renderer_command : str
            Executable invoked as ``<command> -i <input> <output>``.
        scratch_dir : Path | None
            Where transient input/output files are created.  ``None`` uses
            the system temp directory.
        render_timeout : float | None
            Seconds before a renderer process is killed.  ``None`` (the
            default) waits indefinitely.

    Logging:
        log_level : str
            Root log level for the CLI entry point.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MERMAID_",
        case_sensitive=False,
    )

    server_host: str = Field(default="0.0.0.0", description="Server bind address")
    server_port: int = Field(default=8080, description="Server port", ge=1, le=65535)

    cache_size: int = Field(
        default=256,
        description="Number of rendered diagrams to keep in the LRU cache",
        gt=0,
    )

    external_index: bool = Field(
        default=False,
        description="Serve index.html from resource_dir instead of the bundled copy",
    )
    resource_dir: Path | None = Field(
        default=None,
        description="Directory containing the external index.html",
    )

    renderer_command: str = Field(
        default="mmdc",
        description="Renderer executable (mermaid-cli)",
        min_length=1,
    )
    scratch_dir: Path | None = Field(
        default=None,
        description="Directory for transient render files (system temp dir if unset)",
    )
    render_timeout: float | None = Field(
        default=None,
        description="Renderer timeout in seconds (no timeout if unset)",
        gt=0,
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level for the service",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _require_resource_dir(self) -> ServiceConfig:
        if self.external_index and self.resource_dir is None:
            raise ValueError("MERMAID_RESOURCE_DIR is empty but external_index is enabled")
        return self

    def __init__(self, **kwargs):
        """Load settings and make sure the scratch directory exists."""
        super().__init__(**kwargs)

        if self.scratch_dir is not None:
            self.scratch_dir.mkdir(parents=True, exist_ok=True)

    @property
    def index_path(self) -> Path | None:
        """Path of the external landing page, or ``None`` when bundled."""
        if not self.external_index or self.resource_dir is None:
            return None
        return self.resource_dir / INDEX_FILENAME


def load_config(**overrides) -> ServiceConfig:
    """Build a :class:`ServiceConfig`, raising :class:`ConfigError` on bad input.

    Args:
        **overrides: Field values that take precedence over the environment
            (``_env_file=None`` disables ``.env`` loading, as in tests).

    Raises:
        ConfigError: If any setting fails validation, or the scratch
            directory cannot be created.
    """
    try:
        return ServiceConfig(**overrides)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
    except OSError as e:
        raise ConfigError(f"unable to prepare scratch directory: {e}") from e
