"""Exception hierarchy for the Mermaid Service.

Every error raised by the service derives from :class:`MermaidServiceError`
so callers can catch the whole family in one place.  The HTTP layer maps
them to status codes:

==================  ===========================================
Exception           Outcome
==================  ===========================================
``DecodeError``     400 Bad Request, nothing cached
``RenderError``     500 Internal Server Error, nothing cached
``ConfigError``     fatal at startup, the server never listens
==================  ===========================================
"""

from __future__ import annotations


class MermaidServiceError(Exception):
    """Base class for all Mermaid Service errors."""

    pass


class DecodeError(MermaidServiceError, ValueError):
    """The diagram key is not valid URL-safe, unpadded base64."""

    pass


class ConfigError(MermaidServiceError, ValueError):
    """Startup configuration is invalid.

    Raised before the server binds its socket, so the process exits instead
    of serving with a broken setup.
    """

    pass


class RenderError(MermaidServiceError, RuntimeError):
    """The render pipeline failed.

    Attributes:
        stage: Which step failed: ``"write-input"``, ``"exec"``,
            ``"timeout"``, ``"renderer-output"`` or ``"read-output"``.
        detail: Human-readable failure detail.  For ``"exec"`` and
            ``"renderer-output"`` this is the renderer's combined
            stdout/stderr text.
    """

    def __init__(self, stage: str, detail: str = "") -> None:
        self.stage = stage
        self.detail = detail
        super().__init__(f"{stage}: {detail}" if detail else stage)
