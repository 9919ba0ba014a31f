"""Landing page resolution for ``GET /``.

The page is chosen once, at startup:

- **bundled** (default): ``templates/index.html`` shipped inside the package
  is read into memory and served from those bytes on every request.
- **external**: ``<resource_dir>/index.html`` is served straight from disk,
  so edits show up on reload without restarting the server.

Either way a missing page is a startup :class:`ConfigError`, never a
request-time 404.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from mermaid_service.core.config import INDEX_FILENAME, ServiceConfig
from mermaid_service.core.encoding import encode_source
from mermaid_service.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

TEMPLATES_DIR: Path = Path(__file__).resolve().parent.parent / "templates"
BUNDLED_INDEX: Path = TEMPLATES_DIR / INDEX_FILENAME

SAMPLE_DIAGRAM = """graph TD
A[Christmas] -->|Get money| B(Go shopping)
B --> C{Let me think}
C -->|One| D[Laptop]
C -->|Two| E[iPhone]
C -->|Three| F[Car]
"""


def sample_url() -> str:
    """Return the ``/diagram/...`` path that renders :data:`SAMPLE_DIAGRAM`."""
    return "/diagram/" + encode_source(SAMPLE_DIAGRAM)


@dataclass(frozen=True)
class IndexPage:
    """Resolved landing page: exactly one of ``content`` or ``path`` is set."""

    content: bytes | None = None
    path: Path | None = None

    @property
    def is_external(self) -> bool:
        return self.path is not None


def resolve_index_page(config: ServiceConfig) -> IndexPage:
    """Load the bundled page or locate the external one.

    Args:
        config: Service configuration (``external_index``/``resource_dir``).

    Returns:
        The resolved :class:`IndexPage`.

    Raises:
        ConfigError: If the selected page does not exist or cannot be read.
    """
    index_path = config.index_path
    if index_path is not None:
        index_path = index_path.resolve()
        if not index_path.is_file():
            raise ConfigError(f"external index file not found: {index_path}")
        logger.info("Serve index file from %s", index_path)
        return IndexPage(path=index_path)

    logger.info("Serve bundled resources")
    try:
        content = BUNDLED_INDEX.read_bytes()
    except OSError as e:
        raise ConfigError(f"unable to load bundled index page: {e}") from e
    return IndexPage(content=content)
