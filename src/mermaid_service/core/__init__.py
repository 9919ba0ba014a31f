"""Core building blocks of the Mermaid Service.

- **ServiceConfig / load_config**: environment-driven settings
  (``MERMAID_`` prefix, Pydantic Settings)
- **DiagramCache**: bounded, thread-safe LRU cache of rendered SVG
- **DiagramRenderer**: temp-file + subprocess render pipeline around
  mermaid-cli
- **decode_key / encode_source**: URL-safe, unpadded base64 keys
- **exceptions**: ``DecodeError``, ``RenderError`` and ``ConfigError``

None of these modules know about HTTP; :mod:`mermaid_service.api` wires
them together.
"""

from mermaid_service.core.cache import DiagramCache
from mermaid_service.core.config import ServiceConfig, load_config
from mermaid_service.core.encoding import decode_key, encode_source
from mermaid_service.core.exceptions import (
    ConfigError,
    DecodeError,
    MermaidServiceError,
    RenderError,
)
from mermaid_service.core.renderer import DiagramRenderer, fix_line_breaks

__all__ = [
    "ConfigError",
    "DecodeError",
    "DiagramCache",
    "DiagramRenderer",
    "MermaidServiceError",
    "RenderError",
    "ServiceConfig",
    "decode_key",
    "encode_source",
    "fix_line_breaks",
    "load_config",
]
