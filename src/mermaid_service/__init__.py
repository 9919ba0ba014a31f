"""Mermaid Service - render URL-encoded Mermaid diagrams to cached SVG."""

__version__ = "0.1.0"

from mermaid_service.core.cache import DiagramCache
from mermaid_service.core.config import ServiceConfig, load_config
from mermaid_service.core.exceptions import ConfigError, DecodeError, RenderError
from mermaid_service.core.renderer import DiagramRenderer

__all__ = [
    "ConfigError",
    "DecodeError",
    "DiagramCache",
    "DiagramRenderer",
    "RenderError",
    "ServiceConfig",
    "load_config",
]
