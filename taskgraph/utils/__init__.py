"""Utility modules for taskgraph."""

from taskgraph.utils.config import ServiceConfig, load_env, get_config, ensure_api_key
from taskgraph.utils.mermaid import generate_mermaid_code

__all__ = [
    "ServiceConfig",
    "load_env",
    "get_config",
    "ensure_api_key",
    "generate_mermaid_code",
]
