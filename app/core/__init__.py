"""Core: configuration and the composition root.

Import composition from app.core.composition directly; it pulls in every layer.
"""

from app.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
