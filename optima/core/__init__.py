"""Configuration and logging shared by the pipeline and the HTTP host."""

from optima.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
