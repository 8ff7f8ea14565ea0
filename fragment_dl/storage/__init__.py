"""
Storage Layer.

This package handles all data persistence: the configuration file and the output
artifact.
"""

from .artifact import OutputArtifact
from .config_manager import ConfigManager

__all__ = ["ConfigManager", "OutputArtifact"]
