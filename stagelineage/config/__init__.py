"""Configuration module — exports Settings and load_config."""

from stagelineage.config.loader import load_config
from stagelineage.config.settings import Settings

__all__ = ["Settings", "load_config"]
