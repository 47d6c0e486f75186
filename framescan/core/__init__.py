from framescan.core.config import Settings, get_config
from framescan.core.logging import setup_logging

__all__ = ["Settings", "get_config", "setup_logging"]
