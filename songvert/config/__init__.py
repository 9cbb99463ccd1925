"""Configuration module for Songvert.

Public API:
----------
settings: Settings instance
    Pydantic settings object with nested configuration

get_config(key: str, default=None) -> Any
    Flat-key configuration access

get_logger(name: str) -> Logger
    Get a context-aware logger for your module

setup_loguru_logger(verbose: bool = False) -> None
    Configure Loguru logger for the application

resilient_operation(operation_name: str)
    Decorator for connector boundary calls

Usage:
------
```python
from songvert.config import settings
threshold = settings.matching.apple_music_threshold

from songvert.config import get_logger
logger = get_logger(__name__)
logger.info("Starting resolution")
```
"""

from .logging import get_logger, resilient_operation, setup_loguru_logger
from .settings import Settings, get_config, settings

__all__ = [
    "Settings",
    "get_config",
    "get_logger",
    "resilient_operation",
    "settings",
    "setup_loguru_logger",
]
