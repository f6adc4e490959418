#!filepath: temporal_eval/__init__.py

from .utils.logger import Logging, logs, init_logging

__version__ = "0.1.0"

__all__ = [
    "logs", "Logging", "init_logging",
    "__version__",
]
