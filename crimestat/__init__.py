#!filepath: crimestat/__init__.py

from .utils.logger import Logging, logs
from .utils.retry import Retry
from .utils.datetime_utils import DateTimeUtils
from .config.app_config import AppConfig

# short aliases
retry = Retry
datetime_utils = DateTimeUtils

__all__ = [
    "logs", "Logging",
    "retry",
    "AppConfig",
    "datetime_utils",
]
