#!filepath: crimestat/utils/logger.py
import os
import sys
from functools import wraps
from time import perf_counter
from typing import Callable

from loguru import logger

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {process.name} | {message}"
CONSOLE_FORMAT = "{level} | {message}"


class Logging:
    """
    Package-wide logger (loguru)
    ---------------------------------------
    - one dated file per day under log_dir, rotated / retained as configured
    - stderr sink for warnings and above
    - the file sink is enqueued: map / reduce tasks log from pool workers,
      so the process name is part of every file line
    - catch(): timing + exception logging around a call
    ---------------------------------------
    """

    def __init__(
        self,
        log_dir: str = "logs",
        rotation: str = "1 day",
        retention: str = "30 days",
        log_level: str = "INFO",
    ):
        self.log_dir = log_dir
        self.rotation = rotation
        self.retention = retention
        self.level = log_level
        self._configure()

    def configure(self, cfg) -> "Logging":
        """Re-point the sinks at a LogConfig."""
        self.log_dir = cfg.dir
        self.rotation = cfg.rotation
        self.retention = cfg.retention
        self.level = cfg.level
        self._configure()
        return self

    def _configure(self) -> None:
        os.makedirs(self.log_dir, exist_ok=True)
        logger.remove()

        logger.add(
            sink=os.path.join(self.log_dir, "crimestat_{time:YYYY-MM-DD}.log"),
            rotation=self.rotation,
            retention=self.retention,
            level=self.level,
            format=FILE_FORMAT,
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
        logger.add(sys.stderr, level="WARNING", format=CONSOLE_FORMAT)

        logger.debug(f"[Logging] sinks ready dir={self.log_dir} level={self.level}")

    # ---------- basic interface ----------
    def debug(self, msg: str, *args, **kwargs):
        logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        logger.exception(msg, *args, **kwargs)

    # ---------- decorator ----------
    def catch(self, msg: str = "failed", log_time: bool = True) -> Callable:
        """
        Log (with traceback) and re-raise any exception of the wrapped call;
        optionally log its wall time.
        """

        def decorator(func: Callable):
            name = getattr(func, "__qualname__", func.__name__)

            @wraps(func)
            def wrapper(*args, **kwargs):
                start = perf_counter()
                try:
                    result = func(*args, **kwargs)
                except Exception:
                    logger.exception(f"[ERROR] {name}: {msg}")
                    raise

                if log_time:
                    logger.info(f"[TIME] {name} took {perf_counter() - start:.4f}s")
                return result

            return wrapper

        return decorator


# default global logs (re-pointed by init_logging)
logs = Logging()


def init_logging(cfg) -> Logging:
    """Configure the global sinks from a LogConfig."""
    return logs.configure(cfg)
