#!filepath: crimestat/config/app_config.py
import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .executor_config import ExecutorConfig
from .log_config import LogConfig
from .regression_config import RegressionConfig
from .stats_config import StatsConfig


def project_root() -> str:
    """
    Project root derived from this file:
    crimestat/config/app_config.py -> crimestat/config -> crimestat -> root
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "../../"))


def default_config_path() -> str:
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "base.yml")


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    log: LogConfig = Field(default_factory=LogConfig)
    stats: StatsConfig
    regression: RegressionConfig
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)

    @classmethod
    def load(cls, path: str | None = None) -> "AppConfig":
        """
        Load YAML config + .env
        - default: crimestat/config/base.yml
        - independent of the current working directory
        - CRIMESTAT_LOG_LEVEL / CRIMESTAT_MAX_WORKERS override the file
        """
        root = project_root()

        # 1) .env at the project root
        load_dotenv(os.path.join(root, ".env"))

        # 2) config file
        if path is None:
            path = default_config_path()

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        # 3) YAML
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        # 4) environment overrides
        level = os.getenv("CRIMESTAT_LOG_LEVEL")
        if level:
            raw.setdefault("log", {})["level"] = level
        workers = os.getenv("CRIMESTAT_MAX_WORKERS")
        if workers:
            raw.setdefault("executor", {})["max_workers"] = int(workers)

        return cls(**raw)
