#!filepath: crimestat/config/log_config.py
from pydantic import BaseModel, ConfigDict, field_validator

_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


class LogConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    dir: str = "logs"
    rotation: str = "1 day"
    retention: str = "30 days"
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        v = v.upper()
        if v not in _LEVELS:
            raise ValueError(f"unknown log level {v}")
        return v
