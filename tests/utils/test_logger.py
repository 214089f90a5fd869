#!filepath: tests/utils/test_logger.py
import pytest
from loguru import logger

from crimestat.config.log_config import LogConfig
from crimestat.utils.logger import init_logging, logs


def test_catch_logs_and_reraises():
    messages = []
    logger.add(messages.append, level="INFO")

    @logs.catch(msg="boom")
    def explode():
        raise ValueError("x")

    @logs.catch()
    def fine(a, b=1):
        return a + b

    with pytest.raises(ValueError):
        explode()
    assert fine(1, b=2) == 3

    assert any("[ERROR]" in m and "explode: boom" in m for m in messages)
    assert any("[TIME]" in m and "fine" in m for m in messages)


def test_init_logging_creates_log_dir(tmp_path):
    log_dir = tmp_path / "logs"
    try:
        assert init_logging(LogConfig(dir=str(log_dir), level="debug")) is logs
        assert log_dir.is_dir()
        assert logs.level == "DEBUG"
    finally:
        logger.remove()
        logger.add(lambda msg: None)


def test_unknown_level():
    with pytest.raises(ValueError):
        LogConfig(level="LOUD")
