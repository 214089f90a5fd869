# tests/conftest.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import pytest
from loguru import logger

from crimestat.config.app_config import AppConfig
from crimestat.config.executor_config import ExecutorConfig
from crimestat.config.log_config import LogConfig
from crimestat.config.regression_config import RegressionConfig
from crimestat.config.stats_config import StatsConfig
from crimestat.io.records import format_line


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


def _lines(rows: Dict[str, Dict[str, object]]) -> List[str]:
    return [format_line(d, fields) for d, fields in rows.items()]


@pytest.fixture
def make_lines():
    """factory: {date: {field: value}} -> feature record lines"""
    return _lines


@pytest.fixture
def xy_lines() -> List[str]:
    """
    y = 2x + 1 on 2001-01-01..2001-01-06, plus a header comment and one
    record outside the default filter window
    """
    rows = {
        f"2001-01-0{i}": {"x": float(i), "y": 2.0 * i + 1.0, "note": "sky is clear"}
        for i in range(1, 7)
    }
    rows["2002-06-01"] = {"x": 100.0, "y": -5.0}
    return ["# generated"] + _lines(rows)


@pytest.fixture
def stats_cfg() -> StatsConfig:
    return StatsConfig(
        variables=["x", "y"],
        output_types={"x": "double", "y": "double"},
        filter_start_date="2001-01-01",
        filter_end_date="2001-12-31",
        stats_path="stats.txt",
    )


@pytest.fixture
def regression_cfg(tmp_path: Path) -> RegressionConfig:
    return RegressionConfig(
        dependent="y",
        independents=["x"],
        weight=0.0,
        bias=0.0,
        learning_rate=0.01,
        epoch_limit=5,
        train_start_date="2001-01-01",
        train_end_date="2001-01-06",
        validate_start_date="2001-01-01",
        validate_end_date="2001-01-06",
        output_dir=str(tmp_path / "out"),
    )


@pytest.fixture
def app_cfg(tmp_path: Path, stats_cfg, regression_cfg) -> AppConfig:
    return AppConfig(
        log=LogConfig(dir=str(tmp_path / "logs")),
        stats=stats_cfg,
        regression=regression_cfg,
        executor=ExecutorConfig(max_workers=1, num_partitions=3),
    )
