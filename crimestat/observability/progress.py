#!filepath: crimestat/observability/progress.py
from typing import Optional

from crimestat.utils.logger import logs


class ProgressReporter:
    """Log-only progress (epochs); total may be unknown."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def start(self, task: str, total: Optional[int] = None, unit: str = ""):
        if not self.enabled:
            return
        logs.info(f"[Progress] {task} started total={total or '?'} {unit}")

    def update(self, task: str, current: int, total: Optional[int] = None, unit: str = ""):
        if not self.enabled:
            return
        logs.info(f"[Progress] {task}: {current}/{total or '?'} {unit}")

    def done(self, task: str):
        if not self.enabled:
            return
        logs.info(f"[Progress] {task} done")
