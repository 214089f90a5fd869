# crimestat/config/executor_config.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ExecutorConfig(BaseModel):
    """
    Local map/reduce runner settings.

    max_workers=1 runs every task in-process; >1 uses a process pool
    (None = one worker per CPU).
    shuffle_seed randomizes the order of each key's values before reduce,
    so reducers can be checked for order independence.
    """

    model_config = ConfigDict(frozen=True)

    max_workers: Optional[int] = 1
    num_partitions: int = Field(default=1, ge=1)
    use_combiner: bool = True
    retry_attempts: int = Field(default=1, ge=1)
    retry_delay: float = Field(default=0.5, ge=0)
    shuffle_seed: Optional[int] = None
