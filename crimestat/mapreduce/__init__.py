from .executor import MapReduceExecutor
from .job import MapReduceJob
from .types import TaskKind

__all__ = ["MapReduceExecutor", "MapReduceJob", "TaskKind"]
