# crimestat/mapreduce/types.py
from enum import Enum


class TaskKind(str, Enum):
    MAP = "map"
    REDUCE = "reduce"
