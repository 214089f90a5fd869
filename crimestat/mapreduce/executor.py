# crimestat/mapreduce/executor.py
from __future__ import annotations

import os
import random
from concurrent.futures import ProcessPoolExecutor
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Sequence, Tuple

from crimestat.config.executor_config import ExecutorConfig
from crimestat.mapreduce.job import MapReduceJob
from crimestat.mapreduce.types import TaskKind
from crimestat.observability.instrumentation import Instrumentation, NoOpInstrumentation
from crimestat.utils.logger import logs
from crimestat.utils.retry import Retry


# ----------------------------------------------------------------------
# task bodies (module level so the process pool can pickle them)
# ----------------------------------------------------------------------
def _group(pairs: Iterable[Tuple[Any, Any]]) -> Dict[Any, List[Any]]:
    grouped: Dict[Any, List[Any]] = {}
    for k, v in pairs:
        grouped.setdefault(k, []).append(v)
    return grouped


def map_task(job: MapReduceJob, items: Sequence[Any], combine: bool) -> List[Tuple[Any, Any]]:
    """map one partition, then (optionally) run the combiner over its output"""
    pairs: List[Tuple[Any, Any]] = []
    for item in items:
        pairs.extend(job.map(item))

    if not combine:
        return pairs

    combined: List[Tuple[Any, Any]] = []
    for k, vs in _group(pairs).items():
        combined.extend(job.combine(k, vs))
    return combined


def reduce_task(job: MapReduceJob, groups: Sequence[Tuple[Any, List[Any]]]) -> List[Any]:
    out: List[Any] = []
    for k, vs in groups:
        out.extend(job.reduce(k, vs))
    return out


def _attempt(task: Callable, attempts: int, delay: float) -> Tuple[Any, int]:
    """(task output, number of retries it took)"""
    if attempts <= 1:
        return task(), 0
    retries: List[int] = []
    out = Retry.run(
        task, max_attempts=attempts, delay=delay, jitter=False,
        on_retry=lambda attempt, _e: retries.append(attempt),
    )
    return out, len(retries)


def _chunk(seq: Sequence[Any], n: int) -> List[Sequence[Any]]:
    """n contiguous, near-equal slices (fewer if seq is short)"""
    if not seq:
        return []
    n = max(1, min(n, len(seq)))
    size, extra = divmod(len(seq), n)
    out, start = [], 0
    for i in range(n):
        end = start + size + (1 if i < extra else 0)
        out.append(seq[start:end])
        start = end
    return out


class MapReduceExecutor:
    """
    MapReduceExecutor (local)

    Runs a MapReduceJob the way a cluster would:
        partition -> map (+ combine per partition) -> shuffle / group by key
        -> sort keys -> reduce

    - max_workers == 1 : every task in-process
    - max_workers  > 1 : ProcessPoolExecutor
    - results keep partition / key order regardless of completion order
    - a failing task is retried up to retry_attempts, then the error
      propagates (no partial output)
    """

    def __init__(
            self,
            cfg: ExecutorConfig | None = None,
            inst: Instrumentation | None = None,
    ):
        self.cfg = cfg or ExecutorConfig()
        self.inst = inst if inst is not None else NoOpInstrumentation()

    def run(self, job: MapReduceJob, items: Iterable[Any]) -> List[Any]:
        items = list(items)
        name = job.job_name
        job.setup()

        logs.info(
            f"[MapReduce] start job={name} inputs={len(items)} "
            f"partitions={self.cfg.num_partitions} workers={self.cfg.max_workers}"
        )

        metrics = self.inst.metrics
        metrics.incr(f"{name}.map_input", len(items))

        # ---------------- map ----------------
        combine = self.cfg.use_combiner and job.has_combiner
        partitions = _chunk(items, self.cfg.num_partitions)
        with self.inst.timer(f"{name}.{TaskKind.MAP.value}"):
            mapped = self._execute(
                name, TaskKind.MAP,
                [partial(map_task, job, p, combine) for p in partitions],
            )

        # ---------------- shuffle ----------------
        grouped: Dict[Any, List[Any]] = {}
        for part in mapped:
            metrics.incr(f"{name}.map_output", len(part))
            for k, v in part:
                grouped.setdefault(k, []).append(v)

        keys = sorted(grouped)
        if self.cfg.shuffle_seed is not None:
            rng = random.Random(self.cfg.shuffle_seed)
            for k in keys:
                rng.shuffle(grouped[k])
        metrics.incr(f"{name}.reduce_groups", len(keys))

        # ---------------- reduce ----------------
        groups = [(k, grouped[k]) for k in keys]
        with self.inst.timer(f"{name}.{TaskKind.REDUCE.value}"):
            reduced = self._execute(
                name, TaskKind.REDUCE,
                [partial(reduce_task, job, g) for g in _chunk(groups, self.cfg.num_partitions)],
            )

        out = [o for part in reduced for o in part]
        metrics.incr(f"{name}.reduce_output", len(out))
        logs.info(f"[MapReduce] done job={name} keys={len(keys)} outputs={len(out)}")
        return out

    # ---------------- internal ----------------

    def _execute(self, name: str, kind: TaskKind, tasks: List[Callable[[], Any]]) -> List[Any]:
        if not tasks:
            return []
        workers = self._resolve_workers(len(tasks), self.cfg.max_workers)
        if workers == 1:
            attempted = self._run_sequential(tasks)
        else:
            attempted = self._run_parallel(kind, tasks, workers)

        retries = sum(n for _, n in attempted)
        if retries:
            self.inst.metrics.incr(f"{name}.{kind.value}_retries", retries)
        return [out for out, _ in attempted]

    @staticmethod
    def _resolve_workers(n_tasks: int, max_workers: int | None) -> int:
        cpu = os.cpu_count() or 1
        if max_workers is None:
            return max(1, min(cpu, n_tasks))
        return max(1, min(max_workers, n_tasks))

    def _run_sequential(self, tasks: List[Callable[[], Any]]) -> List[Tuple[Any, int]]:
        return [_attempt(t, self.cfg.retry_attempts, self.cfg.retry_delay) for t in tasks]

    def _run_parallel(
            self,
            kind: TaskKind,
            tasks: List[Callable[[], Any]],
            workers: int,
    ) -> List[Tuple[Any, int]]:
        logs.info(f"[MapReduce] {kind.value} parallel | tasks={len(tasks)} workers={workers}")

        with ProcessPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(_attempt, t, self.cfg.retry_attempts, self.cfg.retry_delay)
                for t in tasks
            ]
            # index order, not completion order
            return [f.result() for f in futures]
