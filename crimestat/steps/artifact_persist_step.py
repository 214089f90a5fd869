#!filepath: crimestat/steps/artifact_persist_step.py
from __future__ import annotations

import json
import math
from datetime import datetime, timezone

from crimestat.config.regression_config import RegressionConfig
from crimestat.pipeline.context import RegressionContext
from crimestat.pipeline.step import PipelineStep
from crimestat.utils.logger import logs


def _json_safe(v):
    # NaN is not valid JSON
    if isinstance(v, float) and not math.isfinite(v):
        return None
    return v


class ArtifactPersistStep(PipelineStep):
    """
    ArtifactPersistStep（FINAL）

    Semantics:
    - model file      : JSON {weights, bias, learning_rate, epoch, cost}
    - epoch history   : parquet (pyarrow), one row per epoch
    - validation      : JSON summary + one diagnostic line per example
    - run metadata    : JSON (run_id, created_at, metrics, artifact paths)
    """

    stage = "persist"

    def __init__(self, cfg: RegressionConfig, inst=None):
        super().__init__(inst)
        self.cfg = cfg

    @logs.catch()
    def run(self, ctx: RegressionContext) -> RegressionContext:
        state = ctx.model_state
        if state is None:
            raise RuntimeError("No ModelState to persist")

        out = ctx.output_dir
        out.mkdir(parents=True, exist_ok=True)

        with self.inst.timer("persist.artifacts"):
            # -----------------------------
            # model
            # -----------------------------
            ctx.artifacts["model"] = state.save(out / self.cfg.model_file)

            # -----------------------------
            # epoch history
            # -----------------------------
            if ctx.training is not None and ctx.training.history:
                history_path = out / self.cfg.history_file
                ctx.training.history_frame().to_parquet(history_path, engine="pyarrow", index=False)
                ctx.artifacts["history"] = history_path

            # -----------------------------
            # validation
            # -----------------------------
            if ctx.validation is not None:
                validation_path = out / self.cfg.validation_file
                summary = {k: _json_safe(v) for k, v in ctx.validation.summary().items()}
                validation_path.write_text(json.dumps(summary, indent=2), encoding="utf-8")
                ctx.artifacts["validation"] = validation_path

                diag_path = validation_path.with_suffix(".txt")
                diag_path.write_text("\n".join(ctx.validation.lines()) + "\n", encoding="utf-8")
                ctx.artifacts["diagnostics"] = diag_path

            # -----------------------------
            # run metadata
            # -----------------------------
            meta = {
                "run_id": ctx.run_id,
                "created_at": datetime.now(timezone.utc).isoformat(),
                "metrics": {k: _json_safe(v) for k, v in ctx.metrics.items()},
                "correlations": {k: _json_safe(v) for k, v in ctx.correlations.items()},
                "artifacts": {k: str(p) for k, p in ctx.artifacts.items()},
            }
            meta_path = out / "run.json"
            meta_path.write_text(json.dumps(meta, indent=2, default=str), encoding="utf-8")
            ctx.artifacts["run"] = meta_path

        logs.info(f"[ArtifactPersistStep] artifacts={ {k: str(p) for k, p in ctx.artifacts.items()} }")
        return ctx
