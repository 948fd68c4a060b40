from __future__ import annotations

"""Stage runner primitives.

Stages run in order and the first failure stops the run. Exceptions raised by
a stage are recorded as a `failed` result.
"""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Protocol

from .config import BuildConfig
from .discovery import BuildInputs
from .schema import JsonValue

StageStatus = Literal["ok", "failed", "skipped"]
RunStatus = Literal["ok", "failed"]

log = logging.getLogger(__name__)


def _iso_utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ScratchLayout:
    root: Path

    @property
    def system_dir(self) -> Path:
        return self.root / "system"

    @property
    def device_images_dir(self) -> Path:
        return self.root / "device_images"

    @property
    def device_target_files_dir(self) -> Path:
        return self.root / "device_target_files"

    @property
    def mixed_zip(self) -> Path:
        return self.root / "mixed.zip"

    def target_files_copy(self, inputs: BuildInputs) -> Path:
        return self.root / inputs.gsi_target_files.name


@dataclass(frozen=True)
class StageContext:
    config: BuildConfig
    inputs: BuildInputs
    scratch: ScratchLayout


@dataclass(frozen=True)
class StageOutcome:
    status: StageStatus
    details: dict[str, JsonValue] = field(default_factory=dict)
    limitations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class StageResult:
    stage: str
    status: StageStatus
    started_at: str
    finished_at: str
    duration_s: float
    details: dict[str, JsonValue]
    limitations: list[str]
    error: str | None


@dataclass(frozen=True)
class RunReport:
    status: RunStatus
    stage_results: list[StageResult]
    limitations: list[str]
    not_run: list[str] = field(default_factory=list)

    @property
    def failed_stage(self) -> StageResult | None:
        for res in self.stage_results:
            if res.status == "failed":
                return res
        return None


class Stage(Protocol):
    @property
    def name(self) -> str: ...

    def run(self, ctx: StageContext) -> StageOutcome: ...


def run_stages(stages: Sequence[Stage], ctx: StageContext) -> RunReport:
    results: list[StageResult] = []
    limitations: list[str] = []
    not_run: list[str] = []

    for idx, stage in enumerate(stages):
        stage_name = getattr(stage, "name", stage.__class__.__name__)
        started_at = _iso_utc_now()
        t0 = time.monotonic()
        error: str | None = None
        log.info("Stage '%s' started", stage_name)

        try:
            outcome = stage.run(ctx)
            status = outcome.status
            details = dict(outcome.details)
            stage_limits = list(outcome.limitations)
        except Exception as e:
            status = "failed"
            details = {}
            stage_limits = [f"Stage '{stage_name}' raised: {type(e).__name__}: {e}"]
            error = f"{type(e).__name__}: {e}"

        finished_at = _iso_utc_now()
        duration_s = max(0.0, time.monotonic() - t0)

        res = StageResult(
            stage=stage_name,
            status=status,
            started_at=started_at,
            finished_at=finished_at,
            duration_s=duration_s,
            details=details,
            limitations=stage_limits,
            error=error,
        )
        results.append(res)
        limitations.extend(stage_limits)
        log.info("Stage '%s' finished: %s (%.2fs)", stage_name, status, duration_s)

        if status == "failed":
            not_run = [
                getattr(s, "name", s.__class__.__name__) for s in stages[idx + 1 :]
            ]
            return RunReport(
                status="failed",
                stage_results=results,
                limitations=limitations,
                not_run=not_run,
            )

    return RunReport(status="ok", stage_results=results, limitations=limitations)
