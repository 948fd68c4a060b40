from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mixedbuild.config import BuildConfig
from mixedbuild.discovery import BuildInputs
from mixedbuild.stage import ScratchLayout, StageContext, StageOutcome, run_stages


def _ctx(tmp_path: Path) -> StageContext:
    config = BuildConfig(
        gsi_dir=tmp_path / "gsi",
        device_dir=tmp_path / "device",
        out_dir=tmp_path / "out",
    )
    inputs = BuildInputs(
        gsi_target_files=tmp_path / "gsi" / "a-target_files-1.zip",
        device_image_zip=tmp_path / "device" / "b-img-2.zip",
        device_target_files=tmp_path / "device" / "b-target_files-2.zip",
    )
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    return StageContext(config=config, inputs=inputs, scratch=ScratchLayout(scratch))


@dataclass(frozen=True)
class _OkStage:
    name: str = "ok"

    def run(self, ctx: StageContext) -> StageOutcome:
        _ = ctx
        return StageOutcome(status="ok", details={"value": 1})


@dataclass(frozen=True)
class _SkipStage:
    name: str = "skip"

    def run(self, ctx: StageContext) -> StageOutcome:
        _ = ctx
        return StageOutcome(status="skipped")


@dataclass(frozen=True)
class _FailStage:
    name: str = "fail"

    def run(self, ctx: StageContext) -> StageOutcome:
        _ = ctx
        return StageOutcome(status="failed", limitations=["tool said no"])


@dataclass(frozen=True)
class _ExplodeStage:
    name: str = "explode"

    def run(self, ctx: StageContext) -> StageOutcome:
        _ = ctx
        raise RuntimeError("boom")


def test_stage_runner_ok_to_ok(tmp_path: Path) -> None:
    rep = run_stages([_OkStage()], _ctx(tmp_path))
    assert rep.status == "ok"
    assert [r.status for r in rep.stage_results] == ["ok"]
    assert rep.limitations == []
    assert rep.not_run == []
    assert rep.failed_stage is None


def test_stage_runner_skipped_stage_keeps_run_ok(tmp_path: Path) -> None:
    rep = run_stages([_SkipStage(), _OkStage()], _ctx(tmp_path))
    assert rep.status == "ok"
    assert [r.status for r in rep.stage_results] == ["skipped", "ok"]


def test_stage_runner_exception_becomes_failed(tmp_path: Path) -> None:
    rep = run_stages([_ExplodeStage()], _ctx(tmp_path))
    assert rep.status == "failed"
    assert rep.stage_results[0].status == "failed"
    assert "boom" in (rep.stage_results[0].error or "")
    assert rep.limitations


def test_stage_runner_stops_at_first_failure(tmp_path: Path) -> None:
    rep = run_stages(
        [_OkStage("first"), _FailStage(), _OkStage("last"), _OkStage("after")],
        _ctx(tmp_path),
    )
    assert [r.stage for r in rep.stage_results] == ["first", "fail"]
    assert rep.status == "failed"
    assert rep.not_run == ["last", "after"]
    failed = rep.failed_stage
    assert failed is not None and failed.stage == "fail"
    assert failed.limitations == ["tool said no"]
