from __future__ import annotations

import logging
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .compat import CompatibilityStage
from .config import BuildConfig
from .discovery import BuildInputs, locate_inputs
from .distribution import DistributeStage
from .extraction import ExtractStage
from .packaging import PackageStage, SubstituteImagesStage
from .patch import PatchSystemStage
from .schema import run_report_to_json, write_run_report
from .stage import RunReport, ScratchLayout, Stage, StageContext, run_stages
from .tools import CheckVintfVerifier, ModifySystemPatcher, Patcher, Verifier

log = logging.getLogger(__name__)


@contextmanager
def scratch_dir(parent: Path | None = None) -> Iterator[Path]:
    """Temporary working directory, removed however the block exits."""
    if parent is not None:
        parent.mkdir(parents=True, exist_ok=True)
    with tempfile.TemporaryDirectory(
        prefix="mixedbuild-", dir=str(parent) if parent is not None else None
    ) as tmp:
        log.debug("Scratch directory: %s", tmp)
        yield Path(tmp)


def default_verifier(config: BuildConfig) -> Verifier | None:
    tool = config.check_tool
    if tool is None:
        return None
    if not tool.is_file():
        log.warning("Compatibility checker not found, skipping checks: %s", tool)
        return None
    return CheckVintfVerifier(tool)


def default_patcher(config: BuildConfig) -> Patcher | None:
    if config.modify_script is None:
        return None
    return ModifySystemPatcher(config.modify_script)


def build_stages(verifier: Verifier | None, patcher: Patcher | None) -> list[Stage]:
    return [
        ExtractStage(),
        CompatibilityStage(verifier),
        PatchSystemStage(patcher),
        SubstituteImagesStage(),
        PackageStage(),
        DistributeStage(),
    ]


def _write_report(
    config: BuildConfig, report: RunReport, inputs: BuildInputs | None
) -> None:
    if config.report_path is None:
        return
    write_run_report(config.report_path, run_report_to_json(report, config, inputs))
    log.info("Run report written to %s", config.report_path)


def build_mixed(
    config: BuildConfig,
    *,
    verifier: Verifier | None = None,
    patcher: Patcher | None = None,
) -> RunReport:
    """Assemble the mixed build described by `config`.

    Raises `ArchiveNotFoundError` when an input archive is missing. Stage
    failures do not raise; they come back as a `failed` report.
    """
    inputs = locate_inputs(config)
    if verifier is None:
        verifier = default_verifier(config)
    if patcher is None:
        patcher = default_patcher(config)

    with scratch_dir(config.scratch_parent) as root:
        ctx = StageContext(config=config, inputs=inputs, scratch=ScratchLayout(root))
        report = run_stages(build_stages(verifier, patcher), ctx)

    _write_report(config, report, inputs)
    return report
