from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass

from .archive import extract_members
from .buildprop import security_patch_level
from .extraction import SYSTEM_BUILD_PROP, SYSTEM_IMG
from .schema import JsonValue
from .stage import StageContext, StageOutcome
from .tools import Patcher

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatchSystemStage:
    patcher: Patcher | None

    @property
    def name(self) -> str:
        return "patch_system"

    def run(self, ctx: StageContext) -> StageOutcome:
        vendor_version = ctx.config.vendor_version
        if not vendor_version or self.patcher is None:
            return StageOutcome(
                status="skipped", details={"reason": "no vendor version"}
            )

        scratch = ctx.scratch
        # The input archive may be a read-only or symlinked build artifact.
        target_files = scratch.target_files_copy(ctx.inputs)
        _ = shutil.copyfile(ctx.inputs.gsi_target_files, target_files)

        system_spl = security_patch_level(scratch.system_dir / SYSTEM_BUILD_PROP)
        vendor_spl = security_patch_level(
            scratch.device_target_files_dir / SYSTEM_BUILD_PROP
        )
        override: str | None = None
        if system_spl != vendor_spl:
            log.info(
                "Security patch level mismatch: system=%s vendor=%s",
                system_spl,
                vendor_spl,
            )
            # A missing vendor value still goes through, as an empty argument.
            override = vendor_spl or ""

        details: dict[str, JsonValue] = {
            "vendor_version": vendor_version,
            "system_security_patch": system_spl,
            "vendor_security_patch": vendor_spl,
            "security_patch_override": override,
        }

        res = self.patcher.patch(vendor_version, target_files, override)
        details["returncode"] = res.returncode
        if not res.ok:
            return StageOutcome(
                status="failed",
                details=details,
                limitations=[
                    f"System modification failed with return code {res.returncode}"
                ],
            )

        _ = extract_members(target_files, scratch.system_dir, (SYSTEM_IMG,))
        return StageOutcome(status="ok", details=details)
