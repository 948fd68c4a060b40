from __future__ import annotations

from dataclasses import dataclass

from .extraction import (
    SYSTEM_MANIFEST,
    SYSTEM_MATRIX,
    VENDOR_MANIFEST,
    VENDOR_MATRIX,
)
from .schema import JsonValue
from .stage import StageContext, StageOutcome
from .tools import Verifier


@dataclass(frozen=True)
class CompatibilityStage:
    """Checks device vendor vs GSI system interfaces, in both directions."""

    verifier: Verifier | None

    @property
    def name(self) -> str:
        return "compatibility"

    def run(self, ctx: StageContext) -> StageOutcome:
        if self.verifier is None:
            return StageOutcome(status="skipped", details={"reason": "no checker"})

        system_dir = ctx.scratch.system_dir
        device_dir = ctx.scratch.device_target_files_dir
        checks = (
            (
                "vendor_manifest_vs_system_matrix",
                device_dir / VENDOR_MANIFEST,
                system_dir / SYSTEM_MATRIX,
            ),
            (
                "system_manifest_vs_vendor_matrix",
                system_dir / SYSTEM_MANIFEST,
                device_dir / VENDOR_MATRIX,
            ),
        )

        details: dict[str, JsonValue] = {}
        for label, manifest, matrix in checks:
            res = self.verifier.verify(manifest, matrix)
            details[label] = res.returncode
            if not res.ok:
                return StageOutcome(
                    status="failed",
                    details=details,
                    limitations=[
                        f"Compatibility check '{label}' failed with return code {res.returncode}"
                    ],
                )
        return StageOutcome(status="ok", details=details)
