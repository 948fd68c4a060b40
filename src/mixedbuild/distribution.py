from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from .schema import JsonValue
from .stage import StageContext, StageOutcome

EXCLUDED_DIRS: tuple[str, ...] = ("logs",)


def mirror_tree(src: Path, dest: Path) -> None:
    """Copy `src` into `dest`, following symlinks and skipping log dirs."""
    dest.mkdir(parents=True, exist_ok=True)
    _ = shutil.copytree(
        src,
        dest,
        symlinks=False,
        ignore=shutil.ignore_patterns(*EXCLUDED_DIRS),
        dirs_exist_ok=True,
    )


@dataclass(frozen=True)
class DistributeStage:
    @property
    def name(self) -> str:
        return "distribute"

    def run(self, ctx: StageContext) -> StageOutcome:
        out_dir = ctx.config.out_dir
        mirror_tree(ctx.config.device_dir, out_dir)

        # Same file name as the device image zip, mixed content.
        dist_zip = out_dir / ctx.inputs.device_image_zip.name
        _ = shutil.copyfile(ctx.scratch.mixed_zip, dist_zip)

        details: dict[str, JsonValue] = {
            "out_dir": str(out_dir),
            "archive": dist_zip.name,
        }
        return StageOutcome(status="ok", details=details)
