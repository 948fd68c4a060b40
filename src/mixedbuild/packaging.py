from __future__ import annotations

import shutil
from dataclasses import dataclass

from .archive import write_zip
from .extraction import SYSTEM_IMG, VBMETA_IMG
from .schema import JsonValue
from .stage import StageContext, StageOutcome


@dataclass(frozen=True)
class SubstituteImagesStage:
    """Drops the GSI system image (and vbmeta, when the device has one) into
    the device image set."""

    @property
    def name(self) -> str:
        return "substitute"

    def run(self, ctx: StageContext) -> StageOutcome:
        scratch = ctx.scratch
        images_dir = scratch.device_images_dir
        replaced: list[JsonValue] = []

        _ = shutil.copyfile(scratch.system_dir / SYSTEM_IMG, images_dir / "system.img")
        replaced.append("system.img")

        # Only replace vbmeta; a new file would surprise the flashing step.
        device_vbmeta = images_dir / "vbmeta.img"
        if device_vbmeta.is_file():
            _ = shutil.copyfile(scratch.system_dir / VBMETA_IMG, device_vbmeta)
            replaced.append("vbmeta.img")

        return StageOutcome(status="ok", details={"replaced": replaced})


@dataclass(frozen=True)
class PackageStage:
    @property
    def name(self) -> str:
        return "package"

    def run(self, ctx: StageContext) -> StageOutcome:
        scratch = ctx.scratch
        count = write_zip(scratch.device_images_dir, scratch.mixed_zip)
        details: dict[str, JsonValue] = {
            "archive": scratch.mixed_zip.name,
            "files": count,
            "size_bytes": scratch.mixed_zip.stat().st_size,
        }
        return StageOutcome(status="ok", details=details)
