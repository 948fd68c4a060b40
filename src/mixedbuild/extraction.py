from __future__ import annotations

from dataclasses import dataclass

from .archive import extract_all, extract_members
from .schema import JsonValue
from .stage import StageContext, StageOutcome

SYSTEM_IMG = "IMAGES/system.img"
VBMETA_IMG = "IMAGES/vbmeta.img"
SYSTEM_MATRIX = "META/system_matrix.xml"
SYSTEM_MANIFEST = "META/system_manifest.xml"
VENDOR_MATRIX = "META/vendor_matrix.xml"
VENDOR_MANIFEST = "META/vendor_manifest.xml"
SYSTEM_BUILD_PROP = "SYSTEM/build.prop"

GSI_TARGET_FILES_MEMBERS: tuple[str, ...] = (
    SYSTEM_IMG,
    VBMETA_IMG,
    SYSTEM_MATRIX,
    SYSTEM_MANIFEST,
    SYSTEM_BUILD_PROP,
)
DEVICE_TARGET_FILES_MEMBERS: tuple[str, ...] = (
    VENDOR_MATRIX,
    VENDOR_MANIFEST,
    SYSTEM_BUILD_PROP,
)


@dataclass(frozen=True)
class ExtractStage:
    @property
    def name(self) -> str:
        return "extract"

    def run(self, ctx: StageContext) -> StageOutcome:
        scratch = ctx.scratch
        inputs = ctx.inputs

        gsi = extract_members(
            inputs.gsi_target_files, scratch.system_dir, GSI_TARGET_FILES_MEMBERS
        )
        images = extract_all(inputs.device_image_zip, scratch.device_images_dir)
        device = extract_members(
            inputs.device_target_files,
            scratch.device_target_files_dir,
            DEVICE_TARGET_FILES_MEMBERS,
        )

        details: dict[str, JsonValue] = {
            "gsi_target_files_members": len(gsi),
            "device_image_files": len(images),
            "device_target_files_members": len(device),
        }
        return StageOutcome(status="ok", details=details)
