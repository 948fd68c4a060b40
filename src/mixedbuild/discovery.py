from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .config import BuildConfig
from .errors import ArchiveNotFoundError

TARGET_FILES_PATTERN = "*-target_files-*.zip"
IMAGE_ZIP_PATTERN = "*-img-*.zip"

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildInputs:
    gsi_target_files: Path
    device_image_zip: Path
    device_target_files: Path


def find_archive(directory: Path, pattern: str) -> Path:
    """Return the archive in `directory` whose name matches `pattern`.

    Matches are ordered by file name. When several archives match, the first
    one is used and the rest are reported as a warning.
    """
    matches = sorted(p for p in directory.glob(pattern) if p.is_file())
    if not matches:
        raise ArchiveNotFoundError(directory, pattern)
    if len(matches) > 1:
        log.warning(
            "Multiple archives match '%s' in %s, using %s (also found: %s)",
            pattern,
            directory,
            matches[0].name,
            ", ".join(p.name for p in matches[1:]),
        )
    return matches[0]


def locate_inputs(config: BuildConfig) -> BuildInputs:
    inputs = BuildInputs(
        gsi_target_files=find_archive(config.gsi_dir, TARGET_FILES_PATTERN),
        device_image_zip=find_archive(config.device_dir, IMAGE_ZIP_PATTERN),
        device_target_files=find_archive(config.device_dir, TARGET_FILES_PATTERN),
    )
    log.info("GSI target files: %s", inputs.gsi_target_files)
    log.info("Device images: %s", inputs.device_image_zip)
    log.info("Device target files: %s", inputs.device_target_files)
    return inputs
