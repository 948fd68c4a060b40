from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, model_validator

ENV_CHECK_TOOL = "MIXED_BUILD_CHECK_TOOL"
ENV_TMPDIR = "MIXED_BUILD_TMPDIR"
ENV_LOG_LEVEL = "MIXED_BUILD_LOG_LEVEL"

DEFAULT_LOG_LEVEL = "INFO"


class BuildConfig(BaseModel):
    """Everything a mixed build run needs, resolved once from the command line."""

    model_config = ConfigDict(frozen=True)

    gsi_dir: Path
    device_dir: Path
    out_dir: Path
    check_tool: Path | None = None
    vendor_version: str | None = None
    modify_script: Path | None = None
    scratch_parent: Path | None = None
    report_path: Path | None = None

    @model_validator(mode="after")
    def _check_modify_pairing(self) -> BuildConfig:
        has_version = bool(self.vendor_version)
        has_script = self.modify_script is not None
        if has_version != has_script:
            raise ValueError(
                "vendor version (-v) and modify script (-m) must be given together"
            )
        if self.modify_script is not None and not self.modify_script.is_file():
            raise ValueError(f"modify script not found: {self.modify_script}")
        return self

    @property
    def patch_requested(self) -> bool:
        return bool(self.vendor_version)


def load_environment() -> None:
    # Real environment variables win over .env entries.
    path = find_dotenv(usecwd=True)
    if path:
        _ = load_dotenv(path, override=False)


def env_path(name: str) -> Path | None:
    raw = os.getenv(name, "").strip()
    return Path(raw) if raw else None


def env_log_level() -> int:
    name = os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO
