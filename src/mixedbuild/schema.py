from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, TypeAlias, cast

if TYPE_CHECKING:
    from .config import BuildConfig
    from .discovery import BuildInputs
    from .stage import RunReport

JsonPrimitive: TypeAlias = str | int | float | bool | None
JsonValue: TypeAlias = JsonPrimitive | list["JsonValue"] | dict[str, "JsonValue"]

REPORT_SCHEMA_VERSION = "1.0"


def _opt_str(value: object) -> str | None:
    return None if value is None else str(value)


def run_report_to_json(
    report: RunReport,
    config: BuildConfig,
    inputs: BuildInputs | None,
) -> dict[str, JsonValue]:
    stages: list[JsonValue] = [
        cast(dict[str, JsonValue], asdict(res)) for res in report.stage_results
    ]
    input_obj: dict[str, JsonValue] | None = None
    if inputs is not None:
        input_obj = {
            "gsi_target_files": str(inputs.gsi_target_files),
            "device_image_zip": str(inputs.device_image_zip),
            "device_target_files": str(inputs.device_target_files),
        }
    return {
        "schema_version": REPORT_SCHEMA_VERSION,
        "status": report.status,
        "config": {
            "gsi_dir": str(config.gsi_dir),
            "device_dir": str(config.device_dir),
            "out_dir": str(config.out_dir),
            "check_tool": _opt_str(config.check_tool),
            "vendor_version": config.vendor_version,
            "modify_script": _opt_str(config.modify_script),
        },
        "inputs": input_obj,
        "stages": stages,
        "not_run": list(report.not_run),
        "limitations": list(report.limitations),
    }


def write_run_report(path: Path, obj: dict[str, JsonValue]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    _ = path.write_text(
        json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=True) + "\n",
        encoding="utf-8",
    )
