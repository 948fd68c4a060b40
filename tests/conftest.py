from __future__ import annotations

import io
import os
import sys
import zipfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import pytest

GSI_SYSTEM = b"gsi-system-image"
GSI_VBMETA = b"gsi-vbmeta-image"
DEVICE_SYSTEM = b"device-system-image"
DEVICE_VBMETA = b"device-vbmeta-image"
DEFAULT_SPL = "2024-05-01"


def zip_bytes(entries: dict[str, bytes]) -> bytes:
    with io.BytesIO() as bio:
        with zipfile.ZipFile(bio, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, data in entries.items():
                zf.writestr(name, data)
        return bio.getvalue()


def build_prop(spl: str | None) -> bytes:
    lines = ["# autogenerated", "ro.build.version.release=14"]
    if spl is not None:
        lines.append(f"ro.build.version.security_patch={spl}")
    return ("\n".join(lines) + "\n").encode("utf-8")


@dataclass(frozen=True)
class BuildDirs:
    gsi_dir: Path
    device_dir: Path
    out_dir: Path
    scratch_parent: Path
    gsi_target_files: Path
    device_image_zip: Path
    device_target_files: Path


MakeBuildDirs = Callable[..., BuildDirs]


@pytest.fixture
def make_build_dirs(tmp_path: Path) -> MakeBuildDirs:
    def _make(
        *,
        name: str = "case",
        device_vbmeta: bool = True,
        gsi_spl: str | None = DEFAULT_SPL,
        vendor_spl: str | None = DEFAULT_SPL,
    ) -> BuildDirs:
        root = tmp_path / name
        gsi_dir = root / "gsi"
        device_dir = root / "device"
        gsi_dir.mkdir(parents=True)
        (device_dir / "logs").mkdir(parents=True)

        gsi_tf = gsi_dir / "aosp_arm64-target_files-1001.zip"
        _ = gsi_tf.write_bytes(
            zip_bytes(
                {
                    "IMAGES/system.img": GSI_SYSTEM,
                    "IMAGES/vbmeta.img": GSI_VBMETA,
                    "IMAGES/boot.img": b"gsi-boot",
                    "META/system_matrix.xml": b"<compatibility-matrix/>",
                    "META/system_manifest.xml": b"<manifest/>",
                    "SYSTEM/build.prop": build_prop(gsi_spl),
                }
            )
        )

        images = {
            "android-info.txt": b"require board=test\n",
            "boot.img": b"device-boot",
            "system.img": DEVICE_SYSTEM,
            "vendor.img": b"device-vendor",
        }
        if device_vbmeta:
            images["vbmeta.img"] = DEVICE_VBMETA
        device_img = device_dir / "device-img-2002.zip"
        _ = device_img.write_bytes(zip_bytes(images))

        device_tf = device_dir / "device-target_files-2002.zip"
        _ = device_tf.write_bytes(
            zip_bytes(
                {
                    "META/vendor_matrix.xml": b"<compatibility-matrix/>",
                    "META/vendor_manifest.xml": b"<manifest/>",
                    "SYSTEM/build.prop": build_prop(vendor_spl),
                    "VENDOR/build.prop": b"ro.vendor.build.id=x\n",
                }
            )
        )

        _ = (device_dir / "logs" / "build.log").write_text("log\n", encoding="utf-8")
        _ = (device_dir / "installed-files.txt").write_text("x\n", encoding="utf-8")
        os.symlink("installed-files.txt", device_dir / "installed-files-link.txt")

        scratch_parent = root / "scratch"
        scratch_parent.mkdir()
        return BuildDirs(
            gsi_dir=gsi_dir,
            device_dir=device_dir,
            out_dir=root / "out",
            scratch_parent=scratch_parent,
            gsi_target_files=gsi_tf,
            device_image_zip=device_img,
            device_target_files=device_tf,
        )

    return _make


def write_script(path: Path, body: str) -> Path:
    _ = path.write_text(f"#!{sys.executable}\n{body}", encoding="utf-8")
    path.chmod(0o755)
    return path


@pytest.fixture
def recording_tool(tmp_path: Path) -> Callable[..., tuple[Path, Path]]:
    """Executable that appends its argv (one JSON list per line) to a log."""

    def _make(name: str, *, fail_on_call: int | None = None) -> tuple[Path, Path]:
        log_path = tmp_path / f"{name}.calls"
        body = (
            "import json, sys\n"
            f"log_path = {str(log_path)!r}\n"
            "with open(log_path, 'a', encoding='utf-8') as f:\n"
            "    f.write(json.dumps(sys.argv[1:]) + '\\n')\n"
            "with open(log_path, encoding='utf-8') as f:\n"
            "    calls = len(f.read().splitlines())\n"
            f"fail_on_call = {fail_on_call!r}\n"
            "if fail_on_call is not None and calls == fail_on_call:\n"
            "    print('incompatible', file=sys.stderr)\n"
            "    sys.exit(1)\n"
        )
        return write_script(tmp_path / name, body), log_path

    return _make
