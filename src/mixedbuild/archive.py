from __future__ import annotations

import re
import shutil
import zipfile
from collections.abc import Sequence
from pathlib import Path, PurePosixPath

from .errors import ExtractionError

_WIN_DRIVE_RE = re.compile(r"^[A-Za-z]:")

# 1980-01-01 is the earliest timestamp a zip entry can carry.
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_FILE_MODE = 0o644


def _normalize_member_name(name: str) -> str:
    s = (name or "").replace("\\", "/")
    while s.startswith("./"):
        s = s[2:]
    while "//" in s:
        s = s.replace("//", "/")
    return s


def _is_safe_member_path(name: str) -> bool:
    n = _normalize_member_name(name)
    if not n:
        return False
    if n.startswith("/"):
        return False
    if _WIN_DRIVE_RE.match(n):
        return False
    p = PurePosixPath(n)
    if any(part == ".." for part in p.parts):
        return False
    return True


def _open_zip(archive: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(archive)
    except (OSError, zipfile.BadZipFile) as exc:
        raise ExtractionError(f"cannot open {archive}: {exc}") from exc


def _extract_info(zf: zipfile.ZipFile, info: zipfile.ZipInfo, dest: Path) -> Path:
    name = _normalize_member_name(info.filename)
    target = dest / name
    if info.is_dir():
        target.mkdir(parents=True, exist_ok=True)
        return target
    target.parent.mkdir(parents=True, exist_ok=True)
    with zf.open(info, "r") as src, target.open("wb") as dst:
        shutil.copyfileobj(src, dst, 1024 * 1024)
    return target


def extract_members(archive: Path, dest: Path, members: Sequence[str]) -> list[Path]:
    """Extract exactly `members` from `archive` into `dest`, overwriting."""
    out: list[Path] = []
    with _open_zip(archive) as zf:
        by_name = {_normalize_member_name(i.filename): i for i in zf.infolist()}
        for member in members:
            info = by_name.get(_normalize_member_name(member))
            if info is None:
                raise ExtractionError(f"{archive.name}: missing member {member}")
            try:
                out.append(_extract_info(zf, info, dest))
            except (OSError, zipfile.BadZipFile) as exc:
                raise ExtractionError(
                    f"{archive.name}: cannot extract {member}: {exc}"
                ) from exc
    return out


def extract_all(archive: Path, dest: Path) -> list[Path]:
    out: list[Path] = []
    with _open_zip(archive) as zf:
        infos = zf.infolist()
        for info in infos:
            if not _is_safe_member_path(info.filename):
                raise ExtractionError(
                    f"{archive.name}: unsafe member path {info.filename!r}"
                )
        for info in infos:
            try:
                path = _extract_info(zf, info, dest)
            except (OSError, zipfile.BadZipFile) as exc:
                raise ExtractionError(
                    f"{archive.name}: cannot extract {info.filename}: {exc}"
                ) from exc
            if not info.is_dir():
                out.append(path)
    return out


def write_zip(source_dir: Path, zip_path: Path) -> int:
    """Archive every file below `source_dir` into `zip_path`.

    Entry order, timestamps and permissions are fixed, so the same tree always
    produces the same bytes. Returns the number of files written.
    """
    files = sorted(
        (p for p in source_dir.rglob("*") if p.is_file()),
        key=lambda p: p.relative_to(source_dir).as_posix(),
    )
    zip_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in files:
            info = zipfile.ZipInfo(
                path.relative_to(source_dir).as_posix(), date_time=_FIXED_DATE_TIME
            )
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = (0o100000 | _FILE_MODE) << 16
            # Lets zipfile pick zip64 up front for multi-GB images.
            info.file_size = path.stat().st_size
            with path.open("rb") as src, zf.open(info, "w") as dst:
                shutil.copyfileobj(src, dst, 1024 * 1024)
    return len(files)


def member_names(archive: Path) -> list[str]:
    with _open_zip(archive) as zf:
        return [
            _normalize_member_name(i.filename) for i in zf.infolist() if not i.is_dir()
        ]
