from __future__ import annotations

from pathlib import Path

SECURITY_PATCH_PROPERTY = "ro.build.version.security_patch"


def read_properties(path: Path) -> dict[str, str]:
    props: dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8", errors="replace").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        props[key.strip()] = value.strip()
    return props


def security_patch_level(path: Path) -> str | None:
    value = read_properties(path).get(SECURITY_PATCH_PROPERTY)
    return value or None
