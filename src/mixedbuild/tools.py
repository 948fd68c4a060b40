from __future__ import annotations

"""External collaborators: the compatibility checker and the system modifier.

Both are blocking calls whose stdout/stderr go straight to ours, so their
diagnostics reach the user unmodified.
"""

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    argv: list[str]
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def run_tool(argv: Sequence[str]) -> ToolResult:
    args = [str(a) for a in argv]
    log.debug("Running: %s", " ".join(args))
    res = subprocess.run(args, check=False)
    return ToolResult(argv=args, returncode=int(res.returncode))


class Verifier(Protocol):
    def verify(self, manifest: Path, matrix: Path) -> ToolResult: ...


class Patcher(Protocol):
    def patch(
        self,
        vendor_version: str,
        target_files: Path,
        patch_level_override: str | None = None,
    ) -> ToolResult: ...


@dataclass(frozen=True)
class CheckVintfVerifier:
    tool: Path

    def verify(self, manifest: Path, matrix: Path) -> ToolResult:
        return run_tool([self.tool, manifest, matrix])


@dataclass(frozen=True)
class ModifySystemPatcher:
    script: Path

    def patch(
        self,
        vendor_version: str,
        target_files: Path,
        patch_level_override: str | None = None,
    ) -> ToolResult:
        argv: list[object] = [self.script, "-v", vendor_version, target_files]
        if patch_level_override is not None:
            argv.append(patch_level_override)
        return run_tool([str(a) for a in argv])
