from __future__ import annotations


class MixedBuildError(Exception):
    pass


class ArchiveNotFoundError(MixedBuildError):
    def __init__(self, directory: object, pattern: str) -> None:
        super().__init__(f"No archive matching '{pattern}' found in {directory}")
        self.directory = directory
        self.pattern = pattern


class ExtractionError(MixedBuildError):
    pass
