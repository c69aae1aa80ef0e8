"""Artifact filenames: ``name+version+branch+platform.zip``.

The version field may carry a creation timestamp after the three version
components, e.g. ``core+1.2.0.2024.3.5.14.2.9+default+Win32.zip``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from ..constants import Constants
from ..errors import FormatError
from ..versioning.version import ComparableVersion


@dataclass(frozen=True)
class PackageFilename:
    """Parsed artifact filename."""
    name: str
    version: ComparableVersion = field(default_factory=lambda: ComparableVersion(Constants.DEFAULT_VERSION))
    branch: str = Constants.DEFAULT_BRANCH
    platform: str = Constants.DEFAULT_PLATFORM
    created: Optional[datetime] = None
    extension: str = Constants.ARCHIVE_EXTENSION

    @classmethod
    def parse(cls, filename: str) -> "PackageFilename":
        """Parse a filename, with or without directory and extension."""
        base = os.path.basename(filename.strip())
        extension = ""
        if base.lower().endswith(Constants.ARCHIVE_EXTENSION):
            extension = Constants.ARCHIVE_EXTENSION
            base = base[: -len(Constants.ARCHIVE_EXTENSION)]
        parts = [p for p in base.split("+") if p]
        if len(parts) < 2 or len(parts) > 4:
            raise FormatError(f"Invalid package filename '{filename}': expected name+version+branch+platform")

        numbers = [p for p in parts[1].split(".") if p]
        if not numbers or (len(numbers) > 3 and len(numbers) != 9):
            raise FormatError(f"Invalid package filename '{filename}': unexpected version field '{parts[1]}'")
        version = ComparableVersion(".".join(numbers[:3]))
        created = None
        if len(numbers) == 9:
            if not all(n.isdigit() for n in numbers[3:]):
                raise FormatError(f"Invalid package filename '{filename}': bad timestamp '{parts[1]}'")
            try:
                created = datetime(*(int(n) for n in numbers[3:]))
            except ValueError as exc:
                raise FormatError(f"Invalid package filename '{filename}': {exc}") from exc

        return cls(
            name=parts[0],
            version=version,
            branch=parts[2] if len(parts) > 2 else Constants.DEFAULT_BRANCH,
            platform=parts[3] if len(parts) > 3 else Constants.DEFAULT_PLATFORM,
            created=created,
            extension=extension or Constants.ARCHIVE_EXTENSION,
        )

    @property
    def version_field(self) -> str:
        if self.created is None:
            return str(self.version)
        stamp = self.created
        return (
            f"{self.version}.{stamp.year}.{stamp.month}.{stamp.day}"
            f".{stamp.hour}.{stamp.minute}.{stamp.second}"
        )

    @property
    def stem(self) -> str:
        return f"{self.name}+{self.version_field}+{self.branch}+{self.platform}"

    @property
    def filename(self) -> str:
        return self.stem + self.extension

    def with_version(self, version: ComparableVersion) -> "PackageFilename":
        return replace(self, version=version)

    def __str__(self) -> str:
        return self.filename
