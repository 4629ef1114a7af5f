"""SDK domain models shared by plugins, the manager and the CLI."""

import hashlib
from enum import Enum
from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field

CHECKSUM_TYPES = ("sha256", "md5", "sha1", "sha512")


class Checksum(BaseModel):
    """Integrity metadata of one downloadable artifact."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(default="none", description="sha256 | md5 | sha1 | sha512 | none")
    value: str = Field(default="", description="Hex digest")

    @property
    def is_none(self) -> bool:
        return self.type == "none"


# Sentinel: no integrity metadata was provided
NONE_CHECKSUM = Checksum(type="none", value="")


class Info(BaseModel):
    """One installable artifact.

    ``path`` is the download location in a PreInstall result and the
    installed directory once the artifact is on disk.
    """

    name: str = ""
    version: str = ""
    path: str = ""
    note: str = ""
    checksum: Checksum = NONE_CHECKSUM


class Package(BaseModel):
    """A main artifact plus the additional files shipped alongside it."""

    main: Info
    additions: List[Info] = Field(default_factory=list)


class UseScope(str, Enum):
    """Where a `use` applies."""

    GLOBAL = "global"
    PROJECT = "project"
    SESSION = "session"


def verify_checksum(path: Path, checksum: Checksum) -> bool:
    """Check a file against its checksum; the none sentinel always verifies."""
    if checksum.is_none:
        return True
    digest = hashlib.new(checksum.type)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(64 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest().lower() == checksum.value.strip().lower()
