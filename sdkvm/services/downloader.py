"""Downloader - fetches artifacts, verifies checksums and unpacks archives."""

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import aiohttp

from sdkvm.errors import ChecksumMismatchError, ManagerError
from sdkvm.models.sdk import Info, verify_checksum
from sdkvm.utils import http as http_utils

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (
    ".zip", ".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz",
)


def is_url(location: str) -> bool:
    return urlparse(location).scheme in ("http", "https")


def is_archive(path: Path) -> bool:
    return path.name.lower().endswith(ARCHIVE_SUFFIXES)


class Downloader:
    """Turns an Info produced by PreInstall into files on disk."""

    def __init__(self, proxy: Optional[str] = None):
        self.proxy = proxy

    def fetch(self, info: Info, dest_dir: Path) -> Path:
        """Download or copy the artifact at ``info.path`` into ``dest_dir``.

        Returns:
            Path of the fetched file

        Raises:
            ManagerError: If there is nothing to fetch or the transfer failed
            ChecksumMismatchError: If the file does not match ``info.checksum``
        """
        location = info.path
        if not location:
            raise ManagerError(f"no download location for {info.name}@{info.version}")

        dest_dir.mkdir(parents=True, exist_ok=True)
        if is_url(location):
            filename = Path(urlparse(location).path).name or f"{info.name}-{info.version}"
            target = dest_dir / filename
            logger.info(f"Downloading {location}")
            try:
                http_utils.download(location, target, proxy=self.proxy)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                target.unlink(missing_ok=True)
                raise ManagerError(f"failed to download {location}: {e}") from e
        else:
            source = Path(location).expanduser()
            if not source.is_file():
                raise ManagerError(f"file not found: {source}")
            target = dest_dir / source.name
            shutil.copy2(source, target)

        if not verify_checksum(target, info.checksum):
            target.unlink(missing_ok=True)
            raise ChecksumMismatchError(
                f"{info.checksum.type} checksum mismatch for {target.name}"
            )
        return target

    def unpack(self, artifact: Path, target_dir: Path) -> Path:
        """Extract an archive (or move a plain file) into ``target_dir``.

        A single top-level directory inside the archive is flattened away.
        """
        target_dir.mkdir(parents=True, exist_ok=True)
        if not is_archive(artifact):
            shutil.move(str(artifact), str(target_dir / artifact.name))
            return target_dir

        logger.info(f"Unpacking {artifact.name}")
        with tempfile.TemporaryDirectory(dir=target_dir.parent) as tmp:
            shutil.unpack_archive(str(artifact), tmp)
            entries = list(Path(tmp).iterdir())
            root = entries[0] if len(entries) == 1 and entries[0].is_dir() else Path(tmp)
            for entry in root.iterdir():
                shutil.move(str(entry), str(target_dir / entry.name))
        artifact.unlink()
        return target_dir
