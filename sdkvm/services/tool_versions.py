"""Tool-versions store - the `name version` file recording active SDKs."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ToolVersions:
    """Manages one ``.tool-versions`` file.

    File format (blank lines and ``#`` comments are ignored):
        nodejs 20.11.0
        java 21.0.2
    """

    def __init__(self, path: Path):
        self.path = path
        self._versions: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.is_file():
            return {}

        versions = {}
        for lineno, raw in enumerate(self.path.read_text(encoding="utf-8").splitlines(), start=1):
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            parts = line.split()
            if len(parts) < 2:
                logger.warning(f"{self.path}:{lineno}: expected 'name version', got {raw!r}")
                continue
            versions[parts[0]] = parts[1]
        return versions

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lines = [f"{name} {version}\n" for name, version in self.items()]
        self.path.write_text("".join(lines), encoding="utf-8")
        logger.debug(f"Saved {len(lines)} tool version(s) to {self.path}")

    def get(self, name: str) -> Optional[str]:
        return self._versions.get(name)

    def set(self, name: str, version: str) -> None:
        self._versions[name] = version
        self._save()

    def remove(self, name: str) -> bool:
        if name not in self._versions:
            return False
        del self._versions[name]
        self._save()
        return True

    def items(self) -> List[Tuple[str, str]]:
        return sorted(self._versions.items())
