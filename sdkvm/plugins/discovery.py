"""Plugin discovery - scans directories for Lua plugin scripts."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from sdkvm.constants import PLUGIN_SUFFIX

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PluginSource:
    """A plugin script found on disk."""

    name: str  # SDK name, taken from the file stem
    path: Path
    source: str  # "installed" | "bundled"

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8")


class PluginDiscovery:
    """Discovers plugins by scanning directories for ``*.lua`` scripts."""

    def __init__(self, search_paths: List[Tuple[Path, str]]):
        """Initialize discovery with search paths.

        Args:
            search_paths: (directory, source_label) pairs, searched in order
        """
        self.search_paths = search_paths

    def discover_all(self) -> List[PluginSource]:
        """Discover all plugins from configured search paths.

        Returns:
            One PluginSource per SDK name; the first path that provides a name wins
        """
        discovered = []
        seen_names = set()

        for search_path, source in self.search_paths:
            if not search_path.is_dir():
                logger.debug(f"Plugin search path does not exist: {search_path}")
                continue

            for plugin in self._scan_directory(search_path, source):
                if plugin.name in seen_names:
                    logger.warning(
                        f"Duplicate plugin '{plugin.name}' found at {plugin.path}, "
                        f"skipping (first-found wins)"
                    )
                    continue
                seen_names.add(plugin.name)
                discovered.append(plugin)

        logger.debug(f"Discovered {len(discovered)} plugin(s)")
        return discovered

    def find(self, name: str) -> Optional[PluginSource]:
        """Find the plugin providing SDK ``name`` (case-insensitive)."""
        name = name.lower()
        for plugin in self.discover_all():
            if plugin.name == name:
                return plugin
        return None

    def _scan_directory(self, search_path: Path, source: str) -> List[PluginSource]:
        return [
            PluginSource(name=item.stem.lower(), path=item, source=source)
            for item in sorted(search_path.iterdir())
            if item.is_file() and item.suffix == PLUGIN_SUFFIX
        ]
