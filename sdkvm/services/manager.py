"""SDK manager - top-level orchestrator for plugins and installed SDKs.

Layout under the SDK storage path:
    <sdk_path>/<sdk>/v-<version>/<sdk>-<version>/          main artifact
    <sdk_path>/<sdk>/v-<version>/<addition>-<version>/     each addition
    <sdk_path>/<sdk>/v-<version>/.sdkvm.yaml               names and versions of the above
"""

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from sdkvm.constants import (
    BUNDLED_PLUGINS_DIR,
    CACHE_DIRNAME,
    CONFIG_FILENAME,
    INSTALL_MANIFEST,
    PLUGIN_SUFFIX,
    PLUGINS_DIRNAME,
    TOOL_VERSIONS_FILENAME,
    VERSION_DIR_PREFIX,
)
from sdkvm.errors import (
    ManagerError,
    PluginNotFoundError,
    SdkvmError,
    VersionNotFoundError,
)
from sdkvm.models.sdk import Info, Package, UseScope
from sdkvm.plugins.discovery import PluginDiscovery
from sdkvm.plugins.plugin import HOOK_NAMES, PRE_USE_HOOK, LuaPlugin
from sdkvm.services.config_service import AppConfig, ConfigService
from sdkvm.services.downloader import Downloader
from sdkvm.services.tool_versions import ToolVersions
from sdkvm.utils.env import current_arch_type, current_os_type, merge_envs

logger = logging.getLogger(__name__)

DOWNLOAD_DIRNAME = ".download"


class SdkManager:
    """Coordinates plugin discovery, installs, and version selection."""

    def __init__(
        self,
        home: Path,
        config: Optional[AppConfig] = None,
        bundled_dir: Optional[Path] = BUNDLED_PLUGINS_DIR,
    ):
        self.home = Path(home)
        self.config = config or ConfigService(self.home / CONFIG_FILENAME).config
        self.os_type = current_os_type()
        self.arch_type = current_arch_type()

        self.plugins_dir = self.home / PLUGINS_DIRNAME
        if self.config.storage.sdk_path:
            self.sdk_path = Path(self.config.storage.sdk_path).expanduser()
        else:
            self.sdk_path = self.home / CACHE_DIRNAME
        self.global_versions = ToolVersions(self.home / TOOL_VERSIONS_FILENAME)

        # Build search paths: (path, source_label)
        search_paths = [(self.plugins_dir, "installed")]
        if bundled_dir is not None:
            search_paths.append((bundled_dir, "bundled"))
        self.discovery = PluginDiscovery(search_paths)
        self.downloader = Downloader(proxy=self.config.proxy_url)

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------

    def load_plugin(self, name: str) -> LuaPlugin:
        """Load the plugin providing SDK ``name``; the caller must close it."""
        source = self.discovery.find(name)
        if source is None:
            raise PluginNotFoundError(f"plugin '{name}' not found, add it with 'sdkvm add'")
        return LuaPlugin.load(source.read(), source.path, self)

    def add_plugin(self, source_path: Union[str, Path]) -> dict:
        """Validate a plugin script and copy it into the plugins directory.

        Returns:
            Metadata of the added plugin
        """
        source_path = Path(source_path).expanduser().resolve()
        if not source_path.is_file():
            raise PluginNotFoundError(f"plugin file not found: {source_path}")

        content = source_path.read_text(encoding="utf-8")
        with LuaPlugin.load(content, source_path, self) as plugin:
            info = plugin.to_dict()
            sdk_name = plugin.name.lower()

        dest = self.plugins_dir / f"{sdk_name}{PLUGIN_SUFFIX}"
        if dest.exists():
            raise ManagerError(f"plugin '{sdk_name}' already installed at {dest}")

        self.plugins_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source_path, dest)
        logger.info(f"Added plugin '{sdk_name}' to {dest}")
        info["sdk"] = sdk_name
        return info

    def remove_plugin(self, name: str) -> None:
        path = self.plugins_dir / f"{name.lower()}{PLUGIN_SUFFIX}"
        if not path.is_file():
            raise PluginNotFoundError(f"plugin '{name}' is not installed")
        path.unlink()
        logger.info(f"Removed plugin '{name}'")

    def list_plugins(self) -> List[dict]:
        """Metadata of every discoverable plugin; broken ones carry an ``error``."""
        result = []
        for source in self.discovery.discover_all():
            entry = {"sdk": source.name, "source": source.source, "path": str(source.path), "error": None}
            try:
                with LuaPlugin.load(source.read(), source.path, self) as plugin:
                    entry.update(plugin.to_dict())
            except SdkvmError as e:
                logger.warning(f"Failed to load plugin {source.path}: {e}")
                entry["error"] = str(e)
            result.append(entry)
        return result

    def plugin_info(self, name: str) -> dict:
        with self.load_plugin(name) as plugin:
            info = plugin.to_dict()
            info["hooks"] = [hook for hook in HOOK_NAMES if plugin.has_function(hook)]
        return info

    # ------------------------------------------------------------------
    # SDK versions
    # ------------------------------------------------------------------

    def search(self, name: str) -> List[Package]:
        with self.load_plugin(name) as plugin:
            return plugin.available()

    def version_dir(self, name: str, version: str) -> Path:
        return self.sdk_path / name.lower() / f"{VERSION_DIR_PREFIX}{version}"

    def install(self, name: str, version: str) -> Package:
        """Resolve, download and unpack one SDK version.

        Raises:
            VersionNotFoundError: If the plugin has no source for ``version``
        """
        name = name.lower()
        with self.load_plugin(name) as plugin:
            package = plugin.pre_install(version)
            if package is None:
                raise VersionNotFoundError(f"{plugin.label(version)} not found")

            resolved = package.main.version
            root = self.version_dir(name, resolved)
            if root.exists():
                logger.warning(f"{plugin.label(resolved)} is already installed")
                return self._read_package(name, resolved, root)

            logger.info(f"Installing {plugin.label(resolved)}")
            try:
                main = self._install_info(package.main, root, f"{name}-{resolved}")
                additions = [
                    self._install_info(info, root, f"{info.name}-{info.version}")
                    for info in package.additions
                ]
                shutil.rmtree(root / DOWNLOAD_DIRNAME, ignore_errors=True)
                plugin.post_install(root, [main, *additions])
                result = Package(main=main, additions=additions)
                self._write_manifest(root, result)
            except BaseException:
                # Interrupted installs must not look installed
                shutil.rmtree(root, ignore_errors=True)
                raise

        logger.info(f"Installed {name}@{resolved} to {root}")
        return result

    def _install_info(self, info: Info, root: Path, dirname: str) -> Info:
        artifact = self.downloader.fetch(info, root / DOWNLOAD_DIRNAME)
        target = self.downloader.unpack(artifact, root / dirname)
        return info.model_copy(update={"path": str(target)})

    def uninstall(self, name: str, version: str) -> None:
        name = name.lower()
        root = self.version_dir(name, version)
        if not root.is_dir():
            raise VersionNotFoundError(f"{name}@{version} is not installed")
        shutil.rmtree(root)
        if self.global_versions.get(name) == version:
            self.global_versions.remove(name)
        logger.info(f"Uninstalled {name}@{version}")

    def installed(self, name: str) -> List[Package]:
        """Installed packages of one SDK, rebuilt from each version's install record."""
        name = name.lower()
        sdk_dir = self.sdk_path / name
        if not sdk_dir.is_dir():
            return []

        packages = []
        for version_dir in sorted(sdk_dir.iterdir()):
            if not version_dir.is_dir() or not version_dir.name.startswith(VERSION_DIR_PREFIX):
                continue
            version = version_dir.name[len(VERSION_DIR_PREFIX):]
            packages.append(self._read_package(name, version, version_dir))
        return packages

    def installed_sdks(self) -> List[str]:
        if not self.sdk_path.is_dir():
            return []
        return sorted(p.name for p in self.sdk_path.iterdir() if p.is_dir())

    def _write_manifest(self, root: Path, package: Package) -> None:
        """Write the install record; paths are relative to ``root``."""

        def record(info: Info) -> dict:
            data = info.model_dump(exclude={"checksum"})
            data["path"] = Path(info.path).relative_to(root).as_posix()
            return data

        data = {
            "main": record(package.main),
            "additions": [record(info) for info in package.additions],
        }
        with open(root / INSTALL_MANIFEST, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)

    def _read_package(self, name: str, version: str, root: Path) -> Package:
        """Rebuild an installed package from its manifest.

        Without a readable manifest only the main artifact is reported.
        """
        main = Info(name=name, version=version, path=str(root / f"{name}-{version}"))
        manifest = root / INSTALL_MANIFEST
        if not manifest.is_file():
            logger.warning(f"{name}@{version} has no {INSTALL_MANIFEST}, additions are not reported")
            return Package(main=main)

        try:
            with open(manifest, "r", encoding="utf-8") as f:
                package = Package.model_validate(yaml.safe_load(f) or {})
        except (yaml.YAMLError, OSError, ValidationError) as e:
            logger.error(f"Error loading install manifest {manifest}: {e}")
            return Package(main=main)

        def resolve(info: Info) -> Info:
            return info.model_copy(update={"path": str(root / info.path)})

        return Package(main=resolve(package.main), additions=[resolve(info) for info in package.additions])

    def use(
        self,
        name: str,
        version: str,
        scope: UseScope = UseScope.SESSION,
        cwd: Optional[Path] = None,
    ) -> Dict[str, str]:
        """Select ``version`` for a scope and return its environment variables.

        The plugin's PreUse hook, when present, may redirect the version.
        """
        name = name.lower()
        scope = UseScope(scope)
        cwd = Path(cwd) if cwd else Path.cwd()

        with self.load_plugin(name) as plugin:
            installed = self.installed(name)
            if plugin.has_function(PRE_USE_HOOK):
                previous = self.current(name, cwd) or ""
                resolved = plugin.pre_use(version, previous, scope, cwd, installed)
                if resolved and resolved != version:
                    logger.info(f"PreUse redirected {plugin.label(version)} to {resolved}")
                    version = resolved

            package = next((p for p in installed if p.main.version == version), None)
            if package is None:
                raise VersionNotFoundError(f"{plugin.label(version)} is not installed")
            env = plugin.env_keys(package)

        if scope == UseScope.GLOBAL:
            self.global_versions.set(name, version)
        elif scope == UseScope.PROJECT:
            ToolVersions(cwd / TOOL_VERSIONS_FILENAME).set(name, version)
        logger.info(f"Using {name}@{version} ({scope.value})")
        return env

    def current(self, name: str, cwd: Optional[Path] = None) -> Optional[str]:
        """Active version: nearest project ``.tool-versions`` first, then global."""
        name = name.lower()
        project = self._project_versions(Path(cwd) if cwd else Path.cwd())
        if project is not None and project.get(name):
            return project.get(name)
        return self.global_versions.get(name)

    def env(self, cwd: Optional[Path] = None) -> Dict[str, str]:
        """Merged environment variables of every active SDK."""
        cwd = Path(cwd) if cwd else Path.cwd()
        names = {name for name, _ in self.global_versions.items()}
        project = self._project_versions(cwd)
        if project is not None:
            names.update(name for name, _ in project.items())

        envs = []
        for name in sorted(names):
            version = self.current(name, cwd)
            package = next((p for p in self.installed(name) if p.main.version == version), None)
            if package is None:
                logger.warning(f"{name}@{version} is active but not installed, skipping")
                continue
            try:
                with self.load_plugin(name) as plugin:
                    envs.append(plugin.env_keys(package))
            except SdkvmError as e:
                logger.error(f"Failed to resolve environment for {name}@{version}: {e}")
        return merge_envs(envs)

    def _project_versions(self, cwd: Path) -> Optional[ToolVersions]:
        """Nearest ``.tool-versions`` in cwd or its parents, excluding the global file."""
        global_file = self.global_versions.path.resolve()
        for directory in [cwd, *cwd.parents]:
            candidate = directory / TOOL_VERSIONS_FILENAME
            if candidate.is_file() and candidate.resolve() != global_file:
                return ToolVersions(candidate)
        return None
