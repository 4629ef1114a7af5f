"""Lua plugin object - loads a plugin script and drives its lifecycle hooks."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import lupa

from sdkvm.constants import RUNTIME_VERSION
from sdkvm.errors import (
    HookContractError,
    LoadError,
    MissingNameError,
    MissingVersionError,
    NoEnvironmentVariablesError,
)
from sdkvm.luai.encoding import lua_type_of, marshal, sequence_items, unmarshal, unmarshal_list
from sdkvm.luai.models import (
    AvailableHookCtx,
    AvailableHookResultItem,
    EnvKeysHookCtx,
    EnvKeysHookResultItem,
    LuaModel,
    LuaSDKInfo,
    PostInstallHookCtx,
    PreInstallHookCtx,
    PreUseHookCtx,
    PreUseHookResult,
)
from sdkvm.luai.vm import LuaVM
from sdkvm.models.sdk import Info, Package, UseScope
from sdkvm.plugins.checksum import resolve_checksum
from sdkvm.utils.env import is_valid_env_key

logger = logging.getLogger(__name__)

PLUGIN_OBJECT_KEY = "PLUGIN"

AVAILABLE_HOOK = "Available"
PRE_INSTALL_HOOK = "PreInstall"
POST_INSTALL_HOOK = "PostInstall"
ENV_KEYS_HOOK = "EnvKeys"
PRE_USE_HOOK = "PreUse"

HOOK_NAMES = (AVAILABLE_HOOK, PRE_INSTALL_HOOK, POST_INSTALL_HOOK, ENV_KEYS_HOOK, PRE_USE_HOOK)

# A letter, followed by any number of letters, digits or underscores
_NAME_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_]*")


def is_valid_name(name: str) -> bool:
    return _NAME_PATTERN.fullmatch(name) is not None


@dataclass(frozen=True)
class HookSet:
    """Hook functions resolved once, when the plugin is loaded."""

    available: Any
    pre_install: Any
    env_keys: Any
    post_install: Optional[Any] = None
    pre_use: Optional[Any] = None

    @classmethod
    def resolve(cls, plugin_obj) -> "HookSet":
        """Look up every hook on the PLUGIN table.

        Raises:
            LoadError: If Available, PreInstall or EnvKeys is not a function
        """

        def lookup(name: str, required: bool):
            function = plugin_obj[name]
            if lua_type_of(function) == "function":
                return function
            if required:
                raise LoadError(f"[{name}] function not found")
            if function is not None:
                logger.warning(f"[{name}] is a {lua_type_of(function)}, not a function; ignoring it")
            return None

        return cls(
            available=lookup(AVAILABLE_HOOK, True),
            pre_install=lookup(PRE_INSTALL_HOOK, True),
            env_keys=lookup(ENV_KEYS_HOOK, True),
            post_install=lookup(POST_INSTALL_HOOK, False),
            pre_use=lookup(PRE_USE_HOOK, False),
        )


class LuaPlugin:
    """A loaded Lua plugin.

    Owns its LuaVM exclusively. Use as a context manager, or call close()
    exactly once when done. Not safe for concurrent use.
    """

    def __init__(self, vm: LuaVM, plugin_obj, hooks: HookSet, filepath: str):
        self.vm = vm
        self.plugin_obj = plugin_obj
        self.hooks = hooks
        # plugin source path
        self.filepath = filepath
        # the file stem doubles as the SDK name used on the command line
        self.filename = Path(filepath).stem
        # metadata declared inside the plugin
        self.name = ""
        self.author = ""
        self.version = ""
        self.description = ""
        self.update_url = ""
        self.min_runtime_version = ""
        self.hook_timeout: Optional[float] = None
        self._closed = False

    @classmethod
    def load(cls, content: str, path: Union[str, Path], manager) -> "LuaPlugin":
        """Execute a plugin source and validate its contract.

        Args:
            content: Lua source text
            path: Where the source came from
            manager: Provides ``config``, ``os_type`` and ``arch_type``

        Returns:
            The loaded plugin

        Raises:
            LoadError: If the source fails, PLUGIN is missing, a mandatory
                hook is missing, or the name is missing or invalid
        """
        vm = LuaVM()
        try:
            vm.prepare(manager.config, manager.os_type, manager.arch_type)
            try:
                vm.do_string(content)
            except lupa.LuaError as e:
                raise LoadError(f"failed to execute plugin {path}: {e}") from e

            plugin_obj = vm.instance.globals()[PLUGIN_OBJECT_KEY]
            if lua_type_of(plugin_obj) != "table":
                raise LoadError("plugin object not found")

            plugin = cls(vm, plugin_obj, HookSet.resolve(plugin_obj), str(path))
            plugin._read_metadata()
            plugin.hook_timeout = manager.config.hook_timeout
        except Exception:
            vm.close()
            raise

        logger.debug(f"Loaded plugin {plugin.name} {plugin.version} from {path}")
        return plugin

    def _read_metadata(self) -> None:
        get = self.vm.get_table_string
        obj = self.plugin_obj

        name = get(obj, "name")
        if not name:
            raise LoadError("no plugin name provided")
        if not is_valid_name(name):
            raise LoadError(f"invalid plugin name {name!r}")
        self.name = name

        self.version = get(obj, "version")
        self.description = get(obj, "description")
        self.update_url = get(obj, "updateUrl")
        self.author = get(obj, "author")
        self.min_runtime_version = get(obj, "minRuntimeVersion")

    def available(self) -> List[Package]:
        """Run the Available hook; no return value means no versions."""
        ctx = AvailableHookCtx(runtime_version=RUNTIME_VERSION)
        table = self._invoke(self.hooks.available, ctx)
        if table is None:
            return []

        items = unmarshal_list(table, AvailableHookResultItem)
        for index, raw in enumerate(sequence_items(table), start=1):
            if lua_type_of(raw) != "table":
                logger.warning(f"[{self.name}] Available item {index} is a {lua_type_of(raw)}, not a table, skipping")

        result = []
        for item in items:
            main = Info(name=self.name, version=item.version, note=item.note)
            additions = []
            for index, addition in enumerate(item.addition, start=1):
                # Listing stays lenient; pre_install() rejects the same condition
                if not addition.name:
                    logger.error(f"[{self.name}] additional file {index} no name provided")
                additions.append(Info(
                    name=addition.name,
                    version=addition.version,
                    path=addition.path,
                    note=addition.note,
                ))
            result.append(Package(main=main, additions=additions))
        return result

    def pre_install(self, version: str) -> Optional[Package]:
        """Run the PreInstall hook for ``version``.

        Returns:
            The package to install, or None when the hook returned nothing

        Raises:
            MissingVersionError: If the main entry or an addition has no version
            MissingNameError: If an addition has no name
            HookContractError: If an addition is not a table
        """
        ctx = PreInstallHookCtx(version=version, runtime_version=RUNTIME_VERSION)
        table = self._invoke(self.hooks.pre_install, ctx)
        if table is None:
            return None

        main = self._parse_info(table)
        main.name = self.name

        additions = []
        addition_table = table["addition"]
        if lua_type_of(addition_table) == "table":
            for index, entry in enumerate(sequence_items(addition_table), start=1):
                if lua_type_of(entry) != "table":
                    raise HookContractError(f"additional file {index} is not a table")
                info = self._parse_info(entry, require_name=True)
                additions.append(info)

        return Package(main=main, additions=additions)

    def _parse_info(self, table, require_name: bool = False) -> Info:
        lua_info = unmarshal(table, LuaSDKInfo())
        if require_name and not lua_info.name:
            raise MissingNameError("additional file no name provided")
        if not lua_info.version:
            raise MissingVersionError("no version number provided")
        return Info(
            name=lua_info.name,
            version=lua_info.version,
            path=lua_info.path,
            note=lua_info.note,
            checksum=resolve_checksum(table),
        )

    def post_install(self, root_path: Union[str, Path], infos: Iterable[Info]) -> None:
        """Run the optional PostInstall hook; its return value is ignored."""
        if self.hooks.post_install is None:
            return
        ctx = PostInstallHookCtx(
            runtime_version=RUNTIME_VERSION,
            root_path=str(root_path),
            sdk_info={info.name: LuaSDKInfo.from_info(info) for info in infos},
        )
        self._invoke(self.hooks.post_install, ctx)

    def env_keys(self, package: Package) -> Dict[str, str]:
        """Run the EnvKeys hook for an installed package.

        Raises:
            NoEnvironmentVariablesError: If the hook returned nothing or an empty list
        """
        main = package.main
        ctx = EnvKeysHookCtx(
            path=main.path,
            runtime_version=RUNTIME_VERSION,
            main=LuaSDKInfo.from_info(main),
            sdk_info={info.name: LuaSDKInfo.from_info(info) for info in package.additions},
        )
        table = self._invoke(self.hooks.env_keys, ctx)
        if table is None or len(table) == 0:
            raise NoEnvironmentVariablesError("no environment variables provided")

        env_keys = {}
        for item in unmarshal_list(table, EnvKeysHookResultItem):
            if not item.key:
                logger.warning(f"[{self.name}] EnvKeys returned an item without a key")
                continue
            if not is_valid_env_key(item.key):
                logger.warning(f"[{self.name}] EnvKeys returned an invalid variable name {item.key!r}, skipping")
                continue
            env_keys[item.key] = item.value
        return env_keys

    def pre_use(
        self,
        version: str,
        previous_version: str,
        scope: UseScope,
        cwd: Union[str, Path],
        installed: Iterable[Package],
    ) -> str:
        """Run the optional PreUse hook.

        Returns:
            The version the plugin picked, which may differ from ``version``;
            empty when the hook is absent or returned nothing
        """
        if self.hooks.pre_use is None:
            return ""

        installed_sdks = {}
        for package in installed:
            info = LuaSDKInfo.from_info(package.main)
            installed_sdks[info.version] = info

        ctx = PreUseHookCtx(
            runtime_version=RUNTIME_VERSION,
            cwd=str(cwd),
            scope=UseScope(scope).value,
            version=version,
            previous_version=previous_version,
            installed_sdks=installed_sdks,
        )
        logger.debug(f"PreUseHookCtx: {ctx}")
        table = self._invoke(self.hooks.pre_use, ctx)
        if table is None:
            return ""
        return unmarshal(table, PreUseHookResult()).version

    def has_function(self, name: str) -> bool:
        self._ensure_open()
        return lua_type_of(self.plugin_obj[name]) == "function"

    def label(self, version: str) -> str:
        return f"{self.name}@{version}"

    def to_dict(self) -> dict:
        """Serialize plugin metadata for display."""
        return {
            "name": self.name,
            "filename": self.filename,
            "version": self.version,
            "author": self.author,
            "description": self.description,
            "update_url": self.update_url,
            "min_runtime_version": self.min_runtime_version,
            "path": self.filepath,
        }

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.plugin_obj = None
        self.vm.close()

    def __enter__(self) -> "LuaPlugin":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _invoke(self, hook, ctx: LuaModel):
        """Marshal ``ctx``, call ``hook(PLUGIN, ctx)`` and return the result table."""
        self._ensure_open()
        ctx_table = marshal(self.vm.instance, ctx)
        self.vm.call(hook, self.plugin_obj, ctx_table, timeout=self.hook_timeout)
        return self.vm.returned_value()

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"plugin {self.name} is closed")
