"""Shared fixtures: a Lua runtime, a fake host, a plugin loader and an isolated SDK manager."""

from types import SimpleNamespace

import lupa
import pytest

from sdkvm.plugins.plugin import LuaPlugin
from sdkvm.services.config_service import AppConfig
from sdkvm.services.manager import SdkManager


@pytest.fixture
def lua():
    return lupa.LuaRuntime()


@pytest.fixture
def host():
    """Stands in for the manager: only config and platform are read at load time."""
    return SimpleNamespace(config=AppConfig(), os_type="linux", arch_type="amd64")


@pytest.fixture
def load_plugin(host):
    loaded = []

    def _load(source, path="demo.lua", config=None):
        target = host if config is None else SimpleNamespace(
            config=config, os_type=host.os_type, arch_type=host.arch_type
        )
        plugin = LuaPlugin.load(source, path, target)
        loaded.append(plugin)
        return plugin

    yield _load
    for plugin in loaded:
        plugin.close()


@pytest.fixture
def manager(tmp_path):
    return SdkManager(tmp_path / "home", config=AppConfig(), bundled_dir=None)
