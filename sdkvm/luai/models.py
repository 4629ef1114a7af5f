"""Hook contexts and results exchanged with Lua plugins.

Field aliases are the keys seen on the Lua side. Fields without an alias use
their attribute name.
"""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from sdkvm.models.sdk import Info


class LuaModel(BaseModel):
    """Base for every model that crosses the Lua boundary."""

    model_config = ConfigDict(populate_by_name=True)


class LuaSDKInfo(LuaModel):
    name: str = ""
    version: str = ""
    path: str = ""
    note: str = ""

    @classmethod
    def from_info(cls, info: Info) -> "LuaSDKInfo":
        return cls(name=info.name, version=info.version, path=info.path, note=info.note)


class LuaChecksum(LuaModel):
    sha256: str = ""
    sha512: str = ""
    sha1: str = ""
    md5: str = ""


class AvailableHookCtx(LuaModel):
    runtime_version: str = Field(default="", alias="runtimeVersion")


class AvailableHookResultItem(LuaModel):
    version: str = ""
    note: str = ""
    addition: List[LuaSDKInfo] = Field(default_factory=list)


class PreInstallHookCtx(LuaModel):
    version: str = ""
    runtime_version: str = Field(default="", alias="runtimeVersion")


class PostInstallHookCtx(LuaModel):
    runtime_version: str = Field(default="", alias="runtimeVersion")
    root_path: str = Field(default="", alias="rootPath")
    sdk_info: Dict[str, LuaSDKInfo] = Field(default_factory=dict, alias="sdkInfo")


class EnvKeysHookCtx(LuaModel):
    path: str = ""  # legacy alias of main.path for older plugins
    runtime_version: str = Field(default="", alias="runtimeVersion")
    main: LuaSDKInfo = Field(default_factory=LuaSDKInfo)
    sdk_info: Dict[str, LuaSDKInfo] = Field(default_factory=dict, alias="sdkInfo")


class EnvKeysHookResultItem(LuaModel):
    key: str = ""
    value: str = ""


class PreUseHookCtx(LuaModel):
    runtime_version: str = Field(default="", alias="runtimeVersion")
    cwd: str = ""
    scope: str = ""
    version: str = ""
    previous_version: str = Field(default="", alias="previousVersion")
    installed_sdks: Dict[str, LuaSDKInfo] = Field(default_factory=dict, alias="installedSdks")


class PreUseHookResult(LuaModel):
    version: str = ""
