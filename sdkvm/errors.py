"""Exception hierarchy for sdkvm."""


class SdkvmError(Exception):
    """Base class for every error raised by sdkvm."""


class LoadError(SdkvmError):
    """Plugin source failed to execute or does not satisfy the plugin contract."""


class CodecError(SdkvmError):
    """A value could not be converted across the Lua boundary."""


class UnsupportedTypeError(CodecError):
    pass


class HookInvocationError(SdkvmError):
    """A Lua error was raised inside plugin code."""


class HookContractError(SdkvmError):
    """A hook returned a value that violates its contract."""


class MissingVersionError(HookContractError):
    pass


class MissingNameError(HookContractError):
    pass


class NoEnvironmentVariablesError(HookContractError):
    pass


class ManagerError(SdkvmError):
    """Failure while orchestrating plugins, downloads or the SDK layout."""


class PluginNotFoundError(ManagerError):
    pass


class VersionNotFoundError(ManagerError):
    pass


class ChecksumMismatchError(ManagerError):
    pass
