"""Domain models."""

from .sdk import NONE_CHECKSUM, Checksum, Info, Package, UseScope, verify_checksum

__all__ = [
    "NONE_CHECKSUM",
    "Checksum",
    "Info",
    "Package",
    "UseScope",
    "verify_checksum",
]
