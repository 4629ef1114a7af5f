"""Checksum resolution for hook results."""

import logging

from sdkvm.errors import CodecError
from sdkvm.luai.encoding import unmarshal
from sdkvm.luai.models import LuaChecksum
from sdkvm.models.sdk import CHECKSUM_TYPES, NONE_CHECKSUM, Checksum

logger = logging.getLogger(__name__)


def resolve_checksum(table) -> Checksum:
    """Pick the integrity hash a result table declares.

    Fields are inspected in the order sha256, md5, sha1, sha512 and the first
    non-empty one wins. Never raises: an unreadable table or one without any
    hash yields ``NONE_CHECKSUM``.
    """
    try:
        lua_checksum = unmarshal(table, LuaChecksum())
    except CodecError as e:
        logger.debug(f"Unreadable checksum fields, using none: {e}")
        return NONE_CHECKSUM

    for kind in CHECKSUM_TYPES:
        value = getattr(lua_checksum, kind)
        if value:
            return Checksum(type=kind, value=value)
    return NONE_CHECKSUM
