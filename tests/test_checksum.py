"""Tests for checksum resolution and verification."""

import hashlib

from sdkvm.models.sdk import NONE_CHECKSUM, Checksum, verify_checksum
from sdkvm.plugins.checksum import resolve_checksum


class TestResolveChecksum:
    """Tests for resolve_checksum."""

    def test_sha256_wins_over_md5(self, lua):
        checksum = resolve_checksum(lua.eval('{ sha256 = "aaa", md5 = "bbb" }'))
        assert checksum.type == "sha256"
        assert checksum.value == "aaa"

    def test_priority_order(self, lua):
        assert resolve_checksum(lua.eval('{ sha512 = "d", sha1 = "c", md5 = "b" }')).type == "md5"
        assert resolve_checksum(lua.eval('{ sha512 = "d", sha1 = "c" }')).type == "sha1"
        assert resolve_checksum(lua.eval('{ sha512 = "d" }')).type == "sha512"

    def test_all_empty(self, lua):
        checksum = resolve_checksum(lua.eval('{ sha256 = "", md5 = "", sha1 = "", sha512 = "" }'))
        assert checksum.type == "none"
        assert checksum.value == ""
        assert checksum.is_none

    def test_unrelated_fields(self, lua):
        assert resolve_checksum(lua.eval('{ version = "1.0.0" }')) == NONE_CHECKSUM

    def test_wrong_field_types(self, lua):
        assert resolve_checksum(lua.eval("{ sha256 = 12, md5 = {} }")) == NONE_CHECKSUM

    def test_not_a_table(self):
        assert resolve_checksum("sha256") == NONE_CHECKSUM


class TestVerifyChecksum:
    """Tests for verify_checksum."""

    def test_matching_digest(self, tmp_path):
        path = tmp_path / "artifact.bin"
        path.write_bytes(b"payload")
        digest = hashlib.md5(b"payload").hexdigest()
        assert verify_checksum(path, Checksum(type="md5", value=digest.upper()))

    def test_mismatch(self, tmp_path):
        path = tmp_path / "artifact.bin"
        path.write_bytes(b"payload")
        assert not verify_checksum(path, Checksum(type="sha256", value="00" * 32))

    def test_none_always_verifies(self, tmp_path):
        path = tmp_path / "artifact.bin"
        path.write_bytes(b"payload")
        assert verify_checksum(path, NONE_CHECKSUM)
