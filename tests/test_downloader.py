"""Tests for the downloader and the environment helpers."""

import os
from unittest.mock import patch

import aiohttp
import pytest

from sdkvm.errors import ChecksumMismatchError, ManagerError
from sdkvm.models.sdk import Checksum, Info
from sdkvm.services.downloader import Downloader, is_archive, is_url
from sdkvm.utils.env import is_valid_env_key, merge_envs, render_exports
from tests.helpers import make_sdk_archive, sha256_of


class TestDownloader:
    """Fetch, verify and unpack."""

    def test_location_kinds(self, tmp_path):
        assert is_url("https://nodejs.org/dist/v20.11.0/node.tar.gz")
        assert not is_url("/tmp/node.tar.gz")
        assert is_archive(tmp_path / "node-v20.tar.xz")
        assert not is_archive(tmp_path / "npm.txt")

    def test_fetch_local_file_with_checksum(self, tmp_path):
        archive = make_sdk_archive(tmp_path)
        info = Info(name="demo", version="1.0.0", path=str(archive),
                    checksum=Checksum(type="sha256", value=sha256_of(archive)))
        target = Downloader().fetch(info, tmp_path / "download")
        assert target == tmp_path / "download" / archive.name
        assert target.is_file()

    def test_checksum_mismatch_removes_file(self, tmp_path):
        archive = make_sdk_archive(tmp_path)
        info = Info(name="demo", version="1.0.0", path=str(archive),
                    checksum=Checksum(type="sha256", value="00" * 32))
        with pytest.raises(ChecksumMismatchError):
            Downloader().fetch(info, tmp_path / "download")
        assert not (tmp_path / "download" / archive.name).exists()

    def test_missing_location(self, tmp_path):
        with pytest.raises(ManagerError, match="no download location"):
            Downloader().fetch(Info(name="demo", version="1.0.0"), tmp_path)

    def test_missing_local_file(self, tmp_path):
        info = Info(name="demo", version="1.0.0", path=str(tmp_path / "absent.tar.gz"))
        with pytest.raises(ManagerError, match="file not found"):
            Downloader().fetch(info, tmp_path / "download")

    def test_fetch_url_uses_proxy(self, tmp_path):
        def fake_download(url, dest, headers=None, proxy=None):
            dest.write_bytes(b"binary")
            return dest

        info = Info(name="demo", version="1.0.0", path="https://example.com/dist/demo.zip")
        with patch("sdkvm.utils.http.download", side_effect=fake_download) as mock_download:
            target = Downloader(proxy="http://proxy:3128").fetch(info, tmp_path)

        assert target == tmp_path / "demo.zip"
        mock_download.assert_called_once_with(
            "https://example.com/dist/demo.zip", tmp_path / "demo.zip", proxy="http://proxy:3128"
        )

    def test_fetch_url_failure(self, tmp_path):
        info = Info(name="demo", version="1.0.0", path="https://example.com/dist/demo.zip")
        with patch("sdkvm.utils.http.download", side_effect=aiohttp.ClientError("404")):
            with pytest.raises(ManagerError, match="failed to download"):
                Downloader().fetch(info, tmp_path)

    def test_unpack_flattens_single_directory(self, tmp_path):
        archive = make_sdk_archive(tmp_path)
        target = Downloader().unpack(archive, tmp_path / "sdk" / "demo-1.0.0")
        assert (target / "bin" / "demo").is_file()
        assert not archive.exists()

    def test_unpack_moves_plain_file(self, tmp_path):
        plain = tmp_path / "extra.txt"
        plain.write_text("extra")
        target = Downloader().unpack(plain, tmp_path / "sdk" / "extra-2.0")
        assert (target / "extra.txt").read_text() == "extra"


class TestEnvHelpers:
    """Tests for merge_envs and render_exports."""

    def test_merge_accumulates_path(self):
        merged = merge_envs([
            {"PATH": "/a/bin", "JAVA_HOME": "/a"},
            {"PATH": "/b/bin", "JAVA_HOME": "/b"},
        ])
        assert merged == {"PATH": os.pathsep.join(["/a/bin", "/b/bin"]), "JAVA_HOME": "/b"}

    def test_render_exports(self):
        lines = render_exports({"PATH": "/a/bin", "NODE_HOME": 'say "hi" $x'})
        assert lines == [
            'export NODE_HOME="say \\"hi\\" \\$x"',
            f'export PATH="/a/bin{os.pathsep}$PATH"',
        ]

    def test_render_exports_rejects_unsafe_key(self):
        with pytest.raises(ValueError, match="invalid environment variable name"):
            render_exports({"X=1; touch /tmp/sdkvm-owned; Y": "v"})

    def test_valid_env_keys(self):
        assert is_valid_env_key("JAVA_HOME")
        assert is_valid_env_key("_private1")
        assert not is_valid_env_key("")
        assert not is_valid_env_key("1ABC")
        assert not is_valid_env_key("A-B")
        assert not is_valid_env_key("A B")
