"""Host modules exposed to plugins through ``require``.

Functions follow the Lua convention of returning ``value, err`` instead of
raising, so plugin code can handle failures itself.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import aiohttp

from sdkvm.errors import CodecError
from sdkvm.luai.encoding import lua_type_of, marshal, to_python
from sdkvm.utils import http as http_utils

logger = logging.getLogger(__name__)

_HTTP_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError)


def _options(opts):
    """Read {url, headers} from the table a plugin passes in."""
    if lua_type_of(opts) != "table":
        raise ValueError("expected a table with a 'url' field")
    url = opts["url"]
    if not url:
        raise ValueError("url is required")
    headers = opts["headers"]
    headers = to_python(headers) if lua_type_of(headers) == "table" else None
    return str(url), headers


class HttpModule:
    """``require("http")``: get, head and download_file."""

    def __init__(self, lua, proxy: Optional[str] = None):
        self.lua = lua
        self.proxy = proxy

    def get(self, opts):
        return self._request("GET", opts, with_body=True)

    def head(self, opts):
        return self._request("HEAD", opts, with_body=False)

    def download_file(self, opts, path):
        try:
            url, headers = _options(opts)
            http_utils.download(url, Path(str(path)), headers=headers, proxy=self.proxy)
        except _HTTP_ERRORS as e:
            logger.debug(f"http.download_file failed: {e}")
            return str(e) or type(e).__name__
        return None

    def _request(self, method: str, opts, with_body: bool):
        try:
            url, headers = _options(opts)
            response = http_utils.request(
                method, url, headers=headers, proxy=self.proxy, with_body=with_body
            )
        except _HTTP_ERRORS as e:
            logger.debug(f"http.{method.lower()} failed: {e}")
            return None, str(e) or type(e).__name__
        return marshal(self.lua, {
            "status_code": response.status_code,
            "headers": response.headers,
            "body": response.body,
        }), None


class JsonModule:
    """``require("json")``: encode and decode."""

    def __init__(self, lua):
        self.lua = lua

    def encode(self, value):
        try:
            return json.dumps(to_python(value), ensure_ascii=False), None
        except (CodecError, TypeError, ValueError) as e:
            return None, str(e)

    def decode(self, text):
        try:
            return marshal(self.lua, json.loads(str(text))), None
        except (CodecError, ValueError) as e:
            return None, str(e)


def _module_table(lua, module, names):
    table = lua.table()
    for name in names:
        table[name] = getattr(module, name)
    return table


def preload(lua, config) -> None:
    """Register the host modules in ``package.loaded``.

    Args:
        lua: Target ``lupa.LuaRuntime``
        config: AppConfig; its proxy settings apply to the http module
    """
    loaded = lua.globals().package.loaded
    loaded["http"] = _module_table(lua, HttpModule(lua, proxy=config.proxy_url), ("get", "head", "download_file"))
    loaded["json"] = _module_table(lua, JsonModule(lua), ("encode", "decode"))
    logger.debug("Preloaded host modules: http, json")
