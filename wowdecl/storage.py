"""
The cache wowdecl downloads into. One directory per source:

    <storage>/wiki-pages/wiki/<Page>.html
    <storage>/ui-source/<ref>.tar.gz
    <storage>/ui-source/<ref>/<File>Documentation.lua

Copyright (C) 2025 - PsychedelicPalimpsest


This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""
import os
import shutil
import logging
import platform
from typing import *

from urllib3 import request


logger = logging.getLogger(__name__)

STORAGE_ENV = "WOWDECL_HOME"

CACHE_LAYOUT = {
    "wiki": "wiki-pages",
    "ui-source": "ui-source",
}


def get_storage_dir() -> str:
    override = os.environ.get(STORAGE_ENV)
    if override:
        return os.path.expanduser(override)

    match platform.system():
        case "Linux":
            return os.path.join(os.environ.get("XDG_CACHE_HOME", os.path.expanduser("~/.cache")), "wowdecl")
        case "Darwin":
            return os.path.expanduser("~/Library/Caches/wowdecl")
        case "Windows" if "LOCALAPPDATA" in os.environ:
            return os.path.join(os.environ["LOCALAPPDATA"], "wowdecl", "Cache")

    raise RuntimeError(f"Cannot determine a cache directory on {platform.system()}, set {STORAGE_ENV}")


def ensure_storage_dir(path : str | None = None) -> str:
    path = path if path is not None else get_storage_dir()
    os.makedirs(path, exist_ok=True)
    return path


def cache_path(source : str, storage_dir : str | None = None) -> str:
    """ The (created) cache directory of a source, see CACHE_LAYOUT """
    if source not in CACHE_LAYOUT:
        raise ValueError(f"Unknown cache '{source}', expected one of: {', '.join(CACHE_LAYOUT)}")
    path = os.path.join(ensure_storage_dir(storage_dir), CACHE_LAYOUT[source])
    os.makedirs(path, exist_ok=True)
    return path


def clear_storage_dir(path : str):
    for p in sorted(os.listdir(path)):
        print(f"Removing {p}")
        full = os.path.join(path, p)
        if os.path.isdir(full):
            shutil.rmtree(full)
        else:
            os.remove(full)


def download_file(url : str, outpath : str) -> int:
    """
    Streams url into outpath through a .part file, so outpath only ever
    holds a complete download.

    :return: The number of bytes written
    """
    resp = request("GET", url, preload_content=False, decode_content=False)
    partial = outpath + ".part"
    try:
        if resp.status != 200:
            raise ConnectionError(f"Cannot fetch {url} (status {resp.status})")

        written = 0
        try:
            with open(partial, "wb") as f:
                for chunk in resp.stream():
                    f.write(chunk)
                    written += len(chunk)
        except BaseException:
            if os.path.exists(partial):
                os.remove(partial)
            raise
        os.replace(partial, outpath)
    finally:
        resp.release_conn()

    logger.info(f"Downloaded {url} ({written} bytes)")
    return written
