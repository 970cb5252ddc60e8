"""Local-disk implementation of the file access contract"""

import asyncio
import base64
import binascii
import fnmatch
import os
from datetime import datetime
from pathlib import Path
from typing import List

import aiofiles
import aiofiles.os

from .base import DirectoryEntry, ExistsResult, FileAccess, FileInfo
from ..utils.errors import FileAccessError


def format_last_modified(mtime: float) -> str:
    """Format an mtime as ``yyyy-MM-dd HH:mm:ss.SSS`` in local time."""
    return datetime.fromtimestamp(mtime).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


class LocalFileAccess(FileAccess):
    """File access backed by the local filesystem via aiofiles"""

    async def exists(self, path: str) -> ExistsResult:
        try:
            if not await aiofiles.os.path.exists(path):
                return ExistsResult(exists=False)
            return ExistsResult(exists=True, is_directory=await aiofiles.os.path.isdir(path))
        except OSError as e:
            raise FileAccessError("exists", path, cause=e) from e

    async def info(self, path: str) -> FileInfo:
        try:
            st = await aiofiles.os.stat(path)
        except OSError as e:
            raise FileAccessError("info", path, cause=e) from e
        return FileInfo(size=st.st_size, last_modified=format_last_modified(st.st_mtime))

    async def list_directory(self, path: str) -> List[DirectoryEntry]:
        try:
            names = sorted(await aiofiles.os.listdir(path))
            entries = []
            for name in names:
                is_dir = await aiofiles.os.path.isdir(os.path.join(path, name))
                entries.append(DirectoryEntry(name=name, is_directory=is_dir))
            return entries
        except OSError as e:
            raise FileAccessError("list_directory", path, cause=e) from e

    async def find_files(self, root: str, pattern: str = "*") -> List[str]:
        def walk() -> List[str]:
            found = []
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames.sort()
                for filename in sorted(filenames):
                    if fnmatch.fnmatch(filename, pattern):
                        found.append(Path(dirpath, filename).as_posix())
            return found

        if not await aiofiles.os.path.isdir(root):
            raise FileAccessError("find_files", root, "Not a directory")
        return await asyncio.to_thread(walk)

    async def read_text(self, path: str) -> str:
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                return await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise FileAccessError("read_text", path, cause=e) from e

    async def read_binary_base64(self, path: str) -> str:
        try:
            async with aiofiles.open(path, "rb") as f:
                data = await f.read()
        except OSError as e:
            raise FileAccessError("read_binary", path, cause=e) from e
        return base64.b64encode(data).decode("ascii")

    async def write_text(self, path: str, content: str) -> None:
        try:
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(content)
        except OSError as e:
            raise FileAccessError("write_text", path, cause=e) from e

    async def write_binary_base64(self, path: str, content_base64: str) -> None:
        try:
            data = base64.b64decode(content_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise FileAccessError("write_binary", path, "Invalid base64 payload", cause=e) from e
        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise FileAccessError("write_binary", path, cause=e) from e

    async def delete_file(self, path: str) -> None:
        try:
            await aiofiles.os.remove(path)
        except OSError as e:
            raise FileAccessError("delete_file", path, cause=e) from e

    async def make_directory(self, path: str, create_parents: bool = True) -> None:
        try:
            if create_parents:
                await aiofiles.os.makedirs(path, exist_ok=True)
            elif not await aiofiles.os.path.isdir(path):
                await aiofiles.os.mkdir(path)
        except OSError as e:
            raise FileAccessError("make_directory", path, cause=e) from e
