"""HTTP-backed virtual file system for the engine.

Remote files are registered under a stable virtual filename. Registration
materializes the file inside the VFS directory, which the engine searches
when a query references a bare filename.
"""

import os
import shutil
import tempfile
from enum import Enum
from pathlib import Path
from typing import Callable

import httpx
import structlog

logger = structlog.get_logger()


class DataProtocol(str, Enum):
    """How a registered file is fetched."""

    HTTP = "http"
    LOCAL = "local"


class VirtualFileSystem:
    """Registry of virtual filenames backed by remote or local files."""

    def __init__(
        self,
        root: Path,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ):
        self.root = root
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=60.0, follow_redirects=True)
        )
        self._sources: dict[str, str] = {}
        # virtual filename -> conditional request headers from the last download
        self._validators: dict[str, dict[str, str]] = {}

    def path_for(self, virtual_name: str) -> Path:
        """Resolve a virtual filename inside the VFS root."""
        path = (self.root / virtual_name).resolve()
        if path.parent != self.root.resolve():
            raise ValueError(f"Invalid virtual filename: {virtual_name!r}")
        return path

    def source_of(self, virtual_name: str) -> str | None:
        """URL or path the virtual filename was registered from."""
        return self._sources.get(virtual_name)

    async def register(
        self,
        virtual_name: str,
        source: str,
        protocol: DataProtocol = DataProtocol.HTTP,
        cacheable: bool = True,
    ) -> Path:
        """
        Register `source` under `virtual_name`, overwriting any previous entry.

        Every registration fetches the source again. With `cacheable`, a file
        already registered from the same URL is revalidated with the
        ETag / Last-Modified of its last download and kept on 304 Not Modified.
        """
        target = self.path_for(virtual_name)
        self.root.mkdir(parents=True, exist_ok=True)

        if protocol == DataProtocol.LOCAL:
            self._copy_local(Path(source), target)
            self._validators.pop(virtual_name, None)
        else:
            headers: dict[str, str] = {}
            if cacheable and self._sources.get(virtual_name) == source and target.exists():
                headers = self._validators.get(virtual_name, {})

            validators = await self._download(source, target, headers)
            if validators is None:
                logger.debug("vfs_not_modified", virtual_name=virtual_name, source=source)
                return target
            if cacheable:
                self._validators[virtual_name] = validators
            else:
                self._validators.pop(virtual_name, None)

        self._sources[virtual_name] = source
        logger.info(
            "vfs_file_registered",
            virtual_name=virtual_name,
            source=source,
            protocol=protocol.value,
            size_bytes=target.stat().st_size,
        )
        return target

    async def _download(
        self, url: str, target: Path, headers: dict[str, str]
    ) -> dict[str, str] | None:
        """
        Stream `url` into `target` atomically, following redirects.

        Returns the validators for the next conditional request, or None when
        the server answered 304 and `target` was left untouched.
        """
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".download-")
        try:
            with os.fdopen(fd, "wb") as f:
                async with self._client_factory() as client:
                    async with client.stream(
                        "GET", url, headers=headers, follow_redirects=True
                    ) as response:
                        if response.status_code == 304 and headers:
                            validators = None
                        else:
                            response.raise_for_status()
                            async for chunk in response.aiter_bytes(chunk_size=65536):
                                f.write(chunk)
                            validators = _validators_from(response.headers)
            if validators is None:
                Path(tmp_name).unlink(missing_ok=True)
            else:
                os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return validators

    @staticmethod
    def _copy_local(source: Path, target: Path) -> None:
        shutil.copyfile(source, target)


def _validators_from(headers: httpx.Headers) -> dict[str, str]:
    validators = {}
    if "etag" in headers:
        validators["If-None-Match"] = headers["etag"]
    if "last-modified" in headers:
        validators["If-Modified-Since"] = headers["last-modified"]
    return validators
