"""Capabilities checked on service, request and response types when actions are discovered."""
from __future__ import annotations

import os
from typing import Any, BinaryIO, Protocol, runtime_checkable


@runtime_checkable
class Request(Protocol):
    """Request payload. validate() raises to reject the payload (400)."""

    def validate(self) -> None:
        ...


@runtime_checkable
class StreamFile(Protocol):
    """Readable, seekable, stat-able file. Actions returning one are streamed as octet-stream."""

    def read(self, size: int = -1) -> bytes:
        ...

    def seek(self, offset: int, whence: int = 0) -> int:
        ...

    def stat(self) -> os.stat_result:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Omitted(Protocol):
    """Service whose routes skip the resource segment: {prefix}/{method}."""

    def omitted(self) -> bool:
        ...


@runtime_checkable
class Anonymous(Protocol):
    """Service whose routes skip the identity and permission interceptors."""

    def anonymous(self) -> bool:
        ...


class LocalFile:
    """StreamFile over a file on disk, opened in binary mode on construction."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        self._file: BinaryIO = open(self.path, "rb")

    def read(self, size: int = -1) -> bytes:
        return self._file.read(size)

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._file.seek(offset, whence)

    def stat(self) -> os.stat_result:
        return os.fstat(self._file.fileno())

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> LocalFile:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
