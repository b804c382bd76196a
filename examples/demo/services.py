"""
Demo services: plain classes, no framework base classes.
Every public (ctx, request) method becomes a POST route.
"""
import asyncio
import os
from dataclasses import dataclass

from orbit import Context, KnownError, LocalFile

from config import Settings


@dataclass
class SumRequest:
    x: int
    y: int

    def validate(self) -> None:
        if self.x < 0 or self.y < 0:
            raise ValueError("x and y must not be negative")


@dataclass
class SumResponse:
    sum: int


@dataclass
class EmptyRequest:
    def validate(self) -> None:
        pass


@dataclass
class Status:
    status: str


@dataclass
class FileRequest:
    name: str

    def validate(self) -> None:
        if not self.name or os.sep in self.name or self.name.startswith("."):
            raise ValueError("invalid file name")


class DemoService:
    """POST /v1/demo/sum and /v1/demo/slow_sum."""

    def sum(self, ctx: Context, req: SumRequest) -> SumResponse:
        if req.x + req.y > 1_000_000:
            raise KnownError("TooLarge", "sum exceeds one million")
        return SumResponse(sum=req.x + req.y)

    async def slow_sum(self, ctx: Context, req: SumRequest) -> SumResponse:
        await asyncio.sleep(1)
        ctx.raise_if_done()
        return SumResponse(sum=req.x + req.y)


class HealthService:
    """Anonymous and omitted: POST /v1/check without credentials."""

    def omitted(self) -> bool:
        return True

    def anonymous(self) -> bool:
        return True

    def check(self, ctx: Context, req: EmptyRequest) -> Status:
        return Status(status="ok")


class FileHandler:
    """POST /v1beta/file/download streams a file from the configured directory."""

    def __init__(self, settings: Settings) -> None:
        self.root = settings.files_dir

    def download(self, ctx: Context, req: FileRequest) -> LocalFile | None:
        path = os.path.join(self.root, req.name)
        if not os.path.isfile(path):
            return None
        return LocalFile(path)
