"""Shared fixtures for transcoding tests.

FakeEngine keeps its working storage in a dict and records every command,
so tests can inspect what would have been sent to ffmpeg.
"""

import asyncio
from typing import Optional, Sequence

import pytest

from videokit.modules.transcoding.engine import EngineLifecycleManager
from videokit.modules.transcoding.service import TranscodingService


class FakeEngine:
    """In-memory stand-in for FFmpegEngine."""

    def __init__(
        self,
        output: bytes = b"transcoded-bytes",
        run_error: Optional[BaseException] = None,
        delete_error: Optional[BaseException] = None,
        run_delay: float = 0,
    ):
        self.output = output
        self.run_error = run_error
        self.delete_error = delete_error
        self.run_delay = run_delay
        self.files: dict[str, bytes] = {}
        self.commands: list[tuple[str, ...]] = []
        self.written: list[str] = []
        self.closed = False

    async def write_file(self, name: str, data: bytes) -> None:
        self.files[name] = bytes(data)
        self.written.append(name)

    async def read_file(self, name: str) -> bytes:
        try:
            return self.files[name]
        except KeyError:
            raise FileNotFoundError(name) from None

    async def delete_file(self, name: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        if name not in self.files:
            raise FileNotFoundError(name)
        del self.files[name]

    async def list_files(self) -> list[str]:
        return sorted(self.files)

    async def run(self, args: Sequence[str]) -> None:
        self.commands.append(tuple(args))
        if self.run_delay:
            await asyncio.sleep(self.run_delay)
        if self.run_error is not None:
            raise self.run_error
        self.files[args[-1]] = self.output

    async def close(self) -> None:
        self.closed = True


class CountingFactory:
    """Engine factory that counts constructions and can fail or stall."""

    def __init__(
        self,
        engine: Optional[FakeEngine] = None,
        error: Optional[BaseException] = None,
        delay: float = 0,
    ):
        self.engine = engine or FakeEngine()
        self.error = error
        self.delay = delay
        self.calls = 0

    async def __call__(self) -> FakeEngine:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.engine


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def engine_factory(fake_engine: FakeEngine) -> CountingFactory:
    return CountingFactory(fake_engine)


@pytest.fixture
def lifecycle(engine_factory: CountingFactory) -> EngineLifecycleManager:
    return EngineLifecycleManager(engine_factory)


@pytest.fixture
def service(lifecycle: EngineLifecycleManager) -> TranscodingService:
    return TranscodingService(lifecycle)
