"""Transcoding engine protocol and lifecycle management.

The engine is expensive to construct and shared by every request, so it is
owned by an EngineLifecycleManager. Only the caller that moves the state
from UNLOADED to LOADING constructs it; everyone else waits on a condition
and shares that load's outcome.
"""

import asyncio
import copy
import logging
import threading
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from videokit.core.logging import log_error, log_info
from videokit.modules.transcoding.errors import EngineLoadError
from videokit.modules.transcoding.models import EngineState

logger = logging.getLogger(__name__)


class TranscodeEngine(Protocol):
    """In-process transcoding runtime with its own working storage."""

    async def write_file(self, name: str, data: bytes) -> None:
        ...

    async def read_file(self, name: str) -> bytes:
        ...

    async def delete_file(self, name: str) -> None:
        ...

    async def list_files(self) -> list[str]:
        ...

    async def run(self, args: Sequence[str]) -> None:
        ...

    async def close(self) -> None:
        ...


EngineFactory = Callable[[], Awaitable[TranscodeEngine]]


class EngineLifecycleManager:
    """Owns the shared engine handle and its load state."""

    def __init__(self, factory: EngineFactory):
        """Initialize manager.

        Args:
            factory: Coroutine function constructing a ready engine
        """
        self._factory = factory
        self._engine: Optional[TranscodeEngine] = None
        self._state = EngineState.UNLOADED
        # Guards check-and-set of _state across threads
        self._state_lock = threading.Lock()
        self._state_changed = asyncio.Condition()
        self._generation = 0
        self._last_failure: Optional[tuple[int, BaseException]] = None
        self.load_attempts = 0

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def engine(self) -> Optional[TranscodeEngine]:
        return self._engine

    async def ensure_ready(self) -> TranscodeEngine:
        """Return the ready engine, loading it if nobody has yet.

        Returns:
            Shared engine handle (borrowed, not owned)

        Raises:
            EngineLoadError: If the load this caller performed or waited on failed
        """
        while True:
            with self._state_lock:
                if self._state is EngineState.READY:
                    return self._engine
                if self._state is not EngineState.LOADING:
                    self._state = EngineState.LOADING
                    self._generation += 1
                    generation = self._generation
                    break
                awaited = self._generation

            await self._wait_while_loading(awaited)

            failure = self._last_failure
            if failure is not None and failure[0] == awaited:
                cause = failure[1]
                if isinstance(cause, EngineLoadError):
                    raise copy.copy(cause)
                raise EngineLoadError("Failed to load video processor", cause)

        return await self._load(generation)

    async def _wait_while_loading(self, generation: int) -> None:
        async with self._state_changed:
            await self._state_changed.wait_for(
                lambda: self._state is not EngineState.LOADING
                or self._generation != generation
            )

    async def _load(self, generation: int) -> TranscodeEngine:
        self.load_attempts += 1
        log_info(logger, "Loading transcoding engine", attempt=self.load_attempts)

        try:
            engine = await self._factory()
        except BaseException as exc:
            with self._state_lock:
                self._state = EngineState.LOAD_FAILED
                self._last_failure = (generation, exc)
            await self._notify()
            log_error(logger, "Transcoding engine failed to load", exc, attempt=self.load_attempts)
            if isinstance(exc, EngineLoadError) or not isinstance(exc, Exception):
                raise
            raise EngineLoadError("Failed to load video processor", exc) from exc

        with self._state_lock:
            self._engine = engine
            self._state = EngineState.READY
            self._last_failure = None
        await self._notify()
        log_info(logger, "Transcoding engine ready", attempt=self.load_attempts)
        return engine

    async def _notify(self) -> None:
        async with self._state_changed:
            self._state_changed.notify_all()

    async def shutdown(self) -> None:
        """Close the engine and return to UNLOADED."""
        with self._state_lock:
            engine, self._engine = self._engine, None
            if self._state is not EngineState.LOADING:
                self._state = EngineState.UNLOADED
        if engine is not None:
            await engine.close()
            log_info(logger, "Transcoding engine shut down")
