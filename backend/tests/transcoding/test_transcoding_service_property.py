"""End-to-end tests for TranscodingService against an in-memory engine."""

import asyncio

import pytest
from hypothesis import given, settings, strategies as st
from pydantic import ValidationError

from conftest import CountingFactory, FakeEngine
from videokit.modules.transcoding.engine import EngineLifecycleManager
from videokit.modules.transcoding.errors import (
    EngineLoadError,
    InputMissingError,
    TranscodeExecutionError,
    UnsupportedOperationError,
)
from videokit.modules.transcoding.ffmpeg import FFmpegRunError
from videokit.modules.transcoding.models import EngineState, Operation
from videokit.modules.transcoding.schemas import (
    TranscodeFallback,
    TranscodeRequest,
    TranscodeSuccess,
)
from videokit.modules.transcoding.service import (
    TranscodingService,
    input_extension,
    virtual_file_names,
)
from videokit.modules.transcoding.size_gate import MAX_SOURCE_SIZE

MB = 1024 * 1024


def make_request(operation="mov-to-mp4", **kwargs) -> TranscodeRequest:
    kwargs.setdefault("source_bytes", b"\x00\x00\x00\x18ftypqt  ")
    kwargs.setdefault("source_name", "clip.mov")
    return TranscodeRequest(operation=operation, **kwargs)


class TestSuccessfulExecution:
    @pytest.mark.asyncio
    async def test_mov_to_mp4(self, service: TranscodingService, fake_engine: FakeEngine) -> None:
        result = await service.execute(make_request(source_size=10 * MB))

        assert isinstance(result, TranscodeSuccess)
        assert result.mime == "video/mp4"
        assert result.filename == "mov-to-mp4-output.mp4"
        assert result.output_bytes == b"transcoded-bytes"

        (command,) = fake_engine.commands
        assert command[1].endswith("-input.mov")
        assert command[-1].endswith("-output.mp4")
        assert command[2:-1] == (
            "-c:v", "libx264", "-preset", "fast", "-crf", "23",
            "-c:a", "aac", "-b:a", "128k", "-movflags", "faststart",
        )

    @pytest.mark.asyncio
    async def test_source_bytes_staged_in_input_file(
        self, service: TranscodingService, fake_engine: FakeEngine
    ) -> None:
        source = b"gif89a-content"
        staged = {}
        original_run = fake_engine.run

        async def capturing_run(args):
            staged.update(fake_engine.files)
            await original_run(args)

        fake_engine.run = capturing_run
        await service.execute(make_request(Operation.GIF_TO_MP4, source_bytes=source, source_name="a.GIF"))

        (input_name,) = fake_engine.written
        assert input_name.endswith("-input.gif")
        assert staged[input_name] == source

    @pytest.mark.asyncio
    async def test_params_reach_the_pipeline(
        self, service: TranscodingService, fake_engine: FakeEngine
    ) -> None:
        await service.execute(
            make_request(Operation.COMPRESS_VIDEO, params={"quality": "high"}, source_name="a.mp4")
        )

        command = fake_engine.commands[0]
        assert command[command.index("-crf") + 1] == "18"

    @pytest.mark.asyncio
    async def test_output_extension_follows_operation(
        self, service: TranscodingService, fake_engine: FakeEngine
    ) -> None:
        result = await service.execute(make_request(Operation.MP4_TO_MP3, source_name="talk.mp4"))

        assert fake_engine.commands[0][-1].endswith("-output.mp3")
        assert result.mime == "audio/mpeg"
        assert result.filename == "mp4-to-mp3-output.mp3"

    @pytest.mark.asyncio
    async def test_engine_loaded_once_across_requests(
        self, service: TranscodingService, engine_factory: CountingFactory
    ) -> None:
        for _ in range(3):
            await service.execute(make_request())

        assert engine_factory.calls == 1


class TestFallback:
    @pytest.mark.asyncio
    async def test_oversized_source_skips_engine(
        self, service: TranscodingService, lifecycle: EngineLifecycleManager
    ) -> None:
        result = await service.execute(make_request(source_size=150 * MB))

        assert isinstance(result, TranscodeFallback)
        assert "100MB limit" in result.message
        assert lifecycle.load_attempts == 0
        assert lifecycle.state is EngineState.UNLOADED

    @given(
        size=st.integers(min_value=MAX_SOURCE_SIZE + 1, max_value=10 * 1024 ** 3),
        operation=st.sampled_from(list(Operation)),
    )
    @settings(max_examples=50)
    def test_any_operation_above_limit_falls_back(self, size: int, operation: Operation) -> None:
        factory = CountingFactory()
        lifecycle = EngineLifecycleManager(factory)
        service = TranscodingService(lifecycle)

        result = asyncio.run(service.execute(make_request(operation, source_size=size)))

        assert isinstance(result, TranscodeFallback)
        assert factory.calls == 0
        assert lifecycle.load_attempts == 0

    @pytest.mark.asyncio
    async def test_source_size_defaults_to_buffer_length(self) -> None:
        request = make_request(source_bytes=b"x" * 42)

        assert request.source_size == 42


class TestErrors:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("source_bytes", [None, b""])
    async def test_missing_input(
        self, service: TranscodingService, lifecycle: EngineLifecycleManager, source_bytes
    ) -> None:
        with pytest.raises(InputMissingError):
            await service.execute(make_request(source_bytes=source_bytes))

        assert lifecycle.load_attempts == 0

    @pytest.mark.asyncio
    async def test_unknown_operation_fails_before_engine_load(
        self, service: TranscodingService, lifecycle: EngineLifecycleManager
    ) -> None:
        with pytest.raises(UnsupportedOperationError) as exc_info:
            await service.execute(make_request("reverse-video"))

        assert exc_info.value.operation == "reverse-video"
        assert lifecycle.load_attempts == 0

    @pytest.mark.asyncio
    async def test_invalid_params_fail_before_engine_load(
        self, service: TranscodingService, lifecycle: EngineLifecycleManager
    ) -> None:
        with pytest.raises(ValidationError):
            await service.execute(make_request(Operation.SPEED_VIDEO, params={"speed": -2}))

        assert lifecycle.load_attempts == 0

    @pytest.mark.asyncio
    async def test_engine_load_error_propagates(self) -> None:
        service = TranscodingService(EngineLifecycleManager(CountingFactory(error=OSError("disk full"))))

        with pytest.raises(EngineLoadError):
            await service.execute(make_request())

    @pytest.mark.asyncio
    async def test_engine_failure_wraps_diagnostics(self) -> None:
        engine = FakeEngine(run_error=FFmpegRunError(1, "Invalid data found when processing input"))
        service = TranscodingService(EngineLifecycleManager(CountingFactory(engine)))

        with pytest.raises(TranscodeExecutionError) as exc_info:
            await service.execute(make_request())

        error = exc_info.value
        assert error.operation == "mov-to-mp4"
        assert isinstance(error.cause, FFmpegRunError)
        assert error.__cause__ is error.cause
        assert error.diagnostics == "Invalid data found when processing input"

    @pytest.mark.asyncio
    async def test_missing_output_is_execution_error(self) -> None:
        engine = FakeEngine()

        async def run_without_output(args):
            engine.commands.append(tuple(args))

        engine.run = run_without_output
        service = TranscodingService(EngineLifecycleManager(CountingFactory(engine)))

        with pytest.raises(TranscodeExecutionError) as exc_info:
            await service.execute(make_request())

        assert isinstance(exc_info.value.cause, FileNotFoundError)


class TestCleanup:
    """No virtual file outlives its request."""

    @pytest.mark.asyncio
    async def test_no_files_left_after_success(
        self, service: TranscodingService, fake_engine: FakeEngine
    ) -> None:
        before = await fake_engine.list_files()
        await service.execute(make_request())

        assert await fake_engine.list_files() == before == []

    @pytest.mark.asyncio
    async def test_no_files_left_after_engine_failure(self) -> None:
        engine = FakeEngine(run_error=FFmpegRunError(1, "boom"))
        service = TranscodingService(EngineLifecycleManager(CountingFactory(engine)))

        with pytest.raises(TranscodeExecutionError):
            await service.execute(make_request())

        assert engine.written
        assert await engine.list_files() == []

    @pytest.mark.asyncio
    async def test_cleanup_failure_does_not_mask_success(self) -> None:
        engine = FakeEngine(delete_error=PermissionError("locked"))
        service = TranscodingService(EngineLifecycleManager(CountingFactory(engine)))

        result = await service.execute(make_request())

        assert isinstance(result, TranscodeSuccess)

    @pytest.mark.asyncio
    async def test_cleanup_failure_does_not_mask_engine_error(self) -> None:
        engine = FakeEngine(
            run_error=FFmpegRunError(1, "boom"),
            delete_error=PermissionError("locked"),
        )
        service = TranscodingService(EngineLifecycleManager(CountingFactory(engine)))

        with pytest.raises(TranscodeExecutionError) as exc_info:
            await service.execute(make_request())

        assert isinstance(exc_info.value.cause, FFmpegRunError)


class TestConcurrentRequests:
    @pytest.mark.asyncio
    async def test_concurrent_requests_use_distinct_files(self) -> None:
        engine = FakeEngine(run_delay=0.01)
        factory = CountingFactory(engine, delay=0.02)
        service = TranscodingService(EngineLifecycleManager(factory))

        results = await asyncio.gather(
            *(service.execute(make_request(source_name="same.mov")) for _ in range(8))
        )

        assert factory.calls == 1
        assert all(isinstance(result, TranscodeSuccess) for result in results)
        input_names = [command[1] for command in engine.commands]
        output_names = [command[-1] for command in engine.commands]
        assert len(set(input_names)) == 8
        assert len(set(output_names)) == 8
        assert await engine.list_files() == []


class TestVirtualFileNames:
    @pytest.mark.parametrize(
        "source_name, expected",
        [("clip.MOV", ".mov"), ("archive.tar.mkv", ".mkv"), ("noext", ".mp4"), ("", ".mp4"), ("dot.", ".mp4")],
    )
    def test_input_extension(self, source_name: str, expected: str) -> None:
        assert input_extension(source_name) == expected

    @given(source_name=st.text(max_size=30))
    @settings(max_examples=100)
    def test_names_are_unique_and_bare(self, source_name: str) -> None:
        first = virtual_file_names(source_name, "mp4")
        second = virtual_file_names(source_name, "mp4")

        assert set(first).isdisjoint(second)
        assert all(name.replace("-", "").replace(".", "").isalnum() for name in first + second)
        assert first[1].endswith("-output.mp4")
