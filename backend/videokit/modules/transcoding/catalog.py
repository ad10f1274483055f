"""Operation catalog and FFmpeg command builder.

Each operation is one catalog entry: its parameter model plus a builder
that turns validated parameters into engine arguments. Building a command
is pure; it never touches the engine.

New operations are added by registering another entry:

    @default_catalog.register(Operation.X, XParams)
    def _build_x(params, input_name, output_name):
        return ("-i", input_name, ..., output_name)
"""

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from videokit.modules.transcoding.errors import UnsupportedOperationError
from videokit.modules.transcoding.models import (
    AUDIO_TEMPO_RANGE,
    COMPRESSION_CRF,
    CompressQuality,
    FlipDirection,
    Operation,
    ROTATION_FILTERS,
)
from videokit.modules.transcoding.schemas import (
    CompressParams,
    FlipParams,
    NoParams,
    OperationParams,
    ResizeParams,
    RotateParams,
    SpeedParams,
    TrimParams,
    VideoToGifParams,
)

CommandPipeline = tuple[str, ...]
CommandBuilder = Callable[[Any, str, str], CommandPipeline]
ParamsInput = Union[OperationParams, Mapping[str, Any], None]


@dataclass(frozen=True)
class OperationSpec:
    """A single catalog entry."""
    operation: Operation
    params_model: type[OperationParams]
    builder: CommandBuilder

    def resolve_params(self, params: ParamsInput) -> OperationParams:
        """Validate caller parameters into this entry's model.

        Raises:
            pydantic.ValidationError: If a parameter has an invalid value
        """
        if params is None:
            return self.params_model()
        if isinstance(params, self.params_model):
            return params
        if isinstance(params, OperationParams):
            params = params.model_dump(by_alias=True)
        return self.params_model.model_validate(dict(params))


class OperationCatalog:
    """Registry mapping operations to command builders."""

    def __init__(self) -> None:
        self._specs: dict[Operation, OperationSpec] = {}

    def register(
        self,
        operation: Operation,
        params_model: type[OperationParams] = NoParams,
    ) -> Callable[[CommandBuilder], CommandBuilder]:
        """Decorator registering a builder for an operation.

        Raises:
            ValueError: If the operation already has an entry
        """
        def decorator(builder: CommandBuilder) -> CommandBuilder:
            if operation in self._specs:
                raise ValueError(f"Operation '{operation.value}' is already registered")
            self._specs[operation] = OperationSpec(operation, params_model, builder)
            return builder

        return decorator

    def get(self, operation: Union[Operation, str]) -> OperationSpec:
        """Look up the entry for an operation identifier.

        Raises:
            UnsupportedOperationError: If the identifier is unknown
        """
        try:
            return self._specs[Operation(operation)]
        except (ValueError, KeyError):
            raise UnsupportedOperationError(operation) from None

    def operations(self) -> list[Operation]:
        return list(self._specs)

    def describe(self) -> list[tuple[Operation, dict[str, Any]]]:
        """List every operation with its default parameters."""
        return [
            (spec.operation, spec.params_model().model_dump(by_alias=True))
            for spec in self._specs.values()
        ]

    def build_command(
        self,
        operation: Union[Operation, str],
        params: ParamsInput,
        input_name: str,
        output_name: str,
    ) -> CommandPipeline:
        """Build the engine arguments for an operation.

        Args:
            operation: Operation identifier
            params: Parameter model, mapping or None for defaults
            input_name: Virtual file holding the source
            output_name: Virtual file the engine writes to

        Returns:
            Immutable argument tuple

        Raises:
            UnsupportedOperationError: If the operation is unknown
        """
        spec = self.get(operation)
        return tuple(spec.builder(spec.resolve_params(params), input_name, output_name))


def format_number(value: float) -> str:
    """Render a number the way filter expressions expect (2.0 -> '2')."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


default_catalog = OperationCatalog()


@default_catalog.register(Operation.MUTE_VIDEO)
def _build_mute(params: NoParams, input_name: str, output_name: str) -> CommandPipeline:
    return ("-i", input_name, "-c:v", "copy", "-an", output_name)


@default_catalog.register(Operation.MP4_TO_MP3)
def _build_extract_audio(params: NoParams, input_name: str, output_name: str) -> CommandPipeline:
    return ("-i", input_name, "-vn", "-acodec", "libmp3lame", "-q:a", "2", output_name)


@default_catalog.register(Operation.VIDEO_TO_GIF, VideoToGifParams)
def _build_gif(params: VideoToGifParams, input_name: str, output_name: str) -> CommandPipeline:
    video_filter = f"fps={format_number(params.fps)},scale={params.width}:-1:flags=lanczos"
    return ("-i", input_name, "-vf", video_filter, "-c:v", "gif", output_name)


@default_catalog.register(Operation.GIF_TO_MP4)
def _build_gif_to_mp4(params: NoParams, input_name: str, output_name: str) -> CommandPipeline:
    # yuv420p and libx264 both need even dimensions
    return (
        "-i", input_name,
        "-movflags", "faststart",
        "-pix_fmt", "yuv420p",
        "-vf", "scale=trunc(iw/2)*2:trunc(ih/2)*2",
        output_name,
    )


@default_catalog.register(Operation.TRIM_VIDEO, TrimParams)
def _build_trim(params: TrimParams, input_name: str, output_name: str) -> CommandPipeline:
    return (
        "-i", input_name,
        "-ss", params.start_time,
        "-t", params.duration,
        "-c", "copy",
        output_name,
    )


@default_catalog.register(Operation.SPEED_VIDEO, SpeedParams)
def _build_speed(params: SpeedParams, input_name: str, output_name: str) -> CommandPipeline:
    video_factor = format_number(1 / params.speed)
    low, high = AUDIO_TEMPO_RANGE
    if low <= params.speed <= high:
        audio_factor = format_number(params.speed)
        graph = f"[0:v]setpts={video_factor}*PTS[v];[0:a]atempo={audio_factor}[a]"
        return (
            "-i", input_name,
            "-filter_complex", graph,
            "-map", "[v]",
            "-map", "[a]",
            output_name,
        )
    # atempo cannot follow, drop the audio track
    return ("-i", input_name, "-filter:v", f"setpts={video_factor}*PTS", "-an", output_name)


@default_catalog.register(Operation.RESIZE_VIDEO, ResizeParams)
def _build_resize(params: ResizeParams, input_name: str, output_name: str) -> CommandPipeline:
    w, h = params.width, params.height
    video_filter = (
        f"scale={w}:{h}:force_original_aspect_ratio=decrease,"
        f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2"
    )
    return ("-i", input_name, "-vf", video_filter, "-c:a", "copy", output_name)


def compression_factor(quality: Optional[str]) -> str:
    """Constant rate factor for a quality tier; unknown tiers compress as medium."""
    try:
        tier = CompressQuality(quality)
    except ValueError:
        tier = CompressQuality.MEDIUM
    return COMPRESSION_CRF[tier]


@default_catalog.register(Operation.COMPRESS_VIDEO, CompressParams)
def _build_compress(params: CompressParams, input_name: str, output_name: str) -> CommandPipeline:
    return (
        "-i", input_name,
        "-c:v", "libx264",
        "-crf", compression_factor(params.quality),
        "-preset", "fast",
        "-c:a", "aac",
        "-b:a", "128k",
        output_name,
    )


@default_catalog.register(Operation.ROTATE_VIDEO, RotateParams)
def _build_rotate(params: RotateParams, input_name: str, output_name: str) -> CommandPipeline:
    rotate_filter = ROTATION_FILTERS.get(params.rotation, ROTATION_FILTERS[90])
    return ("-i", input_name, "-vf", rotate_filter, "-c:a", "copy", output_name)


@default_catalog.register(Operation.FLIP_VIDEO, FlipParams)
def _build_flip(params: FlipParams, input_name: str, output_name: str) -> CommandPipeline:
    flip_filter = "vflip" if params.direction == FlipDirection.VERTICAL.value else "hflip"
    return ("-i", input_name, "-vf", flip_filter, "-c:a", "copy", output_name)


def _build_h264_mp4(params: NoParams, input_name: str, output_name: str) -> CommandPipeline:
    return (
        "-i", input_name,
        "-c:v", "libx264",
        "-preset", "fast",
        "-crf", "23",
        "-c:a", "aac",
        "-b:a", "128k",
        "-movflags", "faststart",
        output_name,
    )


for _operation in (
    Operation.MOV_TO_MP4,
    Operation.WEBM_TO_MP4,
    Operation.MKV_TO_MP4,
    Operation.AVI_TO_MP4,
):
    default_catalog.register(_operation)(_build_h264_mp4)
del _operation


@default_catalog.register(Operation.MP4_TO_WEBM)
def _build_webm(params: NoParams, input_name: str, output_name: str) -> CommandPipeline:
    return (
        "-i", input_name,
        "-c:v", "libvpx",
        "-crf", "30",
        "-b:v", "1M",
        "-c:a", "libvorbis",
        output_name,
    )


def build_command(
    operation: Union[Operation, str],
    params: ParamsInput,
    input_name: str,
    output_name: str,
) -> CommandPipeline:
    """Build a command with the default catalog."""
    return default_catalog.build_command(operation, params, input_name, output_name)
