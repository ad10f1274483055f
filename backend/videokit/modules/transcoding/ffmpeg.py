"""FFmpeg-backed transcoding engine.

The engine drives the native ffmpeg executable. Its working storage is a
private directory; virtual files are plain files inside it, addressed by
bare name only.
"""

import asyncio
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from videokit.core.config import Settings, settings as default_settings
from videokit.modules.transcoding.errors import EngineUnsupportedError

logger = logging.getLogger(__name__)

# Checked when ffmpeg is neither configured nor on PATH
COMMON_FFMPEG_PATHS = (
    "/usr/local/bin/ffmpeg",
    "/usr/bin/ffmpeg",
    "/opt/homebrew/bin/ffmpeg",
)

# Bytes of stderr kept for diagnostics
STDERR_TAIL_BYTES = 4000


class FFmpegRunError(Exception):
    """Raised when ffmpeg exits with a non-zero code."""

    def __init__(self, returncode: int, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"ffmpeg exited with code {returncode}")


def find_ffmpeg(configured_path: Optional[str] = None) -> Optional[str]:
    """Find the ffmpeg binary.

    Args:
        configured_path: Explicit path from settings, tried first

    Returns:
        Absolute path to ffmpeg or None if not installed
    """
    if configured_path:
        resolved = shutil.which(configured_path)
        if resolved:
            return resolved
        return None

    ffmpeg_path = shutil.which("ffmpeg")
    if ffmpeg_path:
        return ffmpeg_path

    for path in COMMON_FFMPEG_PATHS:
        if os.path.isfile(path) and os.access(path, os.X_OK):
            return path

    return None


def _validate_name(name: str) -> str:
    if not name or name in (".", "..") or os.sep in name or (os.altsep and os.altsep in name):
        raise ValueError(f"Invalid virtual file name: {name!r}")
    return name


class FFmpegEngine:
    """Transcoding engine running ffmpeg inside a private working directory."""

    def __init__(self, ffmpeg_path: str, work_dir: Path):
        """Initialize engine.

        Args:
            ffmpeg_path: Path to ffmpeg binary
            work_dir: Existing directory used as working storage
        """
        self.ffmpeg_path = ffmpeg_path
        self.work_dir = Path(work_dir)

    def _path(self, name: str) -> Path:
        return self.work_dir / _validate_name(name)

    async def write_file(self, name: str, data: bytes) -> None:
        await asyncio.to_thread(self._path(name).write_bytes, data)

    async def read_file(self, name: str) -> bytes:
        return await asyncio.to_thread(self._path(name).read_bytes)

    async def delete_file(self, name: str) -> None:
        await asyncio.to_thread(self._path(name).unlink)

    async def list_files(self) -> list[str]:
        return sorted(await asyncio.to_thread(os.listdir, self.work_dir))

    def build_args(self, args: Sequence[str]) -> list[str]:
        return [self.ffmpeg_path, "-hide_banner", "-y", *args]

    async def run(self, args: Sequence[str]) -> None:
        """Run ffmpeg with the given arguments inside the working directory.

        Raises:
            FFmpegRunError: If ffmpeg exits with a non-zero code
        """
        cmd = self.build_args(args)
        logger.debug("Running ffmpeg", extra={"command": " ".join(cmd)})

        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.work_dir,
        )
        _, stderr = await process.communicate()

        if process.returncode != 0:
            tail = stderr[-STDERR_TAIL_BYTES:].decode("utf-8", errors="replace")
            raise FFmpegRunError(process.returncode, tail)

    async def close(self) -> None:
        """Remove the working storage."""
        await asyncio.to_thread(shutil.rmtree, self.work_dir, True)


async def probe_ffmpeg(ffmpeg_path: str) -> str:
    """Run `ffmpeg -version` and return its first line.

    Raises:
        RuntimeError: If ffmpeg cannot report its version
    """
    process = await asyncio.create_subprocess_exec(
        ffmpeg_path,
        "-hide_banner",
        "-version",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        raise RuntimeError(
            f"ffmpeg -version exited with code {process.returncode}: "
            f"{stderr.decode('utf-8', errors='replace').strip()}"
        )
    return stdout.decode("utf-8", errors="replace").splitlines()[0] if stdout else ""


async def load_ffmpeg_engine(config: Optional[Settings] = None) -> FFmpegEngine:
    """Construct a ready FFmpegEngine.

    Args:
        config: Settings to read FFMPEG_PATH / ENGINE_WORK_DIR from

    Returns:
        Engine with a fresh working directory

    Raises:
        EngineUnsupportedError: If no ffmpeg executable exists on this system
        RuntimeError: If the executable does not run
        asyncio.TimeoutError: If probing takes longer than ENGINE_LOAD_TIMEOUT_SECONDS
        OSError: If the working directory cannot be created
    """
    config = config or default_settings

    ffmpeg_path = find_ffmpeg(config.FFMPEG_PATH)
    if ffmpeg_path is None:
        raise EngineUnsupportedError(
            "ffmpeg executable not found; install ffmpeg or set FFMPEG_PATH"
        )

    version = await asyncio.wait_for(
        probe_ffmpeg(ffmpeg_path),
        timeout=config.ENGINE_LOAD_TIMEOUT_SECONDS,
    )

    if config.ENGINE_WORK_DIR:
        os.makedirs(config.ENGINE_WORK_DIR, exist_ok=True)
    work_dir = tempfile.mkdtemp(prefix="videokit-", dir=config.ENGINE_WORK_DIR)

    logger.info(
        "FFmpeg engine constructed",
        extra={"ffmpeg_path": ffmpeg_path, "ffmpeg_version": version, "work_dir": work_dir},
    )
    return FFmpegEngine(ffmpeg_path, Path(work_dir))
