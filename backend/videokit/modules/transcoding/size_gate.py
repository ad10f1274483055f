"""Admission control for in-process transcoding.

Sources above the limit are not transcoded; the caller gets a fallback
notice pointing at desktop tools instead.
"""

from typing import Union

from videokit.modules.transcoding.schemas import SizeAdmit, TranscodeFallback

MAX_SOURCE_SIZE = 100 * 1024 * 1024  # 100 MiB

_ADMIT = SizeAdmit()


def fallback_message(source_size: int) -> str:
    size_mb = source_size / 1024 / 1024
    return (
        f"File size ({size_mb:.1f}MB) exceeds the 100MB limit for in-process "
        "processing. For larger files, we recommend free desktop software "
        "like HandBrake or VLC Media Player."
    )


def check_source_size(source_size: int) -> Union[SizeAdmit, TranscodeFallback]:
    """Admit a source or return a fallback notice.

    Args:
        source_size: Source size in bytes

    Returns:
        SizeAdmit when source_size <= MAX_SOURCE_SIZE, TranscodeFallback otherwise
    """
    if source_size > MAX_SOURCE_SIZE:
        return TranscodeFallback(message=fallback_message(source_size))
    return _ADMIT
