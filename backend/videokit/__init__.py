"""videokit - in-process video transcoding service."""

__version__ = "0.1.0"
