"""Application modules.

- transcoding: in-process video operations backed by a shared FFmpeg engine
"""
