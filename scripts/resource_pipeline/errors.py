"""
Error taxonomy for the resource pipeline.
Every error aborts the build; nothing here is recovered locally.
"""

from typing import Optional


class BuildError(Exception):
    """Base exception for resource build errors."""

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.step = step


class ParseError(BuildError):
    """Malformed descriptor or metadata document."""

    def __init__(self, message: str, path: Optional[str] = None):
        if path:
            message = f"{path}: {message}"
        super().__init__(message)
        self.path = path


class CodecError(ParseError):
    """Stored bytes could not be decoded into a record."""
    pass


class NotFoundError(BuildError):
    """Missing bucket or missing referenced key."""

    def __init__(self, message: str, bucket: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.bucket = bucket
        self.key = key


class IndexOutOfRangeError(BuildError):
    """Frame index beyond the resolved frame grid."""

    def __init__(self, animation: str, frame_index: int, grid_size: int):
        super().__init__(
            f"animation '{animation}' references frame {frame_index}, "
            f"but its spritesheet only has {grid_size} frames"
        )
        self.animation = animation
        self.frame_index = frame_index
        self.grid_size = grid_size


class BuildIOError(BuildError):
    """Filesystem or store failure."""
    pass


class StructuralError(BuildError):
    """Unexpected directory where a file was required."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
