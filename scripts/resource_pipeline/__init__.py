"""
Resource Pipeline for 2D stage resources

Builds animation and spritesheet source metadata plus spritesheet images
into a single bucketed, transactional resource file read by the engine.
"""

__version__ = "0.1.0"

from .config import BuildConfig
from .errors import (
    BuildError, ParseError, CodecError, NotFoundError,
    IndexOutOfRangeError, BuildIOError, StructuralError,
)
from .descriptors import AnimationDescriptor, SpritesheetDescriptor
from .store import ResourceStore
from .pipeline import BuildPipeline, BuildState, PipelineStep, run_build

__all__ = [
    "BuildConfig",
    "BuildError",
    "ParseError",
    "CodecError",
    "NotFoundError",
    "IndexOutOfRangeError",
    "BuildIOError",
    "StructuralError",
    "AnimationDescriptor",
    "SpritesheetDescriptor",
    "ResourceStore",
    "BuildPipeline",
    "BuildState",
    "PipelineStep",
    "run_build",
]
