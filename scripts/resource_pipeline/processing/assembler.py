"""
Animation assembly: maps descriptor frame indices onto a frame grid.
"""

from typing import Sequence

from ..codec import AnimationRecord, Rect
from ..descriptors import AnimationDescriptor
from ..errors import IndexOutOfRangeError


def assemble(descriptor: AnimationDescriptor, frame_grid: Sequence[Rect]) -> AnimationRecord:
    """
    Build the persisted animation record for a descriptor.

    Descriptor order is kept exactly; repeated indices produce repeated
    rectangles (hold frames).

    Raises:
        IndexOutOfRangeError: If a frame index does not address a grid cell
    """
    frames = []
    durations = []

    for frame_index, duration in descriptor.frames:
        if frame_index >= len(frame_grid):
            raise IndexOutOfRangeError(descriptor.name, frame_index, len(frame_grid))
        frames.append(frame_grid[frame_index])
        durations.append(duration)

    return AnimationRecord(
        spritesheet_id=descriptor.spritesheet_id,
        texture_id=descriptor.texture_key,
        frames=tuple(frames),
        durations=tuple(durations),
    )
