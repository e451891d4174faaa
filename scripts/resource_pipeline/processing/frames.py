"""
Frame grid slicing for spritesheet pictures.
"""

from enum import Enum
from typing import List

from ..codec import Rect
from ..errors import ParseError


class FrameOrigin(Enum):
    """Coordinate convention of the emitted rectangles."""
    TOP_LEFT = "top-left"
    BOTTOM_LEFT = "bottom-left"


def grid_size(picture_width: int, picture_height: int, cell_width: int, cell_height: int) -> int:
    """Number of whole cells that fit in the picture."""
    return (picture_width // cell_width) * (picture_height // cell_height)


def slice_frame_grid(picture_width: int, picture_height: int,
                     cell_width: int, cell_height: int,
                     origin: FrameOrigin = FrameOrigin.TOP_LEFT) -> List[Rect]:
    """
    Tile a picture into a row-major grid of fixed-size cells.

    Index 0 is the top-left cell of the image; indices advance left to
    right, then top to bottom. Cells that would extend past the right or
    bottom edge are dropped.

    With ``FrameOrigin.TOP_LEFT`` rectangles use image coordinates (y grows
    downwards). ``FrameOrigin.BOTTOM_LEFT`` keeps the same cell order and
    mirrors y for engines whose y axis points up.

    Args:
        picture_width: Picture width in pixels
        picture_height: Picture height in pixels
        cell_width: Frame width in pixels
        cell_height: Frame height in pixels
        origin: Coordinate convention for the returned rectangles

    Returns:
        List of frame rectangles

    Raises:
        ParseError: If the cell size is not positive
    """
    if cell_width <= 0 or cell_height <= 0:
        raise ParseError(f"frame cell size must be positive, got {cell_width}x{cell_height}")

    columns = picture_width // cell_width
    rows = picture_height // cell_height

    frames = []
    for row in range(rows):
        for column in range(columns):
            x = column * cell_width
            y = row * cell_height

            if origin is FrameOrigin.BOTTOM_LEFT:
                y = picture_height - y - cell_height

            frames.append(Rect(x, y, cell_width, cell_height))

    return frames
