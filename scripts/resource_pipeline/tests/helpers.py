"""
Fixture builders shared by the resource pipeline tests.
"""

from pathlib import Path
from typing import Tuple
from PIL import Image


def cell_color(index: int) -> Tuple[int, int, int, int]:
    """Distinct opaque color for grid cell ``index`` (row-major)."""
    return (index * 16 % 256, 255 - index * 8 % 256, 128, 255)


def create_grid_image(columns: int, rows: int, cell_width: int, cell_height: int,
                      extra_width: int = 0, extra_height: int = 0) -> Image.Image:
    """
    Create a spritesheet whose cells are filled with ``cell_color(i)``.

    ``extra_width``/``extra_height`` add a transparent partial cell margin
    on the right and bottom edges.
    """
    width = columns * cell_width + extra_width
    height = rows * cell_height + extra_height
    image = Image.new('RGBA', (width, height), (0, 0, 0, 0))

    for row in range(rows):
        for column in range(columns):
            index = row * columns + column
            box = (column * cell_width, row * cell_height,
                   (column + 1) * cell_width, (row + 1) * cell_height)
            image.paste(cell_color(index), box)

    return image


def write_grid_image(path: Path, columns: int, rows: int, cell_width: int, cell_height: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    create_grid_image(columns, rows, cell_width, cell_height).save(path)
    return path
