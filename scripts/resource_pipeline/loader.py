"""
Descriptor loading: single descriptor files or a breadth-first project scan.
"""

import logging
import os
from collections import deque
from pathlib import Path
from typing import Dict, Iterator, List, Union

from .descriptors import (
    AnimationDescriptor, SpritesheetDescriptor, parse_animations, parse_spritesheets,
)
from .errors import BuildIOError, StructuralError

logger = logging.getLogger(__name__)


DEFAULT_DESCRIPTOR_SUFFIX = ".anim.yml"

IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.gif', '.bmp', '.webp'}


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise BuildIOError(f"cannot read {path}: {e}") from e


def _list_dir(path: Path) -> List[os.DirEntry]:
    try:
        with os.scandir(path) as entries:
            return sorted(entries, key=lambda entry: entry.name)
    except OSError as e:
        raise BuildIOError(f"cannot read directory {path}: {e}") from e


def load_animation_file(path: Union[str, Path]) -> List[AnimationDescriptor]:
    """
    Parse one descriptor file.

    Raises:
        BuildIOError: If the file cannot be read
        ParseError: If its structure is malformed
    """
    path = Path(path)
    descriptors = parse_animations(_read_text(path), str(path))
    logger.debug(f"Loaded {len(descriptors)} animations from {path}")
    return descriptors


def load_spritesheet_meta(path: Union[str, Path]) -> Dict[str, SpritesheetDescriptor]:
    """Parse a spritesheet metadata file (id -> cell size)."""
    path = Path(path)
    sheets = parse_spritesheets(_read_text(path), str(path))
    logger.debug(f"Loaded metadata for {len(sheets)} spritesheets from {path}")
    return sheets


def discover_descriptor_files(root: Union[str, Path],
                              suffix: str = DEFAULT_DESCRIPTOR_SUFFIX) -> Iterator[Path]:
    """
    Yield descriptor files under root in breadth-first order.

    The work list holds (path, depth) pairs seeded with the root's entries.
    Entries of one directory are visited in name order; a directory's
    children are queued behind everything already discovered. Each real
    directory is listed once, so symlinks back into the tree are skipped.

    Raises:
        BuildIOError: If the root or any directory below it cannot be read
    """
    root = Path(root)
    if not root.is_dir():
        raise BuildIOError(f"project root {root} is not a directory")

    visited = {root.resolve()}
    queue = deque((Path(entry.path), 1) for entry in _list_dir(root))

    while queue:
        path, depth = queue.popleft()

        if path.is_dir():
            real = path.resolve()
            if real in visited:
                logger.debug(f"Skipping {path}: {real} was already scanned")
                continue
            visited.add(real)
            for entry in _list_dir(path):
                queue.append((Path(entry.path), depth + 1))
        elif path.name.endswith(suffix):
            logger.debug(f"Found descriptor file {path} (depth {depth})")
            yield path


def scan_project(root: Union[str, Path],
                 suffix: str = DEFAULT_DESCRIPTOR_SUFFIX) -> List[AnimationDescriptor]:
    """Load every descriptor file reachable from root, in BFS order."""
    descriptors: List[AnimationDescriptor] = []
    files = 0

    for path in discover_descriptor_files(root, suffix):
        descriptors.extend(load_animation_file(path))
        files += 1

    logger.info(f"Scanned {root}: {len(descriptors)} animations in {files} descriptor files")
    return descriptors


def scan_spritesheet_images(directory: Union[str, Path]) -> List[Path]:
    """
    List the spritesheet images of a flat spritesheets directory.

    Non-image files are skipped with a warning.

    Raises:
        BuildIOError: If the directory cannot be read
        StructuralError: If the directory contains a subdirectory
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise BuildIOError(f"spritesheets directory {directory} does not exist")

    images = []
    for entry in _list_dir(directory):
        path = Path(entry.path)
        if entry.is_dir():
            raise StructuralError(
                f"directory '{entry.name}' found in the spritesheets folder {directory}",
                str(path),
            )
        if path.suffix.lower() not in IMAGE_EXTENSIONS:
            logger.warning(f"Skipping non-image file {path}")
            continue
        images.append(path)

    return images


def spritesheet_id(path: Union[str, Path]) -> str:
    """Spritesheet id of an image file: its name without extension."""
    return Path(path).stem
