"""
Build processing modules for frame slicing, reference resolution, animation assembly, tag indexing and store writing.
"""

from .frames import FrameOrigin, slice_frame_grid, grid_size
from .resolver import ReferenceResolver, EmbeddedResolver, IndexedResolver, create_resolver
from .assembler import assemble
from .tags import build_tag_index
from .writer import StoreWriter

__all__ = [
    "FrameOrigin",
    "slice_frame_grid",
    "grid_size",
    "ReferenceResolver",
    "EmbeddedResolver",
    "IndexedResolver",
    "create_resolver",
    "assemble",
    "build_tag_index",
    "StoreWriter",
]
