"""
Reference resolution: animation descriptor -> spritesheet picture -> frame grid.

Two store schemas are supported. In the embedded schema the spritesheet
picture itself lives under the ``spritesheets`` bucket and its cell size
comes from the spritesheet metadata file. In the indexed schema the chain
is spritesheet record -> texture record -> picture, each in its own bucket.
A build run uses exactly one resolver.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..codec import Picture, Rect, decode_picture, decode_spritesheet, decode_texture
from ..descriptors import AnimationDescriptor, SpritesheetDescriptor
from ..errors import NotFoundError
from ..store import PICTURES, SPRITESHEETS, TEXTURES, Transaction
from .frames import FrameOrigin, slice_frame_grid

logger = logging.getLogger(__name__)


class ReferenceResolver(ABC):
    """Resolves the frame grid of an animation's spritesheet."""

    def __init__(self, origin: FrameOrigin = FrameOrigin.TOP_LEFT):
        self.origin = origin

    @abstractmethod
    def resolve(self, tx: Transaction, descriptor: AnimationDescriptor) -> List[Rect]:
        """
        Return the ordered frame grid for the descriptor's spritesheet.

        Args:
            tx: Open store transaction to read from
            descriptor: Animation whose references are resolved

        Raises:
            NotFoundError: If a bucket or a referenced key is missing
        """
        pass

    def _lookup(self, tx: Transaction, bucket: str, key: str,
                kind: str, descriptor: AnimationDescriptor) -> bytes:
        data = tx.bucket(bucket).get(key)
        if data is None:
            raise NotFoundError(
                f"no {kind} named '{key}' found (referenced by animation '{descriptor.name}')",
                bucket=bucket,
                key=key,
            )
        return data

    def _slice(self, picture: Picture, cell_width: int, cell_height: int) -> List[Rect]:
        grid = slice_frame_grid(picture.width, picture.height, cell_width, cell_height, self.origin)
        logger.debug(
            f"Sliced {picture.width}x{picture.height} picture into {len(grid)} "
            f"frames of {cell_width}x{cell_height}"
        )
        return grid


class EmbeddedResolver(ReferenceResolver):
    """Picture stored directly under the spritesheet id; cell size from metadata."""

    def __init__(self, spritesheets: Dict[str, SpritesheetDescriptor],
                 origin: FrameOrigin = FrameOrigin.TOP_LEFT):
        super().__init__(origin)
        self.spritesheets = spritesheets

    def resolve(self, tx: Transaction, descriptor: AnimationDescriptor) -> List[Rect]:
        sheet_id = descriptor.spritesheet_id
        data = self._lookup(tx, SPRITESHEETS, sheet_id, "spritesheet", descriptor)

        meta = self.spritesheets.get(sheet_id)
        if meta is None:
            raise NotFoundError(
                f"no metadata for spritesheet '{sheet_id}' (referenced by animation '{descriptor.name}')",
                bucket=SPRITESHEETS,
                key=sheet_id,
            )

        picture = decode_picture(data).decompress()
        return self._slice(picture, meta.width, meta.height)


class IndexedResolver(ReferenceResolver):
    """Spritesheet -> texture -> picture chain through three buckets."""

    def resolve(self, tx: Transaction, descriptor: AnimationDescriptor) -> List[Rect]:
        sheet = decode_spritesheet(
            self._lookup(tx, SPRITESHEETS, descriptor.spritesheet_id, "spritesheet", descriptor)
        )
        texture = decode_texture(
            self._lookup(tx, TEXTURES, descriptor.texture_key, "texture", descriptor)
        )
        picture = decode_picture(
            self._lookup(tx, PICTURES, texture.picture_id, "picture", descriptor)
        ).decompress()

        return self._slice(picture, sheet.width, sheet.height)


def create_resolver(mode: str, origin: FrameOrigin,
                    spritesheets: Optional[Dict[str, SpritesheetDescriptor]] = None) -> ReferenceResolver:
    """Create the resolver for a build mode ('embedded' or 'indexed')."""
    if mode == "embedded":
        return EmbeddedResolver(spritesheets or {}, origin)
    elif mode == "indexed":
        return IndexedResolver(origin)
    else:
        raise ValueError(f"Unknown build mode: {mode}")
