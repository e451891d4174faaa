"""
Store writer: encodes records and puts them into their buckets.
"""

import logging
from typing import Dict, Iterable, List

from ..codec import (
    AnimationRecord, Picture, Spritesheet, Texture,
    encode_animation, encode_picture, encode_spritesheet, encode_tag, encode_texture,
)
from ..store import ANIMATIONS, PICTURES, SPRITESHEETS, TAGS, TEXTURES, Transaction

logger = logging.getLogger(__name__)


class StoreWriter:
    """Writes encoded records, creating target buckets on first use."""

    def ensure_buckets(self, tx: Transaction, names: Iterable[str]) -> None:
        for name in names:
            tx.create_bucket_if_not_exists(name)

    def put(self, tx: Transaction, bucket: str, key: str, value: bytes) -> None:
        tx.create_bucket_if_not_exists(bucket).put(key, value)
        logger.debug(f"Stored {bucket}/{key} ({len(value)} bytes)")

    def put_picture(self, tx: Transaction, key: str, picture: Picture, bucket: str = PICTURES) -> None:
        """Store a picture; embedded builds pass bucket=SPRITESHEETS."""
        self.put(tx, bucket, key, encode_picture(picture))

    def put_texture(self, tx: Transaction, key: str, texture: Texture) -> None:
        self.put(tx, TEXTURES, key, encode_texture(texture))

    def put_spritesheet(self, tx: Transaction, key: str, sheet: Spritesheet) -> None:
        self.put(tx, SPRITESHEETS, key, encode_spritesheet(sheet))

    def put_animation(self, tx: Transaction, name: str, record: AnimationRecord) -> None:
        self.put(tx, ANIMATIONS, name, encode_animation(record))

    def put_tag(self, tx: Transaction, tag: str, names: List[str]) -> None:
        self.put(tx, TAGS, tag, encode_tag(names))

    def put_tags(self, tx: Transaction, index: Dict[str, List[str]]) -> None:
        """Write every tag entry; keys are written in sorted order."""
        for tag in sorted(index):
            self.put_tag(tx, tag, index[tag])
