"""
Tests for reference resolution in both store schemas.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

from ..codec import Rect, Spritesheet, Texture
from ..descriptors import AnimationDescriptor, SpritesheetDescriptor
from ..errors import NotFoundError
from ..processing.frames import FrameOrigin
from ..processing.resolver import EmbeddedResolver, IndexedResolver, create_resolver
from ..processing.writer import StoreWriter
from ..store import PICTURES, SPRITESHEETS, TEXTURES, ResourceStore
from ..utils.image import ImageUtils
from .helpers import create_grid_image


def _animation(spritesheet="hero", texture=None):
    return AnimationDescriptor(
        name="walk", spritesheet_id=spritesheet, frames=((0, 100),), texture_id=texture,
    )


class _StoreTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.store = ResourceStore(Path(self.temp_dir) / "stage.res").open()
        self.writer = StoreWriter()
        self.picture = ImageUtils.picture_from_image(create_grid_image(2, 2, 32, 32))

    def tearDown(self):
        self.store.close()
        shutil.rmtree(self.temp_dir)


class TestEmbeddedResolver(_StoreTestCase):
    """Test pictures stored directly under the spritesheet id."""

    def setUp(self):
        super().setUp()
        self.meta = {"hero": SpritesheetDescriptor("hero", 32, 32)}
        with self.store.transaction() as tx:
            self.writer.put_picture(tx, "hero", self.picture, bucket=SPRITESHEETS)

    def test_resolves_grid(self):
        resolver = EmbeddedResolver(self.meta)

        with self.store.view() as tx:
            grid = resolver.resolve(tx, _animation())

        self.assertEqual(grid, [
            Rect(0, 0, 32, 32), Rect(32, 0, 32, 32),
            Rect(0, 32, 32, 32), Rect(32, 32, 32, 32),
        ])

    def test_missing_picture(self):
        resolver = EmbeddedResolver({"ghost": SpritesheetDescriptor("ghost", 32, 32)})

        with self.store.view() as tx:
            with self.assertRaises(NotFoundError) as ctx:
                resolver.resolve(tx, _animation("ghost"))

        self.assertEqual(ctx.exception.bucket, SPRITESHEETS)
        self.assertEqual(ctx.exception.key, "ghost")
        self.assertIn("walk", str(ctx.exception))

    def test_missing_metadata(self):
        resolver = EmbeddedResolver({})

        with self.store.view() as tx:
            with self.assertRaises(NotFoundError):
                resolver.resolve(tx, _animation())

    def test_missing_bucket(self):
        other = ResourceStore(Path(self.temp_dir) / "empty.res").open()
        try:
            with other.view() as tx:
                with self.assertRaises(NotFoundError) as ctx:
                    EmbeddedResolver(self.meta).resolve(tx, _animation())
            self.assertIn("no spritesheets bucket present", str(ctx.exception))
        finally:
            other.close()


class TestIndexedResolver(_StoreTestCase):
    """Test the spritesheet -> texture -> picture chain."""

    def setUp(self):
        super().setUp()
        with self.store.transaction() as tx:
            self.writer.put_picture(tx, "hero_pic", self.picture)
            self.writer.put_texture(tx, "hero", Texture(picture_id="hero_pic"))
            self.writer.put_texture(tx, "broken", Texture(picture_id="nothing"))
            self.writer.put_spritesheet(tx, "hero", Spritesheet(32, 64))

    def test_resolves_chain(self):
        with self.store.view() as tx:
            grid = IndexedResolver().resolve(tx, _animation())

        self.assertEqual(grid, [Rect(0, 0, 32, 64), Rect(32, 0, 32, 64)])

    def test_bottom_left(self):
        with self.store.view() as tx:
            grid = IndexedResolver(FrameOrigin.BOTTOM_LEFT).resolve(tx, _animation())

        self.assertEqual(grid[0], Rect(0, 0, 32, 64))

    def test_missing_spritesheet(self):
        with self.store.view() as tx:
            with self.assertRaises(NotFoundError) as ctx:
                IndexedResolver().resolve(tx, _animation("villain"))
        self.assertEqual(ctx.exception.bucket, SPRITESHEETS)

    def test_missing_texture(self):
        with self.store.view() as tx:
            with self.assertRaises(NotFoundError) as ctx:
                IndexedResolver().resolve(tx, _animation(texture="hero_alt"))
        self.assertEqual(ctx.exception.bucket, TEXTURES)
        self.assertEqual(ctx.exception.key, "hero_alt")

    def test_missing_picture(self):
        with self.store.view() as tx:
            with self.assertRaises(NotFoundError) as ctx:
                IndexedResolver().resolve(tx, _animation(texture="broken"))
        self.assertEqual(ctx.exception.bucket, PICTURES)
        self.assertEqual(ctx.exception.key, "nothing")


class TestCreateResolver(unittest.TestCase):

    def test_modes(self):
        self.assertIsInstance(create_resolver("embedded", FrameOrigin.TOP_LEFT), EmbeddedResolver)
        self.assertIsInstance(create_resolver("indexed", FrameOrigin.TOP_LEFT), IndexedResolver)

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            create_resolver("packed", FrameOrigin.TOP_LEFT)


if __name__ == '__main__':
    unittest.main()
