"""
Tests for record encoding.
"""

import struct
import unittest

from ..codec import (
    AnimationRecord, Picture, Rect, Spritesheet, Texture,
    decode_animation, decode_picture, decode_record, decode_spritesheet, decode_tag,
    decode_texture, encode_animation, encode_picture, encode_spritesheet, encode_tag,
    encode_texture,
)
from ..errors import CodecError


def _raw_picture(width=2, height=2):
    pixels = bytes(range(width * height * 4))
    return Picture(width, height, pixels)


class TestPicture(unittest.TestCase):
    """Test picture compression."""

    def test_raw_buffer_size_checked(self):
        with self.assertRaises(ValueError):
            Picture(2, 2, b'\x00' * 15)

    def test_compress_decompress(self):
        picture = _raw_picture(4, 3)
        compressed = picture.compress()

        self.assertTrue(compressed.compressed)
        self.assertEqual(compressed.decompress(), picture)

    def test_compress_twice_is_noop(self):
        compressed = _raw_picture().compress()
        self.assertIs(compressed.compress(), compressed)

    def test_decompress_raw_is_noop(self):
        picture = _raw_picture()
        self.assertIs(picture.decompress(), picture)

    def test_corrupt_compressed_data(self):
        broken = Picture(2, 2, b'not zlib', compressed=True)
        with self.assertRaises(CodecError):
            broken.decompress()


class TestRecords(unittest.TestCase):
    """Test record encoding and decoding."""

    def test_picture_is_stored_compressed(self):
        picture = _raw_picture(8, 8)
        data = encode_picture(picture)
        decoded = decode_picture(data)

        self.assertTrue(decoded.compressed)
        self.assertEqual((decoded.width, decoded.height), (8, 8))
        self.assertEqual(decoded.decompress().pixels, picture.pixels)

    def test_picture_encoding_is_deterministic(self):
        picture = _raw_picture(8, 8)
        self.assertEqual(encode_picture(picture), encode_picture(picture))
        self.assertEqual(encode_picture(picture), encode_picture(picture.compress()))

    def test_texture(self):
        texture = Texture(picture_id="hero", filter="linear")
        self.assertEqual(decode_texture(encode_texture(texture)), texture)

    def test_spritesheet(self):
        sheet = Spritesheet(32, 48)
        self.assertEqual(decode_spritesheet(encode_spritesheet(sheet)), sheet)

    def test_animation(self):
        record = AnimationRecord(
            spritesheet_id="hero",
            texture_id="hero",
            frames=(Rect(0, 0, 32, 32), Rect(0, 32, 32, 32)),
            durations=(100, 150),
        )
        self.assertEqual(decode_animation(encode_animation(record)), record)

    def test_animation_layout(self):
        """Test the frame payload is little-endian x, y, w, h, duration."""
        record = AnimationRecord("s", "t", (Rect(1, 2, 3, 4),), (5,))
        data = encode_animation(record)

        self.assertEqual(data[:4], b'RANM')
        self.assertEqual(data[-20:], struct.pack('<iiIII', 1, 2, 3, 4, 5))

    def test_animation_length_mismatch(self):
        with self.assertRaises(ValueError):
            AnimationRecord("s", "t", (Rect(0, 0, 1, 1),), ())

    def test_tag_keeps_order_and_duplicates(self):
        names = ["walk_right", "walk_left", "walk_right"]
        self.assertEqual(decode_tag(encode_tag(names)), names)

    def test_unicode_strings(self):
        texture = Texture(picture_id="héros_壁")
        self.assertEqual(decode_texture(encode_texture(texture)).picture_id, "héros_壁")


class TestDecodeErrors(unittest.TestCase):
    """Test malformed record handling."""

    def test_wrong_magic(self):
        with self.assertRaises(CodecError):
            decode_texture(encode_spritesheet(Spritesheet(1, 1)))

    def test_truncated(self):
        data = encode_texture(Texture("hero"))
        with self.assertRaises(CodecError):
            decode_texture(data[:-1])

    def test_trailing_bytes(self):
        data = encode_spritesheet(Spritesheet(1, 1))
        with self.assertRaises(CodecError):
            decode_spritesheet(data + b'\x00')

    def test_unsupported_version(self):
        data = bytearray(encode_spritesheet(Spritesheet(1, 1)))
        data[4] = 99
        with self.assertRaises(CodecError):
            decode_spritesheet(bytes(data))

    def test_unencodable_duration(self):
        """Test out-of-range integers surface as CodecError."""
        record = AnimationRecord("s", "t", (Rect(0, 0, 1, 1),), (2**32,))
        with self.assertRaises(CodecError):
            encode_animation(record)

    def test_unencodable_coordinate(self):
        record = AnimationRecord("s", "t", (Rect(2**31, 0, 1, 1),), (1,))
        with self.assertRaises(CodecError):
            encode_animation(record)

    def test_decode_record_dispatch(self):
        self.assertEqual(decode_record(encode_tag(["a"])), ["a"])
        self.assertEqual(decode_record(encode_spritesheet(Spritesheet(2, 3))), Spritesheet(2, 3))

    def test_decode_record_unknown(self):
        with self.assertRaises(CodecError):
            decode_record(b'JUNKDATA')


if __name__ == '__main__':
    unittest.main()
