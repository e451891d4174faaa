"""
Records persisted in the resource store and their byte encoding.

Every record is encoded as little-endian binary: a 4-byte magic, a one
byte format version, then the record fields. Strings are UTF-8 with a
uint16 length prefix; sequences carry a uint32 count.
"""

import struct
import zlib
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple

from .errors import CodecError


FORMAT_VERSION = 1

PICTURE_MAGIC = b'RPIC'
TEXTURE_MAGIC = b'RTEX'
SPRITESHEET_MAGIC = b'RSHT'
ANIMATION_MAGIC = b'RANM'
TAG_MAGIC = b'RTAG'

# Bytes per RGBA8 pixel
PIXEL_SIZE = 4


@dataclass(frozen=True)
class Rect:
    """Frame rectangle in picture pixel coordinates."""
    x: int
    y: int
    w: int
    h: int

    @property
    def right(self) -> int:
        return self.x + self.w

    @property
    def bottom(self) -> int:
        return self.y + self.h

    def as_box(self) -> Tuple[int, int, int, int]:
        """(left, upper, right, lower) box as used by Pillow's crop."""
        return (self.x, self.y, self.right, self.bottom)


@dataclass(frozen=True)
class Picture:
    """RGBA8 pixel buffer, row-major with the top row first."""
    width: int
    height: int
    pixels: bytes
    compressed: bool = False

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"picture dimensions cannot be negative, got {self.width}x{self.height}")
        if not self.compressed and len(self.pixels) != self.width * self.height * PIXEL_SIZE:
            raise ValueError(
                f"picture buffer holds {len(self.pixels)} bytes, "
                f"expected {self.width * self.height * PIXEL_SIZE} for {self.width}x{self.height}"
            )

    def compress(self, level: int = 9) -> "Picture":
        """Deflate the pixel buffer. Compressing twice is a no-op."""
        if self.compressed:
            return self
        return Picture(self.width, self.height, zlib.compress(self.pixels, level), compressed=True)

    def decompress(self) -> "Picture":
        """Inflate the pixel buffer. Decompressing a raw picture is a no-op."""
        if not self.compressed:
            return self
        try:
            raw = zlib.decompress(self.pixels)
        except zlib.error as e:
            raise CodecError(f"corrupt picture data: {e}") from e
        return Picture(self.width, self.height, raw, compressed=False)


@dataclass(frozen=True)
class Texture:
    """A texture references a picture and carries its sampling filter."""
    picture_id: str
    filter: str = "nearest"


@dataclass(frozen=True)
class Spritesheet:
    """Cell size of a spritesheet stored in the indexed schema."""
    width: int
    height: int


@dataclass(frozen=True)
class AnimationRecord:
    """Normalized animation: index-aligned frame rectangles and durations."""
    spritesheet_id: str
    texture_id: str
    frames: Tuple[Rect, ...] = field(default_factory=tuple)
    durations: Tuple[int, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if len(self.frames) != len(self.durations):
            raise ValueError(
                f"animation has {len(self.frames)} frames but {len(self.durations)} durations"
            )


class _Writer:
    def __init__(self, magic: bytes):
        self.parts = [magic, struct.pack('<B', FORMAT_VERSION)]

    def pack(self, fmt: str, value: int) -> None:
        try:
            self.parts.append(struct.pack(fmt, value))
        except struct.error as e:
            raise CodecError(f"cannot encode {value!r}: {e}") from e

    def u8(self, value: int) -> None:
        self.pack('<B', value)

    def u32(self, value: int) -> None:
        self.pack('<I', value)

    def i32(self, value: int) -> None:
        self.pack('<i', value)

    def string(self, value: str) -> None:
        data = value.encode('utf-8')
        if len(data) > 0xFFFF:
            raise CodecError(f"string too long to encode ({len(data)} bytes)")
        self.parts.append(struct.pack('<H', len(data)))
        self.parts.append(data)

    def blob(self, value: bytes) -> None:
        self.u32(len(value))
        self.parts.append(value)

    def getvalue(self) -> bytes:
        return b''.join(self.parts)


class _Reader:
    def __init__(self, data: bytes, magic: bytes, kind: str):
        self.data = data
        self.kind = kind
        self.offset = 0
        if self.take(4) != magic:
            raise CodecError(f"not a {kind} record")
        version = self.unpack('<B')
        if version != FORMAT_VERSION:
            raise CodecError(f"unsupported {kind} format version {version}")

    def take(self, size: int) -> bytes:
        end = self.offset + size
        if end > len(self.data):
            raise CodecError(f"truncated {self.kind} record")
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def unpack(self, fmt: str) -> int:
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))[0]

    def string(self) -> str:
        size = self.unpack('<H')
        try:
            return self.take(size).decode('utf-8')
        except UnicodeDecodeError as e:
            raise CodecError(f"invalid string in {self.kind} record: {e}") from e

    def blob(self) -> bytes:
        return self.take(self.unpack('<I'))

    def finish(self) -> None:
        if self.offset != len(self.data):
            raise CodecError(f"trailing bytes after {self.kind} record")


def encode_picture(picture: Picture) -> bytes:
    """Encode a picture; raw pictures are compressed first."""
    picture = picture.compress()
    w = _Writer(PICTURE_MAGIC)
    w.u32(picture.width)
    w.u32(picture.height)
    w.blob(picture.pixels)
    return w.getvalue()


def decode_picture(data: bytes) -> Picture:
    """Decode a picture. The result is still compressed."""
    r = _Reader(data, PICTURE_MAGIC, "picture")
    width = r.unpack('<I')
    height = r.unpack('<I')
    pixels = r.blob()
    r.finish()
    return Picture(width, height, pixels, compressed=True)


def encode_texture(texture: Texture) -> bytes:
    w = _Writer(TEXTURE_MAGIC)
    w.string(texture.picture_id)
    w.string(texture.filter)
    return w.getvalue()


def decode_texture(data: bytes) -> Texture:
    r = _Reader(data, TEXTURE_MAGIC, "texture")
    texture = Texture(picture_id=r.string(), filter=r.string())
    r.finish()
    return texture


def encode_spritesheet(sheet: Spritesheet) -> bytes:
    w = _Writer(SPRITESHEET_MAGIC)
    w.u32(sheet.width)
    w.u32(sheet.height)
    return w.getvalue()


def decode_spritesheet(data: bytes) -> Spritesheet:
    r = _Reader(data, SPRITESHEET_MAGIC, "spritesheet")
    sheet = Spritesheet(r.unpack('<I'), r.unpack('<I'))
    r.finish()
    return sheet


def encode_animation(record: AnimationRecord) -> bytes:
    if len(record.frames) != len(record.durations):
        raise CodecError("animation frames and durations differ in length")

    w = _Writer(ANIMATION_MAGIC)
    w.string(record.spritesheet_id)
    w.string(record.texture_id)
    w.u32(len(record.frames))
    for rect, duration in zip(record.frames, record.durations):
        w.i32(rect.x)
        w.i32(rect.y)
        w.u32(rect.w)
        w.u32(rect.h)
        w.u32(duration)
    return w.getvalue()


def decode_animation(data: bytes) -> AnimationRecord:
    r = _Reader(data, ANIMATION_MAGIC, "animation")
    spritesheet_id = r.string()
    texture_id = r.string()
    count = r.unpack('<I')

    frames: List[Rect] = []
    durations: List[int] = []
    for _ in range(count):
        x = r.unpack('<i')
        y = r.unpack('<i')
        w = r.unpack('<I')
        h = r.unpack('<I')
        frames.append(Rect(x, y, w, h))
        durations.append(r.unpack('<I'))
    r.finish()

    return AnimationRecord(spritesheet_id, texture_id, tuple(frames), tuple(durations))


def encode_tag(names: Sequence[str]) -> bytes:
    w = _Writer(TAG_MAGIC)
    w.u32(len(names))
    for name in names:
        w.string(name)
    return w.getvalue()


def decode_tag(data: bytes) -> List[str]:
    r = _Reader(data, TAG_MAGIC, "tag")
    names = [r.string() for _ in range(r.unpack('<I'))]
    r.finish()
    return names


_DECODERS_BY_MAGIC = {
    PICTURE_MAGIC: decode_picture,
    TEXTURE_MAGIC: decode_texture,
    SPRITESHEET_MAGIC: decode_spritesheet,
    ANIMATION_MAGIC: decode_animation,
    TAG_MAGIC: decode_tag,
}


def decode_record(data: bytes) -> Any:
    """Decode any stored record by looking at its magic."""
    decoder = _DECODERS_BY_MAGIC.get(bytes(data[:4]))
    if decoder is None:
        raise CodecError("unknown record type")
    return decoder(data)
