"""
Animation and spritesheet descriptors read from YAML build inputs.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import ParseError


# Integer fields are read back as 32-bit signed values by the engine
MAX_FIELD_VALUE = 2**31 - 1


@dataclass(frozen=True)
class AnimationDescriptor:
    """One animation declared in a descriptor file."""
    name: str
    spritesheet_id: str
    frames: Tuple[Tuple[int, int], ...]
    tag: str = ""
    texture_id: Optional[str] = None
    source: Optional[str] = None

    def __post_init__(self):
        if not self.frames:
            raise ParseError(f"animation '{self.name}' has no frames", self.source)

    @property
    def texture_key(self) -> str:
        """Texture id to resolve; falls back to the spritesheet id."""
        return self.texture_id or self.spritesheet_id


@dataclass(frozen=True)
class SpritesheetDescriptor:
    """Fixed cell size used to tile a spritesheet picture."""
    id: str
    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ParseError(
                f"spritesheet '{self.id}' cell size must be positive, got {self.width}x{self.height}"
            )


def _load_yaml(text: str, source: Optional[str]) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"invalid YAML: {e}", source) from e


def _require_str(entry: Dict[str, Any], key: str, source: Optional[str], where: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value:
        raise ParseError(f"{where}: field '{key}' must be a non-empty string", source)
    return value


def _require_int(value: Any, what: str, source: Optional[str]) -> int:
    # bool is an int subclass; YAML `yes` must not pass as 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ParseError(f"{what} must be an integer, got {value!r}", source)
    if value < 0:
        raise ParseError(f"{what} cannot be negative, got {value}", source)
    if value > MAX_FIELD_VALUE:
        raise ParseError(f"{what} exceeds {MAX_FIELD_VALUE}, got {value}", source)
    return value


def _parse_frames(raw: Any, where: str, source: Optional[str]) -> Tuple[Tuple[int, int], ...]:
    if not isinstance(raw, list) or not raw:
        raise ParseError(f"{where}: field 'frames' must be a non-empty list", source)

    frames = []
    for i, pair in enumerate(raw):
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise ParseError(f"{where}: frame #{i} must be a [frameIndex, duration] pair", source)
        index = _require_int(pair[0], f"{where}: frame #{i} index", source)
        duration = _require_int(pair[1], f"{where}: frame #{i} duration", source)
        frames.append((index, duration))

    return tuple(frames)


def parse_animation_entry(entry: Any, source: Optional[str] = None, position: int = 0) -> AnimationDescriptor:
    """Build an AnimationDescriptor from one YAML list item."""
    if not isinstance(entry, dict):
        raise ParseError(f"animation #{position} must be a mapping", source)

    name = _require_str(entry, 'name', source, f"animation #{position}")
    where = f"animation '{name}'"

    tag = entry.get('tag', "")
    if tag is None:
        tag = ""
    if not isinstance(tag, str):
        raise ParseError(f"{where}: field 'tag' must be a string", source)

    # Older descriptors use `spritesheet`
    if 'spritesheetID' in entry:
        spritesheet_id = _require_str(entry, 'spritesheetID', source, where)
    elif 'spritesheet' in entry:
        spritesheet_id = _require_str(entry, 'spritesheet', source, where)
    else:
        raise ParseError(f"{where}: missing 'spritesheetID'", source)

    texture_id = None
    if entry.get('textureID') is not None:
        texture_id = _require_str(entry, 'textureID', source, where)

    frames = _parse_frames(entry.get('frames'), where, source)

    return AnimationDescriptor(
        name=name,
        spritesheet_id=spritesheet_id,
        frames=frames,
        tag=tag,
        texture_id=texture_id,
        source=source,
    )


def parse_animations(text: str, source: Optional[str] = None) -> List[AnimationDescriptor]:
    """
    Parse an animations document: a top-level list of animation entries.

    Args:
        text: YAML document
        source: File path used in error messages

    Returns:
        Descriptors in document order

    Raises:
        ParseError: If the document structure is malformed
    """
    data = _load_yaml(text, source)

    # An empty document declares no animations
    if data is None:
        return []

    if not isinstance(data, list):
        raise ParseError("animations document must be a list", source)

    return [parse_animation_entry(entry, source, i) for i, entry in enumerate(data)]


def parse_spritesheets(text: str, source: Optional[str] = None) -> Dict[str, SpritesheetDescriptor]:
    """Parse a spritesheet metadata document mapping id -> {width, height}."""
    data = _load_yaml(text, source)

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ParseError("spritesheets document must be a mapping", source)

    sheets = {}
    for sheet_id, entry in data.items():
        sheet_id = str(sheet_id)
        if not isinstance(entry, dict):
            raise ParseError(f"spritesheet '{sheet_id}' must be a mapping", source)
        width = _require_int(entry.get('width'), f"spritesheet '{sheet_id}' width", source)
        height = _require_int(entry.get('height'), f"spritesheet '{sheet_id}' height", source)
        try:
            sheets[sheet_id] = SpritesheetDescriptor(sheet_id, width, height)
        except ParseError as e:
            raise ParseError(e.message, source) from e

    return sheets
