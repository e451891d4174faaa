"""
Image utilities: decoding source rasters into pictures and back.
"""

from pathlib import Path
from typing import List, Sequence, Union
from PIL import Image
import io

from ..codec import Picture, Rect
from ..errors import BuildIOError
from ..processing.frames import FrameOrigin


class ImageUtils:
    """Utility class for converting between Pillow images and pictures."""

    @staticmethod
    def load_image(data: Union[bytes, str, Path, Image.Image]) -> Image.Image:
        """
        Load image from various sources.

        Args:
            data: Image data as bytes, file path, or PIL Image

        Returns:
            PIL Image object

        Raises:
            BuildIOError: If data cannot be loaded as image
        """
        if isinstance(data, Image.Image):
            return data
        elif isinstance(data, bytes):
            try:
                image = Image.open(io.BytesIO(data))
                image.load()
                return image
            except Exception as e:
                raise BuildIOError(f"Cannot load image from bytes: {e}") from e
        elif isinstance(data, (str, Path)):
            try:
                with Image.open(data) as image:
                    image.load()
                    return image.copy()
            except Exception as e:
                raise BuildIOError(f"Cannot load image from path '{data}': {e}") from e
        else:
            raise BuildIOError(f"Unsupported image data type: {type(data)}")

    @staticmethod
    def ensure_rgba(image: Image.Image) -> Image.Image:
        """Convert image to RGBA mode if not already."""
        if image.mode != 'RGBA':
            return image.convert('RGBA')
        return image

    @staticmethod
    def picture_from_image(image: Image.Image) -> Picture:
        """Raw RGBA picture with the top row first."""
        image = ImageUtils.ensure_rgba(image)
        return Picture(image.width, image.height, image.tobytes())

    @staticmethod
    def load_picture(path: Union[str, Path]) -> Picture:
        """Decode a raster file into a raw picture."""
        return ImageUtils.picture_from_image(ImageUtils.load_image(path))

    @staticmethod
    def image_from_picture(picture: Picture) -> Image.Image:
        picture = picture.decompress()
        return Image.frombytes('RGBA', (picture.width, picture.height), picture.pixels)

    @staticmethod
    def crop_frames(picture: Picture, frames: Sequence[Rect],
                    origin: FrameOrigin = FrameOrigin.TOP_LEFT) -> List[Image.Image]:
        """Cut frame rectangles out of a picture."""
        image = ImageUtils.image_from_picture(picture)
        crops = []
        for rect in frames:
            if origin is FrameOrigin.BOTTOM_LEFT:
                rect = Rect(rect.x, picture.height - rect.y - rect.h, rect.w, rect.h)
            crops.append(image.crop(rect.as_box()))
        return crops

    @staticmethod
    def create_frame_strip(frames: Sequence[Image.Image], padding: int = 0) -> Image.Image:
        """
        Lay frames out left to right on a transparent canvas.

        Args:
            frames: Frame images, in playback order
            padding: Horizontal gap between frames in pixels

        Returns:
            Strip image
        """
        if not frames:
            return Image.new('RGBA', (1, 1), (0, 0, 0, 0))

        width = sum(frame.width for frame in frames) + padding * (len(frames) - 1)
        height = max(frame.height for frame in frames)
        strip = Image.new('RGBA', (width, height), (0, 0, 0, 0))

        x = 0
        for frame in frames:
            strip.paste(ImageUtils.ensure_rgba(frame), (x, 0))
            x += frame.width + padding

        return strip

    @staticmethod
    def save_image(image: Image.Image, path: Union[str, Path], compress_level: int = 6) -> None:
        """Save image as PNG."""
        try:
            image.save(path, format='PNG', optimize=True, compress_level=compress_level)
        except OSError as e:
            raise BuildIOError(f"Cannot save image to '{path}': {e}") from e
