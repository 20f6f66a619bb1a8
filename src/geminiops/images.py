from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Union

from .types import ImagePayload


_MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
}

DEFAULT_IMAGE_MIME_TYPE = "image/png"


def guess_image_mime_type(path: Union[str, Path]) -> str:
    """Content type from the lowercase text after the final '.'; image/png when unknown."""
    name = str(path or "").lower()
    if "." not in name:
        return DEFAULT_IMAGE_MIME_TYPE
    ext = name.rsplit(".", 1)[-1]
    return _MIME_TYPES.get(ext, DEFAULT_IMAGE_MIME_TYPE)


def load_image(path: Union[str, Path]) -> ImagePayload:
    """Read an image file as-is. No decoding or validation of the pixel data."""
    p = Path(path).expanduser()
    return ImagePayload(data=p.read_bytes(), mime_type=guess_image_mime_type(p.name))


def load_images(paths: Iterable[Union[str, Path]]) -> List[ImagePayload]:
    return [load_image(p) for p in paths]
