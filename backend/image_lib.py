""" Image processing backend. Currently implemented using Pillow (PIL). All images are handled as 8bit RGBA."""



#                                           === Backend ===

from array import array
from typing import Any, Dict, Optional, Sequence, Tuple, TypeAlias

from PIL import Image as _PIL
from PIL.Image import Image as PILImage
from PIL import Image as PILImageModule
from PIL import ImageChops

ImageObject: TypeAlias = PILImage

CHANNEL_ORDER: Tuple[str, ...] = ("B", "G", "R", "A")
# Channel indices follow the 32bit BGRA byte layout of the source containers; Pillow addresses bands by name.

SAVE_OPTIONS: Dict[str, Dict[str, Any]] = {
    "TGA": {"compression": None}, # Uncompressed.
    "TIFF": {"compression": "raw"}, # Uncompressed.
    "PNG": {}, # PNG is always deflate-compressed, which is lossless.
}

DECODE_ERRORS: Tuple[type, ...] = (OSError, ValueError, _PIL.DecompressionBombError)
# DecompressionBombError is not an OSError; it is raised above twice MAX_IMAGE_PIXELS.

_PIL.MAX_IMAGE_PIXELS = None
# Source textures are local assets, so large maps (e.g., 16384x16384) are decoded without the size limit.


def initialise_codecs() -> None:
# Registers all Pillow format plugins.
    _PIL.init()


def close_image(image: object) -> None:
    close = getattr(image, "close", None)
    if callable(close):
        close()


def open_image(path: str, formats: Optional[Sequence[str]] = None) -> ImageObject:
# Opens and fully decodes the image, so truncated files fail here instead of later during processing.
# Formats restricts decoding to the given Pillow format names, e.g., ["TGA"].
    image = _PIL.open(path, formats=list(formats) if formats else None)
    try:
        image.load()
    except Exception:
        image.close()
        raise
    return image


def convert_to_rgba(image: ImageObject) -> ImageObject:
# Expands any mode to 4 channels; missing alpha is filled opaque by Pillow.
    if image.mode == "RGBA":
        return image
    if is_grayscale(image) and image.mode not in ("L", "LA"):
        image = convert_to_grayscale(image)
    return image.convert("RGBA")


def get_channel_by_index(image: ImageObject, index: int) -> ImageObject:
# Extracts a single channel plane by its B, G, R, A index.
    if not 0 <= index < len(CHANNEL_ORDER):
        raise IndexError(f"Channel index {index} out of range 0..{len(CHANNEL_ORDER) - 1}")
    return image.getchannel(CHANNEL_ORDER[index])


def get_pixel(image: ImageObject, x: int, y: int) -> Tuple[int, int, int, int]:
# Returns the pixel sample in B, G, R, A order.
    r, g, b, a = image.getpixel((x, y))
    return b, g, r, a


def get_size(image: ImageObject) -> Tuple[int, int]:
# Returns the image size as (width, height)
    return image.size


def merge_channels_bgra(planes: Sequence[ImageObject]) -> ImageObject:
# Merges 4 single-channel planes given in B, G, R, A order into an RGBA image.
    by_name = dict(zip(CHANNEL_ORDER, planes))
    return _PIL.merge("RGBA", tuple(by_name[band] for band in "RGBA"))


def average_channels(first: ImageObject, second: ImageObject) -> ImageObject:
# Per-pixel integer mean of two planes, rounded down: (a + b) / 2.
    return ImageChops.add(first, second, scale=2.0)


def resize(image: ImageObject, size: Tuple[int, int]) -> ImageObject:
# Resize an image using bilinear resampling. Aspect ratio is not preserved.
    return image.resize(size, _PIL.BILINEAR)


def save_image(image: Any, path: str, format_name: str) -> None:
    image.save(path, format=format_name, **SAVE_OPTIONS.get(format_name, {}))




#                                           === Utils ===



def is_grayscale(image: ImageObject) -> bool:
# Returns True if the image is of type grayscale image.

    mode = image.mode
    return mode in ("L", "LA") or mode == "I" or str(mode).startswith("I;16")


def convert_to_grayscale(image: ImageObject) -> ImageObject:
# Converts an image to 8-bit grayscale.
    mode = image.mode
    if mode == "L":
        return image
    if mode in ("I", "I;16", "I;16L", "I;16B"):
        return _16_to_8bit(image)
    return image.convert("L")


def _16_to_8bit(image: ImageObject) -> ImageObject:
# Scales down 16bit range to a 8bit, so values are properly maintained instead of being clipped.

# Preparing the image:
    if image.mode == "I":
        img16 = image.convert("I;16")
    elif image.mode in ("I;16", "I;16L", "I;16B"):
        img16 = image if image.mode == "I;16" else image.convert("I;16")
    # Normalizes the image type to 16bit LE.
    else:
        return image.convert("L")
    # If the image is just 8bit grayscale, passes it though.

    raw = img16.tobytes("raw", "I;16")  # LE 16bit
    data16 = array("H")
    data16.frombytes(raw)

# Scaling:
    data8 = bytearray((v >> 8) & 0xFF for v in data16)
    return PILImageModule.frombytes("L", img16.size, bytes(data8))
