""" Texture utilities shared by the pipeline and the IO backend. """

import os
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional, Set

from settings import ROLE_MARKERS, SUPPORTED_FORMATS

from backend.errors import UnsupportedFormatError
from backend.image_lib import close_image, initialise_codecs


LOG_TYPES: list[str] = ["info", "warn", "error", "skip", "complete"]
# Defines log types; printed to the console.

def log(message: str, message_kind: LOG_TYPES = "info") -> None:
# Maps different log types.

    if message == "":
        print("")
        return

    if message_kind not in LOG_TYPES:
        message_kind = "info"

    if message_kind == "info":
        print(f"   {message}")
    elif message_kind == "warn":
        print(f"⚠️ {message}")
    elif message_kind == "error":
        print(f"⛔ {message}")
    elif message_kind == "skip":
        print(f"❌ {message}")
    elif message_kind == "complete":
        print(f"✅ {message}")
    else:
        print(message)  # fallback

    # Print styles:
    # info: 3 whitespaces + message
    # warn: ⚠️ + message
    # error: ⛔ + message
    # skip: ❌ + message
    # complete: ✅ + message


def close_image_files(images: Iterable[Optional[object]]) -> None:
# Safely closes all opened images even if there is an error during image processing.

    processed_ids: Set[int] = set()
    for image in images:
        if image is None:
            continue
        image_id = id(image)
        if image_id in processed_ids:
            continue
        processed_ids.add(image_id)
        try:
            close_image(image) # Function from image_lib
        except (OSError, ValueError):
            pass


class CodecSession:
# Collects every image created while processing one texture set, so they can be released together.

    def __init__(self) -> None:
        initialise_codecs()
        self._images: List[object] = []

    def track(self, image):
        self._images.append(image)
        return image

    def close(self) -> None:
        close_image_files(self._images)
        self._images.clear()


@contextmanager
def codec_session() -> Iterator[CodecSession]:
# Initialises the codecs and releases all tracked images on every exit path.

    session = CodecSession()
    try:
        yield session
    finally:
        session.close()


def derive_base_name(file_path: str) -> str:
# Cuts the file name at its last underscore, e.g., "textures/rock_01_nohq.tga" > "rock_01".

    file_name, _ = os.path.splitext(os.path.basename(file_path))
    position = file_name.rfind("_")
    return file_name[:position] if position > 0 else file_name


def detect_role(file_name: str) -> Optional[str]:
# Returns the texture role whose marker ends the file name (case-insensitive), e.g., "Wall_CO.png" > "co".

    stem, extension = os.path.splitext(os.path.basename(file_name))
    if extension.lower() not in SUPPORTED_FORMATS:
        return None
    stem_lower = stem.lower()
    for role, marker in ROLE_MARKERS.items():
        if stem_lower.endswith(marker) and len(stem_lower) > len(marker):
            return role
    return None


def lookup_format(file_path: str) -> str:
# Maps the file extension to the Pillow format name (case-insensitive).

    extension = os.path.splitext(file_path)[1].lower()
    format_name = SUPPORTED_FORMATS.get(extension)
    if format_name is None:
        raise UnsupportedFormatError(f"Unsupported image format '{extension or '(none)'}'", file_path)
    return format_name


def make_output_dirs(base_directory: str, * , target_folder_name: Optional[str]) -> str:
# Creates/returns the result directory, placed next to the input folder.
# Without a folder name the results stay in the input folder.

    base_directory = os.path.abspath(base_directory or ".")

    target_folder_name = (target_folder_name or "").strip()
    if not target_folder_name:
        return base_directory
    target_folder_directory = os.path.join(os.path.dirname(base_directory), target_folder_name)
    os.makedirs(target_folder_directory, exist_ok=True)
    return target_folder_directory


def validate_safe_folder_name(raw_folder_name: Optional[str]) -> None:
# Validates that the custom folder name doesn't include unsupported characters.

    folder_name: str = (raw_folder_name or "")
    if folder_name.strip() == "":
        return

    if any(invalid_character in folder_name for invalid_character in '\\/:*?"<>|'):
        log(f"Aborted: invalid folder name '{raw_folder_name}'. It cannot contain \\ / : * ? \" < > |", "error")
        # Prints error.
        raise SystemExit(1)
    return
