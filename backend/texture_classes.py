from typing import Dict, TypedDict, Optional, Tuple, List, Any
from dataclasses import dataclass, field

from backend.image_lib import ImageObject, get_channel_by_index, get_pixel, get_size


RoleFiles = Dict[str, List[str]] # Role name to discovered file paths, e.g., {"nohq": [".../rock_01_nohq.tga"], "as": [...]}.
# The "nohq" list drives the number of generated sets.


class OutputFormat(TypedDict):
    extension: str # File extension without the dot, e.g., "tif".
    format: str # Pillow format name, e.g., "TIFF".


@dataclass(frozen=True)
class ChannelSource:
    role: str # Texture role the sample is read from, e.g., "smdi".
    channel: int # Channel index in B, G, R, A order (0..3).

@dataclass(frozen=True)
class ChannelSlot:
    output: str # Output suffix, "NMO" or "BCR".
    slot: int # Output channel index in B, G, R, A order (0..3).
    sources: Tuple[ChannelSource, ...] # One source for "direct", two for "average".
    transform: str = "direct" # "direct" copies a sample, "average" takes the rounded-down mean of two samples.

ChannelLayout = Tuple[ChannelSlot, ...] # Full assignment table, 4 slots per output image.


@dataclass(frozen=True)
class NormalizedImage:
    image: ImageObject # 8bit RGBA image; channels are addressed in B, G, R, A order.

    @property
    def width(self) -> int:
        return get_size(self.image)[0]

    @property
    def height(self) -> int:
        return get_size(self.image)[1]

    @property
    def size(self) -> Tuple[int, int]:
        return get_size(self.image)

    def channel(self, index: int) -> ImageObject:
    # Returns a read-only plane for the channel index (0=B, 1=G, 2=R, 3=A).
        return get_channel_by_index(self.image, index)

    def pixel_at(self, x: int, y: int) -> Tuple[int, int, int, int]:
    # Returns the sample tuple in B, G, R, A order.
        return get_pixel(self.image, x, y)


@dataclass
class TextureSetSources:
    index: int # Position in the nohq list.
    base_name: str # Output name prefix, e.g., "rock_01".
    paths: Dict[str, str] # Role name to file path, e.g., {"nohq": ".../rock_01_nohq.tga", ...}.

@dataclass
class TextureSet:
    base_name: str # Output name prefix, e.g., "rock_01".
    images: Dict[str, NormalizedImage] = field(default_factory=dict) # Role name to normalized image, all sharing the nohq size.
    resampled: Dict[str, Tuple[int, int]] = field(default_factory=dict) # Roles that were rescaled, mapped to their original size.

    @property
    def size(self) -> Tuple[int, int]:
        return self.images["nohq"].size


@dataclass
class SetResult:
    base_name: str # Output name prefix of the processed set.
    status: str = "pending" # "created" | "partial" | "failed"
    error_kind: Optional[str] = None # Name of the error class that stopped the set, e.g., "ImageLoadError".
    written_paths: List[str] = field(default_factory=list) # Final paths of all written outputs.
    errors: List[Any] = field(default_factory=list) # Load or save errors that make the set fail or only partially succeed.
    warnings: List[Any] = field(default_factory=list) # Move errors; the output stays in the input folder.
