""" Legacy2PBR settings. """

import json
import os
from typing import Dict, List, Tuple

from backend.texture_classes import ChannelLayout, ChannelSlot, ChannelSource


def _as_bool(v) -> bool:
# Converts .json input (bool/int/str/None) to a real bool;
# Avoids the case where a non-empty string like "False" is treated as True.

    if isinstance(v, bool): return v
    if isinstance(v, str):
        input_str = v.strip().lower()
        if input_str == "": return False
        return input_str in ("1","true","yes","on")
    return bool(v)


def _as_list(v) -> List[str]:
# Accepts both a JSON list and a comma separated string, e.g., "tga, png".

    if v is None: return []
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    return [str(item).strip() for item in v if str(item).strip()]



#                                           === Loading JSON file ===

_config_path = os.path.join(os.path.dirname(__file__), "config.json")
_config_data: dict = {}
if os.path.isfile(_config_path):
    with open(_config_path, "r", encoding="utf-8") as f:
        _config_data = json.load(f)
# Falls back to defaults when the config file is not shipped next to the module.


# Assigning config values:
INPUT_FOLDER: str = str(_config_data.get("INPUT_FOLDER", "TGA_Result")).strip() # Folder containing the legacy textures; relative to the current working directory.
TARGET_FOLDER_NAME: str = str(_config_data.get("DEST_FOLDER_NAME", "PBR_Result")) # Result folder created next to the input folder. If empty, results stay in the input folder.
FILE_TYPES: List[str] = _as_list(_config_data.get("FILE_TYPES", ["tga", "tif", "png"])) # File types written for every generated texture.
CHANNEL_LAYOUT: str = str(_config_data.get("CHANNEL_LAYOUT", "baseline")).strip().lower() # Name of the channel assignment table from CHANNEL_LAYOUTS.
ON_LOAD_ERROR: str = str(_config_data.get("ON_LOAD_ERROR", "skip")).strip().lower() # "skip" drops only the failing texture set, "abort" stops the whole batch.
CONTINUE_ON_SAVE_ERROR: bool = _as_bool(_config_data.get("CONTINUE_ON_SAVE_ERROR", True)) # Keeps writing the remaining file types after one of them fails.
SORT_FILES: bool = _as_bool(_config_data.get("SORT_FILES", True)) # Sorts discovered files by name, so the pairing of sets doesn't depend on the filesystem.

SHOW_DETAILS: bool = _as_bool(_config_data.get("SHOW_DETAILS", False)) # Shows details like exact resolution when printing logs.




#                                           === Constants ===

SUPPORTED_FORMATS: Dict[str, str] = {".tga": "TGA", ".tif": "TIFF", ".tiff": "TIFF", ".png": "PNG"}
# Maps a lowercase file extension to the Pillow format name. Used for both reading and writing.

ALLOWED_FILE_TYPES: Tuple[str, ...] = ("tga", "tif", "png")
FILE_TYPE_ALIASES: Dict[str, str] = {"tiff": "tif", "targa": "tga"}

ROLE_MARKERS: Dict[str, str] = {"nohq": "_nohq", "smdi": "_smdi", "as": "_as", "co": "_co"}
# Roles in processing order; a file belongs to a role if its name ends with the marker, e.g., "rock_01_nohq.tga".

REFERENCE_ROLE: str = "nohq" # Role whose resolution every other map of a set is scaled to.

OUTPUT_SUFFIXES: Tuple[str, ...] = ("NMO", "BCR")

ON_LOAD_ERROR_POLICIES: Tuple[str, ...] = ("skip", "abort")


_BASELINE_LAYOUT: ChannelLayout = (
    ChannelSlot("NMO", 0, (ChannelSource("smdi", 1),)),
    ChannelSlot("NMO", 1, (ChannelSource("nohq", 1),)),
    ChannelSlot("NMO", 2, (ChannelSource("nohq", 2),)),
    ChannelSlot("NMO", 3, (ChannelSource("as", 1),)),
    ChannelSlot("BCR", 0, (ChannelSource("co", 0),)),
    ChannelSlot("BCR", 1, (ChannelSource("co", 1),)),
    ChannelSlot("BCR", 2, (ChannelSource("co", 2),)),
    ChannelSlot("BCR", 3, (ChannelSource("smdi", 0),)),
)
# Channel indices are B=0, G=1, R=2, A=3:
# NMO: B = SMDI green, G = NOHQ green, R = NOHQ red, A = AS green.
# BCR: BGR = CO BGR, A = SMDI blue.

CHANNEL_LAYOUTS: Dict[str, ChannelLayout] = {
    "baseline": _BASELINE_LAYOUT,
    "averaged": _BASELINE_LAYOUT[:3] + (
        ChannelSlot("NMO", 3, (ChannelSource("as", 1), ChannelSource("as", 2)), "average"),
    ) + _BASELINE_LAYOUT[4:],
}
# "averaged" stores the mean of the AS green and red channels in the NMO alpha.
