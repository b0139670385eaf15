"""
Shared fixtures: synthetic texture maps written with Pillow into tmp_path.

Every role gets its own deterministic pattern, so each output channel can be
traced back to exactly one source channel.
"""

import os

import pytest
from PIL import Image

ROLE_SEEDS = {"nohq": 11, "smdi": 23, "as": 37, "co": 53}


def pattern_image(size=(8, 8), seed=0, mode="RGBA"):
    """Create an image where every channel of every pixel has a distinct, reproducible value."""
    width, height = size
    pixels = []
    for y in range(height):
        for x in range(width):
            pixels.append((
                (x * 3 + y * 5 + seed) % 256,
                (x * 7 + y + seed * 2) % 256,
                (x + y * 11 + seed * 3) % 256,
                (x * 13 + y * 17 + seed * 5) % 256,
            ))
    image = Image.new("RGBA", size)
    image.putdata(pixels)
    return image if mode == "RGBA" else image.convert(mode)


def write_texture_set(folder, base_name="wall_01", sizes=None, extension="png", roles=("nohq", "smdi", "as", "co")):
    """Write one map per role, e.g. wall_01_nohq.png; returns role -> path."""
    sizes = sizes or {}
    os.makedirs(folder, exist_ok=True)
    paths = {}
    for role in roles:
        path = os.path.join(folder, f"{base_name}_{role}.{extension}")
        pattern_image(sizes.get(role, (8, 8)), ROLE_SEEDS[role] + sum(map(ord, base_name))).save(path)
        paths[role] = path
    return paths


@pytest.fixture
def input_folder(tmp_path):
    folder = tmp_path / "TGA_Result"
    folder.mkdir()
    return folder


@pytest.fixture
def result_folder(tmp_path):
    return tmp_path / "PBR_Result"
