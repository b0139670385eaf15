"""
Channel extraction and compositing.

Run with: pytest tests/test_compositing.py -v
"""

import pytest
from PIL import Image

from backend.image_lib import average_channels
from backend.texture_classes import ChannelSlot, ChannelSource, NormalizedImage, TextureSet
from legacy2pbr import composite_texture_set, extract_channel, validate_channel_layout
from settings import CHANNEL_LAYOUTS
from utils import codec_session

from conftest import ROLE_SEEDS, pattern_image


def make_texture_set(size=(8, 8)):
    images = {role: NormalizedImage(pattern_image(size, seed)) for role, seed in ROLE_SEEDS.items()}
    return TextureSet(base_name="wall_01", images=images)


# ============================================================
# Channel extraction
# ============================================================

class TestExtractChannel:

    def test_indices_follow_bgra_order(self):
        image = NormalizedImage(Image.new("RGBA", (2, 2), (10, 20, 30, 40)))
        assert [extract_channel(image, index).getpixel((0, 0)) for index in range(4)] == [30, 20, 10, 40]

    def test_pixel_at_returns_bgra(self):
        image = NormalizedImage(Image.new("RGBA", (2, 2), (10, 20, 30, 40)))
        assert image.pixel_at(1, 1) == (30, 20, 10, 40)

    def test_plane_is_single_channel(self):
        image = NormalizedImage(pattern_image((4, 3)))
        plane = extract_channel(image, 2)
        assert plane.mode == "L"
        assert plane.size == (4, 3)

    @pytest.mark.parametrize("index", [-1, 4])
    def test_out_of_range_index(self, index):
        image = NormalizedImage(Image.new("RGBA", (1, 1)))
        with pytest.raises(IndexError):
            extract_channel(image, index)


# ============================================================
# Baseline layout
# ============================================================

class TestBaselineComposite:

    def test_channel_fidelity(self):
        texture_set = make_texture_set((8, 6))
        nmo, bcr = composite_texture_set(texture_set, CHANNEL_LAYOUTS["baseline"])
        images = texture_set.images

        for y in range(6):
            for x in range(8):
                nohq = images["nohq"].pixel_at(x, y)
                smdi = images["smdi"].pixel_at(x, y)
                as_ = images["as"].pixel_at(x, y)
                co = images["co"].pixel_at(x, y)
                assert nmo.pixel_at(x, y) == (smdi[1], nohq[1], nohq[2], as_[1])
                assert bcr.pixel_at(x, y) == (co[0], co[1], co[2], smdi[0])

    def test_outputs_keep_size_and_mode(self):
        texture_set = make_texture_set((16, 4))
        outputs = composite_texture_set(texture_set, CHANNEL_LAYOUTS["baseline"])
        assert len(outputs) == 2
        for output in outputs:
            assert output.size == (16, 4)
            assert output.image.mode == "RGBA"

    def test_sources_are_not_modified(self):
        texture_set = make_texture_set()
        before = {role: image.image.tobytes() for role, image in texture_set.images.items()}
        composite_texture_set(texture_set, CHANNEL_LAYOUTS["baseline"])
        assert {role: image.image.tobytes() for role, image in texture_set.images.items()} == before

    def test_mixed_resolutions_rejected(self):
        texture_set = make_texture_set()
        texture_set.images["co"] = NormalizedImage(pattern_image((4, 4)))
        with pytest.raises(ValueError):
            composite_texture_set(texture_set, CHANNEL_LAYOUTS["baseline"])

    def test_session_releases_outputs(self, monkeypatch):
        closed = []
        monkeypatch.setattr("utils.close_image", lambda image: closed.append(id(image)))
        texture_set = make_texture_set()

        with codec_session() as session:
            nmo, bcr = composite_texture_set(texture_set, CHANNEL_LAYOUTS["baseline"], session)
            assert closed == []

        assert id(nmo.image) in closed
        assert id(bcr.image) in closed

    def test_session_initialises_codecs(self, monkeypatch):
        calls = []
        monkeypatch.setattr("utils.initialise_codecs", lambda: calls.append(True))
        with codec_session() as session:
            assert not hasattr(session, "save_formats")
        assert calls == [True]


# ============================================================
# Averaged layout
# ============================================================

class TestAveragedComposite:

    def test_alpha_is_floor_mean_of_as_green_and_red(self):
        texture_set = make_texture_set()
        nmo, bcr = composite_texture_set(texture_set, CHANNEL_LAYOUTS["averaged"])
        images = texture_set.images

        for y in range(8):
            for x in range(8):
                as_ = images["as"].pixel_at(x, y)
                assert nmo.pixel_at(x, y)[3] == (as_[1] + as_[2]) // 2

    def test_other_slots_match_baseline(self):
        texture_set = make_texture_set()
        baseline_nmo, baseline_bcr = composite_texture_set(texture_set, CHANNEL_LAYOUTS["baseline"])
        averaged_nmo, averaged_bcr = composite_texture_set(texture_set, CHANNEL_LAYOUTS["averaged"])

        assert averaged_bcr.image.tobytes() == baseline_bcr.image.tobytes()
        for index in range(3):
            assert averaged_nmo.channel(index).tobytes() == baseline_nmo.channel(index).tobytes()

    @pytest.mark.parametrize("first, second, expected", [(255, 0, 127), (3, 4, 3), (200, 200, 200), (0, 1, 0)])
    def test_average_rounds_down(self, first, second, expected):
        plane_a = Image.new("L", (2, 2), first)
        plane_b = Image.new("L", (2, 2), second)
        assert average_channels(plane_a, plane_b).getpixel((1, 1)) == expected


# ============================================================
# Layout validation
# ============================================================

class TestValidateChannelLayout:

    @pytest.mark.parametrize("name", sorted(CHANNEL_LAYOUTS))
    def test_shipped_layouts_are_valid(self, name):
        validate_channel_layout(CHANNEL_LAYOUTS[name])

    def test_missing_slot(self):
        with pytest.raises(ValueError, match="missing"):
            validate_channel_layout(CHANNEL_LAYOUTS["baseline"][:-1])

    def test_duplicate_slot(self):
        layout = CHANNEL_LAYOUTS["baseline"] + (ChannelSlot("BCR", 3, (ChannelSource("co", 3),)),)
        with pytest.raises(ValueError, match="more than once"):
            validate_channel_layout(layout)

    def test_unknown_role(self):
        layout = CHANNEL_LAYOUTS["baseline"][:7] + (ChannelSlot("BCR", 3, (ChannelSource("rvmat", 0),)),)
        with pytest.raises(ValueError, match="unknown role"):
            validate_channel_layout(layout)

    def test_channel_out_of_range(self):
        layout = CHANNEL_LAYOUTS["baseline"][:7] + (ChannelSlot("BCR", 3, (ChannelSource("smdi", 4),)),)
        with pytest.raises(ValueError, match="channel 4"):
            validate_channel_layout(layout)

    def test_average_needs_two_sources(self):
        layout = CHANNEL_LAYOUTS["baseline"][:7] + (ChannelSlot("BCR", 3, (ChannelSource("smdi", 0),), "average"),)
        with pytest.raises(ValueError, match="needs 2"):
            validate_channel_layout(layout)

    def test_unknown_transform(self):
        layout = CHANNEL_LAYOUTS["baseline"][:7] + (ChannelSlot("BCR", 3, (ChannelSource("smdi", 0),), "multiply"),)
        with pytest.raises(ValueError, match="unknown transform"):
            validate_channel_layout(layout)
