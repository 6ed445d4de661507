"""Unit tests for enhancement configuration loader."""

import tempfile
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from src.enhancement.config_loader import (
    EnhancementParams,
    MorphologyConfig,
    RegionConfig,
    get_default_params,
    get_profile,
    load_params,
    params_from_dict,
)


class TestModels:
    """Test parameter models and validation."""

    def test_default_values(self):
        params = EnhancementParams()
        assert params.profile == "macro"
        assert params.region.max_dimension == 1600
        assert params.contrast.clip_limit == 3.0
        assert params.binarization.tile_size == 16
        assert params.binarization.mean_factor == 0.85

    def test_invalid_max_dimension(self):
        with pytest.raises(ValidationError):
            RegionConfig(max_dimension=0)

    def test_invalid_interpolation(self):
        with pytest.raises(ValidationError):
            RegionConfig(interpolation="nearest")

    def test_morphology_bounds_checked(self):
        with pytest.raises(ValidationError):
            MorphologyConfig(min_white_neighbors=7, max_white_neighbors=3)


class TestProfiles:
    """Test named profiles."""

    def test_global_otsu_profile(self):
        params = get_profile("global_otsu")
        assert params.binarization.method == "otsu"
        assert params.skew.enabled is False
        assert params.morphology.enabled is False

    def test_profile_copy_is_independent(self):
        params = get_profile("macro")
        params.sharpen.strength = 2.0
        assert get_profile("macro").sharpen.strength == 0.4

    def test_unknown_profile(self):
        with pytest.raises(KeyError):
            get_profile("sepia")


class TestLoading:
    """Test loading from YAML."""

    def test_overrides_merge_onto_profile(self):
        params = params_from_dict({"profile": "global_otsu", "sharpen": {"strength": 0.7}})

        assert params.profile == "global_otsu"
        assert params.binarization.method == "otsu"
        assert params.sharpen.strength == 0.7
        assert params.sharpen.enabled is True

    def test_load_params_from_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "enhancement.yaml"
            path.write_text(yaml.safe_dump({"region": {"max_dimension": 800}}))

            params = load_params(path)

        assert params.region.max_dimension == 800
        assert params.region.interpolation == "cubic"

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_params(Path("does/not/exist.yaml"))

    def test_bundled_defaults(self):
        params = get_default_params()
        assert params.profile == "macro"
        assert params.skew.candidate_angles == [-15, -10, -5, -2, -1, 0, 1, 2, 5, 10, 15]
