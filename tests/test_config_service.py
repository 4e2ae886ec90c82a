import dataclasses
import json

import pytest

from tile_fetcher.exceptions.tile_fetcher_exceptions import (
    BoundingBoxOutOfExtentError,
    ConfigurationError,
    MissingSubdomainsError,
    UnknownCRSError,
    ValidationError,
)
from tile_fetcher.models.tile_models import Extent
from tile_fetcher.services.config_service import ConfigService
from tile_fetcher.services.crs_service import WEB_MERCATOR_EXTENT


BERLIN_BBOX = [13.3, 52.5, 13.4, 52.55]


def make_raw(**overrides):
    raw = {
        'url': "http://localhost:3857/{z}/{x}/{y}.png",
        'bbox': BERLIN_BBOX,
        'min_zoom': 11,
        'max_zoom': 13,
        'crs': "EPSG:3857",
    }
    raw.update(overrides)
    return raw


@pytest.fixture(scope="module")
def service():
    return ConfigService()


class TestBuildFetchConfig:
    """Test cases for ConfigService.build_fetch_config"""

    def test_multiple_zoom_levels(self, service):
        config = service.build_fetch_config(make_raw())

        assert len(config.tile_ranges) == 3
        assert config.zoom_levels == (11, 12, 13)
        assert config.total_count == 15
        assert config.min_zoom == 11
        assert config.max_zoom == 13
        assert config.crs == "EPSG:3857"
        assert config.crs_extent == WEB_MERCATOR_EXTENT
        assert config.bbox == Extent(13.3, 52.5, 13.4, 52.55)
        assert config.bbox_crs == "EPSG:4326"

    def test_total_count_is_sum_of_ranges(self, service):
        config = service.build_fetch_config(make_raw(min_zoom=8, max_zoom=14))

        assert config.total_count == sum(r.count for r in config.tile_ranges)
        for tile_range in config.tile_ranges:
            assert tile_range.count == ((tile_range.max_x - tile_range.min_x + 1) *
                                        (tile_range.max_y - tile_range.min_y + 1))

    def test_single_zoom_level(self, service):
        config = service.build_fetch_config(make_raw(max_zoom=11))

        assert len(config.tile_ranges) == 1
        assert config.total_count == 2

    def test_missing_subdomains(self, service):
        with pytest.raises(MissingSubdomainsError, match="Missing Subdomains"):
            service.build_fetch_config(make_raw(url="http://{s}.localhost:3857/{z}/{x}/{y}.png"))

    def test_empty_subdomains_count_as_missing(self, service):
        with pytest.raises(MissingSubdomainsError):
            service.build_fetch_config(make_raw(url="http://{s}.localhost/{z}/{x}/{y}.png", subdomains=[]))

    def test_accepts_subdomains(self, service):
        config = service.build_fetch_config(make_raw(
            url="http://{s}.localhost:3857/{z}/{x}/{y}.png",
            subdomains=["a", "b", "c"],
            max_zoom=11,
        ))

        assert config.subdomains == ("a", "b", "c")

    def test_camel_case_key_names(self, service):
        config = service.build_fetch_config({
            'sourceUrl': "http://{s}.localhost/{z}/{x}/{y}.png",
            'sourceSubdomains': ["a", "b"],
            'bbox': BERLIN_BBOX,
            'minZoom': 11,
            'maxZoom': 12,
            'crs': "EPSG:3857",
        })

        assert config.url == "http://{s}.localhost/{z}/{x}/{y}.png"
        assert config.subdomains == ("a", "b")
        assert config.total_count == 6

    def test_invalid_crs(self, service):
        with pytest.raises(UnknownCRSError, match="Couldn't get the extent"):
            service.build_fetch_config(make_raw(crs="INVALID:CRS"))

    def test_invalid_bbox_crs(self, service):
        with pytest.raises(UnknownCRSError):
            service.build_fetch_config(make_raw(bbox_crs="INVALID:CRS"))

    def test_bbox_outside_crs_extent(self, service):
        with pytest.raises(BoundingBoxOutOfExtentError, match="exceeds the extent of EPSG:3857"):
            service.build_fetch_config(make_raw(bbox=[-180, -89, 180, 89]))

    @pytest.mark.parametrize("bbox", [
        [179, 0, 181, 1],
        [-200, 0, -190, 1],
        [13.3, 52.5, 13.4, 91],
    ])
    def test_bbox_outside_bbox_crs_extent(self, service, bbox):
        """Longitudes past the antimeridian must not wrap into another area"""
        with pytest.raises(BoundingBoxOutOfExtentError, match="exceeds the extent of EPSG:4326"):
            service.build_fetch_config(make_raw(bbox=bbox, min_zoom=4, max_zoom=4))

    def test_crs_code_is_normalized(self, service):
        config = service.build_fetch_config(make_raw(crs=3857, max_zoom=11))

        assert config.crs == "EPSG:3857"
        assert config.total_count == 2

    def test_geographic_grid(self, service):
        config = service.build_fetch_config(make_raw(crs="EPSG:4326", min_zoom=0, max_zoom=1))

        first, second = config.tile_ranges
        assert (first.min_x, first.max_x, first.min_y, first.max_y) == (0, 0, 0, 0)
        assert (second.min_x, second.max_x, second.min_y, second.max_y) == (1, 1, 0, 0)

    def test_bbox_in_target_crs(self, service):
        config = service.build_fetch_config(make_raw(
            bbox=[1480549.2275505385, 6891041.723891583, 1491681.1766298658, 6900190.041139638],
            bbox_crs="EPSG:3857",
        ))

        assert config.total_count == 15

    def test_config_is_immutable(self, service):
        config = service.build_fetch_config(make_raw(max_zoom=11))

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.total_count = 0

    @pytest.mark.parametrize("overrides", [
        {'url': None},
        {'url': "   "},
        {'bbox': [1, 2, 3]},
        {'bbox': "13.3,52.5,13.4,52.55"},
        {'bbox': [13.4, 52.5, 13.3, 52.55]},
        {'bbox': [13.3, 52.5, 13.4, True]},
        {'min_zoom': 14},
        {'min_zoom': -1},
        {'max_zoom': 12.5},
        {'subdomains': "abc"},
        {'subdomains': ["a", 1]},
        {'tile_size': 0},
    ])
    def test_validation_errors(self, service, overrides):
        with pytest.raises(ValidationError):
            service.build_fetch_config(make_raw(**overrides))

    def test_validation_errors_are_configuration_errors(self, service):
        with pytest.raises(ConfigurationError):
            service.build_fetch_config(make_raw(min_zoom=14))


class TestLoadConfig:
    """Test cases for ConfigService.load_config"""

    def test_load_json(self, tmp_path, service):
        path = tmp_path / "fetch.json"
        path.write_text(json.dumps(make_raw(sourceSubdomains=["a"], max_parallel_downloads=3)))

        raw = service.load_config(str(path))

        assert raw['subdomains'] == ["a"]
        assert service.build_fetch_config(raw).total_count == 15
        assert service.get_fetch_options(raw).max_parallel_downloads == 3

    def test_missing_file(self, tmp_path, service):
        with pytest.raises(ConfigurationError, match="not found"):
            service.load_config(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path, service):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            service.load_config(str(path))

    def test_not_an_object(self, tmp_path, service):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")

        with pytest.raises(ConfigurationError):
            service.load_config(str(path))


class TestFetchOptions:
    """Test cases for ConfigService.get_fetch_options"""

    def test_defaults(self, service):
        options = service.get_fetch_options({})

        assert options.max_parallel_downloads == 6
        assert options.timeout == 30
        assert options.headers == {}

    def test_custom_values(self, service):
        options = service.get_fetch_options({
            'maxParallelDownloads': 2,
            'timeout': 2.5,
            'headers': {'User-Agent': 'test'},
        })

        assert options.max_parallel_downloads == 2
        assert options.timeout == 2.5
        assert options.headers == {'User-Agent': 'test'}

    @pytest.mark.parametrize("raw", [
        {'max_parallel_downloads': 0},
        {'max_parallel_downloads': "4"},
        {'timeout': 0},
        {'timeout': "30"},
        {'headers': ["User-Agent"]},
    ])
    def test_invalid_values(self, service, raw):
        with pytest.raises(ValidationError):
            service.get_fetch_options(raw)
