# pylint: skip-file
# type: ignore

# Standard library
import sys; sys.path.append("../../")

import pytest
import psutil
from osgeo import gdal

from rastergate.utils.utils_gdal import (
    _register_drivers,
    _check_is_options_list,
    _parse_options_list,
    _get_default_creation_options,
    _get_dynamic_memory_limit,
    _get_driver,
    _release_dataset,
)


# _register_drivers
def test_register_drivers_once():
    _register_drivers()
    assert _register_drivers() is False
    assert gdal.GetDriverCount() > 0


# _check_is_options_list
def test_check_is_options_list():
    assert _check_is_options_list(None)
    assert _check_is_options_list([])
    assert _check_is_options_list(["A=1", "B="])
    assert _check_is_options_list(("A=1",))
    assert not _check_is_options_list("A=1")
    assert not _check_is_options_list(["A"])
    assert not _check_is_options_list(["=1"])
    assert not _check_is_options_list([1])


# _parse_options_list
def test_parse_options_list_keeps_order_and_duplicates():
    pairs = _parse_options_list(["b=2", "A=1", "B=3", "C=x=y"])
    assert pairs == [("B", "2"), ("A", "1"), ("B", "3"), ("C", "x=y")]

def test_parse_options_list_empty():
    assert _parse_options_list(None) == []

def test_parse_options_list_invalid():
    with pytest.raises(ValueError):
        _parse_options_list(["NOVALUE"])


# _get_default_creation_options
def test_default_creation_options():
    options = _get_default_creation_options()
    assert options == [
        "TILED=YES",
        "NUM_THREADS=ALL_CPUS",
        "BIGTIFF=IF_SAFER",
        "COMPRESS=LZW",
        "BLOCKXSIZE=256",
        "BLOCKYSIZE=256",
    ]

def test_default_creation_options_caller_wins(sample_options):
    options = _get_default_creation_options(sample_options)
    assert options[:3] == sample_options
    assert "COMPRESS=LZW" not in options
    assert "BLOCKXSIZE=256" not in options
    assert "BLOCKYSIZE=256" in options
    assert "TILED=YES" in options

def test_default_creation_options_other_driver(sample_options):
    assert _get_default_creation_options(None, "PNG") == []
    assert _get_default_creation_options(sample_options, "COG") == sample_options

def test_default_creation_options_does_not_mutate(sample_options):
    original = list(sample_options)
    _get_default_creation_options(sample_options)
    assert sample_options == original


# _get_dynamic_memory_limit
def test_dynamic_memory_limit_bounds():
    limit = _get_dynamic_memory_limit(0.5, min_mb=100, max_mb=200)
    assert 100 <= limit <= 200

def test_dynamic_memory_limit_units():
    total_mb = psutil.virtual_memory().total / (1024 ** 2)
    limit = _get_dynamic_memory_limit(1.0)
    if total_mb >= 10000:
        assert limit >= 10000 * (1024 ** 2)
    else:
        assert limit < 10000

@pytest.mark.parametrize("kwargs, error", [
    ({"proportion": 0.0}, ValueError),
    ({"proportion": 1.5}, ValueError),
    ({"proportion": "half"}, TypeError),
    ({"min_mb": 0}, ValueError),
    ({"min_mb": 200, "max_mb": 100}, ValueError),
])
def test_dynamic_memory_limit_invalid(kwargs, error):
    with pytest.raises(error):
        _get_dynamic_memory_limit(**kwargs)


# _get_driver
def test_get_driver():
    assert _get_driver("GTiff").ShortName == "GTiff"
    assert _get_driver("NOT_A_DRIVER") is None
    assert _get_driver("") is None


# _release_dataset
def test_release_dataset():
    dataset = gdal.GetDriverByName("MEM").Create("", 2, 2, 1, gdal.GDT_Byte)
    _release_dataset(dataset)
    _release_dataset(None)
    assert dataset.RasterXSize == 2
