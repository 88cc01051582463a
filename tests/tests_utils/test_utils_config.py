# pylint: skip-file
# type: ignore

# Standard library
import sys; sys.path.append("../../")

import pytest
from osgeo import gdal

from rastergate.utils.utils_config import (
    _get_env_value,
    _get_default_output_driver,
    _get_default_conversion_format,
    _parse_severity,
    _get_default_severity_threshold,
    _get_default_reproject_max_error,
    _get_default_warp_max_error,
    _get_default_resample_alg,
    _get_default_warp_memory_proportion,
)


def test_defaults(clean_environment):
    assert _get_default_output_driver() == "GTiff"
    assert _get_default_conversion_format() == "PNG"
    assert _get_default_severity_threshold() == gdal.CE_Warning
    assert _get_default_reproject_max_error() == 5.0
    assert _get_default_warp_max_error() == 0.0
    assert _get_default_resample_alg() == "bilinear"
    assert _get_default_warp_memory_proportion() == 0.8

def test_environment_overrides(clean_environment):
    clean_environment.setenv("RASTERGATE_OUTPUT_DRIVER", "COG")
    clean_environment.setenv("RASTERGATE_SEVERITY_THRESHOLD", "failure")
    clean_environment.setenv("RASTERGATE_REPROJECT_MAX_ERROR", "0.125")
    clean_environment.setenv("RASTERGATE_RESAMPLE_ALG", " nearest ")

    assert _get_default_output_driver() == "COG"
    assert _get_default_severity_threshold() == gdal.CE_Failure
    assert _get_default_reproject_max_error() == 0.125
    assert _get_default_resample_alg() == "nearest"

def test_empty_variable_is_unset(clean_environment):
    clean_environment.setenv("RASTERGATE_OUTPUT_DRIVER", "   ")
    assert _get_env_value("OUTPUT_DRIVER") is None
    assert _get_default_output_driver() == "GTiff"

def test_invalid_numbers(clean_environment):
    clean_environment.setenv("RASTERGATE_WARP_MAX_ERROR", "exact")
    with pytest.raises(ValueError, match="RASTERGATE_WARP_MAX_ERROR"):
        _get_default_warp_max_error()

    clean_environment.setenv("RASTERGATE_WARP_MEMORY_PROPORTION", "1.5")
    with pytest.raises(ValueError):
        _get_default_warp_memory_proportion()

@pytest.mark.parametrize("severity, expected", [
    (gdal.CE_Warning, gdal.CE_Warning),
    ("warning", gdal.CE_Warning),
    ("FAILURE", gdal.CE_Failure),
    ("4", gdal.CE_Fatal),
    ("none", gdal.CE_None),
])
def test_parse_severity(severity, expected):
    assert _parse_severity(severity) == expected

@pytest.mark.parametrize("severity", [99, "loud", None, True])
def test_parse_severity_invalid(severity):
    with pytest.raises(ValueError):
        _parse_severity(severity)
