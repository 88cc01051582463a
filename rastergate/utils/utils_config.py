"""### Package defaults. ###

Defaults used by the adapter layer. Each of them can be overridden through an
environment variable prefixed with `RASTERGATE_`, read at call time:

| Variable                             | Default    |
|--------------------------------------|------------|
| `RASTERGATE_OUTPUT_DRIVER`           | `GTiff`    |
| `RASTERGATE_CONVERSION_FORMAT`       | `PNG`      |
| `RASTERGATE_SEVERITY_THRESHOLD`      | `warning`  |
| `RASTERGATE_REPROJECT_MAX_ERROR`     | `5.0`      |
| `RASTERGATE_WARP_MAX_ERROR`          | `0.0`      |
| `RASTERGATE_RESAMPLE_ALG`            | `bilinear` |
| `RASTERGATE_WARP_MEMORY_PROPORTION`  | `0.8`      |
"""

# Standard Library
import os
from typing import Optional

# External
from osgeo import gdal


_ENV_PREFIX = "RASTERGATE_"

_SEVERITY_NAMES = {
    "none": gdal.CE_None,
    "debug": gdal.CE_Debug,
    "warning": gdal.CE_Warning,
    "failure": gdal.CE_Failure,
    "fatal": gdal.CE_Fatal,
}


def _get_env_value(name: str) -> Optional[str]:
    """Reads a `RASTERGATE_` prefixed environment variable.

    Parameters
    ----------
    name : str
        The name of the setting, without prefix.

    Returns
    -------
    Optional[str]
        The stripped value, or None if unset or empty.
    """
    value = os.environ.get(f"{_ENV_PREFIX}{name}")
    if value is None or value.strip() == "":
        return None

    return value.strip()


def _get_env_float(name: str, default: float) -> float:
    """Reads a float setting from the environment.

    Raises
    ------
    ValueError
        If the variable is set but is not a number.
    """
    value = _get_env_value(name)
    if value is None:
        return default

    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"{_ENV_PREFIX}{name} must be a number, got: {value}") from e


def _get_default_output_driver() -> str:
    """The fixed driver used by create and create_copy."""
    return _get_env_value("OUTPUT_DRIVER") or "GTiff"


def _get_default_conversion_format() -> str:
    """The driver used by convert_to_format when no format is given."""
    return _get_env_value("CONVERSION_FORMAT") or "PNG"


def _parse_severity(severity) -> int:
    """Parses a severity given as a GDAL CPLErr integer or a name.

    Parameters
    ----------
    severity : Union[int, str]
        e.g. `gdal.CE_Warning`, `2` or `"warning"`.

    Returns
    -------
    int
        The GDAL CPLErr value.

    Raises
    ------
    ValueError
        If the severity is not known.
    """
    if isinstance(severity, int) and not isinstance(severity, bool):
        if severity in _SEVERITY_NAMES.values():
            return severity
        raise ValueError(f"Unknown severity: {severity}")

    if isinstance(severity, str):
        key = severity.strip().lower()
        if key in _SEVERITY_NAMES:
            return _SEVERITY_NAMES[key]
        if key.isdigit():
            return _parse_severity(int(key))

    raise ValueError(f"Unknown severity: {severity}")


def _get_default_severity_threshold() -> int:
    """Events at or above this severity fail a strict error context.

    Warnings count as failures unless overridden.
    """
    value = _get_env_value("SEVERITY_THRESHOLD")
    if value is None:
        return gdal.CE_Warning

    return _parse_severity(value)


def _get_default_reproject_max_error() -> float:
    """Approximation error tolerance, in pixels, of the reproject preset."""
    return _get_env_float("REPROJECT_MAX_ERROR", 5.0)


def _get_default_warp_max_error() -> float:
    """Approximation error tolerance, in pixels, of the warp preset. 0.0 is exact."""
    return _get_env_float("WARP_MAX_ERROR", 0.0)


def _get_default_resample_alg() -> str:
    return _get_env_value("RESAMPLE_ALG") or "bilinear"


def _get_default_warp_memory_proportion() -> float:
    """Share of system memory the warper may use."""
    proportion = _get_env_float("WARP_MEMORY_PROPORTION", 0.8)
    if proportion <= 0.0 or proportion > 1.0:
        raise ValueError(f"{_ENV_PREFIX}WARP_MEMORY_PROPORTION must be > 0 and <= 1, got: {proportion}")

    return proportion
