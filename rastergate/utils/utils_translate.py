"""### GDAL Enum-like Functions. ###

Functions to translate between **GDAL** and **NumPy** datatypes, resampling
names, and VRT options.
"""

# Standard Library
from typing import Any, Dict, List, Optional, Type, Union

# External
import numpy as np
from osgeo import gdal, gdal_array

# Internal
from rastergate.utils import utils_gdal



def _translate_resample_method(method: str) -> int:
    """Translate a string of a resampling method to a GDAL integer.

    Parameters
    ----------
    method : str
        The resampling method (e.g. 'nearest', 'bilinear').

    Returns
    -------
    int
        The GDAL resampling method integer (e.g. gdal.GRA_Bilinear).

    Raises
    ------
    ValueError
        If method is not a string, or not a valid resampling method.
    """
    if not isinstance(method, str):
        raise ValueError(f"Method must be a string, got: {type(method)}")

    if not method:
        raise ValueError("Method cannot be empty")

    methods = {
        "nearest": gdal.GRA_NearestNeighbour,
        "bilinear": gdal.GRA_Bilinear,
        "cubic": gdal.GRA_Cubic,
        "cubic_spline": gdal.GRA_CubicSpline,
        "cubicspline": gdal.GRA_CubicSpline,
        "lanczos": gdal.GRA_Lanczos,
        "average": gdal.GRA_Average,
        "mean": gdal.GRA_Average,
        "mode": gdal.GRA_Mode,
        "max": gdal.GRA_Max,
        "min": gdal.GRA_Min,
        "median": gdal.GRA_Med,
        "q1": gdal.GRA_Q1,
        "q3": gdal.GRA_Q3,
        "sum": gdal.GRA_Sum,
    }

    method_lower = method.lower()
    if method_lower in methods:
        return methods[method_lower]

    raise ValueError(f"Unknown resampling method: {method}")


def _translate_dtype_gdal_to_numpy(gdal_datatype_int: int) -> np.dtype:
    """Translates the GDAL datatype integer into a NumPy datatype.

    Parameters
    ----------
    gdal_datatype_int : int
        The GDAL datatype integer, e.g. gdal.GDT_Float32.

    Returns
    -------
    np.dtype
        The NumPy datatype.

    Raises
    ------
    TypeError
        If gdal_datatype_int is not an integer.
    ValueError
        If the GDAL datatype has no NumPy equivalent.
    """
    if not isinstance(gdal_datatype_int, int) or isinstance(gdal_datatype_int, bool):
        raise TypeError(f"gdal_datatype must be an integer, got: {type(gdal_datatype_int)}")

    numeric_type = gdal_array.GDALTypeCodeToNumericTypeCode(gdal_datatype_int)
    if numeric_type is None:
        raise ValueError(f"Invalid GDAL datatype: {gdal_datatype_int}")

    return np.dtype(numeric_type)


def _parse_dtype(
    dtype: Union[str, np.dtype, int, Type[np.generic]]
) -> np.dtype:
    """Parses a numpy dtype from a string, numpy dtype, GDAL datatype integer, or numpy scalar type.

    Parameters
    ----------
    dtype : Union[str, np.dtype, int, Type[np.generic]]
        The input dtype to parse. Integers are read as GDAL datatype codes.

    Returns
    -------
    np.dtype
        The parsed numpy dtype.

    Raises
    ------
    TypeError
        If dtype is None or of invalid type.
    ValueError
        If dtype cannot be parsed into a valid numpy dtype.
    """
    if dtype is None:
        raise TypeError("dtype cannot be None")

    if isinstance(dtype, np.dtype):
        return dtype

    if isinstance(dtype, bool):
        raise TypeError(f"Invalid dtype type: {type(dtype)}")

    if isinstance(dtype, int):
        return _translate_dtype_gdal_to_numpy(dtype)

    if isinstance(dtype, str):
        try:
            return np.dtype(dtype.lower())
        except TypeError as e:
            raise ValueError(f"Could not parse dtype: {dtype}") from e

    if isinstance(dtype, type) and issubclass(dtype, np.generic):
        return np.dtype(dtype)

    raise TypeError(f"Invalid dtype type: {type(dtype)}")


def _translate_dtype_numpy_to_gdal(numpy_datatype: Union[str, np.dtype, int, Type[np.generic]]) -> int:
    """Translates the NumPy datatype into a GDAL datatype integer.

    Parameters
    ----------
    numpy_datatype : Union[str, np.dtype, int, Type[np.generic]]
        The NumPy datatype, can be string, numpy.dtype, numpy scalar type or GDAL integer.

    Returns
    -------
    int
        The GDAL datatype integer.

    Raises
    ------
    TypeError
        If numpy_datatype is None or not of correct type.
    ValueError
        If numpy_datatype cannot be converted to GDAL type.
    """
    parsed = _parse_dtype(numpy_datatype)

    if parsed.kind not in ("i", "u", "f", "c"):
        raise ValueError(f"Could not convert {numpy_datatype} to GDAL type")

    gdal_type = gdal_array.NumericTypeCodeToGDALTypeCode(parsed)
    if gdal_type is None or gdal_type == gdal.GDT_Unknown:
        raise ValueError(f"Could not convert {numpy_datatype} to GDAL type")

    return gdal_type


def _check_is_supported_dtype(dtype: Any) -> bool:
    """Checks whether a dtype can be read from or written to a band.

    Parameters
    ----------
    dtype : Any
        Anything _parse_dtype accepts.

    Returns
    -------
    bool
        True if the engine has a matching element type.
    """
    try:
        _translate_dtype_numpy_to_gdal(dtype)
    except (TypeError, ValueError):
        return False

    return True


def _parse_option_bool(value: str) -> bool:
    """Parses a GDAL style boolean option value (YES/NO, TRUE/FALSE, ON/OFF, 1/0)."""
    lowered = value.strip().lower()
    if lowered in ("yes", "true", "on", "1"):
        return True
    if lowered in ("no", "false", "off", "0"):
        return False

    raise ValueError(f"Invalid boolean option value: {value}")


_VRT_OPTION_KEYWORDS = {
    "RESOLUTION": ("resolution", str),
    "RESAMPLING": ("resampleAlg", str),
    "SRC_NODATA": ("srcNodata", str),
    "VRT_NODATA": ("VRTNodata", str),
    "SEPARATE": ("separate", bool),
    "ADD_ALPHA": ("addAlpha", bool),
    "ALLOW_PROJECTION_DIFFERENCE": ("allowProjectionDifference", bool),
}


def _translate_vrt_options(options: Optional[List[str]] = None) -> Dict[str, Any]:
    """Translates "KEY=VALUE" options into keyword arguments for gdal.BuildVRTOptions.

    Supported keys: RESOLUTION, RESAMPLING, SRC_NODATA, VRT_NODATA, SEPARATE,
    ADD_ALPHA, ALLOW_PROJECTION_DIFFERENCE. Later duplicates win.

    Parameters
    ----------
    options : Optional[List[str]], optional
        The options. Default: None

    Returns
    -------
    Dict[str, Any]
        Keyword arguments for gdal.BuildVRTOptions.

    Raises
    ------
    ValueError
        If an option is malformed or unknown.
    """
    kwargs: Dict[str, Any] = {}
    for key, value in utils_gdal._parse_options_list(options):
        if key not in _VRT_OPTION_KEYWORDS:
            raise ValueError(f"Unknown VRT option: {key}")

        keyword, kind = _VRT_OPTION_KEYWORDS[key]
        kwargs[keyword] = _parse_option_bool(value) if kind is bool else value

    return kwargs
