"""### Geometry of datasets: bounds, geotransforms and coordinate reference systems. ###"""

# Standard library
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

# External
from osgeo import osr

# Internal
from rastergate.utils import utils_base
from rastergate.core.core_errors import ErrorCode
from rastergate.core.core_bridge import (
    ErrorContext,
    engine_call,
    mark_failed,
    report_error,
)
from rastergate.core.core_handles import (
    DatasetHandle,
    RasterSession,
    _get_dataset_record,
    _resolve_session,
)


@dataclass(frozen=True)
class Bounds:
    """Extent of a dataset in georeferenced coordinates.

    Derived from the geotransform as given: for north-up rasters the pixel
    height is negative, so bottom < top. Nothing is clamped or reordered.
    """
    left: float
    top: float
    right: float
    bottom: float


def _parse_crs(
    ctx: ErrorContext,
    crs: Union[str, int, osr.SpatialReference],
) -> Optional[osr.SpatialReference]:
    """Internal. Parses WKT, "EPSG:n", PROJ strings or an EPSG integer.

    Diagnostics go to ctx. Returns None if the input cannot be parsed; the
    caller decides the error code.
    """
    if isinstance(crs, osr.SpatialReference):
        return crs

    srs = osr.SpatialReference()

    if isinstance(crs, int) and not isinstance(crs, bool):
        if not utils_base._check_is_c_int(crs):
            report_error(ctx, ErrorCode.CRS, f"EPSG code out of range: {crs}")
            return None

        err = engine_call(ctx, srs.ImportFromEPSG, crs)
    elif isinstance(crs, str) and crs.strip() != "":
        err = engine_call(ctx, srs.SetFromUserInput, crs)
    else:
        return None

    if err is None or err != 0:
        return None

    return srs


def get_geotransform(
    dataset: Optional[DatasetHandle],
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[Tuple[float, float, float, float, float, float]]:
    """Gets the geotransform of a dataset.

    Returns
    -------
    Optional[Tuple[float, float, float, float, float, float]]
        (origin x, pixel width, row rotation, origin y, column rotation,
        pixel height), or None with error code BOUNDS if the dataset has none.
    """
    session, ctx = _resolve_session(session, ctx)

    record = _get_dataset_record(session, ctx, dataset)
    if record is None:
        return None

    transform = engine_call(ctx, record.dataset.GetGeoTransform, can_return_null=True)
    if transform is None:
        report_error(ctx, ErrorCode.BOUNDS, "Dataset has no geotransform.")
        return None

    return tuple(float(value) for value in transform)


def set_geotransform(
    dataset: Optional[DatasetHandle],
    transform: Sequence[float],
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> ErrorCode:
    """Sets the geotransform of a dataset.

    Parameters
    ----------
    dataset : DatasetHandle
        The dataset.
    transform : Sequence[float]
        Six coefficients, as returned by get_geotransform.

    Returns
    -------
    ErrorCode
        SUCCESS, INVALID_PARAMS or WRITE.
    """
    session, ctx = _resolve_session(session, ctx)

    record = _get_dataset_record(session, ctx, dataset)
    if record is None:
        return ErrorCode.INVALID_PARAMS

    if (
        not utils_base._type_check(transform, [[int, float]], "transform", throw_error=False)
        or len(transform) != 6
        or any(isinstance(value, bool) for value in transform)
    ):
        report_error(ctx, ErrorCode.INVALID_PARAMS, "A geotransform must be six numbers.")
        return ErrorCode.INVALID_PARAMS

    coefficients = [utils_base._get_as_float(value) for value in transform]
    if any(value is None for value in coefficients):
        report_error(ctx, ErrorCode.INVALID_PARAMS, "Geotransform coefficients must fit a double.")
        return ErrorCode.INVALID_PARAMS

    err = engine_call(ctx, record.dataset.SetGeoTransform, coefficients)
    if err is None or err != 0:
        mark_failed(ctx, ErrorCode.WRITE)
        return ErrorCode.WRITE

    return ErrorCode.SUCCESS


def get_bounds(
    dataset: Optional[DatasetHandle],
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[Bounds]:
    """Computes the bounds of a dataset from its geotransform and size.

    left = x0, top = y0, right = x0 + width * pixel width,
    bottom = y0 + height * pixel height.

    Returns
    -------
    Optional[Bounds]
        The bounds, or None with error code BOUNDS if the dataset has no geotransform.
    """
    session, ctx = _resolve_session(session, ctx)

    record = _get_dataset_record(session, ctx, dataset)
    if record is None:
        return None

    # One engine dataset for the transform and the size, even if the handle is closed meanwhile.
    engine_dataset = record.dataset
    if engine_dataset is None:
        report_error(ctx, ErrorCode.INVALID_PARAMS, "Invalid dataset handle.")
        return None

    transform = engine_call(ctx, engine_dataset.GetGeoTransform, can_return_null=True)
    if transform is None:
        report_error(ctx, ErrorCode.BOUNDS, "Dataset has no geotransform.")
        return None

    width = engine_dataset.RasterXSize
    height = engine_dataset.RasterYSize

    return Bounds(
        left=transform[0],
        top=transform[3],
        right=transform[0] + width * transform[1],
        bottom=transform[3] + height * transform[5],
    )


def get_crs(
    dataset: Optional[DatasetHandle],
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[str]:
    """Gets the coordinate reference system of a dataset as WKT.

    Returns
    -------
    Optional[str]
        The WKT, or None with error code CRS if the dataset has no spatial reference.
    """
    session, ctx = _resolve_session(session, ctx)

    record = _get_dataset_record(session, ctx, dataset)
    if record is None:
        return None

    srs = engine_call(ctx, record.dataset.GetSpatialRef)
    if srs is None:
        report_error(ctx, ErrorCode.CRS, "Dataset has no spatial reference.")
        return None

    wkt = engine_call(ctx, srs.ExportToWkt)
    if not wkt:
        mark_failed(ctx, ErrorCode.CRS)
        return None

    return wkt


def set_crs(
    dataset: Optional[DatasetHandle],
    crs: Union[str, int],
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> ErrorCode:
    """Sets the coordinate reference system of a dataset.

    Parameters
    ----------
    dataset : DatasetHandle
        The dataset.
    crs : Union[str, int]
        WKT, "EPSG:n", a PROJ string, or an EPSG code.

    Returns
    -------
    ErrorCode
        SUCCESS, INVALID_PARAMS, CRS (unparseable) or WRITE.
    """
    session, ctx = _resolve_session(session, ctx)

    record = _get_dataset_record(session, ctx, dataset)
    if record is None:
        return ErrorCode.INVALID_PARAMS

    if not utils_base._type_check(crs, [str, int], "crs", throw_error=False):
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"crs must be a string or an EPSG code, got: {type(crs).__name__}")
        return ErrorCode.INVALID_PARAMS

    srs = _parse_crs(ctx, crs)
    if srs is None:
        mark_failed(ctx, ErrorCode.CRS)
        return ErrorCode.CRS

    err = engine_call(ctx, record.dataset.SetSpatialRef, srs)
    if err is None or err != 0:
        mark_failed(ctx, ErrorCode.WRITE)
        return ErrorCode.WRITE

    return ErrorCode.SUCCESS


def get_authority_code(
    wkt: str,
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[str]:
    """Parses WKT and returns the authority code of the reference system, e.g. "4326".

    Returns
    -------
    Optional[str]
        The code, or None with error code CRS on malformed WKT or when the
        reference system has no authority code.
    """
    session, ctx = _resolve_session(session, ctx)

    if not isinstance(wkt, str) or wkt.strip() == "":
        report_error(ctx, ErrorCode.INVALID_PARAMS, "WKT must be a non-empty string.")
        return None

    srs = osr.SpatialReference()
    err = engine_call(ctx, srs.ImportFromWkt, wkt)
    if err is None or err != 0:
        mark_failed(ctx, ErrorCode.CRS)
        return None

    code = engine_call(ctx, srs.GetAuthorityCode, None)
    if not code:
        report_error(ctx, ErrorCode.CRS, "Reference system has no authority code.")
        return None

    return str(code)


def get_epsg_code(
    dataset: Optional[DatasetHandle],
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[int]:
    """Returns the EPSG code of a dataset's reference system as an integer."""
    session, ctx = _resolve_session(session, ctx)

    wkt = get_crs(dataset, ctx=ctx, session=session)
    if wkt is None:
        return None

    code = get_authority_code(wkt, ctx=ctx, session=session)
    if code is None:
        return None

    try:
        return int(code)
    except ValueError:
        report_error(ctx, ErrorCode.CRS, f"Authority code is not an EPSG number: {code}")
        return None
