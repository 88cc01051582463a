"""### Typed, windowed band I/O. ###

Reads and writes rectangular pixel windows between a band and numpy buffers.
Windows must lie fully inside the band; they are rejected, never clamped.
"""

# Standard library
from typing import Any, Optional, Tuple, Union

# External
import numpy as np

# Internal
from rastergate.utils import utils_base, utils_translate
from rastergate.core.core_errors import ErrorCode
from rastergate.core.core_bridge import (
    ErrorContext,
    engine_call,
    engine_scope,
    mark_failed,
    report_error,
)
from rastergate.core.core_handles import (
    BandHandle,
    RasterSession,
    _get_band_record,
    _resolve_session,
)


def _check_window_args(*args: Any) -> bool:
    return all(utils_base._type_check(arg, [int, np.integer], "window", throw_error=False) for arg in args)


def _get_buffer_view(
    out: Any,
    x_size: int,
    y_size: int,
    dtype: np.dtype,
) -> Optional[np.ndarray]:
    """Internal. Returns a (y_size, x_size) view of a caller-allocated buffer.

    The buffer must be a C-contiguous numpy array of x_size * y_size elements of
    exactly dtype. Returns None if it is not.
    """
    if not isinstance(out, np.ndarray):
        return None

    if out.dtype != dtype or out.size != x_size * y_size or not out.flags["C_CONTIGUOUS"]:
        return None

    if not out.flags["WRITEABLE"]:
        return None

    return out.reshape(y_size, x_size)


def read_band(
    band: Optional[BandHandle],
    x_off: int,
    y_off: int,
    x_size: int,
    y_size: int,
    dtype: Optional[Union[str, np.dtype, type]] = None,
    *,
    out: Optional[np.ndarray] = None,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[np.ndarray]:
    """Reads a window of a band.

    Parameters
    ----------
    band : BandHandle
        The band to read from.
    x_off : int
        Column of the upper-left pixel.
    y_off : int
        Row of the upper-left pixel.
    x_size : int
        Window width in pixels.
    y_size : int
        Window height in pixels.
    dtype : Optional[Union[str, np.dtype, type]], optional
        Element type of the result. Default: the dtype of `out`, else float32.
    out : Optional[np.ndarray], optional
        Caller-allocated, C-contiguous buffer of x_size * y_size elements.
        Default: a new (y_size, x_size) array is allocated.

    Returns
    -------
    Optional[np.ndarray]
        `out` if given, otherwise a new (y_size, x_size) array. None with error
        code READ if the window is out of range or the engine fails.
    """
    session, ctx = _resolve_session(session, ctx)

    found = _get_band_record(session, ctx, band)
    if found is None:
        return None

    record, engine_band = found

    if not _check_window_args(x_off, y_off, x_size, y_size):
        report_error(ctx, ErrorCode.INVALID_PARAMS, "Window offsets and sizes must be integers.")
        return None

    x_off, y_off, x_size, y_size = int(x_off), int(y_off), int(x_size), int(y_size)

    if dtype is None:
        dtype = out.dtype if isinstance(out, np.ndarray) else "float32"

    if not utils_translate._check_is_supported_dtype(dtype):
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"Unsupported element type: {dtype}")
        return None

    np_dtype = utils_translate._parse_dtype(dtype)

    width = record.dataset.RasterXSize
    height = record.dataset.RasterYSize

    if not utils_base._check_is_valid_window(width, height, x_off, y_off, x_size, y_size):
        report_error(
            ctx,
            ErrorCode.READ,
            f"Access window out of range: ({x_off}, {y_off}, {x_size}, {y_size}) on a {width}x{height} band.",
        )
        return None

    if out is None:
        buffer = np.empty((y_size, x_size), dtype=np_dtype)
    else:
        buffer = _get_buffer_view(out, x_size, y_size, np_dtype)
        if buffer is None:
            report_error(
                ctx,
                ErrorCode.INVALID_PARAMS,
                f"Buffer must be a writeable, C-contiguous {np_dtype.name} array of {x_size * y_size} elements.",
            )
            return None

    result = engine_call(ctx, engine_band.ReadAsArray, x_off, y_off, x_size, y_size, buf_obj=buffer)
    if result is None:
        mark_failed(ctx, ErrorCode.READ)
        return None

    return out if out is not None else buffer


def write_band(
    band: Optional[BandHandle],
    x_off: int,
    y_off: int,
    x_size: int,
    y_size: int,
    buffer: Any,
    dtype: Optional[Union[str, np.dtype, type]] = None,
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> ErrorCode:
    """Writes a window of a band.

    Parameters
    ----------
    band : BandHandle
        The band to write to. Its dataset must be writeable.
    x_off : int
        Column of the upper-left pixel.
    y_off : int
        Row of the upper-left pixel.
    x_size : int
        Window width in pixels.
    y_size : int
        Window height in pixels.
    buffer : array_like
        x_size * y_size values, row-major.
    dtype : Optional[Union[str, np.dtype, type]], optional
        Element type the buffer is interpreted as. Default: the buffer's own dtype.

    Returns
    -------
    ErrorCode
        SUCCESS, INVALID_PARAMS or WRITE.
    """
    session, ctx = _resolve_session(session, ctx)

    found = _get_band_record(session, ctx, band)
    if found is None:
        return ErrorCode.INVALID_PARAMS

    record, engine_band = found

    if not _check_window_args(x_off, y_off, x_size, y_size):
        report_error(ctx, ErrorCode.INVALID_PARAMS, "Window offsets and sizes must be integers.")
        return ErrorCode.INVALID_PARAMS

    x_off, y_off, x_size, y_size = int(x_off), int(y_off), int(x_size), int(y_size)

    if buffer is None or (dtype is not None and not utils_translate._check_is_supported_dtype(dtype)):
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"Unsupported buffer or element type: {dtype}")
        return ErrorCode.INVALID_PARAMS

    try:
        array = np.asarray(buffer, dtype=None if dtype is None else utils_translate._parse_dtype(dtype))
    except (TypeError, ValueError) as e:
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"Could not interpret buffer: {e}")
        return ErrorCode.INVALID_PARAMS

    if not utils_translate._check_is_supported_dtype(array.dtype):
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"Unsupported element type: {array.dtype}")
        return ErrorCode.INVALID_PARAMS

    if array.size != x_size * y_size:
        report_error(
            ctx,
            ErrorCode.INVALID_PARAMS,
            f"Buffer holds {array.size} elements, the window needs {x_size * y_size}.",
        )
        return ErrorCode.INVALID_PARAMS

    if not record.writeable:
        report_error(ctx, ErrorCode.WRITE, f"Dataset is not writeable: {record.path}")
        return ErrorCode.WRITE

    width = record.dataset.RasterXSize
    height = record.dataset.RasterYSize

    if not utils_base._check_is_valid_window(width, height, x_off, y_off, x_size, y_size):
        report_error(
            ctx,
            ErrorCode.WRITE,
            f"Access window out of range: ({x_off}, {y_off}, {x_size}, {y_size}) on a {width}x{height} band.",
        )
        return ErrorCode.WRITE

    array = np.ascontiguousarray(array).reshape(y_size, x_size)

    err = engine_call(ctx, engine_band.WriteArray, array, x_off, y_off)
    if err is None or err != 0:
        mark_failed(ctx, ErrorCode.WRITE)
        return ErrorCode.WRITE

    return ErrorCode.SUCCESS


def get_nodata_value(
    band: Optional[BandHandle],
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Tuple[float, bool]:
    """Gets the no-data sentinel of a band.

    Returns
    -------
    Tuple[float, bool]
        (value, present). present is False when no sentinel is configured, in
        which case value is 0.0 and carries no meaning.
    """
    session, ctx = _resolve_session(session, ctx)

    found = _get_band_record(session, ctx, band)
    if found is None:
        return 0.0, False

    _record, engine_band = found

    # None is also the engine's answer for "no sentinel", so track a raise separately.
    value = None
    raised = True
    with engine_scope(ctx):
        value = engine_band.GetNoDataValue()
        raised = False

    if raised:
        mark_failed(ctx, ErrorCode.READ)
        return 0.0, False

    if value is None:
        return 0.0, False

    return float(value), True


def set_nodata_value(
    band: Optional[BandHandle],
    value: Union[int, float],
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> ErrorCode:
    """Sets the no-data sentinel of a band.

    Returns
    -------
    ErrorCode
        SUCCESS, INVALID_PARAMS or WRITE.
    """
    session, ctx = _resolve_session(session, ctx)

    found = _get_band_record(session, ctx, band)
    if found is None:
        return ErrorCode.INVALID_PARAMS

    _record, engine_band = found

    if not utils_base._type_check(value, [int, float, np.number], "value", throw_error=False):
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"No-data value must be a number, got: {type(value).__name__}")
        return ErrorCode.INVALID_PARAMS

    value_float = utils_base._get_as_float(value)
    if value_float is None:
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"No-data value does not fit a double: {value}")
        return ErrorCode.INVALID_PARAMS

    err = engine_call(ctx, engine_band.SetNoDataValue, value_float)
    if err is None or err != 0:
        mark_failed(ctx, ErrorCode.WRITE)
        return ErrorCode.WRITE

    return ErrorCode.SUCCESS


def get_block_size(
    band: Optional[BandHandle],
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[Tuple[int, int]]:
    """Gets the natural block size (x, y) of a band. Advisory only."""
    session, ctx = _resolve_session(session, ctx)

    found = _get_band_record(session, ctx, band)
    if found is None:
        return None

    _record, engine_band = found

    block_size = engine_call(ctx, engine_band.GetBlockSize)
    if block_size is None:
        mark_failed(ctx, ErrorCode.BAND)
        return None

    return int(block_size[0]), int(block_size[1])


def get_band_dtype(
    band: Optional[BandHandle],
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[np.dtype]:
    """Gets the element type of a band as a numpy dtype."""
    session, ctx = _resolve_session(session, ctx)

    found = _get_band_record(session, ctx, band)
    if found is None:
        return None

    _record, engine_band = found

    try:
        return utils_translate._translate_dtype_gdal_to_numpy(engine_band.DataType)
    except ValueError:
        report_error(ctx, ErrorCode.BAND, f"Band element type has no numpy equivalent: {engine_band.DataType}")
        return None
