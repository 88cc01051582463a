"""### Derived datasets: create, copy, warp, mosaic and convert. ###

Every transform leaves its source untouched and either returns a brand new
handle, owned by the caller until closed, or fails explicitly.
"""

# Standard library
from typing import List, Optional, Sequence, Union

# External
import numpy as np
from osgeo import gdal

# Internal
from rastergate.utils import (
    utils_base,
    utils_config,
    utils_gdal,
    utils_translate,
)
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
from rastergate.core.core_geometry import _parse_crs



def _check_options(
    ctx: ErrorContext,
    options: Optional[List[str]],
) -> bool:
    if not utils_gdal._check_is_options_list(options):
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"options must be a list of 'KEY=VALUE' strings, got: {options}")
        return False

    return True


def create(
    path: str,
    width: int,
    height: int,
    band_count: int,
    dtype: Union[str, np.dtype, type] = "float32",
    options: Optional[List[str]] = None,
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[DatasetHandle]:
    """Creates a new, writeable dataset in the fixed output format.

    Parameters
    ----------
    path : str
        Output path.
    width : int
        Width in pixels, > 0.
    height : int
        Height in pixels, > 0.
    band_count : int
        Number of bands, > 0.
    dtype : Union[str, np.dtype, type], optional
        Element type of every band. Default: "float32"
    options : Optional[List[str]], optional
        Creation options, merged with the package defaults. Default: None

    Returns
    -------
    Optional[DatasetHandle]
        The new handle, or None with error code COPY if the engine fails.
    """
    session, ctx = _resolve_session(session, ctx)

    path_str = utils_base._get_path_as_str(path)
    if path_str is None:
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"Invalid output path: {path}")
        return None

    for name, value in (("width", width), ("height", height), ("band_count", band_count)):
        if not utils_base._check_is_c_int(value) or value <= 0:
            report_error(ctx, ErrorCode.INVALID_PARAMS, f"{name} must be a positive 32-bit integer, got: {value}")
            return None

    if not utils_translate._check_is_supported_dtype(dtype):
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"Unsupported element type: {dtype}")
        return None

    if not _check_options(ctx, options):
        return None

    driver_name = utils_config._get_default_output_driver()
    driver = utils_gdal._get_driver(driver_name)
    if driver is None:
        report_error(ctx, ErrorCode.COPY, f"Output driver is not available: {driver_name}")
        return None

    creation_options = utils_gdal._get_default_creation_options(options, driver_name)

    dataset = engine_call(
        ctx,
        driver.Create,
        path_str,
        int(width),
        int(height),
        int(band_count),
        utils_translate._translate_dtype_numpy_to_gdal(dtype),
        creation_options,
    )

    if dataset is None:
        mark_failed(ctx, ErrorCode.COPY)
        return None

    return session.registry.register(dataset, path=path_str, writeable=True)


def create_copy(
    src: Optional[DatasetHandle],
    dest_path: str,
    options: Optional[List[str]] = None,
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[DatasetHandle]:
    """Copies a dataset to a new file in the fixed output format.

    Parameters
    ----------
    src : DatasetHandle
        The source dataset. Not modified.
    dest_path : str
        Output path.
    options : Optional[List[str]], optional
        Creation options. Caller keys win over the package defaults and keep
        their order. Default: None

    Returns
    -------
    Optional[DatasetHandle]
        A writeable handle to the copy, or None with error code COPY.
    """
    session, ctx = _resolve_session(session, ctx)

    record = _get_dataset_record(session, ctx, src)
    if record is None:
        return None

    path_str = utils_base._get_path_as_str(dest_path)
    if path_str is None:
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"Invalid output path: {dest_path}")
        return None

    if not _check_options(ctx, options):
        return None

    driver_name = utils_config._get_default_output_driver()
    driver = utils_gdal._get_driver(driver_name)
    if driver is None:
        report_error(ctx, ErrorCode.COPY, f"Output driver is not available: {driver_name}")
        return None

    creation_options = utils_gdal._get_default_creation_options(options, driver_name)

    dataset = engine_call(ctx, driver.CreateCopy, path_str, record.dataset, 0, creation_options)
    if dataset is None:
        mark_failed(ctx, ErrorCode.COPY)
        return None

    return session.registry.register(dataset, path=path_str, writeable=True)


def warp(
    src: Optional[DatasetHandle],
    target_crs: Union[str, int],
    options: Optional[List[str]] = None,
    *,
    max_error: Optional[float] = None,
    resample_alg: Optional[str] = None,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[DatasetHandle]:
    """Warps a dataset into another reference system, as an in-memory virtual dataset.

    The source reference system is taken from `src`.

    Parameters
    ----------
    src : DatasetHandle
        The source dataset. Not modified.
    target_crs : Union[str, int]
        WKT, "EPSG:n", a PROJ string or an EPSG code.
    options : Optional[List[str]], optional
        GDAL warp options, e.g. ["NUM_THREADS=ALL_CPUS"]. Default: None
    max_error : Optional[float], optional
        Approximation error tolerance in pixels; 0.0 is exact.
        Default: `RASTERGATE_WARP_MAX_ERROR`, else 0.0
    resample_alg : Optional[str], optional
        Resampling method. Default: `RASTERGATE_RESAMPLE_ALG`, else "bilinear"

    Returns
    -------
    Optional[DatasetHandle]
        A read-only handle to the warped dataset, or None with error code
        REPROJECT. A missing or closed `src` fails with INVALID_PARAMS before
        anything reaches the engine.
    """
    session, ctx = _resolve_session(session, ctx)

    record = _get_dataset_record(session, ctx, src)
    if record is None:
        return None

    if max_error is None:
        max_error = utils_config._get_default_warp_max_error()

    if resample_alg is None:
        resample_alg = utils_config._get_default_resample_alg()

    max_error_float = utils_base._get_as_float(max_error)
    if (
        not utils_base._type_check(max_error, [int, float], "max_error", throw_error=False)
        or max_error_float is None
        or not max_error_float >= 0.0
    ):
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"max_error must be a non-negative number, got: {max_error}")
        return None

    try:
        resample_alg_gdal = utils_translate._translate_resample_method(resample_alg)
    except ValueError as e:
        report_error(ctx, ErrorCode.INVALID_PARAMS, str(e))
        return None

    if not _check_options(ctx, options):
        return None

    if target_crs is None or not utils_base._type_check(target_crs, [str, int], "target_crs", throw_error=False):
        report_error(ctx, ErrorCode.REPROJECT, "A target reference system is required.")
        return None

    dst_srs = _parse_crs(ctx, target_crs)
    if dst_srs is None:
        mark_failed(ctx, ErrorCode.REPROJECT)
        return None

    src_srs = engine_call(ctx, record.dataset.GetSpatialRef)
    if src_srs is None:
        report_error(ctx, ErrorCode.REPROJECT, "Source dataset has no spatial reference.")
        return None

    memory_limit = utils_gdal._get_dynamic_memory_limit(
        utils_config._get_default_warp_memory_proportion(),
        available=True,
    )

    warp_options = gdal.WarpOptions(
        format="VRT",
        srcSRS=src_srs.ExportToWkt(),
        dstSRS=dst_srs.ExportToWkt(),
        resampleAlg=resample_alg_gdal,
        errorThreshold=max_error_float,
        warpOptions=list(options) if options is not None else None,
        warpMemoryLimit=memory_limit,
        multithread=True,
    )

    dataset = engine_call(ctx, gdal.Warp, "", record.dataset, options=warp_options)
    if dataset is None:
        mark_failed(ctx, ErrorCode.REPROJECT)
        return None

    return session.registry.register(
        dataset,
        writeable=False,
        sources=[record.dataset] + record.sources,
    )


def reproject(
    src: Optional[DatasetHandle],
    target_crs: Union[str, int],
    options: Optional[List[str]] = None,
    *,
    resample_alg: Optional[str] = None,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[DatasetHandle]:
    """Warps a dataset with the approximate transformer.

    Same as `warp` with `max_error` from `RASTERGATE_REPROJECT_MAX_ERROR`,
    else 5.0 pixels.
    """
    return warp(
        src,
        target_crs,
        options,
        max_error=utils_config._get_default_reproject_max_error(),
        resample_alg=resample_alg,
        ctx=ctx,
        session=session,
    )


def build_vrt(
    output_path: str,
    datasets: Sequence[Optional[DatasetHandle]],
    options: Optional[List[str]] = None,
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[DatasetHandle]:
    """Builds a virtual mosaic of several datasets.

    Parameters
    ----------
    output_path : str
        Where the VRT description is written.
    datasets : Sequence[Optional[DatasetHandle]]
        The sources. None and closed handles are skipped.
    options : Optional[List[str]], optional
        Any of RESOLUTION, RESAMPLING, SRC_NODATA, VRT_NODATA, SEPARATE,
        ADD_ALPHA and ALLOW_PROJECTION_DIFFERENCE as "KEY=VALUE". Default: None

    Returns
    -------
    Optional[DatasetHandle]
        A read-only handle to the mosaic, or None with error code VRT if no
        usable source remains or the engine fails.
    """
    session, ctx = _resolve_session(session, ctx)

    path_str = utils_base._get_path_as_str(output_path)
    if path_str is None:
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"Invalid output path: {output_path}")
        return None

    if not isinstance(datasets, (list, tuple)):
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"datasets must be a list of handles, got: {type(datasets).__name__}")
        return None

    if not utils_base._type_check(list(datasets), [[DatasetHandle, type(None)]], "datasets", throw_error=False):
        report_error(ctx, ErrorCode.INVALID_PARAMS, "datasets may only contain dataset handles or None.")
        return None

    sources = []
    kept_alive = []
    for handle in datasets:
        record = session.registry.lookup(handle)
        if record is not None:
            sources.append(record.dataset)
            kept_alive.extend(record.sources)

    if len(sources) == 0:
        report_error(ctx, ErrorCode.VRT, "No valid datasets to build a VRT from.")
        return None

    try:
        vrt_kwargs = utils_translate._translate_vrt_options(options)
    except ValueError as e:
        report_error(ctx, ErrorCode.INVALID_PARAMS, str(e))
        return None

    vrt_options = engine_call(ctx, gdal.BuildVRTOptions, **vrt_kwargs)
    if vrt_options is None:
        mark_failed(ctx, ErrorCode.INVALID_PARAMS)
        return None

    dataset = engine_call(ctx, gdal.BuildVRT, path_str, sources, options=vrt_options)
    if dataset is None:
        mark_failed(ctx, ErrorCode.VRT)
        return None

    return session.registry.register(
        dataset,
        path=path_str,
        writeable=False,
        sources=sources + kept_alive,
    )


def convert_to_format(
    src: Optional[DatasetHandle],
    output_path: str,
    format: Optional[str] = None, # pylint: disable=redefined-builtin
    options: Optional[List[str]] = None,
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> ErrorCode:
    """Translates a dataset into a file of any format the engine can write.

    Parameters
    ----------
    src : DatasetHandle
        The source dataset. Not modified.
    output_path : str
        Output path.
    format : Optional[str], optional
        Short driver name, e.g. "PNG" or "COG".
        Default: `RASTERGATE_CONVERSION_FORMAT`, else "PNG"
    options : Optional[List[str]], optional
        Creation options of the target driver. Default: None

    Returns
    -------
    ErrorCode
        SUCCESS, INVALID_PARAMS or COPY.
    """
    session, ctx = _resolve_session(session, ctx)

    record = _get_dataset_record(session, ctx, src)
    if record is None:
        return ErrorCode.INVALID_PARAMS

    path_str = utils_base._get_path_as_str(output_path)
    if path_str is None:
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"Invalid output path: {output_path}")
        return ErrorCode.INVALID_PARAMS

    if format is None:
        format = utils_config._get_default_conversion_format()

    if not isinstance(format, str) or format.strip() == "":
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"format must be a driver name, got: {format}")
        return ErrorCode.INVALID_PARAMS

    if not _check_options(ctx, options):
        return ErrorCode.INVALID_PARAMS

    if utils_gdal._get_driver(format) is None:
        report_error(ctx, ErrorCode.COPY, f"Output driver is not available: {format}")
        return ErrorCode.COPY

    translate_options = gdal.TranslateOptions(
        format=format,
        creationOptions=utils_gdal._get_default_creation_options(options, format),
    )

    dataset = engine_call(ctx, gdal.Translate, path_str, record.dataset, options=translate_options)
    if dataset is None:
        mark_failed(ctx, ErrorCode.COPY)
        return ErrorCode.COPY

    engine_call(ctx, utils_gdal._release_dataset, dataset)
    dataset = None

    return ErrorCode.SUCCESS


def convert_to_png(
    src: Optional[DatasetHandle],
    output_path: str,
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> ErrorCode:
    """Writes a dataset as PNG. Only Byte and UInt16 bands can be written."""
    return convert_to_format(src, output_path, "PNG", ctx=ctx, session=session)
