"""### Object interface over the flat handle functions. ###

`Dataset` and `Band` wrap handles for Python callers. Each method runs with a
fresh `ErrorContext` and raises `RasterGateError` when the underlying call fails.

```python
>>> import rastergate as rg
>>> with rg.Dataset.open("path/to/raster.tif") as ds:
...     array = ds.band(1).read()
...     bounds = ds.bounds
```
"""

# Standard library
from typing import List, Optional, Sequence, Tuple, Union

# External
import numpy as np

# Internal
from rastergate.utils import utils_base
from rastergate.core.core_errors import ErrorCode, RasterGateError
from rastergate.core.core_bridge import ErrorContext
from rastergate.core import (
    core_band_io,
    core_geometry,
    core_handles,
    core_transform,
)
from rastergate.core.core_handles import (
    BandHandle,
    DatasetHandle,
    DatasetInfo,
    RasterSession,
)
from rastergate.core.core_geometry import Bounds



def _check_result(result, ctx: ErrorContext, code: ErrorCode, op: str):
    """Internal. Raises if a flat call returned its failure sentinel."""
    if result is None or (isinstance(result, ErrorCode) and result != ErrorCode.SUCCESS):
        error_code = ctx.error_code if ctx.error_code != ErrorCode.SUCCESS else code
        raise RasterGateError(error_code, ctx.message, op)

    return result


class Band:
    """A band of an open `Dataset`. Valid only while the dataset is open."""

    def __init__(self, dataset: "Dataset", handle: BandHandle):
        self._dataset = dataset
        self._handle = handle

    @property
    def handle(self) -> BandHandle:
        return self._handle

    @property
    def dataset(self) -> "Dataset":
        return self._dataset

    def read(
        self,
        x_off: int = 0,
        y_off: int = 0,
        x_size: Optional[int] = None,
        y_size: Optional[int] = None,
        dtype: Union[str, np.dtype, type] = "float32",
        *,
        out: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """Reads a window of the band. The whole band by default.

        Parameters
        ----------
        x_off : int, optional
            Column of the upper-left pixel. Default: 0
        y_off : int, optional
            Row of the upper-left pixel. Default: 0
        x_size : Optional[int], optional
            Window width. Default: up to the right edge.
        y_size : Optional[int], optional
            Window height. Default: up to the bottom edge.
        dtype : Union[str, np.dtype, type], optional
            Element type of the result. Default: "float32"
        out : Optional[np.ndarray], optional
            Caller-allocated buffer to read into. Default: None

        Returns
        -------
        np.ndarray
            A (y_size, x_size) array, or `out`.
        """
        if x_size is None:
            x_size = self._dataset.width - x_off
        if y_size is None:
            y_size = self._dataset.height - y_off

        if out is not None:
            dtype = out.dtype

        ctx = ErrorContext()
        result = core_band_io.read_band(
            self._handle, x_off, y_off, x_size, y_size, dtype,
            out=out, ctx=ctx, session=self._dataset.session,
        )

        return _check_result(result, ctx, ErrorCode.READ, "read")

    def write(
        self,
        array: np.ndarray,
        x_off: int = 0,
        y_off: int = 0,
    ) -> None:
        """Writes a 2D array with its upper-left corner at (x_off, y_off)."""
        array = np.asarray(array)
        if array.ndim != 2:
            raise ValueError(f"array must be 2D, got: {array.ndim}D")

        y_size, x_size = array.shape

        ctx = ErrorContext()
        result = core_band_io.write_band(
            self._handle, x_off, y_off, x_size, y_size, array,
            ctx=ctx, session=self._dataset.session,
        )
        _check_result(result, ctx, ErrorCode.WRITE, "write")

    @property
    def nodata(self) -> Optional[float]:
        """The no-data sentinel, or None if none is configured."""
        ctx = ErrorContext()
        value, present = core_band_io.get_nodata_value(self._handle, ctx=ctx, session=self._dataset.session)

        if not present and ctx.error_code != ErrorCode.SUCCESS:
            raise RasterGateError(ctx.error_code, ctx.message, "nodata")

        return value if present else None

    def set_nodata(self, value: Union[int, float]) -> None:
        ctx = ErrorContext()
        result = core_band_io.set_nodata_value(self._handle, value, ctx=ctx, session=self._dataset.session)
        _check_result(result, ctx, ErrorCode.WRITE, "set_nodata")

    @property
    def block_size(self) -> Tuple[int, int]:
        ctx = ErrorContext()
        result = core_band_io.get_block_size(self._handle, ctx=ctx, session=self._dataset.session)

        return _check_result(result, ctx, ErrorCode.BAND, "block_size")

    @property
    def dtype(self) -> np.dtype:
        ctx = ErrorContext()
        result = core_band_io.get_band_dtype(self._handle, ctx=ctx, session=self._dataset.session)

        return _check_result(result, ctx, ErrorCode.BAND, "dtype")

    def __repr__(self) -> str:
        return f"Band(index={self._handle._index}, dataset={self._dataset!r})"


class Dataset:
    """An open raster dataset.

    Use the `open`, `create` and `build_vrt` constructors. The dataset is
    closed by `close()` or when leaving a `with` block.

    Parameters
    ----------
    handle : DatasetHandle
        A live handle of `session`.
    session : Optional[RasterSession], optional
        The session owning the handle. Default: the default session.
    """

    def __init__(self, handle: DatasetHandle, session: Optional[RasterSession] = None):
        if session is None:
            session = core_handles.get_default_session()

        if not core_handles.check_handle_is_valid(handle, session=session):
            raise ValueError("handle is not a live dataset handle of the session.")

        self._handle = handle
        self._session = session

    @classmethod
    def open(
        cls,
        path: str,
        *,
        writeable: bool = False,
        session: Optional[RasterSession] = None,
    ) -> "Dataset":
        """Opens a raster dataset, read-only unless `writeable` is True."""
        ctx = ErrorContext()
        handle = core_handles.open_dataset(path, writeable=writeable, ctx=ctx, session=session)

        return cls(_check_result(handle, ctx, ErrorCode.OPEN, "open"), session)

    @classmethod
    def create(
        cls,
        path: str,
        width: int,
        height: int,
        band_count: int = 1,
        dtype: Union[str, np.dtype, type] = "float32",
        options: Optional[List[str]] = None,
        *,
        session: Optional[RasterSession] = None,
    ) -> "Dataset":
        """Creates a new, writeable dataset in the fixed output format."""
        ctx = ErrorContext()
        handle = core_transform.create(
            path, width, height, band_count, dtype, options,
            ctx=ctx, session=session,
        )

        return cls(_check_result(handle, ctx, ErrorCode.COPY, "create"), session)

    @classmethod
    def build_vrt(
        cls,
        output_path: str,
        datasets: Sequence["Dataset"],
        options: Optional[List[str]] = None,
        *,
        session: Optional[RasterSession] = None,
    ) -> "Dataset":
        """Builds a virtual mosaic of open datasets of the same session."""
        ctx = ErrorContext()
        handles = [ds.handle if isinstance(ds, Dataset) else ds for ds in datasets]
        handle = core_transform.build_vrt(output_path, handles, options, ctx=ctx, session=session)

        return cls(_check_result(handle, ctx, ErrorCode.VRT, "build_vrt"), session)

    @property
    def handle(self) -> DatasetHandle:
        return self._handle

    @property
    def session(self) -> RasterSession:
        return self._session

    @property
    def closed(self) -> bool:
        return not core_handles.check_handle_is_valid(self._handle, session=self._session)

    @property
    def info(self) -> DatasetInfo:
        ctx = ErrorContext()
        result = core_handles.get_dataset_info(self._handle, ctx=ctx, session=self._session)

        return _check_result(result, ctx, ErrorCode.INVALID_PARAMS, "info")

    @property
    def width(self) -> int:
        return self.info.width

    @property
    def height(self) -> int:
        return self.info.height

    @property
    def band_count(self) -> int:
        return self.info.band_count

    @property
    def bounds(self) -> Bounds:
        ctx = ErrorContext()
        result = core_geometry.get_bounds(self._handle, ctx=ctx, session=self._session)

        return _check_result(result, ctx, ErrorCode.BOUNDS, "bounds")

    @property
    def crs(self) -> str:
        """The reference system as WKT."""
        ctx = ErrorContext()
        result = core_geometry.get_crs(self._handle, ctx=ctx, session=self._session)

        return _check_result(result, ctx, ErrorCode.CRS, "crs")

    @property
    def epsg_code(self) -> int:
        ctx = ErrorContext()
        result = core_geometry.get_epsg_code(self._handle, ctx=ctx, session=self._session)

        return _check_result(result, ctx, ErrorCode.CRS, "epsg_code")

    @property
    def geotransform(self) -> Tuple[float, float, float, float, float, float]:
        ctx = ErrorContext()
        result = core_geometry.get_geotransform(self._handle, ctx=ctx, session=self._session)

        return _check_result(result, ctx, ErrorCode.BOUNDS, "geotransform")

    def set_geotransform(self, transform: Sequence[float]) -> None:
        ctx = ErrorContext()
        result = core_geometry.set_geotransform(self._handle, transform, ctx=ctx, session=self._session)
        _check_result(result, ctx, ErrorCode.WRITE, "set_geotransform")

    def set_crs(self, crs: Union[str, int]) -> None:
        """Sets the reference system from WKT, "EPSG:n", a PROJ string or an EPSG code."""
        ctx = ErrorContext()
        result = core_geometry.set_crs(self._handle, crs, ctx=ctx, session=self._session)
        _check_result(result, ctx, ErrorCode.WRITE, "set_crs")

    def band(self, index: int) -> Band:
        """Returns the 1-based band `index`."""
        ctx = ErrorContext()
        handle = core_handles.get_band(self._handle, index, ctx=ctx, session=self._session)

        return Band(self, _check_result(handle, ctx, ErrorCode.BAND, "band"))

    def bands(self) -> List[Band]:
        return [self.band(index) for index in range(1, self.band_count + 1)]

    def _get_bands(self, band_indexes: Optional[Union[int, Sequence[int]]]) -> List[Band]:
        """Internal. Resolves every index up front, so a bad index fails before any I/O."""
        if band_indexes is None:
            return self.bands()

        band_indexes = utils_base._get_variable_as_list(band_indexes)
        if len(band_indexes) == 0:
            raise ValueError("band_indexes must name at least one band.")

        return [self.band(index) for index in band_indexes]

    def read(
        self,
        band_indexes: Optional[Union[int, Sequence[int]]] = None,
        x_off: int = 0,
        y_off: int = 0,
        x_size: Optional[int] = None,
        y_size: Optional[int] = None,
        dtype: Union[str, np.dtype, type] = "float32",
    ) -> np.ndarray:
        """Reads the same window of several bands into one array.

        Parameters
        ----------
        band_indexes : Optional[Union[int, Sequence[int]]], optional
            1-based band indexes, in output order. Default: all bands.
        x_off : int, optional
            Column of the upper-left pixel. Default: 0
        y_off : int, optional
            Row of the upper-left pixel. Default: 0
        x_size : Optional[int], optional
            Window width. Default: up to the right edge.
        y_size : Optional[int], optional
            Window height. Default: up to the bottom edge.
        dtype : Union[str, np.dtype, type], optional
            Element type of the result. Default: "float32"

        Returns
        -------
        np.ndarray
            A (bands, y_size, x_size) array.
        """
        bands = self._get_bands(band_indexes)

        return np.stack([band.read(x_off, y_off, x_size, y_size, dtype) for band in bands])

    def write(
        self,
        array: np.ndarray,
        band_indexes: Optional[Union[int, Sequence[int]]] = None,
        x_off: int = 0,
        y_off: int = 0,
    ) -> None:
        """Writes a (bands, rows, cols) array, one slice per band, at (x_off, y_off).

        A 2D array is written to a single band. The dataset must be writeable.
        """
        array = np.asarray(array)
        if array.ndim == 2:
            array = array[np.newaxis]

        if array.ndim != 3:
            raise ValueError(f"array must be 2D or 3D, got: {array.ndim}D")

        bands = self._get_bands(band_indexes)
        if len(bands) != array.shape[0]:
            raise ValueError(f"array holds {array.shape[0]} bands, {len(bands)} band indexes were given.")

        for band, band_array in zip(bands, array):
            band.write(band_array, x_off, y_off)

    def create_copy(self, dest_path: str, options: Optional[List[str]] = None) -> "Dataset":
        ctx = ErrorContext()
        handle = core_transform.create_copy(self._handle, dest_path, options, ctx=ctx, session=self._session)

        return Dataset(_check_result(handle, ctx, ErrorCode.COPY, "create_copy"), self._session)

    def warp(
        self,
        target_crs: Union[str, int],
        options: Optional[List[str]] = None,
        *,
        max_error: Optional[float] = None,
        resample_alg: Optional[str] = None,
    ) -> "Dataset":
        """Warps into `target_crs` as an in-memory virtual dataset. Exact by default."""
        ctx = ErrorContext()
        handle = core_transform.warp(
            self._handle, target_crs, options,
            max_error=max_error, resample_alg=resample_alg,
            ctx=ctx, session=self._session,
        )

        return Dataset(_check_result(handle, ctx, ErrorCode.REPROJECT, "warp"), self._session)

    def reproject(
        self,
        target_crs: Union[str, int],
        options: Optional[List[str]] = None,
        *,
        resample_alg: Optional[str] = None,
    ) -> "Dataset":
        """Warps into `target_crs` with the approximate transformer."""
        ctx = ErrorContext()
        handle = core_transform.reproject(
            self._handle, target_crs, options,
            resample_alg=resample_alg,
            ctx=ctx, session=self._session,
        )

        return Dataset(_check_result(handle, ctx, ErrorCode.REPROJECT, "reproject"), self._session)

    def convert_to_format(
        self,
        output_path: str,
        format: Optional[str] = None, # pylint: disable=redefined-builtin
        options: Optional[List[str]] = None,
    ) -> str:
        """Translates the dataset into a file. Returns the output path."""
        ctx = ErrorContext()
        result = core_transform.convert_to_format(
            self._handle, output_path, format, options,
            ctx=ctx, session=self._session,
        )
        _check_result(result, ctx, ErrorCode.COPY, "convert_to_format")

        return output_path

    def to_png(self, output_path: str) -> str:
        ctx = ErrorContext()
        result = core_transform.convert_to_png(self._handle, output_path, ctx=ctx, session=self._session)
        _check_result(result, ctx, ErrorCode.COPY, "to_png")

        return output_path

    def close(self) -> None:
        """Closes the dataset. Safe to call more than once."""
        core_handles.close_dataset(self._handle, session=self._session)

    def __enter__(self) -> "Dataset":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"Dataset(slot={self._handle._slot}, generation={self._handle._generation}, {state})"
