# pylint: skip-file
# type: ignore

# Standard library
import sys; sys.path.append("../../")

import pytest
import numpy as np
from osgeo import gdal

from rastergate.core.core_errors import ErrorCode
from rastergate.core.core_handles import close_dataset, get_band, open_dataset
from rastergate.core.core_transform import create
from rastergate.core.core_band_io import (
    get_band_dtype,
    get_block_size,
    get_nodata_value,
    read_band,
    set_nodata_value,
    write_band,
)



@pytest.fixture
def float32_band(session, ctx, float32_raster):
    """First band of the read-only float32 raster."""
    handle = open_dataset(float32_raster, ctx=ctx, session=session)
    return get_band(handle, 1, ctx=ctx, session=session)


class TestReadBand:
    def test_read_full(self, session, ctx, float32_band, sample_array_2d):
        """Test reading the whole band."""
        array = read_band(float32_band, 0, 0, 100, 100, "float32", ctx=ctx, session=session)
        assert array.shape == (100, 100)
        assert array.dtype == np.float32
        np.testing.assert_array_equal(array, sample_array_2d)

    def test_read_window(self, session, ctx, float32_band, sample_array_2d):
        """Test reading an interior window."""
        array = read_band(float32_band, 10, 20, 5, 3, ctx=ctx, session=session)
        np.testing.assert_array_equal(array, sample_array_2d[20:23, 10:15])

    def test_read_as_other_dtype(self, session, ctx, float32_band, sample_array_2d):
        """Test that the engine converts to the requested element type."""
        array = read_band(float32_band, 0, 0, 4, 4, np.float64, ctx=ctx, session=session)
        assert array.dtype == np.float64
        np.testing.assert_array_equal(array, sample_array_2d[:4, :4].astype(np.float64))

    def test_read_into_buffer(self, session, ctx, float32_band, sample_array_2d):
        """Test reading into a caller-allocated flat buffer."""
        out = np.zeros(6, dtype=np.float32)
        result = read_band(float32_band, 0, 1, 3, 2, out=out, ctx=ctx, session=session)
        assert result is out
        np.testing.assert_array_equal(out, sample_array_2d[1:3, 0:3].ravel())

    def test_read_into_wrong_buffer(self, session, ctx, float32_band):
        """Test that a buffer of the wrong size is rejected."""
        out = np.zeros(5, dtype=np.float32)
        assert read_band(float32_band, 0, 0, 3, 2, out=out, ctx=ctx, session=session) is None
        assert ctx.error_code == ErrorCode.INVALID_PARAMS

    @pytest.mark.parametrize("window", [
        (-1, 0, 10, 10),
        (0, -1, 10, 10),
        (95, 0, 10, 10),
        (0, 95, 10, 10),
        (0, 0, 0, 10),
        (0, 0, 101, 1),
    ])
    def test_read_out_of_range(self, session, ctx, float32_band, window):
        """Test that windows outside the band are rejected, not clamped."""
        assert read_band(float32_band, *window, ctx=ctx, session=session) is None
        assert ctx.error_code == ErrorCode.READ
        assert ctx.message

    def test_read_unsupported_dtype(self, session, ctx, float32_band):
        """Test that element types without an engine equivalent are rejected."""
        assert read_band(float32_band, 0, 0, 1, 1, "str", ctx=ctx, session=session) is None
        assert ctx.error_code == ErrorCode.INVALID_PARAMS

    def test_read_after_close(self, session, ctx, float32_raster):
        """Test that reading a band of a closed dataset is rejected."""
        handle = open_dataset(float32_raster, ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)
        close_dataset(handle, session=session)

        assert read_band(band, 0, 0, 1, 1, ctx=ctx, session=session) is None
        assert ctx.error_code == ErrorCode.INVALID_PARAMS


class TestWriteBand:
    @pytest.mark.parametrize("dtype", ["float32", "float64", "int32", "uint16", "int16"])
    def test_round_trip(self, tmp_path, session, ctx, dtype):
        """Test that written values are read back bit-identical."""
        handle = create(str(tmp_path / f"round_trip_{dtype}.tif"), 16, 12, 1, dtype, ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)

        if np.dtype(dtype).kind == "f":
            values = (np.random.default_rng(42).random((5, 7)) * 1e6 - 5e5).astype(dtype)
        else:
            values = np.arange(35).reshape(5, 7).astype(dtype)

        assert write_band(band, 3, 4, 7, 5, values, ctx=ctx, session=session) == ErrorCode.SUCCESS

        result = read_band(band, 3, 4, 7, 5, dtype, ctx=ctx, session=session)
        assert result.tobytes() == values.tobytes()
        assert not ctx.has_failed()

    def test_write_flat_buffer(self, tmp_path, session, ctx):
        """Test writing a flat list of values with an explicit element type."""
        handle = create(str(tmp_path / "flat.tif"), 4, 4, 1, "int32", ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)

        assert write_band(band, 0, 0, 2, 2, [1, 2, 3, 4], "int32", ctx=ctx, session=session) == ErrorCode.SUCCESS
        np.testing.assert_array_equal(
            read_band(band, 0, 0, 2, 2, "int32", ctx=ctx, session=session),
            np.array([[1, 2], [3, 4]], dtype=np.int32),
        )

    def test_write_size_mismatch(self, tmp_path, session, ctx):
        """Test that a buffer of the wrong size is an invalid parameter."""
        handle = create(str(tmp_path / "mismatch.tif"), 4, 4, 1, ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)

        result = write_band(band, 0, 0, 2, 2, np.zeros(3, dtype=np.float32), ctx=ctx, session=session)
        assert result == ErrorCode.INVALID_PARAMS

    def test_write_out_of_range(self, tmp_path, session, ctx):
        """Test that a window outside the band gives WRITE."""
        handle = create(str(tmp_path / "range.tif"), 4, 4, 1, ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)

        result = write_band(band, 3, 3, 2, 2, np.zeros(4, dtype=np.float32), ctx=ctx, session=session)
        assert result == ErrorCode.WRITE
        assert ctx.message

    def test_write_read_only(self, session, ctx, float32_band):
        """Test that a dataset opened read-only cannot be written."""
        result = write_band(float32_band, 0, 0, 1, 1, np.zeros(1, dtype=np.float32), ctx=ctx, session=session)
        assert result == ErrorCode.WRITE
        assert ctx.error_code == ErrorCode.WRITE

    def test_write_opened_writeable(self, session, ctx, float32_raster):
        """Test writing to a dataset opened in update mode."""
        handle = open_dataset(float32_raster, writeable=True, ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)

        values = np.full((2, 2), -1.5, dtype=np.float32)
        assert write_band(band, 0, 0, 2, 2, values, ctx=ctx, session=session) == ErrorCode.SUCCESS
        np.testing.assert_array_equal(read_band(band, 0, 0, 2, 2, ctx=ctx, session=session), values)

    def test_write_after_close(self, tmp_path, session, ctx):
        """Test that writing a band of a closed dataset is rejected."""
        handle = create(str(tmp_path / "closed.tif"), 4, 4, 1, ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)
        close_dataset(handle, session=session)

        result = write_band(band, 0, 0, 1, 1, np.zeros(1, dtype=np.float32), ctx=ctx, session=session)
        assert result == ErrorCode.INVALID_PARAMS


class TestNodata:
    def test_no_nodata(self, session, ctx, float32_band):
        """Test that a band without sentinel reports it as absent."""
        value, present = get_nodata_value(float32_band, ctx=ctx, session=session)
        assert present is False
        assert value == 0.0
        assert not ctx.has_failed()

    def test_nodata(self, session, ctx, int32_nodata_raster):
        """Test reading a configured sentinel."""
        handle = open_dataset(int32_nodata_raster, ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)
        assert get_nodata_value(band, ctx=ctx, session=session) == (-9999.0, True)

    def test_set_nodata_zero(self, tmp_path, session, ctx):
        """Test that a sentinel of 0 is distinct from no sentinel."""
        handle = create(str(tmp_path / "nodata.tif"), 4, 4, 1, ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)

        assert get_nodata_value(band, ctx=ctx, session=session) == (0.0, False)
        assert set_nodata_value(band, 0, ctx=ctx, session=session) == ErrorCode.SUCCESS
        assert get_nodata_value(band, ctx=ctx, session=session) == (0.0, True)

    def test_set_nodata_invalid(self, tmp_path, session, ctx):
        """Test that a non-numeric sentinel is rejected."""
        handle = create(str(tmp_path / "nodata_invalid.tif"), 4, 4, 1, ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)
        assert set_nodata_value(band, "zero", ctx=ctx, session=session) == ErrorCode.INVALID_PARAMS

    def test_set_nodata_too_large(self, tmp_path, session, ctx):
        """Test that an integer beyond the double range is rejected, not raised."""
        handle = create(str(tmp_path / "nodata_large.tif"), 4, 4, 1, ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)
        assert set_nodata_value(band, 10 ** 400, ctx=ctx, session=session) == ErrorCode.INVALID_PARAMS
        assert ctx.error_code == ErrorCode.INVALID_PARAMS

    def test_nodata_engine_failure(self, session, ctx, float32_band, monkeypatch):
        """Test that an engine failure is reported as READ, not as an absent sentinel."""
        def failing_get_nodata(self):
            raise RuntimeError("nodata lookup failed")

        monkeypatch.setattr(gdal.Band, "GetNoDataValue", failing_get_nodata)

        assert get_nodata_value(float32_band, ctx=ctx, session=session) == (0.0, False)
        assert ctx.error_code == ErrorCode.READ
        assert "nodata lookup failed" in ctx.message


class TestBandProperties:
    def test_block_size_of_created(self, tmp_path, session, ctx):
        """Test that created datasets are tiled 256x256."""
        handle = create(str(tmp_path / "tiled.tif"), 300, 300, 1, ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)
        assert get_block_size(band, ctx=ctx, session=session) == (256, 256)

    def test_block_size_invalid(self, session, ctx):
        """Test the block size of a missing band."""
        assert get_block_size(None, ctx=ctx, session=session) is None
        assert ctx.error_code == ErrorCode.INVALID_PARAMS

    @pytest.mark.parametrize("dtype", ["uint8", "int32", "float64"])
    def test_dtype(self, tmp_path, session, ctx, dtype):
        """Test that the band element type maps back to numpy."""
        handle = create(str(tmp_path / f"dtype_{dtype}.tif"), 4, 4, 1, dtype, ctx=ctx, session=session)
        band = get_band(handle, 1, ctx=ctx, session=session)
        assert get_band_dtype(band, ctx=ctx, session=session) == np.dtype(dtype)
