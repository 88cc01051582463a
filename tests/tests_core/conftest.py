"""Fixtures for core tests."""

import pytest
import numpy as np
from osgeo import gdal, osr


def _write_raster(path, array, geotransform=None, epsg=None, nodata=None):
    rows, cols = array.shape
    gdal_type = {
        np.dtype("uint8"): gdal.GDT_Byte,
        np.dtype("int32"): gdal.GDT_Int32,
        np.dtype("float32"): gdal.GDT_Float32,
        np.dtype("float64"): gdal.GDT_Float64,
    }[array.dtype]

    driver = gdal.GetDriverByName("GTiff")
    dataset = driver.Create(path, cols, rows, 1, gdal_type)

    if geotransform is not None:
        dataset.SetGeoTransform(geotransform)

    if epsg is not None:
        srs = osr.SpatialReference()
        srs.ImportFromEPSG(epsg)
        dataset.SetProjection(srs.ExportToWkt())

    band = dataset.GetRasterBand(1)
    band.WriteArray(array)

    if nodata is not None:
        band.SetNoDataValue(nodata)

    dataset.FlushCache()
    dataset = None

    return path


@pytest.fixture
def sample_array_2d():
    """Create a 100x100 float32 array of increasing values.

    Returns:
        numpy.ndarray: Values 0..9999 in row-major order
    """
    return np.arange(100 * 100, dtype=np.float32).reshape(100, 100)


@pytest.fixture
def float32_raster(tmp_path, sample_array_2d):
    """Create a 100x100 float32 GeoTIFF in EPSG:3857.

    Geotransform (0, 1, 0, 100, 0, -1), no nodata value.

    Returns:
        str: Path to the created raster file
    """
    return _write_raster(
        str(tmp_path / "float32_raster.tif"),
        sample_array_2d,
        geotransform=(0, 1, 0, 100, 0, -1),
        epsg=3857,
    )


@pytest.fixture
def int32_nodata_raster(tmp_path):
    """Create a 10x10 int32 GeoTIFF in EPSG:4326 with nodata -9999.

    Returns:
        str: Path to the created raster file
    """
    array = np.arange(100, dtype=np.int32).reshape(10, 10)
    array[0, 0] = -9999

    return _write_raster(
        str(tmp_path / "int32_nodata_raster.tif"),
        array,
        geotransform=(10, 0.1, 0, 50, 0, -0.1),
        epsg=4326,
        nodata=-9999,
    )


@pytest.fixture
def uint8_raster(tmp_path):
    """Create a 20x20 uint8 GeoTIFF suitable for PNG conversion.

    Returns:
        str: Path to the created raster file
    """
    array = (np.arange(400) % 256).astype(np.uint8).reshape(20, 20)

    return _write_raster(
        str(tmp_path / "uint8_raster.tif"),
        array,
        geotransform=(0, 1, 0, 20, 0, -1),
        epsg=3857,
    )


@pytest.fixture
def raster_without_georeference(tmp_path):
    """Create a 10x10 float32 GeoTIFF with neither geotransform nor projection.

    Returns:
        str: Path to the created raster file
    """
    return _write_raster(
        str(tmp_path / "no_georeference.tif"),
        np.ones((10, 10), dtype=np.float32),
    )


@pytest.fixture
def adjacent_rasters(tmp_path):
    """Create two 10x10 float32 GeoTIFFs in EPSG:3857, side by side.

    Returns:
        list: Paths of the left and right raster
    """
    left = _write_raster(
        str(tmp_path / "left.tif"),
        np.full((10, 10), 1.0, dtype=np.float32),
        geotransform=(0, 1, 0, 10, 0, -1),
        epsg=3857,
    )
    right = _write_raster(
        str(tmp_path / "right.tif"),
        np.full((10, 10), 2.0, dtype=np.float32),
        geotransform=(10, 1, 0, 10, 0, -1),
        epsg=3857,
    )

    return [left, right]
