"""
# Raster handles without the footguns

Rastergate is a thin adapter over the GDAL raster engine. Datasets and bands are
addressed through opaque handles that fail lookup once closed, every engine
diagnostic lands in an explicit error context, and derived datasets (copies,
warps, mosaics, conversions) always come back as brand new handles.

**Dependencies** </br>
`gdal` (https://gdal.org/) </br>
`numpy` (https://numpy.org/) </br>
`psutil` (https://github.com/giampaolo/psutil) </br>

**Installation** </br>
Using pip:
```
pip install gdal
pip install rastergate
```

**Quickstart**

### Flat functions: sentinels and error codes
```python
import rastergate as rg

ctx = rg.ErrorContext()
ds = rg.open_dataset("path/to/raster.tif", ctx=ctx)

if ds is None:
    print(ctx.error_code, ctx.message)
else:
    bounds = rg.get_bounds(ds, ctx=ctx)
    band = rg.get_band(ds, 1, ctx=ctx)
    window = rg.read_band(band, 0, 0, 256, 256, "float32", ctx=ctx)
    rg.close_dataset(ds)
```

### Host callbacks for diagnostics
```python
import rastergate as rg

def on_event(severity, code, message):
    print(severity, code, message)
    return severity >= 3 # fail on CE_Failure and worse

ctx = rg.ErrorContext(handler_idx=rg.register_error_handler(on_event))
```

### Objects that raise
```python
import rastergate as rg

with rg.Dataset.open("path/to/raster.tif") as ds:
    with ds.reproject("EPSG:4326") as warped:
        warped.create_copy("path/to/raster_4326.tif").close()
```
"""
from osgeo import gdal, osr

from .utils import *
from .core import *

gdal.UseExceptions()
osr.UseExceptions()

__version__ = "0.1.0"
