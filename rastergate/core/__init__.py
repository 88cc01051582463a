""" ### Handle-based adapter over the GDAL raster engine. ### """

from .core_errors import *
from .core_bridge import *
from .core_handles import *
from .core_geometry import *
from .core_band_io import *
from .core_transform import *
from .core_dataset import *
