""" ### Utility functions shared by the adapter layer. ### """

from .utils_base import *
from .utils_config import *
from .utils_gdal import *
from .utils_translate import *
