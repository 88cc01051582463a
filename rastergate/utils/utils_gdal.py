"""### Utility functions to work with GDAL. ###

Driver registration, options lists and resource sizing for the raster engine.
"""

# Standard Library
import threading
from typing import Optional, List, Tuple, Any

# External
from osgeo import gdal
import psutil
import numpy as np


_DRIVERS_REGISTERED = False
_DRIVERS_LOCK = threading.Lock()


def _register_drivers() -> bool:
    """Registers all GDAL drivers, once per process.

    Returns
    -------
    bool
        True if this call performed the registration, False if it had
        already happened.
    """
    global _DRIVERS_REGISTERED # pylint: disable=global-statement

    if _DRIVERS_REGISTERED:
        return False

    with _DRIVERS_LOCK:
        if _DRIVERS_REGISTERED:
            return False

        gdal.AllRegister()
        _DRIVERS_REGISTERED = True

    return True


def _check_is_options_list(options: Any) -> bool:
    """Checks that options is None or a list/tuple of "KEY=VALUE" strings.

    Parameters
    ----------
    options : Any
        The candidate options.

    Returns
    -------
    bool
        True if valid.
    """
    if options is None:
        return True

    if not isinstance(options, (list, tuple)):
        return False

    for option in options:
        if not isinstance(option, str):
            return False

        key, sep, _value = option.partition("=")
        if sep == "" or key.strip() == "":
            return False

    return True


def _parse_options_list(
    options: Optional[List[str]] = None,
) -> List[Tuple[str, str]]:
    """Splits a list of "KEY=VALUE" strings into ordered (key, value) pairs.

    Order and duplicates are kept: the engine lets later keys override
    earlier ones.

    Parameters
    ----------
    options : Optional[List[str]], optional
        The options. Default: None

    Returns
    -------
    List[Tuple[str, str]]
        The parsed pairs, keys upper-cased.

    Raises
    ------
    ValueError
        If any option is not of the form KEY=VALUE.
    """
    if not _check_is_options_list(options):
        raise ValueError(f"options must be a list of 'KEY=VALUE' strings, got: {options}")

    if options is None:
        return []

    pairs = []
    for option in options:
        key, _sep, value = option.partition("=")
        pairs.append((key.strip().upper(), value))

    return pairs


def _get_default_creation_options(
    options: Optional[List[str]] = None,
    driver_name: str = "GTiff",
) -> List[str]:
    """Takes a list of GDAL creation options and adds default values if not specified.

    Defaults are only added for the GTiff driver:
    ```python
    >>> default_options = [
    ...     "TILED=YES",
    ...     "NUM_THREADS=ALL_CPUS",
    ...     "BIGTIFF=IF_SAFER",
    ...     "COMPRESS=LZW",
    ...     "BLOCKXSIZE=256",
    ...     "BLOCKYSIZE=256",
    ... ]
    ```
    Caller options come first, in their original order.

    Parameters
    ----------
    options : Optional[List[str]], optional
        A list of GDAL creation options. Default: None
    driver_name : str, optional
        The short name of the output driver. Default: "GTiff"

    Returns
    -------
    List[str]
        A list of GDAL creation options with defaults added.

    Raises
    ------
    ValueError
        If options is not a list of "KEY=VALUE" strings.
    """
    keys = {key for key, _value in _parse_options_list(options)}
    internal_options = list(options) if options is not None else []

    if driver_name.upper() != "GTIFF":
        return internal_options

    default_pairs = [
        ("TILED", "TILED=YES"),
        ("NUM_THREADS", "NUM_THREADS=ALL_CPUS"),
        ("BIGTIFF", "BIGTIFF=IF_SAFER"),
        ("COMPRESS", "COMPRESS=LZW"),
        ("BLOCKXSIZE", "BLOCKXSIZE=256"),
        ("BLOCKYSIZE", "BLOCKYSIZE=256"),
    ]

    for key, value in default_pairs:
        if key not in keys:
            internal_options.append(value)

    return internal_options


def _get_dynamic_memory_limit(
    proportion: float = 0.8,
    *,
    min_mb: int = 100,
    max_mb: Optional[int] = None,
    available: bool = False,
) -> int:
    """Returns a memory limit for the warper, as GDAL interprets it:
    megabytes if the value is below 10000, bytes otherwise.

    Parameters
    ----------
    proportion : float, optional
        The proportion of memory to use (between 0 and 1). Default: 0.8
    min_mb : int, optional
        The minimum number of megabytes to be returned. Default: 100
    max_mb : Optional[int], optional
        The maximum number of megabytes to be returned. Default: None
    available : bool, optional
        If True, consider available memory instead of total memory. Default: False

    Returns
    -------
    int
        The memory limit in megabytes (< 10000) or bytes (>= 10000).

    Raises
    ------
    TypeError
        If inputs are not of the correct type.
    ValueError
        If proportion is not between 0 and 1, or if min_mb/max_mb are invalid.
    """
    if not isinstance(proportion, (int, float)):
        raise TypeError("proportion must be a number")
    if not isinstance(min_mb, int):
        raise TypeError("min_mb must be an integer")
    if max_mb is not None and not isinstance(max_mb, int):
        raise TypeError("max_mb must be an integer or None")

    if proportion <= 0.0 or proportion > 1.0:
        raise ValueError("proportion must be > 0 and <= 1")
    if min_mb <= 0:
        raise ValueError("min_mb must be > 0")
    if max_mb is not None and max_mb < min_mb:
        raise ValueError("max_mb cannot be less than min_mb")

    vm = psutil.virtual_memory()
    memory = vm.available if available else vm.total
    dyn_limit = int(np.rint((memory * proportion) / (1024 ** 2)))

    dyn_limit = max(dyn_limit, min_mb)
    if max_mb is not None:
        dyn_limit = min(dyn_limit, max_mb)

    if dyn_limit >= 10000:
        dyn_limit = dyn_limit * (1024 ** 2)

    return int(dyn_limit)


def _get_driver(driver_name: str) -> Optional[gdal.Driver]:
    """Returns the GDAL driver for a short name, or None if it is not available."""
    _register_drivers()

    if not isinstance(driver_name, str) or driver_name == "":
        return None

    return gdal.GetDriverByName(driver_name)


def _release_dataset(dataset: Optional[gdal.Dataset]) -> None:
    """Flushes pending writes of a dataset before its last reference is dropped.

    The dataset itself is closed by the bindings once nothing refers to it.
    Datasets referenced by virtual datasets stay alive until those are gone.
    """
    if dataset is None:
        return

    dataset.FlushCache()
