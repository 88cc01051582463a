"""### Generic utility functions. ###

Argument checking helpers used by every public operation before anything is
handed to the raster engine.
"""

# Standard Library
import numbers
import os
from typing import Any, Union, List, Tuple, Optional



def _get_variable_as_list(
    variable_or_list: Union[List, Tuple, Any],
) -> List[Any]:
    """Ensures that a variable is a list. Tuples are converted, None becomes an
    empty list, and any other value is wrapped.

    Parameters
    ----------
    variable_or_list : Union[List, Tuple, Any]
        The variable to check.

    Returns
    -------
    List[Any]
        The variable as a list.
    """
    if variable_or_list is None:
        return []

    if isinstance(variable_or_list, (list, tuple)):
        return list(variable_or_list)

    return [variable_or_list]


def _normalise_type(t):
    """Convert a type specification to a standard format.

    Parameters
    ----------
    t : Any
        The type specification to normalise. None means NoneType, a list or
        tuple of types means "a sequence of these types".

    Returns
    -------
    Union[type, Tuple[type]]
        The normalised type specification.

    Raises
    ------
    TypeError
        If the type specification is invalid.
    """
    if t is None:
        return type(None)
    if isinstance(t, type):
        return t
    if isinstance(t, (list, tuple)):
        if not all(isinstance(st, type) for st in t):
            raise TypeError(f"Invalid nested type specification: {t}")
        return tuple(t)
    raise TypeError(f"Invalid type specification: {t}")


def _type_check(
    variable: Any,
    types: Union[List[Union[type, List[type], None]], Tuple[Union[type, List[type], None], ...]],
    name: str = "",
    *,
    throw_error: bool = True,
) -> bool:
    """Type check function that supports nested types and collections.

    Parameters
    ----------
    variable : Any
        The variable to check.
    types : Union[List[Union[type, List[type], None]], Tuple[Union[type, List[type], None], ...]]
        The type or types to check against.
    name : str, optional
        The name of the variable to check, used in the error message.
    throw_error : bool, optional
        Whether to throw an error if the type check fails. The flat call
        surface passes False and reports INVALID_PARAMS instead.

    Returns
    -------
    bool
        True if the variable matches any of the types, False otherwise.

    Raises
    ------
    TypeError
        If the variable does not match and throw_error is True.

    Examples
    --------
    >>> _type_check("hello", [str])  # True
    >>> _type_check([1, 2, 3], [[int]])  # True
    >>> _type_check([1, "a"], [[int]])  # False
    >>> _type_check(None, [str, None])  # True
    """
    if not isinstance(name, str):
        raise TypeError("name must be a string")
    if not isinstance(types, (list, tuple)):
        raise TypeError("types must be a list or tuple")

    valid_types = [_normalise_type(t) for t in types]

    for valid_type in valid_types:
        if isinstance(valid_type, tuple):
            if isinstance(variable, (list, tuple)):
                if not variable or all(isinstance(item, valid_type) for item in variable):
                    return True
        elif isinstance(variable, valid_type):
            # bool is an int subclass, but never a valid size or offset.
            if isinstance(variable, bool) and valid_type in (int, float):
                continue
            return True

    if throw_error:
        actual_type = type(variable).__name__
        if isinstance(variable, (list, tuple)):
            actual_type = f"[{type(variable[0]).__name__}]" if variable else "[]"

        expected_types = []
        for t in valid_types:
            if isinstance(t, tuple):
                expected_types.append(f"[{','.join(st.__name__ for st in t)}]")
            else:
                expected_types.append(t.__name__)

        raise TypeError(
            f"Type mismatch for '{name}': Expected {' or '.join(expected_types)}, got {actual_type}"
        )

    return False


def _get_path_as_str(path: Any) -> Optional[str]:
    """Converts a str or os.PathLike to a non-empty string path.

    Parameters
    ----------
    path : Any
        The candidate path.

    Returns
    -------
    Optional[str]
        The path as a string, or None if it is not a usable path.
    """
    if not _type_check(path, [str, os.PathLike], "path", throw_error=False):
        return None

    path_str = os.fspath(path)
    if not isinstance(path_str, str) or path_str == "":
        return None

    return path_str


def _check_is_valid_window(
    width: int,
    height: int,
    x_off: int,
    y_off: int,
    x_size: int,
    y_size: int,
) -> bool:
    """Checks that a pixel window lies within [0, width) x [0, height).

    Parameters
    ----------
    width : int
        Raster width in pixels.
    height : int
        Raster height in pixels.
    x_off : int
        Column of the upper-left pixel of the window.
    y_off : int
        Row of the upper-left pixel of the window.
    x_size : int
        Window width in pixels.
    y_size : int
        Window height in pixels.

    Returns
    -------
    bool
        True if the window is non-empty and fully inside the raster.
    """
    if x_size <= 0 or y_size <= 0:
        return False

    if x_off < 0 or y_off < 0:
        return False

    return x_off + x_size <= width and y_off + y_size <= height


_C_INT_MIN = -(2 ** 31)
_C_INT_MAX = 2 ** 31 - 1


def _check_is_c_int(value: Any) -> bool:
    """Checks that an integer fits the engine's 32-bit `int` arguments.

    Parameters
    ----------
    value : Any
        The candidate integer.

    Returns
    -------
    bool
        True if value is an integer (not a bool) within [-2**31, 2**31 - 1].
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        return False

    return _C_INT_MIN <= int(value) <= _C_INT_MAX


def _get_as_float(value: Any) -> Optional[float]:
    """Converts a number to a Python float.

    Parameters
    ----------
    value : Any
        The number to convert.

    Returns
    -------
    Optional[float]
        The float, or None if value is not a number or does not fit a double.
        NaN and infinities are returned as is.
    """
    if isinstance(value, bool):
        return None

    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return None
