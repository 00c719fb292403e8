# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Locate, load and call into the MXNet native library."""

from __future__ import annotations

import ctypes
import ctypes.util
import importlib.util
import logging
import os
from pathlib import Path
from threading import RLock
from typing import Any, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

# Environment variables consulted, in order, before any installed engine.
LIBRARY_PATH_ENV_VARS: Sequence[str] = ("MXLITE_LIBRARY_PATH", "MXNET_LIBRARY_PATH")

_LIB_NAMES: Sequence[str] = ("libmxnet.so", "libmxnet.dylib", "libmxnet.dll")

mx_uint = ctypes.c_uint
mx_float = ctypes.c_float
NDArrayHandle = ctypes.c_void_p
SymbolHandle = ctypes.c_void_p
ExecutorHandle = ctypes.c_void_p
OpHandle = ctypes.c_void_p

_LIB_LOCK = RLock()
_LIB: Optional[ctypes.CDLL] = None


class MXError(RuntimeError):
    """Error reported by the native engine through a non-zero status code."""


class MXNotFoundError(ImportError):
    """Raised when no MXNet native library can be located."""


def _candidates_from(path: str) -> List[Path]:
    candidate = Path(path).expanduser()
    if candidate.is_dir():
        return [candidate / name for name in _LIB_NAMES]
    return [candidate]


def find_lib_path() -> List[str]:
    """Return existing native library paths in lookup order."""

    candidates: List[Path] = []
    for var in LIBRARY_PATH_ENV_VARS:
        value = os.environ.get(var)
        if value:
            candidates.extend(_candidates_from(value))

    # Resolve the installed engine distribution without importing its Python package.
    spec = importlib.util.find_spec("mxnet")
    if spec is not None and spec.submodule_search_locations:
        for location in spec.submodule_search_locations:
            candidates.extend(Path(location) / name for name in _LIB_NAMES)

    found: List[str] = []
    for candidate in candidates:
        if candidate.is_file() and str(candidate) not in found:
            found.append(str(candidate))

    if not found:
        system = ctypes.util.find_library("mxnet")
        if system:
            found.append(system)
    return found


def _load_lib() -> ctypes.CDLL:
    paths = find_lib_path()
    if not paths:
        raise MXNotFoundError(
            "Cannot find the MXNet native library. Install the engine with "
            "`pip install mxlite[engine]` or point MXLITE_LIBRARY_PATH at libmxnet."
        )
    lib = ctypes.CDLL(paths[0], ctypes.RTLD_LOCAL)
    lib.MXGetLastError.restype = ctypes.c_char_p
    logger.debug("loaded MXNet native library from %s", paths[0])
    return lib


def get_lib() -> ctypes.CDLL:
    """Load the native library on first use and return the cached handle."""

    global _LIB

    with _LIB_LOCK:
        if _LIB is None:
            _LIB = _load_lib()
        return _LIB


def is_available() -> bool:
    """Return ``True`` when the native library can be loaded."""

    try:
        get_lib()
    except (MXNotFoundError, OSError):
        return False
    return True


def check_call(ret: int) -> None:
    """Raise :class:`MXError` with the engine's message when ``ret`` is non-zero."""

    if ret != 0:
        raise MXError(py_str(get_lib().MXGetLastError()))


def call(name: str, *args: Any) -> None:
    """Invoke the C API function ``name`` and check its status."""

    check_call(getattr(get_lib(), name)(*args))


# ctypes conversion helpers


def c_str(string: str) -> bytes:
    return string.encode("utf-8")


def py_str(value: Optional[bytes]) -> str:
    if value is None:
        return ""
    return value.decode("utf-8")


def c_array(ctype: Any, values: Iterable[Any]) -> ctypes.Array:
    values = list(values)
    return (ctype * len(values))(*values)


def c_str_array(strings: Iterable[str]) -> ctypes.Array:
    return c_array(ctypes.c_char_p, [c_str(s) for s in strings])


def c_handle_array(objs: Iterable[Any]) -> ctypes.Array:
    """Build a ``void*`` array from objects exposing a ``handle`` attribute."""

    return c_array(ctypes.c_void_p, [obj.handle for obj in objs])


def read_str_array(size: Any, array: Any) -> List[str]:
    return [py_str(array[i]) for i in range(size.value)]


def lib_version() -> int:
    """Return the engine version as an integer (e.g. ``10901`` for 1.9.1)."""

    out = ctypes.c_int()
    call("MXGetVersion", ctypes.byref(out))
    return out.value


def notify_shutdown() -> None:
    """Tell the engine the process is shutting down."""

    call("MXNotifyShutdown")


__all__ = [
    "MXError",
    "MXNotFoundError",
    "LIBRARY_PATH_ENV_VARS",
    "mx_uint",
    "mx_float",
    "NDArrayHandle",
    "SymbolHandle",
    "ExecutorHandle",
    "OpHandle",
    "find_lib_path",
    "get_lib",
    "is_available",
    "check_call",
    "call",
    "c_str",
    "py_str",
    "c_array",
    "c_str_array",
    "c_handle_array",
    "read_str_array",
    "lib_version",
    "notify_shutdown",
]
