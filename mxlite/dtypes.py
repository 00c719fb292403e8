# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Mapping between the engine's element type flags and NumPy dtypes."""

from __future__ import annotations

from typing import Any, Dict

import numpy as np

# Type flags as numbered by the native engine.
DTYPE_NP_TO_FLAG: Dict[np.dtype, int] = {
    np.dtype(np.float32): 0,
    np.dtype(np.float64): 1,
    np.dtype(np.float16): 2,
    np.dtype(np.uint8): 3,
    np.dtype(np.int32): 4,
    np.dtype(np.int8): 5,
    np.dtype(np.int64): 6,
}
DTYPE_FLAG_TO_NP: Dict[int, np.dtype] = {v: k for k, v in DTYPE_NP_TO_FLAG.items()}

SUPPORTED_DTYPES = tuple(dt.name for dt in DTYPE_NP_TO_FLAG)

_DEFAULT_DTYPE = np.dtype(np.float32)


def normalize_dtype(dtype: Any) -> np.dtype:
    """Convert a dtype name, NumPy dtype or Python type to a supported ``np.dtype``."""

    if dtype is None:
        return _DEFAULT_DTYPE
    if dtype is float:
        return _DEFAULT_DTYPE
    if dtype is int:
        return np.dtype(np.int64)
    if dtype is bool:
        return np.dtype(np.uint8)
    try:
        resolved = np.dtype(dtype)
    except TypeError as exc:
        raise TypeError(f"Unsupported dtype {dtype!r}") from exc
    if resolved not in DTYPE_NP_TO_FLAG:
        raise TypeError(
            f"Unsupported dtype '{resolved.name}'; expected one of {', '.join(SUPPORTED_DTYPES)}"
        )
    return resolved


def dtype_to_flag(dtype: Any) -> int:
    return DTYPE_NP_TO_FLAG[normalize_dtype(dtype)]


def flag_to_dtype(flag: int) -> np.dtype:
    try:
        return DTYPE_FLAG_TO_NP[flag]
    except KeyError:
        raise TypeError(f"Unknown native type flag {flag}") from None


def infer_scalar_dtype(value: Any) -> np.dtype:
    """Pick the element type for an array filled with ``value``."""

    if isinstance(value, np.generic):
        return normalize_dtype(value.dtype)
    if isinstance(value, bool):
        return np.dtype(np.uint8)
    if isinstance(value, int):
        return np.dtype(np.int64)
    return _DEFAULT_DTYPE


def set_default_dtype(dtype: Any) -> None:
    """Set the element type used when none is given at array creation."""

    global _DEFAULT_DTYPE
    try:
        resolved = np.dtype(dtype)
    except TypeError as exc:
        raise ValueError(f"Unsupported dtype '{dtype}'") from exc
    if resolved not in DTYPE_NP_TO_FLAG:
        raise ValueError(f"Unsupported dtype '{dtype}'")
    _DEFAULT_DTYPE = resolved


def get_default_dtype() -> np.dtype:
    """Get the current default element type."""

    return _DEFAULT_DTYPE


__all__ = [
    "DTYPE_NP_TO_FLAG",
    "DTYPE_FLAG_TO_NP",
    "SUPPORTED_DTYPES",
    "normalize_dtype",
    "dtype_to_flag",
    "flag_to_dtype",
    "infer_scalar_dtype",
    "set_default_dtype",
    "get_default_dtype",
]
