# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Random number generation backed by the engine's samplers."""

from __future__ import annotations

import ctypes
from typing import Any, Optional

from ._backend import call
from .context import Context, current_context
from .dtypes import normalize_dtype
from .ndarray import NDArray, ShapeLike, _as_shape, _invoke


def _sample(
    op_name: str,
    shape: Optional[ShapeLike],
    ctx: Optional[Context],
    dtype: Any,
    out: Optional[NDArray],
    **params: Any,
) -> NDArray:
    if out is not None:
        if shape is not None and _as_shape(shape) != out.shape:
            raise ValueError(
                f"shape {_as_shape(shape)} does not match out.shape {out.shape}"
            )
        return _invoke(op_name, [], out=out, shape=out.shape, dtype=out.dtype, **params)

    if shape is None:
        shape = (1,)
    return _invoke(
        op_name,
        [],
        shape=_as_shape(shape),
        ctx=ctx or current_context(),
        dtype=normalize_dtype(dtype),
        **params,
    )


def uniform(
    low: float = 0.0,
    high: float = 1.0,
    shape: Optional[ShapeLike] = None,
    ctx: Optional[Context] = None,
    dtype: Any = None,
    out: Optional[NDArray] = None,
) -> NDArray:
    """Draw samples from ``U[low, high)``.

    When ``out`` is given it is filled in place and returned; its shape and
    dtype define the sample.
    """
    return _sample(
        "_random_uniform", shape, ctx, dtype, out, low=float(low), high=float(high)
    )


def normal(
    loc: float = 0.0,
    scale: float = 1.0,
    shape: Optional[ShapeLike] = None,
    ctx: Optional[Context] = None,
    dtype: Any = None,
    out: Optional[NDArray] = None,
) -> NDArray:
    """Draw samples from a normal distribution with mean ``loc`` and std ``scale``."""
    return _sample(
        "_random_normal", shape, ctx, dtype, out, loc=float(loc), scale=float(scale)
    )


def seed(seed_state: int) -> None:
    """Seed every random number generator in the engine."""

    if not isinstance(seed_state, int):
        raise ValueError("seed_state must be an int")
    call("MXRandomSeed", ctypes.c_int(seed_state))


__all__ = ["uniform", "normal", "seed"]
