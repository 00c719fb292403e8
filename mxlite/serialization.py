# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Top-level ``save``/``load`` for arrays and symbols."""

from __future__ import annotations

import os
from typing import Any, Dict, List, Union

from . import ndarray as _nd
from . import symbol as _sym


def save(fname: Union[str, os.PathLike], obj: Any) -> None:
    """Write ``obj`` to ``fname``.

    A :class:`Symbol` is stored as graph JSON. An :class:`NDArray`, a list of
    them or a ``str -> NDArray`` dict uses the engine's binary array format.
    """

    if isinstance(obj, _sym.Symbol):
        obj.save(fname)
    elif isinstance(obj, (_nd.NDArray, list, tuple, dict)):
        _nd.save(fname, obj)
    else:
        raise TypeError(f"Cannot save object of type {type(obj).__name__}")


def load(
    fname: Union[str, os.PathLike], kind: str = "ndarray"
) -> Union[List[_nd.NDArray], Dict[str, _nd.NDArray], _sym.Symbol]:
    """Read back what :func:`save` wrote; ``kind`` selects ``"ndarray"`` or ``"symbol"``."""

    if kind == "ndarray":
        return _nd.load(fname)
    if kind == "symbol":
        return _sym.load(fname)
    raise ValueError(f"kind must be 'ndarray' or 'symbol', got {kind!r}")


__all__ = ["save", "load"]
