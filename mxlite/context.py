# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Device contexts identifying where an array's buffer lives."""

from __future__ import annotations

import threading
from typing import Dict, List, Union

_DEVICE_TYPE_TO_ID: Dict[str, int] = {"cpu": 1, "gpu": 2, "cpu_pinned": 3}
_DEVICE_ID_TO_TYPE: Dict[int, str] = {v: k for k, v in _DEVICE_TYPE_TO_ID.items()}


class _ContextStack(threading.local):
    def __init__(self) -> None:
        self.stack: List["Context"] = []


_STACK = _ContextStack()


class Context:
    """An immutable ``(device_type, device_id)`` pair.

    Contexts compare equal when both fields match, which is what decides
    whether a copy between arrays is a transfer or a plain buffer copy. A
    context also works as a ``with`` block that makes it the default device
    for newly created arrays on the current thread.

    Examples:
        >>> ctx = Context("gpu", 1)
        >>> ctx
        gpu(1)
        >>> with cpu(0):
        ...     a = mxlite.nd.zeros((2, 3))
    """

    __slots__ = ("_device_typeid", "_device_id")

    def __init__(self, device_type: Union[str, int, "Context"], device_id: int = 0):
        if isinstance(device_type, Context):
            typeid, device_id = device_type.device_typeid, device_type.device_id
        elif isinstance(device_type, str):
            if device_type not in _DEVICE_TYPE_TO_ID:
                raise ValueError(f"Unknown device type '{device_type}'")
            typeid = _DEVICE_TYPE_TO_ID[device_type]
        elif isinstance(device_type, int) and device_type in _DEVICE_ID_TO_TYPE:
            typeid = device_type
        else:
            raise ValueError(f"Unknown device type {device_type!r}")

        if int(device_id) < 0:
            raise ValueError("device_id must be non-negative")

        object.__setattr__(self, "_device_typeid", typeid)
        object.__setattr__(self, "_device_id", int(device_id))

    def __setattr__(self, name, value):
        raise AttributeError("Context is immutable")

    @property
    def device_type(self) -> str:
        return _DEVICE_ID_TO_TYPE[self._device_typeid]

    @property
    def device_typeid(self) -> int:
        """Native device code: 1 for CPU, 2 for GPU, 3 for pinned CPU memory."""
        return self._device_typeid

    @property
    def device_id(self) -> int:
        return self._device_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Context):
            return NotImplemented
        return (
            self._device_typeid == other._device_typeid
            and self._device_id == other._device_id
        )

    def __hash__(self) -> int:
        return hash((self._device_typeid, self._device_id))

    def __repr__(self) -> str:
        return f"{self.device_type}({self._device_id})"

    __str__ = __repr__

    def __enter__(self) -> "Context":
        _STACK.stack.append(self)
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        _STACK.stack.pop()


def cpu(device_id: int = 0) -> Context:
    """Return a CPU context. ``device_id`` is kept for symmetry with :func:`gpu`."""
    return Context("cpu", device_id)


def gpu(device_id: int = 0) -> Context:
    """Return a GPU context for the device with index ``device_id``."""
    return Context("gpu", device_id)


def cpu_pinned(device_id: int = 0) -> Context:
    return Context("cpu_pinned", device_id)


def current_context() -> Context:
    """Return the innermost active context, defaulting to ``cpu(0)``."""

    if _STACK.stack:
        return _STACK.stack[-1]
    return cpu(0)


__all__ = ["Context", "cpu", "gpu", "cpu_pinned", "current_context"]
