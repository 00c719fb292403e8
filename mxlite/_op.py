# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Native operator registry and keyword-argument call records."""

from __future__ import annotations

import ctypes
import logging
from threading import RLock
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from ._backend import (
    NDArrayHandle,
    OpHandle,
    c_handle_array,
    c_str,
    c_str_array,
    call,
    mx_uint,
    py_str,
    read_str_array,
)
from .context import Context

logger = logging.getLogger(__name__)

_OP_LOCK = RLock()
_OP_HANDLES: Dict[str, OpHandle] = {}
_OP_INFOS: Dict[str, "OpInfo"] = {}
_OP_NAMES: Optional[Tuple[str, ...]] = None


class OpInfo(NamedTuple):
    """Metadata the engine publishes for a registered operator."""

    name: str
    description: str
    arg_names: Tuple[str, ...]
    arg_types: Tuple[str, ...]
    arg_descriptions: Tuple[str, ...]
    key_var_num_args: str

    @property
    def input_names(self) -> Tuple[str, ...]:
        """Arguments that take arrays or symbols rather than parameters."""
        return tuple(
            name
            for name, kind in zip(self.arg_names, self.arg_types)
            if kind.startswith("NDArray") or kind.startswith("Symbol")
        )

    def docstring(self) -> str:
        lines = [self.description.strip(), "", "Parameters", "----------"]
        for name, kind, desc in zip(
            self.arg_names, self.arg_types, self.arg_descriptions
        ):
            lines.append(f"{name} : {kind}")
            if desc:
                lines.append(f"    {desc}")
        return "\n".join(lines)


def list_ops() -> Tuple[str, ...]:
    """Return the names of every operator registered in the engine."""

    global _OP_NAMES

    with _OP_LOCK:
        if _OP_NAMES is None:
            size = mx_uint()
            names = ctypes.POINTER(ctypes.c_char_p)()
            call("MXListAllOpNames", ctypes.byref(size), ctypes.byref(names))
            _OP_NAMES = tuple(sorted(read_str_array(size, names)))
            logger.debug("engine exposes %d operators", len(_OP_NAMES))
        return _OP_NAMES


def has_op(name: str) -> bool:
    return name in list_ops()


def get_op_handle(name: str) -> OpHandle:
    """Resolve ``name`` to the engine's operator handle and cache it."""

    with _OP_LOCK:
        cached = _OP_HANDLES.get(name)
        if cached is not None:
            return cached
        if not has_op(name):
            raise AttributeError(f"Operator '{name}' is not registered in the engine")

        handle = OpHandle()
        call("NNGetOpHandle", c_str(name), ctypes.byref(handle))
        _OP_HANDLES[name] = handle
        return handle


def get_op_info(name: str) -> OpInfo:
    with _OP_LOCK:
        cached = _OP_INFOS.get(name)
        if cached is not None:
            return cached

        real_name = ctypes.c_char_p()
        desc = ctypes.c_char_p()
        num_args = mx_uint()
        arg_names = ctypes.POINTER(ctypes.c_char_p)()
        arg_types = ctypes.POINTER(ctypes.c_char_p)()
        arg_descs = ctypes.POINTER(ctypes.c_char_p)()
        key_var_num_args = ctypes.c_char_p()
        ret_type = ctypes.c_char_p()

        call(
            "MXSymbolGetAtomicSymbolInfo",
            get_op_handle(name),
            ctypes.byref(real_name),
            ctypes.byref(desc),
            ctypes.byref(num_args),
            ctypes.byref(arg_names),
            ctypes.byref(arg_types),
            ctypes.byref(arg_descs),
            ctypes.byref(key_var_num_args),
            ctypes.byref(ret_type),
        )
        info = OpInfo(
            name=name,
            description=py_str(desc.value),
            arg_names=tuple(read_str_array(num_args, arg_names)),
            # Types read like "NDArray-or-Symbol" or "int, required".
            arg_types=tuple(
                t.split(",")[0].strip() for t in read_str_array(num_args, arg_types)
            ),
            arg_descriptions=tuple(read_str_array(num_args, arg_descs)),
            key_var_num_args=py_str(key_var_num_args.value),
        )
        _OP_INFOS[name] = info
        return info


def _encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, Context):
        return str(value)
    if isinstance(value, np.dtype) or (
        isinstance(value, type) and issubclass(value, np.generic)
    ):
        return np.dtype(value).name
    if isinstance(value, (list, tuple)):
        return str(tuple(_plain_scalar(v) for v in value))
    if isinstance(value, np.generic):
        return str(value.item())
    return str(value)


def _plain_scalar(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (list, tuple)):
        return tuple(_plain_scalar(v) for v in value)
    return value


def encode_params(params: Mapping[str, Any]) -> Tuple[List[str], List[str]]:
    """Render keyword arguments as the parallel key/value string arrays of a call record.

    ``None`` values are left out so the engine falls back to its defaults.

    Examples:
        >>> encode_params({"shape": (2, 3), "reverse": True, "axis": None})
        (['shape', 'reverse'], ['(2, 3)', 'True'])
    """

    keys: List[str] = []
    vals: List[str] = []
    for key, value in params.items():
        if value is None:
            continue
        keys.append(str(key))
        vals.append(_encode_value(value))
    return keys, vals


def imperative_invoke(
    op_name: str,
    inputs: Sequence[Any],
    out: Optional[Sequence[Any]] = None,
    params: Optional[Mapping[str, Any]] = None,
) -> List[NDArrayHandle]:
    """Run ``op_name`` eagerly on ``inputs`` and return the output handles.

    When ``out`` is given the engine writes into those arrays and their
    handles are returned unchanged.
    """

    keys, vals = encode_params(params or {})

    if out is not None:
        out_handles = c_handle_array(out)
        output_ptr = ctypes.cast(out_handles, ctypes.POINTER(NDArrayHandle))
        num_output = ctypes.c_int(len(out))
    else:
        output_ptr = ctypes.POINTER(NDArrayHandle)()
        num_output = ctypes.c_int(0)

    call(
        "MXImperativeInvoke",
        get_op_handle(op_name),
        ctypes.c_int(len(inputs)),
        c_handle_array(inputs),
        ctypes.byref(num_output),
        ctypes.byref(output_ptr),
        ctypes.c_int(len(keys)),
        c_str_array(keys),
        c_str_array(vals),
    )

    if out is not None:
        return [o.handle for o in out]
    return [NDArrayHandle(output_ptr[i]) for i in range(num_output.value)]


__all__ = [
    "OpInfo",
    "list_ops",
    "has_op",
    "get_op_handle",
    "get_op_info",
    "encode_params",
    "imperative_invoke",
]
