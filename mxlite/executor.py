# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Executors: symbols bound to concrete argument arrays."""

from __future__ import annotations

import ctypes
import logging
import weakref
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ._backend import (
    ExecutorHandle,
    NDArrayHandle,
    c_array,
    c_handle_array,
    call,
    mx_uint,
    py_str,
)
from .context import Context
from .ndarray import NDArray, array

logger = logging.getLogger(__name__)

GRAD_REQ_MAP: Dict[str, int] = {"null": 0, "write": 1, "add": 3}


def _free_executor(handle: ExecutorHandle) -> None:
    call("MXExecutorFree", handle)


def _arrays_by_name(
    arrays: Union[Sequence[Any], Mapping[str, Any], None],
    names: Sequence[str],
    kind: str,
    allow_missing: bool,
) -> List[Optional[NDArray]]:
    if arrays is None:
        if allow_missing:
            return [None] * len(names)
        raise ValueError(f"{kind} must be provided")

    if isinstance(arrays, Mapping):
        unknown = set(arrays) - set(names)
        if unknown:
            raise ValueError(f"Unknown {kind} names: {', '.join(sorted(unknown))}")
        result = []
        for name in names:
            if name not in arrays and not allow_missing:
                raise ValueError(f"Missing {kind} entry for '{name}'")
            result.append(arrays.get(name))
    else:
        result = list(arrays)
        if len(result) != len(names):
            raise ValueError(f"Length of {kind} does not match the number of arguments")

    for name, arr in zip(names, result):
        if arr is not None and not isinstance(arr, NDArray):
            raise TypeError(f"{kind} entry '{name}' must be an NDArray")
    return result


class Executor:
    """
    A computation graph bound to argument arrays on one context.

    Created by :meth:`Symbol.bind`. ``forward`` runs the graph and
    ``backward`` writes gradients into the arrays passed as ``args_grad``.
    """

    def __init__(
        self,
        symbol: Any,
        ctx: Context,
        args: Union[Sequence[NDArray], Mapping[str, NDArray]],
        args_grad: Union[Sequence[NDArray], Mapping[str, NDArray], None] = None,
        grad_req: Union[str, Sequence[str], Mapping[str, str]] = "write",
        aux_states: Union[Sequence[NDArray], Mapping[str, NDArray], None] = None,
    ):
        if not isinstance(ctx, Context):
            raise TypeError("ctx must be a Context")

        self._symbol = symbol
        self._ctx = ctx
        arg_names = symbol.list_arguments()
        aux_names = symbol.list_auxiliary_states()

        self.arg_arrays: List[NDArray] = _arrays_by_name(args, arg_names, "args", False)
        self.grad_arrays = _arrays_by_name(args_grad, arg_names, "args_grad", True)
        self.aux_arrays: List[NDArray] = _arrays_by_name(
            aux_states if aux_states is not None else [], aux_names, "aux_states", False
        )

        if isinstance(grad_req, str):
            reqs = [grad_req] * len(arg_names)
        elif isinstance(grad_req, Mapping):
            reqs = [grad_req.get(name, "null") for name in arg_names]
        else:
            reqs = list(grad_req)
            if len(reqs) != len(arg_names):
                raise ValueError("Length of grad_req does not match the number of arguments")
        for req in reqs:
            if req not in GRAD_REQ_MAP:
                raise ValueError(f"Unknown grad_req '{req}'")
        req_codes = [
            GRAD_REQ_MAP[req] if grad is not None else GRAD_REQ_MAP["null"]
            for req, grad in zip(reqs, self.grad_arrays)
        ]

        handle = ExecutorHandle()
        call(
            "MXExecutorBind",
            symbol.handle,
            ctypes.c_int(ctx.device_typeid),
            ctypes.c_int(ctx.device_id),
            mx_uint(len(self.arg_arrays)),
            c_handle_array(self.arg_arrays),
            c_array(ctypes.c_void_p, [g.handle if g is not None else None for g in self.grad_arrays]),
            c_array(mx_uint, req_codes),
            mx_uint(len(self.aux_arrays)),
            c_handle_array(self.aux_arrays),
            ctypes.byref(handle),
        )
        self.handle = handle
        self._finalizer = weakref.finalize(self, _free_executor, handle)
        self._finalizer.atexit = False
        logger.debug(
            "bound executor on %s with %d arguments and %d auxiliary states",
            ctx,
            len(self.arg_arrays),
            len(self.aux_arrays),
        )

        self.arg_dict: Dict[str, NDArray] = dict(zip(arg_names, self.arg_arrays))
        self.grad_dict: Dict[str, NDArray] = {
            name: grad for name, grad in zip(arg_names, self.grad_arrays) if grad is not None
        }
        self.aux_dict: Dict[str, NDArray] = dict(zip(aux_names, self.aux_arrays))
        self.outputs: List[NDArray] = self._get_outputs()

    def _get_outputs(self) -> List[NDArray]:
        size = mx_uint()
        handles = ctypes.POINTER(NDArrayHandle)()
        call("MXExecutorOutputs", self.handle, ctypes.byref(size), ctypes.byref(handles))
        return [NDArray(NDArrayHandle(handles[i])) for i in range(size.value)]

    @property
    def output_dict(self) -> Dict[str, NDArray]:
        return dict(zip(self._symbol.list_outputs(), self.outputs))

    def forward(self, is_train: bool = False, **kwargs: Any) -> List[NDArray]:
        """Run the graph, optionally copying new values into named arguments first.

        Examples:
            >>> exe = net.bind(mx.cpu(), {"x": mx.nd.zeros((2, 3))})
            >>> exe.forward(x=np.ones((2, 3)))[0].asnumpy()
        """
        for name, value in kwargs.items():
            if name not in self.arg_dict:
                raise ValueError(f"Unknown argument '{name}'")
            target = self.arg_dict[name]
            if isinstance(value, NDArray):
                value.copyto(target)
            else:
                target[:] = array(value, dtype=target.dtype)

        call("MXExecutorForward", self.handle, ctypes.c_int(int(is_train)))
        return self.outputs

    def backward(self, out_grads: Union[NDArray, Sequence[NDArray], None] = None) -> None:
        """Back-propagate ``out_grads`` (implicit for loss outputs) into ``args_grad``."""
        if out_grads is None:
            grads: List[NDArray] = []
        elif isinstance(out_grads, NDArray):
            grads = [out_grads]
        else:
            grads = list(out_grads)
        for grad in grads:
            if not isinstance(grad, NDArray):
                raise TypeError("out_grads must contain NDArrays")

        call("MXExecutorBackward", self.handle, mx_uint(len(grads)), c_handle_array(grads))

    def debug_str(self) -> str:
        out = ctypes.c_char_p()
        call("MXExecutorPrint", self.handle, ctypes.byref(out))
        return py_str(out.value)


__all__ = ["Executor", "GRAD_REQ_MAP"]
