# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Imperative automatic differentiation.

Operations run inside :func:`record` are taped by the engine. Arrays marked
with :func:`mark_variables` (or :meth:`NDArray.attach_grad`) receive their
gradients when :func:`backward` is called on a result.
"""

from __future__ import annotations

import contextlib
import ctypes
from typing import Iterator, Optional, Sequence, Union

from ._backend import NDArrayHandle, c_array, c_handle_array, call, mx_uint
from .executor import GRAD_REQ_MAP
from .ndarray import NDArray


def set_recording(is_recording: bool) -> bool:
    """Turn taping on or off and return the previous state."""
    prev = ctypes.c_int()
    call("MXAutogradSetIsRecording", ctypes.c_int(int(is_recording)), ctypes.byref(prev))
    return bool(prev.value)


def set_training(train_mode: bool) -> bool:
    """Switch between train and predict mode and return the previous mode."""
    prev = ctypes.c_int()
    call("MXAutogradSetIsTraining", ctypes.c_int(int(train_mode)), ctypes.byref(prev))
    return bool(prev.value)


def is_recording() -> bool:
    curr = ctypes.c_bool()
    call("MXAutogradIsRecording", ctypes.byref(curr))
    return curr.value


def is_training() -> bool:
    curr = ctypes.c_bool()
    call("MXAutogradIsTraining", ctypes.byref(curr))
    return curr.value


@contextlib.contextmanager
def _scope(recording: bool, train_mode: bool) -> Iterator[None]:
    prev_recording = set_recording(recording)
    prev_training = set_training(train_mode)
    try:
        yield
    finally:
        set_training(prev_training)
        set_recording(prev_recording)


def record(train_mode: bool = True):
    """Tape the operations run in the ``with`` block.

    Examples:
        >>> x = mx.nd.array([1.0, 2.0]); x.attach_grad()
        >>> with mx.autograd.record():
        ...     y = x * x
        >>> y.backward(); x.grad.asnumpy()
        array([2., 4.], dtype=float32)
    """
    return _scope(True, train_mode)


def pause(train_mode: bool = False):
    """Suspend taping inside a :func:`record` block."""
    return _scope(False, train_mode)


def mark_variables(
    variables: Union[NDArray, Sequence[NDArray]],
    gradients: Union[NDArray, Sequence[NDArray]],
    grad_reqs: Union[str, Sequence[str]] = "write",
) -> None:
    """Attach ``gradients`` as the gradient buffers of ``variables``."""

    if isinstance(variables, NDArray):
        variables = [variables]
    if isinstance(gradients, NDArray):
        gradients = [gradients]
    variables = list(variables)
    gradients = list(gradients)
    if len(variables) != len(gradients):
        raise ValueError("variables and gradients must have the same length")

    if isinstance(grad_reqs, str):
        grad_reqs = [grad_reqs] * len(variables)
    else:
        grad_reqs = list(grad_reqs)
        if len(grad_reqs) != len(variables):
            raise ValueError("grad_reqs must have one entry per variable")
    for req in grad_reqs:
        if req not in GRAD_REQ_MAP:
            raise ValueError(f"Unknown grad_req '{req}'")

    call(
        "MXAutogradMarkVariables",
        mx_uint(len(variables)),
        c_handle_array(variables),
        c_array(mx_uint, [GRAD_REQ_MAP[req] for req in grad_reqs]),
        c_handle_array(gradients),
    )


def backward(
    heads: Union[NDArray, Sequence[NDArray]],
    head_grads: Optional[Union[NDArray, Sequence[Optional[NDArray]]]] = None,
    retain_graph: bool = False,
) -> None:
    """Compute the gradients of ``heads`` with respect to the marked variables.

    ``head_grads`` defaults to ones for every head.
    """

    if isinstance(heads, NDArray):
        heads = [heads]
    heads = list(heads)

    if head_grads is None:
        ograd_handles = None
    else:
        if isinstance(head_grads, NDArray):
            head_grads = [head_grads]
        head_grads = list(head_grads)
        if len(head_grads) != len(heads):
            raise ValueError("head_grads must have one entry per head")
        ograd_handles = c_array(
            NDArrayHandle, [g.handle if g is not None else None for g in head_grads]
        )

    call(
        "MXAutogradBackward",
        mx_uint(len(heads)),
        c_handle_array(heads),
        ograd_handles,
        ctypes.c_int(int(retain_graph)),
    )


__all__ = [
    "record",
    "pause",
    "is_recording",
    "is_training",
    "set_recording",
    "set_training",
    "mark_variables",
    "backward",
]
