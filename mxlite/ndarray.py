# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
NDArray handle over the engine's array type with NumPy interoperability.
"""

from __future__ import annotations

import contextlib
import ctypes
import os
import weakref
from numbers import Number
from threading import RLock
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from . import _op
from ._backend import (
    NDArrayHandle,
    c_array,
    c_handle_array,
    c_str,
    c_str_array,
    call,
    mx_uint,
    py_str,
)
from .context import Context, current_context
from .dtypes import dtype_to_flag, flag_to_dtype, infer_scalar_dtype, normalize_dtype

ShapeLike = Union[int, Sequence[int]]

_SCALAR_TYPES = (Number, np.generic)


def _free_handle(handle: NDArrayHandle) -> None:
    call("MXNDArrayFree", handle)


def _as_shape(shape: ShapeLike) -> Tuple[int, ...]:
    if isinstance(shape, (int, np.integer)):
        return (int(shape),)
    return tuple(int(s) for s in shape)


def _shape_args(shape: Tuple[Any, ...]) -> Tuple[int, ...]:
    """Accept both ``f(2, 3)`` and ``f((2, 3))`` call styles."""

    if len(shape) == 1 and isinstance(shape[0], (list, tuple)):
        return tuple(int(s) for s in shape[0])
    return tuple(int(s) for s in shape)


def _new_alloc_handle(
    shape: Tuple[int, ...], ctx: Context, delay_alloc: bool, dtype: Any
) -> NDArrayHandle:
    handle = NDArrayHandle()
    call(
        "MXNDArrayCreateEx",
        c_array(mx_uint, shape),
        mx_uint(len(shape)),
        ctypes.c_int(ctx.device_typeid),
        ctypes.c_int(ctx.device_id),
        ctypes.c_int(int(delay_alloc)),
        ctypes.c_int(dtype_to_flag(dtype)),
        ctypes.byref(handle),
    )
    return handle


def _invoke(
    op_name: str,
    inputs: Sequence["NDArray"],
    out: Optional[Union["NDArray", Sequence["NDArray"]]] = None,
    **params: Any,
) -> Union["NDArray", List["NDArray"]]:
    """Dispatch ``op_name`` to the engine and wrap the resulting handles."""

    if out is None:
        handles = _op.imperative_invoke(op_name, inputs, None, params)
        results = [NDArray(h) for h in handles]
        return results[0] if len(results) == 1 else results

    outs = list(out) if isinstance(out, (list, tuple)) else [out]
    for target in outs:
        if not target.writable:
            raise ValueError("Cannot write op output into a read-only NDArray")
    _op.imperative_invoke(op_name, inputs, outs, params)
    return out


class NDArray:
    """
    A handle to an n-dimensional array owned by the native engine.

    The Python object only holds the native pointer; data lives on the device
    described by :attr:`context`. The native buffer is released exactly once,
    when the last Python reference goes away.

    Arithmetic dispatches to the engine: array-array operands use the
    broadcasting operators and array-scalar operands the ``*_scalar`` ones.
    In-place operators (``+=`` and friends) write into the same handle.
    """

    # Make NumPy defer to NDArray's reflected operators.
    __array_priority__ = 1000.0
    __hash__ = object.__hash__

    def __init__(self, handle: NDArrayHandle, writable: bool = True):
        self.handle = handle
        self.writable = writable
        self._finalizer = weakref.finalize(self, _free_handle, handle)
        # The engine may already be torn down at interpreter exit.
        self._finalizer.atexit = False

    # Core properties
    @property
    def shape(self) -> Tuple[int, ...]:
        ndim = mx_uint()
        pdata = ctypes.POINTER(mx_uint)()
        call("MXNDArrayGetShape", self.handle, ctypes.byref(ndim), ctypes.byref(pdata))
        return tuple(pdata[: ndim.value])

    @property
    def dtype(self) -> np.dtype:
        flag = ctypes.c_int()
        call("MXNDArrayGetDType", self.handle, ctypes.byref(flag))
        return flag_to_dtype(flag.value)

    @property
    def context(self) -> Context:
        dev_type = ctypes.c_int()
        dev_id = ctypes.c_int()
        call(
            "MXNDArrayGetContext",
            self.handle,
            ctypes.byref(dev_type),
            ctypes.byref(dev_id),
        )
        return Context(dev_type.value, dev_id.value)

    @property
    def size(self) -> int:
        return int(np.prod(self.shape, dtype=np.int64))

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def T(self) -> "NDArray":
        """Transpose with the axes reversed."""
        return self.transpose()

    @property
    def grad(self) -> Optional["NDArray"]:
        """Gradient buffer attached with :meth:`attach_grad`, if any."""
        out = NDArrayHandle()
        call("MXNDArrayGetGrad", self.handle, ctypes.byref(out))
        if out.value is None:
            return None
        return NDArray(out)

    # Data movement
    def _sync_copyfrom(self, source: Any) -> None:
        src = np.asarray(source, dtype=self.dtype)
        if src.shape != self.shape:
            try:
                src = np.broadcast_to(src, self.shape)
            except ValueError:
                raise ValueError(
                    f"Shape mismatch: cannot assign array of shape {src.shape} "
                    f"to NDArray of shape {self.shape}"
                ) from None
        src = np.ascontiguousarray(src)
        call(
            "MXNDArraySyncCopyFromCPU",
            self.handle,
            src.ctypes.data_as(ctypes.c_void_p),
            ctypes.c_size_t(src.size),
        )

    def asnumpy(self) -> np.ndarray:
        """Copy the data into a new NumPy array, blocking until it is ready."""
        data = np.empty(self.shape, dtype=self.dtype)
        call(
            "MXNDArraySyncCopyToCPU",
            self.handle,
            data.ctypes.data_as(ctypes.c_void_p),
            ctypes.c_size_t(data.size),
        )
        return data

    def __array__(self, dtype: Optional[np.dtype] = None, copy: Optional[bool] = None) -> np.ndarray:
        array = self.asnumpy()
        if dtype is not None:
            return array.astype(dtype, copy=False)
        return array

    def asscalar(self) -> Any:
        """Return the single element of a size-1 array as a NumPy scalar."""
        if self.size != 1:
            raise ValueError("The current array is not a scalar")
        return self.asnumpy().reshape(-1)[0]

    def tolist(self) -> Any:
        return self.asnumpy().tolist()

    def wait_to_read(self) -> None:
        call("MXNDArrayWaitToRead", self.handle)

    def copyto(self, other: Union["NDArray", Context]) -> "NDArray":
        """Copy into ``other``: an existing array, or a new array on a context."""

        if isinstance(other, NDArray):
            if other.handle is self.handle:
                return other
            return _invoke("_copyto", [self], out=other)
        if isinstance(other, Context):
            target = NDArray(_new_alloc_handle(self.shape, other, True, self.dtype))
            return _invoke("_copyto", [self], out=target)
        raise TypeError(f"copyto does not support type {type(other).__name__}")

    def copy(self) -> "NDArray":
        """Return a deep copy on the same context."""
        return self.copyto(self.context)

    def __copy__(self) -> "NDArray":
        return self.copy()

    def __deepcopy__(self, memo: Dict[int, Any]) -> "NDArray":
        return self.copy()

    def as_in_context(self, context: Context) -> "NDArray":
        """Return ``self`` if already on ``context``, otherwise a copy there."""
        if self.context == context:
            return self
        return self.copyto(context)

    def astype(self, dtype: Any) -> "NDArray":
        return _invoke("Cast", [self], dtype=normalize_dtype(dtype))

    def fill_(self, value: Any) -> "NDArray":
        """Assign ``value`` to every element in place and return ``self``."""
        self[:] = value
        return self

    # Indexing
    def __len__(self) -> int:
        return self.shape[0]

    def __iter__(self) -> Iterator["NDArray"]:
        for i in range(len(self)):
            yield self[i]

    def __bool__(self) -> bool:
        size = self.size
        if size == 0:
            return False
        if size == 1:
            return bool(self.asscalar())
        raise ValueError(
            "The truth value of an NDArray with multiple elements is ambiguous."
        )

    def _slice(self, start: int, stop: int) -> "NDArray":
        handle = NDArrayHandle()
        call(
            "MXNDArraySlice",
            self.handle,
            mx_uint(start),
            mx_uint(stop),
            ctypes.byref(handle),
        )
        return NDArray(handle, writable=self.writable)

    def _at(self, idx: int) -> "NDArray":
        length = len(self)
        if idx < 0:
            idx += length
        if not 0 <= idx < length:
            raise IndexError(f"index {idx} is out of bounds for axis 0 with size {length}")
        handle = NDArrayHandle()
        call("MXNDArrayAt", self.handle, mx_uint(idx), ctypes.byref(handle))
        return NDArray(handle, writable=self.writable)

    def _contiguous_range(self, key: slice) -> Tuple[int, int]:
        if key.step not in (None, 1):
            raise ValueError("NDArray only supports contiguous slicing on axis 0")
        start, stop, _ = key.indices(len(self))
        return start, max(start, stop)

    def __getitem__(self, key: Any) -> "NDArray":
        """``a[i]`` and ``a[i:j]`` return views sharing memory; tuple keys return copies."""

        if isinstance(key, (int, np.integer)):
            return self._at(int(key))
        if isinstance(key, slice):
            if key.start is None and key.stop is None and key.step is None:
                return self
            return self._slice(*self._contiguous_range(key))
        if isinstance(key, tuple):
            return self._basic_index(key)
        raise IndexError(f"NDArray does not support indexing with {type(key).__name__}")

    def _basic_index(self, key: Tuple[Any, ...]) -> "NDArray":
        shape = self.shape
        if len(key) > len(shape):
            raise IndexError("too many indices for NDArray")

        begin: List[int] = []
        end: List[int] = []
        step: List[int] = []
        kept: List[int] = []
        for axis, k in enumerate(key):
            dim = shape[axis]
            if isinstance(k, (int, np.integer)):
                idx = int(k) + dim if k < 0 else int(k)
                if not 0 <= idx < dim:
                    raise IndexError(f"index {k} is out of bounds for axis {axis} with size {dim}")
                begin.append(idx)
                end.append(idx + 1)
                step.append(1)
            elif isinstance(k, slice):
                if k.step is not None and k.step <= 0:
                    raise ValueError("NDArray slicing requires a positive step")
                start, stop, stride = k.indices(dim)
                begin.append(start)
                end.append(max(start, stop))
                step.append(stride)
                kept.append(axis)
            else:
                raise IndexError(f"NDArray does not support indexing with {type(k).__name__}")
        kept.extend(range(len(key), len(shape)))

        result = _invoke("slice", [self], begin=tuple(begin), end=tuple(end), step=tuple(step))
        new_shape = tuple(result.shape[axis] for axis in kept)
        if new_shape == result.shape:
            return result
        return result.reshape(new_shape or (1,))

    def __setitem__(self, key: Any, value: Any) -> None:
        if not self.writable:
            raise ValueError("Cannot assign to a read-only NDArray")

        if isinstance(key, slice):
            if key.start is None and key.stop is None and key.step is None:
                target = self
            else:
                target = self._slice(*self._contiguous_range(key))
        elif isinstance(key, (int, np.integer)):
            target = self._at(int(key))
        else:
            raise IndexError(f"NDArray does not support assignment with {type(key).__name__}")
        target._assign(value)

    def _assign(self, value: Any) -> None:
        if isinstance(value, NDArray):
            if value.handle is self.handle:
                return
            if value.shape != self.shape:
                value = value._broadcast_to(self.shape)
            value.copyto(self)
        elif isinstance(value, _SCALAR_TYPES):
            _fill(self, value)
        elif isinstance(value, (np.ndarray, list, tuple)):
            self._sync_copyfrom(value)
        else:
            raise TypeError(f"NDArray does not support assignment from {type(value).__name__}")

    def _broadcast_to(self, shape: Tuple[int, ...]) -> "NDArray":
        src = self
        if src.ndim < len(shape):
            src = src.reshape((1,) * (len(shape) - src.ndim) + src.shape)
        try:
            compatible = np.broadcast_shapes(src.shape, shape) == tuple(shape)
        except ValueError:
            compatible = False
        if not compatible:
            raise ValueError(
                f"Shape mismatch: cannot assign NDArray of shape {self.shape} "
                f"to NDArray of shape {shape}"
            )
        return _invoke("broadcast_to", [src], shape=shape)

    # Arithmetic operations with broadcasting support
    def _binary(
        self,
        other: Any,
        array_op: str,
        scalar_op: str,
        out: Optional["NDArray"] = None,
    ) -> Any:
        if isinstance(other, NDArray):
            return _invoke(array_op, [self, other], out=out)
        if isinstance(other, _SCALAR_TYPES):
            return _invoke(scalar_op, [self], out=out, scalar=float(other))
        if isinstance(other, (np.ndarray, list, tuple)):
            other = array(other, ctx=self.context, dtype=self.dtype)
            return _invoke(array_op, [self, other], out=out)
        return NotImplemented

    def _reflected(self, other: Any, array_op: str, scalar_op: str) -> Any:
        if isinstance(other, _SCALAR_TYPES):
            return _invoke(scalar_op, [self], scalar=float(other))
        if isinstance(other, (np.ndarray, list, tuple)):
            other = array(other, ctx=self.context, dtype=self.dtype)
            return _invoke(array_op, [other, self])
        return NotImplemented

    def _inplace(self, other: Any, array_op: str, scalar_op: str) -> "NDArray":
        if not self.writable:
            raise ValueError("Cannot modify a read-only NDArray in place")
        result = self._binary(other, array_op, scalar_op, out=self)
        if result is NotImplemented:
            return NotImplemented
        return self

    def __neg__(self) -> "NDArray":
        return _invoke("negative", [self])

    def __abs__(self) -> "NDArray":
        return _invoke("abs", [self])

    def __add__(self, other: Any) -> "NDArray":
        return self._binary(other, "broadcast_add", "_plus_scalar")

    def __radd__(self, other: Any) -> "NDArray":
        return self._reflected(other, "broadcast_add", "_plus_scalar")

    def __iadd__(self, other: Any) -> "NDArray":
        return self._inplace(other, "broadcast_add", "_plus_scalar")

    def __sub__(self, other: Any) -> "NDArray":
        return self._binary(other, "broadcast_sub", "_minus_scalar")

    def __rsub__(self, other: Any) -> "NDArray":
        return self._reflected(other, "broadcast_sub", "_rminus_scalar")

    def __isub__(self, other: Any) -> "NDArray":
        return self._inplace(other, "broadcast_sub", "_minus_scalar")

    def __mul__(self, other: Any) -> "NDArray":
        return self._binary(other, "broadcast_mul", "_mul_scalar")

    def __rmul__(self, other: Any) -> "NDArray":
        return self._reflected(other, "broadcast_mul", "_mul_scalar")

    def __imul__(self, other: Any) -> "NDArray":
        return self._inplace(other, "broadcast_mul", "_mul_scalar")

    def __truediv__(self, other: Any) -> "NDArray":
        return self._binary(other, "broadcast_div", "_div_scalar")

    def __rtruediv__(self, other: Any) -> "NDArray":
        return self._reflected(other, "broadcast_div", "_rdiv_scalar")

    def __itruediv__(self, other: Any) -> "NDArray":
        return self._inplace(other, "broadcast_div", "_div_scalar")

    def __pow__(self, other: Any) -> "NDArray":
        return self._binary(other, "broadcast_power", "_power_scalar")

    def __rpow__(self, other: Any) -> "NDArray":
        return self._reflected(other, "broadcast_power", "_rpower_scalar")

    def __matmul__(self, other: "NDArray") -> "NDArray":
        return self.dot(other)

    # Comparisons return 0/1 arrays of the operand dtype.
    def __eq__(self, other: Any) -> Any:
        return self._binary(other, "broadcast_equal", "_equal_scalar")

    def __ne__(self, other: Any) -> Any:
        return self._binary(other, "broadcast_not_equal", "_not_equal_scalar")

    def __lt__(self, other: Any) -> Any:
        return self._binary(other, "broadcast_lesser", "_lesser_scalar")

    def __le__(self, other: Any) -> Any:
        return self._binary(other, "broadcast_lesser_equal", "_lesser_equal_scalar")

    def __gt__(self, other: Any) -> Any:
        return self._binary(other, "broadcast_greater", "_greater_scalar")

    def __ge__(self, other: Any) -> Any:
        return self._binary(other, "broadcast_greater_equal", "_greater_equal_scalar")

    # Reduction operations
    def sum(self, axis: Optional[ShapeLike] = None, keepdims: bool = False) -> "NDArray":
        """Sum over ``axis`` (all axes when ``None``)."""
        return _invoke("sum", [self], axis=axis, keepdims=keepdims)

    def mean(self, axis: Optional[ShapeLike] = None, keepdims: bool = False) -> "NDArray":
        return _invoke("mean", [self], axis=axis, keepdims=keepdims)

    def max(self, axis: Optional[ShapeLike] = None, keepdims: bool = False) -> "NDArray":
        return _invoke("max", [self], axis=axis, keepdims=keepdims)

    def min(self, axis: Optional[ShapeLike] = None, keepdims: bool = False) -> "NDArray":
        return _invoke("min", [self], axis=axis, keepdims=keepdims)

    def prod(self, axis: Optional[ShapeLike] = None, keepdims: bool = False) -> "NDArray":
        return _invoke("prod", [self], axis=axis, keepdims=keepdims)

    # Shape manipulation
    def reshape(self, *shape: ShapeLike, reverse: bool = False) -> "NDArray":
        """Reshape to ``shape``.

        Besides positive sizes the engine understands these codes:

        * ``0`` copies the corresponding input dimension,
        * ``-1`` infers one dimension from the remaining size,
        * ``-2`` copies all remaining input dimensions,
        * ``-3`` merges two consecutive input dimensions,
        * ``-4`` splits one input dimension into the two that follow.

        With ``reverse=True`` the codes are matched from the right. The
        result is a view sharing memory with ``self``; the element count
        must be preserved.

        Examples:
            >>> zeros((10, 5, 4)).reshape(-1, 0).shape
            (40, 5)
            >>> zeros((10, 5, 4)).reshape(-1, 0, reverse=True).shape
            (50, 4)
        """
        dims = _shape_args(shape)
        handle = NDArrayHandle()
        call(
            "MXNDArrayReshape64",
            self.handle,
            ctypes.c_int(len(dims)),
            c_array(ctypes.c_int64, dims),
            ctypes.c_bool(reverse),
            ctypes.byref(handle),
        )
        result = NDArray(handle, writable=self.writable)
        if result.size != self.size:
            raise ValueError(
                f"cannot reshape NDArray of shape {self.shape} into shape {result.shape}"
            )
        return result

    def transpose(self, *axes: int) -> "NDArray":
        """Permute the axes; with no arguments the axes are reversed."""
        return _invoke("transpose", [self], axes=_shape_args(axes) if axes else None)

    def expand_dims(self, axis: int) -> "NDArray":
        return _invoke("expand_dims", [self], axis=axis)

    def flatten(self) -> "NDArray":
        """Collapse all axes but the first."""
        return _invoke("Flatten", [self])

    # Math
    def dot(
        self, other: "NDArray", transpose_a: bool = False, transpose_b: bool = False
    ) -> "NDArray":
        if not isinstance(other, NDArray):
            raise TypeError("dot requires another NDArray")
        return _invoke(
            "dot", [self, other], transpose_a=transpose_a, transpose_b=transpose_b
        )

    def clip(self, a_min: float, a_max: float) -> "NDArray":
        return _invoke("clip", [self], a_min=float(a_min), a_max=float(a_max))

    def sqrt(self) -> "NDArray":
        return _invoke("sqrt", [self])

    def square(self) -> "NDArray":
        return _invoke("square", [self])

    def exp(self) -> "NDArray":
        return _invoke("exp", [self])

    def log(self) -> "NDArray":
        return _invoke("log", [self])

    def abs(self) -> "NDArray":
        return abs(self)

    # Autograd
    def attach_grad(self, grad_req: str = "write") -> None:
        """Allocate a gradient buffer and mark this array as a variable to record."""
        from .autograd import mark_variables

        mark_variables([self], [zeros(self.shape, ctx=self.context, dtype=self.dtype)], grad_req)

    def backward(self, out_grad: Optional["NDArray"] = None, retain_graph: bool = False) -> None:
        from .autograd import backward

        backward([self], None if out_grad is None else [out_grad], retain_graph)

    # String representations
    def __repr__(self) -> str:
        shape_info = "x".join(str(d) for d in self.shape)
        return f"\n{self.asnumpy()}\n<{type(self).__name__} {shape_info} @{self.context}>"


# Array creation


def empty(shape: ShapeLike, ctx: Optional[Context] = None, dtype: Any = None) -> NDArray:
    """Allocate an uninitialised array."""
    ctx = ctx or current_context()
    return NDArray(_new_alloc_handle(_as_shape(shape), ctx, False, dtype))


def zeros(shape: ShapeLike, ctx: Optional[Context] = None, dtype: Any = None) -> NDArray:
    """Create an array filled with zeros."""
    return _invoke(
        "_zeros",
        [],
        shape=_as_shape(shape),
        ctx=ctx or current_context(),
        dtype=normalize_dtype(dtype),
    )


def ones(shape: ShapeLike, ctx: Optional[Context] = None, dtype: Any = None) -> NDArray:
    """Create an array filled with ones."""
    return _invoke(
        "_ones",
        [],
        shape=_as_shape(shape),
        ctx=ctx or current_context(),
        dtype=normalize_dtype(dtype),
    )


def full(
    shape: ShapeLike,
    val: Any,
    ctx: Optional[Context] = None,
    dtype: Any = None,
    out: Optional[NDArray] = None,
) -> NDArray:
    """Create an array filled with ``val``.

    Without ``dtype`` the element type follows ``val``: Python ints give
    ``int64``, bools ``uint8``, NumPy scalars keep their own type and floats
    use the default dtype.
    """

    dtype = infer_scalar_dtype(val) if dtype is None else normalize_dtype(dtype)
    if out is None:
        out = empty(_as_shape(shape), ctx, dtype)
    elif out.shape != _as_shape(shape):
        raise ValueError(f"shape {_as_shape(shape)} does not match out.shape {out.shape}")
    return _fill(out, val)


def _fill(target: NDArray, value: Any) -> NDArray:
    if not target.writable:
        raise ValueError("Cannot write into a read-only NDArray")
    # The engine's fill value is a double, which cannot hold every int64.
    if (
        target.dtype.kind in "iu"
        and isinstance(value, (int, np.integer))
        and not isinstance(value, bool)
    ):
        target._sync_copyfrom(np.full(target.shape, value, dtype=target.dtype))
        return target
    return _invoke(
        "_full",
        [],
        out=target,
        shape=target.shape,
        ctx=target.context,
        dtype=target.dtype,
        value=float(value),
    )


def array(source: Any, ctx: Optional[Context] = None, dtype: Any = None) -> NDArray:
    """Create an array from a NumPy array, nested list, scalar or NDArray.

    NumPy sources keep their dtype when the engine supports it; other sources
    use the default dtype unless ``dtype`` is given.
    """

    if isinstance(source, NDArray):
        dtype = source.dtype if dtype is None else normalize_dtype(dtype)
        src = source if source.dtype == dtype else source.astype(dtype)
        return src.copyto(ctx or source.context)

    if dtype is None:
        if isinstance(source, (np.ndarray, np.generic)):
            dtype = np.dtype(np.uint8) if source.dtype == np.bool_ else source.dtype
            try:
                dtype = normalize_dtype(dtype)
            except TypeError:
                dtype = normalize_dtype(None)
        else:
            dtype = normalize_dtype(None)
    else:
        dtype = normalize_dtype(dtype)

    host = np.asarray(source, dtype=dtype)
    if host.ndim == 0:
        host = host.reshape(1)
    result = empty(host.shape, ctx, dtype)
    result._sync_copyfrom(host)
    return result


def arange(
    start: float,
    stop: Optional[float] = None,
    step: float = 1.0,
    repeat: int = 1,
    ctx: Optional[Context] = None,
    dtype: Any = None,
) -> NDArray:
    """Evenly spaced values in ``[start, stop)``, each repeated ``repeat`` times."""
    if stop is None:
        start, stop = 0, start
    return _invoke(
        "_arange",
        [],
        start=float(start),
        stop=float(stop),
        step=float(step),
        repeat=int(repeat),
        ctx=ctx or current_context(),
        dtype=normalize_dtype(dtype),
    )


def zeros_like(other: NDArray) -> NDArray:
    return _invoke("zeros_like", [other])


def ones_like(other: NDArray) -> NDArray:
    return _invoke("ones_like", [other])


def concat(*arrays: NDArray, dim: int = 1) -> NDArray:
    """Concatenate arrays along ``dim``."""
    return _invoke("Concat", list(arrays), num_args=len(arrays), dim=dim)


def dot(
    lhs: NDArray, rhs: NDArray, transpose_a: bool = False, transpose_b: bool = False
) -> NDArray:
    return lhs.dot(rhs, transpose_a=transpose_a, transpose_b=transpose_b)


def clip(data: NDArray, a_min: float, a_max: float) -> NDArray:
    return data.clip(a_min, a_max)


def sqrt(data: NDArray) -> NDArray:
    return data.sqrt()


def waitall() -> None:
    """Block until every pending engine operation has finished."""
    call("MXNDArrayWaitAll")


@contextlib.contextmanager
def as_numpy(ro: Any = (), rw: Any = ()):
    """Work on NumPy copies of arrays inside a ``with`` block.

    Yields ``(ro_arrays, rw_arrays)``. Read-only copies are not writeable;
    read-write copies are copied back into their NDArrays when the block
    exits normally.

    Examples:
        >>> x, y = zeros((2, 3)) + 5, ones((2, 3))
        >>> with as_numpy(ro=x, rw=y) as ((xh,), (yh,)):
        ...     yh[:] = xh * 2
    """

    ro_list = [ro] if isinstance(ro, NDArray) else list(ro)
    rw_list = [rw] if isinstance(rw, NDArray) else list(rw)

    ro_host = []
    for arr in ro_list:
        host = arr.asnumpy()
        host.flags.writeable = False
        ro_host.append(host)
    rw_host = [arr.asnumpy() for arr in rw_list]

    yield ro_host, rw_host

    for arr, host in zip(rw_list, rw_host):
        arr[:] = host


# Serialization


def save(fname: Union[str, os.PathLike], data: Any) -> None:
    """Save an NDArray, a list of NDArrays or a ``str -> NDArray`` dict."""

    if isinstance(data, NDArray):
        data = [data]

    if isinstance(data, dict):
        keys = [str(k) for k in data.keys()]
        arrays = list(data.values())
    elif isinstance(data, (list, tuple)):
        keys = None
        arrays = list(data)
    else:
        raise TypeError("save expects an NDArray, a list of NDArrays or a dict of NDArrays")

    if not all(isinstance(a, NDArray) for a in arrays):
        raise TypeError("save only accepts NDArray values")

    call(
        "MXNDArraySave",
        c_str(os.fspath(fname)),
        mx_uint(len(arrays)),
        c_handle_array(arrays),
        c_str_array(keys) if keys is not None else None,
    )


def load(fname: Union[str, os.PathLike]) -> Union[List[NDArray], Dict[str, NDArray]]:
    """Load arrays written by :func:`save`.

    Returns a dict when the file stores names, otherwise a list.
    """

    out_size = mx_uint()
    out_name_size = mx_uint()
    handles = ctypes.POINTER(NDArrayHandle)()
    names = ctypes.POINTER(ctypes.c_char_p)()
    call(
        "MXNDArrayLoad",
        c_str(os.fspath(fname)),
        ctypes.byref(out_size),
        ctypes.byref(handles),
        ctypes.byref(out_name_size),
        ctypes.byref(names),
    )
    arrays = [NDArray(NDArrayHandle(handles[i])) for i in range(out_size.value)]
    if out_name_size.value == 0:
        return arrays
    return {py_str(names[i]): arrays[i] for i in range(out_name_size.value)}


# Generated functions for every engine operator

_FUNCTION_LOCK = RLock()
_FUNCTIONS: Dict[str, Callable[..., Any]] = {}


def _make_ndarray_function(op_name: str) -> Callable[..., Any]:
    info = _op.get_op_info(op_name)
    input_names = info.input_names

    def generic_op(*args: Any, out: Optional[NDArray] = None, **kwargs: Any) -> Any:
        inputs: List[NDArray] = []
        for arg in args:
            if isinstance(arg, NDArray):
                inputs.append(arg)
            elif isinstance(arg, (list, tuple)) and all(isinstance(a, NDArray) for a in arg):
                inputs.extend(arg)
            else:
                raise TypeError(
                    f"{op_name} expects NDArray positional arguments, got {type(arg).__name__}"
                )
        for name in input_names:
            if isinstance(kwargs.get(name), NDArray):
                inputs.append(kwargs.pop(name))
        kwargs.pop("name", None)
        if info.key_var_num_args and info.key_var_num_args not in kwargs:
            kwargs[info.key_var_num_args] = len(inputs)
        return _invoke(op_name, inputs, out=out, **kwargs)

    generic_op.__name__ = op_name
    generic_op.__qualname__ = op_name
    generic_op.__doc__ = info.docstring()
    return generic_op


def get_function(op_name: str) -> Callable[..., Any]:
    """Return the eager function for the engine operator ``op_name``."""

    with _FUNCTION_LOCK:
        fn = _FUNCTIONS.get(op_name)
        if fn is None:
            fn = _make_ndarray_function(op_name)
            _FUNCTIONS[op_name] = fn
        return fn


def __getattr__(name: str) -> Callable[..., Any]:
    if name.startswith("_"):
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    try:
        available = _op.has_op(name)
    except ImportError as exc:
        raise AttributeError(
            f"module {__name__!r} has no attribute {name!r} (engine unavailable)"
        ) from exc
    if not available:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return get_function(name)


__all__ = [
    "NDArray",
    "empty",
    "zeros",
    "ones",
    "full",
    "array",
    "arange",
    "zeros_like",
    "ones_like",
    "concat",
    "dot",
    "clip",
    "sqrt",
    "waitall",
    "as_numpy",
    "save",
    "load",
    "get_function",
]
