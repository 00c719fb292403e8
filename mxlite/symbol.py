# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Symbol handle over the engine's computation-graph nodes.

Symbols are built by calling operator functions exposed on this module
(``mxlite.sym.FullyConnected(...)``) on :func:`Variable` placeholders. Each
call creates a new native node; nothing is computed until the graph is bound
to arrays with :meth:`Symbol.bind`.
"""

from __future__ import annotations

import ctypes
import logging
import os
import weakref
from numbers import Number
from threading import RLock
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from . import _op
from . import name as _name
from ._backend import (
    SymbolHandle,
    c_array,
    c_handle_array,
    c_str,
    c_str_array,
    call,
    mx_uint,
    py_str,
    read_str_array,
)
from .context import Context
from .dtypes import dtype_to_flag, flag_to_dtype

logger = logging.getLogger(__name__)

Shape = Tuple[int, ...]


def _free_symbol(handle: SymbolHandle) -> None:
    call("MXSymbolFree", handle)


def _is_dunder(key: str) -> bool:
    return key.startswith("__") and key.endswith("__")


class Symbol:
    """A handle to a node (or group of nodes) in the engine's computation graph."""

    def __init__(self, handle: SymbolHandle):
        self.handle = handle
        self._finalizer = weakref.finalize(self, _free_symbol, handle)
        self._finalizer.atexit = False

    # Copy and composition
    def __copy__(self) -> "Symbol":
        handle = SymbolHandle()
        call("MXSymbolCopy", self.handle, ctypes.byref(handle))
        return Symbol(handle)

    def __deepcopy__(self, memo: Dict[int, Any]) -> "Symbol":
        return self.__copy__()

    def __call__(self, *args: "Symbol", **kwargs: Any) -> "Symbol":
        """Return a copy of this symbol with its free inputs replaced.

        Inputs are given either positionally or by argument name, not both.

        Examples:
            >>> net2 = FullyConnected(name="fc3", num_hidden=10)
            >>> composed = net2(fc3_data=net1, name="composed")
        """
        composed = self.__copy__()
        composed._compose(*args, **kwargs)
        return composed

    def _compose(self, *args: "Symbol", name: Optional[str] = None, **kwargs: "Symbol") -> None:
        if args and kwargs:
            raise TypeError(
                "compose only accepts input Symbols either as positional or keyword arguments, not both"
            )
        for arg in list(args) + list(kwargs.values()):
            if not isinstance(arg, Symbol):
                raise TypeError(f"Compose expects Symbol inputs, got {type(arg).__name__}")

        if kwargs:
            keys = c_str_array(kwargs.keys())
            inputs = list(kwargs.values())
        else:
            keys = None
            inputs = list(args)

        call(
            "NNSymbolCompose",
            self.handle,
            c_str(name) if name else None,
            mx_uint(len(inputs)),
            keys,
            c_handle_array(inputs),
        )

    # Introspection
    @property
    def name(self) -> Optional[str]:
        """Name of the head node, or ``None`` for a group of several outputs."""
        ret = ctypes.c_char_p()
        success = ctypes.c_int()
        call("MXSymbolGetName", self.handle, ctypes.byref(ret), ctypes.byref(success))
        return py_str(ret.value) if success.value else None

    def attr(self, key: str) -> Optional[str]:
        """Return the attribute ``key`` of the head node, ``None`` when unset."""
        ret = ctypes.c_char_p()
        success = ctypes.c_int()
        call(
            "MXSymbolGetAttr",
            self.handle,
            c_str(key),
            ctypes.byref(ret),
            ctypes.byref(success),
        )
        if success.value:
            return py_str(ret.value)
        if not _is_dunder(key):
            return self.attr(f"__{key}__")
        return None

    def set_attr(self, **kwargs: str) -> None:
        """Set string attributes on the head node."""
        for key, value in kwargs.items():
            if not isinstance(value, str):
                raise TypeError(
                    f"Attribute values must be strings; got {type(value).__name__} for '{key}'"
                )
            call("MXSymbolSetAttr", self.handle, c_str(key), c_str(value))

    def list_attr(self) -> Dict[str, str]:
        """Attributes of the head node only.

        Operator attributes are stored as ``__key__``; each is also listed
        under its plain ``key``.
        """
        size = mx_uint()
        pairs = ctypes.POINTER(ctypes.c_char_p)()
        call("MXSymbolListAttrShallow", self.handle, ctypes.byref(size), ctypes.byref(pairs))
        attrs = {py_str(pairs[2 * i]): py_str(pairs[2 * i + 1]) for i in range(size.value)}
        for key, value in list(attrs.items()):
            if _is_dunder(key) and len(key) > 4:
                attrs.setdefault(key[2:-2], value)
        return attrs

    def _list_names(self, fn_name: str) -> List[str]:
        size = mx_uint()
        names = ctypes.POINTER(ctypes.c_char_p)()
        call(fn_name, self.handle, ctypes.byref(size), ctypes.byref(names))
        return read_str_array(size, names)

    def list_arguments(self) -> List[str]:
        return self._list_names("MXSymbolListArguments")

    def list_outputs(self) -> List[str]:
        return self._list_names("MXSymbolListOutputs")

    def list_auxiliary_states(self) -> List[str]:
        """Names of auxiliary states such as batch-norm moving statistics."""
        return self._list_names("MXSymbolListAuxiliaryStates")

    def list_inputs(self) -> List[str]:
        """Arguments and auxiliary states in graph order."""
        size = mx_uint()
        names = ctypes.POINTER(ctypes.c_char_p)()
        call(
            "NNSymbolListInputNames",
            self.handle,
            ctypes.c_int(0),
            ctypes.byref(size),
            ctypes.byref(names),
        )
        return read_str_array(size, names)

    def get_internals(self) -> "Symbol":
        """Group every intermediate output of the graph, indexable by name."""
        handle = SymbolHandle()
        call("MXSymbolGetInternals", self.handle, ctypes.byref(handle))
        return Symbol(handle)

    def get_children(self) -> Optional["Symbol"]:
        handle = SymbolHandle()
        call("MXSymbolGetChildren", self.handle, ctypes.byref(handle))
        if handle.value is None:
            return None
        children = Symbol(handle)
        if not children.list_outputs():
            return None
        return children

    def __len__(self) -> int:
        return len(self.list_outputs())

    def __iter__(self) -> Iterator["Symbol"]:
        return (self[i] for i in range(len(self)))

    def __getitem__(self, index: Union[int, str]) -> "Symbol":
        outputs = self.list_outputs()
        if isinstance(index, str):
            matches = [i for i, name in enumerate(outputs) if name == index]
            if not matches:
                raise ValueError(f"Cannot find output that matches name '{index}'")
            if len(matches) > 1:
                raise ValueError(f"There are multiple outputs with name '{index}'")
            index = matches[0]
        if not isinstance(index, int):
            raise TypeError("Symbol only supports integer or string indices")
        if not 0 <= index < len(outputs):
            raise IndexError("Index out of range")

        handle = SymbolHandle()
        call("MXSymbolGetOutput", self.handle, mx_uint(index), ctypes.byref(handle))
        return Symbol(handle)

    def debug_str(self) -> str:
        out = ctypes.c_char_p()
        call("MXSymbolPrint", self.handle, ctypes.byref(out))
        return py_str(out.value)

    def __repr__(self) -> str:
        name = self.name
        if name is None:
            return f"<{type(self).__name__} group [{', '.join(str(s.name) for s in self)}]>"
        return f"<{type(self).__name__} {name}>"

    # Inference
    def _infer_shape_impl(
        self, partial: bool, *args: Any, **kwargs: Any
    ) -> Tuple[Optional[List[Shape]], Optional[List[Shape]], Optional[List[Shape]]]:
        if args and kwargs:
            raise TypeError("Only positional or keyword shapes are accepted, not both")

        sdata: List[int] = []
        indptr = [0]
        if args:
            keys = None
            for shape in args:
                if shape is not None:
                    if not isinstance(shape, (tuple, list)):
                        raise TypeError("Shapes must be given as tuples")
                    sdata.extend(int(d) for d in shape)
                indptr.append(len(sdata))
            num_args = len(args)
        else:
            names = []
            for key, shape in kwargs.items():
                if shape is None:
                    continue
                if not isinstance(shape, (tuple, list)):
                    raise TypeError("Shapes must be given as tuples")
                names.append(key)
                sdata.extend(int(d) for d in shape)
                indptr.append(len(sdata))
            keys = c_str_array(names)
            num_args = len(names)

        arg_size, out_size, aux_size = mx_uint(), mx_uint(), mx_uint()
        arg_ndim = ctypes.POINTER(mx_uint)()
        out_ndim = ctypes.POINTER(mx_uint)()
        aux_ndim = ctypes.POINTER(mx_uint)()
        arg_data = ctypes.POINTER(ctypes.POINTER(mx_uint))()
        out_data = ctypes.POINTER(ctypes.POINTER(mx_uint))()
        aux_data = ctypes.POINTER(ctypes.POINTER(mx_uint))()
        complete = ctypes.c_int()

        call(
            "MXSymbolInferShapePartial" if partial else "MXSymbolInferShape",
            self.handle,
            mx_uint(num_args),
            keys,
            c_array(mx_uint, indptr),
            c_array(mx_uint, sdata),
            ctypes.byref(arg_size),
            ctypes.byref(arg_ndim),
            ctypes.byref(arg_data),
            ctypes.byref(out_size),
            ctypes.byref(out_ndim),
            ctypes.byref(out_data),
            ctypes.byref(aux_size),
            ctypes.byref(aux_ndim),
            ctypes.byref(aux_data),
            ctypes.byref(complete),
        )

        if complete.value == 0 and not partial:
            logger.debug("shape inference incomplete for %r", self)
            return None, None, None

        def _read(size, ndim, data) -> List[Shape]:
            return [tuple(data[i][: ndim[i]]) for i in range(size.value)]

        return (
            _read(arg_size, arg_ndim, arg_data),
            _read(out_size, out_ndim, out_data),
            _read(aux_size, aux_ndim, aux_data),
        )

    def infer_shape(self, *args: Any, **kwargs: Any):
        """Infer argument, output and auxiliary shapes from known input shapes.

        Returns ``(arg_shapes, out_shapes, aux_shapes)`` ordered like
        :meth:`list_arguments`, :meth:`list_outputs` and
        :meth:`list_auxiliary_states`, or ``(None, None, None)`` when the
        given shapes do not determine every shape. Inconsistent shapes raise
        :class:`~mxlite.MXError`.

        Examples:
            >>> arg_shapes, out_shapes, aux_shapes = net.infer_shape(data=(100, 100))
        """
        return self._infer_shape_impl(False, *args, **kwargs)

    def infer_shape_partial(self, *args: Any, **kwargs: Any):
        """Like :meth:`infer_shape` but returns whatever could be inferred.

        Shapes that stay unknown are reported as ``()``.
        """
        return self._infer_shape_impl(True, *args, **kwargs)

    def infer_type(self, *args: Any, **kwargs: Any):
        """Infer element types; same conventions as :meth:`infer_shape`."""
        if args and kwargs:
            raise TypeError("Only positional or keyword types are accepted, not both")

        if args:
            keys = None
            sdata = [-1 if t is None else dtype_to_flag(t) for t in args]
        else:
            names = [k for k, v in kwargs.items() if v is not None]
            keys = c_str_array(names)
            sdata = [dtype_to_flag(kwargs[k]) for k in names]

        arg_size, out_size, aux_size = mx_uint(), mx_uint(), mx_uint()
        arg_data = ctypes.POINTER(ctypes.c_int)()
        out_data = ctypes.POINTER(ctypes.c_int)()
        aux_data = ctypes.POINTER(ctypes.c_int)()
        complete = ctypes.c_int()
        call(
            "MXSymbolInferType",
            self.handle,
            mx_uint(len(sdata)),
            keys,
            c_array(ctypes.c_int, sdata),
            ctypes.byref(arg_size),
            ctypes.byref(arg_data),
            ctypes.byref(out_size),
            ctypes.byref(out_data),
            ctypes.byref(aux_size),
            ctypes.byref(aux_data),
            ctypes.byref(complete),
        )
        if complete.value == 0:
            return None, None, None
        return (
            [flag_to_dtype(arg_data[i]) for i in range(arg_size.value)],
            [flag_to_dtype(out_data[i]) for i in range(out_size.value)],
            [flag_to_dtype(aux_data[i]) for i in range(aux_size.value)],
        )

    # Arithmetic on graph nodes
    def _binary(self, other: Any, symbol_op: str, scalar_op: str) -> "Symbol":
        if isinstance(other, Symbol):
            return _create_symbol(symbol_op, [self, other])
        if isinstance(other, (Number, np.generic)):
            return _create_symbol(scalar_op, [self], scalar=float(other))
        return NotImplemented

    def _reflected(self, other: Any, scalar_op: str) -> "Symbol":
        if isinstance(other, (Number, np.generic)):
            return _create_symbol(scalar_op, [self], scalar=float(other))
        return NotImplemented

    def __add__(self, other: Any) -> "Symbol":
        return self._binary(other, "elemwise_add", "_plus_scalar")

    def __radd__(self, other: Any) -> "Symbol":
        return self._reflected(other, "_plus_scalar")

    def __sub__(self, other: Any) -> "Symbol":
        return self._binary(other, "elemwise_sub", "_minus_scalar")

    def __rsub__(self, other: Any) -> "Symbol":
        return self._reflected(other, "_rminus_scalar")

    def __mul__(self, other: Any) -> "Symbol":
        return self._binary(other, "elemwise_mul", "_mul_scalar")

    def __rmul__(self, other: Any) -> "Symbol":
        return self._reflected(other, "_mul_scalar")

    def __truediv__(self, other: Any) -> "Symbol":
        return self._binary(other, "elemwise_div", "_div_scalar")

    def __rtruediv__(self, other: Any) -> "Symbol":
        return self._reflected(other, "_rdiv_scalar")

    def __pow__(self, other: Any) -> "Symbol":
        return self._binary(other, "_power", "_power_scalar")

    def __rpow__(self, other: Any) -> "Symbol":
        return self._reflected(other, "_rpower_scalar")

    def __neg__(self) -> "Symbol":
        return _create_symbol("negative", [self])

    # Common operators as methods
    def reshape(self, *shape: Any, reverse: bool = False) -> "Symbol":
        """Reshape with the same special codes as :meth:`NDArray.reshape`."""
        if len(shape) == 1 and isinstance(shape[0], (list, tuple)):
            shape = tuple(shape[0])
        return _create_symbol("Reshape", [self], shape=tuple(shape), reverse=reverse)

    def transpose(self, *axes: Any) -> "Symbol":
        if len(axes) == 1 and isinstance(axes[0], (list, tuple)):
            axes = tuple(axes[0])
        return _create_symbol("transpose", [self], axes=tuple(axes) if axes else None)

    def dot(self, other: "Symbol", transpose_a: bool = False, transpose_b: bool = False) -> "Symbol":
        return _create_symbol(
            "dot", [self, other], transpose_a=transpose_a, transpose_b=transpose_b
        )

    def sum(self, axis: Any = None, keepdims: bool = False) -> "Symbol":
        return _create_symbol("sum", [self], axis=axis, keepdims=keepdims)

    def mean(self, axis: Any = None, keepdims: bool = False) -> "Symbol":
        return _create_symbol("mean", [self], axis=axis, keepdims=keepdims)

    # Serialization
    def tojson(self) -> str:
        out = ctypes.c_char_p()
        call("MXSymbolSaveToJSON", self.handle, ctypes.byref(out))
        return py_str(out.value)

    def save(self, fname: Union[str, os.PathLike]) -> None:
        call("MXSymbolSaveToFile", self.handle, c_str(os.fspath(fname)))

    # Binding
    def bind(
        self,
        ctx: Context,
        args: Union[Sequence[Any], Mapping[str, Any]],
        args_grad: Optional[Union[Sequence[Any], Mapping[str, Any]]] = None,
        grad_req: Union[str, Sequence[str], Mapping[str, str]] = "write",
        aux_states: Optional[Union[Sequence[Any], Mapping[str, Any]]] = None,
    ):
        """Bind arrays to the graph's arguments and return an :class:`~mxlite.executor.Executor`."""
        from .executor import Executor

        return Executor(self, ctx, args, args_grad, grad_req, aux_states)

    def simple_bind(self, ctx: Context, grad_req: str = "write", dtype: Any = None, **shapes: Any):
        """Allocate zero-filled arguments from input shapes and bind them."""
        from .ndarray import zeros

        arg_shapes, _, aux_shapes = self.infer_shape(**shapes)
        if arg_shapes is None:
            raise ValueError("Input shapes are insufficient to infer every argument shape")

        args = [zeros(s, ctx=ctx, dtype=dtype) for s in arg_shapes]
        args_grad = None
        if grad_req != "null":
            args_grad = [zeros(s, ctx=ctx, dtype=dtype) for s in arg_shapes]
        aux_states = [zeros(s, ctx=ctx, dtype=dtype) for s in aux_shapes]
        return self.bind(ctx, args, args_grad, grad_req, aux_states)


def _create_symbol(
    op_name: str,
    args: Sequence[Symbol] = (),
    kwargs: Optional[Mapping[str, Symbol]] = None,
    name: Optional[str] = None,
    attr: Optional[Mapping[str, str]] = None,
    **params: Any,
) -> Symbol:
    """Create an atomic node for ``op_name`` and compose it with its inputs."""

    kwargs = dict(kwargs or {})
    info = _op.get_op_info(op_name)
    if info.key_var_num_args and info.key_var_num_args not in params:
        params[info.key_var_num_args] = len(args) + len(kwargs)

    keys, vals = _op.encode_params(params)
    handle = SymbolHandle()
    call(
        "MXSymbolCreateAtomicSymbol",
        _op.get_op_handle(op_name),
        mx_uint(len(keys)),
        c_str_array(keys),
        c_str_array(vals),
        ctypes.byref(handle),
    )
    sym = Symbol(handle)
    sym._compose(*args, name=_name.current().get(name, op_name.lower()), **kwargs)
    if attr:
        # Plain keys on operator nodes are parsed as operator parameters.
        sym.set_attr(
            **{key if _is_dunder(key) else f"__{key}__": value for key, value in attr.items()}
        )
    return sym


def Variable(
    name: str,
    attr: Optional[Mapping[str, str]] = None,
    shape: Optional[Sequence[int]] = None,
    dtype: Any = None,
    lr_mult: Optional[float] = None,
    wd_mult: Optional[float] = None,
    init: Optional[str] = None,
    **kwargs: Any,
) -> Symbol:
    """Create a named placeholder for an input or a learnable parameter.

    ``attr`` values must be strings. ``shape``, ``dtype``, ``lr_mult``,
    ``wd_mult`` and ``init`` are stored as the engine's reserved
    ``__shape__``-style attributes; extra keyword arguments must use that
    double-underscore form as well.
    """

    if not isinstance(name, str):
        raise TypeError("Expect a string for variable `name`")

    attrs = dict(attr or {})
    for key, value in attrs.items():
        if not isinstance(value, str):
            raise TypeError(
                f"Attribute values must be strings; got {type(value).__name__} for '{key}'"
            )
    if shape is not None:
        attrs["__shape__"] = str(tuple(int(d) for d in shape))
    if lr_mult is not None:
        attrs["__lr_mult__"] = str(lr_mult)
    if wd_mult is not None:
        attrs["__wd_mult__"] = str(wd_mult)
    if dtype is not None:
        attrs["__dtype__"] = str(dtype_to_flag(dtype))
    if init is not None:
        attrs["__init__"] = str(init)
    for key, value in kwargs.items():
        if not _is_dunder(key):
            raise ValueError(
                f"Attribute name={key} is not supported; additional attributes "
                "must be of the form __key__"
            )
        attrs[key] = str(value)

    handle = SymbolHandle()
    call("MXSymbolCreateVariable", c_str(name), ctypes.byref(handle))
    sym = Symbol(handle)
    if attrs:
        sym.set_attr(**attrs)
    return sym


var = Variable


def Group(*symbols: Union[Symbol, Sequence[Symbol]]) -> Symbol:
    """Combine several symbols into one with multiple outputs."""

    if len(symbols) == 1 and isinstance(symbols[0], (list, tuple)):
        symbols = tuple(symbols[0])
    if not symbols or not all(isinstance(s, Symbol) for s in symbols):
        raise TypeError("Expected a non-empty list of Symbols")

    handle = SymbolHandle()
    call(
        "MXSymbolCreateGroup",
        mx_uint(len(symbols)),
        c_handle_array(symbols),
        ctypes.byref(handle),
    )
    return Symbol(handle)


def load_json(json_str: str) -> Symbol:
    """Reconstruct a symbol from :meth:`Symbol.tojson` output."""

    if not isinstance(json_str, str):
        raise TypeError("json_str must be a string")
    handle = SymbolHandle()
    call("MXSymbolCreateFromJSON", c_str(json_str), ctypes.byref(handle))
    return Symbol(handle)


def load(fname: Union[str, os.PathLike]) -> Symbol:
    """Load a symbol written by :meth:`Symbol.save`."""

    handle = SymbolHandle()
    call("MXSymbolCreateFromFile", c_str(os.fspath(fname)), ctypes.byref(handle))
    return Symbol(handle)


def dot(lhs: Symbol, rhs: Symbol, transpose_a: bool = False, transpose_b: bool = False) -> Symbol:
    return lhs.dot(rhs, transpose_a=transpose_a, transpose_b=transpose_b)


def reshape(data: Symbol, *shape: Any, reverse: bool = False) -> Symbol:
    return data.reshape(*shape, reverse=reverse)


# Generated functions for every engine operator

_FUNCTION_LOCK = RLock()
_FUNCTIONS: Dict[str, Callable[..., Symbol]] = {}


def _make_symbol_function(op_name: str) -> Callable[..., Symbol]:
    info = _op.get_op_info(op_name)

    def creator(
        *args: Any,
        name: Optional[str] = None,
        attr: Optional[Mapping[str, str]] = None,
        **kwargs: Any,
    ) -> Symbol:
        inputs: List[Symbol] = []
        for arg in args:
            if isinstance(arg, Symbol):
                inputs.append(arg)
            elif isinstance(arg, (list, tuple)) and all(isinstance(a, Symbol) for a in arg):
                inputs.extend(arg)
            else:
                raise TypeError(
                    f"{op_name} expects Symbol positional arguments, got {type(arg).__name__}"
                )
        named = {k: v for k, v in kwargs.items() if isinstance(v, Symbol)}
        params = {k: v for k, v in kwargs.items() if not isinstance(v, Symbol)}
        if attr is not None:
            for key, value in attr.items():
                if not isinstance(value, str):
                    raise TypeError(
                        f"Attribute values must be strings; got {type(value).__name__} for '{key}'"
                    )
        return _create_symbol(op_name, inputs, named, name, attr, **params)

    creator.__name__ = op_name
    creator.__qualname__ = op_name
    creator.__doc__ = info.docstring()
    return creator


def get_function(op_name: str) -> Callable[..., Symbol]:
    """Return the graph-building function for the engine operator ``op_name``."""

    with _FUNCTION_LOCK:
        fn = _FUNCTIONS.get(op_name)
        if fn is None:
            fn = _make_symbol_function(op_name)
            _FUNCTIONS[op_name] = fn
        return fn


def __getattr__(name: str) -> Callable[..., Symbol]:
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
    "Symbol",
    "Variable",
    "var",
    "Group",
    "load",
    "load_json",
    "dot",
    "reshape",
    "get_function",
]
