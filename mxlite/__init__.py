# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

from __future__ import annotations

import logging

# The native engine is loaded on first use, so importing never needs it.
from . import autograd, executor, name, ndarray, nn, random, symbol
from ._backend import MXError, MXNotFoundError, is_available, lib_version
from .context import Context, cpu, cpu_pinned, current_context, gpu
from .dtypes import get_default_dtype, set_default_dtype
from .executor import Executor
from .ndarray import NDArray
from .serialization import load, save
from .symbol import Symbol

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

nd = ndarray
sym = symbol
seed = random.seed

__all__ = [
    "Context",
    "Executor",
    "MXError",
    "MXNotFoundError",
    "NDArray",
    "Symbol",
    "autograd",
    "cpu",
    "cpu_pinned",
    "current_context",
    "executor",
    "get_default_dtype",
    "gpu",
    "is_available",
    "lib_version",
    "load",
    "name",
    "nd",
    "ndarray",
    "nn",
    "random",
    "save",
    "seed",
    "set_default_dtype",
    "sym",
    "symbol",
]
