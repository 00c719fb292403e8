# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

from __future__ import annotations

from typing import Optional, Sequence

from .. import symbol as _sym


def mlp(
    data: _sym.Symbol,
    layer_sizes: Sequence[int],
    prefix: str = "",
    activation: Optional[str] = "relu",
) -> _sym.Symbol:
    """
    Stack ``FullyConnected`` layers on top of ``data``.

    Layer ``i`` (counting from 1) is named ``<prefix>fc<i>`` and followed by
    an ``Activation`` named ``<prefix><activation><i>``, except for the last
    layer whose output is returned as is.

    Examples:
        >>> net = mlp(sym.Variable("data"), [1000, 10])
        >>> net.list_arguments()
        ['data', 'fc1_weight', 'fc1_bias', 'fc2_weight', 'fc2_bias']
    """

    sizes = [int(n) for n in layer_sizes]
    if not sizes:
        raise ValueError("layer_sizes must not be empty")
    if any(n <= 0 for n in sizes):
        raise ValueError("layer sizes must be positive")

    fully_connected = _sym.get_function("FullyConnected")
    act = _sym.get_function("Activation") if activation else None

    out = data
    for i, num_hidden in enumerate(sizes, start=1):
        out = fully_connected(data=out, num_hidden=num_hidden, name=f"{prefix}fc{i}")
        if act is not None and i < len(sizes):
            out = act(data=out, act_type=activation, name=f"{prefix}{activation}{i}")
    return out
