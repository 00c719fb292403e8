# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

import pytest

import mxlite as mx
from mxlite.nn import mlp


@pytest.mark.engine
def test_mlp_matches_hand_built(mlp2):
    net = mlp(mx.sym.Variable("data"), [1000, 10])
    assert net.list_arguments() == mlp2.list_arguments()
    assert net.list_outputs() == ["fc2_output"]
    internals = net.get_internals().list_outputs()
    assert "relu1_output" in internals
    assert "relu2_output" not in internals


@pytest.mark.engine
def test_mlp_prefix_and_label():
    data = mx.sym.Variable("data")
    net = mlp(data, [20, 10, 6], prefix="magic_")
    net = mx.sym.LinearRegressionOutput(net, mx.sym.Variable("label"))
    assert net.list_arguments() == [
        "data",
        "magic_fc1_weight",
        "magic_fc1_bias",
        "magic_fc2_weight",
        "magic_fc2_bias",
        "magic_fc3_weight",
        "magic_fc3_bias",
        "label",
    ]


@pytest.mark.engine
def test_mlp_activation():
    net = mlp(mx.sym.Variable("data"), [8, 4], activation="tanh")
    assert "tanh1_output" in net.get_internals().list_outputs()

    plain = mlp(mx.sym.Variable("data"), [8, 4], activation=None)
    assert not any(
        name.startswith("relu") for name in plain.get_internals().list_outputs()
    )
    arg_shapes, out_shapes, _ = plain.infer_shape(data=(2, 5))
    assert out_shapes == [(2, 4)]


def test_mlp_rejects_bad_sizes():
    # Sizes are checked before the engine is touched.
    data = object()
    with pytest.raises(ValueError):
        mlp(data, [])
    with pytest.raises(ValueError):
        mlp(data, [10, 0])
    with pytest.raises(ValueError):
        mlp(data, [4, -2])
