# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

import copy

import numpy as np
import pytest

import mxlite as mx

pytestmark = pytest.mark.engine

MLP_ARGS = ["data", "fc1_weight", "fc1_bias", "fc2_weight", "fc2_bias"]


def test_basic(mlp2):
    assert mlp2.list_arguments() == MLP_ARGS
    assert mlp2.list_outputs() == ["fc2_output"]
    assert mlp2.list_auxiliary_states() == []
    assert mlp2.name == "fc2"
    assert repr(mlp2) == "<Symbol fc2>"


def test_variable():
    data = mx.sym.Variable("data")
    assert data.name == "data"
    assert data.list_arguments() == ["data"]
    assert data.list_outputs() == ["data"]
    assert mx.sym.var("x").name == "x"
    with pytest.raises(TypeError):
        mx.sym.Variable(3)


def test_internal():
    data = mx.sym.Variable("data")
    oldfc = mx.sym.FullyConnected(data, name="fc1", num_hidden=10)
    net1 = mx.sym.FullyConnected(oldfc, name="fc2", num_hidden=100)
    assert net1.list_arguments() == MLP_ARGS

    internals = net1.get_internals()
    fc1 = internals["fc1_output"]
    assert fc1.list_arguments() == oldfc.list_arguments()
    assert "fc2_output" in internals.list_outputs()
    with pytest.raises(ValueError):
        internals["fc9_output"]


def test_children():
    data = mx.sym.Variable("data")
    net = mx.sym.FullyConnected(data, name="fc1", num_hidden=10)
    children = net.get_children()
    assert children.list_outputs() == ["data", "fc1_weight", "fc1_bias"]
    assert data.get_children() is None


def test_compose():
    data = mx.sym.Variable("data")
    net1 = mx.sym.FullyConnected(data, name="fc1", num_hidden=10)
    net1 = mx.sym.FullyConnected(net1, name="fc2", num_hidden=100)

    net2 = mx.sym.FullyConnected(name="fc3", num_hidden=10)
    net2 = mx.sym.Activation(net2, act_type="relu")
    net2 = mx.sym.FullyConnected(net2, name="fc4", num_hidden=20)
    assert net2.list_arguments()[0] == "fc3_data"

    composed = net2(fc3_data=net1, name="composed")
    assert composed.list_arguments() == MLP_ARGS + [
        "fc3_weight",
        "fc3_bias",
        "fc4_weight",
        "fc4_bias",
    ]
    # Composition works on a copy.
    assert net2.list_arguments()[0] == "fc3_data"

    multi_out = mx.sym.Group(composed, net1)
    outputs = multi_out.list_outputs()
    assert len(outputs) == 2
    assert outputs == ["composed_output", "fc2_output"]
    assert len(multi_out) == 2
    assert [s.list_outputs()[0] for s in multi_out] == outputs
    assert multi_out.name is None
    assert repr(multi_out).startswith("<Symbol group [")


def test_compose_rejects_mixed_inputs():
    net = mx.sym.FullyConnected(name="fc", num_hidden=4)
    with pytest.raises(TypeError):
        net(mx.sym.Variable("a"), fc_weight=mx.sym.Variable("w"))
    with pytest.raises(TypeError):
        net(fc_data=mx.nd.ones(2))


def test_group_from_list():
    a, b = mx.sym.Variable("a"), mx.sym.Variable("b")
    assert mx.sym.Group([a, b]).list_outputs() == ["a", "b"]


def test_copy_is_independent():
    data = mx.sym.Variable("data")
    c = copy.copy(data)
    d = copy.deepcopy(data)
    c.set_attr(mood="happy")
    assert data.attr("mood") is None
    assert d.name == "data"


def test_automatic_names():
    data = mx.sym.Variable("data")
    with mx.name.NameManager():
        a = mx.sym.FullyConnected(data, num_hidden=2)
        b = mx.sym.FullyConnected(data, num_hidden=2)
    assert a.name == "fullyconnected0"
    assert b.name == "fullyconnected1"

    with mx.name.Prefix("net_"):
        c = mx.sym.Activation(data, act_type="relu")
    assert c.name == "net_activation0"


def test_symbol_functions():
    data = mx.sym.Variable("data")
    assert isinstance(mx.sym.sum(data), mx.Symbol)
    assert isinstance(data.sum(axis=1), mx.Symbol)
    a, b = mx.sym.Variable("a"), mx.sym.Variable("b")
    total = mx.sym.ElementWiseSum(a, b)
    assert total.list_arguments() == ["a", "b"]
    with pytest.raises(AttributeError):
        mx.sym.not_a_registered_operator


def test_debug_str():
    assert mx.sym.Variable("x").debug_str()


def test_list_inputs_includes_aux_states():
    data = mx.sym.Variable("data")
    net = mx.sym.BatchNorm(data, name="bn")
    assert net.list_auxiliary_states() == ["bn_moving_mean", "bn_moving_var"]
    assert net.list_inputs() == [
        "data",
        "bn_gamma",
        "bn_beta",
        "bn_moving_mean",
        "bn_moving_var",
    ]
