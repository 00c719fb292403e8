# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import pytest

import mxlite as mx

pytestmark = pytest.mark.engine


def test_generated_functions_are_cached():
    f = mx.nd.broadcast_add
    assert f is mx.nd.broadcast_add
    assert f.__name__ == "broadcast_add"
    assert f.__doc__


def test_generated_function_runs():
    x = mx.nd.ones((2, 2))
    y = mx.nd.broadcast_add(x, x)
    np.testing.assert_array_equal(y.asnumpy(), np.full((2, 2), 2))

    out = mx.nd.zeros((2, 2))
    mx.nd.elemwise_mul(x, y, out=out)
    np.testing.assert_array_equal(out.asnumpy(), np.full((2, 2), 2))


def test_generated_function_keyword_inputs():
    x = mx.nd.array([-1.0, 2.0])
    y = mx.nd.Activation(data=x, act_type="relu")
    np.testing.assert_array_equal(y.asnumpy(), [0, 2])


def test_unknown_and_private_names():
    with pytest.raises(AttributeError):
        mx.nd.not_a_registered_operator
    with pytest.raises(AttributeError):
        mx.nd._plus_scalar


def test_positional_non_array_rejected():
    with pytest.raises(TypeError):
        mx.nd.broadcast_add(mx.nd.ones(2), 3)


def test_registry():
    from mxlite import _op

    ops = _op.list_ops()
    assert "FullyConnected" in ops
    assert _op.has_op("broadcast_add")
    info = _op.get_op_info("FullyConnected")
    assert "data" in info.input_names
    assert "num_hidden" in info.arg_names
    assert info.key_var_num_args == ""
    assert _op.get_op_info("Concat").key_var_num_args == "num_args"


def test_engine_version():
    assert mx.lib_version() > 0
