# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

import pytest

import mxlite as mx
from mxlite.context import Context, current_context


def test_context_equality_and_hash():
    assert mx.cpu() == Context("cpu", 0)
    assert mx.gpu(1) == Context("gpu", 1)
    assert mx.cpu(0) != mx.gpu(0)
    assert mx.gpu(0) != mx.gpu(1)
    assert len({mx.cpu(0), Context("cpu"), mx.gpu(0)}) == 2


def test_context_fields():
    ctx = mx.gpu(3)
    assert ctx.device_type == "gpu"
    assert ctx.device_typeid == 2
    assert ctx.device_id == 3
    assert mx.cpu().device_typeid == 1
    assert mx.cpu_pinned().device_typeid == 3


def test_context_from_type_code_and_copy():
    assert Context(1, 0) == mx.cpu(0)
    assert Context(mx.gpu(2)) == mx.gpu(2)


def test_context_repr():
    assert repr(mx.cpu()) == "cpu(0)"
    assert str(mx.gpu(1)) == "gpu(1)"


def test_context_invalid_arguments():
    with pytest.raises(ValueError):
        Context("tpu")
    with pytest.raises(ValueError):
        Context(7)
    with pytest.raises(ValueError):
        Context("cpu", -1)


def test_context_is_immutable():
    ctx = mx.cpu()
    with pytest.raises(AttributeError):
        ctx.device_id = 2


def test_context_with_block_sets_default():
    assert current_context() == mx.cpu(0)
    with mx.gpu(1):
        assert current_context() == mx.gpu(1)
        with mx.cpu(2):
            assert current_context() == mx.cpu(2)
        assert current_context() == mx.gpu(1)
    assert current_context() == mx.cpu(0)


def test_context_with_block_restores_on_exception():
    with pytest.raises(RuntimeError):
        with mx.gpu(0):
            raise RuntimeError("boom")
    assert current_context() == mx.cpu(0)
