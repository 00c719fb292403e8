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


def test_zeros_ones_empty():
    z = mx.nd.zeros((2, 3))
    assert z.shape == (2, 3)
    assert z.dtype == np.float32
    assert z.context == mx.cpu(0)
    np.testing.assert_array_equal(z.asnumpy(), np.zeros((2, 3), dtype=np.float32))

    o = mx.nd.ones(4, dtype="float64")
    assert o.shape == (4,)
    assert o.dtype == np.float64
    np.testing.assert_array_equal(o.asnumpy(), np.ones(4))

    e = mx.nd.empty((3, 3), dtype=np.int32)
    assert e.shape == (3, 3)
    assert e.dtype == np.int32


@pytest.mark.parametrize("dtype", ["float32", "float64", "float16", "uint8", "int32", "int8", "int64"])
def test_empty_keeps_dtype(dtype):
    assert mx.nd.empty((3, 3), dtype=dtype).dtype == np.dtype(dtype)


def test_full_dtype_follows_value():
    x = mx.nd.full((2, 3, 4), 42)
    assert x.dtype == np.int64
    assert x.shape == (2, 3, 4)
    np.testing.assert_array_equal(x.asnumpy(), np.full((2, 3, 4), 42))

    y = mx.nd.full((2, 3, 4), np.float32(42))
    assert y.dtype == np.float32
    np.testing.assert_allclose(y.asnumpy(), np.full((2, 3, 4), 42, dtype=np.float32))


def test_full_keeps_large_integers_exact():
    x = mx.nd.full((3,), 2**53 + 1)
    assert x.dtype == np.int64
    assert x.asnumpy().tolist() == [2**53 + 1] * 3

    y = mx.nd.full((2,), np.int64(-(2**62) - 3), dtype="int64")
    assert y.asnumpy().tolist() == [-(2**62) - 3] * 2

    out = mx.nd.zeros((2, 2), dtype="int64")
    assert mx.nd.full((2, 2), 2**60 + 7, out=out) is out
    assert out.asnumpy().tolist() == [[2**60 + 7] * 2] * 2

    z = mx.nd.full((2,), 2.5, dtype="int32")
    np.testing.assert_array_equal(z.asnumpy(), [2, 2])


def test_fill_in_place():
    x = mx.nd.zeros((2, 3, 4))
    assert x.fill_(42) is x
    assert x.dtype == np.float32
    np.testing.assert_allclose(x.asnumpy(), np.full((2, 3, 4), 42, dtype=np.float32))


def test_array_dtypes():
    from_list = mx.nd.array([[1, 2], [3, 4]])
    assert from_list.dtype == np.float32
    np.testing.assert_array_equal(from_list.asnumpy(), [[1, 2], [3, 4]])

    from_numpy = mx.nd.array(np.arange(6, dtype=np.int32).reshape(2, 3))
    assert from_numpy.dtype == np.int32
    np.testing.assert_array_equal(from_numpy.asnumpy(), np.arange(6).reshape(2, 3))

    from_bool = mx.nd.array(np.array([True, False]))
    assert from_bool.dtype == np.uint8

    scalar = mx.nd.array(3.5)
    assert scalar.shape == (1,)


def test_array_from_ndarray_copies():
    a = mx.nd.array([1.0, 2.0, 3.0])
    b = mx.nd.array(a, dtype="float64")
    assert b.dtype == np.float64
    a[:] = 0
    np.testing.assert_array_equal(b.asnumpy(), [1.0, 2.0, 3.0])


def test_arange():
    x = mx.nd.arange(5)
    np.testing.assert_array_equal(x.asnumpy(), np.arange(5, dtype=np.float32))
    y = mx.nd.arange(1, 3, 0.5)
    np.testing.assert_allclose(y.asnumpy(), [1.0, 1.5, 2.0, 2.5])
    z = mx.nd.arange(0, 2, repeat=2)
    np.testing.assert_array_equal(z.asnumpy(), [0, 0, 1, 1])


def test_zeros_like_ones_like():
    base = mx.nd.array(np.ones((2, 2), dtype=np.float64))
    z = mx.nd.zeros_like(base)
    o = mx.nd.ones_like(base)
    assert z.dtype == np.float64 and z.shape == (2, 2)
    np.testing.assert_array_equal(z.asnumpy(), np.zeros((2, 2)))
    np.testing.assert_array_equal(o.asnumpy(), np.ones((2, 2)))


def test_copy_round_trip():
    for dims in [(3,), (2, 3), (2, 3, 4)]:
        host = np.random.rand(*dims).astype(np.float32)
        arr = mx.nd.array(host)
        np.testing.assert_array_equal(arr.asnumpy(), host)
        np.testing.assert_array_equal(np.asarray(arr), host)

        target = mx.nd.empty(dims)
        assert arr.copyto(target) is target
        np.testing.assert_array_equal(target.asnumpy(), host)


def test_copy_is_independent():
    a = mx.nd.ones((2, 3))
    b = a.copy()
    c = copy.deepcopy(a)
    d = copy.copy(a)
    a[:] = 5
    np.testing.assert_array_equal(d.asnumpy(), np.ones((2, 3)))
    np.testing.assert_array_equal(b.asnumpy(), np.ones((2, 3)))
    np.testing.assert_array_equal(c.asnumpy(), np.ones((2, 3)))
    assert b.handle is not a.handle


def test_copyto_context_and_as_in_context():
    a = mx.nd.ones((2, 2))
    b = a.copyto(mx.cpu())
    assert b.context == mx.cpu()
    assert a.as_in_context(mx.cpu()) is a
    with pytest.raises(TypeError):
        a.copyto("cpu")


def test_astype():
    a = mx.nd.array([1.7, 2.2])
    b = a.astype("int32")
    assert b.dtype == np.int32
    np.testing.assert_array_equal(b.asnumpy(), [1, 2])


def test_scalar_helpers():
    a = mx.nd.array([4.0])
    assert a.asscalar() == 4.0
    assert bool(a)
    assert a.tolist() == [4.0]
    with pytest.raises(ValueError):
        mx.nd.ones((2, 2)).asscalar()
    with pytest.raises(ValueError):
        bool(mx.nd.ones((2, 2)))


def test_size_ndim_len():
    a = mx.nd.zeros((2, 3, 4))
    assert a.size == 24
    assert a.ndim == 3
    assert len(a) == 2
    assert [row.shape for row in a] == [(3, 4), (3, 4)]


def test_repr():
    text = repr(mx.nd.array(np.array([[1, 2, 3, 4]], dtype=np.int64)))
    assert "<NDArray 1x4 @cpu(0)>" in text
    assert "1 2 3 4" in text


def test_wait_helpers():
    a = mx.nd.ones((2, 2)) * 3
    a.wait_to_read()
    mx.nd.waitall()
    np.testing.assert_array_equal(a.asnumpy(), np.full((2, 2), 3))
