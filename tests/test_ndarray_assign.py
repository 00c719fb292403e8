# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import pytest

import mxlite as mx

pytestmark = pytest.mark.engine


def test_assign_scalar_array_and_list():
    x = mx.nd.zeros((2, 3))
    x[:] = 1.5
    np.testing.assert_array_equal(x.asnumpy(), np.full((2, 3), 1.5))

    host = np.arange(6, dtype=np.float32).reshape(2, 3)
    x[:] = host
    np.testing.assert_array_equal(x.asnumpy(), host)

    x[:] = [[1, 2, 3], [4, 5, 6]]
    np.testing.assert_array_equal(x.asnumpy(), [[1, 2, 3], [4, 5, 6]])

    y = mx.nd.ones((2, 3))
    x[:] = y
    np.testing.assert_array_equal(x.asnumpy(), np.ones((2, 3)))


def test_assign_broadcasts_host_values():
    x = mx.nd.zeros((2, 3))
    x[:] = np.array([1, 2, 3])
    np.testing.assert_array_equal(x.asnumpy(), [[1, 2, 3], [1, 2, 3]])
    with pytest.raises(ValueError):
        x[:] = np.ones((4, 4))


def test_assign_read_only():
    x = mx.nd.zeros((2, 2))
    x.writable = False
    with pytest.raises(ValueError):
        x[:] = 1
    with pytest.raises(ValueError):
        x += 1


def test_slice_is_a_view():
    x = mx.nd.array(np.arange(12, dtype=np.float32).reshape(4, 3))
    view = x[1:3]
    assert view.shape == (2, 3)
    np.testing.assert_array_equal(view.asnumpy(), np.arange(3, 9).reshape(2, 3))

    view[:] = -1
    expected = np.arange(12, dtype=np.float32).reshape(4, 3)
    expected[1:3] = -1
    np.testing.assert_array_equal(x.asnumpy(), expected)

    x[3:] = 7
    expected[3:] = 7
    np.testing.assert_array_equal(x.asnumpy(), expected)
    assert x[:] is x


def test_integer_index_is_a_view():
    x = mx.nd.zeros((3, 2))
    row = x[-1]
    assert row.shape == (2,)
    row[:] = 9
    x[0] = 4
    np.testing.assert_array_equal(x.asnumpy(), [[4, 4], [0, 0], [9, 9]])
    with pytest.raises(IndexError):
        x[3]


def test_strided_axis0_slice_rejected():
    x = mx.nd.zeros((4, 2))
    with pytest.raises(ValueError):
        x[::2]


def test_tuple_index_returns_copy():
    host = np.arange(24, dtype=np.float32).reshape(2, 3, 4)
    x = mx.nd.array(host)

    part = x[1, 1:3]
    assert part.shape == (2, 4)
    np.testing.assert_array_equal(part.asnumpy(), host[1, 1:3])

    stepped = x[:, :, ::2]
    np.testing.assert_array_equal(stepped.asnumpy(), host[:, :, ::2])

    part[:] = 0
    np.testing.assert_array_equal(x.asnumpy(), host)

    with pytest.raises(IndexError):
        x[0, 0, 0, 0]


def test_as_numpy_block():
    x = mx.nd.zeros((2, 3)) + 5
    y = mx.nd.ones((2, 3))
    with mx.nd.as_numpy(ro=x, rw=y) as ((xh,), (yh,)):
        assert not xh.flags.writeable
        yh[:] = xh * 2
    np.testing.assert_array_equal(y.asnumpy(), np.full((2, 3), 10))
    np.testing.assert_array_equal(x.asnumpy(), np.full((2, 3), 5))


def test_as_numpy_skips_write_back_on_error():
    y = mx.nd.ones((2,))
    with pytest.raises(RuntimeError):
        with mx.nd.as_numpy(rw=[y]) as (_, (yh,)):
            yh[:] = 3
            raise RuntimeError("boom")
    np.testing.assert_array_equal(y.asnumpy(), [1, 1])


def test_assign_broadcasts_ndarray_values():
    x = mx.nd.zeros((4, 3))
    x[:] = mx.nd.array(np.arange(3, dtype=np.float32))
    np.testing.assert_array_equal(x.asnumpy(), np.tile(np.arange(3), (4, 1)))

    x[:] = mx.nd.array(np.arange(4, dtype=np.float32).reshape(4, 1))
    np.testing.assert_array_equal(x.asnumpy(), np.repeat(np.arange(4), 3).reshape(4, 3))

    x[1] = mx.nd.array([5.0])
    np.testing.assert_array_equal(x.asnumpy()[1], [5, 5, 5])

    with pytest.raises(ValueError):
        x[:] = mx.nd.zeros((2,))
    with pytest.raises(ValueError):
        x[:] = mx.nd.zeros((8, 3))


def test_assign_large_integer_scalar():
    x = mx.nd.zeros((2,), dtype="int64")
    x[:] = 2**53 + 1
    assert x.asnumpy().tolist() == [2**53 + 1, 2**53 + 1]
