# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "engine: test needs the MXNet native library"
    )


def pytest_collection_modifyitems(config, items):
    from mxlite._backend import is_available

    if is_available():
        return
    skip_engine = pytest.mark.skip(reason="MXNet native library not available")
    for item in items:
        if "engine" in item.keywords:
            item.add_marker(skip_engine)


@pytest.fixture
def mlp2():
    import mxlite as mx

    data = mx.sym.Variable("data")
    out = mx.sym.FullyConnected(data=data, name="fc1", num_hidden=1000)
    out = mx.sym.Activation(data=out, act_type="relu")
    out = mx.sym.FullyConnected(data=out, name="fc2", num_hidden=10)
    return out
