# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Helpers that assemble common network shapes from symbols."""

from .mlp import mlp

__all__ = ["mlp"]
