# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Automatic naming of symbols created without an explicit name."""

from __future__ import annotations

import threading
from typing import Dict, List, Optional


class _ManagerStack(threading.local):
    def __init__(self) -> None:
        self.stack: List["NameManager"] = []
        self.default: Optional["NameManager"] = None


_STATE = _ManagerStack()


class NameManager:
    """Assign ``<hint><counter>`` names, one counter per hint.

    Used as a ``with`` block, the manager becomes current for the enclosed
    symbol construction on the current thread.

    Examples:
        >>> with NameManager() as nm:
        ...     nm.get(None, "fullyconnected"), nm.get(None, "fullyconnected")
        ('fullyconnected0', 'fullyconnected1')
    """

    def __init__(self) -> None:
        self._counter: Dict[str, int] = {}

    def get(self, name: Optional[str], hint: str) -> str:
        if name:
            return name
        count = self._counter.get(hint, 0)
        self._counter[hint] = count + 1
        return f"{hint}{count}"

    def __enter__(self) -> "NameManager":
        _STATE.stack.append(self)
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        _STATE.stack.pop()


class Prefix(NameManager):
    """Name manager that prepends ``prefix`` to every name it hands out."""

    def __init__(self, prefix: str) -> None:
        super().__init__()
        self._prefix = prefix

    def get(self, name: Optional[str], hint: str) -> str:
        return self._prefix + super().get(name, hint)


def current() -> NameManager:
    """Return the active name manager for this thread."""

    if _STATE.stack:
        return _STATE.stack[-1]
    if _STATE.default is None:
        _STATE.default = NameManager()
    return _STATE.default


__all__ = ["NameManager", "Prefix", "current"]
