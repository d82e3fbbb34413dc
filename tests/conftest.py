"""
Conftest: shared fixtures for the engine test modules.

1. Deterministic random sources: exact numeric assertions on physics and morphs
2. Synthetic text rasterizer: keeps TEXT tests independent of installed fonts
3. Root logger isolation: for tests that reconfigure logging
"""

import logging
import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class ConstantSource:
    """Random source whose every draw sits at the same fraction of [low, high)."""

    def __init__(self, fraction=0.5):
        self.fraction = fraction
        self.calls = 0

    def uniform(self, low=0.0, high=1.0, size=None):
        self.calls += 1
        value = low + self.fraction * (high - low)
        if size is None:
            return float(value)
        return np.full(size, value, dtype=np.float64)


def block_rasterizer(text, size):
    """Lights a centered square whose side grows with the text length."""
    bitmap = np.zeros((size, size), dtype=np.uint8)
    if text:
        half = min(size // 2, 4 * len(text))
        centre = size // 2
        bitmap[centre - half:centre + half, centre - half:centre + half] = 255
    return bitmap


@pytest.fixture
def constant_source():
    return ConstantSource(0.5)


@pytest.fixture
def seeded_rng():
    return np.random.default_rng(1234)


@pytest.fixture
def rasterizer():
    return block_rasterizer


@pytest.fixture
def small_params():
    return {"particle_count": 64, "seed": 7}


@pytest.fixture
def isolated_root_logger():
    """Restores the root logger after a test that reconfigures it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            handler.close()
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
