"""Shared fixtures: every test runs against a fresh NumPy backend."""

import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.progress_analysis.backend import ensure_initialized, reset_backend


@pytest.fixture(autouse=True)
def numpy_backend():
    """Select the NumPy backend for the test, then forget it."""
    reset_backend()
    backend = ensure_initialized("numpy")
    yield backend
    reset_backend()


@pytest.fixture
def png_bytes():
    """Factory: encode an RGB uint8 grid as PNG bytes."""
    def _encode(rgb: np.ndarray) -> bytes:
        bgr = cv2.cvtColor(rgb.astype(np.uint8), cv2.COLOR_RGB2BGR)
        ok, buf = cv2.imencode(".png", bgr)
        assert ok
        return buf.tobytes()
    return _encode
