"""
Array execution backends.

The analyzers only ever talk to an ``ArrayBackend``: a handful of elementwise
ops, reductions, a channel mean and a zero-padded 3x3 convolution. Two
implementations exist:

    TensorFlow : ``tf.io`` decoding, ``tf.image.resize`` and ``tf.nn.conv2d``,
                 pinned to ``/GPU:0`` or ``/CPU:0``.
    NumPy      : OpenCV decoding/resizing and shifted-slice convolution.

Which one runs is decided once per process by ``ensure_initialized()`` and
cached; every entry point calls it lazily.
"""

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional

import cv2
import numpy as np

from .config import CANONICAL_SIZE, PIXEL_SCALE, load_settings
from .errors import BackendInitError, ComputationError, DecodeError

logger = logging.getLogger(__name__)


class BackendStrategy(str, Enum):
    TENSORFLOW_GPU = "tensorflow-gpu"
    TENSORFLOW_CPU = "tensorflow-cpu"
    NUMPY = "numpy"


_PREFERENCE_ORDER: dict[str, list[BackendStrategy]] = {
    "auto": [
        BackendStrategy.TENSORFLOW_GPU,
        BackendStrategy.TENSORFLOW_CPU,
        BackendStrategy.NUMPY,
    ],
    "tensorflow": [BackendStrategy.TENSORFLOW_GPU, BackendStrategy.TENSORFLOW_CPU],
    "tensorflow-gpu": [BackendStrategy.TENSORFLOW_GPU],
    "tensorflow-cpu": [BackendStrategy.TENSORFLOW_CPU],
    "numpy": [BackendStrategy.NUMPY],
}


def resolve_strategies(preference: str) -> list[BackendStrategy]:
    """Return the candidate strategies for *preference*, in trial order.

    Raises:
        ValueError: On an unknown preference string.
    """
    try:
        return list(_PREFERENCE_ORDER[preference])
    except KeyError:
        raise ValueError(
            f"Unknown backend preference '{preference}'. "
            f"Expected one of {sorted(_PREFERENCE_ORDER)}."
        ) from None


# ============================================================================
# Backend interface
# ============================================================================

class ArrayBackend:
    """Minimal array API the analyzers are written against.

    Arrays are backend-native (``np.ndarray`` or ``tf.Tensor``); reductions
    return plain Python floats.
    """

    strategy: BackendStrategy
    supports_concurrency: bool = True

    # -- image I/O ----------------------------------------------------------
    def decode_image(self, data: bytes):
        """Decode encoded image bytes into a uint8 (H, W, 3) RGB grid."""
        raise NotImplementedError

    def resize_bilinear(self, pixels, size: int = CANONICAL_SIZE):
        """Resize a uint8 (H, W, 3) grid into a (1, size, size, 3) [0, 1] tensor."""
        raise NotImplementedError

    # -- array math ---------------------------------------------------------
    def asarray(self, x):
        raise NotImplementedError

    def shape(self, x) -> tuple[int, ...]:
        raise NotImplementedError

    def subtract(self, a, b):
        raise NotImplementedError

    def add(self, a, b):
        raise NotImplementedError

    def abs(self, x):
        raise NotImplementedError

    def square(self, x):
        raise NotImplementedError

    def sqrt(self, x):
        raise NotImplementedError

    def mean(self, x) -> float:
        raise NotImplementedError

    def max(self, x) -> float:
        raise NotImplementedError

    def min(self, x) -> float:
        raise NotImplementedError

    def all_finite(self, x) -> bool:
        raise NotImplementedError

    def channel_mean(self, x):
        """Average the trailing channel axis, keeping it: (N, H, W, C) -> (N, H, W, 1)."""
        raise NotImplementedError

    def conv2d_same(self, gray, kernel: np.ndarray):
        """Zero-padded, stride-1 cross-correlation of (N, H, W, 1) with a 3x3 kernel."""
        raise NotImplementedError

    def slice_rows(self, x, start: int, stop: int):
        """Rows ``start:stop`` along the height axis of a (N, H, W, C) array."""
        raise NotImplementedError

    # -- helpers ------------------------------------------------------------
    def as_batch(self, x):
        """Convert *x* to a float (N, H, W, C) array, adding a batch axis to 3D input.

        Raises:
            ComputationError: On a wrong rank, or values that are not finite
                or fall outside [0, 1].
        """
        arr = self.asarray(x)
        shape = self.shape(arr)
        if len(shape) not in (3, 4):
            raise ComputationError(
                f"Expected an image tensor of rank 3 or 4, got shape {shape}."
            )
        if 0 not in shape:
            if not self.all_finite(arr):
                raise ComputationError("Image tensor contains NaN or infinite values.")
            low, high = self.min(arr), self.max(arr)
            if low < 0.0 or high > 1.0:
                raise ComputationError(
                    f"Image tensor values must lie in [0, 1], got [{low:.4g}, {high:.4g}]."
                )
        if len(shape) == 3:
            return self.expand_batch(arr)
        return arr

    def expand_batch(self, x):
        raise NotImplementedError

    @contextmanager
    def compute_scope(self) -> Iterator[None]:
        """Scope for one analysis call; serializes work when the backend is not thread-safe."""
        if self.supports_concurrency:
            yield
            return
        with _COMPUTE_LOCK:
            yield


# ============================================================================
# NumPy / OpenCV backend
# ============================================================================

class NumpyBackend(ArrayBackend):
    strategy = BackendStrategy.NUMPY
    supports_concurrency = True

    def decode_image(self, data: bytes) -> np.ndarray:
        buf = np.frombuffer(bytes(data), dtype=np.uint8)
        if buf.size == 0:
            raise DecodeError("Image data is empty.")
        try:
            bgr = cv2.imdecode(buf, cv2.IMREAD_COLOR)
        except cv2.error as exc:
            raise DecodeError(f"Image data could not be decoded: {exc}") from exc
        if bgr is None:
            raise DecodeError("Image data is not a supported image format.")
        return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)

    def resize_bilinear(self, pixels, size: int = CANONICAL_SIZE) -> np.ndarray:
        size = int(size)
        resized = cv2.resize(np.asarray(pixels), (size, size), interpolation=cv2.INTER_LINEAR)
        normalized = resized.astype(np.float32) / PIXEL_SCALE
        np.clip(normalized, 0.0, 1.0, out=normalized)
        return np.expand_dims(normalized, axis=0)

    def asarray(self, x) -> np.ndarray:
        return np.asarray(x, dtype=np.float32)

    def shape(self, x) -> tuple[int, ...]:
        return tuple(int(d) for d in np.shape(x))

    def expand_batch(self, x) -> np.ndarray:
        return np.expand_dims(x, axis=0)

    def subtract(self, a, b):
        return np.subtract(a, b)

    def add(self, a, b):
        return np.add(a, b)

    def abs(self, x):
        return np.abs(x)

    def square(self, x):
        return np.square(x)

    def sqrt(self, x):
        return np.sqrt(x)

    def mean(self, x) -> float:
        return float(np.mean(x, dtype=np.float64))

    def max(self, x) -> float:
        return float(np.max(x))

    def min(self, x) -> float:
        return float(np.min(x))

    def all_finite(self, x) -> bool:
        return bool(np.isfinite(x).all())

    def channel_mean(self, x):
        return np.mean(x, axis=-1, keepdims=True)

    def conv2d_same(self, gray, kernel: np.ndarray):
        plane = gray[..., 0]
        kh, kw = kernel.shape
        ph, pw = kh // 2, kw // 2
        padded = np.pad(plane, ((0, 0), (ph, ph), (pw, pw)), mode="constant")
        height, width = plane.shape[1], plane.shape[2]

        out = np.zeros_like(plane)
        for i in range(kh):
            for j in range(kw):
                weight = kernel[i, j]
                if weight == 0:
                    continue
                out += weight * padded[:, i:i + height, j:j + width]
        return out[..., np.newaxis]

    def slice_rows(self, x, start: int, stop: int):
        return x[:, start:stop]


# ============================================================================
# TensorFlow backend
# ============================================================================

class TensorFlowBackend(ArrayBackend):
    """TensorFlow ops pinned to one device."""

    def __init__(self, strategy: BackendStrategy):
        import tensorflow as tf

        self._tf = tf
        self.strategy = strategy

        if strategy == BackendStrategy.TENSORFLOW_GPU:
            gpus = tf.config.list_physical_devices("GPU")
            if not gpus:
                raise RuntimeError("No GPU device visible to TensorFlow.")
            self._device = "/GPU:0"
            # Kernels on a shared GPU context are not re-entrant across threads.
            self.supports_concurrency = False
        elif strategy == BackendStrategy.TENSORFLOW_CPU:
            self._device = "/CPU:0"
            self.supports_concurrency = True
        else:
            raise ValueError(f"TensorFlowBackend cannot run strategy '{strategy.value}'.")

        # Smoke test the device before committing to it.
        with tf.device(self._device):
            sample = tf.constant([[1.0, 2.0]]) * 2.0
            float(tf.reduce_sum(sample))

    @contextmanager
    def compute_scope(self) -> Iterator[None]:
        with super().compute_scope():
            with self._tf.device(self._device):
                yield

    def decode_image(self, data: bytes):
        tf = self._tf
        if not data:
            raise DecodeError("Image data is empty.")
        try:
            with tf.device(self._device):
                return tf.io.decode_image(bytes(data), channels=3, expand_animations=False)
        except (tf.errors.InvalidArgumentError, tf.errors.UnimplementedError) as exc:
            raise DecodeError("Image data is not a supported image format.") from exc

    def resize_bilinear(self, pixels, size: int = CANONICAL_SIZE):
        tf = self._tf
        with tf.device(self._device):
            resized = tf.image.resize(pixels, [int(size), int(size)], method="bilinear")
            normalized = tf.cast(resized, tf.float32) / PIXEL_SCALE
            normalized = tf.clip_by_value(normalized, 0.0, 1.0)
            return tf.expand_dims(normalized, axis=0)

    def asarray(self, x):
        return self._tf.convert_to_tensor(x, dtype=self._tf.float32)

    def shape(self, x) -> tuple[int, ...]:
        return tuple(int(d) for d in x.shape)

    def expand_batch(self, x):
        return self._tf.expand_dims(x, axis=0)

    def subtract(self, a, b):
        return self._tf.subtract(a, b)

    def add(self, a, b):
        return self._tf.add(a, b)

    def abs(self, x):
        return self._tf.abs(x)

    def square(self, x):
        return self._tf.square(x)

    def sqrt(self, x):
        return self._tf.sqrt(x)

    def mean(self, x) -> float:
        return float(self._tf.reduce_mean(x))

    def max(self, x) -> float:
        return float(self._tf.reduce_max(x))

    def min(self, x) -> float:
        return float(self._tf.reduce_min(x))

    def all_finite(self, x) -> bool:
        return bool(self._tf.reduce_all(self._tf.math.is_finite(x)))

    def channel_mean(self, x):
        return self._tf.reduce_mean(x, axis=-1, keepdims=True)

    def conv2d_same(self, gray, kernel: np.ndarray):
        tf = self._tf
        filters = tf.constant(kernel.reshape(kernel.shape[0], kernel.shape[1], 1, 1), dtype=tf.float32)
        return tf.nn.conv2d(gray, filters, strides=1, padding="SAME")

    def slice_rows(self, x, start: int, stop: int):
        return x[:, start:stop]


# ============================================================================
# Process-wide selection
# ============================================================================

_INIT_LOCK = threading.Lock()
_COMPUTE_LOCK = threading.RLock()
_active_backend: Optional[ArrayBackend] = None


def _create_backend(strategy: BackendStrategy) -> ArrayBackend:
    if strategy == BackendStrategy.NUMPY:
        return NumpyBackend()
    return TensorFlowBackend(strategy)


def ensure_initialized(preference: Optional[str] = None) -> ArrayBackend:
    """Select and cache the array backend for this process.

    Idempotent: after the first successful call, later calls return the
    cached backend and ignore *preference*.

    Args:
        preference: ``"auto"``, ``"tensorflow"``, or a concrete
            ``BackendStrategy`` value. Defaults to the configured setting.

    Returns:
        The active ``ArrayBackend``.

    Raises:
        BackendInitError: If every candidate strategy failed.
    """
    global _active_backend

    if _active_backend is not None:
        return _active_backend

    with _INIT_LOCK:
        if _active_backend is not None:
            return _active_backend

        if preference is None:
            preference = load_settings().backend

        candidates = resolve_strategies(preference)
        failures: list[str] = []
        for strategy in candidates:
            try:
                backend = _create_backend(strategy)
            except Exception as exc:
                logger.warning("Backend '%s' unavailable: %s", strategy.value, exc)
                failures.append(f"{strategy.value}: {exc}")
                continue

            _active_backend = backend
            logger.info(
                "Array backend initialized: %s (concurrent=%s)",
                strategy.value, backend.supports_concurrency,
            )
            return backend

        raise BackendInitError(
            "No suitable array backend available ("
            + "; ".join(failures) + ")."
        )


def active_strategy() -> Optional[BackendStrategy]:
    """Strategy of the cached backend, or ``None`` before initialization."""
    return _active_backend.strategy if _active_backend is not None else None


def reset_backend() -> None:
    """Forget the cached backend so the next entry point re-selects one.

    Intended for tests; production code initializes once per process.
    """
    global _active_backend
    with _INIT_LOCK:
        _active_backend = None
