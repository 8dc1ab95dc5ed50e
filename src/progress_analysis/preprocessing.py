"""
Image preprocessing: image reference -> canonical tensor.

Pipeline:
    1. Resolve the reference to encoded bytes (or take a decoded pixel grid)
    2. Decode into a uint8 (H, W, 3) RGB grid
    3. Bilinear resize to 224 x 224 (aspect ratio is not preserved)
    4. Cast to float and divide by 255
    5. Add a leading batch axis -> (1, 224, 224, 3)
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

import cv2
import numpy as np

from .backend import ArrayBackend, ensure_initialized
from .config import CANONICAL_SIZE
from .errors import DecodeError, FetchError

logger = logging.getLogger(__name__)

ImageFetcher = Callable[[Any], bytes]

_BYTES_TYPES = (bytes, bytearray, memoryview)


def _fetch_bytes(image_ref: Any, fetcher: Optional[ImageFetcher]) -> bytes:
    """Resolve an opaque reference to encoded image bytes via *fetcher*."""
    if fetcher is None:
        raise FetchError(
            f"Cannot resolve image reference of type {type(image_ref).__name__!r} "
            "without a fetcher."
        )
    try:
        data = fetcher(image_ref)
    except Exception as exc:
        raise FetchError(f"Failed to fetch image {image_ref!r}: {exc}") from exc

    if not isinstance(data, _BYTES_TYPES):
        raise FetchError(
            f"Fetcher returned {type(data).__name__!r} for {image_ref!r}, expected bytes."
        )
    return bytes(data)


def _pixels_to_rgb(pixels: np.ndarray) -> np.ndarray:
    """Coerce a decoded pixel grid to uint8 (H, W, 3) RGB.

    Accepts grayscale (H, W), RGB (H, W, 3) and RGBA (H, W, 4) grids, in
    either [0, 255] or [0, 1] float range.
    """
    if pixels.dtype != np.uint8:
        if pixels.size and float(pixels.max()) <= 1.0:
            pixels = (pixels * 255.0).round()
        pixels = np.clip(pixels, 0, 255).astype(np.uint8)

    if pixels.ndim == 2:
        return cv2.cvtColor(pixels, cv2.COLOR_GRAY2RGB)
    if pixels.ndim == 3 and pixels.shape[2] == 1:
        return cv2.cvtColor(pixels[..., 0], cv2.COLOR_GRAY2RGB)
    if pixels.ndim == 3 and pixels.shape[2] == 4:
        return cv2.cvtColor(pixels, cv2.COLOR_RGBA2RGB)
    if pixels.ndim == 3 and pixels.shape[2] == 3:
        return pixels

    raise DecodeError(f"Unsupported pixel grid shape {pixels.shape}.")


def to_canonical_tensor(
    image_ref: Any,
    fetcher: Optional[ImageFetcher] = None,
    backend: Optional[ArrayBackend] = None,
):
    """Turn an image reference into a (1, 224, 224, 3) tensor with values in [0, 1].

    Args:
        image_ref: Encoded image bytes, a decoded ``np.ndarray`` pixel grid,
            or an opaque reference that *fetcher* resolves to bytes.
        fetcher: Caller-supplied resolver for opaque references.
        backend: Array backend; defaults to the process-wide one.

    Returns:
        Backend-native canonical tensor.

    Raises:
        FetchError: If the reference cannot be resolved.
        DecodeError: If the bytes are not a supported image format.
    """
    backend = backend or ensure_initialized()

    pixels = data = None
    if isinstance(image_ref, np.ndarray):
        if image_ref.size == 0:
            raise DecodeError("Pixel grid is empty.")
        pixels = _pixels_to_rgb(image_ref)
    else:
        # Caller I/O stays outside the compute scope.
        data = image_ref if isinstance(image_ref, _BYTES_TYPES) else _fetch_bytes(image_ref, fetcher)

    with backend.compute_scope():
        if pixels is None:
            pixels = backend.decode_image(data)

        tensor = backend.resize_bilinear(pixels, CANONICAL_SIZE)
        logger.debug(
            "Preprocessed image %s -> %s",
            tuple(int(d) for d in pixels.shape), backend.shape(tensor),
        )
        return tensor


@contextmanager
def canonical_tensor(
    image_ref: Any,
    fetcher: Optional[ImageFetcher] = None,
    backend: Optional[ArrayBackend] = None,
) -> Iterator[Any]:
    """Scoped ``to_canonical_tensor``: the tensor is dropped when the block exits."""
    tensor = to_canonical_tensor(image_ref, fetcher=fetcher, backend=backend)
    try:
        yield tensor
    finally:
        del tensor
