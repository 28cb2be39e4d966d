"""RGBA image buffers and the pixel operations applied by the processing nodes."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import numpy as np
from PIL import Image

__all__ = [
    "ImageBuffer",
    "ImageError",
    "load_image",
    "save_image",
    "adjust_brightness_contrast",
    "split_channels",
    "gaussian_kernel",
    "gaussian_blur",
    "compute_histogram",
    "otsu_threshold",
]

_SAVE_FORMATS = {".png": "PNG", ".jpg": "JPEG", ".bmp": "BMP"}


class ImageError(OSError):
    """Raised when an image cannot be read or decoded."""


@dataclass(eq=False)
class ImageBuffer:
    """An 8-bit RGBA image held as an array of shape (height, width, 4)."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(
                f"expected an array of shape (height, width, 4), got {pixels.shape}"
            )
        self.pixels = np.ascontiguousarray(pixels, dtype=np.uint8)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def copy(self) -> "ImageBuffer":
        """Return an independent copy of this buffer."""
        return ImageBuffer(self.pixels.copy())

    @classmethod
    def from_array(cls, array) -> "ImageBuffer":
        """Build a buffer from an array of shape (height, width, 4); the data is copied."""
        return cls(np.array(array, dtype=np.uint8, copy=True))

    def to_array(self) -> np.ndarray:
        """Return a copy of the pixels as a uint8 array of shape (height, width, 4)."""
        return self.pixels.copy()


def load_image(path) -> ImageBuffer:
    """Read an image file and decode it to RGBA."""
    try:
        with Image.open(path) as image:
            rgba = image.convert("RGBA")
    except (OSError, ValueError) as exc:
        raise ImageError(f"cannot load image {path!s}: {exc}") from exc
    return ImageBuffer(np.asarray(rgba, dtype=np.uint8))


def save_image(buffer: ImageBuffer, path) -> None:
    """Write a buffer as PNG, JPEG or BMP, chosen by the '.png', '.jpg' or '.bmp' suffix."""
    target = Path(path)
    fmt = _SAVE_FORMATS.get(target.suffix)
    if fmt is None:
        raise ValueError(f"unsupported image extension: {target.suffix!r}")
    image = Image.fromarray(buffer.pixels, mode="RGBA")
    if fmt == "JPEG":
        image = image.convert("RGB")
    image.save(target, format=fmt)


def adjust_brightness_contrast(
    buffer: ImageBuffer, brightness: float, contrast: float
) -> ImageBuffer:
    """Shift brightness (-100..100) and scale contrast around mid-grey; alpha is kept."""
    out = buffer.pixels.copy()
    color = out[..., :3].astype(np.float32)
    color += np.float32(brightness) * np.float32(2.55)
    color /= np.float32(255.0)
    color = (color - np.float32(0.5)) * np.float32(contrast) + np.float32(0.5)
    color *= np.float32(255.0)
    np.clip(color, 0.0, 255.0, out=color)
    out[..., :3] = color.astype(np.uint8)
    return ImageBuffer(out)


def split_channels(
    buffer: ImageBuffer, grey_flags: Sequence[bool]
) -> tuple[ImageBuffer, ImageBuffer, ImageBuffer, ImageBuffer]:
    """Split into red, green, blue and alpha images.

    A set grey flag copies the channel into all colour components, giving a
    greyscale view. The alpha image's own alpha follows the blue flag.
    """
    flags = [bool(flag) for flag in grey_flags]
    if len(flags) != 4:
        raise ValueError("grey_flags must hold exactly four values")

    src = buffer.pixels
    r, g, b, a = (src[..., i] for i in range(4))
    zeros = np.zeros_like(r)
    full = np.full_like(r, 255)

    def pick(flag: bool, channel: np.ndarray) -> np.ndarray:
        return channel if flag else zeros

    red = np.stack([r, pick(flags[0], r), pick(flags[0], r), a], axis=-1)
    green = np.stack([pick(flags[1], g), g, pick(flags[1], g), a], axis=-1)
    blue = np.stack([pick(flags[2], b), pick(flags[2], b), b, a], axis=-1)
    alpha = np.stack(
        [pick(flags[3], a), pick(flags[3], a), pick(flags[3], a), a if flags[2] else full],
        axis=-1,
    )
    return ImageBuffer(red), ImageBuffer(green), ImageBuffer(blue), ImageBuffer(alpha)


def gaussian_kernel(radius: int) -> np.ndarray:
    """Return a normalised Gaussian kernel of length 2*radius+1 with sigma radius/2."""
    if radius < 0:
        raise ValueError("radius must not be negative")
    if radius == 0:
        return np.ones(1, dtype=np.float32)
    offsets = np.arange(-radius, radius + 1, dtype=np.float32)
    sigma = np.float32(radius / 2.0)
    kernel = np.exp(-(offsets * offsets) / (np.float32(2.0) * sigma * sigma)).astype(
        np.float32
    )
    return kernel / kernel.sum(dtype=np.float32)


def gaussian_blur(buffer: ImageBuffer, radius: int, horizontal: bool) -> ImageBuffer:
    """Blur all four channels along one axis, repeating edge pixels past the border."""
    kernel = gaussian_kernel(radius)
    src = buffer.pixels.astype(np.float32)
    axis = 1 if horizontal else 0
    pad = [(0, 0), (0, 0), (0, 0)]
    pad[axis] = (radius, radius)
    padded = np.pad(src, pad, mode="edge")
    length = src.shape[axis]

    total = np.zeros_like(src)
    for offset, weight in enumerate(kernel):
        window = padded[:, offset : offset + length] if horizontal else padded[offset : offset + length]
        total += weight * window
    np.clip(total, 0.0, 255.0, out=total)
    return ImageBuffer(total.astype(np.uint8))


def compute_histogram(buffer: ImageBuffer) -> tuple[np.ndarray, float]:
    """Histogram of the red channel over 256 bins, with its largest bin count."""
    counts = np.bincount(buffer.pixels[..., 0].ravel(), minlength=256).astype(np.float32)
    max_value = float(counts.max()) if counts.size else 0.0
    return counts, max_value


def otsu_threshold(buffer: ImageBuffer) -> int:
    """Otsu's threshold over the mean of the R, G and B channels."""
    rgb = buffer.pixels[..., :3].astype(np.int32)
    gray = rgb.sum(axis=-1) // 3
    histogram = np.bincount(gray.ravel(), minlength=256)
    total = int(gray.size)

    weighted_sum = float(sum(t * int(count) for t, count in enumerate(histogram)))
    sum_back = 0.0
    weight_back = 0.0
    max_variance = 0.0
    threshold = 0

    for t, count in enumerate(histogram):
        weight_back += int(count)
        if weight_back == 0:
            continue
        weight_fore = total - weight_back
        if weight_fore == 0:
            break
        sum_back += t * int(count)
        mean_back = sum_back / weight_back
        mean_fore = (weighted_sum - sum_back) / weight_fore
        variance = weight_back * weight_fore * (mean_back - mean_fore) ** 2
        if variance > max_variance:
            max_variance = variance
            threshold = t
    return threshold