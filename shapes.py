# shapes.py
"""
Procedural target shapes for the particle swarm.

This module defines the closed set of shapes the swarm can morph into and
the generators that turn a shape descriptor into a flat point cloud of
exactly 3 * count coordinates. Generation is a pure function of the shape,
the particle count and the injected random source.
"""
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

import numpy as np

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
import pygame

from constants import (
    DEFAULT_TEXT, SPHERE_RADIUS, RING_MAJOR_RADIUS, RING_MINOR_RADIUS,
    RING_JITTER, STAR_BASE_RADIUS, STAR_SPIKES, STAR_SPIKE_AMPLITUDE,
    HEART_SCALE, TEXT_BITMAP_SIZE, TEXT_FONT_SIZE, TEXT_SAMPLE_STRIDE,
    TEXT_BRIGHTNESS_THRESHOLD, TEXT_WORLD_HALF_EXTENT, TEXT_DEPTH_JITTER
)
from utils import RandomSource

# --- Data Contracts ---
#
# generate_shape(shape, count: int, rng: RandomSource,
#                rasterizer: Optional[Rasterizer] = None) -> np.ndarray:
#   - Inputs:
#     - shape: ShapeDescriptor, ShapeType or shape name (see parse_shape).
#     - count: number of particles, >= 0.
#     - rng: the engine's random source.
#     - rasterizer: text -> monochrome bitmap, used by TEXT only.
#   - Outputs: float64 array of shape (3 * count,), x/y/z interleaved.
#   - Invariants: every value is finite. Degenerate input (count 0, empty
#     or unrenderable text) falls back to points at the origin.
#
# points_from_bitmap(bitmap: np.ndarray, count: int, rng: RandomSource) -> np.ndarray:
#   - Host-independent text extraction: stride scan, brightness threshold,
#     world mapping, modulo resample to `count`, depth jitter.

Rasterizer = Callable[[str, int], np.ndarray]

# A -90 degree turn about the x axis: the heart is built with its profile
# along z and this stands it upright along y.
_HEART_UPRIGHT = np.array([
    [1.0, 0.0, 0.0],
    [0.0, 0.0, 1.0],
    [0.0, -1.0, 0.0],
])


class ShapeType(Enum):
    SPHERE = "SPHERE"
    RING = "RING"
    STAR = "STAR"
    HEART = "HEART"
    TEXT = "TEXT"


class InvalidShapeError(ValueError):
    """Raised when a value does not identify a known shape."""


@dataclass(frozen=True)
class ShapeDescriptor:
    """
    Identifies a target shape. Only TEXT carries a payload: the literal
    string to render.
    """
    kind: ShapeType
    text: str = ""

    def __post_init__(self):
        if not isinstance(self.kind, ShapeType):
            raise InvalidShapeError(f"Unknown shape kind: {self.kind!r}")
        if not isinstance(self.text, str):
            raise InvalidShapeError(f"Shape text must be a string, got {type(self.text).__name__}.")
        if self.kind is not ShapeType.TEXT and self.text:
            raise InvalidShapeError(f"Shape {self.kind.value} does not carry text.")

    def __str__(self):
        if self.kind is ShapeType.TEXT:
            return f"TEXT({self.text!r})"
        return self.kind.value


SPHERE = ShapeDescriptor(ShapeType.SPHERE)
RING = ShapeDescriptor(ShapeType.RING)
STAR = ShapeDescriptor(ShapeType.STAR)
HEART = ShapeDescriptor(ShapeType.HEART)


def text_shape(text: str) -> ShapeDescriptor:
    return ShapeDescriptor(ShapeType.TEXT, text)


def parse_shape(value: Union[ShapeDescriptor, ShapeType, str],
                default_text: str = DEFAULT_TEXT) -> ShapeDescriptor:
    """
    Normalizes a shape identifier into a ShapeDescriptor.

    Accepts a descriptor, a ShapeType, or a case-insensitive name such as
    "ring", "TEXT" (rendered with `default_text`) or "TEXT:hello".

    Raises:
        InvalidShapeError: If the value names no known shape.
    """
    if isinstance(value, ShapeDescriptor):
        return value
    if isinstance(value, ShapeType):
        if value is ShapeType.TEXT:
            return text_shape(default_text)
        return ShapeDescriptor(value)
    if isinstance(value, str):
        name, sep, text = value.partition(":")
        try:
            kind = ShapeType[name.strip().upper()]
        except KeyError:
            raise InvalidShapeError(f"Unknown shape: {value!r}") from None
        if kind is ShapeType.TEXT:
            return text_shape(text if sep else default_text)
        if sep:
            raise InvalidShapeError(f"Shape {kind.value} does not carry text: {value!r}")
        return ShapeDescriptor(kind)
    raise InvalidShapeError(f"Unknown shape: {value!r}")


def _finalize(points: np.ndarray) -> np.ndarray:
    """Flattens an (N, 3) cloud, moving any non-finite point to the origin."""
    bad = ~np.isfinite(points).all(axis=1)
    if bad.any():
        logging.warning(f"{int(bad.sum())} generated points were not finite; moved to the origin.")
        points[bad] = 0.0
    return np.ascontiguousarray(points, dtype=np.float64).reshape(-1)


def _sphere(count: int, rng: RandomSource) -> np.ndarray:
    # Inverse-CDF on the polar angle keeps the density uniform over the surface.
    theta = rng.uniform(0.0, 2.0 * np.pi, count)
    phi = np.arccos(np.clip(2.0 * rng.uniform(0.0, 1.0, count) - 1.0, -1.0, 1.0))
    return np.column_stack((
        SPHERE_RADIUS * np.sin(phi) * np.cos(theta),
        SPHERE_RADIUS * np.sin(phi) * np.sin(theta),
        SPHERE_RADIUS * np.cos(phi),
    ))


def _ring(count: int, rng: RandomSource) -> np.ndarray:
    u = rng.uniform(0.0, 2.0 * np.pi, count)
    v = rng.uniform(0.0, 2.0 * np.pi, count)
    tube = RING_MAJOR_RADIUS + RING_MINOR_RADIUS * np.cos(v)
    points = np.column_stack((
        tube * np.cos(u),
        tube * np.sin(u),
        RING_MINOR_RADIUS * np.sin(v),
    ))
    return points + rng.uniform(-RING_JITTER, RING_JITTER, (count, 3))


def _star(count: int, rng: RandomSource) -> np.ndarray:
    u = rng.uniform(0.0, 2.0 * np.pi, count)
    v = rng.uniform(0.0, np.pi, count)
    r = STAR_BASE_RADIUS + STAR_SPIKE_AMPLITUDE * (np.sin(STAR_SPIKES * u) * np.sin(STAR_SPIKES * v)) ** 2
    return np.column_stack((
        r * np.sin(v) * np.cos(u),
        r * np.sin(v) * np.sin(u),
        r * np.cos(v),
    ))


def _heart(count: int, rng: RandomSource) -> np.ndarray:
    theta = rng.uniform(0.0, 2.0 * np.pi, count)
    phi = rng.uniform(0.0, np.pi, count)
    shell = 16.0 * HEART_SCALE * np.sin(phi) ** 3
    profile = HEART_SCALE * (
        13.0 * np.cos(phi) - 5.0 * np.cos(2.0 * phi)
        - 2.0 * np.cos(3.0 * phi) - np.cos(4.0 * phi)
    )
    points = np.column_stack((shell * np.cos(theta), shell * np.sin(theta), profile))
    return points @ _HEART_UPRIGHT.T


_GENERATORS = {
    ShapeType.SPHERE: _sphere,
    ShapeType.RING: _ring,
    ShapeType.STAR: _star,
    ShapeType.HEART: _heart,
}


def render_text_bitmap(text: str, size: int = TEXT_BITMAP_SIZE,
                       font_size: int = TEXT_FONT_SIZE) -> np.ndarray:
    """
    Rasterizes `text` in a bold font, centered on a black square canvas.

    Returns:
        np.ndarray: uint8 array of shape (size, size), rows first. Blank
        when the text is empty or the font cannot render it.
    """
    bitmap = np.zeros((size, size), dtype=np.uint8)
    if not text:
        return bitmap

    try:
        if not pygame.font.get_init():
            pygame.font.init()
        font = pygame.font.Font(None, font_size)
        font.set_bold(True)
        glyphs = font.render(text, True, (255, 255, 255), (0, 0, 0))
    except (pygame.error, ValueError) as e:
        logging.warning(f"Could not rasterize text {text!r}: {e}. Using a blank bitmap.")
        return bitmap

    canvas = pygame.Surface((size, size))
    canvas.fill((0, 0, 0))
    canvas.blit(glyphs, glyphs.get_rect(center=(size // 2, size // 2)))
    # surfarray is indexed [x, y]
    return pygame.surfarray.array3d(canvas)[:, :, 0].T.astype(np.uint8)


def points_from_bitmap(bitmap: np.ndarray, count: int, rng: RandomSource) -> np.ndarray:
    """
    Extracts a text point cloud of exactly `count` points from a bitmap.

    Every TEXT_SAMPLE_STRIDE-th pixel on each axis brighter than the
    threshold becomes a point in the [-5, 5] square (y flipped, since bitmap
    rows grow downward). The lit points are repeated cyclically up to
    `count` and each copy gets its own depth jitter.
    """
    points = np.zeros((count, 3), dtype=np.float64)
    if count == 0:
        return points.reshape(-1)

    bitmap = np.asarray(bitmap)
    if bitmap.ndim != 2 or bitmap.size == 0:
        logging.warning(f"Text bitmap has unusable shape {bitmap.shape}; using fallback points.")
        return points.reshape(-1)

    height, width = bitmap.shape
    stride = TEXT_SAMPLE_STRIDE
    rows, cols = np.nonzero(bitmap[::stride, ::stride] > TEXT_BRIGHTNESS_THRESHOLD)
    if rows.size == 0:
        logging.debug("Text bitmap has no lit pixels; using fallback points.")
        return points.reshape(-1)

    extent = 2.0 * TEXT_WORLD_HALF_EXTENT
    xs = (cols * stride / width - 0.5) * extent
    ys = -(rows * stride / height - 0.5) * extent

    source = np.arange(count) % rows.size
    points[:, 0] = xs[source]
    points[:, 1] = ys[source]
    points[:, 2] = rng.uniform(-TEXT_DEPTH_JITTER, TEXT_DEPTH_JITTER, count)
    return _finalize(points)


def generate_shape(shape: Union[ShapeDescriptor, ShapeType, str], count: int,
                   rng: RandomSource, rasterizer: Optional[Rasterizer] = None) -> np.ndarray:
    """
    Generates the flat target point cloud for `shape`.

    Args:
        shape: The shape to generate.
        count (int): Number of particles; the result has 3 * count values.
        rng (RandomSource): Source for all sampling and jitter.
        rasterizer (Rasterizer, optional): Text to bitmap facility used by
            TEXT. Defaults to render_text_bitmap.

    Raises:
        InvalidShapeError: If `shape` does not identify a known shape.
        ValueError: If `count` is negative.
    """
    shape = parse_shape(shape)
    count = int(count)
    if count < 0:
        raise ValueError(f"Particle count must be non-negative, got {count}.")
    if count == 0:
        return np.zeros(0, dtype=np.float64)

    if shape.kind is ShapeType.TEXT:
        rasterize = rasterizer or render_text_bitmap
        bitmap = rasterize(shape.text, TEXT_BITMAP_SIZE)
        return points_from_bitmap(bitmap, count, rng)

    points = _GENERATORS[shape.kind](count, rng)
    logging.debug(f"Generated {count} points for shape {shape}.")
    return _finalize(points)
