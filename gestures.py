# gestures.py
"""
Turns tracked hand landmarks into engine input.

The landmark layout is MediaPipe's 21-point hand model (0 = wrist, then
four points per digit from thumb to pinky). These helpers are pure: they
read a landmark array and return a shape request or a world-space point
for Engine.morph_to / Engine.set_interaction.
"""
import math
import numpy as np
from typing import Optional, Tuple

from constants import (
    DEFAULT_TEXT, CAMERA_FOV_DEGREES, CAMERA_DISTANCE, FINGER_EXTENSION_RATIO,
    HAND_SCALE_GAIN, HAND_SCALE_MIN, HAND_SCALE_MAX
)
from shapes import ShapeDescriptor, SPHERE, RING, STAR, HEART, text_shape

WRIST = 0
MIDDLE_MCP = 9
MIDDLE_TIP = 12

# (tip, middle joint) landmark indices per digit
THUMB = (4, 2)
INDEX = (8, 6)
MIDDLE = (12, 10)
RING_FINGER = (16, 14)
PINKY = (20, 18)


def _as_landmarks(landmarks) -> np.ndarray:
    points = np.asarray(landmarks, dtype=np.float64)
    if points.ndim != 2 or points.shape[0] < 21 or points.shape[1] not in (2, 3):
        raise ValueError(f"Expected 21 hand landmarks with 2 or 3 coordinates, got shape {points.shape}.")
    return points


def is_extended(landmarks, digit: Tuple[int, int]) -> bool:
    """A digit is extended when its tip is clearly further from the wrist than its middle joint."""
    points = _as_landmarks(landmarks)
    tip, joint = digit
    wrist = points[WRIST]
    return bool(np.linalg.norm(points[tip] - wrist) > np.linalg.norm(points[joint] - wrist) * FINGER_EXTENSION_RATIO)


def classify_gesture(landmarks, text: str = DEFAULT_TEXT) -> Optional[ShapeDescriptor]:
    """
    Maps a hand pose to a target shape.

    fist -> RING, open palm -> SPHERE, victory sign -> TEXT,
    pointing index -> STAR, thumbs up -> HEART. Returns None for any
    other pose, which should not trigger a morph.
    """
    points = _as_landmarks(landmarks)
    thumb = is_extended(points, THUMB)
    index = is_extended(points, INDEX)
    middle = is_extended(points, MIDDLE)
    ring = is_extended(points, RING_FINGER)
    pinky = is_extended(points, PINKY)

    if not (thumb or index or middle or ring or pinky):
        return RING
    if index and middle and ring and pinky:
        return SPHERE
    if index and middle and not ring and not pinky:
        return text_shape(text)
    if index and not middle and not ring and not pinky:
        return STAR
    if thumb and not index and not middle and not ring and not pinky:
        return HEART
    return None


def hand_center(landmarks, aspect: float, fov_degrees: float = CAMERA_FOV_DEGREES,
                camera_distance: float = CAMERA_DISTANCE) -> np.ndarray:
    """
    Projects the palm (middle-finger knuckle) onto the world plane z = 0.

    Landmarks are in normalized image coordinates; x is mirrored so the
    point follows the hand as seen in a selfie view.
    """
    points = _as_landmarks(landmarks)
    visible_height = 2.0 * math.tan(math.radians(fov_degrees) / 2.0) * camera_distance
    visible_width = visible_height * aspect
    palm = points[MIDDLE_MCP]
    return np.array([
        (0.5 - palm[0]) * visible_width,
        (0.5 - palm[1]) * visible_height,
        0.0,
    ])


def hand_scale(landmarks) -> float:
    """Scene scale from the image-plane span between wrist and middle fingertip."""
    points = _as_landmarks(landmarks)
    span = float(np.linalg.norm(points[WRIST, :2] - points[MIDDLE_TIP, :2]))
    return min(HAND_SCALE_MAX, max(HAND_SCALE_MIN, span * HAND_SCALE_GAIN))
