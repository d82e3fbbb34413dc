# constants.py
"""
Application-level constants.

These values are static and do not change between simulation runs.
They are fundamental to the engine's framework, such as shape dimensions,
bitmap sampling settings, or the default physics settings used when the
experimental configuration leaves a parameter out.
"""

# Engine defaults
DEFAULT_PARTICLE_COUNT = 16000
DEFAULT_SEED = 42
DEFAULT_INITIAL_SHAPE = "SPHERE"
# Text rendered when a TEXT shape is requested without an explicit string.
DEFAULT_TEXT = "Mok"
# Frame time assumed before the first valid dt has been observed.
DEFAULT_FRAME_DT = 1.0 / 60.0

# --- Physics defaults ---
DEFAULT_STIFFNESS = 3.0
# Velocity multiplier per frame. Must lie strictly between 0 and 1.
DEFAULT_DAMPING = 0.92
DEFAULT_INTERACTION_RADIUS = 4.0
DEFAULT_WIND_FORCE_MULTIPLIER = 15.0
# Interaction point speed (world units / s) below which no wind is produced.
DEFAULT_WIND_ACTIVATION_SPEED = 5.0
# Half-range of the per-axis turbulence added to particles caught in the wind.
DEFAULT_WIND_NOISE = 0.5
# Squared wind magnitude below which the wind pass is skipped.
DEFAULT_WIND_EPSILON_SQ = 0.1
# Half-range of the per-axis explosion impulse applied on a morph.
DEFAULT_EXPLOSION_RANGE = 10.0
DEFAULT_DT_CLAMP = 0.1

# --- Shape dimensions (world units) ---
SPHERE_RADIUS = 4.0

RING_MAJOR_RADIUS = 3.5
RING_MINOR_RADIUS = 1.2
RING_JITTER = 0.1

STAR_BASE_RADIUS = 3.5
STAR_SPIKES = 5
STAR_SPIKE_AMPLITUDE = 1.5

HEART_SCALE = 0.25

# --- Text bitmap sampling ---
TEXT_BITMAP_SIZE = 256
TEXT_FONT_SIZE = 60
# Only every TEXT_SAMPLE_STRIDE-th pixel on each axis is inspected.
TEXT_SAMPLE_STRIDE = 2
TEXT_BRIGHTNESS_THRESHOLD = 128
# Bitmap coordinates are mapped into [-TEXT_WORLD_HALF_EXTENT, TEXT_WORLD_HALF_EXTENT].
TEXT_WORLD_HALF_EXTENT = 5.0
TEXT_DEPTH_JITTER = 0.5

# --- Hand landmark mapping ---
CAMERA_FOV_DEGREES = 75.0
CAMERA_DISTANCE = 12.0
# A digit counts as extended when its tip is this much further from the
# wrist than its middle joint.
FINGER_EXTENSION_RATIO = 1.2
# Scene scale follows the wrist to middle-fingertip span in image units.
HAND_SCALE_GAIN = 4.0
HAND_SCALE_MIN = 0.5
HAND_SCALE_MAX = 2.5
