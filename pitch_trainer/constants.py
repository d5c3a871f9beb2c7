"""
Shared constants for pitch detection and the pitch game.
"""

# Audio capture
SAMPLE_RATE = 44100
BUFFER_SIZE = 2048

# The direct NSDF is O(N^2), keep analysis windows short
MAX_INPUT_LENGTH = 16384

# Volume gating (dBFS), applied by callers, not by the detector
DEFAULT_MIN_VOLUME_DECIBELS = -60.0
SILENCE_FLOOR_DB = -120.0

# Game defaults
MIN_CLARITY_PERCENT = 80.0
TARGET_MIN_HZ = 200
TARGET_MAX_HZ = 800
MATCH_TOLERANCE_HZ = 10.0
TARGET_FPS = 30.0
