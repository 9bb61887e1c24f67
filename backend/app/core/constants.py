"""Shared tracking constants.

Centralizes the thresholds used by the activity and health scoring so we can
document and adjust them in one place.
"""

# Mean Earth radius used by the haversine distance (meters)
EARTH_RADIUS_M = 6_371_000.0

# Number of recent positions kept per tracking session
HISTORY_SIZE = 50

# Seconds credited to the active/rest bucket per position update.
# Matches the emission cadence of the live tracker.
TIME_QUANTUM_S = 30.0

# Minimum speed considered "moving" for active time (m/s)
ACTIVE_SPEED_MPS = 0.05

# Below this much accumulated time (active + rest) we only report "monitoring"
MONITORING_MIN_SECONDS = 300.0

# Health score brackets, evaluated in order; bounds are exclusive.
# (low, high, points) — high=None means "no upper bound".
DISTANCE_BRACKETS_M = [(50.0, 5000.0, 30), (20.0, None, 20)]
DISTANCE_FALLBACK_POINTS = 10

ACTIVITY_RATIO_BRACKETS = [(0.2, 0.6, 30), (0.1, None, 20)]
ACTIVITY_RATIO_FALLBACK_POINTS = 10

SPEED_BRACKETS_MPS = [(0.1, 2.0, 25), (0.05, None, 15)]
SPEED_FALLBACK_POINTS = 5

# Bonus when any of the last N positions moved faster than the threshold
MOVEMENT_WINDOW = 10
MOVEMENT_SPEED_MPS = 0.1
MOVEMENT_BONUS_POINTS = 15

# Score → label cut-offs, highest first
HEALTH_LABEL_THRESHOLDS = [(85, "excellent"), (70, "good"), (50, "fair")]

# Average speed cut-offs for the activity level tag (m/s)
HIGH_ACTIVITY_SPEED_MPS = 0.2
MODERATE_ACTIVITY_SPEED_MPS = 0.05

# Message sent to the foster parent when an admin records tracking data
TRACKING_NOTIFICATION_MESSAGE = "New tracking data available for your fostered pet"
