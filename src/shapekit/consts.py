"""Central module containing numeric tolerances and algorithm defaults"""

from __future__ import annotations

###############################################################################
# Arc length, dashing and flattening
###############################################################################

# Adaptive subdivision stops when the midpoint deviates less than these
DISTANCE_EPSILON: float = 1e-10
CURVE_EPSILON: float = 1e-8
ARC_LENGTH_MAX_LEVELS: int = 15
DASH_MAX_DEPTH: int = 14

# Piecewise-linear approximation (used for transforms and boolean operations)
PIECEWISE_MIN_LEVELS: int = 0
PIECEWISE_MAX_LEVELS: int = 10
CAG_MIN_LEVELS: int = 2
CAG_MAX_LEVELS: int = 8
CAG_DISTANCE_EPSILON: float = 1e-4
CAG_CURVE_EPSILON: float = 1e-5
# Clipped pieces whose midpoint is this close to the clipper outline are boundary pieces
CLIP_BOUNDARY_EPSILON: float = 1e-9

# Number of polyline vertices used to approximate an offset curve
OFFSET_SAMPLES: int = 32

###############################################################################
# Containment and topology
###############################################################################

CONTAINMENT_MAX_ATTEMPTS: int = 5
VERTEX_COINCIDENCE_EPSILON: float = 1e-9
CLOSING_EPSILON: float = 1e-9
SEGMENTS_CONTINUITY_EPSILON: float = 1e-6
DASH_JOIN_EPSILON: float = 1e-5
CLOSEST_POINT_THRESHOLD: float = 1e-7
CLOSEST_POINT_FILTER_EPSILON: float = 1e-11

###############################################################################
# Sampling and output
###############################################################################

APPROXIMATE_SAMPLES: int = 10000
