import sys

import numpy as np


Threshold = 1e-14
LThreshold = 1e-10
DBL_EPSILON = sys.float_info.epsilon
DBL_MAX = sys.float_info.max
DBL_MIN = sys.float_info.min

# Voigt ordering: xx, yy, zz, xy, yz, xz
VOIGT_SIZE = 6
VOIGT_SHEAR = slice(3, 6)
ZEROVEC6f = np.zeros(VOIGT_SIZE)
EYE = np.array([1., 1., 1., 0., 0., 0.])
EYE2D = np.array([1., 1., 0., 0., 0., 0.])

NEWTON_MAX_ITERATION = 20
