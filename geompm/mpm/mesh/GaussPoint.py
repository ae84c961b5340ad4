import math
from itertools import product

import numpy as np


class GaussPointInRectangle:
    def __init__(self, gauss_point=1, dimemsion=3):
        self.ngp = []
        self.dim = int(dimemsion)
        self.determine_gauss_point(gauss_point)
        self.gpcoords = None
        self.weight = None

    def determine_gauss_point(self, gauss_point):
        if isinstance(gauss_point, int):
            self.ngp = [gauss_point] * self.dim
        elif isinstance(gauss_point, (list, tuple, np.ndarray)):
            if len(list(gauss_point)) != self.dim:
                raise RuntimeError(f"The dimension of gauss point should be {self.dim}")
            self.ngp = [int(n) for n in gauss_point]
        else:
            raise ValueError("Input parameter /gauss_point/ should be int, tuple, list or np.ndarray")
        for n in self.ngp:
            if n not in (1, 2, 3):
                raise ValueError("Unsuported gauss point number")

    def get_gauss_point_number(self):
        return int(np.prod(self.ngp))

    def create_gauss_point_1d(self, ngp):
        # columns: weight, coordinate
        gpcoords = np.zeros((ngp, 2))
        if ngp == 1:
            gpcoords[0] = [2., 0.]
        elif ngp == 2:
            gpcoords[0] = [1., -math.sqrt(1. / 3.)]
            gpcoords[1] = [1., math.sqrt(1. / 3.)]
        elif ngp == 3:
            gpcoords[0] = [5. / 9., -math.sqrt(0.6)]
            gpcoords[1] = [8. / 9., 0.]
            gpcoords[2] = [5. / 9., math.sqrt(0.6)]
        return gpcoords

    def create_gauss_point(self):
        rules = [self.create_gauss_point_1d(n) for n in self.ngp]
        gauss_point_num = self.get_gauss_point_number()
        self.gpcoords = np.zeros((gauss_point_num, self.dim))
        self.weight = np.zeros(gauss_point_num)
        # first direction varies fastest
        for gpnum, index in enumerate(product(*[range(n) for n in reversed(self.ngp)])):
            index = index[::-1]
            self.weight[gpnum] = np.prod([rules[d][index[d], 0] for d in range(self.dim)])
            self.gpcoords[gpnum] = [rules[d][index[d], 1] for d in range(self.dim)]
        return self.gpcoords, self.weight
