import numpy as np

from geompm.mpm.elements.ElementBase import ElementBase


def lagrange_quadratic(s, sn):
    # 1D quadratic Lagrange polynomial of the node at sn in {-1, 0, 1}
    return np.where(sn == 0, 1. - s * s, 0.5 * s * (s + sn))


def grad_lagrange_quadratic(s, sn):
    return np.where(sn == 0, -2. * s, s + 0.5 * sn)


class QuadrilateralElement(ElementBase):
    """
    Quadrilateral elements of 4 (bilinear), 8 (serendipity) and 9 (Lagrange) nodes

          3      6      2
           0_ _ _0_ _ _0
           |           |
         7 0     0 8   0 5
           |           |
           0_ _ _0_ _ _0
          0      4      1
    """
    dimension = 2
    corner_nfunctions = 4

    def __init__(self, nnodes=4) -> None:
        if nnodes not in (4, 8, 9):
            raise RuntimeError(f"Keyword:: /nnodes/ Quadrilateral element with {nnodes} nodes is not supported. Only [4, 8, 9] is valid")
        self.nfunctions = nnodes
        self.name = f"ED2Q{nnodes}"
        super().__init__()

    def unit_cell_coordinates(self):
        coords = [[-1., -1.], [1., -1.], [1., 1.], [-1., 1.],
                  [0., -1.], [1., 0.], [0., 1.], [-1., 0.],
                  [0., 0.]]
        return coords[:self.nfunctions]

    def sides_indices(self):
        return np.array([[0, 1], [1, 2], [2, 3], [3, 0]])

    def corner_indices(self):
        return np.array([0, 1, 2, 3])

    def inhedron_indices(self):
        return np.array([[0, 1], [1, 2], [2, 3], [3, 0]])

    def shapefn(self, xi):
        xi = self.check_local_coordinate(xi)
        xn, yn = self.local_coordinates[:, 0], self.local_coordinates[:, 1]
        x, y = xi
        if self.nfunctions == 4:
            return 0.25 * (1. + x * xn) * (1. + y * yn)
        elif self.nfunctions == 8:
            corner = 0.25 * (1. + x * xn) * (1. + y * yn) * (x * xn + y * yn - 1.)
            xside = 0.5 * (1. - x * x) * (1. + y * yn)
            yside = 0.5 * (1. + x * xn) * (1. - y * y)
            return np.where((xn != 0.) & (yn != 0.), corner, np.where(xn == 0., xside, yside))
        return lagrange_quadratic(x, xn) * lagrange_quadratic(y, yn)

    def grad_shapefn(self, xi):
        xi = self.check_local_coordinate(xi)
        xn, yn = self.local_coordinates[:, 0], self.local_coordinates[:, 1]
        x, y = xi
        grad = np.zeros((self.nfunctions, 2))
        if self.nfunctions == 4:
            grad[:, 0] = 0.25 * xn * (1. + y * yn)
            grad[:, 1] = 0.25 * yn * (1. + x * xn)
        elif self.nfunctions == 8:
            is_corner = (xn != 0.) & (yn != 0.)
            dcorner_x = 0.25 * xn * (1. + y * yn) * (2. * x * xn + y * yn)
            dcorner_y = 0.25 * yn * (1. + x * xn) * (x * xn + 2. * y * yn)
            dxside_x = -x * (1. + y * yn)
            dxside_y = 0.5 * yn * (1. - x * x)
            dyside_x = 0.5 * xn * (1. - y * y)
            dyside_y = -y * (1. + x * xn)
            grad[:, 0] = np.where(is_corner, dcorner_x, np.where(xn == 0., dxside_x, dyside_x))
            grad[:, 1] = np.where(is_corner, dcorner_y, np.where(xn == 0., dxside_y, dyside_y))
        else:
            grad[:, 0] = grad_lagrange_quadratic(x, xn) * lagrange_quadratic(y, yn)
            grad[:, 1] = lagrange_quadratic(x, xn) * grad_lagrange_quadratic(y, yn)
        return grad
