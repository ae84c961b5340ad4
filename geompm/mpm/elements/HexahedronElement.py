import numpy as np

from geompm.mpm.elements.ElementBase import ElementBase


class HexahedronElement(ElementBase):
    """
    Hexahedron elements of 8 (trilinear) and 20 (serendipity) nodes

               7     19      6
                0_ _ _0_ _ _0
              / |          /|
          17 0  |      18 0 |
            /   0 15     /  0 14
         4 0_ _ |0_ _ _0 5  |
           |    0_ _ _0|_ _ 0
           |   / 3     13  / 2
        10 0  0 9       12 0  0 11
           | /             | /
           0_ _ _0_ _ _ _ _0
          0      8        1
    """
    dimension = 3
    corner_nfunctions = 8

    def __init__(self, nnodes=8) -> None:
        if nnodes not in (8, 20):
            raise RuntimeError(f"Keyword:: /nnodes/ Hexahedron element with {nnodes} nodes is not supported. Only [8, 20] is valid")
        self.nfunctions = nnodes
        self.name = f"ED3H{nnodes}"
        super().__init__()

    def unit_cell_coordinates(self):
        coords = [[-1., -1., -1.], [1., -1., -1.], [1., 1., -1.], [-1., 1., -1.],
                  [-1., -1., 1.], [1., -1., 1.], [1., 1., 1.], [-1., 1., 1.],
                  [0., -1., -1.], [-1., 0., -1.], [-1., -1., 0.], [1., 0., -1.],
                  [1., -1., 0.], [0., 1., -1.], [1., 1., 0.], [-1., 1., 0.],
                  [0., -1., 1.], [-1., 0., 1.], [1., 0., 1.], [0., 1., 1.]]
        return coords[:self.nfunctions]

    def sides_indices(self):
        return np.array([[0, 1], [1, 2], [2, 3], [3, 0], [4, 5], [5, 6],
                         [6, 7], [7, 4], [0, 4], [1, 5], [2, 6], [3, 7]])

    def corner_indices(self):
        return np.arange(8)

    def inhedron_indices(self):
        # two triangles per face, faces ordered -z, +z, -y, +y, -x, +x
        return np.array([[0, 1, 2], [0, 2, 3], [4, 5, 6], [4, 6, 7],
                         [0, 1, 5], [0, 5, 4], [3, 2, 6], [3, 6, 7],
                         [0, 3, 7], [0, 7, 4], [1, 2, 6], [1, 6, 5]])

    def faces_indices(self):
        # corner loops with outward orientation
        return np.array([[0, 3, 2, 1], [4, 5, 6, 7], [0, 1, 5, 4],
                         [3, 7, 6, 2], [0, 4, 7, 3], [1, 2, 6, 5]])

    def shapefn(self, xi):
        xi = self.check_local_coordinate(xi)
        xn, yn, zn = self.local_coordinates.T
        x, y, z = xi
        if self.nfunctions == 8:
            return 0.125 * (1. + x * xn) * (1. + y * yn) * (1. + z * zn)
        corner = 0.125 * (1. + x * xn) * (1. + y * yn) * (1. + z * zn) * (x * xn + y * yn + z * zn - 2.)
        xedge = 0.25 * (1. - x * x) * (1. + y * yn) * (1. + z * zn)
        yedge = 0.25 * (1. + x * xn) * (1. - y * y) * (1. + z * zn)
        zedge = 0.25 * (1. + x * xn) * (1. + y * yn) * (1. - z * z)
        return np.where(xn == 0., xedge, np.where(yn == 0., yedge, np.where(zn == 0., zedge, corner)))

    def grad_shapefn(self, xi):
        xi = self.check_local_coordinate(xi)
        xn, yn, zn = self.local_coordinates.T
        x, y, z = xi
        grad = np.zeros((self.nfunctions, 3))
        if self.nfunctions == 8:
            grad[:, 0] = 0.125 * xn * (1. + y * yn) * (1. + z * zn)
            grad[:, 1] = 0.125 * yn * (1. + x * xn) * (1. + z * zn)
            grad[:, 2] = 0.125 * zn * (1. + x * xn) * (1. + y * yn)
            return grad

        sx, sy, sz = 1. + x * xn, 1. + y * yn, 1. + z * zn
        corner = np.stack([0.125 * xn * sy * sz * (2. * x * xn + y * yn + z * zn - 1.),
                           0.125 * yn * sx * sz * (x * xn + 2. * y * yn + z * zn - 1.),
                           0.125 * zn * sx * sy * (x * xn + y * yn + 2. * z * zn - 1.)], axis=1)
        xedge = np.stack([-0.5 * x * sy * sz,
                          0.25 * yn * (1. - x * x) * sz,
                          0.25 * zn * (1. - x * x) * sy], axis=1)
        yedge = np.stack([0.25 * xn * (1. - y * y) * sz,
                          -0.5 * y * sx * sz,
                          0.25 * zn * sx * (1. - y * y)], axis=1)
        zedge = np.stack([0.25 * xn * sy * (1. - z * z),
                          0.25 * yn * sx * (1. - z * z),
                          -0.5 * z * sx * sy], axis=1)
        grad[:] = np.where((xn == 0.)[:, None], xedge,
                           np.where((yn == 0.)[:, None], yedge,
                                    np.where((zn == 0.)[:, None], zedge, corner)))
        return grad
