import numpy as np

from geompm.utils.constants import VOIGT_SIZE


class ElementBase(object):
    """Isoparametric element shape family.

    Concrete elements provide the basis functions, their local gradients and
    the constant reference-cell topology tables. Jacobian, physical gradients
    and strain-displacement operators are derived here from those.
    """
    name = None
    dimension = 0
    nfunctions = 0
    corner_nfunctions = 0

    def __init__(self) -> None:
        self.local_coordinates = np.asarray(self.unit_cell_coordinates(), dtype=float)

    def check_local_coordinate(self, xi):
        xi = np.asarray(xi, dtype=float)
        if xi.shape != (self.dimension,):
            raise ValueError(f"Local coordinate of {self.name} should have {self.dimension} components, got {xi.shape}")
        return xi

    def shapefn(self, xi):
        raise NotImplementedError

    def grad_shapefn(self, xi):
        raise NotImplementedError

    def unit_cell_coordinates(self):
        raise NotImplementedError

    def sides_indices(self):
        raise NotImplementedError

    def corner_indices(self):
        raise NotImplementedError

    def inhedron_indices(self):
        raise NotImplementedError

    def jacobian(self, xi, nodal_coordinates):
        nodal_coordinates = np.asarray(nodal_coordinates, dtype=float)
        grad_shapefn = self.grad_shapefn(xi)
        return grad_shapefn[:nodal_coordinates.shape[0]].T @ nodal_coordinates

    def dn_dx(self, xi, nodal_coordinates):
        """Gradients of the basis functions with respect to physical coordinates.

        Raises ``numpy.linalg.LinAlgError`` for a singular Jacobian.
        """
        grad_shapefn = self.grad_shapefn(xi)
        jacobian = self.jacobian(xi, nodal_coordinates)
        return np.linalg.solve(jacobian, grad_shapefn.T).T

    def bmatrix(self, xi, nodal_coordinates=None):
        if nodal_coordinates is None:
            gradient = self.grad_shapefn(xi)
        else:
            gradient = self.dn_dx(xi, nodal_coordinates)
        return self.assemble_bmatrix(gradient)

    def assemble_bmatrix(self, gradient):
        # rows: xx, yy, zz, xy, yz, xz
        nfunctions = gradient.shape[0]
        bmatrix = np.zeros((nfunctions, VOIGT_SIZE, self.dimension))
        if self.dimension == 2:
            bmatrix[:, 0, 0] = gradient[:, 0]
            bmatrix[:, 1, 1] = gradient[:, 1]
            bmatrix[:, 3, 0] = gradient[:, 1]
            bmatrix[:, 3, 1] = gradient[:, 0]
        elif self.dimension == 3:
            bmatrix[:, 0, 0] = gradient[:, 0]
            bmatrix[:, 1, 1] = gradient[:, 1]
            bmatrix[:, 2, 2] = gradient[:, 2]
            bmatrix[:, 3, 0] = gradient[:, 1]
            bmatrix[:, 3, 1] = gradient[:, 0]
            bmatrix[:, 4, 1] = gradient[:, 2]
            bmatrix[:, 4, 2] = gradient[:, 1]
            bmatrix[:, 5, 0] = gradient[:, 2]
            bmatrix[:, 5, 2] = gradient[:, 0]
        return bmatrix

    def print_message(self):
        print(" Element Information ".center(71, '-'))
        print(("Element type: " + str(self.name)).ljust(67))
        print(("Dimension: " + str(self.dimension)).ljust(67))
        print(("Number of shape functions: " + str(self.nfunctions)).ljust(67))
