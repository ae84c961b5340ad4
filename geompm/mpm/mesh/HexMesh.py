import numpy as np


class HexahedronMesh:
    """Structured grid of 8-node hexahedra, node index x-fastest then y then z."""
    def __init__(self, nx, ny, nz, dx, dy, dz, origin=(0., 0., 0.)):
        if nx <= 0 or ny <= 0 or nz <= 0:
            raise RuntimeError("Keyword:: /cell_number/ should be larger than 0")
        if dx <= 0. or dy <= 0. or dz <= 0.:
            raise RuntimeError("Keyword:: /cell_size/ should be larger than 0")
        self.grid_num = np.array([nx, ny, nz])
        self.grid_size = np.array([dx, dy, dz], dtype=float)
        self.origin = np.array(origin, dtype=float)
        self.element_type = "ED3H8"
        self.set_nodal_coords(nx, ny, nz, dx, dy, dz)
        self.set_node_connectivity(nx, ny, nz)

    def set_nodal_coords(self, nx, ny, nz, dx, dy, dz):
        X = self.origin[0] + dx * np.arange(nx + 1)
        Y = self.origin[1] + dy * np.arange(ny + 1)
        Z = self.origin[2] + dz * np.arange(nz + 1)
        zz, yy, xx = np.meshgrid(Z, Y, X, indexing='ij')
        self.nodal_coords = np.stack([xx.ravel(), yy.ravel(), zz.ravel()], axis=1)

    def set_node_connectivity(self, nx, ny, nz):
        k, j, i = np.meshgrid(np.arange(nz), np.arange(ny), np.arange(nx), indexing='ij')
        layer = (nx + 1) * (ny + 1)

        n0 = k * layer + j * (nx + 1) + i
        n1 = n0 + 1
        n2 = n0 + (nx + 1) + 1
        n3 = n0 + (nx + 1)
        self.node_connectivity = np.stack([n0, n1, n2, n3, n0 + layer, n1 + layer, n2 + layer, n3 + layer], axis=-1).reshape(-1, 8)

    def get_total_node_number(self):
        return self.nodal_coords.shape[0]

    def get_total_cell_number(self):
        return self.node_connectivity.shape[0]

    def boundary_nodes(self, axis, side):
        coords = self.nodal_coords[:, axis]
        bound = coords.min() if side == 0 else coords.max()
        return np.where(np.abs(coords - bound) < 1e-10 * self.grid_size[axis])[0]
