import numpy as np


class QuadrilateralMesh:
    """Structured grid of 4-node quadrilaterals, node index x-fastest."""
    def __init__(self, nx, ny, dx, dy, origin=(0., 0.)):
        if nx <= 0 or ny <= 0:
            raise RuntimeError("Keyword:: /cell_number/ should be larger than 0")
        if dx <= 0. or dy <= 0.:
            raise RuntimeError("Keyword:: /cell_size/ should be larger than 0")
        self.grid_num = np.array([nx, ny])
        self.grid_size = np.array([dx, dy], dtype=float)
        self.origin = np.array(origin, dtype=float)
        self.element_type = "ED2Q4"
        self.set_nodal_coords(nx, ny, dx, dy)
        self.set_node_connectivity(nx, ny)

    def set_nodal_coords(self, nx, ny, dx=1.0, dy=1.0):
        X = self.origin[0] + dx * np.arange(nx + 1)
        Y = self.origin[1] + dy * np.arange(ny + 1)
        xx, yy = np.meshgrid(X, Y, indexing='xy')
        self.nodal_coords = np.stack([xx.ravel(), yy.ravel()], axis=1)

    def set_node_connectivity(self, nx, ny):
        i, j = np.meshgrid(np.arange(nx), np.arange(ny), indexing='xy')

        n0 = j * (nx + 1) + i
        n1 = n0 + 1
        n2 = n0 + (nx + 1) + 1
        n3 = n0 + (nx + 1)

        self.node_connectivity = np.stack([n0, n1, n2, n3], axis=-1).reshape(-1, 4)

    def get_total_node_number(self):
        return self.nodal_coords.shape[0]

    def get_total_cell_number(self):
        return self.node_connectivity.shape[0]

    def boundary_nodes(self, axis, side):
        coords = self.nodal_coords[:, axis]
        bound = coords.min() if side == 0 else coords.max()
        return np.where(np.abs(coords - bound) < 1e-10 * self.grid_size[axis])[0]
