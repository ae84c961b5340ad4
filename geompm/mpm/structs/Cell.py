import numpy as np

from geompm.mpm.elements.ElementBase import ElementBase
from geompm.utils.constants import LThreshold, NEWTON_MAX_ITERATION
from geompm.utils.Result import Result, SUCCESS


class Cell(object):
    """Background cell holding shared references to its nodes.

    Nodes are attached by local index and may be shared with neighbouring
    cells. The cell becomes usable once ``initialise`` succeeds.
    """
    def __init__(self, id, nnodes, element: ElementBase, tolerance=LThreshold):
        if element.nfunctions < nnodes:
            raise RuntimeError(f"Cell {id}: element {element.name} provides {element.nfunctions} shape functions for {nnodes} nodes")
        self.cid = int(id)
        self.nnodes_capacity = int(nnodes)
        self.element = element
        self.tolerance = tolerance
        self.nodes = {}
        self.particles = []
        self.neighbour_cells = set()
        self.initialised = False
        self.nodal_coords = None
        self.volume_ = 0.
        self.centroid_ = None
        self.mean_length_ = 0.

    def id(self):
        return self.cid

    def nnodes(self):
        return len(self.nodes)

    def nfunctions(self):
        return self.element.nfunctions

    def is_initialised(self):
        return self.initialised

    def status(self):
        return len(self.particles) > 0

    def add_node(self, local_id, node):
        if not (isinstance(local_id, (int, np.integer)) and 0 <= local_id < self.nnodes_capacity):
            return Result.failure(f"Cell {self.cid}: local node index {local_id} is out of range [0, {self.nnodes_capacity})")
        if local_id in self.nodes:
            return Result.failure(f"Cell {self.cid}: local node index {local_id} is already assigned")
        if len(self.nodes) >= self.nnodes_capacity:
            return Result.failure(f"Cell {self.cid}: all {self.nnodes_capacity} nodes are already assigned")
        if node.coordinates().shape[0] != self.element.dimension:
            return Result.failure(f"Cell {self.cid}: node {node.id()} dimension does not match element {self.element.name}")
        self.nodes[int(local_id)] = node
        return SUCCESS

    def node(self, local_id):
        return self.nodes[local_id]

    def node_list(self):
        return [self.nodes[i] for i in range(self.nnodes_capacity)]

    def nodes_id(self):
        return [self.nodes[i].id() for i in sorted(self.nodes)]

    def initialise(self):
        if len(self.nodes) != self.nnodes_capacity:
            return Result.failure(f"Cell {self.cid}: {len(self.nodes)} of {self.nnodes_capacity} nodes are assigned")
        nodal_coords = np.array([node.coordinates() for node in self.node_list()])
        volume = self.compute_volume(nodal_coords)
        if not volume > self.tolerance:
            return Result.failure(f"Cell {self.cid}: degenerate geometry with volume {volume}")
        jacobian = self.element.jacobian(np.zeros(self.element.dimension), nodal_coords)
        if abs(np.linalg.det(jacobian)) <= self.tolerance:
            return Result.failure(f"Cell {self.cid}: singular Jacobian at the centroid")

        self.nodal_coords = nodal_coords
        self.volume_ = volume
        corners = nodal_coords[self.element.corner_indices()]
        self.centroid_ = np.mean(corners, axis=0)
        sides = self.element.sides_indices()
        self.mean_length_ = np.mean(np.linalg.norm(nodal_coords[sides[:, 1]] - nodal_coords[sides[:, 0]], axis=1))
        self.initialised = True
        return SUCCESS

    def nodal_coordinates(self):
        return self.nodal_coords.copy()

    def volume(self):
        return self.volume_

    def centroid(self):
        return self.centroid_.copy()

    def mean_length(self):
        return self.mean_length_

    def compute_volume(self, nodal_coords=None):
        if nodal_coords is None:
            nodal_coords = self.nodal_coords
        if self.element.dimension == 2:
            return quadrilateral_area(nodal_coords[self.element.corner_indices()])
        return hexahedron_volume(nodal_coords[self.element.corner_indices()], self.element.faces_indices())

    def point_in_cell(self, point):
        if not self.initialised:
            return False
        point = np.asarray(point, dtype=float).reshape(-1)
        if point.shape[0] != self.element.dimension:
            return False

        limit = self.volume_ + self.tolerance
        accumulated = 0.
        for indices in self.element.inhedron_indices():
            vertices = self.nodal_coords[indices]
            if self.element.dimension == 2:
                accumulated += 0.5 * abs(np.linalg.det(np.array([vertices[0] - point, vertices[1] - point])))
            else:
                accumulated += abs(np.linalg.det(vertices - point)) / 6.
            if accumulated > limit:
                return False
        return abs(accumulated - self.volume_) <= self.tolerance

    def local_coordinates_point(self, point):
        """Inverse isoparametric map by Newton iteration starting at the centroid.

        Returns the local coordinate and whether the iteration converged to a
        point of the reference cell.
        """
        point = np.asarray(point, dtype=float).reshape(-1)
        dimension = self.element.dimension
        xi = np.zeros(dimension)
        if not self.initialised or point.shape[0] != dimension:
            return xi, False

        scale = max(self.mean_length_, 1.)
        converged = False
        for _ in range(NEWTON_MAX_ITERATION):
            residual = self.element.shapefn(xi)[:self.nnodes_capacity] @ self.nodal_coords - point
            if np.linalg.norm(residual) <= self.tolerance * scale:
                converged = True
                break
            jacobian = self.element.jacobian(xi, self.nodal_coords)
            try:
                xi = xi - np.linalg.solve(jacobian.T, residual)
            except np.linalg.LinAlgError:
                return xi, False
        if not converged:
            residual = self.element.shapefn(xi)[:self.nnodes_capacity] @ self.nodal_coords - point
            converged = np.linalg.norm(residual) <= self.tolerance * scale
        inside = bool(np.all(np.abs(xi) <= 1. + self.tolerance))
        return xi, converged and inside

    def shapefn(self, xi):
        return self.element.shapefn(xi)[:self.nnodes_capacity]

    def bmatrix(self, xi):
        return self.element.bmatrix(xi, self.nodal_coords)[:self.nnodes_capacity]

    def assign_mass_to_nodes(self, xi, mass, phase=0):
        shapefn = self.shapefn(xi)
        for i, node in enumerate(self.node_list()):
            result = node.update_mass(True, phase, shapefn[i] * mass)
            if not result:
                return result
        return SUCCESS

    def assign_volume_to_nodes(self, xi, volume, phase=0):
        shapefn = self.shapefn(xi)
        for i, node in enumerate(self.node_list()):
            result = node.update_volume(True, phase, shapefn[i] * volume)
            if not result:
                return result
        return SUCCESS

    def _scatter_vectors(self, update, contributions, phase):
        # validate every contribution before touching any node
        nodes = self.node_list()
        padded = []
        for node, contribution in zip(nodes, contributions):
            vector = np.zeros(node.dof())
            if contribution.shape[0] > node.dof():
                return Result.failure(f"Cell {self.cid}: contribution of length {contribution.shape[0]} exceeds node {node.id()} degrees of freedom")
            vector[:contribution.shape[0]] = contribution
            padded.append(vector)
        for node, vector in zip(nodes, padded):
            result = getattr(node, update)(True, phase, vector)
            if not result:
                return result
        return SUCCESS

    def check_vector(self, vector):
        vector = np.asarray(vector, dtype=float).reshape(-1)
        if vector.shape[0] != self.element.dimension:
            return Result.failure(f"Cell {self.cid}: vector of length {vector.shape[0]} does not match dimension {self.element.dimension}"), None
        return SUCCESS, vector

    def momentum_contributions(self, shapefn, mass, velocity):
        return np.outer(shapefn, mass * velocity)

    def body_force_contributions(self, shapefn, mass, gravity):
        return np.outer(shapefn, mass * gravity)

    def internal_force_contributions(self, bmatrix, volume, stress):
        # f_int = - V * B^T . sigma
        return -volume * np.einsum('nij,i->nj', bmatrix, stress)

    def assign_momentum_to_nodes(self, xi, mass, velocity, phase=0):
        result, velocity = self.check_vector(velocity)
        if not result:
            return result
        return self._scatter_vectors("update_momentum", self.momentum_contributions(self.shapefn(xi), mass, velocity), phase)

    def assign_body_force_to_nodes(self, xi, mass, gravity, phase=0):
        result, gravity = self.check_vector(gravity)
        if not result:
            return result
        return self._scatter_vectors("update_external_force", self.body_force_contributions(self.shapefn(xi), mass, gravity), phase)

    def assign_internal_force_to_nodes(self, bmatrix, volume, stress, phase=0):
        stress = np.asarray(stress, dtype=float).reshape(-1)
        if stress.shape[0] != 6:
            return Result.failure(f"Cell {self.cid}: stress should have 6 components")
        return self._scatter_vectors("update_internal_force", self.internal_force_contributions(bmatrix, volume, stress), phase)

    def interpolate_velocity(self, xi, phase=0):
        shapefn = self.shapefn(xi)
        dimension = self.element.dimension
        return sum(shapefn[i] * node.velocity(phase)[:dimension] for i, node in enumerate(self.node_list()))

    def interpolate_acceleration(self, xi, phase=0):
        shapefn = self.shapefn(xi)
        dimension = self.element.dimension
        return sum(shapefn[i] * node.acceleration(phase)[:dimension] for i, node in enumerate(self.node_list()))

    def compute_strain_rate(self, bmatrix, phase=0):
        dimension = self.element.dimension
        strain_rate = np.zeros(6)
        for i, node in enumerate(self.node_list()):
            strain_rate += bmatrix[i] @ node.velocity(phase)[:dimension]
        return strain_rate

    def compute_strain_rate_centroid(self, phase=0):
        """Strain rate at the cell centroid weighted by the Jacobian determinant.

        Used for the one-point volumetric strain shared by all particles of
        the cell.
        """
        xi = np.zeros(self.element.dimension)
        jacobian = self.element.jacobian(xi, self.nodal_coords)
        return np.linalg.det(jacobian) * self.compute_strain_rate(self.bmatrix(xi), phase)

    def add_particle_id(self, pid):
        if pid in self.particles:
            return Result.failure(f"Cell {self.cid}: particle {pid} is already registered")
        self.particles.append(pid)
        return SUCCESS

    def remove_particle_id(self, pid):
        if pid not in self.particles:
            return Result.failure(f"Cell {self.cid}: particle {pid} is not registered")
        self.particles.remove(pid)
        return SUCCESS

    def particle_ids(self):
        return list(self.particles)

    def nparticles(self):
        return len(self.particles)

    def add_neighbour(self, cid):
        if cid == self.cid:
            return False
        self.neighbour_cells.add(int(cid))
        return True

    def neighbours(self):
        return sorted(self.neighbour_cells)

    def __repr__(self):
        return f"Cell(id={self.cid}, element={self.element.name}, nodes={self.nodes_id()})"


def quadrilateral_area(corners):
    # Bretschneider: 0.25 * sqrt(4 p^2 q^2 - (a^2 + c^2 - b^2 - d^2)^2)
    a = np.linalg.norm(corners[1] - corners[0])
    b = np.linalg.norm(corners[2] - corners[1])
    c = np.linalg.norm(corners[3] - corners[2])
    d = np.linalg.norm(corners[0] - corners[3])
    p = np.linalg.norm(corners[2] - corners[0])
    q = np.linalg.norm(corners[3] - corners[1])
    radicand = 4. * p * p * q * q - (a * a + c * c - b * b - d * d) ** 2
    return 0.25 * np.sqrt(max(radicand, 0.))


def hexahedron_volume(corners, faces):
    # exact trilinear volume: (1/24) * sum over faces of (sum of corners) . ((c - a) x (d - b))
    volume = 0.
    for a, b, c, d in faces:
        volume += np.dot(corners[a] + corners[b] + corners[c] + corners[d],
                         np.cross(corners[c] - corners[a], corners[d] - corners[b]))
    return abs(volume) / 24.
