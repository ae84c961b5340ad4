import numpy as np

from geompm.mpm.elements.ElementFactory import create_element
from geompm.mpm.Handler import Handler
from geompm.mpm.mesh.GaussPoint import GaussPointInRectangle
from geompm.mpm.structs.Cell import Cell
from geompm.mpm.structs.Node import Node
from geompm.mpm.structs.Particle import Particle
from geompm.utils.constants import LThreshold, Threshold
from geompm.utils.Result import Result, SUCCESS


class Mesh(object):
    """Collections of nodes, cells and particles with particle location.

    Nodes are also kept in an index arena (``node_index``) so that the grid
    kernels address them by contiguous integer index.
    """
    def __init__(self, id=0, dimension=3, nphases=1, tolerance=LThreshold, mass_cut_off=Threshold):
        if dimension not in (2, 3):
            raise RuntimeError(f"Keyword:: /dimension/ {dimension} is invalid. Only [2, 3] is valid")
        self.mid = id
        self.dimension = dimension
        self.nphases = nphases
        self.tolerance = tolerance
        self.mass_cut_off = mass_cut_off
        self.nodes = Handler()
        self.cells = Handler()
        self.particles = Handler()
        self.node_index = {}
        self.node_arena = []

    def id(self):
        return self.mid

    def nnodes(self):
        return self.nodes.size()

    def ncells(self):
        return self.cells.size()

    def nparticles(self):
        return self.particles.size()

    # -------------------------------------------------------------- nodes
    def add_node(self, node):
        if node.coordinates().shape[0] != self.dimension:
            return Result.failure(f"Mesh: node {node.id()} dimension does not match")
        if not self.nodes.insert(node):
            return Result.failure(f"Mesh: node {node.id()} already exists")
        self.node_index[node.id()] = len(self.node_arena)
        self.node_arena.append(node)
        return SUCCESS

    def create_nodes(self, coordinates, start_id=0, dof=None):
        coordinates = np.asarray(coordinates, dtype=float)
        if coordinates.ndim != 2 or coordinates.shape[1] != self.dimension:
            raise RuntimeError(f"Nodal coordinates should have shape (n, {self.dimension})")
        for i, coords in enumerate(coordinates):
            result = self.add_node(Node(start_id + i, coords, dof=dof, nphases=self.nphases, mass_cut_off=self.mass_cut_off))
            if not result:
                raise RuntimeError(result.reason)
        return coordinates.shape[0]

    def iterate_over_nodes(self, function, *args, **kwargs):
        self.nodes.for_each(function, *args, **kwargs)

    def assign_velocity_constraints(self, constraints):
        """Apply ``(node id, dof, value)`` tuples; all are validated before any is stored."""
        constraints = [(int(nid), int(dof), float(value)) for nid, dof, value in constraints]
        for nid, dof, value in constraints:
            if nid not in self.nodes:
                return Result.failure(f"Mesh: node {nid} for velocity constraint does not exist")
            if not 0 <= dof < self.nodes[nid].dof():
                return Result.failure(f"Mesh: direction {dof} of node {nid} is out of range")
        for nid, dof, value in constraints:
            self.nodes[nid].assign_velocity_constraint(dof, value)
        return SUCCESS

    # -------------------------------------------------------------- cells
    def add_cell(self, cell):
        if cell.element.dimension != self.dimension:
            return Result.failure(f"Mesh: cell {cell.id()} dimension does not match")
        if not self.cells.insert(cell):
            return Result.failure(f"Mesh: cell {cell.id()} already exists")
        return SUCCESS

    def create_cells(self, element_type, connectivity, start_id=0):
        element = create_element(element_type)
        if element.dimension != self.dimension:
            raise RuntimeError(f"Keyword:: /element/ {element_type} does not match the {self.dimension}-dimensional mesh")
        connectivity = np.asarray(connectivity, dtype=int)
        if connectivity.ndim != 2 or connectivity.shape[1] != element.nfunctions:
            raise RuntimeError(f"Cell connectivity should have shape (n, {element.nfunctions}) for {element_type}")
        for i, cell_nodes in enumerate(connectivity):
            cell = Cell(start_id + i, element.nfunctions, element, tolerance=self.tolerance)
            for local_id, nid in enumerate(cell_nodes):
                if nid not in self.nodes:
                    raise RuntimeError(f"Cell {cell.id()}: node {nid} does not exist")
                result = cell.add_node(local_id, self.nodes[nid])
                if not result:
                    raise RuntimeError(result.reason)
            result = cell.initialise()
            if not result:
                raise RuntimeError(result.reason)
            result = self.add_cell(cell)
            if not result:
                raise RuntimeError(result.reason)
        self.compute_cell_neighbours()
        return connectivity.shape[0]

    def compute_cell_neighbours(self):
        node_cells = {}
        for cell in self.cells:
            for nid in cell.nodes_id():
                node_cells.setdefault(nid, []).append(cell.id())
        for cells in node_cells.values():
            for cid in cells:
                for neighbour in cells:
                    self.cells[cid].add_neighbour(neighbour)

    def iterate_over_cells(self, function, *args, **kwargs):
        self.cells.for_each(function, *args, **kwargs)

    # ---------------------------------------------------------- particles
    def add_particle(self, particle, material=None):
        if particle.dimension() != self.dimension:
            return Result.failure(f"Mesh: particle {particle.id()} dimension does not match")
        if material is not None:
            result = particle.assign_material(material)
            if not result:
                return result
        if not self.particles.insert(particle):
            return Result.failure(f"Mesh: particle {particle.id()} already exists")
        return SUCCESS

    def remove_particle(self, pid):
        particle = self.particles.get(pid)
        if particle is None:
            return Result.failure(f"Mesh: particle {pid} does not exist")
        particle.remove_cell()
        self.particles.remove(pid)
        return SUCCESS

    def iterate_over_particles(self, function, *args, **kwargs):
        self.particles.for_each(function, *args, **kwargs)

    def generate_material_points(self, npoints, material, start_id=None):
        """Place ``npoints`` Gauss points per direction in every cell.

        Volumes come from the Gauss weights and the Jacobian determinant and
        masses from the material density.
        """
        gauss_point = GaussPointInRectangle(npoints, self.dimension)
        gpcoords, weights = gauss_point.create_gauss_point()
        pid = self.nparticles() if start_id is None else start_id
        generated = 0
        for cell in self.cells:
            nodal_coords = cell.nodal_coordinates()
            for xi, weight in zip(gpcoords, weights):
                coords = cell.shapefn(xi) @ nodal_coords
                particle = Particle(pid, coords, nphases=self.nphases)
                result = self.add_particle(particle, material)
                if not result:
                    raise RuntimeError(result.reason)
                particle.assign_volume(0, weight * abs(np.linalg.det(cell.element.jacobian(xi, nodal_coords))))
                particle.compute_mass(0)
                particle.assign_cell(cell)
                pid += 1
                generated += 1
        return generated

    def locate_particle(self, particle):
        candidates = []
        if particle.cell is not None:
            candidates.append(particle.cell)
            candidates.extend(self.cells[cid] for cid in particle.cell.neighbours())
        elif particle.cell_id() is not None and particle.cell_id() in self.cells:
            hint = self.cells[particle.cell_id()]
            candidates.append(hint)
            candidates.extend(self.cells[cid] for cid in hint.neighbours())

        for cell in candidates:
            if cell.point_in_cell(particle.coordinates()) and particle.assign_cell(cell):
                return True
        for cell in self.cells:
            if cell.point_in_cell(particle.coordinates()) and particle.assign_cell(cell):
                return True
        return False

    def locate_particles_mesh(self):
        """Relocate all active particles and return the ids of orphans."""
        orphans = []
        for particle in self.particles:
            if not particle.status():
                continue
            if not self.locate_particle(particle):
                particle.remove_cell()
                particle.orphan = True
                orphans.append(particle.id())
        return orphans

    def print_message(self):
        print(" Mesh Information ".center(71, '-'))
        print(("Dimension: " + str(self.dimension)).ljust(67))
        print(("Number of nodes: " + str(self.nnodes())).ljust(67))
        print(("Number of cells: " + str(self.ncells())).ljust(67))
        print(("Number of particles: " + str(self.nparticles())).ljust(67))
