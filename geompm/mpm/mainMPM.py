import numpy as np
from taichi.lang.impl import current_cfg

from geompm.mpm.engines.USFExplicitEngine import USFExplicitEngine
from geompm.mpm.MaterialManager import MaterialHandle
from geompm.mpm.Mesh import Mesh
from geompm.mpm.mesh.HexMesh import HexahedronMesh
from geompm.mpm.mesh.QuadMesh import QuadrilateralMesh
from geompm.mpm.MPMBase import Solver
from geompm.mpm.Simulation import Simulation
from geompm.mpm.structs.Particle import Particle
from geompm.utils.ObjectIO import DictIO
from geompm.utils.Result import Result


class MPM(object):
    def __init__(self, title='Explicit Update-Stress-First Material Point Method', log=True):
        if log:
            print('# =================================================================== #')
            print('#', "".center(67), '#')
            print('#', "Welcome to GeoMPM -- Material Point Method Engine !".center(67), '#')
            print('#', "".center(67), '#')
            print('#', title.center(67), '#')
            print('#', "".center(67), '#')
            print('# =================================================================== #', '\n')
        self.log = log
        self.sims = Simulation()
        self.material_handle = None
        self.mesh = None
        self.enginer = None
        self.solver = None
        self.mesh_parameters = None
        self.particle_parameters = []
        self.material_parameters = []
        self.velocity_constraints = []
        self.mesh_initialised = False
        self.materials_initialised = False
        self.last_checkpoint = None

    def set_configuration(self, log=True, **kwargs):
        self.sims.set_dimension(DictIO.GetAlternative(kwargs, "dimension", "3-Dimension"))
        self.sims.set_gravity(DictIO.GetAlternative(kwargs, "gravity", [0., 0., -9.8] if self.sims.dimension == 3 else [0., -9.8]))
        self.sims.set_nphases(DictIO.GetAlternative(kwargs, "nphases", 1))
        self.sims.set_scatter_scheme(DictIO.GetAlternative(kwargs, "scatter_scheme", "Atomic"))
        self.sims.set_chunk_number(DictIO.GetAlternative(kwargs, "chunk_number", 8))
        self.sims.set_mass_cut_off(DictIO.GetAlternative(kwargs, "mass_cut_off", self.sims.mass_cut_off))
        self.sims.set_tolerance(DictIO.GetAlternative(kwargs, "tolerance", self.sims.tolerance))
        self.sims.set_stop_on_orphan(DictIO.GetAlternative(kwargs, "stop_on_orphan", False))
        if log:
            self.print_basic_simulation_info()
            print('\n')

    def set_solver(self, solver, log=True):
        self.sims.set_timestep(DictIO.GetEssential(solver, "Timestep"))
        self.sims.set_simulation_time(DictIO.GetEssential(solver, "SimulationTime"))
        self.sims.set_CFL(DictIO.GetAlternative(solver, "CFL", 0.5))
        self.sims.set_print_interval(DictIO.GetAlternative(solver, "PrintInterval", 1))
        if log:
            self.print_solver_info()
            print('\n')

    def print_basic_simulation_info(self):
        print(" MPM Basic Configuration ".center(71, "-"))
        print(("Simulation Type: " + str(current_cfg().arch)).ljust(67))
        print(("Dimension: " + str(self.sims.dimension)).ljust(67))
        print(("Gravity: " + str(self.sims.gravity)).ljust(67))
        print(("Scatter Scheme: " + str(self.sims.scatter_scheme)).ljust(67))

    def print_solver_info(self):
        print(" MPM Solver Information ".center(71, "-"))
        print(("Initial Simulation Time: " + str(self.sims.current_time)).ljust(67))
        print(("Finial Simulation Time: " + str(self.sims.current_time + self.sims.time)).ljust(67))
        print(("Time Step: " + str(self.sims.dt)).ljust(67))

    # --------------------------------------------------------------- input
    def add_mesh(self, mesh):
        """Mesh input: either ``ElementType``, ``NodeCoordinates`` and ``Connectivity``
        or a structured block given by ``CellNumber``, ``CellSize`` and ``Origin``."""
        self.mesh_parameters = mesh

    def add_material(self, model, material):
        self.material_parameters.append((model, material))

    def add_particles(self, particles):
        if isinstance(particles, dict):
            particles = [particles]
        self.particle_parameters.extend(particles)

    def add_velocity_constraints(self, constraints):
        constraints = list(constraints)
        if self.mesh_initialised:
            result = self.mesh.assign_velocity_constraints(constraints)
            if not result:
                raise RuntimeError(f"KeyWord:: /velocity_constraints/ {result.reason}")
        self.velocity_constraints.extend(constraints)

    # ---------------------------------------------------------- initialise
    def build_mesh(self):
        if self.mesh_parameters is None:
            raise RuntimeError("KeyWord:: /mesh/ should be added before initialisation")
        mesh = Mesh(dimension=self.sims.dimension, nphases=self.sims.nphases, tolerance=self.sims.tolerance, mass_cut_off=self.sims.mass_cut_off)
        if "cellnumber" in DictIO.lower_keys(self.mesh_parameters):
            cell_number = DictIO.GetEssential(self.mesh_parameters, "CellNumber")
            cell_size = DictIO.GetEssential(self.mesh_parameters, "CellSize")
            origin = DictIO.GetAlternative(self.mesh_parameters, "Origin", [0.] * self.sims.dimension)
            if self.sims.dimension == 2:
                grid = QuadrilateralMesh(*cell_number, *cell_size, origin=origin)
            else:
                grid = HexahedronMesh(*cell_number, *cell_size, origin=origin)
            element_type, coords, connectivity = grid.element_type, grid.nodal_coords, grid.node_connectivity
        else:
            element_type = DictIO.GetEssential(self.mesh_parameters, "ElementType")
            coords = DictIO.GetEssential(self.mesh_parameters, "NodeCoordinates")
            connectivity = DictIO.GetEssential(self.mesh_parameters, "Connectivity")
        mesh.create_nodes(coords)
        mesh.create_cells(element_type, connectivity)
        return mesh

    def build_particles(self):
        pid = 0
        for parameter in self.particle_parameters:
            materialID = DictIO.GetAlternative(parameter, "MaterialID", 0)
            if "gausspoint" in DictIO.lower_keys(parameter):
                generated = self.mesh.generate_material_points(DictIO.GetEssential(parameter, "GaussPoint"), None, start_id=pid)
                for gid in range(pid, pid + generated):
                    self.mesh.particles[gid].material_id = materialID
                pid += generated
                continue

            coordinates = np.asarray(DictIO.GetEssential(parameter, "Coordinates"), dtype=float).reshape(-1, self.sims.dimension)
            volume = np.broadcast_to(np.asarray(DictIO.GetEssential(parameter, "Volume"), dtype=float), (coordinates.shape[0],))
            velocity = DictIO.GetOptional(parameter, "Velocity")
            for i, coords in enumerate(coordinates):
                particle = Particle(pid, coords, nphases=self.sims.nphases)
                particle.material_id = materialID
                result = self.mesh.add_particle(particle)
                if result:
                    result = particle.assign_volume(0, volume[i])
                if result and velocity is not None:
                    result = particle.assign_velocity(0, velocity)
                if not result:
                    raise RuntimeError(f"KeyWord:: /particles/ {result.reason}")
                pid += 1
        orphans = self.mesh.locate_particles_mesh()
        if orphans:
            print(f"Warning: {len(orphans)} particles are not located in any cell")

    def assign_particle_materials(self):
        for particle in self.mesh.particles:
            material = self.material_handle.get_material(particle.material_id)
            result = particle.assign_material(material)
            if result:
                result = particle.compute_mass(0)
            if not result:
                raise RuntimeError(f"KeyWord:: /material/ {result.reason}")
            particle.assign_momentum(0, particle.mass(0) * particle.velocity(0))

    def initialise_mesh_particles(self):
        if self.mesh_initialised:
            print("Mesh and particles have already been initialised")
            return False
        self.mesh = self.build_mesh()
        self.build_particles()
        result = self.mesh.assign_velocity_constraints(self.velocity_constraints)
        if not result:
            raise RuntimeError(f"KeyWord:: /velocity_constraints/ {result.reason}")
        self.mesh_initialised = True
        if self.materials_initialised:
            self.assign_particle_materials()
        if self.log:
            self.mesh.print_message()
        return True

    def initialise_materials(self):
        if self.materials_initialised:
            print("Materials have already been initialised")
            return False
        self.material_handle = MaterialHandle(self.sims.dimension)
        for model, material in self.material_parameters:
            self.material_handle.save_material(model, material, self.log)
        self.materials_initialised = True
        if self.mesh_initialised:
            self.assign_particle_materials()
        return True

    # ---------------------------------------------------------------- run
    def check_critical_timestep(self):
        sound_speed = self.material_handle.find_max_sound_speed()
        if sound_speed <= 0.:
            return
        min_length = min(cell.mean_length() for cell in self.mesh.cells)
        critical_timestep = min_length / sound_speed
        if self.sims.CFL * critical_timestep < self.sims.dt:
            print(f"Warning: time step {self.sims.dt} exceeds the CFL limited time step {self.sims.CFL * critical_timestep}")
        elif self.log:
            print("The prescribed time step is sufficiently small\n")

    def add_engine(self):
        if self.enginer is None:
            self.enginer = USFExplicitEngine(self.sims, self.mesh)
        else:
            self.enginer.choose_engine(self.sims)

    def add_solver(self, function=None):
        if self.solver is None:
            self.solver = Solver(self.sims, self.enginer)
        self.solver.set_callback_function(function)

    def solve(self, function=None):
        if not self.mesh_initialised:
            self.initialise_mesh_particles()
        if not self.materials_initialised:
            self.initialise_materials()
        self.add_engine()
        self.add_solver(function)
        self.check_critical_timestep()
        return self.solver.Solver(self.mesh, self.log)

    def run(self, **kwargs):
        return self.solve(DictIO.GetAlternative(kwargs, "function", None))

    # ---------------------------------------------------------- checkpoint
    def checkpoint(self):
        if not self.mesh_initialised:
            raise RuntimeError("Mesh and particles should be initialised before checkpointing")
        self.last_checkpoint = {"step": self.sims.current_step, "time": self.sims.current_time,
                                "particles": {particle.id(): particle.pack() for particle in self.mesh.particles}}
        return self.last_checkpoint

    def resume(self, checkpoint=None):
        checkpoint = self.last_checkpoint if checkpoint is None else checkpoint
        if checkpoint is None or not self.mesh_initialised:
            return False
        states = []
        for pid, buffer in checkpoint["particles"].items():
            particle = self.mesh.particles.get(pid)
            if particle is None:
                print(f"Warning: particle {pid} of the checkpoint is not in the mesh")
                return False
            result, state = particle.decode(buffer)
            if result and int(state["id"]) != pid:
                result = Result.failure(f"Particle {pid}: buffer belongs to particle {int(state['id'])}")
            if not result:
                print(f"Warning: {result.reason}")
                return False
            states.append((particle, state))

        for particle, state in states:
            particle.restore_state(state)
        self.mesh.locate_particles_mesh()
        self.sims.current_step = checkpoint["step"]
        self.sims.current_time = checkpoint["time"]
        return True
