import numpy as np

from geompm.mpm.engines.EngineKernel import kernel_interpolate_g2p, kernel_merge_reduction, kernel_scatter_atomic_p2g, kernel_scatter_reduction_p2g
from geompm.mpm.Mesh import Mesh
from geompm.mpm.Simulation import Simulation


class StepReport(object):
    def __init__(self, step):
        self.step = step
        self.success = True
        self.reason = ""
        self.orphans = []
        self.faults = {}

    def add_fault(self, pid, result):
        self.faults[pid] = result.reason

    def abandon(self, reason):
        self.success = False
        self.reason = reason

    def __bool__(self):
        return self.success

    def __repr__(self):
        state = "completed" if self.success else f"abandoned ({self.reason})"
        return f"StepReport(step={self.step}, {state}, orphans={len(self.orphans)}, faults={len(self.faults)})"


class USFExplicitEngine(object):
    """Update-stress-first explicit cycle over a mesh.

    Particle to grid transfers run through ``scatter_p2g``, chosen from the
    serial entity operators, an atomic taichi scatter or a chunked reduction
    whose result does not depend on thread scheduling.
    """
    def __init__(self, sims: Simulation, mesh: Mesh) -> None:
        self.sims = sims
        self.mesh = mesh
        self.scatter_p2g = None
        self.gather_g2p = None
        self.LnID = None
        self.shapefn = None
        self.total_nodes = 0
        self.particles = []
        self.choose_engine(sims)

    def choose_engine(self, sims: Simulation):
        if sims.scatter_scheme == "Serial":
            self.scatter_p2g = None
            self.gather_g2p = None
        elif sims.scatter_scheme == "Atomic":
            self.scatter_p2g = self.scatter_atomic
            self.gather_g2p = self.gather_kernel
        elif sims.scatter_scheme == "Reduction":
            self.scatter_p2g = self.scatter_reduction
            self.gather_g2p = self.gather_kernel
        else:
            raise RuntimeError(f"KeyWord:: /scatter_scheme: {sims.scatter_scheme}/ is invalid")

    # ------------------------------------------------------------ kernels
    def build_connectivity(self):
        self.total_nodes = max((p.cell.nnodes() for p in self.particles), default=0)
        particleNum = len(self.particles)
        self.LnID = np.zeros(particleNum * self.total_nodes, dtype=np.int32)
        self.shapefn = np.zeros(particleNum * self.total_nodes)
        for np_, particle in enumerate(self.particles):
            offset = np_ * self.total_nodes
            nodes = particle.cell.nodes_id()
            self.LnID[offset: offset + len(nodes)] = [self.mesh.node_index[nid] for nid in nodes]
            self.shapefn[offset: offset + len(nodes)] = particle.shapefn()

    def flatten_contributions(self, contributions, ncomponents):
        flat = np.zeros((len(self.particles) * self.total_nodes, ncomponents))
        for np_, contribution in enumerate(contributions):
            contribution = np.asarray(contribution, dtype=float).reshape(contribution.shape[0], -1)
            offset = np_ * self.total_nodes
            flat[offset: offset + contribution.shape[0]] = contribution
        return flat

    def scatter_atomic(self, contributions, ncomponents):
        nodal = np.zeros((self.mesh.nnodes(), ncomponents))
        if len(self.particles) > 0:
            flat = self.flatten_contributions(contributions, ncomponents)
            kernel_scatter_atomic_p2g(self.total_nodes, len(self.particles), ncomponents, self.LnID, flat, nodal)
        return nodal

    def scatter_reduction(self, contributions, ncomponents):
        nodeNum = self.mesh.nnodes()
        nodal = np.zeros((nodeNum, ncomponents))
        particleNum = len(self.particles)
        if particleNum > 0:
            flat = self.flatten_contributions(contributions, ncomponents)
            nchunks = min(self.sims.chunk_number, particleNum)
            chunk_size = -(-particleNum // nchunks)
            buffer = np.zeros((nchunks, nodeNum, ncomponents))
            kernel_scatter_reduction_p2g(self.total_nodes, particleNum, ncomponents, nchunks, chunk_size, self.LnID, flat, buffer)
            kernel_merge_reduction(nodeNum, ncomponents, nchunks, buffer, nodal)
        return nodal

    def gather_kernel(self, nodal):
        ncomponents = nodal.shape[1]
        particle_value = np.zeros((len(self.particles), ncomponents))
        if len(self.particles) > 0:
            kernel_interpolate_g2p(self.total_nodes, len(self.particles), ncomponents, self.LnID, self.shapefn, np.ascontiguousarray(nodal), particle_value)
        return particle_value

    def nodal_array(self, getter, phase):
        dimension = self.mesh.dimension
        nodal = np.zeros((self.mesh.nnodes(), dimension))
        for ng, node in enumerate(self.mesh.node_arena):
            nodal[ng] = getattr(node, getter)(phase)[:dimension]
        return nodal

    def write_nodal_vectors(self, update, nodal, phase):
        for ng, node in enumerate(self.mesh.node_arena):
            value = np.zeros(node.dof())
            value[:nodal.shape[1]] = nodal[ng]
            getattr(node, update)(True, phase, value)

    # -------------------------------------------------------------- phases
    def reset_grid(self):
        self.mesh.iterate_over_nodes(lambda node: node.initialise())

    def locate_particles(self, report: StepReport):
        self.particles = []
        for particle in self.mesh.particles:
            if not particle.status():
                continue
            if particle.cell is None or not particle.compute_reference_location():
                if not self.mesh.locate_particle(particle):
                    particle.remove_cell()
                    particle.orphan = True
                    report.orphans.append(particle.id())
                    continue
            result = particle.compute_shapefn()
            if not result:
                report.add_fault(particle.id(), result)
                continue
            self.particles.append(particle)

    def exclude_faults(self, report: StepReport):
        self.particles = [particle for particle in self.particles if particle.id() not in report.faults]

    def compute_mass_momentum_p2g(self, report: StepReport, phase):
        if self.scatter_p2g is None:
            for particle in self.particles:
                result = particle.map_mass_momentum_to_nodes(phase)
                if not result:
                    report.add_fault(particle.id(), result)
            return
        dimension = self.mesh.dimension
        mass = self.scatter_p2g([particle.mass_contributions(phase) for particle in self.particles], 1)
        momentum = self.scatter_p2g([particle.momentum_contributions(phase) for particle in self.particles], dimension)
        for ng, node in enumerate(self.mesh.node_arena):
            node.update_mass(True, phase, mass[ng, 0])
        self.write_nodal_vectors("update_momentum", momentum, phase)

    def compute_grid_velocity(self):
        self.mesh.iterate_over_nodes(lambda node: node.compute_velocity())

    def compute_stress_strain(self, report: StepReport, phase):
        for particle in self.particles:
            state = particle.strain_state(phase)
            result = particle.compute_strain(phase, self.sims.dt)
            if result:
                result = particle.compute_stress(phase)
            if not result:
                # strain and stress stay at the previous step
                particle.restore_strain_state(phase, state)
                report.add_fault(particle.id(), result)
        self.exclude_faults(report)

    def compute_forces(self, report: StepReport, phase):
        gravity = self.sims.gravity
        if self.scatter_p2g is None:
            for particle in self.particles:
                result = particle.map_body_force(phase, gravity)
                if result:
                    result = particle.map_internal_force(phase)
                if not result:
                    report.add_fault(particle.id(), result)
            return
        dimension = self.mesh.dimension
        external_force = self.scatter_p2g([particle.body_force_contributions(phase, gravity) for particle in self.particles], dimension)
        internal_force = self.scatter_p2g([particle.internal_force_contributions(phase) for particle in self.particles], dimension)
        self.write_nodal_vectors("update_external_force", external_force, phase)
        self.write_nodal_vectors("update_internal_force", internal_force, phase)

    def compute_nodal_kinematics(self, phase):
        self.mesh.iterate_over_nodes(lambda node: node.compute_acceleration_velocity(phase, self.sims.dt))

    def compute_particle_kinematics(self, report: StepReport, phase):
        if self.gather_g2p is None:
            for particle in self.particles:
                result = particle.compute_updated_position(phase, self.sims.dt)
                if not result:
                    report.add_fault(particle.id(), result)
            return
        velocity = self.gather_g2p(self.nodal_array("velocity", phase))
        acceleration = self.gather_g2p(self.nodal_array("acceleration", phase))
        for np_, particle in enumerate(self.particles):
            result = particle.update_kinematics(phase, self.sims.dt, velocity[np_], acceleration[np_])
            if not result:
                report.add_fault(particle.id(), result)

    def relocate_particles(self, report: StepReport):
        for pid in self.mesh.locate_particles_mesh():
            if pid not in report.orphans:
                report.orphans.append(pid)

    # ---------------------------------------------------------------- step
    def snapshot(self):
        return {particle.id(): (particle.pack(), particle.cell) for particle in self.mesh.particles}

    def restore(self, snapshot):
        for pid, (buffer, cell) in snapshot.items():
            particle = self.mesh.particles.get(pid)
            if particle is None:
                continue
            particle.unpack(buffer)
            if cell is not None:
                particle.assign_cell(cell)

    def compute(self, phase=0):
        report = StepReport(self.sims.current_step)
        snapshot = self.snapshot()
        try:
            self.core(report, phase)
        except (RuntimeError, ValueError, ArithmeticError, np.linalg.LinAlgError) as error:
            self.restore(snapshot)
            self.reset_grid()
            report.abandon(f"{type(error).__name__}: {error}")
            return report
        if report.orphans and self.sims.stop_on_orphan:
            report.abandon(f"{len(report.orphans)} particles could not be located")
        return report

    def core(self, report: StepReport, phase=0):
        timer = self.sims.timer
        timer.begin("locate")
        self.reset_grid()
        self.locate_particles(report)
        if self.scatter_p2g is not None:
            self.build_connectivity()
        timer.end("locate")

        timer.begin("p2g")
        self.compute_mass_momentum_p2g(report, phase)
        timer.end("p2g")

        timer.begin("solve")
        self.compute_grid_velocity()
        timer.end("solve")

        timer.begin("stress")
        self.compute_stress_strain(report, phase)
        if self.scatter_p2g is not None:
            self.build_connectivity()
        timer.end("stress")

        timer.begin("force")
        self.compute_forces(report, phase)
        self.compute_nodal_kinematics(phase)
        timer.end("force")

        timer.begin("update")
        self.compute_particle_kinematics(report, phase)
        self.relocate_particles(report)
        timer.end("update")
        return report
