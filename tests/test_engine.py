import numpy as np
import pytest

from geompm.mpm.engines.USFExplicitEngine import StepReport, USFExplicitEngine
from geompm.mpm.MaterialManager import create_material
from geompm.mpm.Mesh import Mesh
from geompm.mpm.mesh.QuadMesh import QuadrilateralMesh
from geompm.mpm.Simulation import Simulation
from geompm.mpm.structs import Particle


GRAVITY = [0., -9.81]


def simulation(scheme="Atomic", dt=1e-3, gravity=GRAVITY, chunk_number=4):
    sims = Simulation()
    sims.set_dimension(2)
    sims.set_gravity(gravity)
    sims.set_scatter_scheme(scheme)
    sims.set_chunk_number(chunk_number)
    sims.set_timestep(dt)
    return sims


def elastic():
    material = create_material("LinearElastic2D", 0)
    material.properties({"density": 1000., "youngs_modulus": 1e6, "poisson_ratio": 0.2})
    return material


def block(nx=3, ny=3, npoints=2, material=None):
    grid = QuadrilateralMesh(nx, ny, 1., 1.)
    mesh = Mesh(dimension=2)
    mesh.create_nodes(grid.nodal_coords)
    mesh.create_cells(grid.element_type, grid.node_connectivity)
    mesh.generate_material_points(npoints, elastic() if material is None else material)
    return mesh, grid


def test_invalid_scheme():
    sims = simulation()
    sims.scatter_scheme = "Parallel"
    mesh, _ = block()
    with pytest.raises(RuntimeError):
        USFExplicitEngine(sims, mesh)


def test_atomic_scatter_matches_serial_sum():
    mesh, _ = block()
    for particle in mesh.particles:
        particle.assign_velocity(0, particle.coordinates())
    engine = USFExplicitEngine(simulation(), mesh)
    engine.locate_particles(StepReport(0))
    engine.build_connectivity()

    contributions = [particle.momentum_contributions(0) for particle in engine.particles]
    nodal = engine.scatter_atomic(contributions, 2)

    expected = np.zeros((mesh.nnodes(), 2))
    np.add.at(expected, engine.LnID, np.concatenate(contributions))
    assert np.allclose(nodal, expected, rtol=1e-12, atol=1e-12)


def test_reduction_is_repeatable():
    mesh, _ = block()
    for particle in mesh.particles:
        particle.assign_velocity(0, np.sin(particle.coordinates() * 7.))
    engine = USFExplicitEngine(simulation("Reduction", chunk_number=3), mesh)
    engine.locate_particles(StepReport(0))
    engine.build_connectivity()

    contributions = [particle.momentum_contributions(0) for particle in engine.particles]
    first = engine.scatter_reduction(contributions, 2)
    second = engine.scatter_reduction(contributions, 2)
    assert np.array_equal(first, second)
    assert np.allclose(first, engine.scatter_atomic(contributions, 2))


def test_gather_interpolates_nodal_values():
    mesh, _ = block()
    engine = USFExplicitEngine(simulation(), mesh)
    engine.locate_particles(StepReport(0))
    engine.build_connectivity()
    nodal = np.array([node.coordinates() for node in mesh.node_arena])
    values = engine.gather_kernel(nodal)
    expected = np.array([particle.coordinates() for particle in engine.particles])
    assert np.allclose(values, expected)


def test_free_fall():
    mesh, _ = block()
    sims = simulation()
    engine = USFExplicitEngine(sims, mesh)
    start = {particle.id(): particle.coordinates() for particle in mesh.particles}
    nsteps = 10
    for _ in range(nsteps):
        report = engine.compute()
        assert report
        assert report.orphans == [] and report.faults == {}

    for particle in mesh.particles:
        assert np.allclose(particle.velocity(), np.array(GRAVITY) * sims.dt * nsteps)
        assert np.allclose(particle.stress(), 0., atol=1e-6)
        # x(n) = g dt^2 n (n + 1) / 2 with the updated nodal velocity
        drop = GRAVITY[1] * sims.dt ** 2 * nsteps * (nsteps + 1) / 2.
        assert np.allclose(particle.coordinates() - start[particle.id()], [0., drop])


@pytest.mark.parametrize("scheme", ["Atomic", "Reduction"])
def test_kernel_schemes_match_serial(scheme):
    results = {}
    for name in ("Serial", scheme):
        mesh, grid = block()
        for particle in mesh.particles:
            x, y = particle.coordinates()
            particle.assign_velocity(0, [0.1 * y, -0.05 * x])
        mesh.assign_velocity_constraints([(nid, 1, 0.) for nid in grid.boundary_nodes(1, 0)])
        engine = USFExplicitEngine(simulation(name), mesh)
        for _ in range(3):
            assert engine.compute()
        results[name] = [(p.coordinates(), p.velocity(), p.stress()) for p in mesh.particles]

    for serial, kernel in zip(results["Serial"], results[scheme]):
        for a, b in zip(serial, kernel):
            assert np.allclose(a, b, rtol=1e-10, atol=1e-10)


def test_constrained_base():
    mesh, grid = block()
    bottom = grid.boundary_nodes(1, 0)
    mesh.assign_velocity_constraints([(nid, 1, 0.) for nid in bottom])
    engine = USFExplicitEngine(simulation(), mesh)
    for _ in range(5):
        assert engine.compute()
    for nid in bottom:
        assert mesh.nodes[int(nid)].velocity()[1] == 0.
        assert mesh.nodes[int(nid)].acceleration()[1] == 0.
    # the compressed block develops vertical stress
    assert any(particle.stress()[1] < 0. for particle in mesh.particles)


def test_orphans_are_reported():
    # cells 0 and 2 share no nodes once the particle of cell 1 is removed
    mesh, _ = block(nx=3, ny=1, npoints=1)
    assert mesh.remove_particle(1)
    runaway = mesh.particles[2]
    runaway.assign_velocity(0, [100., 0.])
    sims = simulation(gravity=[0., 0.], dt=1e-2)
    engine = USFExplicitEngine(sims, mesh)
    report = engine.compute()
    assert report
    assert report.orphans == [2]
    assert runaway.is_orphan()
    assert runaway.cell_id() is None
    assert mesh.particles[0].cell_id() == 0

    report = engine.compute()
    assert report.orphans == [2]

    sims.set_stop_on_orphan(True)
    report = engine.compute()
    assert not report
    assert "could not be located" in report.reason


def test_faulty_particles_are_excluded():
    mesh, _ = block(nx=1, ny=1, npoints=2)
    bingham = create_material("Bingham2D", 1)
    faulty = mesh.particles[0]
    faulty.material = bingham
    for particle in mesh.particles:
        particle.assign_velocity(0, [0.1 * particle.coordinates()[0], 0.])
    volume = faulty.volume()
    engine = USFExplicitEngine(simulation(), mesh)
    report = engine.compute()
    assert report
    assert 0 in report.faults
    assert all(particle.id() != 0 for particle in engine.particles)
    assert len(engine.particles) == 3
    assert np.all(faulty.stress() == 0.)
    # strain measures of the faulted particle are not advanced either
    assert np.all(faulty.strain() == 0.)
    assert np.all(faulty.dstrain() == 0.)
    assert np.all(faulty.strain_rate() == 0.)
    assert faulty.volumetric_strain_centroid() == 0.
    assert faulty.volume() == volume
    assert mesh.particles[1].strain()[0] > 0.
    assert mesh.particles[1].velocity()[1] < 0.


def test_failed_step_is_rolled_back(monkeypatch):
    mesh, _ = block()
    engine = USFExplicitEngine(simulation(), mesh)
    assert engine.compute()
    before = {particle.id(): (particle.coordinates(), particle.velocity()) for particle in mesh.particles}

    def broken(report, phase):
        raise RuntimeError("grid solver diverged")

    monkeypatch.setattr(engine, "compute_forces", broken)
    report = engine.compute()
    assert not report
    assert "grid solver diverged" in report.reason
    for particle in mesh.particles:
        coordinates, velocity = before[particle.id()]
        assert np.allclose(particle.coordinates(), coordinates)
        assert np.allclose(particle.velocity(), velocity)
        assert particle.cell_id() is not None
    assert all(node.mass() == 0. for node in mesh.nodes)
