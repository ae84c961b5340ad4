import numpy as np
import pytest

import geompm
from geompm.mpm.Simulation import Simulation


BINGHAM = {"MaterialID": 0, "Density": 1000., "youngs_modulus": 1.0E+7, "poisson_ratio": 0.3,
           "tau0": 771.8, "mu": 0.0451, "critical_shear_rate": 0.2}


def column(scheme="Atomic"):
    mpm = geompm.MPM(log=False)
    mpm.set_configuration(log=False, dimension="2-Dimension", gravity=[0., -9.81], scatter_scheme=scheme)
    mpm.set_solver({"Timestep": 1e-3, "SimulationTime": 5e-3}, log=False)
    mpm.add_mesh({"CellNumber": [2, 3], "CellSize": [0.5, 0.5]})
    mpm.add_material("Bingham", BINGHAM)
    mpm.add_particles({"GaussPoint": 2, "MaterialID": 0})
    mpm.add_velocity_constraints([(nid, 1, 0.) for nid in range(3)])
    return mpm


def test_initialise_once():
    mpm = column()
    assert mpm.initialise_mesh_particles() is True
    assert mpm.initialise_materials() is True
    assert mpm.initialise_mesh_particles() is False
    assert mpm.initialise_materials() is False
    assert mpm.mesh.nparticles() == 24
    particle = mpm.mesh.particles[0]
    assert particle.material_id == 0
    assert particle.material is mpm.material_handle.get_material(0)
    assert particle.mass() == pytest.approx(0.0625 * 1000.)


def test_materials_before_mesh():
    mpm = column()
    assert mpm.initialise_materials()
    assert mpm.initialise_mesh_particles()
    assert all(particle.material is not None for particle in mpm.mesh.particles)


def test_solve():
    mpm = column()
    assert mpm.solve() is True
    assert mpm.sims.current_step == 5
    assert mpm.sims.current_time == pytest.approx(5e-3)
    for nid in range(3):
        assert mpm.mesh.nodes[nid].velocity()[1] == 0.
    assert all(particle.cell_id() is not None for particle in mpm.mesh.particles)


def test_solve_with_callback():
    steps = []
    mpm = column("Reduction")
    assert mpm.solve(lambda sims, mesh: steps.append(sims.current_step))
    assert steps == [1, 2, 3, 4, 5]


def test_checkpoint_resume():
    mpm = column()
    assert mpm.resume() is False
    mpm.initialise_mesh_particles()
    mpm.initialise_materials()
    assert mpm.solve()
    checkpoint = mpm.checkpoint()
    state = {particle.id(): particle.coordinates() for particle in mpm.mesh.particles}

    assert mpm.solve()
    assert mpm.sims.current_step == 10
    assert mpm.resume(checkpoint) is True
    assert mpm.sims.current_step == 5
    for particle in mpm.mesh.particles:
        assert np.allclose(particle.coordinates(), state[particle.id()])
        assert particle.cell_id() is not None


def test_resume_with_corrupt_buffer():
    mpm = column()
    assert mpm.solve()
    checkpoint = mpm.checkpoint()
    assert mpm.solve()
    current = {particle.id(): (particle.coordinates(), particle.cell_id()) for particle in mpm.mesh.particles}

    last = list(checkpoint["particles"])[-1]
    checkpoint["particles"][last] = b"garbage"
    assert mpm.resume(checkpoint) is False
    assert mpm.sims.current_step == 10
    for particle in mpm.mesh.particles:
        coordinates, cell_id = current[particle.id()]
        assert np.allclose(particle.coordinates(), coordinates)
        assert particle.cell_id() == cell_id
        assert particle.cell is not None
        assert particle.id() in particle.cell.particle_ids()


def test_explicit_mesh_and_particles():
    mpm = geompm.MPM(log=False)
    mpm.set_configuration(log=False, dimension=2, gravity=[0., 0.], scatter_scheme="Serial")
    mpm.set_solver({"Timestep": 1e-3, "SimulationTime": 2e-3}, log=False)
    mpm.add_mesh({"ElementType": "ED2Q4",
                  "NodeCoordinates": [[0., 0.], [1., 0.], [1., 1.], [0., 1.]],
                  "Connectivity": [[0, 1, 2, 3]]})
    mpm.add_material("LinearElastic", {"MaterialID": 0, "Density": 2000., "youngs_modulus": 1e6})
    mpm.add_particles({"Coordinates": [[0.25, 0.25], [0.75, 0.75]], "Volume": 0.25,
                       "Velocity": [0.1, 0.], "MaterialID": 0})
    assert mpm.solve()
    for particle in mpm.mesh.particles:
        assert particle.mass() == pytest.approx(500.)
        assert np.allclose(particle.velocity(), [0.1, 0.])
    assert np.allclose(mpm.mesh.particles[0].coordinates(), [0.25 + 2e-4, 0.25])


def test_missing_mesh():
    mpm = geompm.MPM(log=False)
    with pytest.raises(RuntimeError):
        mpm.initialise_mesh_particles()


def test_invalid_configuration():
    mpm = geompm.MPM(log=False)
    with pytest.raises(RuntimeError):
        mpm.set_configuration(log=False, dimension="4-Dimension")
    with pytest.raises(RuntimeError):
        mpm.set_configuration(log=False, dimension=2, gravity=[0., 0., -9.81])
    with pytest.raises(ValueError):
        mpm.set_solver({"Timestep": 0., "SimulationTime": 1.}, log=False)
    with pytest.raises(KeyError):
        mpm.set_solver({"Timestep": 1e-3}, log=False)


def test_simulation_defaults():
    sims = Simulation()
    assert sims.scatter_scheme == "Atomic"
    assert sims.get_total_steps() == 0
    sims.set_timestep(0.1)
    sims.set_simulation_time(1.)
    assert sims.get_total_steps() == 10
    with pytest.raises(RuntimeError):
        sims.set_scatter_scheme("Parallel")
