import numpy as np
import pytest

from geompm.mpm.structs import Node


def make_node(dim=2, **kwargs):
    return Node(0, np.zeros(dim), **kwargs)


def test_construction():
    node = make_node(3)
    assert node.id() == 0
    assert node.dof() == 3
    assert node.nphases() == 1
    assert node.status() is False
    assert np.all(node.momentum() == 0.)

    with pytest.raises(RuntimeError):
        make_node(3, dof=2)
    with pytest.raises(RuntimeError):
        make_node(2, dof=4)
    assert make_node(2, dof=6).dof() == 6


def test_mass_accumulation():
    node = make_node()
    assert node.update_mass(True, 0, 100.5)
    assert node.update_mass(True, 0, 100.5)
    assert node.mass(0) == pytest.approx(201.)
    assert node.status()

    assert node.update_mass(False, 0, 100.)
    assert node.mass(0) == pytest.approx(100.)

    result = node.update_mass(True, 1, 10.)
    assert not result
    assert result == False
    assert "phase" in result.reason


def test_volume():
    node = make_node()
    node.update_volume(True, 0, 0.5)
    node.update_volume(True, 0, 0.25)
    assert node.volume(0) == pytest.approx(0.75)


def test_momentum_and_velocity():
    node = make_node()
    node.update_mass(False, 0, 100.)
    assert node.update_momentum(True, 0, [10., 20.])
    node.compute_velocity()
    assert np.allclose(node.velocity(0), [0.1, 0.2])


def test_wrong_length_leaves_state_unchanged():
    node = make_node()
    node.update_momentum(False, 0, [1., 2.])
    result = node.update_momentum(True, 0, [1., 2., 3.])
    assert not result
    assert np.allclose(node.momentum(0), [1., 2.])
    assert not node.update_external_force(True, 0, [1.])
    assert np.all(node.external_force(0) == 0.)
    assert not node.assign_velocity(0, [1., 2., 3.])


def test_velocity_below_mass_cut_off():
    node = make_node()
    node.update_momentum(False, 0, [1., 2.])
    node.compute_velocity()
    assert np.all(node.velocity(0) == 0.)
    assert node.status() is False


def test_acceleration_and_velocity_update():
    node = make_node()
    node.update_mass(False, 0, 2.)
    node.update_momentum(False, 0, [2., 0.])
    node.compute_velocity()
    node.update_external_force(False, 0, [0., -20.])
    node.update_internal_force(False, 0, [4., 0.])
    assert node.compute_acceleration_velocity(0, 0.1)
    assert np.allclose(node.acceleration(0), [2., -10.])
    assert np.allclose(node.velocity(0), [1.2, -1.])
    assert np.allclose(node.momentum(0), [2.4, -2.])
    assert not node.compute_acceleration_velocity(3, 0.1)


def test_velocity_constraints():
    node = make_node()
    assert node.assign_velocity_constraint(1, 0.)
    assert not node.assign_velocity_constraint(2, 0.)

    node.update_mass(False, 0, 1.)
    node.update_momentum(False, 0, [1., 1.])
    node.compute_velocity()
    assert np.allclose(node.velocity(0), [1., 0.])
    assert np.allclose(node.momentum(0), [1., 0.])

    node.update_external_force(False, 0, [0., -9.81])
    node.compute_acceleration_velocity(0, 0.5)
    assert node.acceleration(0)[1] == 0.
    assert node.velocity(0)[1] == 0.

    assert node.remove_velocity_constraint(1)
    assert not node.remove_velocity_constraint(1)


def test_initialise_resets_accumulators():
    node = make_node()
    node.update_mass(False, 0, 1.)
    node.update_momentum(False, 0, [1., 1.])
    node.assign_velocity_constraint(0, 0.5)
    node.initialise()
    assert node.mass(0) == 0.
    assert np.all(node.momentum(0) == 0.)
    assert node.status() is True
    assert node.velocity_constraints == {0: 0.5}


def test_multiphase_storage():
    node = Node(3, [1., 2., 3.], nphases=2)
    node.update_mass(False, 1, 4.)
    assert node.mass(0) == 0.
    assert node.mass(1) == 4.


def test_coordinates():
    node = make_node(3)
    assert node.assign_coordinates([1., 2., 3.])
    assert np.allclose(node.coordinates(), [1., 2., 3.])
    assert not node.assign_coordinates([1., 2.])
