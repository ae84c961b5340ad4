import numpy as np
import pytest

from geompm.mpm.elements.ElementFactory import create_element
from geompm.mpm.MaterialManager import create_material
from geompm.mpm.structs import Cell, Node, Particle
from geompm.utils.constants import DBL_MAX


PROPERTIES = {"density": 1000., "youngs_modulus": 1.0E+7, "poisson_ratio": 0.3,
              "tau0": 771.8, "mu": 0.0451, "critical_shear_rate": 0.2}

DSTRAIN = np.array([-0.001, 0.0005, 0., 0., 0., 0.])


def particle_in_cell(dim, node0_velocity=None):
    element = create_element("ED2Q4" if dim == 2 else "ED3H8")
    corners = 2. * np.array(element.unit_cell_coordinates())
    cell = Cell(0, element.nfunctions, element)
    for i, coords in enumerate(corners):
        node = Node(i, coords)
        if i == 0 and node0_velocity is not None:
            for direction, velocity in enumerate(node0_velocity):
                node.assign_velocity_constraint(direction, velocity)
            node.apply_velocity_constraints()
        cell.add_node(i, node)
    assert cell.initialise()

    material = create_material(f"Bingham{dim}D", 0)
    assert material.properties(PROPERTIES)
    particle = Particle(0, [0.5] * dim)
    assert particle.assign_cell(cell)
    assert particle.assign_material(material)
    assert particle.compute_shapefn()
    assert particle.compute_strain(0, 1.)
    return material, particle


def test_material_ids():
    assert create_material("Bingham2D", 0).id() == 0
    assert create_material("Bingham2D", 4294967295).id() == 4294967295


def test_properties():
    material = create_material("Bingham2D", 0)
    assert material.status() is False
    assert material.property("density") == DBL_MAX
    assert material.property("noproperty") == DBL_MAX

    assert material.properties(PROPERTIES)
    assert material.status() is True
    assert material.property_handle() is True
    assert material.property("density") == pytest.approx(1000.)
    assert material.property("tau0") == pytest.approx(771.8)


def test_invalid_properties():
    material = create_material("Bingham2D", 0)
    missing = dict(PROPERTIES)
    missing.pop("tau0")
    result = material.properties(missing)
    assert not result
    assert "tau0" in result.reason
    assert material.status() is False

    assert not material.properties(dict(PROPERTIES, mu=-1.))
    assert not material.properties(dict(PROPERTIES, density="heavy"))
    assert not material.properties(dict(PROPERTIES, poisson_ratio=0.5))
    assert material.status() is False


def test_stress_without_strain_rate():
    material, particle = particle_in_cell(2)
    stress = material.compute_stress(np.zeros(6), DSTRAIN, particle)
    assert stress.shape == (6,)
    assert np.allclose(stress, 0.)


def test_stress_below_critical_shear_rate():
    material, particle = particle_in_cell(2, [0.02, 0.03])
    stress = material.compute_stress(np.zeros(6), DSTRAIN, particle)
    assert stress[0] == pytest.approx(-208333.3333333333, rel=1e-7)
    assert stress[1] == pytest.approx(-208333.3333333333, rel=1e-7)
    assert np.allclose(stress[2:], 0.)


def test_stress_above_critical_shear_rate():
    material, particle = particle_in_cell(2, [2., 3.])
    stress = material.compute_stress(np.zeros(6), DSTRAIN, particle)
    assert stress[0] == pytest.approx(-20833765.64471337, rel=1e-7)
    assert stress[1] == pytest.approx(-20833981.80040339, rel=1e-7)
    assert stress[2] == 0.
    assert stress[3] == pytest.approx(-540.38922505, rel=1e-7)
    assert stress[4] == 0.
    assert stress[5] == 0.


def test_stress_3d_below_critical_shear_rate():
    material, particle = particle_in_cell(3, [0.02, 0.03, 0.04])
    stress = material.compute_stress(np.zeros(6), DSTRAIN, particle)
    assert np.allclose(stress[:3], -375000., rtol=1e-9)
    assert np.allclose(stress[3:], 0.)


def test_stress_is_independent_of_incoming_stress():
    material, particle = particle_in_cell(2, [2., 3.])
    first = material.compute_stress(np.zeros(6), DSTRAIN, particle)
    second = material.compute_stress(np.full(6, 1e3), np.zeros(6), particle)
    assert np.allclose(first, second)


def test_inactive_material_rejects_stress():
    _, particle = particle_in_cell(2)
    material = create_material("Bingham2D", 1)
    with pytest.raises(RuntimeError):
        material.compute_stress(np.zeros(6), DSTRAIN, particle)
    active = create_material("Bingham2D", 2)
    active.properties(PROPERTIES)
    with pytest.raises(ValueError):
        active.compute_stress(np.zeros(3), DSTRAIN, particle)


def test_sound_speed():
    material = create_material("Bingham3D", 0)
    material.properties(PROPERTIES)
    bulk = 1.0E+7 / (3. * (1. - 2. * 0.3))
    assert material.get_sound_speed() == pytest.approx(np.sqrt(bulk / 1000.))
