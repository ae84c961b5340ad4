import numpy as np
import pytest

from geompm.mpm.elements.ElementFactory import create_element
from geompm.mpm.structs import Cell, Node
from geompm.mpm.structs.Cell import hexahedron_volume, quadrilateral_area


def build_cell(coords, element_type, cid=0):
    element = create_element(element_type)
    nodes = [Node(i, c) for i, c in enumerate(coords)]
    cell = Cell(cid, element.nfunctions, element)
    for i, node in enumerate(nodes):
        assert cell.add_node(i, node)
    return cell, nodes


def test_quadrilateral_cell(quad_coords):
    cell, _ = build_cell(quad_coords * 2., "ED2Q4")
    assert cell.initialise()
    assert cell.is_initialised()
    assert cell.volume() == pytest.approx(16.)
    assert np.allclose(cell.centroid(), [2., 2.])
    assert cell.mean_length() == pytest.approx(4.)
    assert cell.nodes_id() == [0, 1, 2, 3]


def test_hexahedron_cell(hex_coords):
    cell, _ = build_cell(hex_coords * 2., "ED3H8")
    assert cell.initialise()
    assert cell.volume() == pytest.approx(64.)
    assert np.allclose(cell.centroid(), [2., 2., 2.])


def test_distorted_volumes():
    corners = np.array([[0., 0.], [3., 0.], [2., 2.], [0., 1.]])
    # shoelace area of the same polygon
    assert quadrilateral_area(corners) == pytest.approx(4.)

    element = create_element("ED3H8")
    hexa = np.array(element.unit_cell_coordinates()) + 1.
    hexa[6] += [0.5, 0.5, 0.5]
    # exact volume of the trilinear map: integral of det J over the reference cell
    points = [-np.sqrt(1. / 3.), np.sqrt(1. / 3.)]
    exact = sum(np.linalg.det(element.jacobian([x, y, z], hexa)) for x in points for y in points for z in points)
    assert hexahedron_volume(hexa, element.faces_indices()) == pytest.approx(exact)


def test_add_node_failures(quad_coords):
    element = create_element("ED2Q4")
    cell = Cell(0, 4, element)
    node = Node(0, quad_coords[0])
    assert not cell.add_node(4, node)
    assert not cell.add_node(-1, node)
    assert cell.add_node(0, node)
    assert not cell.add_node(0, node)
    assert not cell.add_node(1, Node(1, [0., 0., 0.]))
    assert cell.nnodes() == 1

    with pytest.raises(RuntimeError):
        Cell(1, 8, element)


def test_initialise_failures(quad_coords):
    element = create_element("ED2Q4")
    cell = Cell(0, 4, element)
    for i in range(3):
        cell.add_node(i, Node(i, quad_coords[i]))
    result = cell.initialise()
    assert not result
    assert not cell.is_initialised()

    degenerate, _ = build_cell(np.array([[0., 0.], [1., 0.], [2., 0.], [3., 0.]]), "ED2Q4")
    assert not degenerate.initialise()
    assert not degenerate.point_in_cell([0.5, 0.])


def test_point_in_cell(quad_coords, hex_coords):
    cell, _ = build_cell(quad_coords * 2., "ED2Q4")
    cell.initialise()
    assert cell.point_in_cell([1., 1.])
    assert cell.point_in_cell([0., 0.])
    assert cell.point_in_cell([4., 2.])
    assert not cell.point_in_cell([4.5, 2.])
    assert not cell.point_in_cell([-0.1, 1.])
    assert not cell.point_in_cell([1., 1., 1.])

    hexa, _ = build_cell(hex_coords, "ED3H8")
    hexa.initialise()
    assert hexa.point_in_cell([0.5, 1.5, 1.])
    assert not hexa.point_in_cell([0.5, 1.5, 2.5])


def test_local_coordinates(quad_coords, hex_coords):
    cell, _ = build_cell(quad_coords * 2., "ED2Q4")
    cell.initialise()
    xi, located = cell.local_coordinates_point([1., 3.])
    assert located
    assert np.allclose(xi, [-0.5, 0.5])

    skewed, _ = build_cell(np.array([[0., 0.], [3., 0.], [2., 2.], [0., 1.]]), "ED2Q4")
    skewed.initialise()
    xi, located = skewed.local_coordinates_point([1., 0.75])
    assert located
    assert np.allclose(skewed.shapefn(xi) @ skewed.nodal_coordinates(), [1., 0.75])

    _, located = cell.local_coordinates_point([5., 1.])
    assert not located

    hexa, _ = build_cell(hex_coords, "ED3H8")
    hexa.initialise()
    xi, located = hexa.local_coordinates_point([1.5, 0.5, 1.])
    assert located
    assert np.allclose(xi, [0.5, -0.5, 0.])


def test_mass_and_momentum_scatter(quad_coords):
    cell, nodes = build_cell(quad_coords, "ED2Q4")
    cell.initialise()
    assert cell.assign_mass_to_nodes([0., 0.], 4.)
    assert cell.assign_momentum_to_nodes([0., 0.], 4., [1., -1.])
    for node in nodes:
        assert node.mass(0) == pytest.approx(1.)
        assert np.allclose(node.momentum(0), [1., -1.])

    result = cell.assign_momentum_to_nodes([0., 0.], 4., [1., -1., 0.])
    assert not result
    for node in nodes:
        assert np.allclose(node.momentum(0), [1., -1.])


def test_internal_force_balances(quad_coords):
    cell, nodes = build_cell(quad_coords, "ED2Q4")
    cell.initialise()
    stress = np.array([100., 50., 0., 10., 0., 0.])
    assert cell.assign_internal_force_to_nodes(cell.bmatrix([0.2, 0.1]), 4., stress)
    total = sum(node.internal_force(0) for node in nodes)
    assert np.allclose(total, 0.)
    assert not cell.assign_internal_force_to_nodes(cell.bmatrix([0., 0.]), 4., stress[:3])


def test_strain_rate_and_interpolation(quad_coords):
    cell, nodes = build_cell(quad_coords, "ED2Q4")
    cell.initialise()
    for node in nodes:
        x, y = node.coordinates()
        node.assign_velocity(0, [0.1 * x, 0.2 * y + 0.3 * x])
    xi = np.array([0.25, -0.5])
    assert np.allclose(cell.compute_strain_rate(cell.bmatrix(xi)), [0.1, 0.2, 0., 0.3, 0., 0.])
    assert np.allclose(cell.interpolate_velocity(xi), [0.125, 0.475])
    # det J at the centroid of the 2 x 2 cell is 1
    assert np.allclose(cell.compute_strain_rate_centroid(), [0.1, 0.2, 0., 0.3, 0., 0.])


def test_particle_membership(quad_coords):
    cell, _ = build_cell(quad_coords, "ED2Q4")
    assert not cell.status()
    assert cell.add_particle_id(3)
    assert not cell.add_particle_id(3)
    assert cell.status()
    assert cell.particle_ids() == [3]
    assert not cell.remove_particle_id(4)
    assert cell.remove_particle_id(3)
    assert cell.nparticles() == 0


def test_neighbours(quad_coords):
    cell, _ = build_cell(quad_coords, "ED2Q4")
    assert not cell.add_neighbour(0)
    assert cell.add_neighbour(2)
    assert cell.add_neighbour(1)
    cell.add_neighbour(2)
    assert cell.neighbours() == [1, 2]


def test_quadratic_cell_geometry():
    element = create_element("ED2Q9")
    coords = (np.array(element.unit_cell_coordinates()) + 1.) * 0.5
    cell, _ = build_cell(coords, "ED2Q9")
    assert cell.initialise()
    assert cell.volume() == pytest.approx(1.)
    xi, located = cell.local_coordinates_point([0.75, 0.25])
    assert located
    assert np.allclose(xi, [0.5, -0.5])
