from geompm.mpm.elements.HexahedronElement import HexahedronElement
from geompm.mpm.elements.QuadrilateralElement import QuadrilateralElement


ELEMENT_REGISTRY = {
                        "ED2Q4": (QuadrilateralElement, 4),
                        "ED2Q8": (QuadrilateralElement, 8),
                        "ED2Q9": (QuadrilateralElement, 9),
                        "ED3H8": (HexahedronElement, 8),
                        "ED3H20": (HexahedronElement, 20)
                   }


def check_registry():
    for name, (element_class, nnodes) in ELEMENT_REGISTRY.items():
        expected = f"ED{element_class.dimension}{'Q' if element_class.dimension == 2 else 'H'}{nnodes}"
        if name != expected:
            raise RuntimeError(f"Element registry entry {name} does not match {element_class.__name__} with {nnodes} nodes")


def element_names():
    return list(ELEMENT_REGISTRY.keys())


def create_element(name):
    if name not in ELEMENT_REGISTRY:
        raise RuntimeError(f"Keyword:: /element/ {name} is invalid. The valid type are given as follows: {element_names()}")
    element_class, nnodes = ELEMENT_REGISTRY[name]
    return element_class(nnodes)


def create_element_by_topology(dimension, nnodes):
    for element_class, registered_nodes in ELEMENT_REGISTRY.values():
        if element_class.dimension == dimension and registered_nodes == nnodes:
            return element_class(nnodes)
    raise RuntimeError(f"Element with dimension {dimension} and {nnodes} nodes is not supported")


check_registry()
