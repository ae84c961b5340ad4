from geompm.mpm.structs.Node import Node
from geompm.mpm.structs.Cell import Cell
from geompm.mpm.structs.Particle import Particle
