import numpy as np

from geompm.utils.constants import Threshold
from geompm.utils.Result import Result, SUCCESS


class Node(object):
    """Background grid node.

    Per phase the node stores mass and volume, and momentum, external force,
    internal force, velocity and acceleration vectors of length ``dof``.
    The accumulators are rebuilt every step through :meth:`initialise`.
    Velocity constraints persist until they are reassigned.
    """
    def __init__(self, id, coordinates, dof=None, nphases=1, mass_cut_off=Threshold):
        self.nid = int(id)
        self.coords = np.array(coordinates, dtype=float).reshape(-1)
        self.dim = self.coords.shape[0]
        self.ndof = self.dim if dof is None else int(dof)
        if self.ndof not in (1, 2, 3, 6):
            raise RuntimeError(f"Keyword:: /dof/ {self.ndof} is invalid. Only [1, 2, 3, 6] is valid")
        if self.ndof < self.dim:
            raise RuntimeError(f"Node degrees of freedom {self.ndof} should not be less than the dimension {self.dim}")
        self.nphase = int(nphases)
        if self.nphase < 1:
            raise RuntimeError("Keyword:: /nphases/ should be larger than 0")
        self.mass_cut_off = mass_cut_off
        self.active = False
        self.velocity_constraints = {}
        self.initialise()

    def initialise(self):
        self.m = np.zeros(self.nphase)
        self.vol = np.zeros(self.nphase)
        self.momentum_ = np.zeros((self.nphase, self.ndof))
        self.external_force_ = np.zeros((self.nphase, self.ndof))
        self.internal_force_ = np.zeros((self.nphase, self.ndof))
        self.velocity_ = np.zeros((self.nphase, self.ndof))
        self.acceleration_ = np.zeros((self.nphase, self.ndof))

    def id(self):
        return self.nid

    def coordinates(self):
        return self.coords.copy()

    def assign_coordinates(self, coordinates):
        coordinates = np.asarray(coordinates, dtype=float).reshape(-1)
        if coordinates.shape[0] != self.dim:
            return Result.failure(f"Node {self.nid}: coordinates should have {self.dim} components")
        self.coords = coordinates.copy()
        return SUCCESS

    def dof(self):
        return self.ndof

    def nphases(self):
        return self.nphase

    def status(self):
        return self.active

    def assign_status(self, status):
        self.active = bool(status)

    def check_phase(self, phase):
        if not (isinstance(phase, (int, np.integer)) and 0 <= phase < self.nphase):
            return Result.failure(f"Node {self.nid}: phase {phase} is out of range [0, {self.nphase})")
        return SUCCESS

    def check_vector(self, phase, value):
        result = self.check_phase(phase)
        if not result:
            return result, None
        value = np.asarray(value, dtype=float).reshape(-1)
        if value.shape[0] != self.ndof:
            return Result.failure(f"Node {self.nid}: vector of length {value.shape[0]} does not match {self.ndof} degrees of freedom"), None
        return SUCCESS, value

    def _update_scalar(self, storage, additive, phase, value):
        result = self.check_phase(phase)
        if not result:
            return result
        if additive:
            storage[phase] += value
        else:
            storage[phase] = value
        return SUCCESS

    def _update_vector(self, storage, additive, phase, value):
        result, value = self.check_vector(phase, value)
        if not result:
            return result
        if additive:
            storage[phase] += value
        else:
            storage[phase] = value
        return SUCCESS

    def update_mass(self, additive, phase, mass):
        result = self._update_scalar(self.m, additive, phase, mass)
        if result and self.m[phase] > self.mass_cut_off:
            self.active = True
        return result

    def update_volume(self, additive, phase, volume):
        return self._update_scalar(self.vol, additive, phase, volume)

    def update_momentum(self, additive, phase, momentum):
        return self._update_vector(self.momentum_, additive, phase, momentum)

    def update_external_force(self, additive, phase, force):
        return self._update_vector(self.external_force_, additive, phase, force)

    def update_internal_force(self, additive, phase, force):
        return self._update_vector(self.internal_force_, additive, phase, force)

    def update_acceleration(self, additive, phase, acceleration):
        return self._update_vector(self.acceleration_, additive, phase, acceleration)

    def assign_velocity(self, phase, velocity):
        return self._update_vector(self.velocity_, False, phase, velocity)

    def mass(self, phase=0):
        return float(self.m[phase])

    def volume(self, phase=0):
        return float(self.vol[phase])

    def momentum(self, phase=0):
        return self.momentum_[phase].copy()

    def external_force(self, phase=0):
        return self.external_force_[phase].copy()

    def internal_force(self, phase=0):
        return self.internal_force_[phase].copy()

    def velocity(self, phase=0):
        return self.velocity_[phase].copy()

    def acceleration(self, phase=0):
        return self.acceleration_[phase].copy()

    def compute_velocity(self):
        for phase in range(self.nphase):
            if self.m[phase] > self.mass_cut_off:
                self.velocity_[phase] = self.momentum_[phase] / self.m[phase]
            else:
                self.velocity_[phase] = 0.
        self.apply_velocity_constraints()

    def compute_acceleration_velocity(self, phase, dt):
        result = self.check_phase(phase)
        if not result:
            return result
        if self.m[phase] > self.mass_cut_off:
            self.acceleration_[phase] = (self.external_force_[phase] + self.internal_force_[phase]) / self.m[phase]
            self.velocity_[phase] += self.acceleration_[phase] * dt
            self.momentum_[phase] = self.m[phase] * self.velocity_[phase]
        else:
            self.acceleration_[phase] = 0.
        self.apply_velocity_constraints()
        return SUCCESS

    def assign_velocity_constraint(self, dof, velocity):
        """Prescribe ``velocity`` on the local degree of freedom ``dof`` for every phase."""
        if not (isinstance(dof, (int, np.integer)) and 0 <= dof < self.ndof):
            return Result.failure(f"Node {self.nid}: constrained direction {dof} is out of range [0, {self.ndof})")
        self.velocity_constraints[int(dof)] = float(velocity)
        return SUCCESS

    def remove_velocity_constraint(self, dof):
        return self.velocity_constraints.pop(int(dof), None) is not None

    def apply_velocity_constraints(self):
        for dof, velocity in self.velocity_constraints.items():
            self.velocity_[:, dof] = velocity
            self.momentum_[:, dof] = self.m * velocity
            self.acceleration_[:, dof] = 0.

    def __repr__(self):
        return f"Node(id={self.nid}, coordinates={self.coords.tolist()})"
