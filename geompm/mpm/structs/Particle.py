import io
import zipfile

import numpy as np

from geompm.utils.constants import VOIGT_SIZE
from geompm.utils.Result import Result, SUCCESS


class Particle(object):
    """Material point carrying the Lagrangian state of the continuum.

    Stress, strain and their rates are always stored as 6-component Voigt
    vectors (xx, yy, zz, xy, yz, xz) with engineering shear strains. In 2D
    the components xx, yy and xy are driven by the kinematics; zz carries the
    out-of-plane (plane strain) stress of the material law and yz, xz stay
    zero.
    """
    def __init__(self, id, coordinates, status=True, nphases=1):
        self.pid = int(id)
        self.coords = np.array(coordinates, dtype=float).reshape(-1)
        self.dim = self.coords.shape[0]
        if self.dim not in (1, 2, 3):
            raise RuntimeError(f"Particle {id}: dimension {self.dim} is not supported")
        self.nphase = int(nphases)
        self.active = bool(status)
        self.cell = None
        self.cid = None
        self.material = None
        self.material_id = 0
        self.orphan = False
        self.xi = np.zeros(self.dim)
        self.shapefn_ = None
        self.bmatrix_ = None
        self.initialise()

    def initialise(self):
        nphase, dim = self.nphase, self.dim
        self.m = np.zeros(nphase)
        self.vol = np.zeros(nphase)
        self.stress_ = np.zeros((nphase, VOIGT_SIZE))
        self.strain_ = np.zeros((nphase, VOIGT_SIZE))
        self.dstrain_ = np.zeros((nphase, VOIGT_SIZE))
        self.strain_rate_ = np.zeros((nphase, VOIGT_SIZE))
        self.velocity_ = np.zeros((nphase, dim))
        self.momentum_ = np.zeros((nphase, dim))
        self.acceleration_ = np.zeros((nphase, dim))
        self.volumetric_strain_centroid_ = np.zeros(nphase)
        self.dvolumetric_strain_ = np.zeros(nphase)

    def id(self):
        return self.pid

    def dimension(self):
        return self.dim

    def nphases(self):
        return self.nphase

    def coordinates(self):
        return self.coords.copy()

    def status(self):
        return self.active

    def assign_status(self, status):
        self.active = bool(status)

    def is_orphan(self):
        return self.orphan

    def reference_location(self):
        return self.xi.copy()

    def cell_id(self):
        return self.cid

    def check_phase(self, phase):
        if not (isinstance(phase, (int, np.integer)) and 0 <= phase < self.nphase):
            return Result.failure(f"Particle {self.pid}: phase {phase} is out of range [0, {self.nphase})")
        return SUCCESS

    def check_vector(self, phase, value, length):
        result = self.check_phase(phase)
        if not result:
            return result, None
        value = np.asarray(value, dtype=float).reshape(-1)
        if value.shape[0] != length:
            return Result.failure(f"Particle {self.pid}: vector of length {value.shape[0]} should have {length} components"), None
        return SUCCESS, value

    def assign_coordinates(self, coordinates):
        result, coordinates = self.check_vector(0, coordinates, self.dim)
        if not result:
            return result
        self.coords = coordinates.copy()
        return SUCCESS

    # ---------------------------------------------------------------- cell
    def assign_cell(self, cell):
        if not cell.is_initialised():
            return Result.failure(f"Particle {self.pid}: cell {cell.id()} is not initialised")
        if cell.element.dimension != self.dim:
            return Result.failure(f"Particle {self.pid}: cell {cell.id()} dimension does not match")
        if not cell.point_in_cell(self.coords):
            return Result.failure(f"Particle {self.pid}: not located in cell {cell.id()}")
        xi, located = cell.local_coordinates_point(self.coords)
        if not located:
            return Result.failure(f"Particle {self.pid}: local coordinates in cell {cell.id()} are not resolved")

        if self.cell is not None and self.cell is not cell:
            self.cell.remove_particle_id(self.pid)
        if self.cell is not cell:
            cell.add_particle_id(self.pid)
        self.cell = cell
        self.cid = cell.id()
        self.xi = xi
        self.orphan = False
        return SUCCESS

    def remove_cell(self):
        if self.cell is not None:
            self.cell.remove_particle_id(self.pid)
        self.cell = None
        self.cid = None
        self.shapefn_ = None
        self.bmatrix_ = None

    def compute_reference_location(self):
        if self.cell is None:
            self.orphan = True
            return Result.failure(f"Particle {self.pid}: no cell is assigned")
        xi, located = self.cell.local_coordinates_point(self.coords)
        if not located:
            self.orphan = True
            return Result.failure(f"Particle {self.pid}: outside of cell {self.cid}")
        self.xi = xi
        self.orphan = False
        return SUCCESS

    def compute_shapefn(self):
        if self.cell is None:
            return Result.failure(f"Particle {self.pid}: no cell is assigned")
        try:
            self.shapefn_ = self.cell.shapefn(self.xi)
            self.bmatrix_ = self.cell.bmatrix(self.xi)
        except np.linalg.LinAlgError:
            return Result.failure(f"Particle {self.pid}: singular Jacobian in cell {self.cid}")
        return SUCCESS

    def shapefn(self):
        return self.shapefn_

    def bmatrix(self):
        return self.bmatrix_

    # ------------------------------------------------------------ material
    def assign_material(self, material):
        if material is None or not material.status():
            return Result.failure(f"Particle {self.pid}: material is not active")
        self.material = material
        return SUCCESS

    def compute_mass(self, phase=0):
        result = self.check_phase(phase)
        if not result:
            return result
        if self.material is None:
            return Result.failure(f"Particle {self.pid}: material is not assigned")
        if not self.vol[phase] > 0.:
            return Result.failure(f"Particle {self.pid}: volume is not assigned")
        self.m[phase] = self.vol[phase] * self.material.property("density")
        return SUCCESS

    # ------------------------------------------------------------- state
    def mass(self, phase=0):
        return float(self.m[phase])

    def volume(self, phase=0):
        return float(self.vol[phase])

    def density(self, phase=0):
        return float(self.m[phase] / self.vol[phase]) if self.vol[phase] > 0. else 0.

    def stress(self, phase=0):
        return self.stress_[phase].copy()

    def strain(self, phase=0):
        return self.strain_[phase].copy()

    def dstrain(self, phase=0):
        return self.dstrain_[phase].copy()

    def strain_rate(self, phase=0):
        return self.strain_rate_[phase].copy()

    def velocity(self, phase=0):
        return self.velocity_[phase].copy()

    def momentum(self, phase=0):
        return self.momentum_[phase].copy()

    def acceleration(self, phase=0):
        return self.acceleration_[phase].copy()

    def volumetric_strain_centroid(self, phase=0):
        return float(self.volumetric_strain_centroid_[phase])

    def dvolumetric_strain(self, phase=0):
        return float(self.dvolumetric_strain_[phase])

    def assign_mass(self, phase, mass):
        result = self.check_phase(phase)
        if result:
            self.m[phase] = mass
        return result

    def assign_volume(self, phase, volume):
        result = self.check_phase(phase)
        if not result:
            return result
        if not volume > 0.:
            return Result.failure(f"Particle {self.pid}: volume {volume} should be positive")
        self.vol[phase] = volume
        return SUCCESS

    def _assign_vector(self, storage, phase, value, length):
        result, value = self.check_vector(phase, value, length)
        if result:
            storage[phase] = value
        return result

    def assign_stress(self, phase, stress):
        return self._assign_vector(self.stress_, phase, stress, VOIGT_SIZE)

    def assign_strain(self, phase, strain):
        return self._assign_vector(self.strain_, phase, strain, VOIGT_SIZE)

    def assign_velocity(self, phase, velocity):
        return self._assign_vector(self.velocity_, phase, velocity, self.dim)

    def assign_momentum(self, phase, momentum):
        return self._assign_vector(self.momentum_, phase, momentum, self.dim)

    def assign_acceleration(self, phase, acceleration):
        return self._assign_vector(self.acceleration_, phase, acceleration, self.dim)

    # ----------------------------------------------------------- mapping
    def check_mapping(self, phase):
        result = self.check_phase(phase)
        if not result:
            return result
        if self.cell is None or self.shapefn_ is None:
            return Result.failure(f"Particle {self.pid}: shape functions are not computed")
        return SUCCESS

    def map_mass_momentum_to_nodes(self, phase=0):
        result = self.check_mapping(phase)
        if not result:
            return result
        result = self.cell.assign_mass_to_nodes(self.xi, self.m[phase], phase)
        if result:
            result = self.cell.assign_momentum_to_nodes(self.xi, self.m[phase], self.velocity_[phase], phase)
        return result

    def map_body_force(self, phase, gravity):
        result = self.check_mapping(phase)
        if not result:
            return result
        return self.cell.assign_body_force_to_nodes(self.xi, self.m[phase], gravity, phase)

    def map_internal_force(self, phase=0):
        result = self.check_mapping(phase)
        if not result:
            return result
        return self.cell.assign_internal_force_to_nodes(self.bmatrix_, self.vol[phase], self.stress_[phase], phase)

    def mass_contributions(self, phase=0):
        return self.shapefn_ * self.m[phase]

    def momentum_contributions(self, phase=0):
        return self.cell.momentum_contributions(self.shapefn_, self.m[phase], self.velocity_[phase])

    def body_force_contributions(self, phase, gravity):
        return self.cell.body_force_contributions(self.shapefn_, self.m[phase], np.asarray(gravity, dtype=float))

    def internal_force_contributions(self, phase=0):
        return self.cell.internal_force_contributions(self.bmatrix_, self.vol[phase], self.stress_[phase])

    # -------------------------------------------------------- USF update
    def strain_state(self, phase=0):
        return (self.strain_[phase].copy(), self.dstrain_[phase].copy(), self.strain_rate_[phase].copy(),
                float(self.volumetric_strain_centroid_[phase]), float(self.dvolumetric_strain_[phase]), float(self.vol[phase]))

    def restore_strain_state(self, phase, state):
        strain, dstrain, strain_rate, volumetric_strain_centroid, dvolumetric_strain, volume = state
        self.strain_[phase] = strain
        self.dstrain_[phase] = dstrain
        self.strain_rate_[phase] = strain_rate
        self.volumetric_strain_centroid_[phase] = volumetric_strain_centroid
        self.dvolumetric_strain_[phase] = dvolumetric_strain
        self.vol[phase] = volume

    def compute_strain(self, phase, dt):
        if self.bmatrix_ is None and self.cell is not None:
            result = self.compute_shapefn()
            if not result:
                return result
        result = self.check_mapping(phase)
        if not result:
            return result
        strain_rate = self.cell.compute_strain_rate(self.bmatrix_, phase)
        self.strain_rate_[phase] = strain_rate
        self.dstrain_[phase] = strain_rate * dt
        self.strain_[phase] += self.dstrain_[phase]

        dvolumetric = dt * np.sum(self.cell.compute_strain_rate_centroid(phase)[:self.dim])
        self.dvolumetric_strain_[phase] = dvolumetric
        self.volumetric_strain_centroid_[phase] += dvolumetric

        if self.vol[phase] > 0.:
            self.vol[phase] *= 1. + np.sum(self.dstrain_[phase][:self.dim])
        return SUCCESS

    def compute_stress(self, phase=0):
        result = self.check_phase(phase)
        if not result:
            return result
        if self.material is None:
            return Result.failure(f"Particle {self.pid}: material is not assigned")
        try:
            stress = self.material.compute_stress(self.stress_[phase], self.dstrain_[phase], self, phase)
        except (ValueError, RuntimeError) as error:
            return Result.failure(f"Particle {self.pid}: {error}")
        if not np.all(np.isfinite(stress)):
            return Result.failure(f"Particle {self.pid}: non-finite stress")
        self.stress_[phase] = stress
        return SUCCESS

    def compute_updated_position(self, phase, dt):
        result = self.check_mapping(phase)
        if not result:
            return result
        return self.update_kinematics(phase, dt, self.cell.interpolate_velocity(self.xi, phase), self.cell.interpolate_acceleration(self.xi, phase))

    def update_kinematics(self, phase, dt, nodal_velocity, nodal_acceleration):
        result, nodal_velocity = self.check_vector(phase, nodal_velocity, self.dim)
        if not result:
            return result
        result, nodal_acceleration = self.check_vector(phase, nodal_acceleration, self.dim)
        if not result:
            return result
        self.acceleration_[phase] = nodal_acceleration
        self.velocity_[phase] += nodal_acceleration * dt
        self.coords += nodal_velocity * dt
        self.momentum_[phase] = self.m[phase] * self.velocity_[phase]
        return SUCCESS

    # ------------------------------------------------------- checkpoint
    def pack(self):
        buffer = io.BytesIO()
        np.savez(buffer, id=self.pid, dimension=self.dim, nphases=self.nphase, status=self.active,
                 cell_id=-1 if self.cid is None else self.cid, coordinates=self.coords, reference_location=self.xi,
                 mass=self.m, volume=self.vol, stress=self.stress_, strain=self.strain_, dstrain=self.dstrain_,
                 strain_rate=self.strain_rate_, velocity=self.velocity_, momentum=self.momentum_,
                 acceleration=self.acceleration_, volumetric_strain_centroid=self.volumetric_strain_centroid_,
                 dvolumetric_strain=self.dvolumetric_strain_)
        return buffer.getvalue()

    def state_shapes(self):
        nphase, dim = self.nphase, self.dim
        return {"id": (), "dimension": (), "nphases": (), "status": (), "cell_id": (),
                "coordinates": (dim,), "reference_location": (dim,), "mass": (nphase,), "volume": (nphase,),
                "stress": (nphase, VOIGT_SIZE), "strain": (nphase, VOIGT_SIZE), "dstrain": (nphase, VOIGT_SIZE),
                "strain_rate": (nphase, VOIGT_SIZE), "velocity": (nphase, dim), "momentum": (nphase, dim),
                "acceleration": (nphase, dim), "volumetric_strain_centroid": (nphase,), "dvolumetric_strain": (nphase,)}

    def decode(self, buffer):
        """Read and validate a buffer written by :meth:`pack` without changing the particle.

        Returns ``(Result, state)``; ``state`` is ``None`` on failure.
        """
        try:
            data = np.load(io.BytesIO(buffer), allow_pickle=False)
            if not hasattr(data, "files"):
                return Result.failure(f"Particle {self.pid}: buffer is not a particle archive"), None
            with data:
                state = {key: data[key] for key in data.files}
        except (ValueError, TypeError, KeyError, OSError, EOFError, zipfile.BadZipFile) as error:
            return Result.failure(f"Particle {self.pid}: buffer could not be read ({error})"), None

        shapes = self.state_shapes()
        missing = sorted(set(shapes) - set(state))
        if missing:
            return Result.failure(f"Particle {self.pid}: buffer misses {missing}"), None
        if state["dimension"].shape != () or state["nphases"].shape != () \
                or int(state["dimension"]) != self.dim or int(state["nphases"]) != self.nphase:
            return Result.failure(f"Particle {self.pid}: buffer dimension or phase count does not match"), None
        for key, shape in shapes.items():
            if state[key].shape != shape:
                return Result.failure(f"Particle {self.pid}: /{key}/ has shape {state[key].shape} instead of {shape}"), None
        return SUCCESS, state

    def unpack(self, buffer):
        result, state = self.decode(buffer)
        if result:
            self.restore_state(state)
        return result

    def restore_state(self, state):
        """Install a state returned by :meth:`decode`; the particle is detached from its cell."""
        self.remove_cell()
        self.pid = int(state["id"])
        self.active = bool(state["status"])
        self.cid = None if int(state["cell_id"]) < 0 else int(state["cell_id"])
        self.coords = state["coordinates"].copy()
        self.xi = state["reference_location"].copy()
        self.m = state["mass"].copy()
        self.vol = state["volume"].copy()
        self.stress_ = state["stress"].copy()
        self.strain_ = state["strain"].copy()
        self.dstrain_ = state["dstrain"].copy()
        self.strain_rate_ = state["strain_rate"].copy()
        self.velocity_ = state["velocity"].copy()
        self.momentum_ = state["momentum"].copy()
        self.acceleration_ = state["acceleration"].copy()
        self.volumetric_strain_centroid_ = state["volumetric_strain_centroid"].copy()
        self.dvolumetric_strain_ = state["dvolumetric_strain"].copy()
        return SUCCESS

    def __repr__(self):
        return f"Particle(id={self.pid}, coordinates={self.coords.tolist()}, cell={self.cid})"
