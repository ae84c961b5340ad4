import numpy as np

from geompm.utils.constants import DBL_MAX, VOIGT_SIZE
from geompm.utils.ObjectIO import DictIO
from geompm.utils.Result import Result, SUCCESS


class MaterialModel(object):
    """Constitutive law interface.

    ``properties`` validates a property-name to value mapping and activates the
    material. ``compute_stress`` is pure given the incoming stress, strain
    increment and the particle it is evaluated for, so it can be called for
    many particles at once.
    """
    essentials = ()
    alternatives = {}

    def __init__(self, id, dimension=3):
        self.mid = int(id)
        self.dimension = int(dimension)
        if self.dimension not in (1, 2, 3):
            raise RuntimeError(f"Material {id}: dimension {dimension} is not supported")
        self.parameters = {}
        self.active = False

    def id(self):
        return self.mid

    def status(self):
        return self.active

    def property_handle(self):
        return self.active

    def property(self, name):
        return self.parameters.get(str(name).lower(), DBL_MAX)

    def properties(self, config):
        parameters = {}
        for keyword in self.essentials:
            try:
                value = DictIO.GetEssential(config, keyword)
            except KeyError:
                return Result.failure(f"Material {self.mid}: property {keyword} is missing")
            parameters[keyword] = value
        for keyword, default in self.alternatives.items():
            parameters[keyword] = DictIO.GetAlternative(config, keyword, default)

        for keyword, value in parameters.items():
            if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)) or not np.isfinite(value):
                return Result.failure(f"Material {self.mid}: property {keyword} should be a finite number")
        result = self.check_properties(parameters)
        if not result:
            return result

        self.parameters = {keyword: float(value) for keyword, value in parameters.items()}
        self.add_material(**self.parameters)
        self.active = True
        return SUCCESS

    def check_properties(self, parameters):
        if parameters["density"] <= 0.:
            return Result.failure(f"Material {self.mid}: density should be positive")
        return SUCCESS

    def add_material(self, **parameters):
        raise NotImplementedError

    def get_sound_speed(self):
        raise NotImplementedError

    def check_stress_inputs(self, stress, dstrain):
        if not self.active:
            raise RuntimeError(f"Material {self.mid} is not active")
        stress = np.asarray(stress, dtype=float).reshape(-1)
        dstrain = np.asarray(dstrain, dtype=float).reshape(-1)
        if stress.shape[0] != VOIGT_SIZE or dstrain.shape[0] != VOIGT_SIZE:
            raise ValueError(f"Material {self.mid}: stress and strain increment should have {VOIGT_SIZE} components")
        return stress, dstrain

    def compute_stress(self, stress, dstrain, particle, phase=0):
        raise NotImplementedError

    def print_message(self, materialID=None):
        print(" Constitutive Model Information ".center(71, '-'))
        print('Constitutive model =', type(self).__name__)
        print("Model ID: ", self.mid if materialID is None else materialID)
        for keyword, value in self.parameters.items():
            print(f"{keyword} = ", value)
        print('')


class Solid(MaterialModel):
    essentials = ("density", "youngs_modulus")
    alternatives = {"poisson_ratio": 0.3}

    def check_properties(self, parameters):
        result = super().check_properties(parameters)
        if not result:
            return result
        if parameters["youngs_modulus"] <= 0.:
            return Result.failure(f"Material {self.mid}: youngs_modulus should be positive")
        if not -1. < parameters["poisson_ratio"] < 0.5:
            return Result.failure(f"Material {self.mid}: poisson_ratio should lie in (-1, 0.5)")
        return SUCCESS

    def add_material(self, density, youngs_modulus, poisson_ratio, **kwargs):
        self.density = density
        self.young = youngs_modulus
        self.poisson = poisson_ratio
        self.shear = 0.5 * self.young / (1. + self.poisson)
        self.bulk = self.young / (3. * (1. - 2. * self.poisson))

    def get_sound_speed(self):
        return np.sqrt(self.young * (1. - self.poisson) / (1. + self.poisson) / (1. - 2. * self.poisson) / self.density)


class Fluid(Solid):
    def get_sound_speed(self):
        return np.sqrt(self.bulk / self.density)
