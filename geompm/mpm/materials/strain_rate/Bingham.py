import numpy as np

from geompm.mpm.materials.ConstitutiveModelBase import Fluid
from geompm.utils.constants import EYE, EYE2D, ZEROVEC6f
from geompm.utils.Result import Result, SUCCESS


class BinghamModel(Fluid):
    """Bingham viscoplastic fluid.

    The deviatoric stress follows from the particle strain rate with the
    apparent viscosity ``2 (tau0 / shear_rate + mu)`` once the shear rate
    exceeds the critical shear rate, and vanishes below it. The pressure is
    ``-K`` times the centroid volumetric strain of the particle.
    """
    essentials = ("density", "youngs_modulus", "poisson_ratio", "tau0", "mu", "critical_shear_rate")
    alternatives = {}

    def check_properties(self, parameters):
        result = super().check_properties(parameters)
        if not result:
            return result
        for keyword in ("tau0", "mu", "critical_shear_rate"):
            if parameters[keyword] < 0.:
                return Result.failure(f"Material {self.mid}: {keyword} should not be negative")
        return SUCCESS

    def add_material(self, density, youngs_modulus, poisson_ratio, tau0, mu, critical_shear_rate):
        super().add_material(density, youngs_modulus, poisson_ratio)
        self._yield = tau0
        self.viscosity = mu
        self.critical_rate = critical_shear_rate

    def print_message(self, materialID=None):
        print(" Constitutive Model Information ".center(71, '-'))
        print('Constitutive model = Bingham Model')
        print("Model ID: ", self.mid if materialID is None else materialID)
        print("Model density = ", self.density)
        print('Bulk Modulus = ', self.bulk)
        print('Viscosity = ', self.viscosity)
        print('Yield Stress = ', self._yield)
        print('Critical Shear Rate = ', self.critical_rate, '\n')

    def shear_stress(self, strain_rate):
        # tensor strain rate from engineering shear components
        rate = np.array(strain_rate, dtype=float)
        rate[3:] *= 0.5

        # Rate of shear = sqrt(2 * D_ij * D_ij)
        shear_rate = np.sqrt(2. * (np.dot(rate[:3], rate[:3]) + 2. * np.dot(rate[3:], rate[3:])))

        if shear_rate * shear_rate > self.critical_rate * self.critical_rate:
            apparent_viscosity = 2. * (self._yield / shear_rate + self.viscosity)
            return apparent_viscosity * rate
        return ZEROVEC6f.copy()

    def compute_stress(self, stress, dstrain, particle, phase=0):
        self.check_stress_inputs(stress, dstrain)
        tau = self.shear_stress(particle.strain_rate(phase))
        if self.dimension == 2:
            tau[2] = tau[4] = tau[5] = 0.
            identity = EYE2D
        else:
            identity = EYE
        pressure = -self.bulk * particle.volumetric_strain_centroid(phase)
        return -pressure * identity + tau


class Bingham2D(BinghamModel):
    def __init__(self, id):
        super().__init__(id, dimension=2)


class Bingham3D(BinghamModel):
    def __init__(self, id):
        super().__init__(id, dimension=3)
