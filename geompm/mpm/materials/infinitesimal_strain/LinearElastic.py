import numpy as np

from geompm.mpm.materials.ConstitutiveModelBase import Solid


class LinearElasticModel(Solid):
    def add_material(self, density, youngs_modulus, poisson_ratio, **kwargs):
        super().add_material(density, youngs_modulus, poisson_ratio)
        self.elastic_tensor = self.compute_elastic_tensor()

    def compute_elastic_tensor(self):
        lame = self.bulk - 2. / 3. * self.shear
        tensor = np.zeros((6, 6))
        tensor[:3, :3] = lame
        tensor[[0, 1, 2], [0, 1, 2]] += 2. * self.shear
        tensor[[3, 4, 5], [3, 4, 5]] = self.shear
        return tensor

    def print_message(self, materialID=None):
        print(" Constitutive Model Information ".center(71, '-'))
        print('Constitutive model: Elastic Model')
        print("Model ID: ", self.mid if materialID is None else materialID)
        print('Density: ', self.density)
        print('Young Modulus: ', self.young)
        print('Poisson Ratio: ', self.poisson, '\n')

    def compute_stress(self, stress, dstrain, particle, phase=0):
        stress, dstrain = self.check_stress_inputs(stress, dstrain)
        return stress + self.elastic_tensor @ dstrain


class LinearElastic2D(LinearElasticModel):
    def __init__(self, id):
        super().__init__(id, dimension=2)


class LinearElastic3D(LinearElasticModel):
    def __init__(self, id):
        super().__init__(id, dimension=3)
