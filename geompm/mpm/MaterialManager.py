from geompm.mpm.materials.ConstitutiveModelBase import MaterialModel
from geompm.mpm.materials.infinitesimal_strain.LinearElastic import LinearElastic2D, LinearElastic3D
from geompm.mpm.materials.strain_rate.Bingham import Bingham2D, Bingham3D
from geompm.utils.ObjectIO import DictIO


MATERIAL_REGISTRY = {
                        "LinearElastic2D": LinearElastic2D,
                        "LinearElastic3D": LinearElastic3D,
                        "Bingham2D": Bingham2D,
                        "Bingham3D": Bingham3D
                    }


def check_registry():
    for name, model in MATERIAL_REGISTRY.items():
        if not issubclass(model, MaterialModel):
            raise RuntimeError(f"Material registry entry {name} is not a constitutive model")
        if not name.endswith(("2D", "3D")):
            raise RuntimeError(f"Material registry entry {name} should end with its dimension")


def create_material(name, id):
    if name not in MATERIAL_REGISTRY:
        raise ValueError(f'Constitutive Model: {name} error! Only the following is aviliable:\n{list(MATERIAL_REGISTRY.keys())}')
    return MATERIAL_REGISTRY[name](id)


class MaterialHandle(object):
    def __init__(self, dimension=3):
        self.dimension = dimension
        self.matProps = {}
        self.material_parameters = []

    def check_materialID(self, materialID):
        if materialID < 0:
            raise RuntimeError(f"MaterialID {materialID} should not be negative")
        if materialID in self.matProps:
            print(f"Material {materialID} Property will be overwritten!")

    def material_handle(self, constitutive_model):
        if not constitutive_model.endswith(("2D", "3D")):
            constitutive_model = f"{constitutive_model}{self.dimension}D"
        if constitutive_model not in MATERIAL_REGISTRY:
            raise ValueError(f'Constitutive Model: {constitutive_model} error! Only the following is aviliable:\n{list(MATERIAL_REGISTRY.keys())}')
        model = MATERIAL_REGISTRY[constitutive_model]
        if int(constitutive_model[-2]) != self.dimension:
            raise RuntimeError(f"Constitutive Model: {constitutive_model} does not match the {self.dimension}-dimensional simulation")
        return model

    def initialize(self, constitutive_model, parameter, log=True):
        materialID = DictIO.GetEssential(parameter, 'MaterialID')
        self.check_materialID(materialID)
        material = self.material_handle(constitutive_model)(materialID)
        result = material.properties(parameter)
        if not result:
            raise RuntimeError(f"KeyWord:: /material/ {constitutive_model} is invalid. {result.reason}")
        if log:
            material.print_message(materialID)
        self.matProps[materialID] = material
        self.material_parameters.append(parameter)
        return material

    def save_material(self, constitutive_model, parameters, log=True):
        if isinstance(parameters, dict):
            parameters = [parameters]
        return [self.initialize(constitutive_model, parameter, log) for parameter in parameters]

    def get_material(self, materialID):
        if materialID not in self.matProps:
            raise RuntimeError(f"MaterialID {materialID} has not been defined")
        return self.matProps[materialID]

    def size(self):
        return len(self.matProps)

    def find_max_sound_speed(self):
        max_sound_speed = 0.
        for material in self.matProps.values():
            max_sound_speed = max(max_sound_speed, material.get_sound_speed())
        return max_sound_speed


check_registry()
