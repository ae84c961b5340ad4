import numpy as np

from geompm.utils.constants import LThreshold, Threshold
from geompm.utils.TimeTicker import Timer


class Simulation(object):
    def __init__(self) -> None:
        self.dimension = 3
        self.nphases = 1
        self.gravity = np.zeros(3)
        self.scatter_scheme = "Atomic"
        self.chunk_number = 8
        self.mass_cut_off = Threshold
        self.tolerance = LThreshold
        self.stop_on_orphan = False
        self.timer = Timer()

        self.dt = 0.
        self.time = 0.
        self.current_time = 0.
        self.current_step = 0
        self.print_interval = 1
        self.CFL = 0.5

    def set_dimension(self, dimension):
        DIMENSION = {"2-Dimension": 2, "3-Dimension": 3, 2: 2, 3: 3}
        if dimension not in DIMENSION:
            raise RuntimeError(f"Keyword:: /dimension/ {dimension} is invalid. The valid type are given as follows: {list(DIMENSION.keys())}")
        self.dimension = DIMENSION[dimension]
        if self.gravity.shape[0] != self.dimension:
            self.gravity = np.zeros(self.dimension)

    def set_nphases(self, nphases):
        if nphases != 1:
            raise RuntimeError("Keyword:: /nphases/ Only single phase material point method is supported")
        self.nphases = nphases

    def set_gravity(self, gravity):
        gravity = np.asarray(gravity, dtype=float).reshape(-1)
        if gravity.shape[0] != self.dimension:
            raise RuntimeError(f"Keyword:: /gravity/ should have {self.dimension} components")
        self.gravity = gravity

    def set_scatter_scheme(self, scatter_scheme):
        typelist = ["Serial", "Atomic", "Reduction"]
        if scatter_scheme not in typelist:
            raise RuntimeError(f"KeyWord:: /scatter_scheme: {scatter_scheme}/ is invalid. The valid type are given as follows: {typelist}")
        self.scatter_scheme = scatter_scheme

    def set_chunk_number(self, chunk_number):
        if int(chunk_number) <= 0:
            raise ValueError("Keyword:: /chunk_number/ should be larger than 0!")
        self.chunk_number = int(chunk_number)

    def set_mass_cut_off(self, mass_cut_off):
        if mass_cut_off < 0.:
            raise ValueError("Keyword:: /mass_cut_off/ should not be negative!")
        self.mass_cut_off = mass_cut_off

    def set_tolerance(self, tolerance):
        if tolerance <= 0.:
            raise ValueError("Keyword:: /tolerance/ should be positive!")
        self.tolerance = tolerance

    def set_stop_on_orphan(self, stop_on_orphan):
        self.stop_on_orphan = bool(stop_on_orphan)

    def set_timestep(self, timestep):
        if not timestep > 0.:
            raise ValueError("Keyword:: /Timestep/ should be positive!")
        self.dt = float(timestep)

    def set_simulation_time(self, time):
        if time < 0.:
            raise ValueError("Keyword:: /SimulationTime/ should not be negative!")
        self.time = float(time)

    def set_CFL(self, CFL):
        if not 0. < CFL <= 1.:
            raise ValueError("Keyword:: /CFL/ should lie in (0, 1]!")
        self.CFL = CFL

    def set_print_interval(self, print_interval):
        if int(print_interval) <= 0:
            raise ValueError("Keyword:: /PrintInterval/ should be larger than 0!")
        self.print_interval = int(print_interval)

    def get_total_steps(self):
        return int(round(self.time / self.dt)) if self.dt > 0. else 0
