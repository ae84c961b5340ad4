import time

from geompm.mpm.engines.USFExplicitEngine import USFExplicitEngine
from geompm.mpm.Simulation import Simulation


class Solver:
    sims: Simulation
    engine: USFExplicitEngine

    def __init__(self, sims, engine):
        self.sims = sims
        self.engine = engine
        self.postprocess = []
        self.reports = []

    def set_callback_function(self, functions):
        if functions is None:
            return
        if isinstance(functions, (list, tuple)):
            self.postprocess.extend(functions)
        elif isinstance(functions, dict):
            self.postprocess.extend(functions.values())
        elif callable(functions):
            self.postprocess.append(functions)

    def print_step(self, report):
        print('# Step =', self.sims.current_step, '   ', 'Simulation time =', round(self.sims.current_time, 12), '   ',
              'Orphans =', len(report.orphans), '   ', 'Faults =', len(report.faults))

    def Solver(self, mesh, log=True):
        if log:
            print("#", " Start Simulation ".center(67, "="), "#")
        start_time = time.time()
        completed = True
        for _ in range(self.sims.get_total_steps()):
            report = self.engine.compute()
            self.reports.append(report)
            if not report:
                print(f"Step {self.sims.current_step} is abandoned: {report.reason}")
                completed = False
                break

            self.sims.current_time += self.sims.dt
            self.sims.current_step += 1
            for function in self.postprocess:
                function(self.sims, mesh)
            if log and self.sims.current_step % self.sims.print_interval == 0:
                self.print_step(report)
        end_time = time.time()

        if log:
            self.sims.timer.profile0()
            print('Physical time = ', end_time - start_time)
            print("#", " End Simulation ".center(67, "="), "#", '\n')
        return completed
