from time import perf_counter

import taichi as ti


class TimerRecord(object):
    def __init__(self, name):
        self.name = str(name)
        self.total = 0.
        self.num = 0
        self.start = 0.

    def begin(self):
        self.start = perf_counter()

    def end(self):
        cur_time = perf_counter() - self.start
        self.total += cur_time
        self.num += 1


class Timer(object):
    def __init__(self, sync=False):
        self.records = {}
        self.sync = sync

    def begin(self, name):
        if name not in self.records:
            self.records[name] = TimerRecord(name)
        self.records[name].begin()

    def end(self, name):
        if self.sync:
            ti.sync()
        self.records[name].end()

    def total(self):
        return sum(rec.total for rec in self.records.values())

    def profile0(self):
        msg = "#     Time record accmulated(execute num): "
        for name, rec in self.records.items():
            msg += f"{name}: {rec.total:.3f}({rec.num}), "
        msg += f"total: {self.total():.3f} s"
        print(msg)
