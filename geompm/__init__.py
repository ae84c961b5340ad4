# Copyright (c) 2024, GeoMPM developers
# This file is from the GeoMPM project, released under the GNU General Public License v3.0

__author__ = "GeoMPM developers"
__version__ = "0.1.0"
__license__ = "GNU License"

import taichi as ti
import psutil, pynvml, platform
import sys, os, datetime

from geompm.mpm.mainMPM import MPM


class Logger(object):
    def __init__(self, filename='Default.log', path='./'):
        self.terminal = sys.stdout
        self.path = os.path.join(path, filename)
        self.log = open(self.path, "a", encoding='utf8')

    def write(self, message):
        self.terminal.write(message)
        self.log.write(message)

    def flush(self):
        self.terminal.flush()
        self.log.flush()


def make_print_to_file(path='./'):
    filename = datetime.datetime.now().strftime('day'+'%Y_%m_%d')
    sys.stdout = Logger(filename+'.log', path=path)
    return sys.stdout


def init(arch="cpu", cpu_max_num_threads=0, offline_cache=True, debug=False, default_fp="float64", default_ip="int32", device_memory_GB=None, device_memory_fraction=None, kernel_profiler=False, log=True):
    """
    Initializes the Taichi runtime used by the grid kernels.
    Args:
        arch (str): The execution architecture. Can be either "cpu" or "gpu".
        cpu_max_num_threads (int): The maximum number of threads to use if the backend is CPU. Zero keeps the taichi default.
        offline_cache (bool): Whether to store compiled kernels.
        debug (bool): Whether to enable taichi debug mode (bound checks on ndarrays).
        default_fp (str): The default floating-point type. Can be "float64" or "float32".
        default_ip (str): The default integer type. Can be "int64" or "int32".
        device_memory_GB (float): The pre-allocated GPU memory size in GB.
        device_memory_fraction (float): The fraction of device memory to be used if the backend is GPU.
        kernel_profiler (bool): Whether to enable kernel function profiling.
        log (bool): Whether to tee stdout into a dated log file.
    """
    if default_fp == "float64": default_fp = ti.f64
    elif default_fp == "float32": default_fp = ti.f32
    else: raise RuntimeError("Only ['float64', 'float32'] is available for default type of float")

    if default_ip == "int64": default_ip = ti.i64
    elif default_ip == "int32": default_ip = ti.i32
    else: raise RuntimeError("Only ['int64', 'int32'] is available for default type of int")

    options = dict(offline_cache=offline_cache, debug=debug, default_fp=default_fp, default_ip=default_ip, kernel_profiler=kernel_profiler, log_level=ti.ERROR)
    if arch == "cpu":
        cpu_name = platform.processor()
        cpu_core = psutil.cpu_count(False)
        cpu_logic = psutil.cpu_count(True)
        print(f"Using device {cpu_name} (Core: {cpu_core}, Logic: {cpu_logic})")
        if cpu_max_num_threads > 0:
            options["cpu_max_num_threads"] = cpu_max_num_threads
        ti.init(arch=ti.cpu, **options)
    elif arch == "gpu":
        pynvml.nvmlInit()
        handle = pynvml.nvmlDeviceGetHandleByIndex(0)
        gpu_name = pynvml.nvmlDeviceGetName(handle)
        gpu_memory = pynvml.nvmlDeviceGetMemoryInfo(handle)
        pynvml.nvmlShutdown()
        print(f"Using device {gpu_name} (Total: {bytes_to_GB(gpu_memory.total)}GB, Available: {bytes_to_GB(gpu_memory.free)}GB)")

        if device_memory_GB is not None:
            options["device_memory_GB"] = min(device_memory_GB, bytes_to_GB(gpu_memory.free))
        elif device_memory_fraction is not None:
            options["device_memory_fraction"] = min(device_memory_fraction, gpu_memory.free / gpu_memory.total)
        ti.init(arch=ti.gpu, **options)
    else:
        raise RuntimeError("arch is not recognized, please choose in the following: ['cpu', 'gpu']")

    if log:
        make_print_to_file()


def bytes_to_GB(sizes):
    return round(sizes / (1024 ** 3), 2)
