import numpy as np
import pytest

import geompm


@pytest.fixture(scope="session", autouse=True)
def taichi_runtime():
    geompm.init(arch="cpu", default_fp="float64", log=False)
    yield


@pytest.fixture
def quad_coords():
    return np.array([[0., 0.], [2., 0.], [2., 2.], [0., 2.]])


@pytest.fixture
def hex_coords():
    return np.array([[0., 0., 0.], [2., 0., 0.], [2., 2., 0.], [0., 2., 0.],
                     [0., 0., 2.], [2., 0., 2.], [2., 2., 2.], [0., 2., 2.]])
