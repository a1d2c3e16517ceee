import matplotlib

matplotlib.use('Agg')

import numpy as np  # noqa: E402
import pytest  # noqa: E402

from fastblocks.datablock import set_mock_seed  # noqa: E402


@pytest.fixture(autouse=True)
def mock_seed():
    set_mock_seed(0)
    yield
    set_mock_seed(None)


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    import matplotlib.pyplot as plt
    plt.close('all')
