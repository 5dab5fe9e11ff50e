import numpy as np
import pytest


def sample_grid():
    """25 normalized sample locations inside the unit disk flatmount, with densities."""
    obs = np.linspace(0.2, 0.8, 5)
    x, y = np.meshgrid(obs, obs, indexing='ij')
    x, y = x.ravel(), y.ravel()
    z = 100. + 50. * x - 30. * y + 20. * np.sin(3. * x) * np.cos(2. * y)
    return np.column_stack((x, y, z))


def outline_curve(n=12):
    """Closed landmark outline near the top of the flatmount."""
    t = np.linspace(0., 2. * np.pi, n, endpoint=False)
    return np.column_stack((0.5 + 0.05 * np.cos(t), 0.7 + 0.05 * np.sin(t)))


def write_retina_dir(path, samples, outline):
    path.mkdir(parents=True, exist_ok=True)
    np.savetxt(str(path / 'xyz.csv'), samples, delimiter=',', header='"x","y","z"', comments='')
    np.savetxt(str(path / 'falc.txt'), outline)
    return path


@pytest.fixture
def samples():
    return sample_grid()


@pytest.fixture
def outline():
    return outline_curve()


@pytest.fixture
def retina_dir(tmp_path, samples, outline):
    return write_retina_dir(tmp_path / 'retina', samples, outline)


@pytest.fixture
def scattered_uv():
    rng = np.random.default_rng(20)
    return rng.uniform(-1., 1., size=(30, 2))
