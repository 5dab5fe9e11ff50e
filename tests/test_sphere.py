import numpy as np
import pytest

from retina.coordinates import make_coordinate_table
from retina.errors import ConfigurationError, InputError, MappingError
from retina.sphere import DiskOracle, ReconstructionOracle, TableOracle, make_oracle, map_to_sphere


class FixedOracle(ReconstructionOracle):
    def __init__(self, latlon, placed):
        self.latlon = latlon
        self.placed = placed

    def place(self, xy):
        return self.latlon, self.placed


def test_disk_oracle():
    oracle = DiskOracle()
    latlon, placed = oracle.place([[0.5, 0.5], [1., 0.5], [0.5, 1.], [0.75, 0.5], [1.2, 0.5]])

    assert list(placed) == [True, True, True, True, False]
    assert latlon[0, 0] == pytest.approx(-90.)
    assert latlon[1, 0] == pytest.approx(0.)
    assert latlon[1, 1] == pytest.approx(0.)
    assert latlon[2, 0] == pytest.approx(0.)
    assert latlon[2, 1] == pytest.approx(90.)
    assert latlon[3, 0] == pytest.approx(-45.)


def test_disk_oracle_rim_latitude():
    latlon, placed = DiskOracle(rim_latitude=30.).place([[1., 0.5]])
    assert placed[0]
    assert latlon[0, 0] == pytest.approx(30.)

    with pytest.raises(ConfigurationError):
        DiskOracle(radius=0.)


def test_map_keeps_order_and_density(samples, outline):
    table = make_coordinate_table(samples, outline)
    spherical_samples, spherical_outline = map_to_sphere(table, DiskOracle())

    assert len(spherical_samples.lat) == len(samples)
    assert len(spherical_outline.lat) == len(outline)
    np.testing.assert_array_equal(spherical_samples.density, samples[:, 2])
    assert spherical_outline.density is None

    latlon, _ = DiskOracle().place(samples[:, 0:2])
    np.testing.assert_allclose(spherical_samples.lat, latlon[:, 0])
    np.testing.assert_allclose(spherical_samples.lon, latlon[:, 1])


def test_unplaced_outline_point(samples, outline):
    outline = outline.copy()
    outline[4] = [2., 2.]
    table = make_coordinate_table(samples, outline)

    with pytest.raises(MappingError) as excinfo:
        map_to_sphere(table, DiskOracle())
    assert excinfo.value.index == len(samples) + 4
    assert excinfo.value.stage == 'map'
    assert 'outline point 4' in str(excinfo.value)


def test_non_finite_placement(samples):
    table = make_coordinate_table(samples)
    latlon = np.zeros((len(samples), 2))
    latlon[6, 1] = np.nan
    with pytest.raises(MappingError) as excinfo:
        map_to_sphere(table, FixedOracle(latlon, np.ones(len(samples), dtype=bool)))
    assert excinfo.value.index == 6


def test_wrong_oracle_shape(samples):
    table = make_coordinate_table(samples)
    with pytest.raises(MappingError):
        map_to_sphere(table, FixedOracle(np.zeros((2, 2)), np.ones(2, dtype=bool)))


def test_table_oracle(tmp_path):
    xy = np.array([[0.1, 0.1], [0.5, 0.5], [0.9, 0.2]])
    latlon = np.array([[-10., 20.], [-80., 0.], [-30., 100.]])
    path = tmp_path / 'reconstruction.csv'
    np.savetxt(str(path), np.hstack((xy, latlon)), delimiter=',', header='x,y,lat,lon', comments='')

    oracle = TableOracle.from_file(str(path), tolerance=1e-3)
    result, placed = oracle.place([[0.5, 0.5], [0.9, 0.2], [0.3, 0.3]])
    assert list(placed) == [True, True, False]
    np.testing.assert_allclose(result[:2], latlon[1:])
    assert np.all(np.isnan(result[2]))

    with pytest.raises(InputError):
        TableOracle.from_file(str(tmp_path / 'missing.csv'))


def test_make_oracle(tmp_path):
    oracle = make_oracle({'Type': 'disk', 'Center': [0.4, 0.6], 'Radius': 0.3, 'Rim Latitude': 10.})
    assert isinstance(oracle, DiskOracle)
    np.testing.assert_array_equal(oracle.center, [0.4, 0.6])
    assert oracle.rim_latitude == 10.

    assert isinstance(make_oracle({}), DiskOracle)

    np.savetxt(str(tmp_path / 'rec.csv'), [[0.5, 0.5, -90., 0.], [0.6, 0.5, -80., 0.]],
               delimiter=',', header='x,y,lat,lon', comments='')
    oracle = make_oracle({'Type': 'table', 'Path': 'rec.csv'}, dataset_path=str(tmp_path))
    assert isinstance(oracle, TableOracle)

    with pytest.raises(ConfigurationError):
        make_oracle({'Type': 'table'})
    with pytest.raises(ConfigurationError):
        make_oracle({'Type': 'petal'})
