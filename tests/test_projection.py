import math
import numpy as np
import pytest

from retina.projection import Orientation, ProjectedCoords, azimuthal_equidistant, default_orientation, \
    great_circle_distance, inverse_azimuthal_equidistant, project, rotate2d, wrap_longitude
from retina.sphere import SphericalCoords


def lon_difference(a, b):
    return wrap_longitude(np.asarray(a) - np.asarray(b))


@pytest.mark.parametrize('orientation', [default_orientation,
                                         Orientation(-90., 0., 0.),
                                         Orientation(-60., 20., 35.),
                                         Orientation(10., -45., -120.)])
def test_inverse_recovers_coordinates(orientation):
    lat, lon = np.meshgrid(np.linspace(-85., 20., 22), np.linspace(-170., 170., 35), indexing='ij')
    u, v = azimuthal_equidistant(lat, lon, orientation)
    lat2, lon2 = inverse_azimuthal_equidistant(u, v, orientation)

    assert lat2.shape == lat.shape
    np.testing.assert_allclose(lat2, lat, atol=1e-9)
    np.testing.assert_allclose(lon_difference(lon2, lon), 0., atol=1e-9)


def test_rotation_is_rigid():
    rng = np.random.default_rng(1)
    lat = rng.uniform(-89., 0., 50)
    lon = rng.uniform(-180., 180., 50)

    u1, v1 = azimuthal_equidistant(lat, lon, Orientation(-90., 0., -90.))
    u2, v2 = azimuthal_equidistant(lat, lon, Orientation(-90., 0., 15.))

    R = rotate2d(math.radians(15. - (-90.)))
    expected = np.dot(R, np.vstack((u1, v1)))
    np.testing.assert_allclose(np.vstack((u2, v2)), expected, atol=1e-12)


def test_distance_from_origin_is_great_circle_distance():
    orientation = Orientation(-50., 30., 10.)
    rng = np.random.default_rng(2)
    lat = rng.uniform(-90., 60., 40)
    lon = rng.uniform(-180., 180., 40)

    u, v = azimuthal_equidistant(lat, lon, orientation)
    d = great_circle_distance(orientation.pole_lat, orientation.pole_lon, lat, lon)
    np.testing.assert_allclose(np.hypot(u, v), d, atol=1e-12)


def test_pole_and_equator():
    u, v = azimuthal_equidistant(-90., 0., default_orientation)
    assert abs(u) < 1e-12 and abs(v) < 1e-12

    lon = np.linspace(-180., 150., 12)
    u, v = azimuthal_equidistant(np.zeros_like(lon), lon, default_orientation)
    np.testing.assert_allclose(np.hypot(u, v), np.pi / 2., atol=1e-12)


def test_bearing_follows_longitude():
    u, v = azimuthal_equidistant(-45., 0., Orientation(-90., 0., 0.))
    np.testing.assert_allclose([u, v], [0., np.pi / 4.], atol=1e-12)

    u, v = azimuthal_equidistant(-45., 90., Orientation(-90., 0., 0.))
    np.testing.assert_allclose([u, v], [np.pi / 4., 0.], atol=1e-12)

    ## counterclockwise rotation by 90 degrees
    u, v = azimuthal_equidistant(-45., 0., Orientation(-90., 0., 90.))
    np.testing.assert_allclose([u, v], [-np.pi / 4., 0.], atol=1e-12)


def test_origin_inverts_to_pole():
    lat, lon = inverse_azimuthal_equidistant(0., 0., Orientation(-30., 40., 0.))
    assert float(lat) == pytest.approx(-30.)
    assert float(lon) == pytest.approx(40.)


def test_project_keeps_density_rule():
    coords = SphericalCoords(np.array([-80., -40.]), np.array([0., 90.]), np.array([3., 4.]))
    projected = project(coords, default_orientation)
    assert isinstance(projected, ProjectedCoords)
    np.testing.assert_array_equal(projected.density, [3., 4.])
    assert not projected.u.flags.writeable

    outline = project(SphericalCoords(np.array([-10.]), np.array([5.]), None), default_orientation)
    assert outline.density is None
