import numpy as np
import pytest
from scipy.interpolate import RBFInterpolator
from scipy.spatial import ConvexHull

from retina.errors import ConfigurationError, NumericalError
from retina.interpolate import ErrorMetric, default_outer_radius, interpolate_density


def density(uv):
    return 1000. + 200. * uv[:, 0] - 150. * uv[:, 1] + 50. * np.sin(2. * uv[:, 0] * uv[:, 1])


def hull_distance(uv, grid_uv):
    """Largest signed distance of each grid point from the hull facets; positive outside."""
    hull = ConvexHull(uv)
    return np.max(np.dot(grid_uv, hull.equations[:, :2].T) + hull.equations[:, 2], axis=1)


def grid_points(surface):
    U, V = np.meshgrid(surface.u, surface.v, indexing='ij')
    return np.column_stack((U.ravel(), V.ravel()))


def test_grid_layout(scattered_uv):
    surface = interpolate_density(scattered_uv[:, 0], scattered_uv[:, 1], density(scattered_uv), spatial_res=20)

    assert surface.values.shape == (20, 20)
    assert surface.defined.shape == (20, 20)
    assert surface.u[0] == pytest.approx(-default_outer_radius)
    assert surface.u[-1] == pytest.approx(default_outer_radius)
    np.testing.assert_array_equal(surface.u, surface.v)
    assert surface.extrapolated

    uv = grid_points(surface)
    i, j = 7, 12
    expected = surface.tps(surface.u[i], surface.v[j])
    assert surface.values[i, j] == pytest.approx(float(expected))
    assert surface.defined.ravel()[i * 20 + j] == (np.hypot(*uv[i * 20 + j]) <= default_outer_radius)


def test_cells_outside_radius_are_undefined(scattered_uv):
    surface = interpolate_density(scattered_uv[:, 0], scattered_uv[:, 1], density(scattered_uv),
                                  spatial_res=25, outer_radius=1.2)
    r = np.hypot(*grid_points(surface).T).reshape(25, 25)

    assert np.all(np.isnan(surface.values[r > 1.2]))
    assert np.all(np.isfinite(surface.values[r <= 1.2]))
    np.testing.assert_array_equal(surface.defined, r <= 1.2)


def test_no_extrapolation_beyond_hull():
    rng = np.random.default_rng(5)
    uv = rng.uniform(-0.6, 0.6, size=(40, 2))
    surface = interpolate_density(uv[:, 0], uv[:, 1], density(uv), spatial_res=31, extrapolate=False)

    dist = hull_distance(uv, grid_points(surface))
    values = surface.values.ravel()
    assert not surface.extrapolated
    assert np.all(np.isnan(values[dist > 1e-9]))
    assert np.all(np.isfinite(values[dist < -1e-9]))
    np.testing.assert_array_equal(np.isnan(surface.values), ~surface.defined)


def test_extrapolation_fills_disk():
    rng = np.random.default_rng(5)
    uv = rng.uniform(-0.6, 0.6, size=(40, 2))
    surface = interpolate_density(uv[:, 0], uv[:, 1], density(uv), spatial_res=31, extrapolate=True)

    r = np.hypot(*grid_points(surface).T)
    dist = hull_distance(uv, grid_points(surface))
    values = surface.values.ravel()
    assert np.all(np.isfinite(values[r <= default_outer_radius]))
    assert np.any((dist > 1e-9) & np.isfinite(values))


def test_residual_metric(scattered_uv):
    z = density(scattered_uv)
    surface = interpolate_density(scattered_uv[:, 0], scattered_uv[:, 1], z, lmbda=0.)
    quality = surface.fit_quality
    assert quality.metric is ErrorMetric.residual
    assert quality.value == pytest.approx(0., abs=1e-6)
    assert quality.residuals.shape == z.shape

    surface = interpolate_density(scattered_uv[:, 0], scattered_uv[:, 1], z, lmbda=1.)
    assert surface.fit_quality.value > 0.
    assert surface.fit_quality.value == pytest.approx(np.sqrt(surface.fit_quality.rss / len(z)))


def test_gcv_metric(scattered_uv):
    z = density(scattered_uv)
    with pytest.raises(NumericalError):
        interpolate_density(scattered_uv[:, 0], scattered_uv[:, 1], z, lmbda=0., error_metric=ErrorMetric.gcv)

    surface = interpolate_density(scattered_uv[:, 0], scattered_uv[:, 1], z, lmbda=0.1,
                                  error_metric=ErrorMetric.gcv)
    assert surface.fit_quality.metric is ErrorMetric.gcv
    assert surface.fit_quality.value > 0.


def test_loocv_metric(scattered_uv):
    uv = scattered_uv[:8]
    z = density(uv)
    lmbda = 0.05
    surface = interpolate_density(uv[:, 0], uv[:, 1], z, lmbda=lmbda, error_metric=ErrorMetric.loocv)
    assert surface.fit_quality.metric is ErrorMetric.loocv

    loo = []
    for i in range(len(z)):
        keep = np.arange(len(z)) != i
        srf = RBFInterpolator(uv[keep], z[keep], smoothing=8. * np.pi * lmbda,
                              kernel='thin_plate_spline', degree=1)
        loo.append(z[i] - srf(uv[i:i+1])[0])
    expected = np.sqrt(np.mean(np.square(loo)))

    assert surface.fit_quality.value == pytest.approx(expected, rel=1e-6)
    assert surface.fit_quality.value > np.sqrt(surface.fit_quality.rss / len(z))


@pytest.mark.parametrize('spatial_res', [1, 0, 2.5, -4])
def test_bad_resolution(scattered_uv, spatial_res):
    with pytest.raises(ConfigurationError):
        interpolate_density(scattered_uv[:, 0], scattered_uv[:, 1], density(scattered_uv),
                            spatial_res=spatial_res)


def test_bad_outer_radius(scattered_uv):
    with pytest.raises(ConfigurationError):
        interpolate_density(scattered_uv[:, 0], scattered_uv[:, 1], density(scattered_uv), outer_radius=0.)


def test_surface_is_read_only(scattered_uv):
    surface = interpolate_density(scattered_uv[:, 0], scattered_uv[:, 1], density(scattered_uv))
    with pytest.raises(ValueError):
        surface.values[0, 0] = 1.
