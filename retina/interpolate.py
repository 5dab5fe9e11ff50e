"""Thin-plate spline interpolation of projected density samples onto a regular grid."""

from collections import namedtuple
from enum import Enum
import numpy as np
from scipy.spatial import Delaunay
from retina.errors import ConfigurationError, NumericalError
from retina.hull import convex_hull_mask
from retina.tps_surface import TPSSurface
from retina.utils import get_module_logger, readonly

logger = get_module_logger(__name__)

## Multiple of the unit hemisphere radius covered by the output grid
default_outer_radius = 1.6


class ErrorMetric(Enum):
    residual = 'residual'   # in-sample root mean squared residual
    loocv = 'loocv'         # leave-one-out root mean squared residual
    gcv = 'gcv'             # generalized cross-validation score


FitQuality = namedtuple('FitQuality',
                        ['metric',
                         'value',
                         'rss',
                         'residuals'])

InterpolatedSurface = namedtuple('InterpolatedSurface',
                                 ['u',
                                  'v',
                                  'values',
                                  'defined',
                                  'spatial_res',
                                  'outer_radius',
                                  'extrapolated',
                                  'fit_quality',
                                  'tps'])


def fit_quality(tps, error_metric=ErrorMetric.residual):
    """
    Computes the fit-quality metric of a thin-plate spline.

    :param tps: :class:`retina.tps_surface.TPSSurface`
    :param error_metric: :class:`ErrorMetric`
    :return: :class:`FitQuality`
    """
    residuals = tps.residuals()
    rss = tps.rss()
    n = len(residuals)

    if error_metric is ErrorMetric.residual:
        value = np.sqrt(rss / n)
    elif error_metric is ErrorMetric.loocv:
        loo = tps.loo_residuals()
        value = np.sqrt(np.mean(loo ** 2))
    elif error_metric is ErrorMetric.gcv:
        dof = np.trace(tps.hat_matrix())
        denom = n - dof
        if denom <= 1e-8 * n:
            raise NumericalError('generalized cross-validation is undefined for an interpolating fit '
                                 '(effective degrees of freedom %.6g, %d samples)' % (dof, n),
                                 stage='interpolate')
        value = n * rss / (denom ** 2)
    else:
        raise ConfigurationError('unknown error metric %s' % str(error_metric), stage='interpolate')

    logger.info('fit quality: %s = %.6g (RSS %.6g)' % (error_metric.name, value, rss))
    return FitQuality(error_metric, float(value), rss, readonly(residuals))


def interpolate_density(u, v, z, lmbda=0.01, spatial_res=16, extrapolate=True,
                        outer_radius=default_outer_radius, error_metric=ErrorMetric.residual,
                        chunk_size=1000):
    """Fits a thin-plate spline to projected density samples and evaluates it on a grid.

    Parameters
    ----------
    u, v : array_like
        Projected sample coordinates.
    z : array_like
        Density values at the samples.
    lmbda : float
        Smoothing parameter, >= 0.
    spatial_res : int
        Number of grid points along each axis.
    extrapolate : bool
        If False, grid cells outside the convex hull of the samples are
        left undefined. If True, the surface is evaluated at every cell
        within `outer_radius` of the origin; such values are
        model-derived, not measured.
    outer_radius : float
        Half-width of the square grid; cells further than this from the
        origin are always undefined.
    error_metric : ErrorMetric
        Fit-quality metric to compute.
    chunk_size : int
        Number of grid cells evaluated at once.

    Returns
    -------
    InterpolatedSurface
        Grid axes, a spatial_res x spatial_res array of values indexed as
        values[i, j] = f(u[i], v[j]) with NaN marking undefined cells, and
        the boolean mask of defined cells.
    """
    if int(spatial_res) != spatial_res or int(spatial_res) < 2:
        raise ConfigurationError('spatial resolution must be an integer >= 2, got %s' % str(spatial_res),
                                 stage='interpolate')
    spatial_res = int(spatial_res)
    if not outer_radius > 0.:
        raise ConfigurationError('outer radius must be positive, got %s' % str(outer_radius),
                                 stage='interpolate')
    if not isinstance(error_metric, ErrorMetric):
        raise ConfigurationError('unknown error metric %s' % str(error_metric), stage='interpolate')

    uv = np.column_stack((np.asarray(u, dtype=np.float64).reshape(-1),
                          np.asarray(v, dtype=np.float64).reshape(-1)))
    z = np.asarray(z, dtype=np.float64).reshape(-1)

    logger.info('fitting thin-plate spline to %d samples (lambda = %g)' % (len(z), lmbda))
    tps = TPSSurface(uv, z, lmbda=lmbda)
    quality = fit_quality(tps, error_metric=error_metric)

    su = np.linspace(-outer_radius, outer_radius, spatial_res)
    sv = np.linspace(-outer_radius, outer_radius, spatial_res)
    U, V = np.meshgrid(su, sv, indexing='ij')
    grid_uv = np.column_stack((U.ravel(), V.ravel()))

    defined = np.hypot(grid_uv[:, 0], grid_uv[:, 1]) <= outer_radius
    if not extrapolate:
        defined &= convex_hull_mask(uv, grid_uv, tri=Delaunay(uv))

    values = np.full(grid_uv.shape[0], np.nan)
    idxs = np.where(defined)[0]
    if len(idxs) > 0:
        values[idxs] = tps.ev(grid_uv[idxs, 0], grid_uv[idxs, 1], chunk_size=chunk_size)

    logger.info('evaluated %d of %d grid cells (extrapolate = %s)' %
                (len(idxs), grid_uv.shape[0], str(extrapolate)))

    return InterpolatedSurface(readonly(su), readonly(sv),
                               readonly(values.reshape(spatial_res, spatial_res)),
                               readonly(defined.reshape(spatial_res, spatial_res), dtype=bool),
                               spatial_res, float(outer_radius), bool(extrapolate), quality, tps)
