"""Implements a smoothing thin-plate spline surface over scattered planar samples.
Based on code from rbf_volume.py
"""

import numpy as np
from scipy.interpolate import RBFInterpolator
from scipy.spatial import cKDTree
from retina.errors import NumericalError
from retina.utils import get_module_logger

logger = get_module_logger(__name__)

## A thin-plate spline with a linear polynomial term needs at least
## three non-collinear sites.
min_samples = 3


def kernel_smoothing(lmbda):
    """Diagonal regularization of the r^2 log r kernel system that
    corresponds to weight lmbda on the bending energy."""
    return 8. * np.pi * lmbda


def check_samples(uv, z, lmbda, tol=1e-10):
    """Checks that a thin-plate spline system for the given samples is well posed.

    Parameters
    ----------
    uv : ndarray
        Sample sites of shape (N, 2).
    z : ndarray
        Sample values of shape (N,).
    lmbda : float
        Smoothing parameter.
    tol : float
        Relative tolerance for coincident and collinear sites.

    Raises
    ------
    NumericalError
        If lmbda is negative, there are fewer than three samples, an input
        is not finite, all sites are coincident or collinear, or two sites
        coincide while lmbda is zero.
    """
    if not lmbda >= 0.:
        raise NumericalError('smoothing parameter lambda must be non-negative, got %g' % lmbda,
                             stage='interpolate')
    n = uv.shape[0]
    if n < min_samples:
        raise NumericalError('at least %d samples are required for a thin-plate spline, got %d' %
                             (min_samples, n), stage='interpolate')
    bad = np.where(~(np.all(np.isfinite(uv), axis=1) & np.isfinite(z)))[0]
    if len(bad) > 0:
        raise NumericalError('sample has a non-finite coordinate or value', stage='interpolate',
                             index=int(bad[0]))

    scale = np.max(np.ptp(uv, axis=0))
    if scale <= tol:
        raise NumericalError('all %d sample sites are coincident' % n, stage='interpolate')
    s = np.linalg.svd(uv - np.mean(uv, axis=0), compute_uv=False)
    if s[1] <= tol * s[0]:
        raise NumericalError('all %d sample sites are collinear' % n, stage='interpolate')

    if lmbda == 0.:
        pairs = cKDTree(uv).query_pairs(r=tol * scale, output_type='ndarray')
        if len(pairs) > 0:
            i, j = sorted(pairs[0])
            raise NumericalError('sample sites %d and %d coincide; exact interpolation is ill-posed '
                                 '(use a positive lambda)' % (i, j), stage='interpolate', index=int(j))


class TPSSurface(object):
    def __init__(self, uv, z, lmbda=0.):
        """Smoothing thin-plate spline f(u, v).

        The spline minimizes sum_i (z_i - f(u_i, v_i))^2 + lmbda * J(f),
        where J is the thin-plate bending energy. With lmbda = 0 the
        spline interpolates the samples.

        For f = sum_j c_j phi(|x - x_j|) + p(x) with phi(r) = r^2 log r,
        J(f) = 8 pi c^T K c, so the kernel system is regularized with
        8 pi lmbda on its diagonal.

        Parameters
        ----------
        uv : array_like
            Sample sites of shape (N, 2).
        z : array_like
            Sample values of shape (N,).
        lmbda : float, optional
            Smoothing parameter. Default is 0.
        """
        uv = np.asarray(uv, dtype=np.float64).reshape(-1, 2)
        z = np.asarray(z, dtype=np.float64).reshape(-1)
        if uv.shape[0] != z.shape[0]:
            raise NumericalError('%d sample sites but %d sample values' % (uv.shape[0], z.shape[0]),
                                 stage='interpolate')
        lmbda = float(lmbda)
        check_samples(uv, z, lmbda)

        self.uv = uv
        self.z = z
        self.lmbda = lmbda
        self._srf = self._create_surface(uv, z)
        self._fitted = self._srf(uv)

    def __call__(self, *args, **kwargs):
        """Convenience to allow evaluation of a TPSSurface
        instance via `foo(u, v)` instead of `foo.ev(u, v)`.
        """
        return self.ev(*args, **kwargs)

    def _create_surface(self, uv, d):
        try:
            srf = RBFInterpolator(uv, d, smoothing=kernel_smoothing(self.lmbda),
                                  kernel='thin_plate_spline', degree=1)
        except (ValueError, np.linalg.LinAlgError) as e:
            raise NumericalError('thin-plate spline system is singular: %s' % str(e), stage='interpolate')
        return srf

    def ev(self, su, sv, mesh=False, chunk_size=1000):
        """Get surface value(s) at (su, sv).

        Parameters
        ----------
        su, sv : scalar or array-like
        mesh : boolean, evaluate on the grid spanned by su and sv
        chunk_size : number of points evaluated at once

        Returns
        -------
        if option mesh is True: Returns an array of shape len(su) x len(sv);
        otherwise an array with the broadcast shape of su and sv.
        """
        if mesh:
            U, V = np.meshgrid(su, sv, indexing='ij')
        else:
            U, V = np.broadcast_arrays(np.asarray(su, dtype=np.float64), np.asarray(sv, dtype=np.float64))

        uv_coords = np.column_stack((U.ravel(), V.ravel()))
        n = uv_coords.shape[0]
        values = np.empty(n)
        for start in range(0, n, chunk_size):
            values[start:start+chunk_size] = self._srf(uv_coords[start:start+chunk_size])

        return values.reshape(U.shape)

    def fitted(self):
        """Surface values at the sample sites."""
        return self._fitted.copy()

    def residuals(self):
        """In-sample residuals z_i - f(u_i, v_i)."""
        return self.z - self._fitted

    def rss(self):
        """In-sample residual sum of squares."""
        r = self.residuals()
        return float(np.dot(r, r))

    def hat_matrix(self):
        """Influence matrix H with f(u_i, v_i) = sum_j H[i, j] z_j."""
        n = self.uv.shape[0]
        srf = self._create_surface(self.uv, np.eye(n))
        return srf(self.uv)

    def loo_residuals(self):
        """Leave-one-out residuals z_i - f_{-i}(u_i, v_i), where f_{-i} is
        refitted without sample i using the same smoothing parameter."""
        n = self.uv.shape[0]
        if n <= min_samples:
            raise NumericalError('leave-one-out residuals need at least %d samples, got %d' %
                                 (min_samples + 1, n), stage='interpolate')
        r = np.empty(n)
        keep = np.ones(n, dtype=bool)
        for i in range(n):
            keep[i] = False
            try:
                srf = TPSSurface(self.uv[keep], self.z[keep], lmbda=self.lmbda)
            except NumericalError as e:
                raise NumericalError('leave-one-out fit without sample %d is ill-posed: %s' % (i, e.message),
                                     stage='interpolate', index=i)
            r[i] = self.z[i] - srf.ev(self.uv[i, 0], self.uv[i, 1])
            keep[i] = True
        return r
