"""Convex hull and alpha shape of planar point sets."""

from collections import namedtuple
import numpy as np
from scipy.spatial import Delaunay

AlphaShape = namedtuple('AlphaShape', ['points', 'simplices', 'bounds'])


def areas(simplices, points):
    """Areas of triangles."""
    A = points[simplices[:,0],:]
    B = np.subtract(points[simplices[:,1],:], A)
    C = np.subtract(points[simplices[:,2],:], A)
    return np.abs(np.multiply(B[:,0], C[:,1]) - np.multiply(B[:,1], C[:,0])) / 2.


def circumradii(simplices, points):
    """Circumradii of triangles, R = abc / 4K."""
    spts = points[simplices]
    a = np.linalg.norm(spts[:,1,:] - spts[:,2,:], axis=1)
    b = np.linalg.norm(spts[:,0,:] - spts[:,2,:], axis=1)
    c = np.linalg.norm(spts[:,0,:] - spts[:,1,:], axis=1)
    K = areas(simplices, points)
    r = np.full(K.shape, np.inf)
    nz = K > 0.
    r[nz] = (a[nz] * b[nz] * c[nz]) / (4. * K[nz])
    return r


def free_boundary(simplices):
    """
    Returns the edges that are referenced by only one triangle of the given triangulation.
    """

    ## Sort the edge indices in the triangulation
    simplices = np.sort(simplices, axis=1)
    edges = np.vstack((simplices[:,[0, 1]],
                       simplices[:,[0, 2]],
                       simplices[:,[1, 2]]))

    ## Find unique edges
    uedges, counts = np.unique(edges, return_counts=True, axis=0)

    ## Determine which edges are part of only one triangle
    bidxs = np.where(counts == 1)[0]

    if len(bidxs) == 0:
        raise RuntimeError("hull.free_boundary: unable to determine edges that belong only to one triangle")
    return uedges[bidxs]


def alpha_shape(pts, radius=np.inf, tri=None):
    """Alpha shape of a 2D point set.

    Triangles of the Delaunay triangulation with circumradius of at least
    `radius` are discarded. With the default radius of infinity the alpha
    shape is the convex hull.

    Returns an AlphaShape with fields:

    - points    - points of the triangulation (Nx2)
    - simplices - retained triangles (Mx3)
    - bounds    - boundary edges (Px2); empty when no triangle is retained
    """
    if tri is None:
        pts = np.asarray(pts, dtype=np.float64)
        if pts.ndim != 2 or pts.shape[1] != 2:
            raise ValueError('pts must have 2 columns.')
        tri = Delaunay(pts)

    radius = float(radius)

    rcc = circumradii(tri.simplices, tri.points)
    T = tri.simplices[np.where(rcc < radius)[0],:]

    if len(T) == 0:
        bnd = np.zeros((0, 2), dtype=tri.simplices.dtype)
    else:
        bnd = free_boundary(T)

    return AlphaShape(tri.points, T, bnd)


def convex_hull_mask(points, query, tri=None):
    """Returns a boolean array, True for each query point that lies
    inside or on the convex hull of `points`."""
    if tri is None:
        tri = Delaunay(np.asarray(points, dtype=np.float64))
    query = np.asarray(query, dtype=np.float64).reshape(-1, tri.points.shape[1])
    return tri.find_simplex(query) >= 0
