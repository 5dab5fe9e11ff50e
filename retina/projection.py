"""Azimuthal equidistant projection of hemisphere coordinates.

Latitudes and longitudes are in degrees; projected coordinates are in
radians of arc on the unit sphere, so that the rim of a hemisphere centred
on its pole lies at distance pi/2 from the origin.
"""

import math
from collections import namedtuple
import numpy as np
from retina.utils import get_module_logger, readonly

logger = get_module_logger(__name__)

Orientation = namedtuple('Orientation',
                         ['pole_lat',
                          'pole_lon',
                          'rotation'])

## Pole at the south pole of the reconstructed eye cup, rotated so that
## dorsal faces up.
default_orientation = Orientation(-90., 0., -90.)

ProjectedCoords = namedtuple('ProjectedCoords',
                             ['u',
                              'v',
                              'density'])


def rotate2d(theta):
    """
    Return the rotation matrix associated with counterclockwise rotation
    in the plane by theta radians.
    """
    c, s = math.cos(theta), math.sin(theta)
    return np.array([[c, -s],
                     [s,  c]])


def wrap_longitude(lon):
    """Wraps longitudes in degrees onto [-180, 180)."""
    return np.mod(np.asarray(lon, dtype=np.float64) + 180., 360.) - 180.


def great_circle_distance(lat1, lon1, lat2, lon2):
    """Angular distance in radians between points given in degrees."""
    phi1, lam1, phi2, lam2 = [np.deg2rad(np.asarray(x, dtype=np.float64)) for x in (lat1, lon1, lat2, lon2)]
    dlam = lam2 - lam1
    sin_c = np.hypot(np.cos(phi2) * np.sin(dlam),
                     np.cos(phi1) * np.sin(phi2) - np.sin(phi1) * np.cos(phi2) * np.cos(dlam))
    cos_c = np.sin(phi1) * np.sin(phi2) + np.cos(phi1) * np.cos(phi2) * np.cos(dlam)
    return np.arctan2(sin_c, cos_c)


def azimuthal_equidistant(lat, lon, orientation=default_orientation):
    """Forward azimuthal equidistant projection.

    Parameters
    ----------
    lat, lon : array_like
        Coordinates in degrees.
    orientation : Orientation
        Pole latitude and longitude in degrees, and counterclockwise
        rotation of the projected plane in degrees.

    Returns
    -------
    (u, v) : tuple of ndarray
        Planar coordinates. The distance of (u, v) from the origin equals
        the great-circle distance of (lat, lon) from the pole, and the
        bearing of (u, v) equals the azimuth from the pole plus the
        rotation.
    """
    lat = np.asarray(lat, dtype=np.float64)
    lon = np.asarray(lon, dtype=np.float64)
    shape = np.broadcast(lat, lon).shape

    phi0 = math.radians(orientation.pole_lat)
    lam0 = math.radians(orientation.pole_lon)
    phi = np.deg2rad(lat).reshape(-1)
    dlam = np.deg2rad(lon).reshape(-1) - lam0

    ## direction from the pole scaled by sin(c)
    xs = np.cos(phi) * np.sin(dlam)
    ys = math.cos(phi0) * np.sin(phi) - math.sin(phi0) * np.cos(phi) * np.cos(dlam)
    sin_c = np.hypot(xs, ys)
    cos_c = math.sin(phi0) * np.sin(phi) + math.cos(phi0) * np.cos(phi) * np.cos(dlam)
    c = np.arctan2(sin_c, cos_c)

    k = np.ones_like(c)
    nz = sin_c > 0.
    k[nz] = c[nz] / sin_c[nz]
    xy = np.vstack((k * xs, k * ys))

    uv = np.dot(rotate2d(math.radians(orientation.rotation)), xy)
    return uv[0].reshape(shape), uv[1].reshape(shape)


def inverse_azimuthal_equidistant(u, v, orientation=default_orientation):
    """Inverse azimuthal equidistant projection.

    Returns
    -------
    (lat, lon) : tuple of ndarray
        Coordinates in degrees, longitudes wrapped onto [-180, 180).
    """
    u = np.asarray(u, dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)
    shape = np.broadcast(u, v).shape

    uv = np.vstack((np.broadcast_to(u, shape).reshape(-1), np.broadcast_to(v, shape).reshape(-1)))
    x, y = np.dot(rotate2d(math.radians(orientation.rotation)).T, uv)

    phi0 = math.radians(orientation.pole_lat)
    lam0 = math.radians(orientation.pole_lon)
    rho = np.hypot(x, y)
    c = rho

    sin_c_over_rho = np.ones_like(rho)
    nz = rho > 0.
    sin_c_over_rho[nz] = np.sin(c[nz]) / rho[nz]

    phi = np.arcsin(np.clip(np.cos(c) * math.sin(phi0) + y * sin_c_over_rho * math.cos(phi0), -1., 1.))
    lam = lam0 + np.arctan2(x * np.sin(c),
                            rho * math.cos(phi0) * np.cos(c) - y * math.sin(phi0) * np.sin(c))
    lam[~nz] = lam0

    lat = np.rad2deg(phi).reshape(shape)
    lon = wrap_longitude(np.rad2deg(lam)).reshape(shape)
    return lat, lon


def project(coords, orientation=default_orientation):
    """Projects a set of spherical coordinates.

    :param coords: :class:`retina.sphere.SphericalCoords`
    :param orientation: :class:`Orientation`
    :return: :class:`ProjectedCoords`; density is carried over as is, and
        stays `None` for the landmark outline.
    """
    u, v = azimuthal_equidistant(coords.lat, coords.lon, orientation=orientation)
    logger.debug('projected %d points with orientation %s' % (len(u), str(orientation)))
    return ProjectedCoords(*readonly(u, v, coords.density))
