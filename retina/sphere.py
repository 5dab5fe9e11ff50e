"""Placement of flatmount coordinates on the eye hemisphere.

The geometry of folding a cut flatmount back onto a sphere is delegated to
a reconstruction oracle. This module defines the oracle interface, two
concrete oracles, and :func:`map_to_sphere`, which marshals a coordinate
table through an oracle.
"""

import os.path
from abc import ABC, abstractmethod
from collections import namedtuple
import numpy as np
from scipy.spatial import cKDTree
from retina.errors import ConfigurationError, MappingError
from retina.io_utils import read_table
from retina.utils import get_module_logger, readonly, euclidean_distance

logger = get_module_logger(__name__)

SphericalCoords = namedtuple('SphericalCoords',
                             ['lat',
                              'lon',
                              'density'])


class ReconstructionOracle(ABC):
    """Places normalized flatmount coordinates on the unit hemisphere."""

    @abstractmethod
    def place(self, xy):
        """
        :param xy: array of shape (N, 2) with normalized flatmount coordinates
        :return: (latlon, placed) where latlon is an array of shape (N, 2)
            with latitude and longitude in degrees, and placed is a boolean
            array of shape (N,) that is False for points outside the
            domain resolved by the reconstruction
        """


class DiskOracle(ReconstructionOracle):
    """Reconstruction of an uncut flatmount with a circular rim.

    Distance from the disk centre maps linearly onto colatitude measured
    from the south pole, reaching ``rim_latitude`` at the rim; the bearing
    from the centre becomes the longitude.
    """

    def __init__(self, center=(0.5, 0.5), radius=0.5, rim_latitude=0., tolerance=1e-9):
        if radius <= 0.:
            raise ConfigurationError('disk radius must be positive, got %s' % str(radius), stage='map')
        if not (-90. < rim_latitude <= 90.):
            raise ConfigurationError('rim latitude must lie in (-90, 90], got %s' % str(rim_latitude),
                                     stage='map')
        self.center = np.asarray(center, dtype=np.float64).reshape(2)
        self.radius = float(radius)
        self.rim_latitude = float(rim_latitude)
        self.tolerance = float(tolerance)

    def place(self, xy):
        xy = np.asarray(xy, dtype=np.float64).reshape(-1, 2)
        rho = euclidean_distance(xy, self.center) / self.radius
        placed = np.isfinite(rho) & (rho <= 1. + self.tolerance)
        colat = np.minimum(rho, 1.) * (self.rim_latitude + 90.)
        lat = colat - 90.
        d = xy - self.center
        lon = np.rad2deg(np.arctan2(d[:, 1], d[:, 0]))
        return np.column_stack((lat, lon)), placed


class TableOracle(ReconstructionOracle):
    """Reconstruction exported by an external tool as a table of
    flatmount coordinates and their hemisphere coordinates.

    Each query point is matched to its nearest tabulated point; a query
    further than ``tolerance`` from every tabulated point is not placed.
    """

    def __init__(self, xy, latlon, tolerance=1e-6):
        xy = np.asarray(xy, dtype=np.float64).reshape(-1, 2)
        latlon = np.asarray(latlon, dtype=np.float64).reshape(-1, 2)
        if xy.shape[0] != latlon.shape[0]:
            raise ConfigurationError('reconstruction table has %d coordinates but %d hemisphere positions' %
                                     (xy.shape[0], latlon.shape[0]), stage='map')
        if xy.shape[0] == 0:
            raise ConfigurationError('reconstruction table is empty', stage='map')
        self.xy = xy
        self.latlon = latlon
        self.tolerance = float(tolerance)
        self.tree = cKDTree(xy)

    @classmethod
    def from_file(cls, file_path, tolerance=1e-6):
        """Reads a comma-separated table with header and columns x, y, lat, lon."""
        data = read_table(file_path, 4, delimiter=',', skip_header=1)
        return cls(data[:, 0:2], data[:, 2:4], tolerance=tolerance)

    def place(self, xy):
        xy = np.asarray(xy, dtype=np.float64).reshape(-1, 2)
        latlon = np.full((xy.shape[0], 2), np.nan)
        finite = np.all(np.isfinite(xy), axis=1)
        placed = np.zeros(xy.shape[0], dtype=bool)
        if np.any(finite):
            d, i = self.tree.query(xy[finite], k=1)
            ok = d <= self.tolerance
            idxs = np.where(finite)[0]
            placed[idxs[ok]] = True
            latlon[idxs[ok]] = self.latlon[i[ok]]
        return latlon, placed


def make_oracle(config, dataset_path=None):
    """Creates a reconstruction oracle from a `Reconstruction` configuration section.

    :param config: dict with key 'Type' ('disk' or 'table') and type-specific keys
    :param dataset_path: str; directory against which a relative table path is resolved
    :return: :class:`ReconstructionOracle`
    """
    oracle_type = str(config.get('Type', 'disk')).lower()
    if oracle_type == 'disk':
        return DiskOracle(center=tuple(config.get('Center', (0.5, 0.5))),
                          radius=float(config.get('Radius', 0.5)),
                          rim_latitude=float(config.get('Rim Latitude', 0.)))
    elif oracle_type == 'table':
        if 'Path' not in config:
            raise ConfigurationError('table reconstruction requires a Path', stage='map')
        table_path = config['Path']
        if dataset_path is not None and not os.path.isabs(table_path):
            table_path = os.path.join(dataset_path, table_path)
        return TableOracle.from_file(table_path, tolerance=float(config.get('Tolerance', 1e-6)))
    else:
        raise ConfigurationError('unknown reconstruction type %s' % oracle_type, stage='map')


def map_to_sphere(table, oracle):
    """Places every sample and outline point of a coordinate table on the hemisphere.

    :param table: :class:`retina.coordinates.CoordinateTable`
    :param oracle: :class:`ReconstructionOracle`
    :return: (samples, outline), each a :class:`SphericalCoords`; the
        outline carries no density
    """
    n = table.xy.shape[0]
    logger.info('placing %d samples and %d outline points on the hemisphere' %
                (table.n_samples, table.n_outline))
    latlon, placed = oracle.place(table.xy)
    latlon = np.asarray(latlon, dtype=np.float64)
    placed = np.asarray(placed, dtype=bool).reshape(-1)

    if latlon.shape != (n, 2) or placed.shape != (n,):
        raise MappingError('reconstruction returned %s positions for %d points' % (str(latlon.shape), n),
                           stage='map')

    placed = placed & np.all(np.isfinite(latlon), axis=1)
    unplaced = np.where(~placed)[0]
    if len(unplaced) > 0:
        i = int(unplaced[0])
        if i < table.n_samples:
            what = 'sample %d' % i
        else:
            what = 'outline point %d' % (i - table.n_samples)
        raise MappingError('%s at (%g, %g) lies outside the reconstructed hemisphere '
                           '(%d unplaced points in total)' %
                           (what, table.xy[i, 0], table.xy[i, 1], len(unplaced)),
                           stage='map', index=i)

    ns = table.n_samples
    samples = SphericalCoords(*readonly(latlon[:ns, 0], latlon[:ns, 1], table.density))
    outline = SphericalCoords(*readonly(latlon[ns:, 0], latlon[ns:, 1], None))
    return samples, outline
