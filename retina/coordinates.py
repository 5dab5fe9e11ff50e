"""Import and normalization of flatmount sample and outline coordinates."""

import os.path
from collections import namedtuple
import numpy as np
from retina.calibration import make_calibration
from retina.env import CountingFrame
from retina.errors import InputError
from retina.io_utils import read_samples, read_outline, write_datapoints
from retina.utils import get_module_logger, readonly

logger = get_module_logger(__name__)

default_samples_file = 'xyz.csv'
default_outline_file = 'falc.txt'
default_datapoints_file = 'datapoints.csv'


class CoordinateTable(namedtuple('CoordinateTable', ['xy', 'density', 'n_samples', 'n_outline'])):
    """Normalized flatmount coordinates: all sample rows followed by all
    outline rows. Only samples carry a density."""

    __slots__ = ()

    @property
    def sample_xy(self):
        return self.xy[:self.n_samples]

    @property
    def outline_xy(self):
        return self.xy[self.n_samples:]


def make_coordinate_table(samples, outline=None, calibration=None):
    """
    Builds the combined normalized coordinate table.

    :param samples: array of shape (N, 3) with x, y and density count
    :param outline: array of shape (M, 2) or None
    :param calibration: anything accepted by :func:`retina.calibration.make_calibration`
    :return: :class:`CoordinateTable`
    """
    calibration = make_calibration(calibration)

    samples = np.asarray(samples, dtype=np.float64)
    if samples.ndim != 2 or samples.shape[1] != 3:
        raise InputError('samples must have three columns (x, y, z), got shape %s' % str(samples.shape),
                         stage='import')
    if samples.shape[0] == 0:
        raise InputError('no samples given', stage='import')
    if outline is None:
        outline = np.zeros((0, 2))
    outline = np.asarray(outline, dtype=np.float64)
    if outline.size == 0:
        outline = outline.reshape(0, 2)
    if outline.ndim != 2 or outline.shape[1] != 2:
        raise InputError('outline must have two columns (x, y), got shape %s' % str(outline.shape),
                         stage='import')

    bad = np.where(~np.all(np.isfinite(samples), axis=1))[0]
    if len(bad) > 0:
        raise InputError('sample has a non-finite value', stage='import', index=int(bad[0]))
    bad = np.where(samples[:, 2] < 0.)[0]
    if len(bad) > 0:
        raise InputError('sample has a negative density count %g' % samples[bad[0], 2],
                         stage='import', index=int(bad[0]))
    bad = np.where(~np.all(np.isfinite(outline), axis=1))[0]
    if len(bad) > 0:
        raise InputError('outline point has a non-finite value', stage='import',
                         index=samples.shape[0] + int(bad[0]))

    sample_xy = calibration.samples_to_unit(samples[:, 0:2])
    outline_xy = calibration.outline_to_unit(outline)
    xy = np.vstack((sample_xy, outline_xy))

    table = CoordinateTable(readonly(xy), readonly(samples[:, 2]), samples.shape[0], outline.shape[0])
    logger.debug('coordinate table: %d samples, %d outline points, %s' %
                 (table.n_samples, table.n_outline, str(calibration)))
    return table


def import_coordinates(path, counting_frame, calibration=None, samples_file=default_samples_file,
                       outline_file=default_outline_file, datapoints_file=default_datapoints_file):
    """
    Reads sample and outline coordinates from the retina data directory,
    normalizes them, and saves the combined table to `datapoints_file` in
    the same directory.

    :param path: str; retina data directory
    :param counting_frame: :class:`retina.env.CountingFrame` or (height, width)
    :param calibration: see :func:`make_coordinate_table`
    :param samples_file: str; name of the sample file within `path`
    :param outline_file: str or None; name of the outline file within `path`
    :param datapoints_file: str or None; name of the audit file written to `path`
    :return: :class:`CoordinateTable`
    """
    ## The counting frame is validated before any file is touched.
    if not isinstance(counting_frame, CountingFrame):
        counting_frame = CountingFrame(*counting_frame)
    calibration = make_calibration(calibration)

    if not os.path.isdir(path):
        raise InputError('retina data directory %s was not found' % path, stage='import')

    samples = read_samples(os.path.join(path, samples_file))
    if outline_file is not None:
        outline = read_outline(os.path.join(path, outline_file))
    else:
        outline = None

    table = make_coordinate_table(samples, outline, calibration=calibration)
    if datapoints_file is not None:
        write_datapoints(os.path.join(path, datapoints_file), table.xy)
    return table
