"""Calibration of flatmount coordinates.

Sample locations are recorded either already normalized, or as
counting-frame grid indices that must be placed onto the image of the
flatmount.  The two cases are modelled as distinct classes,
:class:`Uncalibrated` and :class:`Calibrated`, sharing the same interface.
"""

from collections import namedtuple
import numpy as np
from retina.errors import ConfigurationError
from retina.utils import get_module_logger

logger = get_module_logger(__name__)

## Bounds of the sampling grid in image pixels, and the average pixel
## distance between neighbouring counting frame locations.
CalibrationFrame = namedtuple('CalibrationFrame',
                              ['maxX',
                               'maxY',
                               'minX',
                               'minY',
                               'deltaX',
                               'deltaY'])


class Uncalibrated(object):
    """Coordinates are assumed to be normalized and are passed through."""

    calibrated = False

    def samples_to_unit(self, xy):
        return np.asarray(xy, dtype=np.float64).reshape(-1, 2)

    def outline_to_unit(self, xy):
        return np.asarray(xy, dtype=np.float64).reshape(-1, 2)

    def __repr__(self):
        return 'Uncalibrated()'


class Calibrated(object):
    """Affine pixel calibration given by a :class:`CalibrationFrame`.

    Sample coordinates are 1-based counting frame grid indices; they are
    first placed in image pixels as ``min + (index - 1) * delta``.  Both
    sample and outline pixel coordinates are then mapped onto the unit
    frame ``(p - min) / (max - min)``.
    """

    calibrated = True

    def __init__(self, frame):
        frame = CalibrationFrame(*[float(x) for x in frame])
        if not np.all(np.isfinite(frame)):
            raise ConfigurationError('calibration frame contains non-finite values: %s' % str(frame),
                                     stage='import')
        if frame.maxX <= frame.minX or frame.maxY <= frame.minY:
            raise ConfigurationError('calibration frame has empty extent: %s' % str(frame),
                                     stage='import')
        if frame.deltaX <= 0. or frame.deltaY <= 0.:
            raise ConfigurationError('calibration frame deltas must be positive: %s' % str(frame),
                                     stage='import')
        self.frame = frame

    @property
    def lower(self):
        return np.array([self.frame.minX, self.frame.minY])

    @property
    def extent(self):
        return np.array([self.frame.maxX - self.frame.minX, self.frame.maxY - self.frame.minY])

    def grid_to_pixels(self, xy):
        xy = np.asarray(xy, dtype=np.float64).reshape(-1, 2)
        delta = np.array([self.frame.deltaX, self.frame.deltaY])
        return self.lower + (xy - 1.) * delta

    def pixels_to_unit(self, xy):
        xy = np.asarray(xy, dtype=np.float64).reshape(-1, 2)
        return (xy - self.lower) / self.extent

    def samples_to_unit(self, xy):
        return self.pixels_to_unit(self.grid_to_pixels(xy))

    def outline_to_unit(self, xy):
        return self.pixels_to_unit(xy)

    def __repr__(self):
        return 'Calibrated(%s)' % str(self.frame)


def make_calibration(frame=None):
    """Builds a calibration from a frame, a mapping or a sequence of six scalars.

    :param frame: None, :class:`Calibrated`, :class:`Uncalibrated`,
        :class:`CalibrationFrame`, dict with the frame field names, or a
        sequence (maxX, maxY, minX, minY, deltaX, deltaY)
    :return: :class:`Calibrated` or :class:`Uncalibrated`
    """
    if frame is None or frame is False:
        return Uncalibrated()
    if isinstance(frame, (Calibrated, Uncalibrated)):
        return frame
    if isinstance(frame, dict):
        missing = [k for k in CalibrationFrame._fields if k not in frame]
        if len(missing) > 0:
            raise ConfigurationError('calibration is missing fields %s' % ', '.join(missing),
                                     stage='import')
        frame = [frame[k] for k in CalibrationFrame._fields]
    if len(frame) != len(CalibrationFrame._fields):
        raise ConfigurationError('calibration requires %d values, got %d' %
                                 (len(CalibrationFrame._fields), len(frame)), stage='import')
    calibration = Calibrated(frame)
    logger.debug('using calibration %s' % str(calibration))
    return calibration
