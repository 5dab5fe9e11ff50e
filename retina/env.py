import os
from collections import namedtuple
from retina.calibration import make_calibration
from retina.errors import ConfigurationError
from retina.interpolate import ErrorMetric, default_outer_radius
from retina.projection import Orientation, default_orientation
from retina.utils import IncludeLoader, config_logging, get_root_logger, read_from_yaml


class EyeGeometry(namedtuple('EyeGeometry', ['lens_diameter', 'eye_diameter', 'axial_length'])):
    """Ocular measurements in mm."""

    __slots__ = ()

    def __new__(cls, lens_diameter, eye_diameter, axial_length):
        values = [float(x) for x in (lens_diameter, eye_diameter, axial_length)]
        for name, value in zip(cls._fields, values):
            if not value > 0.:
                raise ConfigurationError('eye geometry: %s must be positive, got %s' % (name, str(value)),
                                         stage='import')
        return super().__new__(cls, *values)

    @property
    def mm_per_radian(self):
        """Arc length on the retina, in mm, subtended by one radian of the projection."""
        return self.eye_diameter / 2.


class CountingFrame(namedtuple('CountingFrame', ['height', 'width'])):
    """Counting frame dimensions in micrometers. Only square frames are supported."""

    __slots__ = ()

    def __new__(cls, height, width):
        height, width = float(height), float(width)
        if height != width:
            raise ConfigurationError('counting frame height (%g) is not equal to width (%g); '
                                     'a square counting frame is required' % (height, width),
                                     stage='import')
        if not height > 0.:
            raise ConfigurationError('counting frame size must be positive, got %g' % height,
                                     stage='import')
        return super().__new__(cls, height, width)

    @property
    def area_mm2(self):
        return self.height * self.width * 1e-6


InterpolationConfig = namedtuple('InterpolationConfig',
                                 ['lmbda',
                                  'extrapolate',
                                  'spatial_res',
                                  'outer_radius',
                                  'error_metric'])

InputConfig = namedtuple('InputConfig',
                         ['samples_file',
                          'outline_file',
                          'datapoints_file'])

default_interpolation_config = InterpolationConfig(lmbda=0.01, extrapolate=True, spatial_res=16,
                                                   outer_radius=default_outer_radius,
                                                   error_metric=ErrorMetric.residual)

default_input_config = InputConfig('xyz.csv', 'falc.txt', 'datapoints.csv')


def parse_error_metric(value):
    if isinstance(value, ErrorMetric):
        return value
    try:
        return ErrorMetric[str(value).lower()]
    except KeyError:
        raise ConfigurationError('unknown error metric %s; expected one of %s' %
                                 (str(value), ', '.join(m.name for m in ErrorMetric)),
                                 stage='interpolate')


def make_interpolation_config(lmbda, extrapolate, spatial_res, outer_radius, error_metric):
    lmbda = float(lmbda)
    if not lmbda >= 0.:
        raise ConfigurationError('smoothing parameter lambda must be non-negative, got %g' % lmbda,
                                 stage='interpolate')
    if int(spatial_res) != spatial_res or int(spatial_res) < 2:
        raise ConfigurationError('spatial resolution must be an integer >= 2, got %s' % str(spatial_res),
                                 stage='interpolate')
    outer_radius = float(outer_radius)
    if not outer_radius > 0.:
        raise ConfigurationError('outer radius must be positive, got %g' % outer_radius,
                                 stage='interpolate')
    return InterpolationConfig(lmbda, bool(extrapolate), int(spatial_res), outer_radius,
                               parse_error_metric(error_metric))


class Env(object):
    """
    Retina object construction configuration.
    """

    def __init__(self, config_file=None, config_prefix=None, dataset_path=None, verbose=False, **kwargs):
        """
        :param config_file: str; configuration file name
        :param config_prefix: str; path to directory containing the configuration file
        :param dataset_path: str; path to the retina data directory
        :param verbose: bool; print verbose diagnostic messages
        :param kwargs: overrides for individual parameters: lens_diameter,
            eye_diameter, axial_length, height, width, lmbda, extrapolate,
            spatial_res, outer_radius, error_metric, pole_lat, pole_lon,
            rotation_ccw, calibration, reconstruction, samples_file,
            outline_file, datapoints_file
        """
        self.verbose = verbose
        config_logging(verbose)
        self.logger = get_root_logger()

        self.config_prefix = config_prefix
        if config_file is not None:
            if config_prefix is not None:
                config_file_path = os.path.join(self.config_prefix, config_file)
            else:
                config_file_path = config_file
            if not os.path.isfile(config_file_path):
                raise ConfigurationError('configuration file %s was not found' % config_file_path,
                                         stage='import')
            self.modelConfig = read_from_yaml(config_file_path, include_loader=IncludeLoader)
            if self.modelConfig is None:
                self.modelConfig = {}
        else:
            self.modelConfig = {}

        # The retina data directory
        if dataset_path is None:
            dataset_path = self.modelConfig.get('Dataset Path', None)
        self.dataset_path = dataset_path

        self.counting_frame = self.parse_counting_frame(kwargs)
        self.eye_geometry = self.parse_eye_geometry(kwargs)
        self.interp_config = self.parse_interpolation_config(kwargs)
        self.orientation = self.parse_orientation(kwargs)
        self.calibration = self.parse_calibration(kwargs)
        self.input_config = self.parse_input_config(kwargs)

        self.reconstruction_config = kwargs.get('reconstruction', self.modelConfig.get('Reconstruction', None))

        self.logger.info('dataset_path = %s' % str(self.dataset_path))
        self.logger.info('eye geometry = %s' % str(self.eye_geometry))
        self.logger.info('interpolation = %s' % str(self.interp_config))

    def section(self, name):
        value = self.modelConfig.get(name, None)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ConfigurationError('configuration section %s must be a mapping' % name, stage='import')
        return value

    def parse_counting_frame(self, kwargs):
        config = self.section('Counting Frame')
        height = kwargs.get('height', config.get('Height', None))
        width = kwargs.get('width', config.get('Width', None))
        if height is None or width is None:
            raise ConfigurationError('counting frame height and width are required', stage='import')
        return CountingFrame(height, width)

    def parse_eye_geometry(self, kwargs):
        config = self.section('Eye Geometry')
        values = []
        for kwarg, key in [('lens_diameter', 'Lens Diameter'),
                           ('eye_diameter', 'Eye Diameter'),
                           ('axial_length', 'Axial Length')]:
            value = kwargs.get(kwarg, config.get(key, None))
            if value is None:
                raise ConfigurationError('eye geometry: %s is required' % key, stage='import')
            values.append(value)
        return EyeGeometry(*values)

    def parse_interpolation_config(self, kwargs):
        config = self.section('Interpolation')
        default = default_interpolation_config
        return make_interpolation_config(
            kwargs.get('lmbda', config.get('Lambda', default.lmbda)),
            kwargs.get('extrapolate', config.get('Extrapolate', default.extrapolate)),
            kwargs.get('spatial_res', config.get('Spatial Resolution', default.spatial_res)),
            kwargs.get('outer_radius', config.get('Outer Radius', default.outer_radius)),
            kwargs.get('error_metric', config.get('Error Metric', default.error_metric)))

    def parse_orientation(self, kwargs):
        config = self.section('Projection')
        default = default_orientation
        return Orientation(float(kwargs.get('pole_lat', config.get('Pole Latitude', default.pole_lat))),
                           float(kwargs.get('pole_lon', config.get('Pole Longitude', default.pole_lon))),
                           float(kwargs.get('rotation_ccw', config.get('Rotation', default.rotation))))

    def parse_calibration(self, kwargs):
        if 'calibration' in kwargs:
            return make_calibration(kwargs['calibration'])
        return make_calibration(self.modelConfig.get('Calibration', None))

    def parse_input_config(self, kwargs):
        config = self.section('Input')
        default = default_input_config
        return InputConfig(kwargs.get('samples_file', config.get('Samples', default.samples_file)),
                           kwargs.get('outline_file', config.get('Outline', default.outline_file)),
                           kwargs.get('datapoints_file', config.get('Datapoints', default.datapoints_file)))
