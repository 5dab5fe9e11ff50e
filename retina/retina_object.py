"""Construction of retina objects.

A retina object combines the interpolated density surface over the
azimuthal equidistant projection of the eye hemisphere with the projected
sample and landmark outline coordinates and the ocular measurements of the
eye they were taken from.
"""

from collections import namedtuple
import numpy as np
from retina.calibration import make_calibration
from retina.coordinates import import_coordinates, default_samples_file, default_outline_file, \
    default_datapoints_file
from retina.env import CountingFrame, EyeGeometry, make_interpolation_config
from retina.errors import AssemblyError, ConfigurationError
from retina.hull import alpha_shape
from retina.interpolate import ErrorMetric, InterpolatedSurface, interpolate_density, default_outer_radius
from retina.projection import Orientation, ProjectedCoords, default_orientation, project
from retina.sphere import DiskOracle, SphericalCoords, make_oracle, map_to_sphere
from retina.utils import get_module_logger, readonly

logger = get_module_logger(__name__)


class RetinaObject(namedtuple('RetinaObject', ['surface',
                                               'samples',
                                               'outline',
                                               'spherical_samples',
                                               'spherical_outline',
                                               'eye_geometry',
                                               'counting_frame',
                                               'orientation'])):
    __slots__ = ()

    @property
    def n_samples(self):
        return len(self.samples.u)

    def density_per_mm2(self):
        """Surface values converted from counts per counting frame to cells per mm^2."""
        if self.counting_frame is None:
            raise ConfigurationError('retina object has no counting frame', stage='assemble')
        return self.surface.values / self.counting_frame.area_mm2

    def grid_mm(self):
        """Grid axes as arc length on the retina in mm."""
        s = self.eye_geometry.mm_per_radian
        return self.surface.u * s, self.surface.v * s

    def sample_boundary(self, radius=np.inf):
        """Boundary segments of the region covered by the samples, as an
        array of shape (P, 2, 2). With the default radius this is the
        convex hull; a finite radius gives the corresponding alpha shape."""
        uv = np.column_stack((self.samples.u, self.samples.v))
        alpha = alpha_shape(uv, radius)
        return alpha.points[alpha.bounds]


def _require(value, name):
    if value is None:
        raise AssemblyError('%s is required' % name, stage='assemble')
    return value


def assemble(surface, samples, outline, eye_geometry, counting_frame=None, orientation=default_orientation,
             spherical_samples=None, spherical_outline=None):
    """
    Combines the parts of a retina object. Checks structural consistency only.

    :param surface: :class:`retina.interpolate.InterpolatedSurface`
    :param samples: :class:`retina.projection.ProjectedCoords` with density
    :param outline: :class:`retina.projection.ProjectedCoords` without density
    :param eye_geometry: :class:`retina.env.EyeGeometry` or (LD, ED, AL)
    :param counting_frame: :class:`retina.env.CountingFrame`, (height, width) or None
    :param orientation: :class:`retina.projection.Orientation` used for both point sets
    :param spherical_samples: :class:`retina.sphere.SphericalCoords` or None
    :param spherical_outline: :class:`retina.sphere.SphericalCoords` or None
    :return: :class:`RetinaObject`
    """
    _require(surface, 'interpolated surface')
    _require(samples, 'projected samples')
    _require(outline, 'projected outline')
    _require(eye_geometry, 'eye geometry')
    _require(orientation, 'orientation')

    if not isinstance(surface, InterpolatedSurface):
        raise AssemblyError('surface must be an InterpolatedSurface, got %s' % type(surface).__name__,
                            stage='assemble')
    if surface.fit_quality is None:
        raise AssemblyError('surface has no fit quality', stage='assemble')
    if samples.density is None:
        raise AssemblyError('projected samples carry no density', stage='assemble')
    if outline.density is not None:
        raise AssemblyError('projected outline must not carry a density', stage='assemble')

    n = len(samples.u)
    if len(samples.v) != n or len(samples.density) != n:
        raise AssemblyError('projected samples have inconsistent lengths (%d, %d, %d)' %
                            (n, len(samples.v), len(samples.density)), stage='assemble')
    if len(outline.u) != len(outline.v):
        raise AssemblyError('projected outline has inconsistent lengths (%d, %d)' %
                            (len(outline.u), len(outline.v)), stage='assemble')
    if len(surface.fit_quality.residuals) != n:
        raise AssemblyError('fit quality has %d residuals for %d samples' %
                            (len(surface.fit_quality.residuals), n), stage='assemble')
    shape = (surface.spatial_res, surface.spatial_res)
    if np.shape(surface.values) != shape or np.shape(surface.defined) != shape:
        raise AssemblyError('surface grid does not match its resolution %d' % surface.spatial_res,
                            stage='assemble')

    for name, spherical, projected in [('samples', spherical_samples, samples),
                                       ('outline', spherical_outline, outline)]:
        if spherical is not None and len(spherical.lat) != len(projected.u):
            raise AssemblyError('%d spherical %s for %d projected %s' %
                                (len(spherical.lat), name, len(projected.u), name), stage='assemble')

    if not isinstance(eye_geometry, EyeGeometry):
        eye_geometry = EyeGeometry(*eye_geometry)
    if counting_frame is not None and not isinstance(counting_frame, CountingFrame):
        counting_frame = CountingFrame(*counting_frame)
    orientation = Orientation(*orientation)

    surface = surface._replace(u=readonly(surface.u), v=readonly(surface.v),
                               values=readonly(surface.values),
                               defined=readonly(surface.defined, dtype=bool))
    samples = ProjectedCoords(*readonly(samples.u, samples.v, samples.density))
    outline = ProjectedCoords(*readonly(outline.u, outline.v, None))
    if spherical_samples is not None:
        spherical_samples = SphericalCoords(*readonly(spherical_samples.lat, spherical_samples.lon,
                                                      samples.density))
    if spherical_outline is not None:
        spherical_outline = SphericalCoords(*readonly(spherical_outline.lat, spherical_outline.lon, None))

    return RetinaObject(surface, samples, outline, spherical_samples, spherical_outline,
                        eye_geometry, counting_frame, orientation)


def build_retina_object(table, oracle, eye_geometry, counting_frame, interp_config,
                        orientation=default_orientation):
    """
    Runs the mapping, projection, interpolation and assembly stages on an
    imported coordinate table.

    :param table: :class:`retina.coordinates.CoordinateTable`
    :param oracle: :class:`retina.sphere.ReconstructionOracle`
    :param eye_geometry: :class:`retina.env.EyeGeometry`
    :param counting_frame: :class:`retina.env.CountingFrame`
    :param interp_config: :class:`retina.env.InterpolationConfig`
    :param orientation: :class:`retina.projection.Orientation`
    :return: :class:`RetinaObject`
    """
    spherical_samples, spherical_outline = map_to_sphere(table, oracle)

    ## The outline must be projected exactly like the samples, or it will
    ## not line up with the density surface.
    samples = project(spherical_samples, orientation)
    outline = project(spherical_outline, orientation)

    surface = interpolate_density(samples.u, samples.v, samples.density,
                                  lmbda=interp_config.lmbda,
                                  spatial_res=interp_config.spatial_res,
                                  extrapolate=interp_config.extrapolate,
                                  outer_radius=interp_config.outer_radius,
                                  error_metric=interp_config.error_metric)

    return assemble(surface, samples, outline, eye_geometry, counting_frame=counting_frame,
                    orientation=orientation, spherical_samples=spherical_samples,
                    spherical_outline=spherical_outline)


def make_retina_object(path, LD, ED, AL, height, width, lmbda=0.01, extrapolate=True, spatial_res=16,
                       rotation_ccw=-90., calibration=None, oracle=None, outer_radius=default_outer_radius,
                       error_metric=ErrorMetric.residual, pole_lat=-90., pole_lon=0.,
                       samples_file=default_samples_file, outline_file=default_outline_file,
                       datapoints_file=default_datapoints_file):
    """
    Creates a retina object from a retina data directory.

    :param path: str; retina data directory containing the samples and landmark outline
    :param LD: float; lens diameter in mm
    :param ED: float; eye diameter in mm
    :param AL: float; axial length in mm
    :param height: float; counting frame height in micrometers
    :param width: float; counting frame width in micrometers, must equal height
    :param lmbda: float; thin-plate spline smoothing parameter
    :param extrapolate: bool; evaluate the surface beyond the convex hull of the samples
    :param spatial_res: int; grid resolution
    :param rotation_ccw: float; rotation of the projection in degrees, -90 puts dorsal up
    :param calibration: None or counting frame grid calibration (see retina.calibration)
    :param oracle: :class:`retina.sphere.ReconstructionOracle`; defaults to
        the reconstruction of an uncut disk-shaped flatmount
    :param outer_radius: float; half-width of the output grid
    :param error_metric: :class:`retina.interpolate.ErrorMetric`
    :param pole_lat: float; latitude of the projection pole in degrees
    :param pole_lon: float; longitude of the projection pole in degrees
    :return: :class:`RetinaObject`
    """
    counting_frame = CountingFrame(height, width)
    eye_geometry = EyeGeometry(LD, ED, AL)
    interp_config = make_interpolation_config(lmbda, extrapolate, spatial_res, outer_radius, error_metric)
    orientation = Orientation(float(pole_lat), float(pole_lon), float(rotation_ccw))
    calibration = make_calibration(calibration)
    if oracle is None:
        logger.info('no reconstruction given; assuming an uncut disk-shaped flatmount')
        oracle = DiskOracle()

    table = import_coordinates(path, counting_frame, calibration=calibration, samples_file=samples_file,
                               outline_file=outline_file, datapoints_file=datapoints_file)

    return build_retina_object(table, oracle, eye_geometry, counting_frame, interp_config,
                               orientation=orientation)


def make_retina_object_from_env(env, oracle=None):
    """
    Creates a retina object as configured by a :class:`retina.env.Env` instance.

    :param env: :class:`retina.env.Env`
    :param oracle: :class:`retina.sphere.ReconstructionOracle`; overrides
        the `Reconstruction` configuration section
    :return: :class:`RetinaObject`
    """
    if env.dataset_path is None:
        raise ConfigurationError('no retina data directory configured', stage='import')
    if oracle is None:
        oracle = make_oracle(env.reconstruction_config or {}, dataset_path=env.dataset_path)

    table = import_coordinates(env.dataset_path, env.counting_frame, calibration=env.calibration,
                               samples_file=env.input_config.samples_file,
                               outline_file=env.input_config.outline_file,
                               datapoints_file=env.input_config.datapoints_file)

    return build_retina_object(table, oracle, env.eye_geometry, env.counting_frame, env.interp_config,
                               orientation=env.orientation)
