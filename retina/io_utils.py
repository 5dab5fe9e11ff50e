import os
import warnings
import numpy as np
import h5py
from retina.errors import InputError
from retina.utils import get_module_logger

# This logger will inherit its settings from the root logger, created in retina.env
logger = get_module_logger(__name__)


grp_surface = 'Surface'
grp_samples = 'Samples'
grp_outline = 'Outline'
grp_fit_quality = 'Fit Quality'

attr_eye_geometry = 'Eye Geometry'
attr_counting_frame = 'Counting Frame'
attr_orientation = 'Orientation'


def read_table(file_path, ncols, delimiter=None, skip_header=0):
    """
    Reads a numeric table and checks that every row holds `ncols` finite values.

    :param file_path: str
    :param ncols: int; expected number of columns
    :param delimiter: str or None for whitespace-separated columns
    :param skip_header: int; number of header lines
    :return: array of shape (N, ncols)
    """
    if not os.path.isfile(file_path):
        raise InputError('input file %s was not found' % file_path, stage='import')
    try:
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', UserWarning)
            data = np.genfromtxt(file_path, delimiter=delimiter, skip_header=skip_header,
                                 dtype=np.float64, invalid_raise=True, ndmin=2)
    except ValueError as e:
        raise InputError('malformed input file %s: %s' % (file_path, str(e)), stage='import')

    if data.size == 0:
        raise InputError('input file %s contains no data rows' % file_path, stage='import')
    if data.shape[1] != ncols:
        raise InputError('input file %s has %d columns, expected %d' % (file_path, data.shape[1], ncols),
                         stage='import')
    bad_rows = np.where(~np.all(np.isfinite(data), axis=1))[0]
    if len(bad_rows) > 0:
        raise InputError('input file %s has a missing or non-numeric value' % file_path,
                         stage='import', index=int(bad_rows[0]))
    return data


def read_samples(file_path):
    """Reads sample locations and density counts from a comma-separated
    file with a header row and columns x, y, z."""
    data = read_table(file_path, 3, delimiter=',', skip_header=1)
    logger.info('read %d samples from %s' % (data.shape[0], file_path))
    return data


def read_outline(file_path):
    """Reads a whitespace-separated landmark outline with columns x, y and no header."""
    data = read_table(file_path, 2)
    logger.info('read %d outline points from %s' % (data.shape[0], file_path))
    return data


def write_datapoints(file_path, xy):
    """
    Writes the combined normalized coordinate table (samples followed by
    the outline) as comma-separated x, y columns.

    :param file_path: str
    :param xy: array of shape (N, 2)
    """
    np.savetxt(file_path, np.asarray(xy).reshape(-1, 2), fmt='%.12g', delimiter=',',
               header='x,y', comments='')
    logger.info('wrote %d normalized coordinates to %s' % (len(xy), file_path))


def h5_get_group(h, groupname):
    if groupname in h:
        g = h[groupname]
    else:
        g = h.create_group(groupname)
    return g


def write_retina_object(retina_obj, output_path):
    """
    Writes a retina object to an HDF5 file for consumption by rendering tools.

    :param retina_obj: :class:`retina.retina_object.RetinaObject`
    :param output_path: str
    """
    surface = retina_obj.surface
    with h5py.File(output_path, 'w') as h5:
        for name, value in [(attr_eye_geometry, retina_obj.eye_geometry),
                            (attr_counting_frame, retina_obj.counting_frame),
                            (attr_orientation, retina_obj.orientation)]:
            if value is not None:
                h5.attrs[name] = np.asarray(value, dtype=np.float64)

        g = h5_get_group(h5, grp_surface)
        g['U'] = surface.u
        g['V'] = surface.v
        g['Values'] = surface.values
        g['Defined'] = surface.defined
        g.attrs['Spatial Resolution'] = surface.spatial_res
        g.attrs['Outer Radius'] = surface.outer_radius
        g.attrs['Extrapolated'] = surface.extrapolated

        q = h5_get_group(g, grp_fit_quality)
        q.attrs['Metric'] = surface.fit_quality.metric.name
        q.attrs['Value'] = surface.fit_quality.value
        q.attrs['RSS'] = surface.fit_quality.rss
        q['Residuals'] = surface.fit_quality.residuals

        for grp_name, projected, spherical in [(grp_samples, retina_obj.samples, retina_obj.spherical_samples),
                                               (grp_outline, retina_obj.outline, retina_obj.spherical_outline)]:
            g = h5_get_group(h5, grp_name)
            g['U'] = projected.u
            g['V'] = projected.v
            if spherical is not None:
                g['Latitude'] = spherical.lat
                g['Longitude'] = spherical.lon
            if projected.density is not None:
                g['Density'] = projected.density

    logger.info('wrote retina object to %s' % output_path)


def read_retina_object(input_path):
    """
    Reads a retina object written by :func:`write_retina_object`. The
    fitted spline is not stored, so the surface of the returned object
    cannot be evaluated away from its grid.

    :param input_path: str
    :return: :class:`retina.retina_object.RetinaObject`
    """
    from retina.env import EyeGeometry, CountingFrame
    from retina.interpolate import ErrorMetric, FitQuality, InterpolatedSurface
    from retina.projection import Orientation, ProjectedCoords
    from retina.retina_object import assemble
    from retina.sphere import SphericalCoords

    if not os.path.isfile(input_path):
        raise InputError('retina object file %s was not found' % input_path, stage='import')

    with h5py.File(input_path, 'r') as h5:
        eye_geometry = EyeGeometry(*h5.attrs[attr_eye_geometry])
        counting_frame = None
        if attr_counting_frame in h5.attrs:
            counting_frame = CountingFrame(*h5.attrs[attr_counting_frame])
        orientation = Orientation(*h5.attrs[attr_orientation])

        g = h5[grp_surface]
        q = g[grp_fit_quality]
        metric = q.attrs['Metric']
        if isinstance(metric, bytes):
            metric = metric.decode('utf-8')
        fit_quality = FitQuality(ErrorMetric[metric], float(q.attrs['Value']),
                                 float(q.attrs['RSS']), q['Residuals'][:])
        surface = InterpolatedSurface(g['U'][:], g['V'][:], g['Values'][:], g['Defined'][:],
                                      int(g.attrs['Spatial Resolution']), float(g.attrs['Outer Radius']),
                                      bool(g.attrs['Extrapolated']), fit_quality, None)

        parts = {}
        for grp_name in (grp_samples, grp_outline):
            g = h5[grp_name]
            density = g['Density'][:] if 'Density' in g else None
            spherical = None
            if 'Latitude' in g:
                spherical = SphericalCoords(g['Latitude'][:], g['Longitude'][:], density)
            parts[grp_name] = (ProjectedCoords(g['U'][:], g['V'][:], density), spherical)

    return assemble(surface, parts[grp_samples][0], parts[grp_outline][0], eye_geometry,
                    counting_frame=counting_frame, orientation=orientation,
                    spherical_samples=parts[grp_samples][1],
                    spherical_outline=parts[grp_outline][1])
