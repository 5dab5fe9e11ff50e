"""
Retina object construction script
"""
import os, sys
import click
from retina.env import Env
from retina.errors import RetinaError
from retina.interpolate import ErrorMetric
from retina.io_utils import write_retina_object
from retina.retina_object import make_retina_object_from_env
from retina.utils import EnumChoice, get_script_logger

logger = get_script_logger(os.path.basename(__file__))


@click.command()
@click.option("--config-path", '-c', required=True, type=click.Path(exists=True, file_okay=True, dir_okay=False))
@click.option("--dataset-path", '-d', required=False, type=click.Path(exists=True, file_okay=False, dir_okay=True))
@click.option("--output-path", '-o', required=False, type=click.Path(file_okay=True, dir_okay=False))
@click.option("--lmbda", type=float, help="thin-plate spline smoothing parameter")
@click.option("--spatial-res", type=int, help="grid resolution")
@click.option("--extrapolate/--no-extrapolate", default=None)
@click.option("--error-metric", type=EnumChoice(ErrorMetric, use_value=True), default=None)
@click.option("--verbose", "-v", type=bool, default=False, is_flag=True)
def main(config_path, dataset_path, output_path, lmbda, spatial_res, extrapolate, error_metric, verbose):
    """Builds a retina object from a configuration file and a retina data directory."""

    overrides = {}
    for name, value in [('lmbda', lmbda), ('spatial_res', spatial_res),
                        ('extrapolate', extrapolate), ('error_metric', error_metric)]:
        if value is not None:
            overrides[name] = value

    try:
        env = Env(config_file=config_path, dataset_path=dataset_path, verbose=verbose, **overrides)
        retina_obj = make_retina_object_from_env(env)
    except RetinaError as e:
        logger.error(str(e))
        sys.exit(1)

    quality = retina_obj.surface.fit_quality
    click.echo('%d samples, %d outline points; %s = %.6g' %
               (retina_obj.n_samples, len(retina_obj.outline.u), quality.metric.name, quality.value))

    if output_path is not None:
        write_retina_object(retina_obj, output_path)


if __name__ == '__main__':
    main(args=sys.argv[1:])
