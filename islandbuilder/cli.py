"""Click CLI commands for IslandBuilder."""

import functools
import json
import logging
import pathlib

import click

from .builder import IslandBuilder
from .catalog import DEFAULT_CATALOG, load_placements
from .constants import (
    DEFAULT_SEGMENTS, DEFAULT_HEIGHT, DEFAULT_TOP_RADIUS, DEFAULT_BOTTOM_RADIUS,
    DEFAULT_RIM_NOISE, DEFAULT_SHAPE_SEED, DEFAULT_SCATTER_SEED,
    DEFAULT_EDGE_MARGIN, DEFAULT_MAX_SLOPE, DEFAULT_Y_OFFSET,
    LOG_LEVEL, LOG_FORMAT,
)
from .export import generate_glb, write_manifest
from .models import ShapeParameters

logger = logging.getLogger(__name__)


def shape_options(func):
    """Island shape options shared by every command that builds a mesh."""
    options = [
        click.option('--segments', default=DEFAULT_SEGMENTS, show_default=True,
                     help='Rim segments (clamped to 6..128)'),
        click.option('--height', default=DEFAULT_HEIGHT, show_default=True,
                     help='Island height in metres'),
        click.option('--top-radius', default=DEFAULT_TOP_RADIUS, show_default=True),
        click.option('--bottom-radius', default=DEFAULT_BOTTOM_RADIUS,
                     show_default=True),
        click.option('--rim-noise', default=DEFAULT_RIM_NOISE, show_default=True,
                     help='Irregular coastline amount (0 = circle, max 0.5)'),
        click.option('--shape-seed', default=DEFAULT_SHAPE_SEED, show_default=True),
    ]
    for option in reversed(options):
        func = option(func)

    @functools.wraps(func)
    def wrapper(*args, segments, height, top_radius, bottom_radius,
                rim_noise, shape_seed, **kwargs):
        params = ShapeParameters(segments=segments, height=height,
                                 top_radius=top_radius,
                                 bottom_radius=bottom_radius,
                                 rim_noise=rim_noise, seed=shape_seed)
        return func(*args, params=params, **kwargs)
    return wrapper


@click.group()
@click.option('--log-level', default=LOG_LEVEL, show_default=True,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                                case_sensitive=False))
def cli(log_level):
    """IslandBuilder CLI for generating decorated low-poly islands."""
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)


@cli.command()
@shape_options
@click.option('--seed', default=DEFAULT_SCATTER_SEED, show_default=True,
              help='Scatter seed')
@click.option('--edge-margin', default=DEFAULT_EDGE_MARGIN, show_default=True)
@click.option('--max-slope', default=DEFAULT_MAX_SLOPE, show_default=True)
@click.option('--y-offset', default=DEFAULT_Y_OFFSET, show_default=True)
@click.option('--catalog', type=click.Path(dir_okay=False), default=None,
              help='JSON placement catalog (defaults to the built-in one)')
@click.option('--output', '-o', default='island.glb', help='Output GLB file path')
@click.option('--manifest/--no-manifest', default=True,
              help='Also write a JSON placement manifest next to the GLB')
def generate(params, seed, edge_margin, max_slope, y_offset, catalog,
             output, manifest):
    """Generate an island, scatter its decoration, and export it."""
    try:
        placements = load_placements(catalog) if catalog else None
        builder = IslandBuilder(edge_margin=edge_margin, max_slope=max_slope,
                                y_offset=y_offset)

        def _progress(pct, msg):
            click.echo(f"[{pct:3.0f}%] {msg}")

        result = builder.generate(params, placements, seed,
                                  progress_callback=_progress)
        glb_path = generate_glb(result, output)
        manifest_path = None
        if manifest:
            manifest_path = write_manifest(
                result, str(pathlib.Path(glb_path).with_suffix('.json')))
    except Exception as e:
        logger.error(f"Error generating island: {e}")
        raise click.ClickException(str(e))

    click.echo(f"\n{'='*50}")
    mode = 'fallback disk' if result.using_fallback else 'rim polygon'
    click.echo(f"Sampling surface: {mode}")
    for report in result.reports:
        mark = '✗' if report.under_filled else '✓'
        click.echo(f"  [{mark}] {report.category}: {report.placed}/"
                   f"{report.requested} in {report.attempts} tries")
    click.echo(f"\nGLB: {glb_path}")
    if manifest_path:
        click.echo(f"Manifest: {manifest_path}")
    click.echo(f"{'='*50}")


@cli.command()
@shape_options
@click.argument('x', type=float)
@click.argument('y', type=float)
@click.argument('z', type=float)
def probe(params, x, y, z):
    """Probe the island surface below the point X Y Z."""
    builder = IslandBuilder()
    surface = builder.make_probe(builder.build_mesh(params))
    hit = surface.probe((x, y, z))
    if hit is None:
        click.echo("no hit")
        return
    point, normal = hit
    click.echo(f"hit: {point[0]:.3f} {point[1]:.3f} {point[2]:.3f}")
    click.echo(f"normal: {normal[0]:.3f} {normal[1]:.3f} {normal[2]:.3f}")
    click.echo(f"slope: {surface.slope_degrees(normal):.1f} deg")


@cli.command()
def catalog():
    """Print the built-in placement catalog as JSON."""
    click.echo(json.dumps(DEFAULT_CATALOG, indent=2))
