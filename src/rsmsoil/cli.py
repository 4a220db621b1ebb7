"""
Command-line interface for rsmsoil.

Provides the ``rsmsoil`` command for running a response-surface analysis
on a CSV file of experimental results.

Requires the ``cli`` optional dependency group::

    pip install rsmsoil[cli]

Usage::

    rsmsoil fit trial.csv -r Y -f P:18:180:342 -f S:6:60:114 --order quadratic
    rsmsoil canonical trial.csv -r Y -f P:18:180:342 -f S:6:60:114
    rsmsoil path trial.csv -r Y -f P -f S --order linear --n-steps 6 --step-size 0.2
    rsmsoil optimize trial.csv -r Y -f P -f S --objective maximize
    rsmsoil design -k 2 --type ccd --alpha 1.68 --n-center 2
"""

from __future__ import annotations

import sys

try:
    import click
except ImportError:
    print(
        "Error: click is required for the rsmsoil CLI. Install it with: pip install rsmsoil[cli]",
        file=sys.stderr,
    )
    sys.exit(1)


def _parse_factor(spec: str) -> tuple[str, tuple[float, float, float] | None]:
    """
    Parse a factor specification string.

    Formats:
        "name"                    → levels detected from the data
        "name:low:center:high"    → explicit encoding levels

    Returns
    -------
    name : str
    levels : (low, center, high) or None
    """
    parts = [p.strip() for p in spec.split(":")]
    name = parts[0]
    if not name:
        raise click.BadParameter(f"Factor spec '{spec}' has no factor name")
    if len(parts) == 1:
        return name, None
    if len(parts) != 4:
        raise click.BadParameter(f"Factor spec '{spec}' must be 'name' or 'name:low:center:high'")
    try:
        low, center, high = (float(p) for p in parts[1:])
    except ValueError:
        raise click.BadParameter(
            f"Could not parse levels for '{name}': '{':'.join(parts[1:])}' must be numbers"
        ) from None
    return name, (low, center, high)


def _fail(exc: Exception):
    click.echo(f"Error: {exc}", err=True)
    raise SystemExit(1) from None


def _load_model(data_file, response, factors, order, coded):
    """Read the CSV, encode the factors and fit the model."""
    import pandas as pd

    from .coding import CODED_SUFFIX, encode_variables
    from .fitting import fit_response_surface

    parsed = [_parse_factor(f) for f in factors]
    names = [name for name, _ in parsed]
    frame = pd.read_csv(data_file)

    given = {name: lvl for name, lvl in parsed if lvl is not None}
    if given and len(given) != len(parsed):
        raise click.UsageError("Give levels for every factor or for none of them")

    if coded:
        # Levels on coded columns only map results back to natural units
        return fit_response_surface(
            frame, response, names, order=order, encoding_levels=given or None
        )

    coded_data = encode_variables(frame, names, levels=given or None)
    return fit_response_surface(
        coded_data, response, [f"{n}{CODED_SUFFIX}" for n in names], order=order
    )


def _model_options(func):
    """Options shared by every analysis command."""
    options = [
        click.argument("data_file", type=click.Path(exists=True)),
        click.option("--response", "-r", required=True, help="Response column."),
        click.option(
            "--factor",
            "-f",
            "factors",
            multiple=True,
            required=True,
            help='Factor spec: "name" or "name:low:center:high" (natural units).',
        ),
        click.option(
            "--coded",
            is_flag=True,
            help="Factor columns are already on the coded scale; levels, if given, convert results to natural units.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


ORDERS = click.Choice(["linear", "linear_with_interaction", "quadratic"])


@click.group()
@click.version_option(package_name="rsmsoil")
def main():
    """rsmsoil: Response Surface Methodology for designed experiments."""
    pass


# =============================================================================
# fit
# =============================================================================


@main.command()
@_model_options
@click.option("--order", "-o", type=ORDERS, default="quadratic", help="Model order.")
@click.option("--alpha", "-a", default=0.05, type=float, help="Significance level.")
def fit(data_file, response, factors, coded, order, alpha):
    """Fit a response-surface model and print its ANOVA.

    Example:

        rsmsoil fit trial.csv -r Y -f P:18:180:342 -f S:6:60:114 --alpha 0.10
    """
    from .anova import anova_rsm
    from .reporting import format_report

    try:
        model = _load_model(data_file, response, factors, order, coded)
        result = anova_rsm(model, alpha=alpha)
    except ValueError as e:
        _fail(e)

    click.echo(format_report(model))
    click.echo("")
    click.echo(format_report(result))


# =============================================================================
# canonical
# =============================================================================


@main.command()
@_model_options
def canonical(data_file, response, factors, coded):
    """Canonical analysis of a second-order model.

    Example:

        rsmsoil canonical trial.csv -r Y -f P:18:180:342 -f S:6:60:114
    """
    from .canonical import canonical_analysis
    from .reporting import format_report

    try:
        model = _load_model(data_file, response, factors, "quadratic", coded)
        report = canonical_analysis(model)
    except ValueError as e:
        _fail(e)

    click.echo(format_report(report))


# =============================================================================
# path
# =============================================================================


@main.command()
@_model_options
@click.option("--order", "-o", type=ORDERS, default="quadratic", help="Model order.")
@click.option(
    "--direction", "-d", type=click.Choice(["ascent", "descent"]), default="ascent",
    help="Search direction.",
)
@click.option("--n-steps", "-n", default=10, type=int, help="Number of path points.")
@click.option("--step-size", "-s", default=0.1, type=float, help="Step size (coded units).")
@click.option("--start", default=None, help="Comma-separated coded start point (default: center).")
def path(data_file, response, factors, coded, order, direction, n_steps, step_size, start):
    """Path of steepest ascent or descent.

    Example:

        rsmsoil path trial.csv -r Y -f P -f S --order linear -n 6 -s 0.2
    """
    from .reporting import format_report
    from .steepest import steepest_path

    start_point = None
    if start is not None:
        try:
            start_point = [float(v) for v in start.split(",")]
        except ValueError:
            raise click.BadParameter(f"Could not parse start point '{start}'") from None

    try:
        model = _load_model(data_file, response, factors, order, coded)
        report = steepest_path(
            model, start_point=start_point, direction=direction, n_steps=n_steps,
            step_size=step_size,
        )
    except ValueError as e:
        _fail(e)

    click.echo(format_report(report))


# =============================================================================
# optimize
# =============================================================================


@main.command()
@_model_options
@click.option("--order", "-o", type=ORDERS, default="quadratic", help="Model order.")
@click.option("--objective", default="maximize", help="maximize or minimize.")
@click.option("--n-grid", "-n", default=50, type=int, help="Grid points per factor.")
@click.option("--bound", "-b", default=1.68, type=float, help="Search region is [-b, b] coded.")
def optimize(data_file, response, factors, coded, order, objective, n_grid, bound):
    """Grid search for the best factor settings.

    Example:

        rsmsoil optimize trial.csv -r Y -f P:18:180:342 -f S:6:60:114 -n 15
    """
    from .prediction import get_optimal_factors
    from .reporting import format_report

    try:
        model = _load_model(data_file, response, factors, order, coded)
        result = get_optimal_factors(
            model, objective=objective, n_grid=n_grid, bounds=(-bound, bound)
        )
    except ValueError as e:
        _fail(e)

    click.echo(format_report(result))


# =============================================================================
# design
# =============================================================================


@main.command()
@click.option("--n-factors", "-k", required=True, type=int, help="Number of factors.")
@click.option(
    "--type", "design_type", type=click.Choice(["ccd", "factorial", "box_behnken"]),
    default="ccd", help="Design type.",
)
@click.option("--alpha", default="1.68", help='Axial distance, "rotatable" or "face" (CCD).')
@click.option("--n-center", default=1, type=int, help="Center-point replicates.")
@click.option("--names", default=None, help="Comma-separated factor names.")
@click.option("--output", default=None, help="Write the design to this CSV file.")
def design(n_factors, design_type, alpha, n_center, names, output):
    """Generate a coded experimental design.

    Example:

        rsmsoil design -k 2 --type ccd --alpha 1.68 --n-center 2
    """
    from .design import generate_design

    try:
        alpha_value = float(alpha)
    except ValueError:
        alpha_value = alpha
    factor_names = [n.strip() for n in names.split(",")] if names else None

    try:
        frame = generate_design(
            n_factors, design=design_type, alpha=alpha_value, n_center=n_center,
            factor_names=factor_names,
        )
    except ValueError as e:
        _fail(e)

    click.echo(f"Generated {len(frame)} runs ({design_type}).")
    if output:
        frame.to_csv(output, index=False)
        click.echo(f"Written to: {output}")
    else:
        click.echo(frame.to_string(index=False, float_format=lambda v: f"{v:.4f}"))
