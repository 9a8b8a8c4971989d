"""
EMME Command Line Interface

Usage:
    python -m emme CONFIG [options]

Examples:
    python -m emme run.json
    python -m emme run.json --output result.npz --plot mode.png
    python -m emme emme.in --threads 8 -v

A configuration with a "sweep" section scans that parameter and writes the
eigenvalue of every point (--sweep-csv); otherwise a single eigenvalue is
solved for and its eigenmode extracted.
"""
import argparse
import logging
import sys

import numpy as np

from emme.config import load_config
from emme.errors import ConfigError, InvalidArgument
from emme.logging_config import setup_logging
from emme.null_space import null_space
from emme.output import save_result, write_sweep_csv
from emme.singularity import singularity_handler
from emme.solver import solve
from emme.sweep import parameter_sweep
from emme.thread_pool import DedicatedThreadPool

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NOT_CONVERGED = 1
EXIT_CONFIG = 2


def mode_threshold(solver, eigenvalue):
    """
    Singular value threshold for the eigenmode of a converged solve.

    The secant stops about tol |lambda| from the root, which leaves a
    singular value of that order; sqrt(tol) |lambda| separates it from the
    rest of the spectrum. solver.null_space_tol overrides it.
    """
    if solver.null_space_tol is not None:
        return solver.null_space_tol
    return np.sqrt(solver.tol) * max(abs(eigenvalue), 1.0)


def build_parser():
    parser = argparse.ArgumentParser(
        prog='emme',
        description='Eigenvalue search for the integral micro-instability dispersion relation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('config', help='run configuration (.json, or a legacy emme.in record)')
    parser.add_argument('-o', '--output', help='write the solve to this .npz file')
    parser.add_argument('--sweep-csv', help='write sweep results to this CSV file')
    parser.add_argument('--plot', help='save a figure of the eigenmode (or sweep) to this path')
    parser.add_argument('-j', '--threads', type=int, help='worker threads (overrides solver.threads)')
    parser.add_argument('--log-file', help='also write the log to this file')
    parser.add_argument('-v', '--verbose', action='store_true', help='debug logging')
    return parser


def _run_single(config, model, coeff_matrix, grid, pool, args):
    s = config.solver
    result = solve(s.lambda0, s.tol, model, coeff_matrix, grid, s.iteration_step_limit,
                   lambda1=s.lambda1, indicator=s.indicator, pool=pool)

    eigenvectors = None
    if result.converged:
        eigenvectors = np.asarray(null_space(result.matrix, tol=mode_threshold(s, result.eigenvalue)))

    print(f"Eigenvalue: {result.eigenvalue.real:.8g} {result.eigenvalue.imag:+.8g}i")
    print(f"State: {result.state.value} after {result.iterations} iterations")
    if eigenvectors is not None:
        print(f"Null space dimension: {eigenvectors.shape[1]}")

    if args.output:
        save_result(args.output, result, grid, eigenvectors)
    if args.plot and eigenvectors is not None and eigenvectors.shape[1] > 0:
        from emme.plotting import plot_eigenmode
        plot_eigenmode(grid, eigenvectors[:, 0], result.eigenvalue).savefig(args.plot)
        logger.info("Saved eigenmode plot to %s", args.plot)

    return EXIT_OK if result.converged else EXIT_NOT_CONVERGED


def _run_sweep(config, model, coeff_matrix, grid, pool, args):
    s, sweep = config.solver, config.sweep
    points = parameter_sweep(model, sweep.parameter, sweep.values(), coeff_matrix, grid,
                             lambda0=s.lambda0, tol=s.tol, iteration_step_limit=s.iteration_step_limit,
                             indicator=s.indicator, pool=pool)

    for p in points:
        print(f"{sweep.parameter}={p.value:.6g}  gamma={p.gamma:.6g}  omega={p.omega:.6g}  {p.state.value}")

    if args.sweep_csv:
        write_sweep_csv(args.sweep_csv, points)
    if args.plot:
        from emme.plotting import plot_sweep
        plot_sweep(points, sweep.parameter).savefig(args.plot)
        logger.info("Saved sweep plot to %s", args.plot)

    return EXIT_OK if all(p.state.value == 'converged' for p in points) else EXIT_NOT_CONVERGED


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        config = load_config(args.config)
        model = config.build_model()
        grid = config.build_grid()
    except ConfigError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG

    coeff_matrix = singularity_handler(grid.npoints)
    threads = args.threads if args.threads is not None else config.solver.threads

    try:
        with DedicatedThreadPool(threads) as pool:
            logger.info("Solving %s model on %d points with %d threads",
                        config.model, grid.npoints, pool.num_threads)
            if config.sweep is not None:
                return _run_sweep(config, model, coeff_matrix, grid, pool, args)
            return _run_single(config, model, coeff_matrix, grid, pool, args)
    except InvalidArgument as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG


if __name__ == '__main__':
    sys.exit(main())
