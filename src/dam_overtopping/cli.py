# src/dam_overtopping/cli.py

"""
CLI wrapper for the dam overtopping frequency analysis.

Sub-commands:
  analyze     : Rolling-window GEV analysis of all structures (parallel)
  plot        : Window trajectory plots from a result CSV
  diagnostics : Histogram, QQ and PP plots of each full-span GEV fit
"""

import argparse
import logging
import sys

import pandas as pd

from dam_overtopping.config import MAX_ITER, MISSING_MARKER, AnalysisConfig
from dam_overtopping.data_io import check_consistency, load_dam_data, load_dam_info, validate_paths
from dam_overtopping.frequency_analysis import run_frequency_analysis

# Configure logging
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def analyze_command(args: argparse.Namespace) -> int:
    """Run the frequency analysis from parsed arguments."""
    config = AnalysisConfig(
        step=args.step,
        workers=args.workers,
        missing_marker=args.missing_marker,
        max_iter=args.max_iter
    )
    results = run_frequency_analysis(
        info_path=args.info,
        data_path=args.data,
        output_path=args.output,
        config=config,
        return_period_path=args.return_period_output,
        parameter_path=args.parameter_output,
        netcdf_path=args.netcdf
    )
    print(f"Analysed {len(results)} structures -> {args.output}")
    return 0


def plot_command(args: argparse.Namespace) -> int:
    """Plot window trajectories from a result CSV."""
    from dam_overtopping.viz import plot_results

    results = pd.read_csv(args.results, na_values=[args.missing_marker])
    paths = plot_results(results, args.output_dir, structures=args.structures, dpi=args.dpi)
    print(f"Saved {len(paths)} plots to {args.output_dir}")
    return 0


def diagnostics_command(args: argparse.Namespace) -> int:
    """Plot goodness-of-fit diagnostics of each structure's full-span fit."""
    from dam_overtopping.viz import plot_diagnostics

    validate_paths(args.info, args.data)
    structures = load_dam_info(args.info)
    data = load_dam_data(args.data)
    check_consistency(structures, data)
    paths = plot_diagnostics(structures, data, args.output_dir, names=args.structures, dpi=args.dpi)
    print(f"Saved {len(paths)} diagnostic plots to {args.output_dir}")
    return 0


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dam_overtopping',
        description='Dam overtopping frequency analysis'
    )
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    sub = parser.add_subparsers(dest='command', required=True)

    # analyze sub-command
    p_analyze = sub.add_parser('analyze', help='Rolling-window GEV analysis of all structures')
    p_analyze.add_argument('--info', default='Dam_info.csv',
                           help='Path to dam metadata CSV')
    p_analyze.add_argument('--data', default='Dam_data.csv',
                           help='Path to water-level CSV (first column is a row index)')
    p_analyze.add_argument('--output', default='Frequency_Analysis_Result.csv',
                           help='Result CSV path')
    p_analyze.add_argument('--step', type=int, default=1,
                           help='Stride between sliding windows')
    p_analyze.add_argument('--workers', type=int, default=1,
                           help='Number of parallel workers (0=all cores, 1=serial)')
    p_analyze.add_argument('--return-period-output', default=None,
                           help='Optional CSV path for return periods')
    p_analyze.add_argument('--parameter-output', default=None,
                           help='Optional CSV path for fitted GEV parameters per window')
    p_analyze.add_argument('--netcdf', default=None,
                           help='Optional NetCDF path for the result dataset')
    p_analyze.add_argument('--missing-marker', default=MISSING_MARKER,
                           help='Text written for windows without a valid fit')
    p_analyze.add_argument('--max-iter', type=int, default=MAX_ITER,
                           help='Maximum optimizer iterations per GEV fit')
    p_analyze.set_defaults(func=analyze_command)

    # plot sub-command
    p_plot = sub.add_parser('plot', help='Plot window trajectories from a result CSV')
    p_plot.add_argument('--results', default='Frequency_Analysis_Result.csv',
                        help='Result CSV written by analyze')
    p_plot.add_argument('--output-dir', default='outputs/plots',
                        help='Directory to save plots')
    p_plot.add_argument('--structures', nargs='+', default=None,
                        help='Structure names to plot (default: all)')
    p_plot.add_argument('--missing-marker', default=MISSING_MARKER,
                        help='Missing value marker used in the result CSV')
    p_plot.add_argument('--dpi', type=int, default=150,
                        help='Resolution of saved plots')
    p_plot.set_defaults(func=plot_command)

    # diagnostics sub-command
    p_diag = sub.add_parser('diagnostics', help='QQ/PP diagnostics of each full-span GEV fit')
    p_diag.add_argument('--info', default='Dam_info.csv',
                        help='Path to dam metadata CSV')
    p_diag.add_argument('--data', default='Dam_data.csv',
                        help='Path to water-level CSV (first column is a row index)')
    p_diag.add_argument('--output-dir', default='outputs/diagnostics',
                        help='Directory to save plots')
    p_diag.add_argument('--structures', nargs='+', default=None,
                        help='Structure names to plot (default: all)')
    p_diag.add_argument('--dpi', type=int, default=150,
                        help='Resolution of saved plots')
    p_diag.set_defaults(func=diagnostics_command)

    return parser


def main(argv=None) -> int:
    parser = setup_parser()
    args = parser.parse_args(argv)
    logging.getLogger().setLevel(args.log_level)

    try:
        return args.func(args)
    except Exception as e:
        logger.error(f"{args.command} failed: {type(e).__name__}: {e}")
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
