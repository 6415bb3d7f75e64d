#! /usr/bin/env python3

'''BARCODE SET DESIGNER
   Selects or constructs sets of maximally distant DNA barcodes with a genetic algorithm'''

import sys
import signal
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from .config import (BarcodeConstraints, SearchConfig, all_free_pattern, GC_SCOPES,
                     INIT_STRATEGIES, MAX_PARALLEL_STREAMS)
from .distance import METRICS
from .engine import search
from .errors import ConfigurationError, GenerationExhaustion
from .pool import read_barcodes
from .progress import CancellationToken, TqdmProgress
from .results import ResultCollection

DEFAULT_LENGTH = 12
DEFAULT_NUMBER = 100
DEFAULT_MIN_GC = 40.0
DEFAULT_MAX_GC = 60.0
DEFAULT_GC_SCOPE = 'full'


def setup_logging(debug: bool = False) -> None:
    """Configure logging settings"""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Design sets of maximally distant DNA barcodes using a genetic algorithm',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        '--type',
        choices=['select', 'generate'],
        required=True,
        help='select: choose subsets of candidate barcodes; generate: construct barcode sets directly'
    )
    parser.add_argument(
        '--file',
        type=Path,
        help='Candidate barcode file (one per line, or FASTA), select mode only'
    )
    parser.add_argument(
        '--number',
        type=int,
        help=f'Number of candidate barcodes to generate (select) or barcodes per set (generate) '
             f'(default: {DEFAULT_NUMBER})'
    )
    parser.add_argument(
        '--set-size',
        type=int,
        default=10,
        help='Number of barcodes per selected set (select mode)'
    )
    parser.add_argument(
        '--length',
        type=int,
        help=f'Barcode length (default: {DEFAULT_LENGTH})'
    )
    parser.add_argument(
        '--pattern',
        help='Barcode pattern of fixed nucleotides (A/C/G/T) and free positions (_) '
             '(default: all positions free)'
    )
    parser.add_argument(
        '--min-gc',
        type=float,
        help=f'Minimum GC percentage (0-100, default: {DEFAULT_MIN_GC:g})'
    )
    parser.add_argument(
        '--max-gc',
        type=float,
        help=f'Maximum GC percentage (0-100, default: {DEFAULT_MAX_GC:g})'
    )
    parser.add_argument(
        '--gc-scope',
        choices=GC_SCOPES,
        help=f'Measure GC content over the full barcode or only over the free positions '
             f'(default: {DEFAULT_GC_SCOPE})'
    )
    parser.add_argument(
        '--code-seeding',
        action='store_true',
        help='Draw barcodes from a Hamming code (pairwise distance >= 3, fewer barcodes available)'
    )
    parser.add_argument(
        '--population-size',
        type=int,
        default=100,
        help='Population size of the genetic algorithm'
    )
    parser.add_argument(
        '--generations',
        type=int,
        default=1000,
        help='Number of generations of the genetic algorithm'
    )
    parser.add_argument(
        '--runs',
        type=int,
        default=1,
        help='Number of independent runs of the genetic algorithm'
    )
    parser.add_argument(
        '--min-dist',
        type=int,
        help='Stop a run as soon as this minimum distance is reached (generate mode)'
    )
    parser.add_argument(
        '--balance-colors',
        action='store_true',
        help='Balance A/C versus G/T nucleotides at each position (select mode)'
    )
    parser.add_argument(
        '--metric',
        choices=sorted(METRICS),
        default='levenshtein',
        help='Distance metric'
    )
    parser.add_argument(
        '--parallel',
        type=int,
        default=4,
        help=f'Number of parallel streams for recombination, mutation and evaluation (1-{MAX_PARALLEL_STREAMS})'
    )
    parser.add_argument(
        '--init',
        choices=INIT_STRATEGIES,
        default='forward',
        help='Population initialization strategy'
    )
    parser.add_argument(
        '--seed',
        type=int,
        help='Random seed for reproducible results'
    )
    parser.add_argument(
        '--output-format',
        choices=['text', 'json'],
        default='text',
        help='Output format'
    )
    parser.add_argument(
        '--output',
        type=Path,
        help='Also write the results to this file'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Do not show progress'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    return parser


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = build_parser()
    args = parser.parse_args(argv)

    generation_args = [args.length, args.pattern, args.number, args.min_gc, args.max_gc, args.gc_scope]
    if args.type == 'select':
        if args.min_dist is not None:
            parser.error("--min-dist is not allowed with --type select")
        if args.file is not None and (args.code_seeding or any(a is not None for a in generation_args)):
            parser.error("--file cannot be combined with the generation parameters "
                         "--length, --pattern, --number, --min-gc, --max-gc, --gc-scope and --code-seeding")
    else:
        if args.balance_colors or args.file is not None:
            parser.error("--balance-colors and --file are not allowed with --type generate")
        if args.min_dist is not None and args.min_dist <= 0:
            parser.error("--min-dist must be greater than 0")

    # an explicit length without pattern means all positions are free
    if args.pattern is None:
        args.pattern = all_free_pattern(args.length if args.length is not None else DEFAULT_LENGTH)
    elif args.length is not None and args.length != len(args.pattern):
        parser.error("Specified barcode length and pattern length do not coincide")
    if args.number is None:
        args.number = DEFAULT_NUMBER
    if args.min_gc is None:
        args.min_gc = DEFAULT_MIN_GC
    if args.max_gc is None:
        args.max_gc = DEFAULT_MAX_GC
    if args.gc_scope is None:
        args.gc_scope = DEFAULT_GC_SCOPE

    if not 0 <= args.min_gc <= 100 or not 0 <= args.max_gc <= 100:
        parser.error("--min-gc and --max-gc must be >= 0 and <= 100")
    if args.min_gc > args.max_gc:
        parser.error("--min-gc must not be greater than --max-gc")
    if args.number <= 0:
        parser.error("--number must be greater than 0")
    if args.population_size <= 0 or args.generations <= 0 or args.runs <= 0:
        parser.error("--generations, --runs and --population-size must be greater than 0")
    if not 1 <= args.parallel <= MAX_PARALLEL_STREAMS:
        parser.error(f"--parallel must be between 1 and {MAX_PARALLEL_STREAMS}")

    return args


def build_config(args: argparse.Namespace) -> SearchConfig:
    """Translate parsed arguments into a search configuration"""
    construct = args.type == 'generate'
    return SearchConfig(
        mode='construct' if construct else 'select',
        set_size=args.number if construct else args.set_size,
        population_size=args.population_size,
        offspring_size=2 * args.population_size,
        num_generations=args.generations,
        num_runs=args.runs,
        num_parallel_streams=args.parallel,
        initialization=args.init,
        balance_colors=args.balance_colors,
        early_stopping_min_dist=args.min_dist if construct else None,
        metric=args.metric,
        seed=args.seed,
        pool_size=args.number,
        use_code_seeding=args.code_seeding,
    )


def run_search(args: argparse.Namespace, progress, token: CancellationToken) -> ResultCollection:
    config = build_config(args)
    candidates = None
    constraints = None
    if args.file is not None:
        candidates = read_barcodes(args.file)
    else:
        constraints = BarcodeConstraints(args.pattern, args.min_gc / 100.0, args.max_gc / 100.0,
                                         args.gc_scope)
    return search(config, candidates=candidates, constraints=constraints,
                  progress=progress, token=token)


def write_output(results: ResultCollection, output_format: str, output_path: Optional[Path]) -> str:
    """Render results, print them and optionally save them to a file"""
    out_string = results.to_json() if output_format == 'json' else results.to_text()
    print(out_string)
    if output_path is not None:
        try:
            output_path.write_text(out_string)
        except OSError as e:
            logging.error(f"The output file {output_path} is not accessible: {e}")
    return out_string


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    setup_logging(args.debug)

    # Ctrl-C stops the search at the next generation and keeps the results so far
    token = CancellationToken()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    try:
        with TqdmProgress(disable=args.quiet) as progress:
            results = run_search(args, progress, token)
    except (ConfigurationError, GenerationExhaustion, OSError) as e:
        logging.error(f"Error: {e}")
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if token.cancelled:
        logging.info("Interrupted by user. Saving results...")
    write_output(results, args.output_format, args.output)

    logging.info('Complete')
    return 0


if __name__ == '__main__':
    sys.exit(main())
