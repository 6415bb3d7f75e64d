'''Design of maximally distant DNA barcode sets

Barcode sets are either selected from a pool of candidate barcodes or
constructed directly from a pattern of fixed and free positions. Both
modes run the same genetic search, which maximizes the minimum pairwise
(Hamming or Levenshtein) distance of each set.

    from barcode_designer import BarcodeConstraints, SearchConfig, search

    config = SearchConfig(mode="construct", set_size=8, num_generations=200,
                          num_parallel_streams=1, metric="hamming")
    results = search(config, constraints=BarcodeConstraints("AC________"))
    print(results.to_text())
'''

from .config import BarcodeConstraints, SearchConfig
from .distance import DistanceMetric, HammingDistance, LevenshteinDistance, get_metric
from .engine import GeneticSearchEngine, RunOutcome, search
from .errors import (BarcodeDesignerError, CancellationSignal, ConfigurationError,
                     GenerationExhaustion, MetricMismatch)
from .pool import CandidatePoolBuilder, build_candidate_pool, read_barcodes, write_barcodes
from .progress import CancellationToken, Progress, TqdmProgress
from .results import BarcodeSet, ResultCollection

__version__ = "0.1.0"

__all__ = [
    "BarcodeConstraints",
    "SearchConfig",
    "DistanceMetric",
    "HammingDistance",
    "LevenshteinDistance",
    "get_metric",
    "GeneticSearchEngine",
    "RunOutcome",
    "search",
    "BarcodeDesignerError",
    "CancellationSignal",
    "ConfigurationError",
    "GenerationExhaustion",
    "MetricMismatch",
    "CandidatePoolBuilder",
    "build_candidate_pool",
    "read_barcodes",
    "write_barcodes",
    "CancellationToken",
    "Progress",
    "TqdmProgress",
    "BarcodeSet",
    "ResultCollection",
]
