'''Distance metrics between barcodes'''

from typing import Dict

import edlib

from .errors import ConfigurationError, MetricMismatch


class DistanceMetric:
    """Base class for barcode distance metrics"""

    name = ''

    def distance(self, a: str, b: str) -> int:
        raise NotImplementedError

    def __call__(self, a: str, b: str) -> int:
        return self.distance(a, b)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class HammingDistance(DistanceMetric):
    """Number of differing positions between two equal-length barcodes"""

    name = 'hamming'

    def distance(self, a: str, b: str) -> int:
        if len(a) != len(b):
            raise MetricMismatch(
                f"Hamming distance requires equal lengths, got {len(a)} and {len(b)}")
        return sum(1 for x, y in zip(a, b) if x != y)


class LevenshteinDistance(DistanceMetric):
    """Unit-cost edit distance (substitution, insertion, deletion)"""

    name = 'levenshtein'

    def distance(self, a: str, b: str) -> int:
        # edlib needs a non-empty query
        if not a or not b:
            return max(len(a), len(b))
        return edlib.align(a, b, task='distance')['editDistance']


METRICS: Dict[str, DistanceMetric] = {
    HammingDistance.name: HammingDistance(),
    LevenshteinDistance.name: LevenshteinDistance(),
}


def get_metric(name: str) -> DistanceMetric:
    """Look up a metric by name ("hamming" or "levenshtein")"""
    try:
        return METRICS[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown distance metric '{name}', must be one of: {', '.join(METRICS)}") from None


def min_pairwise_distance(barcodes, metric: DistanceMetric) -> int:
    """Minimum distance over all pairs of a barcode set (0 for fewer than two barcodes)"""
    best = None
    for i in range(len(barcodes)):
        for j in range(i + 1, len(barcodes)):
            d = metric.distance(barcodes[i], barcodes[j])
            if best is None or d < best:
                best = d
                if best == 0:
                    return 0
    return best if best is not None else 0
