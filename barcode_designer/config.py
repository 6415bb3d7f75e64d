'''Configuration records for candidate generation and the barcode set search'''

import math
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional

from .distance import METRICS
from .errors import ConfigurationError

BASES = ('A', 'C', 'G', 'T')
FREE = '_'
GC_BASES = frozenset('GC')

GC_SCOPES = ('full', 'free')
MODES = ('select', 'construct')
INIT_STRATEGIES = ('forward', 'random')
MAX_PARALLEL_STREAMS = 12


def all_free_pattern(length: int) -> str:
    """Pattern of the given length with every position free"""
    return FREE * max(0, length)


@dataclass
class BarcodeConstraints:
    """Pattern and base composition every barcode must satisfy"""
    pattern: str
    min_gc: float = 0.4
    max_gc: float = 0.6
    gc_scope: str = 'full'

    def __post_init__(self):
        if not isinstance(self.pattern, str) or not self.pattern:
            raise ConfigurationError("Barcode pattern must not be empty")
        self.pattern = self.pattern.upper()
        invalid = set(self.pattern) - set(BASES) - {FREE}
        if invalid:
            raise ConfigurationError(
                f"Invalid characters in barcode pattern: {''.join(sorted(invalid))}. "
                f"Must only contain the characters A, C, G, T, _")
        if not 0 <= self.min_gc <= 1 or not 0 <= self.max_gc <= 1:
            raise ConfigurationError("GC content bounds must be between 0 and 1")
        if self.min_gc > self.max_gc:
            raise ConfigurationError("Minimum GC content must not be greater than maximum GC content")
        if self.gc_scope not in GC_SCOPES:
            raise ConfigurationError(f"gc_scope must be one of: {', '.join(GC_SCOPES)}")

    @property
    def length(self) -> int:
        return len(self.pattern)

    @property
    def free_positions(self) -> List[int]:
        return [i for i, c in enumerate(self.pattern) if c == FREE]

    def matches(self, barcode: str) -> bool:
        """Check that a barcode carries the pattern's fixed nucleotides"""
        if len(barcode) != len(self.pattern):
            return False
        return all(p == FREE or p == b for p, b in zip(self.pattern, barcode))

    def gc_content(self, barcode: str) -> Optional[float]:
        """GC fraction of a barcode measured over the configured scope"""
        if self.gc_scope == 'free':
            positions = self.free_positions
            if not positions:
                return None
            gc = sum(1 for i in positions if barcode[i] in GC_BASES)
            return gc / len(positions)
        return gc_content(barcode)

    def gc_ok(self, barcode: str) -> bool:
        gc = self.gc_content(barcode)
        # nothing to measure when no position is free
        if gc is None:
            return True
        return self.min_gc <= gc <= self.max_gc

    def is_valid(self, barcode: str) -> bool:
        return self.matches(barcode) and self.gc_ok(barcode)

    def count_valid(self) -> int:
        """Exact number of distinct barcodes satisfying pattern and GC window"""
        n_free = len(self.free_positions)
        fixed_gc = sum(1 for c in self.pattern if c in GC_BASES)
        if self.gc_scope == 'free' and n_free == 0:
            return 1
        total = 0
        for g in range(n_free + 1):
            if self.gc_scope == 'free':
                gc = g / n_free
            else:
                gc = (fixed_gc + g) / self.length
            if self.min_gc <= gc <= self.max_gc:
                # g free positions drawn from {G,C}, the rest from {A,T}
                total += math.comb(n_free, g) * 2 ** n_free
        return total


def gc_content(barcode: str) -> float:
    """Calculate GC content of a barcode"""
    gc = sum(1 for base in barcode if base in GC_BASES)
    return gc / len(barcode)


@dataclass
class SearchConfig:
    """Parameters of the genetic barcode set search"""
    mode: str = 'select'
    set_size: int = 10
    population_size: int = 100
    offspring_size: Optional[int] = None
    num_generations: int = 1000
    num_runs: int = 1
    num_parallel_streams: int = 4
    initialization: str = 'forward'
    balance_colors: bool = False
    early_stopping_min_dist: Optional[int] = None
    metric: str = 'levenshtein'
    seed: Optional[int] = None
    pool_size: int = 100
    max_attempts_per_candidate: int = 1000
    use_code_seeding: bool = False

    def __post_init__(self):
        if self.offspring_size is None:
            self.offspring_size = 2 * self.population_size
        self.metric = str(self.metric).lower()

        if self.mode not in MODES:
            raise ConfigurationError(f"mode must be one of: {', '.join(MODES)}")
        if self.set_size < 2:
            raise ConfigurationError("set_size must be at least 2")
        for name in ('population_size', 'offspring_size', 'num_generations', 'num_runs',
                     'pool_size', 'max_attempts_per_candidate'):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be greater than 0")
        if not 1 <= self.num_parallel_streams <= MAX_PARALLEL_STREAMS:
            raise ConfigurationError(
                f"num_parallel_streams must be between 1 and {MAX_PARALLEL_STREAMS}")
        if self.initialization not in INIT_STRATEGIES:
            raise ConfigurationError(
                f"initialization must be one of: {', '.join(INIT_STRATEGIES)}")
        if self.metric not in METRICS:
            raise ConfigurationError(f"metric must be one of: {', '.join(METRICS)}")

        if self.mode == 'select':
            if self.early_stopping_min_dist is not None:
                raise ConfigurationError("early_stopping_min_dist is not allowed in select mode")
        else:
            if self.balance_colors:
                raise ConfigurationError("balance_colors is not allowed in construct mode")
            if self.early_stopping_min_dist is not None and self.early_stopping_min_dist <= 0:
                raise ConfigurationError("early_stopping_min_dist must be greater than 0")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def stop_distance(self) -> float:
        """Distance at which a run stops early (infinite when disabled)"""
        if self.mode != 'construct' or self.early_stopping_min_dist is None:
            return math.inf
        return self.early_stopping_min_dist
