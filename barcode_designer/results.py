'''Barcode sets produced by the search and their text/JSON renderings'''

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from .distance import get_metric, min_pairwise_distance
from .errors import ConfigurationError
from .pool import read_barcodes

JSON_SUFFIXES = {'.json', '.bdj'}

RED_BASES = frozenset('AC')


def color_balance(barcodes: Sequence[str]) -> List[float]:
    """Percentage of A/C (red channel) nucleotides at each position of a set"""
    if not barcodes:
        return []
    length = max(len(b) for b in barcodes)
    counts = [0] * length
    for barcode in barcodes:
        for i, base in enumerate(barcode):
            if base in RED_BASES:
                counts[i] += 1
    return [100.0 * c / len(barcodes) for c in counts]


def imbalance(balance: Sequence[float]) -> float:
    """Total deviation of the per-position A/C share from 50%"""
    return sum(abs(p - 50.0) for p in balance)


@dataclass
class BarcodeSet:
    """Best barcode set of one run"""
    barcodes: List[str]
    min_distance: int
    metric: str
    color_balance: List[float] = field(default_factory=list)
    run: Optional[int] = None
    generations: Optional[int] = None
    cancelled: bool = False

    @classmethod
    def from_barcodes(cls, barcodes: Sequence[str], metric: str = 'levenshtein', **kwargs) -> "BarcodeSet":
        """Build a set, computing its minimum distance and color balance"""
        barcodes = list(barcodes)
        distance = min_pairwise_distance(barcodes, get_metric(metric))
        return cls(barcodes=barcodes, min_distance=distance, metric=metric,
                   color_balance=color_balance(barcodes), **kwargs)

    @property
    def imbalance(self) -> float:
        return imbalance(self.color_balance)

    def __len__(self) -> int:
        return len(self.barcodes)

    def __str__(self) -> str:
        return f"Set of {len(self.barcodes)} barcodes (minimum distance: {self.min_distance})"

    def to_text(self) -> str:
        lines = list(self.barcodes)
        lines.append(f"Minimum distance ({self.metric}): {self.min_distance}")
        return '\n'.join(lines)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'barcodes': list(self.barcodes),
            'minDistance': self.min_distance,
            'metric': self.metric,
            'colorBalance': list(self.color_balance),
        }
        if self.run is not None:
            data['run'] = self.run
        if self.generations is not None:
            data['generations'] = self.generations
        if self.cancelled:
            data['cancelled'] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BarcodeSet":
        try:
            barcodes = [str(b).upper() for b in data['barcodes']]
            metric = str(data.get('metric', 'levenshtein')).lower()
            get_metric(metric)
            min_distance = data.get('minDistance')
            if min_distance is None:
                min_distance = min_pairwise_distance(barcodes, get_metric(metric))
            balance = data.get('colorBalance')
            if balance is None:
                balance = color_balance(barcodes)
            return cls(barcodes=barcodes,
                       min_distance=int(min_distance),
                       metric=metric,
                       color_balance=[float(p) for p in balance],
                       run=data.get('run'),
                       generations=data.get('generations'),
                       cancelled=bool(data.get('cancelled', False)))
        except (KeyError, TypeError) as e:
            raise ConfigurationError(f"Malformed barcode set: {e}") from e


class ResultCollection:
    """Ordered best-first collection of barcode sets, one per run.

    Sets are kept sorted by descending minimum distance; sets with equal
    distance stay in the order they were added. Identical sets coming from
    different runs are all retained.
    """

    def __init__(self, sets: Optional[Iterable[BarcodeSet]] = None):
        self._sets: List[BarcodeSet] = []
        for barcode_set in sets or ():
            self.add(barcode_set)

    def add(self, barcode_set: BarcodeSet) -> None:
        self._sets.append(barcode_set)
        # stable: ties keep insertion (run) order
        self._sets.sort(key=lambda s: -s.min_distance)

    @property
    def sets(self) -> List[BarcodeSet]:
        return list(self._sets)

    @property
    def best(self) -> Optional[BarcodeSet]:
        return self._sets[0] if self._sets else None

    def __len__(self) -> int:
        return len(self._sets)

    def __iter__(self) -> Iterator[BarcodeSet]:
        return iter(self._sets)

    def __getitem__(self, index: int) -> BarcodeSet:
        return self._sets[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, ResultCollection):
            return NotImplemented
        return self._sets == other._sets

    def __repr__(self) -> str:
        return f"ResultCollection({len(self._sets)} sets)"

    def to_text(self) -> str:
        blocks = []
        for i, barcode_set in enumerate(self._sets, 1):
            blocks.append(f"Barcode set {i} ({len(barcode_set)} barcodes):\n{barcode_set.to_text()}")
        return '\n\n'.join(blocks) + '\n' if blocks else ''

    def __str__(self) -> str:
        return self.to_text()

    def to_dict(self, sets: Optional[Sequence[BarcodeSet]] = None) -> Dict[str, Any]:
        sets = self._sets if sets is None else sets
        return {'sets': [s.to_dict() for s in sets]}

    def to_json(self, sets: Optional[Sequence[BarcodeSet]] = None, indent: int = 2) -> str:
        return json.dumps(self.to_dict(sets), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResultCollection":
        if not isinstance(data, dict) or not isinstance(data.get('sets'), list):
            raise ConfigurationError("Barcode set collection must contain a 'sets' array")
        collection = cls()
        # keep the stored order verbatim
        collection._sets = [BarcodeSet.from_dict(s) for s in data['sets']]
        return collection

    @classmethod
    def from_json(cls, text: str) -> "ResultCollection":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid barcode set JSON: {e}") from e
        return cls.from_dict(data)

    def save(self, output_path: Path) -> None:
        """Write JSON for .json/.bdj files and the text rendering otherwise"""
        output_path = Path(output_path)
        with open(output_path, 'w') as f:
            if output_path.suffix.lower() in JSON_SUFFIXES:
                f.write(self.to_json())
            else:
                f.write(self.to_text())
        logging.info(f"Saved {len(self)} barcode sets to {output_path}")

    @classmethod
    def load(cls, input_path: Path, metric: str = 'levenshtein') -> "ResultCollection":
        """Load a JSON collection, or a plain barcode list as a single set"""
        input_path = Path(input_path)
        if input_path.suffix.lower() in JSON_SUFFIXES:
            return cls.from_json(input_path.read_text())
        return cls([BarcodeSet.from_barcodes(read_barcodes(input_path), metric)])
