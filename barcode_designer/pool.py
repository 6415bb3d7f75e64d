'''Candidate pool generation and loading

Candidates are built from a pattern of fixed and free positions. Free
positions are filled uniformly at random, or from the codewords of a
quaternary Hamming code when code seeding is requested.'''

import logging
import random
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from Bio import SeqIO

from .config import BASES, BarcodeConstraints
from .errors import CancellationSignal, ConfigurationError, GenerationExhaustion
from .hamming_code import MIN_DISTANCE, QuaternaryHammingCode
from .progress import ProgressCallback, silent_progress

FASTA_SUFFIXES = {'.fa', '.fasta', '.fna', '.fas'}

CandidatePool = Tuple[str, ...]


class CandidatePoolBuilder:
    """Generates unique barcodes matching a pattern and GC window"""

    def __init__(self,
                 constraints: BarcodeConstraints,
                 rng: Optional[random.Random] = None,
                 progress: Optional[ProgressCallback] = None):
        self.constraints = constraints
        self.rng = rng or random.Random()
        self.progress = progress or silent_progress
        self.free_positions = constraints.free_positions
        self._template = list(constraints.pattern)

    def _fill(self, symbols: Iterable[str]) -> str:
        barcode = self._template.copy()
        for pos, base in zip(self.free_positions, symbols):
            barcode[pos] = base
        return ''.join(barcode)

    def random_barcode(self) -> str:
        """Pattern-valid barcode with free positions drawn uniformly from A/C/G/T"""
        return self._fill(self.rng.choice(BASES) for _ in self.free_positions)

    def build(self,
              count: int,
              max_attempts_per_candidate: int = 1000,
              use_code_seeding: bool = False) -> CandidatePool:
        """Generate `count` unique barcodes.

        Each barcode gets up to `max_attempts_per_candidate` draws. Raises
        GenerationExhaustion when the budget runs out and CancellationSignal
        when the progress callback asks to stop.
        """
        if count <= 0:
            raise ConfigurationError("Number of barcodes must be greater than 0")
        if max_attempts_per_candidate <= 0:
            raise ConfigurationError("max_attempts_per_candidate must be greater than 0")

        available = self.constraints.count_valid()
        if count > available:
            raise GenerationExhaustion(
                count, 0,
                f"Requested {count} barcodes but only {available} barcodes satisfy "
                f"pattern {self.constraints.pattern} and the GC window")

        if use_code_seeding:
            draw = self._codeword_source(count)
        else:
            draw = self.random_barcode

        pool: List[str] = []
        seen = set()
        report_every = max(1, count // 100)
        for _ in range(count):
            for _attempt in range(max_attempts_per_candidate):
                barcode = draw()
                if barcode not in seen and self.constraints.gc_ok(barcode):
                    break
            else:
                logging.warning(f"Attempt budget exhausted after {len(pool)} of {count} barcodes")
                raise GenerationExhaustion(count, len(pool))

            seen.add(barcode)
            pool.append(barcode)
            if len(pool) % report_every == 0 or len(pool) == count:
                if self.progress(len(pool) / count * 100,
                                 f"{len(pool)} of {count} barcodes generated") is False:
                    raise CancellationSignal("Barcode generation cancelled")

        logging.info(f"Generated {len(pool)} candidate barcodes from pattern {self.constraints.pattern}")
        return tuple(pool)

    def _codeword_source(self, count: int):
        code = QuaternaryHammingCode(len(self.free_positions)) if self.free_positions else None
        coset_size = code.size if code else 1
        if count > coset_size:
            raise GenerationExhaustion(
                count, 0,
                f"A distance-{MIN_DISTANCE} code over {len(self.free_positions)} free positions "
                f"has only {coset_size} codewords, {count} requested")
        if code is None:
            return lambda: self._fill(())

        syndrome = code.random_syndrome(self.rng)
        logging.debug(f"Code seeding with {code.length} symbols, {code.num_checks} check symbols")
        return lambda: self._fill(code.random_codeword(self.rng, syndrome))


def build_candidate_pool(pattern: str,
                         min_gc: float,
                         max_gc: float,
                         count: int,
                         max_attempts_per_candidate: int = 1000,
                         use_code_seeding: bool = False,
                         gc_scope: str = 'full',
                         seed: Optional[int] = None,
                         progress: Optional[ProgressCallback] = None) -> CandidatePool:
    """Validate the generation request and build a candidate pool"""
    constraints = BarcodeConstraints(pattern, min_gc, max_gc, gc_scope)
    builder = CandidatePoolBuilder(constraints, random.Random(seed), progress)
    return builder.build(count, max_attempts_per_candidate, use_code_seeding)


def normalize_candidates(barcodes: Sequence[str]) -> CandidatePool:
    """Upper-case and validate supplied candidates, dropping duplicates"""
    pool: List[str] = []
    seen = set()
    length = None
    for num, barcode in enumerate(barcodes, 1):
        barcode = barcode.strip().upper()
        if not barcode:
            raise ConfigurationError(f"Candidate {num} is empty")
        if not set(barcode).issubset(BASES):
            raise ConfigurationError(f"Candidate {num} contains invalid characters: {barcode}")
        if length is None:
            length = len(barcode)
        elif len(barcode) != length:
            raise ConfigurationError(
                f"Candidate {num} has length {len(barcode)}, expected {length}: {barcode}")
        if barcode in seen:
            logging.warning(f"Skipping duplicate candidate {barcode}")
            continue
        seen.add(barcode)
        pool.append(barcode)
    if not pool:
        raise ConfigurationError("No candidate barcodes supplied")
    return tuple(pool)


def _check_barcode(barcode: str, length: Optional[int], where: str) -> None:
    if not barcode:
        raise ConfigurationError(f"Barcode {where} is empty")
    if not set(barcode).issubset(BASES):
        raise ConfigurationError(f"Barcode {where} contains invalid characters: {barcode}")
    if length is not None and len(barcode) != length:
        raise ConfigurationError(f"Barcode {where} has incorrect length: {barcode}")


def read_barcodes(file_path: Path) -> List[str]:
    """Load barcodes from a text file (one per line) or a FASTA file"""
    file_path = Path(file_path)
    barcodes = []

    if file_path.suffix.lower() in FASTA_SUFFIXES:
        with open(file_path) as handle:
            for record in SeqIO.parse(handle, "fasta"):
                barcode = str(record.seq).upper()
                _check_barcode(barcode, len(barcodes[0]) if barcodes else None,
                               f"in record {record.id}")
                barcodes.append(barcode)
    else:
        with open(file_path) as f:
            for line_num, line in enumerate(f, 1):
                # Skip empty lines and comments
                line = line.strip()
                if not line or line.startswith('#'):
                    continue

                barcode = line.split()[0].upper()
                _check_barcode(barcode, len(barcodes[0]) if barcodes else None,
                               f"on line {line_num}")
                barcodes.append(barcode)

    if not barcodes:
        raise ConfigurationError(f"No barcodes found in {file_path}")
    logging.info(f"Loaded {len(barcodes)} barcodes from {file_path}")
    return barcodes


def write_barcodes(file_path: Path, barcodes: Iterable[str]) -> None:
    """Write barcodes one per line"""
    with open(file_path, 'w') as f:
        for barcode in barcodes:
            f.write(f'{barcode}\n')
