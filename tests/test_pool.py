"""
Tests for candidate pool generation, code seeding and candidate files.
"""

import tempfile
import unittest
from itertools import combinations, product
from pathlib import Path

from barcode_designer.config import BarcodeConstraints, gc_content
from barcode_designer.distance import HammingDistance
from barcode_designer.errors import (
    CancellationSignal,
    ConfigurationError,
    GenerationExhaustion,
)
from barcode_designer.hamming_code import QuaternaryHammingCode
from barcode_designer.pool import (
    build_candidate_pool,
    normalize_candidates,
    read_barcodes,
    write_barcodes,
)


class TestBarcodeConstraints(unittest.TestCase):

    def test_invalid_pattern(self):
        with self.assertRaises(ConfigurationError):
            BarcodeConstraints("ACGN__")
        with self.assertRaises(ConfigurationError):
            BarcodeConstraints("")

    def test_invalid_gc_window(self):
        with self.assertRaises(ConfigurationError):
            BarcodeConstraints("____", min_gc=0.7, max_gc=0.3)
        with self.assertRaises(ConfigurationError):
            BarcodeConstraints("____", min_gc=-0.1, max_gc=0.3)
        with self.assertRaises(ConfigurationError):
            BarcodeConstraints("____", min_gc=0.1, max_gc=1.5)

    def test_pattern_is_upper_cased(self):
        self.assertEqual(BarcodeConstraints("ac__").pattern, "AC__")

    def test_count_valid(self):
        # 256 barcodes minus the 16 without and the 16 with only G/C
        self.assertEqual(BarcodeConstraints("____", 0.25, 0.75).count_valid(), 224)
        self.assertEqual(BarcodeConstraints("G___", 0.0, 0.0).count_valid(), 0)
        self.assertEqual(BarcodeConstraints("G___", 0.0, 0.0, gc_scope='free').count_valid(), 8)

    def test_count_valid_matches_enumeration(self):
        constraints = BarcodeConstraints("A_G__", 0.4, 0.6)
        valid = [''.join(p) for p in product('ACGT', repeat=5) if constraints.is_valid(''.join(p))]
        self.assertEqual(constraints.count_valid(), len(valid))

    def test_free_scope(self):
        constraints = BarcodeConstraints("GGGG____", 0.0, 0.0, gc_scope='free')
        self.assertTrue(constraints.gc_ok("GGGGATTA"))
        self.assertFalse(constraints.gc_ok("GGGGATCA"))
        self.assertTrue(BarcodeConstraints("GGGG", 0.0, 0.0, gc_scope='free').gc_ok("GGGG"))


class TestCandidatePoolBuilder(unittest.TestCase):

    def test_pattern_and_gc_respected(self):
        pattern = "AC____G_"
        pool = build_candidate_pool(pattern, 0.25, 0.75, 30, seed=1)

        self.assertEqual(len(pool), 30)
        self.assertEqual(len(set(pool)), 30)
        for barcode in pool:
            self.assertEqual(len(barcode), len(pattern))
            for p, b in zip(pattern, barcode):
                if p != '_':
                    self.assertEqual(p, b)
            self.assertGreaterEqual(gc_content(barcode), 0.25)
            self.assertLessEqual(gc_content(barcode), 0.75)

    def test_reproducible_with_seed(self):
        self.assertEqual(build_candidate_pool("______", 0.3, 0.7, 10, seed=42),
                         build_candidate_pool("______", 0.3, 0.7, 10, seed=42))

    def test_free_gc_scope(self):
        pool = build_candidate_pool("GGGG____", 0.0, 0.0, 10, gc_scope='free', seed=2)
        for barcode in pool:
            self.assertTrue(set(barcode[4:]).issubset({'A', 'T'}))

    def test_invalid_requests(self):
        with self.assertRaises(ConfigurationError):
            build_candidate_pool("ACXT", 0.4, 0.6, 10)
        with self.assertRaises(ConfigurationError):
            build_candidate_pool("____", 0.4, 0.6, 0)

    def test_more_than_possible(self):
        with self.assertRaises(GenerationExhaustion) as ctx:
            build_candidate_pool("__", 0.0, 1.0, 17)
        self.assertEqual(ctx.exception.requested, 17)
        self.assertEqual(ctx.exception.shortfall, 17)

    def test_attempt_budget_exhausted(self):
        # only about a third of all 6-mers have exactly 50% GC
        with self.assertRaises(GenerationExhaustion) as ctx:
            build_candidate_pool("______", 0.5, 0.5, 100, max_attempts_per_candidate=1, seed=3)
        error = ctx.exception
        self.assertLess(error.generated, 100)
        self.assertEqual(error.shortfall, 100 - error.generated)

    def test_code_seeding_distance(self):
        pool = build_candidate_pool("AC________", 0.0, 1.0, 20, use_code_seeding=True, seed=4)
        self.assertEqual(len(pool), 20)
        hamming = HammingDistance()
        for a, b in combinations(pool, 2):
            self.assertGreaterEqual(hamming.distance(a, b), 3)
        for barcode in pool:
            self.assertTrue(barcode.startswith("AC"))

    def test_code_seeding_too_few_codewords(self):
        with self.assertRaises(GenerationExhaustion):
            build_candidate_pool("AC__", 0.0, 1.0, 2, use_code_seeding=True)

    def test_cancellation(self):
        with self.assertRaises(CancellationSignal):
            build_candidate_pool("________", 0.0, 1.0, 50, progress=lambda pct, msg: pct < 50)


class TestQuaternaryHammingCode(unittest.TestCase):

    def test_dimensions(self):
        code = QuaternaryHammingCode(5)
        self.assertEqual(code.num_checks, 2)
        self.assertEqual(code.dimension, 3)
        self.assertEqual(code.size, 64)
        self.assertEqual(QuaternaryHammingCode(2).size, 1)

    def test_minimum_distance(self):
        code = QuaternaryHammingCode(6)
        syndrome = [1, 3, 2]
        words = [tuple(code.encode(list(m), syndrome)) for m in product(range(4), repeat=code.dimension)]
        self.assertEqual(len(set(words)), code.size)
        for a, b in combinations(words, 2):
            self.assertGreaterEqual(sum(1 for x, y in zip(a, b) if x != y), 3)


class TestCandidateFiles(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_read_text_file(self):
        candidates = self.path / "candidates.txt"
        candidates.write_text("# candidates\nacgt\n\nTTGA extra-field\nGGCC\n")
        self.assertEqual(read_barcodes(candidates), ["ACGT", "TTGA", "GGCC"])

    def test_unequal_lengths_rejected(self):
        candidates = self.path / "candidates.txt"
        candidates.write_text("ACGT\nACG\n")
        with self.assertRaisesRegex(ConfigurationError, "line 2"):
            read_barcodes(candidates)

    def test_invalid_characters_rejected(self):
        candidates = self.path / "candidates.txt"
        candidates.write_text("ACGT\nACGN\n")
        with self.assertRaises(ConfigurationError):
            read_barcodes(candidates)

    def test_empty_file_rejected(self):
        candidates = self.path / "candidates.txt"
        candidates.write_text("\n# nothing here\n")
        with self.assertRaises(ConfigurationError):
            read_barcodes(candidates)

    def test_read_fasta(self):
        candidates = self.path / "candidates.fasta"
        candidates.write_text(">bc1\nacgtac\n>bc2\nTTGACA\n")
        self.assertEqual(read_barcodes(candidates), ["ACGTAC", "TTGACA"])

    def test_fasta_unequal_lengths_rejected(self):
        candidates = self.path / "candidates.fasta"
        candidates.write_text(">a\nACGT\n>b\nACG\n")
        with self.assertRaisesRegex(ConfigurationError, "record b"):
            read_barcodes(candidates)

    def test_fasta_invalid_characters_rejected(self):
        candidates = self.path / "candidates.fa"
        candidates.write_text(">a\nACGT\n>c\nANNT\n")
        with self.assertRaisesRegex(ConfigurationError, "record c"):
            read_barcodes(candidates)

    def test_write_then_read(self):
        candidates = self.path / "out.txt"
        write_barcodes(candidates, ["ACGT", "TTTT"])
        self.assertEqual(read_barcodes(candidates), ["ACGT", "TTTT"])

    def test_normalize_candidates(self):
        self.assertEqual(normalize_candidates(["acgt", "ACGT", "TTTT"]), ("ACGT", "TTTT"))
        with self.assertRaises(ConfigurationError):
            normalize_candidates(["ACGT", "ACG"])
        with self.assertRaises(ConfigurationError):
            normalize_candidates([])


if __name__ == "__main__":
    unittest.main()
