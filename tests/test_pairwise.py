import importlib
import types

import numpy as np
import pytest

from conftest import SCHEMES, gotoh, random_pairs
import mmalign
from mmalign import AlignmentOperation, Aligner, ScoreOverflowWarning, Scoring, global_align
from mmalign.align import pairwise

D, I, M, X = (AlignmentOperation.DELETION, AlignmentOperation.INSERTION, AlignmentOperation.MATCH,
              AlignmentOperation.SUBSTITUTION)


def runs(operations, op):
    """Lengths of the maximal runs of one operation."""
    lengths, current = [], 0
    for o in list(operations) + [AlignmentOperation.NONE]:
        if o == op: current += 1
        elif current:
            lengths.append(current)
            current = 0
    return lengths


class TestAlignerBasics:
    def test_concrete_example(self, scoring):
        result = Aligner(scoring).global_(b'ATGATGATG', b'ATGAATG')
        assert result.score == 7
        assert result.score == gotoh(b'ATGATGATG', b'ATGAATG', scoring)
        assert result.as_strings('-') == ('ATGATGATG', 'ATGA--ATG')

    def test_global_keyword_alias(self, scoring):
        aligner = Aligner(scoring)
        assert getattr(aligner, 'global')(b'ACGT', b'AGT') == aligner.global_(b'ACGT', b'AGT')
        assert aligner.align(b'ACGT', b'AGT') == aligner.global_(b'ACGT', b'AGT')

    def test_unequal_lengths_against_oracle(self):
        scoring = Scoring.from_scores(0, -1, 2, -1)
        x, y = b'AAAAAAAGGGTTTCCCCCCCCCC', b'AAAAGGGTTT'
        result = Aligner(scoring).global_(x, y)
        assert result.score == gotoh(x, y, scoring)
        assert scoring.rescore(x, y, result.operations) == result.score

    def test_empty_vs_empty(self, scoring):
        result = Aligner(scoring).global_(b'', b'')
        assert len(result) == 0
        assert result.score == 0
        assert result.as_strings() == ('', '')

    @pytest.mark.parametrize('k', [1, 2, 7])
    def test_empty_vs_nonempty(self, scoring, k):
        aligner = Aligner(scoring)
        result = aligner.global_(b'', b'G' * k)
        assert result.score == scoring.gap_open + scoring.gap_extend * k
        assert list(result) == [I] * k
        result = aligner.global_(b'G' * k, b'')
        assert result.score == scoring.gap_open + scoring.gap_extend * k
        assert list(result) == [D] * k

    def test_single_symbols(self, any_scoring):
        aligner = Aligner(any_scoring)
        result = aligner.global_(b'A', b'A')
        assert list(result) == [M]
        assert result.score == any_scoring.score(ord('A'), ord('A'))

    def test_single_mismatch(self, scoring):
        result = Aligner(scoring).global_(b'A', b'T')
        assert list(result) == [X]
        assert result.score == -1

    @pytest.mark.parametrize('scheme', ['default', 'free_open', 'steep', 'cheap_gaps', 'all_zero_gaps'])
    def test_self_alignment(self, scheme):
        scoring = Scoring.from_scores(*SCHEMES[scheme])
        match = scoring.match_scores[0]
        for x, _ in random_pairs(5, 10):
            result = Aligner(scoring).global_(x, x)
            assert result.score == len(x) * match
            assert list(result) == [M] * len(x)

    def test_accepts_str_and_arrays(self, scoring):
        aligner = Aligner(scoring)
        expected = aligner.global_(b'GATTACA', b'GCATGCU')
        assert aligner.global_('GATTACA', 'GCATGCU') == expected
        assert aligner.global_(bytearray(b'GATTACA'), memoryview(b'GCATGCU')) == expected
        assert aligner.global_(np.frombuffer(b'GATTACA', dtype=np.uint8), b'GCATGCU') == expected

    def test_rejects_non_sequences(self, scoring):
        with pytest.raises(TypeError):
            Aligner(scoring).global_(123, b'A')
        with pytest.raises(TypeError):
            Aligner(scoring).global_(np.zeros(3, dtype=np.int64), b'A')
        with pytest.raises(TypeError):
            Aligner('not scoring')

    def test_does_not_mutate_inputs(self, scoring):
        x = bytearray(b'ACGTACGT')
        result = Aligner(scoring).global_(x, b'ACGACGT')
        assert x == bytearray(b'ACGTACGT')
        assert not result.x.flags.writeable

    def test_arbitrary_bytes(self, scoring):
        x, y = bytes(range(0, 256, 3)), bytes(range(1, 256, 4))
        result = Aligner(scoring).global_(x, y)
        assert result.score == gotoh(x, y, scoring)
        # Byte 2 occurs in neither sequence
        gx, gy = result.as_strings('\x02')
        assert gx.replace('\x02', '').encode('latin-1') == x
        assert gy.replace('\x02', '').encode('latin-1') == y

    def test_score_only(self, scoring):
        aligner = Aligner(scoring)
        assert aligner.score(b'ATGATGATG', b'ATGAATG') == 7

    def test_global_align_helper(self):
        result = global_align('ACGTGGTT', 'ACGTTT')
        assert result.as_strings() == ('ACGTGGTT', 'ACGT--TT')
        assert result.score == 5

    def test_subpackage_not_shadowed(self):
        assert isinstance(mmalign.align, types.ModuleType)
        assert importlib.import_module('mmalign.align.pairwise') is pairwise
        assert mmalign.global_align is pairwise.global_align


class TestAgainstOracle:
    def test_random_dna(self, any_scoring):
        aligner = Aligner(any_scoring)
        for x, y in random_pairs(11, 40):
            result = aligner.global_(x, y)
            assert result.score == gotoh(x, y, any_scoring)
            assert any_scoring.rescore(x, y, result.operations) == result.score

    def test_unrelated_sequences(self, any_scoring):
        rng = np.random.default_rng(12)
        aligner = Aligner(any_scoring)
        for _ in range(25):
            x = rng.choice(list(b'ACGT'), size=rng.integers(0, 20)).astype(np.uint8).tobytes()
            y = rng.choice(list(b'ACGT'), size=rng.integers(0, 20)).astype(np.uint8).tobytes()
            result = aligner.global_(x, y)
            assert result.score == gotoh(x, y, any_scoring)
            assert any_scoring.rescore(x, y, result.operations) == result.score

    def test_protein(self, blosum_scoring):
        aligner = Aligner(blosum_scoring)
        for x, y in random_pairs(13, 20, alphabet=b'ARNDCQEGHILKMFPSTWYV', max_len=30):
            result = aligner.global_(x, y)
            assert result.score == gotoh(x, y, blosum_scoring)
            assert blosum_scoring.rescore(x, y, result.operations) == result.score

    def test_custom_match_fn(self):
        scoring = Scoring(-3, -1, lambda a, b: 5 if a == b else (-1 if a + b == ord('A') + ord('G') else -4))
        aligner = Aligner(scoring)
        for x, y in random_pairs(14, 20):
            result = aligner.global_(x, y)
            assert result.score == gotoh(x, y, scoring)
            assert scoring.rescore(x, y, result.operations) == result.score

    def test_strings_reproduce_inputs(self, any_scoring):
        aligner = Aligner(any_scoring)
        for x, y in random_pairs(15, 20):
            gx, gy = aligner.global_(x, y).as_strings('-')
            assert len(gx) == len(gy)
            assert gx.replace('-', '') == x.decode()
            assert gy.replace('-', '') == y.decode()
            assert not any(a == b == '-' for a, b in zip(gx, gy))


class TestDeletionJoin:
    def test_two_deletions_at_split(self, scoring):
        result = Aligner(scoring).global_(b'ACGWWTGCA', b'ACGTGCA')
        assert result.cigar() == b'3M2D4M'
        assert result.score == 14 - 7 == gotoh(b'ACGWWTGCA', b'ACGTGCA', scoring)

    def test_single_deletion_at_split(self, scoring):
        result = Aligner(scoring).global_(b'ACGWTGCA', b'ACGTGCA')
        assert result.cigar() == b'3M1D4M'
        assert result.score == 14 - 6

    @pytest.mark.parametrize('k', [2, 3, 10, 17])
    def test_long_run_is_one_gap(self, scoring, k):
        x, y = b'ACGT' + b'W' * k + b'GCAT', b'ACGTGCAT'
        result = Aligner(scoring).global_(x, y)
        assert runs(result, D) == [k]
        assert result.score == 16 + scoring.gap(k) == gotoh(x, y, scoring)
        # And the mirrored problem produces one insertion run
        result = Aligner(scoring).global_(y, x)
        assert runs(result, I) == [k]
        assert result.cigar() == b'4M%dI4M' % k

    @pytest.mark.parametrize('offset', range(0, 9))
    def test_run_positions(self, offset):
        # Slide a deletion run of length 2 across every row, including the split rows
        scoring = Scoring.from_scores(-7, -1, 3, -2)
        y = b'ACGTTGCAGT'
        x = y[:offset] + b'WW' + y[offset:]
        result = Aligner(scoring).global_(x, y)
        assert result.score == gotoh(x, y, scoring) == 30 + scoring.gap(2)
        assert scoring.rescore(x, y, result.operations) == result.score

    def test_free_open_runs(self):
        scoring = Scoring.from_scores(0, -1, 2, -1)
        for x, y in random_pairs(16, 30):
            result = Aligner(scoring).global_(x + b'TTTT' + x, y + y)
            assert result.score == gotoh(x + b'TTTT' + x, y + y, scoring)
            assert scoring.rescore(x + b'TTTT' + x, y + y, result.operations) == result.score

    def test_open_gap_heavy(self):
        # An expensive open favours merging deletions across the split
        scoring = Scoring.from_scores(-20, -1, 2, -1)
        for x, y in random_pairs(17, 30):
            result = Aligner(scoring).global_(x, y)
            assert result.score == gotoh(x, y, scoring)
            assert scoring.rescore(x, y, result.operations) == result.score


class TestParallel:
    def test_matches_serial(self, scoring, monkeypatch):
        monkeypatch.setattr(pairwise, 'PARALLEL_MIN_CELLS', 1)
        serial, parallel = Aligner(scoring), Aligner(scoring, parallel=True)
        for x, y in random_pairs(21, 20):
            assert parallel.global_(x, y) == serial.global_(x, y)

    def test_deletion_join_at_top(self, scoring, monkeypatch):
        monkeypatch.setattr(pairwise, 'PARALLEL_MIN_CELLS', 1)
        result = Aligner(scoring, parallel=True).global_(b'ACGWWTGCA', b'ACGTGCA')
        assert result.cigar() == b'3M2D4M'


class TestOverflow:
    def test_warns_past_safe_length(self):
        scoring = Scoring.from_scores(-(1 << 59), -(1 << 59), 1, -1)
        assert scoring.max_safe_length == 2
        with pytest.warns(ScoreOverflowWarning, match='overflow'):
            Aligner(scoring).global_(b'AC', b'A')
