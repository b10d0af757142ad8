"""
Affine gap scoring model shared by every stage of the aligner.

A gap (a maximal run of deletions or of insertions) of length ``k >= 1`` scores
``gap_open + gap_extend * k``. Substitutions are scored by a match function that
is evaluated once per symbol pair into a 256x256 lookup table, so the kernels
never call back into Python.
"""
from typing import Union, Callable, Iterable, Final, Optional

import numpy as np

from mmalign.core.operation import AlignmentOperation
from mmalign.core.seq import SeqLike, as_seq
from mmalign.utils.protocols import MatchFunc


# Exceptions -----------------------------------------------------------------------------------------------------------
class InvalidScoring(ValueError):
    """Raised when scoring parameters would reward gaps or mismatches, or cannot be tabulated."""


# Constants ------------------------------------------------------------------------------------------------------------
N_SYMBOLS: Final = 256
MIN_SCORE: Final = int(np.iinfo(np.int64).min // 2)  # Sentinel for unreachable DP states
_SAFE_MAGNITUDE: Final = 1 << 61


# Classes --------------------------------------------------------------------------------------------------------------
class MatchParams:
    """
    Constant match / mismatch scorer.

    Examples:
        >>> MatchParams(2, -1).score(65, 65)
        2
    """
    __slots__ = ('match_score', 'mismatch_score')

    def __init__(self, match_score: int, mismatch_score: int):
        if match_score < 0: raise InvalidScoring(f"match_score can't be negative ({match_score})")
        if mismatch_score > 0: raise InvalidScoring(f"mismatch_score can't be positive ({mismatch_score})")
        self.match_score = int(match_score)
        self.mismatch_score = int(mismatch_score)

    def __repr__(self): return f"MatchParams(match={self.match_score}, mismatch={self.mismatch_score})"
    def score(self, a: int, b: int) -> int: return self.match_score if a == b else self.mismatch_score

    def table(self) -> np.ndarray:
        """Returns the full 256x256 substitution table."""
        data = np.full((N_SYMBOLS, N_SYMBOLS), self.mismatch_score, dtype=ScoreMatrix.DTYPE)
        np.fill_diagonal(data, self.match_score)
        return data


class ScoreMatrix:
    """
    Byte-indexed substitution matrix covering the full uint8 range.

    Attributes:
        _data (np.ndarray): The read-only 256x256 table.

    Examples:
        >>> m = ScoreMatrix.build(b'ACGT', match=2, mismatch=-2)
        >>> m.score(ord('A'), ord('A'))
        2
    """
    DTYPE: Final = np.int32
    __slots__ = ('_data',)

    def __init__(self, data: Union[np.ndarray, Iterable]):
        data = np.asarray(data)
        if data.shape != (N_SYMBOLS, N_SYMBOLS):
            raise InvalidScoring(f'Substitution table must be {N_SYMBOLS}x{N_SYMBOLS}, got {data.shape}')
        self._data = _as_table(data)
        self._data.flags.writeable = False

    def __getitem__(self, item): return self._data[item]
    def __array__(self, dtype=None, copy=None): return self._data.astype(dtype, copy=False) if dtype else self._data
    def __repr__(self): return f"ScoreMatrix{self._data.shape}"
    @property
    def shape(self): return self._data.shape
    def score(self, a: int, b: int) -> int: return int(self._data[a, b])

    @classmethod
    def from_symbols(cls, symbols: bytes, data: Union[np.ndarray, Iterable], fill: int = None,
                     case_sensitive: bool = False) -> 'ScoreMatrix':
        """
        Places a square matrix over a subset of byte symbols.

        Args:
            symbols: The symbols labelling the rows and columns of `data`, in order.
            data: A len(symbols) x len(symbols) matrix.
            fill: Score for any pair involving a symbol outside `symbols`. Defaults to the matrix minimum.
            case_sensitive: If False, lower-case symbols score like their upper-case counterparts.

        Returns:
            A ScoreMatrix over all 256 byte values.
        """
        data = np.asarray(data)
        n = len(symbols)
        if data.shape != (n, n): raise InvalidScoring(f'Expected a {n}x{n} matrix for {n} symbols, got {data.shape}')
        if len(set(symbols)) != n: raise InvalidScoring('Matrix symbols contain duplicates')
        if fill is None: fill = int(data.min()) if n else 0
        table = np.full((N_SYMBOLS, N_SYMBOLS), fill, dtype=np.int64)
        idx = np.frombuffer(symbols, dtype=np.uint8)
        table[np.ix_(idx, idx)] = data
        if not case_sensitive:
            for alt in {symbols.lower(), symbols.upper()} - {symbols}:
                alt_idx = np.frombuffer(alt, dtype=np.uint8)
                for rows in (idx, alt_idx):
                    for cols in (idx, alt_idx): table[np.ix_(rows, cols)] = data
        return cls(table)

    @classmethod
    def build(cls, symbols: bytes = None, match: int = 1, mismatch: int = -1) -> 'ScoreMatrix':
        """Builds a simple match/mismatch matrix, over every byte if no symbols are given."""
        if symbols is None: return cls(MatchParams(match, mismatch).table())
        data = np.full((len(symbols), len(symbols)), mismatch, dtype=np.int64)
        np.fill_diagonal(data, match)
        return cls.from_symbols(symbols, data, fill=mismatch)

    @classmethod
    def blosum62(cls) -> 'ScoreMatrix':
        """Returns the BLOSUM62 matrix; pairs involving non-amino-acid symbols score -4."""
        return cls.from_symbols(b'ARNDCQEGHILKMFPSTWYV', np.reshape([
              4, -1, -2, -2,  0, -1, -1,  0, -2, -1, -1, -1, -1, -2, -1,  1,  0, -3, -2,  0,
             -1,  5,  0, -2, -3,  1,  0, -2,  0, -3, -2,  2, -1, -3, -2, -1, -1, -3, -2, -3,
             -2,  0,  6,  1, -3,  0,  0,  0,  1, -3, -3,  0, -2, -3, -2,  1,  0, -4, -2, -3,
             -2, -2,  1,  6, -3,  0,  2, -1, -1, -3, -4, -1, -3, -3, -1,  0, -1, -4, -3, -3,
              0, -3, -3, -3,  9, -3, -4, -3, -3, -1, -1, -3, -1, -2, -3, -1, -1, -2, -2, -1,
             -1,  1,  0,  0, -3,  5,  2, -2,  0, -3, -2,  1,  0, -3, -1,  0, -1, -2, -1, -2,
             -1,  0,  0,  2, -4,  2,  5, -2,  0, -3, -3,  1, -2, -3, -1,  0, -1, -3, -2, -2,
              0, -2,  0, -1, -3, -2, -2,  6, -2, -4, -4, -2, -3, -3, -2,  0, -2, -2, -3, -3,
             -2,  0,  1, -1, -3,  0,  0, -2,  8, -3, -3, -1, -2, -1, -2, -1, -2, -2,  2, -3,
             -1, -3, -3, -3, -1, -3, -3, -4, -3,  4,  2, -3,  1,  0, -3, -2, -1, -3, -1,  3,
             -1, -2, -3, -4, -1, -2, -3, -4, -3,  2,  4, -2,  2,  0, -3, -2, -1, -2, -1,  1,
             -1,  2,  0, -1, -3,  1,  1, -2, -1, -3, -2,  5, -1, -3, -1,  0, -1, -3, -2, -2,
             -1, -1, -2, -3, -1,  0, -2, -3, -2,  1,  2, -1,  5,  0, -2, -1, -1, -1, -1,  1,
             -2, -3, -3, -3, -2, -3, -3, -3, -1,  0,  0, -3,  0,  6, -4, -2, -2,  1,  3, -1,
             -1, -2, -2, -1, -3, -1, -1, -2, -2, -3, -3, -1, -2, -4,  7, -1, -1, -4, -3, -2,
              1, -1,  1,  0, -1,  0,  0,  0, -1, -2, -2,  0, -1, -2, -1,  4,  1, -3, -2, -2,
              0, -1,  0, -1, -1, -1, -1, -2, -2, -1, -1, -1, -1, -2, -1,  1,  5, -2, -2,  0,
             -3, -3, -4, -4, -2, -2, -3, -2, -2, -3, -2, -3, -1,  1, -4, -3, -2, 11,  2, -3,
             -2, -2, -2, -3, -2, -1, -2, -3,  2, -1, -1, -2, -1,  3, -3, -2, -2,  2,  7, -1,
              0, -3, -3, -3, -1, -2, -2, -3, -3,  3,  1, -2,  1, -1, -2, -2,  0, -3, -1,  4,
        ], (20, 20)), fill=-4)


class Scoring:
    """
    Affine gap penalties plus a substitution scorer.

    Instances are immutable in practice and shared read-only by every recursive
    sub-problem of an alignment.

    Attributes:
        gap_open (int): Score added once per gap, <= 0.
        gap_extend (int): Score added per gapped symbol, <= 0.
        match_fn: The substitution scorer this model was built from.
        match_scores (tuple[int, int] | None): (match, mismatch) when built from flat scores.

    Examples:
        >>> scoring = Scoring.from_scores(-5, -1, 2, -1)
        >>> scoring.gap(3)
        -8
    """
    __slots__ = ('gap_open', 'gap_extend', 'match_fn', 'match_scores', '_matrix')

    def __init__(self, gap_open: int, gap_extend: int, match_fn: Union[MatchFunc, Callable[[int, int], int]]):
        if gap_open > 0: raise InvalidScoring(f"gap_open can't be positive ({gap_open})")
        if gap_extend > 0: raise InvalidScoring(f"gap_extend can't be positive ({gap_extend})")
        self.gap_open = int(gap_open)
        self.gap_extend = int(gap_extend)
        self.match_fn = match_fn
        self.match_scores: Optional[tuple[int, int]] = None
        self._matrix = _tabulate(match_fn)

    @classmethod
    def new(cls, gap_open: int, gap_extend: int, match_fn: Union[MatchFunc, Callable[[int, int], int]]) -> 'Scoring':
        return cls(gap_open, gap_extend, match_fn)

    @classmethod
    def from_scores(cls, gap_open: int, gap_extend: int, match_score: int, mismatch_score: int) -> 'Scoring':
        """Creates a scoring model with constant match and mismatch scores."""
        scoring = cls(gap_open, gap_extend, MatchParams(match_score, mismatch_score))
        scoring.match_scores = (int(match_score), int(mismatch_score))
        return scoring

    @classmethod
    def from_matrix(cls, gap_open: int, gap_extend: int, matrix: ScoreMatrix = None) -> 'Scoring':
        """Creates a scoring model from a substitution matrix (BLOSUM62 by default)."""
        return cls(gap_open, gap_extend, ScoreMatrix.blosum62() if matrix is None else matrix)

    def __repr__(self):
        return f"Scoring(gap_open={self.gap_open}, gap_extend={self.gap_extend}, match_fn={self.match_fn!r})"

    @property
    def matrix(self) -> np.ndarray:
        """The read-only 256x256 int32 substitution table used by the kernels."""
        return self._matrix

    @property
    def max_safe_length(self) -> int:
        """
        Largest combined length ``|x| + |y|`` whose scores are guaranteed to stay clear
        of the int64 sentinel used for unreachable states.
        """
        per_column = max(1, int(np.abs(self._matrix).max()), abs(self.gap_open) + abs(self.gap_extend))
        return _SAFE_MAGNITUDE // per_column

    def score(self, a: int, b: int) -> int:
        """Substitution score of two byte symbols."""
        return int(self._matrix[a, b])

    def score_with_operation(self, a: int, b: int) -> tuple[int, AlignmentOperation]:
        """Substitution score and whether the pair counts as a match or a substitution."""
        return self.score(a, b), AlignmentOperation.MATCH if a == b else AlignmentOperation.SUBSTITUTION

    def gap(self, k: int) -> int:
        """Score of a single gap of length k (zero for an empty gap)."""
        return self.gap_open + self.gap_extend * k if k > 0 else 0

    def rescore(self, x: SeqLike, y: SeqLike, operations: Iterable[int]) -> int:
        """
        Recomputes the score of an alignment from its operations.

        Every maximal run of deletions and every maximal run of insertions is charged
        one affine gap; matches and substitutions are charged their substitution score.

        Args:
            x: The first sequence.
            y: The second sequence.
            operations: The alignment operations, in order.

        Returns:
            The total score.

        Raises:
            ValueError: If the operations do not consume exactly x and y.
        """
        x, y = as_seq(x), as_seq(y)
        i = j = total = 0
        prev = AlignmentOperation.NONE
        for op in operations:
            op = AlignmentOperation(int(op))
            if op == AlignmentOperation.NONE: continue
            if op.consumes_x and i >= len(x): raise ValueError(f'Operations overrun x (length {len(x)})')
            if op.consumes_y and j >= len(y): raise ValueError(f'Operations overrun y (length {len(y)})')
            if op == AlignmentOperation.DELETION:
                total += self.gap_extend + (0 if prev == op else self.gap_open)
                i += 1
            elif op == AlignmentOperation.INSERTION:
                total += self.gap_extend + (0 if prev == op else self.gap_open)
                j += 1
            else:
                total += int(self._matrix[x[i], y[j]])
                i += 1
                j += 1
            prev = op
        if i != len(x) or j != len(y):
            raise ValueError(f'Operations consume {i}/{len(x)} symbols of x and {j}/{len(y)} of y')
        return total


# Functions ------------------------------------------------------------------------------------------------------------
def _as_table(values: np.ndarray) -> np.ndarray:
    if values.dtype.kind not in 'iub': raise InvalidScoring(f'Substitution scores must be integers, got {values.dtype}')
    info = np.iinfo(ScoreMatrix.DTYPE)
    if values.size and (values.min() < info.min or values.max() > info.max):
        raise InvalidScoring(f'Substitution scores must fit in {np.dtype(ScoreMatrix.DTYPE)}')
    return np.ascontiguousarray(values, dtype=ScoreMatrix.DTYPE)


def _tabulate(match_fn) -> np.ndarray:
    """Evaluates a match function over every pair of byte symbols."""
    if isinstance(match_fn, ScoreMatrix): return np.asarray(match_fn)
    if isinstance(match_fn, MatchParams): table = match_fn.table()
    else:
        if isinstance(match_fn, MatchFunc): func = match_fn.score
        elif callable(match_fn): func = match_fn
        else: raise InvalidScoring(f'match_fn must be callable or implement score(a, b), got {type(match_fn).__name__}')
        symbols = range(N_SYMBOLS)
        table = _as_table(np.array([[func(a, b) for b in symbols] for a in symbols]))
    table.flags.writeable = False
    return table
