"""
Linear-space global alignment with affine gaps (Myers & Miller, 1988).

The aligner splits x at its middle row, asks the midpoint kernel where an
optimal path crosses that row, and recurses on the two rectangles either side.
Terminal gap-open scores (``tb`` at the start, ``te`` at the end) travel with
each sub-problem so a deletion run cut by a split is charged exactly once.

Examples:
    >>> aligner = Aligner(Scoring.from_scores(-5, -1, 2, -1))
    >>> result = aligner.global_(b'ATGATGATG', b'ATGAATG')
    >>> result.as_strings('-')
    ('ATGATGATG', 'ATGA--ATG')
"""
from typing import Union, Final
from warnings import warn

import numpy as np

from mmalign import MMAlignWarning
from mmalign.align.alignment import AlignmentResult
from mmalign.core.operation import AlignmentOperation
from mmalign.core.scoring import Scoring
from mmalign.core.seq import SeqLike, as_seq
from mmalign.engines.linear import OP_DTYPE, cost_only, find_mid, nw_onerow
from mmalign.utils.resources import RESOURCES


# Warnings -------------------------------------------------------------------------------------------------------------
class ScoreOverflowWarning(MMAlignWarning): pass


# Constants ------------------------------------------------------------------------------------------------------------
PARALLEL_MIN_CELLS: Final = 1 << 20  # Smallest |x| * |y| worth splitting across threads
_DOUBLE_DELETION: Final = np.full(2, AlignmentOperation.DELETION, dtype=OP_DTYPE)
_DOUBLE_DELETION.flags.writeable = False


# Classes --------------------------------------------------------------------------------------------------------------
class Aligner:
    """
    Optimal global aligner using O(len(y)) working memory.

    Args:
        scoring: The affine gap scoring model, shared read-only by every sub-problem.
        parallel: If True, large alignments solve the two halves of the first split on
            the shared thread pool. Results are identical to the serial aligner.

    Examples:
        >>> aligner = Aligner(Scoring.from_scores(-5, -1, 2, -1))
        >>> aligner.score(b'ATGATGATG', b'ATGAATG')
        7
    """
    __slots__ = ('scoring', 'parallel', '_params')

    def __init__(self, scoring: Scoring, parallel: bool = False):
        if not isinstance(scoring, Scoring): raise TypeError(f'Expected Scoring, got {type(scoring).__name__}')
        self.scoring = scoring
        self.parallel = parallel
        self._params = (scoring.matrix, scoring.gap_open, scoring.gap_extend)

    def __repr__(self): return f"Aligner({self.scoring!r}, parallel={self.parallel})"

    def global_(self, x: SeqLike, y: SeqLike) -> AlignmentResult:
        """
        Aligns the entirety of x against the entirety of y.

        Args:
            x: First sequence; deletions consume its symbols.
            y: Second sequence; insertions consume its symbols.

        Returns:
            The optimal alignment. Empty inputs give an empty alignment scoring 0.
        """
        x, y = as_seq(x), as_seq(y)
        if len(x) + len(y) > self.scoring.max_safe_length:
            warn(f'Combined length {len(x) + len(y)} exceeds {self.scoring.max_safe_length}; '
                 f'scores may overflow', ScoreOverflowWarning)
        go = self.scoring.gap_open
        if self.parallel and len(x) * len(y) >= PARALLEL_MIN_CELLS: operations = self._compute_parallel(x, y, go, go)
        else: operations = self._compute_recursive(x, y, go, go)
        return AlignmentResult(operations, self._score(x, y), x, y, 0, 0, len(x), len(y))

    align = global_

    def score(self, x: SeqLike, y: SeqLike) -> int:
        """Optimal global alignment score, without traceback."""
        return self._score(as_seq(x), as_seq(y))

    def _score(self, x: np.ndarray, y: np.ndarray) -> int:
        cc, _ = cost_only(x, y, False, self.scoring.gap_open, *self._params)
        return int(cc[len(y)])

    def _split(self, x: np.ndarray, y: np.ndarray, tb: int, te: int) -> tuple:
        """Splits a sub-problem at its midpoint into sub-problems and fixed operations, left to right."""
        imid, jmid, join_by_deletion = find_mid(x, y, tb, te, *self._params)
        if join_by_deletion:
            # Rows imid - 1 and imid are both deleted; the run continues into each side for free
            return (x[:imid - 1], y[:jmid], tb, 0), _DOUBLE_DELETION, (x[imid + 1:], y[jmid:], 0, te)
        go = self.scoring.gap_open
        return (x[:imid], y[:jmid], tb, go), (x[imid:], y[jmid:], go, te)

    def _compute_recursive(self, x: np.ndarray, y: np.ndarray, tb: int, te: int) -> np.ndarray:
        m, n = len(x), len(y)
        if n == 0: return np.full(m, AlignmentOperation.DELETION, dtype=OP_DTYPE)
        if m == 0: return np.full(n, AlignmentOperation.INSERTION, dtype=OP_DTYPE)
        if m == 1: return nw_onerow(x[0], y, tb, te, *self._params)[0]
        return np.concatenate([
            self._compute_recursive(*part) if isinstance(part, tuple) else part
            for part in self._split(x, y, tb, te)
        ])

    def _compute_parallel(self, x: np.ndarray, y: np.ndarray, tb: int, te: int) -> np.ndarray:
        if len(x) < 2 or len(y) == 0: return self._compute_recursive(x, y, tb, te)
        first, *rest = self._split(x, y, tb, te)
        # Only this thread waits on the pool, so workers never block on each other
        futures = [RESOURCES.pool.submit(self._compute_recursive, *part) if isinstance(part, tuple) else part
                   for part in rest]
        head = self._compute_recursive(*first)
        return np.concatenate([head] + [part if isinstance(part, np.ndarray) else part.result() for part in futures])


# ``global`` is a keyword, so the operation can only be reached by name
setattr(Aligner, 'global', Aligner.global_)


# Functions ------------------------------------------------------------------------------------------------------------
def global_align(x: SeqLike, y: SeqLike, gap_open: int = -5, gap_extend: int = -1, match: int = 2, mismatch: int = -1,
          parallel: bool = False) -> AlignmentResult:
    """
    Globally aligns two sequences with constant match / mismatch scores.

    Examples:
        >>> global_align('ACGTGGTT', 'ACGTTT').as_strings()
        ('ACGTGGTT', 'ACGT--TT')
    """
    return Aligner(Scoring.from_scores(gap_open, gap_extend, match, mismatch), parallel=parallel).global_(x, y)
