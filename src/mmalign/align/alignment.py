"""
Module for alignment results.
"""
from typing import Iterator, Optional

import numpy as np

from mmalign.core.operation import AlignmentOperation
from mmalign.core.seq import DTYPE, ENCODING
from mmalign.utils.resources import jit


# Classes --------------------------------------------------------------------------------------------------------------
class Cigar:
    """Builds CIGAR strings from alignment operations. x plays the reference, y the query."""
    _OP_BYTES_LOOKUP = [b'M', b'I', b'D', b'=', b'X']
    # AlignmentOperation -> index into _OP_BYTES_LOOKUP
    _COMPACT = np.array([0, 0, 2, 1, 255], dtype=np.uint8)
    _EXTENDED = np.array([3, 4, 2, 1, 255], dtype=np.uint8)

    @classmethod
    def make(cls, operations: np.ndarray, extended: bool = False) -> bytes:
        """
        Run-length encodes operations, using '='/'X' instead of 'M' if extended.

        Examples:
            >>> Cigar.make(np.array([0, 0, 2, 2, 1], dtype=np.uint8), extended=True)
            b'2=2D1X'
        """
        codes = (cls._EXTENDED if extended else cls._COMPACT)[operations]
        codes = codes[codes != 255]
        if len(codes) == 0: return b""
        counts, ops = _rle_kernel(codes)
        return b"".join([b"%d" % c + cls._OP_BYTES_LOOKUP[o] for c, o in zip(counts, ops)])


class AlignmentResult:
    """
    A global alignment of two byte sequences.

    Replaying ``operations`` from ``(x_start, y_start)`` consumes exactly
    ``x[x_start:x_end]`` and ``y[y_start:y_end]``.

    Attributes:
        operations (np.ndarray): Read-only uint8 array of AlignmentOperation codes.
        score (int): Optimal alignment score.
        x (np.ndarray): View of the first sequence.
        y (np.ndarray): View of the second sequence.
        x_start, y_start, x_end, y_end (int): Aligned ranges of x and y.
    """
    __slots__ = ('operations', 'score', 'x', 'y', 'x_start', 'y_start', 'x_end', 'y_end')

    def __init__(self, operations: np.ndarray, score: int, x: np.ndarray, y: np.ndarray, x_start: int = 0,
                 y_start: int = 0, x_end: Optional[int] = None, y_end: Optional[int] = None):
        self.operations = np.asarray(operations, dtype=np.uint8)
        self.operations.flags.writeable = False
        self.score = int(score)
        self.x = x
        self.y = y
        self.x_start = x_start
        self.y_start = y_start
        self.x_end = len(x) if x_end is None else x_end
        self.y_end = len(y) if y_end is None else y_end

    def __len__(self): return len(self.operations)
    def __iter__(self) -> Iterator[AlignmentOperation]:
        for op in self.operations: yield AlignmentOperation(int(op))

    def __repr__(self):
        return (f"AlignmentResult(score={self.score}, x=[{self.x_start}:{self.x_end}], "
                f"y=[{self.y_start}:{self.y_end}], cigar={self.cigar().decode('ascii')})")

    def __eq__(self, other):
        if isinstance(other, self.__class__):
            return (self.score == other.score and
                    np.array_equal(self.operations, other.operations) and
                    (self.x_start, self.x_end, self.y_start, self.y_end) ==
                    (other.x_start, other.x_end, other.y_start, other.y_end))
        return False

    @property
    def n_matches(self) -> int: return int(np.count_nonzero(self.operations == AlignmentOperation.MATCH))

    @property
    def length(self) -> int: return int(np.count_nonzero(self.operations != AlignmentOperation.NONE))

    def identity(self) -> float:
        return self.n_matches / self.length if self.length > 0 else 0.0

    def cigar(self, extended: bool = False) -> bytes: return Cigar.make(self.operations, extended)

    def as_strings(self, gap_char: str = '-') -> tuple[str, str]:
        """
        Renders the alignment as two gapped strings of equal length.

        The gap character must not be a symbol of either sequence, otherwise the
        strings are ambiguous.

        Args:
            gap_char: Single character placed where a sequence does not advance.

        Returns:
            The gapped x and y.

        Raises:
            ValueError: If gap_char is not a single character below U+0100.

        Examples:
            >>> from mmalign import Aligner, Scoring
            >>> aligner = Aligner(Scoring.from_scores(-5, -1, 2, -1))
            >>> aligner.global_(b'ATGATGATG', b'ATGAATG').as_strings('.')
            ('ATGATGATG', 'ATGA..ATG')
        """
        if len(gap_char) != 1 or ord(gap_char) > 255:
            raise ValueError(f'Gap placeholder must be a single byte-sized character, got {gap_char!r}')
        ops = self.operations[self.operations != AlignmentOperation.NONE]
        adv_x = ops != AlignmentOperation.INSERTION
        adv_y = ops != AlignmentOperation.DELETION
        out_x = np.full(len(ops), ord(gap_char), dtype=DTYPE)
        out_y = out_x.copy()
        out_x[adv_x] = self.x[self.x_start:self.x_start + np.count_nonzero(adv_x)]
        out_y[adv_y] = self.y[self.y_start:self.y_start + np.count_nonzero(adv_y)]
        return out_x.tobytes().decode(ENCODING), out_y.tobytes().decode(ENCODING)


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _rle_kernel(codes):
    n = len(codes)
    counts = np.empty(n, dtype=np.int32); ops = np.empty(n, dtype=np.uint8); idx = 0
    curr_op = codes[0]; curr_count = 1
    for i in range(1, n):
        op = codes[i]
        if op == curr_op: curr_count += 1
        else:
            counts[idx] = curr_count; ops[idx] = curr_op; idx += 1
            curr_op = op; curr_count = 1
    counts[idx] = curr_count; ops[idx] = curr_op; idx += 1
    return counts[:idx], ops[:idx]
