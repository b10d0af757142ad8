"""
Linear-space kernels for affine gap global alignment.

These implement the cost-only pass of Gotoh's three-state recurrence and the
two pieces Myers & Miller (1988) built on top of it: the midpoint search that
lets Hirschberg's divide-and-conquer respect affine gaps, and the closed-form
solution of a single-row sub-problem.

All kernels take sequences as uint8 arrays, a 256x256 substitution table and the
two gap scores, and are compiled with numba when it is available.

References:
    - Myers, E. W. & Miller, W. (1988) Optimal alignments in linear space. Bioinformatics 4: 11-17.
    - Hirschberg, D. S. (1975) A linear space algorithm for computing maximal common subsequences.
      Commun. ACM 18: 341-343.
    - Gotoh, O. (1982) An improved algorithm for matching biological sequences. J. Mol. Biol. 162: 705-708.
"""
import numpy as np

from mmalign.core.operation import AlignmentOperation
from mmalign.core.scoring import MIN_SCORE
from mmalign.utils.resources import jit


# Constants ------------------------------------------------------------------------------------------------------------
OP_DTYPE = np.uint8
_MATCH = int(AlignmentOperation.MATCH)
_SUBSTITUTION = int(AlignmentOperation.SUBSTITUTION)
_DELETION = int(AlignmentOperation.DELETION)
_INSERTION = int(AlignmentOperation.INSERTION)


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def cost_only(x, y, reverse, tx, matrix, go, ge):
    """
    Score-only Gotoh recurrence using two vectors of length len(y) + 1.

    Args:
        x: Sequence consumed row by row.
        y: Sequence consumed column by column.
        reverse: If True, both sequences are read from their ends, giving the mirrored sweep.
        tx: Gap-open score charged for a deletion run touching the start of the sweep
            (0 when the caller already opened that gap).
        matrix: 256x256 substitution table.
        go: Gap open score.
        ge: Gap extend score.

    Returns:
        (cc, dd): best scores over the whole prefix of x ending in any state, and ending
        in a deletion run, for each prefix length of y.
    """
    m = len(x)
    n = len(y)
    cc = np.empty(n + 1, dtype=np.int64)
    dd = np.empty(n + 1, dtype=np.int64)
    cc[0] = 0
    dd[0] = MIN_SCORE
    t = go
    for j in range(1, n + 1):
        t += ge
        cc[j] = t
        dd[j] = MIN_SCORE

    t = tx
    for i in range(1, m + 1):
        xi = x[m - i] if reverse else x[i - 1]
        s = cc[0]  # C(i-1, j-1)
        t += ge
        c = t  # C(i, j-1)
        cc[0] = c
        e = MIN_SCORE  # I(i, j-1)
        for j in range(1, n + 1):
            yj = y[n - j] if reverse else y[j - 1]
            e = max(e, c + go) + ge
            dd[j] = max(dd[j], cc[j] + go) + ge
            c = max(max(dd[j], e), s + matrix[xi, yj])
            s = cc[j]
            cc[j] = c

    dd[0] = cc[0]  # Otherwise deletions at either end would be free
    return cc, dd


@jit(nopython=True, cache=True, nogil=True)
def find_mid(x, y, tb, te, matrix, go, ge):
    """
    Finds where an optimal path crosses the middle row of x.

    The upper half is swept forwards and the lower half backwards. A path either
    crosses at column j in any state, or continues a single deletion run through
    the middle row, in which case both halves charged an opening and one is
    refunded.

    Returns:
        (imid, jmid, join_by_deletion). Ties keep the smallest column, and a crossing
        in any state wins over a deletion crossing of equal score.
    """
    m = len(x)
    n = len(y)
    imid = m // 2
    cc_upper, dd_upper = cost_only(x[:imid], y, False, tb, matrix, go, ge)
    cc_lower, dd_lower = cost_only(x[imid:], y, True, te, matrix, go, ge)

    best = MIN_SCORE
    jmid = 0
    join_by_deletion = False
    for j in range(n + 1):
        c = cc_upper[j] + cc_lower[n - j]
        if c > best:
            best = c
            jmid = j
            join_by_deletion = False
        d = dd_upper[j] + dd_lower[n - j] - go
        if d > best:
            best = d
            jmid = j
            join_by_deletion = True
    return imid, jmid, join_by_deletion


@jit(nopython=True, cache=True, nogil=True)
def _gap(k, go, ge):
    return go + ge * k if k > 0 else 0


@jit(nopython=True, cache=True, nogil=True)
def nw_onerow(x0, y, tb, te, matrix, go, ge):
    """
    Aligns a single symbol against a non-empty sequence in closed form.

    Either x0 is deleted and all of y inserted, or x0 is paired with one position
    of y and the rest of y is inserted around it.

    Returns:
        (operations, score). Ties keep the all-indel answer, then the leftmost pairing.
    """
    n = len(y)
    # Deletion of x0 merges with whichever boundary gap is cheaper to continue
    best = max(tb, te) + ge + _gap(n, go, ge)
    best_j = -1
    for j in range(n):
        score = _gap(j, go, ge) + int(matrix[x0, y[j]]) + _gap(n - 1 - j, go, ge)
        if score > best:
            best = score
            best_j = j

    if best_j < 0:
        ops = np.full(n + 1, _INSERTION, dtype=OP_DTYPE)
        if tb >= te: ops[0] = _DELETION
        else: ops[n] = _DELETION
    else:
        ops = np.full(n, _INSERTION, dtype=OP_DTYPE)
        ops[best_j] = _MATCH if x0 == y[best_j] else _SUBSTITUTION
    return ops, best
