import numpy as np
import pytest

from mmalign import Scoring, ScoreMatrix

NEG = -(1 << 60)

SCHEMES = {
    'default': (-5, -1, 2, -1),
    'free_open': (0, -1, 2, -1),
    'free_extend': (-4, 0, 3, -2),
    'steep': (-10, -3, 1, -1),
    'cheap_gaps': (-1, -1, 5, -4),
    'all_zero_gaps': (0, 0, 1, 0),
}


def gotoh(x: bytes, y: bytes, scoring: Scoring) -> int:
    """Full-matrix Gotoh recurrence, used as the ground truth for the linear-space aligner."""
    go, ge, w = scoring.gap_open, scoring.gap_extend, scoring.matrix
    m, n = len(x), len(y)
    H = [[NEG] * (n + 1) for _ in range(m + 1)]  # best, any state
    E = [[NEG] * (n + 1) for _ in range(m + 1)]  # ends in an insertion
    F = [[NEG] * (n + 1) for _ in range(m + 1)]  # ends in a deletion
    H[0][0] = 0
    for i in range(1, m + 1): H[i][0] = F[i][0] = go + ge * i
    for j in range(1, n + 1): H[0][j] = E[0][j] = go + ge * j
    for i in range(1, m + 1):
        for j in range(1, n + 1):
            E[i][j] = max(E[i][j - 1] + ge, H[i][j - 1] + go + ge)
            F[i][j] = max(F[i - 1][j] + ge, H[i - 1][j] + go + ge)
            H[i][j] = max(H[i - 1][j - 1] + int(w[x[i - 1], y[j - 1]]), E[i][j], F[i][j])
    return H[m][n]


def random_pairs(seed: int, n: int, alphabet: bytes = b'ACGT', max_len: int = 24):
    """Yields related sequence pairs: a random x and a mutated copy of it."""
    rng = np.random.default_rng(seed)
    symbols = np.frombuffer(alphabet, dtype=np.uint8)
    for _ in range(n):
        x = rng.choice(symbols, size=rng.integers(0, max_len + 1))
        y = list(x)
        for _ in range(rng.integers(0, 6)):
            op = rng.integers(0, 3)
            pos = int(rng.integers(0, len(y) + 1))
            if op == 0: y.insert(pos, rng.choice(symbols))
            elif y and op == 1: del y[min(pos, len(y) - 1)]
            elif y: y[min(pos, len(y) - 1)] = rng.choice(symbols)
        yield x.tobytes(), bytes(bytearray(int(c) for c in y))


@pytest.fixture
def oracle():
    return gotoh


@pytest.fixture
def scoring():
    return Scoring.from_scores(-5, -1, 2, -1)


@pytest.fixture(params=sorted(SCHEMES), ids=sorted(SCHEMES))
def any_scoring(request):
    return Scoring.from_scores(*SCHEMES[request.param])


@pytest.fixture
def blosum_scoring():
    return Scoring.from_matrix(-11, -1, ScoreMatrix.blosum62())
