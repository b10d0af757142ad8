from enum import IntEnum


class AlignmentOperation(IntEnum):
    """
    Edit operations of a pairwise alignment between sequences x and y.

    Deletions consume a symbol of x only, insertions a symbol of y only, and
    matches / substitutions one symbol of each. NONE is a placeholder that is
    never emitted in a finished alignment.
    """
    MATCH = 0
    SUBSTITUTION = 1
    DELETION = 2
    INSERTION = 3
    NONE = 4

    @property
    def consumes_x(self) -> bool: return self in _CONSUMES_X

    @property
    def consumes_y(self) -> bool: return self in _CONSUMES_Y


_CONSUMES_X = frozenset({AlignmentOperation.MATCH, AlignmentOperation.SUBSTITUTION, AlignmentOperation.DELETION})
_CONSUMES_Y = frozenset({AlignmentOperation.MATCH, AlignmentOperation.SUBSTITUTION, AlignmentOperation.INSERTION})
