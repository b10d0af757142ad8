from typing import Protocol, runtime_checkable


@runtime_checkable
class MatchFunc(Protocol):
    """Protocol for substitution scorers: anything that scores a pair of byte symbols."""
    def score(self, a: int, b: int) -> int: ...
