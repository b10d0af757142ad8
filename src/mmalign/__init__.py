"""
Optimal global alignment of byte sequences with affine gaps in linear space.

Examples:
    >>> from mmalign import Aligner, Scoring
    >>> aligner = Aligner(Scoring.from_scores(gap_open=-5, gap_extend=-1, match_score=2, mismatch_score=-1))
    >>> aligner.global_(b'ATGATGATG', b'ATGAATG').score
    7
"""


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class MMAlignWarning(Warning): pass


# Public API -----------------------------------------------------------------------------------------------------------
from mmalign.core.operation import AlignmentOperation
from mmalign.core.scoring import InvalidScoring, MatchParams, ScoreMatrix, Scoring
from mmalign.align.alignment import AlignmentResult
from mmalign.align.pairwise import Aligner, ScoreOverflowWarning, global_align
from mmalign.utils.protocols import MatchFunc

__all__ = [
    'AlignmentOperation', 'AlignmentResult', 'Aligner', 'InvalidScoring', 'MatchFunc', 'MatchParams',
    'MMAlignWarning', 'ScoreMatrix', 'ScoreOverflowWarning', 'Scoring', 'global_align'
]
