"""
Module for coercing caller sequences into read-only byte views.
"""
from typing import Union, Final

import numpy as np


# Constants ------------------------------------------------------------------------------------------------------------
DTYPE: Final = np.uint8
ENCODING: Final = 'latin-1'
SeqLike = Union[bytes, bytearray, memoryview, str, np.ndarray]


# Functions ------------------------------------------------------------------------------------------------------------
def as_seq(seq: SeqLike) -> np.ndarray:
    """
    Returns a read-only uint8 view of a sequence.

    Bytes-like objects are wrapped without copying. Strings are encoded, so only
    code points below 256 are accepted.

    Args:
        seq: The sequence as bytes, bytearray, memoryview, str or a 1-D uint8 array.

    Returns:
        A read-only 1-D numpy array of dtype uint8.

    Raises:
        TypeError: If the sequence cannot be interpreted as bytes.

    Examples:
        >>> as_seq(b'ACGT')
        array([65, 67, 71, 84], dtype=uint8)
    """
    if isinstance(seq, np.ndarray):
        if seq.dtype != DTYPE or seq.ndim != 1:
            raise TypeError(f'Expected a 1-D {np.dtype(DTYPE)} array, got {seq.ndim}-D {seq.dtype}')
        view = seq.view()
    elif isinstance(seq, str):
        try: view = np.frombuffer(seq.encode(ENCODING), dtype=DTYPE)
        except UnicodeEncodeError as e: raise TypeError(f'Sequence contains non-byte characters: {e}') from e
    elif isinstance(seq, (bytes, bytearray, memoryview)):
        view = np.frombuffer(seq, dtype=DTYPE)
    else:
        raise TypeError(f'Cannot interpret {type(seq).__name__} as a byte sequence')
    view.flags.writeable = False
    return view


def decode(seq: np.ndarray) -> str:
    """Decodes a uint8 view back into a string, one character per byte."""
    return seq.tobytes().decode(ENCODING)
