"""
Shared utilities: resource management, optional JIT compilation and protocols.
"""
from mmalign.utils.resources import RESOURCES, Resources, jit
from mmalign.utils.protocols import MatchFunc

__all__ = ['RESOURCES', 'Resources', 'jit', 'MatchFunc']
