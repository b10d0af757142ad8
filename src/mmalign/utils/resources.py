"""
Shared worker threads and optional compilation for the alignment kernels.
"""
from functools import cached_property, lru_cache
from importlib import import_module
from concurrent.futures import ThreadPoolExecutor
import atexit
import os
from typing import Callable


# Classes --------------------------------------------------------------------------------------------------------------
class Resources:
    """
    Process-wide state shared by every aligner.

    The thread pool is created on first use. Compiled kernels release the GIL, so
    sub-problems submitted to it run on separate cores.
    """
    def __init__(self) -> None:
        atexit.register(self.shutdown)

    @cached_property
    def available_cpus(self) -> int:
        """CPUs this process may run on, falling back to the machine count."""
        try: return os.process_cpu_count() or 1
        except AttributeError: return os.cpu_count() or 1

    @cached_property
    def pool(self) -> ThreadPoolExecutor:
        """Thread pool for independent alignment sub-problems."""
        return ThreadPoolExecutor(self.available_cpus, thread_name_prefix='mmalign')

    def shutdown(self):
        if 'pool' in self.__dict__: self.__dict__.pop('pool').shutdown(wait=False, cancel_futures=True)

    @staticmethod
    @lru_cache(maxsize=None)
    def has_module(module_name: str) -> bool:
        """Whether an optional dependency can be imported."""
        try:
            import_module(module_name)
            return True
        except ImportError: return False


# Decorators -----------------------------------------------------------------------------------------------------------
def jit(signature_or_function=None, **options) -> Callable:
    """
    Compiles a kernel with ``numba.jit`` when numba is installed.

    Without numba the kernel is returned unchanged and runs as plain Python over
    the same numpy arrays, so results do not depend on the backend.

    Examples:
        >>> @jit(nopython=True, nogil=True)
        ... def gap(k, go, ge): return go + ge * k if k > 0 else 0
        >>> gap(3, -5, -1)
        -8
    """
    if not RESOURCES.has_module('numba'):
        if callable(signature_or_function): return signature_or_function
        return lambda func: func
    from numba import jit as numba_jit
    if callable(signature_or_function): return numba_jit(signature_or_function)
    return numba_jit(signature_or_function, **options)


# Constants ------------------------------------------------------------------------------------------------------------
RESOURCES = Resources()
