"""
Compiled dynamic programming kernels.
"""
