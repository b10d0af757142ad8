"""
Pairwise global alignment and alignment results.
"""
