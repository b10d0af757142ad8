"""
Core data model: sequences and the affine gap scoring model.
"""
