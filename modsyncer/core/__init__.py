"""
Shared building blocks: constants, paths, errors, file and formatting helpers.
"""
