"""Domain layer: entities, matching algorithms and the error taxonomy.

Nothing in this package performs I/O.
"""
