"""
Recordkit - Schema-driven data access primitives.

- recordkit.core: entities, schema registry, text grammar, query model
"""

__version__ = "0.1.0"

from recordkit.core import *  # noqa
