"""
record-spine -- a small object-relational mapping core.

Plain ``@dataclass`` records are mapped to tables by naming convention,
queried through a fluent :class:`~recordspine.core.db.DB` handle, and
materialized back into records, including one level of joined relations.
"""

__version__ = "0.1.0"

from recordspine.core import *  # noqa
from recordspine.core import __all__  # noqa
