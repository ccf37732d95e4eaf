"""Survey row storage."""

from .store import Row, RowStore, UNKNOWN_LABEL, coerce_number

__all__ = ['Row', 'RowStore', 'UNKNOWN_LABEL', 'coerce_number']
