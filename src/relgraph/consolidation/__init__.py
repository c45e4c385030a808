from .garbage import classify_garbage, is_garbage_name
from .engine import ConsolidationEngine, ConsolidationReport, GroupResult

__all__ = [
    "classify_garbage",
    "is_garbage_name",
    "ConsolidationEngine",
    "ConsolidationReport",
    "GroupResult",
]
