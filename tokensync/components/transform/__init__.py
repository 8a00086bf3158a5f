"""
Transform component - Split and consolidate design-token documents.
"""

from ._impl import assemble_document, identify_sets, is_pre_decomposed, plan_split
from .component import (
    CONSOLIDATE_OPERATION,
    SPLIT_OPERATION,
    read_source_document,
    run_consolidate,
    run_split,
)
from .models import (
    ConsolidateInput,
    ConsolidateLayout,
    ConsolidateOutput,
    SplitInput,
    SplitMode,
    SplitOutput,
    SplitPlan,
)

__all__ = [
    # Entry points
    "run_split",
    "run_consolidate",
    "read_source_document",
    "SPLIT_OPERATION",
    "CONSOLIDATE_OPERATION",
    # Functional core
    "plan_split",
    "identify_sets",
    "assemble_document",
    "is_pre_decomposed",
    # Input models
    "SplitInput",
    "ConsolidateInput",
    # Output models
    "SplitOutput",
    "ConsolidateOutput",
    "SplitPlan",
    "SplitMode",
    "ConsolidateLayout",
]
