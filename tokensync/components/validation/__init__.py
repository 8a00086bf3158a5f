"""
Validation component - Structure, reference, theme and round-trip checks.
"""

from .component import (
    compare_documents,
    run_report,
    run_validate_references,
    run_validate_roundtrip,
    run_validate_structure,
    run_validate_themes,
)
from .models import (
    Difference,
    IncompleteTheme,
    ReferenceValidationOutput,
    RoundTripInput,
    RoundTripOutput,
    StructureValidationOutput,
    ThemeValidationOutput,
    UnresolvedReference,
    ValidationReport,
)

__all__ = [
    # Entry points
    "run_validate_structure",
    "run_validate_references",
    "run_validate_themes",
    "run_validate_roundtrip",
    "run_report",
    "compare_documents",
    # Input models
    "RoundTripInput",
    # Output models
    "StructureValidationOutput",
    "ReferenceValidationOutput",
    "ThemeValidationOutput",
    "RoundTripOutput",
    "ValidationReport",
    "UnresolvedReference",
    "IncompleteTheme",
    "Difference",
]
