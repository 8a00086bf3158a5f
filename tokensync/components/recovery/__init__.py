"""
Recovery component - Backups, rollback, partial repair and error reports.
"""

from ._impl import BackupManager, get_file_hash
from .component import (
    classify_severity,
    generate_error_report,
    repair_json_text,
    run_recovery,
)
from .models import (
    DEFAULT_CONFIG,
    MANIFEST_FILE,
    PRE_ROLLBACK_OPERATION,
    BackupConfig,
    BackupInfo,
    BackupOutput,
    ErrorReport,
    RecoveryAction,
    RecoveryInput,
    RecoveryOutput,
    ReferenceSuggestion,
    RollbackOutput,
    VerifyOutput,
)

__all__ = [
    # Entry points
    "run_recovery",
    "generate_error_report",
    "classify_severity",
    "repair_json_text",
    # Services
    "BackupManager",
    "get_file_hash",
    # Models
    "BackupConfig",
    "BackupInfo",
    "BackupOutput",
    "RollbackOutput",
    "VerifyOutput",
    "RecoveryInput",
    "RecoveryAction",
    "RecoveryOutput",
    "ReferenceSuggestion",
    "ErrorReport",
    "DEFAULT_CONFIG",
    "MANIFEST_FILE",
    "PRE_ROLLBACK_OPERATION",
]
