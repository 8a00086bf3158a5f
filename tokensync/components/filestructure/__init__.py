"""
File structure component - Layout contract of a modular token directory.
"""

from tokensync.domain.layout import set_file_name, set_name_for_file

from .component import (
    DIRECTORY_BACKUP_OPERATION,
    run_backup_directory,
    run_clean,
    run_initialize,
    run_list_files,
    run_validate_layout,
)
from .models import (
    CleanInput,
    CleanOutput,
    InitializeInput,
    InitializeOutput,
    LayoutValidationOutput,
    TokenFileListing,
)

__all__ = [
    # Entry points
    "run_initialize",
    "run_validate_layout",
    "run_list_files",
    "run_clean",
    "run_backup_directory",
    "set_file_name",
    "set_name_for_file",
    "DIRECTORY_BACKUP_OPERATION",
    # Input models
    "InitializeInput",
    "CleanInput",
    # Output models
    "InitializeOutput",
    "LayoutValidationOutput",
    "TokenFileListing",
    "CleanOutput",
]
