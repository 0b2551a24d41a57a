"""
Storage Services Package

Provides the abstract project storage interface and its implementations:
a single JSON data file, a workspace directory and an in-memory store.
"""

from timesheet.services.storage.interface import (
    DocumentFormatError,
    NotFoundError,
    ProjectStorageInterface,
    StorageError,
)
from timesheet.services.storage.memory import InMemoryProjectStorage
from timesheet.services.storage.json_files import (
    DataFileProjectStorage,
    JsonDocumentFile,
    WorkspaceProjectStorage,
    create_storage,
)

__all__ = [
    # Interface
    "ProjectStorageInterface",
    # Exceptions
    "DocumentFormatError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "DataFileProjectStorage",
    "InMemoryProjectStorage",
    "JsonDocumentFile",
    "WorkspaceProjectStorage",
    "create_storage",
]
