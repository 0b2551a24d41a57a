"""Services package."""

from timesheet.services.projects import (
    create_cluster,
    create_project,
    delete_cluster,
    manage_collaborator_rates,
    recolor_cluster,
    rename_cluster,
    require_cluster,
    update_settings,
)
from timesheet.services.storage import (
    DataFileProjectStorage,
    DocumentFormatError,
    InMemoryProjectStorage,
    NotFoundError,
    ProjectStorageInterface,
    StorageError,
    WorkspaceProjectStorage,
    create_storage,
)

__all__ = [
    # Project service
    "create_cluster",
    "create_project",
    "delete_cluster",
    "manage_collaborator_rates",
    "recolor_cluster",
    "rename_cluster",
    "require_cluster",
    "update_settings",
    # Storage services
    "DataFileProjectStorage",
    "DocumentFormatError",
    "InMemoryProjectStorage",
    "NotFoundError",
    "ProjectStorageInterface",
    "StorageError",
    "WorkspaceProjectStorage",
    "create_storage",
]
