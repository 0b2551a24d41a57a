"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for project persistence.
This allows us to:
1. Keep a single data file or a workspace directory behind the same API
2. Use in-memory storage for testing
3. Keep the engine decoupled from storage implementation

The whole project is the unit of durability: callers load a project,
mutate it and save it back.
"""

from abc import ABC, abstractmethod

from timesheet.models.timesheet import Project


class ProjectStorageInterface(ABC):
    """
    Abstract interface for project storage operations.

    Any storage implementation (data file, workspace directory, memory)
    must implement these methods.
    """

    @abstractmethod
    def list_projects(self) -> list[Project]:
        """
        Load every stored project.

        Returns:
            Projects sorted by name

        Raises:
            DocumentFormatError: If a stored document is malformed
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def load_project(self, project_id: str) -> Project:
        """
        Load one project by ID.

        Raises:
            NotFoundError: If no project has this ID
            DocumentFormatError: If the stored document is malformed
        """
        pass

    @abstractmethod
    def save_project(self, project: Project) -> bool:
        """
        Save a project, inserting or replacing it.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete_project(self, project_id: str) -> bool:
        """
        Delete a project and all of its monthly reports.

        Returns:
            True if deleted, False if it did not exist
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DocumentFormatError(StorageError):
    """A stored document is missing its discriminator or fails validation."""
    pass
