"""
JSON File Storage Implementations

Two layouts:
- DataFileProjectStorage: a single JSON file. Either a v2 timesheet_data
  document with every project, or a v3 timesheet_project document holding
  exactly one project
- WorkspaceProjectStorage: a directory with one folder per project, each
  holding a v3 project document (project.json by default)

Every overwrite first copies the previous document to <file>.bak. Writes go
through a temporary file and an atomic rename, retried with tenacity on
transient OS errors. There is no locking between processes: the last writer
wins.
"""

import json
import os
import re
import shutil
from pathlib import Path
from typing import Any, Optional, Union

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from timesheet.config import StorageSettings, get_settings
from timesheet.models.timesheet import Project
from timesheet.services.storage.documents import (
    PROJECT_TYPE,
    data_file_from_document,
    data_file_to_document,
    document_type,
    project_from_document,
    project_to_document,
)
from timesheet.services.storage.interface import (
    DocumentFormatError,
    NotFoundError,
    ProjectStorageInterface,
    StorageError,
)


BACKUP_SUFFIX = ".bak"


class JsonDocumentFile:
    """
    One JSON document on disk.

    Handles reading, backup-before-overwrite and retried atomic writes.
    """

    def __init__(self, path: Union[str, Path], backup: bool = True):
        self.path = Path(path)
        self.backup = backup

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + BACKUP_SUFFIX)

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Any:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise NotFoundError(f"Document not found: {self.path}")
        except json.JSONDecodeError as e:
            raise DocumentFormatError(f"{self.path} is not valid JSON: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e

    def write(self, document: Any) -> None:
        content = json.dumps(document, indent=2, ensure_ascii=False)
        try:
            if self.backup and self.exists():
                shutil.copyfile(self.path, self.backup_path)
            self._write_text(content)
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e

    def remove(self) -> None:
        try:
            if self.backup and self.exists():
                shutil.copyfile(self.path, self.backup_path)
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {self.path}: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write_text(self, content: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, self.path)


class DataFileProjectStorage(ProjectStorageInterface):
    """
    Single-file project storage.

    A missing file is an empty v2 store and is created on the first save.
    """

    def __init__(self, path: Union[str, Path], backup: bool = True):
        self._file = JsonDocumentFile(path, backup=backup)

    @property
    def path(self) -> Path:
        return self._file.path

    def _read(self) -> tuple[bool, list[Project]]:
        """Return (is_single_project_document, projects)."""
        if not self._file.exists():
            return False, []
        document = self._file.read()
        if document_type(document) == PROJECT_TYPE:
            project = project_from_document(document)
            if project.folder_name is None:
                project.folder_name = self.path.parent.name
            return True, [project]
        return False, data_file_from_document(document)

    def list_projects(self) -> list[Project]:
        _, projects = self._read()
        return sorted(projects, key=lambda p: p.name.lower())

    def load_project(self, project_id: str) -> Project:
        _, projects = self._read()
        for project in projects:
            if project.id == project_id:
                return project
        raise NotFoundError(f"Project not found: {project_id}")

    def save_project(self, project: Project) -> bool:
        single, projects = self._read()

        if single:
            if projects[0].id != project.id:
                raise StorageError(
                    f"{self.path} holds a single project ({projects[0].id}); "
                    f"cannot store {project.id} in it"
                )
            self._file.write(project_to_document(project))
            return True

        for index, existing in enumerate(projects):
            if existing.id == project.id:
                projects[index] = project
                break
        else:
            projects.append(project)
        self._file.write(data_file_to_document(projects))
        return True

    def delete_project(self, project_id: str) -> bool:
        single, projects = self._read()
        remaining = [p for p in projects if p.id != project_id]
        if len(remaining) == len(projects):
            return False
        if single:
            self._file.remove()
        else:
            self._file.write(data_file_to_document(remaining))
        return True


def sanitize_folder_name(name: str) -> str:
    """Strip characters invalid in folder names, collapse spaces, cap at 100."""
    cleaned = re.sub(r'[<>:"/\\|?*]', "", name)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned[:100].rstrip(". ")


class WorkspaceProjectStorage(ProjectStorageInterface):
    """
    Directory storage: <root>/<folder>/<project_file_name> per project.

    Hidden folders and folders without a project document are ignored.
    """

    def __init__(
        self,
        root: Union[str, Path],
        project_file_name: str = "project.json",
        backup: bool = True,
    ):
        self.root = Path(root)
        self.project_file_name = project_file_name
        self.backup = backup

    def _document(self, folder_name: str) -> JsonDocumentFile:
        return JsonDocumentFile(self.root / folder_name / self.project_file_name, backup=self.backup)

    def _folders(self) -> list[str]:
        if not self.root.is_dir():
            return []
        try:
            return sorted(
                entry.name for entry in self.root.iterdir()
                if entry.is_dir()
                and not entry.name.startswith(".")
                and (entry / self.project_file_name).is_file()
            )
        except OSError as e:
            raise StorageError(f"Failed to scan workspace {self.root}: {e}") from e

    def _load_folder(self, folder_name: str) -> Project:
        project = project_from_document(self._document(folder_name).read())
        project.folder_name = folder_name
        return project

    def _find_folder(self, project_id: str) -> Optional[str]:
        for folder_name in self._folders():
            if self._load_folder(folder_name).id == project_id:
                return folder_name
        return None

    def list_projects(self) -> list[Project]:
        projects = [self._load_folder(folder) for folder in self._folders()]
        return sorted(projects, key=lambda p: p.name.lower())

    def load_project(self, project_id: str) -> Project:
        folder_name = self._find_folder(project_id)
        if folder_name is None:
            raise NotFoundError(f"Project not found: {project_id}")
        return self._load_folder(folder_name)

    def _assign_folder(self, project: Project) -> str:
        existing = self._find_folder(project.id)
        if existing is not None:
            return existing

        base = sanitize_folder_name(project.folder_name or project.name) or project.id
        folder_name = base
        if (self.root / folder_name).exists():
            folder_name = f"{base} ({project.id[-6:]})"
        return folder_name

    def save_project(self, project: Project) -> bool:
        project.folder_name = self._assign_folder(project)
        self._document(project.folder_name).write(project_to_document(project))
        return True

    def delete_project(self, project_id: str) -> bool:
        folder_name = self._find_folder(project_id)
        if folder_name is None:
            return False
        try:
            shutil.rmtree(self.root / folder_name)
        except OSError as e:
            raise StorageError(f"Failed to delete {folder_name}: {e}") from e
        return True


def create_storage(
    settings: Optional[StorageSettings] = None,
    path: Optional[Union[str, Path]] = None,
) -> ProjectStorageInterface:
    """
    Build the configured file storage.

    An existing directory always opens as a workspace, whatever the
    configured backend.
    """
    settings = settings or get_settings().storage
    target = Path(path) if path is not None else settings.data_path

    if settings.backend == "workspace" or target.is_dir():
        return WorkspaceProjectStorage(
            target,
            project_file_name=settings.project_file_name,
            backup=settings.backup_on_save,
        )
    return DataFileProjectStorage(target, backup=settings.backup_on_save)
