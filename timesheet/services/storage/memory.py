"""
In-Memory Storage Implementation

Used by tests and by interactive sessions that persist elsewhere. Projects
are deep-copied on the way in and out, so callers never share state with
the store.
"""

from timesheet.models.timesheet import Project
from timesheet.services.storage.interface import NotFoundError, ProjectStorageInterface


class InMemoryProjectStorage(ProjectStorageInterface):
    """Dict-backed project store."""

    def __init__(self, projects: list[Project] = None):
        self._projects: dict[str, Project] = {}
        for project in projects or []:
            self.save_project(project)

    def list_projects(self) -> list[Project]:
        return sorted(
            (p.model_copy(deep=True) for p in self._projects.values()),
            key=lambda p: p.name.lower(),
        )

    def load_project(self, project_id: str) -> Project:
        project = self._projects.get(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")
        return project.model_copy(deep=True)

    def save_project(self, project: Project) -> bool:
        self._projects[project.id] = project.model_copy(deep=True)
        return True

    def delete_project(self, project_id: str) -> bool:
        return self._projects.pop(project_id, None) is not None
