"""
Persisted Document Formats

Two JSON document types, told apart by their `_type` discriminator:

- timesheet_data, version 2: one file holding a list of projects
- timesheet_project, version 3: one project per document (workspace layout)

A document without a known `_type` is rejected with DocumentFormatError
before anything else is read from it. Project payloads with keys the
project model does not know are rejected the same way.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from timesheet.models.timesheet import Project
from timesheet.services.storage.interface import DocumentFormatError


DATA_FILE_TYPE = "timesheet_data"
DATA_FILE_VERSION = 2
PROJECT_TYPE = "timesheet_project"
PROJECT_VERSION = 3

_METADATA_KEYS = ("_type", "_version", "_last_saved")


def document_type(document: Any) -> str:
    """Return the document's `_type`, rejecting anything unknown."""
    if not isinstance(document, dict):
        raise DocumentFormatError("Document must be a JSON object")
    doc_type = document.get("_type")
    if doc_type not in (DATA_FILE_TYPE, PROJECT_TYPE):
        raise DocumentFormatError(
            f"Invalid document: _type must be '{DATA_FILE_TYPE}' or '{PROJECT_TYPE}' "
            f"(got {doc_type!r})"
        )
    return doc_type


def project_from_dict(data: dict) -> Project:
    """Validate a project payload with its metadata keys stripped."""
    if not isinstance(data, dict):
        raise DocumentFormatError("Project entry must be a JSON object")
    payload = {k: v for k, v in data.items() if k not in _METADATA_KEYS}
    try:
        return Project.model_validate(payload)
    except ValidationError as e:
        raise DocumentFormatError(f"Invalid project document: {e}") from e


def project_to_document(project: Project, saved_at: Optional[datetime] = None) -> dict:
    """Serialize a project as a v3 timesheet_project document."""
    return {
        "_type": PROJECT_TYPE,
        "_version": PROJECT_VERSION,
        "_last_saved": (saved_at or datetime.utcnow()).isoformat(),
        **project.model_dump(mode="json"),
    }


def project_from_document(document: Any) -> Project:
    if document_type(document) != PROJECT_TYPE:
        raise DocumentFormatError(f"Expected a '{PROJECT_TYPE}' document")
    return project_from_dict(document)


def data_file_to_document(projects: list[Project]) -> dict:
    """Serialize projects as a v2 timesheet_data document."""
    return {
        "_type": DATA_FILE_TYPE,
        "_version": DATA_FILE_VERSION,
        "projects": [p.model_dump(mode="json") for p in projects],
    }


def data_file_from_document(document: Any) -> list[Project]:
    if document_type(document) != DATA_FILE_TYPE:
        raise DocumentFormatError(f"Expected a '{DATA_FILE_TYPE}' document")
    version = document.get("_version")
    if version != DATA_FILE_VERSION:
        raise DocumentFormatError(
            f"Unsupported data file version: {version}. Version {DATA_FILE_VERSION} required."
        )
    projects = document.get("projects")
    if not isinstance(projects, list):
        raise DocumentFormatError("Data file 'projects' must be a list")
    return [project_from_dict(p) for p in projects]
