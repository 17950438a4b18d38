"""
Record Schemas - Projects, prompts and scrolls.

Prompts form a tree through ``parent_id``; the tree is never stored
explicitly and is rebuilt from a flat snapshot on demand.
"""

import uuid
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

CANVAS_FILENAME = "legatio.md"


def _now() -> str:
    return datetime.now().isoformat()


def _last_segment(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1]


class Project(BaseModel):
    """A directory tracked by legatio. Owns exactly one canvas document."""

    project_id: str
    path: str
    # Leaf of the chain last written to the canvas, empty before the first render
    current_prompt_id: str = ""

    model_config = {"extra": "allow"}

    @classmethod
    def create(cls, path: str | Path) -> "Project":
        return cls(project_id=str(uuid.uuid4()), path=str(path))

    @property
    def name(self) -> str:
        return _last_segment(self.path)

    @property
    def canvas_path(self) -> Path:
        return Path(self.path) / CANVAS_FILENAME


class Prompt(BaseModel):
    """
    One request/response exchange.

    A prompt with an empty ``response`` is pending (not answered yet).
    A root prompt has an empty ``parent_id``; records written by older
    versions used the owning project id instead, which is treated the same.
    """

    prompt_id: str
    project_id: str
    parent_id: str = ""
    request: str
    response: str = ""
    created_at: str = Field(default_factory=_now)  # ISO 8601

    model_config = {"extra": "allow"}

    @classmethod
    def create(
        cls,
        project_id: str,
        request: str,
        response: str = "",
        parent_id: str = "",
    ) -> "Prompt":
        return cls(
            prompt_id=str(uuid.uuid4()),
            project_id=project_id,
            parent_id=parent_id,
            request=request,
            response=response,
        )

    @property
    def is_root(self) -> bool:
        return not self.parent_id or self.parent_id == self.project_id

    @property
    def is_pending(self) -> bool:
        return self.response == ""


class Scroll(BaseModel):
    """A context document attached to a project."""

    scroll_id: str
    project_id: str
    path: str
    content: str

    model_config = {"extra": "allow"}

    @classmethod
    def create(cls, project_id: str, path: str | Path, content: str) -> "Scroll":
        return cls(
            scroll_id=str(uuid.uuid4()),
            project_id=project_id,
            path=str(path),
            content=content,
        )

    @classmethod
    def from_file(cls, path: str | Path, project_id: str) -> "Scroll":
        """Read *path* and wrap its text in a new scroll."""
        return cls.create(project_id, path, Path(path).read_text(encoding="utf-8"))

    @property
    def name(self) -> str:
        return _last_segment(self.path)


class RecordState(BaseModel):
    """Everything the record store persists, in one document."""

    projects: list[Project] = Field(default_factory=list)
    prompts: list[Prompt] = Field(default_factory=list)
    scrolls: list[Scroll] = Field(default_factory=list)
    updated_at: str = Field(default_factory=_now)

    model_config = {"extra": "allow"}
