"""Filesystem actions restricted to a workspace directory."""

from __future__ import annotations

from pathlib import Path
import shutil

from pydantic import BaseModel

from llmactions.instructions.base import Action, ActionFeedback, ActionParameter


class DirectoryInput(BaseModel):
    directory: str


class PathInput(BaseModel):
    path: str


class CopyFileInput(BaseModel):
    source: str
    destination: str


class WorkspaceAction(Action):
    """Base for actions whose paths resolve under ``workspace_dir``."""

    def __init__(self, workspace_dir: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.workspace_dir = Path(workspace_dir).resolve()
        self.workspace_dir.mkdir(parents=True, exist_ok=True)

    def _safe_path(self, path: str) -> Path:
        target = (self.workspace_dir / path.lstrip("/")).resolve()
        if target != self.workspace_dir and self.workspace_dir not in target.parents:
            raise ValueError(f"Path traversal detected: {path}")
        return target


class ListFilesAction(WorkspaceAction):
    name = "listFiles"
    usage = "list all files in a directory"
    parameters = (ActionParameter("directory", "path of the directory to list"),)
    input_schema = DirectoryInput

    def execute_action(self, parameters: dict[str, str]) -> ActionFeedback:
        directory = parameters["directory"]
        try:
            target = self._safe_path(directory)
            entries = sorted(
                f"{entry.name}/" if entry.is_dir() else entry.name
                for entry in target.iterdir()
            )
        except (OSError, ValueError) as exc:
            return ActionFeedback.error(str(exc))
        listing = "\n".join(entries) if entries else "(empty)"
        return ActionFeedback.success(f"Files in {directory}:\n{listing}")


class ReadFileAction(WorkspaceAction):
    name = "readFile"
    usage = "read the content of a text file"
    parameters = (ActionParameter("path", "path of the file to read"),)
    input_schema = PathInput

    def execute_action(self, parameters: dict[str, str]) -> ActionFeedback:
        try:
            content = self._safe_path(parameters["path"]).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            return ActionFeedback.error(str(exc))
        return ActionFeedback.success(content)


class CopyFileAction(WorkspaceAction):
    name = "copyFile"
    usage = "copy a file from one place to another"
    parameters = (
        ActionParameter("source", "path of the file to copy"),
        ActionParameter("destination", "path of the destination file"),
    )
    input_schema = CopyFileInput

    def execute_action(self, parameters: dict[str, str]) -> ActionFeedback:
        try:
            source = self._safe_path(parameters["source"])
            destination = self._safe_path(parameters["destination"])
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
        except (OSError, ValueError) as exc:
            return ActionFeedback.error(str(exc))
        return ActionFeedback.success(
            f"File copied from {parameters['source']} to {parameters['destination']}"
        )


class CreateDirectoryAction(WorkspaceAction):
    name = "createDirectory"
    usage = "create a directory"
    parameters = (ActionParameter("path", "path of the directory to create"),)
    input_schema = PathInput

    def execute_action(self, parameters: dict[str, str]) -> ActionFeedback:
        try:
            self._safe_path(parameters["path"]).mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as exc:
            return ActionFeedback.error(str(exc))
        return ActionFeedback.success(f"Created directory {parameters['path']}")
