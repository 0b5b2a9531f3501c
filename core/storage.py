import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from pydantic import TypeAdapter

from core.contracts.models import Analysis, Task
from utils.errors import DocumentIOError, StoreError
from utils.logger import logger

LATEST_ANALYSIS = "latest-analysis.json"
LATEST_TASKS = "latest-tasks.json"

_task_list = TypeAdapter(List[Task])


def snapshot_stamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 timestamp made safe for file names (':' and '.' become '-')."""
    moment = moment or datetime.now(timezone.utc)
    return moment.isoformat().replace(":", "-").replace(".", "-")


class FileArtifactStore:
    """
    File-system backed store for the status document and the workflow artifacts.

    Artifacts are written twice: a timestamped snapshot that is never
    overwritten, and a "latest" file replaced on every run.
    """

    def __init__(self, workflow_dir: str, document_path: str):
        self.workflow_dir = Path(workflow_dir)
        self.document_path = Path(document_path)

    def read_document(self) -> str:
        try:
            with open(self.document_path, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentIOError(f"Could not read {self.document_path}: {e}") from e

    def write_document(self, text: str) -> None:
        try:
            # newline="" on both ends keeps the document's line endings untouched
            with open(self.document_path, "w", encoding="utf-8", newline="") as f:
                f.write(text)
        except OSError as e:
            raise DocumentIOError(f"Could not write {self.document_path}: {e}") from e

    def _write(self, name: str, payload: bytes) -> Path:
        path = self.workflow_dir / name
        try:
            self.workflow_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)
        except OSError as e:
            raise StoreError(f"Could not write artifact {path}: {e}") from e
        logger.debug(f"Wrote {path}")
        return path

    def save_analysis(self, analysis: Analysis, stamp: Optional[str] = None) -> List[Path]:
        payload = analysis.model_dump_json(indent=2, by_alias=True, exclude_none=True).encode("utf-8")
        stamp = stamp or snapshot_stamp()
        return [self._write(f"analysis-{stamp}.json", payload), self._write(LATEST_ANALYSIS, payload)]

    def save_tasks(self, tasks: List[Task], stamp: Optional[str] = None) -> List[Path]:
        payload = _task_list.dump_json(tasks, indent=2, by_alias=True)
        stamp = stamp or snapshot_stamp()
        return [self._write(f"tasks-{stamp}.json", payload), self._write(LATEST_TASKS, payload)]

    def _load(self, name: str) -> Any:
        path = self.workflow_dir / name
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Could not load artifact {path}: {e}") from e

    def load_latest_analysis(self) -> Any:
        """Raw JSON of the latest Analysis, unvalidated."""
        return self._load(LATEST_ANALYSIS)

    def load_latest_tasks(self) -> Any:
        """Raw JSON of the latest task list, unvalidated."""
        return self._load(LATEST_TASKS)
