import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from config.models import RepositoryConfig
from core.contracts.models import ChangeSetRecord, FileDelta
from core.contracts.source import ChangeSetSource
from core.registry import source_registry
from utils.errors import CollectorError


@source_registry.register("static")
class StaticChangeSetSource(ChangeSetSource):
    """
    Serves change sets from a JSON fixture (or an in-memory list) for offline runs.

    Each entry uses the Analysis record layout: id, title, description,
    mergedAt and fileDeltas. Entries without `fileDeltas` report no files.
    """

    def __init__(
        self,
        config: Optional[RepositoryConfig] = None,
        path: Optional[str] = None,
        records: Optional[List[Dict[str, Any]]] = None,
    ):
        if path is None and records is None:
            raise ValueError("StaticChangeSetSource needs either `path` or `records`.")
        self.path = Path(path) if path else None
        self._records = records

    def _load(self) -> List[ChangeSetRecord]:
        raw = self._records
        if raw is None:
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise CollectorError(f"Could not read change-set fixture {self.path}: {e}") from e
        try:
            return [ChangeSetRecord.model_validate(entry) for entry in raw]
        except (TypeError, ValidationError) as e:
            raise CollectorError(f"Malformed change-set fixture: {e}") from e

    async def list_closed_change_sets(self, per_page: int = 10) -> List[ChangeSetRecord]:
        return [record.model_copy(update={"file_deltas": []}) for record in self._load()[:per_page]]

    async def list_file_deltas(self, change_set_id: int) -> List[FileDelta]:
        for record in self._load():
            if record.id == change_set_id:
                return list(record.file_deltas)
        raise CollectorError(f"Change set #{change_set_id} not found in fixture.")
