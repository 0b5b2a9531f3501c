from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Callable, Iterable, List, Optional

from config.models import AnalysisConfig
from core.contracts.models import MAX_RECENT_RECORDS, Analysis, ChangeSetRecord
from core.contracts.source import ChangeSetSource
from utils.errors import CollectorError
from utils.logger import logger


class ChangeSetAnalyzer:
    """
    Turns the closed change sets of a repository into an Analysis.

    Only merged change sets count. The most recent ones (at most five) get
    their file deltas fetched and a summary attached; the rest only
    contribute to the total count.
    """

    def __init__(
        self,
        source: ChangeSetSource,
        config: Optional[AnalysisConfig] = None,
        per_page: int = 10,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.source = source
        self.config = config or AnalysisConfig()
        self.per_page = per_page
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def max_recent(self) -> int:
        return min(self.config.max_recent, MAX_RECENT_RECORDS)

    async def analyze(self) -> Analysis:
        """
        Runs the analysis. Never raises for collaborator failures: a failed
        listing yields an empty Analysis carrying the error.
        """
        logger.info("Analyzing recent change sets...")
        timestamp = self._clock()
        try:
            closed = await self.source.list_closed_change_sets(per_page=self.per_page)
        except CollectorError as e:
            logger.warning(f"Could not list change sets: {e}")
            return Analysis.empty(error=str(e), timestamp=timestamp)

        merged = [record for record in closed if record.merged]
        logger.info(f"{len(merged)} of {len(closed)} closed change sets were merged.")

        recent: List[ChangeSetRecord] = []
        for record in merged[: self.max_recent]:
            try:
                deltas = await self.source.list_file_deltas(record.id)
            except CollectorError as e:
                logger.warning(f"Could not fetch files for change set #{record.id}: {e}")
                deltas = []
            record = record.model_copy(update={"file_deltas": deltas})
            recent.append(record.model_copy(update={"summary": self.summarize(record)}))

        return Analysis(timestamp=timestamp, total_count=len(merged), recent_records=recent)

    def classify(self, paths: Iterable[str]) -> List[str]:
        """Returns the summary categories for a set of paths, judged by extension only."""
        extensions = {PurePosixPath(path).suffix.lower() for path in paths}
        return [
            category
            for category, category_extensions in self.config.category_extensions.items()
            if extensions.intersection(ext.lower() for ext in category_extensions)
        ]

    def summarize(self, record: ChangeSetRecord) -> str:
        categories = ", ".join(self.classify(record.paths))
        return f"{record.title} - Modified {len(record.file_deltas)} files ({categories})"
