"""
Contract checks over the artifacts a run produces.

The harness never raises for a failed check; every check appends PASS,
FAIL or WARN results to a ValidationReport so one pass reports all problems.
"""
import re
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError

from config.models import Config
from core.contracts.models import Analysis, Task
from core.formatter.jinja_formatter import format_hours, total_hours
from core.patcher import SectionPatcher
from core.storage import LATEST_ANALYSIS, LATEST_TASKS, FileArtifactStore
from core.synthesizer import TaskSynthesizer
from utils.errors import DocumentIOError, StoreError
from utils.logger import logger

TOTAL_HOURS = re.compile(r"Total estimated hours: ([0-9]+(?:\.[0-9]+)?)h")


class CheckStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    WARN = "WARN"


class CheckResult(BaseModel):
    status: CheckStatus
    message: str


class ValidationReport(BaseModel):
    results: List[CheckResult] = Field(default_factory=list)

    def _count(self, status: CheckStatus) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def passed(self) -> int:
        return self._count(CheckStatus.PASS)

    @property
    def failed(self) -> int:
        return self._count(CheckStatus.FAIL)

    @property
    def warnings(self) -> int:
        return self._count(CheckStatus.WARN)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def failures(self) -> List[str]:
        return [result.message for result in self.results if result.status == CheckStatus.FAIL]


class ValidationHarness:
    def __init__(self, config: Optional[Config] = None, store: Optional[FileArtifactStore] = None):
        self.config = config or Config()
        self.store = store or FileArtifactStore(
            workflow_dir=self.config.storage.workflow_dir,
            document_path=self.config.document.path,
        )
        self.report = ValidationReport()

    def _record(self, status: CheckStatus, message: str) -> None:
        self.report.results.append(CheckResult(status=status, message=message))
        log = {CheckStatus.PASS: logger.debug, CheckStatus.FAIL: logger.error, CheckStatus.WARN: logger.warning}[status]
        log(f"[{status.value}] {message}")

    def record_pass(self, message: str) -> None:
        self._record(CheckStatus.PASS, message)

    def record_fail(self, message: str) -> None:
        self._record(CheckStatus.FAIL, message)

    def record_warn(self, message: str) -> None:
        self._record(CheckStatus.WARN, message)

    def check_required_files(self, paths: Iterable[str], required: bool = True) -> None:
        for path in paths:
            if Path(path).is_file():
                self.record_pass(f"File exists: {path}")
            elif required:
                self.record_fail(f"Required file missing: {path}")
            else:
                self.record_warn(f"Optional file missing: {path}")

    def check_analysis(self, data: Any) -> Optional[Analysis]:
        """Validates Analysis JSON, including totalCount >= len(recentRecords) <= 5."""
        try:
            analysis = Analysis.model_validate(data)
        except ValidationError as e:
            self.record_fail(f"Analysis does not match its schema: {e.error_count()} error(s): {e.errors()[0]['msg']}")
            return None
        self.record_pass(f"Analysis is valid ({analysis.total_count} merged, {len(analysis.recent_records)} recent)")
        if analysis.error:
            self.record_warn(f"Analysis carries a retrieval error: {analysis.error}")
        return analysis

    def check_tasks(self, data: Any) -> List[Task]:
        if not isinstance(data, list):
            self.record_fail(f"Task list must be a JSON array, got {type(data).__name__}")
            return []
        if not data:
            self.record_fail("Task list is empty")
            return []

        tasks: List[Task] = []
        for index, item in enumerate(data):
            try:
                tasks.append(Task.model_validate(item))
            except ValidationError as e:
                self.record_fail(f"Task #{index + 1} does not match its schema: {e.errors()[0]['loc']} {e.errors()[0]['msg']}")
        if len(tasks) != len(data):
            return tasks

        ids = [task.id for task in tasks]
        if len(set(ids)) != len(ids):
            self.record_fail(f"Task ids are not unique: {ids}")
        else:
            self.record_pass(f"Task list is valid ({len(tasks)} tasks, unique ids)")
        return tasks

    def check_document(self, text: str, tasks: List[Task]) -> None:
        marker = self.config.document.marker
        occurrences = sum(1 for line in text.splitlines() if line.rstrip() == marker)
        if occurrences == 1:
            self.record_pass("Document contains the status section marker")
        elif occurrences == 0:
            self.record_fail("Document is missing the status section marker")
        else:
            self.record_fail(f"Document contains the status section marker {occurrences} times")

        section = SectionPatcher(marker).extract(text) or ""
        missing = [task.title for task in tasks if task.title not in section]
        if missing:
            self.record_fail(f"Status section is missing task titles: {missing}")
        else:
            self.record_pass("Status section lists every task title")

        match = TOTAL_HOURS.search(section)
        expected = total_hours(tasks)
        if match is None:
            self.record_fail("Status section is missing the total estimated hours")
        elif abs(float(match.group(1)) - expected) > 1e-9:
            self.record_fail(f"Status section reports {match.group(1)}h in total, tasks add up to {format_hours(expected)}h")
        else:
            self.record_pass(f"Status section reports the correct hour total ({format_hours(expected)}h)")

    def check_fallback(self, synthesizer: Optional[TaskSynthesizer] = None) -> None:
        synthesizer = synthesizer or TaskSynthesizer(self.config.synthesis)
        tasks = synthesizer.generate(Analysis.empty())
        if tasks:
            self.record_pass("Synthesizer produces fallback tasks for an empty analysis")
        else:
            self.record_fail("Synthesizer produced no tasks for an empty analysis")

    def run(self) -> ValidationReport:
        """Checks the workspace artifacts of the latest run."""
        logger.info("Validating workflow artifacts...")
        self.check_required_files(self.config.validation.required_files)
        workflow_dir = self.store.workflow_dir
        self.check_required_files(
            [str(workflow_dir / LATEST_ANALYSIS), str(workflow_dir / LATEST_TASKS)], required=False
        )

        try:
            self.check_analysis(self.store.load_latest_analysis())
        except StoreError as e:
            self.record_warn(f"Could not validate analysis: {e}")

        tasks: List[Task] = []
        try:
            tasks = self.check_tasks(self.store.load_latest_tasks())
        except StoreError as e:
            self.record_warn(f"Could not validate tasks: {e}")

        if tasks:
            try:
                self.check_document(self.store.read_document(), tasks)
            except DocumentIOError as e:
                self.record_fail(f"Could not read status document: {e}")

        self.check_fallback()
        logger.info(
            f"Validation finished: {self.report.passed} passed, {self.report.failed} failed, "
            f"{self.report.warnings} warnings"
        )
        return self.report
