import itertools
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

from config.models import SynthesisConfig
from core.contracts.models import Analysis, Task, TaskCategory, TaskPriority
from utils.logger import logger

ID_PREFIXES = {
    TaskCategory.DOCUMENTATION: "doc-update",
    TaskCategory.AUTOMATION: "workflow-opt",
    TaskCategory.FEATURE: "notebook-enhance",
    TaskCategory.MAINTENANCE: "general-improve",
}


class TaskIdGenerator:
    """
    Produces ids of the form `<category-prefix>-<run-token>-<n>`.

    The run token is random per generator and `n` only ever increases, so
    ids never collide within a run however fast tasks are created.
    """

    def __init__(self, run_token: Optional[str] = None):
        self.run_token = run_token or uuid.uuid4().hex[:8]
        self._counter = itertools.count(1)

    def next_id(self, category: TaskCategory) -> str:
        return f"{ID_PREFIXES[category]}-{self.run_token}-{next(self._counter)}"


def _under_directory(path: str, directory: str) -> bool:
    directory = directory.strip("/")
    return f"/{directory}/" in f"/{path.lstrip('/')}"


class TaskSynthesizer:
    """
    Derives follow-up tasks from an Analysis with fixed rules.

    Rules, evaluated in order over every path touched by the recent records:

    1. no documentation file touched -> documentation task
    2. a pipeline definition touched -> automation task
    3. a notebook touched -> feature task

    If none of them fires (or there are no recent records) a single
    maintenance task is produced, so the result is never empty.
    """

    def __init__(
        self,
        config: Optional[SynthesisConfig] = None,
        id_generator: Optional[TaskIdGenerator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config or SynthesisConfig()
        self.id_generator = id_generator or TaskIdGenerator()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def generate(self, analysis: Analysis) -> List[Task]:
        logger.info("Generating development tasks...")
        now = self._clock()
        tasks: List[Task] = []

        if analysis.recent_records:
            paths = analysis.paths

            if not any(path.endswith(self.config.documentation_extension) for path in paths):
                tasks.append(self._documentation_task(now))

            pipeline_dirs = [
                directory for directory in self.config.pipeline_dirs
                if any(_under_directory(path, directory) for path in paths)
            ]
            if pipeline_dirs:
                tasks.append(self._workflow_task(now, pipeline_dirs))

            notebooks = sorted({path for path in paths if path.endswith(self.config.notebook_extension)})
            if notebooks:
                tasks.append(self._notebook_task(now, notebooks))

        if not tasks:
            tasks.append(self._fallback_task(now))

        logger.info(f"Generated {len(tasks)} tasks: {[task.category.value for task in tasks]}")
        return tasks

    def _task(self, now: datetime, category: TaskCategory, **fields) -> Task:
        return Task(
            id=self.id_generator.next_id(category),
            created_at=now,
            category=category,
            priority=TaskPriority.MEDIUM,
            **fields,
        )

    def _documentation_task(self, now: datetime) -> Task:
        return self._task(
            now,
            TaskCategory.DOCUMENTATION,
            title="Enhance documentation with usage examples",
            description="Add more detailed usage examples and troubleshooting guides to improve user experience",
            estimated_hours=2,
            target_files=[self.config.status_document],
        )

    def _workflow_task(self, now: datetime, pipeline_dirs: List[str]) -> Task:
        return self._task(
            now,
            TaskCategory.AUTOMATION,
            title="Optimize automated workflows",
            description="Review and optimize the pipeline definitions for better performance and reliability",
            estimated_hours=3,
            target_files=[f"{directory.rstrip('/')}/*" for directory in pipeline_dirs],
        )

    def _notebook_task(self, now: datetime, notebooks: List[str]) -> Task:
        targets = [self.config.primary_notebook] if self.config.primary_notebook else notebooks
        return self._task(
            now,
            TaskCategory.FEATURE,
            title="Add error handling to notebook",
            description="Improve error handling and user feedback in the interactive notebook",
            estimated_hours=4,
            target_files=targets,
        )

    def _fallback_task(self, now: datetime) -> Task:
        targets = [self.config.status_document]
        if self.config.primary_notebook:
            targets.append(self.config.primary_notebook)
        return self._task(
            now,
            TaskCategory.MAINTENANCE,
            title="General codebase improvements",
            description="Review and improve code quality, add tests, or enhance user experience",
            estimated_hours=2,
            target_files=targets,
        )
