from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import BaseModel

from config.models import Config
from core.analyzer import ChangeSetAnalyzer
from core.contracts.models import Analysis, DevelopmentProposal, Task
from core.contracts.source import ChangeSetSource
from core.formatter.jinja_formatter import StatusFormatter
from core.patcher import SectionPatcher
from core.registry import source_registry
from core.storage import FileArtifactStore, snapshot_stamp
from core.synthesizer import TaskIdGenerator, TaskSynthesizer
from utils.errors import ConfigError, DocumentIOError
from utils.logger import logger


class RunResult(BaseModel):
    analysis: Analysis
    tasks: List[Task]
    section: str
    document_updated: bool = False
    proposal: Optional[DevelopmentProposal] = None


def create_source(config: Config) -> ChangeSetSource:
    """Instantiates the configured change-set source from the registry."""
    source_type = config.source.type
    if source_type not in source_registry:
        raise ConfigError(
            f"Unknown change-set source '{source_type}'. Available: {source_registry.available()}"
        )
    return source_registry.create(source_type, config=config.repository, **config.source.options)


class ContinuousAgent:
    """
    One run of the continuous development workflow.
    It orchestrates the analysis, task synthesis, persistence and document steps.
    """

    def __init__(
        self,
        config: Config,
        source: Optional[ChangeSetSource] = None,
        store: Optional[FileArtifactStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initializes the pipeline with the given configuration.

        Args:
            config: The configuration object.
            source: Change-set source; built from `config.source` when omitted.
            store: Artifact store; built from `config.storage` and `config.document` when omitted.
            clock: Returns the current time; UTC wall clock by default.
        """
        self.config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._owns_source = source is None
        self.source = source or create_source(config)
        self.store = store or FileArtifactStore(
            workflow_dir=config.storage.workflow_dir,
            document_path=config.document.path,
        )
        self.id_generator = TaskIdGenerator()
        self.analyzer = ChangeSetAnalyzer(
            self.source,
            config.analysis,
            per_page=config.repository.per_page,
            clock=self._clock,
        )
        self.synthesizer = TaskSynthesizer(config.synthesis, id_generator=self.id_generator, clock=self._clock)
        self.formatter = StatusFormatter(
            template_dir=config.formatter.template_dir,
            section_template=config.formatter.section_template,
            proposal_template=config.formatter.proposal_template,
            marker=config.document.marker,
        )
        self.patcher = SectionPatcher(config.document.marker, config.document.anchor)

    async def run(self, dry_run: bool = False) -> RunResult:
        """
        Runs analyze -> synthesize -> persist -> patch document -> propose.

        A failing document read or write skips the document step with a
        warning; every other unexpected error propagates to the caller.
        """
        logger.info("Starting continuous agent run...")
        try:
            analysis = await self.analyzer.analyze()
        finally:
            if self._owns_source and hasattr(self.source, "aclose"):
                await self.source.aclose()
        tasks = self.synthesizer.generate(analysis)
        section = self.formatter.render_section(tasks, now=self._clock())

        if dry_run:
            logger.info("Dry run: skipping artifact and document writes.")
        else:
            self.save_workflow_data(analysis, tasks)

        document_updated = self.update_document(section, dry_run=dry_run)

        proposal = None
        if tasks:
            proposal = self.formatter.render_proposal(tasks, run_token=self.id_generator.run_token)
            logger.info(f"Proposed change set: '{proposal.title}' on branch {proposal.branch} ({len(tasks)} tasks)")
            logger.debug(f"Proposal body:\n{proposal.body}")

        logger.success("Continuous agent run completed.")
        return RunResult(
            analysis=analysis,
            tasks=tasks,
            section=section,
            document_updated=document_updated,
            proposal=proposal,
        )

    def save_workflow_data(self, analysis: Analysis, tasks: List[Task]) -> None:
        logger.info("Saving workflow data...")
        stamp = snapshot_stamp(self._clock())
        self.store.save_analysis(analysis, stamp=stamp)
        self.store.save_tasks(tasks, stamp=stamp)

    def update_document(self, section: str, dry_run: bool = False) -> bool:
        """Patches the status section into the document. Returns whether the document changed on disk."""
        logger.info(f"Updating status section in {self.store.document_path}...")
        try:
            document = self.store.read_document()
            patched = self.patcher.patch(document, section)
            if patched == document:
                logger.info("Status section already up to date.")
                return False
            if dry_run:
                return False
            self.store.write_document(patched)
            return True
        except DocumentIOError as e:
            logger.warning(f"Could not update status document: {e}")
            return False
