from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from core.contracts.formatter import SectionFormatter
from core.contracts.models import DevelopmentProposal, Task
from utils.errors import FormatterError

DEFAULT_MARKER = "## 🤖 Automated Development Status"


def format_hours(value: float) -> str:
    """2.0 -> "2", 2.5 -> "2.5"."""
    return f"{value:g}"


def total_hours(tasks: List[Task]) -> float:
    return sum(task.estimated_hours for task in tasks)


class StatusFormatter(SectionFormatter):
    def __init__(
        self,
        template_dir: Optional[str] = None,
        section_template: str = "status_section.md.j2",
        proposal_template: str = "proposal.md.j2",
        marker: str = DEFAULT_MARKER,
    ):
        if template_dir is None:
            # Default template directory relative to this file
            template_dir = str(Path(__file__).parent / "templates")

        self.template_dir = template_dir
        self.section_template = section_template
        self.proposal_template = proposal_template
        self.marker = marker.rstrip()
        try:
            self.env = Environment(
                loader=FileSystemLoader(self.template_dir),
                trim_blocks=True,
                lstrip_blocks=True,
                keep_trailing_newline=True,
                undefined=StrictUndefined,
            )
            self.env.filters["hours"] = format_hours
        except Exception as e:
            raise FormatterError(f"Failed to initialize Jinja2 environment: {e}") from e

    @property
    def subheading(self) -> str:
        level = len(self.marker) - len(self.marker.lstrip("#"))
        return "#" * min(level + 1, 6)

    def _render(self, template_name: str, **context) -> str:
        try:
            template = self.env.get_template(template_name)
            return template.render(**context)
        except Exception as e:
            raise FormatterError(f"Failed to render template {template_name}: {e}") from e

    def render_section(self, tasks: List[Task], now: Optional[datetime] = None) -> str:
        """Renders the managed status section, starting with the marker heading."""
        now = now or datetime.now(timezone.utc)
        return self._render(
            self.section_template,
            marker=self.marker,
            subheading=self.subheading,
            updated_at=now.strftime("%Y-%m-%d %H:%M:%S %Z").strip(),
            tasks=tasks,
            total_hours=total_hours(tasks),
        )

    def render_proposal(self, tasks: List[Task], run_token: str) -> DevelopmentProposal:
        return DevelopmentProposal(
            title=f"🤖 Automated Development Tasks ({len(tasks)} items)",
            branch=f"automated/development-{run_token}",
            body=self._render(self.proposal_template, tasks=tasks),
            task_ids=[task.id for task in tasks],
        )
