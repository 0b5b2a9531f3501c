import unittest
from pathlib import Path
import tempfile

from core.contracts.models import Task
from core.formatter.jinja_formatter import StatusFormatter, format_hours
from core.patcher import SectionPatcher
from tests.factories import FIXED_NOW
from utils.errors import FormatterError


def make_task(task_id, title, category, hours, files):
    return Task(
        id=task_id,
        created_at=FIXED_NOW,
        title=title,
        description=f"{title} description",
        category=category,
        priority="medium",
        estimated_hours=hours,
        target_files=files,
    )


class TestStatusFormatter(unittest.TestCase):
    def setUp(self):
        self.tasks = [
            make_task("doc-update-1", "Test Documentation Update", "documentation", 2, ["README.md"]),
            make_task("notebook-enhance-2", "Test Feature Addition", "feature", 5, ["src/test.js"]),
        ]
        self.formatter = StatusFormatter()

    def test_render_section(self):
        section = self.formatter.render_section(self.tasks, now=FIXED_NOW)

        self.assertTrue(section.startswith("## 🤖 Automated Development Status\n\n"))
        self.assertIn("*Last updated: 2025-01-03 12:00:00 UTC by Continuous Coding Agent*", section)
        self.assertIn("1. **Test Documentation Update**\n   - Type: documentation\n", section)
        self.assertIn("2. **Test Feature Addition**", section)
        self.assertIn("   - Estimated: 5h\n", section)
        self.assertIn("- Active tasks: 2\n", section)
        self.assertIn("- Total estimated hours: 7h\n", section)
        self.assertTrue(section.endswith(
            "*This section is automatically maintained by the continuous coding agent workflow.*\n"
        ))

    def test_render_section_without_tasks(self):
        section = self.formatter.render_section([], now=FIXED_NOW)

        self.assertIn("### ✅ No Active Tasks", section)
        self.assertNotIn("Total estimated hours", section)

    def test_section_is_accepted_by_patcher(self):
        section = self.formatter.render_section(self.tasks, now=FIXED_NOW)
        patcher = SectionPatcher("## 🤖 Automated Development Status")

        patcher.validate_section(section)
        self.assertEqual(patcher.extract(patcher.patch("# Readme\n", section)), section)

    def test_subheadings_follow_marker_level(self):
        formatter = StatusFormatter(marker="### Status")

        section = formatter.render_section(self.tasks, now=FIXED_NOW)

        self.assertTrue(section.startswith("### Status\n"))
        self.assertIn("#### 🎯 Current Development Tasks", section)
        SectionPatcher("### Status").validate_section(section)

    def test_render_proposal(self):
        proposal = self.formatter.render_proposal(self.tasks, run_token="abc12345")

        self.assertEqual(proposal.title, "🤖 Automated Development Tasks (2 items)")
        self.assertEqual(proposal.branch, "automated/development-abc12345")
        self.assertEqual(proposal.task_ids, ["doc-update-1", "notebook-enhance-2"])
        self.assertIn("#### 1. Test Documentation Update\n- **Type**: documentation\n", proposal.body)
        self.assertIn("- **Files**: src/test.js\n", proposal.body)
        self.assertIn("- **Estimated Time**: 5 hours", proposal.body)

    def test_template_not_found(self):
        formatter = StatusFormatter(section_template="non_existent_template.j2")
        with self.assertRaises(FormatterError):
            formatter.render_section(self.tasks)

    def test_custom_template_dir(self):
        with tempfile.TemporaryDirectory() as template_dir:
            (Path(template_dir) / "custom.j2").write_text(
                "{{ marker }}\n\n{{ tasks | length }} tasks, {{ total_hours | hours }}h\n", encoding="utf-8"
            )
            formatter = StatusFormatter(template_dir=template_dir, section_template="custom.j2")

            section = formatter.render_section(self.tasks, now=FIXED_NOW)

        self.assertEqual(section, "## 🤖 Automated Development Status\n\n2 tasks, 7h\n")

    def test_format_hours(self):
        self.assertEqual(format_hours(2.0), "2")
        self.assertEqual(format_hours(2.5), "2.5")


if __name__ == "__main__":
    unittest.main()
