import asyncio

import pytest

from config.models import Config, DocumentConfig, StorageConfig, ValidationConfig
from core.contracts.models import Analysis
from core.harness import CheckStatus, ValidationHarness
from core.pipeline import ContinuousAgent
from core.storage import FileArtifactStore
from core.synthesizer import TaskSynthesizer
from tests.factories import FIXED_NOW, FakeSource, make_record


@pytest.fixture
def workspace(tmp_path, readme_text):
    readme = tmp_path / "README.md"
    readme.write_text(readme_text, encoding="utf-8")
    config = Config(
        document=DocumentConfig(path=str(readme)),
        storage=StorageConfig(workflow_dir=str(tmp_path / "agent-workflow")),
        validation=ValidationConfig(required_files=[str(readme)]),
    )
    store = FileArtifactStore(config.storage.workflow_dir, config.document.path)
    return config, store


@pytest.fixture
def completed_run(workspace):
    config, store = workspace
    source = FakeSource([make_record(7, ["notebooks/demo.ipynb"])])
    agent = ContinuousAgent(config, source=source, store=store, clock=lambda: FIXED_NOW)
    return asyncio.run(agent.run())


def task_payload(**overrides):
    payload = {
        "id": "general-improve-abc-1",
        "createdAt": "2025-01-03T12:00:00Z",
        "title": "General codebase improvements",
        "description": "Review and improve code quality",
        "category": "maintenance",
        "priority": "medium",
        "estimatedHours": 2,
        "targetFiles": ["README.md"],
    }
    payload.update(overrides)
    return payload


def test_passes_on_artifacts_of_a_real_run(workspace, completed_run):
    config, store = workspace

    report = ValidationHarness(config, store=store).run()

    assert report.ok, report.failures()
    assert report.warnings == 0
    assert report.passed >= 7


def test_missing_artifacts_are_warnings(workspace):
    config, store = workspace

    report = ValidationHarness(config, store=store).run()

    assert report.ok
    assert report.warnings == 4


def test_missing_required_file_fails(workspace, tmp_path):
    config, store = workspace
    config.validation.required_files = [str(tmp_path / "nope.md")]

    report = ValidationHarness(config, store=store).run()

    assert not report.ok
    assert any("Required file missing" in message for message in report.failures())


def test_wrong_hour_total_fails(workspace, completed_run):
    config, store = workspace
    text = store.read_document().replace("Total estimated hours: 6h", "Total estimated hours: 9h")
    harness = ValidationHarness(config, store=store)

    harness.check_document(text, completed_run.tasks)

    assert harness.report.failures() == ["Status section reports 9h in total, tasks add up to 6h"]


def test_missing_and_duplicate_marker_fail(workspace, completed_run):
    config, store = workspace
    text = store.read_document()
    harness = ValidationHarness(config, store=store)

    harness.check_document(text.replace(config.document.marker, "## Renamed"), completed_run.tasks)
    harness.check_document(text + "\n" + config.document.marker + "\n", completed_run.tasks)

    assert "Document is missing the status section marker" in harness.report.failures()
    assert "Document contains the status section marker 2 times" in harness.report.failures()


def test_missing_task_title_fails(workspace, completed_run):
    config, store = workspace
    harness = ValidationHarness(config, store=store)

    harness.check_document(store.read_document().replace("Add error handling to notebook", "???"), completed_run.tasks)

    assert harness.report.failed == 1


def test_task_title_outside_the_status_section_does_not_count(workspace, completed_run):
    config, store = workspace
    title = "Add error handling to notebook"
    text = store.read_document().replace(title, "???") + f"\nRoadmap: {title}\n"
    harness = ValidationHarness(config, store=store)

    harness.check_document(text, completed_run.tasks)

    assert harness.report.failures() == [f"Status section is missing task titles: {[title]}"]


def test_duplicate_task_ids_fail():
    harness = ValidationHarness(Config())

    tasks = harness.check_tasks([task_payload(), task_payload()])

    assert len(tasks) == 2
    assert harness.report.failures()[0].startswith("Task ids are not unique")


def test_empty_and_malformed_task_lists_fail():
    harness = ValidationHarness(Config())

    harness.check_tasks([])
    harness.check_tasks({"tasks": []})
    harness.check_tasks([task_payload(estimatedHours=0)])

    assert harness.report.failed == 3
    assert harness.report.passed == 0


def test_analysis_invariants_are_checked():
    harness = ValidationHarness(Config())
    records = [make_record(n, []).model_dump(mode="json", by_alias=True) for n in range(1, 4)]

    assert harness.check_analysis({"timestamp": "2025-01-03T12:00:00Z", "totalCount": 2, "recentRecords": records}) is None
    assert harness.check_analysis({"timestamp": "2025-01-03T12:00:00Z", "totalCount": 3, "recentRecords": records})
    assert harness.report.failed == 1
    assert harness.report.passed == 1


def test_analysis_error_is_a_warning():
    harness = ValidationHarness(Config())

    harness.check_analysis(Analysis.empty(error="rate limited", timestamp=FIXED_NOW).model_dump(mode="json", by_alias=True))

    assert [result.status for result in harness.report.results] == [CheckStatus.PASS, CheckStatus.WARN]


def test_check_fallback():
    harness = ValidationHarness(Config())
    harness.check_fallback()
    assert harness.report.passed == 1

    class NoTasks(TaskSynthesizer):
        def generate(self, analysis):
            return []

    harness.check_fallback(NoTasks())
    assert harness.report.failures() == ["Synthesizer produced no tasks for an empty analysis"]
