"""
Tests for installed automations, installs from the registry, run logs and
schedule/publish helpers.
"""

import json

import pytest

from clawflows.catalog import install_automation, list_installed
from clawflows.dsl import automation, from_dict, notify
from clawflows.logs import log_files, read_logs, save_log
from clawflows.registry import RegistryError
from clawflows.runner import FlowError
from clawflows.schedule import disable_instructions, enable_instructions, job_name, publish_metadata
from clawflows.trace import StepRecord, Trace

SIMPLE = "name: simple\ndescription: Says hi\nsteps:\n  - action: notify\n    message: hi\n"


class FakeClient:
    """Stands in for RegistryClient."""

    def __init__(self, metadata=None, content=SIMPLE):
        self.metadata = metadata
        self.content = content
        self.downloads = 0

    def fetch_metadata(self, name):
        return self.metadata

    def fetch_automation(self, name):
        self.downloads += 1
        return self.content


class TestListInstalled:
    def test_missing_directory(self, tmp_path):
        assert list_installed(tmp_path / "nope") == []

    def test_lists_yaml_files_sorted(self, tmp_path):
        (tmp_path / "b.yaml").write_text(
            "description: Bee\nrequires: [web-search]\ntrigger:\n  schedule: '0 9 * * *'\nsteps: []\n"
        )
        (tmp_path / "a.yml").write_text(SIMPLE)
        (tmp_path / "notes.txt").write_text("ignored")
        (tmp_path / "broken.yaml").write_text("- just\n- a list\n")

        items = list_installed(tmp_path)

        assert [i.name for i in items] == ["a", "b", "broken"]
        assert items[0].description == "Says hi"
        assert items[1].schedule == "0 9 * * *"
        assert items[1].requires == ["web-search"]
        assert items[2].error
        assert items[2].description is None


class TestInstall:
    def test_installs(self, tmp_path, index):
        client = FakeClient(metadata={"requires": ["web-search"], "schedule": "0 * * * *"})
        result = install_automation(client, "simple", tmp_path / "autos", index)

        assert result.installed
        assert result.schedule == "0 * * * *"
        assert result.path.read_text() == SIMPLE

    def test_existing_without_force(self, tmp_path, index):
        (tmp_path / "simple.yaml").write_text("old")
        client = FakeClient(metadata={})

        result = install_automation(client, "simple", tmp_path, index)

        assert not result.installed
        assert client.downloads == 0
        assert (tmp_path / "simple.yaml").read_text() == "old"

    def test_force_overwrites(self, tmp_path, index):
        (tmp_path / "simple.yaml").write_text("old")
        result = install_automation(FakeClient(metadata={}), "simple", tmp_path, index, force=True)

        assert result.installed
        assert (tmp_path / "simple.yaml").read_text() == SIMPLE

    def test_unknown_automation(self, tmp_path, index):
        with pytest.raises(RegistryError) as excinfo:
            install_automation(FakeClient(metadata=None), "ghost", tmp_path, index)
        assert excinfo.value.status == 404

    def test_missing_capabilities(self, tmp_path, index):
        client = FakeClient(metadata={"requires": ["web-search", {"capability": "charts"}]})

        with pytest.raises(FlowError) as excinfo:
            install_automation(client, "simple", tmp_path, index)

        assert excinfo.value.kind == "missing_requirement"
        assert excinfo.value.details["missing"] == ["charts"]
        assert not (tmp_path / "simple.yaml").exists()

    def test_skip_check(self, tmp_path, index):
        client = FakeClient(metadata={"requires": ["charts"]})
        result = install_automation(client, "simple", tmp_path, index, skip_check=True)

        assert result.installed
        assert result.missing == ["charts"]


class TestLogs:
    def test_save_and_read(self, tmp_path):
        trace = Trace(automation="demo")
        trace.append(StepRecord(name="a", action="notify", message="hi"))
        trace.append(StepRecord.skip("b", "condition not met"))
        trace.finish()

        path = save_log(trace, "demo", tmp_path)

        assert path.parent == tmp_path / "demo"
        assert json.loads(path.read_text())["automation"] == "demo"

        [summary] = read_logs("demo", tmp_path)
        assert summary.file == path.name
        assert summary.step_count == 2
        assert summary.completed == 1
        assert summary.skipped == 1
        assert summary.duration_ms is not None and summary.duration_ms >= 0
        assert not summary.error

    def test_newest_first_and_last(self, tmp_path):
        log_dir = tmp_path / "demo"
        log_dir.mkdir()
        for stamp in ("2024-01-01T00-00-00-000Z", "2024-03-01T00-00-00-000Z", "2024-02-01T00-00-00-000Z"):
            (log_dir / f"{stamp}.json").write_text(json.dumps({"startedAt": stamp, "steps": []}))

        files = log_files("demo", tmp_path)
        assert [f.name[:10] for f in files] == ["2024-03-01", "2024-02-01", "2024-01-01"]
        assert len(read_logs("demo", tmp_path, last=2)) == 2

    def test_unreadable_log(self, tmp_path):
        (tmp_path / "demo").mkdir()
        (tmp_path / "demo" / "bad.json").write_text("{not json")

        [summary] = read_logs("demo", tmp_path)
        assert summary.error

    def test_no_logs(self, tmp_path):
        assert log_files("demo", tmp_path) == []
        assert read_logs("demo", tmp_path) == []


class TestSchedule:
    def test_enable_without_schedule(self):
        assert enable_instructions("x", automation("x", notify("n", "hi"))) is None

    def test_enable_with_schedule(self):
        auto = automation("x", trigger={"schedule": "0 9 * * *"})
        text = enable_instructions("x", auto)

        assert f'name: "{job_name("x")}"' in text
        assert 'schedule: "0 9 * * *"' in text
        assert "clawflows run x" in text

    def test_disable(self):
        assert 'cron remove --name "clawflows-x"' in disable_instructions("x")

    def test_publish_metadata_defaults(self):
        metadata = publish_metadata(automation("x", requires=["web-search"]))

        assert metadata["requires"] == ["web-search"]
        assert metadata["trigger"] == "manual"
        assert "schedule" not in metadata
        assert metadata["author"] == "your-github-username"

    def test_publish_metadata_from_document(self):
        auto = from_dict({
            "name": "x",
            "author": "me",
            "version": 2,
            "tags": ["a"],
            "trigger": {"schedule": "@daily"},
        })
        metadata = publish_metadata(auto)

        assert metadata["author"] == "me"
        assert metadata["version"] == "2"
        assert metadata["tags"] == ["a"]
        assert metadata["trigger"] == "schedule"
        assert metadata["schedule"] == "@daily"
