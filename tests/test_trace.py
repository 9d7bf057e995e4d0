"""
Tests for step records and the run trace.
"""

import pytest

from clawflows.trace import StepRecord, Trace, utc_now


class TestStepRecord:
    def test_skip(self):
        record = StepRecord.skip("gate", "condition not met")
        assert record.to_dict() == {"name": "gate", "skipped": True, "reason": "condition not met"}

    def test_capability_keys(self):
        record = StepRecord(name="s", capability="web-search", method="query", args={"q": 1}, dry_run=True)
        assert record.to_dict() == {
            "name": "s",
            "capability": "web-search",
            "method": "query",
            "args": {"q": 1},
            "dryRun": True,
        }

    def test_template_keys(self):
        assert StepRecord(name="t", action="template", output_length=7).to_dict() == {
            "name": "t",
            "action": "template",
            "outputLength": 7,
        }

    def test_result_only_when_present(self):
        assert "result" not in StepRecord(name="e", action="evaluate", error="boom").to_dict()
        assert StepRecord(name="e", result=0, has_result=True).to_dict() == {"name": "e", "result": 0}


class TestTrace:
    def test_lifecycle(self):
        trace = Trace(automation="demo")
        trace.append(StepRecord(name="a"))
        trace.append(StepRecord.skip("b", "condition not met"))
        trace.append(StepRecord(name="c", capability="x", dry_run=True))

        assert not trace.finished
        trace.finish()
        assert trace.finished

        assert [r.name for r in trace.skipped] == ["b"]
        assert [r.name for r in trace.completed] == ["a"]
        assert trace.record("c").capability == "x"
        assert trace.record("zzz") is None

    def test_finish_twice(self):
        trace = Trace(automation="demo")
        trace.finish()
        with pytest.raises(RuntimeError):
            trace.finish()

    def test_append_after_finish(self):
        trace = Trace(automation="demo")
        trace.finish()
        with pytest.raises(RuntimeError):
            trace.append(StepRecord(name="late"))

    def test_to_dict(self):
        trace = Trace(automation="demo", dry_run=True)
        trace.append(StepRecord(name="a"))
        data = trace.to_dict()

        assert data["automation"] == "demo"
        assert data["dryRun"] is True
        assert data["steps"] == [{"name": "a"}]
        assert "completedAt" not in data

        trace.finish()
        assert trace.to_dict()["completedAt"] == trace.completed_at

    def test_utc_now_format(self):
        stamp = utc_now()
        assert stamp.endswith("Z")
        assert "." in stamp
