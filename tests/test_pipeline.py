from __future__ import annotations

import pytest

from pi5_installer.config import InstallerConfig
from pi5_installer.pipeline import run_pipeline
from pi5_installer.state_store import ensure_defaults


class RecordingStep:
    def __init__(self, step_id, log, always_run=False):
        self.step_id = step_id
        self.always_run = always_run
        self._log = log

    def run(self, state, cfg):
        self._log.append(self.step_id)
        state.setdefault("seen", []).append(self.step_id)
        return state


def _steps(log):
    return [
        RecordingStep("10_a", log),
        RecordingStep("20_session", log, always_run=True),
        RecordingStep("30_b", log),
        RecordingStep("40_c", log),
    ]


def test_runs_all_and_records_completion():
    log = []
    result = run_pipeline(state=ensure_defaults({}), steps=_steps(log), cfg=InstallerConfig())
    assert log == ["10_a", "20_session", "30_b", "40_c"]
    assert result.state["execution"]["completed_steps"] == log
    assert result.state["execution"]["current_step"] is None


def test_resume_skips_completed_but_not_session_steps():
    state = ensure_defaults({})
    state["execution"]["completed_steps"] = ["10_a", "20_session", "30_b"]
    log = []

    result = run_pipeline(state=state, steps=_steps(log), cfg=InstallerConfig())

    assert log == ["20_session", "40_c"]
    assert result.skipped_steps == ["10_a", "30_b"]


def test_force_reruns_everything():
    state = ensure_defaults({})
    state["execution"]["completed_steps"] = ["10_a", "20_session", "30_b", "40_c"]
    log = []
    run_pipeline(state=state, steps=_steps(log), cfg=InstallerConfig(), force=True)
    assert log == ["10_a", "20_session", "30_b", "40_c"]


def test_start_at_and_stop_after():
    log = []
    result = run_pipeline(
        state=ensure_defaults({}),
        steps=_steps(log),
        cfg=InstallerConfig(),
        start_at="30_b",
        stop_after="30_b",
    )
    # session-bound steps still run before the start point
    assert log == ["20_session", "30_b"]
    assert result.ran_steps == ["20_session", "30_b"]


def test_failure_leaves_current_step():
    class Boom:
        step_id = "50_boom"

        def run(self, state, cfg):
            raise RuntimeError("boom")

    state = ensure_defaults({})
    with pytest.raises(RuntimeError, match="boom"):
        run_pipeline(state=state, steps=[Boom()], cfg=InstallerConfig())
    assert state["execution"]["current_step"] == "50_boom"
    assert "50_boom" not in state["execution"]["completed_steps"]
