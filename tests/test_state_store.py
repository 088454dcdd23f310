from __future__ import annotations

import pytest

from pi5_installer.state_store import (
    completed_steps,
    ensure_defaults,
    is_step_completed,
    load_state,
    mark_step_completed,
    record_error,
    save_state,
)


def test_missing_state_is_empty(tmp_path):
    assert load_state(str(tmp_path / "state.json")) == {}


@pytest.mark.parametrize("name", ["state.json", "state.yaml"])
def test_save_and_load(tmp_path, name):
    path = str(tmp_path / "nested" / name)
    state = ensure_defaults({})
    state["selection"] = {"image": "haos_rpi5-64-16.0.img.xz"}
    mark_step_completed(state, "10_check_dependencies")

    save_state(path, state)
    loaded = load_state(path)

    assert loaded["selection"]["image"] == "haos_rpi5-64-16.0.img.xz"
    assert is_step_completed(loaded, "10_check_dependencies")


def test_non_mapping_state_rejected(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_state(str(path))


def test_defaults_keep_recorded_values():
    state = ensure_defaults({"execution": {"completed_steps": ["10_check_dependencies"]}})
    assert state["version"] == 1
    assert state["execution"]["errors"] == []
    assert state["execution"]["completed_steps"] == ["10_check_dependencies"]


def test_mark_step_completed_is_idempotent():
    state = {}
    mark_step_completed(state, "30_select_image")
    mark_step_completed(state, "30_select_image")
    assert state["execution"]["completed_steps"] == ["30_select_image"]


def test_record_error_uses_current_step():
    state = ensure_defaults({})
    state["execution"]["current_step"] = "60_build_initramfs"
    record_error(state, RuntimeError("busybox build failed"))
    assert state["execution"]["errors"] == [{"step": "60_build_initramfs", "error": "busybox build failed"}]


def test_completed_steps_on_empty_state():
    assert completed_steps({}) == []
    assert completed_steps({"execution": {"completed_steps": ["10_check_dependencies"]}}) == ["10_check_dependencies"]
