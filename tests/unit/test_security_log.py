import pytest
from types import SimpleNamespace

from app.core.config import settings
from app.core.constants import SecurityEventTypeEnum, SeverityEnum
from app.core.exceptions import SecurityEventValidationError
from app.services.security_log import classify_severity, counter_for, parse_event_type, termination_reason


def _exam(**flags):
    defaults = dict(full_screen_mode=True, proctoring_enabled=False, detect_tab_switch=True, prevent_copy_paste=True)
    defaults.update(flags)
    return SimpleNamespace(**defaults)


def test_severity_map():
    assert classify_severity(SecurityEventTypeEnum.FULLSCREEN_EXIT) == SeverityEnum.HIGH
    assert classify_severity(SecurityEventTypeEnum.PASTE_ATTEMPT) == SeverityEnum.HIGH
    assert classify_severity(SecurityEventTypeEnum.TAB_SWITCH) == SeverityEnum.MEDIUM
    assert classify_severity(SecurityEventTypeEnum.WINDOW_BLUR) == SeverityEnum.LOW


def test_copy_and_paste_share_a_counter():
    assert counter_for(SecurityEventTypeEnum.COPY_ATTEMPT) == "copy_attempts"
    assert counter_for(SecurityEventTypeEnum.PASTE_ATTEMPT) == "copy_attempts"
    assert counter_for(SecurityEventTypeEnum.MOUSE_ACTIVITY) is None


def test_unknown_event_type_is_rejected():
    with pytest.raises(SecurityEventValidationError) as exc_info:
        parse_event_type("screenshot")
    assert "tab_switch" in exc_info.value.details["allowed"]


def test_thresholds_are_strictly_greater_than():
    exam = _exam()

    assert termination_reason({"tab_switches": settings.MAX_TAB_SWITCHES}, exam) is None
    assert termination_reason({"tab_switches": settings.MAX_TAB_SWITCHES + 1}, exam) is not None
    assert termination_reason({"full_screen_exits": settings.MAX_FULL_SCREEN_EXITS + 1}, exam) is not None
    assert termination_reason({"copy_attempts": settings.MAX_COPY_ATTEMPTS + 1}, exam) is not None


def test_thresholds_only_apply_when_enforced():
    exam = _exam(full_screen_mode=False, detect_tab_switch=False, prevent_copy_paste=False)
    counters = {"tab_switches": 50, "full_screen_exits": 50, "copy_attempts": 50}

    assert termination_reason(counters, exam) is None
    assert termination_reason(counters, _exam(full_screen_mode=False, detect_tab_switch=False,
                                              prevent_copy_paste=False, proctoring_enabled=True)) is not None
