from typing import Mapping, Optional

from app.core.config import settings
from app.core.constants import SecurityEventTypeEnum, SeverityEnum
from app.core.exceptions import SecurityEventValidationError

EVENT_SEVERITY = {
    SecurityEventTypeEnum.FULLSCREEN_EXIT: SeverityEnum.HIGH,
    SecurityEventTypeEnum.COPY_ATTEMPT: SeverityEnum.HIGH,
    SecurityEventTypeEnum.PASTE_ATTEMPT: SeverityEnum.HIGH,
    SecurityEventTypeEnum.TAB_SWITCH: SeverityEnum.MEDIUM,
    SecurityEventTypeEnum.RIGHT_CLICK: SeverityEnum.MEDIUM,
    SecurityEventTypeEnum.WINDOW_BLUR: SeverityEnum.LOW,
    SecurityEventTypeEnum.WINDOW_FOCUS: SeverityEnum.LOW,
    SecurityEventTypeEnum.KEY_PRESS: SeverityEnum.LOW,
    SecurityEventTypeEnum.MOUSE_ACTIVITY: SeverityEnum.LOW,
}

# Attempt column incremented by each event type
EVENT_COUNTERS = {
    SecurityEventTypeEnum.TAB_SWITCH: "tab_switches",
    SecurityEventTypeEnum.COPY_ATTEMPT: "copy_attempts",
    SecurityEventTypeEnum.PASTE_ATTEMPT: "copy_attempts",
    SecurityEventTypeEnum.FULLSCREEN_EXIT: "full_screen_exits",
    SecurityEventTypeEnum.RIGHT_CLICK: "right_clicks",
}


def parse_event_type(event_type: str) -> SecurityEventTypeEnum:
    try:
        return SecurityEventTypeEnum(event_type)
    except ValueError:
        raise SecurityEventValidationError(
            f"Unknown security event type '{event_type}'.",
            details={"allowed": [e.value for e in SecurityEventTypeEnum]},
        )


def classify_severity(event_type: SecurityEventTypeEnum) -> SeverityEnum:
    return EVENT_SEVERITY.get(event_type, SeverityEnum.LOW)


def counter_for(event_type: SecurityEventTypeEnum) -> Optional[str]:
    return EVENT_COUNTERS.get(event_type)


def termination_reason(counters: Mapping[str, int], exam) -> Optional[str]:
    """Return why the attempt must be terminated, or None while it is within limits.

    ``exam`` only needs the enforcement flags, so an ORM row or schema both work.
    """
    full_screen_enforced = exam.full_screen_mode or exam.proctoring_enabled
    if full_screen_enforced and counters.get("full_screen_exits", 0) > settings.MAX_FULL_SCREEN_EXITS:
        return f"Full-screen exits exceeded the limit of {settings.MAX_FULL_SCREEN_EXITS}"

    if exam.detect_tab_switch and counters.get("tab_switches", 0) > settings.MAX_TAB_SWITCHES:
        return f"Tab switches exceeded the limit of {settings.MAX_TAB_SWITCHES}"

    if exam.prevent_copy_paste and counters.get("copy_attempts", 0) > settings.MAX_COPY_ATTEMPTS:
        return f"Copy/paste attempts exceeded the limit of {settings.MAX_COPY_ATTEMPTS}"

    return None
