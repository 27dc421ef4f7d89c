from enum import Enum


class RoleEnum(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"

class ExamStatusEnum(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"

class ExamTypeEnum(str, Enum):
    PRACTICE = "practice"
    QUIZ = "quiz"
    MIDTERM = "midterm"
    FINAL = "final"
    ASSIGNMENT = "assignment"

class TimingModeEnum(str, Enum):
    WHOLE_EXAM = "whole_exam"
    PER_QUESTION = "per_question"
    HYBRID = "hybrid"

class DifficultyEnum(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

class QuestionTypeEnum(str, Enum):
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    ESSAY = "essay"

# Question kinds that a grader may score by hand
MANUALLY_GRADABLE_TYPES = (QuestionTypeEnum.SHORT_ANSWER, QuestionTypeEnum.ESSAY)

class ExamAttemptStatusEnum(str, Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    AUTO_SUBMITTED = "auto_submitted"
    TERMINATED = "terminated"
    ABANDONED = "abandoned"
    GRADED = "graded"

TERMINAL_ATTEMPT_STATUSES = (
    ExamAttemptStatusEnum.SUBMITTED,
    ExamAttemptStatusEnum.AUTO_SUBMITTED,
    ExamAttemptStatusEnum.TERMINATED,
    ExamAttemptStatusEnum.ABANDONED,
    ExamAttemptStatusEnum.GRADED,
)

GRADEABLE_ATTEMPT_STATUSES = (
    ExamAttemptStatusEnum.SUBMITTED,
    ExamAttemptStatusEnum.AUTO_SUBMITTED,
    ExamAttemptStatusEnum.TERMINATED,
    ExamAttemptStatusEnum.GRADED,
)

class GradingMethodEnum(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    HYBRID = "hybrid"

class SecurityEventTypeEnum(str, Enum):
    TAB_SWITCH = "tab_switch"
    FULLSCREEN_EXIT = "fullscreen_exit"
    COPY_ATTEMPT = "copy_attempt"
    PASTE_ATTEMPT = "paste_attempt"
    RIGHT_CLICK = "right_click"
    WINDOW_BLUR = "window_blur"
    WINDOW_FOCUS = "window_focus"
    KEY_PRESS = "key_press"
    MOUSE_ACTIVITY = "mouse_activity"

class SeverityEnum(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

class PolicyReasonEnum(str, Enum):
    EXAM_NOT_AVAILABLE = "EXAM_NOT_AVAILABLE"
    NOT_ASSIGNED = "NOT_ASSIGNED"
    MAX_ATTEMPTS_REACHED = "MAX_ATTEMPTS_REACHED"
    ATTEMPT_IN_PROGRESS = "ATTEMPT_IN_PROGRESS"
