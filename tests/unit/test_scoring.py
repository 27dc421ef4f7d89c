from app.services.scoring import aggregate_score, apply_late_penalty, compute_percentage, resolve_grade

GRADE_SCALE = [
    {"grade": "F", "min_percentage": 0},
    {"grade": "A", "min_percentage": 70},
    {"grade": "C", "min_percentage": 50},
]


def test_percentage_is_zero_when_there_are_no_marks():
    assert compute_percentage(0, 0) == 0.0
    assert compute_percentage(5, 0) == 0.0


def test_percentage_is_rounded_to_two_places():
    assert compute_percentage(1, 3) == 33.33
    assert compute_percentage(2, 3) == 66.67


def test_one_right_one_wrong_out_of_ten():
    summary = aggregate_score([5, 0], total_marks=10, pass_mark=60)

    assert summary.score == 5
    assert summary.percentage == 50.0
    assert summary.passed is False


def test_negative_marking_total():
    summary = aggregate_score([5, -1.25], total_marks=10, pass_mark=60)

    assert summary.score == 3.75
    assert summary.percentage == 37.5


def test_negative_totals_are_kept_without_a_floor():
    summary = aggregate_score([-1.25, -1.25], total_marks=10, pass_mark=50)

    assert summary.score == -2.5
    assert summary.percentage == -25.0
    assert summary.passed is False


def test_floor_clamps_negative_totals():
    summary = aggregate_score([-1.25, -1.25], total_marks=10, pass_mark=50, score_floor=0)

    assert summary.raw_score == -2.5
    assert summary.score == 0
    assert summary.percentage == 0


def test_late_penalty_targets_positive_scores_only():
    assert apply_late_penalty(10, 10) == 9
    assert apply_late_penalty(-2, 10) == -2
    assert apply_late_penalty(0, 10) == 0
    assert apply_late_penalty(10, 0) == 10


def test_late_penalty_is_applied_once_to_the_score():
    summary = aggregate_score([5, 5], total_marks=10, pass_mark=50, late_penalty_percentage=20)

    assert summary.raw_score == 10
    assert summary.score == 8
    assert summary.percentage == 80
    assert summary.late_penalty_applied == 20


def test_grade_scale_is_evaluated_from_the_top_band_down():
    assert resolve_grade(85, GRADE_SCALE) == "A"
    assert resolve_grade(70, GRADE_SCALE) == "A"
    assert resolve_grade(69.99, GRADE_SCALE) == "C"
    assert resolve_grade(10, GRADE_SCALE) == "F"
    assert resolve_grade(-5, GRADE_SCALE) is None
    assert resolve_grade(50, None) is None


def test_adding_a_correct_answer_never_lowers_the_score():
    before = aggregate_score([5, -1.25], total_marks=15, pass_mark=50)
    after = aggregate_score([5, -1.25, 5], total_marks=15, pass_mark=50)

    assert after.score >= before.score
