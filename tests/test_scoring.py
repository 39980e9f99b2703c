"""Tests for score aggregation."""

import pytest

from quiz_engine.db.models import AnswerRecord
from quiz_engine.services.scoring import aggregate, round_half_up


def _q(points: int) -> dict:
    return {"points": points}


def _answer(points: int | None, manual: bool = False) -> AnswerRecord:
    return AnswerRecord(awarded_points=points, requires_manual_grading=manual)


@pytest.mark.parametrize(
    "value,expected",
    [(0.5, 1), (1.5, 2), (2.5, 3), (66.666, 67), (33.333, 33), (84.5, 85), (0.0, 0)],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


class TestAggregate:
    def test_sums_awarded_points(self):
        grade = aggregate([_q(5), _q(5)], [_answer(5), _answer(0)], 50)
        assert grade.total_points == 5
        assert grade.max_points == 10
        assert grade.percentage == 50
        assert grade.passed is True

    def test_unanswered_questions_count_toward_max(self):
        grade = aggregate([_q(4), _q(4), _q(2)], [_answer(4)], 70)
        assert grade.max_points == 10
        assert grade.percentage == 40
        assert grade.passed is False

    def test_pending_manual_answers(self):
        grade = aggregate([_q(5), _q(5)], [_answer(5), _answer(None, manual=True)], 70)
        assert grade.total_points == 5
        assert grade.pending_manual_count == 1
        assert grade.grading_complete is False

    def test_graded_manual_answer_is_not_pending(self):
        grade = aggregate([_q(5), _q(5)], [_answer(5), _answer(4, manual=True)], 70)
        assert grade.total_points == 9
        assert grade.percentage == 90
        assert grade.pending_manual_count == 0
        assert grade.grading_complete is True

    def test_percentage_rounds_half_up(self):
        # 5/8 = 62.5%
        grade = aggregate([_q(8)], [_answer(5)], 0)
        assert grade.percentage == 63

    def test_empty_quiz_scores_zero(self):
        grade = aggregate([], [], 0)
        assert grade.max_points == 0
        assert grade.percentage == 0
        assert grade.passed is True

    def test_pass_threshold_is_inclusive(self):
        grade = aggregate([_q(10)], [_answer(7)], 70)
        assert grade.passed is True

    def test_aggregation_is_idempotent(self):
        questions = [_q(3), _q(7)]
        answers = [_answer(3), _answer(None, manual=True)]
        assert aggregate(questions, answers, 60) == aggregate(questions, answers, 60)

    def test_exact_half_percentage_rounds_up(self):
        # 29/200 = 14.5% exactly
        grade = aggregate([_q(200)], [_answer(29)], 15)
        assert grade.percentage == 15
        assert grade.passed is True
