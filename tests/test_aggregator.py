"""
Unit Tests for response aggregation
"""
import json

import pytest

from classresponse.app.services.aggregator import aggregate_question, aggregate_responses, rating_value
from classresponse.db.models import QuestionType, ResponseStatus, SessionQuestion, SessionResponse


def _question(qid, qtype=QuestionType.rating, category=None, scale=None, options=None):
    return SessionQuestion(
        session_question_id=qid,
        session_id="s1",
        question_text=f"Question {qid}",
        question_type=qtype,
        category=category,
        scale=scale if scale is not None else (5 if qtype == QuestionType.rating else None),
        meta_json=json.dumps({"options": options}) if options else None,
        is_required=False,
        position=0,
    )


def _response(answers, status=ResponseStatus.submitted):
    return SessionResponse(
        session_id="s1",
        anonymous_id="anon",
        answers_json=json.dumps(answers),
        completion_time_seconds=30,
        status=status,
    )


class TestRatingAggregation:
    """Tests for rating questions"""

    def test_average_and_distribution(self):
        question = _question("q1")

        stats, ratings = aggregate_question(question, [5, 4, 5, 3, 5])

        assert stats.average == 4.4
        assert stats.response_count == 5
        assert stats.distribution == {"1": 0, "2": 0, "3": 1, "4": 1, "5": 3}
        assert ratings == [5.0, 4.0, 5.0, 3.0, 5.0]

    def test_out_of_range_and_non_numeric_values_are_ignored(self):
        question = _question("q1")

        stats, _ = aggregate_question(question, [5, 9, 0, "x", None, True, "4"])

        assert stats.response_count == 2
        assert stats.average == 4.5

    def test_custom_scale_distribution_keys(self):
        stats, _ = aggregate_question(_question("q1", scale=10), [10, 7])

        assert list(stats.distribution) == [str(i) for i in range(1, 11)]
        assert stats.distribution["10"] == 1

    def test_no_answers_average_is_zero(self):
        stats, ratings = aggregate_question(_question("q1"), [])

        assert stats.average == 0.0
        assert ratings == []

    @pytest.mark.parametrize("value,expected", [(3, 3.0), ("2.5", 2.5), (False, None), (6, None)])
    def test_rating_value(self, value, expected):
        assert rating_value(value, 5) == expected


class TestOtherQuestionTypes:
    """Tests for yes/no, multiple-choice and text questions"""

    def test_yes_no_buckets(self):
        stats, ratings = aggregate_question(_question("q", QuestionType.yes_no), [True, "yes", False, "No", "maybe"])

        assert stats.distribution == {"Yes": 2, "No": 2}
        assert stats.response_count == 4
        assert ratings == []

    def test_multiple_choice_counts_every_option(self):
        question = _question("q", QuestionType.multiple_choice, options=["Slow", "Right", "Fast"])

        stats, _ = aggregate_question(question, ["Right", "Right", "Fast"])

        assert stats.distribution == {"Slow": 0, "Right": 2, "Fast": 1}

    def test_text_answers_listed_and_previewed(self):
        question = _question("q", QuestionType.text)
        answers = [f"comment {i}" for i in range(15)] + ["   "]

        full, _ = aggregate_question(question, answers)
        preview, _ = aggregate_question(question, answers, text_preview_limit=10)

        assert full.response_count == 15
        assert len(full.text_responses) == 15
        assert preview.text_responses == [f"comment {i}" for i in range(10)]


class TestSessionAggregation:
    """Tests for session-level statistics"""

    def test_pooled_average_across_rating_questions(self):
        questions = [
            _question("q1", category="instructor"),
            _question("q2", category="content"),
            _question("q3", QuestionType.text),
        ]
        responses = [
            _response({"q1": 5, "q2": 3, "q3": "Great"}),
            _response({"q1": 4, "q2": 2}),
        ]

        analytics = aggregate_responses("s1", questions, responses)

        assert analytics.total_responses == 2
        assert analytics.average_rating == 3.5
        assert analytics.category_averages == {"instructor": 4.5, "content": 2.5}
        assert analytics.completion_rate == 100.0
        assert [q.question_id for q in analytics.per_question] == ["q1", "q2", "q3"]

    def test_drafts_are_excluded(self):
        questions = [_question("q1")]
        responses = [
            _response({"q1": 5}),
            _response({"q1": 1}, status=ResponseStatus.draft),
        ]

        analytics = aggregate_responses("s1", questions, responses)

        assert analytics.total_responses == 1
        assert analytics.average_rating == 5.0

    def test_no_responses(self):
        analytics = aggregate_responses("s1", [_question("q1")], [])

        assert analytics.total_responses == 0
        assert analytics.average_rating == 0.0
        assert analytics.completion_rate == 0.0

    def test_uncategorized_ratings_are_grouped(self):
        analytics = aggregate_responses("s1", [_question("q1")], [_response({"q1": 4})])

        assert analytics.category_averages == {"uncategorized": 4.0}
