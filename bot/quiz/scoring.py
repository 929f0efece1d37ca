from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from bot.quiz.models import AnswerSlot, Question, ScoreSummary, Mark


@dataclass(frozen=True)
class ScoringPolicy:
    """Points per outcome. The default is the usual +4 / -1 negative marking."""

    correct: int = 4
    incorrect: int = -1
    unattempted: int = 0


DEFAULT_POLICY = ScoringPolicy()


def score(
    questions: Sequence[Question],
    answers: Sequence[AnswerSlot],
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> ScoreSummary:
    if len(questions) != len(answers):
        raise ValueError(f"{len(answers)} answers for {len(questions)} questions")

    total = len(questions)
    unattempted = sum(1 for answer in answers if isinstance(answer, Mark))
    correct = sum(
        1
        for question, answer in zip(questions, answers)
        if not isinstance(answer, Mark) and answer == question.correct_option_index
    )
    attempted = total - unattempted
    incorrect = attempted - correct
    total_score = (
        correct * policy.correct
        + incorrect * policy.incorrect
        + unattempted * policy.unattempted
    )
    return ScoreSummary(
        total=total,
        attempted=attempted,
        correct=correct,
        incorrect=incorrect,
        unattempted=unattempted,
        total_score=total_score,
    )
