import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.orm import selectinload

from db.models.answers import Answer
from db.models.submissions import Submission

from .grading_engine import grade
from .scoring import keeps_manual_points, recompute_score, settle_manual_points

logger = logging.getLogger(__name__)


@dataclass
class RegradeReport:
    exam_id: int
    submissions: int = 0
    answers_regraded: int = 0
    answers_kept: int = 0
    scores_changed: int = 0


def regrade(session, exam_id: int, question_ids: Optional[Iterable[int]] = None) -> RegradeReport:
    """
    Re-apply the grading engine to every stored answer of the exam whose
    question is in question_ids (all questions when None), then recompute
    every submission's score.

    Runs inside the caller's transaction and only flushes; a storage error
    propagates so the caller rolls back the edit that triggered it.
    """
    targets = None if question_ids is None else set(question_ids)
    report = RegradeReport(exam_id=exam_id)

    submissions = (
        session.query(Submission)
        .options(selectinload(Submission.answers).selectinload(Answer.question))
        .filter(Submission.exam_id == exam_id)
        .order_by(Submission.id)
        .with_for_update()
        .all()
    )

    for submission in submissions:
        report.submissions += 1
        for answer in submission.answers:
            if targets is not None and answer.question_id not in targets:
                continue
            if keeps_manual_points(answer):
                settle_manual_points(answer)
                report.answers_kept += 1
                continue
            result = grade(answer.question, answer.raw_response)
            answer.is_correct = result.is_correct
            answer.awarded_points = result.awarded_points
            report.answers_regraded += 1

        before = submission.score
        if recompute_score(submission) != before:
            report.scores_changed += 1

    session.flush()
    logger.info(
        "exam %s regraded: %d submissions, %d answers regraded, %d kept, %d scores changed",
        exam_id,
        report.submissions,
        report.answers_regraded,
        report.answers_kept,
        report.scores_changed,
    )
    return report
