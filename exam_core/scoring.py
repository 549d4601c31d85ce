from typing import Iterable


def recompute_score(submission) -> float:
    """The only place a submission's aggregate score is written."""
    answers = list(submission.answers)
    submission.score = float(sum(a.awarded_points or 0 for a in answers))
    submission.total_answered = sum(
        1 for a in answers if (a.raw_response or "").strip() or a.answer_image_url
    )
    return submission.score


def refresh_exam_totals(exam, questions: Iterable) -> None:
    active = [q for q in questions if not q.is_preserved]
    exam.total_score = float(sum(q.points or 0 for q in active))
    exam.total_questions = len(active)


def keeps_manual_points(answer) -> bool:
    """Essays and photo answers carry a grader's score, never a derived one."""
    if answer.question.kind == "free_text":
        return True
    return not (answer.raw_response or "").strip() and bool(answer.answer_image_url)


def settle_manual_points(answer) -> None:
    """Keep a hand-graded answer within its question's current rules."""
    question = answer.question
    if question.kind == "free_text":
        answer.is_correct = False
    ceiling = float(question.points or 0)
    if (answer.awarded_points or 0) > ceiling:
        answer.awarded_points = ceiling
