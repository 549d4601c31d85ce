import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from db.database import session_scope
from db.models.answers import Answer
from db.models.exams import Exam
from db.models.questions import Question
from db.models.students import Student  # noqa: F401  (mapper registry)
from db.models.submissions import Submission

from .errors import NotFound
from .question_upsert import Plan, apply_plan, reconcile
from .regrade import RegradeReport, regrade
from .scoring import refresh_exam_totals

logger = logging.getLogger(__name__)


@dataclass
class ExamEditResult:
    exam: Exam
    plan: Plan
    questions: List[Question] = field(default_factory=list)
    regrade: Optional[RegradeReport] = None


def load_exam_for_update(session, exam_id: int) -> Exam:
    # row lock serializes concurrent edits of one exam (no-op on sqlite)
    exam = session.query(Exam).filter(Exam.id == exam_id).with_for_update().first()
    if not exam:
        raise NotFound(f"exam {exam_id} not found")
    return exam


def active_questions(session, exam_id: int) -> List[Question]:
    return (
        session.query(Question)
        .filter(Question.exam_id == exam_id, Question.is_preserved.is_(False))
        .order_by(Question.order_index, Question.id)
        .all()
    )


def has_submissions(session, exam_id: int) -> bool:
    return session.query(Submission.id).filter(Submission.exam_id == exam_id).first() is not None


def edit_questions(session, exam_id: int, edits: Sequence) -> ExamEditResult:
    """
    Reconcile, apply, and (when scoring fields of answered questions
    changed) regrade, all through one session. The caller owns the commit.
    """
    exam = load_exam_for_update(session, exam_id)
    persisted = (
        session.query(Question)
        .filter(Question.exam_id == exam_id)
        .order_by(Question.id)
        .with_for_update()
        .all()
    )
    answered = has_submissions(session, exam_id)

    plan = reconcile(exam_id, persisted, list(edits), answered)
    apply_plan(session, exam_id, plan)

    report = None
    if plan.needs_regrade:
        report = regrade(session, exam_id, plan.regrade_question_ids)

    questions = active_questions(session, exam_id)
    refresh_exam_totals(exam, questions)
    session.flush()
    return ExamEditResult(exam=exam, plan=plan, questions=questions, regrade=report)


class ExamService:
    """Exam-scoped units of work; every public method is one transaction."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory

    def create_exam(self, title: str, questions: Sequence = (), subject: str = None, grade: str = None) -> ExamEditResult:
        with session_scope(self.session_factory) as session:
            exam = Exam(title=title, subject=subject, grade=grade)
            session.add(exam)
            session.flush()
            result = edit_questions(session, exam.id, questions)
            logger.info("exam %s created with %d questions", exam.id, len(result.questions))
            return result

    def update_questions(self, exam_id: int, edits: Sequence) -> ExamEditResult:
        with session_scope(self.session_factory) as session:
            return edit_questions(session, exam_id, edits)

    def regrade_exam(self, exam_id: int) -> RegradeReport:
        with session_scope(self.session_factory) as session:
            load_exam_for_update(session, exam_id)
            return regrade(session, exam_id)

    def get_questions(self, exam_id: int) -> List[Question]:
        with session_scope(self.session_factory) as session:
            if not session.get(Exam, exam_id):
                raise NotFound(f"exam {exam_id} not found")
            return active_questions(session, exam_id)

    def referenced_question_ids(self, exam_id: int) -> List[int]:
        with session_scope(self.session_factory) as session:
            rows = (
                session.query(Answer.question_id)
                .join(Question, Question.id == Answer.question_id)
                .filter(Question.exam_id == exam_id)
                .distinct()
                .all()
            )
            return sorted(r[0] for r in rows)
