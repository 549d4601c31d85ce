import json
import logging
from datetime import datetime
from typing import Dict, Optional

from db.database import session_scope
from db.models.answers import Answer
from db.models.questions import Question
from db.models.students import Student
from db.models.submissions import Submission

from .errors import InvalidState, NotFound, ValidationFailed
from .exam_service import load_exam_for_update
from .grading_engine import grade
from .scoring import keeps_manual_points, recompute_score

logger = logging.getLogger(__name__)


class SubmissionService:
    """
    The live answer path. Each method is one transaction, recording or
    re-grading at most one submission.
    """

    def __init__(self, session_factory=None):
        self.session_factory = session_factory

    def _load_submission(self, session, submission_id: int) -> Submission:
        # exam row before submission row, the lock order of an exam edit
        exam_id = session.query(Submission.exam_id).filter(Submission.id == submission_id).scalar()
        if exam_id is None:
            raise NotFound(f"submission {submission_id} not found")
        load_exam_for_update(session, exam_id)

        submission = (
            session.query(Submission)
            .filter(Submission.id == submission_id)
            .with_for_update()
            .first()
        )
        if not submission:
            raise NotFound(f"submission {submission_id} not found")
        return submission

    def start(self, student_id: int, exam_id: int) -> Submission:
        """Resume the student's in-progress submission or open a new one."""
        with session_scope(self.session_factory) as session:
            if not session.get(Student, student_id):
                raise NotFound(f"student {student_id} not found")
            load_exam_for_update(session, exam_id)

            existing = (
                session.query(Submission)
                .filter(Submission.student_id == student_id, Submission.exam_id == exam_id)
                .order_by(Submission.id.desc())
                .first()
            )
            if existing and existing.status == Submission.IN_PROGRESS:
                return existing
            if existing:
                raise InvalidState("exam already submitted")

            submission = Submission(
                student_id=student_id,
                exam_id=exam_id,
                status=Submission.IN_PROGRESS,
                started_at=datetime.utcnow(),
                score=0,
                total_answered=0,
            )
            session.add(submission)
            session.flush()
            logger.info("submission %s started: student %s exam %s", submission.id, student_id, exam_id)
            return submission

    def submit_answer(self, submission_id: int, question_id: int, raw_response: Optional[str] = None,
                      photo_answer: Optional[str] = None) -> Answer:
        with session_scope(self.session_factory) as session:
            submission = self._load_submission(session, submission_id)
            if submission.status != Submission.IN_PROGRESS:
                raise InvalidState("submission is not in progress")

            question = session.get(Question, question_id)
            if not question or question.exam_id != submission.exam_id or question.is_preserved:
                raise NotFound(f"question {question_id} is not part of this exam")

            answer = next((a for a in submission.answers if a.question_id == question_id), None)
            if not answer:
                answer = Answer(question_id=question_id, is_correct=False, awarded_points=0)
                submission.answers.append(answer)

            if photo_answer:
                # graded by hand later
                answer.raw_response = None
                answer.answer_image_url = photo_answer
                answer.is_correct = False
                answer.awarded_points = 0
            else:
                if raw_response is not None and not isinstance(raw_response, str):
                    raw_response = json.dumps(raw_response)
                result = grade(question, raw_response, previous_points=answer.awarded_points)
                answer.raw_response = raw_response
                answer.answer_image_url = None
                answer.is_correct = result.is_correct
                answer.awarded_points = result.awarded_points

            recompute_score(submission)
            session.flush()
            return answer

    def submit(self, submission_id: int) -> Submission:
        with session_scope(self.session_factory) as session:
            submission = self._load_submission(session, submission_id)
            if submission.status != Submission.IN_PROGRESS:
                raise InvalidState("submission is not in progress")

            recompute_score(submission)
            submission.status = Submission.SUBMITTED
            submission.submitted_at = datetime.utcnow()
            logger.info("submission %s submitted with score %s", submission.id, submission.score)
            return submission

    def grade_answers(self, submission_id: int, points_by_answer: Dict[int, float]) -> Submission:
        """
        Grader adjustment of essay and photo answers. Points are bounded by
        the question's points; the submission score is recomputed.
        """
        with session_scope(self.session_factory) as session:
            submission = self._load_submission(session, submission_id)
            if submission.status != Submission.SUBMITTED:
                raise InvalidState("submission is still in progress")
            answers = {a.id: a for a in submission.answers}

            for answer_id, points in points_by_answer.items():
                answer = answers.get(int(answer_id))
                if not answer:
                    raise NotFound(f"answer {answer_id} is not part of submission {submission_id}")
                question = answer.question
                if not keeps_manual_points(answer):
                    raise InvalidState(f"answer {answer_id} is auto-graded")
                points = float(points)
                if points < 0 or points > question.points:
                    raise ValidationFailed(
                        f"points for answer {answer_id} must be between 0 and {question.points}"
                    )
                answer.awarded_points = points
                answer.is_correct = question.kind != "free_text" and points >= question.points

            recompute_score(submission)
            logger.info("submission %s graded by hand, score %s", submission.id, submission.score)
            return submission

    def get(self, submission_id: int) -> Submission:
        with session_scope(self.session_factory) as session:
            submission = session.get(Submission, submission_id)
            if not submission:
                raise NotFound(f"submission {submission_id} not found")
            # load answers before the session closes
            list(submission.answers)
            return submission
