import logging
from typing import List

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from db.init_db import init_db
from exam_core.config import LOG_LEVEL
from exam_core.errors import (
    CapacityExceeded,
    ExamEngineError,
    IntegrityViolation,
    InvalidState,
    NotFound,
    ParseFailure,
    PersistenceFailure,
    ValidationFailed,
)
from exam_core.exam_service import ExamService
from exam_core.schemas import (
    AnswerOut,
    AnswerRequest,
    ExamCreateRequest,
    ExamEditOut,
    GradeRequest,
    QuestionEdit,
    QuestionOut,
    RegradeOut,
    StartSubmissionRequest,
    SubmissionOut,
)
from exam_core.submission_service import SubmissionService

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Exam Consistency API",
    version="1.0.0",
    description=(
        "Question editing, answer grading and re-grading for school exams. "
        "Authentication and file storage are handled by the calling services."
    ),
)


@app.on_event("startup")
def create_tables():
    init_db()


# ============ Engine instances ============

exam_service = ExamService()
submission_service = SubmissionService()


# ============ Error mapping ============

ERROR_STATUS = {
    ValidationFailed: 400,
    CapacityExceeded: 400,
    ParseFailure: 400,
    NotFound: 404,
    IntegrityViolation: 409,
    InvalidState: 409,
    PersistenceFailure: 503,
}


@app.exception_handler(ExamEngineError)
async def engine_error_handler(request: Request, exc: ExamEngineError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


def _edit_response(result) -> ExamEditOut:
    return ExamEditOut(
        exam_id=result.exam.id,
        total_score=result.exam.total_score,
        total_questions=result.exam.total_questions,
        questions=[QuestionOut.model_validate(q) for q in result.questions],
        preserved_question_ids=result.plan.to_preserve,
        deleted_question_ids=result.plan.to_delete,
        regrade=RegradeOut.model_validate(result.regrade) if result.regrade else None,
    )


# ============ Exams ============

@app.post("/exams", response_model=ExamEditOut)
def create_exam(req: ExamCreateRequest):
    result = exam_service.create_exam(
        title=req.title,
        subject=req.subject,
        grade=req.grade,
        questions=req.questions,
    )
    return _edit_response(result)


@app.get("/exams/{exam_id}/questions", response_model=List[QuestionOut])
def list_questions(exam_id: int):
    return exam_service.get_questions(exam_id)


@app.put("/exams/{exam_id}/questions", response_model=ExamEditOut)
def update_questions(exam_id: int, questions: List[QuestionEdit]):
    result = exam_service.update_questions(exam_id, questions)
    return _edit_response(result)


@app.post("/exams/{exam_id}/regrade", response_model=RegradeOut)
def regrade_exam(exam_id: int):
    return exam_service.regrade_exam(exam_id)


# ============ Submissions ============

@app.post("/submissions", response_model=SubmissionOut)
def start_submission(req: StartSubmissionRequest):
    return submission_service.start(req.student_id, req.exam_id)


@app.get("/submissions/{submission_id}", response_model=SubmissionOut)
def get_submission(submission_id: int):
    return submission_service.get(submission_id)


@app.post("/submissions/{submission_id}/answers", response_model=AnswerOut)
def submit_answer(submission_id: int, req: AnswerRequest):
    return submission_service.submit_answer(
        submission_id,
        req.question_id,
        raw_response=req.answer,
        photo_answer=req.photo_answer,
    )


@app.post("/submissions/{submission_id}/submit", response_model=SubmissionOut)
def submit_exam(submission_id: int):
    return submission_service.submit(submission_id)


@app.patch("/submissions/{submission_id}/grades", response_model=SubmissionOut)
def grade_submission(submission_id: int, req: GradeRequest):
    return submission_service.grade_answers(submission_id, req.points)
