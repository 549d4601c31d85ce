from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class QuestionEdit(BaseModel):
    """One question of an exam-edit payload; camelCase keys are accepted too."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    question_text: str = Field("", alias="questionText")
    kind: str = Field(..., alias="type")
    options: Optional[List[str]] = None
    option_images: Optional[List[Optional[str]]] = Field(None, alias="optionImages")
    correct_answer: Optional[Union[str, int, List[Union[str, int]]]] = Field(None, alias="correctAnswer")
    points: Optional[int] = None
    order_index: Optional[int] = Field(None, alias="orderIndex")
    image_url: Optional[str] = Field(None, alias="imageUrl")


class ExamCreateRequest(BaseModel):
    title: str
    subject: Optional[str] = None
    grade: Optional[str] = None
    questions: List[QuestionEdit] = []


class QuestionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    exam_id: int
    question_text: str
    kind: str
    options: List[str]
    option_images: List[str]
    correct_encoding: str
    points: int
    order_index: int
    image_url: Optional[str] = None


class RegradeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    exam_id: int
    submissions: int
    answers_regraded: int
    answers_kept: int
    scores_changed: int


class ExamEditOut(BaseModel):
    exam_id: int
    total_score: float
    total_questions: int
    questions: List[QuestionOut]
    preserved_question_ids: List[int]
    deleted_question_ids: List[int]
    regrade: Optional[RegradeOut] = None


class StartSubmissionRequest(BaseModel):
    student_id: int
    exam_id: int


class AnswerRequest(BaseModel):
    question_id: int
    answer: Optional[Union[str, int, List[Union[str, int]]]] = None
    photo_answer: Optional[str] = None


class AnswerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    question_id: int
    raw_response: Optional[str] = None
    answer_image_url: Optional[str] = None
    is_correct: bool
    awarded_points: float


class SubmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    exam_id: int
    status: str
    score: float
    total_answered: int


class GradeRequest(BaseModel):
    # answer id -> points awarded by the grader
    points: Dict[int, float]
