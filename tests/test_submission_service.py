import pytest
from sqlalchemy.orm import Query

from db.models.exams import Exam
from db.models.submissions import Submission
from exam_core.errors import InvalidState, NotFound, ValidationFailed


@pytest.fixture
def exam(exams, exam_payload):
    return exams.create_exam("Ulangan Harian", exam_payload).exam


@pytest.fixture
def questions(exams, exam):
    return exams.get_questions(exam.id)


def test_start_opens_then_resumes(submissions, make_student, exam):
    student_id = make_student()
    first = submissions.start(student_id, exam.id)
    again = submissions.start(student_id, exam.id)

    assert first.status == "in_progress"
    assert again.id == first.id


def test_start_after_submit_is_refused(submissions, make_student, exam):
    student_id = make_student()
    submission = submissions.start(student_id, exam.id)
    submissions.submit(submission.id)

    with pytest.raises(InvalidState):
        submissions.start(student_id, exam.id)


def test_start_unknown_student_or_exam(submissions, make_student, exam):
    with pytest.raises(NotFound):
        submissions.start(999, exam.id)
    with pytest.raises(NotFound):
        submissions.start(make_student(), 999)


def test_answers_are_graded_on_write(submissions, make_student, exam, questions):
    submission = submissions.start(make_student(), exam.id)

    first = submissions.submit_answer(submission.id, questions[0].id, "Jakarta")
    assert first.is_correct and first.awarded_points == 10

    multi = submissions.submit_answer(submission.id, questions[1].id, [0, 2])
    assert multi.raw_response == "[0, 2]"
    assert multi.is_correct

    boolean = submissions.submit_answer(submission.id, questions[2].id, "ya")
    assert boolean.is_correct and boolean.awarded_points == 5

    current = submissions.get(submission.id)
    assert current.score == 25
    assert current.total_answered == 3


def test_answering_again_updates_in_place(submissions, make_student, exam, questions):
    submission = submissions.start(make_student(), exam.id)
    first = submissions.submit_answer(submission.id, questions[0].id, "Bandung")
    second = submissions.submit_answer(submission.id, questions[0].id, "B")

    assert second.id == first.id
    assert second.is_correct
    current = submissions.get(submission.id)
    assert len(current.answers) == 1
    assert current.score == 10


def test_photo_answer_is_stored_ungraded(submissions, make_student, exam, questions):
    submission = submissions.start(make_student(), exam.id)
    answer = submissions.submit_answer(submission.id, questions[0].id, photo_answer="/uploads/jawaban-1.jpg")

    assert answer.answer_image_url == "/uploads/jawaban-1.jpg"
    assert answer.raw_response is None
    assert answer.awarded_points == 0
    assert submissions.get(submission.id).total_answered == 1


def test_answer_after_submit_is_refused(submissions, make_student, exam, questions):
    submission = submissions.start(make_student(), exam.id)
    submissions.submit(submission.id)

    with pytest.raises(InvalidState):
        submissions.submit_answer(submission.id, questions[0].id, "B")
    with pytest.raises(InvalidState):
        submissions.submit(submission.id)


def test_question_from_another_exam_is_not_found(submissions, exams, make_student, exam, exam_payload):
    other = exams.create_exam("Lain", exam_payload[:1]).exam
    foreign = exams.get_questions(other.id)[0]
    submission = submissions.start(make_student(), exam.id)

    with pytest.raises(NotFound):
        submissions.submit_answer(submission.id, foreign.id, "B")


def test_preserved_question_cannot_be_answered(submissions, exams, make_student, exam, questions):
    answered = submissions.start(make_student("Andi"), exam.id)
    submissions.submit_answer(answered.id, questions[0].id, "B")

    exams.update_questions(
        exam.id,
        [
            {
                "id": q.id,
                "question_text": q.question_text,
                "kind": q.kind,
                "options": q.options,
                "correct_answer": q.correct_encoding,
                "points": q.points,
                "order_index": q.order_index,
            }
            for q in questions[1:]
        ],
    )

    late = submissions.start(make_student("Rina"), exam.id)
    with pytest.raises(NotFound):
        submissions.submit_answer(late.id, questions[0].id, "B")


def test_grader_sets_essay_and_photo_points(submissions, make_student, exam, questions):
    submission = submissions.start(make_student(), exam.id)
    submissions.submit_answer(submission.id, questions[0].id, "Jakarta")
    photo = submissions.submit_answer(submission.id, questions[2].id, photo_answer="/uploads/b.jpg")
    essay = submissions.submit_answer(submission.id, questions[3].id, "Cahaya matahari ...")
    submissions.submit(submission.id)

    graded = submissions.grade_answers(submission.id, {essay.id: 8.5, photo.id: 5})

    assert graded.score == 23.5
    by_id = {a.id: a for a in submissions.get(submission.id).answers}
    assert by_id[photo.id].is_correct
    assert not by_id[essay.id].is_correct


def test_grader_adjustments_are_validated(submissions, make_student, exam, questions):
    submission = submissions.start(make_student(), exam.id)
    choice = submissions.submit_answer(submission.id, questions[0].id, "Jakarta")
    essay = submissions.submit_answer(submission.id, questions[3].id, "...")

    with pytest.raises(InvalidState):
        submissions.grade_answers(submission.id, {essay.id: 5})

    submissions.submit(submission.id)
    with pytest.raises(InvalidState):
        submissions.grade_answers(submission.id, {choice.id: 0})
    with pytest.raises(ValidationFailed):
        submissions.grade_answers(submission.id, {essay.id: 11})
    with pytest.raises(NotFound):
        submissions.grade_answers(submission.id, {9999: 1})
    assert submissions.get(submission.id).score == 10


def test_answer_paths_lock_exam_before_submission(submissions, make_student, exam, questions, monkeypatch):
    submission = submissions.start(make_student(), exam.id)
    locked = []
    original = Query.with_for_update

    def recording(self, *args, **kwargs):
        locked.append(self.column_descriptions[0]["entity"])
        return original(self, *args, **kwargs)

    monkeypatch.setattr(Query, "with_for_update", recording)
    submissions.submit_answer(submission.id, questions[0].id, "B")
    assert locked == [Exam, Submission]

    locked.clear()
    submissions.submit(submission.id)
    assert locked == [Exam, Submission]


def test_unknown_submission_is_not_found(submissions):
    with pytest.raises(NotFound):
        submissions.submit_answer(404, 1, "A")
