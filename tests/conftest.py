import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db.database import enable_sqlite_foreign_keys
from db.init_db import init_db
from db.models.students import Student
from exam_core.exam_service import ExamService
from exam_core.submission_service import SubmissionService


@pytest.fixture
def engine():
    bind = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(bind)
    init_db(bind)
    yield bind
    bind.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def exams(session_factory):
    return ExamService(session_factory)


@pytest.fixture
def submissions(session_factory):
    return SubmissionService(session_factory)


@pytest.fixture
def make_student(session_factory):
    def _make(name="Siti Aminah"):
        s = session_factory()
        student = Student(full_name=name, grade="grade6")
        s.add(student)
        s.commit()
        student_id = student.id
        s.close()
        return student_id

    return _make


@pytest.fixture
def exam_payload():
    return [
        {
            "question_text": "Ibu kota Indonesia adalah?",
            "kind": "single_choice",
            "options": ["Bandung", "Jakarta", "Surabaya"],
            "correct_answer": "B",
            "points": 10,
        },
        {
            "question_text": "Manakah bilangan prima?",
            "kind": "multi_choice",
            "options": ["2", "4", "5", "9"],
            "correct_answer": "0,2",
            "points": 10,
        },
        {
            "question_text": "Matahari terbit di timur.",
            "kind": "boolean",
            "correct_answer": "Benar",
            "points": 5,
        },
        {
            "question_text": "Jelaskan proses fotosintesis.",
            "kind": "free_text",
            "points": 10,
        },
    ]
