# python db/init_db.py

from db.database import Base, engine
from db.models.students import Student
from db.models.exams import Exam
from db.models.questions import Question
from db.models.submissions import Submission
from db.models.answers import Answer


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)


if __name__ == "__main__":
    print("Creating tables...")
    init_db()
    print("Done")
