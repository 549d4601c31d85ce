from sqlalchemy import Column, Integer, String, Float
from sqlalchemy.orm import relationship
from db.database import Base

class Exam(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, default="")
    subject = Column(String(50))
    grade = Column(String(50))

    # recomputed from active (non-preserved) questions after every edit
    total_score = Column(Float, nullable=False, default=0)
    total_questions = Column(Integer, nullable=False, default=0)

    questions = relationship("Question", back_populates="exam", order_by="Question.order_index")
    submissions = relationship("Submission", back_populates="exam")
