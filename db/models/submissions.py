from datetime import datetime

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from db.database import Base

class Submission(Base):
    __tablename__ = "submissions"

    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=IN_PROGRESS)

    # sum of the answers' awarded_points, only ever set by exam_core.scoring
    score = Column(Float, nullable=False, default=0)
    total_answered = Column(Integer, nullable=False, default=0)

    started_at = Column(DateTime, default=datetime.utcnow)
    submitted_at = Column(DateTime, nullable=True)

    student = relationship("Student", back_populates="submissions")
    exam = relationship("Exam", back_populates="submissions")
    answers = relationship("Answer", back_populates="submission", cascade="all, delete-orphan")
