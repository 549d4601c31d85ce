from sqlalchemy import Column, Integer, Text, String, Float, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from db.database import Base

class Answer(Base):
    __tablename__ = "answers"
    __table_args__ = (UniqueConstraint("submission_id", "question_id", name="uq_answer_submission_question"),)

    id = Column(Integer, primary_key=True, index=True)
    submission_id = Column(Integer, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    # RESTRICT: a question with recorded answers can never be deleted underneath them
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="RESTRICT"), nullable=False, index=True)

    raw_response = Column(Text, nullable=True)
    answer_image_url = Column(String(500), nullable=True)  # photo answer, graded by hand

    is_correct = Column(Boolean, nullable=False, default=False)
    # derived for scored kinds, set by graders for free_text
    awarded_points = Column(Float, nullable=False, default=0)

    submission = relationship("Submission", back_populates="answers")
    question = relationship("Question", back_populates="answers")
