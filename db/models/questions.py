from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, JSON
from sqlalchemy.orm import relationship
from db.database import Base

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    kind = Column(String(20), nullable=False, default="single_choice")  # single_choice / multi_choice / boolean / free_text

    # aligned by index; an empty option text is only allowed when its image is set
    options = Column(JSON, nullable=False, default=list)
    option_images = Column(JSON, nullable=False, default=list)

    # "2" for single_choice/boolean, "0,2" for multi_choice, "" for free_text
    correct_encoding = Column(String(64), nullable=False, default="")
    points = Column(Integer, nullable=False, default=1)
    order_index = Column(Integer, nullable=False, default=0)
    image_url = Column(String(500), nullable=True)

    # kept only because recorded answers reference it, hidden from the exam
    is_preserved = Column(Boolean, nullable=False, default=False)

    exam = relationship("Exam", back_populates="questions")
    answers = relationship("Answer", back_populates="question", passive_deletes="all")
