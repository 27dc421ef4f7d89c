from sqlalchemy.orm import Session
from typing import List, Optional

from app.crud.base import CRUDBase
from app.models.user_answer import UserAnswer
from app.schemas.user_answer import UserAnswerSave

class CRUDUserAnswer(CRUDBase[UserAnswer, UserAnswerSave, UserAnswerSave]):

    def get_by_attempt_and_question(self, db: Session, exam_attempt_id: int,
                                    question_id: int) -> Optional[UserAnswer]:
        return (
            db.query(UserAnswer)
            .filter(UserAnswer.exam_attempt_id == exam_attempt_id)
            .filter(UserAnswer.question_id == question_id)
            .first()
        )

    def get_all_by_attempt(self, db: Session, exam_attempt_id: int) -> List[UserAnswer]:
        return (
            db.query(UserAnswer)
            .filter(UserAnswer.exam_attempt_id == exam_attempt_id)
            .order_by(UserAnswer.id)
            .all()
        )


user_answer = CRUDUserAnswer(UserAnswer)
