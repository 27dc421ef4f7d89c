from typing import List, Optional
from sqlalchemy.orm import Session, selectinload

from app.crud.base import CRUDBase
from app.models.question import Question, QuestionOption
from app.schemas.question import QuestionCreate, QuestionUpdate

class CRUDQuestion(CRUDBase[Question, QuestionCreate, QuestionUpdate]):
    def get(self, db: Session, id: int):
        return (
            db.query(Question)
            .options(selectinload(Question.options))
            .filter(Question.id == id)
            .first()
        )

    def get_by_ids(self, db: Session, *, ids: List[int]) -> List[Question]:
        if not ids:
            return []
        return (
            db.query(self.model)
            .options(selectinload(Question.options))
            .filter(self.model.id.in_(ids))
            .all()
        )

    def get_next_order(self, db: Session, *, exam_id: int) -> int:
        return db.query(self.model).filter(self.model.exam_id == exam_id, self.model.is_active.is_(True)).count() + 1

    def build_options(self, obj_in: QuestionCreate) -> List[QuestionOption]:
        return [
            QuestionOption(text=o.text, image=o.image, is_correct=o.is_correct, order=i)
            for i, o in enumerate(obj_in.options, start=1)
        ]

    def create_with_options(self, db: Session, *, exam_id: int, obj_in: QuestionCreate, order: int,
                            version: int = 1, parent_question_id: Optional[int] = None,
                            commit: bool = True) -> Question:
        data = obj_in.model_dump(exclude={"options", "order"})
        db_obj = Question(
            **data,
            exam_id=exam_id,
            order=order,
            version=version,
            parent_question_id=parent_question_id,
            options=self.build_options(obj_in),
        )
        db.add(db_obj)
        db.flush()
        if commit:
            db.commit()
            db.refresh(db_obj)
        return db_obj

question = CRUDQuestion(Question)
