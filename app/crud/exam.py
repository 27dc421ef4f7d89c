from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from app.crud.base import CRUDBase
from app.models.exam import Exam, ExamAssignment, ExamGroupAssignment
from app.models.question import Question
from app.schemas.exam import ExamCreate, ExamUpdate


class CRUDExam(CRUDBase[Exam, ExamCreate, ExamUpdate]):

    def _query_with_relationships(self, db: Session):
        return db.query(Exam).options(
            selectinload(Exam.questions).selectinload(Question.options),
            selectinload(Exam.assignments),
            selectinload(Exam.group_assignments),
        )

    def get(self, db: Session, id: int) -> Optional[Exam]:
        return self._query_with_relationships(db).filter(Exam.id == id).first()

    def get_by_ids(self, db: Session, ids: List[int]) -> List[Exam]:
        if not ids:
            return []
        return db.query(Exam).filter(Exam.id.in_(ids)).all()

    def get_multi_by_creator(self, db: Session, created_by: int, skip: int = 0, limit: int = 100) -> List[Exam]:
        return (
            db.query(Exam)
            .filter(Exam.created_by == created_by)
            .order_by(Exam.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def add_student_assignments(self, db: Session, *, exam: Exam, student_ids: List[int]) -> None:
        existing = {a.student_id for a in exam.assignments}
        for student_id in dict.fromkeys(student_ids):
            if student_id not in existing:
                exam.assignments.append(ExamAssignment(student_id=student_id))

    def add_group_assignments(self, db: Session, *, exam: Exam, group_names: List[str]) -> None:
        existing = {g.group_name for g in exam.group_assignments}
        for group_name in dict.fromkeys(group_names):
            if group_name not in existing:
                exam.group_assignments.append(ExamGroupAssignment(group_name=group_name))


exam = CRUDExam(Exam)
