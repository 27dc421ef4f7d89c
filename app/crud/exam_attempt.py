from sqlalchemy.orm import Session, selectinload
from typing import List, Optional
from sqlalchemy import func, case

from app.core.constants import ExamAttemptStatusEnum
from app.crud.base import CRUDBase
from app.models.exam_attempt import ExamAttempt

class CRUDExamAttempt(CRUDBase[ExamAttempt, dict, dict]):

    def _query_with_relationships(self, db: Session):
        return db.query(ExamAttempt).options(
            selectinload(ExamAttempt.exam),
            selectinload(ExamAttempt.user_answers),
        )

    def get(self, db: Session, id: int) -> Optional[ExamAttempt]:
        return self._query_with_relationships(db).filter(ExamAttempt.id == id).first()

    def get_by_user_and_exam(self, db: Session, user_id: int, exam_id: int) -> List[ExamAttempt]:
        return (
            db.query(ExamAttempt)
            .filter(ExamAttempt.student_id == user_id)
            .filter(ExamAttempt.exam_id == exam_id)
            .order_by(ExamAttempt.attempt_number.asc())
            .all()
        )

    def get_in_progress(self, db: Session, user_id: int, exam_id: int) -> Optional[ExamAttempt]:
        return (
            self._query_with_relationships(db)
            .filter(ExamAttempt.student_id == user_id)
            .filter(ExamAttempt.exam_id == exam_id)
            .filter(ExamAttempt.status == ExamAttemptStatusEnum.IN_PROGRESS)
            .first()
        )

    def get_all_by_exam(self, db: Session, exam_id: int, skip: int = 0, limit: int = 100) -> List[ExamAttempt]:
        return (
            db.query(ExamAttempt)
            .filter(ExamAttempt.exam_id == exam_id)
            .order_by(ExamAttempt.start_time.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_in_progress_timings(self, db: Session) -> list:
        # Only the columns needed to decide whether the sweep can close an attempt
        return (
            db.query(
                ExamAttempt.id,
                ExamAttempt.exam_id,
                ExamAttempt.start_time,
                ExamAttempt.time_budget_seconds,
                ExamAttempt.last_activity_at,
            )
            .filter(ExamAttempt.status == ExamAttemptStatusEnum.IN_PROGRESS)
            .order_by(ExamAttempt.start_time.asc())
            .all()
        )

    def get_exam_statistics(self, db: Session, exam_id: int) -> dict:
        row = (
            db.query(
                func.count(ExamAttempt.id).label("total_attempts"),
                func.avg(ExamAttempt.score).label("average_score"),
                func.avg(ExamAttempt.percentage).label("average_percentage"),
                func.max(ExamAttempt.score).label("max_score"),
                func.min(ExamAttempt.score).label("min_score"),
                func.sum(case((ExamAttempt.passed.is_(True), 1), else_=0)).label("pass_count"),
            )
            .filter(
                ExamAttempt.exam_id == exam_id,
                ExamAttempt.status != ExamAttemptStatusEnum.IN_PROGRESS,
            )
            .one()
        )
        return row._asdict()


exam_attempt = CRUDExamAttempt(ExamAttempt)
