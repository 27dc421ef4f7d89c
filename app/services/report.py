from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.schemas.user import UserContext
from app.schemas.exam_attempt import AttemptStatistics
from app.crud.exam import exam as crud_exam
from app.crud.exam_attempt import exam_attempt as crud_exam_attempt
from app.utils.permission import PermissionHelper as permission_helper


class ReportService:
    def get_attempt_statistics(self, db: Session, exam_id: int, current_user_context: UserContext) -> AttemptStatistics:
        """Aggregate figures over every closed attempt of an exam; open attempts are ignored."""
        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found.")
        permission_helper.require_exam_management(current_user_context, exam)

        stats = crud_exam_attempt.get_exam_statistics(db, exam_id=exam_id)
        total = stats["total_attempts"] or 0
        if total == 0:
            return AttemptStatistics(
                exam_id=exam_id,
                total_attempts=0,
                average_score=0.0,
                average_percentage=0.0,
                pass_rate=0.0,
                max_score=0.0,
                min_score=0.0,
            )

        return AttemptStatistics(
            exam_id=exam_id,
            total_attempts=total,
            average_score=round(stats["average_score"] or 0, 2),
            average_percentage=round(stats["average_percentage"] or 0, 2),
            pass_rate=round((stats["pass_count"] or 0) / total * 100, 2),
            max_score=stats["max_score"] or 0.0,
            min_score=stats["min_score"] or 0.0,
        )


report_service = ReportService()
