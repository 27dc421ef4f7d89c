from fastapi import HTTPException, status

from app.schemas.user import UserContext
from app.core.constants import RoleEnum


class PermissionHelper:
    @staticmethod
    def is_super_admin(context: UserContext) -> bool:
        return context.role == RoleEnum.SUPER_ADMIN

    @staticmethod
    def is_admin(context: UserContext) -> bool:
        return context.role in (RoleEnum.SUPER_ADMIN, RoleEnum.ADMIN)

    @staticmethod
    def is_teacher(context: UserContext) -> bool:
        return context.role == RoleEnum.TEACHER

    @staticmethod
    def is_student(context: UserContext) -> bool:
        return context.role == RoleEnum.STUDENT

    @staticmethod
    def is_staff(context: UserContext) -> bool:
        return PermissionHelper.is_admin(context) or PermissionHelper.is_teacher(context)

    @staticmethod
    def can_manage_exam(context: UserContext, exam) -> bool:
        if PermissionHelper.is_admin(context):
            return True
        return PermissionHelper.is_teacher(context) and exam.created_by == context.user_id

    @staticmethod
    def require_not_student(context: UserContext, message: str = "Students cannot perform this action."):
        if PermissionHelper.is_student(context):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)

    @staticmethod
    def require_admin(context: UserContext, message: str = "Only administrators can perform this action."):
        if not PermissionHelper.is_admin(context):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)

    @staticmethod
    def require_exam_management(context: UserContext, exam):
        if not PermissionHelper.can_manage_exam(context, exam):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to manage this exam."
            )

    @staticmethod
    def require_attempt_owner(context: UserContext, attempt):
        if attempt.student_id != context.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only act on your own exam attempts."
            )

    @staticmethod
    def require_attempt_view(context: UserContext, attempt):
        if attempt.student_id == context.user_id:
            return
        if PermissionHelper.is_student(context):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only view your own exam attempts."
            )
        if PermissionHelper.is_teacher(context) and attempt.exam.created_by != context.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to view this exam attempt."
            )
