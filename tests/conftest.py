import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["TESTING"] = "true"

import pytest
from datetime import timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.core.database import init_db, get_db
from app.core.security import create_access_token
from app.core.constants import RoleEnum
from app.schemas.exam import ExamCreate, ExamSettings
from app.services.exam import exam_service
from app.utils import deps as deps_utils
from app.utils.clock import utcnow
from tests.helpers.factories import TEACHER, single_choice
import main

@pytest.fixture(scope="function")
def database_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()

@pytest.fixture(scope="function")
def db_session(database_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()

@pytest.fixture(scope="function")
def client(db_session):
    main.app.dependency_overrides[get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_transactional_db] = lambda: db_session
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()

@pytest.fixture
def now():
    return utcnow()

@pytest.fixture
def token_for_role():
    """Issue a bearer token the way the auth service would."""
    def _token(role: str, user_id: int = None, groups=None):
        user_ids = {"super_admin": 1000, "admin": 900, "teacher": 500, "student": 1}
        return create_access_token(
            user_id=user_id or user_ids[role],
            role=RoleEnum(role).value,
            groups=groups,
        )
    return _token

@pytest.fixture
def auth_headers(token_for_role):
    def _headers(role: str, user_id: int = None, groups=None):
        return {"Authorization": f"Bearer {token_for_role(role, user_id=user_id, groups=groups)}"}
    return _headers

@pytest.fixture
def exam_factory(db_session, now):
    """Create an exam through the admin service; published and public unless told otherwise."""
    def _exam_factory(questions=None, publish=True, is_public=True, pass_mark=60,
                      duration_minutes=60, creator=TEACHER, **settings_overrides):
        exam_in = ExamCreate(
            title="Factory Exam",
            duration_minutes=duration_minutes,
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=1),
            pass_mark=pass_mark,
            is_public=is_public,
            settings=ExamSettings(**settings_overrides),
        )
        exam = exam_service.create_exam(db_session, exam_in=exam_in, current_user_context=creator)
        for question_in in questions if questions is not None else [single_choice(), single_choice()]:
            exam_service.create_question(db_session, exam_id=exam.id, question_in=question_in, current_user_context=creator)
        if publish:
            exam = exam_service.publish_exam(db_session, exam_id=exam.id, current_user_context=creator)
        return exam
    return _exam_factory
