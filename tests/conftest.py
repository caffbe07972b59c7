from __future__ import annotations

import os
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="talentflow-tests-"))
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATA_DIR", str(_TEST_DATA_DIR))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DATA_DIR / 'talentflow.db'}")

from sqlalchemy.orm import Session  # noqa: E402

from talentflow.config import Settings  # noqa: E402
from talentflow.db import models  # noqa: E402,F401
from talentflow.db.base import Base  # noqa: E402
from talentflow.db.repositories import Repository  # noqa: E402
from talentflow.db.session import SessionLocal, engine  # noqa: E402
from talentflow.types import ApplicationSnapshot, CandidateIdentity, JobAssignmentView  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db() -> Iterator[Session]:
    with SessionLocal() as session:
        yield session


@pytest.fixture
def repo(db: Session) -> Repository:
    return Repository(db)


@pytest.fixture
def settings() -> Settings:
    return Settings(app_env="test")


@pytest.fixture
def staffed_job(repo: Repository) -> JobAssignmentView:
    return repo.upsert_assignment(
        7,
        {"recruiter_id": 11, "specialist_id": 22, "company_user_id": 33},
    )


@pytest.fixture
def make_application(repo: Repository) -> Callable[..., ApplicationSnapshot]:
    def _make(
        status: str = "pending",
        *,
        job_id: int = 7,
        name: str = "Ana Gomez",
        email: str = "ana@example.com",
        candidate_user_id: int | None = 44,
    ) -> ApplicationSnapshot:
        return repo.create_application(
            job_id=job_id,
            candidate=CandidateIdentity(name=name, email=email),
            candidate_user_id=candidate_user_id,
            status=status,
        )

    return _make
