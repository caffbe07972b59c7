from __future__ import annotations

from talentflow.config import get_settings
from talentflow.db import models  # noqa: F401
from talentflow.db.base import Base
from talentflow.db.session import engine


def ensure_data_directories() -> None:
    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, list[str]]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    return {"tables": sorted(Base.metadata.tables)}
