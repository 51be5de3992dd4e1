import os
import sys
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("DB_URL", "sqlite://")
sys.path.append(str(Path(__file__).resolve().parents[1]))

from backend.db import build_engine, init_db
from backend.domain import Submission, SubmissionStatus
from backend.metrics import metrics
from backend.notifications import notification_bus
from backend.store import SubmissionStore


@pytest.fixture(autouse=True)
def reset_state():
    metrics.reset()
    notification_bus.clear()
    yield
    metrics.reset()
    notification_bus.clear()


@pytest.fixture()
def store():
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    yield SubmissionStore(sessionmaker(autoflush=False, bind=engine))
    engine.dispose()


@pytest.fixture()
def client(store):
    from fastapi.testclient import TestClient

    from backend.main import app, get_store

    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_submission(status=SubmissionStatus.DRAFT, rejection_count=0, **kwargs):
    fields = {
        "id": "sub-1",
        "submission_id": "SUB-MH-2025-001",
        "owner_user_id": "nodal-1",
        "state_ut": "MH",
        "status": status,
        "rejection_count": rejection_count,
    }
    fields.update(kwargs)
    return Submission(**fields)
