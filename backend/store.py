"""SQLAlchemy-backed submission store.

Writes use an optimistic version check: a submission row is only updated
when its stored ``version`` still matches the snapshot the transition was
computed from, and the audit entry is inserted in the same transaction.
"""
from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError

from . import audit
from .db import SessionLocal
from .domain import ReviewComment, Role, Submission, SubmissionStatus, new_id, utcnow
from .errors import ConcurrentModification, SubmissionNotFound, UnauthorizedActor
from .models import SubmissionRecord

logger = logging.getLogger(__name__)

CREATE_ATTEMPTS = 10


def _state_code(state_ut):
    code = re.sub(r"[^A-Za-z0-9]", "", state_ut or "").upper()
    return code or "NA"


def _to_submission(record):
    return Submission(
        id=record.id,
        submission_id=record.submission_id,
        owner_user_id=record.owner_user_id,
        state_ut=record.state_ut,
        status=SubmissionStatus(record.status),
        form_data=record.form_data or {},
        rejection_count=record.rejection_count or 0,
        review_comments=tuple(ReviewComment.from_dict(c) for c in (record.review_comments or [])),
        created_at=record.created_at,
        updated_at=record.updated_at,
        version=record.version,
    )


class SubmissionStore:
    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    def _next_reference(self, session, state_ut, year):
        prefix = f"SUB-{_state_code(state_ut)}-{year}-"
        refs = (
            session.query(SubmissionRecord.submission_id)
            .filter(SubmissionRecord.submission_id.like(prefix + "%"))
            .all()
        )
        numbers = [int(ref[len(prefix):]) for (ref,) in refs if ref[len(prefix):].isdigit()]
        return f"{prefix}{max(numbers, default=0) + 1:03d}"

    def create(self, owner_user_id, state_ut, actor_role=Role.NODAL_OFFICER, form_data=None, now=None):
        """Open a new DRAFT owned by ``owner_user_id``.

        Two writers can pick the same reference number; the loser of the
        unique-index race retries with a fresh number.
        """
        role = Role(actor_role)
        if role != Role.NODAL_OFFICER:
            raise UnauthorizedActor(f"{role.value} cannot create submissions.", role=role.value)

        now = now or utcnow()
        for attempt in range(1, CREATE_ATTEMPTS + 1):
            try:
                submission, entry = self._insert_draft(owner_user_id, state_ut, role, form_data, now)
                break
            except IntegrityError:
                logger.warning("reference clash creating a %s submission (attempt %d)", state_ut, attempt)
        else:
            raise ConcurrentModification(
                "Could not allocate a submission reference; try again.", state_ut=state_ut
            )
        logger.info("created %s (%s) for %s", submission.submission_id, submission.id, state_ut)
        return submission, entry

    def _insert_draft(self, owner_user_id, state_ut, role, form_data, now):
        with self._session_factory() as session:
            with session.begin():
                submission = Submission(
                    id=new_id(),
                    submission_id=self._next_reference(session, state_ut, now.year),
                    owner_user_id=owner_user_id,
                    state_ut=state_ut,
                    form_data=dict(form_data or {}),
                    created_at=now,
                    updated_at=now,
                )
                session.add(SubmissionRecord(
                    id=submission.id,
                    submission_id=submission.submission_id,
                    owner_user_id=submission.owner_user_id,
                    state_ut=submission.state_ut,
                    status=submission.status.value,
                    form_data=submission.form_data,
                    review_comments=[],
                    rejection_count=0,
                    created_at=now,
                    updated_at=now,
                    version=submission.version,
                ))
                entry = audit.record(
                    audit.SUBMISSION_ENTITY,
                    submission.id,
                    "create",
                    owner_user_id,
                    role,
                    details={
                        "submission_ref": submission.submission_id,
                        "next_status": submission.status.value,
                        "state_ut": state_ut,
                    },
                    now=now,
                )
                audit.log_event(session, entry)
        return submission, entry

    def load(self, submission_id):
        with self._session_factory() as session:
            record = session.get(SubmissionRecord, submission_id)
            if record is None:
                raise SubmissionNotFound(submission_id=submission_id)
            return _to_submission(record)

    def list(self, state_ut=None, status=None, owner_user_id=None):
        with self._session_factory() as session:
            query = session.query(SubmissionRecord)
            if state_ut:
                query = query.filter(SubmissionRecord.state_ut == state_ut)
            if status:
                query = query.filter(SubmissionRecord.status == SubmissionStatus(status).value)
            if owner_user_id:
                query = query.filter(SubmissionRecord.owner_user_id == owner_user_id)
            records = query.order_by(SubmissionRecord.created_at.desc()).all()
            return [_to_submission(r) for r in records]

    def save_transition(self, transition, expected_version):
        """Persist ``transition`` if the stored row is still at ``expected_version``."""
        submission = transition.submission
        with self._session_factory() as session:
            with session.begin():
                updated = (
                    session.query(SubmissionRecord)
                    .filter(SubmissionRecord.id == submission.id, SubmissionRecord.version == expected_version)
                    .update(
                        {
                            SubmissionRecord.status: submission.status.value,
                            SubmissionRecord.form_data: submission.form_data,
                            SubmissionRecord.rejection_count: submission.rejection_count,
                            SubmissionRecord.review_comments: [c.to_dict() for c in submission.review_comments],
                            SubmissionRecord.updated_at: submission.updated_at,
                            SubmissionRecord.version: submission.version,
                        },
                        synchronize_session=False,
                    )
                )
                if updated != 1:
                    exists = session.get(SubmissionRecord, submission.id) is not None
                    if not exists:
                        raise SubmissionNotFound(submission_id=submission.id)
                    logger.warning("stale write on %s at version %s", submission.id, expected_version)
                    raise ConcurrentModification(expected_version=expected_version)
                audit.log_event(session, transition.audit_entry)
        return submission

    def audit_timeline(self, submission_id):
        with self._session_factory() as session:
            return audit.get_audit_timeline(session, audit.SUBMISSION_ENTITY, submission_id)

    def actor_activity(self, actor_user_id):
        with self._session_factory() as session:
            return audit.get_actor_activity(session, actor_user_id)
