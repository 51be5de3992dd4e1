"""Plain value types shared by the workflow engine, the store and the API."""
from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Role(str, Enum):
    NODAL_OFFICER = "NODAL_OFFICER"
    STATE_APPROVER = "STATE_APPROVER"
    MOSPI_REVIEWER = "MOSPI_REVIEWER"
    MOSPI_APPROVER = "MOSPI_APPROVER"
    ADMIN = "ADMIN"


MOSPI_ROLES = frozenset({Role.MOSPI_REVIEWER, Role.MOSPI_APPROVER})


class SubmissionStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED_TO_STATE = "SUBMITTED_TO_STATE"
    REJECTED = "REJECTED"
    RETURNED_FROM_STATE = "RETURNED_FROM_STATE"
    SUBMITTED_TO_MOSPI_REVIEWER = "SUBMITTED_TO_MOSPI_REVIEWER"
    SUBMITTED_TO_MOSPI_APPROVER = "SUBMITTED_TO_MOSPI_APPROVER"
    RETURNED_FROM_MOSPI = "RETURNED_FROM_MOSPI"
    MOSPI_APPROVED = "MOSPI_APPROVED"
    APPROVED = "APPROVED"
    REJECTED_FINAL = "REJECTED_FINAL"


TERMINAL_STATUSES = frozenset({
    SubmissionStatus.MOSPI_APPROVED,
    SubmissionStatus.APPROVED,
    SubmissionStatus.REJECTED_FINAL,
})

RESUBMITTABLE_STATUSES = frozenset({
    SubmissionStatus.REJECTED,
    SubmissionStatus.RETURNED_FROM_STATE,
    SubmissionStatus.RETURNED_FROM_MOSPI,
})

# Role whose action is awaited in each status; None once the submission is closed.
OWNER_ROLES: Dict[SubmissionStatus, Optional[Role]] = {
    SubmissionStatus.DRAFT: Role.NODAL_OFFICER,
    SubmissionStatus.SUBMITTED_TO_STATE: Role.STATE_APPROVER,
    SubmissionStatus.REJECTED: Role.NODAL_OFFICER,
    SubmissionStatus.RETURNED_FROM_STATE: Role.NODAL_OFFICER,
    SubmissionStatus.SUBMITTED_TO_MOSPI_REVIEWER: Role.MOSPI_REVIEWER,
    SubmissionStatus.SUBMITTED_TO_MOSPI_APPROVER: Role.MOSPI_APPROVER,
    SubmissionStatus.RETURNED_FROM_MOSPI: Role.NODAL_OFFICER,
    SubmissionStatus.MOSPI_APPROVED: None,
    SubmissionStatus.APPROVED: None,
    SubmissionStatus.REJECTED_FINAL: None,
}


class WorkflowAction(str, Enum):
    SUBMIT_TO_STATE = "submit_to_state"
    STATE_REJECT = "state_reject"
    FORWARD_TO_MOSPI = "forward_to_mospi"
    RESUBMIT = "resubmit"
    APPROVE = "approve"
    FINAL_REJECT = "final_reject"
    ADD_COMMENT = "add_comment"


class CommentType(str, Enum):
    COMMENT = "comment"
    REJECTION = "rejection"
    APPROVAL = "approval"


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def _iso(value: dt.datetime) -> str:
    return value.isoformat() + "Z"


def _parse_ts(value) -> dt.datetime:
    if isinstance(value, dt.datetime):
        return value
    cleaned = str(value).replace("Z", "")
    return dt.datetime.fromisoformat(cleaned)


@dataclass(frozen=True)
class ReviewComment:
    id: str
    submission_id: str
    author_user_id: str
    author_role: Role
    type: CommentType
    text: str
    timestamp: dt.datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "author_user_id": self.author_user_id,
            "author_role": self.author_role.value,
            "type": self.type.value,
            "text": self.text,
            "timestamp": _iso(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewComment":
        return cls(
            id=data["id"],
            submission_id=data["submission_id"],
            author_user_id=data["author_user_id"],
            author_role=Role(data["author_role"]),
            type=CommentType(data["type"]),
            text=data["text"],
            timestamp=_parse_ts(data["timestamp"]),
        )


@dataclass(frozen=True)
class AuditLogEntry:
    id: str
    entity_type: str
    entity_id: str
    action: str
    actor_user_id: str
    actor_role: Role
    timestamp: dt.datetime
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "actor_user_id": self.actor_user_id,
            "actor_role": self.actor_role.value,
            "timestamp": _iso(self.timestamp),
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class Submission:
    """Snapshot of a submission.

    Snapshots are never modified; every accepted action produces a new one
    through ``dataclasses.replace``.
    """

    id: str
    submission_id: str
    owner_user_id: str
    state_ut: str
    status: SubmissionStatus = SubmissionStatus.DRAFT
    form_data: Dict[str, Any] = field(default_factory=dict)
    rejection_count: int = 0
    review_comments: Tuple[ReviewComment, ...] = ()
    created_at: dt.datetime = field(default_factory=utcnow)
    updated_at: dt.datetime = field(default_factory=utcnow)
    version: int = 1

    @property
    def current_owner_role(self) -> Optional[Role]:
        return OWNER_ROLES[self.status]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self, comments=None) -> Dict[str, Any]:
        owner = self.current_owner_role
        visible = self.review_comments if comments is None else comments
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "owner_user_id": self.owner_user_id,
            "state_ut": self.state_ut,
            "status": self.status.value,
            "current_owner_role": owner.value if owner else None,
            "form_data": self.form_data,
            "rejection_count": self.rejection_count,
            "review_comments": [c.to_dict() for c in visible],
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "version": self.version,
        }
