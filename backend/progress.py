"""Display-side projections of a submission's status.

Labels here are for people. Authorization decisions go through
``review_workflow`` and must never compare against these strings.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable

from .domain import RESUBMITTABLE_STATUSES, Role, Submission, SubmissionStatus

S = SubmissionStatus


@dataclass(frozen=True)
class StatusInfo:
    label: str
    color_tag: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {"label": self.label, "color_tag": self.color_tag, "description": self.description}


STATUS_INFO: Dict[SubmissionStatus, StatusInfo] = {
    S.DRAFT: StatusInfo("Draft", "gray", "Being prepared by Nodal Officer"),
    S.SUBMITTED_TO_STATE: StatusInfo("Under State Review", "yellow", "Awaiting State Approver review"),
    S.REJECTED: StatusInfo("Rejected by State", "red", "Rejected by State Approver - can be resubmitted"),
    S.RETURNED_FROM_STATE: StatusInfo("Returned", "orange", "Returned by State Approver for corrections"),
    S.SUBMITTED_TO_MOSPI_REVIEWER: StatusInfo("Under MoSPI Reviewer", "blue", "Awaiting MoSPI Reviewer action"),
    S.SUBMITTED_TO_MOSPI_APPROVER: StatusInfo(
        "Under MoSPI Approver", "indigo", "Awaiting MoSPI Approver final decision"
    ),
    S.RETURNED_FROM_MOSPI: StatusInfo("Returned by MoSPI", "orange", "Returned by MoSPI Approver for corrections"),
    S.MOSPI_APPROVED: StatusInfo("Approved", "green", "Submission approved by MoSPI"),
    S.APPROVED: StatusInfo("Approved", "green", "Submission approved"),
    S.REJECTED_FINAL: StatusInfo("Finally Rejected", "crimson", "Finally rejected, no further action possible"),
}

UNKNOWN_STATUS = StatusInfo("Unknown", "gray", "Status unknown")

PROGRESS: Dict[SubmissionStatus, int] = {
    S.DRAFT: 25,
    S.SUBMITTED_TO_STATE: 50,
    S.REJECTED: 25,
    S.RETURNED_FROM_STATE: 25,
    S.SUBMITTED_TO_MOSPI_REVIEWER: 75,
    S.SUBMITTED_TO_MOSPI_APPROVER: 90,
    S.RETURNED_FROM_MOSPI: 25,
    S.MOSPI_APPROVED: 100,
    S.APPROVED: 100,
    S.REJECTED_FINAL: 0,
}


def _as_status(status):
    try:
        return SubmissionStatus(status)
    except ValueError:
        return None


def get_progress_percentage(status) -> int:
    return PROGRESS.get(_as_status(status), 0)


def get_status_info(status) -> StatusInfo:
    return STATUS_INFO.get(_as_status(status), UNKNOWN_STATUS)


def get_waiting_message(status, viewer_role) -> str:
    """Only the Nodal Officer is told what the submission is waiting on."""
    info = get_status_info(status)
    if Role(viewer_role) == Role.NODAL_OFFICER:
        return f"Your submission is {info.description.lower()}"
    return ""


def summarize_for_role(submissions: Iterable[Submission], role) -> Dict[str, object]:
    role = Role(role)
    items = list(submissions)
    approved = [s for s in items if s.status in (S.MOSPI_APPROVED, S.APPROVED)]
    rejected = [s for s in items if s.status == S.REJECTED_FINAL or s.status in RESUBMITTABLE_STATUSES]
    pending = [s for s in items if s.current_owner_role == role]
    in_progress = [s for s in items if not s.is_terminal and s.status != S.DRAFT]
    average = 0.0
    if items:
        average = sum(get_progress_percentage(s.status) for s in items) / len(items)
    by_status: Dict[str, int] = {}
    for s in items:
        by_status[s.status.value] = by_status.get(s.status.value, 0) + 1
    return {
        "role": role.value,
        "total_submissions": len(items),
        "pending_for_role": len(pending),
        "in_progress": len(in_progress),
        "approved": len(approved),
        "rejected": len(rejected),
        "average_progress": round(average, 2),
        "by_status": by_status,
    }
