"""Review workflow for NIRI submissions.

One transition table drives authorization, state changes and comment
requirements. Everything in here is pure: functions take a submission
snapshot plus the actor and return a new snapshot, never touching storage.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from . import audit
from .config import REJECTION_ESCALATION_THRESHOLD
from .domain import (
    MOSPI_ROLES,
    RESUBMITTABLE_STATUSES,
    TERMINAL_STATUSES,
    AuditLogEntry,
    CommentType,
    ReviewComment,
    Role,
    Submission,
    SubmissionStatus,
    WorkflowAction,
    new_id,
    utcnow,
)
from .errors import (
    ConcurrentModification,
    InvalidTransition,
    MissingRequiredComment,
    UnauthorizedActor,
    WorkflowError,
)
from .validation import MAX_LENGTHS, validate_comment

logger = logging.getLogger(__name__)

S = SubmissionStatus
A = WorkflowAction

WORKFLOW_ROLES = frozenset({
    Role.NODAL_OFFICER,
    Role.STATE_APPROVER,
    Role.MOSPI_REVIEWER,
    Role.MOSPI_APPROVER,
})


class CommentPolicy(Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"


@dataclass(frozen=True)
class Edge:
    source: SubmissionStatus
    action: WorkflowAction
    role: Role
    # None keeps the status; REJECTION edges pick their target via _rejection_target
    target: Optional[SubmissionStatus]
    comment: CommentPolicy
    comment_type: CommentType = CommentType.COMMENT
    rejection: bool = False


TRANSITIONS: Tuple[Edge, ...] = (
    Edge(S.DRAFT, A.SUBMIT_TO_STATE, Role.NODAL_OFFICER, S.SUBMITTED_TO_STATE, CommentPolicy.OPTIONAL),
    Edge(S.SUBMITTED_TO_STATE, A.STATE_REJECT, Role.STATE_APPROVER, S.REJECTED, CommentPolicy.REQUIRED,
         CommentType.REJECTION, rejection=True),
    # a second state rejection of an already rejected submission always ends it
    Edge(S.REJECTED, A.STATE_REJECT, Role.STATE_APPROVER, S.REJECTED, CommentPolicy.REQUIRED,
         CommentType.REJECTION, rejection=True),
    Edge(S.SUBMITTED_TO_STATE, A.FORWARD_TO_MOSPI, Role.STATE_APPROVER, S.SUBMITTED_TO_MOSPI_REVIEWER,
         CommentPolicy.REQUIRED),
    Edge(S.REJECTED, A.RESUBMIT, Role.NODAL_OFFICER, S.SUBMITTED_TO_STATE, CommentPolicy.OPTIONAL),
    Edge(S.RETURNED_FROM_MOSPI, A.RESUBMIT, Role.NODAL_OFFICER, S.SUBMITTED_TO_STATE, CommentPolicy.OPTIONAL),
    Edge(S.RETURNED_FROM_STATE, A.RESUBMIT, Role.NODAL_OFFICER, S.SUBMITTED_TO_STATE, CommentPolicy.OPTIONAL),
    Edge(S.SUBMITTED_TO_MOSPI_REVIEWER, A.FORWARD_TO_MOSPI, Role.MOSPI_REVIEWER, S.SUBMITTED_TO_MOSPI_APPROVER,
         CommentPolicy.OPTIONAL),
    Edge(S.SUBMITTED_TO_MOSPI_APPROVER, A.APPROVE, Role.MOSPI_APPROVER, S.MOSPI_APPROVED, CommentPolicy.OPTIONAL,
         CommentType.APPROVAL),
    Edge(S.SUBMITTED_TO_MOSPI_APPROVER, A.FINAL_REJECT, Role.MOSPI_APPROVER, S.RETURNED_FROM_MOSPI,
         CommentPolicy.REQUIRED, CommentType.REJECTION, rejection=True),
)


def _comment_edges() -> Tuple[Edge, ...]:
    edges = []
    for status in S:
        if status in TERMINAL_STATUSES:
            continue
        # a draft is private to its author until it is submitted
        roles = [Role.NODAL_OFFICER] if status == S.DRAFT else sorted(WORKFLOW_ROLES, key=lambda r: r.value)
        for role in roles:
            edges.append(Edge(status, A.ADD_COMMENT, role, None, CommentPolicy.REQUIRED))
    return tuple(edges)


ALL_EDGES: Tuple[Edge, ...] = TRANSITIONS + _comment_edges()

_EDGE_INDEX: Dict[Tuple[SubmissionStatus, WorkflowAction], Dict[Role, Edge]] = {}
for _edge in ALL_EDGES:
    _EDGE_INDEX.setdefault((_edge.source, _edge.action), {})[_edge.role] = _edge

ROLE_PERMISSIONS: Dict[Role, FrozenSet[WorkflowAction]] = {
    role: frozenset(e.action for e in ALL_EDGES if e.role == role) for role in Role
}


def _action_order(action: WorkflowAction) -> int:
    return list(WorkflowAction).index(action)


# ---------------------------------------------------------------------------
# Authorizer
# ---------------------------------------------------------------------------

def find_edge(status, action, role) -> Optional[Edge]:
    return _EDGE_INDEX.get((SubmissionStatus(status), WorkflowAction(action)), {}).get(Role(role))


def can_perform_action(action, role, submission: Submission) -> bool:
    return find_edge(submission.status, action, role) is not None


def get_available_actions(role, submission: Submission) -> List[WorkflowAction]:
    """Actions ``role`` may take on ``submission`` right now.

    An empty list means nothing is available; it is not an error.
    """
    role = Role(role)
    actions = {
        action
        for (status, action), by_role in _EDGE_INDEX.items()
        if status == submission.status and role in by_role
    }
    return sorted(actions, key=_action_order)


def get_action_options(role, submission: Submission) -> List[Dict[str, object]]:
    """Available actions with their comment rules and where each would lead.

    ``escalates`` is true when taking the action closes the submission as
    REJECTED_FINAL.
    """
    role = Role(role)
    options = []
    for action in get_available_actions(role, submission):
        edge = find_edge(submission.status, action, role)
        next_status = _resolve_target(edge, submission)
        options.append({
            "action": action.value,
            "comment_required": edge.comment == CommentPolicy.REQUIRED,
            "comment_type": edge.comment_type.value,
            "comment_max_length": MAX_LENGTHS[edge.comment_type],
            "next_status": next_status.value,
            "escalates": edge.rejection and next_status == S.REJECTED_FINAL,
        })
    return options


def get_next_states(status) -> List[SubmissionStatus]:
    status = SubmissionStatus(status)
    targets = []
    for edge in TRANSITIONS:
        if edge.source != status:
            continue
        candidates = [edge.target]
        if edge.rejection:
            candidates.append(S.REJECTED_FINAL)
        for target in candidates:
            if target not in targets:
                targets.append(target)
    return targets


def is_final_state(status) -> bool:
    return SubmissionStatus(status) in TERMINAL_STATUSES


def can_edit(submission: Submission, role) -> bool:
    return Role(role) == Role.NODAL_OFFICER and (
        submission.status == S.DRAFT or submission.status in RESUBMITTABLE_STATUSES
    )


# ---------------------------------------------------------------------------
# Comment visibility
# ---------------------------------------------------------------------------

def get_comment_visibility(comment: ReviewComment, viewer_role) -> bool:
    viewer_role = Role(viewer_role)
    if viewer_role in MOSPI_ROLES:
        return True
    if viewer_role == Role.STATE_APPROVER:
        return comment.author_role in (Role.STATE_APPROVER, Role.NODAL_OFFICER)
    if viewer_role == Role.NODAL_OFFICER:
        return comment.author_role == Role.NODAL_OFFICER
    return False


def filter_visible_comments(comments: Iterable[ReviewComment], viewer_role) -> List[ReviewComment]:
    return [c for c in comments if get_comment_visibility(c, viewer_role)]


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Transition:
    submission: Submission
    audit_entry: AuditLogEntry
    previous_status: SubmissionStatus
    action: str
    comment: Optional[ReviewComment] = None
    ok = True

    @property
    def escalated(self) -> bool:
        return (
            self.submission.status == S.REJECTED_FINAL
            and self.previous_status != S.REJECTED_FINAL
        )

    def unwrap(self) -> "Transition":
        return self


@dataclass(frozen=True)
class Refusal:
    error: WorkflowError
    ok = False

    def unwrap(self):
        raise self.error


def _rejection_target(edge: Edge, rejection_count: int) -> SubmissionStatus:
    if rejection_count >= REJECTION_ESCALATION_THRESHOLD:
        return S.REJECTED_FINAL
    return edge.target


def _resolve_target(edge: Edge, submission: Submission) -> SubmissionStatus:
    if edge.rejection:
        return _rejection_target(edge, submission.rejection_count)
    return edge.target or submission.status


def _check_guards(submission, role, action, comment, expected_version):
    if action not in ROLE_PERMISSIONS[role]:
        raise UnauthorizedActor(
            f"{role.value} cannot perform {action.value}.", action=action.value, role=role.value
        )
    by_role = _EDGE_INDEX.get((submission.status, action))
    if not by_role:
        raise InvalidTransition(
            f"{action.value} is not available while the submission is {submission.status.value}.",
            action=action.value,
            status=submission.status.value,
        )
    edge = by_role.get(role)
    if edge is None:
        raise UnauthorizedActor(
            f"{role.value} cannot perform {action.value} while the submission is {submission.status.value}.",
            action=action.value,
            role=role.value,
        )
    result = validate_comment(comment, edge.comment_type, required=edge.comment == CommentPolicy.REQUIRED)
    if not result["passed"]:
        raise MissingRequiredComment(errors=result["errors"], action=action.value)
    if expected_version is not None and expected_version != submission.version:
        raise ConcurrentModification(expected_version=expected_version, current_version=submission.version)
    return edge, result["text"]


def apply_action(
    submission: Submission,
    actor_role,
    actor_user_id: str,
    action,
    comment: Optional[str] = None,
    expected_version: Optional[int] = None,
    now=None,
):
    """Validate and apply ``action``.

    Returns a :class:`Transition` holding the new snapshot and its audit
    entry, or a :class:`Refusal` holding the error. ``submission`` itself
    is never changed.
    """
    try:
        role = Role(actor_role)
    except ValueError:
        return Refusal(UnauthorizedActor(f"Unknown role: {actor_role}", role=str(actor_role)))
    try:
        action = WorkflowAction(action)
    except ValueError:
        return Refusal(InvalidTransition(f"Unknown action: {action}", action=str(action)))

    try:
        edge, text = _check_guards(submission, role, action, comment, expected_version)
    except WorkflowError as exc:
        logger.warning("refused %s by %s on %s: %s", action.value, role.value, submission.id, exc.code)
        return Refusal(exc)

    now = now or utcnow()
    next_status = _resolve_target(edge, submission)
    rejection_count = submission.rejection_count + (1 if edge.rejection else 0)

    new_comment = None
    comments = submission.review_comments
    if text:
        new_comment = ReviewComment(
            id=new_id(),
            submission_id=submission.id,
            author_user_id=actor_user_id,
            author_role=role,
            type=edge.comment_type,
            text=text,
            timestamp=now,
        )
        comments = comments + (new_comment,)

    updated = dataclasses.replace(
        submission,
        status=next_status,
        rejection_count=rejection_count,
        review_comments=comments,
        updated_at=now,
        version=submission.version + 1,
    )
    entry = audit.record(
        audit.SUBMISSION_ENTITY,
        submission.id,
        action,
        actor_user_id,
        role,
        details={
            "submission_ref": submission.submission_id,
            "previous_status": submission.status.value,
            "next_status": next_status.value,
            "rejection_count": rejection_count,
            "comment_id": new_comment.id if new_comment else None,
        },
        now=now,
    )
    return Transition(
        submission=updated,
        audit_entry=entry,
        previous_status=submission.status,
        action=action.value,
        comment=new_comment,
    )


def revise_form_data(submission: Submission, actor_role, actor_user_id: str, form_data, expected_version=None, now=None):
    """Replace the form payload of an editable submission.

    Not a workflow action: the status is unchanged, but the edit is audited
    and bumps the version like any other write.
    """
    try:
        role = Role(actor_role)
    except ValueError:
        raise UnauthorizedActor(f"Unknown role: {actor_role}", role=str(actor_role))
    if role != Role.NODAL_OFFICER:
        raise UnauthorizedActor(f"{role.value} cannot edit submission data.", role=role.value)
    if not can_edit(submission, role):
        raise InvalidTransition(
            f"Submission data cannot be edited while the submission is {submission.status.value}.",
            status=submission.status.value,
        )
    if expected_version is not None and expected_version != submission.version:
        raise ConcurrentModification(expected_version=expected_version, current_version=submission.version)

    now = now or utcnow()
    form_data = dict(form_data or {})
    changed = sorted(
        key for key in set(form_data) | set(submission.form_data)
        if form_data.get(key) != submission.form_data.get(key)
    )
    updated = dataclasses.replace(submission, form_data=form_data, updated_at=now, version=submission.version + 1)
    entry = audit.record(
        audit.SUBMISSION_ENTITY,
        submission.id,
        "edit",
        actor_user_id,
        role,
        details={
            "submission_ref": submission.submission_id,
            "previous_status": submission.status.value,
            "next_status": submission.status.value,
            "changed_sections": changed,
        },
        now=now,
    )
    return Transition(submission=updated, audit_entry=entry, previous_status=submission.status, action="edit")
