"""Load, apply, store, notify.

The glue between the pure workflow engine, the store and the notification
bus. API handlers and the seed script both go through here.
"""
from __future__ import annotations

import logging

from . import review_workflow
from .errors import WorkflowError
from .metrics import metrics, timed
from .notifications import notification_bus

logger = logging.getLogger(__name__)


def create_submission(store, owner_user_id, state_ut, actor_role, form_data=None):
    submission, entry = store.create(owner_user_id, state_ut, actor_role=actor_role, form_data=form_data)
    metrics.record_created()
    return submission, entry


@timed
def perform_action(store, submission_id, action, actor_role, actor_user_id, comment=None,
                   expected_version=None, bus=None):
    bus = bus or notification_bus
    try:
        submission = store.load(submission_id)
        transition = review_workflow.apply_action(
            submission,
            actor_role,
            actor_user_id,
            action,
            comment=comment,
            expected_version=expected_version,
        ).unwrap()
        store.save_transition(transition, expected_version=submission.version)
    except WorkflowError as exc:
        metrics.record_refusal(exc.code)
        raise

    metrics.record_action(transition.action)
    if transition.comment is not None:
        metrics.record_comment()
    if transition.escalated:
        metrics.record_escalation()
    logger.info(
        "%s %s by %s (%s): %s -> %s",
        transition.action,
        transition.submission.submission_id,
        actor_user_id,
        transition.audit_entry.actor_role.value,
        transition.previous_status.value,
        transition.submission.status.value,
    )
    bus.publish_transition(transition)
    return transition


def update_form_data(store, submission_id, actor_role, actor_user_id, form_data, expected_version=None):
    try:
        submission = store.load(submission_id)
        transition = review_workflow.revise_form_data(
            submission, actor_role, actor_user_id, form_data, expected_version=expected_version
        )
        store.save_transition(transition, expected_version=submission.version)
    except WorkflowError as exc:
        metrics.record_refusal(exc.code)
        raise
    logger.info("edited %s: %s", transition.submission.submission_id,
                ", ".join(transition.audit_entry.details["changed_sections"]) or "no changes")
    return transition
