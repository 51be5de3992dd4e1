import logging

from .domain import AuditLogEntry, Role, new_id, utcnow
from .models import AuditEvent

logger = logging.getLogger(__name__)

SUBMISSION_ENTITY = "submission"


def record(entity_type, entity_id, action, actor_user_id, actor_role, details=None, now=None):
    """Build an immutable audit entry. Persisting it is the store's job."""
    return AuditLogEntry(
        id=new_id(),
        entity_type=entity_type,
        entity_id=entity_id,
        action=str(getattr(action, "value", action)),
        actor_user_id=actor_user_id,
        actor_role=Role(actor_role),
        timestamp=now or utcnow(),
        details=dict(details or {}),
    )


def log_event(session, entry):
    """Stage ``entry`` on ``session``; the caller owns the commit."""
    event = AuditEvent(
        id=entry.id,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        action=entry.action,
        actor_user_id=entry.actor_user_id,
        actor_role=entry.actor_role.value,
        timestamp=entry.timestamp,
        details=entry.details,
    )
    session.add(event)
    logger.debug("audit %s %s/%s by %s", entry.action, entry.entity_type, entry.entity_id, entry.actor_user_id)
    return event


def _to_entry(event):
    return AuditLogEntry(
        id=event.id,
        entity_type=event.entity_type,
        entity_id=event.entity_id,
        action=event.action,
        actor_user_id=event.actor_user_id,
        actor_role=Role(event.actor_role),
        timestamp=event.timestamp,
        details=event.details or {},
    )


def get_audit_timeline(session, entity_type, entity_id):
    events = (
        session.query(AuditEvent)
        .filter(AuditEvent.entity_type == entity_type, AuditEvent.entity_id == entity_id)
        .order_by(AuditEvent.seq.asc())
        .all()
    )
    return [_to_entry(e) for e in events]


def get_actor_activity(session, actor_user_id):
    events = (
        session.query(AuditEvent)
        .filter(AuditEvent.actor_user_id == actor_user_id)
        .order_by(AuditEvent.seq.asc())
        .all()
    )
    return [_to_entry(e) for e in events]
