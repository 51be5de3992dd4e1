import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import review_workflow, service
from .config import API_CORS_ORIGINS, LOG_LEVEL
from .db import init_db
from .domain import Role, SubmissionStatus, WorkflowAction
from .errors import WorkflowError
from .metrics import metrics
from .notifications import notification_bus
from .progress import (
    get_progress_percentage,
    get_status_info,
    get_waiting_message,
    summarize_for_role,
)
from .store import SubmissionStore

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="NIRI Submission Workflow")

app.add_middleware(
    CORSMiddleware,
    allow_origins=API_CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

_store = SubmissionStore()


def get_store():
    return _store


@app.on_event("startup")
def startup():
    init_db()


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def _role(value):
    if not value:
        raise HTTPException(status_code=400, detail="actor role is required")
    try:
        return Role(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown role: {value}")


def _action(value):
    try:
        return WorkflowAction(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown action: {value}")


def _user(payload):
    user_id = payload.get("actor_user_id")
    if not user_id:
        raise HTTPException(status_code=400, detail="actor_user_id is required")
    return user_id


def _comment(payload):
    comment = payload.get("comment")
    if comment is not None and not isinstance(comment, str):
        raise HTTPException(status_code=400, detail="comment must be a string")
    return comment


def _expected_version(payload):
    version = payload.get("expected_version")
    if version is not None and (isinstance(version, bool) or not isinstance(version, int)):
        raise HTTPException(status_code=400, detail="expected_version must be an integer")
    return version


def _view(submission, role):
    comments = review_workflow.filter_visible_comments(submission.review_comments, role)
    result = submission.to_dict(comments=comments)
    result["status_info"] = get_status_info(submission.status).to_dict()
    result["progress"] = get_progress_percentage(submission.status)
    result["available_actions"] = [a.value for a in review_workflow.get_available_actions(role, submission)]
    result["action_options"] = review_workflow.get_action_options(role, submission)
    result["can_edit"] = review_workflow.can_edit(submission, role)
    result["waiting_message"] = get_waiting_message(submission.status, role)
    return result


@app.get("/workflow/statuses")
def list_statuses():
    return [
        {
            "status": status.value,
            "status_info": get_status_info(status).to_dict(),
            "progress": get_progress_percentage(status),
            "terminal": review_workflow.is_final_state(status),
            "next_states": [s.value for s in review_workflow.get_next_states(status)],
        }
        for status in SubmissionStatus
    ]


@app.post("/submissions", status_code=201)
def create_submission(payload: dict, store: SubmissionStore = Depends(get_store)):
    role = _role(payload.get("actor_role"))
    state_ut = payload.get("state_ut")
    if not state_ut or not isinstance(state_ut, str):
        raise HTTPException(status_code=400, detail="state_ut is required")
    form_data = payload.get("form_data")
    if form_data is not None and not isinstance(form_data, dict):
        raise HTTPException(status_code=400, detail="form_data must be an object")
    submission, entry = service.create_submission(store, _user(payload), state_ut, role, form_data=form_data)
    return {"submission": _view(submission, role), "audit_entry": entry.to_dict()}


@app.get("/submissions")
def list_submissions(role: str, state_ut: str = None, status: str = None, owner_user_id: str = None,
                     store: SubmissionStore = Depends(get_store)):
    viewer = _role(role)
    if status:
        try:
            SubmissionStatus(status)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown status: {status}")
    submissions = store.list(state_ut=state_ut, status=status, owner_user_id=owner_user_id)
    return [_view(s, viewer) for s in submissions]


@app.get("/submissions/{submission_id}")
def get_submission(submission_id: str, role: str, store: SubmissionStore = Depends(get_store)):
    return _view(store.load(submission_id), _role(role))


@app.get("/submissions/{submission_id}/actions")
def available_actions(submission_id: str, role: str, store: SubmissionStore = Depends(get_store)):
    submission = store.load(submission_id)
    viewer = _role(role)
    return {
        "submission_id": submission.id,
        "status": submission.status.value,
        "version": submission.version,
        "actions": [a.value for a in review_workflow.get_available_actions(viewer, submission)],
        "options": review_workflow.get_action_options(viewer, submission),
    }


@app.post("/submissions/{submission_id}/actions/{action}")
def perform_action(submission_id: str, action: str, payload: dict,
                   store: SubmissionStore = Depends(get_store)):
    role = _role(payload.get("actor_role"))
    transition = service.perform_action(
        store,
        submission_id,
        _action(action),
        role,
        _user(payload),
        comment=_comment(payload),
        expected_version=_expected_version(payload),
    )
    return {
        "submission": _view(transition.submission, role),
        "audit_entry": transition.audit_entry.to_dict(),
        "comment": transition.comment.to_dict() if transition.comment else None,
    }


@app.put("/submissions/{submission_id}/form-data")
def update_form_data(submission_id: str, payload: dict, store: SubmissionStore = Depends(get_store)):
    role = _role(payload.get("actor_role"))
    form_data = payload.get("form_data")
    if not isinstance(form_data, dict):
        raise HTTPException(status_code=400, detail="form_data must be an object")
    transition = service.update_form_data(
        store, submission_id, role, _user(payload), form_data,
        expected_version=_expected_version(payload),
    )
    return {"submission": _view(transition.submission, role), "audit_entry": transition.audit_entry.to_dict()}


@app.get("/submissions/{submission_id}/comments")
def list_comments(submission_id: str, role: str, store: SubmissionStore = Depends(get_store)):
    submission = store.load(submission_id)
    visible = review_workflow.filter_visible_comments(submission.review_comments, _role(role))
    return {"submission_id": submission.id, "comments": [c.to_dict() for c in visible]}


@app.get("/submissions/{submission_id}/audit")
def submission_audit(submission_id: str, store: SubmissionStore = Depends(get_store)):
    store.load(submission_id)
    timeline = store.audit_timeline(submission_id)
    return {"submission_id": submission_id, "timeline": [e.to_dict() for e in timeline]}


@app.get("/audit/actors/{actor_user_id}")
def actor_audit(actor_user_id: str, store: SubmissionStore = Depends(get_store)):
    entries = store.actor_activity(actor_user_id)
    return {"actor_user_id": actor_user_id, "entries": [e.to_dict() for e in entries]}


@app.get("/submissions/{submission_id}/export/audit")
def export_audit_bundle(submission_id: str, role: str, store: SubmissionStore = Depends(get_store)):
    viewer = _role(role)
    submission = store.load(submission_id)
    timeline = store.audit_timeline(submission_id)
    return {
        "submission": _view(submission, viewer),
        "timeline": [e.to_dict() for e in timeline],
    }


@app.get("/dashboard")
def dashboard(role: str, state_ut: str = None, store: SubmissionStore = Depends(get_store)):
    viewer = _role(role)
    return summarize_for_role(store.list(state_ut=state_ut), viewer)


@app.get("/notifications")
def list_notifications(role: str, unread_only: bool = False):
    viewer = _role(role)
    items = notification_bus.inbox(viewer, unread_only=unread_only)
    return {
        "role": viewer.value,
        "unread": notification_bus.unread_count(viewer),
        "items": [n.to_dict() for n in items],
    }


@app.post("/notifications/{notification_id}/read")
def mark_notification_read(notification_id: str):
    if not notification_bus.mark_read(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"id": notification_id, "read": True}


@app.get("/metrics")
def get_metrics():
    snapshot = metrics.snapshot()
    snapshot["unread_notifications"] = notification_bus.summary()
    return snapshot
