"""Workflow error taxonomy.

Every error here is recoverable by the caller: re-fetch and re-present the
legal actions, or re-prompt for the comment.
"""
from __future__ import annotations

from typing import List, Optional


class WorkflowError(Exception):
    code = "WORKFLOW_ERROR"
    http_status = 400
    default_message = "The action could not be completed."

    def __init__(self, message: Optional[str] = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self):
        payload = {"error": self.code, "detail": self.message}
        if self.context:
            payload["context"] = self.context
        return payload


class InvalidTransition(WorkflowError):
    code = "INVALID_TRANSITION"
    http_status = 409
    default_message = "This action is not available for the submission's current status."


class UnauthorizedActor(WorkflowError):
    code = "UNAUTHORIZED_ACTOR"
    http_status = 403
    default_message = "You do not have permission to perform this action."


class MissingRequiredComment(WorkflowError):
    code = "MISSING_REQUIRED_COMMENT"
    http_status = 422
    default_message = "A valid comment is required for this action."

    def __init__(self, message: Optional[str] = None, errors: Optional[List[str]] = None, **context):
        self.errors = list(errors or [])
        if errors:
            context["errors"] = self.errors
        super().__init__(message, **context)


class ConcurrentModification(WorkflowError):
    code = "CONCURRENT_MODIFICATION"
    http_status = 409
    default_message = "The submission was changed by someone else. Refresh and try again."


class SubmissionNotFound(WorkflowError):
    code = "SUBMISSION_NOT_FOUND"
    http_status = 404
    default_message = "Submission not found."
