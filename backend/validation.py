import re

from .config import (
    APPROVAL_COMMENT_MAX_LENGTH,
    GENERAL_COMMENT_MAX_LENGTH,
    PROHIBITED_PHRASES,
    REJECTION_COMMENT_MAX_LENGTH,
)
from .domain import CommentType

MAX_LENGTHS = {
    CommentType.REJECTION: REJECTION_COMMENT_MAX_LENGTH,
    CommentType.APPROVAL: APPROVAL_COMMENT_MAX_LENGTH,
    CommentType.COMMENT: GENERAL_COMMENT_MAX_LENGTH,
}

# Below these lengths a comment is accepted but flagged as thin.
SUGGESTED_MIN_LENGTHS = {
    CommentType.REJECTION: 20,
    CommentType.APPROVAL: 5,
    CommentType.COMMENT: 10,
}

MAX_EMPTY_LINES = 2

SPAM_PATTERNS = [
    re.compile(r"(.)\1{4,}"),
    re.compile(r"https?://\S+"),
    re.compile(r"\d{10,}"),
]


def validate_comment(text, comment_type=CommentType.COMMENT, required=True):
    errors = []
    warnings = []
    comment_type = CommentType(comment_type)
    if text is not None and not isinstance(text, str):
        errors.append("Comment must be text")
        return {"passed": False, "errors": errors, "warnings": warnings, "text": ""}
    trimmed = (text or "").strip()

    if not trimmed:
        if required:
            errors.append("Comment is required")
        return {"passed": not errors, "errors": errors, "warnings": warnings, "text": trimmed}

    max_length = MAX_LENGTHS[comment_type]
    if len(trimmed) > max_length:
        errors.append(f"Comment must not exceed {max_length} characters")

    if len(trimmed) < SUGGESTED_MIN_LENGTHS[comment_type]:
        warnings.append("Comment seems too short. Please provide more detailed feedback.")

    empty_lines = sum(1 for line in trimmed.split("\n") if not line.strip())
    if empty_lines > MAX_EMPTY_LINES:
        warnings.append(f"Too many empty lines. Please keep it under {MAX_EMPTY_LINES + 1}.")

    lowered = trimmed.lower()
    for phrase in PROHIBITED_PHRASES:
        if re.search(r"\b" + re.escape(phrase) + r"\b", lowered):
            warnings.append(f"Prohibited phrase found: {phrase}")

    if any(pattern.search(trimmed) for pattern in SPAM_PATTERNS):
        warnings.append("Comment appears to contain spam-like content")

    return {
        "passed": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "text": trimmed,
    }


def character_count(text, comment_type=CommentType.COMMENT):
    max_length = MAX_LENGTHS[CommentType(comment_type)]
    current = len(text or "")
    return {
        "current": current,
        "remaining": max_length - current,
        "over_limit": current > max_length,
    }
