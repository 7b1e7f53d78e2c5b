"""
Input validation rules shared by the API schemas and the dashboard forms.
Each rule raises ValueError with the message shown to the user.
"""
from datetime import date, datetime
from typing import Optional

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields."
END_BEFORE_START_MESSAGE = "End Date must be after Start Date"
END_BEFORE_START_DATETIME_MESSAGE = "End Date & Time must be after Start Date & Time"
DUE_DATE_IN_PAST_MESSAGE = "Due date cannot be in the past"


def validate_required(*values: Optional[str]) -> None:
    """Reject empty or whitespace-only text"""
    for value in values:
        if value is None or not str(value).strip():
            raise ValueError(REQUIRED_FIELDS_MESSAGE)


def validate_date_range(start: Optional[date], end: Optional[date]) -> None:
    """End must be strictly later than start (phase / milestone / project forms)"""
    if start is None or end is None:
        raise ValueError(REQUIRED_FIELDS_MESSAGE)
    if end <= start:
        raise ValueError(END_BEFORE_START_MESSAGE)


def validate_datetime_range(start: Optional[datetime], end: Optional[datetime]) -> None:
    """End must be strictly later than start (activity forms)"""
    if start is None or end is None:
        raise ValueError(REQUIRED_FIELDS_MESSAGE)
    if end <= start:
        raise ValueError(END_BEFORE_START_DATETIME_MESSAGE)


def validate_due_date(due: Optional[date], today: Optional[date] = None) -> date:
    """Due dates may be today but not earlier than today's midnight"""
    if due is None:
        raise ValueError(REQUIRED_FIELDS_MESSAGE)
    if isinstance(due, datetime):
        due = due.date()
    if due < (today or date.today()):
        raise ValueError(DUE_DATE_IN_PAST_MESSAGE)
    return due


MAX_COMMENT_LENGTH = 1000


def validate_comment(content: Optional[str]) -> str:
    if content is None or not content.strip():
        raise ValueError("Comment content is required")
    if len(content) > MAX_COMMENT_LENGTH:
        raise ValueError(f"Comment must be less than {MAX_COMMENT_LENGTH} characters")
    return content.strip()
