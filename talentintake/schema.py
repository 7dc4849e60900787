import re
from typing import Any, Dict, List
from urllib.parse import urlparse

from .models import CandidateSubmission

REQUIRED_STR_FIELDS = ["name"]
OPTIONAL_STR_FIELDS = [
    "email",
    "company",
    "title",
    "location",
    "profile_handle",
    "summary",
    "phone",
]
LIST_FIELDS = ["skills", "experience", "education", "certifications"]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _valid_url(v: str) -> bool:
    candidate = v if "://" in v else "https://" + v
    p = urlparse(candidate)
    return bool(p.netloc and "." in p.netloc)


def validate_submission(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Accepts either a dict or a CandidateSubmission.
    """
    if isinstance(data, CandidateSubmission):
        data = data.to_dict()
    errors: List[str] = []

    for f in REQUIRED_STR_FIELDS:
        if f not in data or data[f] is None:
            errors.append(f"Missing required field: {f}")
        elif not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")

    for f in OPTIONAL_STR_FIELDS:
        if data.get(f) is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    for f in LIST_FIELDS:
        if data.get(f) is not None and not isinstance(data[f], (list, tuple)):
            errors.append(f"Field '{f}' must be a list if provided")

    if _is_non_empty_str(data.get("email")) and not _EMAIL_RE.match(data["email"].strip()):
        errors.append("Field 'email' must look like an email address")

    if _is_non_empty_str(data.get("profile_handle")) and not _valid_url(data["profile_handle"].strip()):
        errors.append("Field 'profile_handle' must be a profile URL")

    return errors
