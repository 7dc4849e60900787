"""
Batch input from spreadsheets.

CSV and Excel uploads rarely agree on column names, so headers are matched
case-insensitively against a list of synonyms per field. Rows are returned
as CandidateSubmissions in file order; a row without a name is kept so it
can fail on its own as a validation error.
"""

import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TypeVar

import pandas as pd

from .errors import BatchSetupError
from .logger import get_logger
from .models import CandidateSubmission

logger = get_logger()

COLUMN_SYNONYMS = {
    "name": ["name", "full_name", "candidate_name", "fullname", "candidate"],
    "email": ["email", "email_address", "primary_email", "e_mail", "mail"],
    "company": ["company", "employer", "current_company", "organization", "organisation"],
    "title": ["title", "job_title", "position", "role", "current_title", "designation"],
    "location": ["location", "city", "current_location"],
    "profile_handle": ["profile_handle", "linkedin", "linkedin_url", "profile_url", "linkedin_profile", "profile"],
    "skills": ["skills", "skill_set", "skillset", "technologies", "key_skills"],
    "summary": ["summary", "professional_summary", "about", "notes"],
    "phone": ["phone", "phone_number", "mobile", "contact_number"],
}

SUPPORTED_EXTENSIONS = {".csv", ".xlsx", ".xlsm"}

_SKILL_SPLIT = re.compile(r"[,;|\n]+")

T = TypeVar("T")


def normalize_header(header: Any) -> str:
    return re.sub(r"[\s\-]+", "_", str(header).strip().lower())


def map_columns(headers: Sequence[Any]) -> Dict[str, str]:
    """Map canonical field -> actual column name, first synonym wins."""
    by_normalized = {}
    for header in headers:
        by_normalized.setdefault(normalize_header(header), header)
    mapping = {}
    for field, synonyms in COLUMN_SYNONYMS.items():
        for synonym in synonyms:
            if synonym in by_normalized:
                mapping[field] = by_normalized[synonym]
                break
    return mapping


def split_skills(value: Any) -> List[str]:
    if value is None:
        return []
    skills = []
    for part in _SKILL_SPLIT.split(str(value)):
        part = part.strip()
        if part and part not in skills:
            skills.append(part)
    return skills


def _cell(row: Dict[str, Any], column: Optional[str]) -> Optional[str]:
    if column is None:
        return None
    value = row.get(column)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def rows_to_submissions(rows: List[Dict[str, Any]], headers: Sequence[Any]) -> List[CandidateSubmission]:
    mapping = map_columns(headers)
    normalized = {normalize_header(h): h for h in headers}
    if "name" not in mapping and not {"first_name", "last_name"} <= set(normalized):
        raise BatchSetupError(
            "No name column found. Expected one of: " + ", ".join(COLUMN_SYNONYMS["name"])
        )

    submissions = []
    for row in rows:
        name = _cell(row, mapping.get("name"))
        if name is None and "name" not in mapping:
            parts = [_cell(row, normalized["first_name"]), _cell(row, normalized["last_name"])]
            name = " ".join(p for p in parts if p) or None
        submissions.append(CandidateSubmission(
            name=name or "",
            email=_cell(row, mapping.get("email")),
            company=_cell(row, mapping.get("company")),
            title=_cell(row, mapping.get("title")),
            location=_cell(row, mapping.get("location")),
            profile_handle=_cell(row, mapping.get("profile_handle")),
            summary=_cell(row, mapping.get("summary")),
            phone=_cell(row, mapping.get("phone")),
            skills=tuple(split_skills(_cell(row, mapping.get("skills")))),
        ))
    return submissions


def read_submissions(path: Path) -> List[CandidateSubmission]:
    """Read a CSV or Excel file into submissions.

    Raises:
        BatchSetupError: missing file, unsupported type, unreadable content
            or no name column
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise BatchSetupError(f"Unsupported file type: {path.name} (use .csv or .xlsx)")
    if not path.exists():
        raise BatchSetupError(f"Input file not found: {path}")

    try:
        if suffix == ".csv":
            df = pd.read_csv(path, dtype=str, encoding="utf-8")
        else:
            df = pd.read_excel(path, sheet_name=0, dtype=str, engine="openpyxl")
    except Exception as e:
        logger.error("Failed to read batch file", path=str(path), error=str(e))
        raise BatchSetupError(f"Failed to read {path.name}: {e}") from e

    df = df.astype(object).where(pd.notna(df), None)
    rows = df.to_dict("records")
    logger.info(f"Parsed {path.name} with {len(rows)} rows and {len(df.columns)} columns")
    return rows_to_submissions(rows, list(df.columns))


def data_quality(submissions: Sequence[CandidateSubmission]) -> float:
    """Percentage of the core fields (name, email, company, title, location, handle) that are filled."""
    core = ("name", "email", "company", "title", "location", "profile_handle")
    if not submissions:
        return 0.0
    filled = sum(1 for s in submissions for f in core if getattr(s, f))
    return round(filled / (len(submissions) * len(core)) * 100, 1)


def page_slice(items: Sequence[T], page: int, page_size: int) -> List[T]:
    """Items on a 1-based page."""
    if page < 1 or page_size < 1:
        raise BatchSetupError("page and page_size must be positive")
    start = (page - 1) * page_size
    return list(items[start:start + page_size])
