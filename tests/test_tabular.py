"""
Tests for spreadsheet batch input.
"""

import pandas as pd
import pytest

from talentintake.errors import BatchSetupError
from talentintake.models import CandidateSubmission
from talentintake.tabular import (
    data_quality,
    map_columns,
    page_slice,
    read_submissions,
    split_skills,
)


def _write_csv(path, text):
    path.write_text(text, encoding="utf-8")
    return path


class TestColumnMapping:
    def test_synonyms_and_case(self):
        """Headers are matched case-insensitively against synonyms."""
        mapping = map_columns(["Full Name", "E-Mail", "Employer", "Job Title", "LinkedIn URL", "Key Skills"])

        assert mapping == {
            "name": "Full Name",
            "email": "E-Mail",
            "company": "Employer",
            "title": "Job Title",
            "profile_handle": "LinkedIn URL",
            "skills": "Key Skills",
        }

    def test_split_skills(self):
        """Skills split on common separators, duplicates dropped."""
        assert split_skills("Python, Go; Kafka|Python") == ["Python", "Go", "Kafka"]
        assert split_skills(None) == []


class TestReadCsv:
    def test_rows_in_file_order(self, tmp_path):
        """Each row becomes a submission; blanks become None."""
        path = _write_csv(tmp_path / "batch.csv", (
            "Name,Email,Company,Title,Skills\n"
            "Jane Doe,jane@example.com,Acme,Engineer,\"Python, Go\"\n"
            "Bob Roe,,Globex,,\n"
        ))

        submissions = read_submissions(path)

        assert [s.name for s in submissions] == ["Jane Doe", "Bob Roe"]
        assert submissions[0].skills == ("Python", "Go")
        assert submissions[1].email is None
        assert submissions[1].title is None

    def test_values_kept_as_text(self, tmp_path):
        """Numeric-looking cells are not converted."""
        path = _write_csv(tmp_path / "batch.csv", "name,phone\nJane,007123\n")

        assert read_submissions(path)[0].phone == "007123"

    def test_first_and_last_name_columns(self, tmp_path):
        """Split name columns are combined."""
        path = _write_csv(tmp_path / "batch.csv", "First Name,Last Name,Email\nJane,Doe,jane@example.com\n")

        assert read_submissions(path)[0].name == "Jane Doe"

    def test_row_without_name_is_kept(self, tmp_path):
        """A blank name survives parsing so it can fail validation on its own."""
        path = _write_csv(tmp_path / "batch.csv", "name,email\n,ghost@example.com\nJane,jane@example.com\n")

        submissions = read_submissions(path)

        assert len(submissions) == 2
        assert submissions[0].name == ""

    def test_header_only_file(self, tmp_path):
        """A file with headers but no rows yields an empty batch."""
        path = _write_csv(tmp_path / "batch.csv", "name,email\n")

        assert read_submissions(path) == []

    def test_missing_name_column(self, tmp_path):
        """Without any name column the batch cannot start."""
        path = _write_csv(tmp_path / "batch.csv", "email,company\na@x.com,Acme\n")

        with pytest.raises(BatchSetupError, match="name column"):
            read_submissions(path)

    def test_empty_file(self, tmp_path):
        """A zero-byte file is unreadable."""
        path = _write_csv(tmp_path / "batch.csv", "")

        with pytest.raises(BatchSetupError, match="Failed to read"):
            read_submissions(path)


class TestReadExcel:
    def test_xlsx(self, tmp_path):
        """Excel workbooks are read from the first sheet."""
        path = tmp_path / "batch.xlsx"
        pd.DataFrame([
            {"Candidate Name": "Jane Doe", "Email Address": "jane@example.com", "Skills": "Python; SQL"},
        ]).to_excel(path, index=False, engine="openpyxl")

        submissions = read_submissions(path)

        assert submissions == [CandidateSubmission(
            name="Jane Doe", email="jane@example.com", skills=("Python", "SQL"),
        )]


class TestReadErrors:
    def test_unsupported_extension(self, tmp_path):
        """Only CSV and Excel are accepted."""
        path = tmp_path / "batch.json"
        path.write_text("[]")

        with pytest.raises(BatchSetupError, match="Unsupported"):
            read_submissions(path)

    def test_missing_file(self, tmp_path):
        """A path that does not exist fails setup."""
        with pytest.raises(BatchSetupError, match="not found"):
            read_submissions(tmp_path / "missing.csv")


class TestHelpers:
    def test_page_slice(self):
        """Pages are 1-based; past the end is empty."""
        items = list(range(10))
        assert page_slice(items, 1, 4) == [0, 1, 2, 3]
        assert page_slice(items, 3, 4) == [8, 9]
        assert page_slice(items, 4, 4) == []

    def test_page_slice_rejects_non_positive(self):
        """Zero or negative paging is a setup error."""
        with pytest.raises(BatchSetupError):
            page_slice([1], 0, 10)

    def test_data_quality(self):
        """Share of core fields filled across the batch."""
        submissions = [
            CandidateSubmission(name="A", email="a@x.com", company="Acme", title="Eng", location="Berlin",
                                profile_handle="https://linkedin.com/in/a"),
            CandidateSubmission(name="B"),
        ]
        assert data_quality(submissions) == 58.3
        assert data_quality([]) == 0.0
