import logging
import re
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .classification import HonorTier
from .errors import GradingError
from .honors import HonorRollEntry, HonorsCalculationBatch, HonorsResult
from .roster import Student
from .settings import QUARTERS

logger = logging.getLogger(__name__)

QUARTER_COLUMNS = [f"q{q}" for q in range(1, QUARTERS + 1)]

_QUARTER_ALIASES = {
    "quarter 1": "q1", "1st quarter": "q1", "first quarter": "q1",
    "quarter 2": "q2", "2nd quarter": "q2", "second quarter": "q2",
    "quarter 3": "q3", "3rd quarter": "q3", "third quarter": "q3",
    "quarter 4": "q4", "4th quarter": "q4", "fourth quarter": "q4",
}
_COLUMN_ALIASES = {
    "student": "student_id", "lrn": "student_id", "id": "student_id", "student id": "student_id",
    "first name": "first_name", "firstname": "first_name",
    "last name": "last_name", "lastname": "last_name",
    "middle name": "middle_name", "middlename": "middle_name",
    "sex": "gender",
}

# ------------------------
# CSV helpers (UI-side)
# ------------------------

def _normalise_cols(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    cols = [re.sub(r"\s+", " ", str(c).strip().lower()) for c in df.columns]
    df.columns = [_QUARTER_ALIASES.get(c, _COLUMN_ALIASES.get(c, c)) for c in cols]
    return df

def read_csv_upload(uploaded_file) -> pd.DataFrame:
    # LRNs have leading zeros; keep every column as text until parsed
    df = pd.read_csv(uploaded_file, dtype=str, keep_default_na=True)
    return _normalise_cols(df)

def _require(df: pd.DataFrame, required: Sequence[str], expected: str) -> None:
    missing = set(required) - set(df.columns)
    if missing:
        raise ValueError(f"Missing columns: {sorted(missing)}. Expected: {expected}.")

def validate_grades_csv(df: pd.DataFrame) -> pd.DataFrame:
    required = ["student_id", "subject"] + QUARTER_COLUMNS
    _require(df, required, "Student ID, Subject, Q1, Q2, Q3, Q4")
    return df[required].copy()

def validate_roster_csv(df: pd.DataFrame) -> pd.DataFrame:
    required = ["student_id", "first_name", "last_name", "gender"]
    _require(df, required, "Student ID, First Name, Last Name, Gender")
    cols = required + (["middle_name"] if "middle_name" in df.columns else [])
    return df[cols].copy()

def _cell_text(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None

def _parse_grade(value, where: str) -> Optional[int]:
    text = _cell_text(value)
    if text is None:
        return None
    try:
        number = float(text)
    except ValueError:
        raise GradingError(f"{where}: {text!r} is not a grade.")
    # range/whole-number checks happen in the batch
    return int(number) if number.is_integer() else number

def parse_batch(df: pd.DataFrame, subjects: Optional[Sequence[str]] = None) -> HonorsCalculationBatch:
    """
    Build a batch from a validated grades frame (one row per student and
    subject). Subjects keep first-appearance order unless given explicitly.
    """
    student_grades: Dict[str, Dict[str, List]] = {}
    seen_subjects: List[str] = []

    for row_number, (_, row) in enumerate(df.iterrows(), start=2):
        student_id = _cell_text(row.get("student_id"))
        subject = _cell_text(row.get("subject"))
        if student_id is None or subject is None:
            continue
        if subject not in seen_subjects:
            seen_subjects.append(subject)

        where = f"Row {row_number}"
        grades = [_parse_grade(row.get(col), where) for col in QUARTER_COLUMNS]
        student_grades.setdefault(student_id, {})[subject] = grades

    batch = HonorsCalculationBatch(
        subjects=tuple(subjects) if subjects is not None else tuple(seen_subjects),
        student_grades=student_grades,
    )
    logger.info("Parsed grades for %d students in %d subjects", len(student_grades), len(batch.subjects))
    return batch

def parse_roster(df: pd.DataFrame) -> List[Student]:
    students = []
    for _, row in df.iterrows():
        student_id = _cell_text(row.get("student_id"))
        if student_id is None:
            continue
        gender = (_cell_text(row.get("gender")) or "Unspecified").title()
        if gender in ("M", "F"):
            gender = "Male" if gender == "M" else "Female"
        students.append(Student(
            student_id=student_id,
            first_name=_cell_text(row.get("first_name")) or "",
            last_name=_cell_text(row.get("last_name")) or "",
            gender=gender,
            middle_name=_cell_text(row.get("middle_name")),
        ))
    return students

# ------------------------
# Pasting a column of grades
# ------------------------

def apply_pasted_grades(batch: HonorsCalculationBatch,
                        ordered_ids: Sequence[str],
                        start_id: str,
                        subject: str,
                        quarter: int,
                        text: str) -> Tuple[HonorsCalculationBatch, int]:
    """
    Fill one quarter of one subject from a pasted column (one grade per line),
    starting at `start_id` and going down the roster. Lines that aren't whole
    numbers between 0 and 100 are skipped. Returns the new batch and how many
    grades were written.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines or start_id not in ordered_ids:
        return batch, 0

    start = list(ordered_ids).index(start_id)
    pasted = 0
    for offset, line in enumerate(lines):
        index = start + offset
        if index >= len(ordered_ids):
            break
        if not re.fullmatch(r"\d{1,3}", line) or int(line) > 100:
            logger.warning("Skipping pasted value %r for %s", line, ordered_ids[index])
            continue
        batch = batch.with_grade(ordered_ids[index], subject, quarter, int(line))
        pasted += 1

    return batch, pasted

# ------------------------
# Tables for display / download
# ------------------------

def results_frame(results: Mapping[str, HonorsResult],
                  roster: Optional[Iterable[Student]] = None,
                  compound_subject: str = "MAPEH") -> pd.DataFrame:
    names = {s.student_id: s.display_name for s in (roster or [])}
    rows = []
    for student_id, result in results.items():
        row = {"Student ID": student_id, "Name": names.get(student_id, "")}
        row.update(result.subject_averages)
        row[compound_subject] = result.compound_average
        row["General Average"] = result.general_average
        row["Remark"] = result.remark
        rows.append(row)
    df = pd.DataFrame(rows)
    if not df.empty and df[compound_subject].isna().all():
        df = df.drop(columns=[compound_subject])
    return df

def honor_roll_frame(roll: Iterable[HonorRollEntry]) -> pd.DataFrame:
    rows = []
    for rank, entry in enumerate(roll, start=1):
        rows.append({
            "Rank": rank,
            "Student ID": entry.student_id,
            "Name": entry.student.display_name if entry.student else "",
            "General Average": round(entry.general_average, 2),
            "Award": entry.tier.label,
        })
    return pd.DataFrame(rows, columns=["Rank", "Student ID", "Name", "General Average", "Award"])

def tier_counts(roll: Iterable[HonorRollEntry]) -> Dict[str, int]:
    counts = {t.label: 0 for t in HonorTier if t is not HonorTier.NONE}
    for entry in roll:
        counts[entry.tier.label] += 1
    return counts
