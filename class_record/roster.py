import unicodedata
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .settings import DEFAULT_SETTINGS, EngineSettings


@dataclass(frozen=True)
class Student:
    student_id: str
    first_name: str
    last_name: str
    gender: str = "Unspecified"
    middle_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        """'Dela Cruz, Juan P.' as printed on class records."""
        name = f"{self.last_name}, {self.first_name}"
        if self.middle_name and self.middle_name.strip():
            name += f" {self.middle_name.strip()[0]}."
        return name


def _name_key(name: Optional[str]) -> str:
    # Peña sorts with Pena, dela Cruz with Dela Cruz
    decomposed = unicodedata.normalize("NFKD", name or "")
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


def roster_sort_key(student: Student, settings: EngineSettings = DEFAULT_SETTINGS):
    return (
        settings.group_rank(student.gender),
        _name_key(student.last_name),
        _name_key(student.first_name),
    )


def order_roster(students: Iterable[Student], settings: EngineSettings = DEFAULT_SETTINGS) -> List[Student]:
    """
    Males, then females, then everyone else; alphabetical by last name then
    first name inside each group. Stable, so exact duplicates keep their
    input order.
    """
    return sorted(students, key=lambda s: roster_sort_key(s, settings))


def first_index_of_group(ordered_roster: List[Student], group: str) -> int:
    """Index where `group` starts in an ordered roster, or -1 if nobody is in it."""
    for i, student in enumerate(ordered_roster):
        if student.gender == group:
            return i
    return -1


def split_by_group(ordered_roster: Iterable[Student]) -> Dict[str, List[Student]]:
    groups: Dict[str, List[Student]] = {}
    for student in ordered_roster:
        groups.setdefault(student.gender, []).append(student)
    return groups
