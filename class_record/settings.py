"""
Engine settings and default category weights.

School-wide defaults live in the data store; callers turn them into an
EngineSettings and pass it to every engine call.
"""
import re
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Tuple, Union


# quarters in a school year; batches, CSV columns and summaries all use it
QUARTERS = 4


# ------------------------
# Engine settings
# ------------------------
@dataclass(frozen=True)
class EngineSettings:
    passing_grade: float = 75
    honors_threshold: float = 90
    high_honors_threshold: float = 95
    highest_honors_threshold: float = 98

    # MAPEH is only graded as one subject when all four components have data
    compound_subject: str = "MAPEH"
    compound_components: Tuple[str, ...] = ("Music", "Arts", "PE", "Health")

    # lower rank sorts first; unknown genders get OTHER_GROUP_RANK
    # stored as (gender, rank) pairs so the settings stay hashable
    gender_ranks: Union[Mapping[str, int], Tuple[Tuple[str, int], ...]] = (("Male", 1), ("Female", 2))

    OTHER_GROUP_RANK = 3

    def __post_init__(self):
        if not (self.honors_threshold <= self.high_honors_threshold <= self.highest_honors_threshold):
            raise ValueError("Honors thresholds must be non-decreasing (honors <= high <= highest).")
        # tuples/dicts from YAML or JSON arrive as lists
        object.__setattr__(self, "compound_components", tuple(self.compound_components))
        object.__setattr__(self, "gender_ranks", tuple(dict(self.gender_ranks).items()))

    def group_rank(self, gender) -> int:
        return dict(self.gender_ranks).get(gender, self.OTHER_GROUP_RANK)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EngineSettings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


DEFAULT_SETTINGS = EngineSettings()


# ------------------------
# Default category weights (percent)
# ------------------------
MAPEH_TLE_WEIGHTS = (20, 60, 20)
MATH_SCIENCE_WEIGHTS = (40, 40, 20)
LANGUAGE_WEIGHTS = (30, 50, 20)

_MAPEH_TLE_TERMS = (
    "mapeh", "music", "arts", "pe", "health", "epp", "tle",
    "technology and livelihood education",
    "edukasyong pantahanan at pangkabuhayan",
)
_MATH_SCIENCE_TERMS = ("math", "mathematics", "science")


def _mentions(subject: str, terms) -> bool:
    s = subject.lower().strip()
    words = set(re.findall(r"[a-z]+", s))
    for term in terms:
        if " " in term:
            if term in s:
                return True
        elif term in words:
            return True
    return False


def default_weights(subject: str) -> Tuple[int, int, int]:
    """
    (written work, performance task, quarterly assessment) weights for a
    subject, by subject family. Languages, AP and EsP fall through to 30/50/20.
    """
    if _mentions(subject, _MAPEH_TLE_TERMS):
        return MAPEH_TLE_WEIGHTS
    if _mentions(subject, _MATH_SCIENCE_TERMS):
        return MATH_SCIENCE_WEIGHTS
    return LANGUAGE_WEIGHTS


def settings_summary(settings: EngineSettings) -> Dict[str, Any]:
    return {
        "passing_grade": settings.passing_grade,
        "honors": settings.honors_threshold,
        "high_honors": settings.high_honors_threshold,
        "highest_honors": settings.highest_honors_threshold,
        "compound_subject": settings.compound_subject,
        "compound_components": list(settings.compound_components),
    }
