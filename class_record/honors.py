"""
Honors aggregation for a class.

Each student has up to four quarterly grades per subject. From those we get
subject averages, the compound subject (MAPEH) average, a general average,
an eligibility verdict and an honor tier:

  A. subject average   = rounded mean of the recorded quarters
  B. compound average  = rounded mean of the component averages, only when
                         every component subject has an average
  C. general average   = mean of the subject averages used for ranking
  D. eligibility       = no failing quarter, no failing subject, general
                         average at least 90 (checked in that order)
  E. tier              = 98 / 95 / 90 cut-offs, eligible students only
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .classification import TIER_ORDER, Eligibility, HonorTier, classify_tier, is_passing
from .errors import GradingError, OutOfDomain
from .numeric import mean_of_present, round_to_int, rounded_mean
from .roster import Student, order_roster
from .settings import DEFAULT_SETTINGS, QUARTERS, EngineSettings

logger = logging.getLogger(__name__)

QuarterGrades = Tuple[Optional[int], ...]


def _check_quarter_value(value, where: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise OutOfDomain(f"{where}: grade must be a whole number between 0 and 100 (got {value!r}).")
    if isinstance(value, float):
        if not value.is_integer():
            raise OutOfDomain(f"{where}: grade must be a whole number between 0 and 100 (got {value}).")
        value = int(value)
    if not isinstance(value, int):
        raise OutOfDomain(f"{where}: grade must be a whole number between 0 and 100 (got {value!r}).")
    if value < 0 or value > 100:
        raise OutOfDomain(f"{where}: grade must be between 0 and 100 (got {value}).")
    return value


def _check_quarters(grades: Sequence, where: str) -> QuarterGrades:
    if len(grades) != QUARTERS:
        raise GradingError(f"{where}: expected {QUARTERS} quarterly grades (got {len(grades)}).")
    return tuple(
        _check_quarter_value(g, f"{where}, quarter {q}") for q, g in enumerate(grades, start=1)
    )


# ------------------------
# Batch
# ------------------------
@dataclass(frozen=True)
class HonorsCalculationBatch:
    """
    Quarterly grades for one class, entered directly (typed or pasted)
    rather than computed from class records.

    subjects:        ordered subject list configured for honors
    student_grades:  student id -> subject -> 4 quarterly grades (None = blank)
    """
    subjects: Tuple[str, ...] = ()
    student_grades: Mapping[str, Mapping[str, QuarterGrades]] = field(default_factory=dict)

    def __post_init__(self):
        subjects = tuple(self.subjects)
        if len(set(subjects)) != len(subjects):
            raise GradingError(f"Subjects must be unique (got {list(subjects)}).")

        grades: Dict[str, Dict[str, QuarterGrades]] = {}
        for student_id, by_subject in self.student_grades.items():
            grades[student_id] = {
                subject: _check_quarters(values, f"{student_id} / {subject}")
                for subject, values in by_subject.items()
            }

        object.__setattr__(self, "subjects", subjects)
        object.__setattr__(self, "student_grades", grades)

    @property
    def student_ids(self) -> List[str]:
        return list(self.student_grades.keys())

    def grades_for(self, student_id: str, subject: str) -> QuarterGrades:
        return self.student_grades.get(student_id, {}).get(subject, (None,) * QUARTERS)

    def with_grade(self, student_id: str, subject: str, quarter: int, value: Optional[int]) -> "HonorsCalculationBatch":
        if not 1 <= quarter <= QUARTERS:
            raise GradingError(f"Quarter must be between 1 and {QUARTERS} (got {quarter}).")
        grades = {sid: dict(by_subject) for sid, by_subject in self.student_grades.items()}
        current = list(grades.setdefault(student_id, {}).get(subject, (None,) * QUARTERS))
        current[quarter - 1] = value
        grades[student_id][subject] = tuple(current)
        return replace(self, student_grades=grades)

    def with_subject(self, subject: str) -> "HonorsCalculationBatch":
        name = subject.strip()
        if not name:
            raise GradingError("Subject name cannot be empty.")
        if name in self.subjects:
            raise GradingError(f"Subject {name!r} already exists.")
        return replace(self, subjects=self.subjects + (name,))

    def without_subject(self, subject: str) -> "HonorsCalculationBatch":
        grades = {
            sid: {s: g for s, g in by_subject.items() if s != subject}
            for sid, by_subject in self.student_grades.items()
        }
        return replace(
            self,
            subjects=tuple(s for s in self.subjects if s != subject),
            student_grades=grades,
        )


# ------------------------
# Results
# ------------------------
@dataclass(frozen=True)
class HonorsResult:
    student_id: str
    subject_averages: Dict[str, Optional[int]]
    compound_average: Optional[int]
    general_average: Optional[float]
    eligibility: Eligibility
    tier: HonorTier
    remark: str

    @property
    def rounded_general_average(self) -> Optional[int]:
        if self.general_average is None:
            return None
        return round_to_int(self.general_average)


@dataclass(frozen=True)
class HonorRollEntry:
    student_id: str
    general_average: float
    tier: HonorTier
    student: Optional[Student] = None


def _subject_averages(student_id: str, batch: HonorsCalculationBatch) -> Dict[str, Optional[int]]:
    return {
        subject: rounded_mean(batch.grades_for(student_id, subject))
        for subject in batch.subjects
    }


def _compound_average(averages: Mapping[str, Optional[int]],
                      subjects: Sequence[str],
                      settings: EngineSettings) -> Optional[int]:
    components = settings.compound_components
    if not components or not set(components) <= set(subjects):
        return None
    component_avgs = [averages[c] for c in components]
    if any(avg is None for avg in component_avgs):
        return None
    return rounded_mean(component_avgs)


def _ranking_values(averages: Mapping[str, Optional[int]],
                    compound: Optional[int],
                    settings: EngineSettings) -> List[Optional[int]]:
    if compound is None:
        return list(averages.values())
    components = set(settings.compound_components)
    values = [avg for subject, avg in averages.items() if subject not in components]
    values.append(compound)
    return values


def _eligibility(student_id: str,
                 batch: HonorsCalculationBatch,
                 averages: Mapping[str, Optional[int]],
                 general_average: Optional[float],
                 settings: EngineSettings) -> Eligibility:
    for subject in batch.subjects:
        for grade in batch.grades_for(student_id, subject):
            if grade is not None and not is_passing(grade, settings):
                return Eligibility.INELIGIBLE_FAILING_QUARTER

    # averages are already rounded: 74.5 counts as 75
    for avg in averages.values():
        if avg is not None and not is_passing(avg, settings):
            return Eligibility.INELIGIBLE_FAILING_SUBJECT

    if general_average is None or general_average < settings.honors_threshold:
        return Eligibility.INELIGIBLE_BELOW_THRESHOLD

    return Eligibility.ELIGIBLE


def _remark(eligibility: Eligibility, tier: HonorTier, settings: EngineSettings) -> str:
    if eligibility is Eligibility.ELIGIBLE:
        return tier.label
    if eligibility is Eligibility.INELIGIBLE_BELOW_THRESHOLD:
        return f"Ineligible (Average < {settings.honors_threshold:g})"
    return eligibility.label


def compute_honors_result(student_id: str,
                          batch: HonorsCalculationBatch,
                          settings: EngineSettings = DEFAULT_SETTINGS) -> HonorsResult:
    averages = _subject_averages(student_id, batch)
    compound = _compound_average(averages, batch.subjects, settings)
    general_average = mean_of_present(_ranking_values(averages, compound, settings))

    eligibility = _eligibility(student_id, batch, averages, general_average, settings)
    if eligibility is Eligibility.ELIGIBLE:
        tier = classify_tier(general_average, settings)
    else:
        tier = HonorTier.NONE

    logger.debug(
        "%s: general average %s, %s, %s",
        student_id, general_average, eligibility.name, tier.name,
    )
    return HonorsResult(
        student_id=student_id,
        subject_averages=averages,
        compound_average=compound,
        general_average=general_average,
        eligibility=eligibility,
        tier=tier,
        remark=_remark(eligibility, tier, settings),
    )


def _student_order(batch: HonorsCalculationBatch,
                   roster: Optional[Iterable[Student]],
                   settings: EngineSettings) -> List[Tuple[str, Optional[Student]]]:
    if roster is None:
        return [(sid, None) for sid in batch.student_ids]
    return [(s.student_id, s) for s in order_roster(roster, settings)]


def compute_batch_results(batch: HonorsCalculationBatch,
                          settings: EngineSettings = DEFAULT_SETTINGS,
                          roster: Optional[Iterable[Student]] = None) -> Dict[str, HonorsResult]:
    """Results for every student, in roster order when a roster is given."""
    return {
        sid: compute_honors_result(sid, batch, settings)
        for sid, _ in _student_order(batch, roster, settings)
    }


def build_honor_roll(batch: HonorsCalculationBatch,
                     settings: EngineSettings = DEFAULT_SETTINGS,
                     roster: Optional[Iterable[Student]] = None) -> List[HonorRollEntry]:
    """
    Students with an honor tier, highest general average first. Ties keep
    roster order (or the batch's order when no roster is given).
    """
    roll = []
    for sid, student in _student_order(batch, roster, settings):
        result = compute_honors_result(sid, batch, settings)
        if result.tier is HonorTier.NONE:
            continue
        roll.append(HonorRollEntry(sid, result.general_average, result.tier, student))

    logger.info("Honor roll: %d of %d students", len(roll), len(batch.student_grades))
    return sorted(roll, key=lambda e: e.general_average, reverse=True)


def group_honor_roll(roll: Iterable[HonorRollEntry]) -> Dict[HonorTier, List[HonorRollEntry]]:
    """Honor roll split by tier, highest tier first; order inside a tier is kept."""
    groups = {
        tier: [] for tier in sorted(TIER_ORDER, key=TIER_ORDER.get) if tier is not HonorTier.NONE
    }
    for entry in roll:
        groups[entry.tier].append(entry)
    return groups
