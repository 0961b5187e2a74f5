"""
Quarterly grade computation (DepEd Order 8, s. 2015).

Raw component scores -> initial grade (weighted percentage) -> transmuted
quarterly grade -> honor status / remark, plus the per-subject summary of
quarterly grades built on top of them.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .classification import FAILED, PASSED, HonorTier, classify_tier, is_passing
from .errors import InvalidScore, InvalidWeightConfiguration, OutOfDomain
from .numeric import round_half_up, round_to_int, rounded_mean, weighted_mean
from .roster import Student, order_roster
from .settings import DEFAULT_SETTINGS, QUARTERS, EngineSettings, default_weights

logger = logging.getLogger(__name__)

# Score slots hold a number, or None when nothing has been recorded yet.
Slot = Optional[float]

WRITTEN_WORK = "Written Work"
PERFORMANCE_TASK = "Performance Task"
QUARTERLY_ASSESSMENT = "Quarterly Assessment"


# ------------------------
# Data model
# ------------------------
@dataclass(frozen=True)
class ComponentConfig:
    """Highest possible scores and category weights for one subject/quarter/class."""
    written_work_max: Tuple[Slot, ...] = ()
    performance_task_max: Tuple[Slot, ...] = ()
    quarterly_assessment_max: Slot = None
    written_work_weight: float = 30
    performance_task_weight: float = 50
    quarterly_assessment_weight: float = 20

    def __post_init__(self):
        object.__setattr__(self, "written_work_max", tuple(self.written_work_max))
        object.__setattr__(self, "performance_task_max", tuple(self.performance_task_max))

    @classmethod
    def with_default_weights(cls, subject: str, **kwargs) -> "ComponentConfig":
        ww, pt, qa = default_weights(subject)
        return cls(
            written_work_weight=ww,
            performance_task_weight=pt,
            quarterly_assessment_weight=qa,
            **kwargs,
        )


@dataclass(frozen=True)
class RawRecord:
    """One student's recorded scores for one subject/quarter."""
    written_work_scores: Tuple[Slot, ...] = ()
    performance_task_scores: Tuple[Slot, ...] = ()
    quarterly_assessment_score: Slot = None

    def __post_init__(self):
        object.__setattr__(self, "written_work_scores", tuple(self.written_work_scores))
        object.__setattr__(self, "performance_task_scores", tuple(self.performance_task_scores))


@dataclass(frozen=True)
class QuarterlyGrade:
    initial_grade: Optional[float]
    transmuted_grade: Optional[int]


# ------------------------
# Transmutation table
# ------------------------
# (lowest initial grade, transmuted grade), highest band first
TRANSMUTATION_TABLE: List[Tuple[float, int]] = [
    (100.00, 100),
    (98.40, 99),
    (96.80, 98),
    (95.20, 97),
    (93.60, 96),
    (92.00, 95),
    (90.40, 94),
    (88.80, 93),
    (87.20, 92),
    (85.60, 91),
    (84.00, 90),
    (82.40, 89),
    (80.80, 88),
    (79.20, 87),
    (77.60, 86),
    (76.00, 85),
    (74.40, 84),
    (72.80, 83),
    (71.20, 82),
    (69.60, 81),
    (68.00, 80),
    (66.40, 79),
    (64.80, 78),
    (63.20, 77),
    (61.60, 76),
    (60.00, 75),
    (56.00, 74),
    (52.00, 73),
    (48.00, 72),
    (44.00, 71),
    (40.00, 70),
    (36.00, 69),
    (32.00, 68),
    (28.00, 67),
    (24.00, 66),
    (20.00, 65),
    (16.00, 64),
    (12.00, 63),
    (8.00, 62),
    (4.00, 61),
    (0.00, 60),
]


def _check_grade_domain(grade: float, what: str) -> float:
    try:
        value = float(grade)
    except (TypeError, ValueError):
        raise OutOfDomain(f"{what} must be a number between 0 and 100 (got {grade!r}).")
    if math.isnan(value) or value < 0 or value > 100:
        raise OutOfDomain(f"{what} must be between 0 and 100 (got {grade}).")
    return value


def transmute(initial_grade: float) -> int:
    value = _check_grade_domain(initial_grade, "Initial grade")
    # 60.00 can arrive as 59.99999999999999 after the category arithmetic
    value = round_half_up(value, 6)
    for lowest, grade in TRANSMUTATION_TABLE:
        if value >= lowest:
            return grade
    # unreachable: the last band starts at 0
    raise OutOfDomain(f"No transmutation band for {initial_grade}.")


# ------------------------
# Initial grade
# ------------------------
def _has_max(max_score: Slot) -> bool:
    return max_score is not None and max_score > 0


def _validate_config(config: ComponentConfig) -> None:
    categories = [
        (WRITTEN_WORK, config.written_work_weight, list(config.written_work_max)),
        (PERFORMANCE_TASK, config.performance_task_weight, list(config.performance_task_max)),
        (QUARTERLY_ASSESSMENT, config.quarterly_assessment_weight, [config.quarterly_assessment_max]),
    ]

    active_total = 0.0
    any_active = False
    for label, weight, maxes in categories:
        if weight is None or weight < 0:
            raise InvalidWeightConfiguration(f"{label} weight must be a non-negative percentage (got {weight}).")
        for i, max_score in enumerate(maxes, start=1):
            if max_score is not None and max_score < 0:
                raise InvalidWeightConfiguration(f"{label} {i}: highest possible score cannot be negative (got {max_score}).")

        configured = any(_has_max(m) for m in maxes)
        if weight > 0 and not configured:
            raise InvalidWeightConfiguration(
                f"{label} has a weight of {weight}% but no highest possible score is configured."
            )
        if configured:
            any_active = True
            active_total += weight

    if any_active and abs(active_total - 100) > 1e-6:
        raise InvalidWeightConfiguration(f"Category weights must add up to 100% (got {active_total:g}%).")


def _check_score(label: str, index: int, score: float, max_score: Slot) -> None:
    if max_score is None:
        raise InvalidScore(f"{label} {index}: score {score} was recorded but no highest possible score is configured.")
    if score < 0:
        raise InvalidScore(f"{label} {index}: score cannot be negative (got {score}).")
    if score > max_score:
        raise InvalidScore(f"{label} {index}: score {score} exceeds the highest possible score {max_score}.")


def _category_percent(label: str, scores: Sequence[Slot], maxes: Sequence[Slot]) -> Optional[float]:
    """Percentage score of one category, or None when nothing in it can be scored."""
    if len(scores) != len(maxes):
        raise InvalidScore(
            f"{label}: record has {len(scores)} score slots but the class record has {len(maxes)}."
        )

    earned = 0.0
    possible = 0.0
    for i, (score, max_score) in enumerate(zip(scores, maxes), start=1):
        if score is None:
            continue
        _check_score(label, i, score, max_score)
        if not _has_max(max_score):
            continue
        earned += score
        possible += max_score

    if possible == 0:
        return None
    return earned / possible * 100


def compute_initial_grade(record: RawRecord, config: ComponentConfig) -> Optional[float]:
    """
    Weighted percentage of the categories that have data.

    A category with no scoreable slot is left out and the remaining weights
    are re-normalised, so a quarter without its quarterly assessment yet is
    graded on written work and performance tasks alone. Returns None when no
    category can be scored.
    """
    _validate_config(config)

    categories = [
        (WRITTEN_WORK,
         _category_percent(WRITTEN_WORK, record.written_work_scores, config.written_work_max),
         config.written_work_weight),
        (PERFORMANCE_TASK,
         _category_percent(PERFORMANCE_TASK, record.performance_task_scores, config.performance_task_max),
         config.performance_task_weight),
        (QUARTERLY_ASSESSMENT,
         _category_percent(QUARTERLY_ASSESSMENT, [record.quarterly_assessment_score], [config.quarterly_assessment_max]),
         config.quarterly_assessment_weight),
    ]

    percents = []
    weights = []
    for label, percent, weight in categories:
        if percent is None:
            logger.debug("%s has no scoreable entries; left out of the initial grade", label)
            continue
        percents.append(percent)
        weights.append(weight)

    return weighted_mean(percents, weights)


def compute_quarterly_grade(record: RawRecord, config: ComponentConfig) -> QuarterlyGrade:
    initial = compute_initial_grade(record, config)
    transmuted = transmute(initial) if initial is not None else None
    return QuarterlyGrade(initial_grade=initial, transmuted_grade=transmuted)


# ------------------------
# Status & remarks
# ------------------------
def get_honor_status(transmuted_grade: Optional[float],
                     settings: EngineSettings = DEFAULT_SETTINGS) -> HonorTier:
    if transmuted_grade is None:
        return HonorTier.NONE
    value = _check_grade_domain(transmuted_grade, "Grade")
    return classify_tier(round_to_int(value), settings)


def get_remark(grade: Optional[float], settings: EngineSettings = DEFAULT_SETTINGS) -> str:
    if grade is None:
        return ""
    value = _check_grade_domain(grade, "Grade")
    return PASSED if is_passing(round_to_int(value), settings) else FAILED


def final_grade(quarterly_grades: Sequence[Optional[float]]) -> Optional[int]:
    """Final grade of a subject: rounded mean of the quarters that have a grade."""
    return rounded_mean(quarterly_grades)


def compound_quarter_grade(component_grades: Mapping[str, Optional[float]],
                           settings: EngineSettings = DEFAULT_SETTINGS) -> Optional[int]:
    """
    Compound subject (MAPEH) grade for one quarter from its component
    quarterly grades. None unless every component has a grade.
    """
    values = [component_grades.get(name) for name in settings.compound_components]
    if any(v is None for v in values):
        return None
    return rounded_mean(values)


# ------------------------
# Summary of quarterly grades
# ------------------------
@dataclass
class SummaryRow:
    student: Student
    quarterly_grades: List[Optional[int]]
    final_grade: Optional[int]
    remark: str


@dataclass
class SubjectSummary:
    rows: List[SummaryRow] = field(default_factory=list)
    # gender -> {"passed": n, "failed": n}
    stats: Dict[str, Dict[str, int]] = field(default_factory=dict)


def summarize_subject(students: Iterable[Student],
                      grades_by_student: Mapping[str, Sequence[Optional[int]]],
                      settings: EngineSettings = DEFAULT_SETTINGS) -> SubjectSummary:
    """
    Final grade and PASSED/FAILED remark per student for one subject, in
    roster order, with pass/fail counts per gender group.
    """
    summary = SubjectSummary()
    for student in order_roster(students, settings):
        grades = list(grades_by_student.get(student.student_id, ()))
        grades += [None] * (QUARTERS - len(grades))
        final = final_grade(grades)
        remark = get_remark(final, settings)
        summary.rows.append(SummaryRow(student, grades, final, remark))

        if not remark:
            continue
        counts = summary.stats.setdefault(student.gender, {"passed": 0, "failed": 0})
        counts["passed" if remark == PASSED else "failed"] += 1

    return summary


# ------------------------
# Per-quarter subject honor list
# ------------------------
@dataclass(frozen=True)
class QuarterlyHonor:
    student: Student
    quarterly_grade: int
    honor_status: HonorTier


def quarterly_honor_list(entries: Iterable[Tuple[Student, Optional[RawRecord], Optional[ComponentConfig]]],
                         settings: EngineSettings = DEFAULT_SETTINGS) -> List[QuarterlyHonor]:
    """
    Students with an honor status in one subject for one quarter, best
    quarterly grade first. Students without a record or config are skipped.
    """
    honors = []
    for student, record, config in entries:
        if record is None or config is None:
            continue
        grade = compute_quarterly_grade(record, config).transmuted_grade
        if grade is None:
            continue
        status = get_honor_status(grade, settings)
        if status is not HonorTier.NONE:
            honors.append(QuarterlyHonor(student, grade, status))

    # sorted() is stable: ties keep roster order
    return sorted(honors, key=lambda h: h.quarterly_grade, reverse=True)
