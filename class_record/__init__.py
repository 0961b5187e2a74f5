"""
Class record grade engine: quarterly grades (DepEd Order 8, s. 2015) and
honor-roll classification.
"""
from .classification import Eligibility, HonorTier
from .errors import GradingError, InvalidScore, InvalidWeightConfiguration, OutOfDomain
from .honors import (
    HonorRollEntry,
    HonorsCalculationBatch,
    HonorsResult,
    build_honor_roll,
    compute_batch_results,
    compute_honors_result,
    group_honor_roll,
)
from .quarterly import (
    ComponentConfig,
    QuarterlyGrade,
    RawRecord,
    compute_initial_grade,
    compute_quarterly_grade,
    get_honor_status,
    get_remark,
    transmute,
)
from .roster import Student, first_index_of_group, order_roster
from .settings import DEFAULT_SETTINGS, EngineSettings

__all__ = [
    "Eligibility",
    "HonorTier",
    "GradingError",
    "InvalidScore",
    "InvalidWeightConfiguration",
    "OutOfDomain",
    "HonorRollEntry",
    "HonorsCalculationBatch",
    "HonorsResult",
    "build_honor_roll",
    "compute_batch_results",
    "compute_honors_result",
    "group_honor_roll",
    "ComponentConfig",
    "QuarterlyGrade",
    "RawRecord",
    "compute_initial_grade",
    "compute_quarterly_grade",
    "get_honor_status",
    "get_remark",
    "transmute",
    "Student",
    "first_index_of_group",
    "order_roster",
    "DEFAULT_SETTINGS",
    "EngineSettings",
]
