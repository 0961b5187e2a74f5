from enum import Enum
from typing import Optional

from .settings import DEFAULT_SETTINGS, EngineSettings


class HonorTier(str, Enum):
    NONE = ""
    WITH_HONORS = "With Honors"
    WITH_HIGH_HONORS = "With High Honors"
    WITH_HIGHEST_HONORS = "With Highest Honors"

    @property
    def label(self) -> str:
        return self.value


class Eligibility(str, Enum):
    ELIGIBLE = "Eligible"
    INELIGIBLE_FAILING_QUARTER = "Ineligible (Failing Grade)"
    INELIGIBLE_FAILING_SUBJECT = "Ineligible (Failing Subject)"
    INELIGIBLE_BELOW_THRESHOLD = "Ineligible (Average < 90)"

    @property
    def label(self) -> str:
        return self.value


TIER_ORDER = {
    HonorTier.WITH_HIGHEST_HONORS: 1,
    HonorTier.WITH_HIGH_HONORS: 2,
    HonorTier.WITH_HONORS: 3,
    HonorTier.NONE: 4,
}

PASSED = "PASSED"
FAILED = "FAILED"


def classify_tier(grade: Optional[float], settings: EngineSettings = DEFAULT_SETTINGS) -> HonorTier:
    if grade is None:
        return HonorTier.NONE

    if grade >= settings.highest_honors_threshold:
        return HonorTier.WITH_HIGHEST_HONORS
    elif grade >= settings.high_honors_threshold:
        return HonorTier.WITH_HIGH_HONORS
    elif grade >= settings.honors_threshold:
        return HonorTier.WITH_HONORS
    else:
        return HonorTier.NONE


def is_passing(grade: float, settings: EngineSettings = DEFAULT_SETTINGS) -> bool:
    return grade >= settings.passing_grade
