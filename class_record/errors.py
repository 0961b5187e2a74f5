"""
Errors raised by the grade engine.

Everything derives from ValueError so UI code that already catches
ValueError (as the CSV helpers do) keeps working. A student missing the
honor roll is never an error: see honors.Eligibility.
"""


class GradingError(ValueError):
    pass


class InvalidScore(GradingError):
    """A score is negative, above its max, or sits in a slot with no max."""


class InvalidWeightConfiguration(GradingError):
    """Active category weights don't add up to 100, or a weighted category has no max."""


class OutOfDomain(GradingError):
    """A grade handed to transmutation/classification is outside 0-100."""
