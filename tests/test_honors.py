import pytest

from class_record.classification import Eligibility, HonorTier
from class_record.errors import GradingError, OutOfDomain
from class_record.honors import (
    HonorsCalculationBatch,
    _eligibility,
    build_honor_roll,
    compute_batch_results,
    compute_honors_result,
    group_honor_roll,
)
from class_record.roster import Student
from class_record.settings import EngineSettings

CORE = ("Math", "English", "Science", "Filipino")
MAPEH = ("Music", "Arts", "PE", "Health")


def _flat(grade):
    return [grade] * 4


def _core_batch(math):
    return HonorsCalculationBatch(
        subjects=CORE,
        student_grades={
            "s1": {
                "Math": math,
                "English": _flat(95),
                "Science": _flat(96),
                "Filipino": _flat(94),
            }
        },
    )


def test_eligible_student_with_honors():
    result = compute_honors_result("s1", _core_batch([90, 92, 88, 91]))

    assert result.subject_averages == {"Math": 90, "English": 95, "Science": 96, "Filipino": 94}
    assert result.general_average == pytest.approx(93.75)
    assert result.rounded_general_average == 94
    assert result.compound_average is None
    assert result.eligibility is Eligibility.ELIGIBLE
    assert result.tier is HonorTier.WITH_HONORS
    assert result.remark == "With Honors"


def test_failing_quarter_blocks_honors_regardless_of_average():
    result = compute_honors_result("s1", _core_batch([90, 70, 88, 91]))

    assert result.eligibility is Eligibility.INELIGIBLE_FAILING_QUARTER
    assert result.tier is HonorTier.NONE
    assert result.remark == "Ineligible (Failing Grade)"
    # the averages are still reported
    assert result.general_average is not None


def test_failing_quarter_checked_before_anything_else():
    result = compute_honors_result("s1", _core_batch([70, 95, 95, 95]))
    assert result.eligibility is Eligibility.INELIGIBLE_FAILING_QUARTER


def test_failing_subject_checked_before_threshold():
    batch = HonorsCalculationBatch(subjects=("Math",), student_grades={"s1": {"Math": _flat(80)}})
    verdict = _eligibility("s1", batch, {"Math": 74, "English": 99}, 95.0, EngineSettings())
    assert verdict is Eligibility.INELIGIBLE_FAILING_SUBJECT


def test_below_threshold():
    batch = HonorsCalculationBatch(subjects=CORE, student_grades={"s1": {s: _flat(89) for s in CORE}})
    result = compute_honors_result("s1", batch)

    assert result.eligibility is Eligibility.INELIGIBLE_BELOW_THRESHOLD
    assert result.tier is HonorTier.NONE
    assert result.remark == "Ineligible (Average < 90)"


def test_student_without_grades():
    batch = HonorsCalculationBatch(subjects=CORE, student_grades={"s1": {}})
    result = compute_honors_result("s1", batch)

    assert result.subject_averages == {s: None for s in CORE}
    assert result.general_average is None
    assert result.eligibility is Eligibility.INELIGIBLE_BELOW_THRESHOLD
    assert result.rounded_general_average is None


def test_empty_subject_is_left_out_of_general_average():
    batch = HonorsCalculationBatch(
        subjects=("Math", "English"),
        student_grades={"s1": {"Math": _flat(96), "English": [None] * 4}},
    )
    result = compute_honors_result("s1", batch)

    assert result.subject_averages["English"] is None
    assert result.general_average == 96
    assert result.tier is HonorTier.WITH_HIGH_HONORS


def test_subject_average_rounds_half_up():
    batch = HonorsCalculationBatch(
        subjects=("Math",),
        student_grades={"s1": {"Math": [90, 91, None, None]}},
    )
    assert compute_honors_result("s1", batch).subject_averages["Math"] == 91


def test_tiers():
    def tier_for(grade):
        batch = HonorsCalculationBatch(subjects=("Math",), student_grades={"s1": {"Math": _flat(grade)}})
        return compute_honors_result("s1", batch).tier

    assert tier_for(100) is HonorTier.WITH_HIGHEST_HONORS
    assert tier_for(98) is HonorTier.WITH_HIGHEST_HONORS
    assert tier_for(97) is HonorTier.WITH_HIGH_HONORS
    assert tier_for(95) is HonorTier.WITH_HIGH_HONORS
    assert tier_for(94) is HonorTier.WITH_HONORS
    assert tier_for(90) is HonorTier.WITH_HONORS
    assert tier_for(89) is HonorTier.NONE


def _mapeh_batch(health):
    return HonorsCalculationBatch(
        subjects=("Math",) + MAPEH,
        student_grades={
            "s1": {
                "Math": _flat(92),
                "Music": _flat(96),
                "Arts": _flat(97),
                "PE": _flat(95),
                "Health": health,
            }
        },
    )


def test_mapeh_folds_into_one_subject_when_complete():
    result = compute_honors_result("s1", _mapeh_batch(_flat(94)))

    # (96 + 97 + 95 + 94) / 4 = 95.5
    assert result.compound_average == 96
    # Math and MAPEH, not Math and four components
    assert result.general_average == pytest.approx(94.0)
    assert result.tier is HonorTier.WITH_HONORS


def test_incomplete_mapeh_components_count_individually():
    result = compute_honors_result("s1", _mapeh_batch([None] * 4))

    assert result.subject_averages["Health"] is None
    assert result.compound_average is None
    # Math, Music, Arts, PE
    assert result.general_average == pytest.approx((92 + 96 + 97 + 95) / 4)
    assert result.tier is HonorTier.WITH_HIGH_HONORS


def test_mapeh_needs_every_component_configured():
    batch = HonorsCalculationBatch(
        subjects=("Music", "Arts", "PE"),
        student_grades={"s1": {"Music": _flat(96), "Arts": _flat(97), "PE": _flat(95)}},
    )
    result = compute_honors_result("s1", batch)

    assert result.compound_average is None
    assert result.general_average == pytest.approx(96.0)


def test_failing_mapeh_component_gates_eligibility():
    batch = _mapeh_batch([80, 74, 80, 80])
    assert compute_honors_result("s1", batch).eligibility is Eligibility.INELIGIBLE_FAILING_QUARTER


def test_custom_compound_group():
    settings = EngineSettings(compound_subject="Science", compound_components=("Biology", "Chemistry"))
    batch = HonorsCalculationBatch(
        subjects=("Biology", "Chemistry", "Math"),
        student_grades={"s1": {"Biology": _flat(91), "Chemistry": _flat(92), "Math": _flat(99)}},
    )
    result = compute_honors_result("s1", batch, settings)

    assert result.compound_average == 92
    assert result.general_average == pytest.approx((92 + 99) / 2)


def test_custom_thresholds():
    settings = EngineSettings.from_mapping({"honors_threshold": 85, "unknown_key": "ignored"})
    batch = HonorsCalculationBatch(subjects=("Math",), student_grades={"s1": {"Math": _flat(88)}})
    result = compute_honors_result("s1", batch, settings)

    assert result.tier is HonorTier.WITH_HONORS


def _roll_batch():
    return HonorsCalculationBatch(
        subjects=("Math", "English"),
        student_grades={
            "s4": {"Math": _flat(89), "English": _flat(89)},
            "s3": {"Math": _flat(90), "English": _flat(91)},
            "s1": {"Math": _flat(99), "English": _flat(99)},
            "s5": {},
            "s2": {"Math": _flat(95), "English": _flat(95)},
        },
    )


def test_honor_roll():
    roll = build_honor_roll(_roll_batch())

    assert [e.student_id for e in roll] == ["s1", "s2", "s3"]
    assert [e.general_average for e in roll] == [99, 95, 90.5]
    assert [e.tier for e in roll] == [
        HonorTier.WITH_HIGHEST_HONORS,
        HonorTier.WITH_HIGH_HONORS,
        HonorTier.WITH_HONORS,
    ]


def test_honor_roll_ties_keep_roster_order():
    batch = HonorsCalculationBatch(
        subjects=("Math",),
        student_grades={"a": {"Math": _flat(92)}, "b": {"Math": _flat(92)}},
    )
    assert [e.student_id for e in build_honor_roll(batch)] == ["a", "b"]

    roster = [
        Student("a", "Ana", "Zamora", "Female"),
        Student("b", "Ben", "Abad", "Male"),
    ]
    roll = build_honor_roll(batch, roster=roster)
    assert [e.student_id for e in roll] == ["b", "a"]
    assert roll[0].student.last_name == "Abad"


def test_group_honor_roll():
    groups = group_honor_roll(build_honor_roll(_roll_batch()))

    assert list(groups) == [
        HonorTier.WITH_HIGHEST_HONORS,
        HonorTier.WITH_HIGH_HONORS,
        HonorTier.WITH_HONORS,
    ]
    assert [[e.student_id for e in entries] for entries in groups.values()] == [["s1"], ["s2"], ["s3"]]


def test_batch_results_follow_roster():
    roster = [
        Student("s2", "Bea", "Cruz", "Female"),
        Student("s1", "Al", "Yap", "Male"),
    ]
    results = compute_batch_results(_roll_batch(), roster=roster)
    assert list(results) == ["s1", "s2"]
    assert results["s2"].tier is HonorTier.WITH_HIGH_HONORS


def test_computation_does_not_touch_the_batch():
    batch = _roll_batch()
    before = {sid: dict(g) for sid, g in batch.student_grades.items()}
    compute_batch_results(batch)
    build_honor_roll(batch)
    assert batch.student_grades == before


@pytest.mark.parametrize("grades", [
    [101, None, None, None],
    [-1, None, None, None],
    [90.5, None, None, None],
    ["90", None, None, None],
    [True, None, None, None],
])
def test_batch_rejects_bad_grades(grades):
    with pytest.raises(OutOfDomain):
        HonorsCalculationBatch(subjects=("Math",), student_grades={"s1": {"Math": grades}})


def test_batch_accepts_whole_floats():
    batch = HonorsCalculationBatch(subjects=("Math",), student_grades={"s1": {"Math": [90.0, None, None, None]}})
    assert batch.grades_for("s1", "Math") == (90, None, None, None)


def test_batch_needs_four_quarters():
    with pytest.raises(GradingError, match="expected 4"):
        HonorsCalculationBatch(subjects=("Math",), student_grades={"s1": {"Math": [90, 91, 92]}})


def test_batch_rejects_duplicate_subjects():
    with pytest.raises(GradingError):
        HonorsCalculationBatch(subjects=("Math", "Math"))


def test_with_grade_returns_a_new_batch():
    batch = HonorsCalculationBatch(subjects=("Math",))
    updated = batch.with_grade("s1", "Math", 2, 93)

    assert updated.grades_for("s1", "Math") == (None, 93, None, None)
    assert batch.grades_for("s1", "Math") == (None, None, None, None)
    with pytest.raises(OutOfDomain):
        batch.with_grade("s1", "Math", 1, 150)
    with pytest.raises(GradingError):
        batch.with_grade("s1", "Math", 5, 90)


def test_subject_list_editing():
    batch = HonorsCalculationBatch(subjects=("Math",), student_grades={"s1": {"Math": _flat(90)}})

    added = batch.with_subject("  English ")
    assert added.subjects == ("Math", "English")
    with pytest.raises(GradingError, match="already exists"):
        added.with_subject("Math")
    with pytest.raises(GradingError, match="empty"):
        added.with_subject("   ")

    removed = added.without_subject("Math")
    assert removed.subjects == ("English",)
    assert removed.student_grades == {"s1": {}}
