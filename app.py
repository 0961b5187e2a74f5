import logging
import os

import streamlit as st
import pandas as pd

from class_record.classification import HonorTier
from class_record.honors import (
    HonorsCalculationBatch,
    build_honor_roll,
    compute_batch_results,
    group_honor_roll,
)
from class_record.io_csv import *
from class_record.quarterly import ComponentConfig, RawRecord, compute_quarterly_grade, get_honor_status
from class_record.roster import first_index_of_group, order_roster
from class_record.settings import DEFAULT_SETTINGS, EngineSettings, settings_summary

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO")),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("class_record.app")

# ------------------------
# Streamlit UI
# ------------------------

st.set_page_config(
    page_title="Honors Calculator | Quarterly Grades & Honor Roll",
    page_icon="🏅",
    layout="wide",
)

st.title("🏅 Honors Calculator")
st.write(
    "Computes subject averages, the MAPEH average, the general average and the "
    "honor classification for a class, following DepEd Order 8, s. 2015 and the "
    "honors rules: no quarterly grade below 75, no subject average below 75, and a "
    "general average of at least 90."
)

with st.sidebar:
    st.subheader("School settings")
    passing = st.number_input("Passing grade", value=float(DEFAULT_SETTINGS.passing_grade), step=1.0)
    honors_cut = st.number_input("With Honors", value=float(DEFAULT_SETTINGS.honors_threshold), step=1.0)
    high_cut = st.number_input("With High Honors", value=float(DEFAULT_SETTINGS.high_honors_threshold), step=1.0)
    highest_cut = st.number_input("With Highest Honors", value=float(DEFAULT_SETTINGS.highest_honors_threshold), step=1.0)
    try:
        settings = EngineSettings(
            passing_grade=passing,
            honors_threshold=honors_cut,
            high_honors_threshold=high_cut,
            highest_honors_threshold=highest_cut,
        )
    except ValueError as e:
        st.error(str(e))
        settings = DEFAULT_SETTINGS
    st.json(settings_summary(settings))

# ------------------------
# Input form
# ------------------------

with st.form("honors_input_form"):
    st.subheader("1. Upload the class")

    up1, up2 = st.columns(2)
    with up1:
        roster_csv = st.file_uploader(
            "Class list CSV (Student ID, First Name, Last Name, Gender)",
            type=["csv"],
            key="roster_csv",
        )
    with up2:
        grades_csv = st.file_uploader(
            "Quarterly grades CSV (Student ID, Subject, Q1, Q2, Q3, Q4)",
            type=["csv"],
            key="grades_csv",
        )

    roster_seed = None
    roster_upload_error = None
    if roster_csv is not None:
        try:
            roster_seed = parse_roster(validate_roster_csv(read_csv_upload(roster_csv)))
        except Exception as e:
            roster_upload_error = str(e)

    grades_seed = None
    grades_upload_error = None
    if grades_csv is not None:
        try:
            grades_seed = validate_grades_csv(read_csv_upload(grades_csv))
        except Exception as e:
            grades_upload_error = str(e)

    if roster_upload_error:
        st.error(f"Class list CSV error: {roster_upload_error}")
    if grades_upload_error:
        st.error(f"Grades CSV error: {grades_upload_error}")

    st.markdown("**Quarterly grades** (edit before running)")
    grades_df = st.data_editor(
        grades_seed if grades_seed is not None else pd.DataFrame(columns=["student_id", "subject"] + QUARTER_COLUMNS),
        key="grades_df",
        num_rows="dynamic",
        use_container_width=True,
    )

    st.subheader("2. Subjects used for honors")
    subjects_text = st.text_input(
        "Subjects, comma separated (leave blank to use the subjects in the grades file)",
        value="",
    )
    add_mapeh = st.checkbox("Add MAPEH components (Music, Arts, PE, Health)", value=False)

    submitted = st.form_submit_button("Compute honors", type="primary")


if submitted:
    # If uploads were invalid, stop early so teachers don't get confusing results
    if roster_upload_error or grades_upload_error:
        st.warning("Please fix the CSV upload errors above (or remove the upload) and try again.")
    else:
        try:
            batch = parse_batch(validate_grades_csv(grades_df))
            if subjects_text.strip():
                batch = HonorsCalculationBatch(
                    subjects=tuple(s.strip() for s in subjects_text.split(",") if s.strip()),
                    student_grades=batch.student_grades,
                )
            if add_mapeh:
                for component in settings.compound_components:
                    if component not in batch.subjects:
                        batch = batch.with_subject(component)
        except ValueError as e:
            logger.warning("Rejected grades upload: %s", e)
            st.error(str(e))
        else:
            if not batch.student_grades:
                st.warning("Please enter at least one student's grades.")
            else:
                st.session_state["batch"] = batch
                st.session_state["roster"] = roster_seed
                st.session_state["settings"] = settings
                logger.info("Computing honors for %d students in %d subjects", len(batch.student_grades), len(batch.subjects))


# ------------------------
# Results
# ------------------------

if "batch" in st.session_state:
    batch = st.session_state["batch"]
    roster = st.session_state["roster"]
    settings = st.session_state["settings"]

    results = compute_batch_results(batch, settings, roster=roster)
    roll = build_honor_roll(batch, settings, roster=roster)

    st.markdown("---")
    st.subheader("Class results")

    table = results_frame(results, roster, compound_subject=settings.compound_subject)
    if roster:
        ordered = order_roster(roster, settings)
        female_start = first_index_of_group(ordered, "Female")
        if female_start > 0:
            st.caption(f"Rows 1-{female_start}: male students; rows {female_start + 1} onwards: female students.")
    st.dataframe(table, use_container_width=True)

    counts = tier_counts(roll)
    c1, c2, c3 = st.columns(3)
    with c1:
        st.metric(HonorTier.WITH_HIGHEST_HONORS.label, counts[HonorTier.WITH_HIGHEST_HONORS.label])
    with c2:
        st.metric(HonorTier.WITH_HIGH_HONORS.label, counts[HonorTier.WITH_HIGH_HONORS.label])
    with c3:
        st.metric(HonorTier.WITH_HONORS.label, counts[HonorTier.WITH_HONORS.label])

    st.subheader("Honor roll")
    if roll:
        for tier, entries in group_honor_roll(roll).items():
            if entries:
                st.markdown(f"**{tier.label}**")
                st.dataframe(honor_roll_frame(entries), use_container_width=True, hide_index=True)
        st.download_button(
            "Download honor roll (CSV)",
            honor_roll_frame(roll).to_csv(index=False),
            file_name="honor_roll.csv",
            mime="text/csv",
        )
    else:
        st.info("No students met the criteria for honors.")
else:
    st.info("Upload the class grades and click **Compute honors** to get started.")


# ------------------------------
# Quarterly grade calculator
# ------------------------------
st.markdown("---")
st.subheader("Quarterly grade calculator")
st.write(
    "Enter the highest possible scores and one student's scores, separated by commas. "
    "Leave a score blank if it hasn't been recorded yet."
)


def _parse_slots(text: str):
    return [float(x) if x.strip() else None for x in text.split(",")] if text.strip() else []


qc1, qc2, qc3 = st.columns(3)
with qc1:
    subject_name = st.text_input("Subject", value="Mathematics")
    ww_max = st.text_input("Written work HPS", value="20, 20, 20")
    ww_scores = st.text_input("Written work scores", value="18, 17, ")
with qc2:
    pt_max = st.text_input("Performance task HPS", value="50, 50")
    pt_scores = st.text_input("Performance task scores", value="45, 48")
with qc3:
    qa_max = st.number_input("Quarterly assessment HPS", value=50.0, min_value=0.0)
    qa_score = st.text_input("Quarterly assessment score", value="")

try:
    config = ComponentConfig.with_default_weights(
        subject_name,
        written_work_max=_parse_slots(ww_max),
        performance_task_max=_parse_slots(pt_max),
        quarterly_assessment_max=qa_max or None,
    )
    record = RawRecord(
        written_work_scores=_parse_slots(ww_scores),
        performance_task_scores=_parse_slots(pt_scores),
        quarterly_assessment_score=float(qa_score) if qa_score.strip() else None,
    )
    grade = compute_quarterly_grade(record, config)
except ValueError as e:
    st.error(str(e))
else:
    st.caption(
        f"Weights: written work {config.written_work_weight}%, performance tasks "
        f"{config.performance_task_weight}%, quarterly assessment {config.quarterly_assessment_weight}%"
    )
    g1, g2, g3 = st.columns(3)
    with g1:
        st.metric("Initial grade", f"{grade.initial_grade:.2f}" if grade.initial_grade is not None else "N/A")
    with g2:
        st.metric("Quarterly grade", grade.transmuted_grade if grade.transmuted_grade is not None else "N/A")
    with g3:
        st.metric("Honor status", get_honor_status(grade.transmuted_grade, settings).label or "N/A")
