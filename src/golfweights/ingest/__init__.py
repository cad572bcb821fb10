"""Input adapters for round exports, finish results and validation reports."""

from .discovery import (
    APPROACH_SUFFIX,
    CONFIGURATION_SUFFIX,
    FIELD_SUFFIX,
    HISTORY_SUFFIX,
    REQUIRED_SUFFIXES,
    RESULTS_SUFFIX,
    expected_file_names,
    find_file_by_keywords,
    resolve_tournament_file,
)
from .finish import NON_FINISH_CODES, parse_finish, with_fallback
from .rounds import (
    FieldPlayer,
    Row,
    build_results_by_year,
    build_results_from_rows,
    dedupe_rounds,
    field_from_rows,
    filter_rows,
    group_rounds_by_event,
    group_rounds_by_year,
    historical_metric_value,
    load_field,
    load_results_csv,
    load_rows,
    parse_float,
    player_ids,
    row_event_id,
    row_player_id,
    row_round,
    row_year,
)
from .validation import (
    VALIDATION_RANGE_PCT,
    DeltaTrendEntry,
    MetricConstraint,
    TypeSummaryEntry,
    ValidationData,
    ValidationWeightEntry,
    build_delta_trend_map,
    build_metric_constraints,
    build_validation_alignment_map,
    build_validation_group_weights,
    build_validation_metric_weights,
    build_validation_template,
    determine_course_type,
    drift_status_map,
    load_validation_outputs,
    parse_delta_trends,
    parse_type_summary,
    parse_weight_templates,
    resolve_metric_name,
)

__all__ = [
    "APPROACH_SUFFIX",
    "CONFIGURATION_SUFFIX",
    "FIELD_SUFFIX",
    "HISTORY_SUFFIX",
    "NON_FINISH_CODES",
    "REQUIRED_SUFFIXES",
    "RESULTS_SUFFIX",
    "VALIDATION_RANGE_PCT",
    "DeltaTrendEntry",
    "FieldPlayer",
    "MetricConstraint",
    "Row",
    "TypeSummaryEntry",
    "ValidationData",
    "ValidationWeightEntry",
    "build_delta_trend_map",
    "build_metric_constraints",
    "build_results_by_year",
    "build_results_from_rows",
    "build_validation_alignment_map",
    "build_validation_group_weights",
    "build_validation_metric_weights",
    "build_validation_template",
    "dedupe_rounds",
    "determine_course_type",
    "drift_status_map",
    "expected_file_names",
    "field_from_rows",
    "filter_rows",
    "find_file_by_keywords",
    "group_rounds_by_event",
    "group_rounds_by_year",
    "historical_metric_value",
    "load_field",
    "load_results_csv",
    "load_rows",
    "load_validation_outputs",
    "parse_delta_trends",
    "parse_finish",
    "parse_float",
    "parse_type_summary",
    "parse_weight_templates",
    "player_ids",
    "resolve_metric_name",
    "resolve_tournament_file",
    "row_event_id",
    "row_player_id",
    "row_round",
    "row_year",
    "with_fallback",
]
