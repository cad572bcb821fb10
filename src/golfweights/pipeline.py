"""Adaptive weight optimizer pipeline.

Runs one event end to end: historical correlations (Step 1), current-season
signal and classifier training (Step 1b), baseline template comparison
(Step 1c), Top-20 group tuning (Step 2), randomized weight search (Step 3) and
multi-year validation (Step 4). Without current-season results the run stops
after training on historical and similar-course rounds and reports suggested
weights only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from golfweights.config import (
    COURSE_TYPES,
    GENERATED_METRIC_LABELS,
    HISTORICAL_CORE_LABELS,
    MetricConfig,
    get_metric_config,
)
from golfweights.config_loader import EventConfig, RunSettings
from golfweights.ingest import (
    APPROACH_SUFFIX,
    CONFIGURATION_SUFFIX,
    FIELD_SUFFIX,
    HISTORY_SUFFIX,
    RESULTS_SUFFIX,
    FieldPlayer,
    MetricConstraint,
    Row,
    ValidationData,
    build_delta_trend_map,
    build_metric_constraints,
    build_results_by_year,
    build_results_from_rows,
    build_validation_alignment_map,
    build_validation_template,
    dedupe_rounds,
    expected_file_names,
    field_from_rows,
    filter_rows,
    group_rounds_by_event,
    group_rounds_by_year,
    load_field,
    load_results_csv,
    load_rows,
    load_validation_outputs,
    player_ids,
    resolve_tournament_file,
    row_event_id,
    row_year,
)
from golfweights.models import (
    CvSummary,
    Evaluation,
    FinishResult,
    OptimizedResult,
    RankedPlayer,
    TemplateComparison,
    WeightTemplate,
    evaluations_to_dict,
)
from golfweights.optimizer import (
    CURRENT_SIGNAL_WEIGHT,
    DELTA_TREND_PRIOR_WEIGHT,
    VALIDATION_PRIOR_WEIGHT,
    ConservativeGroupWeights,
    LogisticSummary,
    MetricCorrelation,
    MultiYearValidator,
    ObjectiveWeights,
    SuggestedGroupWeights,
    SuggestedWeights,
    WeightSearchEngine,
    adjust_constraints_by_drift,
    apply_inversions,
    blend_alignment_maps,
    blend_available_maps,
    blend_correlation_lists,
    blend_group_weights,
    blend_metric_weights,
    blend_single_metric_correlation,
    blend_suggested_group_weights_with_cv,
    build_alignment_map,
    build_filled_group_weights,
    build_historical_metric_samples,
    build_logistic_alignment_map,
    build_metric_weights_from_suggested,
    build_suggested_group_weights,
    build_suggested_metric_weights,
    build_top_n_samples,
    compute_historical_metric_correlations,
    compute_reliability,
    compute_weight_deltas,
    correlation_per_metric,
    cross_validate_classifier,
    inverted_label_set,
    keep_trainable_events,
    random_source,
    remove_approach_group_weights,
    select_optimizable_groups,
    summarize_drift_guardrails,
    top_n_correlation_per_metric,
    train_top_n_classifier,
    tune_group_weights,
)
from golfweights.persistence import DEFAULT_DB_PATH, RunStore, TemplateStore
from golfweights.persistence.fingerprint import RunFingerprint, fingerprint
from golfweights.persistence.guard import WriteAction, WriteOutcome, maybe_persist, templates_differ
from golfweights.persistence.reports import ReportPaths, write_reports
from golfweights.ranking import PlayerMetricTable, RankingRuntime, apply_shot_distribution, build_metric_table, score_players
from golfweights.stats import Sample


logger = logging.getLogger(__name__)

HISTORICAL_CORE_TOP20_BLEND = 0.65
PRE_EVENT_LABEL_COUNT = 17
PRE_EVENT_EXCLUDED_LABELS = ("Birdie Chances Created", "SG Total")
PRE_EVENT_DERIVED_NOTES = ("Birdies or Better = birdies + eagles (from historical rounds when available)",)
SUPERVISED_ITERATIONS = 400
SUPERVISED_LEARNING_RATE = 0.15
PRIOR_SHARE = 0.6
MODEL_SHARE = 0.4
MIN_CV_EVENTS = 3
VALIDATION_REFRESH_MIN_GAIN = 0.01
CONFIGURATION_SHEET_LABEL = "CONFIGURATION_SHEET"
PUTTING_LABEL = "SG Putting"


class MissingInputFileError(FileNotFoundError):
    """A required tournament export could not be found in any data directory."""

    def __init__(self, suffix: str, expected: Sequence[str], searched: Sequence[Path]):
        self.suffix = suffix
        self.expected = list(expected)
        self.searched = [str(path) for path in searched]
        self.message = (
            f"Missing required input '{suffix}'. Expected one of: {', '.join(self.expected)}. "
            f"Searched: {', '.join(self.searched)}"
        )
        super().__init__(self.message)


class PipelineMode(str, Enum):
    SUPERVISED = "supervised"
    PRE_EVENT_TRAINING = "pre_event_training"


@dataclass(frozen=True)
class CurrentEventRounds:
    """Whether the current event's own rounds feed each ranking; ``override`` wins when set."""

    override: Optional[bool] = None
    current_season_metrics: bool = True
    current_season_baseline: bool = False
    current_season_optimization: bool = False
    historical_evaluation: bool = False

    def resolve(self, default: bool) -> bool:
        return default if self.override is None else self.override

    def to_dict(self) -> dict:
        return {
            "override": self.override,
            "currentSeasonMetrics": self.resolve(self.current_season_metrics),
            "currentSeasonBaseline": self.resolve(self.current_season_baseline),
            "currentSeasonOptimization": self.resolve(self.current_season_optimization),
            "historicalEvaluation": self.resolve(self.historical_evaluation),
        }


@dataclass(frozen=True)
class InputFiles:
    configuration: Path
    field: Path
    history: Path
    approach: Path
    results: Optional[Path] = None

    def labelled(self) -> List[Tuple[str, Optional[Path]]]:
        return [
            ("configurationSheet", self.configuration),
            ("tournamentField", self.field),
            ("historicalData", self.history),
            ("approachSkill", self.approach),
            ("tournamentResults", self.results),
        ]


def input_dirs(data_dir: Path, season: Optional[str] = None) -> List[Path]:
    dirs = [Path(data_dir)]
    if season:
        dirs.append(Path(data_dir) / str(season))
    return dirs


def validation_dirs(data_dir: Path) -> List[Path]:
    return [Path(data_dir) / "validation_outputs", Path(data_dir)]


def _require(suffix: str, dirs: Sequence[Path], tournament: Optional[str], season: Optional[str]) -> Path:
    path = resolve_tournament_file(suffix, dirs, tournament=tournament, season=season)
    if path is None:
        raise MissingInputFileError(suffix, expected_file_names(suffix, tournament, season), dirs)
    return path


def resolve_inputs(settings: RunSettings, season: Optional[str] = None) -> InputFiles:
    """Locate every tournament export; only the results file is optional."""

    dirs = input_dirs(settings.data_dir, season or settings.season)
    tournament = settings.tournament
    season = season or settings.season
    return InputFiles(
        configuration=_require(CONFIGURATION_SUFFIX, dirs, tournament, season),
        field=_require(FIELD_SUFFIX, dirs, tournament, season),
        history=_require(HISTORY_SUFFIX, dirs, tournament, season),
        approach=_require(APPROACH_SUFFIX, dirs, tournament, season),
        results=resolve_tournament_file(RESULTS_SUFFIX, dirs, tournament=tournament, season=season),
    )


def _resolve_season(settings: RunSettings, config: EventConfig, history: Sequence[Row]) -> str:
    if settings.season:
        return str(settings.season)
    if config.current_season:
        return str(config.current_season)
    years = [row_year(row) for row in history if row_event_id(row) == str(settings.event_id)]
    known = [year for year in years if year is not None]
    if known:
        return max(known, key=int)
    return str(datetime.now(timezone.utc).year)


@dataclass
class PipelineContext:
    """Everything loaded for one run plus the rankings derived from it."""

    settings: RunSettings
    config: EventConfig
    season: str
    inputs: InputFiles
    field_players: List[FieldPlayer]
    history: List[Row]
    approach: List[Row]
    results_current: List[FinishResult]
    results_source: str
    templates: Dict[str, WeightTemplate]
    validation: ValidationData
    runtime: RankingRuntime
    rounds_policy: CurrentEventRounds = field(default_factory=CurrentEventRounds)
    metric_config: MetricConfig = field(default_factory=get_metric_config)
    _tables: Dict[Tuple[str, bool], PlayerMetricTable] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        event_id = self.event_id
        self.field_ids = player_ids(self.field_players)
        self.all_event_rounds = filter_rows(self.history, event_ids={event_id})
        self.field_event_rounds = filter_rows(self.all_event_rounds, player_ids=self.field_ids)
        self.rounds_by_year = group_rounds_by_year(self.field_event_rounds)
        self.results_by_year = build_results_by_year(self.field_event_rounds, event_id)
        if self.results_current:
            self.results_by_year[self.season] = list(self.results_current)
        self.available_years = sorted(self.results_by_year, key=int)

    @property
    def event_id(self) -> str:
        return str(self.settings.event_id)

    @property
    def similar_ids(self) -> set[str]:
        return set(self.config.similar_course_ids)

    @property
    def putting_ids(self) -> set[str]:
        return set(self.config.putting_course_ids)

    @property
    def mode(self) -> PipelineMode:
        return PipelineMode.SUPERVISED if self.results_current else PipelineMode.PRE_EVENT_TRAINING

    def event_template_name(self) -> Optional[str]:
        """Template stored for this event, by event id or by name."""

        for name, template in self.templates.items():
            if template.event_id == self.event_id:
                return name
        if self.event_id in self.templates:
            return self.event_id
        return None

    def event_template(self) -> WeightTemplate:
        name = self.event_template_name()
        if name is not None:
            return self.templates[name]
        return next(iter(self.templates.values()))

    def build_table(
        self,
        rows: Sequence[Row],
        *,
        players: Optional[Sequence[FieldPlayer]] = None,
        approach: bool = True,
    ) -> PlayerMetricTable:
        return build_metric_table(
            players if players is not None else self.field_players,
            rows,
            self.approach if approach else (),
            self.similar_ids,
            self.putting_ids,
            self.runtime,
            metric_config=self.metric_config,
        )

    def score(
        self,
        table: PlayerMetricTable,
        group_weights: Mapping[str, float],
        metric_weights: Mapping[str, float],
    ) -> List[RankedPlayer]:
        return score_players(
            table,
            group_weights,
            metric_weights,
            course_setup_weights=self.runtime.course_setup_weights,
            metric_config=self.metric_config,
        )

    def rank(
        self,
        rows: Sequence[Row],
        group_weights: Mapping[str, float],
        metric_weights: Mapping[str, float],
        *,
        players: Optional[Sequence[FieldPlayer]] = None,
        approach: bool = True,
    ) -> List[RankedPlayer]:
        return self.score(self.build_table(rows, players=players, approach=approach), group_weights, metric_weights)

    def current_season_rounds(self, include_current_event: bool) -> List[Row]:
        if include_current_event:
            return self.rounds_by_year.get(self.season) or list(self.field_event_rounds)
        return filter_rows(self.history, exclude_event=(self.event_id, self.season))

    def current_table(self, include_current_event: bool) -> PlayerMetricTable:
        key = (self.season, include_current_event)
        if key not in self._tables:
            self._tables[key] = self.build_table(self.current_season_rounds(include_current_event))
        return self._tables[key]

    def year_table(self, year: str) -> PlayerMetricTable:
        if year == self.season:
            return self.current_table(self.rounds_policy.resolve(self.rounds_policy.current_season_baseline))
        key = (year, False)
        if key not in self._tables:
            self._tables[key] = self.build_table(self.rounds_by_year.get(year, []), approach=False)
        return self._tables[key]

    def validator(self) -> MultiYearValidator:
        return MultiYearValidator(
            lambda year, group_weights, metric_weights: self.score(self.year_table(year), group_weights, metric_weights),
            self.season,
            metric_config=self.metric_config,
        )


def load_context(settings: RunSettings, template_store: TemplateStore) -> PipelineContext:
    """Resolve inputs, load every file and seed the template store."""

    config_path = _require(
        CONFIGURATION_SUFFIX,
        input_dirs(settings.data_dir, settings.season),
        settings.tournament,
        settings.season,
    )
    config = EventConfig.load(config_path)
    season = settings.season or config.current_season
    inputs = resolve_inputs(settings, season)
    history = load_rows(inputs.history)
    season = _resolve_season(settings, config, history)
    logger.info("Event %s, season %s: loading %s", settings.event_id, season, inputs.history.name)

    field_players = load_field(inputs.field)
    approach = load_rows(inputs.approach)

    results_current: List[FinishResult] = []
    results_source = "none"
    if inputs.results is not None:
        results_current = load_results_csv(inputs.results)
        results_source = "csv"
    if not results_current:
        results_current = build_results_from_rows(filter_rows(history, event_ids={str(settings.event_id)}, season=season))
        results_source = "historical" if results_current else "none"
    logger.info("Current-season results: %d players (%s)", len(results_current), results_source)

    added = template_store.seed_defaults()
    if added:
        logger.info("Seeded %d built-in templates into %s", added, template_store.db_path)
    templates = {template.name: template for template in template_store.list()}

    validation = load_validation_outputs(validation_dirs(settings.data_dir))
    runtime = RankingRuntime(
        similar_courses_weight=settings.similar_blend(config),
        putting_courses_weight=settings.putting_blend(config),
        course_setup_weights=dict(config.course_setup_weights),
    )
    return PipelineContext(
        settings=settings,
        config=config,
        season=season,
        inputs=inputs,
        field_players=field_players,
        history=history,
        approach=approach,
        results_current=results_current,
        results_source=results_source,
        templates=templates,
        validation=validation,
        runtime=runtime,
        rounds_policy=CurrentEventRounds(override=settings.include_current_event_rounds),
    )


def build_run_fingerprint(ctx: PipelineContext) -> RunFingerprint:
    files = ctx.inputs.labelled() + list(ctx.validation.source_paths().items())
    settings = ctx.settings
    return fingerprint(
        files,
        {
            "event_id": settings.event_id,
            "season": ctx.season,
            "tournament": settings.tournament,
            "opt_seed": settings.opt_seed,
            "tests": settings.tests,
            "dry_run": settings.dry_run,
            "include_current_event_rounds": settings.include_current_event_rounds,
            "template_override": settings.template,
        },
    )


@dataclass
class SignalSet:
    """Step 1b output shared by both modes."""

    metric_correlations: List[MetricCorrelation]
    top20_correlations: List[MetricCorrelation]
    logistic: Optional[LogisticSummary]
    cv_summary: CvSummary
    suggested_metrics: SuggestedWeights
    suggested_groups: SuggestedGroupWeights
    reliability: float
    conservative: ConservativeGroupWeights
    alignment: Dict[str, float]

    def to_dict(self) -> dict:
        return {
            "currentGeneratedMetricCorrelations": [entry.to_dict() for entry in self.metric_correlations],
            "currentGeneratedTop20Correlations": [entry.to_dict() for entry in self.top20_correlations],
            "currentGeneratedTop20Logistic": self.logistic.to_dict() if self.logistic else None,
            "currentGeneratedTop20CvSummary": self.cv_summary.to_dict(),
            "cvReliability": self.reliability,
            "suggestedTop20MetricWeights": self.suggested_metrics.to_dict(),
            "suggestedTop20GroupWeights": self.suggested_groups.to_dict(),
            "conservativeSuggestedTop20GroupWeights": self.conservative.to_dict(),
            "currentGeneratedTop20AlignmentMap": dict(self.alignment),
        }


@dataclass
class PipelineResult:
    mode: PipelineMode
    report: dict
    paths: ReportPaths
    run_id: str
    template_writes: List[WriteOutcome] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "runId": self.run_id,
            "mode": self.mode.value,
            "paths": self.paths.to_dict(),
            "templateWrites": [outcome.to_dict() for outcome in self.template_writes],
        }


RowRanker = Callable[[Sequence[Row]], List[RankedPlayer]]


def _historical_core_top20(ctx: PipelineContext) -> List[MetricCorrelation]:
    """Top-20 signal of the core labels over every year of the event, approach groups removed."""

    rows = ctx.all_event_rounds
    results = build_results_from_rows(rows)
    if not rows or not results:
        return []
    template = ctx.event_template()
    group_weights = remove_approach_group_weights(template.group_weights, metric_config=ctx.metric_config)
    ranked = ctx.rank(rows, group_weights, template.metric_weights, players=field_from_rows(rows), approach=False)
    return top_n_correlation_per_metric(ranked, results, HISTORICAL_CORE_LABELS, metric_config=ctx.metric_config)


def _blend_course_signals(
    ctx: PipelineContext,
    metric_correlations: List[MetricCorrelation],
    top20: List[MetricCorrelation],
    labels: Sequence[str],
    rank_rows: RowRanker,
    *,
    field_only: bool,
) -> Tuple[List[MetricCorrelation], List[MetricCorrelation]]:
    """Blend in similar-course signal on every label and putting-course signal on SG Putting."""

    players = ctx.field_ids if field_only else None
    similar_weight = ctx.runtime.similar_courses_weight
    if ctx.similar_ids and similar_weight > 0:
        rows = filter_rows(ctx.history, event_ids=ctx.similar_ids, player_ids=players)
        results = build_results_from_rows(rows)
        if rows and results:
            ranked = rank_rows(rows)
            metric_correlations = blend_correlation_lists(
                metric_correlations,
                correlation_per_metric(ranked, results, labels, metric_config=ctx.metric_config),
                similar_weight,
            )
            top20 = blend_correlation_lists(
                top20,
                top_n_correlation_per_metric(ranked, results, labels, metric_config=ctx.metric_config),
                similar_weight,
            )
            logger.info("Blended similar-course signal (%d rounds, weight %.2f)", len(rows), similar_weight)

    putting_weight = ctx.runtime.putting_courses_weight
    if ctx.putting_ids and putting_weight > 0 and PUTTING_LABEL in labels:
        rows = filter_rows(ctx.history, event_ids=ctx.putting_ids, player_ids=players)
        results = build_results_from_rows(rows)
        if rows and results:
            ranked = rank_rows(rows)
            metric_correlations = blend_single_metric_correlation(
                metric_correlations,
                correlation_per_metric(ranked, results, [PUTTING_LABEL], metric_config=ctx.metric_config),
                PUTTING_LABEL,
                putting_weight,
            )
            top20 = blend_single_metric_correlation(
                top20,
                top_n_correlation_per_metric(ranked, results, [PUTTING_LABEL], metric_config=ctx.metric_config),
                PUTTING_LABEL,
                putting_weight,
            )
            logger.info("Blended putting-course signal (%d rounds, weight %.2f)", len(rows), putting_weight)
    return metric_correlations, top20


def _event_samples(
    ctx: PipelineContext,
    rows_by_event: Mapping[str, Sequence[Row]],
    labels: Sequence[str],
    rank_rows: RowRanker,
) -> Dict[str, List[Sample]]:
    samples: Dict[str, List[Sample]] = {}
    for event_id, rows in rows_by_event.items():
        results = build_results_from_rows(rows)
        if not results:
            continue
        samples[event_id] = build_top_n_samples(rank_rows(rows), results, labels, metric_config=ctx.metric_config)
    return keep_trainable_events(samples)


def _cross_validate(
    samples_by_event: Mapping[str, Sequence[Sample]],
    labels: Sequence[str],
    logistic: LogisticSummary,
    *,
    note: Optional[str] = None,
) -> Tuple[CvSummary, LogisticSummary]:
    """CV by event; a successful final model replaces the single-fit classifier."""

    if len(samples_by_event) < MIN_CV_EVENTS:
        logger.info("Cross-validation skipped: %d events with enough samples", len(samples_by_event))
        summary = CvSummary(
            success=False,
            event_count=len(samples_by_event),
            total_samples=sum(len(samples) for samples in samples_by_event.values()),
            message="Not enough events for CV",
        )
        return summary, logistic
    summary, final = cross_validate_classifier(samples_by_event, labels, note=note)
    if final is not None:
        logger.info(
            "CV by event: %d events, best L2 %s, avg log loss %.4f",
            summary.event_count,
            summary.best_l2,
            summary.avg_log_loss or 0.0,
        )
        return summary, final
    logger.info("Cross-validation unsuccessful: %s", summary.message)
    return summary, logistic


def _finish_signals(
    ctx: PipelineContext,
    metric_correlations: List[MetricCorrelation],
    top20: List[MetricCorrelation],
    logistic: LogisticSummary,
    cv_summary: CvSummary,
    core_top20: Sequence[MetricCorrelation],
) -> SignalSet:
    if core_top20:
        top20 = blend_correlation_lists(top20, core_top20, HISTORICAL_CORE_TOP20_BLEND)
    suggested = build_suggested_metric_weights(top20, logistic)
    suggested_groups = build_suggested_group_weights(suggested, metric_config=ctx.metric_config)
    alignment = blend_alignment_maps(
        [build_alignment_map(top20), build_logistic_alignment_map(logistic)],
        [0.5, 0.5],
    )
    reliability = compute_reliability(cv_summary)
    conservative = blend_suggested_group_weights_with_cv(
        suggested_groups,
        ctx.event_template().group_weights,
        reliability,
    )
    logger.info("Suggested metric weights from %s; CV reliability %.3f", suggested.source, reliability)
    return SignalSet(
        metric_correlations=metric_correlations,
        top20_correlations=top20,
        logistic=logistic,
        cv_summary=cv_summary,
        suggested_metrics=suggested,
        suggested_groups=suggested_groups,
        reliability=reliability,
        conservative=conservative,
        alignment=alignment,
    )


def pre_event_training_labels() -> List[str]:
    return [label for label in GENERATED_METRIC_LABELS[:PRE_EVENT_LABEL_COUNT] if label not in PRE_EVENT_EXCLUDED_LABELS]


def train_pre_event_signals(ctx: PipelineContext, core_top20: Sequence[MetricCorrelation]) -> SignalSet:
    """Train on historical event and similar-course rounds with approach groups removed."""

    labels = pre_event_training_labels()
    template = ctx.event_template()
    group_weights = remove_approach_group_weights(template.group_weights, metric_config=ctx.metric_config)

    def rank_rows(rows: Sequence[Row]) -> List[RankedPlayer]:
        return ctx.rank(rows, group_weights, template.metric_weights, players=field_from_rows(rows), approach=False)

    event_ids = {ctx.event_id} | ctx.similar_ids
    training_rows = dedupe_rounds(filter_rows(ctx.history, event_ids=event_ids))
    training_results = build_results_from_rows(training_rows)
    logger.info("Pre-event training on %d rounds across %d events", len(training_rows), len(event_ids))

    ranked = rank_rows(training_rows)
    metric_correlations = correlation_per_metric(ranked, training_results, labels, metric_config=ctx.metric_config)
    top20 = top_n_correlation_per_metric(ranked, training_results, labels, metric_config=ctx.metric_config)
    logistic = train_top_n_classifier(ranked, training_results, labels, metric_config=ctx.metric_config)

    rows_by_event = {event_id: rows for event_id, rows in group_rounds_by_event(training_rows).items()}
    samples = _event_samples(ctx, rows_by_event, labels, rank_rows)
    cv_summary, logistic = _cross_validate(samples, labels, logistic)

    metric_correlations, top20 = _blend_course_signals(
        ctx, metric_correlations, top20, labels, rank_rows, field_only=False
    )
    return _finish_signals(ctx, metric_correlations, top20, logistic, cv_summary, core_top20)


def train_supervised_signals(ctx: PipelineContext, core_top20: Sequence[MetricCorrelation]) -> SignalSet:
    """Current-season signal against the current results, ranked with approach data."""

    labels = list(GENERATED_METRIC_LABELS)
    template = ctx.event_template()

    def rank_rows(rows: Sequence[Row]) -> List[RankedPlayer]:
        return ctx.rank(rows, template.group_weights, template.metric_weights)

    event_ids = {ctx.event_id} | ctx.similar_ids | ctx.putting_ids
    rows = filter_rows(ctx.history, event_ids=event_ids, season=ctx.season, player_ids=ctx.field_ids)
    if not ctx.rounds_policy.resolve(ctx.rounds_policy.current_season_metrics):
        rows = filter_rows(rows, exclude_event=(ctx.event_id, ctx.season))

    if rows:
        logger.info("Using %d current-season rounds for metric correlations", len(rows))
        ranked = rank_rows(rows)
        metric_correlations = correlation_per_metric(ranked, ctx.results_current, labels, metric_config=ctx.metric_config)
        top20 = top_n_correlation_per_metric(ranked, ctx.results_current, labels, metric_config=ctx.metric_config)
        logistic = train_top_n_classifier(
            ranked,
            ctx.results_current,
            labels,
            metric_config=ctx.metric_config,
            iterations=SUPERVISED_ITERATIONS,
            learning_rate=SUPERVISED_LEARNING_RATE,
        )
    else:
        logger.warning("No %s rounds for event, similar or putting courses; skipping correlations", ctx.season)
        metric_correlations, top20 = [], []
        logistic = LogisticSummary(success=False, samples=0, message="No current-season rounds")

    note = None
    samples = _event_samples(ctx, group_rounds_by_event(filter_rows(ctx.history, season=ctx.season)), labels, rank_rows)
    if len(samples) < MIN_CV_EVENTS:
        all_seasons = _event_samples(ctx, group_rounds_by_event(ctx.history), labels, rank_rows)
        if len(all_seasons) >= MIN_CV_EVENTS:
            note = f"Insufficient events for season {ctx.season}; used all seasons."
        samples = all_seasons
    cv_summary, logistic = _cross_validate(samples, labels, logistic, note=note)

    metric_correlations, top20 = _blend_course_signals(
        ctx, metric_correlations, top20, labels, rank_rows, field_only=True
    )
    return _finish_signals(ctx, metric_correlations, top20, logistic, cv_summary, core_top20)


def _base_report(ctx: PipelineContext, mode: PipelineMode, run_fingerprint: RunFingerprint) -> dict:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "mode": mode.value,
        "eventId": ctx.event_id,
        "season": ctx.season,
        "tournament": ctx.settings.tournament or f"Event {ctx.event_id}",
        "dryRun": ctx.settings.dry_run,
        "optSeed": ctx.settings.opt_seed,
        "runFingerprint": run_fingerprint.to_dict(),
        "currentEventRounds": ctx.rounds_policy.to_dict(),
    }


def run_pre_event_training(
    ctx: PipelineContext,
    run_fingerprint: RunFingerprint,
    historical: dict,
    core_top20: Sequence[MetricCorrelation],
) -> dict:
    signals = train_pre_event_signals(ctx, core_top20)

    fallback = ctx.event_template()
    prior = ctx.templates.get("TECHNICAL") or fallback
    prior_label = "TECHNICAL" if "TECHNICAL" in ctx.templates else "FALLBACK"

    filled_groups = build_filled_group_weights(signals.suggested_groups, fallback.group_weights)
    filled_metrics = build_metric_weights_from_suggested(
        signals.suggested_metrics, fallback.metric_weights, metric_config=ctx.metric_config
    )
    blended_groups = blend_group_weights(prior.group_weights, filled_groups, PRIOR_SHARE, MODEL_SHARE)
    blended_metrics = blend_metric_weights(
        prior.metric_weights, filled_metrics, PRIOR_SHARE, MODEL_SHARE, metric_config=ctx.metric_config
    )
    inverted = inverted_label_set(signals.top20_correlations, metric_config=ctx.metric_config)
    filled_metrics = apply_inversions(filled_metrics, inverted, metric_config=ctx.metric_config)
    blended_metrics = apply_inversions(blended_metrics, inverted, metric_config=ctx.metric_config)
    adjusted_metrics = apply_shot_distribution(blended_metrics, ctx.runtime.course_setup_weights)

    report = _base_report(ctx, PipelineMode.PRE_EVENT_TRAINING, run_fingerprint)
    report.update(
        {
            "trainingSource": "historical+similar-course",
            "trainingMetrics": {
                "included": pre_event_training_labels(),
                "excluded": list(PRE_EVENT_EXCLUDED_LABELS),
                "derived": list(PRE_EVENT_DERIVED_NOTES),
            },
            "historicalMetricCorrelations": historical,
            "historicalCoreTop20Correlations": [entry.to_dict() for entry in core_top20],
            "historicalCoreTop20Blend": HISTORICAL_CORE_TOP20_BLEND,
        }
    )
    report.update(signals.to_dict())
    report.update(
        {
            "filledGroupWeights": filled_groups,
            "filledMetricWeights": filled_metrics,
            "blendedGroupWeights": blended_groups,
            "blendedMetricWeights": blended_metrics,
            "blendedMetricWeightsAdjusted": adjusted_metrics,
            "invertedLabels": sorted(inverted),
            "blendSettings": {
                "priorTemplate": prior_label,
                "priorShare": PRIOR_SHARE,
                "modelShare": MODEL_SHARE,
            },
            "templateWrites": [],
        }
    )
    return report


def compare_templates(
    ctx: PipelineContext,
    candidates: Mapping[str, WeightTemplate],
    validator: MultiYearValidator,
) -> List[TemplateComparison]:
    """Evaluate every candidate template over the event years; Top-N only for the current year."""

    comparisons: List[TemplateComparison] = []
    for name, template in candidates.items():
        yearly = validator.validate(
            template.group_weights,
            template.metric_weights,
            ctx.available_years,
            ctx.results_by_year,
            top_n_current_only=True,
        )
        comparison = TemplateComparison(
            name=name,
            evaluation=validator.aggregate(yearly),
            evaluation_current=yearly.get(ctx.season),
            yearly=yearly,
        )
        current = comparison.evaluation_current
        if current is not None:
            logger.info(
                "Template %s (%s): corr %.4f, top20 %s, top20 weighted %s",
                name,
                ctx.season,
                current.correlation,
                current.top20,
                current.top20_weighted_score,
            )
        else:
            logger.info("Template %s: no %s evaluation", name, ctx.season)
        comparisons.append(comparison)
    return comparisons


def _optional(value: Optional[float]) -> float:
    return float("-inf") if value is None else value


def _comparison_key(comparison: TemplateComparison) -> tuple:
    evaluation = comparison.evaluation_current or comparison.evaluation
    return (
        comparison.evaluation_current is not None,
        _optional(evaluation.top20_weighted_score),
        evaluation.correlation,
        _optional(evaluation.top20),
    )


def select_best_template(
    comparisons: Sequence[TemplateComparison],
    *,
    override: Optional[str] = None,
    validation_name: Optional[str] = None,
) -> TemplateComparison:
    """Best current-year Top-20 weighted score, then correlation, then Top-20 hit rate.

    An explicit override wins, then the validation course-type template.
    """

    by_name = {comparison.name: comparison for comparison in comparisons}
    if override:
        if override in by_name:
            logger.info("Using template override %s as baseline", override)
            return by_name[override]
        logger.warning("Template override %s not found; ignoring", override)
    if validation_name and validation_name in by_name:
        logger.info("Using validation-selected baseline template %s", validation_name)
        return by_name[validation_name]
    return max(comparisons, key=_comparison_key)


@dataclass
class ValidationPriors:
    template_name: Optional[str] = None
    template: Optional[WeightTemplate] = None
    constraints: Dict[str, MetricConstraint] = field(default_factory=dict)
    alignment: Dict[str, float] = field(default_factory=dict)
    delta_alignment: Dict[str, float] = field(default_factory=dict)
    guardrails: Optional[dict] = None


def build_validation_priors(ctx: PipelineContext) -> ValidationPriors:
    data = ctx.validation
    course_type = data.course_type
    if not course_type:
        return ValidationPriors()
    source_label = data.weight_templates_path.name if data.weight_templates_path else None
    template = build_validation_template(
        course_type,
        ctx.metric_config,
        data,
        ctx.templates,
        event_id=ctx.event_id,
        source_label=source_label,
    )
    name = f"VALIDATION_{course_type}"
    constraints = build_metric_constraints(ctx.metric_config, data.weights_for(course_type))
    guardrails = None
    if data.delta_trends:
        constraints = adjust_constraints_by_drift(constraints, data.delta_trends, metric_config=ctx.metric_config)
        guardrails = summarize_drift_guardrails(constraints, data.delta_trends, metric_config=ctx.metric_config)
        logger.info("Applied delta trend guardrails (%d metrics)", len(data.delta_trends))
    return ValidationPriors(
        template_name=name if template is not None else None,
        template=template.with_weights(name=name) if template is not None else None,
        constraints=constraints,
        alignment=build_validation_alignment_map(ctx.metric_config, data.summary_for(course_type)),
        delta_alignment=build_delta_trend_map(ctx.metric_config, data.delta_trends),
        guardrails=guardrails,
    )


def _recommendation(improvement: float) -> str:
    if improvement > 0.01:
        return "Use optimized weights"
    if improvement > 0:
        return "Marginal improvement"
    return "Use template baseline"


def _pct_text(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.1f}%"


def build_optimized_template(
    ctx: PipelineContext,
    best: OptimizedResult,
    top20: Sequence[MetricCorrelation],
) -> WeightTemplate:
    inverted = inverted_label_set(top20, metric_config=ctx.metric_config)
    evaluation = best.evaluation
    description = (
        f"{ctx.settings.tournament or 'Event'} {ctx.season} Optimized: {evaluation.correlation:.4f} corr, "
        f"{_pct_text(evaluation.top20)} Top-20, {_pct_text(evaluation.top20_weighted_score)} Top-20 Weighted"
    )
    return WeightTemplate(
        name=ctx.config.course_name_key or ctx.event_id,
        event_id=ctx.event_id,
        description=description,
        group_weights=dict(best.group_weights),
        metric_weights=apply_inversions(best.metric_weights, inverted, metric_config=ctx.metric_config),
    )


def persist_templates(
    ctx: PipelineContext,
    store: TemplateStore,
    optimized: WeightTemplate,
    best: OptimizedResult,
    baseline: TemplateComparison,
    comparisons: Sequence[TemplateComparison],
    priors: ValidationPriors,
) -> List[WriteOutcome]:
    """Write the optimized event template and, when it beats the standard one, the validation template."""

    output_dir = ctx.settings.output_dir
    outcomes: List[WriteOutcome] = []
    baseline_template = ctx.templates.get(baseline.name) or priors.template
    unchanged = WeightTemplate(
        name=optimized.name,
        group_weights=best.group_weights,
        metric_weights=best.metric_weights,
    )
    if baseline_template is not None and not templates_differ(unchanged, baseline_template):
        logger.info("Event template %s not written (optimized weights match baseline)", optimized.name)
        outcomes.append(WriteOutcome(name=optimized.name, action=WriteAction.SKIPPED))
    else:
        outcomes.append(
            maybe_persist(
                optimized,
                store.find(optimized.name),
                store,
                output_dir=output_dir,
                dry_run=ctx.settings.dry_run,
            )
        )

    course_type = ctx.validation.course_type
    if course_type not in COURSE_TYPES or priors.template_name is None:
        return outcomes
    by_name = {comparison.name: comparison for comparison in comparisons}
    validation_result = by_name.get(priors.template_name)
    standard_result = by_name.get(course_type)
    if validation_result is None or standard_result is None:
        return outcomes
    validation_eval = validation_result.evaluation_current or validation_result.evaluation
    standard_eval = standard_result.evaluation_current or standard_result.evaluation
    if abs(standard_eval.correlation) == 0:
        return outcomes
    gain = (validation_eval.correlation - standard_eval.correlation) / abs(standard_eval.correlation)
    if gain < VALIDATION_REFRESH_MIN_GAIN:
        logger.info("Validation template for %s not better than standard (%.2f%%)", course_type, gain * 100)
        return outcomes
    source_label = ctx.validation.weight_templates_path.name if ctx.validation.weight_templates_path else None
    refreshed = build_validation_template(
        course_type,
        ctx.metric_config,
        ctx.validation,
        ctx.templates,
        event_id=ctx.event_id,
        source_label=source_label,
    )
    if refreshed is not None:
        outcomes.append(
            maybe_persist(
                refreshed,
                ctx.templates.get(course_type),
                store,
                output_dir=output_dir,
                dry_run=ctx.settings.dry_run,
            )
        )
    return outcomes


def run_supervised(
    ctx: PipelineContext,
    run_fingerprint: RunFingerprint,
    historical: dict,
    core_top20: Sequence[MetricCorrelation],
    store: TemplateStore,
) -> Tuple[dict, List[WriteOutcome]]:
    signals = train_supervised_signals(ctx, core_top20)
    priors = build_validation_priors(ctx)
    validator = ctx.validator()
    rng = random_source(ctx.settings.opt_seed)

    # Step 1c
    candidates: Dict[str, WeightTemplate] = dict(ctx.templates)
    if priors.template is not None and priors.template_name:
        candidates[priors.template_name] = priors.template
    comparisons = compare_templates(ctx, candidates, validator)
    best_comparison = select_best_template(
        comparisons,
        override=ctx.settings.template,
        validation_name=priors.template_name,
    )
    best_template = candidates[best_comparison.name]
    baseline_evaluation = best_comparison.evaluation_current or best_comparison.evaluation
    logger.info("Best baseline template: %s (corr %.4f)", best_template.name, baseline_evaluation.correlation)

    # Step 2
    event_template_name = ctx.event_template_name()
    step2_base = candidates[event_template_name] if event_template_name else best_template
    seed_weights = signals.conservative.weights or step2_base.group_weights

    def evaluate_groups(group_weights: Mapping[str, float]) -> Evaluation:
        yearly = validator.validate(group_weights, step2_base.metric_weights, ctx.available_years, ctx.results_by_year)
        return validator.aggregate(yearly)

    tuned = tune_group_weights(
        seed_weights,
        evaluate_groups,
        rng,
        optimizable_groups=select_optimizable_groups(seed_weights),
    )

    # Step 3
    alignment = blend_available_maps(
        [
            (signals.alignment, CURRENT_SIGNAL_WEIGHT),
            (priors.alignment, VALIDATION_PRIOR_WEIGHT),
            (priors.delta_alignment, DELTA_TREND_PRIOR_WEIGHT),
        ]
    )
    objective = ObjectiveWeights()
    include_current = ctx.rounds_policy.resolve(ctx.rounds_policy.current_season_optimization)
    table = ctx.current_table(include_current)
    engine = WeightSearchEngine(
        lambda group_weights, metric_weights: ctx.score(table, group_weights, metric_weights),
        ctx.results_current,
        alignment=alignment,
        objective=objective,
        metric_config=ctx.metric_config,
    )
    logger.info("Searching %d candidates from %s", ctx.settings.tests, best_template.name)
    best = engine.search(best_template, ctx.settings.tests, rng, constraints=priors.constraints)
    improvement = best.correlation - baseline_evaluation.correlation

    # Step 4
    years = sorted(set(ctx.rounds_by_year) | {ctx.season}, key=int)
    baseline_yearly = validator.validate(
        best_template.group_weights,
        best_template.metric_weights,
        years,
        ctx.results_by_year,
        fallback_results=ctx.results_current,
    )
    optimized_yearly = validator.validate(
        best.group_weights,
        best.metric_weights,
        years,
        ctx.results_by_year,
        fallback_results=ctx.results_current,
    )

    optimized_template = build_optimized_template(ctx, best, signals.top20_correlations)
    writes = persist_templates(ctx, store, optimized_template, best, best_comparison, comparisons, priors)

    report = _base_report(ctx, PipelineMode.SUPERVISED, run_fingerprint)
    report.update(
        {
            "historicalMetricCorrelations": historical,
            "historicalCoreTop20Correlations": [entry.to_dict() for entry in core_top20],
            "historicalCoreTop20Blend": HISTORICAL_CORE_TOP20_BLEND,
        }
    )
    report.update(signals.to_dict())
    report.update(
        {
            "blendSettings": {
                "similarCourseIds": sorted(ctx.similar_ids),
                "puttingCourseIds": sorted(ctx.putting_ids),
                "similarCoursesWeight": ctx.runtime.similar_courses_weight,
                "puttingCoursesWeight": ctx.runtime.putting_courses_weight,
            },
            "tunedTop20GroupWeights": tuned.to_dict() if tuned else None,
            "availableYears": list(ctx.available_years),
            "roundsByYearSummary": {year: len(rows) for year, rows in ctx.rounds_by_year.items()},
            "resultsByYearSummary": {year: len(results) for year, results in ctx.results_by_year.items()},
            "resultsSource": ctx.results_source,
            "resultsCurrent": [result.to_dict() for result in ctx.results_current],
            "rawTemplateResults": [comparison.to_dict() for comparison in comparisons],
            "validationIntegration": {
                "validationCourseType": ctx.validation.course_type,
                "validationTemplateName": priors.template_name,
                "validationPriorWeight": VALIDATION_PRIOR_WEIGHT,
                "deltaTrendPriorWeight": DELTA_TREND_PRIOR_WEIGHT,
                "deltaTrendsPath": str(ctx.validation.delta_trends_path) if ctx.validation.delta_trends_path else None,
                "deltaTrendSummary": priors.guardrails,
                "metricConstraints": {key: value.to_dict() for key, value in priors.constraints.items()},
            },
            "step1_bestTemplate": {
                "name": CONFIGURATION_SHEET_LABEL if best_template.name == event_template_name else best_template.name,
                "templateName": best_template.name,
                "evaluation": baseline_evaluation.to_dict(),
                "evaluationCurrentYear": (
                    best_comparison.evaluation_current.to_dict() if best_comparison.evaluation_current else None
                ),
                "evaluationAllYears": best_comparison.evaluation.to_dict(),
                "groupWeights": dict(best_template.group_weights),
            },
            "step2_baseTemplate": CONFIGURATION_SHEET_LABEL if event_template_name else best_template.name,
            "step3_optimized": {
                "evaluation": best.to_dict(),
                "groupWeights": dict(best.group_weights),
                "metricWeights": dict(best.metric_weights),
                "alignmentScore": best.alignment_score,
                "top20CompositeScore": best.top20_score,
                "combinedObjectiveScore": best.combined_score,
                "objectiveWeights": objective.to_dict(),
                "trial": best.trial,
                "baselineTemplate": best_template.name,
                "baselineGroupWeights": dict(best_template.group_weights),
                "groupWeightDelta": compute_weight_deltas(best_template.group_weights, best.group_weights),
            },
            "step4_multiYear": {
                "baseline": {
                    "yearly": evaluations_to_dict(baseline_yearly),
                    "aggregate": validator.aggregate(baseline_yearly).to_dict(),
                },
                "optimized": {
                    "yearly": evaluations_to_dict(optimized_yearly),
                    "aggregate": validator.aggregate(optimized_yearly).to_dict(),
                },
            },
            "recommendation": {
                "approach": _recommendation(improvement),
                "improvement": improvement,
                "baselineTemplate": best_template.name,
                "optimizedWeights": dict(best.group_weights),
            },
            "optimizedTemplate": optimized_template.to_payload(),
            "templateWrites": [outcome.to_dict() for outcome in writes],
        }
    )
    return report, writes


def run_pipeline(
    settings: RunSettings,
    *,
    template_store: Optional[TemplateStore] = None,
    run_store: Optional[RunStore] = None,
) -> PipelineResult:
    """Run one event and persist the report; the mode is decided once from result availability."""

    db_path = settings.db_path or DEFAULT_DB_PATH
    template_store = template_store or TemplateStore(db_path)
    run_store = run_store or RunStore(db_path)

    ctx = load_context(settings, template_store)
    run_fingerprint = build_run_fingerprint(ctx)
    mode = ctx.mode
    logger.info("Pipeline mode: %s", mode.value)

    historical = compute_historical_metric_correlations(
        build_historical_metric_samples(ctx.all_event_rounds, ctx.event_id)
    ).to_dict()
    core_top20 = _historical_core_top20(ctx)

    writes: List[WriteOutcome] = []
    if mode is PipelineMode.PRE_EVENT_TRAINING:
        logger.info("No current-season results for event %s; running pre-event training", ctx.event_id)
        report = run_pre_event_training(ctx, run_fingerprint, historical, core_top20)
    else:
        report, writes = run_supervised(ctx, run_fingerprint, historical, core_top20, template_store)

    paths = write_reports(report, settings.output_dir)
    record = run_store.save_run(event_id=ctx.event_id, mode=mode.value, report=report)
    logger.info("Run %s saved", record.run_id)
    return PipelineResult(mode=mode, report=report, paths=paths, run_id=record.run_id, template_writes=writes)
