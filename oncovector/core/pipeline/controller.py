"""
Pipeline Controller

Runs one diagnostic case through the fixed stage sequence:

    Vision → Registry → Retrieval → Synthesis

Each stage yields a StageOutcome; its policy (from STAGE_FAILURE_POLICY)
decides whether a failed stage is skipped (Vision) or ends the run
(everything else). The controller is the only writer of ProgressState and
never lets percent move backwards within a run.

Usage:
    controller = PipelineController(registry, classifier, probe, synthesizer)
    result = await controller.run(query)
    if result.succeeded:
        print(result.analysis.potential_diagnoses)
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional

from oncovector.config import Settings
from oncovector.core.analysis import AnalysisResult, HIGH_CONFIDENCE_RISK_THRESHOLD, PatientQuery
from oncovector.core.collaborators.base import (
    AnatomyClassifier,
    Collaborators,
    NodeStatus,
    ReasoningSynthesizer,
    RegistryHealthProbe,
    RegistryNodeHealth,
)
from oncovector.core.registry import CaseRegistry
from oncovector.core.retrieval import (
    RankedCase,
    RetrievalConfig,
    RetrievalQuery,
    SimilarityRetriever,
    build_query_text,
)
from oncovector.core.retrieval.similarity import summarize_ranking
from oncovector.utils import (
    get_logger,
    OncoVectorError,
    PipelineCancelledError,
    ProgressInvariantError,
)
from .progress import ProgressObserver, ProgressSnapshot, ProgressState
from .stages import (
    CancellationToken,
    FailurePolicy,
    PipelineResult,
    PipelineStage,
    StageOutcome,
    STAGE_ERROR_TYPE,
    STAGE_PERCENT_CEILING,
)

logger = get_logger(__name__)


@dataclass
class _RunContext:
    """Mutable scratch state for a single run."""
    query: PatientQuery
    anatomy: str = ""
    retrieval_query: Optional[str] = None
    registry_health: List[RegistryNodeHealth] = field(default_factory=list)
    ranked_cases: List[RankedCase] = field(default_factory=list)
    analysis: Optional[AnalysisResult] = None

    def record(self, stage: PipelineStage, value: Any) -> None:
        """Keep a successful stage's output for the stages after it."""
        if stage == PipelineStage.VISION:
            self.anatomy = value or ""
        elif stage == PipelineStage.REGISTRY:
            self.registry_health = list(value)
        elif stage == PipelineStage.RETRIEVAL:
            self.ranked_cases = list(value)
        elif stage == PipelineStage.SYNTHESIS:
            self.analysis = value


StageHandler = Callable[[_RunContext], Awaitable[Any]]


class PipelineController:
    """
    Sequential diagnostic pipeline for one in-flight case at a time.

    Not re-entrant: callers must not start a run while another is active.
    """

    def __init__(
        self,
        registry: CaseRegistry,
        classifier: AnatomyClassifier,
        health_probe: RegistryHealthProbe,
        synthesizer: ReasoningSynthesizer,
        retriever: Optional[SimilarityRetriever] = None,
        high_confidence_threshold: int = HIGH_CONFIDENCE_RISK_THRESHOLD,
        stage_delay_seconds: float = 0.0,
    ):
        self.registry = registry
        self.classifier = classifier
        self.health_probe = health_probe
        self.synthesizer = synthesizer
        self.retriever = retriever or SimilarityRetriever()
        self.high_confidence_threshold = high_confidence_threshold
        self.stage_delay_seconds = stage_delay_seconds

        self._progress = ProgressState()
        self._state = PipelineStage.IDLE
        self._active_token: Optional[CancellationToken] = None
        self.last_result: Optional[PipelineResult] = None

        self._stages: List[tuple] = [
            (PipelineStage.VISION, self._vision_stage),
            (PipelineStage.REGISTRY, self._registry_stage),
            (PipelineStage.RETRIEVAL, self._retrieval_stage),
            (PipelineStage.SYNTHESIS, self._synthesis_stage),
        ]

    @classmethod
    def from_settings(
        cls,
        registry: CaseRegistry,
        collaborators: Collaborators,
        config: Settings,
    ) -> "PipelineController":
        return cls(
            registry=registry,
            classifier=collaborators.classifier,
            health_probe=collaborators.health_probe,
            synthesizer=collaborators.synthesizer,
            retriever=SimilarityRetriever(RetrievalConfig(
                top_k=config.retrieval_top_k,
                min_relevance=config.retrieval_min_relevance,
            )),
            high_confidence_threshold=config.high_confidence_risk_threshold,
            stage_delay_seconds=config.stage_delay_seconds,
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> PipelineStage:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state != PipelineStage.IDLE and not self._state.is_terminal

    @property
    def progress(self) -> ProgressSnapshot:
        return self._progress.snapshot()

    def subscribe(self, observer: ProgressObserver) -> Callable[[], None]:
        return self._progress.subscribe(observer)

    def cancel(self, reason: str = "Analysis cancelled by user") -> bool:
        """Request cancellation of the active run; takes effect before the next stage."""
        if self._active_token is None or not self.is_running:
            return False
        self._active_token.cancel(reason)
        logger.info(f"Cancellation requested: {reason}")
        return True

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, query: PatientQuery, cancel_token: Optional[CancellationToken] = None) -> PipelineResult:
        """
        Run the full pipeline for one patient query.

        Raises:
            ValidationError: the query fails its precondition. Raised before
                any stage executes or progress changes.
            RuntimeError: a run is already active on this controller.

        Returns:
            PipelineResult in DONE (with analysis) or FAILED (with error).
        """
        query.validate()
        if self.is_running:
            raise RuntimeError("A pipeline run is already in progress")

        token = cancel_token or CancellationToken()
        self._active_token = token
        run = _RunContext(query=query)

        self._progress.reset(
            PipelineStage.VISION,
            "Booting Neural Engines...",
            5,
            first_entry="> System init sequence started...",
        )
        self._state = PipelineStage.VISION
        logger.info(
            f"Pipeline started: age={query.age} gender={query.gender.value} "
            f"symptoms={'yes' if query.has_symptoms else 'no'} images={len(query.images)}"
        )

        try:
            for stage, handler in self._stages:
                if token.is_cancelled:
                    return self._fail(run, stage, PipelineCancelledError(token.reason or "Analysis cancelled"))

                self._state = stage
                outcome = await self._execute(stage, handler, run)
                if outcome.ok:
                    run.record(stage, outcome.value)
                    continue

                if outcome.policy is FailurePolicy.CONTINUE:
                    logger.warning(f"{stage.label} stage failed, continuing: {outcome.error.message}")
                    self._log(f"> {stage.label} unavailable: {outcome.error.message}. Continuing without it.")
                    continue
                return self._fail(run, stage, outcome.error)

            return await self._complete(run)
        finally:
            self._active_token = None
            if not self._state.is_terminal:
                # Interrupted mid-stage (task cancelled, invariant violation)
                logger.error(f"Pipeline interrupted during {self._state.value} stage")
                self._state = PipelineStage.FAILED

    async def _execute(self, stage: PipelineStage, handler: StageHandler, run: _RunContext) -> StageOutcome:
        try:
            return StageOutcome.success(stage, await handler(run))
        except ProgressInvariantError:
            raise
        except OncoVectorError as e:
            return StageOutcome.failure(stage, e)
        except Exception as e:
            logger.error(f"{stage.label} stage raised unexpected {type(e).__name__}: {e}", exc_info=True)
            error = STAGE_ERROR_TYPE[stage](
                f"{stage.label} stage failed: {e}",
                details={"exception": type(e).__name__},
            )
            error.__cause__ = e
            return StageOutcome.failure(stage, error)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _vision_stage(self, run: _RunContext) -> str:
        query = run.query
        if not query.has_imagery:
            self._report(PipelineStage.VISION, "Skipping Vision Layer", 30)
            self._log("> No image data provided. Bypassing vision stack.")
            await self._pause()
            return ""

        self._report(PipelineStage.VISION, "Analyzing Visual Structures", 15)
        self._log("> Vision model: loading weights...")
        label = await self.classifier.classify(query.primary_image)
        self._log(f"> Anatomy Identified: {label}")
        self._report(PipelineStage.VISION, percent=30)
        return label

    async def _registry_stage(self, run: _RunContext) -> List[RegistryNodeHealth]:
        self._report(PipelineStage.REGISTRY, "Connecting to Research Nodes", 45)
        self._log("> Handshake: NIH / TCIA / ISIC ...")
        health = list(await self.health_probe.check())
        online = sum(1 for node in health if node.status == NodeStatus.ONLINE)
        self._log(f"> Connection established: {online} Nodes Online")
        return health

    async def _retrieval_stage(self, run: _RunContext) -> List[RankedCase]:
        self._report(PipelineStage.RETRIEVAL, "Traversing Vector Space", 60)
        run.retrieval_query = build_query_text(run.query.symptoms, run.anatomy)
        self._log("> Querying dense vector embeddings...")

        ranked = self.retriever.rank(
            RetrievalQuery(text=run.retrieval_query, anatomy=run.anatomy or None),
            self.registry,
        )
        self._report(PipelineStage.RETRIEVAL, percent=75)
        self._log(f"> Retrieval complete: {len(ranked)} candidates found.")
        logger.info(f"Retrieval for {run.retrieval_query!r}: {summarize_ranking(ranked)}")
        return ranked

    async def _synthesis_stage(self, run: _RunContext) -> AnalysisResult:
        self._report(PipelineStage.SYNTHESIS, "Generating Clinical Synthesis", 85)
        self._log("> Reasoning context window active...")
        analysis = await self.synthesizer.synthesize(run.query, run.ranked_cases)
        if not analysis.matched_cases:
            analysis.matched_cases = list(run.ranked_cases)
        analysis.high_confidence_match = analysis.risk_score > self.high_confidence_threshold
        return analysis

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    async def _complete(self, run: _RunContext) -> PipelineResult:
        self._report(PipelineStage.DONE, "Finalizing Report", 100)
        self._log("> Output generated successfully.")
        await self._pause()
        self._state = PipelineStage.DONE

        logger.info(
            f"Pipeline complete: primary diagnosis {run.analysis.primary_diagnosis!r}, "
            f"risk {run.analysis.risk_score}, confidence {run.analysis.confidence_score}"
        )
        result = PipelineResult(
            query=run.query,
            status=PipelineStage.DONE,
            analysis=run.analysis,
            anatomy_context=run.anatomy,
            retrieval_query=run.retrieval_query,
            registry_health=run.registry_health,
            ranked_cases=run.ranked_cases,
            progress=self._progress.snapshot(),
        )
        self.last_result = result
        return result

    def _fail(self, run: _RunContext, stage: PipelineStage, error: OncoVectorError) -> PipelineResult:
        # Progress stage and percent stay where the failure happened
        self._state = PipelineStage.FAILED
        self._log(f"> {stage.label} stage failed: {error.message}")
        logger.error(f"Pipeline failed at {stage.value} stage [{error.code}]: {error.message}")

        result = PipelineResult(
            query=run.query,
            status=PipelineStage.FAILED,
            error=error,
            failed_stage=stage,
            anatomy_context=run.anatomy,
            retrieval_query=run.retrieval_query,
            registry_health=run.registry_health,
            ranked_cases=run.ranked_cases,
            progress=self._progress.snapshot(),
        )
        self.last_result = result
        return result

    # ------------------------------------------------------------------
    # Progress helpers
    # ------------------------------------------------------------------

    def _report(self, stage: PipelineStage, label: Optional[str] = None, percent: Optional[int] = None) -> None:
        """Advance progress, clamped to the stage ceiling and never below the current value."""
        if percent is not None:
            ceiling = STAGE_PERCENT_CEILING.get(stage, 100)
            percent = max(self._progress.percent, min(percent, ceiling))
        if label is not None:
            logger.info(f"[{stage.value}] {label}")
        self._progress.advance(stage, label, percent)

    def _log(self, entry: str) -> None:
        self._progress.append_log(entry)

    async def _pause(self) -> None:
        if self.stage_delay_seconds > 0:
            await asyncio.sleep(self.stage_delay_seconds)
