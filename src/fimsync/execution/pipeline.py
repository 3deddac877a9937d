"""Row pipeline: Classify -> Translate -> Build -> Submit.

The pipeline validates the header once, then processes rows strictly one at a
time in file order. Every directory call is awaited before the next one is
issued, so the match-then-mutate sequence of a Put/Delete row never overlaps
another row's.

Two signalling channels:
- Fatal errors (ImporterError subclasses other than the ones listed below)
  propagate and abort the run. Rows already submitted stay submitted.
- Per-row outcomes (RowOutcome) are returned and aggregated:
    SKIPPED  target not found or ambiguous, or a reference failure under
             ReferenceFailurePolicy.SKIP
    FAILED   a lookup or the submission raised FIMAPIError (authentication
             failures stay fatal)
"""

import time
from collections.abc import Callable, Iterable

import structlog

from ..config import ImporterConfig, ReferenceFailurePolicy
from ..constants import OBJECT_TYPE_COLUMN, STATE_COLUMN
from ..core.change_builder import ChangeBuilder, ensure_match_attribute
from ..core.classifier import RowClassifier, parse_state
from ..core.references import ReferenceResolver
from ..core.schema import SchemaRegistry
from ..core.translator import AttributeTranslator, TranslationResult
from ..fim.client import FIMClient
from ..models.changes import Classification, State
from ..models.results import RowOutcome, RowStatus
from ..models.row import Row
from ..observability.logger import LogContext
from ..observability.metrics import get_global_collector
from ..utils.exceptions import (
    FIMAPIError,
    FIMAuthenticationError,
    ResolutionError,
    UnknownHeaderAttributeError,
)

logger = structlog.get_logger(__name__)


class ImportPipeline:
    """
    Drive rows through classification, translation, building and submission.

    Components are built from the client and configuration unless given
    explicitly. One SchemaRegistry is shared by everything in the run.
    """

    def __init__(
        self,
        client: FIMClient,
        config: ImporterConfig,
        registry: SchemaRegistry | None = None,
        classifier: RowClassifier | None = None,
        translator: AttributeTranslator | None = None,
        builder: ChangeBuilder | None = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            client: FIM client used for schema, lookups and submission
            config: Run configuration
            registry: Schema registry (default: a new one for this run)
            classifier: Row classifier
            translator: Attribute translator
            builder: Change builder
        """
        self.client = client
        self.config = config
        resolver = ReferenceResolver(client)

        self.registry = registry or SchemaRegistry(client)
        self.classifier = classifier or RowClassifier()
        self.translator = translator or AttributeTranslator(resolver, config.csv, config.policy)
        self.builder = builder or ChangeBuilder(resolver)

        self.collector = get_global_collector()

        if config.policy.schema_cache:
            logger.warning("Persistent schema cache is not supported, fetching schemas live")

    @property
    def dry_run(self) -> bool:
        return self.config.policy.dry_run

    async def validate_header(self, header: list[str]) -> None:
        """
        Check the header before any row is processed.

        Raises:
            UnknownObjectTypeError: If the default object type has no schema
            UnknownHeaderAttributeError: If a column is not bound to the
                default object type (files without !ObjectType only)
            MissingMatchAttributeError: If Put/Delete rows are possible and the
                match attribute is not a column
            UnknownStateError: If the default state is invalid
        """
        defaults = self.config.defaults

        if OBJECT_TYPE_COLUMN not in header:
            schema = await self.registry.get_schema(defaults.object_type)
            missing = schema.missing(header)
            if missing:
                raise UnknownHeaderAttributeError(missing, defaults.object_type)
        else:
            logger.debug("Header has !ObjectType, attributes are checked per row")

        if STATE_COLUMN in header or parse_state(defaults.state) != State.CREATE:
            ensure_match_attribute(header, defaults.match_attribute)

        logger.info("Header validated", columns=len(header))

    async def run(
        self,
        rows: Iterable[Row],
        header: list[str],
        on_row: Callable[[RowOutcome], None] | None = None,
    ) -> list[RowOutcome]:
        """
        Process every row.

        Args:
            rows: Rows in file order (consumed lazily)
            header: File header
            on_row: Optional callback invoked after each row (progress display)

        Returns:
            One RowOutcome per row, in file order

        Raises:
            ImporterError: On the first fatal error
        """
        await self.validate_header(header)

        outcomes: list[RowOutcome] = []
        for row in rows:
            outcome = await self.process_row(row, header)
            outcomes.append(outcome)
            if on_row:
                on_row(outcome)

        logger.info(
            "Pipeline complete",
            rows=len(outcomes),
            succeeded=sum(1 for o in outcomes if o.status == RowStatus.SUCCEEDED),
            skipped=sum(1 for o in outcomes if o.status == RowStatus.SKIPPED),
            failed=sum(1 for o in outcomes if o.status == RowStatus.FAILED),
        )
        return outcomes

    async def process_row(self, row: Row, header: list[str]) -> RowOutcome:
        """
        Process one row.

        Args:
            row: Row to process
            header: File header

        Returns:
            Outcome of the row

        Raises:
            ImporterError: For fatal errors
        """
        start = time.perf_counter()
        classification = self.classifier.classify(row, header, self.config.defaults)

        with LogContext(line=row.line_number, object_type=classification.object_type):
            logger.debug(
                "Row classified",
                state=classification.state.value,
                operation=classification.operation.value,
            )
            outcome = await self._process(row, classification)

        outcome.duration_ms = (time.perf_counter() - start) * 1000
        self.collector.count_row(
            classification.state.value, outcome.status.value, classification.object_type
        )
        self.collector.record_latency(classification.state.value, outcome.duration_ms)
        return outcome

    async def _process(self, row: Row, classification: Classification) -> RowOutcome:
        def outcome(status: RowStatus, **kwargs) -> RowOutcome:
            return RowOutcome(
                row.line_number, classification.object_type, classification.state, status, **kwargs
            )

        translation = TranslationResult()
        if classification.state != State.DELETE:
            schema = await self.registry.get_schema(classification.object_type)
            try:
                translation = await self.translator.translate(row, schema, classification)
            except ResolutionError as e:
                if self.config.policy.reference_failure == ReferenceFailurePolicy.ABORT:
                    logger.error("Reference resolution failed", error=str(e))
                    raise
                logger.warning("Row skipped", reason=str(e))
                return outcome(RowStatus.SKIPPED, message=str(e))
            except FIMAuthenticationError:
                raise
            except FIMAPIError as e:
                logger.error("Reference lookup failed", error=str(e))
                return outcome(RowStatus.FAILED, message=str(e))

        try:
            result = await self.builder.build(
                classification,
                translation.changes,
                self.config.defaults.match_attribute,
                row,
                translation.dependencies,
            )
        except FIMAuthenticationError:
            raise
        except FIMAPIError as e:
            logger.error("Target lookup failed", error=str(e))
            return outcome(RowStatus.FAILED, message=str(e))
        if result.skipped:
            return outcome(RowStatus.SKIPPED, message=result.skip_reason)

        request = result.request
        if self.dry_run:
            logger.info("Dry run, request not submitted", request=request.describe())
            return outcome(
                RowStatus.SUCCEEDED,
                request_kind=request.kind,
                target_identifier=request.target_identifier,
                dry_run=True,
            )

        try:
            object_ids = await self.client.submit(request)
        except FIMAuthenticationError:
            raise
        except FIMAPIError as e:
            logger.error("Submission failed", request=request.describe(), error=str(e))
            return outcome(
                RowStatus.FAILED,
                request_kind=request.kind,
                target_identifier=request.target_identifier,
                message=str(e),
            )

        logger.info("Request submitted", request=request.describe(), object_ids=object_ids)
        return outcome(
            RowStatus.SUCCEEDED,
            request_kind=request.kind,
            target_identifier=request.target_identifier,
            created_identifiers=object_ids,
        )
