"""
Progressive schema builder.

Owns one dataset's SchemaBuilderState and applies record batches to it in
arrival order: field statistics are updated record by record, then pattern
detection runs over the whole aggregate. Schema documents, comparisons and
rename suggestions are produced on demand.
"""

import time
from collections.abc import Iterable, Mapping
from typing import Any

from progressive_schema.core.config import BuilderConfig
from progressive_schema.core.models import (
    BatchResult,
    FieldStatistics,
    SchemaBuilderState,
    SchemaChange,
    SchemaComparison,
    TransformSuggestion,
    TypeConflict,
    TypeConflictSample,
)
from progressive_schema.core.models.field_statistics import utc_now
from progressive_schema.core.schema.comparison import compare_schemas
from progressive_schema.core.schema.field_stats import (
    NULL_TYPES,
    create_field_stats,
    get_value_type,
    update_field_stats,
)
from progressive_schema.core.schema.generator import SchemaGenerator
from progressive_schema.core.schema.patterns import detect_patterns
from progressive_schema.core.schema.transforms import detect_transforms
from progressive_schema.observability.logger import get_logger, log_operation
from progressive_schema.observability.metrics import (
    batch_duration_seconds,
    batch_size,
    batches_processed_total,
    records_processed_total,
    schema_changes_total,
    schema_version,
)

logger = get_logger(__name__)

MAX_CONFLICT_SAMPLES = 5
SCHEMA_CHANGE_TYPES = ("new_field", "type_change")


class SchemaStateError(ValueError):
    """Raised when a builder state snapshot cannot be loaded."""
    pass


class ProgressiveSchemaBuilder:
    """
    Incremental schema inference over batches of records.

    Not thread-safe: callers serialize process_batch per dataset.
    """

    def __init__(
        self,
        initial_state: SchemaBuilderState | dict[str, Any] | None = None,
        config: BuilderConfig | dict[str, Any] | None = None,
    ):
        """
        Initialize the builder, optionally resuming from a snapshot.

        Args:
            initial_state: State model or a dict produced by model_dump(mode="json")
            config: BuilderConfig or a dict of its fields; without one a resumed
                state keeps its own max_samples

        Raises:
            SchemaStateError: If initial_state is neither a model nor a dict
            pydantic.ValidationError: If the snapshot or config values are invalid
        """
        self.state = self._load_state(initial_state)

        if config is None:
            config = BuilderConfig(max_samples=self.state.max_samples)
        elif isinstance(config, dict):
            config = BuilderConfig(**config)
        self.config = config

        if self.state.max_samples != self.config.max_samples:
            self.state.max_samples = self.config.max_samples
            self.state.data_samples = self.state.data_samples[-self.config.max_samples:]

    @staticmethod
    def _load_state(initial_state: Any) -> SchemaBuilderState:
        if initial_state is None:
            return SchemaBuilderState()
        if isinstance(initial_state, SchemaBuilderState):
            return initial_state.model_copy(deep=True)
        if isinstance(initial_state, Mapping):
            return SchemaBuilderState.model_validate(dict(initial_state))
        raise SchemaStateError(
            f"Cannot load builder state from {type(initial_state).__name__}"
        )

    # =======================
    # BATCH PROCESSING
    # =======================

    def process_batch(self, records: Iterable[Any]) -> BatchResult:
        """
        Apply one batch of records to the state.

        Non-object records are counted but contribute no fields.

        Args:
            records: Records in arrival order

        Returns:
            BatchResult listing new fields and type changes; schema_changed is
            True when any were found, in which case the version was bumped
        """
        records = list(records)
        changes: list[SchemaChange] = []
        start_time = time.perf_counter()

        with log_operation(
            "process_batch",
            logger=logger,
            batch_size=len(records),
            batch_number=self.state.batch_count + 1,
        ):
            for record in records:
                if isinstance(record, Mapping):
                    records_processed_total.labels(status="ok").inc()
                else:
                    logger.debug(
                        f"Record is not an object, no fields extracted: {type(record).__name__}",
                        extra={"batch_count": self.state.batch_count, "record_type": type(record).__name__},
                    )
                    records_processed_total.labels(status="malformed").inc()
                    record = {}

                self._buffer_sample(record)
                self._process_record(record, "", 0, changes)

            self.state.record_count += len(records)
            self.state.batch_count += 1
            self.state.last_updated = utc_now()

            detect_patterns(self.state, self.config)

            schema_changed = any(change.type in SCHEMA_CHANGE_TYPES for change in changes)
            if schema_changed:
                self.state.version += 1

        batches_processed_total.inc()
        batch_size.observe(len(records))
        batch_duration_seconds.observe(time.perf_counter() - start_time)
        for change in changes:
            schema_changes_total.labels(change_type=change.type).inc()
        schema_version.set(self.state.version)

        return BatchResult(schema_changed=schema_changed, changes=changes)

    def _buffer_sample(self, record: Mapping) -> None:
        self.state.data_samples.append(dict(record))
        if len(self.state.data_samples) > self.state.max_samples:
            self.state.data_samples = self.state.data_samples[-self.state.max_samples:]

    def _process_record(
        self,
        obj: Mapping,
        prefix: str,
        depth: int,
        changes: list[SchemaChange],
    ) -> None:
        if depth >= self.config.max_depth:
            return

        for key, value in obj.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            stats = self.state.field_stats.get(path)

            if stats is None:
                stats = create_field_stats(path)
                self.state.field_stats[path] = stats
                data_type = get_value_type(value)
                changes.append(SchemaChange(
                    type="new_field",
                    path=path,
                    details={"data_type": data_type, "description": f"New field '{path}' ({data_type})"},
                    severity="info",
                    auto_approvable=True,
                ))
                logger.info(f"New field detected: {path}", extra={"path": path, "data_type": data_type})
            else:
                self._check_type_conflict(stats, value, changes)

            update_field_stats(stats, value, self.config.max_unique_values)
            self._count_conflict_value(path, value)

            if isinstance(value, Mapping):
                self._process_record(value, path, depth + 1, changes)
            elif isinstance(value, list) and value and isinstance(value[0], Mapping):
                self._process_record(value[0], f"{path}[]", depth + 1, changes)

    # =======================
    # TYPE CONFLICTS
    # =======================

    def _check_type_conflict(
        self,
        stats: FieldStatistics,
        value: Any,
        changes: list[SchemaChange],
    ) -> None:
        """Record a type change when a value's non-null type is new for a field."""
        value_type = get_value_type(value)
        if value_type in NULL_TYPES:
            return

        existing_types = [t for t, _ in stats.non_null_types()]
        if not existing_types or value_type in existing_types:
            return

        conflict = self.state.find_type_conflict(stats.path)
        if conflict is None:
            conflict = TypeConflict(
                path=stats.path,
                types={t: stats.type_distribution[t] for t in existing_types},
            )
            if stats.unique_samples:
                conflict.samples.append(TypeConflictSample(
                    type=get_value_type(stats.unique_samples[0]),
                    value=stats.unique_samples[0],
                ))
            self.state.type_conflicts.append(conflict)

        if len(conflict.samples) < MAX_CONFLICT_SAMPLES:
            conflict.samples.append(TypeConflictSample(type=value_type, value=value))

        changes.append(SchemaChange(
            type="type_change",
            path=stats.path,
            details={
                "description": f"Field '{stats.path}' now also holds {value_type} values",
                "existing_types": existing_types,
                "new_type": value_type,
            },
            severity="warning",
            auto_approvable=False,
        ))
        logger.warning(
            f"Type conflict detected: {stats.path}",
            extra={"path": stats.path, "existing_types": existing_types, "new_type": value_type},
        )

    def _count_conflict_value(self, path: str, value: Any) -> None:
        if not self.state.type_conflicts:
            return
        value_type = get_value_type(value)
        if value_type in NULL_TYPES:
            return
        conflict = self.state.find_type_conflict(path)
        if conflict is not None:
            conflict.types[value_type] = conflict.types.get(value_type, 0) + 1

    # =======================
    # QUERIES
    # =======================

    def get_schema(self, use_inference_engine: bool | None = None) -> dict[str, Any]:
        """
        Generate the current schema document.

        Args:
            use_inference_engine: Override config.use_inference_engine

        Returns:
            JSON-Schema-shaped dict
        """
        if use_inference_engine is None:
            use_inference_engine = self.config.use_inference_engine
        return SchemaGenerator(self.state).generate(use_inference_engine)

    def compare_with_previous(self, previous_schema: dict[str, Any]) -> SchemaComparison:
        """Compare a previously generated schema with the current one."""
        return compare_schemas(previous_schema, self.get_schema())

    def detect_transforms(
        self,
        previous_schema: dict[str, Any],
        current_schema: dict[str, Any],
        changes: list[SchemaChange],
    ) -> list[TransformSuggestion]:
        """Rename suggestions for the removed/added fields in changes."""
        return detect_transforms(previous_schema, current_schema, changes)

    def get_state(self) -> SchemaBuilderState:
        """Deep copy of the state, safe to persist or mutate."""
        return self.state.model_copy(deep=True)

    def get_field_statistics(self) -> dict[str, FieldStatistics]:
        return self.state.field_stats

    def get_summary(self) -> dict[str, Any]:
        """Compact overview of the state for logs and CLI output."""
        geo = self.state.detected_geo_fields
        return {
            "version": self.state.version,
            "record_count": self.state.record_count,
            "batch_count": self.state.batch_count,
            "field_count": len(self.state.field_stats),
            "sample_count": len(self.state.data_samples),
            "id_fields": list(self.state.detected_id_fields),
            "enum_fields": [
                path for path, stats in self.state.field_stats.items() if stats.is_enum_candidate
            ],
            "geo_fields": geo.model_dump(exclude_none=True) if geo.has_coordinates else None,
            "type_conflicts": [conflict.path for conflict in self.state.type_conflicts],
            "field_mappings": self.state.field_mappings.model_dump(exclude_none=True),
            "last_updated": self.state.last_updated.isoformat(),
        }
