"""Bulk loader - batched mutations with per-item failure reporting.

Operations are (action, document) pairs. They are partitioned into batches
of ``batch_size``, each batch is serialized to the line-delimited bulk
protocol (an action/metadata line, followed by a document line for every
action but delete) and submitted in order.

An item is rejected when the backend reports an error for it (a delete
of a missing document answers 404 without one and counts as applied).
A rejected item never aborts its batch or the batches after it: it is
recorded as a BulkItemFailure in the returned BulkResult. Nothing is
retried here. A failure of a whole bulk request (unreachable backend,
non-success status) still raises.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Self

from sifter.core.dto.bulk_dto import BulkItemFailure, BulkResult
from sifter.core.dto.result_dto import StatusCode, StatusDetail
from sifter.core.exceptions import MalformedQuery, NotSupported
from sifter.core.transport.connection import Connection

logger = logging.getLogger(__name__)

ACTIONS: frozenset[str] = frozenset({"index", "create", "update", "delete"})

#: Metadata keys callers may pass per operation.
META_OPTIONS: frozenset[str] = frozenset(
    {"routing", "version", "version_type", "if_seq_no", "if_primary_term", "retry_on_conflict",
     "pipeline", "require_alias"}
)


def default_id_of(document: Any) -> Any:
    """Read the id of a document mapping, or treat a scalar as the id itself."""
    if isinstance(document, Mapping):
        return document.get("id", document.get("_id"))
    return document


@dataclass(frozen=True, slots=True)
class BulkOperation:
    """One bulk action."""

    action: str
    document: Any = None
    id: Any = None
    options: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, item: Any, id_of=default_id_of) -> "BulkOperation":
        """Build an operation from a BulkOperation or an (action, document) pair.

        Raises:
            NotSupported: For an unknown action.
            MalformedQuery: For an item that is neither form.
        """
        if isinstance(item, BulkOperation):
            operation = item
        elif isinstance(item, tuple | list) and len(item) in (2, 3):
            action, document, *rest = item
            options = dict(rest[0]) if rest else {}
            operation = cls(action, document, id_of(document), options)
        else:
            raise MalformedQuery("Bulk item must be an (action, document) pair", value=item)

        if operation.action not in ACTIONS:
            raise NotSupported(
                f"bulk action '{operation.action}'", details=f"Known actions: {sorted(ACTIONS)}"
            )
        unknown = set(operation.options) - META_OPTIONS
        if unknown:
            raise MalformedQuery(f"Unknown bulk option(s): {sorted(unknown)}", value=item)
        if operation.action in ("update", "delete") and operation.id is None:
            raise MalformedQuery(f"Bulk {operation.action} needs a document id", value=item)
        return operation

    def lines(self) -> list[Any]:
        """Return the metadata line followed by the document line, if any."""
        meta: dict[str, Any] = dict(self.options)
        if self.id is not None:
            meta["_id"] = self.id
        lines: list[Any] = [{self.action: meta}]

        if self.action in ("index", "create"):
            lines.append(self.document)
        elif self.action == "update":
            document = self.document
            if not (isinstance(document, Mapping) and ({"doc", "script"} & set(document))):
                document = {"doc": document}
            lines.append(document)
        return lines


@dataclass(slots=True)
class BulkBatch:
    """Ordered operations sent in one bulk request."""

    number: int
    size: int
    operations: list[BulkOperation] = field(default_factory=list)

    @property
    def full(self) -> bool:
        return len(self.operations) >= self.size

    def add(self, operation: BulkOperation) -> None:
        if self.full:
            raise ValueError(f"Bulk batch {self.number} is full ({self.size} operations)")
        self.operations.append(operation)

    def __len__(self) -> int:
        return len(self.operations)

    def payload(self, codec) -> bytes:
        return codec.encode_lines(line for op in self.operations for line in op.lines())


class BulkLoader:
    """Batched bulk submission for one index.

    Use ``load(operations)`` for a whole sequence, or the loader as a
    context manager filling batches through index/create/update/delete:

        >>> with BulkLoader(connection, "products", batch_size=500) as bulk:
        ...     for product in products:
        ...         bulk.index(product["id"], product)
        ...     bulk.delete(42)
        >>> bulk.result.failures
    """

    def __init__(
        self,
        connection: Connection,
        index: str,
        *,
        batch_size: int = 1000,
        ignore_errors: Iterable[int] = (),
        params: Mapping[str, Any] | None = None,
        id_of=default_id_of,
    ):
        """Create a bulk loader.

        Args:
            connection: Backend connection.
            index: Target index name.
            batch_size: Maximum number of operations per bulk request.
            ignore_errors: Per-item status codes counted as success (e.g. 409).
            params: Query-string parameters for every bulk request (e.g. refresh).
            id_of: Callable reading a document id for (action, document) pairs.
        """
        if not isinstance(batch_size, int) or batch_size <= 0:
            raise MalformedQuery("Bulk batch size must be a positive integer", value=batch_size)
        self.connection = connection
        self.index_name = index
        self.batch_size = batch_size
        self.ignore_errors = frozenset(ignore_errors)
        self.params = dict(params or {})
        self.id_of = id_of

        self._batch = BulkBatch(0, batch_size)
        self._batches = 0
        self._succeeded = 0
        self._failures: list[BulkItemFailure] = []
        logger.debug("BulkLoader created for %s (batch_size=%s)", index, batch_size)

    # =========================================================================
    # PARTITIONING
    # =========================================================================

    def batches(self, operations: Iterable[Any]) -> Iterator[BulkBatch]:
        """Partition ``operations`` into batches of at most ``batch_size``."""
        batch = BulkBatch(self._batches, self.batch_size)
        for item in operations:
            if batch.full:
                yield batch
                batch = BulkBatch(batch.number + 1, self.batch_size)
            batch.add(BulkOperation.coerce(item, self.id_of))
        if batch.operations:
            yield batch

    def load(self, operations: Iterable[Any]) -> BulkResult:
        """Submit every operation, batch by batch, and report per-item outcomes."""
        for batch in self.batches(operations):
            self._submit(batch)
        return self.result

    # =========================================================================
    # INCREMENTAL FILLING
    # =========================================================================

    def add(self, operation: BulkOperation) -> Self:
        """Append to the current batch, flushing it first when full."""
        operation = BulkOperation.coerce(operation, self.id_of)
        if self._batch.full:
            self.flush()
        self._batch.add(operation)
        return self

    def index(self, id: Any, document: Mapping[str, Any], **options: Any) -> Self:
        return self.add(BulkOperation("index", document, id, options))

    def create(self, id: Any, document: Mapping[str, Any], **options: Any) -> Self:
        return self.add(BulkOperation("create", document, id, options))

    def update(self, id: Any, document: Mapping[str, Any], **options: Any) -> Self:
        return self.add(BulkOperation("update", document, id, options))

    def delete(self, id: Any, **options: Any) -> Self:
        return self.add(BulkOperation("delete", None, id, options))

    def flush(self) -> None:
        """Submit the current batch, if it holds anything, and start the next."""
        if self._batch.operations:
            self._submit(self._batch)
        self._batch = BulkBatch(self._batches, self.batch_size)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.flush()

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def _submit(self, batch: BulkBatch) -> None:
        payload = batch.payload(self.connection.codec)
        logger.debug(
            "Submitting bulk batch %s (%s operations) to %s",
            batch.number, len(batch), self.index_name,
        )
        response = self.connection.bulk(self.index_name, payload, params=self.params or None)
        self._batches += 1

        items = (response or {}).get("items") or []
        for position, operation in enumerate(batch.operations):
            outcome = _item_outcome(items[position]) if position < len(items) else None
            status = outcome.get("status", 0) if outcome is not None else 0
            error = outcome.get("error") if outcome is not None else "missing from bulk response"

            # Only a reported error fails an item; a not_found delete carries none.
            if error is None or status in self.ignore_errors:
                self._succeeded += 1
                continue

            failure = BulkItemFailure(
                batch=batch.number,
                position=position,
                action=operation.action,
                id=operation.id,
                status=status,
                reason=error,
                document=operation.document,
            )
            logger.warning(
                "Bulk %s of id=%r failed in batch %s (status %s): %s",
                operation.action, operation.id, batch.number, status, error,
            )
            self._failures.append(failure)

    @property
    def failures(self) -> list[BulkItemFailure]:
        return list(self._failures)

    @property
    def result(self) -> BulkResult:
        """Accumulated outcome of every batch submitted so far."""
        fields = {
            "batches": self._batches,
            "succeeded": self._succeeded,
            "failures": list(self._failures),
        }
        if self._batches == 0:
            return BulkResult.success(
                detail=StatusDetail(code=StatusCode.EMPTY, message="No bulk operations submitted"),
                **fields,
            )
        if not self._failures:
            return BulkResult.success(**fields)

        context = {"index": self.index_name, "failed": len(self._failures)}
        if self._succeeded == 0:
            return BulkResult.fail(
                StatusDetail(
                    code=StatusCode.ALL_FAILED,
                    message="Every bulk item failed",
                    context=context,
                ),
                **fields,
            )
        return BulkResult.success(
            detail=StatusDetail(
                code=StatusCode.PARTIAL,
                message=f"{len(self._failures)} bulk item(s) failed",
                context=context,
            ),
            **fields,
        )


def _item_outcome(item: Mapping[str, Any]) -> Mapping[str, Any]:
    """Unwrap ``{"index": {...}}`` into its inner outcome mapping."""
    if len(item) == 1:
        return next(iter(item.values()))
    return item


__all__ = ["ACTIONS", "BulkBatch", "BulkLoader", "BulkOperation", "default_id_of"]
