from collections.abc import Callable, Sequence
import logging
import time

from .admin.ops import RemoteResult
from .admin.specs import ParsedRow, ResourceSpec
from .errors import ExistenceLookupError, MissingFieldError, ValidationError
from .index import ExistenceIndex
from .report import Action, OutcomeRecord, ResultReporter, RunSummary
from .rows import InputRecord, normalize_rows

logger = logging.getLogger(__name__)


class Reconciler():
    """
    Drives one batch of rows against one kind of remote collection.

    Every non-blank row ends up as exactly one outcome, in input order:
        validate -> look up existing -> create / update / skip -> classify
    Row problems never stop the batch, only a missing header does and that
    happens before any row is touched.

    The existence index lives and dies with this object so separate runs
    never share state.
    """
    def __init__(self, spec: ResourceSpec, client,
                 reporter: ResultReporter|None = None,
                 overwrite: bool = False,
                 rate_limit_delay: float = 5.0,
                 sleep: Callable[[float], None] = time.sleep) -> None:
        self.spec = spec
        self.client = client
        self.reporter = reporter if reporter is not None else ResultReporter()
        self.overwrite = overwrite
        self.rate_limit_delay = rate_limit_delay
        self._sleep = sleep
        self.index = None if spec.singleton else ExistenceIndex(client, spec.index_keys, self._call)

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{self.spec.kind}(overwrite={self.overwrite})"

    def reconcile(self, grid: Sequence[Sequence]) -> RunSummary:
        """Create-or-update, or settings apply for singleton kinds"""
        if self.spec.singleton:
            return self.apply(grid)
        return self.run(grid)

    def run(self, grid: Sequence[Sequence]) -> RunSummary:
        return self._batch(grid, self.spec.columns, self._upsert)

    def remove(self, grid: Sequence[Sequence]) -> RunSummary:
        if not self.spec.removal:
            raise RuntimeError(f"{self.spec.kind} resources cannot be removed")
        return self._batch(grid, self.spec.removal_columns, self._remove)

    def apply(self, grid: Sequence[Sequence]) -> RunSummary:
        return self._batch(grid, self.spec.columns, self._apply_settings)

    def _batch(self, grid, columns, handler: Callable[[InputRecord, ParsedRow], OutcomeRecord]) -> RunSummary:
        table = normalize_rows(grid, columns)
        logger.info("reconciling %d %s row(s)", len(table), self.spec.kind)
        for record in table.records(columns):
            if record.blank:
                continue
            self.reporter.record(self._process(record, columns, handler))
        return self.reporter.finish()

    def _process(self, record: InputRecord, columns, handler) -> OutcomeRecord:
        identifier = record.get(self.spec.id_field) if self.spec.id_field else ""
        identifier = identifier or record.get(self.spec.key_field)
        try:
            parsed = self.spec.parse(record, columns)
        except MissingFieldError as e:
            return OutcomeRecord(record.row_index, identifier, self.spec.missing_required, str(e))
        except ValidationError as e:
            return OutcomeRecord(record.row_index, identifier, Action.FAILED, str(e))
        try:
            return handler(record, parsed)
        except ValidationError as e:
            return OutcomeRecord(record.row_index, parsed.identifier, Action.FAILED, str(e))
        except ExistenceLookupError as e:
            return OutcomeRecord(record.row_index, parsed.identifier, Action.FAILED, str(e))

    def _call(self, fn: Callable[[], RemoteResult]) -> RemoteResult:
        """
        The only retry: one more go at a rate limited call after a fixed
        pause.  A second 429 is a plain failure.
        """
        result = fn()
        if result.rate_limited:
            logger.warning("rate limited by the Admin API, retrying once in %ss", self.rate_limit_delay)
            self._sleep(self.rate_limit_delay)
            result = fn()
        return result

    def _upsert(self, record: InputRecord, parsed: ParsedRow) -> OutcomeRecord:
        resource = self.spec.build_resource(parsed.values)
        row, ident, parent = record.row_index, parsed.identifier, parsed.parent
        if self.index.exists(parent, ident):
            if not self.overwrite:
                return OutcomeRecord(row, ident, Action.SKIPPED, f"already exists under {parent}")
            name = self.index.name_of(parent, ident)
            if not name:
                return OutcomeRecord(row, ident, Action.FAILED, f"resource name for {ident} under {parent} is unknown")
            body = self.spec.update_body(resource)
            if not body:
                return OutcomeRecord(row, ident, Action.SKIPPED, "nothing to update")
            result = self._call(lambda: self.client.update(name, body))
            if result:
                return OutcomeRecord(row, ident, Action.UPDATED, name)
            return OutcomeRecord(row, ident, Action.FAILED, result.detail)
        body = self.spec.create_body(resource)
        result = self._call(lambda: self.client.create(parent, ident, body))
        if result:
            item = result.payload if isinstance(result.payload, dict) else {}
            self.index.mark_created(parent, ident, item)
            return OutcomeRecord(row, ident, Action.CREATED, item.get("name", ""))
        return OutcomeRecord(row, ident, Action.FAILED, result.detail)

    def _remove(self, record: InputRecord, parsed: ParsedRow) -> OutcomeRecord:
        row, ident, parent = record.row_index, parsed.identifier, parsed.parent
        if not self.index.exists(parent, ident):
            return OutcomeRecord(row, ident, Action.SKIPPED, f"does not exist under {parent}")
        name = self.index.name_of(parent, ident)
        result = self._call(lambda: self.client.remove(name))
        if result:
            self.index.mark_removed(parent, ident)
            action = Action.ARCHIVED if self.spec.removal == "archive" else Action.DELETED
            return OutcomeRecord(row, ident, action, name)
        if result.not_found:
            return OutcomeRecord(row, ident, Action.FAILED, f"not found: {name}")
        return OutcomeRecord(row, ident, Action.FAILED, result.detail)

    def _apply_settings(self, record: InputRecord, parsed: ParsedRow) -> OutcomeRecord:
        """Singletons always exist, the only question is whether anything is set"""
        row, ident, stream = record.row_index, parsed.identifier, parsed.parent
        settings = self.spec.build_resource(parsed.values)
        if not self.spec.update_body(settings):
            return OutcomeRecord(row, ident, Action.SKIPPED, "no settings given")
        result = self._call(lambda: self.client.update_enhanced_measurement(stream, settings))
        if result:
            return OutcomeRecord(row, ident, Action.UPDATED, self.client.settings_name(stream))
        return OutcomeRecord(row, ident, Action.FAILED, result.detail)
