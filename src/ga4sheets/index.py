from collections.abc import Callable, Iterable
import logging

from .errors import ExistenceLookupError

logger = logging.getLogger(__name__)


class ExistenceIndex():
    """
    What already exists remotely, per parent, for the length of one run.
    A parent is listed in full the first time it is referenced and never
    again; creates and removals made during the run are applied to the
    cached set so later rows see them without another listing.

    Alongside the identifiers it keeps the full resource name each one maps
    to since custom dimensions/metrics are addressed by a server assigned
    id, not by their parameter name.
    """
    def __init__(self, client, key_of: Callable[[dict], Iterable[str]],
                 call: Callable[[Callable], object]|None = None) -> None:
        self._client = client
        self._key_of = key_of
        # wraps the listing, the reconciler passes its rate limit retry
        self._call = call if call is not None else (lambda fn: fn())
        self._ids = {}
        self._names = {}

    def __contains__(self, parent: str) -> bool:
        """Has this parent been listed yet"""
        return parent in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{ {p: len(s) for p,s in self._ids.items()} }"

    def ensure(self, parent: str) -> set[str]:
        ids = self._ids.get(parent, None)
        if ids is not None:
            return ids
        result = self._call(lambda: self._client.list_all(parent))
        if not result:
            # nothing cached, the next row under this parent tries again
            raise ExistenceLookupError(parent, result.status, result.body)
        ids = set()
        names = {}
        for item in result.payload:
            for key in self._key_of(item):
                ids.add(key)
                names[key] = item.get("name", "")
        self._ids[parent] = ids
        self._names[parent] = names
        logger.info("indexed %d existing identifier(s) under %s", len(ids), parent)
        return ids

    def exists(self, parent: str, identifier: str) -> bool:
        return identifier in self.ensure(parent)

    def name_of(self, parent: str, identifier: str) -> str|None:
        return self._names.get(parent, {}).get(identifier, None) or None

    def mark_created(self, parent: str, identifier: str, item: dict|None = None) -> None:
        ids = self._ids.setdefault(parent, set())
        names = self._names.setdefault(parent, {})
        name = (item or {}).get("name", "")
        keys = [identifier, *(self._key_of(item) if item else [])]
        for key in keys:
            if key:
                ids.add(key)
                names[key] = name

    def mark_removed(self, parent: str, identifier: str) -> None:
        """Drops the identifier and any alias pointing at the same resource"""
        names = self._names.get(parent, {})
        name = names.get(identifier, None)
        doomed = {identifier} | ({k for k,n in names.items() if n == name} if name else set())
        ids = self._ids.get(parent, set())
        for key in doomed:
            ids.discard(key)
            names.pop(key, None)
