"""Multi-key inverted index over arbitrary records.

An :class:`Index` owns the list of indexed targets and one :class:`IndexSchema`.
A schema subclass declares its searchable facets as :class:`Key` attributes::

    class ArtifactIndex(IndexSchema[dict]):
        def __init__(self, index):
            super().__init__(index)
            self.id = IdentityKey(self, lambda r: r.id, "id")
            self.version = SemverKey(self, lambda r: r.version, "version")

    index = Index(ArtifactIndex)
    for record in records:
        index.insert(record, record.model_dump())
    index.done_insertion()

    index.where.id.name_or_short_name_is("cmake").version.range_match(">=3").items

Every query narrows the view's selection by set intersection and returns the
schema so calls chain. ``where`` hands out an independent view each time.

Indexing and querying are separate phases: do not insert into an index while
views taken from it are still being queried.
"""

from __future__ import annotations

import locale
import re
import time
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Generic, TypeVar

import structlog
from semver import Version
from sortedcontainers import SortedDict

from regindex.errors import DeserializationError, DuplicateIdentityError, ValueCoercionError
from regindex.models.index import IndexFile, KeyContent
from regindex.versions import VersionRange, parse_version

log = structlog.get_logger()

T = TypeVar("T")
V = TypeVar("V")
S = TypeVar("S", bound="IndexSchema[Any]")

_SEPARATORS = re.compile(r"(\W+)")


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value)


def _as_values(value: Any) -> list[Any]:
    """Normalize an accessor result into a list of facet values."""
    if isinstance(value, list):
        return value
    if isinstance(value, (str, bytes, Version)):
        return [value]
    if isinstance(value, Iterable):
        return list(value)
    return [value]


def _clone_map(source: SortedDict) -> SortedDict:
    return SortedDict(source.key, ((k, set(ids)) for k, ids in source.items()))


class Key(Generic[S, V]):
    """A named, searchable facet over the records of an index.

    ``accessor`` extracts the facet value(s) from a record. For a nested key
    (built with ``parent=``) the accessor also receives the parent value as a
    string, e.g. ``lambda record, tool: record.tools.get(tool)``.

    The first name in ``identity`` is canonical; the others are accepted when
    deserializing content written under an older name.
    """

    def __init__(
        self,
        schema: S,
        accessor: Callable[..., Any],
        identity: str | list[str],
        *,
        parent: Key[S, Any] | None = None,
    ) -> None:
        names = [identity] if isinstance(identity, str) else list(identity)
        if not names:
            raise ValueError("a key needs at least one identity")
        self.schema = schema
        self.accessor = accessor
        self.identity = names[0]
        self.aliases = names
        self.parent = parent
        self.nested: list[Key[S, Any]] = []
        self.values: SortedDict = SortedDict(self.sort_key)
        self.words: SortedDict = SortedDict()
        if parent is not None:
            parent.nested.append(self)
        schema.register(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identity!r}, values={len(self.values)})"

    # ------------------------------------------------------------------
    # Ordering and coercion
    # ------------------------------------------------------------------

    def sort_key(self, value: V) -> Any:
        raise NotImplementedError

    def coerce(self, value: Any) -> V:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Insertion
    # ------------------------------------------------------------------

    def validate(self, record: Any) -> None:
        """Raise if ``record`` cannot be inserted. Called before any key is mutated."""

    def insert(self, record: Any, record_id: int) -> None:
        value = self.accessor(record)
        if _is_blank(value):
            return
        self._insert_values(record, record_id, _as_values(value))

    def _insert_values(self, record: Any, record_id: int, values: list[Any]) -> None:
        for each in values:
            self.add_key(each, record_id)
            self.add_word(each, record_id)
            for child in self.nested:
                value = child.accessor(record, str(each))
                if not _is_blank(value):
                    child._insert_values(record, record_id, _as_values(value))

    def add_key(self, value: Any, record_id: int) -> None:
        self.values.setdefault(self.coerce(value), set()).add(record_id)

    def add_word(self, value: Any, record_id: int) -> None:
        """Register every word-aligned run of ``value`` that contains no space."""
        parts = _SEPARATORS.split(str(value))
        for start in range(0, len(parts), 2):
            for end in range(start, len(parts), 2):
                word = "".join(parts[start : end + 1])
                if word and " " not in word:
                    self.words.setdefault(word, set()).add(record_id)

    def done_insertion(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def contains(self, value: Any) -> S:
        """Word search."""
        if not _is_blank(value):
            self.schema.filter(self.words.get(str(value), ()))
        return self.schema

    def equals(self, value: Any) -> S:
        """Exact match search."""
        if not _is_blank(value):
            self.schema.filter(self.values.get(self.coerce(value), ()))
        return self.schema

    def greater_than(self, value: Any) -> S:
        if not _is_blank(value):
            found: set[int] = set()
            for key in self.values.irange(self.coerce(value), inclusive=(False, True)):
                found.update(self.values[key])
            self.schema.filter(found)
        return self.schema

    def less_than(self, value: Any) -> S:
        if not _is_blank(value):
            found: set[int] = set()
            for key in self.values.irange(maximum=self.coerce(value), inclusive=(True, False)):
                found.update(self.values[key])
            self.schema.filter(found)
        return self.schema

    def match(self, regex: str | re.Pattern[str]) -> S:
        """Regex search over the stringified keys. Scans every key."""
        if _is_blank(regex):
            return self.schema
        pattern = re.compile(regex) if isinstance(regex, str) else regex
        return self._scan(lambda key: pattern.search(str(key)) is not None)

    def starts_with(self, value: Any) -> S:
        if _is_blank(value):
            return self.schema
        prefix = str(value)
        return self._scan(lambda key: str(key).startswith(prefix))

    def ends_with(self, value: Any) -> S:
        if _is_blank(value):
            return self.schema
        suffix = str(value)
        return self._scan(lambda key: str(key).endswith(suffix))

    def _scan(self, predicate: Callable[[Any], bool]) -> S:
        """Filter by a predicate over keys, only looking at currently selected ids."""
        selected = self.schema.selected
        found: set[int] = set()
        for key, ids in self.values.items():
            candidates = ids if selected is None else ids & selected
            if candidates and predicate(key):
                found.update(candidates)
        self.schema.filter(found)
        return self.schema

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def serialize(self) -> dict[str, Any]:
        return {
            "keys": {str(key): sorted(ids) for key, ids in self.values.items()},
            "words": {word: sorted(ids) for word, ids in self.words.items()},
        }

    def deserialize(self, content: KeyContent | Mapping[str, Any]) -> None:
        """Replace this key's content with a serialized snapshot."""
        if not isinstance(content, KeyContent):
            content = KeyContent.model_validate(content)
        values = SortedDict(self.sort_key)
        for key, ids in content.keys.items():
            values[self.coerce(key)] = set(ids)
        words = SortedDict()
        for word, ids in (content.words or {}).items():
            words[word] = set(ids)
        self.values, self.words = values, words

    def clone_key(self, source: Key[Any, V]) -> None:
        self.values = _clone_map(source.values)
        self.words = _clone_map(source.words)


class StringKey(Key[S, str]):
    """A key over string values, ordered by the current locale. Blank sorts first."""

    def sort_key(self, value: str) -> tuple[int, str, str]:
        if not value:
            return (0, "", "")
        return (1, locale.strxfrm(value), value)

    def coerce(self, value: Any) -> str:
        return value if isinstance(value, str) else str(value)


def _short_name(identity: str, n: int) -> str:
    """The trailing ``n`` segments of a slash-delimited identity."""
    return "/".join(identity.split("/")[-n:])


class IdentityKey(StringKey[S]):
    """A string key over hierarchical identities such as ``compilers/arm/gcc``.

    After insertion every identity gets the shortest trailing path that no
    other indexed identity shares, so ``gcc`` finds ``compilers/arm/gcc``
    as long as it is the only ``gcc``.

    With ``unique=True`` a second record carrying an already indexed identity
    is rejected with :class:`DuplicateIdentityError`. Pass ``unique=False``
    when several records legitimately share one identity (e.g. versions).
    """

    def __init__(
        self,
        schema: S,
        accessor: Callable[..., Any],
        identity: str | list[str],
        *,
        parent: Key[S, Any] | None = None,
        unique: bool = True,
    ) -> None:
        super().__init__(schema, accessor, identity, parent=parent)
        self.unique = unique
        self.identities: SortedDict = SortedDict(self.sort_key)
        self.short_names: dict[str, str] = {}

    def validate(self, record: Any) -> None:
        value = self.accessor(record)
        if not self.unique or _is_blank(value):
            return
        for each in _as_values(value):
            if self.coerce(each) in self.values:
                raise DuplicateIdentityError(self.coerce(each))

    def done_insertion(self) -> None:
        identities = SortedDict(self.sort_key)
        short_names: dict[str, str] = {}
        longest = max((identity.count("/") + 1 for identity in self.values), default=0)

        groups: dict[str, list[tuple[str, set[int]]]] = defaultdict(list)
        for identity, ids in self.values.items():
            groups[_short_name(identity, 1)].append((identity, ids))

        n = 1
        while groups:
            n += 1
            pending: dict[str, list[tuple[str, set[int]]]] = defaultdict(list)
            for name, members in groups.items():
                if len(members) == 1:
                    identity, ids = members[0]
                    identities[name] = ids
                    short_names[identity] = name
                elif n > longest:
                    # every name is already the full identity
                    raise DuplicateIdentityError(members[0][0])
                else:
                    for member in members:
                        pending[_short_name(member[0], n)].append(member)
            groups = pending

        self.identities, self.short_names = identities, short_names

    def get_short_name_of(self, identity: str) -> str | None:
        return self.short_names.get(identity)

    def name_or_short_name_is(self, value: str | None) -> S:
        if _is_blank(value):
            return self.schema
        matches = self.identities.get(value)
        if matches is None:
            return self.equals(value)
        self.schema.filter(matches)
        return self.schema

    def deserialize(self, content: KeyContent | Mapping[str, Any]) -> None:
        super().deserialize(content)
        self.done_insertion()

    def clone_key(self, source: Key[Any, str]) -> None:
        super().clone_key(source)
        if isinstance(source, IdentityKey):
            self.identities = _clone_map(source.identities)
            self.short_names = dict(source.short_names)


class SemverKey(Key[S, Version]):
    """A key over semantic versions. Does not support word searches."""

    def sort_key(self, value: Version) -> Version:
        return value

    def coerce(self, value: Any) -> Version:
        return parse_version(value)

    def validate(self, record: Any) -> None:
        value = self.accessor(record)
        if not _is_blank(value):
            for each in _as_values(value):
                self.coerce(each)

    def add_word(self, value: Any, record_id: int) -> None:
        pass

    def range_match(self, expression: VersionRange | str | None) -> S:
        """Keep records whose version satisfies a range like ``>=1.0.0 <2.0.0``."""
        if _is_blank(expression):
            return self.schema
        version_range = (
            expression if isinstance(expression, VersionRange) else VersionRange(expression)
        )
        return self._scan(version_range.test)

    def serialize(self) -> dict[str, Any]:
        return {"keys": {str(key): sorted(ids) for key, ids in self.values.items()}}


class IndexSchema(Generic[T]):
    """Base class for a custom index layout.

    Subclasses declare their keys in ``__init__``; declaration order is the
    order keys are fed, serialized and cloned in.

    ``selected`` holds the ids that survived every query so far, or ``None``
    when nothing has been filtered yet (all records selected).
    """

    def __init__(self, index: Index[T, Any]) -> None:
        self.index = index
        self.keys: dict[str, Key[Any, Any]] = {}
        self.selected: set[int] | None = None

    def register(self, key: Key[Any, Any]) -> None:
        self.keys[key.identity] = key

    def filter(self, ids_to_keep: Iterable[int]) -> None:
        """Narrow the selection to ``selected ∩ ids_to_keep``."""
        if self.selected is None:
            self.selected = set(ids_to_keep)
        else:
            self.selected = self.selected.intersection(ids_to_keep)

    def reset(self) -> None:
        self.selected = None

    @property
    def ids(self) -> list[int]:
        if self.selected is None:
            return list(range(len(self.index.targets)))
        return sorted(self.selected)

    @property
    def items(self) -> list[T]:
        targets = self.index.targets
        if self.selected is None:
            return list(targets)
        return [targets[i] for i in sorted(self.selected)]

    def __len__(self) -> int:
        if self.selected is None:
            return len(self.index.targets)
        return len(self.selected)

    def serialize(self) -> dict[str, Any]:
        return {name: key.serialize() for name, key in self.keys.items()}

    def deserialize(self, content: Mapping[str, Any]) -> None:
        """Load every declared key from ``content``, trying each key's aliases in turn."""
        for name, key in self.keys.items():
            for identity in key.aliases:
                if identity in content:
                    try:
                        key.deserialize(content[identity])
                    except (ValueCoercionError, DuplicateIdentityError) as exc:
                        raise DeserializationError(name, exc.message) from exc
                    break
            else:
                raise DeserializationError(name)


class Index(Generic[T, S]):
    """Owns the indexed targets and the schema that searches them.

    Record ids are positions in ``targets`` and are never reused.
    """

    def __init__(self, schema_type: Callable[[Index[T, S]], S]) -> None:
        self.schema_type = schema_type
        self.targets: list[T] = []
        self.schema: S = schema_type(self)

    def __len__(self) -> int:
        return len(self.targets)

    def reset(self) -> None:
        """Drop all content. Views taken earlier keep their own snapshot."""
        self.targets = []
        self.schema = self.schema_type(self)

    def _top_level_keys(self) -> list[Key[Any, Any]]:
        return [key for key in self.schema.keys.values() if key.parent is None]

    def insert(self, content: Any, target: T) -> int:
        """Index ``content`` and store ``target`` as the record returned by queries."""
        keys = self._top_level_keys()
        for key in keys:
            key.validate(content)
        record_id = len(self.targets)
        self.targets.append(target)
        for key in keys:
            key.insert(content, record_id)
        return record_id

    def done_insertion(self) -> None:
        start = time.perf_counter()
        for key in self.schema.keys.values():
            key.done_insertion()
        log.debug(
            "index_insertion_complete",
            records=len(self.targets),
            keys=len(self.schema.keys),
            duration_ms=int((time.perf_counter() - start) * 1000),
        )

    @property
    def where(self) -> S:
        """A fresh, independently filterable view over this index."""
        view: Index[T, S] = Index(self.schema_type)
        view.targets = self.targets
        for name, key in self.schema.keys.items():
            view.schema.keys[name].clone_key(key)
        return view.schema

    def serialize(self) -> dict[str, Any]:
        return {"items": list(self.targets), "indexes": self.schema.serialize()}

    def deserialize(self, content: Mapping[str, Any]) -> None:
        """Replace this index with a serialized snapshot.

        Either the whole snapshot loads or the index is left untouched.
        """
        payload = IndexFile.parse(content)
        schema = self.schema_type(self)
        try:
            schema.deserialize(payload.indexes)
        except DeserializationError as exc:
            log.warning("index_deserialize_failed", key=exc.key, reason=exc.message)
            raise
        self.targets = list(payload.items)
        self.schema = schema
        log.debug("index_deserialized", records=len(self.targets), keys=len(schema.keys))
