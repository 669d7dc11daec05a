"""
Content catalog: the fixed, read-only lists of principles and rule-sets.

The catalog is a YAML document with two top-level lists::

    kekich:
      - id: 1
        text: ...
        category: ...
    paulism:
      - id: 1
        title: ...
        truth: ...
        rules: [...]

It is validated once at load time; afterwards it is never mutated.
"""

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml  # type: ignore
import yaml.error

from credo.domain.constants import CONTENT_TYPES, PRINCIPLE_TYPE, RULE_SET_TYPE
from credo.domain.exceptions import CatalogError
from credo.domain.models import ContentItem, Principle, RuleSet, make_key

logger = logging.getLogger(__name__)

BUNDLED_CATALOG = Path(__file__).resolve().parent.parent / "data" / "catalog.yaml"


def parse_key(key: str) -> tuple[str, int]:
    """
    Split a composite key like ``kekich_12`` into ``("kekich", 12)``.

    Raises:
        ValueError: If the key is not ``<known type>_<integer>``.
    """
    item_type, sep, raw_id = key.partition("_")
    if not sep or item_type not in CONTENT_TYPES:
        raise ValueError(f"Invalid credo key: {key!r}")
    try:
        return item_type, int(raw_id)
    except ValueError:
        raise ValueError(f"Invalid credo key: {key!r}") from None


class Catalog:
    """Immutable, ordered collection of content items indexed by composite key."""

    def __init__(self, principles: list[Principle], rule_sets: list[RuleSet]):
        self.principles: tuple[Principle, ...] = tuple(principles)
        self.rule_sets: tuple[RuleSet, ...] = tuple(rule_sets)
        self._index: dict[str, ContentItem] = {}
        for item in self.items():
            if item.key in self._index:
                raise CatalogError(f"Duplicate credo key in catalog: {item.key}")
            self._index[item.key] = item

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def items(self) -> Iterator[ContentItem]:
        """All items in catalog order: principles first, then rule-sets."""
        yield from self.principles
        yield from self.rule_sets

    def by_type(self, item_type: str) -> tuple[ContentItem, ...]:
        if item_type == PRINCIPLE_TYPE:
            return self.principles
        if item_type == RULE_SET_TYPE:
            return self.rule_sets
        raise ValueError(f"Unknown credo type: {item_type!r}")

    def get(self, key: str) -> ContentItem | None:
        return self._index.get(key)

    def find(self, item_type: str, item_id: int) -> ContentItem | None:
        return self._index.get(make_key(item_type, item_id))

    def search(self, term: str, item_type: str | None = None) -> list[ContentItem]:
        """
        Case-insensitive substring search.

        Principles match on text or category, rule-sets on title or truth;
        both also match on their display label. An empty term matches all.
        """
        pool = list(self.items()) if item_type is None else list(self.by_type(item_type))
        needle = term.strip().lower()
        if not needle:
            return pool
        return [item for item in pool if needle in _haystack(item)]


def _haystack(item: ContentItem) -> str:
    if isinstance(item, Principle):
        fields = [item.display, item.text, item.category]
    else:
        fields = [item.display, item.title, item.truth]
    return "\n".join(fields).lower()


def _build_principle(raw: dict[str, Any]) -> Principle:
    return Principle(id=int(raw["id"]), text=str(raw["text"]), category=str(raw["category"]))


def _build_rule_set(raw: dict[str, Any]) -> RuleSet:
    rules = raw.get("rules") or []
    if not isinstance(rules, list):
        raise TypeError("rules must be a list")
    return RuleSet(
        id=int(raw["id"]),
        title=str(raw["title"]),
        truth=str(raw["truth"]),
        rules=tuple(str(r) for r in rules),
    )


def catalog_from_dict(data: Any) -> Catalog:
    """Build and validate a Catalog from already-parsed YAML/JSON data."""
    if not isinstance(data, dict):
        raise CatalogError("Catalog must be a mapping with 'kekich' and 'paulism' lists")

    principles: list[Principle] = []
    rule_sets: list[RuleSet] = []
    for section, builder, target in (
        (PRINCIPLE_TYPE, _build_principle, principles),
        (RULE_SET_TYPE, _build_rule_set, rule_sets),
    ):
        entries = data.get(section) or []
        if not isinstance(entries, list):
            raise CatalogError(f"Catalog section '{section}' must be a list")
        for index, raw in enumerate(entries):
            if not isinstance(raw, dict):
                raise CatalogError(f"{section}[{index}]: expected a mapping")
            try:
                target.append(builder(raw))
            except KeyError as e:
                raise CatalogError(f"{section}[{index}]: missing field {e}") from e
            except (TypeError, ValueError) as e:
                raise CatalogError(f"{section}[{index}]: {e}") from e

    return Catalog(principles, rule_sets)


def load_catalog(path: Path | None = None) -> Catalog:
    """
    Load the catalog from a YAML file (the bundled one by default).

    Raises:
        CatalogError: If the file is unreadable, malformed, or has duplicate keys.
    """
    source = path or BUNDLED_CATALOG
    try:
        raw = source.read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogError(f"Cannot read catalog {source}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.error.YAMLError as e:
        raise CatalogError(f"Invalid YAML in catalog {source}: {e}") from e

    catalog = catalog_from_dict(data)
    logger.debug(
        f"[catalog] Loaded {len(catalog.principles)} principles and "
        f"{len(catalog.rule_sets)} rule-sets from {source}"
    )
    return catalog
