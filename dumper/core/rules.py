from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from dumper.errors import RuleFileError


class ResourceKey(str, Enum):
    CARS = "cars"
    BIKES = "bikes"
    CLOTHES = "clothes"
    DLC = "dlc"


@dataclass(frozen=True)
class SuffixRule:
    suffix: str
    case_insensitive: bool = True
    kind = "suffix"

    def matches(self, basename: str) -> bool:
        if self.case_insensitive:
            return basename.lower().endswith(self.suffix.lower())
        return basename.endswith(self.suffix)


@dataclass(frozen=True)
class ExactNameRule:
    name: str
    case_insensitive: bool = True
    kind = "exact"

    def matches(self, basename: str) -> bool:
        if self.case_insensitive:
            return basename.lower() == self.name.lower()
        return basename == self.name


@dataclass(frozen=True)
class ContainsRule:
    text: str
    case_insensitive: bool = True
    kind = "contains"

    def matches(self, basename: str) -> bool:
        if self.case_insensitive:
            return self.text.lower() in basename.lower()
        return self.text in basename


@dataclass(frozen=True)
class RegexRule:
    pattern: str
    case_insensitive: bool = True
    kind = "regex"
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        flags = re.IGNORECASE if self.case_insensitive else 0
        # frozen dataclass: bypass __setattr__ for the cached pattern
        object.__setattr__(self, "_compiled", re.compile(self.pattern, flags))

    def matches(self, basename: str) -> bool:
        return self._compiled.search(basename) is not None


MatchRule = Union[SuffixRule, ExactNameRule, ContainsRule, RegexRule]

_RULE_KINDS = {
    "suffix": SuffixRule,
    "exact": ExactNameRule,
    "contains": ContainsRule,
    "regex": RegexRule,
}


@dataclass(frozen=True)
class ResourceCategory:
    key: ResourceKey
    display_name: str
    patterns: Tuple[MatchRule, ...]
    # Candidate source subpaths. Informational only: scans always walk the whole tree.
    hint_paths: Tuple[str, ...] = ()


SelectedCategories = Tuple[ResourceKey, ...]


def default_categories() -> Dict[ResourceKey, ResourceCategory]:
    return {
        ResourceKey.CARS: ResourceCategory(
            key=ResourceKey.CARS,
            display_name="Cars",
            patterns=(
                ExactNameRule("vehicles.meta"),
                ExactNameRule("carvariations.meta"),
                ExactNameRule("carcols.meta"),
                ExactNameRule("handling.meta"),
                ExactNameRule("vehiclelayouts.meta"),
                SuffixRule(".yft"),
                SuffixRule(".ytd"),
            ),
            hint_paths=("stream", "data"),
        ),
        ResourceKey.BIKES: ResourceCategory(
            key=ResourceKey.BIKES,
            display_name="Bikes",
            patterns=(
                ContainsRule("bike"),
                ContainsRule("motorcycle"),
                ContainsRule("chopper"),
            ),
            hint_paths=("stream", "data"),
        ),
        ResourceKey.CLOTHES: ResourceCategory(
            key=ResourceKey.CLOTHES,
            display_name="Clothes",
            patterns=(
                SuffixRule(".ydd"),
                SuffixRule(".ymt"),
                SuffixRule(".yld"),
                ContainsRule("mp_m_freemode"),
                ContainsRule("mp_f_freemode"),
            ),
            hint_paths=("stream",),
        ),
        ResourceKey.DLC: ResourceCategory(
            key=ResourceKey.DLC,
            display_name="DLC Packs",
            patterns=(
                ExactNameRule("content.xml"),
                ExactNameRule("setup2.xml"),
                ExactNameRule("dlc.rpf"),
                SuffixRule(".rpf"),
            ),
            hint_paths=("dlcpacks",),
        ),
    }


def category_matches(category: ResourceCategory, basename: str) -> bool:
    """True if any of the category's patterns matches the file's base name."""
    return any(rule.matches(basename) for rule in category.patterns)


def resolve_categories(
    flags: Mapping[str, bool],
    categories: Optional[Mapping[ResourceKey, ResourceCategory]] = None,
) -> SelectedCategories:
    """
    Resolve per-category boolean flags (plus "all") into the categories of a run.

    "all" wins over individual flags; no flags at all selects every category.
    The result keeps table order and is never empty.
    """
    table = categories if categories is not None else default_categories()
    every = tuple(table.keys())

    if flags.get("all"):
        return every

    chosen = tuple(k for k in every if flags.get(k.value))
    return chosen or every


# -------------------------
# Rule files (JSON)
# -------------------------

def _rule_value(rule: MatchRule) -> str:
    if isinstance(rule, SuffixRule):
        return rule.suffix
    if isinstance(rule, ExactNameRule):
        return rule.name
    if isinstance(rule, ContainsRule):
        return rule.text
    return rule.pattern


def to_json_dict(category: ResourceCategory) -> Dict[str, Any]:
    return {
        "name": category.display_name,
        "patterns": [
            {"kind": r.kind, "value": _rule_value(r), "case_insensitive": r.case_insensitive}
            for r in category.patterns
        ],
        "hint_paths": list(category.hint_paths),
    }


def _rule_from_json(d: Mapping[str, Any]) -> MatchRule:
    kind = str(d.get("kind") or "").strip().lower()
    cls = _RULE_KINDS.get(kind)
    if cls is None:
        raise RuleFileError(f"Unknown rule kind: {kind!r}")

    value = str(d.get("value") or "")
    if not value:
        raise RuleFileError(f"Rule of kind {kind!r} has an empty value")

    try:
        return cls(value, bool(d.get("case_insensitive", True)))
    except re.error as e:
        raise RuleFileError(f"Invalid regex {value!r}: {e}") from e


def from_json_dict(key: ResourceKey, d: Mapping[str, Any]) -> ResourceCategory:
    patterns = tuple(_rule_from_json(p) for p in (d.get("patterns") or []))
    if not patterns:
        raise RuleFileError(f"Category '{key.value}' defines no patterns")

    hints = tuple(str(x).strip().strip("/\\") for x in (d.get("hint_paths") or []) if str(x).strip())

    return ResourceCategory(
        key=key,
        display_name=str(d.get("name") or key.value.title()),
        patterns=patterns,
        hint_paths=hints,
    )


def load_rules(path: Union[str, Path]) -> Dict[ResourceKey, ResourceCategory]:
    """
    Load a rule file on top of the default table.

    The file maps category keys to category definitions; keys it leaves out
    keep their default definition.
    """
    p = Path(path)
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise RuleFileError(f"Cannot read rule file {p}: {e}") from e

    if not isinstance(raw, dict):
        raise RuleFileError(f"Rule file {p} must contain a JSON object")

    table = default_categories()
    for name, body in raw.items():
        try:
            key = ResourceKey(name)
        except ValueError:
            raise RuleFileError(f"Unknown category in rule file: {name!r}") from None
        if not isinstance(body, dict):
            raise RuleFileError(f"Category '{name}' must be a JSON object")
        table[key] = from_json_dict(key, body)
    return table


def save_rules(path: Union[str, Path], categories: Iterable[ResourceCategory]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    data = {c.key.value: to_json_dict(c) for c in categories}
    p.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return p
