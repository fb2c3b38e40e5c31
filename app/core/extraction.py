"""Parameter-count extraction and filtering for free-text model names.

Grammar of a size token:

* a numeral, integer or decimal (``70``, ``1.5``);
* immediately followed by a unit letter: ``B``/``b`` for billions,
  ``T``/``t`` for trillions (converted to billions by x1000);
* preceded by the start of the name, a character that is neither a word
  character nor ``.``, or a mixture-of-experts multiplier such as ``8x``;
* followed by the end of the name or a non-word character.

So ``Mixtral 8x7B`` yields ``7``, ``Qwen2.5 72B Instruct`` yields ``72``
and ``Qwen3 30B A3B`` yields ``30`` (``A3B`` has no left edge).

When a name contains several tokens the largest one wins. This favours
the headline figure and is knowingly wrong for mixture-of-experts names:
``8x7B`` reports the per-expert size, not the total.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from app.core.catalog import ModelEntry, has_valid_parameters

SIZE_TOKEN = re.compile(
    r"(?:(?<=\d[xX])|(?<![\w.]))(\d+(?:\.\d+)?)([bBtT])(?!\w)"
)
FREE_TIER_MARKER = re.compile(r"\bfree\b", re.IGNORECASE)

UNIT_MULTIPLIERS: dict[str, float] = {"b": 1.0, "t": 1000.0}


def extract_parameters(name: str) -> float | None:
    candidates = [
        float(match.group(1)) * UNIT_MULTIPLIERS[match.group(2).lower()]
        for match in SIZE_TOKEN.finditer(name or "")
    ]
    if not candidates:
        return None
    return max(candidates)


def is_denied(name: str, denylist: Sequence[str] = ()) -> bool:
    lowered = name.lower()
    if any(fragment in lowered for fragment in denylist):
        return True
    return FREE_TIER_MARKER.search(name) is not None


def build_entry(name: str, denylist: Sequence[str] = ()) -> ModelEntry | None:
    """Return a catalog entry for ``name`` or ``None`` if it must be dropped."""

    if not name or is_denied(name, denylist):
        return None
    parameters = extract_parameters(name)
    if not has_valid_parameters(parameters):
        return None
    return ModelEntry.from_parameters(name, parameters)


def is_valid_entry(entry: ModelEntry, denylist: Sequence[str] = ()) -> bool:
    """True when rebuilding ``entry`` from its name gives the same entry."""

    return build_entry(entry.name, denylist) == entry


def filter_entries(names: Sequence[str], denylist: Sequence[str] = ()) -> list[ModelEntry]:
    entries: list[ModelEntry] = []
    for name in names:
        entry = build_entry(name, denylist)
        if entry is not None:
            entries.append(entry)
    return entries
