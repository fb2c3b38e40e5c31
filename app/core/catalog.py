from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

# kWh per output token per billion parameters.
ENERGY_CONSUMPTION_FACTOR = 7.594e-9


@dataclass(frozen=True, slots=True)
class ModelEntry:
    name: str
    parameters_in_billions: float
    emissions_per_token_kwh: float

    @classmethod
    def from_parameters(cls, name: str, parameters_in_billions: float) -> ModelEntry:
        return cls(
            name=name,
            parameters_in_billions=parameters_in_billions,
            emissions_per_token_kwh=parameters_in_billions * ENERGY_CONSUMPTION_FACTOR,
        )

    def as_dict(self) -> dict[str, str | float]:
        return {
            "name": self.name,
            "parameters_in_billions": self.parameters_in_billions,
            "emissions_per_token_kWh": self.emissions_per_token_kwh,
        }


def has_valid_parameters(value: float | None) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number > 0


# Served when the upstream catalog cannot be used. Order is the display order.
FALLBACK_MODELS: tuple[ModelEntry, ...] = tuple(
    ModelEntry.from_parameters(name, params)
    for name, params in (
        ("GPT-4 Turbo", 175),
        ("Claude-3 Opus", 175),
        ("Llama 2 70B", 70),
        # Per-expert size; see the max-token limitation in extraction.py.
        ("Mixtral 8x7B", 7),
        ("Llama 2 13B", 13),
        ("Llama 2 7B", 7),
        ("Mistral 7B", 7),
        ("CodeLlama 34B", 34),
        ("Vicuna 13B", 13),
        ("WizardLM 70B", 70),
    )
)

# Large models the upstream feed lists without a parseable size, or not at all.
ESSENTIAL_MODELS: tuple[ModelEntry, ...] = tuple(
    ModelEntry.from_parameters(name, params)
    for name, params in (
        ("GPT-4 Turbo", 175),
        ("Claude-3 Opus", 175),
        ("Llama 3.1 405B", 405),
        ("DeepSeek V3 671B", 671),
        ("Grok-1 314B", 314),
    )
)


def normalize_catalog(
    entries: Iterable[ModelEntry],
    essentials: Sequence[ModelEntry] = ESSENTIAL_MODELS,
) -> list[ModelEntry]:
    """Build the canonical catalog from filtered entries.

    Steps run in a fixed order: case-insensitive dedup (first occurrence
    wins), injection of essential models missing by name, a final
    parameter validity check, then a stable sort by descending size.
    Applying it to its own output returns an equal list.
    """

    seen: set[str] = set()
    catalog: list[ModelEntry] = []
    for entry in entries:
        key = entry.name.lower()
        if key in seen:
            continue
        seen.add(key)
        catalog.append(entry)

    for essential in essentials:
        key = essential.name.lower()
        if key not in seen:
            seen.add(key)
            catalog.append(essential)

    catalog = [entry for entry in catalog if has_valid_parameters(entry.parameters_in_billions)]
    catalog.sort(key=lambda entry: entry.parameters_in_billions, reverse=True)
    return catalog


def find_model(entries: Iterable[ModelEntry], name: str) -> ModelEntry | None:
    key = name.strip().lower()
    for entry in entries:
        if entry.name.lower() == key:
            return entry
    return None
