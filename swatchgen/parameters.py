from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError

from .types import (
    GENERATOR_SET,
    CustomizerSettings,
    FilamentRecord,
    SlotField,
    SwatchLayout,
    SwatchParameters,
)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
BASELINE_PATH = TEMPLATES_DIR / "parameters.json"
MODEL_PATH = TEMPLATES_DIR / "filament_swatch.scad"

TEMPERATURE_FORMAT = "0.2mm @ {temperature}°C"


class BaselineError(RuntimeError):
    """The bundled default parameter set could not be loaded."""


@lru_cache(maxsize=None)
def load_baseline(path: Path = BASELINE_PATH) -> SwatchParameters:
    """Load the default swatch parameters once; the result is frozen and shared."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return SwatchParameters.model_validate(data)
    except (OSError, ValueError, ValidationError) as exc:
        raise BaselineError(f"Bundled parameter baseline {path} is unusable: {exc}") from exc


def format_number(value: float) -> str:
    v = float(value)
    if v.is_integer():
        return str(int(v))
    return repr(v)


def format_slot(record: FilamentRecord, field: SlotField) -> str:
    if field is SlotField.MANUFACTURER:
        return record.manufacturer
    if field is SlotField.COLOR:
        return record.color
    if field is SlotField.MATERIAL:
        return record.material
    if field is SlotField.TEMPERATURE:
        return TEMPERATURE_FORMAT.format(temperature=record.temperature)
    raise ValueError(f"Unknown slot field: {field!r}")


def spell_out(text: str) -> str:
    """'PLA' -> 'P L A'."""
    return " ".join(text)


def build_parameters(
    record: FilamentRecord,
    layout: SwatchLayout,
    baseline: SwatchParameters,
) -> CustomizerSettings:
    overrides = {
        "textstring1": format_slot(record, layout.upper),
        "textstring2": format_slot(record, layout.lower_left),
        "textstring3": format_slot(record, layout.lower_right),
        "texttop_configurable": spell_out(record.material),
        "w": format_number(layout.width),
        "h": format_number(layout.height),
        "textsize_upper": format_number(layout.textsize_upper),
        "textsize_lower": format_number(layout.textsize_lower),
    }
    params = baseline.model_copy(update=overrides, deep=True)
    return CustomizerSettings(parameter_sets={GENERATOR_SET: params})
