"""Customizable filament swatch generator."""

from .generate import GenerateSummary, generate, output_path, pending_records
from .inventory import read_inventory
from .parameters import build_parameters, load_baseline
from .types import CustomizerSettings, FilamentRecord, OutputFormat, SlotField, SwatchLayout, SwatchParameters

__version__ = "0.1.0"

__all__ = [
    'CustomizerSettings',
    'FilamentRecord',
    'GenerateSummary',
    'OutputFormat',
    'SlotField',
    'SwatchLayout',
    'SwatchParameters',
    'build_parameters',
    'generate',
    'load_baseline',
    'output_path',
    'pending_records',
    'read_inventory',
]
