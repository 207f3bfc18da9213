from __future__ import annotations
import os
from enum import Enum
from typing import Dict
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, field_validator


GENERATOR_SET = "Generator"

_SEPARATORS = {"/", "\\", os.sep} | ({os.altsep} if os.altsep else set())


def path_part(text: str) -> str:
    """Make ``text`` usable as a single path component ("PLA/PHA" -> "PLA-PHA")."""
    for sep in _SEPARATORS:
        text = text.replace(sep, "-")
    return text


class SlotField(str, Enum):
    MANUFACTURER = "manufacturer"
    COLOR = "color"
    TEMPERATURE = "temperature"
    MATERIAL = "material"


class OutputFormat(str, Enum):
    STL = "stl"
    THREE_MF = "3mf"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def export_format(self) -> str:
        """Value passed to OpenSCAD's --export-format."""
        return "binstl" if self is OutputFormat.STL else "3mf"


class FilamentRecord(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    manufacturer: str = Field(min_length=1)
    color: str = Field(min_length=1)
    material: str = Field(min_length=1)
    temperature: int

    @field_validator("manufacturer", "color", "material")
    @classmethod
    def _not_a_relative_dir(cls, value: str) -> str:
        if value in (".", ".."):
            raise ValueError(f"{value!r} is not a usable name")
        return value

    @property
    def identity(self) -> str:
        return f"{self.manufacturer} - {self.material} - {self.color}"

    def filename(self, output_format: OutputFormat) -> str:
        return f"{path_part(self.identity)}.{output_format.extension}"

    def __str__(self) -> str:
        return self.identity


class SwatchLayout(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    width: PositiveFloat = 79.5
    height: PositiveFloat = 30.0
    textsize_upper: PositiveFloat = 5.0
    textsize_lower: PositiveFloat = 4.5
    upper: SlotField = SlotField.TEMPERATURE
    lower_left: SlotField = SlotField.MANUFACTURER
    lower_right: SlotField = SlotField.COLOR


class SwatchParameters(BaseModel):
    """One named parameter set of the swatch model.

    OpenSCAD's customizer file stores every value as a string, numbers included,
    so all fields are declared as ``str``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    fn: str = Field(alias="$fn")
    edge_tests: str
    font_recessed: str
    fontname: str
    h: str
    linesep: str
    r_hole: str
    r_indent: str
    round: str
    step_thickness_correction: str
    steps_text: str
    steps_text_format: str
    steps_text_rotate: str
    steps_textheight: str
    steps_textsize: str
    steps_thickness: str
    tack_hole: str
    test_circles: str
    text_type: str
    textsize_lower: str
    textsize_upper: str
    textstring1: str
    textstring2: str
    textstring3: str
    texttop: str
    texttop_configurable: str
    th: str
    thole_d: str
    thole_top_shiftright: str
    w: str
    wall: str


class CustomizerSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    parameter_sets: Dict[str, SwatchParameters] = Field(default_factory=dict, alias="parameterSets")
    file_format_version: str = Field(default="1", alias="fileFormatVersion")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=4)
