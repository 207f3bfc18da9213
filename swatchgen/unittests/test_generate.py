"""Tests for the batch orchestrator using an in-process fake renderer."""

from __future__ import annotations

import tempfile
import threading
import time
import unittest
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from swatchgen.config import GeneratorOptions
from swatchgen.generate import generate, output_path, pending_records
from swatchgen.openscad.runner import RenderError
from swatchgen.types import GENERATOR_SET, CustomizerSettings, FilamentRecord, OutputFormat
from swatchgen.utils.fs import PathError

INVENTORY = (
    "manufacturer,color,material,temperature\n"
    "Prusament,Galaxy Black,PETG,230\n"
    "Prusament,Signal White,PETG,240\n"
    "Polymaker,Jet Black,PLA,210\n"
    "Fillamentum,Traffic Red,ASA,260\n"
    "broken row\n"
)


class FakeRenderer:
    def __init__(self, fail_on: Optional[str] = None, delay: float = 0.0):
        self.fail_on = fail_on
        self.delay = delay
        self.rendered: List[str] = []
        self.documents: List[CustomizerSettings] = []
        self._lock = threading.Lock()

    def render(self, record: FilamentRecord, destination: Path, document: CustomizerSettings) -> Path:
        if self.delay:
            time.sleep(self.delay)
        if record.identity == self.fail_on:
            raise RenderError(record.identity, "OpenSCAD exited with status 1", returncode=1)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"solid\n")
        with self._lock:
            self.rendered.append(record.identity)
            self.documents.append(document)
        return destination


class OutputPathTest(unittest.TestCase):
    def test_hierarchical_path(self) -> None:
        rec = FilamentRecord(manufacturer="Prusament", color="Galaxy Black", material="PETG", temperature=230)
        self.assertEqual(
            output_path(rec, Path("/out"), OutputFormat.STL),
            Path("/out/PETG/Prusament/Prusament - PETG - Galaxy Black.stl"),
        )

    def test_flat_path(self) -> None:
        rec = FilamentRecord(manufacturer="Prusament", color="Galaxy Black", material="PETG", temperature=230)
        self.assertEqual(
            output_path(rec, Path("/out"), OutputFormat.THREE_MF, organize=False),
            Path("/out/Prusament - PETG - Galaxy Black.3mf"),
        )

    def test_separators_in_fields_stay_in_one_component(self) -> None:
        rec = FilamentRecord(manufacturer="colorFabb", color="Black", material="PLA/PHA", temperature=210)
        self.assertEqual(rec.filename(OutputFormat.STL), "colorFabb - PLA-PHA - Black.stl")
        self.assertEqual(
            output_path(rec, Path("/out"), OutputFormat.STL),
            Path("/out/PLA-PHA/colorFabb/colorFabb - PLA-PHA - Black.stl"),
        )
        rec = FilamentRecord(manufacturer="A\\B", color="x", material="PLA", temperature=200)
        self.assertEqual(output_path(rec, Path("/out"), OutputFormat.STL).parent, Path("/out/PLA/A-B"))

    def test_relative_dir_names_are_rejected(self) -> None:
        for bad in (".", ".."):
            with self.assertRaises(ValidationError):
                FilamentRecord(manufacturer=bad, color="Black", material="PLA", temperature=210)
            with self.assertRaises(ValidationError):
                FilamentRecord(manufacturer="Maker", color="Black", material=bad, temperature=210)
        # dots inside a name are fine
        FilamentRecord(manufacturer="3D.Fuel", color="...", material="PLA", temperature=210)


class PendingRecordsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.a = FilamentRecord(manufacturer="Prusament", color="Galaxy Black", material="PETG", temperature=230)
        self.b = FilamentRecord(manufacturer="Polymaker", color="Jet Black", material="PLA", temperature=210)

    def test_identity_ignores_temperature(self) -> None:
        hotter = self.a.model_copy(update={"temperature": 250})
        self.assertEqual(self.a.identity, hotter.identity)
        self.assertEqual(self.a.identity, "Prusament - PETG - Galaxy Black")

    def test_existing_outputs_are_skipped(self) -> None:
        existing = {"Prusament - PETG - Galaxy Black.stl"}
        pending, skipped, dups = pending_records([self.a, self.b], existing, OutputFormat.STL)
        self.assertEqual(pending, [self.b])
        self.assertEqual((skipped, dups), (1, 0))

    def test_other_format_does_not_count(self) -> None:
        existing = {"Prusament - PETG - Galaxy Black.3mf"}
        pending, _, _ = pending_records([self.a], existing, OutputFormat.STL)
        self.assertEqual(pending, [self.a])

    def test_force_ignores_existing(self) -> None:
        existing = {"Prusament - PETG - Galaxy Black.stl"}
        pending, skipped, _ = pending_records([self.a, self.b], existing, OutputFormat.STL, force=True)
        self.assertEqual(pending, [self.a, self.b])
        self.assertEqual(skipped, 0)

    def test_duplicate_identities_render_once(self) -> None:
        again = self.a.model_copy(update={"temperature": 245})
        pending, _, dups = pending_records([self.a, again, self.b], set(), OutputFormat.STL)
        self.assertEqual(pending, [self.a, self.b])
        self.assertEqual(dups, 1)


class GenerateTest(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.dir = Path(self._tmp.name)
        self.inventory = self.dir / "inventory.txt"
        self.inventory.write_text(INVENTORY, encoding="utf-8")
        self.out = self.dir / "swatches"

    def _options(self, **kwargs) -> GeneratorOptions:
        base = dict(inventory=self.inventory, destination=self.out, openscad_path="openscad", workers=3)
        base.update(kwargs)
        return GeneratorOptions(**base)

    def test_renders_all_pending(self) -> None:
        fake = FakeRenderer()
        summary = generate(self._options(), runner=fake, show_progress=False)

        self.assertEqual(summary.inventory, 4)
        self.assertEqual(summary.pending, 4)
        self.assertEqual(summary.rendered, 4)
        self.assertTrue((self.out / "PETG" / "Prusament" / "Prusament - PETG - Galaxy Black.stl").exists())
        self.assertTrue((self.out / "ASA" / "Fillamentum" / "Fillamentum - ASA - Traffic Red.stl").exists())
        texts = sorted(d.parameter_sets[GENERATOR_SET].textstring1 for d in fake.documents)
        self.assertEqual(texts, ["0.2mm @ 210°C", "0.2mm @ 230°C", "0.2mm @ 240°C", "0.2mm @ 260°C"])

    def test_second_run_renders_nothing(self) -> None:
        generate(self._options(), runner=FakeRenderer(), show_progress=False)
        second = FakeRenderer()
        summary = generate(self._options(), runner=second, show_progress=False)
        self.assertEqual(second.rendered, [])
        self.assertEqual(summary.pending, 0)
        self.assertEqual(summary.existing, 4)

    def test_existing_file_anywhere_in_tree_is_skipped(self) -> None:
        elsewhere = self.out / "archive"
        elsewhere.mkdir(parents=True)
        (elsewhere / "Polymaker - PLA - Jet Black.stl").write_bytes(b"")
        fake = FakeRenderer()
        generate(self._options(), runner=fake, show_progress=False)
        self.assertNotIn("Polymaker - PLA - Jet Black", fake.rendered)
        self.assertEqual(len(fake.rendered), 3)

    def test_force_rerenders(self) -> None:
        generate(self._options(), runner=FakeRenderer(), show_progress=False)
        again = FakeRenderer()
        summary = generate(self._options(force=True), runner=again, show_progress=False)
        self.assertEqual(summary.rendered, 4)
        self.assertEqual(len(again.rendered), 4)

    def test_flat_layout(self) -> None:
        generate(self._options(organize=False, output_format="3mf"), runner=FakeRenderer(), show_progress=False)
        self.assertTrue((self.out / "Polymaker - PLA - Jet Black.3mf").exists())

    def test_creates_missing_destination(self) -> None:
        self.assertFalse(self.out.exists())
        generate(self._options(), runner=FakeRenderer(), show_progress=False)
        self.assertTrue(self.out.is_dir())

    def test_destination_is_a_file(self) -> None:
        self.out.write_text("oops")
        with self.assertRaises(PathError):
            generate(self._options(), runner=FakeRenderer(), show_progress=False)

    def test_missing_inventory_aborts_before_rendering(self) -> None:
        fake = FakeRenderer()
        with self.assertRaises(FileNotFoundError):
            generate(self._options(inventory=self.dir / "missing.txt"), runner=fake, show_progress=False)
        self.assertEqual(fake.rendered, [])

    def test_failure_propagates(self) -> None:
        fake = FakeRenderer(fail_on="Polymaker - PLA - Jet Black")
        with self.assertRaises(RenderError) as ctx:
            generate(self._options(), runner=fake, show_progress=False)
        self.assertEqual(ctx.exception.identity, "Polymaker - PLA - Jet Black")
        self.assertFalse((self.out / "PLA" / "Polymaker" / "Polymaker - PLA - Jet Black.stl").exists())

    def test_failure_stops_queued_work(self) -> None:
        rows = ["manufacturer,color,material,temperature"]
        rows.append("Bad,First,PLA,200")
        rows.extend(f"Maker,Color {i},PLA,200" for i in range(20))
        self.inventory.write_text("\n".join(rows) + "\n", encoding="utf-8")
        fake = FakeRenderer(fail_on="Bad - PLA - First", delay=0.02)

        with self.assertRaises(RenderError):
            generate(self._options(workers=1), runner=fake, show_progress=False)

        # with a single worker nothing after the failing first record may start
        self.assertEqual(fake.rendered, [])

    def test_separator_in_material_is_idempotent(self) -> None:
        self.inventory.write_text(
            "manufacturer,color,material,temperature\ncolorFabb,Black,PLA/PHA,210\n", encoding="utf-8"
        )
        first = FakeRenderer()
        generate(self._options(), runner=first, show_progress=False)
        self.assertEqual(first.rendered, ["colorFabb - PLA/PHA - Black"])
        self.assertTrue((self.out / "PLA-PHA" / "colorFabb" / "colorFabb - PLA-PHA - Black.stl").exists())

        second = FakeRenderer()
        summary = generate(self._options(), runner=second, show_progress=False)
        self.assertEqual(second.rendered, [])
        self.assertEqual(summary.existing, 1)

    def test_dot_dot_row_cannot_escape_destination(self) -> None:
        self.inventory.write_text(
            "manufacturer,color,material,temperature\n..,Black,..,210\nPolymaker,Jet Black,PLA,210\n",
            encoding="utf-8",
        )
        fake = FakeRenderer()
        summary = generate(self._options(), runner=fake, show_progress=False)
        self.assertEqual(fake.rendered, ["Polymaker - PLA - Jet Black"])
        self.assertEqual(summary.inventory, 1)
        self.assertEqual(list(self.dir.glob("*.stl")), [])

    def test_running_renders_finish_after_failure(self) -> None:
        self.inventory.write_text(
            "manufacturer,color,material,temperature\nBad,First,PLA,200\nGood,Second,PLA,200\n",
            encoding="utf-8",
        )
        fake = FakeRenderer(fail_on="Bad - PLA - First", delay=0.05)
        with self.assertRaises(RenderError):
            generate(self._options(workers=2), runner=fake, show_progress=False)
        self.assertEqual(fake.rendered, ["Good - PLA - Second"])
        self.assertTrue((self.out / "PLA" / "Good" / "Good - PLA - Second.stl").exists())


if __name__ == "__main__":
    unittest.main()
