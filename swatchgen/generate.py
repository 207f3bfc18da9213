from __future__ import annotations
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Set, Tuple

from rich.progress import BarColumn, MofNCompleteColumn, Progress, TimeElapsedColumn, TimeRemainingColumn

from .config import GeneratorOptions
from .inventory import read_inventory
from .openscad.runner import OpenScadRunner
from .parameters import build_parameters, load_baseline
from .types import CustomizerSettings, FilamentRecord, OutputFormat, SwatchLayout, SwatchParameters, path_part
from .utils import log
from .utils.fs import create_output_dir, list_existing_swatches


class Renderer(Protocol):
    def render(self, record: FilamentRecord, destination: Path, document: CustomizerSettings) -> Path:
        ...


@dataclass
class GenerateSummary:
    inventory: int = 0
    existing: int = 0
    duplicates: int = 0
    pending: int = 0
    rendered: int = 0


def output_path(record: FilamentRecord, root: Path, output_format: OutputFormat, organize: bool = True) -> Path:
    """<root>/<material>/<manufacturer>/<identity>.<ext>, or <root>/<identity>.<ext> when not organized."""
    filename = record.filename(output_format)
    if not organize:
        return Path(root) / filename
    return Path(root) / path_part(record.material) / path_part(record.manufacturer) / filename


def pending_records(
    records: Iterable[FilamentRecord],
    existing: Set[str],
    output_format: OutputFormat,
    force: bool = False,
) -> Tuple[List[FilamentRecord], int, int]:
    """
    Select the records that still need rendering.

    Returns (pending, skipped_existing, duplicates). The first record of each
    identity wins so that no two pending records share an output path.
    """
    pending: List[FilamentRecord] = []
    seen: Set[str] = set()
    skipped = duplicates = 0
    for rec in records:
        name = rec.filename(output_format)
        if not force and name in existing:
            skipped += 1
            continue
        if name in seen:
            duplicates += 1
            log.debug(f"Duplicate inventory entry ignored: {rec.identity}")
            continue
        seen.add(name)
        pending.append(rec)
    return pending, skipped, duplicates


def _render_one(
    record: FilamentRecord,
    destination: Path,
    layout: SwatchLayout,
    baseline: SwatchParameters,
    runner: Renderer,
    abort: threading.Event,
) -> bool:
    if abort.is_set():
        return False
    try:
        document = build_parameters(record, layout, baseline)
        runner.render(record, destination, document)
    except Exception:
        # set before this worker can pick up another queued record
        abort.set()
        raise
    return True


def generate(
    options: GeneratorOptions,
    runner: Optional[Renderer] = None,
    show_progress: bool = True,
) -> GenerateSummary:
    """
    Render every inventory record that has no output yet.

    Work is spread over ``options.workers`` threads. The first failure stops the
    batch: queued renders are cancelled, renders already running are allowed to
    finish, and the failure is re-raised. Files written before the failure stay.
    """
    root = create_output_dir(options.destination)
    records = read_inventory(options.inventory)
    existing = set() if options.force else list_existing_swatches(root)
    baseline = load_baseline()
    if runner is None:
        runner = OpenScadRunner(options.openscad_path, options.output_format, timeout=options.timeout)

    pending, skipped, duplicates = pending_records(records, existing, options.output_format, options.force)
    summary = GenerateSummary(
        inventory=len(records),
        existing=skipped,
        duplicates=duplicates,
        pending=len(pending),
    )
    log.info(
        f"{summary.inventory} filament(s) in inventory, {summary.existing} already rendered, "
        f"{summary.pending} to render with {options.workers} worker(s)"
    )
    if not pending:
        return summary

    abort = threading.Event()
    with Progress(
        "{task.description}",
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
        transient=False,
        disable=not show_progress,
    ) as progress:
        task_id = progress.add_task("[green]Rendering swatches[/green]", total=len(pending))
        with ThreadPoolExecutor(max_workers=options.workers) as pool:
            futs = [
                pool.submit(
                    _render_one,
                    rec,
                    output_path(rec, root, options.output_format, options.organize),
                    options.layout,
                    baseline,
                    runner,
                    abort,
                )
                for rec in pending
            ]
            not_done = set(futs)
            while not_done:
                done, not_done = wait(not_done, return_when=FIRST_COMPLETED)
                failed = [f for f in done if f.exception() is not None]
                for f in done:
                    if f.exception() is None:
                        if f.result():
                            summary.rendered += 1
                        progress.update(task_id, advance=1)
                if failed:
                    abort.set()
                    # queued renders are dropped, running ones finish
                    pool.shutdown(wait=True, cancel_futures=True)
                    for g in not_done:
                        if g.cancelled() or g.exception() is not None:
                            continue
                        if g.result():
                            summary.rendered += 1
                        progress.update(task_id, advance=1)
                    err = failed[0].exception()
                    log.warn(f"Stopped after {summary.rendered} rendered swatch(es); queued renders were not started")
                    raise err

    log.info(f"Rendered {summary.rendered} swatch(es) into {root}")
    return summary
