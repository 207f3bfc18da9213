from __future__ import annotations
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from rich import print
from rich.markup import escape

from .config import ConfigError, load_config, resolve_options
from .generate import generate
from .inventory import InventoryError
from .openscad.runner import RenderError
from .parameters import BaselineError
from .types import OutputFormat, SlotField
from .utils import log, profiling
from .utils.fs import PathError

SLOT_CHOICES = [f.value for f in SlotField]


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="swatchgen",
        description="Customizable filament swatch generator: renders one labeled swatch per inventory row with OpenSCAD.",
    )
    ap.add_argument("-v", "--verbose", action="count", default=0, help="verbose mode (-v, -vv)")
    ap.add_argument("--profile", action="store_true", help="print per-render timings (sets SWATCHGEN_PROFILE)")
    ap.add_argument("--config", default=None, help="YAML config file (default: ./swatch_config.yaml if present)")
    sub = ap.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="render swatches for every inventory row without an output yet")
    gen.add_argument("-i", "--inventory", type=Path, default=None, help="inventory CSV (default: inventory.txt)")
    gen.add_argument("-d", "--destination", type=Path, default=None, help="output directory (default: .)")
    gen.add_argument(
        "--output-format",
        choices=[f.value for f in OutputFormat],
        default=None,
        help="model file format (default: stl)",
    )
    gen.add_argument("--openscad-path", default=None, help="OpenSCAD executable (default: platform specific)")
    gen.add_argument("-f", "--force", action="store_true", default=None, help="regenerate files that already exist")
    gen.add_argument(
        "--no-organize",
        dest="organize",
        action="store_false",
        default=None,
        help="write all files into the destination instead of <material>/<manufacturer>/ subdirectories",
    )
    gen.add_argument("-j", "--workers", type=int, default=None, help="parallel OpenSCAD processes (default: CPU count)")
    gen.add_argument("--timeout", type=float, default=None, help="seconds before a single render is abandoned")

    design = gen.add_argument_group("swatch design")
    design.add_argument("--width", type=float, default=None, help="swatch width in mm")
    design.add_argument("--height", type=float, default=None, help="swatch height in mm")
    design.add_argument("--textsize-upper", type=float, default=None, help="upper text size")
    design.add_argument("--textsize-lower", type=float, default=None, help="lower text size")
    design.add_argument("--upper", choices=SLOT_CHOICES, default=None, help="field shown on the upper line")
    design.add_argument("--lower-left", choices=SLOT_CHOICES, default=None, help="field shown lower left")
    design.add_argument("--lower-right", choices=SLOT_CHOICES, default=None, help="field shown lower right")
    return ap


def run_generate(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    options = resolve_options(
        cfg,
        overrides={
            "inventory": args.inventory,
            "destination": args.destination,
            "output_format": args.output_format,
            "openscad_path": args.openscad_path,
            "force": args.force,
            "organize": args.organize,
            "workers": args.workers,
            "timeout": args.timeout,
        },
        layout_overrides={
            "width": args.width,
            "height": args.height,
            "textsize_upper": args.textsize_upper,
            "textsize_lower": args.textsize_lower,
            "upper": args.upper,
            "lower_left": args.lower_left,
            "lower_right": args.lower_right,
        },
    )
    summary = generate(options, show_progress=sys.stderr.isatty() or sys.stdout.isatty())
    profiling.print_summary()
    if summary.pending == 0:
        print(f"[green]Nothing to do:[/green] all {summary.existing} swatch(es) already exist in {escape(str(options.destination))}")
    else:
        print(f"[green]Rendered {summary.rendered} swatch(es) into[/green] {escape(str(options.destination))}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    log.set_verbosity(args.verbose)
    if args.profile:
        profiling.set_enabled(True)

    try:
        if args.command == "generate":
            return run_generate(args)
    except FileNotFoundError as e:
        log.error(f"File not found: {e.filename or e}")
    except (RenderError, PathError, BaselineError, ConfigError, InventoryError) as e:
        log.error(str(e))
    except OSError as e:
        log.error(f"I/O error: {e}")
    except Exception as e:
        log.error(f"Unexpected error: {type(e).__name__}: {e}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
