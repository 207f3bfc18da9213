#!/usr/bin/env python3
"""
Setup Checker

Verifies that OpenSCAD, the Python dependencies, the bundled swatch templates
and the local configuration are usable before a long generate run.
"""

import subprocess
import sys
from pathlib import Path

# Colors for terminal output
GREEN = '\033[92m'
RED = '\033[91m'
YELLOW = '\033[93m'
BLUE = '\033[94m'
RESET = '\033[0m'

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def check(name: str, passed: bool, message: str = ""):
    """Print check result."""
    if passed:
        print(f"{GREEN}✓{RESET} {name}")
        if message:
            print(f"  {message}")
    else:
        print(f"{RED}✗{RESET} {name}")
        if message:
            print(f"  {RED}{message}{RESET}")


def check_python_version() -> bool:
    version = sys.version_info
    required = (3, 9)
    passed = version >= required
    check(
        "Python Version",
        passed,
        f"Python {version.major}.{version.minor} (required: {required[0]}.{required[1]}+)"
    )
    return passed


def check_python_packages() -> bool:
    all_ok = True
    for package in ('pydantic', 'rich', 'yaml'):
        try:
            __import__(package)
            check(f"Python package: {package}", True)
        except ImportError:
            check(f"Python package: {package}", False, "Not installed")
            all_ok = False
    return all_ok


def check_openscad() -> bool:
    from swatchgen.config import load_config, resolve_options

    binary = resolve_options(load_config()).openscad_path
    try:
        result = subprocess.run(
            [binary, '--version'],
            capture_output=True,
            text=True,
            timeout=15
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        check("OpenSCAD Installation", False, f"{binary}: {e}")
        return False
    # OpenSCAD prints its version on stderr
    version = (result.stderr or result.stdout).strip().splitlines()
    passed = result.returncode == 0
    check("OpenSCAD Installation", passed, version[0] if version else binary)
    return passed


def check_templates() -> bool:
    from swatchgen.parameters import MODEL_PATH, load_baseline

    baseline = load_baseline()
    check("Bundled parameter baseline", True, f"{len(baseline.model_dump())} parameters")
    passed = MODEL_PATH.exists()
    check("Bundled swatch model", passed, str(MODEL_PATH))
    return passed


def check_inventory() -> bool:
    from swatchgen.config import load_config, resolve_options
    from swatchgen.inventory import read_inventory

    inventory = resolve_options(load_config()).inventory
    if not inventory.exists():
        check("Inventory", True, f"{YELLOW}{inventory} not found (pass -i when generating){RESET}")
        return True
    records = read_inventory(inventory)
    check("Inventory", bool(records), f"{len(records)} filament(s) in {inventory}")
    return bool(records)


def main():
    """Run all checks."""
    print(f"\n{BLUE}{'=' * 60}{RESET}")
    print(f"{BLUE}Filament Swatch Generator Setup Checker{RESET}")
    print(f"{BLUE}{'=' * 60}{RESET}\n")

    checks = [
        ("Python Environment", [
            ("Python Version", check_python_version),
            ("Python Packages", check_python_packages),
        ]),
        ("External Dependencies", [
            ("OpenSCAD", check_openscad),
        ]),
        ("Project Files", [
            ("Templates", check_templates),
            ("Inventory", check_inventory),
        ]),
    ]

    all_passed = True
    for section_name, section_checks in checks:
        print(f"\n{BLUE}{section_name}:{RESET}")
        for check_name, check_func in section_checks:
            try:
                all_passed = check_func() and all_passed
            except Exception as e:
                check(check_name, False, f"Error: {e}")
                all_passed = False

    print(f"\n{BLUE}{'=' * 60}{RESET}")
    if all_passed:
        print(f"{GREEN}✓ All checks passed.{RESET}")
        print("\nNext step:")
        print("  swatchgen generate -i inventory.txt -d swatches")
        return 0
    print(f"{RED}✗ Some checks failed. Please fix the issues above.{RESET}")
    print("\nCommon fixes:")
    print("  - Install OpenSCAD: brew install --cask openscad (macOS) or apt-get install openscad (Linux)")
    print("  - Point OPENSCAD_PATH or generate.openscad_path at the executable")
    print("  - Install Python packages: pip install -e .")
    return 1


if __name__ == '__main__':
    sys.exit(main())
