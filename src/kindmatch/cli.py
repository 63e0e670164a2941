from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from kindmatch.driver import generate
from kindmatch.errors import ConfigError, UnresolvableWidthError
from kindmatch.platform import load_platform

PROG = "kindmatch"


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Match C types to Fortran kinds and write the paired C header and Fortran module.",
    )
    parser.add_argument(
        "--platform",
        required=True,
        help="Platform capability file (YAML subset) describing C type sizes and Fortran kinds.",
    )
    parser.add_argument(
        "--out-dir",
        default=".",
        help="Directory that receives both generated files (defaults to the current directory).",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        platform = load_platform(Path(args.platform))
    except ConfigError as exc:
        print(f"{PROG}: ERROR: {exc}")
        return 2

    try:
        generate(platform, Path(args.out_dir))
    except UnresolvableWidthError as exc:
        print(f"{PROG}: ERROR: {exc}")
        print("Quitting....")
        return 1
    except OSError as exc:
        print(f"{PROG}: ERROR: cannot write output files in {args.out_dir}: {exc.strerror or exc}")
        return 2
    return 0


def run() -> None:
    raise SystemExit(main(sys.argv[1:]))
