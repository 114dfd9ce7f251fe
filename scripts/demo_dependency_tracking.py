"""Demo: memoize a tiny build graph and watch invalidation stay local."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from optimistic import dep, wrap  # noqa: E402

SOURCES = {
    "util.py": "def helper(): ...\n",
    "app.py": "import util\n\nprint('hi')\n",
    "README": "demo\n",
}

file_changed = dep()
runs: list[str] = []


@wrap
def read_file(name: str) -> str:
    runs.append(f"read {name}")
    file_changed(name)
    return SOURCES[name]


@wrap
def line_count(name: str) -> int:
    runs.append(f"count {name}")
    return read_file(name).count("\n")


@wrap
def total_lines() -> int:
    runs.append("total")
    return sum(line_count(name) for name in sorted(SOURCES))


def _step(label: str) -> None:
    runs.clear()
    value = total_lines()
    print(f"{label}: total={value} work={runs or ['(cached)']}")


def main() -> int:
    """Run a few edits against the memoized graph and print the work done."""
    logging.basicConfig(level=logging.INFO, format="%(name)s %(message)s")

    _step("cold")
    _step("warm")

    SOURCES["README"] = "demo\nwith a second line\n"
    file_changed.dirty("README")
    _step("README grew")

    SOURCES["util.py"] = "def helper(): return 1\n"
    file_changed.dirty("util.py")
    _step("util.py edited, same line count")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
