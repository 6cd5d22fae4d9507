"""I/O helpers for grids and JSON payloads."""

import json
from math import isqrt
from pathlib import Path
from typing import Any, List, Sequence


def format_grid(grid: Sequence[Sequence[int]]) -> str:
    """Render a grid with a gap between boxes, horizontally and vertically."""
    size = len(grid)
    box = isqrt(size) or 1
    width = len(str(size))
    lines: List[str] = []
    for r, row in enumerate(grid):
        cells = []
        for c, value in enumerate(row):
            cells.append(str(value).rjust(width))
            if (c + 1) % box == 0 and c + 1 != size:
                cells.append("")
        lines.append(" ".join(cells))
        if (r + 1) % box == 0 and r + 1 != size:
            lines.append("")
    return "\n".join(lines)


def load_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_json(path: Path, payload: Any) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
