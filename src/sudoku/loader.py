import json
import math
import os
import re
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from src.utils.io import load_json

# Column names used by public Sudoku datasets for the puzzle and its answer.
_PUZZLE_ALIASES = ("puzzle", "quizzes", "quiz", "grid", "board", "question", "input")
_SOLUTION_ALIASES = ("solution", "solutions", "answer", "target")


def load_puzzles(file_path: str) -> List[Dict[str, Any]]:
    """
    Reads puzzles from a file. Handles .parquet, .csv, .json, .jsonl and plain text.
    Returns a list of raw puzzle dictionaries (see `src.sudoku.parser.parse_puzzle`).
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")

    stem = Path(file_path).stem

    def _is_missing(value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, float) and math.isnan(value):
            return True
        return isinstance(value, str) and value.strip() == ""

    def _normalize_record(record: Dict[str, Any], position: int) -> Dict[str, Any]:
        record = {k: v for k, v in record.items() if not _is_missing(v)}

        if "puzzle" not in record:
            for key in _PUZZLE_ALIASES:
                if key in record:
                    record["puzzle"] = record[key]
                    break

        if "solution" not in record:
            for key in _SOLUTION_ALIASES:
                if key in record:
                    record["solution"] = record[key]
                    break

        if "id" not in record:
            record["id"] = f"{stem}-{position}"
        else:
            record["id"] = str(record["id"])

        return record

    def _normalize_all(records: List[Any]) -> List[Dict[str, Any]]:
        return [
            _normalize_record(r, i)
            for i, r in enumerate(records, start=1)
            if isinstance(r, dict)
        ]

    def _read_lines(path: str) -> List[Any]:
        data = []
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    data.append(json.loads(line))
                except json.JSONDecodeError:
                    continue
        return data

    # Case 1: Parquet / CSV (tabular, via pandas)
    if file_path.endswith(".parquet") or file_path.endswith(".csv"):
        try:
            if file_path.endswith(".parquet"):
                df = pd.read_parquet(file_path)
            else:
                # Keep leading zeros of compact puzzle strings.
                df = pd.read_csv(file_path, dtype=str, keep_default_na=False)
            records = df.to_dict(orient="records")
            return _normalize_all(records)
        except Exception as e:
            print(f"Error reading {file_path}: {e}")
            return []

    # Case 2: JSON File (array or object)
    if file_path.endswith(".json"):
        try:
            payload = load_json(Path(file_path))
            if isinstance(payload, list):
                return _normalize_all(payload)
            if isinstance(payload, dict):
                return _normalize_all([payload])
            return []
        except json.JSONDecodeError:
            # Some sources use ".json" but actually store JSONL; fall back to line-delimited parsing.
            return _normalize_all(_read_lines(file_path))

    # Case 3: JSONL File
    if file_path.endswith(".jsonl"):
        return _normalize_all(_read_lines(file_path))

    # Case 4: Plain text. One puzzle in the "N then N*N values" format, one
    # compact puzzle per line, or one grid spread over several lines (.sdk).
    with open(file_path, "r", encoding="utf-8") as f:
        lines = [
            line.strip()
            for line in f
            if line.strip() and not line.lstrip().startswith("#")
        ]
    if not lines:
        return []

    first_tokens = re.split(r"\s+", lines[0])
    if len(first_tokens) == 1 and first_tokens[0].isdigit() and len(lines) > 1:
        size = int(first_tokens[0])
        if len(lines) - 1 == size or len(" ".join(lines[1:]).split()) == size * size:
            return [_normalize_record({"puzzle": "\n".join(lines), "size": size}, 1)]

    def _is_full_grid(line: str) -> bool:
        cells = len(re.sub(r"[\s,;|]", "", line))
        side = math.isqrt(cells)
        box = math.isqrt(side)
        return cells > 0 and side * side == cells and box * box == side

    if all(_is_full_grid(line) for line in lines):
        return _normalize_all([{"puzzle": line} for line in lines])

    return [_normalize_record({"puzzle": "\n".join(lines)}, 1)]
