"""JSON run report output."""

from __future__ import annotations

import os
from pathlib import Path

from bitlocker_remediation.models import RunResult


def generate(result: RunResult, output_dir: str) -> str:
    """Serialize the run result to a JSON file.

    Args:
        result: The run result to serialize.
        output_dir: Directory to write the report file.

    Returns:
        Path to the generated JSON file.
    """
    os.makedirs(output_dir, exist_ok=True)

    timestamp = result.started_at.strftime("%Y%m%d_%H%M%S")
    filename = f"{result.hostname or 'localhost'}_{result.mode.value}_{timestamp}.json"
    filepath = Path(output_dir) / filename

    json_str = result.model_dump_json(indent=2)
    filepath.write_text(json_str, encoding="utf-8")

    return str(filepath)
