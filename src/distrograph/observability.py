"""Structured logging helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class StructuredLogger:
    records: list[dict[str, Any]] = field(default_factory=list)

    def log(
        self,
        *,
        operation: str,
        target: str | None,
        stage: str | None,
        message: str,
        subject: str | None = None,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "target": target,
            "stage": stage,
            "subject": subject,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)

    def records_for_target(self, target: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("target") == target]

    def records_for_stage(self, stage: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("stage") == stage]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path
