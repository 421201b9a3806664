from __future__ import annotations

import json
import logging
import os
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class TraceEvent:
    t: float
    type: str
    data: Dict[str, Any]


class ImportTracer:
    """Collect structured events describing one import run."""

    def __init__(
        self, run_id: Optional[str] = None, out_dir: str | os.PathLike = "logs/toclink"
    ) -> None:
        self.run_id = run_id or str(uuid.uuid4())
        self.out_dir = os.fspath(out_dir)
        self.events: List[TraceEvent] = []
        self._path = os.path.join(self.out_dir, f"{self.run_id}.jsonl")
        self._summary_path = os.path.join(self.out_dir, f"{self.run_id}.summary.json")

    def ev(self, event_type: str, **data: Any) -> None:
        self.events.append(TraceEvent(t=time.time(), type=event_type, data=data))

    def flush_jsonl(self) -> str:
        os.makedirs(self.out_dir, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as handle:
            for event in self.events:
                payload = {"t": event.t, "type": event.type, **event.data}
                handle.write(json.dumps(payload, ensure_ascii=False) + "\n")
        with open(self._summary_path, "w", encoding="utf-8") as handle:
            json.dump(self._build_summary(), handle, ensure_ascii=False, indent=2)
        LOGGER.info("[toc] Match log saved: %s", self._path)
        LOGGER.info("[toc] Match summary saved: %s", self._summary_path)
        return self._path

    @property
    def path(self) -> str:
        return self._path

    @property
    def summary_path(self) -> str:
        return self._summary_path

    def as_list(self) -> List[Dict[str, Any]]:
        return [{"t": event.t, "type": event.type, **event.data} for event in self.events]

    def _build_summary(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {}
        page_map: Dict[str, Any] = {}
        counts: Dict[str, int] = {}
        unresolved: List[Dict[str, Any]] = []
        elapsed: float | None = None

        for event in self.as_list():
            event_type = event.get("type")
            if event_type == "start_run":
                metadata = {
                    key: value
                    for key, value in event.items()
                    if key not in {"t", "type"}
                }
            elif event_type == "page_map_built":
                page_map = {
                    key: value
                    for key, value in event.items()
                    if key not in {"t", "type"}
                }
            elif event_type == "entry_resolved":
                confidence = str(event.get("confidence"))
                counts[confidence] = counts.get(confidence, 0) + 1
                if confidence == "unverified":
                    unresolved.append(event)
            elif event_type == "end_run":
                elapsed = event.get("elapsed_s")

        return {
            "run_id": self.run_id,
            "metadata": metadata,
            "page_map": page_map,
            "counts": counts,
            "unverified": unresolved,
            "elapsed_s": elapsed,
        }


__all__ = ["ImportTracer", "TraceEvent"]
