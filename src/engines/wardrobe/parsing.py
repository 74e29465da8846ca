"""
Tolerant extraction of the garment list embedded in a vision completion.

The model is asked for ``{"prendas": [...]}`` but may wrap it in prose or
code fences. Everything between the first ``{`` and the last ``}`` is parsed;
anything that does not yield a list of objects counts as zero detections.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from src.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DetectionResult:
    ok: bool
    garments: List[Dict[str, Any]] = field(default_factory=list)
    raw: str = ""
    error: Optional[str] = None


def extract_detected_garments(raw: Optional[str]) -> DetectionResult:
    """Parse the detected garments out of free-text completion output."""
    raw = raw or ""
    start = raw.find("{")
    end = raw.rfind("}")

    try:
        if start == -1 or end < start:
            raise ValueError("no JSON object found")
        parsed = json.loads(raw[start:end + 1])
        if not isinstance(parsed, dict):
            raise ValueError("top-level JSON value is not an object")
        garments = parsed.get("prendas") or []
        if not isinstance(garments, list):
            raise ValueError("'prendas' is not a list")
    except ValueError as e:
        # json.JSONDecodeError is a ValueError
        logger.warning("ai_json_parse_failed", error=str(e), raw=raw)
        return DetectionResult(ok=False, raw=raw, error=str(e))

    garments = [g for g in garments if isinstance(g, dict)]
    return DetectionResult(ok=True, garments=garments, raw=raw)
