"""Normalize raw model output into validated findings for one changed file."""

import json
import logging

from pydantic import ValidationError

from secureship.schemas.findings import Finding

logger = logging.getLogger(__name__)

# Findings below this model confidence are discarded.
CONFIDENCE_THRESHOLD = 0.7

_decoder = json.JSONDecoder()


def extract_json_array(text: str | None) -> list | None:
    """
    Return the first well-formed JSON array embedded in text, or None.

    The model may answer with bare JSON or wrap it in prose or a markdown code
    fence; each "[" is tried as a start position until one decodes to a list.
    """
    if not text or not isinstance(text, str):
        return None
    start = text.find("[")
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, list):
            return value
        start = text.find("[", start + 1)
    return None


def _below_threshold(item: dict) -> bool:
    confidence = item.get("confidence")
    return (
        isinstance(confidence, (int, float))
        and not isinstance(confidence, bool)
        and confidence < CONFIDENCE_THRESHOLD
    )


def normalize_findings(raw: object, filename: str) -> list[Finding]:
    """
    Keep candidate findings with confidence >= 0.7, validate each, and stamp filename.

    Low-confidence items are dropped before validation, and a malformed item is
    skipped on its own without discarding its siblings. Input order is
    preserved and no field other than file is changed. Input that is not a
    list yields an empty list.
    """
    if not isinstance(raw, list):
        return []
    findings: list[Finding] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            logger.info(
                "Skipping non-object finding",
                extra={"source_file": filename, "index": index},
            )
            continue
        if _below_threshold(item):
            continue
        try:
            finding = Finding.model_validate(item)
        except ValidationError as e:
            logger.info(
                "Skipping malformed finding",
                extra={"source_file": filename, "index": index, "error_count": e.error_count()},
            )
            continue
        if finding.confidence < CONFIDENCE_THRESHOLD:
            continue
        findings.append(finding.model_copy(update={"file": filename}))
    return findings
