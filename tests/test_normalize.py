"""Unit tests for secureship.services.normalize: JSON extraction and confidence filtering."""

import unittest

from secureship.services.normalize import (
    CONFIDENCE_THRESHOLD,
    extract_json_array,
    normalize_findings,
)


def _raw(
    severity: str = "high",
    confidence: float = 0.9,
    **kwargs: object,
) -> dict[str, object]:
    """Build one raw finding dict as the model would return it."""
    raw: dict[str, object] = {
        "type": "SQL Injection",
        "severity": severity,
        "line": 12,
        "description": "User input concatenated into a query.",
        "suggestion": "Use parameterized queries.",
        "confidence": confidence,
    }
    raw.update(kwargs)
    return raw


class TestExtractJsonArray(unittest.TestCase):
    """extract_json_array finds the first well-formed array in model text."""

    def test_plain_array(self) -> None:
        self.assertEqual(extract_json_array('[{"a": 1}]'), [{"a": 1}])

    def test_array_inside_markdown_fence(self) -> None:
        text = 'Here are the findings:\n```json\n[{"a": 1}, {"b": 2}]\n```\nDone.'
        self.assertEqual(extract_json_array(text), [{"a": 1}, {"b": 2}])

    def test_skips_malformed_bracket_before_array(self) -> None:
        text = "See [section 3 for details. Result: []"
        self.assertEqual(extract_json_array(text), [])

    def test_first_of_two_arrays(self) -> None:
        self.assertEqual(extract_json_array("[1] and [2]"), [1])

    def test_no_array(self) -> None:
        self.assertIsNone(extract_json_array('{"findings": "none"}'))
        self.assertIsNone(extract_json_array(""))
        self.assertIsNone(extract_json_array(None))


class TestNormalizeFindings(unittest.TestCase):
    """normalize_findings keeps confident findings and stamps the filename."""

    def test_drops_findings_below_threshold(self) -> None:
        raw = [_raw(confidence=0.69), _raw(confidence=CONFIDENCE_THRESHOLD), _raw(confidence=1.0)]
        out = normalize_findings(raw, "src/db.py")
        self.assertEqual(len(out), 2)
        self.assertTrue(all(f.confidence >= CONFIDENCE_THRESHOLD for f in out))

    def test_sets_file_even_when_model_supplied_one(self) -> None:
        raw = [_raw(file="wrong.py"), _raw()]
        out = normalize_findings(raw, "src/db.py")
        self.assertEqual([f.file for f in out], ["src/db.py", "src/db.py"])

    def test_preserves_order_and_other_fields(self) -> None:
        raw = [
            _raw(severity="low", line=3, cweId="CWE-79", owaspCategory="A03:2021"),
            _raw(severity="critical", line=1),
        ]
        out = normalize_findings(raw, "app.js")
        self.assertEqual([f.severity for f in out], ["low", "critical"])
        self.assertEqual(out[0].line, 3)
        self.assertEqual(out[0].cwe_id, "CWE-79")
        self.assertEqual(out[0].owasp_category, "A03:2021")
        self.assertEqual(out[0].suggestion, "Use parameterized queries.")

    def test_not_a_list_returns_empty(self) -> None:
        self.assertEqual(normalize_findings({"type": "x"}, "a.py"), [])
        self.assertEqual(normalize_findings(None, "a.py"), [])
        self.assertEqual(normalize_findings("[]", "a.py"), [])

    def test_non_object_items_skipped(self) -> None:
        out = normalize_findings([_raw(), "not a finding", 3, None], "a.py")
        self.assertEqual(len(out), 1)
        self.assertEqual(normalize_findings(["not a finding"], "a.py"), [])

    def test_malformed_item_skipped_without_dropping_siblings(self) -> None:
        raw = [
            _raw(severity="critical", confidence=0.95),
            {"type": "Info", "severity": "info", "line": None, "confidence": 0.2},
        ]
        out = normalize_findings(raw, "a.py")
        self.assertEqual(len(out), 1)
        self.assertEqual(out[0].severity, "critical")
        self.assertEqual(out[0].file, "a.py")

    def test_confident_malformed_item_logged_and_skipped(self) -> None:
        raw = [_raw(severity="urgent"), _raw(line=5), _raw(confidence=1.5)]
        with self.assertLogs("secureship.services.normalize", level="INFO") as logs:
            out = normalize_findings(raw, "a.py")
        self.assertEqual([f.line for f in out], [5])
        self.assertEqual(len(logs.records), 2)

    def test_empty_list(self) -> None:
        self.assertEqual(normalize_findings([], "a.py"), [])


if __name__ == "__main__":
    unittest.main()
