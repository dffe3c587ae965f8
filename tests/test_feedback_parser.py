import json
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from resume_review.feedback import (  # noqa: E402
    create_fallback_feedback,
    is_valid_feedback,
    parse_ai_feedback,
    repair_json,
    strip_code_fence,
)
from resume_review.feedback.fallback import FALLBACK_SCORE  # noqa: E402
from samples import VALID_FEEDBACK, valid_feedback_json  # noqa: E402


class ParseAIFeedbackTests(unittest.TestCase):
    def test_valid_json_parses_directly_and_round_trips(self):
        for raw in (valid_feedback_json(), valid_feedback_json(indent=2)):
            with self.subTest(raw=raw[:20]):
                result = parse_ai_feedback(raw)
                self.assertTrue(result.success)
                self.assertEqual(result.method, "direct")
                self.assertIsNone(result.error)
                self.assertEqual(result.feedback.to_payload(), VALID_FEEDBACK)

    def test_fenced_block_with_language_tag_parses_directly(self):
        for fence in ("```json\n{body}\n```", "```\n{body}\n```", "  ```JSON\r\n{body}\r\n```  "):
            with self.subTest(fence=fence):
                raw = fence.replace("{body}", valid_feedback_json(indent=2))
                result = parse_ai_feedback(raw)
                self.assertTrue(result.success)
                self.assertEqual(result.method, "direct")

    def test_object_inside_prose_is_extracted(self):
        raw = f"Here is the result: {valid_feedback_json()}"
        result = parse_ai_feedback(raw)
        self.assertTrue(result.success)
        self.assertEqual(result.method, "regex_extraction")
        self.assertEqual(result.feedback.overall_score, 82)

        raw = f"Sure!\n{valid_feedback_json(indent=2)}\nLet me know if you need more."
        result = parse_ai_feedback(raw)
        self.assertTrue(result.success)
        self.assertIn(result.method, {"regex_extraction", "repair"})

    def test_text_without_braces_falls_back(self):
        result = parse_ai_feedback("I cannot process this request.")
        self.assertFalse(result.success)
        self.assertEqual(result.method, "fallback")
        self.assertEqual(result.error, "All parsing strategies failed")
        self.assertEqual(result.feedback.overall_score, FALLBACK_SCORE)
        self.assertTrue(is_valid_feedback(result.feedback.to_payload()))

    def test_empty_or_missing_text_falls_back(self):
        for raw in ("", "   ", None, "```json\n```"):
            with self.subTest(raw=raw):
                result = parse_ai_feedback(raw)
                self.assertFalse(result.success)
                self.assertEqual(result.method, "fallback")

    def test_trailing_comma_is_repaired(self):
        raw = valid_feedback_json(indent=2)
        broken = raw.replace('"Strong keywords"\n', '"Strong keywords",\n', 1)
        self.assertNotEqual(raw, broken)

        result = parse_ai_feedback(broken)
        self.assertTrue(result.success)
        self.assertEqual(result.method, "repair")
        self.assertEqual(result.feedback.ats.tips[0].tip, "Strong keywords")

    def test_missing_comma_between_sections_is_repaired(self):
        raw = valid_feedback_json(indent=2)
        broken = raw.replace('},\n  "content"', '}\n  "content"', 1)
        self.assertNotEqual(raw, broken)

        result = parse_ai_feedback(broken)
        self.assertTrue(result.success)
        self.assertEqual(result.method, "repair")
        self.assertEqual(result.feedback.content.score, 75)

    def test_raw_newline_inside_string_is_repaired(self):
        raw = valid_feedback_json(indent=2).replace(
            "Sentences are short and direct.",
            "Sentences are short.\nThey read well.",
            1,
        )
        result = parse_ai_feedback(raw)
        self.assertTrue(result.success)
        self.assertEqual(result.method, "repair")
        self.assertEqual(result.feedback.tone_and_style.tips[0].explanation, "Sentences are short.\nThey read well.")

    def test_schema_mismatch_falls_back(self):
        payload = json.loads(valid_feedback_json())
        del payload["skills"]
        result = parse_ai_feedback(json.dumps(payload))
        self.assertFalse(result.success)
        self.assertEqual(result.method, "fallback")

    def test_stray_braces_around_payload_defeat_greedy_extraction(self):
        raw = f"Scores use {{0-100}}. {valid_feedback_json()}"
        result = parse_ai_feedback(raw)
        self.assertFalse(result.success)
        self.assertEqual(result.method, "fallback")
        self.assertTrue(is_valid_feedback(result.feedback.to_payload()))

    def test_non_json_number_constants_fall_back(self):
        for token in ("NaN", "Infinity", "-Infinity"):
            with self.subTest(token=token):
                raw = valid_feedback_json().replace('"overallScore": 82', f'"overallScore": {token}', 1)
                self.assertIn(token, raw)
                result = parse_ai_feedback(raw)
                self.assertFalse(result.success)
                self.assertEqual(result.method, "fallback")
                self.assertTrue(is_valid_feedback(result.feedback.to_payload()))

    def test_overflowing_score_falls_back(self):
        raw = valid_feedback_json().replace('"overallScore": 82', '"overallScore": 1e999', 1)
        result = parse_ai_feedback(raw)
        self.assertFalse(result.success)
        self.assertEqual(result.method, "fallback")

    def test_fallback_record_reparses_to_itself(self):
        fallback = parse_ai_feedback("nothing useful").feedback
        again = parse_ai_feedback(json.dumps(fallback.to_payload()))
        self.assertTrue(again.success)
        self.assertEqual(again.method, "direct")
        self.assertEqual(again.feedback, fallback)


class FallbackFeedbackTests(unittest.TestCase):
    def test_shape_and_messages(self):
        payload = create_fallback_feedback("Storage offline").to_payload()
        self.assertEqual(payload["overallScore"], 50)
        self.assertEqual(payload["ATS"], {"score": 50, "tips": [{"type": "improve", "tip": "Upload failed - please try again"}]})
        for section in ("toneAndStyle", "content", "structure", "skills"):
            with self.subTest(section=section):
                self.assertEqual(payload[section]["score"], 50)
                self.assertEqual(len(payload[section]["tips"]), 1)
                tip = payload[section]["tips"][0]
                self.assertEqual(tip["type"], "improve")
                self.assertEqual(tip["tip"], "Manual review needed")
                self.assertIn("Storage offline", tip["explanation"])


class RepairJsonTests(unittest.TestCase):
    def test_trims_text_outside_outer_braces(self):
        self.assertEqual(repair_json('noise {"a": 1} trailing'), '{"a": 1}')

    def test_strips_trailing_commas(self):
        self.assertEqual(repair_json('{"a": [1, 2,], "b": {"c": 3,},}'), '{"a": [1, 2], "b": {"c": 3}}')

    def test_inserts_comma_before_key_after_closing_brace(self):
        self.assertEqual(repair_json('{"a": {"b": 1}\n"c": 2}'), '{"a": {"b": 1}, "c": 2}')
        self.assertEqual(repair_json('{"a": [1] "c": 2}'), '{"a": [1], "c": 2}')

    def test_inserts_comma_between_adjacent_objects(self):
        self.assertEqual(repair_json('{"list": [{"a": 1} {"b": 2}]}'), '{"list": [{"a": 1}, {"b": 2}]}')

    def test_escapes_newlines_only_inside_strings(self):
        self.assertEqual(repair_json('{"a": "line one\nline two"}'), '{"a": "line one\\nline two"}')
        pretty = '{\n  "a": "x",\n  "b": "y\\"\tz"\n}'
        self.assertEqual(repair_json(pretty), '{\n  "a": "x",\n  "b": "y\\"\\tz"\n}')

    def test_leaves_valid_json_loadable(self):
        repaired = repair_json(valid_feedback_json(indent=2))
        self.assertEqual(json.loads(repaired), VALID_FEEDBACK)


class StripCodeFenceTests(unittest.TestCase):
    def test_strips_fences_with_and_without_language(self):
        self.assertEqual(strip_code_fence("```json\n{}\n```"), "{}")
        self.assertEqual(strip_code_fence("```\n{}\n```"), "{}")

    def test_leaves_unfenced_text_alone(self):
        self.assertEqual(strip_code_fence('  {"a": "```"}  '), '{"a": "```"}')

    def test_strips_unbalanced_fence(self):
        self.assertEqual(strip_code_fence("```json\n{}"), "{}")


if __name__ == "__main__":
    unittest.main()
