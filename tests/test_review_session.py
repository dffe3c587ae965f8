import json
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from resume_review.core.kv_store import resume_key  # noqa: E402
from resume_review.services.previews import PreviewRegistry, token_from_url  # noqa: E402
from resume_review.services.review_session import ReviewSession  # noqa: E402
from samples import InMemoryKeyValueStore, SpyBlobStore, valid_feedback  # noqa: E402

RESUME_ID = "0f8c2d5e6a7b4c3d9e1f2a3b4c5d6e7f"
RESUME_PATH = f"/resumes/{RESUME_ID}/resume.pdf"
IMAGE_PATH = f"/resumes/{RESUME_ID}/resume.png"


def _record(**overrides):
    record = {
        "id": RESUME_ID,
        "resumePath": RESUME_PATH,
        "imagePath": IMAGE_PATH,
        "companyName": "Acme",
        "jobTitle": "Backend Engineer",
        "jobDescription": "Python and SQL",
        "feedback": valid_feedback(),
    }
    record.update(overrides)
    return record


class ReviewSessionTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.kv = InMemoryKeyValueStore()
        self.blobs = SpyBlobStore({RESUME_PATH: b"%PDF-1.7 resume", IMAGE_PATH: b"\x89PNG image"})
        self.previews = PreviewRegistry(ttl_seconds=60)

    def _store(self, value):
        self.kv.entries[resume_key(RESUME_ID)] = value if isinstance(value, str) else json.dumps(value)

    def _session(self):
        return ReviewSession(RESUME_ID, kv=self.kv, blobs=self.blobs, previews=self.previews)

    async def test_starts_in_loading_state(self):
        session = self._session()
        self.assertEqual(session.state.status, "loading")
        self.assertIsNone(session.state.error)

    async def test_missing_record_is_not_found_without_blob_reads(self):
        state = await self._session().load()
        self.assertEqual(state.status, "error")
        self.assertEqual(state.error, "Resume not found")
        self.assertEqual(state.error_code, "not_found")
        self.assertEqual(self.blobs.reads, [])

    async def test_undecodable_record_is_invalid(self):
        for raw in ("{not json", "[1, 2]", '"resume"'):
            with self.subTest(raw=raw):
                self._store(raw)
                state = await self._session().load()
                self.assertEqual(state.error, "Invalid resume data")
                self.assertEqual(state.error_code, "invalid_record")

    async def test_record_without_paths_reports_missing_files(self):
        for overrides in ({"imagePath": None}, {"resumePath": ""}, {"resumePath": 7}):
            with self.subTest(overrides=overrides):
                self._store(_record(**overrides))
                state = await self._session().load()
                self.assertEqual(state.error, "Resume files missing")
                self.assertEqual(state.error_code, "missing_files")
        self.assertEqual(self.blobs.reads, [])

    async def test_missing_resume_blob(self):
        del self.blobs.blobs[RESUME_PATH]
        self._store(_record())
        state = await self._session().load()
        self.assertEqual(state.error, "Failed to load resume file")
        self.assertEqual(state.error_code, "resume_unavailable")
        self.assertEqual(len(self.previews), 0)

    async def test_missing_image_blob_releases_resume_preview(self):
        del self.blobs.blobs[IMAGE_PATH]
        self._store(_record())
        state = await self._session().load()
        self.assertEqual(state.error, "Failed to load resume image")
        self.assertEqual(state.error_code, "image_unavailable")
        self.assertIsNone(state.resume_url)
        self.assertEqual(len(self.previews), 0)

    async def test_store_exception_becomes_error_state(self):
        self.kv.fail_on.add("get")
        state = await self._session().load()
        self.assertEqual(state.status, "error")
        self.assertEqual(state.error_code, "load_failed")
        self.assertEqual(state.error, "Failed to load resume: kv store offline")

    async def test_ready_state_resolves_blobs_and_feedback(self):
        self._store(_record())
        state = await self._session().load()

        self.assertEqual(state.status, "ready")
        self.assertFalse(state.processing)
        self.assertEqual(self.blobs.reads, [RESUME_PATH, IMAGE_PATH])
        self.assertEqual(state.feedback.to_payload(), valid_feedback())
        self.assertEqual(state.company_name, "Acme")
        self.assertEqual(state.job_title, "Backend Engineer")

        resume_entry = self.previews.get(token_from_url(state.resume_url))
        image_entry = self.previews.get(token_from_url(state.image_url))
        self.assertEqual(resume_entry.content, b"%PDF-1.7 resume")
        self.assertEqual(resume_entry.media_type, "application/pdf")
        self.assertEqual(image_entry.content, b"\x89PNG image")
        self.assertEqual(image_entry.media_type, "image/png")

    async def test_ready_without_feedback_is_processing(self):
        self._store(_record(feedback=None))
        state = await self._session().load()
        self.assertEqual(state.status, "ready")
        self.assertIsNone(state.feedback)
        self.assertTrue(state.processing)

    async def test_invalid_stored_feedback_is_replaced_by_fallback(self):
        broken = valid_feedback()
        broken["ATS"]["tips"][0]["type"] = "excellent"
        self._store(_record(feedback=broken))
        state = await self._session().load()
        self.assertEqual(state.status, "ready")
        self.assertEqual(state.feedback.overall_score, 50)
        self.assertEqual(state.feedback.content.tips[0].tip, "Manual review needed")

    async def test_falsy_non_null_feedback_is_replaced_by_fallback(self):
        for value in ({}, [], 0, ""):
            with self.subTest(feedback=value):
                self._store(_record(feedback=value))
                state = await self._session().load()
                self.assertEqual(state.status, "ready")
                self.assertFalse(state.processing)
                self.assertEqual(state.feedback.overall_score, 50)

    async def test_load_is_terminal_and_not_retried(self):
        session = self._session()
        first = await session.load()
        self.assertEqual(first.error_code, "not_found")

        self._store(_record())
        second = await session.load()
        self.assertIs(second, first)
        self.assertEqual(self.blobs.reads, [])

        fresh = await self._session().load()
        self.assertEqual(fresh.status, "ready")


if __name__ == "__main__":
    unittest.main()
