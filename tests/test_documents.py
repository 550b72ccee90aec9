"""
Document naming and storage access tests.
Run from the project root: python -m pytest tests/test_documents.py -v
"""
import unittest
from datetime import datetime, timezone

from integrations.supabase import StorageObject
from services.documents import DocumentService, build_object_path, display_name, sanitize_document_name
from services.errors import ValidationFailed


class FakeStorage:
    def __init__(self, objects=()):
        self.objects = list(objects)
        self.uploads = []
        self.signed = []

    async def list_objects(self, bucket, prefix, limit=100):
        return self.objects

    async def upload(self, bucket, path, content, content_type="application/octet-stream", upsert=False):
        self.uploads.append((bucket, path, content, content_type, upsert))
        return f"{bucket}/{path}"

    async def create_signed_url(self, bucket, path, expires_in):
        self.signed.append((bucket, path, expires_in))
        return f"https://storage.test/{bucket}/{path}?token=abc"


class TestNaming(unittest.TestCase):
    def test_sanitize(self):
        self.assertEqual(sanitize_document_name(" Gov't ID (front) "), "Govt-ID-front")
        self.assertEqual(sanitize_document_name("pay_slip  march"), "pay_slip-march")

    def test_object_path(self):
        now = datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)
        path = build_object_path("user-1", "Government ID", "scan.front.PNG", now)
        self.assertEqual(path, "user-1/2024-05-01T08:30:00+00:00__Government-ID.PNG")

    def test_object_path_without_extension(self):
        now = datetime(2024, 5, 1, tzinfo=timezone.utc)
        self.assertTrue(build_object_path("user-1", "Payslip", "payslip", now).endswith("__Payslip"))

    def test_extension_cannot_add_path_segments(self):
        now = datetime(2024, 5, 1, tzinfo=timezone.utc)
        path = build_object_path("user-1", "Payslip", "scan.p df/../x", now)
        self.assertEqual(path, "user-1/2024-05-01T00:00:00+00:00__Payslip.x")
        self.assertEqual(path.count("/"), 1)

    def test_blank_name_rejected(self):
        with self.assertRaises(ValidationFailed):
            build_object_path("user-1", "!!!", "a.png")

    def test_display_name(self):
        self.assertEqual(display_name("2024-05-01T08:30:00+00:00__Government-ID.png"), "Government-ID.png")
        self.assertEqual(display_name("legacy.png"), "legacy.png")


class TestDocumentService(unittest.IsolatedAsyncioTestCase):
    async def test_list_newest_first(self):
        storage = FakeStorage(
            [
                StorageObject("2024-01-01__old.png", datetime(2024, 1, 1, tzinfo=timezone.utc)),
                StorageObject("2024-03-01__new.png", datetime(2024, 3, 1, tzinfo=timezone.utc)),
                StorageObject(""),
            ]
        )
        rows = await DocumentService(storage, bucket="docs").list_documents("user-1")
        self.assertEqual([r.name for r in rows], ["new.png", "old.png"])
        self.assertEqual(rows[0].path, "user-1/2024-03-01__new.png")

    async def test_upload_never_overwrites(self):
        storage = FakeStorage()
        path = await DocumentService(storage, bucket="docs").upload("user-1", "ID", "id.jpg", b"\xff\xd8", "image/jpeg")
        bucket, stored_path, content, content_type, upsert = storage.uploads[0]
        self.assertEqual(bucket, "docs")
        self.assertEqual(stored_path, path)
        self.assertTrue(path.startswith("user-1/"))
        self.assertEqual(content_type, "image/jpeg")
        self.assertFalse(upsert)

    async def test_empty_upload_rejected(self):
        storage = FakeStorage()
        with self.assertRaises(ValidationFailed) as ctx:
            await DocumentService(storage).upload("user-1", "ID", "id.jpg", b"")
        self.assertEqual(ctx.exception.message, "File is empty.")
        self.assertEqual(storage.uploads, [])

    async def test_signed_url_short_lived(self):
        storage = FakeStorage()
        url = await DocumentService(storage, bucket="docs").signed_url("user-1", "user-1/a__ID.png")
        self.assertIn("token=abc", url)
        self.assertEqual(storage.signed[0], ("docs", "user-1/a__ID.png", 60))

    async def test_signed_url_outside_own_folder(self):
        service = DocumentService(FakeStorage())
        for path in ("user-2/a__ID.png", "user-1/../user-2/a.png"):
            with self.assertRaises(ValidationFailed):
                await service.signed_url("user-1", path)


if __name__ == "__main__":
    unittest.main()
