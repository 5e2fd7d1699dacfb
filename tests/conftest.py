"""Pytest configuration and fixtures."""

import copy
import io
from collections import defaultdict
from datetime import datetime
from types import SimpleNamespace

import fitz
import pytest
from PIL import Image

from obligations.services import analysis_client, mongodb, storage
from obligations.utils.errors import StorageError


def _matches(doc: dict, query: dict) -> bool:
    for key, expected in query.items():
        if isinstance(expected, dict) and "$in" in expected:
            if doc.get(key) not in expected["$in"]:
                return False
        elif doc.get(key) != expected:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs = sorted(
            self._docs,
            key=lambda d: (d.get(key) is None, d.get(key) or ""),
            reverse=direction == -1,
        )
        return self

    async def to_list(self, length=None):
        docs = [copy.deepcopy(d) for d in self._docs]
        return docs if length is None else docs[:length]


class FakeCollection:
    """In-memory stand-in for a motor collection (equality and $in filters)."""

    def __init__(self):
        self.docs = []

    async def create_index(self, *args, **kwargs):
        return "index"

    async def insert_one(self, doc):
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc.get("_id"))

    async def find_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query=None):
        return FakeCursor([d for d in self.docs if _matches(d, query or {})])

    async def update_one(self, query, update):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query):
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def count_documents(self, query):
        return len([d for d in self.docs if _matches(d, query)])


class FakeDatabase:
    def __init__(self):
        self._collections = defaultdict(FakeCollection)

    def __getitem__(self, name):
        return self._collections[name]


class FakeStorage:
    """In-memory buckets patched over the storage service functions."""

    def __init__(self):
        self.objects = {}
        self.fail_remove = False

    async def upload_file(self, bucket, name, data, content_type):
        if (bucket, name) in self.objects:
            raise StorageError(f"Object already exists: {bucket}/{name}")
        self.objects[(bucket, name)] = (data, content_type)
        return name

    async def download_file(self, bucket, name):
        if (bucket, name) not in self.objects:
            raise StorageError(f"Object not found: {bucket}/{name}")
        return self.objects[(bucket, name)][0]

    async def get_content_type(self, bucket, name):
        if (bucket, name) not in self.objects:
            raise StorageError(f"Object not found: {bucket}/{name}")
        return self.objects[(bucket, name)][1]

    async def remove_files(self, bucket, names):
        if self.fail_remove:
            raise StorageError("storage unavailable")
        removed = []
        for name in names:
            if self.objects.pop((bucket, name), None) is not None:
                removed.append(name)
        return removed

    def names(self, bucket):
        return sorted(name for b, name in self.objects if b == bucket)


class FakeFunctionsClient:
    """Records analysis calls and answers with a preset response."""

    def __init__(self):
        self.response = None
        self.error = None
        self.calls = []

    async def analyze_payment(self, **kwargs):
        self.calls.append(("analyze-payment", kwargs))
        if self.error:
            raise self.error
        return self.response

    async def analyze_payment_batch(self, file_urls, expected_payments):
        self.calls.append(("analyze-payment-batch", {
            "file_urls": file_urls, "expected_payments": expected_payments,
        }))
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def fake_db(monkeypatch) -> FakeDatabase:
    db = FakeDatabase()
    monkeypatch.setattr(mongodb, "get_database", lambda: db)
    return db


@pytest.fixture
def fake_storage(monkeypatch) -> FakeStorage:
    fake = FakeStorage()
    monkeypatch.setattr(storage, "upload_file", fake.upload_file)
    monkeypatch.setattr(storage, "download_file", fake.download_file)
    monkeypatch.setattr(storage, "get_content_type", fake.get_content_type)
    monkeypatch.setattr(storage, "remove_files", fake.remove_files)
    return fake


@pytest.fixture
def fake_functions(monkeypatch) -> FakeFunctionsClient:
    fake = FakeFunctionsClient()
    monkeypatch.setattr(analysis_client, "get_functions_client", lambda: fake)
    return fake


@pytest.fixture
def seeded_db(fake_db) -> FakeDatabase:
    """One project, one tranche, two investors with one subscription each."""
    fake_db["projects"].docs.append({"_id": "proj-1", "name": "Parc Solaire", "org_id": "org-1"})
    fake_db["tranches"].docs.append({"_id": "tr-1", "project_id": "proj-1", "tranche_name": "Tranche A"})
    fake_db["investors"].docs.extend([
        {"_id": "inv-1", "legal_name": "Jean Dupont"},
        {"_id": "inv-2", "legal_name": "Société Martin SARL"},
    ])
    fake_db["subscriptions"].docs.extend([
        {"_id": "sub-1", "tranche_id": "tr-1", "investor_id": "inv-1", "amount_invested": 10000.0, "coupon_net": 250.0},
        {"_id": "sub-2", "tranche_id": "tr-1", "investor_id": "inv-2", "amount_invested": 20000.0, "coupon_net": 500.0},
    ])
    fake_db["coupon_schedules"].docs.extend([
        {"_id": "ech-1", "subscription_id": "sub-1", "due_date": "2024-06-30", "coupon_amount": 250.0, "status": "upcoming"},
        {"_id": "ech-2", "subscription_id": "sub-2", "due_date": "2024-06-30", "coupon_amount": 500.0, "status": "upcoming"},
        {"_id": "ech-3", "subscription_id": "sub-1", "due_date": "2024-12-31", "coupon_amount": 250.0, "status": "upcoming"},
    ])
    fake_db["payments"].docs.append({
        "_id": "pay-1", "project_id": "proj-1", "tranche_id": "tr-1", "investor_id": "inv-1",
        "subscription_id": "sub-1", "amount": 250.0, "payment_date": "2024-06-30",
        "status": "pending", "type": "Coupon",
    })
    return fake_db


def make_pdf(pages=("Page one",)) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def make_png(size=(40, 30), color=(200, 30, 30)) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", size, color).save(out, format="PNG")
    return out.getvalue()


@pytest.fixture
def pdf_bytes() -> bytes:
    return make_pdf(("Virement SEPA", "Jean Dupont 250,00"))


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 7, 15, 12, 0, 0)
