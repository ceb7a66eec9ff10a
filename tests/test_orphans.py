import asyncio

import pytest

from conftest import FakeObjectStore, FakeRecordStore
from image_portal.orphans import cleanup_orphans, find_orphans, path_from_public_url, split_public_url


@pytest.mark.parametrize("url, expected", [
    ("https://storage.googleapis.com/test-bucket/trivia_images/q1.jpg", "trivia_images/q1.jpg"),
    ("https://storage.googleapis.com/test-bucket/trivia_images/q%201_upload_1.png", "trivia_images/q 1_upload_1.png"),
    ("https://upload.wikimedia.org/wikipedia/commons/a/ab/X.jpg", None),
    ("http://storage.googleapis.com/test-bucket/trivia_images/q1.jpg", None),
    ("https://storage.googleapis.com/test-bucket", None),
    ("", None),
])
def test_path_from_public_url(url, expected):
    assert path_from_public_url(url, "test-bucket") == expected


def test_foreign_bucket_still_yields_path():
    url = "https://storage.googleapis.com/other-bucket/trivia_images/q1.jpg"
    assert path_from_public_url(url, "test-bucket") == "trivia_images/q1.jpg"


def test_split_public_url_keeps_bucket():
    url = "https://storage.googleapis.com/other-bucket/trivia_images/q1.jpg"
    assert split_public_url(url) == ("other-bucket", "trivia_images/q1.jpg")
    assert split_public_url("https://example.org/other-bucket/q1.jpg") is None


def _stores():
    object_store = FakeObjectStore()
    for path in (
        "trivia_images/q1.jpg",
        "trivia_images/q2_upload_100.png",
        "trivia_images/q2_upload_200.png",
        "trivia_images/q3.jpg",
        "other/keep.txt",
    ):
        object_store.objects[path] = b"x"
    record_store = FakeRecordStore(records={
        "q1": {"imageUrl": object_store.public_url("trivia_images/q1.jpg")},
        "q2": {"imageUrl": object_store.public_url("trivia_images/q2_upload_200.png")},
        "q3": {"imageUrl": ""},
        "q4": {"imageUrl": "https://upload.wikimedia.org/x.jpg"},
    })
    return object_store, record_store


def test_find_orphans_lists_unreferenced_images_only():
    object_store, record_store = _stores()

    orphans = asyncio.run(find_orphans(object_store, record_store))

    assert orphans == ["trivia_images/q2_upload_100.png", "trivia_images/q3.jpg"]


def test_dry_run_deletes_nothing():
    object_store, record_store = _stores()

    result = asyncio.run(cleanup_orphans(object_store, record_store, dry_run=True))

    assert result["dry_run"] is True
    assert result["deleted"] == 0
    assert object_store.deleted == []
    assert len(result["orphans"]) == 2


def test_cleanup_continues_past_failed_delete():
    object_store, record_store = _stores()
    object_store.delete_failures.add("trivia_images/q2_upload_100.png")

    result = asyncio.run(cleanup_orphans(object_store, record_store))

    assert object_store.deleted == ["trivia_images/q3.jpg"]
    assert result["deleted"] == 1
    assert list(result["failed"]) == ["trivia_images/q2_upload_100.png"]
    assert "trivia_images/q1.jpg" in object_store.objects


def test_scan_limit_is_respected():
    object_store, record_store = _stores()

    orphans = asyncio.run(find_orphans(object_store, record_store, limit=2))

    assert orphans == ["trivia_images/q2_upload_100.png"]
