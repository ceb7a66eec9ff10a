"""
Shared fakes for the Image Portal tests.

Network and Google Cloud clients are replaced by small in-memory
stand-ins that record every call, so tests can assert on call counts.
"""

import io
from typing import Callable, Optional

import pytest
from PIL import Image

from image_portal.image_fetcher import FetchedImage


class FakeResponse:
    def __init__(self, status: int = 200, payload=None, body: bytes = b"", headers: Optional[dict] = None,
                 json_error: Optional[Exception] = None):
        self.status = status
        self._payload = payload
        self._body = body
        self.headers = headers or {}
        self._json_error = json_error

    async def json(self, content_type=None):
        if self._json_error:
            raise self._json_error
        return self._payload

    async def read(self) -> bytes:
        return self._body


class _RequestContext:
    def __init__(self, handler: Callable, url: str, params: Optional[dict]):
        self._handler = handler
        self._url = url
        self._params = params

    async def __aenter__(self):
        result = self._handler(self._url, self._params or {})
        if isinstance(result, Exception):
            raise result
        return result

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Mimics the parts of aiohttp.ClientSession the clients use."""

    def __init__(self, handler: Callable):
        self.handler = handler
        self.calls: list[tuple[str, dict]] = []
        self.closed = False

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {})))
        return _RequestContext(self.handler, url, params)


class FakeObjectStore:
    def __init__(self, bucket_name: str = "test-bucket", fail: Optional[Exception] = None):
        self.bucket_name = bucket_name
        self.fail = fail
        self.objects: dict[str, bytes] = {}
        self.puts: list[dict] = []
        self.deleted: list[str] = []
        self.delete_failures: set[str] = set()

    def public_url(self, path: str) -> str:
        return f"https://storage.googleapis.com/{self.bucket_name}/{path}"

    async def put(self, path, data, content_type, public=True):
        self.puts.append({"path": path, "data": data, "content_type": content_type, "public": public})
        if self.fail:
            raise self.fail
        self.objects[path] = data
        return self.public_url(path)

    async def list_paths(self, prefix, limit):
        return [p for p in sorted(self.objects) if p.startswith(prefix)][:limit]

    async def delete(self, path):
        if path in self.delete_failures:
            raise RuntimeError(f"403 Forbidden: {path}")
        self.deleted.append(path)
        self.objects.pop(path, None)


class RecordNotFound(Exception):
    pass


class FakeRecordStore:
    def __init__(self, records: Optional[dict] = None, fail: Optional[Exception] = None):
        self.records = records if records is not None else {}
        self.fail = fail
        self.updates: list[tuple[str, str, str]] = []

    async def update_field(self, entity_id, field, value):
        self.updates.append((entity_id, field, value))
        if self.fail:
            raise self.fail
        if entity_id not in self.records:
            raise RecordNotFound(f"No document to update: {entity_id}")
        self.records[entity_id][field] = value

    async def image_urls(self, field="imageUrl"):
        for record in self.records.values():
            if record.get(field):
                yield record[field]


class FakeFetcher:
    def __init__(self, image: Optional[FetchedImage] = None, fail: Optional[Exception] = None):
        self.image = image or FetchedImage(data=b"\xff\xd8jpeg-bytes", content_type="image/jpeg")
        self.fail = fail
        self.calls: list[str] = []

    async def fetch_image(self, url):
        self.calls.append(url)
        if self.fail:
            raise self.fail
        return self.image


def make_png(width: int = 200, height: int = 120, color=(20, 80, 160)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


# Pillow reads XPM but cannot write it.
XPM_2X2 = b"""/* XPM */
static char *dot[] = {
"2 2 2 1",
"  c #FFFFFF",
". c #000000",
" .",
". "
};
"""


def image_info_payload(title: str, license_name: Optional[str] = "CC BY-SA 4.0") -> dict:
    """Commons imageinfo response for one file page."""
    ext = {"ImageDescription": {"value": "An artwork"}}
    if license_name is not None:
        ext["LicenseShortName"] = {"value": license_name}
    slug = title.replace("File:", "").replace(" ", "_")
    return {
        "query": {
            "pages": {
                "123": {
                    "pageid": 123,
                    "ns": 6,
                    "title": title,
                    "imageinfo": [{
                        "url": f"https://upload.wikimedia.org/wikipedia/commons/a/ab/{slug}",
                        "descriptionurl": f"https://commons.wikimedia.org/wiki/{title.replace(' ', '_')}",
                        "thumburl": f"https://upload.wikimedia.org/wikipedia/commons/thumb/a/ab/{slug}/300px-{slug}",
                        "extmetadata": ext,
                    }],
                }
            }
        }
    }


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def record_store():
    return FakeRecordStore(records={"q42": {"question": "Who painted this?"}})


@pytest.fixture
def fetcher():
    return FakeFetcher()
