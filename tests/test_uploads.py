import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from ecotrack.core.errors import MediaValidationError
from ecotrack.services.uploads import probe_public_url, upload_avatar, upload_media
from ecotrack.utils.file_utils import MB


class CountingReader(io.BytesIO):
    def __init__(self, data):
        super().__init__(data)
        self.bytes_read = 0

    def read(self, size=-1):
        chunk = super().read(size)
        self.bytes_read += len(chunk)
        return chunk


def _upload(data, content_type, filename="upload.bin", size=None):
    reader = CountingReader(data)
    file = UploadFile(file=reader, filename=filename, size=size,
                      headers=Headers({"content-type": content_type}))
    return file, reader


def test_wrong_type_is_rejected_before_reading(platform):
    file, reader = _upload(b"%PDF" * (5 * MB), "application/pdf", "report.pdf", size=20 * MB)

    with pytest.raises(MediaValidationError, match="Unsupported file type"):
        upload_media(platform, "posts", "u1", file)
    assert reader.bytes_read == 0


def test_declared_oversize_is_rejected_before_reading(platform):
    file, reader = _upload(b"\x00" * (6 * MB), "image/png", "big.png", size=6 * MB)

    with pytest.raises(MediaValidationError, match="Maximum size is 5MB"):
        upload_avatar(platform, "profiles", "u1", file)
    assert reader.bytes_read == 0


def test_undeclared_oversize_reads_no_more_than_the_ceiling(platform, fake_platform):
    file, reader = _upload(b"\x00" * (12 * MB), "video/mp4", "clip.mp4")

    with pytest.raises(MediaValidationError, match="Maximum size is 10MB"):
        upload_media(platform, "posts", "u1", file)
    assert reader.bytes_read == 10 * MB + 1
    assert fake_platform.objects == {}


def test_upload_returns_public_url(platform, fake_platform):
    file, _ = _upload(b"GIF89a", "image/gif", "wave.gif", size=6)

    url = upload_media(platform, "posts", "u1", file)

    assert url.startswith("https://test.supabase.co/storage/v1/object/public/posts/u1/post_")
    assert url.endswith(".gif")
    assert len(fake_platform.objects) == 1


def _public_heads(fake_platform):
    return [path for method, path in fake_platform.requests
            if method == "HEAD" and path.startswith("/storage/v1/object/public/")]


def test_unreachable_object_is_retried_once(platform, fake_platform):
    fake_platform.public_reachable = False
    url = "https://test.supabase.co/storage/v1/object/public/posts/u1/missing.png"

    assert probe_public_url(platform, url) is False
    assert len(_public_heads(fake_platform)) == 2


def test_unreachable_object_does_not_block_post(client, make_user, fake_platform):
    _, headers = make_user()
    fake_platform.public_reachable = False
    files = {"media": ("tree.png", io.BytesIO(b"\x89PNG fake"), "image/png")}

    response = client.post("/posts/", data={"caption": "Planted an oak", "category": "Tree Planting"},
                           files=files, headers=headers)

    assert response.status_code == 201, response.text
    assert response.json()["media_url"].endswith(".png")
    assert len(_public_heads(fake_platform)) == 2
