import base64

import pytest

from errors import UploadError, ValidationError
from uploads import DataUrlUploader


class TestDataUrlUploader:

    def test_store_returns_data_url(self):
        url = DataUrlUploader().store("me.png", b"\x89PNG", "image/png")
        assert url == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()

    def test_mime_is_guessed_from_name(self):
        assert DataUrlUploader().store("me.jpg", b"abc").startswith("data:image/jpeg;base64,")

    def test_unknown_type(self):
        assert DataUrlUploader().store("blob", b"abc").startswith("data:application/octet-stream;base64,")

    def test_empty_file(self):
        with pytest.raises(UploadError):
            DataUrlUploader().store("me.png", b"", "image/png")

    def test_short_read_is_rejected(self):
        with pytest.raises(UploadError) as exc:
            DataUrlUploader().store("me.png", b"abc", "image/png", expected_size=10)
        assert "partially" in str(exc.value)

    def test_too_large(self):
        with pytest.raises(ValidationError):
            DataUrlUploader(max_bytes=2).store("me.png", b"abc", "image/png")
