"""Tests for upload references and download."""

from pathlib import Path

import httpx
import pytest

from bizboard.errors import UploadFetchError
from bizboard.models.records import DatasetKind
from bizboard.uploads import Upload, fetch_upload, is_remote, is_supported_upload, upload_name


class TestUploadReferences:
    """Tests for extension filtering and naming."""

    @pytest.mark.parametrize(
        "reference,supported",
        [
            ("bookings.xlsx", True),
            ("exports/Proposals.XLS", True),
            ("https://files.example.com/bookings.xlsx?sig=abc", True),
            ("bookings.csv", False),
            ("bookings.xlsx.bak", False),
            ("bookings", False),
            ("https://files.example.com/download?name=bookings.xlsx", False),
        ],
    )
    def test_is_supported_upload(self, reference: str, supported: bool) -> None:
        assert is_supported_upload(reference) is supported

    def test_is_remote(self) -> None:
        assert is_remote("https://files.example.com/a.xlsx")
        assert is_remote("http://files.example.com/a.xlsx")
        assert not is_remote("/data/a.xlsx")
        assert not is_remote("a.xlsx")

    def test_upload_name(self) -> None:
        assert upload_name("/data/exports/bookings.xlsx") == "bookings.xlsx"
        assert upload_name("https://files.example.com/x/proposals.xls?sig=1") == "proposals.xls"

    def test_upload_model(self) -> None:
        upload = Upload(kind="bookings", reference="/data/bookings.xlsx", size_bytes=2048)
        assert upload.kind == DatasetKind.BOOKINGS
        assert upload.name == "bookings.xlsx"


class TestFetchUpload:
    """Tests for fetch_upload."""

    def test_local_file_used_in_place(self, tmp_path: Path) -> None:
        path = tmp_path / "bookings.xlsx"
        path.write_bytes(b"data")
        assert fetch_upload(str(path), tmp_path / "work") == path

    def test_missing_local_file(self, tmp_path: Path) -> None:
        with pytest.raises(UploadFetchError, match="not found"):
            fetch_upload(str(tmp_path / "nope.xlsx"), tmp_path / "work")

    def test_downloads_url(self, tmp_path: Path) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/exports/bookings.xlsx"
            return httpx.Response(200, content=b"workbook-bytes")

        client = httpx.Client(transport=httpx.MockTransport(handler))
        local = fetch_upload("https://files.example.com/exports/bookings.xlsx", tmp_path / "work", client=client)

        assert local.parent == tmp_path / "work"
        assert local.suffix == ".xlsx"
        assert local.read_bytes() == b"workbook-bytes"

    def test_same_url_same_local_name(self, tmp_path: Path) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"x")))
        url = "https://files.example.com/bookings.xlsx"
        assert fetch_upload(url, tmp_path, client=client) == fetch_upload(url, tmp_path, client=client)

    def test_http_error(self, tmp_path: Path) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(404)))
        with pytest.raises(UploadFetchError, match="HTTP 404"):
            fetch_upload("https://files.example.com/bookings.xlsx", tmp_path, client=client)

    def test_network_error(self, tmp_path: Path) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        with pytest.raises(UploadFetchError, match="failed"):
            fetch_upload("https://files.example.com/bookings.xlsx", tmp_path, client=client)

    def test_caller_client_left_open(self, tmp_path: Path) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"x")))
        fetch_upload("https://files.example.com/bookings.xlsx", tmp_path, client=client)
        assert not client.is_closed
