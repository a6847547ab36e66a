"""Upload references handed to the pipeline and their local download."""

import hashlib
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel, Field

from bizboard.errors import UploadFetchError
from bizboard.models.records import DatasetKind

SUPPORTED_EXTENSIONS = frozenset({".xls", ".xlsx"})


class Upload(BaseModel):
    """A spreadsheet that landed for a dataset: local path or http(s) URL."""

    kind: DatasetKind
    reference: str = Field(..., min_length=1)
    size_bytes: Optional[int] = Field(default=None, ge=0, description="Only used for logging")

    @property
    def name(self) -> str:
        return upload_name(self.reference)


def is_remote(reference: str) -> bool:
    return urlparse(reference).scheme in ("http", "https")


def upload_name(reference: str) -> str:
    """File name of a path or URL, without query string."""
    if is_remote(reference):
        return PurePosixPath(urlparse(reference).path).name
    return Path(reference).name


def is_supported_upload(reference: str) -> bool:
    """Only .xls and .xlsx uploads are ingested; everything else is ignored."""
    return Path(upload_name(reference)).suffix.lower() in SUPPORTED_EXTENSIONS


def _download_filename(url: str) -> str:
    """Derive a collision-free local filename that keeps the extension."""
    h = hashlib.sha256(url.encode()).hexdigest()[:16]
    return f"{h}{Path(upload_name(url)).suffix.lower()}"


def fetch_upload(
    reference: str,
    work_dir: Path,
    *,
    client: httpx.Client | None = None,
) -> Path:
    """
    Return a local path for the upload, downloading URLs into work_dir.
    Raises UploadFetchError when the file cannot be obtained.
    """
    if not is_remote(reference):
        path = Path(reference)
        if not path.is_file():
            raise UploadFetchError(f"Upload not found: {reference}")
        return path

    work_dir = Path(work_dir)
    work_dir.mkdir(parents=True, exist_ok=True)
    local_path = work_dir / _download_filename(reference)

    owns_client = client is None
    client = client or httpx.Client(timeout=60.0, follow_redirects=True)
    try:
        with client.stream("GET", reference) as resp:
            resp.raise_for_status()
            with local_path.open("wb") as fh:
                for chunk in resp.iter_bytes():
                    fh.write(chunk)
        return local_path
    except httpx.HTTPStatusError as e:
        raise UploadFetchError(f"HTTP {e.response.status_code} downloading {reference}") from e
    except httpx.RequestError as e:
        raise UploadFetchError(f"Download of {reference} failed: {e}") from e
    except OSError as e:
        raise UploadFetchError(f"Could not write {local_path}: {e}") from e
    finally:
        if owns_client:
            client.close()
