"""Runtime settings for ingestion, storage and passcodes."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class IngestSettings(BaseModel):
    """Tunable settings. Defaults match the production dashboard."""

    db_path: Path = Field(default=Path("bizboard.db"), description="SQLite document store")
    work_dir: Optional[Path] = Field(
        default=None,
        description="Where downloaded uploads land (default: system temp dir)",
    )

    max_workers: int = Field(default=4, ge=1, description="Parallel row upserts")
    max_in_flight: int = Field(default=32, ge=1, description="Pending upserts before the stream waits")
    upsert_attempts: int = Field(default=3, ge=1)
    retry_initial_wait: float = Field(default=0.2, ge=0)
    retry_max_wait: float = Field(default=2.0, ge=0)
    max_failure_examples: int = Field(default=20, ge=0)

    overall_collection: str = "Overall"
    constants_collection: str = "Constants"
    verifications_collection: str = "Verifications"

    passcode_ttl_seconds: int = Field(default=600, ge=1)
    passcode_length: int = Field(default=6, ge=4)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "IngestSettings":
        """Load settings from YAML. Supports nested (store/ingest/passcodes) or flat structure."""
        data = yaml.safe_load(Path(path).read_text()) or {}
        flat: dict = {}
        for section in ("store", "ingest", "passcodes"):
            nested = data.get(section) or {}
            flat.update(nested)
        for key, value in data.items():
            if key not in ("store", "ingest", "passcodes"):
                flat.setdefault(key, value)
        return cls.model_validate(flat)
