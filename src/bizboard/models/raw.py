"""Raw spreadsheet row representation before mapping."""

from typing import Mapping, Optional

# Header -> cell text. Produced by a RowDecoder, consumed by one mapping step.
RawRow = Mapping[str, Optional[str]]
