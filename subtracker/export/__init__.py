"""Export package."""

from subtracker.export.encoder import (
    CSV_HEADERS,
    MEDIA_TYPES,
    decode_json,
    encode,
    encode_csv,
    encode_json,
    export_filename,
)

__all__ = [
    "CSV_HEADERS",
    "MEDIA_TYPES",
    "decode_json",
    "encode",
    "encode_csv",
    "encode_json",
    "export_filename",
]
