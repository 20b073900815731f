"""Project-wide constants (part limits, size ladder, presign lifetime)."""

MIB: int = 1024 * 1024

MAX_PARTS: int = 10_000  # backend ceiling on parts per multipart upload
MIN_PART_NUMBER: int = 1

# Ascending part-size ladder. 8 MiB keeps a margin over the 5 MiB S3 floor.
PART_SIZE_LADDER_MIB: tuple = (8, 16, 32, 64, 128, 256, 512)

DEFAULT_PRESIGN_EXPIRY_SECONDS: int = 60 * 60
DEFAULT_CONTENT_TYPE: str = "application/octet-stream"

CID_METADATA_KEY: str = "cid"
UPLOADER_METADATA_KEY: str = "uploader"

CATALOG_DEFAULT_PAGE_SIZE: int = 50
CATALOG_MAX_PAGE_SIZE: int = 100
