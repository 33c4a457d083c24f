"""Project-wide constants (timeouts, identifiers, default paths)."""

TEMP_ID_PREFIX: str = "tmp_"

UPLOAD_BASE_TIMEOUT_SECONDS: float = 30.0
UPLOAD_TIMEOUT_PER_MIB_SECONDS: float = 0.1
UPLOAD_DEADLINE_SECONDS: float = 300.0

REST_TABLE_PATH: str = "/rest/v1/files"

DEFAULT_CONFIG_DIR: str = ".filedock"
DEFAULT_DATABASE_NAME: str = "metadata.db"

IMAGE_MIME_PREFIX: str = "image/"
UNKNOWN_MIME_TYPE: str = "application/octet-stream"
