"""Project-wide constants (service defaults, stream sizes, naming conventions)."""

DEFAULT_BASE_URL: str = "https://filebin.net"
DEFAULT_TIMEOUT_SECONDS: int = 30

# Download endpoints reject unknown clients; the service serves raw bytes to curl.
DOWNLOAD_USER_AGENT: str = "curl/7.64.1"

STREAM_PIECE_SIZE_BYTES: int = 64 * 1024

BIN_ID_LENGTH: int = 16

ENCRYPTED_SUFFIX: str = ".enc"
SCRATCH_PREFIX: str = "filebin-"

ARCHIVE_FORMATS: tuple[str, ...] = ("tar", "zip")
