"""Project-wide constants (polling budget, Swarm chunk geometry, HTTP headers)."""

# Replication polling
SYNC_POLL_INTERVAL_SECONDS: float = 0.5
SYNC_MAX_STALL_TRIALS: int = 15

# Swarm content-addressed chunks
CHUNK_PAYLOAD_SIZE: int = 4096
SEGMENT_SIZE: int = 32
SPAN_SIZE: int = 8
FEED_INDEX_SIZE: int = 8
TIMESTAMP_SIZE: int = 8
TOPIC_SIZE: int = 32

FEED_TYPE_SEQUENCE = "sequence"

# Bee API headers
HEADER_POSTAGE_BATCH_ID = "swarm-postage-batch-id"
HEADER_COLLECTION = "swarm-collection"
HEADER_INDEX_DOCUMENT = "swarm-index-document"
HEADER_ERROR_DOCUMENT = "swarm-error-document"
HEADER_TAG = "swarm-tag"
HEADER_PIN = "swarm-pin"
HEADER_ENCRYPT = "swarm-encrypt"
HEADER_DEFERRED = "swarm-deferred-upload"
HEADER_REDUNDANCY_LEVEL = "swarm-redundancy-level"
HEADER_FEED_INDEX_NEXT = "swarm-feed-index-next"

# GitHub REST API
GITHUB_API_VERSION = "2022-11-28"
GITHUB_ACCEPT = "application/vnd.github+json"

DEFAULT_BEE_API_URL = "http://localhost:1633"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_OUT_DIR = "./artifact"
DEFAULT_INDEX_DOCUMENT = "index.html"
DEFAULT_ERROR_DOCUMENT = "404.html"
DEFAULT_HTTP_TIMEOUT_SECONDS = 30
