"""Hard-coded configuration constants not meant to be user-configurable."""

DEFAULT_STORAGE_DIR = ".iterview"
MANIFESTS_SUBDIR = "manifests"
MANIFEST_PREFIX = "checkpoint-"
MANIFEST_SUFFIX = ".json"
CONFIG_FILE_NAME = "config.json"

DEFAULT_MAX_CHECKPOINTS = 20
DEFAULT_GIT_SEARCH_DEPTH = 2
DEFAULT_EXCLUDE_DIRS = [
    "node_modules",
    ".venv",
    "target",
    "dist",
    "build",
    "__pycache__",
]

# Bytes inspected when deciding whether a blob is binary
BINARY_SNIFF_BYTES = 8192
