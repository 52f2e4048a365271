"""
catalog/core/constants.py

Application-wide fixed constants.

These are business rules that are part of the system's contract and are
NOT configurable via environment variables. Size ceilings live in config.
"""

import re

# ── Media types ────────────────────────────────────────────────────────────────

#: Exact content-type required for catalogued documents.
PDF_CONTENT_TYPE: str = "application/pdf"

#: Prefix every avatar content-type must start with.
IMAGE_CONTENT_TYPE_PREFIX: str = "image/"

# ── Storage keys ───────────────────────────────────────────────────────────────

#: Extension used when the original filename carries no usable one.
DEFAULT_DOCUMENT_EXTENSION: str = ".pdf"

#: A usable extension: a dot followed by 1-10 alphanumerics.
EXTENSION_PATTERN = re.compile(r"^\.[a-z0-9]{1,10}$")

#: Storage keys are plain file names without separators or parent references.
STORAGE_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")

# ── Record column limits ───────────────────────────────────────────────────────

TITLE_MAX_LENGTH: int = 255
AUTHORS_MAX_LENGTH: int = 500
KEYWORDS_MAX_LENGTH: int = 1000
TOPIC_MAX_LENGTH: int = 255
FILENAME_MAX_LENGTH: int = 255
