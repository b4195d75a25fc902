"""Input sanitization, prompt-injection heuristics and upload validation."""

from __future__ import annotations

import re

from lumen_assistant.core.models import UploadedFile

# Heuristic only: false negatives are expected.
INJECTION_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"ignore (previous|all) (instructions|prompts)",
        r"ignore all previous (instructions|prompts)",
        r"system prompt",
        r"you are (now|actually)",
        r"\[\s*system\s*\]",
        r"forget (everything|all)",
        r"reveal (your|the) (instructions|prompt|system)",
        r"what are your (instructions|rules)",
    )
)

ALLOWED_MIME_TYPES = frozenset({
    "image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif",
    "application/pdf",
    "text/plain", "text/csv", "text/markdown",
    "application/json",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/msword",
    "application/vnd.ms-excel",
})

MAX_FILE_SIZE = 20 * 1024 * 1024
MAX_FILENAME_LENGTH = 255
FILENAME_PATTERN = re.compile(r"[A-Za-z0-9._\- ()]+")


class FileRejected(ValueError):
    """Raised when an uploaded file fails validation."""


def sanitize_text(value: object, max_length: int = 10_000) -> str:
    """Trim and truncate a free-text field. Non-strings become empty."""
    if not isinstance(value, str):
        return ""
    return value.strip()[:max_length]


def detect_prompt_injection(text: str) -> bool:
    return any(pattern.search(text) for pattern in INJECTION_PATTERNS)


def validate_upload(file: UploadedFile) -> None:
    """Raise FileRejected if *file* is not acceptable for forwarding to the model."""
    if file.mime_type not in ALLOWED_MIME_TYPES:
        raise FileRejected(f"File type {file.mime_type!r} is not allowed")

    if file.estimated_size > MAX_FILE_SIZE:
        raise FileRejected(f"File size exceeds {MAX_FILE_SIZE // (1024 * 1024)}MB limit")

    if not file.filename or len(file.filename) > MAX_FILENAME_LENGTH:
        raise FileRejected(f"Filename must be 1-{MAX_FILENAME_LENGTH} characters")

    if not FILENAME_PATTERN.fullmatch(file.filename):
        raise FileRejected("Filename contains disallowed characters")
