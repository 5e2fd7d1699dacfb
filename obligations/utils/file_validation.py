"""
File Upload Validation

Checks uploaded proof-of-payment files (size, MIME type, extension) before
they are converted or sent to storage.
"""

import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

MAX_FILE_SIZE_DOCUMENTS = int(os.getenv("MAX_FILE_SIZE_DOCUMENTS", 10))  # MB
MAX_FILE_SIZE_IMAGES = int(os.getenv("MAX_FILE_SIZE_IMAGES", 5))  # MB
MAX_FILE_SIZE_RIB = int(os.getenv("MAX_FILE_SIZE_RIB", 5))  # MB

IMAGE_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"]
IMAGE_EXTENSIONS = [".jpg", ".jpeg", ".png", ".gif", ".webp"]

DANGEROUS_EXTENSIONS = [
    ".exe", ".bat", ".cmd", ".sh", ".app", ".deb", ".rpm",
    ".dmg", ".js", ".mjs", ".cjs", ".vbs", ".jar",
]


@dataclass
class FileValidationOptions:
    max_size_mb: int = MAX_FILE_SIZE_DOCUMENTS
    allowed_types: List[str] = field(default_factory=lambda: IMAGE_TYPES + ["application/pdf"])
    allowed_extensions: List[str] = field(default_factory=lambda: IMAGE_EXTENSIONS + [".pdf"])


@dataclass
class FileValidationResult:
    valid: bool
    error: Optional[str] = None


PRESETS = {
    "images": FileValidationOptions(
        max_size_mb=MAX_FILE_SIZE_IMAGES,
        allowed_types=list(IMAGE_TYPES),
        allowed_extensions=list(IMAGE_EXTENSIONS),
    ),
    "documents": FileValidationOptions(),
    "pdf": FileValidationOptions(
        allowed_types=["application/pdf"],
        allowed_extensions=[".pdf"],
    ),
    "rib": FileValidationOptions(
        max_size_mb=MAX_FILE_SIZE_RIB,
        allowed_types=["image/jpeg", "image/jpg", "image/png", "application/pdf"],
        allowed_extensions=[".jpg", ".jpeg", ".png", ".pdf"],
    ),
    # Bank statements for local matching
    "statements": FileValidationOptions(
        allowed_types=["text/csv", "application/csv", "application/vnd.ms-excel", "application/pdf"],
        allowed_extensions=[".csv", ".pdf"],
    ),
}


def validate_file(
    file_name: Optional[str],
    content_type: Optional[str],
    size: int,
    options: Optional[FileValidationOptions] = None,
) -> FileValidationResult:
    """
    Validate a single uploaded file.

    Args:
        file_name: Original file name.
        content_type: MIME type declared by the client.
        size: File size in bytes.
        options: Limits to apply. Defaults to the 'documents' preset.

    Returns:
        FileValidationResult: valid flag and a user-facing error message.
    """
    options = options or PRESETS["documents"]

    if not file_name:
        return FileValidationResult(False, "No file selected")

    if size > options.max_size_mb * 1024 * 1024:
        return FileValidationResult(
            False, f"File is too large. Maximum size: {options.max_size_mb}MB"
        )

    accepted = ", ".join(options.allowed_extensions)
    if (content_type or "").lower() not in options.allowed_types:
        return FileValidationResult(False, f"File type not allowed. Accepted types: {accepted}")

    name_lower = file_name.lower()
    if not any(name_lower.endswith(ext) for ext in options.allowed_extensions):
        return FileValidationResult(
            False, f"File extension not allowed. Accepted extensions: {accepted}"
        )

    if any(name_lower.endswith(ext) for ext in DANGEROUS_EXTENSIONS):
        return FileValidationResult(False, "This file type is forbidden for security reasons")

    return FileValidationResult(True)


def validate_files(
    files: Iterable[Tuple[Optional[str], Optional[str], int]],
    options: Optional[FileValidationOptions] = None,
) -> FileValidationResult:
    """
    Validate several files given as (file_name, content_type, size) tuples.

    Returns the first failure, or a valid result. An empty selection is invalid.
    """
    files = list(files)
    if not files:
        return FileValidationResult(False, "No file selected")

    for file_name, content_type, size in files:
        result = validate_file(file_name, content_type, size, options)
        if not result.valid:
            return result
    return FileValidationResult(True)
