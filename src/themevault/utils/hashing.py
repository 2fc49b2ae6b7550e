"""
SHA-256 digests of theme file content.

The sync engine stores the digest on every file revision and compares it
with the digest of the bytes on disk; the drift detector does the same
comparison without writing. Two contents are treated as the same file
revision exactly when their digests match.
"""

import hashlib
from pathlib import Path


def calculate_content_hash(content: str | bytes) -> str:
    """
    Calculate SHA-256 hash of content.

    Text is encoded as UTF-8 before hashing, so a string and its UTF-8 bytes
    produce the same digest.

    Args:
        content: String or bytes content to hash

    Returns:
        Lower-case hexadecimal SHA-256 digest (64 characters)
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    return hashlib.sha256(content).hexdigest()


def calculate_file_hash(file_path: Path | str, chunk_size: int = 8192) -> str:
    """
    Calculate SHA-256 hash of a file without loading it into memory.

    The digest equals ``calculate_content_hash(path.read_bytes())``.

    Args:
        file_path: Path to the file to hash
        chunk_size: Size of chunks to read (default: 8KB)

    Returns:
        Lower-case hexadecimal SHA-256 digest (64 characters)

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the path is not a regular file
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    if not file_path.is_file():
        raise ValueError(f"Not a file: {file_path}")

    digest = hashlib.sha256()
    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            digest.update(chunk)

    return digest.hexdigest()
