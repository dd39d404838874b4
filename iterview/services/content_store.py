"""Content-addressed blob storage backed by each repository's git object store.

Hashes are git blob ids, so identical bytes hash identically in every
repository and `git hash-object -w` dedupes storage for free. Batches go
through a single `git hash-object --stdin-paths` process per repository;
its output is one id per input line, in input order.
"""

from __future__ import annotations

import asyncio
import hashlib
import os
import tempfile
from collections.abc import Sequence

from git import Repo
from git.exc import GitCommandError, GitError

from iterview.core.errors import ContentStoreError
from iterview.utils.logger import store_logger


def hash_bytes(data: bytes) -> str:
    """Return the git blob id for raw bytes without touching any store."""
    header = f"blob {len(data)}\0".encode("ascii")
    return hashlib.sha1(header + data).hexdigest()


def stdin_path_line(path: str) -> bytes:
    """Encode a path as one line of `git hash-object --stdin-paths` input.

    Names are sent as the raw bytes on disk. git C-unquotes any line that
    starts with a double quote, so those names (and names holding control
    characters, which would break the line framing) are sent quoted.
    """
    raw = os.fsencode(path)
    if not raw.startswith(b'"') and not any(byte < 0x20 or byte == 0x7F for byte in raw):
        return raw + b"\n"

    quoted = bytearray(b'"')
    for byte in raw:
        if byte in (0x22, 0x5C):
            quoted += b"\\" + bytes([byte])
        elif byte < 0x20 or byte == 0x7F:
            quoted += b"\\%03o" % byte
        else:
            quoted.append(byte)
    quoted += b'"\n'
    return bytes(quoted)


class ContentStore:
    """Batch hashing and blob reads against repository object stores."""

    def hash_paths(
        self, repo_root: str, paths: Sequence[str], *, write: bool = False
    ) -> list[str]:
        """Hash repo-relative paths in one batch.

        Args:
            repo_root: Working tree root the paths are relative to
            paths: Files to hash
            write: Also store the blobs durably in the object database

        Returns:
            One hash per path, in the same order as ``paths``

        Raises:
            ContentStoreError: if the batch could not be hashed as a whole
        """
        if not paths:
            return []

        args = ["-w", "--stdin-paths"] if write else ["--stdin-paths"]
        try:
            payload = b"".join(stdin_path_line(path) for path in paths)
            with Repo(repo_root) as repo, tempfile.TemporaryFile() as stdin:
                stdin.write(payload)
                stdin.seek(0)
                output = repo.git.hash_object(*args, istream=stdin)
        except GitCommandError as e:
            stderr = (e.stderr or "").strip() or str(e)
            raise ContentStoreError(repo_root, f"hash-object failed: {stderr}") from e
        except (GitError, OSError, UnicodeError) as e:
            raise ContentStoreError(repo_root, str(e)) from e

        hashes = [line.strip() for line in output.splitlines() if line.strip()]
        if len(hashes) != len(paths):
            raise ContentStoreError(
                repo_root,
                f"hash-object returned {len(hashes)} ids for {len(paths)} paths",
            )

        store_logger.debug(
            "Hashed batch",
            repo=repo_root,
            files=len(paths),
            write=write,
        )
        return hashes

    async def ahash_paths(
        self, repo_root: str, paths: Sequence[str], *, write: bool = False
    ) -> list[str]:
        """Non-blocking variant of hash_paths with identical results."""
        return await asyncio.to_thread(
            self.hash_paths, repo_root, list(paths), write=write
        )

    def hash_map(
        self, repo_root: str, paths: Sequence[str], *, write: bool = False
    ) -> dict[str, str]:
        """Hash paths and zip them into a path -> hash mapping."""
        return dict(zip(paths, self.hash_paths(repo_root, paths, write=write)))

    def read(self, repo_root: str, content_hash: str) -> bytes | None:
        """Read a blob back by hash.

        Returns:
            Blob bytes, or None if the object is missing or not a blob
        """
        try:
            with Repo(repo_root) as repo:
                data = repo.git.cat_file(
                    "blob",
                    content_hash,
                    stdout_as_string=False,
                    strip_newline_in_stdout=False,
                )
        except (GitError, OSError) as e:
            store_logger.debug(
                "Blob not readable",
                repo=repo_root,
                content_hash=content_hash,
                error=str(e),
            )
            return None
        return bytes(data)
