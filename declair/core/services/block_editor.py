"""
Package block editor — find and edit the ``with pkgs; [ ... ]`` list.

Operates on a file as a list of lines.  The block starts at the first
line containing the marker and ends at the first line (at or after the
start) containing ``]``.  Two shapes are supported:

    Single-line:   environment.systemPackages = with pkgs; [ git vim ];

    Multi-line:    home.packages = with pkgs; [
                     git
                     vim
                   ];

The pure functions (``locate_block``, ``list_entries``, ``add_entry``,
``drop_entry``) never touch the filesystem and never mutate their
input.  The file functions (``insert_entry``, ``remove_entry``) read
the whole file, compute the new content, copy the original to a
``.declair.bak`` sibling, then replace the file atomically.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

BLOCK_MARKER = "with pkgs; ["
BACKUP_SUFFIX = ".declair.bak"
COMMENT_PREFIXES = ("#", "//")


# ── Errors ──────────────────────────────────────────────────────


class BlockEditError(Exception):
    """Base class for every failure of a block edit."""


class BlockNotFound(BlockEditError):
    """The marker line or its closing bracket is missing."""

    def __init__(self, message: str = "") -> None:
        super().__init__(
            message or f"Failed to find `{BLOCK_MARKER}...]` block in the given file."
        )


class EntryAlreadyPresent(BlockEditError):
    """The package is already listed in the block."""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"Package `{token}` is already in the config")


class EntryNotFound(BlockEditError):
    """The package to remove is not listed in the block."""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"Package `{token}` not found in the configuration")


class MalformedBlock(BlockEditError):
    """A single-line block whose brackets cannot be paired."""


class IoFailure(BlockEditError):
    """Reading, backing up, or writing the file failed."""


# ── Document ────────────────────────────────────────────────────


@dataclass
class Document:
    """A text file held in memory as a list of lines."""

    path: Path
    lines: list[str]
    trailing_newline: bool = True

    def render(self, lines: list[str] | None = None) -> str:
        """Join lines back into file content."""
        text = "\n".join(self.lines if lines is None else lines)
        if self.trailing_newline:
            text += "\n"
        return text


def read_document(path: Path) -> Document:
    """Read a whole file into a Document.

    Raises:
        IoFailure: If the file cannot be read.
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise IoFailure(f"Cannot read {path}: {e}") from e

    # Only "\n" separates lines; form feeds and U+2028 stay inside a line.
    lines = raw.split("\n") if raw else []
    trailing_newline = raw.endswith("\n")
    if trailing_newline:
        lines.pop()
    return Document(path=Path(path), lines=lines, trailing_newline=trailing_newline)


def backup_path_for(path: Path) -> Path:
    """``configuration.nix`` → ``configuration.declair.bak``."""
    path = Path(path)
    if path.suffix:
        return path.with_suffix(BACKUP_SUFFIX)
    return path.with_name(path.name + BACKUP_SUFFIX)


# ── Locate / list ───────────────────────────────────────────────


def locate_block(lines: list[str]) -> tuple[int, int]:
    """Return ``(start, end)`` line indices of the package block.

    ``start == end`` when the whole list sits on the marker line.

    Raises:
        BlockNotFound: No marker line, or no ``]`` at or after it.
    """
    start = next((i for i, line in enumerate(lines) if BLOCK_MARKER in line), None)
    if start is None:
        raise BlockNotFound()

    end = next((i for i in range(start, len(lines)) if "]" in lines[i]), None)
    if end is None:
        raise BlockNotFound(f"Block opened at line {start + 1} is never closed with `]`")

    logger.debug("Located package block at lines %d-%d", start + 1, end + 1)
    return start, end


def _bracket_span(line: str) -> tuple[int, int]:
    """Index of the first ``[`` and the last ``]`` on a single-line block."""
    lbr = line.find("[")
    rbr = line.rfind("]")
    if lbr < 0 or rbr < 0 or rbr < lbr:
        raise MalformedBlock(f"Malformed `{BLOCK_MARKER} ... ]` line: {line.strip()!r}")
    return lbr, rbr


def _first_token(line: str) -> str | None:
    parts = line.split()
    return parts[0] if parts else None


def list_entries(lines: list[str], start: int, end: int) -> list[str]:
    """List package tokens in block order, duplicates kept.

    Single-line blocks yield every token between the brackets.
    Multi-line blocks yield the first token of each interior line,
    skipping blank lines and comments.
    """
    if start == end:
        lbr, rbr = _bracket_span(lines[start])
        return lines[start][lbr + 1:rbr].split()

    entries: list[str] = []
    for line in lines[start + 1:end]:
        token = _first_token(line)
        if token is None or token.startswith(COMMENT_PREFIXES):
            continue
        entries.append(token)
    return entries


def _block_tokens(lines: list[str], start: int, end: int) -> list[str]:
    """Entries plus anything squeezed onto the marker or closing line."""
    tokens = list_entries(lines, start, end)
    if start != end:
        opening = lines[start]
        tokens.extend(opening[opening.find(BLOCK_MARKER) + len(BLOCK_MARKER):].split())
        closing = lines[end]
        tokens.extend(closing[:closing.find("]")].split())
    return tokens


# ── Mutations (pure) ────────────────────────────────────────────


def add_entry(lines: list[str], token: str) -> list[str]:
    """Return a copy of ``lines`` with ``token`` appended to the block.

    Raises:
        BlockNotFound, MalformedBlock, EntryAlreadyPresent
    """
    start, end = locate_block(lines)
    if token in _block_tokens(lines, start, end):
        raise EntryAlreadyPresent(token)

    new_lines = list(lines)
    line = lines[end]

    if start == end:
        if "[]" in line:
            new_lines[end] = line.replace("[]", f"[ {token} ]", 1)
        elif " ]" in line:
            new_lines[end] = line.replace("]", f"{token} ]", 1)
        else:
            new_lines[end] = line.replace("]", f" {token} ]", 1)
    else:
        indent = line[:len(line) - len(line.lstrip())]
        new_lines.insert(end, f"{indent}{indent}{token}")

    return new_lines


def drop_entry(lines: list[str], token: str) -> list[str]:
    """Return a copy of ``lines`` with one ``token`` entry removed.

    A single-line block that ends up empty is written as ``[ ]`` rather
    than with two spaces between the brackets.

    Raises:
        BlockNotFound, MalformedBlock, EntryNotFound
    """
    start, end = locate_block(lines)
    new_lines = list(lines)

    if start == end:
        line = lines[start]
        lbr, rbr = _bracket_span(line)
        parts = line[lbr + 1:rbr].split()
        if token not in parts:
            raise EntryNotFound(token)
        parts.remove(token)
        inside = f" {' '.join(parts)} " if parts else " "
        new_lines[start] = f"{line[:lbr]}[{inside}]{line[rbr + 1:]}"
        return new_lines

    for idx in range(start + 1, end):
        if _first_token(lines[idx]) == token:
            del new_lines[idx]
            return new_lines

    raise EntryNotFound(token)


# ── File operations ─────────────────────────────────────────────


def _write_atomic(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` via a temp file + rename."""
    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        shutil.copymode(path, tmp)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def _commit(doc: Document, new_lines: list[str]) -> Path:
    """Back up the original, then write the new content over it.

    A symlinked path is followed: the link stays in place and its
    target receives the new content.
    """
    backup = backup_path_for(doc.path)
    try:
        shutil.copyfile(doc.path, backup)
    except OSError as e:
        raise IoFailure(f"Cannot create backup {backup}: {e}") from e
    logger.info("Backup written to %s", backup)

    # The backup is already on disk here; a failure below leaves it
    # next to the untouched original.
    try:
        target = doc.path.resolve(strict=True)
        _write_atomic(target, doc.render(new_lines))
    except OSError as e:
        raise IoFailure(f"Cannot write {doc.path}: {e}") from e
    logger.debug("Wrote %s", target)
    return backup


def list_file_entries(path: Path) -> list[str]:
    """List the package entries of a file."""
    doc = read_document(path)
    start, end = locate_block(doc.lines)
    return list_entries(doc.lines, start, end)


def insert_entry(path: Path, token: str) -> Path:
    """Add ``token`` to the block of the file at ``path``.

    Returns:
        Path of the backup written before the file was replaced.

    Raises:
        BlockEditError: Any subclass; the file is untouched unless the
            final write itself failed.
    """
    doc = read_document(path)
    new_lines = add_entry(doc.lines, token)
    backup = _commit(doc, new_lines)
    logger.info("Added %s to %s", token, doc.path)
    return backup


def remove_entry(path: Path, token: str) -> Path:
    """Remove ``token`` from the block of the file at ``path``.

    Returns:
        Path of the backup written before the file was replaced.
    """
    doc = read_document(path)
    new_lines = drop_entry(doc.lines, token)
    backup = _commit(doc, new_lines)
    logger.info("Removed %s from %s", token, doc.path)
    return backup
