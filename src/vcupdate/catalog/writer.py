"""Catalog writer.

Renders a proposed catalog into the output directory. Only the version
literals named by the plan change; comments, ordering and whitespace of
every other byte are kept. Output is written to a temporary file next to
the destination and moved into place once complete, so a failed or
interrupted write never leaves a partial catalog behind.
"""
from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from vcupdate.errors import WriteError
from vcupdate.common.logging_utils import extra_context, is_debug_enabled
from .models import Catalog, EntryKind

if TYPE_CHECKING:
    from vcupdate.update.models import UpdatePlan

logger = logging.getLogger(__name__)

RICH_KEYS = ("strictly", "require", "prefer")

_KEY_PART = r'(?:[A-Za-z0-9_-]+|"[^"\n]*"|\'[^\'\n]*\')'
_HEADER = re.compile(r'^\s*\[\[?\s*(?P<path>' + _KEY_PART + r'(?:\s*\.\s*' + _KEY_PART + r')*)\s*\]\]?\s*(?:#.*)?$')
_KEY_LINE = re.compile(r'^\s*(?P<key>' + _KEY_PART + r'(?:\s*\.\s*' + _KEY_PART + r')*)\s*=')
_KEY_SPLIT = re.compile(_KEY_PART)
_LITERAL = re.compile(r'^\s*(?P<q>["\'])(?P<body>[^"\'\n]*)(?P=q)')
_INLINE_PAIR = re.compile(
    r'(?P<key>' + _KEY_PART + r'(?:\s*\.\s*' + _KEY_PART + r')*)\s*=\s*(?P<q>["\'])(?P<body>[^"\'\n]*)(?P=q)'
)
_UNSAFE_VERSION = re.compile(r'["\'\\\n\r]')


@dataclass
class VersionEdit:
    """One version literal to rewrite.

    ``path`` is the TOML key path of the declaration: ``("versions", ref)``
    for a shared reference, ``("libraries", alias)`` or
    ``("plugins", alias)`` for an inline version. ``prefix`` is the
    coordinate prefix used by the compact string notation
    (``"group:artifact:"`` or ``"plugin.id:"``).
    """
    path: Tuple[str, ...]
    old: str
    new: str
    prefix: Optional[str] = None
    applied: int = 0

    def describe(self) -> str:
        return ".".join(self.path)


def _split_key(key: str) -> Tuple[str, ...]:
    return tuple(part.strip("\"'") for part in _KEY_SPLIT.findall(key))


def edits_for(catalog: Catalog, plan: "UpdatePlan") -> List[VersionEdit]:
    """Translate the plan of ``catalog`` into literal edits."""
    edits: List[VersionEdit] = []
    for candidate in plan.updates:
        if candidate.version_ref is not None:
            edits.append(VersionEdit(path=("versions", candidate.version_ref),
                                     old=candidate.from_version, new=candidate.to_version))
            continue
        entry = candidate.unit.entries[0]
        if entry.kind is EntryKind.PLUGIN:
            prefix = f"{entry.coordinate.group}:"
        else:
            prefix = f"{entry.coordinate.group}:{entry.coordinate.artifact}:"
        edits.append(VersionEdit(path=(entry.kind.value, entry.alias), old=candidate.from_version,
                                 new=candidate.to_version, prefix=prefix))
    for edit in edits:
        if _UNSAFE_VERSION.search(edit.new):
            raise WriteError(f"Refusing to write unsafe version {edit.new!r} for {edit.describe()}",
                             catalog=catalog.name)
    return edits


def _replace_literal(value: str, edit: VersionEdit, allow_prefix: bool) -> Optional[str]:
    match = _LITERAL.match(value)
    if match is None:
        return None
    body = match.group("body")
    if body == edit.old:
        replacement = edit.new
    elif allow_prefix and edit.prefix is not None and body == edit.prefix + edit.old:
        replacement = edit.prefix + edit.new
    else:
        return None
    return value[:match.start("body")] + replacement + value[match.end("body"):]


def _replace_inline(value: str, edit: VersionEdit, keys: Sequence[Tuple[str, ...]]) -> Optional[str]:
    if not value.lstrip().startswith("{"):
        return None
    pieces: List[str] = []
    last = 0
    changed = False
    for match in _INLINE_PAIR.finditer(value):
        if _split_key(match.group("key")) in keys and match.group("body") == edit.old:
            pieces.append(value[last:match.start("body")])
            pieces.append(edit.new)
            last = match.end("body")
            changed = True
    if not changed:
        return None
    pieces.append(value[last:])
    return "".join(pieces)


_INLINE_VERSION_KEYS = tuple([("version",)] + [("version", k) for k in RICH_KEYS] + [(k,) for k in RICH_KEYS])
_RICH_ONLY = tuple((k,) for k in RICH_KEYS)


def _rewrite_value(path: Tuple[str, ...], value: str, edit: VersionEdit) -> Optional[str]:
    """Rewritten value text if ``path``/``value`` declare the edited version."""
    base = edit.path
    if path == base:
        if base[0] == "versions":
            return _replace_literal(value, edit, False) or _replace_inline(value, edit, _RICH_ONLY)
        return _replace_literal(value, edit, True) or _replace_inline(value, edit, _INLINE_VERSION_KEYS)
    if base[0] != "versions" and path == base + ("version",):
        return _replace_literal(value, edit, False) or _replace_inline(value, edit, _RICH_ONLY)
    if len(path) == len(base) + 1 and path[:-1] == base and path[-1] in RICH_KEYS and base[0] == "versions":
        return _replace_literal(value, edit, False)
    if len(path) == len(base) + 2 and path[:-1] == base + ("version",) and path[-1] in RICH_KEYS:
        return _replace_literal(value, edit, False)
    return None


def render_updates(text: str, edits: Sequence[VersionEdit]) -> str:
    """Apply ``edits`` to catalog ``text`` line by line."""
    if not edits:
        return text
    section: Tuple[str, ...] = ()
    out: List[str] = []
    for line in text.splitlines(keepends=True):
        header = _HEADER.match(line)
        if header is not None:
            section = _split_key(header.group("path"))
            out.append(line)
            continue
        key_match = _KEY_LINE.match(line)
        if key_match is None:
            out.append(line)
            continue
        path = section + _split_key(key_match.group("key"))
        head, value = line[:key_match.end()], line[key_match.end():]
        for edit in edits:
            rewritten = _rewrite_value(path, value, edit)
            if rewritten is not None:
                value = rewritten
                edit.applied += 1
                break
        out.append(head + value)
    return "".join(out)


def write_updates(catalog: Catalog, plan: Optional["UpdatePlan"], output_directory: str) -> str:
    """Write the proposed version of ``catalog`` below ``output_directory``.

    Without candidates the source is copied byte for byte so downstream
    tooling always finds a full mirrored tree.

    Returns:
        Path of the written file.

    Raises:
        WriteError: if the output cannot be produced; no partial file is
            left at the destination.
    """
    destination = os.path.join(output_directory, catalog.relative_path)
    if os.path.realpath(destination) == os.path.realpath(catalog.path):
        raise WriteError("Output would overwrite the source catalog", catalog=catalog.name, path=destination)

    try:
        with open(catalog.path, "rb") as fh:
            source = fh.read()
    except OSError as exc:
        raise WriteError(f"Unable to read source catalog: {exc}", catalog=catalog.name, path=catalog.path) from exc

    edits = edits_for(catalog, plan) if plan is not None else []
    if edits:
        try:
            text = source.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WriteError(f"Catalog is not valid UTF-8: {exc}", catalog=catalog.name, path=catalog.path) from exc
        rendered = render_updates(text, edits)
        missing = [edit.describe() for edit in edits if not edit.applied]
        if missing:
            raise WriteError(
                f"Unable to locate version declaration(s) for {', '.join(missing)}",
                catalog=catalog.name, path=catalog.path,
            )
        payload = rendered.encode("utf-8")
    else:
        payload = source

    _atomic_write(destination, payload, catalog.name)
    if is_debug_enabled(logger):
        logger.debug(
            "Wrote catalog",
            extra=extra_context(event="write", component="catalog_writer", action="write_updates",
                                outcome="success", target=destination, edit_count=len(edits))
        )
    logger.info("Wrote %s (%d update(s)).", destination, len(edits))
    return destination


def _atomic_write(destination: str, payload: bytes, catalog_name: str) -> None:
    directory = os.path.dirname(destination) or "."
    try:
        os.makedirs(directory, exist_ok=True)
    except OSError as exc:
        raise WriteError(f"Unable to create output directory: {exc}", catalog=catalog_name, path=directory) from exc

    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=f".{os.path.basename(destination)}.", suffix=".tmp", dir=directory)
        with os.fdopen(fd, "wb") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, destination)
        tmp_path = None
    except OSError as exc:
        raise WriteError(f"Unable to write catalog: {exc}", catalog=catalog_name, path=destination) from exc
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)
