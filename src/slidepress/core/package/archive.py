"""
archive.py — Package access: entries, relationships, media.

The whole zip is read once into memory; relationship files are parsed eagerly.
After construction a Package is never written to, so slides may be resolved
from several threads against the same instance.
"""
from __future__ import annotations

import io
import logging
import posixpath
import re
import zipfile
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from slidepress.core.errors import EntryNotFound, MalformedPackage, MalformedPart
from slidepress.core.package.xmlq import attr, children, local_name, parse

logger = logging.getLogger(__name__)

MEDIA_DIR = "ppt/media/"
_SLIDE_RE = re.compile(r"^ppt/slides/slide(\d+)\.xml$")

_MIME_BY_EXT: dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "svg": "image/svg+xml",
    "tiff": "image/tiff",
    "tif": "image/tiff",
    "emf": "image/x-emf",
    "wmf": "image/x-wmf",
    "webp": "image/webp",
}


@dataclass(frozen=True)
class Relationship:
    rel_id: str
    target: str     # package path, or the raw URI when external
    rel_type: str
    external: bool = False


@dataclass(frozen=True)
class MediaRef:
    """Decodable media bytes referenced from a render model."""

    name: str
    data: bytes
    content_type: str

    @property
    def ext(self) -> str:
        return posixpath.splitext(self.name)[1].lstrip(".").lower()


def content_type_for(name: str) -> str:
    ext = posixpath.splitext(name)[1].lstrip(".").lower()
    return _MIME_BY_EXT.get(ext, "application/octet-stream")


def rels_path_for(part_name: str) -> str:
    """ppt/slides/slide1.xml -> ppt/slides/_rels/slide1.xml.rels"""
    directory, filename = posixpath.split(part_name)
    return posixpath.join(directory, "_rels", f"{filename}.rels")


def resolve_target(part_name: str, target: str) -> str:
    """Resolve a relationship target against the directory of its source part."""
    target = target.replace("\\", "/")
    if target.startswith("/"):
        return posixpath.normpath(target.lstrip("/"))
    base = posixpath.dirname(part_name)
    return posixpath.normpath(posixpath.join(base, target))


def slide_number(part_name: str) -> int | None:
    m = _SLIDE_RE.match(part_name)
    return int(m.group(1)) if m else None


class Package:
    """Read-only view over a PPTX zip."""

    def __init__(self, entries: Mapping[str, bytes]) -> None:
        self._entries: Mapping[str, bytes] = MappingProxyType(dict(entries))
        self._media_lower: Mapping[str, str] = MappingProxyType(
            {
                posixpath.basename(n).lower(): n
                for n in sorted(self._entries)
                if n.startswith(MEDIA_DIR)
            }
        )
        rels: dict[str, Mapping[str, Relationship]] = {}
        for name in self._entries:
            rels_name = rels_path_for(name)
            if rels_name in self._entries:
                rels[name] = MappingProxyType(self._parse_rels(name, rels_name))
        self._rels: Mapping[str, Mapping[str, Relationship]] = MappingProxyType(rels)

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    @classmethod
    def from_bytes(cls, data: bytes) -> "Package":
        try:
            with zipfile.ZipFile(io.BytesIO(data), "r") as zf:
                entries = {
                    info.filename.replace("\\", "/"): zf.read(info)
                    for info in zf.infolist()
                    if not info.is_dir()
                }
        except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError, OSError) as e:
            raise MalformedPackage(f"cannot open package: {e}") from e
        return cls(entries)

    @classmethod
    def open(cls, path: str | Path) -> "Package":
        p = Path(path)
        try:
            data = p.read_bytes()
        except OSError as e:
            raise MalformedPackage(f"cannot read {p}: {e}") from e
        return cls.from_bytes(data)

    # ------------------------------------------------------------------
    # entries
    # ------------------------------------------------------------------

    @property
    def names(self) -> list[str]:
        return sorted(self._entries)

    def has(self, path: str) -> bool:
        return path in self._entries

    def entry(self, path: str) -> bytes:
        try:
            return self._entries[path]
        except KeyError:
            raise EntryNotFound(path) from None

    def xml(self, path: str) -> Any:
        """Parsed root element of an XML entry."""
        return parse(self.entry(path), name=path)

    def slide_parts(self) -> list[str]:
        """Slide part names in presentation order (numeric on the embedded index)."""
        numbered: list[tuple[int, str]] = []
        for name in self._entries:
            num = slide_number(name)
            if num is not None:
                numbered.append((num, name))
        return [name for _, name in sorted(numbered)]

    # ------------------------------------------------------------------
    # relationships
    # ------------------------------------------------------------------

    def _parse_rels(self, source: str, rels_name: str) -> dict[str, Relationship]:
        out: dict[str, Relationship] = {}
        try:
            root = parse(self._entries[rels_name], name=rels_name)
        except MalformedPart as e:
            logger.warning("ignoring unreadable relationships: %s", e)
            return out
        for rel in children(root):
            if local_name(rel) != "Relationship":
                continue
            rid = attr(rel, "Id")
            target = attr(rel, "Target")
            if not rid or not target:
                continue
            external = attr(rel, "TargetMode").lower() == "external"
            out[rid] = Relationship(
                rel_id=rid,
                target=target if external else resolve_target(source, target),
                rel_type=attr(rel, "Type"),
                external=external,
            )
        return out

    def relationships_for(self, part_name: str) -> Mapping[str, Relationship]:
        """relId -> Relationship; empty when the part has no rels file."""
        return self._rels.get(part_name, MappingProxyType({}))

    def related(self, part_name: str, type_substring: str) -> str | None:
        """Target of the internal relationship whose type contains `type_substring`.

        Relationships are walked in document order and the last match wins.
        """
        found = None
        for rel in self.relationships_for(part_name).values():
            if not rel.external and type_substring in rel.rel_type:
                found = rel.target
        return found

    # ------------------------------------------------------------------
    # media
    # ------------------------------------------------------------------

    def media(self, name_or_path: str) -> MediaRef | None:
        """Media by package path or by filename (case-insensitive fallback)."""
        if name_or_path in self._entries:
            return MediaRef(
                name=posixpath.basename(name_or_path),
                data=self._entries[name_or_path],
                content_type=content_type_for(name_or_path),
            )
        filename = posixpath.basename(name_or_path)
        direct = MEDIA_DIR + filename
        if direct in self._entries:
            path = direct
        else:
            path = self._media_lower.get(filename.lower())
        if path is None:
            return None
        return MediaRef(
            name=posixpath.basename(path),
            data=self._entries[path],
            content_type=content_type_for(path),
        )

    def media_for(self, part_name: str, rel_id: str) -> MediaRef | None:
        rel = self.relationships_for(part_name).get(rel_id)
        if rel is None or rel.external:
            return None
        return self.media(rel.target)
