"""Classroom material variants as a tagged union.

The backend returns each coursework/announcement material as an object
carrying one (or, rarely, several) of ``driveFile``, ``link``,
``youtubeVideo``, ``form``. ``parse_material`` normalises each into the
variants below, checked in that order:

1. ``driveFile``: the payload is either ``{"driveFile": {"driveFile": {...}}}``
   (nested) or ``{"driveFile": {...}}`` (flat); nested wins. Title falls
   back to ``name``, url from ``alternateLink`` to ``webViewLink``.
2. ``link``: title falls back to the url.
3. ``youtubeVideo``
4. ``form``: url is ``formUrl``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Annotated, Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Material(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class DriveFileMaterial(_Material):
    type: Literal["drive_file"] = "drive_file"
    id: str | None = None
    title: str | None = None
    url: str | None = None
    mimeType: str | None = None


class LinkMaterial(_Material):
    type: Literal["link"] = "link"
    url: str | None = None
    title: str | None = None


class YouTubeMaterial(_Material):
    type: Literal["youtube"] = "youtube"
    id: str | None = None
    title: str | None = None
    url: str | None = None


class FormMaterial(_Material):
    type: Literal["form"] = "form"
    id: str | None = None
    title: str | None = None
    url: str | None = None


Material: TypeAlias = Annotated[
    DriveFileMaterial | LinkMaterial | YouTubeMaterial | FormMaterial,
    Field(discriminator="type"),
]

MaterialList = TypeAdapter(list[Material])


def _first(*values: Any) -> Any:
    """First truthy value, else None."""
    return next((v for v in values if v), None)


def _drive_file(drive_file: Mapping[str, Any]) -> DriveFileMaterial:
    nested = drive_file.get("driveFile")
    data = nested if isinstance(nested, Mapping) else drive_file
    return DriveFileMaterial(
        id=data.get("id"),
        title=_first(data.get("title"), data.get("name")),
        url=_first(data.get("alternateLink"), data.get("webViewLink")),
        mimeType=data.get("mimeType"),
    )


def parse_material(raw: Mapping[str, Any]) -> list[Material]:
    """Normalise one raw material into zero or more tagged variants."""
    out: list[Material] = []
    if drive := raw.get("driveFile"):
        out.append(_drive_file(drive))
    if link := raw.get("link"):
        out.append(LinkMaterial(url=link.get("url"), title=_first(link.get("title"), link.get("url"))))
    if video := raw.get("youtubeVideo"):
        out.append(YouTubeMaterial(id=video.get("id"), title=video.get("title"), url=video.get("alternateLink")))
    if form := raw.get("form"):
        out.append(FormMaterial(id=form.get("id"), title=form.get("title"), url=form.get("formUrl")))
    return out


def parse_materials(raws: Iterable[Mapping[str, Any]] | None) -> list[Material]:
    return [m for raw in raws or () for m in parse_material(raw)]


def dump_materials(materials: list[Material]) -> list[dict[str, Any]]:
    """JSON-ready dicts; unset optional fields are dropped."""
    return MaterialList.dump_python(materials, mode="json", exclude_none=True)


def _bullet(kind: str, label: str | None) -> str:
    return f"  - {kind}: {label}" if label else f"  - {kind}"


def _detail(label: str, value: str | None) -> list[str]:
    return [f"    {label}: {value}"] if value else []


def render_material_lines(material: Material) -> list[str]:
    """Indented bullet lines used by the coursework detail report; absent fields are left out."""
    match material:
        case DriveFileMaterial():
            return [
                _bullet("Drive File", material.title),
                *_detail("ID", material.id),
                *_detail("Link", material.url),
            ]
        case LinkMaterial():
            title = material.title if material.title != material.url else None
            return [_bullet("Link", material.url), *_detail("Title", title)]
        case YouTubeMaterial():
            return [_bullet("YouTube", material.title), *_detail("Link", material.url)]
        case FormMaterial():
            return [_bullet("Form", material.title), *_detail("Link", material.url)]
    return []


def render_material_summary(material: Material) -> str | None:
    """One-line summary used in announcement listings (forms are not listed)."""
    match material:
        case DriveFileMaterial():
            return _bullet("Drive File", material.title)
        case LinkMaterial():
            line = _bullet("Link", material.url)
            return f"{line} ({material.title})" if material.title else line
        case YouTubeMaterial():
            return _bullet("YouTube", material.title)
    return None
