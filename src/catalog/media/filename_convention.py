"""Media filename convention used by bulk uploads.

Uploaded files carry their catalog association in the name itself:

* ``<externalId>_primary.<ext>``: the primary image of ``externalId``;
* ``<externalId>_<colorGroup>_<ordinal>.<ext>``: a secondary asset in
  ``colorGroup`` at position ``ordinal``.

Anything else does not belong to any record and is skipped by callers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

PRIMARY_PATTERN = re.compile(r"([^_]+)_primary\.\w+", re.ASCII)
SECONDARY_PATTERN = re.compile(r"([^_]+)_([^_]+)_(\d+)\.\w+", re.ASCII)


@dataclass(frozen=True, slots=True)
class MediaDescriptor:
    """Decoded view of a convention-following filename."""

    external_id: str
    is_primary: bool
    color_group: str | None = None
    ordinal: int = 0

    def matches(self, external_id: str) -> bool:
        """Case-insensitive comparison against a manifest external id."""
        return self.external_id.upper() == external_id.upper()


def parse_media_filename(filename: object) -> MediaDescriptor | None:
    """Decode ``filename`` or return ``None`` when it follows neither shape."""
    if not isinstance(filename, str):
        return None

    primary = PRIMARY_PATTERN.fullmatch(filename)
    if primary:
        return MediaDescriptor(external_id=primary.group(1), is_primary=True)

    secondary = SECONDARY_PATTERN.fullmatch(filename)
    if secondary:
        return MediaDescriptor(
            external_id=secondary.group(1),
            is_primary=False,
            color_group=secondary.group(2),
            ordinal=int(secondary.group(3)),
        )
    return None


def encode_media_filename(descriptor: MediaDescriptor, extension: str) -> str:
    """Build the filename that :func:`parse_media_filename` decodes to ``descriptor``."""
    suffix = extension.lstrip(".")
    if descriptor.is_primary:
        return f"{descriptor.external_id}_primary.{suffix}"
    if descriptor.color_group is None:
        raise ValueError("secondary media requires a color group")
    if descriptor.ordinal < 0:
        raise ValueError("ordinal must be non-negative")
    return f"{descriptor.external_id}_{descriptor.color_group}_{descriptor.ordinal}.{suffix}"


__all__ = [
    "MediaDescriptor",
    "encode_media_filename",
    "parse_media_filename",
]
