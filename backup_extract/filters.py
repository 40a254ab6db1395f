"""
Filter specifications for artifact extraction.

Each FilterSpec names an iOS domain, a relativePath prefix (SQL LIKE pattern),
the destination folder under the output root, and the file extensions worth
copying. This is the only place to edit when extracting more kinds of files.
"""

from dataclasses import dataclass, replace
from typing import FrozenSet, Iterable, Tuple


def _normalize_extension(ext: str) -> str:
    return ext.strip().lstrip(".")


@dataclass(frozen=True)
class FilterSpec:
    """One domain/path/extension selection and where its files go."""

    origin_domain: str  # e.g. CameraRollDomain (defined by Apple)
    path_condition: str  # LIKE pattern, e.g. Media/DCIM%
    destination_folder: str  # relative to the output root
    allowed_extensions: FrozenSet[str]  # without leading dot

    @classmethod
    def create(
        cls,
        origin_domain: str,
        path_condition: str,
        destination_folder: str,
        extensions: Iterable[str],
    ) -> "FilterSpec":
        return cls(
            origin_domain=origin_domain,
            path_condition=path_condition,
            destination_folder=destination_folder,
            allowed_extensions=frozenset(_normalize_extension(e) for e in extensions if e),
        )

    def with_case_variants(self) -> "FilterSpec":
        """
        Return a copy whose extension set holds both case variants of every entry.

        SQLite's LIKE is only case-insensitive for ASCII and that behaviour can
        be switched off per connection, so both spellings are queried explicitly.
        """
        variants = set()
        for ext in self.allowed_extensions:
            variants.add(ext.lower())
            variants.add(ext.upper())
        return replace(self, allowed_extensions=frozenset(variants))

    def sorted_extensions(self) -> Tuple[str, ...]:
        """Extensions in a stable order, for query building."""
        return tuple(sorted(self.allowed_extensions))


DEFAULT_FILTERS: Tuple[FilterSpec, ...] = (
    FilterSpec.create("CameraRollDomain", "Media/DCIM%", "camera", ["jpg", "mov"]),
    FilterSpec.create(
        "MediaDomain",
        "Library/SMS/Attachments%",
        "sms",
        [
            "jpg",
            "jpeg",
            "gif",
            "png",
            "mov",
            "mp4",
            "mpg",
            "mpeg",
            "ogg",
            "mp3",
            "m4v",
            "webm",
            "ogv",
            "avi",
            "pdf",
        ],
    ),
)
