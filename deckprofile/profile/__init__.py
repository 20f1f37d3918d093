"""Profile bundle structures and writers."""

from .models import IndexEntry, PageRecord, ProfileAction, ProfileBundle, ProfileIndex
from .serializer import action_for, serialize_graph
from .writer import (
    SerializationError,
    archive_filename,
    build_index,
    validate_bundle,
    write_profile_archive,
    write_profile_bundle,
)

__all__ = [
    "IndexEntry",
    "PageRecord",
    "ProfileAction",
    "ProfileBundle",
    "ProfileIndex",
    "SerializationError",
    "action_for",
    "archive_filename",
    "build_index",
    "serialize_graph",
    "validate_bundle",
    "write_profile_archive",
    "write_profile_bundle",
]
