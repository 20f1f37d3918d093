"""Persistence helpers for profile bundles."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import zipfile
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from .models import IndexEntry, ProfileBundle, ProfileIndex

logger = logging.getLogger(__name__)

SCHEMA_PACKAGE = "deckprofile.schemas"
BUNDLE_SCHEMA_NAME = "profile_bundle.schema.json"
INDEX_FILENAME = "index.json"
PAGES_DIRNAME = "pages"
ARCHIVE_SUFFIX = ".deckprofile"


class SerializationError(RuntimeError):
    """Raised when a bundle cannot be written completely."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


def validate_bundle(bundle: ProfileBundle) -> None:
    """Check the bundle against the packaged schema and its own page references."""
    payload = bundle.to_payload()
    errors = sorted(_get_bundle_validator().iter_errors(payload), key=lambda err: list(err.path))
    if errors:
        first = errors[0]
        pointer = "/".join(str(elem) for elem in first.path)
        message = f"Profile bundle is invalid: {first.message}"
        if pointer:
            message += f" (at {pointer})"
        raise SerializationError(message)

    known = set(bundle.page_ids)
    if bundle.entry_page_id not in known:
        raise SerializationError(f"Entry page '{bundle.entry_page_id}' is not part of the bundle.")
    for page in bundle.pages:
        for target in page.jump_targets():
            if target not in known:
                raise SerializationError(f"Page '{page.id}' jumps to unknown page '{target}'.")


def build_index(bundle: ProfileBundle) -> ProfileIndex:
    return ProfileIndex(
        name=bundle.name,
        entry_page_id=bundle.entry_page_id,
        pages=[
            IndexEntry(id=page.id, kind=page.kind, name=page.name, file=_page_member(page.id))
            for page in bundle.pages
        ],
    )


def write_profile_bundle(bundle: ProfileBundle, destination: Path) -> list[Path]:
    """Write one JSON file per page, then the index.

    Any index left from an earlier build is removed first and the new one is
    moved into place only once fully written, so a failure part way through
    leaves a directory without an index.
    """
    validate_bundle(bundle)
    index_path = destination / INDEX_FILENAME
    pages_dir = destination / PAGES_DIRNAME
    written: list[Path] = []
    try:
        destination.mkdir(parents=True, exist_ok=True)
        index_path.unlink(missing_ok=True)
        pages_dir.mkdir(parents=True, exist_ok=True)
        existing_files = {path for path in pages_dir.glob("*.json")}

        for page in bundle.pages:
            path = destination / _page_member(page.id)
            _write_json(path, page.model_dump(mode="json", by_alias=True, exclude_none=True))
            written.append(path)
            existing_files.discard(path)

        for leftover in existing_files:
            leftover.unlink(missing_ok=True)

        _replace_json(index_path, build_index(bundle).model_dump(mode="json", by_alias=True))
        written.append(index_path)
    except OSError as exc:
        logger.warning("Writing profile bundle to %s failed: %s", destination, exc)
        raise SerializationError(f"Unable to write profile bundle: {exc}", path=destination) from exc
    return written


def write_profile_archive(bundle: ProfileBundle, path: Path) -> Path:
    """Write the bundle as a zip archive, replacing ``path`` only on success."""
    validate_bundle(bundle)
    temp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handle, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".partial")
        os.close(handle)
        temp_path = Path(temp_name)
        with zipfile.ZipFile(temp_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for page in bundle.pages:
                archive.writestr(
                    _page_member(page.id),
                    _dumps(page.model_dump(mode="json", by_alias=True, exclude_none=True)),
                )
            archive.writestr(INDEX_FILENAME, _dumps(build_index(bundle).model_dump(mode="json", by_alias=True)))
        os.replace(temp_path, path)
    except (OSError, zipfile.BadZipFile) as exc:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        logger.warning("Writing profile archive %s failed: %s", path, exc)
        raise SerializationError(f"Unable to write profile archive: {exc}", path=path) from exc
    return path


def archive_filename(name: str) -> str:
    safe = re.sub(r"[^a-zA-Z0-9\s-]", "", name).strip()
    safe = re.sub(r"\s+", "_", safe) or "profile"
    return f"{safe}{ARCHIVE_SUFFIX}"


def _page_member(page_id: str) -> str:
    return f"{PAGES_DIRNAME}/{page_id}.json"


def _dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _write_json(path: Path, payload: Any) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, ensure_ascii=False, indent=2)


def _replace_json(path: Path, payload: Any) -> None:
    """Write ``path`` through a sibling temp file so it never exists half-written."""
    handle, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".partial")
    os.close(handle)
    temp_path = Path(temp_name)
    try:
        _write_json(temp_path, payload)
        os.replace(temp_path, path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise


@lru_cache(maxsize=1)
def _get_bundle_validator() -> Draft202012Validator:
    schema_text = resources.files(SCHEMA_PACKAGE).joinpath(BUNDLE_SCHEMA_NAME).read_text(encoding="utf-8")
    return Draft202012Validator(json.loads(schema_text))
