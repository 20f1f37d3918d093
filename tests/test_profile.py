import json
import zipfile
from pathlib import Path

import pytest

from deckprofile.entities import EntityRecord
from deckprofile.layout import (
    DeviceGrid,
    ExitButton,
    Group,
    LayoutRequest,
    NavigationGraph,
    Page,
    PageKind,
    build_layout,
)
from deckprofile.profile import (
    PageRecord,
    ProfileAction,
    ProfileBundle,
    SerializationError,
    action_for,
    archive_filename,
    serialize_graph,
    validate_bundle,
    write_profile_archive,
    write_profile_bundle,
)
from deckprofile.profile import writer as writer_module


def _graph(ungrouped: int = 20, folder: int = 6) -> NavigationGraph:
    loose = [EntityRecord(id=f"light.lamp_{index:02d}", display_name=f"Lamp {index:02d}") for index in range(ungrouped)]
    grouped = [EntityRecord(id=f"sensor.temp_{index:02d}") for index in range(folder)]
    request = LayoutRequest(
        profile_name="Test Deck",
        device=DeviceGrid(cols=5, rows=3),
        ungrouped=tuple(record.id for record in loose),
        groups=(Group(name="Climate", entities=tuple(record.id for record in grouped)),),
    )
    return build_layout([*loose, *grouped], request)


def _bundle() -> ProfileBundle:
    return serialize_graph(_graph(), name="Test Deck")


def test_every_jump_resolves_to_a_serialized_page() -> None:
    bundle = _bundle()

    page_ids = set(bundle.page_ids)
    assert bundle.entry_page_id in page_ids
    targets = [target for page in bundle.pages for target in page.jump_targets()]
    assert targets
    assert set(targets) <= page_ids
    validate_bundle(bundle)


def test_exit_action_appears_once_on_the_entry_page() -> None:
    bundle = _bundle()

    exits = [
        (page.id, key)
        for page in bundle.pages
        for key, action in page.cells.items()
        if action.return_to_previous
    ]
    assert exits == [(bundle.entry_page_id, "0,2")]


def test_cell_keys_and_entity_actions() -> None:
    bundle = _bundle()
    entry = next(page for page in bundle.pages if page.id == bundle.entry_page_id)

    folder = entry.cells["0,0"]
    assert folder.title == "Climate"
    assert folder.jump_to is not None
    lamp = entry.cells["1,0"]
    assert lamp.invoke == "light.lamp_00"
    assert lamp.title == "Lamp 00"
    assert lamp.color == "#FFEB3B"
    assert lamp.background == "#1C1C1C"
    assert entry.cells["4,2"].title == "Next"


def test_payload_uses_wire_names_and_skips_empty_fields() -> None:
    payload = _bundle().to_payload()

    assert "entryPageId" in payload
    entry = payload["pages"][0]
    assert entry["cells"]["0,2"] == {"returnToPrevious": True, "title": "← Back"}
    assert set(entry["cells"]["4,2"]) == {"jumpTo", "title"}


def test_long_labels_are_truncated() -> None:
    item = build_layout(
        [EntityRecord(id="light.x", display_name="Extremely Long Light Name")],
        LayoutRequest(ungrouped=("light.x",)),
    ).entry_page.entities[0]

    assert action_for(item).title == "Extremely L…"


def test_exit_off_entry_page_is_rejected() -> None:
    graph = _graph(ungrouped=3, folder=0)
    stray = Page(
        id="stray",
        kind=PageKind.OVERFLOW,
        name="Stray",
        layout=((ExitButton(),),),
    )
    broken = NavigationGraph(pages=(*graph.pages, stray), entry_page_id=graph.entry_page_id)

    with pytest.raises(ValueError):
        serialize_graph(broken, name="Broken")


def test_dangling_jump_fails_validation() -> None:
    bundle = ProfileBundle(
        name="Broken",
        entry_page_id="a",
        pages=[PageRecord(id="a", kind=PageKind.MAIN, name="Main", cells={"0,0": ProfileAction(jump_to="b")})],
    )

    with pytest.raises(SerializationError, match="unknown page 'b'"):
        validate_bundle(bundle)


def test_action_with_two_behaviours_fails_schema() -> None:
    bundle = ProfileBundle(
        name="Broken",
        entry_page_id="a",
        pages=[
            PageRecord(
                id="a",
                kind=PageKind.MAIN,
                name="Main",
                cells={"0,0": ProfileAction(invoke="light.x", jump_to="a")},
            )
        ],
    )

    with pytest.raises(SerializationError, match="invalid"):
        validate_bundle(bundle)


def test_write_bundle_directory(tmp_path: Path) -> None:
    bundle = _bundle()
    destination = tmp_path / "bundle"
    (destination / "pages").mkdir(parents=True)
    stale = destination / "pages" / "stale.json"
    stale.write_text("{}", encoding="utf-8")

    written = write_profile_bundle(bundle, destination)

    assert written[-1] == destination / "index.json"
    assert not stale.exists()
    index = json.loads((destination / "index.json").read_text(encoding="utf-8"))
    assert index["entryPageId"] == bundle.entry_page_id
    assert index["version"] == 1
    assert [entry["id"] for entry in index["pages"]] == bundle.page_ids
    for entry in index["pages"]:
        page = json.loads((destination / entry["file"]).read_text(encoding="utf-8"))
        assert page["id"] == entry["id"]


def test_failed_bundle_write_leaves_no_index(tmp_path: Path, monkeypatch) -> None:
    bundle = _bundle()
    destination = tmp_path / "bundle"
    write_profile_bundle(bundle, destination)
    assert (destination / "index.json").exists()

    original = writer_module._write_json
    calls = {"count": 0}

    def flaky_write(path: Path, payload) -> None:
        calls["count"] += 1
        if calls["count"] == 2:
            raise OSError("disk full")
        original(path, payload)

    monkeypatch.setattr(writer_module, "_write_json", flaky_write)

    with pytest.raises(SerializationError, match="disk full"):
        write_profile_bundle(bundle, destination)
    assert not (destination / "index.json").exists()


def test_failed_index_write_leaves_no_index(tmp_path: Path, monkeypatch) -> None:
    bundle = _bundle()
    destination = tmp_path / "bundle"
    write_profile_bundle(bundle, destination)

    original = writer_module._write_json

    def truncated_index(path: Path, payload) -> None:
        if "entryPageId" in payload:
            path.write_text('{"name": ', encoding="utf-8")
            raise OSError("disk full")
        original(path, payload)

    monkeypatch.setattr(writer_module, "_write_json", truncated_index)

    with pytest.raises(SerializationError, match="disk full"):
        write_profile_bundle(bundle, destination)
    assert not (destination / "index.json").exists()
    assert sorted(path.name for path in destination.iterdir()) == ["pages"]


def test_bundle_destination_that_is_a_file_fails(tmp_path: Path) -> None:
    destination = tmp_path / "occupied"
    destination.write_text("not a directory", encoding="utf-8")

    with pytest.raises(SerializationError) as excinfo:
        write_profile_bundle(_bundle(), destination)
    assert excinfo.value.path == destination


def test_write_archive(tmp_path: Path) -> None:
    bundle = _bundle()
    target = tmp_path / "out" / archive_filename(bundle.name)

    result = write_profile_archive(bundle, target)

    assert result == target
    assert target.name == "Test_Deck.deckprofile"
    with zipfile.ZipFile(target) as archive:
        names = archive.namelist()
        index = json.loads(archive.read("index.json"))
    assert names[-1] == "index.json"
    assert {f"pages/{page_id}.json" for page_id in bundle.page_ids} <= set(names)
    assert index["name"] == "Test Deck"
    assert list(target.parent.iterdir()) == [target]


def test_failed_archive_keeps_previous_file(tmp_path: Path, monkeypatch) -> None:
    bundle = _bundle()
    target = tmp_path / archive_filename(bundle.name)
    target.write_bytes(b"previous")

    def refuse(*_args, **_kwargs) -> None:
        raise OSError("read-only")

    monkeypatch.setattr(writer_module.os, "replace", refuse)

    with pytest.raises(SerializationError, match="read-only"):
        write_profile_archive(bundle, target)
    assert target.read_bytes() == b"previous"
    assert list(tmp_path.iterdir()) == [target]


def test_archive_filename_sanitizes_names() -> None:
    assert archive_filename("Living Room / Upstairs!") == "Living_Room_Upstairs.deckprofile"
    assert archive_filename("???") == "profile.deckprofile"
