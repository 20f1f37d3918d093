import pytest

from deckprofile.entities import EntityRecord
from deckprofile.layout import (
    Category,
    ConfigurationError,
    ContentCatalog,
    DeviceGrid,
    DisplayType,
    EntityItem,
    FolderButton,
    Group,
    LayoutRequest,
    SortMode,
    Style,
    classify_domain,
    sort_entities,
)


def _record(entity_id: str, name: str | None = None, **extra) -> EntityRecord:
    return EntityRecord(id=entity_id, display_name=name, **extra)


ENTITIES = [
    _record("light.kitchen", "Kitchen Light", area="Kitchen", floor="Ground"),
    _record("light.bedroom", "Bedroom Light", area="Bedroom", floor="Upstairs"),
    _record("sensor.outdoor", "Outdoor Temp"),
    _record("scene.movie", "Movie Night", area="Living Room", floor="Ground"),
    _record("switch.fan", "Attic Fan", area="Attic", floor="Upstairs"),
    _record("lock.front", "Front Door", area="Hall", floor="Ground"),
]


def _ids(items) -> list[str]:
    return [item.entity_id for item in items if isinstance(item, EntityItem)]


def test_initial_segment_orders_folders_then_flat_then_ungrouped() -> None:
    request = LayoutRequest(
        groups=(
            Group(name="Bedroom", entities=("light.bedroom",)),
            Group(name="Security", entities=("lock.front",), display_type=DisplayType.FLAT),
            Group(name="Living", entities=("scene.movie",)),
        ),
        ungrouped=("switch.fan", "light.kitchen"),
        sort_mode=SortMode.ALPHABETICAL,
    )

    catalog = ContentCatalog(ENTITIES, request).resolve()

    assert [item.group_name for item in catalog.initial if isinstance(item, FolderButton)] == ["Bedroom", "Living"]
    assert isinstance(catalog.initial[0], FolderButton)
    assert isinstance(catalog.initial[1], FolderButton)
    assert _ids(catalog.initial) == ["lock.front", "switch.fan", "light.kitchen"]
    assert [segment.group.name for segment in catalog.folder_segments] == ["Bedroom", "Living"]
    assert catalog.entity_count == 5


def test_page_groups_get_their_own_segment() -> None:
    request = LayoutRequest(
        groups=(Group(name="Kitchen", entities=("light.kitchen",), display_type=DisplayType.PAGE),),
        ungrouped=("sensor.outdoor",),
    )

    catalog = ContentCatalog(ENTITIES, request).resolve()

    assert _ids(catalog.initial) == ["sensor.outdoor"]
    assert [segment.group.name for segment in catalog.page_segments] == ["Kitchen"]
    assert _ids(catalog.page_segments[0].items) == ["light.kitchen"]


def test_unknown_and_already_grouped_entities_are_skipped() -> None:
    request = LayoutRequest(
        groups=(Group(name="Kitchen", entities=("light.kitchen", "light.missing")),),
        ungrouped=("light.kitchen", "sensor.outdoor", "sensor.gone", "sensor.outdoor"),
    )

    catalog = ContentCatalog(ENTITIES, request).resolve()

    assert catalog.skipped == ["light.missing", "sensor.gone"]
    assert _ids(catalog.initial) == ["sensor.outdoor"]
    assert _ids(catalog.folder_segments[0].items) == ["light.kitchen"]


def test_groups_without_known_entities_are_dropped() -> None:
    request = LayoutRequest(groups=(Group(name="Empty", entities=("light.nowhere",)),))

    catalog = ContentCatalog(ENTITIES, request).resolve()

    assert catalog.initial == []
    assert catalog.folder_segments == []


def test_styles_pick_accent_by_category_and_resolve_palette_names() -> None:
    request = LayoutRequest(
        groups=(Group(name="Mixed", entities=("light.kitchen", "sensor.outdoor", "scene.movie"), style="night"),),
        palette={"amber": "#ffbf00"},
        styles={
            "ungrouped": Style(),
            "night": Style(controllable_color="amber", informational_color="#abc", background_color="#000000"),
        },
    )

    catalog = ContentCatalog(ENTITIES, request).resolve()
    light, sensor, scene = catalog.folder_segments[0].items

    assert light.style.category is Category.CONTROLLABLE
    assert light.style.accent_color == "#FFBF00"
    assert sensor.style.category is Category.INFORMATIONAL
    assert sensor.style.accent_color == "#ABC"
    assert scene.style.category is Category.TRIGGER
    assert scene.style.accent_color == "#FF5722"
    assert {item.style.background_color for item in (light, sensor, scene)} == {"#000000"}
    assert {item.style.style_name for item in (light, sensor, scene)} == {"night"}


def test_unknown_domains_are_informational() -> None:
    assert classify_domain("light") is Category.CONTROLLABLE
    assert classify_domain("script") is Category.TRIGGER
    assert classify_domain("binary_sensor") is Category.INFORMATIONAL
    assert classify_domain("some_custom_domain") is Category.INFORMATIONAL


def test_sort_modes() -> None:
    records = [
        _record("switch.fan", "Attic Fan", area="Attic", floor="Upstairs"),
        _record("sensor.outdoor", "Outdoor Temp"),
        _record("light.kitchen", "kitchen light", area="Kitchen", floor="Ground"),
        _record("light.bedroom", "Bedroom Light", area="Bedroom", floor="Upstairs"),
    ]

    def ids(mode: SortMode, manual=()) -> list[str]:
        return [record.id for record in sort_entities(records, mode, manual)]

    assert ids(SortMode.SELECTION) == ["switch.fan", "sensor.outdoor", "light.kitchen", "light.bedroom"]
    assert ids(SortMode.ALPHABETICAL) == ["switch.fan", "light.bedroom", "light.kitchen", "sensor.outdoor"]
    assert ids(SortMode.DOMAIN) == ["light.bedroom", "light.kitchen", "sensor.outdoor", "switch.fan"]
    assert ids(SortMode.AREA) == ["switch.fan", "light.bedroom", "light.kitchen", "sensor.outdoor"]
    assert ids(SortMode.FLOOR) == ["light.kitchen", "switch.fan", "light.bedroom", "sensor.outdoor"]
    assert ids(SortMode.MANUAL, ["light.kitchen", "switch.fan"]) == [
        "light.kitchen",
        "switch.fan",
        "sensor.outdoor",
        "light.bedroom",
    ]


@pytest.mark.parametrize(
    ("request_kwargs", "field"),
    [
        ({"device": DeviceGrid(cols=0, rows=3)}, "device"),
        ({"styles": {"ungrouped": Style(trigger_color="not-a-color")}}, "styles.ungrouped.trigger_color"),
        ({"ungrouped_style": "missing"}, "ungrouped_style"),
        ({"groups": (Group(name="A"), Group(name="A"))}, "groups"),
        ({"groups": (Group(name="A", style="missing"),)}, "groups"),
        (
            {
                "groups": (
                    Group(name="A", entities=("light.kitchen",)),
                    Group(name="B", entities=("light.kitchen",)),
                )
            },
            "groups",
        ),
    ],
)
def test_invalid_requests_raise_configuration_error(request_kwargs, field) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        ContentCatalog(ENTITIES, LayoutRequest(**request_kwargs))

    assert excinfo.value.field == field


def test_repeated_entity_inside_one_group_is_accepted() -> None:
    request = LayoutRequest(groups=(Group(name="A", entities=("light.kitchen", "light.kitchen")),))

    catalog = ContentCatalog(ENTITIES, request).resolve()

    assert _ids(catalog.folder_segments[0].items) == ["light.kitchen"]
