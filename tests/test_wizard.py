from __future__ import annotations

import pytest

from deckprofile.entities import EntityRecord, groups_from_membership_tags
from deckprofile.layout import DisplayType
from deckprofile.wizard import (
    UNASSIGNED_AREA,
    Back,
    Cancel,
    Choose,
    Next,
    SetGroupName,
    ToggleEntity,
    WizardSession,
    WizardState,
    WizardStep,
    candidate_entities,
    filter_options,
    transition,
    wizard_groups,
    wizard_membership_tags,
)

ENTITIES = [
    EntityRecord(id="light.kitchen", area="Kitchen"),
    EntityRecord(id="switch.kettle", area="Kitchen"),
    EntityRecord(id="light.bedroom", area="Bedroom"),
    EntityRecord(id="sensor.outdoor"),
]


def test_group_flow_produces_named_groups() -> None:
    session = WizardSession()

    state = session.send(
        Next(),
        Choose("groups"),
        Next(),
        Choose("area"),
        Next(),
        Choose("Kitchen"),
        Next(),
        ToggleEntity("light.kitchen"),
        ToggleEntity("switch.kettle"),
        Next(),
    )
    assert state.step is WizardStep.GROUP_NAME
    assert state.current_name == "Kitchen"

    state = session.send(Next(), Choose("done"), Choose("groups-as-pages"), Next(), Next())

    assert state.step is WizardStep.FINISHED
    assert state.done
    (group,) = wizard_groups(state, ENTITIES)
    assert group.name == "Kitchen"
    assert group.entities == ("light.kitchen", "switch.kettle")
    assert group.display_type is DisplayType.PAGE


def test_custom_groups_skip_the_filter_step() -> None:
    session = WizardSession()

    state = session.send(Next(), Next(), Choose("custom"), Next())

    assert state.step is WizardStep.GROUP_ENTITIES
    assert candidate_entities(state, ENTITIES) == ENTITIES
    assert session.send(Back()).step is WizardStep.GROUP_TYPE


def test_validation_errors_keep_the_step() -> None:
    state = WizardState(step=WizardStep.GROUP_FILTER)
    state = transition(state, Next())
    assert state.step is WizardStep.GROUP_FILTER
    assert state.error == "Please select an option"

    state = transition(WizardState(step=WizardStep.GROUP_ENTITIES), Next())
    assert state.error == "Please select at least one entity"

    state = transition(WizardState(step=WizardStep.GROUP_NAME, current_name="   "), Next())
    assert state.error == "Please enter a group name"

    state = transition(WizardState(step=WizardStep.APPROACH), Choose("sideways"))
    assert state.error == "Unknown option 'sideways'"

    # the next valid event clears the error
    assert transition(state, Choose("simple")).error is None


def test_back_from_group_complete_reopens_last_group() -> None:
    session = WizardSession()
    session.send(
        Next(),
        Next(),
        Choose("custom"),
        Next(),
        ToggleEntity("light.bedroom"),
        Next(),
        SetGroupName("Sleep"),
        Next(),
    )
    assert session.state.step is WizardStep.GROUP_COMPLETE
    assert len(session.state.groups) == 1

    state = session.send(Back())

    assert state.step is WizardStep.GROUP_NAME
    assert state.groups == ()
    assert state.current_name == "Sleep"
    assert state.current_entities == ("light.bedroom",)


def test_toggle_deselects_and_rejects_wrong_step() -> None:
    state = WizardState(step=WizardStep.SIMPLE_ENTITIES)
    state = transition(state, ToggleEntity("light.kitchen"))
    state = transition(state, ToggleEntity("light.kitchen"))
    assert state.simple_entities == ()

    state = transition(WizardState(), ToggleEntity("light.kitchen"))
    assert state.error is not None


def test_simple_flow_groups_by_area() -> None:
    session = WizardSession()
    state = session.send(
        Next(),
        Choose("simple"),
        Next(),
        ToggleEntity("light.bedroom"),
        ToggleEntity("sensor.outdoor"),
        ToggleEntity("light.kitchen"),
        Next(),
        Choose("flat"),
        Next(),
        Next(),
    )

    groups = wizard_groups(state, ENTITIES)

    assert [(group.name, group.entities) for group in groups] == [
        ("Bedroom", ("light.bedroom",)),
        ("Other", ("sensor.outdoor",)),
        ("Kitchen", ("light.kitchen",)),
    ]
    assert {group.display_type for group in groups} == {DisplayType.FLAT}


def test_filter_options_and_candidates() -> None:
    area_state = WizardState(step=WizardStep.GROUP_FILTER)
    assert filter_options(area_state, ENTITIES) == ["Bedroom", "Kitchen", UNASSIGNED_AREA]

    unassigned = transition(area_state, Choose(UNASSIGNED_AREA))
    assert unassigned.current_name == "Unassigned"
    assert [record.id for record in candidate_entities(unassigned, ENTITIES)] == ["sensor.outdoor"]

    domain_state = transition(
        transition(WizardState(step=WizardStep.GROUP_TYPE), Choose("domain")),
        Next(),
    )
    assert filter_options(domain_state, ENTITIES) == ["light", "sensor", "switch"]
    lights = transition(domain_state, Choose("light"))
    assert lights.current_name == "Lights"
    assert [record.id for record in candidate_entities(lights, ENTITIES)] == ["light.kitchen", "light.bedroom"]


def test_cancel_and_unfinished_wizard() -> None:
    state = transition(WizardState(step=WizardStep.LAYOUT), Cancel())
    assert state.step is WizardStep.CANCELLED
    assert transition(state, Next()) is state
    assert transition(WizardState(), Back()).step is WizardStep.CANCELLED

    with pytest.raises(ValueError):
        wizard_groups(WizardState(step=WizardStep.CONFIRM), ENTITIES)


def test_finished_wizard_tags_grouped_entities() -> None:
    session = WizardSession()
    state = session.send(
        Next(),
        Next(),
        Choose("custom"),
        Next(),
        ToggleEntity("light.bedroom"),
        ToggleEntity("light.kitchen"),
        Next(),
        SetGroupName("Night Lights"),
        Next(),
        Choose("done"),
        Next(),
        Next(),
    )

    tagged = wizard_membership_tags(state, ENTITIES)

    assert {record.id: record.membership_tag for record in tagged} == {
        "light.kitchen": "deck-assistant:night_lights",
        "switch.kettle": None,
        "light.bedroom": "deck-assistant:night_lights",
        "sensor.outdoor": None,
    }
    (group,) = groups_from_membership_tags(tagged)
    assert group.name == "Night Lights"
    assert set(group.entities) == {"light.bedroom", "light.kitchen"}
