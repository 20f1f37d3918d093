"""Guided setup as a finite-state machine.

The wizard's state is an immutable :class:`WizardState`; user actions are
event objects; :func:`transition` maps ``(state, event)`` to the next state
without side effects. Rendering is left to whichever UI drives it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional, Union

from .entities import EntityRecord, format_domain_name, tag_entities
from .layout.models import DisplayType, Group

UNASSIGNED_AREA = "__unassigned__"


class WizardStep(str, Enum):
    WELCOME = "welcome"
    APPROACH = "approach"
    GROUP_TYPE = "group-type"
    GROUP_FILTER = "group-filter"
    GROUP_ENTITIES = "group-entities"
    GROUP_NAME = "group-name"
    GROUP_COMPLETE = "group-complete"
    SIMPLE_ENTITIES = "simple-entities"
    LAYOUT = "layout"
    CONFIRM = "confirm"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class Approach(str, Enum):
    GROUPS = "groups"
    SIMPLE = "simple"


class GroupType(str, Enum):
    AREA = "area"
    DOMAIN = "domain"
    CUSTOM = "custom"


class LayoutStyle(str, Enum):
    FOLDERS = "groups-as-folders"
    PAGES = "groups-as-pages"
    FLAT = "flat"


@dataclass(frozen=True, slots=True)
class DraftGroup:
    name: str
    entities: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class WizardState:
    step: WizardStep = WizardStep.WELCOME
    approach: Approach = Approach.GROUPS
    group_type: GroupType = GroupType.AREA
    group_filter: Optional[str] = None
    current_entities: tuple[str, ...] = ()
    current_name: str = ""
    groups: tuple[DraftGroup, ...] = ()
    simple_entities: tuple[str, ...] = ()
    layout_style: LayoutStyle = LayoutStyle.FOLDERS
    error: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.step in (WizardStep.FINISHED, WizardStep.CANCELLED)


@dataclass(frozen=True, slots=True)
class Next:
    pass


@dataclass(frozen=True, slots=True)
class Back:
    pass


@dataclass(frozen=True, slots=True)
class Cancel:
    pass


@dataclass(frozen=True, slots=True)
class Choose:
    option: str


@dataclass(frozen=True, slots=True)
class ToggleEntity:
    entity_id: str


@dataclass(frozen=True, slots=True)
class SetGroupName:
    name: str


WizardEvent = Union[Next, Back, Cancel, Choose, ToggleEntity, SetGroupName]


def transition(state: WizardState, event: WizardEvent) -> WizardState:
    """Return the state that follows ``event``; invalid input sets ``error``."""
    if state.done:
        return state
    state = replace(state, error=None)
    if isinstance(event, Cancel):
        return replace(state, step=WizardStep.CANCELLED)
    if isinstance(event, Back):
        return _back(state)
    if isinstance(event, Next):
        return _next(state)
    if isinstance(event, Choose):
        return _choose(state, event.option)
    if isinstance(event, ToggleEntity):
        return _toggle(state, event.entity_id)
    if isinstance(event, SetGroupName):
        if state.step is not WizardStep.GROUP_NAME:
            return replace(state, error="A group name can only be set while naming a group")
        return replace(state, current_name=event.name)
    raise TypeError(f"Unsupported wizard event: {event!r}")


def _next(state: WizardState) -> WizardState:
    step = state.step
    if step is WizardStep.WELCOME:
        return replace(state, step=WizardStep.APPROACH)
    if step is WizardStep.APPROACH:
        target = WizardStep.GROUP_TYPE if state.approach is Approach.GROUPS else WizardStep.SIMPLE_ENTITIES
        return replace(state, step=target)
    if step is WizardStep.GROUP_TYPE:
        if state.group_type is GroupType.CUSTOM:
            return replace(state, step=WizardStep.GROUP_ENTITIES, group_filter=None, current_name="")
        return replace(state, step=WizardStep.GROUP_FILTER)
    if step is WizardStep.GROUP_FILTER:
        if not state.group_filter:
            return replace(state, error="Please select an option")
        return replace(state, step=WizardStep.GROUP_ENTITIES)
    if step is WizardStep.GROUP_ENTITIES:
        if not state.current_entities:
            return replace(state, error="Please select at least one entity")
        return replace(state, step=WizardStep.GROUP_NAME)
    if step is WizardStep.GROUP_NAME:
        name = state.current_name.strip()
        if not name:
            return replace(state, error="Please enter a group name")
        return replace(
            state,
            step=WizardStep.GROUP_COMPLETE,
            groups=(*state.groups, DraftGroup(name=name, entities=state.current_entities)),
            current_entities=(),
            current_name="",
            group_filter=None,
        )
    if step is WizardStep.GROUP_COMPLETE:
        return replace(state, error="Choose 'another' or 'done'")
    if step is WizardStep.SIMPLE_ENTITIES:
        if not state.simple_entities:
            return replace(state, error="Please select at least one entity")
        return replace(state, step=WizardStep.LAYOUT)
    if step is WizardStep.LAYOUT:
        return replace(state, step=WizardStep.CONFIRM)
    if step is WizardStep.CONFIRM:
        return replace(state, step=WizardStep.FINISHED)
    return state


def _back(state: WizardState) -> WizardState:
    step = state.step
    if step is WizardStep.WELCOME:
        return replace(state, step=WizardStep.CANCELLED)
    if step is WizardStep.GROUP_ENTITIES:
        target = WizardStep.GROUP_TYPE if state.group_type is GroupType.CUSTOM else WizardStep.GROUP_FILTER
        return replace(state, step=target)
    if step is WizardStep.GROUP_COMPLETE and state.groups:
        # reopen the group that was just saved
        last = state.groups[-1]
        return replace(
            state,
            step=WizardStep.GROUP_NAME,
            groups=state.groups[:-1],
            current_entities=last.entities,
            current_name=last.name,
        )
    if step is WizardStep.LAYOUT:
        target = WizardStep.SIMPLE_ENTITIES if state.approach is Approach.SIMPLE else WizardStep.GROUP_COMPLETE
        return replace(state, step=target)
    return replace(state, step=_BACK_STEPS.get(step, step))


_BACK_STEPS: dict[WizardStep, WizardStep] = {
    WizardStep.APPROACH: WizardStep.WELCOME,
    WizardStep.GROUP_TYPE: WizardStep.APPROACH,
    WizardStep.GROUP_FILTER: WizardStep.GROUP_TYPE,
    WizardStep.GROUP_NAME: WizardStep.GROUP_ENTITIES,
    WizardStep.GROUP_COMPLETE: WizardStep.GROUP_NAME,
    WizardStep.SIMPLE_ENTITIES: WizardStep.APPROACH,
    WizardStep.CONFIRM: WizardStep.LAYOUT,
}


def _choose(state: WizardState, option: str) -> WizardState:
    step = state.step
    try:
        if step is WizardStep.APPROACH:
            return replace(state, approach=Approach(option))
        if step is WizardStep.GROUP_TYPE:
            return replace(state, group_type=GroupType(option), group_filter=None)
        if step is WizardStep.LAYOUT:
            return replace(state, layout_style=LayoutStyle(option))
    except ValueError:
        return replace(state, error=f"Unknown option '{option}'")

    if step is WizardStep.GROUP_FILTER:
        return replace(state, group_filter=option, current_name=_suggest_name(state.group_type, option))
    if step is WizardStep.GROUP_COMPLETE:
        if option == "another":
            return replace(state, step=WizardStep.GROUP_TYPE)
        if option == "done":
            return replace(state, step=WizardStep.LAYOUT)
        return replace(state, error=f"Unknown option '{option}'")
    return replace(state, error=f"Nothing to choose on step '{step.value}'")


def _toggle(state: WizardState, entity_id: str) -> WizardState:
    if state.step is WizardStep.GROUP_ENTITIES:
        return replace(state, current_entities=_toggled(state.current_entities, entity_id))
    if state.step is WizardStep.SIMPLE_ENTITIES:
        return replace(state, simple_entities=_toggled(state.simple_entities, entity_id))
    return replace(state, error=f"Entities cannot be selected on step '{state.step.value}'")


def _toggled(values: tuple[str, ...], item: str) -> tuple[str, ...]:
    if item in values:
        return tuple(value for value in values if value != item)
    return (*values, item)


def _suggest_name(group_type: GroupType, option: str) -> str:
    if group_type is GroupType.DOMAIN:
        return format_domain_name(option)
    if option == UNASSIGNED_AREA:
        return "Unassigned"
    return option


def filter_options(state: WizardState, entities: Iterable[EntityRecord]) -> list[str]:
    """Areas or domains offered on the group-filter step."""
    records = list(entities)
    if state.group_type is GroupType.AREA:
        areas = sorted({record.area for record in records if record.area})
        if any(not record.area for record in records):
            areas.append(UNASSIGNED_AREA)
        return areas
    if state.group_type is GroupType.DOMAIN:
        return sorted({record.domain for record in records})
    return []


def candidate_entities(state: WizardState, entities: Iterable[EntityRecord]) -> list[EntityRecord]:
    """Entities offered on the group-entities step."""
    records = list(entities)
    if state.group_type is GroupType.CUSTOM:
        return records
    if not state.group_filter:
        return []
    if state.group_type is GroupType.AREA:
        if state.group_filter == UNASSIGNED_AREA:
            return [record for record in records if not record.area]
        return [record for record in records if record.area == state.group_filter]
    return [record for record in records if record.domain == state.group_filter]


_DISPLAY_TYPES = {
    LayoutStyle.FOLDERS: DisplayType.FOLDER,
    LayoutStyle.PAGES: DisplayType.PAGE,
    LayoutStyle.FLAT: DisplayType.FLAT,
}


def wizard_groups(state: WizardState, entities: Iterable[EntityRecord]) -> list[Group]:
    """Turn a finished wizard into layout groups."""
    if state.step is not WizardStep.FINISHED:
        raise ValueError(f"Wizard is not finished (at '{state.step.value}')")
    display_type = _DISPLAY_TYPES[state.layout_style]

    if state.approach is Approach.GROUPS:
        return [
            Group(name=draft.name, entities=draft.entities, display_type=display_type)
            for draft in state.groups
        ]

    areas = {record.id: record.area for record in entities}
    by_area: dict[str, list[str]] = {}
    for entity_id in state.simple_entities:
        if entity_id not in areas:
            continue
        by_area.setdefault(areas[entity_id] or "Other", []).append(entity_id)
    return [
        Group(name=name, entities=tuple(entity_ids), display_type=display_type)
        for name, entity_ids in by_area.items()
    ]



def wizard_membership_tags(state: WizardState, entities: Iterable[EntityRecord]) -> list[EntityRecord]:
    """Entities with membership tags for the groups of a finished wizard.

    Persisting these lets a later build restore the groups through
    ``use_membership_tags``.
    """
    records = list(entities)
    return tag_entities(records, wizard_groups(state, records))

@dataclass(slots=True)
class WizardSession:
    """Convenience holder that replays events and keeps the history."""

    state: WizardState = field(default_factory=WizardState)
    history: list[WizardState] = field(default_factory=list)

    def send(self, *events: WizardEvent) -> WizardState:
        for event in events:
            self.history.append(self.state)
            self.state = transition(self.state, event)
        return self.state
