"""Known deck models and their button grids."""

from __future__ import annotations

from dataclasses import dataclass

from .layout.models import DeviceGrid

DEFAULT_MODEL = "StreamDeck"

# numeric device type reported by the deck SDK
DEVICE_TYPE_TO_MODEL: dict[int, str] = {
    0: "StreamDeck",
    1: "StreamDeckMini",
    2: "StreamDeckXL",
    3: "StreamDeckMobile",
    5: "StreamDeckPedal",
    7: "StreamDeckPlus",
    9: "StreamDeckNeo",
}


@dataclass(frozen=True, slots=True)
class DevicePreset:
    model: str
    name: str
    cols: int
    rows: int

    @property
    def grid(self) -> DeviceGrid:
        return DeviceGrid(cols=self.cols, rows=self.rows)


DEVICE_PRESETS: dict[str, DevicePreset] = {
    preset.model: preset
    for preset in (
        DevicePreset(model="StreamDeckMini", name="Mini (3x2)", cols=3, rows=2),
        DevicePreset(model="StreamDeck", name="Standard (5x3)", cols=5, rows=3),
        DevicePreset(model="StreamDeckXL", name="XL (8x4)", cols=8, rows=4),
        DevicePreset(model="StreamDeckPlus", name="+ (4x2)", cols=4, rows=2),
        DevicePreset(model="StreamDeckNeo", name="Neo (4x2)", cols=4, rows=2),
    )
}


def model_for_type(device_type: int) -> str:
    return DEVICE_TYPE_TO_MODEL.get(device_type, DEFAULT_MODEL)


def find_preset(name: str) -> DevicePreset | None:
    """Look up a preset by model name, case-insensitively."""
    wanted = name.strip().lower()
    for model, preset in DEVICE_PRESETS.items():
        if model.lower() == wanted:
            return preset
    return None
