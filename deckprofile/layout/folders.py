"""Independent page chains for folder-type groups."""

from __future__ import annotations

from dataclasses import dataclass, field

from .catalog import GroupSegment
from .models import BuildInvariantViolation
from .packer import PackedPage, PageBinPacker


def folder_segment_label(group_name: str) -> str:
    return f"folder '{group_name}'"


@dataclass(slots=True)
class FolderChain:
    group_name: str
    pages: list[PackedPage] = field(default_factory=list)


class FolderSubPageBuilder:
    """Pack each folder group on its own, with folder-up on every sub-page."""

    def __init__(self, packer: PageBinPacker) -> None:
        self.packer = packer
        self.diagnostics: list[BuildInvariantViolation] = []

    def build(self, segment: GroupSegment) -> FolderChain:
        result = self.packer.pack(
            segment.items,
            segment=folder_segment_label(segment.group.name),
            chain_start=True,
            has_following=False,
            permanent_up=True,
        )
        self.diagnostics.extend(result.diagnostics)
        return FolderChain(group_name=segment.group.name, pages=result.pages)

    def build_all(self, segments: list[GroupSegment]) -> dict[str, FolderChain]:
        self.diagnostics = []
        return {segment.group.name: self.build(segment) for segment in segments}
