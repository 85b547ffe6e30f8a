from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Mapping

from slidepress.core.config import ResolverConfig
from slidepress.core.package.archive import MediaRef, Package, Relationship
from slidepress.core.resolve.color import Theme, ThemeColorTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartContext:
    """What resolving one part (slide, layout or master) needs.

    Everything here is read-only except `losses`, which is created fresh for
    each slide and shared only by the parts of that slide's chain.
    """

    package: Package
    part_name: str
    theme: Theme
    colors: ThemeColorTable
    config: ResolverConfig
    losses: list[str] = field(default_factory=list, compare=False)

    @property
    def rels(self) -> Mapping[str, Relationship]:
        return self.package.relationships_for(self.part_name)

    def for_part(self, part_name: str) -> "PartContext":
        return replace(self, part_name=part_name)

    def media(self, rel_id: str) -> MediaRef | None:
        if not rel_id:
            return None
        return self.package.media_for(self.part_name, rel_id)

    def lose(self, message: str) -> None:
        entry = f"{self.part_name}: {message}"
        self.losses.append(entry)
        logger.debug("partial resolution loss: %s", entry)
