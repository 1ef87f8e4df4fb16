"""Ban slot detection for one team."""

import logging
from dataclasses import dataclass, field

import numpy as np

from .color_utils import background_match
from .draft_state import UNRESOLVED_BAN
from .layout import LayoutDefinition, ScaledOffsets
from .portrait_matcher import (DEFAULT_MIN_GAP, DEFAULT_THRESHOLD,
                               PortraitLibrary, match_portrait)
from .regions import ban_region, encode_png

logger = logging.getLogger(__name__)


@dataclass
class BanSlotResult:
    index: int
    hero_name: str | None      # None = empty slot, '???' = not identified
    image: bytes | None = None  # PNG crop, kept only for unidentified slots
    distance: int | None = None
    gap: int | None = None


@dataclass
class BanDetection:
    team: str
    slots: list[BanSlotResult] = field(default_factory=list)
    locked: int = 0             # bans_locked after this pass

    @property
    def names(self) -> dict[int, str | None]:
        return {slot.index: slot.hero_name for slot in self.slots}

    @property
    def images(self) -> dict[int, bytes | None]:
        return {slot.index: slot.image for slot in self.slots}

    @property
    def distances(self) -> dict[int, int | None]:
        return {slot.index: slot.distance for slot in self.slots}


def detect_bans(screenshot: np.ndarray, offsets: ScaledOffsets,
                layout: LayoutDefinition, team: str,
                library: PortraitLibrary, game_data,
                team_banning: bool, bans_locked: int = 0,
                threshold: int = DEFAULT_THRESHOLD,
                min_gap: int = DEFAULT_MIN_GAP,
                max_color_distance: float | None = None) -> BanDetection:
    """Identify the hero in each not-yet-locked ban slot of a team.

    Locked slots are never re-read. While the team is banning nothing new
    gets locked; otherwise a confidently identified slot directly following
    the locked ones becomes locked too.
    """
    detection = BanDetection(team, locked=bans_locked)
    slot_count = len(offsets.teams[team].bans)
    background = layout.rules('ban_background')

    for index in range(bans_locked, slot_count):
        slot = ban_region(screenshot, offsets, team, index)
        if background_match(slot, background):
            detection.slots.append(BanSlotResult(index, None))
            continue

        match = match_portrait(slot, library, threshold, max_color_distance)
        if match.confident(min_gap):
            hero_name = game_data.get_hero_name(match.hero_id) or match.hero_id
            detection.slots.append(BanSlotResult(index, hero_name, None,
                                                 match.best_distance, match.gap))
            if not team_banning and detection.locked == index:
                detection.locked = index + 1
        else:
            logger.debug('%s ban %d unidentified (best=%s gap=%s)',
                         team, index, match.best_distance, match.gap)
            detection.slots.append(BanSlotResult(index, UNRESOLVED_BAN,
                                                 encode_png(slot),
                                                 match.best_distance, match.gap))
    return detection
