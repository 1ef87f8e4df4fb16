"""Pick/ban phase detection from the draft timer.

The timer is drawn in the acting team's color while picking, and in a
shared ban color while either team bans. During bans, the banning team is
found by counting sample points that show the ban-active indicator in each
team's ban-check strip.
"""

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .color_utils import ban_check_points, count_sample_matches, find_any_match
from .errors import PhaseDetectionError
from .layout import LayoutDefinition, ScaledOffsets
from .regions import ban_check_region, timer_region

logger = logging.getLogger(__name__)


class Phase(Enum):
    BLUE_PICKING = 'blue-picking'
    RED_PICKING = 'red-picking'
    BANNING_BLUE = 'banning-blue'
    BANNING_RED = 'banning-red'
    UNDETERMINED = 'undetermined'

    @property
    def team(self) -> str | None:
        if self in (Phase.BLUE_PICKING, Phase.BANNING_BLUE):
            return 'blue'
        if self in (Phase.RED_PICKING, Phase.BANNING_RED):
            return 'red'
        return None

    @property
    def banning(self) -> bool:
        return self in (Phase.BANNING_BLUE, Phase.BANNING_RED)


@dataclass
class PhaseReading:
    phase: Phase
    blue_count: int = 0      # ban indicator samples matched (ban phase only)
    red_count: int = 0
    ambiguous: bool = False


def resolve_ban_phase(blue_count: int, red_count: int) -> PhaseReading:
    """Pick the banning team from per-team indicator sample counts.

    A tie with matches on both sides defaults to blue and is flagged as
    ambiguous. No matches on either side raises PhaseDetectionError.
    """
    if blue_count > red_count:
        return PhaseReading(Phase.BANNING_BLUE, blue_count, red_count)
    if red_count > blue_count:
        return PhaseReading(Phase.BANNING_RED, blue_count, red_count)
    if blue_count == 0:
        raise PhaseDetectionError('Could not detect banning team')
    logger.warning('Ban indicator tie (%d samples each), assuming blue', blue_count)
    return PhaseReading(Phase.BANNING_BLUE, blue_count, red_count, ambiguous=True)


def _ban_indicator_count(screenshot: np.ndarray, offsets: ScaledOffsets,
                         layout: LayoutDefinition, team: str) -> int:
    region = ban_check_region(screenshot, offsets, team)
    h, w = region.shape[:2]
    return count_sample_matches(region, layout.rules('ban_active'),
                                ban_check_points(w, h))


def detect_phase(screenshot: np.ndarray, offsets: ScaledOffsets,
                 layout: LayoutDefinition) -> PhaseReading:
    """Read the current phase from the timer region.

    Raises:
        PhaseDetectionError: no timer color found, or no banning team found.
    """
    timer = timer_region(screenshot, offsets)
    if find_any_match(timer, layout.rules('timer', 'blue')):
        return PhaseReading(Phase.BLUE_PICKING)
    if find_any_match(timer, layout.rules('timer', 'red')):
        return PhaseReading(Phase.RED_PICKING)
    if find_any_match(timer, layout.rules('timer', 'ban')):
        blue_count = _ban_indicator_count(screenshot, offsets, layout, 'blue')
        red_count = _ban_indicator_count(screenshot, offsets, layout, 'red')
        logger.debug('Ban indicator samples: blue=%d red=%d', blue_count, red_count)
        return resolve_ban_phase(blue_count, red_count)
    raise PhaseDetectionError('Could not detect pick counter')
