"""Pytest fixtures for draft screen detector tests."""
import sys
from pathlib import Path

import numpy as np
import pytest

VISION_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(VISION_DIR))

from draftscreen.color_utils import parse_color
from draftscreen.draft_state import TEAM_COLORS
from draftscreen.game_data import GameDataDictionary
from draftscreen.layout import Vec, load_layout, scale_layout
from draftscreen.ocr_gateway import OcrResult

BASE_W, BASE_H = 3440, 1440
FILL = (8, 8, 8)

TIMER_BLUE = '#2E9BFF'
TIMER_RED = '#FF3030'
TIMER_BAN = '#B04DFF'
BAN_ACTIVE = '#FF4FD8'
BAN_BACKGROUND = '#101A33'
MAP_TEXT = '#E6D9FF'
LOCKED_BLUE_ACTIVE = '#1F4E8C'
LOCKED_BLUE_INACTIVE = '#173A66'
LOCKED_RED_INACTIVE = '#661723'
HERO_TEXT_LOCKED = '#F2F2F2'
HERO_TEXT_PREPICK = '#9FD3FF'
PLAYER_TEXT_BLUE = '#C8DCFF'
PLAYER_TEXT_RED = '#FFC8C8'


class ScreenshotBuilder:
    """Paints a synthetic draft screen at any resolution.

    Every empty ban slot is painted with the ban slot background, everything
    else starts as a near-black fill.
    """

    def __init__(self, layout, width=BASE_W, height=BASE_H):
        self.layout = layout
        self.offsets = scale_layout(layout, width, height)
        self.image = np.full((height, width, 3), FILL, dtype=np.uint8)
        for color in TEAM_COLORS:
            for pos in self.offsets.teams[color].bans:
                self.fill(pos, self.offsets.ban_size, BAN_BACKGROUND)

    def fill(self, pos, size, color):
        self.image[pos.y:pos.y + size.y, pos.x:pos.x + size.x] = parse_color(color)
        return self

    def timer(self, color):
        """A single timer-colored pixel in the middle of the timer."""
        o = self.offsets
        x = o.timer_pos.x + o.timer_size.x // 2
        y = o.timer_pos.y + o.timer_size.y // 2
        self.image[y, x] = parse_color(color)
        return self

    def ban_indicator(self, team, color=BAN_ACTIVE):
        team_offsets = self.offsets.teams[team]
        return self.fill(team_offsets.ban_check, self.offsets.ban_check_size, color)

    def map_text(self, color=MAP_TEXT):
        """A text-like bar in the middle third of the map label."""
        o = self.offsets
        pos = Vec(o.map_pos.x + o.map_size.x * 3 // 10,
                  o.map_pos.y + o.map_size.y * 35 // 100)
        size = Vec(o.map_size.x // 3, max(2, o.map_size.y * 3 // 10))
        return self.fill(pos, size, color)

    def ban_portrait(self, team, index, portrait):
        pos = self.offsets.teams[team].bans[index]
        size = self.offsets.ban_size
        assert portrait.shape[:2] == (size.y, size.x)
        self.image[pos.y:pos.y + size.y, pos.x:pos.x + size.x] = portrait
        return self

    def _name_origin(self, team, index):
        team_offsets = self.offsets.teams[team]
        player = team_offsets.players[index]
        return Vec(player.x + team_offsets.name.x, player.y + team_offsets.name.y)

    def name_background(self, team, index, color):
        return self.fill(self._name_origin(team, index), self.offsets.name_size, color)

    def hero_text(self, team, index, color):
        """Bar at x 100-200, y 14-20 of the hero name box (unrotated)."""
        origin = self._name_origin(team, index)
        box = self.offsets.teams[team].hero_name_rotated
        return self.fill(Vec(origin.x + box.x + 100, origin.y + box.y + 14),
                         Vec(100, 6), color)

    def player_text(self, team, index, color):
        """Bar at x 100-200, y 12-18 of the player name box (unrotated)."""
        origin = self._name_origin(team, index)
        box = self.offsets.teams[team].player_name_rotated
        return self.fill(Vec(origin.x + box.x + 100, origin.y + box.y + 12),
                         Vec(100, 6), color)


class FakeOcr:
    """Stands in for OcrGateway; answers by requested language string.

    A list response is consumed in order, its last entry repeating. Missing
    languages produce an error result.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    async def recognize(self, image, languages, params=None):
        self.calls.append((languages, image.shape))
        response = self.responses.get(languages)
        if isinstance(response, list):
            response = response.pop(0) if len(response) > 1 else response[0]
        if response is None:
            return OcrResult(error='no text')
        return OcrResult(text=response, confidence=90.0)

    def count(self, languages):
        return sum(1 for lang, _ in self.calls if lang == languages)


def random_portrait(seed, size=(66, 66)):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(size[1], size[0], 3), dtype=np.uint8)


@pytest.fixture(scope="session")
def layout():
    return load_layout()


@pytest.fixture
def builder(layout):
    def make(width=BASE_W, height=BASE_H):
        return ScreenshotBuilder(layout, width, height)
    return make


@pytest.fixture
def game_data():
    return GameDataDictionary(
        heroes={'en-us': {
            'valeera': 'Valeera',
            'muradin': 'Muradin',
            'jaina': 'Jaina',
            'etc': 'E.T.C.',
        }},
        maps={'en-us': {
            'cursed-hollow': 'Cursed Hollow',
            'towers-of-doom': 'Towers of Doom',
        }},
    )
