"""Hero name, lock state and player name detection for one player slot.

Both names sit in a rotated label area of the player slot. The hero name
box tells whether the pick is locked (its background switches to the
team's locked color); the player name box carries the display name, with
a 'boost' badge color that must not be read as text.

Detection results are returned to the caller; nothing here touches the
draft state. A reading of None (or locked=None) means "no update".
"""

import asyncio
import logging
from dataclasses import dataclass

import numpy as np

from .color_utils import BLACK, WHITE, locked_hero_background_match
from .config import DraftConfig
from .debug_capture import DebugRecorder
from .layout import LayoutDefinition, ScaledOffsets
from .regions import (encode_png, hero_name_region, name_region,
                      player_name_region, player_region)
from .text_isolator import cleanup_name, invert, ocr_optimize

logger = logging.getLogger(__name__)


@dataclass
class HeroNameReading:
    name: str | None = None
    detection_failed: bool = False
    locked: bool | None = None     # None = lock state unknown this pass
    image: bytes | None = None


@dataclass
class PlayerNameReading:
    name: str
    final: bool                    # team is not picking, name won't change
    image: bytes | None = None


@dataclass
class PlayerDetection:
    index: int
    team: str
    locked: bool | None
    hero: HeroNameReading
    player_name: PlayerNameReading | None


def phase_ident(team: str, team_active: str | None) -> str:
    """Color table key, e.g. 'blue-active' or 'red-inactive'."""
    return f'{team}-{"active" if team_active == team else "inactive"}'


class PlayerDetector:
    """Reads hero and player names of player slots through the OCR gateway."""

    def __init__(self, layout: LayoutDefinition, ocr, game_data,
                 config: DraftConfig, recorder: DebugRecorder | None = None):
        self.layout = layout
        self.ocr = ocr
        self.game_data = game_data
        self.config = config
        self.recorder = recorder

    async def detect_player(self, screenshot: np.ndarray, offsets: ScaledOffsets,
                            team: str, index: int,
                            team_active: str | None) -> PlayerDetection:
        player_img = player_region(screenshot, offsets, team, index)
        name_img = name_region(player_img, offsets, team)
        hero, player_name = await asyncio.gather(
            self.detect_hero_name(name_img, offsets, team, index, team_active),
            self.detect_player_name(name_img, offsets, team, index, team_active),
        )
        return PlayerDetection(index, team, hero.locked, hero, player_name)

    async def detect_hero_name(self, name_img: np.ndarray, offsets: ScaledOffsets,
                               team: str, index: int,
                               team_active: str | None) -> HeroNameReading:
        hero_img = hero_name_region(name_img, offsets, team)
        ident = phase_ident(team, team_active)
        label = f'{team}-player{index}-hero'

        if locked_hero_background_match(hero_img,
                                         self.layout.rules('hero_background_locked', ident)):
            rules = self.layout.rules('hero_name_locked', ident)
            found, cleaned = cleanup_name(hero_img, rules,
                                          foreground=BLACK, background=WHITE)
            self._record(f'{label}-locked', hero_img, cleaned, rules, (), False, found)
            if not found:
                return HeroNameReading()
            text = await self._ocr_text(ocr_optimize(cleaned),
                                        self.config.get_option('tesseractLanguage'))
            if text is None:
                return HeroNameReading()
            return self._resolve_hero(text, True, encode_png(cleaned))

        # Only the blue side shows what a player is hovering before locking
        if team != 'blue':
            return HeroNameReading(locked=False)

        idents = [ident]
        if ident == 'blue-active':
            idents.insert(0, 'blue-active-picking')
        found = False
        cleaned = None
        for rule_ident in idents:
            rules = self.layout.rules('hero_name_prepick', rule_ident)
            found, cleaned = cleanup_name(hero_img, rules)
            self._record(f'{label}-{rule_ident}', hero_img, cleaned, rules, (), True, found)
            if found:
                break
        if not found:
            return HeroNameReading(locked=False)

        text = await self._ocr_text(ocr_optimize(invert(cleaned)),
                                    self.config.get_option('tesseractLanguage'))
        if text is None:
            return HeroNameReading(locked=False)
        return self._resolve_hero(text, False, encode_png(cleaned))

    async def detect_player_name(self, name_img: np.ndarray, offsets: ScaledOffsets,
                                 team: str, index: int,
                                 team_active: str | None) -> PlayerNameReading | None:
        player_img = player_name_region(name_img, offsets, team)
        ident = phase_ident(team, team_active)
        positive = self.layout.rules('player_name', ident)
        negative = self.layout.rules('boost')

        found, cleaned = cleanup_name(player_img, positive, negative)
        self._record(f'{team}-player{index}-name', player_img, cleaned,
                     positive, negative, True, found)
        if not found:
            return None

        text = await self._ocr_text(ocr_optimize(invert(cleaned)),
                                    self.config.get_option('playerNameLanguages'))
        if text is None:
            return None
        name = text.split('\n')[0].strip()
        if not name:
            return None
        return PlayerNameReading(name, team_active != team, encode_png(cleaned))

    def _resolve_hero(self, text: str, locked: bool, image: bytes) -> HeroNameReading:
        """Turn OCR text into a known hero name (or a flagged unknown one)."""
        line = text.split('\n')[0].strip()
        if not line:
            return HeroNameReading(locked=locked)
        name = self.game_data.fix_hero_name(line)
        pick_text = self.layout.pick_text_for(self.config.get_option('language'))
        if pick_text and name == self.game_data.fix_hero_name(pick_text):
            return HeroNameReading(locked=locked)

        name = self.game_data.correct_hero_name(name)
        hero_id = self.game_data.get_hero_id(name)
        if hero_id is None:
            logger.debug('Unknown hero name %r', name)
            return HeroNameReading(name, True, locked, image)
        return HeroNameReading(self.game_data.get_hero_name(hero_id), False, locked, image)

    async def _ocr_text(self, image: np.ndarray, languages: str) -> str | None:
        result = await self.ocr.recognize(image, languages,
                                          self.config.get_option('tesseractParams'))
        if not result.ok:
            logger.debug('OCR failed: %s', result.error)
            return None
        text = result.text.strip()
        return text or None

    def _record(self, ident, original, cleaned, positive, negative, inverted, success):
        if self.recorder is not None:
            self.recorder.add(ident, original, cleaned, positive, negative,
                              inverted, success)
