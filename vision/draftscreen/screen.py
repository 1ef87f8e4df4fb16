"""Draft screen detection orchestrator.

One detection pass runs these stages in order, each feeding the next:

  screenshot -> portraits -> phase (timer) -> map -> teams (bans + players)

A stage failing with a DetectionError ends the pass with 'detect.error';
'detect.done' is emitted either way so the next screenshot can be tried.
Layout and portrait library errors are configuration problems and
propagate to the caller.

Events (handler arguments in parentheses):
  detect.start, detect.screenshot.load.success,
  detect.ban.images.load.success, detect.timer.start, detect.timer.success,
  detect.map.start, detect.map.success, detect.teams.start,
  detect.bans.success(team), detect.team.success(color), team.updated(team),
  detect.teams.new | detect.teams.update, detect.teams.success,
  detect.success, detect.error(error), detect.done, change
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import numpy as np

from .ban_detector import BanDetection, detect_bans
from .config import DraftConfig
from .debug_capture import DebugRecorder
from .draft_state import TEAM_COLORS, DraftState, Team
from .errors import DetectionError, MapDetectionError
from .layout import LayoutDefinition, LayoutScaler, ScaledOffsets
from .player_detector import PlayerDetection, PlayerDetector
from .portrait_matcher import PortraitLibrary
from .regions import load_image, map_region, scale
from .text_isolator import cleanup_name, invert, ocr_optimize
from .timer_detector import PhaseReading, detect_phase

logger = logging.getLogger(__name__)

ENGLISH = 'en-us'


class PassState(Enum):
    IDLE = 'idle'
    SCREENSHOT_LOADED = 'screenshot-loaded'
    PORTRAITS_LOADED = 'portraits-loaded'
    PHASE_DETECTED = 'phase-detected'
    MAP_DETECTED = 'map-detected'
    TEAMS_DETECTED = 'teams-detected'
    DONE = 'done'
    ERROR = 'error'


@dataclass
class StageResult:
    success: bool
    value: Any = None
    error: DetectionError | None = None

    @classmethod
    def ok(cls, value=None) -> 'StageResult':
        return cls(True, value)

    @classmethod
    def failed(cls, error: DetectionError) -> 'StageResult':
        return cls(False, error=error)


@dataclass
class _PassContext:
    source: Any
    screenshot: np.ndarray | None = None
    offsets: ScaledOffsets | None = None


class DraftScreen:
    """Turns draft screen screenshots into a DraftState.

    Args:
        layout: Loaded layout definition.
        game_data: Hero/map dictionary (GameDataDictionary or compatible).
        ocr: OCR gateway with an async recognize(image, languages, params).
        config: Detector settings.
        library: Preloaded portrait library; loaded on first pass if None.
        clock: Monotonic seconds, used for the map re-check lock.
    """

    def __init__(self, layout: LayoutDefinition, game_data, ocr,
                 config: DraftConfig | None = None,
                 library: PortraitLibrary | None = None,
                 clock: Callable[[], float] = time.monotonic):
        self.layout = layout
        self.game_data = game_data
        self.ocr = ocr
        self.config = config or DraftConfig()
        self.library = library
        self.clock = clock

        self.scaler = LayoutScaler(layout)
        self.state = DraftState(ban_count=len(layout.teams['blue'].bans))
        self.recorder = DebugRecorder() if self.config.get_option('debugEnabled') else None
        self.player_detector = PlayerDetector(layout, ocr, game_data,
                                              self.config, self.recorder)

        self.update_active = False
        self.pass_state = PassState.IDLE
        self.last_error: DetectionError | None = None
        self.phase: PhaseReading | None = None
        self.map_lock = 0.0
        self._teams_new = True
        self._listeners: dict[str, list[Callable]] = {}

        self._stages = (
            (self._stage_screenshot, PassState.SCREENSHOT_LOADED,
             None, 'detect.screenshot.load.success'),
            (self._stage_portraits, PassState.PORTRAITS_LOADED,
             None, 'detect.ban.images.load.success'),
            (self._stage_phase, PassState.PHASE_DETECTED,
             'detect.timer.start', 'detect.timer.success'),
            (self._stage_map, PassState.MAP_DETECTED,
             'detect.map.start', 'detect.map.success'),
            (self._stage_teams, PassState.TEAMS_DETECTED,
             'detect.teams.start', 'detect.teams.success'),
        )

    # ── Events ──

    def on(self, event: str, handler: Callable) -> None:
        self._listeners.setdefault(event, []).append(handler)

    def _emit(self, event: str, *args) -> None:
        for handler in list(self._listeners.get(event, ())):
            handler(*args)

    # ── Accessors ──

    def get_map(self) -> str | None:
        return self.state.map

    def get_team(self, color: str) -> Team:
        return self.state.teams[color]

    def get_teams(self) -> list[Team]:
        return [self.state.teams[color] for color in TEAM_COLORS]

    def get_team_active(self) -> str | None:
        return self.state.team_active

    @property
    def debug_data(self) -> list:
        return self.recorder.entries if self.recorder is not None else []

    # ── Control ──

    def clear(self) -> None:
        """Forget the current draft (map, bans, players)."""
        self.state.clear()
        self.map_lock = 0.0
        self._teams_new = True
        self._emit('change')

    def load_portraits(self) -> PortraitLibrary:
        size = self.layout.ban_size_compare
        self.library = PortraitLibrary.load(self.config.get_option('bansDir'),
                                            self.config.get_option('userBansDir'),
                                            (size.x, size.y))
        return self.library

    def save_ban_portrait(self, hero_id: str, image) -> bool:
        """Store a user-corrected ban portrait (array or PNG bytes)."""
        if self.library is None:
            self.load_portraits()
        return self.library.add_user_portrait(hero_id, load_image(image))

    def update_language(self, language: str | None = None) -> None:
        """Switch the client language; the map is re-read on the next pass.

        An explicitly configured tesseract language is kept.
        """
        if language is not None:
            self.config.language = language
        self.game_data.language = self.config.get_option('language')
        self.map_lock = 0.0

    # ── Detection pass ──

    async def detect(self, screenshot) -> bool:
        """Run one detection pass. False if busy or a stage failed."""
        if self.update_active:
            return False
        self.update_active = True
        self.pass_state = PassState.IDLE
        self.last_error = None
        if self.recorder is not None:
            self.recorder.clear()

        success = False
        self._emit('detect.start')
        try:
            context = _PassContext(screenshot)
            for stage, next_state, start_event, success_event in self._stages:
                if start_event:
                    self._emit(start_event)
                try:
                    result = await stage(context)
                except DetectionError as e:
                    result = StageResult.failed(e)
                if not result.success:
                    self.pass_state = PassState.ERROR
                    self.last_error = result.error
                    logger.info('Detection pass stopped at %s: %s',
                                stage.__name__, result.error)
                    self._emit('detect.error', result.error)
                    return False
                self.pass_state = next_state
                self._emit(success_event)
            self.pass_state = PassState.DONE
            self._emit('detect.success')
            success = True
            return True
        finally:
            self.update_active = False
            self._emit('detect.done')
            if success:
                self._emit('change')

    async def _stage_screenshot(self, ctx: _PassContext) -> StageResult:
        ctx.screenshot = load_image(ctx.source)
        h, w = ctx.screenshot.shape[:2]
        ctx.offsets = self.scaler.offsets_for(w, h)
        return StageResult.ok(ctx.screenshot)

    async def _stage_portraits(self, ctx: _PassContext) -> StageResult:
        if self.library is None:
            self.load_portraits()
        return StageResult.ok(self.library)

    async def _stage_phase(self, ctx: _PassContext) -> StageResult:
        reading = detect_phase(ctx.screenshot, ctx.offsets, self.layout)
        self.phase = reading
        team_active = reading.phase.team
        ban_active = reading.phase.banning
        if team_active != self.state.team_active or ban_active != self.state.ban_active:
            self.state.team_active = team_active
            self.state.ban_active = ban_active
            self._emit('change')
        return StageResult.ok(reading)

    async def _stage_map(self, ctx: _PassContext) -> StageResult:
        region = map_region(ctx.screenshot, ctx.offsets)
        rules = self.layout.rules('map_name')
        found, cleaned = cleanup_name(region, rules)
        if self.recorder is not None:
            self.recorder.add('map', region, cleaned, rules, (), True, found)
        if not found:
            raise MapDetectionError('No map text found')

        if self.state.map is not None and self.map_lock > self.clock():
            return StageResult.ok(self.state.map)

        image = ocr_optimize(invert(scale(cleaned, 2.0)))
        config = self.config
        result = await self.ocr.recognize(image, config.get_option('tesseractLanguage'),
                                          config.get_option('tesseractParams'))
        if not result.ok:
            raise MapDetectionError(f'Map OCR failed: {result.error}')

        game_data = self.game_data
        name = game_data.fix_map_name(result.text)
        language = self.config.get_option('language')
        if language != ENGLISH:
            translated = game_data.translate_map_name(name, language, ENGLISH)
            if translated:
                name = game_data.fix_map_name(translated)
        map_id = game_data.get_map_id(name, ENGLISH) if name else None
        if map_id is None:
            raise MapDetectionError(f'Unknown map name {name!r}')

        map_name = game_data.get_map_name(map_id, ENGLISH)
        if map_name != self.state.map:
            logger.info('Map detected: %s', map_name)
            self.clear()
            self.state.map = map_name
            self._emit('change')
        self.map_lock = self.clock() + self.config.get_option('mapLockSeconds')
        return StageResult.ok(map_name)

    async def _stage_teams(self, ctx: _PassContext) -> StageResult:
        results = await asyncio.gather(
            *(self._detect_team(ctx, color) for color in TEAM_COLORS))

        changed = False
        for color, (bans, players) in zip(TEAM_COLORS, results):
            team = self.state.teams[color]
            team_changed = self._apply_bans(team, bans)
            self._emit('detect.bans.success', team)
            for detection in players:
                if self._apply_player(team, detection):
                    team_changed = True
            self._emit('detect.team.success', color)
            if team_changed:
                self._emit('team.updated', team)
                changed = True

        if changed:
            self._emit('change')
        if self._teams_new:
            self._teams_new = False
            self._emit('detect.teams.new')
        else:
            self._emit('detect.teams.update')
        return StageResult.ok(self.get_teams())

    async def _detect_team(self, ctx: _PassContext, color: str):
        team = self.state.teams[color]
        team_banning = self.state.ban_active and self.state.team_active == color
        bans = detect_bans(ctx.screenshot, ctx.offsets, self.layout, color,
                           self.library, self.game_data, team_banning,
                           team.bans_locked,
                           self.config.get_option('banMatchThreshold'),
                           self.config.get_option('banMinGap'),
                           self.config.get_option('banMaxColorDistance'))
        players = await asyncio.gather(
            *(self.player_detector.detect_player(ctx.screenshot, ctx.offsets, color,
                                                 index, self.state.team_active)
              for index in range(len(ctx.offsets.teams[color].players))))
        return bans, players

    def _apply_bans(self, team: Team, detection: BanDetection) -> bool:
        changed = False
        for slot in detection.slots:
            if team.set_ban(slot.index, slot.hero_name):
                changed = True
            if team.set_ban_image(slot.index, slot.image):
                changed = True
        if team.set_bans_locked(detection.locked):
            changed = True
        return changed

    def _apply_player(self, team: Team, detection: PlayerDetection) -> bool:
        player = team.ensure_player(detection.index)
        changed = False
        hero = detection.hero
        if hero.locked is not None and player.set_locked(hero.locked):
            changed = True
        if hero.name is not None and player.set_hero(hero.name, hero.detection_failed,
                                                     hero.image):
            changed = True

        reading = detection.player_name
        if reading is not None:
            name_changed = reading.name != player.player_name
            if player.set_player_name(reading.name, reading.final, reading.image):
                changed = True
            if name_changed:
                self.game_data.update_player_recent_picks(player)
        return changed
