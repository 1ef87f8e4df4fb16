"""Draft screen layout definition and resolution scaling.

The layout file describes every region of the draft screen in pixels of one
canonical resolution (3440x1440). Before a region is cropped from a
screenshot, the whole geometry is rescaled to the screenshot's resolution,
independently per axis:

    scaled = round(base / base_size * target_size)

Rotation angles and color rules are resolution independent and are not
scaled.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

from .color_utils import ColorRule
from .errors import LayoutError


DEFAULT_LAYOUT_PATH = Path(__file__).parent / 'layouts' / 'draft-layout-3440x1440.json'


@dataclass(frozen=True)
class Vec:
    """A 2D position or size in pixels."""
    x: int
    y: int

    @classmethod
    def from_dict(cls, data: dict) -> 'Vec':
        return cls(int(data['x']), int(data['y']))


@dataclass(frozen=True)
class TeamLayout:
    """Per-team geometry at base resolution."""
    players: tuple[Vec, ...]
    bans: tuple[Vec, ...]
    ban_check: Vec
    name: Vec                    # name area, relative to the player slot
    name_angle: float            # rotation applied to the name area
    hero_name_rotated: Vec       # hero name box inside the rotated name area
    player_name_rotated: Vec     # player name box inside the rotated name area


@dataclass(frozen=True)
class LayoutDefinition:
    """Immutable draft screen layout at its base resolution."""
    base_size: Vec
    map_pos: Vec
    map_size: Vec
    timer_pos: Vec
    timer_size: Vec
    ban_size: Vec
    ban_size_compare: Vec
    ban_check_size: Vec
    player_size: Vec
    name_size: Vec
    hero_name_size_rotated: Vec
    player_name_size_rotated: Vec
    teams: dict[str, TeamLayout]
    colors: dict = field(default_factory=dict)
    pick_text: dict[str, str] = field(default_factory=dict)

    def rules(self, name: str, ident: str | None = None) -> tuple[ColorRule, ...]:
        """Color rules for a named table, optionally keyed by team/phase ident.

        Raises:
            LayoutError: if the table or ident is not defined.
        """
        try:
            table = self.colors[name]
            if ident is not None:
                table = table[ident]
        except KeyError:
            label = name if ident is None else f'{name}[{ident}]'
            raise LayoutError(f'No color rules defined for {label}') from None
        if isinstance(table, dict):
            raise LayoutError(f'Color table {name} needs an ident')
        return table

    def pick_text_for(self, language: str) -> str | None:
        """Localized placeholder shown while a player has not picked."""
        return self.pick_text.get(language)


@dataclass(frozen=True)
class ScaledTeamOffsets:
    players: tuple[Vec, ...]
    bans: tuple[Vec, ...]
    ban_check: Vec
    name: Vec
    name_angle: float
    hero_name_rotated: Vec
    player_name_rotated: Vec


@dataclass(frozen=True)
class ScaledOffsets:
    """Layout geometry rescaled to one screenshot resolution."""
    target_size: Vec
    map_pos: Vec
    map_size: Vec
    timer_pos: Vec
    timer_size: Vec
    ban_size: Vec
    ban_check_size: Vec
    player_size: Vec
    name_size: Vec
    hero_name_size_rotated: Vec
    player_name_size_rotated: Vec
    teams: dict[str, ScaledTeamOffsets]


def scale_offset(value: Vec, base: Vec, target: Vec) -> Vec:
    """Rescale one position/size from the base resolution to the target."""
    return Vec(int(round(value.x / base.x * target.x)),
               int(round(value.y / base.y * target.y)))


def scale_layout(layout: LayoutDefinition, width: int, height: int) -> ScaledOffsets:
    """Rescale every coordinate of the layout to a width x height screenshot."""
    base = layout.base_size
    target = Vec(int(width), int(height))

    def sc(value: Vec) -> Vec:
        return scale_offset(value, base, target)

    teams = {}
    for color, team in layout.teams.items():
        teams[color] = ScaledTeamOffsets(
            players=tuple(sc(p) for p in team.players),
            bans=tuple(sc(b) for b in team.bans),
            ban_check=sc(team.ban_check),
            name=sc(team.name),
            name_angle=team.name_angle,
            hero_name_rotated=sc(team.hero_name_rotated),
            player_name_rotated=sc(team.player_name_rotated),
        )

    return ScaledOffsets(
        target_size=target,
        map_pos=sc(layout.map_pos),
        map_size=sc(layout.map_size),
        timer_pos=sc(layout.timer_pos),
        timer_size=sc(layout.timer_size),
        ban_size=sc(layout.ban_size),
        ban_check_size=sc(layout.ban_check_size),
        player_size=sc(layout.player_size),
        name_size=sc(layout.name_size),
        hero_name_size_rotated=sc(layout.hero_name_size_rotated),
        player_name_size_rotated=sc(layout.player_name_size_rotated),
        teams=teams,
    )


class LayoutScaler:
    """Caches ScaledOffsets per screenshot resolution."""

    def __init__(self, layout: LayoutDefinition):
        self.layout = layout
        self._cache: dict[tuple[int, int], ScaledOffsets] = {}

    def offsets_for(self, width: int, height: int) -> ScaledOffsets:
        key = (int(width), int(height))
        offsets = self._cache.get(key)
        if offsets is None:
            offsets = scale_layout(self.layout, width, height)
            self._cache[key] = offsets
        return offsets

    def clear(self) -> None:
        self._cache.clear()


def _parse_colors(data):
    """Parse nested color tables: a list of rules, or a dict of ident -> tables."""
    if isinstance(data, list):
        return tuple(ColorRule.from_dict(rule) for rule in data)
    return {key: _parse_colors(value) for key, value in data.items()}


def _parse_team(data: dict) -> TeamLayout:
    return TeamLayout(
        players=tuple(Vec.from_dict(p) for p in data['players']),
        bans=tuple(Vec.from_dict(b) for b in data['bans']),
        ban_check=Vec.from_dict(data['ban_check']),
        name=Vec.from_dict(data['name']),
        name_angle=float(data['name'].get('angle', 0.0)),
        hero_name_rotated=Vec.from_dict(data['hero_name_rotated']),
        player_name_rotated=Vec.from_dict(data['player_name_rotated']),
    )


def parse_layout(data: dict) -> LayoutDefinition:
    """Build a LayoutDefinition from the decoded layout JSON."""
    try:
        layout = LayoutDefinition(
            base_size=Vec.from_dict(data['screen_size_base']),
            map_pos=Vec.from_dict(data['map_pos']),
            map_size=Vec.from_dict(data['map_size']),
            timer_pos=Vec.from_dict(data['timer_pos']),
            timer_size=Vec.from_dict(data['timer_size']),
            ban_size=Vec.from_dict(data['ban_size']),
            ban_size_compare=Vec.from_dict(data['ban_size_compare']),
            ban_check_size=Vec.from_dict(data['ban_check_size']),
            player_size=Vec.from_dict(data['player_size']),
            name_size=Vec.from_dict(data['name_size']),
            hero_name_size_rotated=Vec.from_dict(data['hero_name_size_rotated']),
            player_name_size_rotated=Vec.from_dict(data['player_name_size_rotated']),
            teams={color: _parse_team(team) for color, team in data['teams'].items()},
            colors=_parse_colors(data.get('colors', {})),
            pick_text=dict(data.get('pick_text', {})),
        )
    except (KeyError, TypeError, ValueError) as error:
        raise LayoutError(f'Malformed layout definition: {error!r}') from error

    if layout.base_size.x <= 0 or layout.base_size.y <= 0:
        raise LayoutError('Layout base size must be positive')
    if set(layout.teams) != {'blue', 'red'}:
        raise LayoutError(f'Layout must define blue and red teams, got {sorted(layout.teams)}')
    return layout


def load_layout(path: str | Path | None = None) -> LayoutDefinition:
    """Load and parse a layout JSON file (the bundled one by default)."""
    path = Path(path) if path is not None else DEFAULT_LAYOUT_PATH
    try:
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as error:
        raise LayoutError(f'Could not load layout {path}: {error}') from error
    return parse_layout(data)
