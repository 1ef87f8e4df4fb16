"""Draft state model: map, acting team, and per-team bans and players.

Only the detection orchestrator mutates these objects. Mutators return
True when a value actually changed, which is what drives 'change' events.
"""

import base64
from dataclasses import dataclass, field

TEAM_COLORS = ('blue', 'red')
PLAYERS_PER_TEAM = 5
BANS_PER_TEAM = 3
UNRESOLVED_BAN = '???'


def _b64(data: bytes | None) -> str | None:
    if data is None:
        return None
    return base64.b64encode(data).decode('ascii')


@dataclass
class Player:
    index: int
    team: str
    hero_name: str | None = None
    detection_failed: bool = False
    locked: bool = False
    player_name: str | None = None
    name_final: bool = False
    image_hero_name: bytes | None = None      # PNG of the isolated hero name
    image_player_name: bytes | None = None    # PNG of the isolated player name
    recent_picks: dict = field(default_factory=dict)

    def set_hero(self, name: str, detection_failed: bool,
                 image: bytes | None = None) -> bool:
        changed = (name != self.hero_name
                   or detection_failed != self.detection_failed)
        self.hero_name = name
        self.detection_failed = detection_failed
        if image is not None:
            self.image_hero_name = image
        return changed

    def set_locked(self, locked: bool) -> bool:
        changed = locked != self.locked
        self.locked = locked
        return changed

    def set_player_name(self, name: str, final: bool,
                        image: bytes | None = None) -> bool:
        changed = name != self.player_name or final != self.name_final
        self.player_name = name
        self.name_final = final
        if image is not None:
            self.image_player_name = image
        return changed

    def set_recent_picks(self, picks: dict) -> bool:
        picks = dict(picks)
        changed = picks != self.recent_picks
        self.recent_picks = picks
        return changed

    def to_dict(self, include_images: bool = False) -> dict:
        data = {
            'index': self.index,
            'team': self.team,
            'playerName': self.player_name,
            'playerNameFinal': self.name_final,
            'heroName': self.hero_name,
            'detectionFailed': self.detection_failed,
            'locked': self.locked,
            'recentPicks': self.recent_picks,
        }
        if include_images:
            data['playerNameImage'] = _b64(self.image_player_name)
            data['heroNameImage'] = _b64(self.image_hero_name)
        return data


class Team:
    """One side of the draft: ban slots plus lazily created players."""

    def __init__(self, color: str, ban_count: int = BANS_PER_TEAM):
        self.color = color
        self.ban_count = ban_count
        self.bans: list[str | None] = [None] * ban_count
        self.ban_images: list[bytes | None] = [None] * ban_count
        self.bans_locked = 0
        self.players: dict[int, Player] = {}

    def set_ban(self, index: int, hero_name: str | None) -> bool:
        changed = self.bans[index] != hero_name
        self.bans[index] = hero_name
        return changed

    def set_ban_image(self, index: int, image: bytes | None) -> bool:
        changed = self.ban_images[index] != image
        self.ban_images[index] = image
        return changed

    def set_bans_locked(self, count: int) -> bool:
        """Raise the locked ban count; it never goes down within a draft."""
        count = min(count, self.ban_count)
        if count <= self.bans_locked:
            return False
        self.bans_locked = count
        return True

    def get_player(self, index: int) -> Player | None:
        return self.players.get(index)

    def ensure_player(self, index: int) -> Player:
        player = self.players.get(index)
        if player is None:
            player = Player(index, self.color)
            self.players[index] = player
        return player

    def ban_data(self, index: int, include_images: bool = True) -> dict:
        data = {
            'index': index,
            'team': self.color,
            'locked': self.bans_locked > index,
            'heroName': self.bans[index],
        }
        if include_images:
            data['heroImage'] = _b64(self.ban_images[index])
        return data

    def to_dict(self, include_images: bool = False) -> dict:
        return {
            'color': self.color,
            'bansLocked': self.bans_locked,
            'bans': [self.ban_data(i, include_images) for i in range(self.ban_count)],
            'players': [self.players[i].to_dict(include_images)
                        for i in sorted(self.players)],
        }

    def clear(self) -> None:
        self.bans = [None] * self.ban_count
        self.ban_images = [None] * self.ban_count
        self.bans_locked = 0
        self.players = {}


class DraftState:
    """Map, acting team and both teams of the draft being watched."""

    def __init__(self, ban_count: int = BANS_PER_TEAM):
        self.map: str | None = None
        self.team_active: str | None = None
        self.ban_active = False
        self.teams = {color: Team(color, ban_count) for color in TEAM_COLORS}

    def players_locked(self) -> int:
        """Locked picks over both teams; 10 means the draft is complete."""
        return sum(1 for team in self.teams.values()
                   for player in team.players.values() if player.locked)

    def clear(self) -> None:
        self.map = None
        for team in self.teams.values():
            team.clear()

    def to_dict(self, include_images: bool = False) -> dict:
        return {
            'map': self.map,
            'teamActive': self.team_active,
            'banActive': self.ban_active,
            'playersLocked': self.players_locked(),
            'teams': {color: team.to_dict(include_images)
                      for color, team in self.teams.items()},
        }
