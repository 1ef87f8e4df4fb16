"""Tests for the draft state model."""
import base64
import sys
from pathlib import Path

VISION_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(VISION_DIR))

from draftscreen.draft_state import DraftState, Player, Team


class TestPlayer:

    def test_set_hero_reports_change(self):
        player = Player(0, 'blue')
        assert player.set_hero('Valeera', False)
        assert not player.set_hero('Valeera', False)
        assert player.set_hero('Valeera', True)

    def test_image_kept_when_not_given(self):
        player = Player(0, 'blue')
        player.set_hero('Valeera', False, b'png')
        player.set_hero('Valeera', False)
        assert player.image_hero_name == b'png'

    def test_set_locked(self):
        player = Player(1, 'red')
        assert not player.set_locked(False)
        assert player.set_locked(True)

    def test_player_name_final_flag(self):
        player = Player(2, 'red')
        assert player.set_player_name('Alice', False)
        assert player.set_player_name('Alice', True)
        assert player.name_final

    def test_to_dict(self):
        player = Player(3, 'blue', hero_name='Jaina', locked=True)
        player.set_player_name('Bob', True, b'\x89PNG')
        data = player.to_dict(include_images=True)
        assert data['heroName'] == 'Jaina'
        assert data['playerName'] == 'Bob'
        assert data['locked'] is True
        assert data['heroNameImage'] is None
        assert base64.b64decode(data['playerNameImage']) == b'\x89PNG'
        assert 'playerNameImage' not in player.to_dict()


class TestTeam:

    def test_bans_locked_never_decreases(self):
        team = Team('blue')
        assert team.set_bans_locked(2)
        assert not team.set_bans_locked(1)
        assert team.bans_locked == 2
        assert team.set_bans_locked(10)
        assert team.bans_locked == 3

    def test_ban_data(self):
        team = Team('red')
        team.set_ban(0, 'Valeera')
        team.set_ban(1, '???')
        team.set_ban_image(1, b'img')
        team.set_bans_locked(1)
        assert team.ban_data(0) == {'index': 0, 'team': 'red', 'locked': True,
                                    'heroName': 'Valeera', 'heroImage': None}
        data = team.ban_data(1)
        assert data['locked'] is False
        assert base64.b64decode(data['heroImage']) == b'img'

    def test_players_created_lazily(self):
        team = Team('blue')
        assert team.get_player(4) is None
        player = team.ensure_player(4)
        assert team.ensure_player(4) is player
        assert player.team == 'blue'

    def test_clear(self):
        team = Team('blue')
        team.set_ban(0, 'Valeera')
        team.set_bans_locked(1)
        team.ensure_player(0)
        team.clear()
        assert team.bans == [None, None, None]
        assert team.bans_locked == 0
        assert team.players == {}


class TestDraftState:

    def test_two_teams(self):
        state = DraftState()
        assert list(state.teams) == ['blue', 'red']

    def test_players_locked(self):
        state = DraftState()
        for color in ('blue', 'red'):
            for i in range(5):
                state.teams[color].ensure_player(i).set_locked(True)
        assert state.players_locked() == 10
        state.teams['red'].get_player(0).set_locked(False)
        assert state.players_locked() == 9

    def test_clear_keeps_team_objects(self):
        state = DraftState()
        blue = state.teams['blue']
        state.map = 'Cursed Hollow'
        state.team_active = 'red'
        state.clear()
        assert state.map is None
        assert state.teams['blue'] is blue
        assert state.team_active == 'red'

    def test_to_dict(self):
        state = DraftState()
        state.map = 'Sky Temple'
        state.teams['red'].ensure_player(1).set_hero('Muradin', False)
        data = state.to_dict()
        assert data['map'] == 'Sky Temple'
        assert data['teams']['red']['players'][0]['heroName'] == 'Muradin'
        assert len(data['teams']['blue']['bans']) == 3
