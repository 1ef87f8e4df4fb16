"""Tests for ban slot detection and ban lock bookkeeping."""
import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

VISION_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(VISION_DIR))

from conftest import random_portrait
from draftscreen.ban_detector import detect_bans
from draftscreen.draft_state import UNRESOLVED_BAN
from draftscreen.portrait_matcher import PortraitLibrary

VALEERA = random_portrait(100)
MURADIN = random_portrait(101)
UNKNOWN = random_portrait(102)


@pytest.fixture
def library():
    lib = PortraitLibrary()
    lib.add('valeera', VALEERA)
    lib.add('muradin', MURADIN)
    return lib


def _bans(shot, library, game_data, team='blue', team_banning=False, bans_locked=0):
    return detect_bans(shot.image, shot.offsets, shot.layout, team, library,
                       game_data, team_banning, bans_locked)


class TestDetectBans:

    def test_empty_slots(self, builder, library, game_data):
        detection = _bans(builder(), library, game_data)
        assert detection.names == {0: None, 1: None, 2: None}
        assert detection.locked == 0

    def test_matched_portrait_resolves_and_locks(self, builder, library, game_data):
        shot = builder().ban_portrait('blue', 0, VALEERA)
        detection = _bans(shot, library, game_data)
        slot = detection.slots[0]
        assert slot.hero_name == 'Valeera'
        assert slot.distance == 0
        assert slot.image is None
        assert detection.locked == 1

    def test_no_lock_while_team_is_banning(self, builder, library, game_data):
        shot = builder().ban_portrait('blue', 0, VALEERA)
        detection = _bans(shot, library, game_data, team_banning=True)
        assert detection.names[0] == 'Valeera'
        assert detection.locked == 0

    def test_banning_team_keeps_locked_slots(self, builder, library, game_data):
        # slot 0 was locked earlier and is now covered by something unknown
        shot = builder().ban_portrait('red', 0, UNKNOWN).ban_portrait('red', 1, VALEERA)
        detection = _bans(shot, library, game_data, team='red',
                          team_banning=True, bans_locked=1)
        assert 0 not in detection.names
        assert detection.names[1] == 'Valeera'
        assert detection.locked == 1

    def test_color_cross_check_passed_through(self, builder, game_data):
        lib = PortraitLibrary()
        lib.add('valeera', cv2.add(VALEERA, np.full_like(VALEERA, 90)))
        shot = builder().ban_portrait('blue', 0, VALEERA)
        detection = detect_bans(shot.image, shot.offsets, shot.layout, 'blue', lib,
                                game_data, False, max_color_distance=5.0)
        assert detection.names[0] == UNRESOLVED_BAN
        assert detection.locked == 0

    def test_locked_slots_skipped(self, builder, library, game_data):
        shot = builder().ban_portrait('blue', 0, VALEERA).ban_portrait('blue', 1, MURADIN)
        detection = _bans(shot, library, game_data, bans_locked=1)
        assert 0 not in detection.names
        assert detection.names[1] == 'Muradin'
        assert detection.locked == 2

    def test_lock_only_advances_contiguously(self, builder, library, game_data):
        shot = builder().ban_portrait('blue', 1, MURADIN)
        detection = _bans(shot, library, game_data)
        assert detection.names == {0: None, 1: 'Muradin', 2: None}
        assert detection.locked == 0

    def test_unknown_portrait_keeps_crop(self, builder, library, game_data):
        shot = builder().ban_portrait('blue', 0, UNKNOWN)
        detection = _bans(shot, library, game_data)
        slot = detection.slots[0]
        assert slot.hero_name == UNRESOLVED_BAN
        assert slot.distance > 10
        assert detection.locked == 0
        decoded = cv2.imdecode(np.frombuffer(slot.image, np.uint8), cv2.IMREAD_COLOR)
        assert (decoded == UNKNOWN).all()

    def test_other_team_unaffected(self, builder, library, game_data):
        shot = builder().ban_portrait('blue', 0, VALEERA)
        detection = _bans(shot, library, game_data, team='red')
        assert detection.names == {0: None, 1: None, 2: None}

    def test_hero_id_used_when_name_unknown(self, builder, game_data):
        lib = PortraitLibrary()
        lib.add('deathwing', VALEERA)
        shot = builder().ban_portrait('blue', 0, VALEERA)
        assert _bans(shot, lib, game_data).names[0] == 'deathwing'
