"""Tests for the command line tools (engine options, portrait capture)."""
import os
import sys
from pathlib import Path

import cv2
import pytest

VISION_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(VISION_DIR))

import draft_engine
from capture_portraits import capture
from conftest import random_portrait


class TestEngineArgs:

    def test_source_required(self):
        with pytest.raises(SystemExit):
            draft_engine.parse_args(['--game-data', 'g.json'])

    def test_sources_exclusive(self):
        with pytest.raises(SystemExit):
            draft_engine.parse_args(['--game-data', 'g.json',
                                     '--screenshot', 'a.png', '--watch', 'dir'])

    def test_build_config(self):
        args = draft_engine.parse_args([
            '--screenshot', 'a.png', '--game-data', 'g.json',
            '--language', 'de', '--workers', '2', '--ocr-timeout', '4', '--debug',
        ])
        config = draft_engine.build_config(args)
        assert config.language == 'de'
        assert config.ocr_workers == 2
        assert config.ocr_timeout == 4.0
        assert config.debug_enabled
        assert config.ocr_language() == 'deu'


class TestNewestScreenshot:

    def test_picks_latest_png(self, tmp_path):
        for i, name in enumerate(['a.png', 'b.PNG', 'c.jpg']):
            path = tmp_path / name
            path.write_bytes(b'x')
            os.utime(path, (1000 + i, 1000 + i))
        path, mtime = draft_engine.newest_screenshot(str(tmp_path))
        assert path.endswith('b.PNG')
        assert mtime == 1001

    def test_empty_directory(self, tmp_path):
        assert draft_engine.newest_screenshot(str(tmp_path)) is None


class TestCapturePortraits:

    def _screenshot(self, builder, tmp_path):
        shot = (builder().ban_portrait('blue', 0, random_portrait(1))
                .ban_portrait('red', 0, random_portrait(2)))
        path = str(tmp_path / 'draft.png')
        cv2.imwrite(path, shot.image)
        return path

    def test_saves_occupied_slots(self, builder, tmp_path):
        path = self._screenshot(builder, tmp_path)
        out = tmp_path / 'bans'
        saved = capture(path, ['valeera', '', 'jaina', 'muradin'], str(out))
        # blue slot 2 is empty, so jaina is skipped
        assert saved == ['valeera', 'muradin']
        assert sorted(os.listdir(out)) == ['muradin.png', 'valeera.png']
        stored = cv2.imread(str(out / 'valeera.png'))
        assert (stored == random_portrait(1)).all()

    def test_existing_portraits_need_force(self, builder, tmp_path):
        path = self._screenshot(builder, tmp_path)
        out = str(tmp_path / 'bans')
        heroes = ['valeera', '', '', 'muradin']
        assert capture(path, heroes, out) == ['valeera', 'muradin']
        assert capture(path, heroes, out) == []
        assert capture(path, heroes, out, force=True) == ['valeera', 'muradin']
