"""Tests for the OCR worker pool that don't need a tesseract install."""
import asyncio
import sys
import threading
import time
from concurrent.futures import Future
from concurrent.futures.process import BrokenProcessPool
from pathlib import Path

import numpy as np
import pytest

VISION_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(VISION_DIR))

from draftscreen.config import DraftConfig, tesseract_language
from draftscreen.ocr_gateway import (
    MIN_CALL_TIMEOUT, OcrGateway, OcrResult, build_tesseract_config, recognize_png,
)

IMAGE = np.zeros((20, 60), dtype=np.uint8)


def _failed_future(error):
    future = Future()
    future.set_exception(error)
    return future


class _SerialWorker:
    """Stands in for a single-process executor: requests run back to back."""

    def __init__(self, seconds):
        self.seconds = seconds
        self.busy_until = 0.0

    def __call__(self, *args):
        future = Future()
        start = max(time.monotonic(), self.busy_until)
        self.busy_until = start + self.seconds
        timer = threading.Timer(self.busy_until - time.monotonic(),
                                future.set_result, [('text', 90.0)])
        timer.start()
        return future


@pytest.fixture
def gateway():
    gw = OcrGateway(workers=1, timeout=0.2)
    yield gw
    gw.close()


class TestConfig:

    def test_default_single_line(self):
        assert build_tesseract_config() == '--psm 7'

    def test_params(self):
        config = build_tesseract_config({'psm': 6, 'oem': 1,
                                         'tessedit_char_whitelist': 'ABC',
                                         'load_system_dawg': 0})
        assert config == ('--psm 6 --oem 1 -c load_system_dawg=0 '
                          '-c tessedit_char_whitelist=ABC')

    def test_language_codes(self):
        assert tesseract_language('en-us') == 'eng'
        assert tesseract_language('DE') == 'deu'
        assert tesseract_language('xx') == 'eng'

    def test_draft_config_languages(self):
        config = DraftConfig(language='de')
        assert config.get_option('tesseractLanguage') == 'deu'
        assert config.player_name_languages() == 'deu+lat+rus+kor'
        assert config.get_option('playerNameLanguages') == 'deu+lat+rus+kor'
        assert config.get_option('banMaxColorDistance') is None
        assert config.get_option('mapLockSeconds') == 20.0
        with pytest.raises(KeyError):
            config.get_option('nope')


class TestWorkerSelection:

    def test_least_busy_then_round_robin(self):
        gw = OcrGateway(workers=3)
        try:
            w0, w1, w2 = gw._workers
            assert [gw._pick_worker() for _ in range(3)] == [w0, w1, w2]
            w0.pending = 2
            w1.pending = 1
            assert gw._pick_worker() is w2
            w2.pending = 3
            assert gw._pick_worker() is w1
        finally:
            gw.close()

    def test_needs_a_worker(self):
        with pytest.raises(ValueError):
            OcrGateway(workers=0)


class TestFailures:

    def test_undecodable_request(self):
        with pytest.raises(ValueError):
            recognize_png(b'garbage', 'eng', '--psm 7')

    def test_worker_error_becomes_result(self, gateway):
        worker = gateway._workers[0]
        worker.submit = lambda *args: _failed_future(RuntimeError('tesseract missing'))
        result = asyncio.run(gateway.recognize(IMAGE, 'eng'))
        assert isinstance(result, OcrResult)
        assert not result.ok
        assert 'tesseract missing' in result.error
        assert worker.pending == 0
        assert worker.restarts == 0

    def test_crashed_worker_restarted(self, gateway):
        worker = gateway._workers[0]
        worker.submit = lambda *args: _failed_future(BrokenProcessPool('died'))
        old_executor = worker.executor
        result = asyncio.run(gateway.recognize(IMAGE, 'eng'))
        assert not result.ok
        assert worker.restarts == 1
        assert worker.executor is not old_executor

    def test_timeout_restarts_worker(self, gateway):
        worker = gateway._workers[0]
        worker.submit = lambda *args: Future()
        result = asyncio.run(gateway.recognize(IMAGE, 'eng'))
        assert result.error == 'timeout'
        assert worker.restarts == 1
        assert worker.pending == 0

    def test_closed_gateway(self):
        gw = OcrGateway(workers=1)
        gw.close()
        result = asyncio.run(gw.recognize(IMAGE, 'eng'))
        assert result.error == 'OCR gateway is closed'


class TestTimeouts:

    def test_queued_request_not_timed_out(self):
        gw = OcrGateway(workers=1, timeout=0.25)
        try:
            worker = gw._workers[0]
            worker.submit = _SerialWorker(0.15)

            async def two_requests():
                return await asyncio.gather(gw.recognize(IMAGE, 'eng'),
                                            gw.recognize(IMAGE, 'eng'))

            results = asyncio.run(two_requests())
            assert [r.text for r in results] == ['text', 'text']
            assert worker.restarts == 0
            assert worker.pending == 0
        finally:
            gw.close()

    def test_tesseract_timeout_never_disabled(self):
        gw = OcrGateway(workers=1, timeout=0.5)
        try:
            assert gw._workers[0].call_timeout == MIN_CALL_TIMEOUT
            assert MIN_CALL_TIMEOUT > 0
        finally:
            gw.close()

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            OcrGateway(workers=1, timeout=0)
