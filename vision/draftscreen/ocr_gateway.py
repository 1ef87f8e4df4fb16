"""OCR worker pool.

Each worker is a single-process executor owning one tesseract setup, so
recognition never blocks the event loop and a crashing or hanging tesseract
only takes down its own worker. Requests are PNG-encoded before crossing the
process boundary.

Failures never raise out of recognize(): they come back as an OcrResult with
`error` set, which detectors treat as "no text".
"""

import asyncio
import logging
import shlex
from concurrent.futures import ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from dataclasses import dataclass

import cv2
import numpy as np
import pytesseract
from pytesseract import Output

from .regions import encode_png

logger = logging.getLogger(__name__)

DEFAULT_PSM = 7  # single text line
MIN_CALL_TIMEOUT = 0.5  # tesseract treats 0 as "no timeout"

_call_timeout = 0.0


@dataclass
class OcrResult:
    text: str = ''
    confidence: float = 0.0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_tesseract_config(params: dict | None = None) -> str:
    """Build the tesseract CLI config string.

    Recognised keys: 'psm', 'oem'. Everything else becomes a '-c key=value'
    variable, in sorted order.
    """
    params = dict(params or {})
    args = ['--psm', str(params.pop('psm', DEFAULT_PSM))]
    oem = params.pop('oem', None)
    if oem is not None:
        args += ['--oem', str(oem)]
    for key in sorted(params):
        args += ['-c', f'{key}={params[key]}']
    return shlex.join(args)


def _init_worker(tesseract_cmd: str | None, call_timeout: float) -> None:
    global _call_timeout
    if tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
    _call_timeout = call_timeout


def recognize_png(png: bytes, languages: str, config: str) -> tuple[str, float]:
    """Run tesseract on a PNG-encoded image. Executes inside a worker process.

    Returns (text, confidence 0-100). Lines are joined with newlines, words
    with single spaces.
    """
    image = cv2.imdecode(np.frombuffer(png, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ValueError('Could not decode OCR request image')
    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

    data = pytesseract.image_to_data(image, lang=languages, config=config,
                                     output_type=Output.DICT,
                                     timeout=_call_timeout)

    lines: dict[tuple, list[str]] = {}
    confidences = []
    for i, word in enumerate(data['text']):
        word = (word or '').strip()
        if not word:
            continue
        key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
        lines.setdefault(key, []).append(word)
        conf = float(data['conf'][i])
        if conf >= 0:
            confidences.append(conf)

    text = '\n'.join(' '.join(words) for _, words in sorted(lines.items()))
    confidence = sum(confidences) / len(confidences) if confidences else 0.0
    return text, confidence


class _OcrWorker:
    """One single-process executor plus its in-flight request count."""

    def __init__(self, index: int, tesseract_cmd: str | None, call_timeout: float):
        self.index = index
        self.tesseract_cmd = tesseract_cmd
        self.call_timeout = call_timeout
        self.pending = 0
        self.restarts = 0
        # one request at a time, so the timeout only runs while it executes
        self.lock = asyncio.Lock()
        self.executor = self._start()

    def _start(self) -> ProcessPoolExecutor:
        return ProcessPoolExecutor(max_workers=1, initializer=_init_worker,
                                   initargs=(self.tesseract_cmd, self.call_timeout))

    def submit(self, png: bytes, languages: str, config: str):
        return self.executor.submit(recognize_png, png, languages, config)

    def restart(self) -> None:
        logger.warning('Restarting OCR worker %d', self.index)
        self.executor.shutdown(wait=False)
        self.executor = self._start()
        self.restarts += 1

    def close(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)


class OcrGateway:
    """Pool of OCR worker processes.

    Args:
        workers: Number of worker processes (true OCR parallelism).
        timeout: Seconds before a request is abandoned and its worker restarted.
        tesseract_cmd: Path to the tesseract binary, if not on PATH.
    """

    def __init__(self, workers: int = 4, timeout: float = 10.0,
                 tesseract_cmd: str | None = None):
        if workers < 1:
            raise ValueError('OCR gateway needs at least one worker')
        if timeout <= 0:
            raise ValueError('OCR timeout must be positive')
        self.timeout = timeout
        # tesseract itself gets slightly less than the request timeout
        call_timeout = max(MIN_CALL_TIMEOUT, timeout - 1.0)
        self._workers = [_OcrWorker(i, tesseract_cmd, call_timeout) for i in range(workers)]
        self._next = 0
        self._closed = False

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    def _pick_worker(self) -> _OcrWorker:
        """Least busy worker; ties go round-robin."""
        n = len(self._workers)
        start = self._next
        self._next = (self._next + 1) % n
        order = [self._workers[(start + i) % n] for i in range(n)]
        return min(order, key=lambda w: w.pending)

    async def recognize(self, image: np.ndarray, languages: str,
                        params: dict | None = None) -> OcrResult:
        """Recognize the text in an image. Never raises for OCR failures."""
        if self._closed:
            return OcrResult(error='OCR gateway is closed')
        try:
            png = encode_png(image)
        except (ValueError, cv2.error) as e:
            return OcrResult(error=f'encode failed: {e}')

        config = build_tesseract_config(params)
        worker = self._pick_worker()
        worker.pending += 1
        try:
            async with worker.lock:
                future = worker.submit(png, languages, config)
                text, confidence = await asyncio.wait_for(asyncio.wrap_future(future),
                                                          timeout=self.timeout)
            return OcrResult(text=text, confidence=confidence)
        except asyncio.TimeoutError:
            logger.warning('OCR worker %d timed out after %.1fs', worker.index, self.timeout)
            worker.restart()
            return OcrResult(error='timeout')
        except BrokenProcessPool as e:
            logger.warning('OCR worker %d crashed: %s', worker.index, e)
            worker.restart()
            return OcrResult(error=f'worker crashed: {e}')
        except Exception as e:
            logger.debug('OCR request failed on worker %d: %s', worker.index, e)
            return OcrResult(error=str(e) or type(e).__name__)
        finally:
            worker.pending -= 1

    def close(self) -> None:
        self._closed = True
        for worker in self._workers:
            worker.close()
