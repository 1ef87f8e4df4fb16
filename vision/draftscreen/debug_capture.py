"""Before/after image pairs of text isolation, for tuning color rules."""

import json
import logging
import os
import re
from dataclasses import dataclass

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class DebugEntry:
    ident: str                 # e.g. 'blue-player2-hero'
    original: np.ndarray
    cleaned: np.ndarray | None
    positive: tuple = ()
    negative: tuple = ()
    invert: bool = False
    success: bool = True

    def to_dict(self) -> dict:
        def rules(items):
            return [{'color': list(r.color), 'tolerance_lum': r.tolerance_lum,
                     'tolerance_hue': r.hue_tolerance} for r in items]
        return {
            'ident': self.ident,
            'success': self.success,
            'invert': self.invert,
            'positive': rules(self.positive),
            'negative': rules(self.negative),
        }


class DebugRecorder:
    """Collects DebugEntry items for one detection pass."""

    def __init__(self):
        self.entries: list[DebugEntry] = []

    def add(self, ident: str, original: np.ndarray, cleaned: np.ndarray | None,
            positive=(), negative=(), invert: bool = False,
            success: bool = True) -> None:
        self.entries.append(DebugEntry(ident, original.copy(),
                                       None if cleaned is None else cleaned.copy(),
                                       tuple(positive), tuple(negative),
                                       invert, success))

    def clear(self) -> None:
        self.entries = []

    def write(self, directory: str) -> int:
        """Write <n>_<ident>_original.png / _cleaned.png plus debug.json."""
        os.makedirs(directory, exist_ok=True)
        index = []
        for n, entry in enumerate(self.entries):
            stem = f'{n:02d}_{re.sub(r"[^A-Za-z0-9_-]", "_", entry.ident)}'
            cv2.imwrite(os.path.join(directory, f'{stem}_original.png'), entry.original)
            if entry.cleaned is not None and entry.cleaned.size:
                cv2.imwrite(os.path.join(directory, f'{stem}_cleaned.png'), entry.cleaned)
            index.append(dict(entry.to_dict(), file=stem))
        with open(os.path.join(directory, 'debug.json'), 'w') as f:
            json.dump(index, f, indent=2)
        logger.debug('Wrote %d debug entries to %s', len(self.entries), directory)
        return len(self.entries)
