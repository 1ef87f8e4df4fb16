"""Ban portrait identification by perceptual hash.

Portraits are reduced to a 64-bit DCT hash (pHash) with imagehash.
Screenshot compression and slight rescaling barely move the hash, so
nearest-neighbour search by Hamming distance identifies a ban even when the
crop is not pixel-identical to the stored portrait. Entries at the same
Hamming distance are told apart by comparing the candidate against their
stored comparison bitmaps.
"""

import logging
import os
from dataclasses import dataclass

import cv2
import imagehash
import numpy as np
from PIL import Image

from .color_utils import average_color, color_distance
from .errors import PortraitLibraryError

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 10
DEFAULT_MIN_GAP = 2


def phash(image: np.ndarray) -> imagehash.ImageHash:
    """64-bit perceptual hash of a BGR or greyscale image."""
    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    return imagehash.phash(Image.fromarray(image))


def hamming(a: imagehash.ImageHash, b: imagehash.ImageHash) -> int:
    return int(a - b)


def bitmap_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Mean absolute per-channel difference of two same-sized bitmaps."""
    return float(np.mean(cv2.absdiff(a, b)))


@dataclass
class PortraitEntry:
    hero_id: str
    hash: imagehash.ImageHash
    bitmap: np.ndarray   # portrait resized to the compare size


@dataclass
class PortraitMatch:
    hero_id: str | None            # None = nothing within threshold
    best_distance: int | None
    second_distance: int | None

    @property
    def gap(self) -> int | None:
        if self.best_distance is None or self.second_distance is None:
            return None
        return self.second_distance - self.best_distance

    def confident(self, min_gap: int = DEFAULT_MIN_GAP) -> bool:
        """Matched, and clearly closer than the runner-up."""
        if self.hero_id is None:
            return False
        return self.second_distance is None or self.gap >= min_gap


class PortraitLibrary:
    """Hero id -> portrait hash, from a shipped dir plus a user overlay dir.

    Args:
        compare_size: (w, h) of the stored comparison bitmaps.
        user_dir: Writable directory for corrected portraits.
    """

    def __init__(self, compare_size: tuple[int, int] = (32, 32),
                 user_dir: str | None = None):
        self.compare_size = (int(compare_size[0]), int(compare_size[1]))
        self.user_dir = user_dir
        self.entries: dict[str, PortraitEntry] = {}

    @classmethod
    def load(cls, base_dir: str, user_dir: str | None = None,
             compare_size: tuple[int, int] = (32, 32)) -> 'PortraitLibrary':
        """Load <heroId>.png portraits; user_dir entries overwrite base ones.

        Raises:
            PortraitLibraryError: base_dir is missing or user_dir can't be created.
        """
        base_dir = os.fspath(base_dir)
        if not os.path.isdir(base_dir):
            raise PortraitLibraryError(f'Portrait directory not found: {base_dir}')
        if user_dir is not None:
            user_dir = os.fspath(user_dir)
            try:
                os.makedirs(user_dir, exist_ok=True)
            except OSError as e:
                raise PortraitLibraryError(
                    f'Cannot create user portrait directory {user_dir}: {e}') from e

        library = cls(compare_size, user_dir)
        base_count = library._load_dir(base_dir)
        user_count = library._load_dir(user_dir) if user_dir else 0
        logger.info('Loaded %d ban portraits (%d base, %d user)',
                    len(library), base_count, user_count)
        return library

    def _load_dir(self, directory: str) -> int:
        count = 0
        try:
            names = sorted(os.listdir(directory))
        except OSError as e:
            raise PortraitLibraryError(f'Cannot read portrait directory {directory}: {e}') from e
        for fname in names:
            if not fname.endswith('.png'):
                continue
            img = cv2.imread(os.path.join(directory, fname), cv2.IMREAD_COLOR)
            if img is None:
                logger.warning('Skipping unreadable portrait %s', fname)
                continue
            self.add(os.path.splitext(fname)[0], img)
            count += 1
        return count

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, hero_id: str) -> bool:
        return hero_id in self.entries

    def add(self, hero_id: str, image: np.ndarray) -> None:
        bitmap = cv2.resize(image, self.compare_size, interpolation=cv2.INTER_AREA)
        self.entries[hero_id] = PortraitEntry(hero_id, phash(image), bitmap)

    def add_user_portrait(self, hero_id: str, image: np.ndarray,
                          overwrite: bool = False) -> bool:
        """Save a corrected portrait to the user dir and start matching it.

        Known hero ids are left alone unless overwrite is set. Returns True
        if the portrait was stored.
        """
        if hero_id in self.entries and not overwrite:
            return False
        if self.user_dir is None:
            raise PortraitLibraryError('No user portrait directory configured')
        path = os.path.join(self.user_dir, f'{hero_id}.png')
        if not cv2.imwrite(path, image):
            raise PortraitLibraryError(f'Could not write portrait {path}')
        self.add(hero_id, image)
        logger.info('Saved user portrait for %s', hero_id)
        return True


def match_portrait(candidate: np.ndarray, library: PortraitLibrary,
                   threshold: int = DEFAULT_THRESHOLD,
                   max_color_distance: float | None = None) -> PortraitMatch:
    """Nearest library portrait by Hamming distance.

    Entries at equal Hamming distance are ranked by how close their stored
    bitmap is to the candidate; exact ties resolve to the alphabetically
    first hero id. With max_color_distance set, entries whose average color
    differs more than that from the candidate are not considered.
    """
    candidate_hash = phash(candidate)
    bitmap = cv2.resize(candidate, library.compare_size, interpolation=cv2.INTER_AREA)
    candidate_avg = average_color(bitmap) if max_color_distance is not None else None

    best_id = None
    best = None
    best_diff = None
    second = None
    for hero_id in sorted(library.entries):
        entry = library.entries[hero_id]
        if candidate_avg is not None:
            if color_distance(candidate_avg, average_color(entry.bitmap)) > max_color_distance:
                continue
        distance = hamming(candidate_hash, entry.hash)
        if best is not None and distance == best:
            diff = bitmap_distance(bitmap, entry.bitmap)
            if best_diff is None:
                best_diff = bitmap_distance(bitmap, library.entries[best_id].bitmap)
            second = distance
            if diff < best_diff:
                best_id, best_diff = hero_id, diff
        elif best is None or distance < best:
            second = best
            best = distance
            best_id = hero_id
            best_diff = None
        elif second is None or distance < second:
            second = distance

    if best is None or best > threshold:
        best_id = None
    return PortraitMatch(best_id, best, second)
