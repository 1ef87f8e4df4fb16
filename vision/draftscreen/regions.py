"""Region extraction from draft screen screenshots.

Every crop takes already-scaled offsets (see layout.ScaledOffsets). Crops
that run past the screenshot edge are padded with black instead of being
truncated, so the returned region always has the requested size.
"""

import os

import cv2
import numpy as np

from .errors import ScreenshotError
from .layout import ScaledOffsets, Vec


def crop(image: np.ndarray, pos: Vec, size: Vec) -> np.ndarray:
    """Crop a (size.x, size.y) region at pos, zero-padding out-of-bounds pixels."""
    h, w = image.shape[:2]
    cw, ch = max(0, size.x), max(0, size.y)
    sy1 = max(0, pos.y)
    sy2 = min(h, pos.y + ch)
    sx1 = max(0, pos.x)
    sx2 = min(w, pos.x + cw)

    result = np.zeros((ch, cw) + image.shape[2:], dtype=image.dtype)
    if sy2 > sy1 and sx2 > sx1:
        dy_off = sy1 - pos.y
        dx_off = sx1 - pos.x
        result[dy_off:dy_off + (sy2 - sy1),
               dx_off:dx_off + (sx2 - sx1)] = image[sy1:sy2, sx1:sx2]
    return result


def rotate(image: np.ndarray, angle: float) -> np.ndarray:
    """Rotate around the image center, keeping the size; corners fill black."""
    if not angle:
        return image.copy()
    h, w = image.shape[:2]
    matrix = cv2.getRotationMatrix2D((w / 2.0, h / 2.0), angle, 1.0)
    return cv2.warpAffine(image, matrix, (w, h),
                          flags=cv2.INTER_LINEAR,
                          borderMode=cv2.BORDER_CONSTANT,
                          borderValue=(0, 0, 0))


def scale(image: np.ndarray, factor: float) -> np.ndarray:
    """Resize by a uniform factor (at least 1x1)."""
    h, w = image.shape[:2]
    new_w = max(1, int(round(w * factor)))
    new_h = max(1, int(round(h * factor)))
    interpolation = cv2.INTER_CUBIC if factor > 1 else cv2.INTER_AREA
    return cv2.resize(image, (new_w, new_h), interpolation=interpolation)


def encode_png(image: np.ndarray) -> bytes:
    """Encode an image as PNG bytes (used for OCR requests and debug output)."""
    ok, buf = cv2.imencode('.png', image)
    if not ok:
        raise ValueError(f'Could not encode image of shape {image.shape} as PNG')
    return buf.tobytes()


def load_image(source) -> np.ndarray:
    """Load a screenshot from an array, encoded bytes, or a file path.

    Returns a BGR uint8 array. Raises ScreenshotError if nothing decodable
    was given.
    """
    if isinstance(source, np.ndarray):
        image = source
    elif isinstance(source, (bytes, bytearray, memoryview)):
        data = np.frombuffer(bytes(source), dtype=np.uint8)
        image = cv2.imdecode(data, cv2.IMREAD_COLOR) if data.size else None
    elif isinstance(source, (str, os.PathLike)):
        image = cv2.imread(os.fspath(source), cv2.IMREAD_COLOR)
    else:
        raise ScreenshotError(f'Unsupported screenshot type {type(source).__name__}')

    if image is None or image.size == 0:
        raise ScreenshotError('Screenshot could not be decoded')
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    elif image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)
    return image


# ── Semantic regions ──────────────────────────────────────────────────────────

def map_region(screenshot: np.ndarray, offsets: ScaledOffsets) -> np.ndarray:
    return crop(screenshot, offsets.map_pos, offsets.map_size)


def timer_region(screenshot: np.ndarray, offsets: ScaledOffsets) -> np.ndarray:
    return crop(screenshot, offsets.timer_pos, offsets.timer_size)


def ban_region(screenshot: np.ndarray, offsets: ScaledOffsets,
               team: str, index: int) -> np.ndarray:
    return crop(screenshot, offsets.teams[team].bans[index], offsets.ban_size)


def ban_check_region(screenshot: np.ndarray, offsets: ScaledOffsets,
                     team: str) -> np.ndarray:
    return crop(screenshot, offsets.teams[team].ban_check, offsets.ban_check_size)


def player_region(screenshot: np.ndarray, offsets: ScaledOffsets,
                  team: str, index: int) -> np.ndarray:
    return crop(screenshot, offsets.teams[team].players[index], offsets.player_size)


def name_region(player_image: np.ndarray, offsets: ScaledOffsets,
                team: str) -> np.ndarray:
    """Name area of a player slot, clamped so it never leaves the slot."""
    pos = offsets.teams[team].name
    h, w = player_image.shape[:2]
    size = Vec(min(offsets.name_size.x, w - pos.x),
               min(offsets.name_size.y, h - pos.y))
    return crop(player_image, pos, size)


def hero_name_region(name_image: np.ndarray, offsets: ScaledOffsets,
                     team: str) -> np.ndarray:
    """Rotated hero name box inside a name area."""
    team_offsets = offsets.teams[team]
    rotated = rotate(name_image, team_offsets.name_angle)
    return crop(rotated, team_offsets.hero_name_rotated, offsets.hero_name_size_rotated)


def player_name_region(name_image: np.ndarray, offsets: ScaledOffsets,
                       team: str) -> np.ndarray:
    """Rotated player name box inside a name area."""
    team_offsets = offsets.teams[team]
    rotated = rotate(name_image, team_offsets.name_angle)
    return crop(rotated, team_offsets.player_name_rotated,
                offsets.player_name_size_rotated)
