"""Text isolation ("name cleanup") for OCR.

Recolors pixels matching the text color rules onto a clean
foreground/background pair, drops columns polluted by negative-rule colors,
and crops tightly around what is left. OCR on the isolated image is far more
reliable than on the raw game UI, which has gradients and portraits behind
the labels.
"""

import cv2
import numpy as np

from .color_utils import BLACK, WHITE, pixel_color_match_array
from .regions import scale

PAD_X = 8
PAD_Y = 4

# Jimp-style contrast of +0.4: factor = (1 + 0.4) / (1 - 0.4)
CONTRAST_FACTOR = 1.4 / 0.6


def cleanup_name(image: np.ndarray, positive, negative=(),
                 foreground=WHITE, background=BLACK) -> tuple[bool, np.ndarray]:
    """Isolate text pixels matching the positive rules.

    Matching pixels are blended between background and foreground by match
    strength. Pixels hit by a negative rule become background, and their
    whole column is excluded from the horizontal text bounds.

    Returns:
        (found, new_image). When no column qualifies, found is False and the
        blanked full-size image is returned. The input is never modified.
    """
    h, w = image.shape[:2]
    fg = np.asarray(foreground, dtype=np.float64)
    bg = np.asarray(background, dtype=np.float64)

    result = np.empty((h, w, 3), dtype=np.uint8)
    result[:, :] = np.asarray(background, dtype=np.uint8)
    if h == 0 or w == 0:
        return False, result

    match = pixel_color_match_array(image, positive, negative)
    positive_mask = match > 0
    negative_mask = match < 0

    ratio = (np.where(positive_mask, match, 0) / 255.0)[..., None]
    blended = np.rint(fg * ratio + bg * (1.0 - ratio)).astype(np.uint8)
    result[positive_mask] = blended[positive_mask]

    columns = positive_mask.any(axis=0) & ~negative_mask.any(axis=0)
    if not columns.any():
        return False, result

    xs = np.flatnonzero(columns)
    ys = np.flatnonzero(positive_mask.any(axis=1))
    min_x = max(0, int(xs[0]) - PAD_X)
    max_x = min(w - 1, int(xs[-1]) + PAD_X)
    min_y = max(0, int(ys[0]) - PAD_Y)
    max_y = min(h - 1, int(ys[-1]) + PAD_Y)
    return True, result[min_y:max_y + 1, min_x:max_x + 1].copy()


def invert(image: np.ndarray) -> np.ndarray:
    return cv2.bitwise_not(image)


def ocr_optimize(image: np.ndarray) -> np.ndarray:
    """Greyscale, raise contrast, normalise, blur lightly, halve."""
    if image.ndim == 3:
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    else:
        gray = image
    contrasted = (gray.astype(np.float32) - 127.5) * CONTRAST_FACTOR + 127.5
    contrasted = np.clip(contrasted, 0, 255).astype(np.uint8)
    normalized = cv2.normalize(contrasted, None, 0, 255, cv2.NORM_MINMAX)
    blurred = cv2.GaussianBlur(normalized, (3, 3), 0)
    return scale(blurred, 0.5)
