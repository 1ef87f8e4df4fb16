"""Color rule matching for draft screen text, indicators and backgrounds.

A color rule is a reference color with two tolerances: the average channel
difference ("luminance" distance) and the HSV hue-angle difference. A pixel
matches a rule only when it is within both tolerances. Matches are graded
1-255 so that text isolation can keep anti-aliased glyph edges as partial
foreground instead of hard-thresholding them.

All images are BGR uint8 arrays (H, W, 3), as produced by cv2.imread.
Rule colors are written as '#RRGGBB' in the layout file and stored as BGR.
"""

from dataclasses import dataclass

import numpy as np


WHITE = (255, 255, 255)
BLACK = (0, 0, 0)

# Score weights: 1 (floor) + 63 (luminance) + 191 (hue) == 255 on exact match.
LUM_WEIGHT = 63
HUE_WEIGHT = 191
HUE_FOLD = 90.0

# Returned by pixel_color_match when a negative rule fires.
NEGATIVE_MATCH = -1
# Returned by pixel_color_match when no positive rules are given.
ALWAYS_MATCH = 255


def parse_color(value) -> tuple[int, int, int]:
    """Parse '#RRGGBB' (or an [r, g, b] list) into a BGR tuple."""
    if isinstance(value, str):
        text = value.lstrip('#')
        if len(text) != 6:
            raise ValueError(f'Invalid color {value!r}, expected #RRGGBB')
        r, g, b = int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)
    else:
        r, g, b = (int(v) for v in value)
    return b, g, r


@dataclass(frozen=True)
class ColorRule:
    """Reference color (BGR) with luminance and hue tolerances."""
    color: tuple[int, int, int]
    tolerance_lum: float
    tolerance_hue: float | None = None   # None = same as tolerance_lum

    @property
    def hue_tolerance(self) -> float:
        if self.tolerance_hue is None:
            return self.tolerance_lum
        return self.tolerance_hue

    @classmethod
    def from_dict(cls, data: dict) -> 'ColorRule':
        return cls(
            color=parse_color(data['color']),
            tolerance_lum=float(data['tolerance_lum']),
            tolerance_hue=(float(data['tolerance_hue'])
                           if data.get('tolerance_hue') is not None else None),
        )


def color_hue(image) -> np.ndarray:
    """HSV hue angle (0-360) of a BGR pixel or image.

    Grey pixels (all channels equal) have hue 0. When several channels share
    the maximum, blue wins over green, green over red.
    """
    img = np.asarray(image, dtype=np.float64)
    b, g, r = img[..., 0], img[..., 1], img[..., 2]
    vmax = img.max(axis=-1)
    delta = vmax - img.min(axis=-1)
    safe = np.where(delta == 0, 1.0, delta)

    hue = np.where(vmax == r, (g - b) / safe, 0.0)
    hue = np.where(vmax == g, 2.0 + (b - r) / safe, hue)
    hue = np.where(vmax == b, 4.0 + (r - g) / safe, hue)
    hue = hue * 60.0
    hue = np.where(hue < 0, hue + 360.0, hue)
    return np.where(delta == 0, 0.0, hue)


def hue_diff(hue_a, hue_b) -> np.ndarray:
    """Absolute hue-angle difference wrapped to 0-180."""
    diff = np.abs(np.asarray(hue_a, dtype=np.float64) - hue_b)
    return np.where(diff > 180.0, 360.0 - diff, diff)


def lum_diff(image, color) -> np.ndarray:
    """Mean absolute channel difference between pixel(s) and a color."""
    img = np.asarray(image, dtype=np.float64)
    ref = np.asarray(color, dtype=np.float64)
    return np.abs(img - ref).mean(axis=-1)


def _graded(distance: np.ndarray, tolerance: float) -> np.ndarray:
    """1.0 at distance 0 falling linearly to 0.0 at the tolerance."""
    if tolerance <= 0:
        return (distance <= 0).astype(np.float64)
    return np.clip((tolerance - distance) / tolerance, 0.0, 1.0)


def color_match_array(image, rule: ColorRule) -> np.ndarray:
    """Graded match score of every pixel against one rule.

    Returns an int16 array shaped like the image without its channel axis:
    0 where the pixel is outside either tolerance, otherwise 1-255.
    """
    img = np.asarray(image, dtype=np.float64)
    d_lum = lum_diff(img, rule.color)
    d_hue = hue_diff(color_hue(img), color_hue(np.asarray(rule.color)))

    tol_lum = rule.tolerance_lum
    tol_hue = rule.hue_tolerance
    inside = (d_lum <= tol_lum) & (d_hue <= tol_hue)

    lum_term = _graded(d_lum, tol_lum) * LUM_WEIGHT
    hue_term = _graded(np.minimum(d_hue, HUE_FOLD),
                       min(tol_hue, HUE_FOLD)) * HUE_WEIGHT
    score = np.clip(np.rint(1.0 + lum_term + hue_term), 1, 255)
    return np.where(inside, score, 0).astype(np.int16)


def color_match(pixel, rule_color, tolerance_lum: float,
                tolerance_hue: float | None = None) -> int:
    """Match score (0 = no match, 1-255 = strength) of a single BGR pixel."""
    rule = ColorRule(tuple(int(c) for c in rule_color), tolerance_lum, tolerance_hue)
    return int(color_match_array(np.asarray(pixel), rule))


def pixel_color_match_array(image, positive, negative=()) -> np.ndarray:
    """Best positive score per pixel, -1 where any negative rule matches.

    With no positive rules every pixel scores 255 (always matches).
    """
    img = np.asarray(image)
    if positive:
        best = np.zeros(img.shape[:-1], dtype=np.int16)
        for rule in positive:
            best = np.maximum(best, color_match_array(img, rule))
    else:
        best = np.full(img.shape[:-1], ALWAYS_MATCH, dtype=np.int16)
    for rule in negative:
        best = np.where(color_match_array(img, rule) > 0, NEGATIVE_MATCH, best)
    return best.astype(np.int16)


def pixel_color_match(pixel, positive, negative=()) -> int:
    """Scalar version of pixel_color_match_array for one BGR pixel."""
    return int(pixel_color_match_array(np.asarray(pixel).reshape(1, 3),
                                       positive, negative)[0])


def find_any_match(image: np.ndarray, rules) -> bool:
    """True if at least one pixel in the image matches any of the rules."""
    if image.size == 0:
        return False
    return bool(np.any(pixel_color_match_array(image, rules) > 0))


def count_sample_matches(image: np.ndarray, rules,
                         points: list[tuple[int, int]]) -> int:
    """Count how many of the (x, y) sample points match the rules."""
    h, w = image.shape[:2]
    count = 0
    for x, y in points:
        x = min(max(x, 0), w - 1)
        y = min(max(y, 0), h - 1)
        if pixel_color_match(image[y, x], rules) > 0:
            count += 1
    return count


def background_points(w: int, h: int) -> list[tuple[int, int]]:
    """Center plus vertical and horizontal thirds."""
    return [
        (w // 2, h // 2),
        (w // 2, h // 3),
        (w // 2, 2 * h // 3),
        (w // 3, h // 2),
        (2 * w // 3, h // 2),
    ]


def locked_hero_points(w: int, h: int) -> list[tuple[int, int]]:
    """Left, right, top and bottom middle, pulled 2px towards the center."""
    return [
        (w // 4 + 2, h // 2),
        (3 * w // 4 - 2, h // 2),
        (w // 2, h // 4 + 2),
        (w // 2, 3 * h // 4 - 2),
    ]


def ban_check_points(w: int, h: int) -> list[tuple[int, int]]:
    """Seven points spread over a ban indicator strip."""
    return [
        (w // 2, h // 2),
        (w // 4, h // 4),
        (3 * w // 4, h // 4),
        (w // 4, 3 * h // 4),
        (3 * w // 4, 3 * h // 4),
        (w // 2, h // 4),
        (w // 2, 3 * h // 4),
    ]


def background_match(image: np.ndarray, rules, tolerance: int = 2) -> bool:
    """True if at least (5 - tolerance) of the 5 sample points match."""
    h, w = image.shape[:2]
    if h == 0 or w == 0:
        return False
    matches = count_sample_matches(image, rules, background_points(w, h))
    return matches >= 5 - tolerance


def locked_hero_background_match(image: np.ndarray, rules,
                                 tolerance: int = 1) -> bool:
    """True if at least (4 - tolerance) of the 4 inset sample points match."""
    h, w = image.shape[:2]
    if h == 0 or w == 0:
        return False
    matches = count_sample_matches(image, rules, locked_hero_points(w, h))
    return matches >= 4 - tolerance


def color_distance(pixel: np.ndarray, reference: np.ndarray) -> float:
    """Euclidean distance between two BGR pixel values."""
    return float(np.sqrt(np.sum((pixel.astype(float) - reference.astype(float)) ** 2)))


def average_color(tile: np.ndarray) -> np.ndarray:
    """Compute the average BGR color of a tile."""
    return np.mean(tile.reshape(-1, 3), axis=0).astype(np.uint8)
