"""Resolved configuration values passed into the draft screen detector."""

from dataclasses import dataclass, field
from pathlib import Path

PACKAGE_DIR = Path(__file__).parent
DEFAULT_BANS_DIR = PACKAGE_DIR / 'portraits'

# Application language code -> tesseract traineddata name
TESSERACT_LANGUAGES = {
    'en-us': 'eng',
    'en-gb': 'eng',
    'de': 'deu',
    'fr': 'fra',
    'es': 'spa',
    'it': 'ita',
    'pt': 'por',
    'ru': 'rus',
    'ko': 'kor',
    'pl': 'pol',
    'zh': 'chi_sim',
}

# Extra scripts tried for player names, which are not tied to the UI language
PLAYER_NAME_EXTRA_LANGUAGES = ('lat', 'rus', 'kor')


def tesseract_language(language: str) -> str:
    """Map an application language code to a tesseract language code."""
    return TESSERACT_LANGUAGES.get((language or '').lower(), 'eng')


@dataclass
class DraftConfig:
    """Detector settings, normally built from the engine's command line."""
    debug_enabled: bool = False
    language: str = 'en-us'
    tesseract_language: str | None = None    # None = derived from language
    tesseract_params: dict = field(default_factory=dict)
    ocr_workers: int = 4
    ocr_timeout: float = 10.0
    ban_match_threshold: int = 10
    ban_min_gap: int = 2
    ban_max_color_distance: float | None = None   # None = no color cross-check
    map_lock_seconds: float = 20.0
    bans_dir: Path = DEFAULT_BANS_DIR
    user_bans_dir: Path | None = None

    _OPTION_NAMES = {
        'debugEnabled': 'debug_enabled',
        'language': 'language',
        'tesseractParams': 'tesseract_params',
        'ocrWorkers': 'ocr_workers',
        'ocrTimeout': 'ocr_timeout',
        'banMatchThreshold': 'ban_match_threshold',
        'banMinGap': 'ban_min_gap',
        'banMaxColorDistance': 'ban_max_color_distance',
        'mapLockSeconds': 'map_lock_seconds',
        'bansDir': 'bans_dir',
        'userBansDir': 'user_bans_dir',
    }

    def get_option(self, key: str):
        """Look up an option by its camelCase settings key.

        Raises:
            KeyError: for unknown keys.
        """
        if key == 'tesseractLanguage':
            return self.ocr_language()
        if key == 'playerNameLanguages':
            return self.player_name_languages()
        return getattr(self, self._OPTION_NAMES[key])

    def ocr_language(self) -> str:
        return self.tesseract_language or tesseract_language(self.language)

    def player_name_languages(self) -> str:
        return '+'.join((self.ocr_language(),) + PLAYER_NAME_EXTRA_LANGUAGES)
