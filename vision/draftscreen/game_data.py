"""Hero and map name dictionary used to validate OCR and portrait results.

Names are stored per language as id -> display name. Lookups compare the
uppercased, substitution-fixed form, so OCR output ('CURSED HOLLOW') finds
the display name ('Cursed Hollow').
"""

import json
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = 'en-us'

# OCR reads these names without their punctuation/diacritics
HERO_SUBSTITUTIONS = {
    'ETC': 'E.T.C.',
    'LUCIO': 'LÚCIO',
}

# Map names as they appear on non-English clients -> English name
MAP_TRANSLATIONS = {
    'de': {
        'TEMPEL VON HANAMURA': 'HANAMURA TEMPLE',
        'ALTERACPASS': 'ALTERAC PASS',
        'SCHLACHTFELD DER EWIGKEIT': 'BATTLEFIELD OF ETERNITY',
        'SCHWARZHERZS BUCHT': "BLACKHEART'S BAY",
        'BRAXIS WAFFENPLATZ': 'BRAXIS HOLDOUT',
        'DER VERFLUCHTE HOHLE': 'CURSED HOLLOW',
        'DAS DRACHENHEIM': 'DRAGON SHIRE',
        'GARTEN DES SCHRECKENS': 'GARDEN OF TERROR',
        'VERFLUCHTE GRUBENBAU': 'HAUNTED MINES',
        'HÖLLENFEUER-SCHREINE': 'INFERNAL SHRINES',
        'HÖHLEN DES VERLORENEN FELDZUGES': 'LOST CAVERNS',
        'HIMMELSTEMPEL': 'SKY TEMPLE',
        'GRABKAMMER DER SPINNENKONIGIN': 'TOMB OF THE SPIDER QUEEN',
        'GRABKAMMER DER SPINNENKÖNIGIN': 'TOMB OF THE SPIDER QUEEN',
        'TÜRME DES VERDERBENS': 'TOWERS OF DOOM',
        'VOLSKAYA-FABRIK': 'VOLSKAYA FOUNDRY',
        'SPRENGSTOFFFRACHTER': 'WARHEAD JUNCTION',
    },
}


class GameDataDictionary:
    """In-memory hero/map dictionary with a user correction table.

    Args:
        heroes: {language: {hero_id: display_name}}
        maps: {language: {map_id: display_name}}
        corrections: {language: {fixed_ocr_text: display_name}}
        language: Language of the game client.
        path: If set, corrections are written back to this JSON file.
    """

    def __init__(self, heroes=None, maps=None, corrections=None,
                 language: str = DEFAULT_LANGUAGE, path: str | None = None):
        self.heroes: dict[str, dict[str, str]] = heroes or {}
        self.maps: dict[str, dict[str, str]] = maps or {}
        self.corrections: dict[str, dict[str, str]] = corrections or {}
        self.substitutions = dict(HERO_SUBSTITUTIONS)
        self.map_translations = {lang: dict(table) for lang, table in MAP_TRANSLATIONS.items()}
        self.player_picks: dict[str, dict] = {}
        self.language = language
        self.path = path

    @classmethod
    def from_json(cls, path: str, language: str | None = None) -> 'GameDataDictionary':
        """Load a dictionary file: {"heroes": ..., "maps": ..., "corrections": ...}."""
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
        game_data = cls(
            heroes=data.get('heroes'),
            maps=data.get('maps'),
            corrections=data.get('corrections'),
            language=language or data.get('language', DEFAULT_LANGUAGE),
            path=path,
        )
        for lang, table in data.get('map_translations', {}).items():
            game_data.map_translations.setdefault(lang, {}).update(table)
        logger.info('Loaded game data from %s: %d heroes, %d maps',
                    path, len(game_data.heroes.get(game_data.language, {})),
                    len(game_data.maps.get(game_data.language, {})))
        return game_data

    def to_dict(self) -> dict:
        return {
            'language': self.language,
            'heroes': self.heroes,
            'maps': self.maps,
            'corrections': self.corrections,
        }

    def save(self) -> None:
        if not self.path:
            return
        tmp_path = f'{self.path}.tmp'
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    # ── Normalisation ──

    def fix_hero_name(self, name: str) -> str:
        name = name.upper().strip()
        return self.substitutions.get(name, name)

    def fix_map_name(self, name: str) -> str:
        name = name.upper().strip()
        name = name.split('\n')[0].strip()
        return ' '.join(name.replace('VIEW BEST HEROES', ' ').split())

    # ── Heroes ──

    def get_hero_id(self, name: str, language: str | None = None) -> str | None:
        fixed = self.fix_hero_name(name)
        for hero_id, hero_name in self.heroes.get(language or self.language, {}).items():
            if self.fix_hero_name(hero_name) == fixed:
                return hero_id
        return None

    def get_hero_name(self, hero_id: str, language: str | None = None) -> str | None:
        return self.heroes.get(language or self.language, {}).get(hero_id)

    def hero_exists(self, name: str, language: str | None = None) -> bool:
        return self.get_hero_id(name, language) is not None

    def correct_hero_name(self, name: str, language: str | None = None) -> str:
        """Apply the correction table to an (already fixed) OCR hero name."""
        table = self.corrections.get(language or self.language, {})
        return table.get(name, name)

    def add_hero_correction(self, from_name: str, to_id: str,
                            language: str | None = None) -> None:
        """Record that OCR text from_name means hero to_id."""
        language = language or self.language
        to_name = self.get_hero_name(to_id, language)
        if to_name is None:
            raise KeyError(f'Unknown hero id {to_id!r} for language {language}')
        self.corrections.setdefault(language, {})[self.fix_hero_name(from_name)] = to_name
        logger.info('Hero correction %r -> %s (%s)', from_name, to_name, language)
        self.save()

    # ── Maps ──

    def get_map_id(self, name: str, language: str | None = None) -> str | None:
        fixed = self.fix_map_name(name)
        for map_id, map_name in self.maps.get(language or self.language, {}).items():
            if self.fix_map_name(map_name) == fixed:
                return map_id
        return None

    def get_map_name(self, map_id: str, language: str | None = None) -> str | None:
        return self.maps.get(language or self.language, {}).get(map_id)

    def map_exists(self, name: str, language: str | None = None) -> bool:
        return self.get_map_id(name, language) is not None

    def translate_map_name(self, name: str, from_language: str | None = None,
                           to_language: str = DEFAULT_LANGUAGE) -> str | None:
        """Translate a map name between languages, None if unknown."""
        from_language = from_language or self.language
        fixed = self.fix_map_name(name)
        translated = self.map_translations.get(from_language, {}).get(fixed)
        if translated is not None:
            return translated
        map_id = self.get_map_id(fixed, from_language)
        if map_id is None:
            return None
        return self.get_map_name(map_id, to_language)

    # ── Players ──

    def set_player_picks(self, player_name: str, picks: dict) -> None:
        """Provide recent-pick statistics for a player name."""
        self.player_picks[player_name] = dict(picks)

    def update_player_recent_picks(self, player) -> None:
        """Attach known recent-pick statistics to a player whose name changed."""
        if player.player_name is None:
            return
        player.set_recent_picks(self.player_picks.get(player.player_name, {}))
