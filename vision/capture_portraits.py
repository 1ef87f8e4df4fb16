"""Capture ban portraits from a draft screenshot.

Crops every occupied ban slot and saves it as <heroId>.png, so that the
hero is recognized by the ban detector from then on. Hero ids are given in
slot order (blue slots first, then red); leave an entry empty to skip a slot.

Usage:
    python capture_portraits.py draft.png --heroes valeera,,muradin,jaina \
        --out ~/.draft/bans
"""

import argparse
import os
import sys

from draftscreen.color_utils import background_match
from draftscreen.draft_state import TEAM_COLORS
from draftscreen.layout import LayoutScaler, load_layout
from draftscreen.portrait_matcher import PortraitLibrary
from draftscreen.regions import ban_region, load_image


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Capture ban portraits')
    parser.add_argument('screenshot', help='Draft screenshot with visible bans')
    parser.add_argument('--heroes', required=True,
                        help='Comma-separated hero ids in slot order')
    parser.add_argument('--out', required=True,
                        help='Portrait directory to write into')
    parser.add_argument('--layout', default=None, help='Layout JSON')
    parser.add_argument('--force', action='store_true',
                        help='Replace portraits that already exist')
    return parser.parse_args(argv)


def capture(screenshot_path: str, hero_ids: list[str], out_dir: str,
            layout_path: str | None = None, force: bool = False) -> list[str]:
    """Save occupied ban slots under the given hero ids. Returns saved ids."""
    layout = load_layout(layout_path)
    screenshot = load_image(screenshot_path)
    h, w = screenshot.shape[:2]
    offsets = LayoutScaler(layout).offsets_for(w, h)

    os.makedirs(out_dir, exist_ok=True)
    size = layout.ban_size_compare
    library = PortraitLibrary.load(out_dir, out_dir, (size.x, size.y))
    background = layout.rules('ban_background')

    slots = [(color, index) for color in TEAM_COLORS
             for index in range(len(offsets.teams[color].bans))]
    saved = []
    for (color, index), hero_id in zip(slots, hero_ids):
        hero_id = hero_id.strip()
        if not hero_id:
            continue
        slot = ban_region(screenshot, offsets, color, index)
        if background_match(slot, background):
            print(f'{color} ban {index}: empty slot, skipping {hero_id}')
            continue
        if library.add_user_portrait(hero_id, slot, overwrite=force):
            print(f'{color} ban {index}: saved {hero_id}')
            saved.append(hero_id)
        else:
            print(f'{color} ban {index}: {hero_id} already known (use --force)')
    return saved


def main(argv=None) -> int:
    args = parse_args(argv)
    saved = capture(args.screenshot, args.heroes.split(','), args.out,
                    args.layout, args.force)
    print(f'Saved {len(saved)} portraits to {args.out}')
    return 0 if saved else 1


if __name__ == '__main__':
    sys.exit(main())
