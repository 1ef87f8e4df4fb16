"""Draft Screen Engine: main entry point.

Runs draft screen detection on screenshots of the hero draft and pushes
draft state updates to a server via HTTP POST.

Usage:
    python draft_engine.py --watch ~/Screenshots --game-data gamedata.json \
        --server http://localhost:3000

    python draft_engine.py --screenshot draft.png --game-data gamedata.json

Args:
    --screenshot: Run a single pass on one image and print the state as JSON
    --watch: Directory to poll; the newest PNG is processed when it changes
    --server: Server base URL (state is posted to {server}/api/draft)
    --game-data: Hero/map dictionary JSON
"""

import argparse
import asyncio
import json
import logging
import os
import sys
import time

import requests

from draftscreen.config import DEFAULT_BANS_DIR, DraftConfig
from draftscreen.errors import LayoutError, PortraitLibraryError
from draftscreen.game_data import GameDataDictionary
from draftscreen.layout import load_layout
from draftscreen.ocr_gateway import OcrGateway
from draftscreen.screen import DraftScreen


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Draft Screen Engine')
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument('--screenshot', help='Single screenshot to process')
    source.add_argument('--watch', help='Directory to watch for new screenshots')
    parser.add_argument('--interval', type=float, default=1.0,
                        help='Seconds between directory polls')
    parser.add_argument('--server', default=None,
                        help='Server URL to post draft state to')
    parser.add_argument('--game-data', required=True,
                        help='Path to the hero/map dictionary JSON')
    parser.add_argument('--layout', default=None,
                        help='Layout JSON (default: bundled 3440x1440 layout)')
    parser.add_argument('--bans-dir', default=str(DEFAULT_BANS_DIR),
                        help='Directory of shipped <heroId>.png ban portraits')
    parser.add_argument('--user-bans-dir', default=None,
                        help='Writable directory of corrected ban portraits')
    parser.add_argument('--language', default='en-us',
                        help='Game client language (en-us, de, ...)')
    parser.add_argument('--workers', type=int, default=4,
                        help='Number of OCR worker processes')
    parser.add_argument('--ocr-timeout', type=float, default=10.0,
                        help='Seconds before an OCR request is abandoned')
    parser.add_argument('--ban-max-color-distance', type=float, default=None,
                        help='Skip ban portraits whose average color differs more than this')
    parser.add_argument('--tesseract-cmd', default=None,
                        help='Path to the tesseract binary')
    parser.add_argument('--debug', action='store_true',
                        help='Verbose logging and text isolation captures')
    parser.add_argument('--debug-dir', default='debug',
                        help='Where text isolation captures are written')
    return parser.parse_args(argv)


def build_config(args) -> DraftConfig:
    return DraftConfig(
        debug_enabled=args.debug,
        language=args.language,
        ocr_workers=args.workers,
        ocr_timeout=args.ocr_timeout,
        bans_dir=args.bans_dir,
        user_bans_dir=args.user_bans_dir,
        ban_max_color_distance=args.ban_max_color_distance,
    )


def newest_screenshot(directory: str) -> tuple[str, float] | None:
    """Path and mtime of the most recently modified PNG in a directory."""
    newest = None
    for fname in os.listdir(directory):
        if not fname.lower().endswith('.png'):
            continue
        path = os.path.join(directory, fname)
        try:
            mtime = os.path.getmtime(path)
        except OSError:
            continue
        if newest is None or mtime > newest[1]:
            newest = (path, mtime)
    return newest


async def run(args) -> int:
    config = build_config(args)
    layout = load_layout(args.layout)
    game_data = GameDataDictionary.from_json(args.game_data,
                                             language=config.get_option('language'))
    ocr = OcrGateway(workers=config.get_option('ocrWorkers'),
                     timeout=config.get_option('ocrTimeout'),
                     tesseract_cmd=args.tesseract_cmd)
    screen = DraftScreen(layout, game_data, ocr, config)
    library = screen.load_portraits()

    api_url = f'{args.server}/api/draft' if args.server else None
    prev_sent = {}      # Last state dict sent to server (for delta comparison)
    pass_count = 0
    fail_count = 0
    start_time = time.time()

    print(f'[Draft] Layout base {layout.base_size.x}x{layout.base_size.y}, '
          f'{len(library)} ban portraits, {ocr.worker_count} OCR workers',
          file=sys.stderr)

    if args.debug:
        screen.on('detect.error',
                  lambda error: print(f'[Draft] Pass failed: {error}', file=sys.stderr))
    screen.on('detect.teams.new',
              lambda: print(f'[Draft] New draft on {screen.get_map()}', file=sys.stderr))

    def push_state():
        state = screen.state.to_dict()
        delta = {k: v for k, v in state.items() if prev_sent.get(k) != v}
        if not delta or api_url is None:
            return
        try:
            requests.post(api_url, json=delta, timeout=1)
        except requests.RequestException as e:
            print(f'[Draft] Push failed: {e}', file=sys.stderr)
        prev_sent.update(delta)

    async def process(source) -> bool:
        nonlocal pass_count, fail_count
        ok = await screen.detect(source)
        pass_count += 1
        if not ok:
            fail_count += 1
        if config.get_option('debugEnabled') and screen.debug_data:
            screen.recorder.write(args.debug_dir)
        if ok:
            push_state()
        if pass_count % 20 == 0:
            elapsed = time.time() - start_time
            print(f'[Draft] {pass_count} passes ({fail_count} failed) in {elapsed:.0f}s, '
                  f'map: {screen.get_map()}, locked: {screen.state.players_locked()}/10',
                  file=sys.stderr)
        return ok

    try:
        if args.screenshot:
            ok = await process(args.screenshot)
            print(json.dumps(screen.state.to_dict(), indent=2))
            if not ok:
                print(f'[Draft] Detection failed: {screen.last_error}', file=sys.stderr)
            return 0 if ok else 1

        print(f'[Draft] Watching {args.watch}', file=sys.stderr)
        last_seen = None
        while True:
            newest = newest_screenshot(args.watch)
            if newest is not None and newest != last_seen:
                last_seen = newest
                await process(newest[0])
            await asyncio.sleep(args.interval)
    finally:
        ocr.close()


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s %(name)s %(levelname)s %(message)s',
    )
    try:
        return asyncio.run(run(args))
    except (LayoutError, PortraitLibraryError) as e:
        print(f'[Draft] Configuration error: {e}', file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print('[Draft] Stopped', file=sys.stderr)
        return 0


if __name__ == '__main__':
    sys.exit(main())
