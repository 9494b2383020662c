from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys
from typing import Iterable, Iterator

from . import config
from . import server
from .cleaner import Cleaner
from .common import extract_urls, logger


def _get_cleaner(config_file: Path | None) -> Cleaner:
    if config_file is None:
        cfg = config.load_default()
    else:
        cfg = config.import_config(config_file)
    return cfg.cleaner()


def _input_lines(args: Iterable[str]) -> Iterator[str]:
    urls = list(args)
    if len(urls) > 0:
        yield from urls
        return
    for line in sys.stdin:
        line = line.strip()
        if line:
            yield line


def do_clean(cleaner: Cleaner, urls: Iterable[str], *, as_json: bool, verbose: bool) -> None:
    for url in _input_lines(urls):
        res = cleaner.clean(url)
        if as_json:
            print(json.dumps(res.to_dict(), ensure_ascii=False))
        else:
            print(res.url)
        if verbose:
            for line in res.log:
                print(f'    {line}', file=sys.stderr)


def do_text(cleaner: Cleaner, text: str, *, syntax: str) -> int:
    '''
    Prints 'original -> cleaned' for every url in the text that can be cleaned, returns the number of such urls
    '''
    changed = 0
    for url in extract_urls(text, syntax=syntax):
        res = cleaner.clean(url)
        if res.url != url:
            changed += 1
            print(f'{url} -> {res.url}')
    return changed


def do_rules(cleaner: Cleaner, *, dump: bool) -> None:
    if dump:
        print(json.dumps(cleaner.rules.to_json(), indent=2))
        return
    for rule in cleaner.rules:
        print(rule.name)


def main() -> None:
    F = lambda prog: argparse.ArgumentDefaultsHelpFormatter(prog, width=120)
    p = argparse.ArgumentParser(formatter_class=F)
    subp = p.add_subparsers(dest='mode')

    add_config_arg = lambda p: p.add_argument('--config', type=Path, default=None, help='Config path (defaults to the user config, if present)')

    cp = subp.add_parser('clean', help='Clean urls (reads stdin if no urls are given)', formatter_class=F)
    add_config_arg(cp)
    cp.add_argument('--json', action='store_true', help='Print full cleaning results as json lines')
    cp.add_argument('--verbose', action='store_true', help='Print diagnostics to stderr')
    cp.add_argument('urls', nargs='*')

    tp = subp.add_parser('text', help='Find urls in text and print the ones that can be cleaned', formatter_class=F)
    add_config_arg(tp)
    tp.add_argument('--syntax', type=str, default='', help="Text syntax hint, e.g. 'org'")
    tp.add_argument('file', nargs='?', type=Path, help='Input file (stdin if not given)')

    sp = subp.add_parser('serve', help='Serve the cleaner over HTTP', formatter_class=F)
    server.setup_parser(sp)

    rp = subp.add_parser('rules', help='List rules', formatter_class=F)
    add_config_arg(rp)
    rp.add_argument('--dump', action='store_true', help='Dump the rule table as json')

    args = p.parse_args()

    mode: str | None = args.mode
    if mode is None:
        print('ERROR: Please specify a mode', file=sys.stderr)
        p.print_help(sys.stderr)
        sys.exit(1)

    logger.debug("CLI args: %s", args)

    if mode == 'serve':
        server.run(args)
        return

    try:
        cleaner = _get_cleaner(args.config)
    except config.ConfigError as e:
        logger.exception(e)
        sys.exit(1)

    if mode == 'clean':
        do_clean(cleaner, args.urls, as_json=args.json, verbose=args.verbose)
    elif mode == 'text':
        text = sys.stdin.read() if args.file is None else args.file.read_text()
        do_text(cleaner, text, syntax=args.syntax)
    elif mode == 'rules':
        do_rules(cleaner, dump=args.dump)
    else:
        raise AssertionError(f'unexpected mode {mode}')


if __name__ == '__main__':
    main()
