from functools import lru_cache
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from .logging import LazyLogger


PathIsh = Union[str, Path]

Url = str
Json = Dict[str, Any]


logger = LazyLogger('tidyurl', level='INFO')


def appdirs():
    under_test = os.environ.get('PYTEST_CURRENT_TEST') is not None
    name = 'tidyurl-test' if under_test else 'tidyurl'
    import appdirs as ad # type: ignore[import]
    return ad.AppDirs(appname=name)


# TODO use mypy literal?
Syntax = str


@lru_cache(None)
def _get_urlextractor(syntax: Syntax):
    from urlextract import URLExtract # type: ignore
    u = URLExtract()
    # https://github.com/lipoja/URLExtract/issues/13
    if syntax in {'org', 'orgmode', 'org-mode'}:
        # org-mode links are wrapped in [[...]]
        u._stop_chars_right |= {'[', ']'}
        u._stop_chars_left  |= {'[', ']'}
    return u


def _sanitize(url: str) -> str:
    url = url.strip(',.…\\')
    if 'wikipedia' not in url:
        # wikipedia urls legitimately end with parens, e.g. /wiki/Widget_(beer)
        url = url.strip(')')
    return url


def iter_urls(s: str, *, syntax: Syntax='') -> Iterable[Url]:
    urlextractor = _get_urlextractor(syntax=syntax)
    for u in urlextractor.gen_urls(s):
        yield _sanitize(u)


def extract_urls(s: str, *, syntax: Syntax='') -> List[Url]:
    return list(iter_urls(s=s, syntax=syntax))
