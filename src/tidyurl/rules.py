"""
Declarative per-site cleaning rules.

A rule pairs a pattern (matched against the host, or the full url when match_href is set)
with the things to do to matching urls:

- rules:   query parameters to delete
- replace: path substrings to cut out
- exclude: patterns that veto cleaning altogether
- redirect: query parameter holding the real destination (click trackers)
- amp:     pattern with a capture group holding the canonical (non-AMP) url
- decode:  how to dig out a target url hidden in an encoded parameter/path segment

Rules are plain data, so they can live in json files:

    >>> table = RuleTable([{'name': 'Global', 'match': '.*', 'rules': ['fbclid']}])
    >>> table.save('rules.json')
    >>> RuleTable.from_file('rules.json').rules[0].rules
    ['fbclid']
"""
from __future__ import annotations

from dataclasses import dataclass, field
import json
from pathlib import Path
import re
from typing import Any, Dict, Iterable, Iterator, List, Optional, Pattern, Union

from .common import Json, PathIsh
from .urls import Encoding


PatternIsh = Union[str, Pattern[str]]

# js style flags, 'g' and 'u' don't mean anything for re.search
_FLAGS = {
    'i': re.IGNORECASE,
    'm': re.MULTILINE,
    's': re.DOTALL,
    'g': 0,
    'u': 0,
}


def compile_pattern(p: PatternIsh, flags: str = '') -> Pattern[str]:
    if isinstance(p, re.Pattern):
        return p
    f = 0
    for c in flags:
        if c not in _FLAGS:
            raise ValueError(f'Unknown pattern flag {c!r} in {flags!r}')
        f |= _FLAGS[c]
    return re.compile(p, f)


def _flags_of(p: Pattern[str]) -> str:
    res = ''
    for c in 'ims':
        if _FLAGS[c] and p.flags & _FLAGS[c]:
            res += c
    return res


@dataclass
class DecodeSpec:
    param: str = ''
    # if true, fall back onto the last path segment when the param is missing
    target_path: bool = False
    encoding: Encoding = Encoding.base64
    # key to look up when the decoded value is json
    look_for: str = ''
    handler: Optional[str] = None

    def __post_init__(self) -> None:
        self.encoding = Encoding(self.encoding)

    @classmethod
    def from_dict(cls, data: Json) -> DecodeSpec:
        return cls(
            param=data.get('param', ''),
            target_path=data.get('targetPath', data.get('target_path', False)) is True,
            encoding=Encoding(data.get('encoding') or Encoding.base64),
            look_for=data.get('lookFor', data.get('look_for', '')),
            handler=data.get('handler'),
        )

    def to_dict(self) -> Json:
        res: Json = {
            'param'     : self.param,
            'targetPath': self.target_path,
            'encoding'  : self.encoding.value,
            'lookFor'   : self.look_for,
        }
        if self.handler is not None:
            res['handler'] = self.handler
        return res


@dataclass
class Rule:
    name: str
    match: Pattern[str]
    match_href: bool = False
    rules: List[str] = field(default_factory=list)
    replace: List[str] = field(default_factory=list)
    exclude: List[Pattern[str]] = field(default_factory=list)
    redirect: str = ''
    amp: Optional[Pattern[str]] = None
    decode: Optional[DecodeSpec] = None
    remove_empty_values: bool = False

    def __post_init__(self) -> None:
        self.match = compile_pattern(self.match)
        self.exclude = [compile_pattern(e) for e in self.exclude]
        if self.amp is not None:
            self.amp = compile_pattern(self.amp)
        if isinstance(self.decode, dict):
            self.decode = DecodeSpec.from_dict(self.decode)

    def matches(self, *, host: str, href: str) -> bool:
        target = href if self.match_href else host
        return self.match.search(target) is not None

    @classmethod
    def from_dict(cls, data: Json) -> Rule:
        flags = data.get('flags', '')
        amp = data.get('amp')
        decode = data.get('decode')
        return cls(
            name=data.get('name', ''),
            match=compile_pattern(data['match'], flags),
            match_href=data.get('matchHref', data.get('match_href', False)),
            rules=list(data.get('rules') or []),
            replace=list(data.get('replace') or []),
            exclude=[compile_pattern(e, flags) for e in data.get('exclude') or []],
            redirect=data.get('redirect') or '',
            amp=None if amp is None else compile_pattern(amp, flags),
            decode=None if decode is None else DecodeSpec.from_dict(decode),
            remove_empty_values=data.get('removeEmptyValues', data.get('remove_empty_values', False)),
        )

    def to_dict(self) -> Json:
        res: Json = {
            'name' : self.name,
            'match': self.match.pattern,
        }
        flags = _flags_of(self.match)
        if flags:
            res['flags'] = flags
        if self.match_href:
            res['matchHref'] = True
        if self.rules:
            res['rules'] = list(self.rules)
        if self.replace:
            res['replace'] = list(self.replace)
        if self.exclude:
            res['exclude'] = [e.pattern for e in self.exclude]
        if self.redirect:
            res['redirect'] = self.redirect
        if self.amp is not None:
            res['amp'] = self.amp.pattern
        if self.decode is not None:
            res['decode'] = self.decode.to_dict()
        if self.remove_empty_values:
            res['removeEmptyValues'] = True
        return res


RuleIsh = Union[Rule, Dict[str, Any]]


def as_rule(r: RuleIsh) -> Rule:
    if isinstance(r, Rule):
        return r
    return Rule.from_dict(r)


class RuleTable:
    '''
    Ordered collection of rules. Order matters: redirect/amp/decode specs of matched rules are tried in it.
    '''

    def __init__(self, rules: Iterable[RuleIsh] = ()) -> None:
        self.rules: List[Rule] = []
        self.extend(rules)

    def add(self, rule: RuleIsh) -> Rule:
        r = as_rule(rule)
        self.rules.append(r)
        return r

    def extend(self, rules: Iterable[RuleIsh]) -> None:
        for r in rules:
            self.add(r)

    def matching(self, *, host: str, href: str) -> List[Rule]:
        return [r for r in self.rules if r.matches(host=host, href=href)]

    def names(self) -> List[str]:
        return [r.name for r in self.rules]

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def to_json(self) -> Json:
        return {'rules': [r.to_dict() for r in self.rules]}

    def save(self, path: PathIsh) -> None:
        Path(path).write_text(json.dumps(self.to_json(), indent=2))

    def load(self, path: PathIsh) -> None:
        '''
        Appends rules from a json file. Accepts either {"rules": [...]} or a bare list.
        '''
        data = json.loads(Path(path).read_text())
        if isinstance(data, dict):
            data = data.get('rules', [])
        self.extend(data)

    @classmethod
    def from_file(cls, path: PathIsh) -> RuleTable:
        table = cls()
        table.load(path)
        return table
