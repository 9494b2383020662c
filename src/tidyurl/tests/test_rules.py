import json
from pathlib import Path
import re

import pytest

from ..default_rules import RULES, get_default_rules
from ..rules import DecodeSpec, Rule, RuleTable, compile_pattern
from ..urls import Encoding


param = pytest.mark.parametrize


def test_from_dict_defaults() -> None:
    r = Rule.from_dict({'name': 'site', 'match': r'example\.com'})
    assert r.match_href is False
    assert r.rules == []
    assert r.replace == []
    assert r.exclude == []
    assert r.redirect == ''
    assert r.amp is None
    assert r.decode is None
    assert r.remove_empty_values is False


def test_flags() -> None:
    r = Rule.from_dict({'name': 'site', 'match': r'example\.com', 'flags': 'i', 'exclude': [r'/KEEP']})
    assert r.matches(host='WWW.EXAMPLE.COM', href='')
    assert r.exclude[0].search('https://example.com/keep') is not None

    r = Rule.from_dict({'name': 'site', 'match': r'example\.com'})
    assert not r.matches(host='WWW.EXAMPLE.COM', href='')


def test_unknown_flag() -> None:
    with pytest.raises(ValueError, match='Unknown pattern flag'):
        compile_pattern('abc', 'x')


def test_compiled_pattern_is_kept() -> None:
    p = re.compile('abc', re.IGNORECASE)
    assert compile_pattern(p, 'm') is p


def test_match_href() -> None:
    r = Rule.from_dict({'name': 'shop', 'match': r'example\.com/shop', 'matchHref': True})
    assert r.matches(host='example.com', href='https://example.com/shop/item')
    assert not r.matches(host='example.com', href='https://example.com/blog')


@param('encoding,expected', [
    (None          , Encoding.base64),
    ('hex'         , Encoding.hex),
    ('urlc'        , Encoding.urlc),
    ('urlComponent', Encoding.urlc),
    ('url2'        , Encoding.url2),
    ('urlSafeVariant', Encoding.url2),
])
def test_decode_spec_encoding(encoding, expected: Encoding) -> None:
    d = {'param': 'u', 'lookFor': 'url'}
    if encoding is not None:
        d['encoding'] = encoding
    spec = DecodeSpec.from_dict(d)
    assert spec.encoding == expected
    assert spec.param == 'u'
    assert spec.look_for == 'url'
    assert spec.target_path is False
    assert spec.handler is None


def test_decode_spec_unknown_encoding() -> None:
    with pytest.raises(ValueError):
        DecodeSpec.from_dict({'param': 'u', 'encoding': 'rot13'})


def test_rule_decode_from_plain_dict() -> None:
    r = Rule(name='hop', match=r'hop\.com', decode={'param': 'd', 'encoding': 'hex'})  # type: ignore[arg-type]
    assert isinstance(r.decode, DecodeSpec)
    assert r.decode.encoding == Encoding.hex
    assert isinstance(r.match, re.Pattern)


def test_to_dict() -> None:
    d = {
        'name'    : 'site',
        'match'   : r'example\.com',
        'flags'   : 'i',
        'rules'   : ['ref'],
        'exclude' : [r'/keep'],
        'redirect': 'u',
        'amp'     : r'/amp/(.+)',
        'decode'  : {'param': 'd', 'targetPath': True, 'encoding': 'hex', 'lookFor': 'url', 'handler': 'h'},
        'removeEmptyValues': True,
    }
    r = Rule.from_dict(d)
    assert r.to_dict() == d
    # and it's stable
    assert Rule.from_dict(r.to_dict()).to_dict() == d


def test_table_order() -> None:
    table = RuleTable([
        {'name': 'second', 'match': r'example'},
        {'name': 'first' , 'match': r'.*'},
        {'name': 'other' , 'match': r'other\.com'},
    ])
    assert table.names() == ['second', 'first', 'other']
    assert [r.name for r in table.matching(host='example.com', href='https://example.com/')] == ['second', 'first']
    assert len(table) == 3


def test_table_save_load(tmp_path: Path) -> None:
    table = RuleTable([
        {'name': 'Global', 'match': r'.*', 'rules': ['fbclid']},
        {'name': 'out'   , 'match': r'out\.example\.com', 'redirect': 'u'},
    ])
    path = tmp_path / 'rules.json'
    table.save(path)

    data = json.loads(path.read_text())
    assert [r['name'] for r in data['rules']] == ['Global', 'out']

    loaded = RuleTable.from_file(path)
    assert loaded.to_json() == table.to_json()


def test_table_load_list(tmp_path: Path) -> None:
    path = tmp_path / 'rules.json'
    path.write_text(json.dumps([{'name': 'extra', 'match': r'extra\.com', 'rules': ['x']}]))

    table = RuleTable([{'name': 'Global', 'match': r'.*'}])
    table.load(path)
    assert table.names() == ['Global', 'extra']


def test_default_rules() -> None:
    table = get_default_rules()
    assert len(table) == len(RULES)
    names = table.names()
    assert names[0] == 'Global'
    assert len(set(names)) == len(names)

    # every default rule survives serialization
    for r in table:
        assert Rule.from_dict(r.to_dict()).to_dict() == r.to_dict()

    # amp patterns need a group for the target
    for r in table:
        if r.amp is not None:
            assert r.amp.groups >= 1, r.name
