import json
from pathlib import Path
from subprocess import run, PIPE

from ..__main__ import do_clean, do_rules, do_text
from ..cleaner import Cleaner
from .common import no_user_config, tidyurl_bin  # noqa: F401


GLOBAL = {'name': 'Global', 'match': r'.*', 'rules': ['fbclid', 'utm_source']}


def test_do_clean(capsys) -> None:
    c = Cleaner([GLOBAL])
    do_clean(c, ['https://example.com/?fbclid=1', 'nope'], as_json=False, verbose=True)
    out, err = capsys.readouterr()
    assert out.splitlines() == ['https://example.com/', 'nope']
    assert 'invalid URL' in err


def test_do_clean_json(capsys) -> None:
    c = Cleaner([GLOBAL])
    do_clean(c, ['https://example.com/?fbclid=1'], as_json=True, verbose=False)
    out, _ = capsys.readouterr()
    [line] = out.splitlines()
    res = json.loads(line)
    assert res['url'] == 'https://example.com/'
    assert res['info']['removed'] == [{'key': 'fbclid', 'value': '1'}]


def test_do_text(capsys) -> None:
    text = '''
Some notes, see https://example.com/a?utm_source=x and also https://example.com/b.
Already clean: https://example.com/c
'''
    changed = do_text(Cleaner([GLOBAL]), text, syntax='')
    out, _ = capsys.readouterr()
    assert changed == 1
    assert out.splitlines() == ['https://example.com/a?utm_source=x -> https://example.com/a']


def test_do_rules(capsys) -> None:
    c = Cleaner([GLOBAL, {'name': 'other', 'match': r'other\.com'}])
    do_rules(c, dump=False)
    out, _ = capsys.readouterr()
    assert out.splitlines() == ['Global', 'other']

    do_rules(c, dump=True)
    out, _ = capsys.readouterr()
    assert [r['name'] for r in json.loads(out)['rules']] == ['Global', 'other']


def test_clean_cli(no_user_config: Path) -> None:
    res = run(tidyurl_bin('clean', 'https://www.youtube.com/watch?v=abc&feature=share'), stdout=PIPE, check=True)
    assert res.stdout.decode('utf8').strip() == 'https://www.youtube.com/watch?v=abc'


def test_clean_cli_stdin(no_user_config: Path) -> None:
    urls = 'https://example.com/?utm_source=x\n\nhttps://example.com/?gclid=y\n'
    res = run(tidyurl_bin('clean'), input=urls.encode('utf8'), stdout=PIPE, check=True)
    assert res.stdout.decode('utf8').splitlines() == ['https://example.com/', 'https://example.com/']


def test_cli_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / 'config.py'
    cfg_path.write_text("USE_DEFAULT_RULES = False\nRULES = [{'name': 'mine', 'match': '.*', 'rules': ['x']}]\n")
    res = run(tidyurl_bin('rules', '--config', str(cfg_path)), stdout=PIPE, check=True)
    assert res.stdout.decode('utf8').splitlines() == ['mine']


def test_cli_missing_config(tmp_path: Path) -> None:
    res = run(tidyurl_bin('rules', '--config', str(tmp_path / 'missing.py')), stdout=PIPE, stderr=PIPE)
    assert res.returncode == 1


def test_cli_no_mode() -> None:
    res = run(tidyurl_bin(), stdout=PIPE, stderr=PIPE)
    assert res.returncode == 1
    assert b'Please specify a mode' in res.stderr
