import inspect
from pathlib import Path
import sys
from textwrap import dedent

import pytest


def write_config(path: Path, gen, **kwargs) -> None:
    '''
    Writes the body of gen as a config module
    '''
    cfg_src = dedent('\n'.join(inspect.getsource(gen).splitlines()[1:]))
    for k, v in kwargs.items():
        assert k in cfg_src, k
        cfg_src = cfg_src.replace(k, repr(str(v)))  # meh
    path.write_text(cfg_src)


def tidyurl_bin(*args):
    return [sys.executable, '-m', 'tidyurl', *args]


@pytest.fixture
def no_user_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    '''
    Makes sure the user's own config doesn't leak into the tests
    '''
    missing = tmp_path / 'no-such-config.py'
    monkeypatch.setenv('TIDYURL_CONFIG_FILE', str(missing))
    yield missing
