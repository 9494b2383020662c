'''
HTTP api, so browser extensions/userscripts can share the rules and the engine.
'''
import argparse
from dataclasses import dataclass
from functools import lru_cache
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import fastapi

from . import config
from .cleaner import Cleaner
from .common import Json, Url
from .logging import setup_logger


app = fastapi.FastAPI()


@lru_cache(1)
def get_logger() -> logging.Logger:
    logger = logging.getLogger('tidyurl.server')
    setup_logger(logger, level=logging.DEBUG)
    return logger


def get_version() -> str:
    from importlib.metadata import version
    return version('tidyurl')


class EnvConfig:
    '''
    uvicorn runs the app by import string, so the config path is passed via the environment
    '''
    KEY = 'TIDYURL_CONFIG'

    @staticmethod
    def get() -> Optional[Path]:
        cfg = os.environ.get(EnvConfig.KEY)
        return None if cfg is None else Path(cfg)

    @staticmethod
    def set(config_file: Optional[Path]) -> None:
        if config_file is None:
            os.environ.pop(EnvConfig.KEY, None)
        else:
            os.environ[EnvConfig.KEY] = str(config_file)


@lru_cache(1)
def get_cleaner() -> Cleaner:
    cfg_path = EnvConfig.get()
    if cfg_path is None:
        cfg = config.load_default()
    else:
        cfg = config.import_config(cfg_path)
    cleaner = cfg.cleaner()
    get_logger().info('loaded %d rules (config: %s)', len(cleaner.rules), cfg_path)
    return cleaner


@app.get ('/status', response_model=Dict[str, Any])
@app.post('/status', response_model=Dict[str, Any])
def status() -> Json:
    '''
    Should always respond, even if the config is broken
    '''
    logger = get_logger()

    rules: Any
    try:
        rules = len(get_cleaner().rules)
    except Exception as e:
        logger.exception(e)
        rules = f'ERROR: {e}'

    version: Optional[str]
    try:
        version = get_version()
    except Exception:
        version = None

    return {
        'version': version,
        'rules'  : rules,
    }


@dataclass
class CleanRequest:
    url: Url


@app.get ('/clean', response_model=Dict[str, Any])
@app.post('/clean', response_model=Dict[str, Any])
def clean(request: CleanRequest) -> Json:
    logger = get_logger()
    res = get_cleaner().clean(request.url)
    logger.info('/clean %s -> %s', request.url, res.url)
    return res.to_dict()


@dataclass
class CleanManyRequest:
    urls: List[Url]


@app.post('/clean_many', response_model=List[Dict[str, Any]])
def clean_many(request: CleanManyRequest) -> List[Json]:
    get_logger().info('/clean_many %d urls', len(request.urls))
    cleaner = get_cleaner()
    return [cleaner.clean(u).to_dict() for u in request.urls]


def _run(*, host: str, port: str, quiet: bool, config_file: Optional[Path]) -> None:
    logger = get_logger()
    EnvConfig.set(config_file)
    logger.info('Running server with config %s', config_file)
    import uvicorn
    uvicorn.run('tidyurl.server:app', host=host, port=int(port), log_level='warning' if quiet else 'debug')


def run(args: argparse.Namespace) -> None:
    _run(
        host=args.host,
        port=args.port,
        quiet=args.quiet,
        config_file=args.config,
    )


def setup_parser(p: argparse.ArgumentParser) -> None:
    p.add_argument('--host', type=str, default='localhost', help='Local IP to listen on')
    p.add_argument('--port', type=str, default='13132', help='Port to serve on')
    p.add_argument('--config', type=Path, default=None, help='Config path (defaults to the user config, if present)')
    p.add_argument('--quiet', action='store_true', help='Less logging')
