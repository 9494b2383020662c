from pathlib import Path
import importlib.util
import os
from typing import Dict, List, NamedTuple, Optional

from .cleaner import Cleaner
from .common import PathIsh, appdirs
from .default_rules import get_default_rules
from .handlers import HandlerIsh, HandlerRegistry, handlers as default_handlers
from .rules import RuleIsh, RuleTable


class ConfigError(RuntimeError):
    pass


class Config(NamedTuple):
    # extra rules, appended after the default ones
    RULES: List[RuleIsh] = []
    # json file with extra rules, see RuleTable.save
    RULES_FILE: Optional[PathIsh] = None
    USE_DEFAULT_RULES: bool = True

    ALLOW_AMP: bool = False
    ALLOW_REDIRECTS: bool = True
    ALLOW_CUSTOM_HANDLERS: bool = True
    STRICT_HANDLERS: bool = False
    SILENT: bool = True

    HANDLERS: Dict[str, HandlerIsh] = {}

    @property
    def rules(self) -> RuleTable:
        table = get_default_rules() if self.USE_DEFAULT_RULES else RuleTable()
        rf = self.RULES_FILE
        if rf is not None:
            rpath = Path(rf).expanduser()
            if not rpath.exists():
                raise ConfigError(f"RULES_FILE '{rpath}' doesn't exist")
            table.load(rpath)
        table.extend(self.RULES)
        return table

    @property
    def handlers(self) -> HandlerRegistry:
        registry = default_handlers.copy()
        for name, h in self.HANDLERS.items():
            registry.register(name, h)
        return registry

    def cleaner(self) -> Cleaner:
        return Cleaner(
            self.rules,
            allow_amp=self.ALLOW_AMP,
            allow_redirects=self.ALLOW_REDIRECTS,
            allow_custom_handlers=self.ALLOW_CUSTOM_HANDLERS,
            strict_handlers=self.STRICT_HANDLERS,
            silent=self.SILENT,
            handlers=self.handlers,
        )


instance: Optional[Config] = None


def has() -> bool:
    return instance is not None

def get() -> Config:
    '''
    Returns the loaded config, or the default one if nothing was loaded
    '''
    return Config() if instance is None else instance


def load_from(config_file: PathIsh) -> None:
    global instance
    instance = import_config(config_file)


def reset() -> None:
    global instance
    instance = None


def user_config_file() -> Path:
    if 'TIDYURL_CONFIG_FILE' in os.environ:
        return Path(os.environ['TIDYURL_CONFIG_FILE'])
    else:
        return Path(appdirs().user_config_dir) / 'config.py'


def import_config(config_file: PathIsh) -> Config:
    p = Path(config_file)
    if not p.exists():
        raise ConfigError(f"Config file '{p}' doesn't exist")

    name = p.stem
    spec = importlib.util.spec_from_file_location(name, p); assert spec is not None
    mod = importlib.util.module_from_spec(spec); assert mod is not None
    loader = spec.loader; assert loader is not None
    try:
        loader.exec_module(mod)
    except Exception as e:
        raise ConfigError(f"Error while loading config '{p}': {e}") from e

    d = {}
    for f in Config._fields:
        if hasattr(mod, f):
            d[f] = getattr(mod, f)
    return Config(**d)


def load_default() -> Config:
    '''
    Config from the user config file, if there is one
    '''
    cfg = user_config_file()
    if cfg.exists():
        return import_config(cfg)
    return Config()
