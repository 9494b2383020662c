from .cleaner import Cleaner, CleanInfo, CleanResult, clean, get_cleaner
from .handlers import Handler, HandlerRegistry, HandlerResult, handlers
from .rules import DecodeSpec, Rule, RuleTable
from .urls import Encoding, InvalidUrl

__all__ = [
    'Cleaner',
    'CleanInfo',
    'CleanResult',
    'DecodeSpec',
    'Encoding',
    'Handler',
    'HandlerRegistry',
    'HandlerResult',
    'InvalidUrl',
    'Rule',
    'RuleTable',
    'clean',
    'get_cleaner',
    'handlers',
]
