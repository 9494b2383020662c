'''
Registry of custom decode handlers.

Some sites hide the target url in a way that plain decoding + json lookup can't deal with.
For these, a rule can name a handler (decode.handler), which gets the url and the decoded value
and has to come up with the target url.
'''
from typing import Callable, Dict, Iterator, List, NamedTuple, Optional, Protocol, Union


class HandlerResult(NamedTuple):
    url: str
    error: Optional[str] = None


class Handler(Protocol):
    def exec(self, url: str, args: List[str]) -> HandlerResult:
        ...


HandlerFunc = Callable[[str, List[str]], HandlerResult]
HandlerIsh = Union[Handler, HandlerFunc]


class FuncHandler:
    '''
    Adapts a plain function to the Handler interface
    '''
    def __init__(self, func: HandlerFunc) -> None:
        self.func = func

    def exec(self, url: str, args: List[str]) -> HandlerResult:
        return self.func(url, args)

    def __repr__(self) -> str:
        return f'FuncHandler({getattr(self.func, "__name__", self.func)})'


def as_handler(h: HandlerIsh) -> Handler:
    if callable(getattr(h, 'exec', None)):
        return h  # type: ignore[return-value]
    if callable(h):
        return FuncHandler(h)
    raise TypeError(f'Expected a handler or a function, got {h!r}')


class HandlerRegistry:
    def __init__(self, handlers: Optional[Dict[str, HandlerIsh]] = None) -> None:
        self._handlers: Dict[str, Handler] = {}
        for name, h in (handlers or {}).items():
            self.register(name, h)

    def register(self, name: str, handler: HandlerIsh) -> None:
        self._handlers[name] = as_handler(handler)

    def handler(self, name: str) -> Callable[[HandlerFunc], HandlerFunc]:
        '''
        Decorator form of register():

        >>> registry = HandlerRegistry()
        >>> @registry.handler('example')
        ... def example(url, args):
        ...     return HandlerResult(url=args[0])
        '''
        def deco(func: HandlerFunc) -> HandlerFunc:
            self.register(name, func)
            return func
        return deco

    def get(self, name: str) -> Optional[Handler]:
        return self._handlers.get(name)

    def names(self) -> List[str]:
        return sorted(self._handlers)

    def copy(self) -> 'HandlerRegistry':
        res = HandlerRegistry()
        res._handlers.update(self._handlers)
        return res

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)


# default registry, used by cleaners unless they get their own
handlers = HandlerRegistry()
