'''
The cleaning engine: matches rules against a url and applies them.

The stages run in a fixed order:

1. validate (invalid urls are returned as is)
2. canonicalize, so diffing against the result is meaningful
3. match rules by host/href, bail out if any of the matched rules excludes the url
4. delete tracking parameters, cut path substrings
5. follow redirect parameters (click trackers)
6. de-AMP
7. decode targets hidden in encoded parameters/path segments
8. compute the diff against the canonical url

Stages 5-7 may re-clean the url they come up with, but only one level deep.
Cleaning never raises: on any failure the original url is returned.
'''
from dataclasses import dataclass, field
from functools import lru_cache
import json
import logging
import re
from typing import Any, Iterable, List, NamedTuple, Optional, Union
from urllib.parse import urlsplit

from more_itertools import unique_everseen

from .common import Json, logger
from .default_rules import get_default_rules
from .handlers import HandlerRegistry, handlers as default_handlers
from .rules import Rule, RuleIsh, RuleTable
from .urls import (
    InvalidUrl,
    Query,
    canonicalize,
    decode,
    decode_uri_component,
    diff,
    drop_query_params,
    has_query_params,
    host,
    is_json,
    is_valid,
    split_query,
    validate,
)


class Removed(NamedTuple):
    key: str
    value: str


@dataclass
class CleanInfo:
    original: str
    reduction: float = 0
    difference: int = 0
    replace: List[str] = field(default_factory=list)
    removed: List[Removed] = field(default_factory=list)
    handler: Optional[str] = None
    match: List[Rule] = field(default_factory=list)
    decoded: Optional[Any] = None
    is_new_host: bool = False
    full_clean: bool = False

    def to_dict(self) -> Json:
        return {
            'original'  : self.original,
            'reduction' : self.reduction,
            'difference': self.difference,
            'replace'   : list(self.replace),
            'removed'   : [r._asdict() for r in self.removed],
            'handler'   : self.handler,
            'match'     : [r.to_dict() for r in self.match],
            'decoded'   : self.decoded,
            'isNewHost' : self.is_new_host,
            'fullClean' : self.full_clean,
        }


@dataclass
class CleanResult:
    url: str
    info: CleanInfo
    # diagnostics collected while cleaning this url (including nested re-cleans)
    log: List[str] = field(default_factory=list)

    def to_dict(self) -> Json:
        return {
            'url' : self.url,
            'info': self.info.to_dict(),
            'log' : list(self.log),
        }


# key= with nothing after it
_EMPTY_VALUE = re.compile(r'=(?=&|$)', re.MULTILINE)

_SCHEME = re.compile(r'^https?://', re.IGNORECASE)


class Cleaner:
    def __init__(
            self,
            rules: Optional[Union[RuleTable, Iterable[RuleIsh]]] = None,
            *,
            allow_amp: bool = False,
            allow_redirects: bool = True,
            allow_custom_handlers: bool = True,
            strict_handlers: bool = False,
            silent: bool = True,
            handlers: Optional[HandlerRegistry] = None,
    ) -> None:
        '''
        :param allow_amp: keep AMP links as they are (and skip urls without parameters altogether)
        :param allow_redirects: follow redirect parameters and encoded targets
        :param allow_custom_handlers: dispatch to decode handlers named by the rules
        :param strict_handlers: ignore the url returned by a handler if it reported an error
        :param silent: only log diagnostics at debug level
        '''
        if rules is None:
            rules = get_default_rules()
        elif not isinstance(rules, RuleTable):
            rules = RuleTable(rules)
        self.rules: RuleTable = rules
        self.allow_amp = allow_amp
        self.allow_redirects = allow_redirects
        self.allow_custom_handlers = allow_custom_handlers
        self.strict_handlers = strict_handlers
        self.silent = silent
        self.handlers = default_handlers if handlers is None else handlers

    def _log(self, data: CleanResult, msg: str) -> None:
        data.log.append(msg)
        if self.silent:
            level = logging.DEBUG
        elif msg.startswith('[error]'):
            level = logging.ERROR
        else:
            level = logging.INFO
        logger.log(level, msg)

    def clean(self, url: str, allow_reclean: bool = True) -> CleanResult:
        data = CleanResult(url=url, info=CleanInfo(original=url))

        try:
            valid = validate(url)
        except InvalidUrl as e:
            self._log(data, f'[error] An invalid URL was supplied: {e}')
            return data
        if not valid:
            # empty/undefined/null, nothing to complain about
            return data

        try:
            self._clean(data, allow_reclean=allow_reclean)
        except Exception as e:
            logger.exception(e)
            self._log(data, f'[error] Unexpected error while cleaning {url}: {e}')
            data.url = url
            data.info.full_clean = False
        return data

    def _reclean(self, data: CleanResult, url: str) -> str:
        nested = self.clean(url, allow_reclean=False)
        data.log.extend(nested.log)
        return nested.url

    def _clean(self, data: CleanResult, *, allow_reclean: bool) -> None:
        info = data.info
        raw = info.original

        if self.allow_amp and not has_query_params(raw):
            return

        url = canonicalize(raw)
        data.url = url

        parts = urlsplit(url)
        h = host(url)
        query = split_query(parts.query)
        # case insensitive copy for the redirect lookup
        query_ci = [(k.lower(), v) for k, v in query]
        fragment = '#' + parts.fragment if parts.fragment else ''

        remove = self._match_rules(data, host=h, href=url)

        for rule in info.match:
            for ex in rule.exclude:
                if ex.search(url) is not None:
                    self._log(data, f'Excluded by rule {rule.name}: {url}')
                    data.url = raw
                    return

        if self.allow_amp and not any(r.amp is not None for r in info.match):
            if not has_query_params(url):
                data.url = raw
                return

        remaining = query
        for key in remove:
            values = [v for k, v in remaining if k == key]
            if len(values) == 0:
                continue
            info.removed.append(Removed(key=key, value=values[0]))
            remaining = [(k, v) for k, v in remaining if k != key]

        query_str = parts.query
        if len(info.removed) > 0:
            query_str = drop_query_params(query_str, [r.key for r in info.removed])
        search = '?' + query_str if query_str else ''

        path = parts.path
        for token in info.replace:
            path = path.replace(token, '', 1)

        data.url = parts.scheme + '://' + h + path + search + fragment

        if self.allow_redirects:
            self._handle_redirects(data, query_ci, fragment, allow_reclean=allow_reclean)

        if not self.allow_amp:
            self._remove_amp(data, allow_reclean=allow_reclean)

        self._handle_decodes(data, remaining, parts.path, fragment, allow_reclean=allow_reclean)

        # an empty fragment doesn't survive reserializing
        if raw.endswith('#'):
            data.url += '#'
            url += '#'

        if any(r.remove_empty_values for r in info.match):
            data.url = _EMPTY_VALUE.sub('', data.url)

        d = diff(url, data.url)
        info.is_new_host = d.is_new_host
        info.difference  = d.difference
        info.reduction   = d.reduction

        if d.reduction < 0:
            self._log(data, f'[error] Reduction is {d.reduction}, cleaned url is longer than the original. Please report this url as a bug: {raw}')
            data.url = raw
            # nothing was actually removed from the url we hand back
            info.removed = []
            info.is_new_host = False
            info.difference = 0
            info.reduction = 0

        info.full_clean = True

        # formatting-only differences don't count as a change
        if d.difference == 0 and d.reduction == 0:
            data.url = raw

    def _match_rules(self, data: CleanResult, *, host: str, href: str) -> List[str]:
        remove: List[str] = []
        replace: List[str] = []
        for rule in self.rules.matching(host=host, href=href):
            remove.extend(rule.rules)
            replace.extend(rule.replace)
            data.info.match.append(rule)
        data.info.replace = list(unique_everseen(replace))
        return list(unique_everseen(remove))

    def _handle_redirects(self, data: CleanResult, query_ci: Query, fragment: str, *, allow_reclean: bool) -> None:
        for rule in data.info.match:
            if not rule.redirect:
                continue
            target = rule.redirect.lower()
            values = [v for k, v in query_ci if k == target]
            if len(values) == 0:
                continue
            value = values[0]

            # sometimes the value is encoded once more
            try:
                decoded = decode_uri_component(value)
            except UnicodeDecodeError:
                decoded = value
            if decoded != value and is_valid(decoded):
                value = decoded

            if is_valid(value):
                data.url = value + fragment
                if allow_reclean:
                    data.url = self._reclean(data, data.url)
            else:
                self._log(data, f'[error] Failed to redirect: {value}')

    def _remove_amp(self, data: CleanResult, *, allow_reclean: bool) -> None:
        for rule in data.info.match:
            if rule.amp is None:
                continue
            try:
                m = rule.amp.search(data.url)
                if m is None or not m.group(1):
                    continue
                target = decode_uri_component(m.group(1))
                if _SCHEME.match(target) is None:
                    target = 'https://' + target
                if not is_valid(target):
                    continue
                data.url = self._reclean(data, target) if allow_reclean else target
                if data.url.endswith('%3Famp'):
                    data.url = data.url[:-len('%3Famp')]
                if data.url.endswith('amp/'):
                    data.url = data.url[:-len('amp/')]
            except Exception as e:
                logger.exception(e)
                self._log(data, f'[error] Failed to de-AMP using rule {rule.name}: {e}')

    def _handle_decodes(self, data: CleanResult, query: Query, path: str, fragment: str, *, allow_reclean: bool) -> None:
        for rule in data.info.match:
            spec = rule.decode
            if spec is None:
                continue
            try:
                values = [v for k, v in query if k == spec.param]
                if len(values) == 0 and not spec.target_path:
                    continue
                # hop links are click trackers too
                if not self.allow_redirects:
                    continue

                encoded = values[0] if len(values) > 0 else path.split('/')[-1]
                if not encoded:
                    continue

                decoded = decode(encoded, spec.encoding)
                target: Optional[str] = None
                if is_json(decoded):
                    payload = json.loads(decoded)
                    data.info.decoded = payload
                    if isinstance(payload, dict):
                        found = payload.get(spec.look_for)
                        if isinstance(found, str):
                            target = found
                elif spec.handler is not None and self.allow_custom_handlers:
                    target = self._run_handler(data, spec.handler, decoded)
                else:
                    target = decoded

                if target and allow_reclean:
                    target = self._reclean(data, target)

                if target and is_valid(target):
                    data.url = target + fragment
            except Exception as e:
                logger.exception(e)
                self._log(data, f'[error] Failed to decode using rule {rule.name}: {e}')

    def _run_handler(self, data: CleanResult, name: str, decoded: str) -> Optional[str]:
        handler = self.handlers.get(name)
        if handler is None:
            self._log(data, f'[error] Handler was not found for {name}')
            return None

        data.info.handler = name
        result = handler.exec(data.url, [decoded])
        if result.error is not None or not is_valid(result.url):
            self._log(data, f'[error] Handler {name} failed: {result.error or "invalid url " + repr(result.url)}')
            if self.strict_handlers:
                return None
        return result.url


@lru_cache(1)
def get_cleaner() -> Cleaner:
    return Cleaner()


def clean(url: str) -> CleanResult:
    return get_cleaner().clean(url)
