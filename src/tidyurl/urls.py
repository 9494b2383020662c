'''
Small, stateless helpers for parsing, validating and decoding urls.

Parsing/serialization mimics what browsers do (WHATWG URL), since the rule tables are
shared with the browser extension and should produce the same urls on both ends.
'''
import base64
import binascii
from enum import Enum
import json
import re
from typing import Iterable, List, NamedTuple, Tuple
from urllib.parse import parse_qsl, quote, unquote, unquote_plus, urlsplit


class InvalidUrl(ValueError):
    pass


# these come from the browser side when there is no location to speak of
_SENTINELS = ('undefined', 'null', '')

_SCHEMES = ('http', 'https')

_DEFAULT_PORTS = {
    'http' : 80,
    'https': 443,
}

# everything printable except the characters browsers escape in the respective url part
_PATH_SAFE     = "!$%&'()*+,/:;=@[\\]^|~"
_QUERY_SAFE    = "!$%&()*+,/:;=?@[\\]^`{|}~"
_FRAGMENT_SAFE = "!#$%&'()*+,/:;=?@[\\]^{|}~"


def validate(url: str) -> bool:
    '''
    True if url is an absolute http(s) url.

    Raises InvalidUrl for anything else, except for empty/'undefined'/'null' strings:
    these are not worth complaining about and simply result in False.
    '''
    try:
        parts = urlsplit(url)
        scheme = parts.scheme.lower()
        if scheme not in _SCHEMES:
            raise ValueError(f'Not acceptable protocol: {scheme}')
        if not parts.hostname or any(c.isspace() for c in parts.netloc):
            raise ValueError(f'No host: {url}')
        parts.port  # raises on non-numeric ports
    except ValueError as e:
        if url not in _SENTINELS:
            raise InvalidUrl(f'Invalid URL: {url}') from e
        return False
    return True


def is_valid(url: str) -> bool:
    try:
        return validate(url)
    except InvalidUrl:
        return False


def host(url: str) -> str:
    '''
    Host with the port (unless it's the default one), like URL.host in the browser.
    '''
    parts = urlsplit(url)
    hostname = parts.hostname or ''
    if not hostname.isascii():
        try:
            hostname = hostname.encode('idna').decode('ascii')
        except UnicodeError:
            pass
    if ':' in hostname: # ipv6
        hostname = f'[{hostname}]'
    try:
        port = parts.port
    except ValueError:
        port = None
    if port is not None and port != _DEFAULT_PORTS.get(parts.scheme.lower()):
        hostname += f':{port}'
    return hostname


def _remove_dot_segments(path: str) -> str:
    segments = path.split('/')
    out: List[str] = []
    for i, seg in enumerate(segments):
        last = i == len(segments) - 1
        if seg == '.':
            if last:
                out.append('')
        elif seg == '..':
            if len(out) > 1:
                out.pop()
            if last:
                out.append('')
        else:
            out.append(seg)
    return '/'.join(out)


def canonicalize(url: str) -> str:
    '''
    Reparse and reserialize, so trailing slashes and escaping are consistent:
    scheme://host + path + ?query + #fragment
    '''
    parts = urlsplit(url)
    path = _remove_dot_segments(quote(parts.path, safe=_PATH_SAFE)) or '/'
    if not path.startswith('/'):
        path = '/' + path
    query    = '?' + quote(parts.query, safe=_QUERY_SAFE) if parts.query else ''
    fragment = '#' + quote(parts.fragment, safe=_FRAGMENT_SAFE) if parts.fragment else ''
    return parts.scheme.lower() + '://' + host(url) + path + query + fragment


Query = List[Tuple[str, str]]


def split_query(query: str) -> Query:
    return parse_qsl(query, keep_blank_values=True)


def drop_query_params(query: str, keys: Iterable[str]) -> str:
    '''
    Removes every key=value piece with one of the keys, the remaining pieces are kept verbatim
    '''
    drop = set(keys)
    kept = []
    for piece in query.split('&'):
        if not piece:
            continue
        key = unquote_plus(piece.split('=', 1)[0])
        if key in drop:
            continue
        kept.append(piece)
    return '&'.join(kept)


def has_query_params(url: str) -> bool:
    return len(split_query(urlsplit(url).query)) > 0


def _reject_constant(c: str) -> None:
    # JSON proper has no NaN/Infinity
    raise ValueError(f'Not a JSON value: {c}')


def is_json(value: str) -> bool:
    try:
        json.loads(value, parse_constant=_reject_constant)
    except ValueError:
        return False
    return True


class Encoding(str, Enum):
    base32 = 'base32'
    base45 = 'base45'
    base64 = 'base64'
    binary = 'binary'
    hex    = 'hex'
    url    = 'url'
    url2   = 'url2'
    urlc   = 'urlc'

    @classmethod
    def _missing_(cls, value):
        alias = _ENCODING_ALIASES.get(value)
        if alias is None:
            return None
        return cls(alias)


_ENCODING_ALIASES = {
    'urlComponent'  : 'urlc',
    'urlSafeVariant': 'url2',
}


def decode_base64(value: str) -> str:
    '''
    Returns the value unchanged if it's not valid base64.
    '''
    data = value.strip()
    data += '=' * (-len(data) % 4)
    try:
        return base64.b64decode(data, validate=True).decode('latin-1')
    except (binascii.Error, ValueError):
        return value


def decode_hex(value: str) -> str:
    return ''.join(chr(int(value[i: i + 2], 16)) for i in range(0, len(value), 2))


_URI_RESERVED = set(';/?:@&=+$,#')
_ESCAPE_RUN = re.compile(r'(?:%[0-9A-Fa-f]{2})+')


def decode_uri(value: str) -> str:
    '''
    Like decodeURI: escapes of reserved characters are left alone.
    '''
    def repl(m: 're.Match[str]') -> str:
        res = ''
        buf = bytearray()
        for i in range(0, len(m.group(0)), 3):
            esc = m.group(0)[i: i + 3]
            b = int(esc[1:], 16)
            if b < 0x80 and chr(b) in _URI_RESERVED:
                res += buf.decode('utf8') + esc
                buf.clear()
            else:
                buf.append(b)
        return res + buf.decode('utf8')
    return _ESCAPE_RUN.sub(repl, value)


def decode_uri_component(value: str) -> str:
    return unquote(value, errors='strict')


def decode_url2(value: str) -> str:
    # some trackers use '-' instead of '%' and '_' instead of '/'
    return decode_uri_component(value.replace('-', '%')).replace('_', '/').replace('%2F', '/')


def _identity(value: str) -> str:
    return value


_DECODERS = {
    Encoding.base32: _identity,
    Encoding.base45: _identity,
    Encoding.base64: decode_base64,
    Encoding.binary: _identity,
    Encoding.hex   : decode_hex,
    Encoding.url   : decode_uri,
    Encoding.url2  : decode_url2,
    Encoding.urlc  : decode_uri_component,
}


def decode(value: str, encoding: 'Encoding | str' = Encoding.base64) -> str:
    return _DECODERS[Encoding(encoding)](value)


class UrlDiff(NamedTuple):
    is_new_host: bool
    difference : int
    reduction  : float


def diff(original: str, final: str) -> UrlDiff:
    '''
    reduction is the percentage by which final is shorter than original
    '''
    return UrlDiff(
        is_new_host=host(original) != host(final),
        difference=len(original) - len(final),
        reduction=round(100 - len(final) / len(original) * 100, 2),
    )
