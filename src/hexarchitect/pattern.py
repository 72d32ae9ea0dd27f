from enum import Enum
from collections import namedtuple
import logarhythm
from .hex_utils import hex_digit_value, describe_byte, masked_equal, HIGH_NIBBLE, LOW_NIBBLE, FULL_BYTE, NO_BITS

SEPARATORS = ' \t\r\n'
WILDCARD_CHAR = '_'
REST_MARKER = '..'

class SegmentType(Enum):
    """
    This enumeration defines the kinds of segments a pattern compiles into
    """
    LITERAL = 1 #value = bytes that must match exactly
    WILDCARD = 2 #value = number of bytes that are skipped without comparison
    MIXED = 3 #value = tuple of (byte, mask) entries; only the bits selected by mask are compared

class Segment(namedtuple('Segment','kind value')):
    """
    One compiled unit of a byte pattern.

    >>> Segment(SegmentType.LITERAL,b'\\x01\\x02').width
    2
    >>> Segment(SegmentType.WILDCARD,3).width
    3
    """
    __slots__ = ()

    @property
    def width(self):
        if self.kind == SegmentType.WILDCARD:
            return self.value
        return len(self.value)

    def __repr__(self):
        if self.kind == SegmentType.LITERAL:
            return 'Literal(%s)' % self.value.hex().upper()
        elif self.kind == SegmentType.WILDCARD:
            return 'Wildcard(%d)' % self.value
        return 'Mixed(%s)' % ' '.join(describe_byte(v,m) for v,m in self.value)

def literal(data):
    return Segment(SegmentType.LITERAL,bytes(data))
def wildcard(count):
    return Segment(SegmentType.WILDCARD,count)
def mixed(entries):
    return Segment(SegmentType.MIXED,tuple(entries))

class _Any(object):
    """
    Wildcard marker token for array patterns
    """
    __slots__ = ()
    def __repr__(self):
        return 'ANY'
    def __reduce__(self):
        return 'ANY'
ANY = _Any()

class PatternSyntaxError(ValueError):
    """
    Raised when a pattern token is malformed. position is the character index (hex strings) or token index (arrays) of the problem, if known.
    """
    def __init__(self,message,pattern=None,position=None):
        self.pattern = pattern
        self.position = position
        if position is not None:
            message = '%s at position %d in pattern %r' % (message,position,pattern)
        elif pattern is not None:
            message = '%s in pattern %r' % (message,pattern)
        super().__init__(message)

logger = logarhythm.getLogger('compile_pattern')
logger.format = logarhythm.build_format(time=None,level=False)

def _coalesce(entries):
    """
    Merges a sequence of (byte, mask) entries into segments: runs of full bytes become LITERAL, runs of fully wildcard bytes become WILDCARD, and every nibble entry stays a MIXED segment of its own.

    >>> _coalesce([(1,0xFF),(2,0xFF),(0,0),(0,0),(0xA0,0xF0)])
    (Literal(0102), Wildcard(2), Mixed(A_))
    """
    segments = []
    run = []
    run_mask = None
    def flush():
        if run_mask == FULL_BYTE:
            segments.append(literal(run))
        elif run_mask == NO_BITS:
            segments.append(wildcard(len(run)))
    for value,mask in entries:
        if mask != run_mask or mask not in (FULL_BYTE,NO_BITS):
            flush()
            run = []
            run_mask = None
        if mask in (FULL_BYTE,NO_BITS):
            run.append(value)
            run_mask = mask
        else:
            segments.append(mixed([(value & mask,mask)]))
    flush()
    for segment in segments:
        logger.debug('segment %r' % (segment,))
    return tuple(segments)

def _hex_entries(text,separators=SEPARATORS):
    """
    Yields (byte, mask) entries for a hex string. Raises PatternSyntaxError on any malformed content.
    """
    chars = []
    for i,c in enumerate(text):
        if c in separators:
            continue
        if text.startswith(REST_MARKER,i):
            raise PatternSyntaxError('ranges (%s) are not allowed in byte patterns; use "%s" to specify the exact number of bytes to match' % (REST_MARKER,WILDCARD_CHAR),text,i)
        if c != WILDCARD_CHAR and hex_digit_value(c) is None:
            raise PatternSyntaxError('invalid character %r' % c,text,i)
        chars.append((i,c))
    if len(chars) % 2 != 0:
        i,c = chars[-1]
        raise PatternSyntaxError('odd number of hex characters (%d); bytes must come in pairs, expected a character to pair with %r' % (len(chars),c),text,i)
    for (i,hi),(j,lo) in zip(chars[0::2],chars[1::2]):
        hi_value = hex_digit_value(hi)
        lo_value = hex_digit_value(lo)
        value = ((hi_value or 0) << 4) | (lo_value or 0)
        mask = (HIGH_NIBBLE if hi_value is not None else 0) | (LOW_NIBBLE if lo_value is not None else 0)
        yield value,mask

def compile_hex(text,separators=SEPARATORS):
    """
    Compiles a hex string pattern such as "48 45 58 __ A_" into a tuple of segments.

    Hex digit pairs are literal bytes, "__" is a wildcard byte, and a hex digit paired with "_" is a byte where only one nibble is checked.
    Separator characters (whitespace by default) are ignored.

    >>> compile_hex('DEAD ____ BE_F')
    (Literal(DEAD), Wildcard(2), Literal(BE), Mixed(_F))
    >>> compile_hex('')
    ()
    >>> compile_hex('ABC')
    Traceback (most recent call last):
        ...
    hexarchitect.pattern.PatternSyntaxError: odd number of hex characters (3); bytes must come in pairs, expected a character to pair with 'C' at position 2 in pattern 'ABC'
    """
    if not isinstance(text,str):
        raise PatternSyntaxError('hex pattern must be a str, not %s' % type(text).__name__)
    logger.debug('pattern started %r' % text)
    segments = _coalesce(_hex_entries(text,separators))
    logger.debug('pattern completed')
    return segments

def _is_wildcard_token(token):
    return token is ANY or (isinstance(token,str) and token == WILDCARD_CHAR)

def compile_array(tokens):
    """
    Compiles an array pattern such as [0x01, ANY, 0xFF] into a tuple of segments.
    Each token is either an int in range(256) or a wildcard marker (ANY or the string '_').

    >>> compile_array([0x01,0x02,ANY,'_',0xFF])
    (Literal(0102), Wildcard(2), Literal(FF))
    """
    logger.debug('pattern started %r' % (tokens,))
    entries = []
    for i,token in enumerate(tokens):
        if _is_wildcard_token(token):
            entries.append((0,NO_BITS))
        elif token is Ellipsis or token == REST_MARKER:
            raise PatternSyntaxError('ranges are not allowed in byte patterns; use %s to specify the exact number of bytes to match' % WILDCARD_CHAR,list(tokens),i)
        elif isinstance(token,int) and not isinstance(token,bool):
            if not 0 <= token <= 255:
                raise PatternSyntaxError('byte value out of range: %d' % token,list(tokens),i)
            entries.append((token,FULL_BYTE))
        else:
            raise PatternSyntaxError('unrecognized token %r' % (token,),list(tokens),i)
    segments = _coalesce(entries)
    logger.debug('pattern completed')
    return segments

def compile_bytes(data):
    """
    Compiles a byte string pattern such as b"HEX" into a single literal segment.

    >>> compile_bytes(b'HEX')
    (Literal(484558),)
    """
    data = bytes(data)
    if len(data) == 0:
        return ()
    return (literal(data),)

def _is_compiled(token):
    return isinstance(token,(tuple,list)) and len(token) > 0 and all(isinstance(item,Segment) for item in token)

def compile_pattern(token):
    """
    Compiles any supported pattern token into a tuple of segments:
        str -> hex string grammar
        bytes, bytearray, memoryview -> byte string (all literal)
        list or tuple -> array grammar
    An already compiled tuple (or list) of segments is returned as a tuple.

    >>> compile_pattern('01 __')
    (Literal(01), Wildcard(1))
    >>> compile_pattern(b'\\x01')
    (Literal(01),)
    >>> compile_pattern([1,ANY]) == compile_pattern('01__')
    True
    """
    if isinstance(token,str):
        return compile_hex(token)
    elif isinstance(token,(bytes,bytearray,memoryview)):
        return compile_bytes(token)
    elif _is_compiled(token):
        return tuple(token)
    elif isinstance(token,(list,tuple)):
        return compile_array(token)
    raise PatternSyntaxError('expected a hex string, a byte string, or a byte array pattern; got %s' % type(token).__name__)

def pattern_width(segments):
    """
    Returns the number of bytes a compiled pattern consumes.

    >>> pattern_width(compile_hex('0102 ____ A_'))
    5
    """
    return sum(segment.width for segment in segments)

def iter_entries(segments):
    """
    Expands compiled segments back into one (byte, mask) entry per byte position.

    >>> list(iter_entries(compile_hex('01__A_')))
    [(1, 255), (0, 0), (160, 240)]
    """
    for segment in segments:
        if segment.kind == SegmentType.LITERAL:
            for value in segment.value:
                yield value,FULL_BYTE
        elif segment.kind == SegmentType.WILDCARD:
            for _ in range(segment.value):
                yield 0,NO_BITS
        else:
            for entry in segment.value:
                yield entry

def describe_pattern(segments):
    """
    Renders a compiled pattern in the notation used in error messages.

    >>> describe_pattern(compile_hex('0102 ____ A_'))
    '[01, 02, __, __, A_]'
    """
    return '[%s]' % ', '.join(describe_byte(value,mask) for value,mask in iter_entries(segments))

def hex_bytes(text,separators=SEPARATORS):
    """
    Converts a hex string with optional separators into bytes. Wildcards are not allowed.

    >>> hex_bytes('DEAD AF')
    b'\\xde\\xad\\xaf'
    >>> hex_bytes('aA aa aA Aa aa') == bytes([0xAA]*5)
    True
    """
    if not isinstance(text,str):
        raise PatternSyntaxError('hex byte literal must be a str, not %s' % type(text).__name__)
    result = bytearray()
    for value,mask in _hex_entries(text,separators):
        if mask != FULL_BYTE:
            raise PatternSyntaxError('wildcards are not allowed in a hex byte literal',text)
        result.append(value)
    return bytes(result)

def _entries_match(entries,data):
    return all(masked_equal(value,actual,mask) for (value,mask),actual in zip(entries,data))

def matches(pattern,data):
    """
    Checks a complete bytes object against a pattern.
    Unlike stream directives, a hex string here may contain a single ".." marker that matches any number of bytes (including none).

    >>> matches('01__FF__',b'\\x01\\x02\\xff\\x04')
    True
    >>> matches('01..04',b'\\x01\\x02\\x03\\x04')
    True
    >>> matches('..',b'')
    True
    >>> matches('AABBCCDD',b'\\x01\\x02\\x03\\x04')
    False
    """
    data = bytes(data)
    if isinstance(pattern,str) and REST_MARKER in pattern:
        if pattern.count(REST_MARKER) > 1 or '...' in pattern:
            raise PatternSyntaxError('only one "%s" marker is allowed' % REST_MARKER,pattern)
        head_text,tail_text = pattern.split(REST_MARKER)
        head = list(iter_entries(compile_hex(head_text)))
        tail = list(iter_entries(compile_hex(tail_text)))
        if len(head) + len(tail) > len(data):
            return False
        return _entries_match(head,data[:len(head)]) and _entries_match(tail,data[len(data)-len(tail):])
    entries = list(iter_entries(compile_pattern(pattern)))
    return len(entries) == len(data) and _entries_match(entries,data)
