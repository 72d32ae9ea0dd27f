from collections import namedtuple, OrderedDict
import logarhythm
from itertools import islice
from .pattern import SegmentType, compile_pattern, pattern_width, describe_pattern, iter_entries
from .hex_utils import describe_byte, masked_equal, FULL_BYTE
from .bytes_io import BytesSource, ParseError, SourceIoError

MISMATCH_CONTEXT = 8 #bytes shown on each side of a mismatch in error messages

Matched = namedtuple('Matched','data')
Mismatch = namedtuple('Mismatch','offset expected mask actual')

class PatternMismatchError(ParseError,ValueError):
    """
    Raised when the bytes pulled for a directive do not satisfy its pattern.

    field is the directive name (None for unnamed directives), offset is relative to the start of the directive's pattern,
    position is the absolute offset of the mismatching byte in the byte source, and expected/mask describe the byte (or nibble) that was required.
    """
    def __init__(self,field,offset,expected,actual,mask=FULL_BYTE,position=None,pattern=None,data=None):
        self.field = field
        self.offset = offset
        self.expected = expected
        self.actual = actual
        self.mask = mask
        self.position = position
        self.pattern = pattern
        self.data = data
        message = 'Field %s: expected %s at offset %d, got %02X' % ('_' if field is None else repr(field),describe_byte(expected,mask),offset,actual)
        if position is not None:
            message += ' (stream position %d)' % position
        if pattern is not None and data is not None:
            message += '; expected `%s`, got `%s`' % (pattern,data)
        super().__init__(message)

def _match_literal(segment,data,offset):
    for i,(value,actual) in enumerate(zip(segment.value,data)):
        if value != actual:
            return Mismatch(offset+i,value,FULL_BYTE,actual)
    return None

def _match_wildcard(segment,data,offset):
    return None

def _match_mixed(segment,data,offset):
    for i,((value,mask),actual) in enumerate(zip(segment.value,data)):
        if not masked_equal(value,actual,mask):
            return Mismatch(offset+i,value,mask,actual)
    return None

_segment_matchers = {
        SegmentType.LITERAL:_match_literal,
        SegmentType.WILDCARD:_match_wildcard,
        SegmentType.MIXED:_match_mixed,
        }

def match_segments(segments,data):
    """
    Walks compiled segments against a bytes object of exactly the pattern width and returns Matched(data) or the first Mismatch.

    >>> match_segments(compile_pattern([0x01,0x02]),b'\\x01\\x03')
    Mismatch(offset=1, expected=2, mask=255, actual=3)
    >>> match_segments(compile_pattern('A_'),b'\\xaf')
    Matched(data=b'\\xaf')
    """
    data = bytes(data)
    width = pattern_width(segments)
    if len(data) != width:
        raise ValueError('Pattern is %d bytes wide but %d bytes were given' % (width,len(data)))
    offset = 0
    for segment in segments:
        w = segment.width
        outcome = _segment_matchers[segment.kind](segment,data[offset:offset+w],offset)
        if outcome is not None:
            return outcome
        offset += w
    return Matched(data)

def describe_window(segments,data,offset,context=MISMATCH_CONTEXT):
    """
    Renders the expected pattern and the actual bytes around offset, at most context bytes on each side.
    Elided bytes are shown as "...".

    >>> describe_window(compile_pattern('00'*20),bytes(9)+b'\\x01'+bytes(10),9,2)
    ('[..., 00, 00, 00, 00, 00, ...]', '[..., 00, 00, 01, 00, 00, ...]')
    >>> describe_window(compile_pattern([0x01,0x02]),b'\\x01\\x03',1)
    ('[01, 02]', '[01, 03]')
    """
    lo = max(0,offset-context)
    hi = min(len(data),offset+context+1)
    head = '..., ' if lo > 0 else ''
    tail = ', ...' if hi < len(data) else ''
    expected = ', '.join(describe_byte(value,mask) for value,mask in islice(iter_entries(segments),lo,hi))
    actual = ', '.join(describe_byte(x) for x in data[lo:hi])
    return '[%s%s%s]' % (head,expected,tail),'[%s%s%s]' % (head,actual,tail)

def _name(directive):
    return '_' if directive.name is None else directive.name


class FieldDirective(namedtuple('FieldDirective','name segments convert')):
    """
    One step of a parse: a compiled pattern, an optional field name (None for padding), and an optional conversion function.
    """
    __slots__ = ()

    @property
    def width(self):
        return pattern_width(self.segments)

    def describe(self):
        return '%s: %s%s' % ('_' if self.name is None else self.name,describe_pattern(self.segments),'' if self.convert is None else ' => %s' % getattr(self.convert,'__name__',repr(self.convert)))

def field(name,pattern,convert=None):
    """
    Creates a directive that captures the bytes matched by pattern into the named field.
    If convert is given, the field value is convert(captured_bytes), otherwise the captured bytes themselves.

    >>> field('b','AABB ____').describe()
    'b: [AA, BB, __, __]'
    """
    if not isinstance(name,str) or not name:
        raise ValueError('Field name must be a non-empty str: %r' % (name,))
    if convert is not None and not callable(convert):
        raise TypeError('convert must be callable: %r' % (convert,))
    return FieldDirective(name,compile_pattern(pattern),convert)

def skip(pattern,convert=None):
    """
    Creates an unnamed directive: the bytes must match pattern but are not stored in the record.
    If convert is given it is still called with the matched bytes (e.g. to validate them) and its result is discarded.

    >>> skip(b'HEX').describe()
    '_: [48, 45, 58]'
    >>> skip('____').width
    2
    """
    if convert is not None and not callable(convert):
        raise TypeError('convert must be callable: %r' % (convert,))
    return FieldDirective(None,compile_pattern(pattern),convert)

def _as_directive(item):
    if isinstance(item,FieldDirective):
        return item
    if isinstance(item,tuple) and len(item) in (2,3):
        name = item[0]
        convert = item[2] if len(item) == 3 else None
        if name is None or name == '_':
            return skip(item[1],convert)
        return field(name,item[1],convert)
    raise TypeError('Expected a FieldDirective or a (name, pattern[, convert]) tuple: %r' % (item,))


class Blueprint(object):
    """
    A compiled, reusable list of directives together with the type of record the named fields are assembled into.

    record_type is called with one keyword argument per named field (and per default). If it is None, an OrderedDict is produced.
    defaults supplies values for record fields that no directive produces; parsed values always win.

    >>> bp = Blueprint([skip(b'HEX'),('a',[0x01,'_']),skip('00'),('b','AABB ____',lambda buf: buf[::-1].hex())])
    >>> bp.width
    10
    >>> bp.field_names
    ('a', 'b')
    >>> dict(bp.parse(bytes([0x48,0x45,0x58,0x01,0x02,0x00,0xAA,0xBB,0xCC,0xDD])))
    {'a': b'\\x01\\x02', 'b': 'ddccbbaa'}
    """
    def __init__(self,directives,record_type=None,defaults=None):
        self.directives = tuple(_as_directive(d) for d in directives)
        names = [d.name for d in self.directives if d.name is not None]
        duplicates = sorted(set(name for name in names if names.count(name) > 1))
        if duplicates:
            raise ValueError('Field names must be unique within a blueprint: %s' % ', '.join(duplicates))
        self.field_names = tuple(names)
        self.record_type = record_type
        self.defaults = tuple((defaults or {}).items())
        self.width = sum(d.width for d in self.directives)

    def __iter__(self):
        return iter(self.directives)

    def __len__(self):
        return len(self.directives)

    def describe(self):
        return '\n'.join(d.describe() for d in self.directives)

    def build_record(self,values):
        """
        Builds the final record from the OrderedDict of parsed field values.
        """
        values = OrderedDict(values)
        for name,value in self.defaults:
            if name not in values:
                values[name] = value
        if self.record_type is None:
            return values
        return self.record_type(**values)

    def parse(self,byte_source):
        return parse(byte_source,self)

    def iter_parse(self,byte_source):
        return iter_parse(byte_source,self)

def _as_blueprint(directives,record_type=None,defaults=None):
    if isinstance(directives,Blueprint):
        if record_type is None and defaults is None:
            return directives
        return Blueprint(directives.directives,
                record_type if record_type is not None else directives.record_type,
                defaults if defaults is not None else dict(directives.defaults))
    return Blueprint(directives,record_type,defaults)


class Maker():
    """
    This is a common base class for objects that apply directives to a byte source.
    The __call__() and handle_...() functions must be implemented by each subclass.
    """
    def __init__(self,byte_source):
        raise NotImplementedError
    def __call__(self,directives):
        """
        Apply the maker against the byte source according to the provided directives.
        Return the data record consisting of the values of the named directives.
        """
        raise NotImplementedError
    def __getitem__(self,name):
        return self.data_record[name]
    def tell(self):
        return self.byte_source.tell()

class Extractor(Maker):
    """
    The Extractor pulls bytes from a byte source one directive at a time, checks them against the directive's pattern, and collects the named field values.
    """
    def __init__(self,byte_source):
        self.byte_source = BytesSource.wrap(byte_source)
        self.data_record = OrderedDict()
        self.directive = None
        self.logger = logarhythm.getLogger('Extractor')
        self.logger.format = logarhythm.build_format(time=None,level=False)

    def __call__(self,directives):
        for directive in directives:
            self.directive = directive
            method_name = 'handle_skip' if directive.name is None else 'handle_field'
            method = getattr(self,method_name)
            method(directive)
        return self.data_record

    def _consume(self,directive):
        width = directive.width
        start = self.byte_source.tell()
        data = self.byte_source.read_exact(width)
        outcome = match_segments(directive.segments,data)
        if isinstance(outcome,Mismatch):
            self.logger.debug('%s mismatch at offset %d: %s != %02X' % (_name(directive),outcome.offset,describe_byte(outcome.expected,outcome.mask),outcome.actual))
            pattern,actual = describe_window(directive.segments,data,outcome.offset)
            raise PatternMismatchError(directive.name,outcome.offset,outcome.expected,outcome.actual,
                    mask=outcome.mask,
                    position=start+outcome.offset,
                    pattern=pattern,
                    data=actual)
        self.logger.debug('%s: %d bytes at position %d' % (_name(directive),width,start))
        return data

    def handle_field(self,directive):
        data = self._consume(directive)
        if directive.convert is None:
            value = data
        else:
            value = directive.convert(data)
        self.data_record[directive.name] = value
        return value

    def handle_skip(self,directive):
        data = self._consume(directive)
        if directive.convert is not None:
            directive.convert(data)


def parse(byte_source,directives,record_type=None,defaults=None):
    """
    Parses one record from byte_source. directives is a Blueprint or a list of directives.
    Raises SourceIoError if the source runs out of bytes and PatternMismatchError on the first byte that does not match.
    """
    blueprint = _as_blueprint(directives,record_type,defaults)
    maker = Extractor(byte_source)
    values = maker(blueprint.directives)
    return blueprint.build_record(values)

def extract(blueprint,byte_stream):
    """
    Same as parse() but also returns the Extractor object, which keeps the raw field values and the byte source position.
    """
    blueprint = _as_blueprint(blueprint)
    maker = Extractor(byte_stream)
    values = maker(blueprint.directives)
    return maker, blueprint.build_record(values)

def iter_parse(byte_source,directives,record_type=None,defaults=None):
    """
    Parses consecutive records from byte_source until it is exhausted exactly at a record boundary.
    A record that is cut short raises SourceIoError.

    >>> [r['n'] for r in iter_parse(b'\\x01\\x02\\x03',[('n','__',lambda b: b[0])])]
    [1, 2, 3]
    """
    blueprint = _as_blueprint(directives,record_type,defaults)
    if blueprint.width == 0:
        raise ValueError('iter_parse requires a blueprint that consumes at least one byte')
    source = BytesSource.wrap(byte_source)
    while True:
        start = source.tell()
        try:
            record = parse(source,blueprint)
        except SourceIoError as e:
            if e.eof and e.received == 0 and e.position == start:
                return
            raise
        yield record
