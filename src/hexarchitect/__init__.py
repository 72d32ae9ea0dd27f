"""
Key Ideas:
    ( 1) A byte source is a one-shot, forward-only supplier of bytes. May be an instance of bytes, bytearray, memoryview, BytesIO, or a file opened in binary mode.
         Internally it is wrapped in a hexarchitect.BytesSource, which only knows how to read exactly N bytes or fail.
    ( 2) A pattern describes the expected layout of a fixed number of bytes. Some bytes must match exactly, some are don't cares (wildcards), and some only have one nibble that must match.
    ( 3) A pattern is written either as a hex string ("48 45 58 __ A_"), an array of byte values and wildcard markers ([0x48, 0x45, ANY]), or a byte string (b"HEX").
    ( 4) Compiling a pattern turns any of these into a tuple of segments. A segment is a Literal run, a Wildcard run, or a Mixed (nibble masked) byte.
    ( 5) A directive pairs a compiled pattern with an optional field name and an optional conversion function.
    ( 6) A blueprint is an ordered list of directives plus the record type that the named fields are assembled into.
    ( 7) Extraction is the process of applying a blueprint to a byte source to produce a record.
    ( 8) An Extractor is the object that applies the directives of a blueprint one at a time.
    ( 9) Every pattern has a fixed width known at compile time. The Extractor never backtracks and never reads bytes belonging to a later directive before the current one is done.
    (10) A parse either produces the complete record or raises exactly one error: SourceIoError (not enough bytes) or PatternMismatchError (first byte that did not match).
         Errors raised by conversion functions are propagated unchanged.

Blueprint API:

    Defining directives:
        field(name, pattern, convert=None)
            The bytes matched by pattern become the value of the named field. If convert is given, the value is convert(bytes) instead.
        skip(pattern, convert=None)
            The bytes must match pattern but are not stored. Used for magic numbers, padding, and reserved bytes.
            If convert is given it is called with the bytes (e.g. to validate them) and its result is discarded.
        A (name, pattern) or (name, pattern, convert) tuple is accepted anywhere a directive is; a name of None or "_" means skip().

    Defining a blueprint:
        blueprint = Blueprint([
            skip(b'HEX'),
            skip([0]),
            ('a', [0x01, ANY]),
            skip('00'),
            ('b', 'AABB ____', uint_le),
        ], record_type=None, defaults=None)

        record_type is called with the named fields as keyword arguments. If it is None, an OrderedDict is returned.
        defaults provides values for record fields that no directive produces.

    Invoking a blueprint:
        (1) record = parse(byte_source, blueprint)
            A plain list of directives may be passed in place of a blueprint, together with record_type and defaults.
        (2) record = blueprint.parse(byte_source)
        (3) for record in iter_parse(byte_source, blueprint): ...
            Parses consecutive records until the byte source ends exactly at a record boundary.
        (4) maker, record = extract(blueprint, byte_source)
            Also returns the Extractor, e.g. to inspect maker.tell() afterwards.

    Matching without a byte source:
        match_segments(segments, data) returns Matched(data) or Mismatch(offset, expected, mask, actual).
        matches(pattern, data) returns True or False for a complete bytes object; hex strings may contain one ".." marker that matches any number of bytes.
        hex_bytes(text) converts a hex string such as "DEAD AF" to bytes.

Pattern Specification:

    Hex string patterns:
        <hh> = Two hex digits (0-9, a-f, A-F) are one literal byte.
        __ = A wildcard byte. Consecutive wildcard bytes are compiled into a single Wildcard segment.
        <h>_ = A byte whose high nibble must match <h> and whose low nibble is a don't care.
        _<h> = A byte whose low nibble must match <h> and whose high nibble is a don't care.
        Spaces, tabs, carriage returns and line feeds are separators and are removed before the characters are paired up.
        Any other character is a PatternSyntaxError, as is an odd number of remaining characters.
        ".." ranges are not allowed in directive patterns because the width of every directive must be known.

    Array patterns:
        A list or tuple whose tokens are ints in range(256) or wildcard markers (ANY or the string "_").
        There is no nibble granularity in array patterns.

    Byte string patterns:
        A bytes, bytearray, or memoryview object. Every byte is literal.

    Empty patterns are allowed. They consume zero bytes and always match.

Conversion functions:
    Any callable that takes the captured bytes object. The captured bytes include the bytes that were matched by wildcards.
    hex_utils provides ready made ones: uint_be, uint_le, sint_be, sint_le, f32_be, f32_le, f64_be, f64_le, hex_lower, hex_upper,
    and decoder(encoding, endian) for building others.

Logging:
    Compilation logs to the "compile_pattern" logarhythm logger and extraction to the "Extractor" logger, both at debug level.
    Call logarhythm.set_auto_debug(True) or set logger.level = logarhythm.DEBUG to see them.
"""
import importlib
from .hex_utils import *
from .bytes_io import *
from .pattern import *
from .maker import *
blueprints = importlib.import_module('hexarchitect.blueprints')

__version__ = '0.1.0'
