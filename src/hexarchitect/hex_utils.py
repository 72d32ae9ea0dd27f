"""
This module provides utility functions for working with bytes, nibbles, and hex text with focus on the following representations:
    1. Bytes object
    2. (byte value, mask) pairs where the mask selects the bits that are significant

It also provides ready made conversion functions that can be attached to captured fields.
"""
import base64, struct
from enum import Enum

HIGH_NIBBLE = 0xF0
LOW_NIBBLE = 0x0F
FULL_BYTE = 0xFF
NO_BITS = 0x00

HEX_DIGITS = '0123456789abcdefABCDEF'

def hex_digit_value(c):
    """
    Returns the value of a single hex digit character, or None if the character is not a hex digit.

    >>> hex_digit_value('a')
    10
    >>> hex_digit_value('F')
    15
    >>> hex_digit_value('g') is None
    True
    """
    if len(c) != 1 or c not in HEX_DIGITS:
        return None
    return int(c,16)

def masked_equal(expected,actual,mask=FULL_BYTE):
    """
    Compares the bits of two byte values that are selected by mask.

    >>> masked_equal(0xA0,0xAF,HIGH_NIBBLE)
    True
    >>> masked_equal(0xA0,0xB0,HIGH_NIBBLE)
    False
    >>> masked_equal(0x05,0xF5,LOW_NIBBLE)
    True
    """
    return (expected & mask) == (actual & mask)

def describe_byte(value,mask=FULL_BYTE):
    """
    Renders a byte value as two hex characters, replacing every nibble that is not selected by the mask with an underscore.
    This is the same notation that hex string patterns are written in.

    >>> describe_byte(0x02)
    '02'
    >>> describe_byte(0xA0,HIGH_NIBBLE)
    'A_'
    >>> describe_byte(0x07,LOW_NIBBLE)
    '_7'
    >>> describe_byte(0,NO_BITS)
    '__'
    """
    high = '%X' % (value >> 4) if mask & HIGH_NIBBLE else '_'
    low = '%X' % (value & LOW_NIBBLE) if mask & LOW_NIBBLE else '_'
    return high + low

def describe_bytes(b):
    """
    Renders a bytes object as a bracketed list of upper case hex pairs.

    >>> describe_bytes(b'\\x01\\xab')
    '[01, AB]'
    """
    return '[%s]' % ', '.join(describe_byte(x) for x in b)


class Encoding(Enum):
    """
    This enumeration defines the value encodings available to the decoder() conversion function factory
    """
    UINT = 1 #unsigned integer
    SINT = 2 #signed 2's complement integer
    SPFP = 3 #single precision floating point
    DPFP = 4 #double precision floating point
    LHEX = 5 #lower case hex string
    UHEX = 6 #upper case hex string
    BINS = 7 #bin string
    BYTS = 8 #bytes object

def bytes_decode(data,encoding,endian='big'):
    """
    Takes a bytes object and decodes (interprets) it according to a supported encoding scheme.
    The endian setting applies to the numeric encodings only; text and bytes encodings keep stream order.

    >>> bytes_decode(b'\\x01\\x02',Encoding.UINT)
    258
    >>> bytes_decode(b'\\x01\\x02',Encoding.UINT,'little')
    513
    >>> bytes_decode(b'\\xff\\xfe',Encoding.SINT)
    -2
    >>> bytes_decode(b'\\x05',Encoding.BINS)
    '00000101'
    >>> bytes_decode(b'\\xde\\xad',Encoding.UHEX)
    'DEAD'
    """
    if endian not in ('big','little'):
        raise ValueError('endian must be "big" or "little": %r' % (endian,))
    data = bytes(data)
    if encoding == Encoding.UINT:
        return int.from_bytes(data,endian,signed=False)
    elif encoding == Encoding.SINT:
        return int.from_bytes(data,endian,signed=True)
    elif encoding == Encoding.SPFP:
        if len(data) != 4:
            raise ValueError('Single Precision Floating Point values must be 4 bytes, not %d' % len(data))
        return struct.unpack('>f' if endian == 'big' else '<f',data)[0]
    elif encoding == Encoding.DPFP:
        if len(data) != 8:
            raise ValueError('Double Precision Floating Point values must be 8 bytes, not %d' % len(data))
        return struct.unpack('>d' if endian == 'big' else '<d',data)[0]
    elif encoding == Encoding.LHEX:
        return data.hex()
    elif encoding == Encoding.UHEX:
        return data.hex().upper()
    elif encoding == Encoding.BINS:
        return ''.join('{:08b}'.format(x) for x in data)
    elif encoding == Encoding.BYTS:
        return data
    raise ValueError('Invalid encoding: %r' % (encoding,))

def decoder(encoding,endian='big'):
    """
    Returns a conversion function that decodes a captured bytes object with the given encoding.

    >>> decoder(Encoding.UINT,'little')(b'\\xdd\\xcc\\xbb\\xaa') == 0xAABBCCDD
    True
    """
    def convert(data):
        return bytes_decode(data,encoding,endian)
    convert.__name__ = '%s_%s' % (encoding.name.lower(),endian)
    return convert

uint_be = decoder(Encoding.UINT,'big')
uint_le = decoder(Encoding.UINT,'little')
sint_be = decoder(Encoding.SINT,'big')
sint_le = decoder(Encoding.SINT,'little')
f32_be = decoder(Encoding.SPFP,'big')
f32_le = decoder(Encoding.SPFP,'little')
f64_be = decoder(Encoding.DPFP,'big')
f64_le = decoder(Encoding.DPFP,'little')
hex_lower = decoder(Encoding.LHEX)
hex_upper = decoder(Encoding.UHEX)

to_b16 = base64.b16encode
def to_hex(b):
    """
    >>> to_hex(b'\\xde\\xad')
    b'dead'
    """
    return to_b16(b).lower()
def to_HEX(b):
    return to_b16(b).upper()
def from_hex(s):
    """
    Decodes a contiguous hex string (no separators, no wildcards) into bytes.
    Use pattern.hex_bytes() for hex text with separators.

    >>> from_hex('DeadBeef')
    b'\\xde\\xad\\xbe\\xef'
    """
    if isinstance(s,str):
        s = s.encode('ascii')
    return base64.b16decode(s,True)

