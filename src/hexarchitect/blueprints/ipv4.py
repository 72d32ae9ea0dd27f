"""
This module provides a blueprint for IPv4 packet headers.
See header structure definition here:
        https://en.wikipedia.org/wiki/IPv4#Header

The first byte holds two nibbles: the version, which must be 4, and the header length in 32 bit words.
The "4_" nibble pattern checks the version while capturing the whole byte.
"""
import unittest, ipaddress
from collections import namedtuple
import logarhythm
import hexarchitect
from hexarchitect import Blueprint, ANY, field, uint_be

logger = logarhythm.getLogger('blueprints.ipv4')
logger.format = logarhythm.build_format(time=None,level=False)

IPv4Header = namedtuple('IPv4Header','header_length dscp_ecn total_length identification flags_fragment ttl protocol checksum source destination')

ipv4_header = Blueprint([
    field('header_length','4_',lambda b: (b[0] & 0x0F)*4),
    field('dscp_ecn','__',uint_be),
    field('total_length','____',uint_be),
    field('identification','____',uint_be),
    field('flags_fragment','____',uint_be),
    field('ttl','__',uint_be),
    field('protocol','__',uint_be),
    field('checksum','____',uint_be),
    field('source','________',ipaddress.IPv4Address),
    field('destination','________',ipaddress.IPv4Address),
    ],record_type=IPv4Header)

def header_checksum(data):
    """
    Ones' complement sum of the 16 bit words of data. A header with a correct checksum field sums to 0xFFFF.

    >>> hex(header_checksum(hexarchitect.hex_bytes('4500 0073 0000 4000 4011 b861 c0a8 0001 c0a8 00c7')))
    '0xffff'
    """
    total = 0
    for i in range(0,len(data),2):
        total += (data[i] << 8) | (data[i+1] if i+1 < len(data) else 0)
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return total

def read_packet(byte_source):
    """
    Reads one IPv4 packet and returns (header, options, payload).
    """
    source = hexarchitect.BytesSource.wrap(byte_source)
    header = ipv4_header.parse(source)
    if header.header_length < 20:
        raise ValueError('IPv4 header length too small: %d' % header.header_length)
    if header.total_length < header.header_length:
        raise ValueError('IPv4 total length %d is smaller than the header length %d' % (header.total_length,header.header_length))
    logger.debug('%s -> %s protocol %d' % (header.source,header.destination,header.protocol))
    rest = hexarchitect.parse(source,[
        ('options',[ANY]*(header.header_length-20)),
        ('payload',[ANY]*(header.total_length-header.header_length)),
        ])
    return header,rest['options'],rest['payload']

SAMPLE_HEADER = '4500 0073 0000 4000 4011 b861 c0a8 0001 c0a8 00c7'

class TestIPv4Blueprint(unittest.TestCase):
    def test_header(self):
        header = ipv4_header.parse(hexarchitect.hex_bytes(SAMPLE_HEADER))
        self.assertEqual(header.header_length,20)
        self.assertEqual(header.total_length,0x73)
        self.assertEqual(header.flags_fragment,0x4000)
        self.assertEqual(header.ttl,64)
        self.assertEqual(header.protocol,17)
        self.assertEqual(header.checksum,0xB861)
        self.assertEqual(header.source,ipaddress.IPv4Address('192.168.0.1'))
        self.assertEqual(header.destination,ipaddress.IPv4Address('192.168.0.199'))

    def test_packet_with_options(self):
        #header length 6 words, total length 28 bytes: 4 bytes of options and 4 bytes of payload
        data = hexarchitect.hex_bytes('4600 001C 0000 0000 4001 0000 0A00 0001 0A00 0002 0102 0304 DEAD BEEF 9999')
        header,options,payload = read_packet(data)
        self.assertEqual(header.header_length,24)
        self.assertEqual(options,b'\x01\x02\x03\x04')
        self.assertEqual(payload,b'\xde\xad\xbe\xef')

    def test_wrong_version(self):
        data = bytearray(hexarchitect.hex_bytes(SAMPLE_HEADER))
        data[0] = 0x65
        with self.assertRaises(hexarchitect.PatternMismatchError) as cm:
            ipv4_header.parse(data)
        e = cm.exception
        self.assertEqual((e.field,e.offset,e.expected,e.mask,e.actual),('header_length',0,0x40,0xF0,0x65))
        self.assertIn('4_',str(e))

    def test_truncated_payload(self):
        data = hexarchitect.hex_bytes(SAMPLE_HEADER) + b'\x00'*10
        with self.assertRaises(hexarchitect.SourceIoError) as cm:
            read_packet(data)
        self.assertEqual(cm.exception.received,10)
        self.assertEqual(cm.exception.position,20)

if __name__ == '__main__':
    logarhythm.set_auto_debug(True)
    unittest.main()
