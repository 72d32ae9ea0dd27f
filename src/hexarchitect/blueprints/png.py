"""
This module provides a blueprint for the start of a PNG file: the 8 byte signature followed by the IHDR chunk.
See file structure definition here:
        https://www.w3.org/TR/png/#5DataRep
"""
import unittest, os.path, struct, tempfile, zlib
from collections import namedtuple
import logarhythm
import hexarchitect
from hexarchitect import Blueprint, field, skip, uint_be

logger = logarhythm.getLogger('blueprints.png')
logger.format = logarhythm.build_format(time=None,level=False)

PNG_SIGNATURE = '89 50 4E 47 0D 0A 1A 0A'

ImageHeader = namedtuple('ImageHeader','width height bit_depth color_type interlace crc')

def _bit_depth(b):
    value = b[0]
    if value not in (1,2,4,8,16):
        raise ValueError('Invalid PNG bit depth: %d' % value)
    return value

png_header = Blueprint([
    skip(PNG_SIGNATURE),
    skip('0000 000D'), #IHDR length is always 13
    skip(b'IHDR'),
    field('width','________',uint_be),
    field('height','________',uint_be),
    field('bit_depth','__',_bit_depth),
    field('color_type','__',uint_be),
    skip('00'), #compression method; only deflate (0) is defined
    skip('00'), #filter method; only adaptive filtering (0) is defined
    field('interlace','__',uint_be),
    field('crc','________',uint_be),
    ],record_type=ImageHeader)

def ihdr_crc(header):
    """
    Computes the CRC the IHDR chunk should carry for the given header values.
    """
    data = struct.pack('>IIBBBBB',header.width,header.height,header.bit_depth,header.color_type,0,0,header.interlace)
    return zlib.crc32(b'IHDR' + data)

def read_header(byte_source):
    header = png_header.parse(byte_source)
    logger.debug('PNG %dx%d depth %d' % (header.width,header.height,header.bit_depth))
    if ihdr_crc(header) != header.crc:
        raise ValueError('IHDR CRC mismatch: stored %08X, computed %08X' % (header.crc,ihdr_crc(header)))
    return header

def make_png_start(width,height,bit_depth=8,color_type=2,interlace=0):
    data = struct.pack('>IIBBBBB',width,height,bit_depth,color_type,0,0,interlace)
    chunk = struct.pack('>I',len(data)) + b'IHDR' + data + struct.pack('>I',zlib.crc32(b'IHDR' + data))
    return hexarchitect.hex_bytes(PNG_SIGNATURE) + chunk

class TestPngBlueprint(unittest.TestCase):
    def test_png_header(self):
        header = read_header(make_png_start(640,480))
        self.assertEqual((header.width,header.height,header.bit_depth,header.color_type,header.interlace),(640,480,8,2,0))

    def test_png_file(self):
        with tempfile.TemporaryDirectory() as tdir:
            path = os.path.join(tdir,'test.png')
            with open(path,'wb') as f:
                f.write(make_png_start(1,2,16,6,1))
                f.write(b'\x00'*16)
            with open(path,'rb') as f:
                header = read_header(f)
                self.assertEqual(f.tell(),33)
        self.assertEqual(header,ImageHeader(1,2,16,6,1,header.crc))

    def test_not_a_png(self):
        data = bytearray(make_png_start(1,1))
        data[1:4] = b'PNX'
        with self.assertRaises(hexarchitect.PatternMismatchError) as cm:
            read_header(data)
        self.assertEqual((cm.exception.field,cm.exception.offset,cm.exception.expected,cm.exception.actual),(None,3,0x47,ord('X')))

    def test_bad_bit_depth_passes_through(self):
        with self.assertRaises(ValueError) as cm:
            read_header(make_png_start(1,1,bit_depth=3))
        self.assertNotIsInstance(cm.exception,hexarchitect.ParseError)
        self.assertIn('bit depth',str(cm.exception))

    def test_bad_crc(self):
        data = bytearray(make_png_start(1,1))
        data[-1] ^= 0xFF
        with self.assertRaises(ValueError):
            read_header(data)

if __name__ == '__main__':
    logarhythm.set_auto_debug(True)
    unittest.main()
