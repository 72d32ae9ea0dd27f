"""
This module provides blueprints for zip files.
See zip file structure definition here:
        https://en.m.wikipedia.org/wiki/Zip_(file_format)

Blueprints only describe fixed size records, so a local file entry is read in two steps:
the fixed 30 byte header, then the file name, extra field, and data with widths taken from that header.
"""
import unittest, io, zipfile, zlib
from collections import namedtuple, OrderedDict
import logarhythm
import hexarchitect
from hexarchitect import Blueprint, BytesSource, ANY, field, skip, uint_le

logger = logarhythm.getLogger('blueprints.zip')
logger.format = logarhythm.build_format(time=None,level=False)

LOCAL_FILE_SIGNATURE = b'PK\x03\x04'
CENTRAL_DIRECTORY_SIGNATURE = b'PK\x01\x02'
FLAG_DATA_DESCRIPTOR = 0x0008

LocalFileHeader = namedtuple('LocalFileHeader','version flags method mod_time mod_date crc32 compressed_size uncompressed_size filename_len extra_len')

#every zip record starts with "PK" followed by two record type bytes
record_signature = Blueprint([
    field('signature','50 4B ____'),
    ])

#local file header after the signature
local_file_header = Blueprint([
    field('version','____',uint_le),
    field('flags','____',uint_le),
    field('method','____',uint_le),
    field('mod_time','____',uint_le),
    field('mod_date','____',uint_le),
    field('crc32','________',uint_le),
    field('compressed_size','________',uint_le),
    field('uncompressed_size','________',uint_le),
    field('filename_len','____',uint_le),
    field('extra_len','____',uint_le),
    ],record_type=LocalFileHeader)

def file_entry_body(header):
    """
    Builds the blueprint for the variable length part of a local file entry.
    """
    return Blueprint([
        field('filename',[ANY]*header.filename_len,lambda b: b.decode('utf-8' if header.flags & 0x0800 else 'cp437')),
        field('extra',[ANY]*header.extra_len),
        field('data',[ANY]*header.compressed_size),
        ])

def decompress(header,data):
    if header.method == 0:
        return data
    elif header.method == 8:
        return zlib.decompress(data,-15)
    raise ValueError('Unsupported compression method: %d' % header.method)

def file_entries(byte_source):
    """
    Yields (filename, header, extra, uncompressed data) for every local file entry at the start of a zip file.
    Stops at the first record that is not a local file header (normally the central directory).
    """
    source = BytesSource.wrap(byte_source)
    num = 0
    while True:
        signature = record_signature.parse(source)['signature']
        if signature != LOCAL_FILE_SIGNATURE:
            logger.debug('Stopping at record signature %r' % signature)
            return
        num += 1
        header = local_file_header.parse(source)
        logger.debug('File entry %d: %r' % (num,header))
        if header.flags & FLAG_DATA_DESCRIPTOR:
            raise ValueError('Local file entry %d stores its sizes in a data descriptor, which requires scanning' % num)
        body = file_entry_body(header).parse(source)
        data = decompress(header,body['data'])
        if zlib.crc32(data) != header.crc32:
            raise ValueError('CRC mismatch for %s' % body['filename'])
        yield body['filename'],header,body['extra'],data

class TestZipBlueprint(unittest.TestCase):
    def make_zip(self,compression):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf,mode='w',compression=compression) as zf:
            zf.writestr('file1.txt',b'green eggs and ham')
            zf.writestr('file2.txt',b'sam i am')
        buf.seek(0)
        return buf

    def test_zip_extract_deflated(self):
        entries = OrderedDict((name,(header,data)) for name,header,extra,data in file_entries(self.make_zip(zipfile.ZIP_DEFLATED)))
        self.assertEqual(list(entries),['file1.txt','file2.txt'])
        header,data = entries['file1.txt']
        self.assertEqual(header.method,8)
        self.assertEqual(header.filename_len,9)
        self.assertEqual(header.uncompressed_size,len(b'green eggs and ham'))
        self.assertEqual(data,b'green eggs and ham')
        self.assertEqual(entries['file2.txt'][1],b'sam i am')

    def test_zip_extract_stored(self):
        entries = list(file_entries(self.make_zip(zipfile.ZIP_STORED)))
        self.assertEqual([(name,data) for name,header,extra,data in entries],[('file1.txt',b'green eggs and ham'),('file2.txt',b'sam i am')])
        for name,header,extra,data in entries:
            self.assertEqual(header.method,0)
            self.assertEqual(header.compressed_size,header.uncompressed_size)

    def test_not_a_zip(self):
        with self.assertRaises(hexarchitect.PatternMismatchError) as cm:
            list(file_entries(b'GIF89a'))
        self.assertEqual(cm.exception.offset,0)
        self.assertEqual(cm.exception.field,'signature')

    def test_truncated_zip(self):
        data = self.make_zip(zipfile.ZIP_STORED).getvalue()
        with self.assertRaises(hexarchitect.SourceIoError):
            list(file_entries(data[:40]))

if __name__ == '__main__':
    logarhythm.set_auto_debug(True)
    #logger.level = logarhythm.DEBUG
    #logarhythm.getLogger('Extractor').level = logarhythm.DEBUG
    unittest.main()
