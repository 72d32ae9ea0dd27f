"""
The purpose of this module is to provide a reader object called BytesSource that wraps bytes, bytearray, memoryview, BytesIO, or a binary file
and only supports forward reads of an exact number of bytes.
"""

import io
from enum import Enum
import logarhythm

class ParseError(Exception):
    """
    Base class of the errors that terminate a parse.
    """

class SourceIoError(ParseError,IOError):
    """
    Raised when a byte source cannot supply the requested number of bytes, either because it ran out of data or because the underlying object failed.
    """
    def __init__(self,requested,received,position,cause=None):
        self.requested = requested
        self.received = received
        self.position = position
        self.cause = cause
        self.eof = cause is None
        message = 'Expected %d bytes at position %d; received %d' % (requested,position,received)
        if cause is None:
            message += ' (end of data)'
        else:
            message += ' (%r)' % (cause,)
        super().__init__(message)

class ByteSourceType(Enum):
    BUFFER = 1
    STREAM = 2

class BytesSource(object):

    """
    This class imitates a one-shot binary reader. The only read operation is read_exact(), which either returns exactly the requested number of bytes or raises SourceIoError.
    There is no seek or peek; tell() reports how many bytes have been consumed through this object.

    >>> b = BytesSource(b'hello world')
    >>> b.read_exact(5)
    b'hello'
    >>> b.tell()
    5
    >>> b.read_exact(0)
    b''
    >>> b.read_exact(10)
    Traceback (most recent call last):
        ...
    hexarchitect.bytes_io.SourceIoError: Expected 10 bytes at position 5; received 6 (end of data)
    """
    def __init__(self,byte_source):
        self.original_byte_source = byte_source
        self.logger = logarhythm.getLogger('BytesSource')
        self.logger.format = logarhythm.build_format(time=None,level=False)
        if isinstance(byte_source,(bytes,bytearray,memoryview)):
            self.byte_source_type = ByteSourceType.BUFFER
            self.byte_source = io.BytesIO(bytes(byte_source))
        elif hasattr(byte_source,'read'):
            if isinstance(byte_source,io.TextIOBase):
                raise TypeError('File-like object provided to BytesSource must be opened in binary mode')
            if hasattr(byte_source,'mode') and isinstance(byte_source.mode,str):
                if not 'b' in byte_source.mode:
                    raise TypeError('File-like object provided to BytesSource must be opened in binary mode i.e. must have "b": mode = %s' % byte_source.mode)
            self.byte_source_type = ByteSourceType.STREAM
            self.byte_source = byte_source
        else:
            raise TypeError('Incompatible byte_source: %r' % (byte_source,))
        self.pos = 0

    @classmethod
    def wrap(cls,byte_source):
        """
        Returns byte_source itself if it is already a BytesSource, otherwise a new BytesSource around it.
        """
        if isinstance(byte_source,cls):
            return byte_source
        return cls(byte_source)

    def tell(self):
        """
        Returns the number of bytes consumed so far through this object
        """
        return self.pos

    def read_exact(self,n):
        """
        Reads exactly n bytes. Short reads of the underlying object are retried until n bytes are collected or the object reports end of data.
        """
        if not isinstance(n,int) or n < 0:
            raise ValueError('n must be a non-negative int: %r' % (n,))
        if n == 0:
            return b''
        chunks = []
        received = 0
        while received < n:
            try:
                chunk = self.byte_source.read(n - received)
            except OSError as e:
                self.logger.debug('read failed at %d: %r' % (self.pos+received,e))
                self.pos += received
                raise SourceIoError(n,received,self.pos-received,e) from e
            if not chunk:
                break
            if len(chunk) > n - received:
                e = IOError('read(%d) returned %d bytes' % (n-received,len(chunk)))
                self.logger.debug('read failed at %d: %r' % (self.pos+received,e))
                self.pos += received
                raise SourceIoError(n,received,self.pos-received,e)
            chunks.append(bytes(chunk))
            received += len(chunk)
        data = b''.join(chunks)
        if received < n:
            self.pos += received
            raise SourceIoError(n,received,self.pos-received)
        self.pos += n
        return data

    def close(self):
        """
        Pass through function to encapsulated file/IO close() method
        """
        self.byte_source.close()

    def __enter__(self):
        return self

    def __exit__(self,exc_type,exc_value,exc_traceback):
        """
        The object is closed when it is used as a context manager and the context ends.
        """
        self.close()
