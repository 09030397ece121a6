# mkdeb.compression - streaming compressors for the .deb tarballs

import logging as log
from enum import IntEnum

from .errors import InternalError
from .util import parse_token, format_token

class CompressAlgo(IntEnum):
    AUTO  = 0
    NONE  = 1
    GZIP  = 2
    BZIP2 = 3
    XZ    = 4
    ZSTD  = 5

    @classmethod
    def parse(cls, text, field='compression'):
        return parse_token(cls, compress_aliases, text,
                           'compression algorithm', field)

    @classmethod
    def format(cls, value):
        return format_token(cls, compress_names, value, 'compression')

    def __str__(self):
        return self.format(self)

    def resolve(self):
        '''AUTO means gzip; everything else means itself.'''
        return CompressAlgo.GZIP if self == CompressAlgo.AUTO else self

    @property
    def suffix(self):
        return compress_suffixes.get(self, '')

compress_names = {c:c.name.lower() for c in CompressAlgo}

compress_suffixes = {
    CompressAlgo.AUTO:  '',
    CompressAlgo.NONE:  '',
    CompressAlgo.GZIP:  '.gz',
    CompressAlgo.BZIP2: '.bz2',
    CompressAlgo.XZ:    '.xz',
    CompressAlgo.ZSTD:  '.zst',
}

compress_aliases = {
    '':      CompressAlgo.AUTO,
    'auto':  CompressAlgo.AUTO,
    'none':  CompressAlgo.NONE,
    'gzip':  CompressAlgo.GZIP,
    'gz':    CompressAlgo.GZIP,
    'bzip2': CompressAlgo.BZIP2,
    'bzip':  CompressAlgo.BZIP2,
    'bz2':   CompressAlgo.BZIP2,
    'xz':    CompressAlgo.XZ,
    'zstd':  CompressAlgo.ZSTD,
    'zst':   CompressAlgo.ZSTD,
}

# Package builds happen once and get downloaded many times, so these lean
# toward smaller output rather than speed.
DEFAULT_COMPRESSION_LEVEL = {
    CompressAlgo.GZIP:  9,
    CompressAlgo.BZIP2: 9,
    CompressAlgo.XZ:    6,
    CompressAlgo.ZSTD:  19,
}

class CompressionStreamWriter(object):
    '''
    File-like writer that pushes everything through a compression object
    (anything with compress()/flush(), like zlib or lzma's) into `fobj`.
    close() flushes the compressor's trailer but leaves `fobj` open.
    '''
    def __init__(self, cobj, fobj):
        self._cobj = cobj
        self._fobj = fobj

    def write(self, data):
        if self._cobj is None:
            raise ValueError("write to closed CompressionStreamWriter")
        self._fobj.write(self._cobj.compress(data))
        return len(data)

    def flush(self):
        pass

    @property
    def closed(self):
        return self._cobj is None

    def close(self):
        if self._cobj is None:
            return
        self._fobj.write(self._cobj.flush())
        self._cobj = None

class PassthroughWriter(object):
    '''CompressAlgo.NONE: writes go straight through; close() is a no-op.'''
    def __init__(self, fobj):
        self._fobj = fobj
        self.closed = False

    def write(self, data):
        if self.closed:
            raise ValueError("write to closed PassthroughWriter")
        self._fobj.write(data)
        return len(data)

    def flush(self):
        pass

    def close(self):
        self.closed = True

# We don't import the compression modules at the toplevel because I want this
# to work even if you don't have Every Compression Library installed.
# As long as you have the ones you actually use, we should be fine.

def get_compressobj(which, level=None):
    which = CompressAlgo(which).resolve()
    if level is None or level < 0:
        level = DEFAULT_COMPRESSION_LEVEL.get(which)
    if which == CompressAlgo.GZIP:
        import zlib
        # wbits=31 gets us a gzip header with mtime=0 and no filename, so the
        # output doesn't depend on when or where we built it
        return zlib.compressobj(level, zlib.DEFLATED, 31)
    elif which == CompressAlgo.BZIP2:
        import bz2
        return bz2.BZ2Compressor(level)
    elif which == CompressAlgo.XZ:
        import lzma
        return lzma.LZMACompressor(format=lzma.FORMAT_XZ, preset=level)
    elif which == CompressAlgo.ZSTD:
        import zstandard as zstd
        cctx = zstd.ZstdCompressor(level=level)
        return cctx.compressobj()
    raise InternalError(f"{CompressAlgo.format(which)} not implemented")

def get_writer(which, fobj, level=None):
    '''Return a file-like writer that compresses into `fobj`.'''
    try:
        which = CompressAlgo(which).resolve()
    except ValueError:
        raise InternalError(f"{CompressAlgo.format(which)} not implemented") from None
    log.debug("get_writer(%s, level=%s)", which, level)
    if which == CompressAlgo.NONE:
        return PassthroughWriter(fobj)
    return CompressionStreamWriter(get_compressobj(which, level), fobj)
