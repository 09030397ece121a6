# mkdeb.digest - file digests for the checksum files in control.tar

import hashlib
from enum import IntEnum

from .errors import InternalError
from .util import parse_token, format_token

# Numbered like rpm/rpmio/rpmpgp.h:pgpHashAlgo_e, for no better reason than
# that's what everyone else uses.
class HashAlgo(IntEnum):
    MD5    = 1
    SHA1   = 2
    SHA256 = 8

    @classmethod
    def parse(cls, text, field='hash'):
        return parse_token(cls, hash_aliases, text, 'hash algorithm', field)

    @classmethod
    def format(cls, value):
        return format_token(cls, hash_names, value, 'algo')

    def __str__(self):
        return self.format(self)

    @property
    def filename(self):
        '''Name of the checksum file in control.tar, e.g. "md5sum".'''
        return hash_filenames[self]

STANDARD_HASHES = (HashAlgo.MD5, HashAlgo.SHA1, HashAlgo.SHA256)

hash_names = {
    HashAlgo.MD5:    'MD5',
    HashAlgo.SHA1:   'SHA1',
    HashAlgo.SHA256: 'SHA256',
}

hash_filenames = {
    HashAlgo.MD5:    'md5sum',
    HashAlgo.SHA1:   'sha1sum',
    HashAlgo.SHA256: 'sha256sum',
}

hash_aliases = {
    'md5':     HashAlgo.MD5,
    'md-5':    HashAlgo.MD5,
    'sha1':    HashAlgo.SHA1,
    'sha-1':   HashAlgo.SHA1,
    'sha256':  HashAlgo.SHA256,
    'sha-256': HashAlgo.SHA256,
    'sha2':    HashAlgo.SHA256,
    'sha-2':   HashAlgo.SHA256,
}

def gethasher(algo):
    if algo == HashAlgo.MD5:
        return hashlib.md5()
    elif algo == HashAlgo.SHA1:
        return hashlib.sha1()
    elif algo == HashAlgo.SHA256:
        return hashlib.sha256()
    raise InternalError(f"{HashAlgo.format(algo)} not implemented")

class MultiHasher(object):
    '''Feed the same bytes to several hashers at once.'''
    def __init__(self, algos):
        self.hashers = [(algo, gethasher(algo)) for algo in algos]

    def update(self, data):
        for _, h in self.hashers:
            h.update(data)

    def digests(self):
        '''Return [(algo, digest_bytes), ...] in the order we were given.'''
        return [(algo, h.digest()) for algo, h in self.hashers]

class DigestReader(object):
    '''
    Wrap a readable stream so that every chunk read from it also updates
    each of the hashers. tarfile pulls file contents out of a fileobj, so
    this is where the fan-out goes: every byte handed to the tar layer has
    been hashed, and nothing else has.
    '''
    def __init__(self, fobj, algos):
        self._fobj = fobj
        self._hasher = MultiHasher(algos)
        self.count = 0

    def read(self, size=-1):
        data = self._fobj.read(size)
        if data:
            self._hasher.update(data)
            self.count += len(data)
        return data

    def digests(self):
        return self._hasher.digests()
