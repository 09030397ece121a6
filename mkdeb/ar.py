# mkdeb.ar - the outer `ar` container of a .deb
#
# The format is about as simple as archive formats get: an 8-byte magic,
# then for each member a 60-byte all-ASCII header followed by the data,
# padded with '\n' to an even length. No trailer.
# See ar(5) and deb(5) for details.

from collections import namedtuple

from .errors import InternalError
from .util import copy_exact

AR_MAGIC = b'!<arch>\n'
AR_FMAG = b'`\n'

# Every member gets the same timestamp/owner/mode; dpkg ignores them anyway
AR_MTIME = 1577836800
AR_UID = 0
AR_GID = 0
AR_MODE = 0o100644

class arhdr(namedtuple("arhdr", "name size")):
    # name[16] mtime[12] uid[6] gid[6] mode[8] size[10] fmag[2]
    _fmt = '{name:<16}{mtime:<12}{uid:<6}{gid:<6}{mode:<8o}{size:<10}'

    def _pack(self):
        name, size = self
        if len(name.encode('ascii')) > 16:
            raise InternalError(f"ar member name {name!r} exceeds 16 bytes")
        if size < 0:
            raise InternalError(f"ar member size {size} is negative")
        hdr = self._fmt.format(name=name, mtime=AR_MTIME, uid=AR_UID,
                               gid=AR_GID, mode=AR_MODE, size=size)
        if len(hdr) != 58:
            raise InternalError(f"ar member size {size} doesn't fit in 10 bytes")
        return hdr.encode('ascii') + AR_FMAG

def write_ar_magic(outf):
    return outf.write(AR_MAGIC)

def write_ar_entry(outf, name, size, inf):
    '''
    Write one ar member: header, exactly `size` bytes from `inf`, and a
    padding byte if `size` is odd. Returns the number of bytes written.
    '''
    wrote = outf.write(arhdr(name, size)._pack())
    wrote += copy_exact(inf, outf, size, step=name)
    if size & 1:
        wrote += outf.write(b'\n')
    return wrote
