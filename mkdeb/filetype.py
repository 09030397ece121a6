# mkdeb.filetype - what kind of filesystem entry this is
#
# Allow extra whitespace around '=' to make enum tables line up:
# pylama:ignore=E221

import stat
import tarfile
from enum import IntEnum

from .util import parse_token, format_token

class FileType(IntEnum):
    AUTO = 0
    DIR  = 1
    REG  = 2
    LNK  = 3
    FIFO = 4
    CHR  = 5
    BLK  = 6

    @classmethod
    def parse(cls, text, field='type'):
        return parse_token(cls, filetype_aliases, text, 'file type', field)

    @classmethod
    def format(cls, value):
        return format_token(cls, filetype_names, value, 'filetype')

    def __str__(self):
        return self.format(self)

    @property
    def is_device(self):
        return self in (FileType.CHR, FileType.BLK)

filetype_names = {ft:ft.name for ft in FileType}

filetype_aliases = {
    '':              FileType.AUTO,
    'auto':          FileType.AUTO,
    'directory':     FileType.DIR,
    'dir':           FileType.DIR,
    'd':             FileType.DIR,
    'regular-file':  FileType.REG,
    'regular':       FileType.REG,
    'reg':           FileType.REG,
    'r':             FileType.REG,
    'file':          FileType.REG,
    'f':             FileType.REG,
    '-':             FileType.REG,
    'lnk':           FileType.LNK,
    'link':          FileType.LNK,
    'l':             FileType.LNK,
    'symbolic-link': FileType.LNK,
    'sym-link':      FileType.LNK,
    'symlink':       FileType.LNK,
    'fifo':          FileType.FIFO,
    'pipe':          FileType.FIFO,
    'p':             FileType.FIFO,
    'char-device':   FileType.CHR,
    'char-dev':      FileType.CHR,
    'chardev':       FileType.CHR,
    'char':          FileType.CHR,
    'chr-dev':       FileType.CHR,
    'chrdev':        FileType.CHR,
    'chr':           FileType.CHR,
    'c':             FileType.CHR,
    'block-device':  FileType.BLK,
    'block-dev':     FileType.BLK,
    'blockdev':      FileType.BLK,
    'block':         FileType.BLK,
    'blk-dev':       FileType.BLK,
    'blkdev':        FileType.BLK,
    'blk':           FileType.BLK,
    'b':             FileType.BLK,
}

# (tar typeflag, stat S_IFMT bits, default permissions) for each real type.
# AUTO isn't here on purpose; it has to be resolved before anything gets
# written.
filetype_info = {
    FileType.DIR:  (tarfile.DIRTYPE,  stat.S_IFDIR,  0o755),
    FileType.REG:  (tarfile.REGTYPE,  stat.S_IFREG,  0o644),
    FileType.LNK:  (tarfile.SYMTYPE,  stat.S_IFLNK,  0o777),
    FileType.FIFO: (tarfile.FIFOTYPE, stat.S_IFIFO,  0o600),
    FileType.CHR:  (tarfile.CHRTYPE,  stat.S_IFCHR,  0o600),
    FileType.BLK:  (tarfile.BLKTYPE,  stat.S_IFBLK,  0o600),
}
