# mkdeb.file - one entry in the manifest's file list
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

import os
import stat
import tarfile
from io import BytesIO
from base64 import b64decode
from binascii import Error as Base64Error
from collections import namedtuple
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .errors import ValidationError, SourceUnavailable, NotResolved
from .filetype import FileType, filetype_info
from .perm import Perm
from .owner import Owner
from .util import is_valid_unix_path, clean_path
from . import decode

# Anything without an explicit mtime gets this, so rebuilding the same
# manifest gives the same bytes no matter what the clock says.
DEFAULT_MTIME = datetime(2020, 1, 1, tzinfo=timezone.utc)

# ustar keeps devmajor/devminor in 7 octal digits
DEVICE_LIMIT = 0o10000000

def unix_time(dt):
    return int(dt.timestamp())

# Where a regular file's contents come from. Exactly one of these per entry;
# `key` is the manifest field that selects it.

def _stat_source(root, path):
    fullpath = os.path.join(root, path)
    try:
        st = os.stat(fullpath)
    except OSError as e:
        raise SourceUnavailable(path, e.strerror or str(e)) from e
    if not stat.S_ISREG(st.st_mode):
        raise SourceUnavailable(path, "not a regular file")
    return st.st_size

def _open_source(root, path):
    try:
        return open(os.path.join(root, path), 'rb')
    except OSError as e:
        raise SourceUnavailable(path, e.strerror or str(e)) from e

class EmbeddedBytes(namedtuple("EmbeddedBytes", "data")):
    key = 'bytes'
    def __repr__(self):
        return f'EmbeddedBytes(<{len(self.data)} bytes>)'
    def size(self, root, name):
        return len(self.data)
    def open(self, root, name):
        return BytesIO(self.data)

class EmbeddedText(namedtuple("EmbeddedText", "text")):
    key = 'text'
    def size(self, root, name):
        return len(self.text.encode('utf-8'))
    def open(self, root, name):
        return BytesIO(self.text.encode('utf-8'))

class SourcePath(namedtuple("SourcePath", "path")):
    key = 'path'
    def size(self, root, name):
        return _stat_source(root, self.path)
    def open(self, root, name):
        return _open_source(root, self.path)

class ImplicitName(namedtuple("ImplicitName", "")):
    '''The default: read the entry's own name, relative to the root.'''
    key = None
    def size(self, root, name):
        return _stat_source(root, name)
    def open(self, root, name):
        return _open_source(root, name)

file_keys = ('name', 'type', 'isConf', 'perm', 'user', 'group', 'mtime',
             'major', 'minor', 'path', 'text', 'bytes', 'link')

@dataclass
class FileEntry:
    name: str
    type: FileType = FileType.AUTO
    is_conf: bool = False
    perm: Perm = Perm(0)
    user: Owner = field(default_factory=Owner.unspecified)
    group: Owner = field(default_factory=Owner.unspecified)
    mtime: datetime = None
    major: int = None
    minor: int = None
    link: str = None
    source: tuple = field(default_factory=ImplicitName)

    # Filled in by resolve() and Builder.build_data(), respectively
    size: int = field(default=None, init=False, repr=False, compare=False)
    digests: list = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def from_dict(cls, obj, prefix=''):
        decode.check_object(obj, prefix)
        decode.check_keys(obj, file_keys, prefix)
        f = lambda k: decode.subfield(prefix, k)

        sources = []
        path = decode.get_str(obj, 'path', prefix)
        if path is not None:
            sources.append(SourcePath(path))
        text = decode.get_str(obj, 'text', prefix)
        if text is not None:
            sources.append(EmbeddedText(text))
        b64 = decode.get_str(obj, 'bytes', prefix)
        if b64 is not None:
            try:
                sources.append(EmbeddedBytes(b64decode(b64, validate=True)))
            except (Base64Error, ValueError):
                raise ValidationError(f('bytes'), "invalid base64 data") from None
        if len(sources) > 1:
            first, second = sources[:2]
            raise ValidationError(f(second.key),
                                  f'conflict with field "{first.key}"')

        mtime = decode.get_str(obj, 'mtime', prefix)
        return cls(
            name=decode.get_str(obj, 'name', prefix, default=''),
            type=FileType.parse(decode.get_str(obj, 'type', prefix), f('type')),
            is_conf=decode.get_bool(obj, 'isConf', prefix),
            perm=Perm.parse(obj.get('perm'), f('perm')),
            user=Owner.from_json(obj.get('user'), f('user')),
            group=Owner.from_json(obj.get('group'), f('group')),
            mtime=decode.parse_time(mtime, f('mtime')) if mtime else None,
            major=decode.get_int(obj, 'major', prefix),
            minor=decode.get_int(obj, 'minor', prefix),
            link=decode.get_str(obj, 'link', prefix),
            source=sources[0] if sources else ImplicitName(),
        )

    @property
    def resolved(self):
        return self.size is not None

    def validate(self):
        '''
        Check this entry on its own. Fixes up AUTO types and trailing
        slashes on directory names as a side effect. Raises ValidationError.
        '''
        if not self.name:
            raise ValidationError('name', "missing required field")
        if not is_valid_unix_path(self.name):
            raise ValidationError('name', f"invalid Unix path {self.name!r}")

        try:
            self.type = FileType(self.type)
        except ValueError:
            raise ValidationError('type', f"invalid value {FileType.format(self.type)}") from None

        if self.type == FileType.AUTO:
            self.type = FileType.DIR if self.name.endswith('/') else FileType.REG

        if self.type == FileType.DIR:
            self.name = self.name.rstrip('/') + '/'
        elif self.name == '.' or self.name.endswith('/'):
            raise ValidationError('name', f"value is only appropriate for a directory: {self.name!r}")

        for key, owner in (('user', self.user), ('group', self.group)):
            if owner.id is not None and owner.id < 0:
                raise ValidationError(key, f"negative id {owner.id}")

        if self.type == FileType.REG:
            if isinstance(self.source, SourcePath):
                path = self.source.path
                if not is_valid_unix_path(path):
                    raise ValidationError('path', f"invalid Unix path {path!r}")
                if path.endswith('/'):
                    raise ValidationError('path', f"unexpected trailing '/': {path!r}")
        else:
            if self.is_conf:
                raise ValidationError('isConf', 'conflict with field "type"')
            if not isinstance(self.source, ImplicitName):
                raise ValidationError(self.source.key, "unexpected value for field")

        if self.type == FileType.LNK:
            if self.link is None:
                raise ValidationError('link', "missing required field")
            clean = clean_path(self.link)
            if self.link != clean:
                raise ValidationError('link', f"value is not canonical: expected {clean!r}, got {self.link!r}")
        elif self.link is not None:
            raise ValidationError('link', f"unexpected value for field: {self.link!r}")

        if self.type.is_device:
            if self.major is None:
                raise ValidationError('major', "missing required field")
            if self.minor is None:
                raise ValidationError('minor', "missing required field")
            for key, num in (('major', self.major), ('minor', self.minor)):
                if not 0 <= num < DEVICE_LIMIT:
                    raise ValidationError(key, f"device number {num} out of range [0, {DEVICE_LIMIT})")
        else:
            if self.major is not None:
                raise ValidationError('major', f"unexpected value for field: {self.major}")
            if self.minor is not None:
                raise ValidationError('minor', f"unexpected value for field: {self.minor}")

    def resolve(self, root):
        '''Validate, then figure out how big the contents are.'''
        self.validate()
        size = 0
        if self.type == FileType.REG:
            size = self.source.size(root, self.name)
        self.size = size
        self.digests = None

    def to_tarinfo(self, zerotime=DEFAULT_MTIME):
        '''Make the tar header for this entry.'''
        if not self.resolved:
            raise NotResolved(self.name or 'file')

        typeflag, ifmt, defperm = filetype_info[self.type]
        ti = tarfile.TarInfo(self.name)
        ti.type = typeflag
        ti.mode = ifmt | (self.perm or defperm)
        ti.size = self.size if self.type == FileType.REG else 0
        ti.mtime = unix_time(self.mtime or zerotime)
        ti.uid, ti.gid = 0, 0
        ti.uname, ti.gname = '', ''

        if self.user.id is not None:
            ti.uid = self.user.id
        elif self.user.name is not None:
            ti.uname = self.user.name
        if self.group.id is not None:
            ti.gid = self.group.id
        elif self.group.name is not None:
            ti.gname = self.group.name

        if self.type == FileType.LNK:
            ti.linkname = self.link
        elif self.type.is_device:
            ti.devmajor = self.major
            ti.devminor = self.minor
        return ti

    def open(self, root):
        '''Return a readable binary stream of this entry's contents.'''
        if not self.resolved:
            raise NotResolved(self.name or 'file')
        if self.type != FileType.REG:
            return BytesIO()
        return self.source.open(root, self.name)

    def hexdigest(self, algo):
        for a, d in self.digests or ():
            if a == algo:
                return d.hex()
