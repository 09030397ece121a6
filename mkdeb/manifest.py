# mkdeb.manifest - package metadata + file list, and the text they turn into
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

import json
import logging as log
from enum import IntEnum
from dataclasses import dataclass, field

from .errors import ValidationError, SourceUnavailable, NotResolved
from .file import FileEntry
from .filetype import FileType
from .util import (is_valid_package, is_valid_version, is_valid_arch,
                   is_valid_section, is_valid_priority,
                   is_valid_description_line, is_valid_unix_path,
                   has_control_chars,
                   parent_dir, blocksize_pad)
from . import decode

class BuildState(IntEnum):
    '''Where a manifest is in the build pipeline. Only ever moves forward.'''
    UNRESOLVED    = 0
    RESOLVED      = 1
    DATA_BUILT    = 2
    CONTROL_BUILT = 3
    ASSEMBLED     = 4

# (attribute, JSON key, control file field). Order here is the order of the
# fields in the control file, give or take the mandatory ones.
relation_fields = [
    ('essential',   'essential',  'Essential'),
    ('depends',     'depends',    'Depends'),
    ('pre_depends', 'preDepends', 'Pre-Depends'),
    ('recommends',  'recommends', 'Recommends'),
    ('suggests',    'suggests',   'Suggests'),
    ('enhances',    'enhances',   'Enhances'),
    ('breaks',      'breaks',     'Breaks'),
    ('conflicts',   'conflicts',  'Conflicts'),
]

string_fields = [
    ('package',           'package'),
    ('version',           'version'),
    ('arch',              'arch'),
    ('section',           'section'),
    ('priority',          'priority'),
    ('maintainer',        'maintainer'),
    ('homepage',          'homePage'),
    ('built_using',       'builtUsing'),
    ('short_description', 'shortDescription'),
] + [(attr, key) for attr, key, _ in relation_fields]

list_fields = [
    ('long_description', 'longDescription'),
    ('implicit_dirs',    'implicitDirs'),
    ('pre_install',      'preInstall'),
    ('post_install',     'postInstall'),
    ('pre_remove',       'preRemove'),
    ('post_remove',      'postRemove'),
]

manifest_keys = {key for _, key in string_fields + list_fields} | {'files'}

SCRIPT_PREAMBLE = (
    "#!/bin/bash\n"
    "set -euo pipefail\n"
    "umask 022\n"
    "cd /\n"
)

@dataclass
class Manifest:
    package: str = ''
    version: str = ''
    arch: str = ''
    section: str = ''
    priority: str = ''
    essential: str = ''
    depends: str = ''
    pre_depends: str = ''
    recommends: str = ''
    suggests: str = ''
    enhances: str = ''
    breaks: str = ''
    conflicts: str = ''
    maintainer: str = ''
    homepage: str = ''
    built_using: str = ''
    short_description: str = ''
    long_description: list = field(default_factory=list)
    implicit_dirs: list = field(default_factory=list)
    files: list = field(default_factory=list)
    pre_install: list = field(default_factory=list)
    post_install: list = field(default_factory=list)
    pre_remove: list = field(default_factory=list)
    post_remove: list = field(default_factory=list)

    installed_size: int = field(default=None, init=False, repr=False, compare=False)
    state: BuildState = field(default=BuildState.UNRESOLVED, init=False, repr=False, compare=False)

    @classmethod
    def from_dict(cls, obj):
        decode.check_object(obj, '')
        decode.check_keys(obj, manifest_keys)
        kwargs = {attr: decode.get_str(obj, key, default='')
                  for attr, key in string_fields}
        kwargs.update({attr: decode.get_strlist(obj, key)
                       for attr, key in list_fields})
        kwargs['files'] = [FileEntry.from_dict(f, f'files[{i}]')
                           for i, f in enumerate(decode.get_list(obj, 'files'))]
        return cls(**kwargs)

    @classmethod
    def from_json(cls, text):
        try:
            obj = json.loads(text)
        except ValueError as e:
            raise ValidationError('', f"failed to parse manifest as JSON: {e}") from e
        return cls.from_dict(obj)

    @classmethod
    def load(cls, path):
        with open(path, 'rb') as inf:
            return cls.from_json(inf.read())

    # Validation happens in three passes: package metadata, each file on its
    # own, then the stuff that depends on all of the files together.

    def _validate_pre(self):
        if not self.package:
            raise ValidationError('package', "missing required field")
        if not is_valid_package(self.package):
            raise ValidationError('package', f"invalid Debian package name {self.package!r}")

        if not self.version:
            raise ValidationError('version', "missing required field")
        if not is_valid_version(self.version):
            raise ValidationError('version', f"invalid Debian package version {self.version!r}")

        if not self.arch:
            raise ValidationError('arch', "missing required field")
        if not is_valid_arch(self.arch):
            raise ValidationError('arch', f"invalid Debian package architecture {self.arch!r}")

        if self.section and not is_valid_section(self.section):
            raise ValidationError('section', f"invalid Debian package section {self.section!r}")
        if self.priority and not is_valid_priority(self.priority):
            raise ValidationError('priority', f"invalid Debian package priority {self.priority!r}")

        # Relation fields get carried through as-is. We don't try to parse
        # them, but they're going into a line-oriented file, so no newlines
        # or other control characters.
        for attr, key, _ in relation_fields:
            val = getattr(self, attr)
            if has_control_chars(val):
                raise ValidationError(key, f"invalid Debian package dependency spec {val!r}")

        if not self.maintainer:
            raise ValidationError('maintainer', "missing required field")
        for attr, key in (('maintainer', 'maintainer'), ('homepage', 'homePage'),
                          ('built_using', 'builtUsing')):
            val = getattr(self, attr)
            if has_control_chars(val):
                raise ValidationError(key, f"unexpected control character in {val!r}")

        if not self.short_description:
            raise ValidationError('shortDescription', "missing required field")
        if not is_valid_description_line(self.short_description):
            raise ValidationError('shortDescription', f"invalid Description line {self.short_description!r}")
        for i, line in enumerate(self.long_description):
            if not is_valid_description_line(line):
                raise ValidationError(f'longDescription[{i}]', f"invalid Description continuation line {line!r}")

    def _validate_files(self):
        for i, f in enumerate(self.files):
            try:
                f.validate()
            except ValidationError as e:
                raise e.within(f'files[{i}]') from None

    def _validate_post(self):
        # "." always exists. Beyond that, a directory has to be either
        # implicit or declared by an *earlier* entry in the list.
        known = {'.'}
        for i, d in enumerate(self.implicit_dirs):
            if not is_valid_unix_path(d):
                raise ValidationError(f'implicitDirs[{i}]', f"invalid Unix path {d!r}")
            known.add(d.rstrip('/') or '.')

        seen = dict()
        for i, f in enumerate(self.files):
            if f.name in seen:
                raise ValidationError(f'files[{i}]', f"duplicate file {f.name!r} has the same name as files[{seen[f.name]}]")
            seen[f.name] = i
            d = parent_dir(f.name)
            if d not in known:
                raise ValidationError(f'files[{i}]', f"directory {d!r} might not exist yet")
            if f.type == FileType.DIR:
                known.add(f.name.rstrip('/') or '.')

    def validate(self):
        self._validate_pre()
        self._validate_files()
        self._validate_post()

    def resolve(self, root):
        '''
        Validate everything, then look at the content root to figure out
        file sizes. Afterward the manifest is RESOLVED and can be rendered.
        '''
        self.validate()
        installed_size = 0
        for i, f in enumerate(self.files):
            try:
                f.resolve(root)
            except ValidationError as e:
                raise e.within(f'files[{i}]') from None
            except SourceUnavailable as e:
                e.field = f'files[{i}]'
                raise
            if f.type == FileType.REG:
                installed_size += blocksize_pad(f.size)
        self.installed_size = installed_size
        self.state = BuildState.RESOLVED
        log.debug("resolved %s %s: %d files, installed size %d",
                  self.package, self.version, len(self.files), installed_size)

    def _check_resolved(self):
        if self.state < BuildState.RESOLVED:
            raise NotResolved('manifest')

    def regular_files(self):
        return [f for f in self.files if f.type == FileType.REG]

    def control_file(self):
        self._check_resolved()
        lines = [f"Package: {self.package}",
                 f"Version: {self.version}"]
        if self.section:
            lines.append(f"Section: {self.section}")
        if self.priority:
            lines.append(f"Priority: {self.priority}")
        if self.arch:
            lines.append(f"Architecture: {self.arch}")
        for attr, _, name in relation_fields:
            val = getattr(self, attr)
            if val:
                lines.append(f"{name}: {val}")
        lines.append(f"Installed-Size: {self.installed_size}")
        lines.append(f"Maintainer: {self.maintainer}")
        if self.homepage:
            lines.append(f"Homepage: {self.homepage}")
        if self.built_using:
            lines.append(f"Built-Using: {self.built_using}")
        lines.append(f"Description: {self.short_description}")
        for line in self.long_description:
            lines.append(f" {line}" if line else " .")
        return ''.join(l+'\n' for l in lines).encode('utf-8')

    def conffiles(self):
        self._check_resolved()
        names = [f.name for f in self.files if f.is_conf]
        if not names:
            return None
        return ''.join(n+'\n' for n in names).encode('utf-8')

    def _script(self, lines):
        self._check_resolved()
        if not lines:
            return None
        return (SCRIPT_PREAMBLE + ''.join(l+'\n' for l in lines)).encode('utf-8')

    def preinst(self):
        return self._script(self.pre_install)

    def postinst(self):
        return self._script(self.post_install)

    def prerm(self):
        return self._script(self.pre_remove)

    def postrm(self):
        return self._script(self.post_remove)

    # name in control.tar -> renderer, in the order they go into the tarball
    scripts = (
        ('preinst',  preinst),
        ('postinst', postinst),
        ('prerm',    prerm),
        ('postrm',   postrm),
    )
