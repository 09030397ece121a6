# mkdeb.builder - turn a Manifest into a .deb
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

'''
A .deb is an ar archive holding three members, in this order:

    debian-binary       the literal text "2.0\\n"
    control.tar.gz      package metadata, checksums, maintainer scripts
    data.tar.gz         the actual files

The control tarball has checksums of everything in the data tarball, so
data has to be built (and hashed) first. Both tarballs have to be complete
before we can write the ar headers, since those need their sizes. So the
Builder goes through the manifest in four steps, and each step checks that
the previous one happened:

    resolve()        UNRESOLVED    -> RESOLVED
    build_data()     RESOLVED      -> DATA_BUILT
    build_control()  DATA_BUILT    -> CONTROL_BUILT
    assemble()       CONTROL_BUILT -> ASSEMBLED

build() does all four, using temporary files for the two tarballs.
'''

import os
import tarfile
import logging as log
from io import BytesIO
from contextlib import ExitStack
from tempfile import SpooledTemporaryFile

from .errors import (ValidationError, SourceUnavailable, BuildError,
                     InternalError, PipelineStateError)
from .manifest import BuildState
from .filetype import FileType
from .file import DEFAULT_MTIME, unix_time
from .digest import HashAlgo, DigestReader, STANDARD_HASHES
from .compression import CompressAlgo, get_writer
from .ar import write_ar_magic, write_ar_entry

DEBIAN_BINARY = b'2.0\n'

# Keep tarballs smaller than this in memory
SPOOL_SIZE = 1024*1024

CONTROL_MODE = 0o100644
SCRIPT_MODE = CONTROL_MODE | 0o111

class Builder(object):
    def __init__(self, root='.',
                 compression=CompressAlgo.AUTO,
                 hashes=None,
                 zerotime=None,
                 level=None):
        self.root = root
        self.compression = CompressAlgo.parse(compression).resolve()
        if hashes is None:
            hashes = STANDARD_HASHES
        self.hashes = tuple(HashAlgo.parse(h) for h in hashes)
        if len(set(self.hashes)) != len(self.hashes):
            raise ValidationError('hashes', f"duplicate hash algorithm in {[str(h) for h in self.hashes]}")
        self.zerotime = zerotime or DEFAULT_MTIME
        self.level = level

    def __repr__(self):
        return (f'<{self.__class__.__name__}(root={str(self.root)!r}, '
                f'compression={self.compression}, '
                f'hashes={[str(h) for h in self.hashes]})>')

    @property
    def suffix(self):
        return self.compression.suffix

    @property
    def control_name(self):
        return 'control.tar' + self.suffix

    @property
    def data_name(self):
        return 'data.tar' + self.suffix

    def _require(self, manifest, step, expected):
        if manifest.state != expected:
            raise PipelineStateError(step, expected, manifest.state)

    def _open_tar(self, cw):
        return tarfile.open(fileobj=cw, mode='w|',
                            format=tarfile.PAX_FORMAT, encoding='utf-8')

    def resolve(self, manifest):
        '''Validate the manifest and size up its files. Works from any state.'''
        manifest.resolve(self.root)

    def build_data(self, manifest, fobj):
        '''
        Write the compressed data tarball to `fobj`, recording the digests of
        every regular file on its FileEntry as we go.
        '''
        self._require(manifest, 'build_data', BuildState.RESOLVED)
        cw = get_writer(self.compression, fobj, self.level)
        try:
            with self._open_tar(cw) as tar:
                for idx, f in enumerate(manifest.files):
                    step = f'files[{idx}]'
                    try:
                        self._add_data_entry(tar, f)
                    except SourceUnavailable as e:
                        e.field = step
                        raise
                    except (OSError, ValueError) as e:
                        # tarfile raises ValueError for header fields
                        # that don't fit
                        raise BuildError(step, e) from e
            # tar's end-of-archive blocks have to go in before the
            # compressor's trailer
            cw.close()
        except OSError as e:
            raise BuildError('data', e) from e
        manifest.state = BuildState.DATA_BUILT
        log.debug("built %s: %d entries, %d regular files", self.data_name,
                  len(manifest.files), len(manifest.regular_files()))

    def _add_data_entry(self, tar, f):
        f.digests = None
        ti = f.to_tarinfo(self.zerotime)
        if f.type != FileType.REG:
            tar.addfile(ti)
            return
        with f.open(self.root) as inf:
            reader = DigestReader(inf, self.hashes)
            tar.addfile(ti, reader)
        f.digests = reader.digests()
        log.debug("%s: %d bytes", f.name, reader.count)

    def checksums(self, manifest, algo):
        '''The contents of the checksum file for `algo`, e.g. md5sum.'''
        if manifest.state < BuildState.DATA_BUILT:
            raise PipelineStateError('checksums', BuildState.DATA_BUILT, manifest.state)
        lines = []
        for f in manifest.regular_files():
            hexdigest = f.hexdigest(algo)
            if hexdigest is None:
                raise InternalError(f"{f.name}: no {algo} digest")
            lines.append(f"{hexdigest}  {f.name}\n")
        return ''.join(lines).encode('utf-8')

    def build_control(self, manifest, fobj):
        '''Write the compressed control tarball to `fobj`.'''
        self._require(manifest, 'build_control', BuildState.DATA_BUILT)
        members = [('control', manifest.control_file(), CONTROL_MODE)]
        members += [(algo.filename, self.checksums(manifest, algo), CONTROL_MODE)
                    for algo in self.hashes]
        members.append(('conffiles', manifest.conffiles(), CONTROL_MODE))
        members += [(name, render(manifest), SCRIPT_MODE)
                    for name, render in manifest.scripts]

        cw = get_writer(self.compression, fobj, self.level)
        try:
            with self._open_tar(cw) as tar:
                for name, data, mode in members:
                    if data is None:
                        continue
                    ti = tarfile.TarInfo(name)
                    ti.type = tarfile.REGTYPE
                    ti.mode = mode
                    ti.size = len(data)
                    ti.mtime = unix_time(self.zerotime)
                    tar.addfile(ti, BytesIO(data))
            cw.close()
        except OSError as e:
            raise BuildError('control', e) from e
        manifest.state = BuildState.CONTROL_BUILT
        log.debug("built %s: %s", self.control_name,
                  ", ".join(name for name, data, _ in members if data is not None))

    def assemble(self, manifest, outf, control, data):
        '''
        Write the final ar archive to `outf`. `control` and `data` must be
        seekable files holding the finished tarballs.
        '''
        self._require(manifest, 'assemble', BuildState.CONTROL_BUILT)
        try:
            control.seek(0, os.SEEK_END)
            control_size = control.tell()
            control.seek(0)
            data.seek(0, os.SEEK_END)
            data_size = data.tell()
            data.seek(0)

            write_ar_magic(outf)
            write_ar_entry(outf, 'debian-binary', len(DEBIAN_BINARY), BytesIO(DEBIAN_BINARY))
            write_ar_entry(outf, self.control_name, control_size, control)
            write_ar_entry(outf, self.data_name, data_size, data)
        except OSError as e:
            raise BuildError('assemble', e) from e
        manifest.state = BuildState.ASSEMBLED
        log.debug("assembled %s_%s_%s: control %d bytes, data %d bytes",
                  manifest.package, manifest.version, manifest.arch,
                  control_size, data_size)

    def build(self, manifest, outf):
        '''Do all the steps and write a .deb to `outf`.'''
        self.resolve(manifest)
        with ExitStack() as stack:
            try:
                control = stack.enter_context(SpooledTemporaryFile(
                    max_size=SPOOL_SIZE, mode='w+b', prefix='mkdeb-',
                    suffix='.'+self.control_name))
                data = stack.enter_context(SpooledTemporaryFile(
                    max_size=SPOOL_SIZE, mode='w+b', prefix='mkdeb-',
                    suffix='.'+self.data_name))
            except OSError as e:
                raise BuildError('tempfile', e) from e
            self.build_data(manifest, data)
            self.build_control(manifest, control)
            self.assemble(manifest, outf, control, data)
