# mkdeb.cli - command-line interface: mkdeb -m MANIFEST -o OUTPUT.deb
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
import sys
import argparse
import logging as log
from collections import namedtuple

from . import __version__
from .errors import MkdebError, ValidationError
from .manifest import Manifest
from .builder import Builder
from .compression import CompressAlgo

class BuildInfo(namedtuple("BuildInfo", "version commit commit_date tree_state")):
    '''What `mkdeb --version` reports. Packagers can pass in their own.'''
    _keys = ('version', 'git.commit', 'git.commitDate', 'git.treeState')

    @classmethod
    def default(cls):
        return cls(__version__, 'devel', 'devel', 'devel')

    def items(self):
        return list(zip(self._keys, self))

class UsageError(Exception):
    pass

class ArgParser(argparse.ArgumentParser):
    # argparse likes to print and sys.exit(2) on its own; we want to report
    # the problem ourselves and exit 1 like every other error
    def error(self, message):
        raise UsageError(message)

def compression_arg(text):
    try:
        return CompressAlgo.parse(text)
    except ValidationError:
        raise argparse.ArgumentTypeError(
            f"invalid compression {text!r} (choose from none, gzip, bzip2, xz, zstd)") from None

def make_arg_parser():
    p = ArgParser(
        prog="mkdeb",
        description="build a Debian binary package from a JSON manifest",
        add_help=False,
    )
    p.add_argument("-h", "--help", action="store_true",
        help="show usage")
    p.add_argument("-V", "--version", action="store_true",
        help="show version")
    p.add_argument("-v", "--verbose", action="store_true",
        help="verbose output")
    p.add_argument("-R", "--root", metavar="DIR", default=".",
        help="path to root directory for input files (default: %(default)s)")
    p.add_argument("-m", "--manifest", metavar="PATH",
        help="path to input manifest file (JSON)")
    p.add_argument("-o", "--output", metavar="PATH",
        help="path to output .deb package file")
    p.add_argument("-c", "--compression", metavar="NAME",
        type=compression_arg, default=CompressAlgo.AUTO,
        help="compression algorithm: {none|gzip|bzip2|xz|zstd} (default: gzip)")
    return p

def fsync_dir(dirpath):
    fd = os.open(dirpath, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)

def write_atomic(path, writefunc):
    '''
    Call writefunc(fobj) to fill in a temporary file next to `path`, sync
    it, and rename it into place. If anything fails the temporary file is
    removed and `path` is left alone.
    '''
    dirpath, name = os.path.split(os.path.abspath(path))
    tmppath = os.path.join(dirpath, f".{name}.{os.getpid()}.tmp")
    fd = os.open(tmppath, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o666)
    try:
        with os.fdopen(fd, 'wb') as outf:
            writefunc(outf)
            outf.flush()
            os.fsync(outf.fileno())
        os.replace(tmppath, path)
    except BaseException:
        try:
            os.unlink(tmppath)
        except FileNotFoundError:
            pass
        raise
    fsync_dir(dirpath)

def main(argv=None, stdout=None, stderr=None, buildinfo=None):
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    buildinfo = buildinfo or BuildInfo.default()

    p = make_arg_parser()
    try:
        args = p.parse_args(argv)
    except UsageError as e:
        print(f"error: {e}", file=stderr)
        return 1

    if args.help:
        p.print_help(stdout)
        return 0

    if args.version:
        for key, value in buildinfo.items():
            print(f"{key}={value}", file=stdout)
        return 0

    if not args.manifest:
        print("error: missing required flag: -m / --manifest", file=stderr)
        return 1
    if not args.output:
        print("error: missing required flag: -o / --output", file=stderr)
        return 1

    log.basicConfig(stream=stderr,
                    format="%(levelname)s: %(message)s",
                    level=log.DEBUG if args.verbose else log.WARNING)

    root = os.path.abspath(args.root or ".")
    manifest_path = os.path.join(root, args.manifest)
    output_path = os.path.join(root, args.output)

    try:
        manifest = Manifest.load(manifest_path)
    except OSError as e:
        print(f"error: failed to read manifest file: {manifest_path!r}: {e.strerror or e}", file=stderr)
        return 1
    except ValidationError as e:
        print(f"error: failed to parse manifest file: {manifest_path!r}: {e}", file=stderr)
        return 1

    builder = Builder(root=root, compression=args.compression)
    log.debug("building %s with %r", output_path, builder)
    try:
        write_atomic(output_path, lambda outf: builder.build(manifest, outf))
    except MkdebError as e:
        print(f"error: {e}", file=stderr)
        return 1
    except OSError as e:
        print(f"error: failed to write output file: {output_path!r}: {e.strerror or e}", file=stderr)
        return 1

    log.info("wrote %s", output_path)
    return 0

def cli():
    sys.exit(main())
