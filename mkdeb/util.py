# mkdeb.util - grammars, padding, and other odds and ends

import re
import posixpath
import unicodedata

from .errors import UnrecognizedToken, BuildError

# One path component: letters/digits, optionally joined by '.', '-' or runs
# of '_', with an optional leading separator (so ".bashrc" is fine).
_namecomp = r'(?:[.-]|_+)?[0-9A-Za-z]+(?:(?:[.-]|_+)[0-9A-Za-z]+)*'

name_re     = re.compile(rf'^(?:[.]|(?:{_namecomp}/)*{_namecomp})/?$')
package_re  = re.compile(r'^[0-9a-z][0-9a-z]+(?:[.+-][0-9a-z]+)*$')
version_re  = re.compile(r'^(?:[1-9][0-9]*[:])?[0-9][0-9A-Za-z]*(?:[.~+-][0-9A-Za-z]+)*$')
arch_re     = re.compile(r'^[0-9A-Za-z]+(?:[-][0-9A-Za-z]+)*$')
section_re  = re.compile(r'^[0-9a-z]+(?:[/-][0-9a-z]+)*$')

PRIORITIES = ('required', 'important', 'standard', 'optional', 'extra')

def is_valid_unix_path(s):
    return bool(name_re.fullmatch(s))

def is_valid_package(s):
    return bool(package_re.fullmatch(s))

def is_valid_version(s):
    return bool(version_re.fullmatch(s))

def is_valid_arch(s):
    return bool(arch_re.fullmatch(s))

def is_valid_section(s):
    return bool(section_re.fullmatch(s))

def is_valid_priority(s):
    return s in PRIORITIES

def has_control_chars(s):
    return any(unicodedata.category(ch) == 'Cc' for ch in s)

def is_valid_description_line(s):
    '''No control characters, no trailing whitespace.'''
    if has_control_chars(s):
        return False
    return not s or not unicodedata.category(s[-1]).startswith('Z')

def clean_path(p):
    '''Lexically clean a path the way Go's path.Clean() does.'''
    p = posixpath.normpath(p)
    # normpath keeps a leading "//" (POSIX says it's special); we don't
    if p.startswith('//'):
        p = '/' + p.lstrip('/')
    return p

def parent_dir(name):
    '''Like Go's path.Dir: the parent of "usr" is ".", not "".'''
    return posixpath.dirname(name.rstrip('/')) or '.'

def pad(size, shift):
    '''Round size up to a multiple of (1 << shift). Works on negatives too.'''
    mask = (1 << shift) - 1
    if size < 0:
        return -((-size + mask) & ~mask)
    return (size + mask) & ~mask

def blocksize_pad(size):
    return pad(size, 12)

# like shutil.copyfileobj, but with a size limit
def copy_stream(inf, outf, size=None, blocksize=16*1024):
    wrote = 0
    left = -1 if size is None else size
    while left:
        buf = inf.read(blocksize if left < 0 else min(blocksize, left))
        if not buf:
            break
        outf.write(buf)
        wrote += len(buf)
        if left > 0:
            left -= len(buf)
    return wrote

def copy_exact(inf, outf, size, step):
    '''copy_stream() that insists on getting exactly `size` bytes.'''
    wrote = copy_stream(inf, outf, size=size)
    if wrote != size:
        raise BuildError(step, f"short read: expected {size} bytes, got {wrote}")
    return wrote

# Typed-primitive helpers. Every closed enum in mkdeb gets an alias table
# (lowercase text -> member) and a name table (member -> canonical text).

def parse_token(enumtype, aliases, text, kind, field=''):
    if isinstance(text, enumtype):
        return text
    if text is None:
        text = ''
    if not isinstance(text, str):
        raise UnrecognizedToken(field, kind, text)
    val = aliases.get(text)
    if val is None:
        val = aliases.get(text.lower())
    if val is None:
        raise UnrecognizedToken(field, kind, text)
    return val

def format_token(enumtype, names, value, fallback):
    '''Format a member by name; out-of-range ints get a diagnostic string.'''
    try:
        return names[enumtype(value)]
    except (ValueError, KeyError):
        return f'{fallback}#{int(value):02x}'
