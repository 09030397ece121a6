# mkdeb.perm - POSIX permission bits

import re

from .errors import UnrecognizedToken

PERM_MASK = 0o7777
PERM_MAX = 0xffff

_octal_re = re.compile(r"[0-7]+")

class Perm(int):
    '''
    12 bits of mode: rwx for owner/group/other plus setuid/setgid/sticky.
    The text form is always 4 octal digits ("0755"). Zero means "whatever
    the default is for this kind of file".
    '''
    def __new__(cls, value=0):
        return super().__new__(cls, int(value) & PERM_MASK)

    @classmethod
    def parse(cls, text, field='perm'):
        if isinstance(text, Perm):
            return text
        if text is None or text == '':
            return cls(0)
        if isinstance(text, bool):
            raise UnrecognizedToken(field, 'octal permissions', text)
        if isinstance(text, int):
            num = text
        elif isinstance(text, str) and _octal_re.fullmatch(text):
            num = int(text, 8)
        else:
            raise UnrecognizedToken(field, 'octal permissions', text)
        if num < 0 or num > PERM_MAX:
            raise UnrecognizedToken(field, 'octal permissions', text)
        return cls(num)

    @classmethod
    def format(cls, value):
        return f'{int(value) & PERM_MASK:04o}'

    def __str__(self):
        return self.format(self)

    def __repr__(self):
        return f'{self.__class__.__name__}(0o{int(self):04o})'
