# mkdeb.owner - file owner/group, by numeric id or by name

import re
from enum import IntEnum
from collections import namedtuple

from .errors import UnrecognizedToken

class OwnerKind(IntEnum):
    UNSPECIFIED = 0
    BY_ID       = 1
    BY_NAME     = 2

_id_re = re.compile(r'^#([0-9]+)$')

class Owner(namedtuple("Owner", "kind id name")):
    '''
    Who owns a file. Exactly one of `id` or `name` is set, depending on
    `kind`; the other is None. Since this is a tuple, Owner.by_id(0) and
    Owner.by_name("root") are never equal, which is what we want.
    '''
    __slots__ = ()

    @classmethod
    def unspecified(cls):
        return cls(OwnerKind.UNSPECIFIED, None, None)

    @classmethod
    def by_id(cls, uid):
        return cls(OwnerKind.BY_ID, int(uid), None)

    @classmethod
    def by_name(cls, name):
        return cls(OwnerKind.BY_NAME, None, str(name))

    @classmethod
    def parse(cls, text, field='owner'):
        if text is None or text == '':
            return cls.unspecified()
        if not isinstance(text, str):
            raise UnrecognizedToken(field, 'owner', text)
        m = _id_re.fullmatch(text)
        if m:
            return cls.by_id(m.group(1))
        return cls.by_name(text)

    @classmethod
    def from_json(cls, val, field='owner'):
        '''JSON allows null, a bare integer id, or a string to parse.'''
        if isinstance(val, bool):
            raise UnrecognizedToken(field, 'owner', val)
        if isinstance(val, int):
            return cls.by_id(val)
        return cls.parse(val, field=field)

    def format(self):
        if self.kind == OwnerKind.BY_ID:
            return f'#{self.id}'
        if self.kind == OwnerKind.BY_NAME:
            return self.name
        return ''

    def __str__(self):
        return self.format()

    def __repr__(self):
        if self.kind == OwnerKind.BY_ID:
            return f'Owner.by_id({self.id})'
        if self.kind == OwnerKind.BY_NAME:
            return f'Owner.by_name({self.name!r})'
        return 'Owner.unspecified()'

    def __bool__(self):
        return self.kind in (OwnerKind.BY_ID, OwnerKind.BY_NAME)
