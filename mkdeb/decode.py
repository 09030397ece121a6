# mkdeb.decode - picking typed values out of decoded JSON objects
#
# json.load() hands us dicts of whatever the user wrote. These helpers check
# types and report problems with the path to the offending value, so the
# user gets "files[2].major: expected integer" instead of a TypeError.

import re
from datetime import datetime, timedelta, timezone

from .errors import ValidationError

def subfield(prefix, key):
    return f"{prefix}.{key}" if prefix else key

def check_object(obj, field):
    if not isinstance(obj, dict):
        raise ValidationError(field, f"expected object, got {_jstype(obj)}")
    return obj

def check_keys(obj, known, prefix=''):
    for key in obj:
        if key not in known:
            raise ValidationError(subfield(prefix, key), "unknown field")

def _jstype(val):
    if val is None:
        return "null"
    if isinstance(val, bool):
        return "boolean"
    if isinstance(val, (int, float)):
        return "number"
    if isinstance(val, str):
        return "string"
    if isinstance(val, list):
        return "array"
    if isinstance(val, dict):
        return "object"
    return type(val).__name__

def get_str(obj, key, prefix='', default=None):
    val = obj.get(key)
    if val is None:
        return default
    if not isinstance(val, str):
        raise ValidationError(subfield(prefix, key),
                              f"expected string, got {_jstype(val)}")
    return val

def get_bool(obj, key, prefix='', default=False):
    val = obj.get(key)
    if val is None:
        return default
    if not isinstance(val, bool):
        raise ValidationError(subfield(prefix, key),
                              f"expected boolean, got {_jstype(val)}")
    return val

def get_int(obj, key, prefix='', default=None):
    val = obj.get(key)
    if val is None:
        return default
    if isinstance(val, bool) or not isinstance(val, int):
        raise ValidationError(subfield(prefix, key),
                              f"expected integer, got {_jstype(val)}")
    return val

def get_list(obj, key, prefix=''):
    val = obj.get(key)
    if val is None:
        return []
    if not isinstance(val, list):
        raise ValidationError(subfield(prefix, key),
                              f"expected array, got {_jstype(val)}")
    return val

def get_strlist(obj, key, prefix=''):
    items = get_list(obj, key, prefix)
    for i, item in enumerate(items):
        if not isinstance(item, str):
            raise ValidationError(f"{subfield(prefix, key)}[{i}]",
                                  f"expected string, got {_jstype(item)}")
    return list(items)

# date "T" time, with fractional seconds and an offset ("Z" or +hh:mm)
_rfc3339_re = re.compile(r'([0-9]{4})-([0-9]{2})-([0-9]{2})[Tt]([0-9]{2}):([0-9]{2}):([0-9]{2})'
                         r'(?:\.([0-9]+))?(?:([Zz])|([+-])([0-9]{2}):([0-9]{2}))')

def parse_time(text, field='mtime'):
    '''Parse an RFC 3339 timestamp. The offset is required.'''
    m = _rfc3339_re.fullmatch(text)
    if not m:
        raise ValidationError(field, f"invalid RFC 3339 timestamp {text!r}")
    year, mon, day, hour, minute, sec, frac, zulu, sign, oh, om = m.groups()
    usec = int((frac or '').ljust(6, '0')[:6])
    try:
        if zulu:
            tz = timezone.utc
        else:
            offset = timedelta(hours=int(oh), minutes=int(om))
            tz = timezone(-offset if sign == '-' else offset)
        return datetime(int(year), int(mon), int(day), int(hour), int(minute),
                        int(sec), usec, tzinfo=tz)
    except ValueError:
        raise ValidationError(field, f"invalid RFC 3339 timestamp {text!r}") from None
