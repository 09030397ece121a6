import unittest
from io import BytesIO

from mkdeb import InternalError, BuildError
from mkdeb.ar import arhdr, write_ar_magic, write_ar_entry, AR_MAGIC

from .test_common import ar_members

class ArHeader(unittest.TestCase):
    def test_debian_binary(self):
        hdr = arhdr('debian-binary', 4)._pack()
        self.assertEqual(len(hdr), 60)
        self.assertEqual(hdr[0:16], b'debian-binary   ')
        self.assertEqual(hdr[16:28], b'1577836800  ')
        self.assertEqual(hdr[28:34], b'0     ')
        self.assertEqual(hdr[34:40], b'0     ')
        self.assertEqual(hdr[40:48], b'100644  ')
        self.assertEqual(hdr[48:58], b'4         ')
        self.assertEqual(hdr[58:60], b'`\n')

    def test_long_name(self):
        with self.assertRaises(InternalError):
            arhdr('control.tar.zstdx', 1)._pack()

    def test_bad_size(self):
        with self.assertRaises(InternalError):
            arhdr('data.tar', -1)._pack()
        with self.assertRaises(InternalError):
            arhdr('data.tar', 10**10)._pack()
        self.assertEqual(arhdr('data.tar', 10**10 - 1)._pack()[48:58], b'9999999999')

class ArEntry(unittest.TestCase):
    def test_even(self):
        out = BytesIO()
        wrote = write_ar_entry(out, 'debian-binary', 4, BytesIO(b'2.0\n'))
        self.assertEqual(wrote, 64)
        self.assertEqual(out.getvalue()[60:], b'2.0\n')

    def test_odd_is_padded(self):
        out = BytesIO()
        wrote = write_ar_entry(out, 'x', 3, BytesIO(b'abc'))
        self.assertEqual(wrote, 64)
        self.assertEqual(out.getvalue()[60:], b'abc\n')

    def test_short_read(self):
        with self.assertRaises(BuildError) as cm:
            write_ar_entry(BytesIO(), 'x', 10, BytesIO(b'abc'))
        self.assertEqual(cm.exception.step, 'x')

    def test_only_copies_size(self):
        out = BytesIO()
        write_ar_entry(out, 'x', 2, BytesIO(b'abcdef'))
        self.assertEqual(out.getvalue()[60:], b'ab')

    def test_readable(self):
        out = BytesIO()
        write_ar_magic(out)
        write_ar_entry(out, 'debian-binary', 4, BytesIO(b'2.0\n'))
        write_ar_entry(out, 'odd', 5, BytesIO(b'hello'))
        write_ar_entry(out, 'even', 2, BytesIO(b'hi'))
        self.assertTrue(out.getvalue().startswith(AR_MAGIC))
        self.assertEqual(ar_members(out.getvalue()), [
            ('debian-binary', b'2.0\n'),
            ('odd', b'hello'),
            ('even', b'hi'),
        ])
