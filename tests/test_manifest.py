import json
import os
import unittest
from base64 import b64encode

from mkdeb import Manifest, BuildState, ValidationError, SourceUnavailable, NotResolved
from mkdeb.util import pad, blocksize_pad, clean_path, parent_dir, is_valid_description_line

from .test_common import minimal_manifest, TempRoot

def manifest(**kwargs):
    return Manifest.from_dict(minimal_manifest(**kwargs))

def resolved(**kwargs):
    m = manifest(**kwargs)
    m.resolve('.')
    return m

class Helpers(unittest.TestCase):
    def test_pad(self):
        self.assertEqual(blocksize_pad(0), 0)
        self.assertEqual(blocksize_pad(1), 4096)
        self.assertEqual(blocksize_pad(4096), 4096)
        self.assertEqual(blocksize_pad(4097), 8192)
        self.assertEqual(pad(3, 1), 4)
        self.assertEqual(pad(-3, 1), -4)

    def test_clean_path(self):
        self.assertEqual(clean_path('a/./b/../c'), 'a/c')
        self.assertEqual(clean_path('//usr/bin'), '/usr/bin')
        self.assertEqual(clean_path(''), '.')

    def test_parent_dir(self):
        self.assertEqual(parent_dir('usr'), '.')
        self.assertEqual(parent_dir('usr/'), '.')
        self.assertEqual(parent_dir('usr/bin/foo'), 'usr/bin')

    def test_description_line(self):
        self.assertTrue(is_valid_description_line('hello world'))
        self.assertTrue(is_valid_description_line(''))
        self.assertFalse(is_valid_description_line('trailing '))
        self.assertFalse(is_valid_description_line('trailing '))
        self.assertFalse(is_valid_description_line('tab\there'))
        self.assertFalse(is_valid_description_line('bell\x07'))

class Loading(unittest.TestCase):
    def test_minimal(self):
        m = manifest()
        self.assertEqual(m.package, 'foo')
        self.assertEqual(m.files, [])
        self.assertIs(m.state, BuildState.UNRESOLVED)

    def test_json(self):
        m = Manifest.from_json(json.dumps(minimal_manifest(
            depends='libc6 (>= 2.17)', preDepends='dpkg',
            longDescription=['line one', '', 'line two'],
            files=[{'name': 'usr/'}])))
        self.assertEqual(m.depends, 'libc6 (>= 2.17)')
        self.assertEqual(m.pre_depends, 'dpkg')
        self.assertEqual(m.long_description, ['line one', '', 'line two'])
        self.assertEqual(m.files[0].name, 'usr/')

    def test_bad_json(self):
        with self.assertRaises(ValidationError) as cm:
            Manifest.from_json('{"package": ')
        self.assertIn('JSON', str(cm.exception))
        with self.assertRaises(ValidationError):
            Manifest.from_json('[]')

    def test_unknown_field(self):
        with self.assertRaises(ValidationError) as cm:
            manifest(description='nope')
        self.assertEqual(cm.exception.field, 'description')
        self.assertEqual(str(cm.exception), 'description: unknown field')

    def test_unknown_file_field(self):
        with self.assertRaises(ValidationError) as cm:
            manifest(files=[{'name': 'usr/'}, {'name': 'a', 'owner': 'root'}])
        self.assertEqual(cm.exception.field, 'files[1].owner')

    def test_wrong_type(self):
        with self.assertRaises(ValidationError) as cm:
            manifest(implicitDirs=['usr', 3])
        self.assertEqual(cm.exception.field, 'implicitDirs[1]')

    def test_load(self):
        with TempRoot() as root:
            path = root.add('m.json', json.dumps(minimal_manifest()).encode())
            self.assertEqual(Manifest.load(path).package, 'foo')
            with self.assertRaises(OSError):
                Manifest.load(os.path.join(root.path, 'missing.json'))

class Validation(unittest.TestCase):
    def check_error(self, field, **kwargs):
        m = manifest(**kwargs)
        with self.assertRaises(ValidationError) as cm:
            m.validate()
        self.assertEqual(cm.exception.field, field)
        return cm.exception

    def test_minimal_ok(self):
        manifest().validate()

    def test_required(self):
        for key in ('package', 'version', 'arch', 'maintainer', 'shortDescription'):
            with self.subTest(key=key):
                err = self.check_error(key, **{key: ''})
                self.assertIn('missing required field', str(err))

    def test_bad_values(self):
        for key, val in [('package', 'Foo'), ('package', 'f'),
                         ('version', 'v1.0'), ('version', '1.0 beta'),
                         ('arch', 'amd64 i386'), ('section', 'Admin'),
                         ('priority', 'urgent'), ('depends', 'a,\nb'),
                         ('maintainer', 'A\nB'), ('homePage', 'x\ny')]:
            with self.subTest(key=key, val=val):
                self.check_error(key, **{key: val})

    def test_trailing_newline(self):
        for key, val in [('package', 'foo\n'), ('version', '1.0\n'),
                         ('arch', 'amd64\n'), ('section', 'misc\n')]:
            with self.subTest(key=key):
                self.check_error(key, **{key: val})
        self.check_error('implicitDirs[0]', implicitDirs=['usr\n'])
        self.check_error('files[0].name', files=[{'name': 'hi\n', 'text': ''}])

    def test_control_characters(self):
        for key in ('depends', 'conflicts', 'maintainer', 'homePage', 'builtUsing'):
            for val in ('a\rb', 'a\x00', 'a\tb'):
                with self.subTest(key=key, val=val):
                    self.check_error(key, **{key: val})

    def test_good_values(self):
        manifest(package='libfoo2.0+bar', version='1:2.3~rc1-4ubuntu1',
                 arch='linux-any', section='contrib/net', priority='optional',
                 depends='libc6 (>= 2.17), libfoo | libbar').validate()

    def test_description(self):
        self.check_error('shortDescription', shortDescription='x ')
        self.check_error('longDescription[1]', longDescription=['ok', 'bad\x1b[0m'])
        self.check_error('longDescription[0]', longDescription=['trailing\t'])

    def test_file_errors_are_prefixed(self):
        err = self.check_error('files[1].link', files=[
            {'name': 'usr/'}, {'name': 'usr/x', 'type': 'symlink'}])
        self.assertEqual(str(err), 'files[1].link: missing required field')

    def test_device_needs_numbers(self):
        self.check_error('files[1].major', files=[
            {'name': 'dev/'}, {'name': 'dev/null', 'type': 'c'}])

    def test_symlink_not_canonical(self):
        self.check_error('files[0].link', files=[
            {'name': 'a', 'type': 'l', 'link': 'b/'}])

    def test_duplicate(self):
        err = self.check_error('files[2]', files=[
            {'name': 'usr/'}, {'name': 'usr/a', 'text': ''},
            {'name': 'usr/a', 'text': ''}])
        self.assertIn('files[1]', str(err))

    def test_duplicate_dir_spelling(self):
        self.check_error('files[1]', files=[
            {'name': 'usr/'}, {'name': 'usr', 'type': 'dir'}])

    def test_parent_must_exist(self):
        self.check_error('files[0]', files=[{'name': 'usr/bin/foo', 'text': ''}])

    def test_parent_declared_later(self):
        err = self.check_error('files[0]', files=[
            {'name': 'usr/a', 'text': ''}, {'name': 'usr/'}])
        self.assertIn("'usr'", str(err))

    def test_parent_declared_earlier(self):
        manifest(files=[{'name': 'usr/'}, {'name': 'usr/bin/'},
                        {'name': 'usr/bin/a', 'text': ''}]).validate()

    def test_implicit_dirs(self):
        manifest(implicitDirs=['usr/bin', 'etc/'],
                 files=[{'name': 'usr/bin/a', 'text': ''},
                        {'name': 'etc/a.conf', 'text': '', 'isConf': True}]).validate()
        self.check_error('implicitDirs[0]', implicitDirs=['/usr'])

    def test_implicit_dirs_are_not_entries(self):
        # usr/bin being implicit says nothing about usr
        self.check_error('files[0]', implicitDirs=['usr/bin'],
                         files=[{'name': 'usr/a', 'text': ''}])

    def test_top_level(self):
        manifest(files=[{'name': 'a', 'text': ''}, {'name': './', 'type': 'dir'}]).validate()

class Resolve(unittest.TestCase):
    def test_installed_size(self):
        m = resolved(files=[
            {'name': 'a', 'text': 'x' * 10},
            {'name': 'b', 'bytes': b64encode(b'y' * 4096).decode()},
            {'name': 'c', 'text': 'z' * 4097},
            {'name': 'd/'},
            {'name': 'e', 'type': 'symlink', 'link': 'a'},
        ])
        self.assertEqual(m.installed_size, 16384)
        self.assertIs(m.state, BuildState.RESOLVED)
        self.assertEqual([f.size for f in m.files], [10, 4096, 4097, 0, 0])

    def test_installed_size_empty_file(self):
        self.assertEqual(resolved(files=[{'name': 'a', 'text': ''}]).installed_size, 0)

    def test_source_unavailable(self):
        with TempRoot({'usr/a': b'hello'}) as root:
            m = manifest(files=[{'name': 'usr/'}, {'name': 'usr/a'}, {'name': 'usr/b'}])
            with self.assertRaises(SourceUnavailable) as cm:
                m.resolve(root.path)
            self.assertEqual(cm.exception.field, 'files[2]')
            self.assertEqual(cm.exception.path, 'usr/b')
            self.assertIs(m.state, BuildState.UNRESOLVED)

    def test_invalid_manifest_does_not_resolve(self):
        m = manifest(version='')
        with self.assertRaises(ValidationError):
            m.resolve('.')
        self.assertIs(m.state, BuildState.UNRESOLVED)

class Render(unittest.TestCase):
    def test_needs_resolve(self):
        m = manifest()
        for render in (m.control_file, m.conffiles, m.preinst):
            with self.subTest(render=render.__name__):
                with self.assertRaises(NotResolved):
                    render()

    def test_minimal_control(self):
        self.assertEqual(resolved().control_file(), (
            b"Package: foo\n"
            b"Version: 1.0\n"
            b"Architecture: amd64\n"
            b"Installed-Size: 0\n"
            b"Maintainer: A <a@example.com>\n"
            b"Description: x\n"))

    def test_full_control(self):
        m = resolved(section='utils', priority='optional', essential='no',
                     depends='libc6', preDepends='dpkg', recommends='bar',
                     suggests='baz', enhances='qux', breaks='old (<< 1)',
                     conflicts='other', homePage='https://example.com/',
                     builtUsing='gcc (= 10)',
                     longDescription=['More text.', '', '  indented'],
                     files=[{'name': 'a', 'text': 'hi\n'}])
        self.assertEqual(m.control_file().decode('utf-8').splitlines(), [
            'Package: foo',
            'Version: 1.0',
            'Section: utils',
            'Priority: optional',
            'Architecture: amd64',
            'Essential: no',
            'Depends: libc6',
            'Pre-Depends: dpkg',
            'Recommends: bar',
            'Suggests: baz',
            'Enhances: qux',
            'Breaks: old (<< 1)',
            'Conflicts: other',
            'Installed-Size: 4096',
            'Maintainer: A <a@example.com>',
            'Homepage: https://example.com/',
            'Built-Using: gcc (= 10)',
            'Description: x',
            ' More text.',
            ' .',
            '   indented',
        ])

    def test_conffiles(self):
        self.assertIsNone(resolved().conffiles())
        m = resolved(implicitDirs=['etc'], files=[
            {'name': 'etc/a.conf', 'text': '', 'isConf': True},
            {'name': 'etc/b.conf', 'text': ''},
            {'name': 'etc/c.conf', 'text': '', 'isConf': True}])
        self.assertEqual(m.conffiles(), b'etc/a.conf\netc/c.conf\n')

    def test_scripts(self):
        m = resolved(postInstall=['ldconfig', 'echo done'])
        self.assertIsNone(m.preinst())
        self.assertIsNone(m.prerm())
        self.assertIsNone(m.postrm())
        self.assertEqual(m.postinst(), (
            b"#!/bin/bash\n"
            b"set -euo pipefail\n"
            b"umask 022\n"
            b"cd /\n"
            b"ldconfig\n"
            b"echo done\n"))
        self.assertEqual([name for name, _ in Manifest.scripts],
                         ['preinst', 'postinst', 'prerm', 'postrm'])
