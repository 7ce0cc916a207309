#!/usr/bin/env python
# -*- coding: utf-8 -*-

import datetime
import io
import random
import tempfile
import unittest

from mock import patch

import rackfiles
import rackfiles.utils as utils



class UtilsTest(unittest.TestCase):
    def test_get_checksum(self):
        self.assertEqual(utils.get_checksum(io.BytesIO(b"some string")),
                "5ac749fbeec93607fc28d666be85e73a")

    def test_get_checksum_stream_restores_position(self):
        fobj = io.BytesIO(b"abc")
        fobj.seek(2)
        self.assertEqual(utils.get_checksum(fobj, block_size=1),
                "900150983cd24fb0d6963f7d28e17f72")
        self.assertEqual(fobj.tell(), 2)

    def test_get_checksum_file(self):
        with tempfile.TemporaryFile() as tmp:
            tmp.write(b"abc")
            self.assertEqual(utils.get_checksum(tmp),
                    "900150983cd24fb0d6963f7d28e17f72")
            self.assertEqual(tmp.tell(), 3)

    def test_get_checksum_empty(self):
        self.assertEqual(utils.get_checksum(io.BytesIO()),
                "d41d8cd98f00b204e9800998ecf8427e")

    def test_get_file_size(self):
        sz = random.randint(42, 420)
        fobj = io.BytesIO(b"x" * sz)
        fobj.seek(7)
        ret = utils.get_file_size(fobj)
        self.assertEqual(sz, ret)
        self.assertEqual(fobj.tell(), 7)

    def test_escape(self):
        self.assertEqual(utils.escape("foo bar.txt"), "foo%20bar.txt")
        self.assertEqual(utils.escape("assets/foo.css"), "assets/foo.css")
        self.assertEqual(utils.escape("a?b#c&d"), "a%3Fb%23c%26d")
        self.assertEqual(utils.escape(b"foo bar"), "foo%20bar")
        self.assertEqual(utils.escape(10), "10")

    def test_build_query(self):
        qs = utils.build_query([("limit", 1), ("marker", None),
                ("prefix", "a b/"), ("format", "json")])
        self.assertEqual(qs, "limit=1&prefix=a%20b/&format=json")

    def test_to_timestamp(self):
        self.assertEqual(utils.to_timestamp(1234567890), 1234567890)
        self.assertEqual(utils.to_timestamp("1234567890"), 1234567890)
        naive = datetime.datetime(2009, 2, 13, 23, 31, 30)
        self.assertEqual(utils.to_timestamp(naive), 1234567890)
        tz = datetime.timezone(datetime.timedelta(hours=10))
        aware = datetime.datetime(2009, 2, 14, 9, 31, 30, tzinfo=tz)
        self.assertEqual(utils.to_timestamp(aware), 1234567890)

    def test_random_unicode(self):
        self.assertEqual(len(utils.random_unicode(7)), 7)

    def test_random_ascii(self):
        val = utils.random_ascii(12)
        self.assertEqual(len(val), 12)
        self.assertTrue(val.isalnum())



class SettingsTest(unittest.TestCase):
    def setUp(self):
        self.settings = rackfiles.Settings()

    def test_defaults(self):
        self.assertEqual(self.settings.get("encoding"), "utf-8")
        self.assertTrue(self.settings.get("verify_ssl"))
        self.assertEqual(self.settings.get("timeout"), None)

    def test_set(self):
        self.settings.set("timeout", 5)
        self.assertEqual(self.settings.get("timeout"), 5)
        self.settings.reset()
        self.assertEqual(self.settings.get("timeout"), None)

    def test_env_override(self):
        env = {"RACKFILES_VERIFY_SSL": "false", "RACKFILES_TIMEOUT": "2.5",
                "RACKFILES_HTTP_DEBUG": "yes"}
        with patch.dict("os.environ", env):
            self.assertFalse(self.settings.get("verify_ssl"))
            self.assertEqual(self.settings.get("timeout"), 2.5)
            self.assertTrue(self.settings.get("http_debug"))

    def test_explicit_beats_env(self):
        with patch.dict("os.environ", {"RACKFILES_ENCODING": "latin-1"}):
            self.assertEqual(self.settings.get("encoding"), "latin-1")
            self.settings.set("encoding", "utf-8")
            self.assertEqual(self.settings.get("encoding"), "utf-8")

    def test_unknown(self):
        self.assertRaises(KeyError, self.settings.get, "nope")
        self.assertRaises(KeyError, self.settings.set, "nope", 1)

    def test_module_helpers(self):
        self.assertEqual(rackfiles.get_encoding(),
                rackfiles.get_setting("encoding"))



if __name__ == "__main__":
    unittest.main()
