#!/usr/bin/env python
# -*- coding: utf-8 -*-

# Copyright 2014 Rackspace

# All Rights Reserved.
#
#    Licensed under the Apache License, Version 2.0 (the "License"); you may
#    not use this file except in compliance with the License. You may obtain
#    a copy of the License at
#
#         http://www.apache.org/licenses/LICENSE-2.0
#
#    Unless required by applicable law or agreed to in writing, software
#    distributed under the License is distributed on an "AS IS" BASIS, WITHOUT
#    WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied. See the
#    License for the specific language governing permissions and limitations
#    under the License.

import calendar
import datetime
import hashlib
import random
import string
from urllib.parse import quote

import rackfiles


def get_checksum(stream, block_size=65536):
    """
    Returns the MD5 checksum in hex of the binary file-like object 'stream'.
    The stream is read from the start in 'block_size' chunks, and its read
    position is restored afterwards so that it can still be uploaded.
    """
    md = hashlib.md5()
    pos = stream.tell()
    stream.seek(0)
    chunk = stream.read(block_size)
    while chunk:
        md.update(chunk)
        chunk = stream.read(block_size)
    stream.seek(pos)
    return md.hexdigest()


def get_file_size(fileobj):
    """
    Returns the size of a file-like object.
    """
    currpos = fileobj.tell()
    fileobj.seek(0, 2)
    total_size = fileobj.tell()
    fileobj.seek(currpos)
    return total_size


def escape(val):
    """
    Percent-encodes a container name, object name or query value so that
    it can be placed in a URL. Slashes are left alone.
    """
    if isinstance(val, bytes):
        val = val.decode(rackfiles.get_encoding())
    return quote(str(val), safe="/")


def build_query(params):
    """
    Returns a query string from a sequence of (name, value) pairs, in the
    order given. Pairs whose value is None are skipped.
    """
    return "&".join("%s=%s" % (name, escape(val))
            for name, val in params if val is not None)


def to_timestamp(val):
    """
    Returns an integer unix timestamp. Accepts numbers, and datetimes which
    are assumed to be in UTC when naive.
    """
    if isinstance(val, datetime.datetime):
        if val.tzinfo is not None:
            val = val.astimezone(datetime.timezone.utc)
        return calendar.timegm(val.timetuple())
    return int(val)


def random_unicode(length=20):
    """
    Generates a random name; useful for testing.

    Returns a string of the specified length drawn from a wide range of
    code points, so that encoding mistakes surface quickly.
    """
    def get_char():
        return chr(random.randint(32, 1000))
    return "".join([get_char() for ii in range(length)])


def random_ascii(length=20):
    """
    Generates a random name; useful for testing.

    Returns a string of the specified length containing only ASCII letters
    and digits.
    """
    source = string.ascii_letters + string.digits
    return "".join(random.choice(source) for ii in range(length))
