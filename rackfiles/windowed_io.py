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

import io
import os


class WindowedIO(io.RawIOBase):
    """
    A read-only view of the bytes between 'offset' and 'offset + length' in
    a larger seekable source. Large objects are carved into segments with
    these, so no segment is ever copied into memory or onto disk.

    Several windows may share one source: each keeps its own cursor and
    seeks the source before every read.
    """
    def __init__(self, source, offset, length):
        super(WindowedIO, self).__init__()
        if offset < 0 or length < 0:
            raise ValueError("A window needs a non-negative offset and "
                    "length; received offset=%s, length=%s." % (offset, length))
        self.source = source
        self.offset = offset
        self.length = length
        self._pos = 0


    def __len__(self):
        return self.length


    def __repr__(self):
        return "<WindowedIO offset=%s length=%s pos=%s>" % (self.offset,
                self.length, self._pos)


    @property
    def name(self):
        return getattr(self.source, "name", None)


    def readable(self):
        return True


    def seekable(self):
        return True


    def tell(self):
        return self._pos


    def seek(self, pos, whence=os.SEEK_SET):
        if whence == os.SEEK_SET:
            newpos = pos
        elif whence == os.SEEK_CUR:
            newpos = self._pos + pos
        elif whence == os.SEEK_END:
            newpos = self.length + pos
        else:
            raise ValueError("Invalid whence value: %s" % whence)
        if newpos < 0:
            raise ValueError("Negative seek position %s" % newpos)
        self._pos = newpos
        return self._pos


    def read(self, size=-1):
        if self.closed:
            raise ValueError("I/O operation on closed file.")
        remaining = self.length - self._pos
        if remaining <= 0:
            return b""
        if size is None or size < 0 or size > remaining:
            size = remaining
        self.source.seek(self.offset + self._pos)
        data = self.source.read(size)
        self._pos += len(data)
        return data


    def readall(self):
        return self.read()


    def readinto(self, buf):
        data = self.read(len(buf))
        count = len(data)
        buf[:count] = data
        return count


    def close(self):
        # The source belongs to whoever opened it.
        self.source = None
        super(WindowedIO, self).close()
