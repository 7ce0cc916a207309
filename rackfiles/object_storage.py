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

from collections import namedtuple
import contextlib
import hashlib
import hmac
import io
import itertools
import json
import logging
import mimetypes
import os
from urllib.parse import urlparse

import rackfiles
import rackfiles.exceptions as exc
import rackfiles.utils as utils
from rackfiles.windowed_io import WindowedIO

ACCOUNT_META_PREFIX = "X-Account-Meta-"
CONTAINER_META_PREFIX = "X-Container-Meta-"

# Objects larger than this are uploaded in segments, tied together by a
# manifest.
LARGE_FILE_THRESHOLD = 100 * 1024 * 1024
LARGE_FILE_SEGMENT_SIZE = 100 * 1024 * 1024
# The most entries a single listing call will return.
MAX_ITEMS_PER_LIST = 10000
DOWNLOAD_CHUNK_SIZE = 65536
DEFAULT_CDN_TTL = 259200
DEFAULT_CONTENT_TYPE = "application/octet-stream"

STORAGE_SERVICE = "cloudFiles"
CDN_SERVICE = "cloudFilesCDN"

log = logging.getLogger(__name__)

Segment = namedtuple("Segment", "index offset length")
SegmentResult = namedtuple("SegmentResult", "segment etag")


def _massage_metakeys(dct, prfx):
    """
    Returns a copy of the supplied dictionary, prefixing any keys that do
    not begin with the specified prefix accordingly.
    """
    lowprefix = prfx.lower()
    ret = {}
    for k, v in list(dct.items()):
        if not k.lower().startswith(lowprefix):
            k = "%s%s" % (prfx, k)
        ret[k] = v
    return ret


def _to_bool(val):
    return str(val).strip().lower() == "true"


def _to_int(val, default=None):
    try:
        return int(val)
    except (TypeError, ValueError):
        return default


class BufferSource(object):
    """Upload content that is already in memory."""
    name = None

    def __init__(self, data):
        if isinstance(data, str):
            data = data.encode(rackfiles.get_encoding())
        self.data = bytes(data)


    def length(self):
        return len(self.data)


    def open(self):
        return io.BytesIO(self.data)



class FileSource(object):
    """
    Upload content from a binary file-like object opened by the caller. The
    object is rewound before use and is never closed here.
    """
    def __init__(self, fileobj):
        self.fileobj = fileobj
        fname = getattr(fileobj, "name", None)
        self.name = fname if isinstance(fname, str) else None


    def length(self):
        return utils.get_file_size(self.fileobj)


    def open(self):
        self.fileobj.seek(0)
        return contextlib.nullcontext(self.fileobj)



class PathSource(object):
    """Upload content from a file on disk, identified by its path."""
    def __init__(self, path):
        if not os.path.isfile(path):
            raise exc.FileNotFound("The file '%s' does not exist." % path)
        self.path = path
        self.name = path


    def length(self):
        return os.stat(self.path).st_size


    def open(self):
        return open(self.path, "rb")



def upload_source(data_or_path):
    """
    Wraps the content handed to Container.upload() in the matching source
    class. Accepts bytes, a binary file-like object, or the path of a file.
    """
    if isinstance(data_or_path, (BufferSource, FileSource, PathSource)):
        return data_or_path
    if isinstance(data_or_path, (bytes, bytearray, memoryview)):
        return BufferSource(data_or_path)
    if isinstance(data_or_path, str):
        return PathSource(data_or_path)
    if isinstance(data_or_path, io.TextIOBase):
        raise exc.InvalidArgument("Files must be opened in binary mode to be "
                "uploaded.")
    if hasattr(data_or_path, "read") and hasattr(data_or_path, "seek"):
        return FileSource(data_or_path)
    raise exc.InvalidArgument("Cannot upload content of type '%s'; pass bytes, "
            "a binary file-like object, or a file path." %
            type(data_or_path).__name__)


def plan_segments(total_size, segment_size):
    """
    Splits 'total_size' bytes into consecutive segments of 'segment_size'
    bytes; only the last one may be shorter. Returns a tuple of Segments.
    """
    if segment_size <= 0:
        raise exc.InvalidArgument("The segment size must be a positive "
                "number of bytes; received %s." % segment_size)
    num_segments = (total_size + segment_size - 1) // segment_size
    return tuple(Segment(index, index * segment_size,
            min(segment_size, total_size - index * segment_size))
            for index in range(num_segments))


def segment_name(obj_name, index):
    return "%s.%03d" % (obj_name, index)


def build_manifest(container_name, obj_name, results):
    """
    Returns the JSON body, as bytes, of the manifest that joins the uploaded
    segments back into a single object.
    """
    ordered = sorted(results, key=lambda res: res.segment.index)
    entries = [{"path": "%s/%s" % (container_name,
                    segment_name(obj_name, res.segment.index)),
            "etag": res.etag,
            "size_bytes": res.segment.length,
            } for res in ordered]
    return json.dumps(entries, separators=(",", ":")).encode("utf-8")


def sign_temp_url(secret, method, expires, path):
    """
    Returns the hex HMAC-SHA1 signature that the storage service expects for
    a temporary URL. 'path' must be the unescaped URL path of the object.
    """
    encoding = rackfiles.get_encoding()
    if isinstance(secret, str):
        secret = secret.encode(encoding)
    hmac_body = "%s\n%s\n%s" % (method, expires, path)
    return hmac.new(secret, hmac_body.encode(encoding),
            hashlib.sha1).hexdigest()



class Container(object):
    """
    A single Cloud Files container in one region, and the objects inside it.

    The container name may not contain a '/'. 'large_file_threshold' and
    'large_file_segment_size' control when, and in what pieces, uploads are
    split into segments.
    """
    def __init__(self, account, region, container_name, logger=None,
            large_file_threshold=None, large_file_segment_size=None):
        if "/" in container_name:
            raise exc.InvalidArgument("Container names may not contain a "
                    "'/'; received '%s'." % container_name)
        self.account = account
        self.region = region
        self.container_name = container_name
        self.logger = logger or log
        if large_file_threshold is None:
            large_file_threshold = LARGE_FILE_THRESHOLD
        if large_file_segment_size is None:
            large_file_segment_size = LARGE_FILE_SEGMENT_SIZE
        self.large_file_threshold = large_file_threshold
        self.large_file_segment_size = large_file_segment_size


    def __repr__(self):
        return "<Container %s (%s)>" % (self.container_name, self.region)


    @property
    def storage_url(self):
        return self.account.public_endpoint(STORAGE_SERVICE, self.region)


    @property
    def cdn_url(self):
        return self.account.public_endpoint(CDN_SERVICE, self.region)


    def upload(self, key, data_or_path, headers=None):
        """
        Stores the content of 'data_or_path' as the object 'key' and returns
        the ETag reported by the service.

        'data_or_path' may be bytes, a binary file-like object, or the path
        of a file on disk. Content larger than the large file threshold is
        uploaded in segments and published with a manifest; in that case
        the ETag is the manifest's. Segments already uploaded when a later
        request fails are left in place.

        When 'headers' carries no Content-Type, one is guessed from the
        key's extension, then from the file name, falling back to
        application/octet-stream.
        """
        source = upload_source(data_or_path)
        length = source.length()
        if length > self.large_file_threshold:
            return self._upload_in_segments(key, source, length)
        hdrs = dict(headers or {})
        if not any(hkey.lower() == "content-type" for hkey in hdrs):
            hdrs["Content-Type"] = self._guess_content_type(key, source)
        return self._upload_in_one_go(key, source, length, hdrs)


    def _guess_content_type(self, key, source):
        for name in (key, source.name):
            if name:
                ctype = mimetypes.guess_type(name)[0]
                if ctype:
                    return ctype
        return DEFAULT_CONTENT_TYPE


    def _upload_in_one_go(self, key, source, length, headers):
        path = self._key_path(key)
        self.logger.debug("uploading %s bytes to %s" % (length, path))
        with source.open() as stream:
            headers["ETag"] = utils.get_checksum(stream)
            resp = self._storage_client().streaming_put(path, stream, length,
                    headers)
        return resp.headers.get("ETag")


    def _upload_in_segments(self, key, source, length):
        segments = plan_segments(length, self.large_file_segment_size)
        self.logger.debug("uploading %s bytes to %s in %s segments" % (length,
                self._key_path(key), len(segments)))
        client = self._storage_client()
        results = []
        with source.open() as stream:
            for segment in segments:
                etag = utils.get_checksum(WindowedIO(stream, segment.offset,
                        segment.length))
                window = WindowedIO(stream, segment.offset, segment.length)
                headers = {"Content-Type": DEFAULT_CONTENT_TYPE, "ETag": etag}
                resp = client.streaming_put(
                        self._key_path(segment_name(key, segment.index)),
                        window, segment.length, headers)
                results.append(SegmentResult(segment, resp.headers.get("ETag")))
        manifest = build_manifest(self.container_name, key, results)
        # No Content-Type: the service treats this body as a manifest.
        resp = client.streaming_put(
                "%s?multipart-manifest=put" % self._key_path(key),
                io.BytesIO(manifest), len(manifest), {})
        return resp.headers.get("ETag")


    def download(self, key, filepath):
        """
        Streams the object 'key' into the file at 'filepath', and returns the
        number of bytes downloaded.
        """
        self.logger.debug("downloading %s from %s" % (key,
                self._container_path))
        resp = self._storage_client().get(self._key_path(key), stream=True)
        written = 0
        try:
            with open(filepath, "wb") as dl:
                for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    dl.write(chunk)
                    written += len(chunk)
        finally:
            resp.close()
        return _to_int(resp.headers.get("Content-Length"), written)


    def delete(self, key):
        """Deletes the object 'key' from this container."""
        self.logger.debug("deleting %s from %s" % (key, self._container_path))
        self._storage_client().delete(self._key_path(key))
        return True


    def list(self, max=MAX_ITEMS_PER_LIST, prefix=None, details=False):
        """
        Returns up to 'max' object names from this container, optionally only
        those starting with 'prefix'. Listings longer than the service's
        per-request limit are fetched page by page.

        With 'details' set, each entry is a dict with the object's name,
        hash, bytes, content_type and last_modified.
        """
        self.logger.debug("retrieving up to %s items from %s" % (max,
                self._container_path))
        results = []
        for page in self._iter_pages(max, prefix=prefix, details=details):
            results.extend(page)
        return results


    def list_all(self, prefix=None, details=False):
        """
        Returns an iterator over every object in this container, however many
        there are. Pages are only requested as the iterator advances.
        """
        return itertools.chain.from_iterable(self._iter_pages(None,
                prefix=prefix, details=details))


    def search(self, prefix):
        """Returns the names of the objects whose names start with 'prefix'."""
        self.logger.debug("retrieving container listing from %s items "
                "starting with %s" % (self._container_path, prefix))
        return self.list(max=MAX_ITEMS_PER_LIST, prefix=prefix)


    def _iter_pages(self, max=None, prefix=None, details=False):
        """
        Yields successive pages of the listing, each resuming after the last
        entry of the previous one. Stops after a short page, or once 'max'
        entries have been yielded. A 'max' of None means no limit.
        """
        client = self._storage_client()
        count = 0
        marker = None
        while max is None or count < max:
            limit = MAX_ITEMS_PER_LIST
            if max is not None:
                limit = min(max - count, limit)
            page = self._fetch_page(client, limit, marker, prefix,
                    details)[:limit]
            count += len(page)
            yield page
            if len(page) < limit:
                self.logger.debug("Got %s items; there can't be any more." %
                        count)
                return
            if max is not None and count >= max:
                self.logger.debug("Got %s items; we don't need any more." %
                        count)
                return
            self.logger.debug("Got %s items; requesting %s more." % (count,
                    MAX_ITEMS_PER_LIST if max is None
                    else min(max - count, MAX_ITEMS_PER_LIST)))
            last = page[-1]
            marker = last["name"] if details else last


    def _fetch_page(self, client, limit, marker, prefix, details):
        query = utils.build_query([("limit", limit), ("marker", marker),
                ("prefix", prefix), ("format", "json" if details else None)])
        resp = client.get("%s?%s" % (self._container_path, query))
        body = resp.text or ""
        if details:
            return json.loads(body) if body.strip() else []
        return [line for line in body.split("\n") if line]


    def object_metadata(self, key):
        """
        Returns the size in bytes and the content type of the object 'key'.
        """
        path = self._key_path(key)
        self.logger.debug("Requesting metadata from %s" % path)
        resp = self._storage_client().head(path)
        return {"bytes": _to_int(resp.headers.get("Content-Length")),
                "content_type": resp.headers.get("Content-Type"),
                }


    def metadata(self):
        """
        Returns the number of objects and bytes stored in this container,
        plus its custom X-Container-Meta-* headers under 'custom'.
        """
        self.logger.debug("retrieving container metadata from %s" %
                self._container_path)
        resp = self._storage_client().head(self._container_path)
        hdrs = resp.headers
        low_prefix = CONTAINER_META_PREFIX.lower()
        custom = dict((hkey, hval) for hkey, hval in hdrs.items()
                if hkey.lower().startswith(low_prefix))
        return {"objects": _to_int(hdrs.get("X-Container-Object-Count"), 0),
                "bytes": _to_int(hdrs.get("X-Container-Bytes-Used"), 0),
                "custom": custom,
                }


    def set_metadata(self, headers):
        """
        Sends 'headers' (e.g. X-Container-Meta-* values) to this container.
        """
        self.logger.debug("setting headers on %s" % self._container_path)
        self._storage_client().post(self._container_path, "", headers)
        return True


    def cdn_metadata(self):
        """
        Returns the CDN settings of this container.
        """
        path = self._cdn_container_path
        self.logger.debug("retrieving container CDN metadata from %s" % path)
        resp = self._cdn_client().head(path)
        hdrs = resp.headers
        return {"cdn_enabled": _to_bool(hdrs.get("X-CDN-Enabled")),
                "host": hdrs.get("X-CDN-URI"),
                "ssl_host": hdrs.get("X-CDN-SSL-URI"),
                "streaming_host": hdrs.get("X-CDN-STREAMING-URI"),
                "ttl": _to_int(hdrs.get("X-TTL")),
                "log_retention": _to_bool(hdrs.get("X-Log-Retention")),
                }


    def cdn_enable(self, ttl=DEFAULT_CDN_TTL):
        """
        Publishes this container on the CDN, with edge caches keeping objects
        for 'ttl' seconds.
        """
        path = self._cdn_container_path
        self.logger.debug("enabling CDN access to %s with a cache expiry of "
                "%s minutes" % (path, int(ttl) // 60))
        self._cdn_client().put(path, {"X-TTL": str(int(ttl))})
        return True


    def purge_from_akamai(self, key, email_address):
        """
        Removes the object 'key' from the CDN edge caches before its TTL
        expires. A confirmation is sent to 'email_address'.
        """
        path = "%s/%s" % (self._cdn_container_path, utils.escape(key))
        self.logger.debug("Requesting %s to be purged from the CDN" % path)
        self._cdn_client().delete(path, {"X-Purge-Email": email_address})
        return True


    def temp_url(self, key, secret, expires_at, method="GET"):
        """
        Returns a URL through which anyone can access the object 'key' until
        'expires_at' (a unix timestamp or a datetime). 'secret' must match
        the account's temp URL key.

        The only methods supported are GET and PUT. Anything else will raise
        an `InvalidTemporaryURLMethod` exception.
        """
        mod_method = method.upper().strip()
        if mod_method not in ("GET", "PUT"):
            raise exc.InvalidTemporaryURLMethod("Method must be either 'GET' "
                    "or 'PUT'; received '%s'." % method)
        expires = utils.to_timestamp(expires_at)
        parsed = urlparse(self.storage_url)
        raw_path = "%s/%s/%s" % (parsed.path.rstrip("/"), self.container_name,
                key)
        sig = sign_temp_url(secret, mod_method, expires, raw_path)
        return "%s://%s%s?temp_url_sig=%s&temp_url_expires=%s" % (
                parsed.scheme, parsed.netloc, self._key_path(key), sig, expires)


    def temp_upload_url(self, key, secret, expires_at):
        """
        Returns a URL to which anyone can PUT the object 'key' until
        'expires_at'.
        """
        return self.temp_url(key, secret, expires_at, method="PUT")


    @property
    def _container_path(self):
        return "%s/%s" % (urlparse(self.storage_url).path.rstrip("/"),
                utils.escape(self.container_name))


    @property
    def _cdn_container_path(self):
        return "%s/%s" % (urlparse(self.cdn_url).path.rstrip("/"),
                utils.escape(self.container_name))


    def _key_path(self, key):
        return "%s/%s" % (self._container_path, utils.escape(key))


    def _storage_client(self):
        return self.account.http_client(urlparse(self.storage_url).netloc)


    def _cdn_client(self):
        return self.account.http_client(urlparse(self.cdn_url).netloc)



class Containers(object):
    """
    The containers of an account in one region.
    """
    def __init__(self, account, region, logger=None):
        self.account = account
        self.region = region
        self.logger = logger or log


    def __repr__(self):
        return "<Containers (%s)>" % self.region


    @property
    def storage_url(self):
        return self.account.public_endpoint(STORAGE_SERVICE, self.region)


    def get(self, container_name, **kwargs):
        """
        Returns the Container named 'container_name'. No request is made;
        extra keyword arguments are passed through to Container.
        """
        kwargs.setdefault("logger", self.logger)
        return Container(self.account, self.region, container_name, **kwargs)


    def create(self, container_name, metadata=None):
        """
        Creates the container, if it does not already exist, and returns it.
        Keys in 'metadata' are prefixed with X-Container-Meta- as needed.
        """
        container = self.get(container_name)
        headers = {}
        if metadata:
            headers = _massage_metakeys(metadata, CONTAINER_META_PREFIX)
        self.logger.debug("creating container %s" % container._container_path)
        self._client().put(container._container_path, headers)
        return container


    def delete(self, container_name):
        """Deletes the container, which must be empty."""
        path = self.get(container_name)._container_path
        self.logger.debug("deleting container %s" % path)
        self._client().delete(path)
        return True


    def metadata(self):
        """
        Returns the number of containers, objects and bytes in this region.
        """
        path = self._account_path
        self.logger.debug("retrieving account metadata from %s" % path)
        hdrs = self._client().head(path).headers
        return {"containers": _to_int(hdrs.get("X-Account-Container-Count"), 0),
                "objects": _to_int(hdrs.get("X-Account-Object-Count"), 0),
                "bytes": _to_int(hdrs.get("X-Account-Bytes-Used"), 0),
                }


    def set_temp_url_key(self, secret):
        """
        Sets the secret that temporary URLs for this account are signed with.
        """
        path = self._account_path
        self.logger.debug("setting temp url key on %s" % path)
        self._client().post(path, "",
                {"%sTemp-Url-Key" % ACCOUNT_META_PREFIX: secret})
        return True


    @property
    def _account_path(self):
        return urlparse(self.storage_url).path.rstrip("/") or "/"


    def _client(self):
        return self.account.http_client(urlparse(self.storage_url).netloc)
