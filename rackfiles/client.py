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

"""
The HTTP transport used by containers. One HttpClient talks to one host; the
Account hands them out per hostname.
"""

import logging

import requests

import rackfiles
import rackfiles.exceptions as exc

logger = logging.getLogger(__name__)


class HttpClient(object):
    """
    Issues authenticated requests against a single Cloud Files host.

    Every method takes a path (including any query string), returns the
    requests.Response on success, and raises a subclass of
    rackfiles.exceptions.HTTPError for any non-2xx status. A request that
    gets a 401 is repeated once after the account's token is refreshed.
    """
    def __init__(self, account, hostname, session=None):
        self.account = account
        self.hostname = hostname
        self.session = session or requests.Session()


    def get(self, path, headers=None, stream=False):
        return self.request("GET", path, headers=headers, stream=stream)


    def head(self, path, headers=None):
        return self.request("HEAD", path, headers=headers)


    def post(self, path, body, headers=None):
        return self.request("POST", path, data=body, headers=headers)


    def put(self, path, headers=None):
        return self.request("PUT", path, data=b"", headers=headers)


    def delete(self, path, headers=None):
        return self.request("DELETE", path, headers=headers)


    def streaming_put(self, path, stream, length, headers=None):
        """
        Uploads 'length' bytes read from 'stream' without loading them into
        memory first.
        """
        hdrs = dict(headers or {})
        hdrs["Content-Length"] = str(length)
        if not length:
            # Empty bodies go out with Content-Length: 0, never chunked.
            stream = b""
        return self.request("PUT", path, data=stream, headers=hdrs)


    def request(self, method, path, data=None, headers=None, stream=False):
        """
        Sends the request, re-authenticating once if the token has expired.
        """
        url = "https://%s%s" % (self.hostname, path)
        start = data.tell() if hasattr(data, "seek") else None
        resp = self._send(method, url, data, headers, stream)
        if resp.status_code == 401:
            logger.debug("Token rejected by %s; re-authenticating",
                    self.hostname)
            resp.close()
            self.account.refresh_cache()
            if start is not None:
                data.seek(start)
            resp = self._send(method, url, data, headers, stream)
        if not 200 <= resp.status_code < 300:
            err = exc.from_response(resp,
                    None if stream or method == "HEAD" else resp.text)
            resp.close()
            raise err
        return resp


    def _send(self, method, url, data, headers, stream):
        hdrs = {"X-Auth-Token": self.account.auth_token(),
                "User-Agent": rackfiles.get_setting("user_agent"),
                }
        hdrs.update(headers or {})
        if rackfiles.get_setting("http_debug"):
            self._log_request(method, url, hdrs)
        try:
            resp = self.session.request(method, url, data=data, headers=hdrs,
                    stream=stream, verify=rackfiles.get_setting("verify_ssl"),
                    timeout=rackfiles.get_setting("timeout"))
        except requests.exceptions.Timeout as e:
            raise exc.Timeout("Request to %s timed out: %s" % (url, e))
        if rackfiles.get_setting("http_debug"):
            logger.debug("RESP: %s %s", resp.status_code, resp.reason)
        return resp


    def _log_request(self, method, url, headers):
        shown = dict(headers)
        if "X-Auth-Token" in shown:
            shown["X-Auth-Token"] = "***"
        header_args = " ".join("-H '%s: %s'" % (key, val)
                for key, val in sorted(shown.items()))
        logger.debug("REQ: curl -i -X %s '%s' %s", method, url, header_args)


    def __repr__(self):
        return "<HttpClient %s>" % self.hostname
