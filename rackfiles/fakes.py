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
Stand-ins for the network-facing classes, for use in tests.
"""

import hashlib
import json

from requests.structures import CaseInsensitiveDict

from rackfiles.object_storage import Container

STORAGE_URL = "https://the-cloud.com/account"
CDN_URL = "https://cdn.the-cloud.com/account"


class FakeResponse(object):
    reason = "OK"

    def __init__(self, status_code=200, headers=None, text="", chunks=None):
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self.text = text
        self.chunks = chunks
        self.closed = False


    @property
    def ok(self):
        return 200 <= self.status_code < 300


    def iter_content(self, chunk_size=1):
        if self.chunks is not None:
            return iter(self.chunks)
        return iter([self.text.encode("utf-8")])


    def json(self):
        return json.loads(self.text)


    def close(self):
        self.closed = True



class FakeHttpClient(object):
    """
    Records every request. streaming_put() reads the stream it is given, so
    the uploaded bytes can be inspected after the call, and replies with the
    MD5 of those bytes as the ETag unless 'put_etags' says otherwise.
    """
    def __init__(self, hostname):
        self.hostname = hostname
        self.requests = []
        self.uploads = []
        self.put_etags = []
        self.responses = []


    def _reply(self, method, path, **kwargs):
        self.requests.append((method, path, kwargs))
        if self.responses:
            return self.responses.pop(0)
        return FakeResponse()


    def get(self, path, headers=None, stream=False):
        return self._reply("GET", path, headers=headers, stream=stream)


    def head(self, path, headers=None):
        return self._reply("HEAD", path, headers=headers)


    def post(self, path, body, headers=None):
        return self._reply("POST", path, body=body, headers=headers)


    def put(self, path, headers=None):
        return self._reply("PUT", path, headers=headers)


    def delete(self, path, headers=None):
        return self._reply("DELETE", path, headers=headers)


    def streaming_put(self, path, stream, length, headers=None):
        body = stream.read()
        self.uploads.append((path, body, length, dict(headers or {})))
        self.requests.append(("PUT", path, {"headers": headers}))
        if self.put_etags:
            etag = self.put_etags.pop(0)
        else:
            etag = hashlib.md5(body).hexdigest()
        return FakeResponse(headers={"ETag": etag})



class FakeAccount(object):
    def __init__(self, username="fakeuser", token="token"):
        self.username = username
        self.token = token
        self.endpoints = {"cloudFiles": STORAGE_URL,
                "cloudFilesCDN": CDN_URL,
                }
        self.clients = {}
        self.refreshed = 0


    def auth_token(self):
        return self.token


    def public_endpoint(self, service_name, region=None):
        return self.endpoints[service_name]


    def refresh_cache(self):
        self.refreshed += 1


    def http_client(self, hostname):
        if hostname not in self.clients:
            self.clients[hostname] = FakeHttpClient(hostname)
        return self.clients[hostname]



class FakeContainer(Container):
    def __init__(self, *args, **kwargs):
        super(FakeContainer, self).__init__(FakeAccount(), "ord", "test",
                *args, **kwargs)


    @property
    def storage_client(self):
        return self.account.http_client("the-cloud.com")


    @property
    def cdn_client(self):
        return self.account.http_client("cdn.the-cloud.com")


fake_identity_response = {"access": {
        "token": {"id": "this_is_a_fake_token",
            "expires": "2030-01-01T00:00:00.000-00:00",
            },
        "serviceCatalog": [
            {"name": "cloudFiles",
                "type": "object-store",
                "endpoints": [
                    {"region": "ORD",
                        "publicURL": "https://storage101.ord1.clouddrive.com/v1/MossoCloudFS_abc",
                        },
                    {"region": "SYD",
                        "publicURL": "https://storage101.syd2.clouddrive.com/v1/MossoCloudFS_abc",
                        },
                    ]},
            {"name": "cloudFilesCDN",
                "type": "rax:object-cdn",
                "endpoints": [
                    {"region": "ORD",
                        "publicURL": "https://cdn1.clouddrive.com/v1/MossoCloudFS_abc",
                        },
                    ]},
            {"name": "cloudDNS",
                "type": "rax:dns",
                "endpoints": [
                    {"publicURL": "https://dns.api.rackspacecloud.com/v1.0/123",
                        },
                    ]},
            ]}}
