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


class RackfilesException(Exception):
    pass

class InvalidArgument(RackfilesException, ValueError):
    pass

class InvalidTemporaryURLMethod(InvalidArgument):
    pass

class FileNotFound(InvalidArgument):
    pass

class Timeout(RackfilesException):
    """The transport gave up waiting for the remote service."""
    pass


class HTTPError(RackfilesException):
    """
    The base exception class for all non-2xx responses from the remote
    service.
    """
    http_status = None
    message = "Unexpected response from Cloud Files"

    def __init__(self, code=None, message=None, details=None):
        self.code = code or self.http_status
        self.message = message or self.__class__.message
        self.details = details
        super(HTTPError, self).__init__(self.code, self.message)


    def __str__(self):
        formatted_string = "%s (HTTP %s)" % (self.message, self.code)
        if self.details:
            formatted_string += "\n%s" % self.details
        return formatted_string


class BadRequest(HTTPError):
    """
    HTTP 400 - Bad request: you sent some malformed data.
    """
    http_status = 400
    message = "Bad request"


class Unauthorized(HTTPError):
    """
    HTTP 401 - Unauthorized: bad credentials, or an expired token.
    """
    http_status = 401
    message = "Unauthorized"


class NotFound(HTTPError):
    """
    HTTP 404 - Not found
    """
    http_status = 404
    message = "Not found"


class ServerError(HTTPError):
    """
    HTTP 5xx - The service failed to handle the request.
    """
    http_status = 500
    message = "Server error"


_code_map = dict((c.http_status, c) for c in (BadRequest, Unauthorized,
        NotFound, ServerError))


def from_response(response, body=None):
    """
    Return an instance of an HTTPError or subclass based on a response
    object. Every 5xx status is reported as a ServerError.

    Usage::

        resp = session.request(method, url)
        if not resp.ok:
            raise exceptions.from_response(resp)
    """
    status = response.status_code
    if 500 <= status <= 599:
        cls = ServerError
    else:
        cls = _code_map.get(status, HTTPError)
    message = "Rackspace returned HTTP status %s" % status
    return cls(code=status, message=message, details=body or None)
