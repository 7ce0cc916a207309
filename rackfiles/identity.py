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

import logging

import requests

import rackfiles
from rackfiles.client import HttpClient
import rackfiles.exceptions as exc
from rackfiles.object_storage import Containers

logger = logging.getLogger(__name__)


class DictCache(object):
    """
    The simplest cache an Account can use: a dict that lives as long as the
    process. Any object with the same read() and write() methods can be
    passed to an Account instead, e.g. to share tokens between processes.
    """
    def __init__(self):
        self._data = {}


    def read(self, key):
        return self._data.get(key)


    def write(self, key, value):
        self._data[key] = value



class Account(object):
    """
    This is the entry point to the Rackspace API. Create an Account with
    your username and API key, then use containers() to work with Cloud
    Files in a region.

    The identity service's reply, which holds the token and the service
    catalog, is kept in 'cache' and only fetched again when the cache is
    empty or a request is rejected as unauthorized.
    """
    def __init__(self, username, api_key, cache=None):
        self.username = username
        self.api_key = api_key
        self.cache = cache if cache is not None else DictCache()


    def __repr__(self):
        return "<Account username=%s>" % self.username


    @property
    def cache_key(self):
        return "rackfiles-%s" % self.username


    def auth_token(self):
        """
        Returns the token that authenticates further API requests.
        """
        return self._extract(self._identity_data(), "access", "token", "id")


    def service_names(self):
        """
        Returns the names of the services in the catalog. Any of these can
        be passed to public_endpoint().
        """
        catalog = self._extract(self._identity_data(), "access",
                "serviceCatalog") or []
        return [service["name"] for service in catalog]


    def public_endpoint(self, service_name, region=None):
        """
        Returns the public URL for the named service. Services that are not
        regioned can be looked up without a region; for the others, the
        region code (e.g. "ord" or "SYD") is required.
        """
        if service_name == "identity":
            return rackfiles.get_setting("identity_url")
        endpoints = self._service_endpoints(service_name)
        if len(endpoints) > 1:
            if region is None:
                raise exc.InvalidArgument("The requested service exists in "
                        "multiple regions; please specify a region code.")
            region = str(region).upper()
            endpoints = [ep for ep in endpoints if ep.get("region") == region]
        if not endpoints:
            raise exc.InvalidArgument("No matching services found for '%s'."
                    % service_name)
        return endpoints[0]["publicURL"]


    def refresh_cache(self):
        """
        Authenticates against the identity service and stores the reply in
        the cache.
        """
        url = "%stokens" % rackfiles.get_setting("identity_url")
        payload = {"auth": {"RAX-KSKEY:apiKeyCredentials": {
                "username": self.username,
                "apiKey": self.api_key,
                }}}
        logger.debug("Authenticating %s against %s", self.username, url)
        try:
            resp = requests.post(url, json=payload,
                    headers={"Content-Type": "application/json",
                    "User-Agent": rackfiles.get_setting("user_agent")},
                    verify=rackfiles.get_setting("verify_ssl"),
                    timeout=rackfiles.get_setting("timeout"))
        except requests.exceptions.Timeout as e:
            raise exc.Timeout("Authentication request timed out: %s" % e)
        if not 200 <= resp.status_code < 300:
            raise exc.from_response(resp, resp.text)
        self.cache.write(self.cache_key, resp.json())


    def http_client(self, hostname):
        """
        Returns an HttpClient for making authenticated requests to
        'hostname'.
        """
        return HttpClient(self, hostname)


    def containers(self, region):
        """
        Returns a Containers object for working with Cloud Files in the
        given region.
        """
        return Containers(self, region)


    def _identity_data(self):
        if not self.cache.read(self.cache_key):
            self.refresh_cache()
        return self.cache.read(self.cache_key) or {}


    def _service_endpoints(self, service_name):
        catalog = self._extract(self._identity_data(), "access",
                "serviceCatalog") or []
        for service in catalog:
            if service.get("name") == service_name:
                return service.get("endpoints") or []
        return []


    @staticmethod
    def _extract(data, *keys):
        """
        Safely digs a value out of nested dicts, returning None when any
        key along the way is missing.
        """
        for key in keys:
            if not isinstance(data, dict) or key not in data:
                return None
            data = data[key]
        return data
