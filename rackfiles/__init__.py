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
rackfiles is a client for the Rackspace Cloud Files object storage service.

Start with an Account, then ask it for the containers in a region:

    account = rackfiles.Account("username", "api_key")
    container = account.containers("ord").get("assets")
    container.upload("logo.png", "/tmp/logo.png")
"""

import logging
import os

version = "0.3.0"

# Keep library logging silent unless the application configures it.
logging.getLogger(__name__).addHandler(logging.NullHandler())


def _to_bool(val):
    return str(val).strip().lower() in ("1", "true", "yes", "on")


def _to_timeout(val):
    if val in (None, ""):
        return None
    return float(val)


class Settings(object):
    """
    Holds the process-wide defaults used by the library. Each value can be
    overridden by an environment variable, and changed at runtime with
    set_setting().
    """
    _defaults = {
            "encoding": "utf-8",
            "identity_url": "https://identity.api.rackspacecloud.com/v2.0/",
            "verify_ssl": True,
            "timeout": None,
            "http_debug": False,
            "user_agent": "rackfiles/%s" % version,
            }
    env_dct = {
            "encoding": "RACKFILES_ENCODING",
            "identity_url": "RACKFILES_IDENTITY_URL",
            "verify_ssl": "RACKFILES_VERIFY_SSL",
            "timeout": "RACKFILES_TIMEOUT",
            "http_debug": "RACKFILES_HTTP_DEBUG",
            "user_agent": "RACKFILES_USER_AGENT",
            }
    _converters = {
            "verify_ssl": _to_bool,
            "http_debug": _to_bool,
            "timeout": _to_timeout,
            }

    def __init__(self):
        self._settings = {}


    def get(self, key):
        """
        Returns the value for the given key. Explicitly set values win over
        environment variables, which win over the defaults.
        """
        if key not in self._defaults:
            raise KeyError("There is no setting named '%s'." % key)
        if key in self._settings:
            return self._settings[key]
        env_val = os.environ.get(self.env_dct[key])
        if env_val is not None:
            convert = self._converters.get(key)
            return convert(env_val) if convert else env_val
        return self._defaults[key]


    def set(self, key, val):
        if key not in self._defaults:
            raise KeyError("There is no setting named '%s'." % key)
        self._settings[key] = val


    def reset(self):
        """Discards every value set at runtime."""
        self._settings.clear()


settings = Settings()


def get_setting(key):
    """Returns the current value of the named setting."""
    return settings.get(key)


def set_setting(key, val):
    """Changes the value of the named setting for this process."""
    settings.set(key, val)


def get_encoding():
    """Returns the encoding used when turning text into bytes."""
    return settings.get("encoding")


from rackfiles.identity import Account
from rackfiles.identity import DictCache
from rackfiles.object_storage import Container
from rackfiles.object_storage import Containers
