# SPDX-License-Identifier: GPL-2.0-or-later
# This file is part of udslink

"""
Implementation of the configuration object.
"""

import functools

from scapy.config import ConfClass, Interceptor

from udslink import VERSION
from udslink.error import log_uds

# Typing imports
from typing import (
    Any,
    NoReturn,
    Optional,
)


def _readonly(name):
    # type: (str) -> NoReturn
    default = Conf.__dict__[name].default
    Interceptor.set_from_hook(conf, name, default)
    raise ValueError("Read-only value !")


ReadOnlyAttribute = functools.partial(
    Interceptor,
    hook=(lambda name, *args, **kwargs: _readonly(name))
)
ReadOnlyAttribute.__doc__ = "Read-only class attribute"


def _loglevel_changer(attr, val, old):
    # type: (str, int, int) -> int
    """Handle a change of conf.logLevel"""
    log_uds.setLevel(val)
    return val


def _key_provider_changer(attr, val, old):
    # type: (str, Optional[Any], Optional[Any]) -> Optional[Any]
    """Handle a change of conf.key_provider"""
    if val is not None and not callable(getattr(val, "get_normal_key", None)):
        raise ValueError(
            "%s must provide a get_normal_key(slot_id) method" % attr
        )
    return val


class Conf(ConfClass):
    """
    This object contains the configuration of udslink.
    """
    version: str = ReadOnlyAttribute("version", VERSION)
    #: object answering get_normal_key(slot_id) with a 16 bytes AES key.
    #: Used by derive_data_key() when no provider is given explicitly.
    key_provider = Interceptor("key_provider", None, _key_provider_changer)
    logLevel: int = Interceptor("logLevel", log_uds.level, _loglevel_changer)


conf = Conf()  # type: Conf
