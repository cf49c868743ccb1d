# SPDX-License-Identifier: GPL-2.0-or-later
# This file is part of udslink

"""
Logging subsystem and exception classes.
"""

import logging

from scapy.error import Scapy_Exception


class UDS_Exception(Scapy_Exception):
    pass


class BufferTooShort(UDS_Exception, ValueError):
    """A buffer or node list is shorter than the structure it must hold."""
    pass


class InvalidFrameControl(UDS_Exception, ValueError):
    """Exactly one of ToDS/FromDS must be set on a UDS data frame."""
    pass


class InvalidNodeInfo(UDS_Exception, ValueError):
    pass


class InvalidNodeList(UDS_Exception, ValueError):
    pass


class AuthenticationError(UDS_Exception):
    """
    The CCM tag of a data frame did not verify. The frame is corrupted,
    forged or protected with another key and must be dropped.
    """
    pass


class EncryptionError(UDS_Exception):
    pass


class ConfigurationError(UDS_Exception):
    """Required hardware key material is not available."""
    pass


# get udslink's master logger
log_uds = logging.getLogger("udslink")
# override the level if not already set
if log_uds.level == logging.NOTSET:
    log_uds.setLevel(logging.WARNING)
# logs at runtime
log_runtime = logging.getLogger("udslink.runtime")
