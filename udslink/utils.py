# SPDX-License-Identifier: GPL-2.0-or-later
# This file is part of udslink

"""
General utility functions.
"""

import struct

from scapy.utils import mac2str

# Typing imports
from typing import Union

MacAddress = Union[bytes, bytearray, str]


def mac_bytes(mac):
    # type: (MacAddress) -> bytes
    """
    Return the 6 bytes of a MAC address given either in binary form or
    as a "aa:bb:cc:dd:ee:ff" string.
    """
    if isinstance(mac, (bytes, bytearray)):
        b = bytes(mac)
    else:
        try:
            b = mac2str(mac)
        except (ValueError, TypeError, struct.error):
            raise ValueError("Invalid MAC address: %r" % (mac,))
    if len(b) != 6:
        raise ValueError("MAC address must be 6 bytes long, got %d" % len(b))
    return b
