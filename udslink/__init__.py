# SPDX-License-Identifier: GPL-2.0-or-later
# This file is part of udslink

"""
udslink: link-layer framing and CCMP data-frame protection of the 3DS
local wireless (UDS) protocol, built on top of Scapy.

Usable as a library from a network session layer that owns sockets,
node membership and sequence numbers.
"""

__all__ = [
    "VERSION",
    "__version__",
]

VERSION = __version__ = "0.1.0"
