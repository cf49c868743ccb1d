# SPDX-License-Identifier: GPL-2.0-or-later
# This file is part of udslink

"""
Global variables and constants of the UDS link layer.
"""

from enum import IntEnum


class EtherType(IntEnum):
    """Protocols carried in the SNAP header of UDS frames."""
    SecureData = 0x876D
    EAPoL = 0x888E


class KeySlotID(IntEnum):
    """Hardware AES key slots used by UDS."""
    UDSDataKey = 0x2D


# 802.2 LLC with SNAP extension
LLC_SAP_SNAP = 0xAA
LLC_CTRL_UI = 0x03
LLC_HEADER_SIZE = 8

SECUREDATA_HEADER_SIZE = 14
# securedata_size excludes the first 4 bytes of the SecureData header
SECUREDATA_SIZE_OFFSET = 4

EAPOL_START_MAGIC = 0x0201
EAPOL_LOGOFF_MAGIC = 0x0202
EAPOL_MAGIC_TYPES = {
    EAPOL_START_MAGIC: "EAPoL-Start",
    EAPOL_LOGOFF_MAGIC: "EAPoL-Logoff",
}

# Maximum number of nodes in a UDS network
UDS_MAX_NODES = 16
# Username is 10 UTF-16 code units
UDS_USERNAME_LENGTH = 10

EAPOL_NODEINFO_SIZE = 0x28
EAPOL_START_SIZE = 0x30
EAPOL_LOGOFF_SIZE = 0x298

# Trailing bytes of EAPoL-Start frames seen from real consoles. Their meaning
# is unknown.
EAPOL_START_HW_TRAILER = b"\x07\x88\x15\x00\x04\xe9\x13\x00"

# CCMP parameters
AES_BLOCK_SIZE = 16
CCMP_KEY_SIZE = 16
CCMP_MIC_SIZE = 8
# Frame control subfields excluded from authentication are masked to 0
CCMP_AAD_FC_MASK = 0x8FC7
FC_TO_DS = 1 << 0
FC_FROM_DS = 1 << 1
