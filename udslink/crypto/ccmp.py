# SPDX-License-Identifier: GPL-2.0-or-later
# This file is part of udslink

"""
CCMP protection of UDS 802.11 data frames (IEEE 802.11-2007 8.3.3).

The payload is protected with AES-CCM using an 8 bytes MIC. The AAD and the
nonce are built from the 802.11 header the way the standard does, limited
to the addressing modes used by the console.

Callers must never reuse a (sender, sequence number) pair for two different
payloads under the same key: the sequence number is the only varying part
of the nonce. Keep a strictly increasing sequence counter per sender.
"""

import struct

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESCCM

from scapy.compat import raw
from scapy.data import ETHER_ANY
from scapy.fields import MACField, XShortField
from scapy.packet import Packet
from scapy.utils import str2mac

from udslink.data import (
    CCMP_AAD_FC_MASK,
    CCMP_KEY_SIZE,
    CCMP_MIC_SIZE,
    FC_FROM_DS,
    FC_TO_DS,
)
from udslink.error import (
    AuthenticationError,
    BufferTooShort,
    EncryptionError,
    InvalidFrameControl,
    log_runtime,
)
from udslink.utils import MacAddress, mac_bytes


# 802.11-2007 8.3.3.3.2
class CCMPAAD(Packet):
    name = "CCMP AAD"
    fields_desc = [
        # Duration is excluded, it can change during retransmission
        XShortField("FC", 0),
        MACField("A1", ETHER_ANY),
        MACField("A2", ETHER_ANY),
        MACField("A3", ETHER_ANY),
        XShortField("SC", 0),
    ]


def build_aad(sender, receiver, bssid, frame_control):
    # type: (MacAddress, MacAddress, MacAddress, int) -> bytes
    """
    Generate the Additional Authenticated Data of an encrypted data frame.

    :raise udslink.error.InvalidFrameControl: unless exactly one of ToDS and
        FromDS is set. Both set is valid 802.11 but never sent by the console.
    """
    to_ds = bool(frame_control & FC_TO_DS)
    from_ds = bool(frame_control & FC_FROM_DS)
    if to_ds == from_ds:
        raise InvalidFrameControl(
            "frame control 0x%04X: expected exactly one of ToDS/FromDS" %
            frame_control)
    sender = mac_bytes(sender)
    receiver = mac_bytes(receiver)
    bssid = mac_bytes(bssid)
    # The meaning of the address fields depends on ToDS and FromDS
    if from_ds:
        addrs = (receiver, bssid, sender)
    else:
        addrs = (bssid, sender, receiver)
    return raw(CCMPAAD(
        FC=frame_control & CCMP_AAD_FC_MASK,
        A1=addrs[0],
        A2=addrs[1],
        A3=addrs[2],
        SC=0,
    ))


def build_nonce(sender, seq):
    # type: (MacAddress, int) -> bytes
    """
    Generate the 13 bytes CCM nonce (802.11-2007 8.3.3.3.3): priority 0,
    address 2 then a packet number holding the sequence number.
    """
    if not 0 <= seq <= 0xFFFF:
        raise ValueError("sequence number %d does not fit 16 bits" % seq)
    packet_number = b"\x00" * 4 + struct.pack("!H", seq)
    return b"\x00" + mac_bytes(sender) + packet_number


def _ccm(key):
    # type: (bytes) -> AESCCM
    if len(key) != CCMP_KEY_SIZE:
        raise EncryptionError("CCMP key must be %d bytes long, got %d" % (
            CCMP_KEY_SIZE, len(key)))
    try:
        return AESCCM(bytes(key), tag_length=CCMP_MIC_SIZE)
    except (TypeError, ValueError) as err:
        raise EncryptionError("Cannot set up AES-CCM: %s" % err) from err


def encrypt(payload, key, sender, receiver, bssid, seq, frame_control):
    # type: (bytes, bytes, MacAddress, MacAddress, MacAddress, int, int) -> bytes  # noqa: E501
    """
    Encrypt the payload of an 802.11 data frame.

    :returns: the ciphertext followed by the 8 bytes MIC
    :raise udslink.error.InvalidFrameControl: see build_aad()
    :raise udslink.error.EncryptionError: if the cipher cannot run on the
        given key
    """
    aad = build_aad(sender, receiver, bssid, frame_control)
    nonce = build_nonce(sender, seq)
    cipher = _ccm(key)
    try:
        return cipher.encrypt(nonce, bytes(payload), aad)
    except (TypeError, ValueError) as err:
        raise EncryptionError("AES-CCM encryption failed: %s" % err) from err


def decrypt(data, key, sender, receiver, bssid, seq, frame_control):
    # type: (bytes, bytes, MacAddress, MacAddress, MacAddress, int, int) -> bytes  # noqa: E501
    """
    Decrypt and authenticate the payload of an 802.11 data frame.

    :param data: the ciphertext followed by the 8 bytes MIC
    :raise udslink.error.BufferTooShort: if ``data`` cannot hold a MIC
    :raise udslink.error.AuthenticationError: if the MIC does not verify.
        No decrypted data is returned in that case.
    """
    if len(data) < CCMP_MIC_SIZE:
        raise BufferTooShort("CCMP data needs at least %d bytes, got %d" % (
            CCMP_MIC_SIZE, len(data)))
    aad = build_aad(sender, receiver, bssid, frame_control)
    nonce = build_nonce(sender, seq)
    cipher = _ccm(key)
    try:
        return cipher.decrypt(nonce, bytes(data), aad)
    except InvalidTag as err:
        log_runtime.debug("CCMP MIC check failed (sender %s, seq %d)",
                          str2mac(nonce[1:7]), seq)
        raise AuthenticationError("CCMP MIC check failed") from err
