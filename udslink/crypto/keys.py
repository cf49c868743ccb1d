# SPDX-License-Identifier: GPL-2.0-or-later
# This file is part of udslink

"""
Derivation of the CCMP key protecting UDS data frames.

The key is the MD5 of the network passphrase, encrypted with AES-CTR under
the console key slot 0x2D. The initial counter block is the MD5 of the
network identity. MD5 is only used here for compatibility with the
hardware.
"""

import hashlib

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from scapy.compat import raw
from scapy.data import ETHER_ANY
from scapy.fields import ByteField, LEIntField, MACField, XByteField
from scapy.packet import Packet

from udslink.config import conf
from udslink.data import AES_BLOCK_SIZE, KeySlotID
from udslink.error import ConfigurationError, log_runtime
from udslink.nodes import NetworkInfo

# Typing imports
from typing import (
    Dict,
    Optional,
)


class KeyProvider(object):
    """
    Source of the console AES keys. Implementations return the 16 bytes
    normal key of a key slot, or raise ConfigurationError.
    """

    def get_normal_key(self, slot_id):
        # type: (int) -> bytes
        raise NotImplementedError


class StaticKeyProvider(KeyProvider):
    """
    Key provider backed by a mapping of slot ids to keys, e.g. keys dumped
    from a console.
    """

    def __init__(self, keys):
        # type: (Dict[int, bytes]) -> None
        self.keys = {int(slot): bytes(key) for slot, key in keys.items()}

    def get_normal_key(self, slot_id):
        # type: (int) -> bytes
        try:
            return self.keys[int(slot_id)]
        except KeyError:
            raise ConfigurationError("No normal key for slot 0x%02X" %
                                     slot_id)


class _DataCryptoCTRInput(Packet):
    name = "UDS data crypto CTR input"
    # Unlike the frames, this structure is little endian
    fields_desc = [
        MACField("host_mac", ETHER_ANY),
        LEIntField("wlan_comm_id", 0),
        ByteField("id", 0),
        XByteField("reserved", 0),
        LEIntField("network_id", 0),
    ]


def compute_crypto_counter(network_info):
    # type: (NetworkInfo) -> bytes
    """
    Return the initial counter block of the AES-CTR pass generating the data
    frames CCMP key of a network.
    """
    data = raw(_DataCryptoCTRInput(
        host_mac=network_info.host_mac_address,
        wlan_comm_id=network_info.wlan_comm_id,
        id=network_info.id,
        network_id=network_info.network_id,
    ))
    return hashlib.md5(data).digest()


def _get_slot_key(provider, slot_id):
    # type: (Optional[KeyProvider], int) -> bytes
    if provider is None:
        log_runtime.error("No key provider configured (conf.key_provider)")
        raise ConfigurationError("No key provider configured")
    try:
        key = provider.get_normal_key(slot_id)
    except ConfigurationError:
        log_runtime.error("Key slot 0x%02X is not available", slot_id)
        raise
    except Exception as err:
        log_runtime.error("Key slot 0x%02X is not available: %s",
                          slot_id, err)
        raise ConfigurationError("Key slot 0x%02X is not available" %
                                 slot_id) from err
    if not isinstance(key, (bytes, bytearray)) or len(key) != AES_BLOCK_SIZE:
        log_runtime.error("Key slot 0x%02X holds an invalid key", slot_id)
        raise ConfigurationError("Key slot 0x%02X holds an invalid key" %
                                 slot_id)
    return bytes(key)


def derive_data_key(passphrase, network_info, provider=None):
    # type: (bytes, NetworkInfo, Optional[KeyProvider]) -> bytes
    """
    Generate the key used for encrypting the 802.11 data frames of a network.

    The result is not cached: callers derive it again on every session
    establishment.

    :param passphrase: the network passphrase, as bytes
    :param network_info: identity of the network
    :param provider: KeyProvider to use instead of conf.key_provider
    :raise udslink.error.ConfigurationError: if the UDS data key slot is
        not available
    """
    if provider is None:
        provider = conf.key_provider
    passphrase_hash = hashlib.md5(bytes(passphrase)).digest()
    key = _get_slot_key(provider, KeySlotID.UDSDataKey)
    counter = compute_crypto_counter(network_info)
    encryptor = Cipher(algorithms.AES(key), modes.CTR(counter),
                       backend=default_backend()).encryptor()
    ccmp_key = encryptor.update(passphrase_hash) + encryptor.finalize()
    return ccmp_key
