import hashlib
import logging
import struct

import pytest

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from udslink.config import conf
from udslink.crypto.keys import (
    KeyProvider,
    StaticKeyProvider,
    compute_crypto_counter,
    derive_data_key,
)
from udslink.data import KeySlotID
from udslink.error import ConfigurationError, log_uds
from udslink.nodes import NetworkInfo

SLOT_KEY = bytes.fromhex("00112233445566778899aabbccddeeff")
NETWORK = NetworkInfo(
    host_mac_address="02:00:00:00:00:01",
    wlan_comm_id=0x12345678,
    id=0x9A,
    network_id=0xDEADBEEF,
)


@pytest.fixture
def provider():
    return StaticKeyProvider({KeySlotID.UDSDataKey: SLOT_KEY})


@pytest.fixture
def configured_provider(provider):
    old = conf.key_provider
    conf.key_provider = provider
    try:
        yield provider
    finally:
        conf.key_provider = old


class _BrokenProvider(KeyProvider):
    def __init__(self, result=None, exc=None):
        self.result = result
        self.exc = exc

    def get_normal_key(self, slot_id):
        if self.exc is not None:
            raise self.exc
        return self.result


def test_network_info_mac():
    assert NETWORK.host_mac_address == b"\x02\x00\x00\x00\x00\x01"
    with pytest.raises(ValueError):
        NetworkInfo(b"\x02\x00", 0, 0, 0)


def test_crypto_counter():
    data = (b"\x02\x00\x00\x00\x00\x01" +
            struct.pack("<IBxI", 0x12345678, 0x9A, 0xDEADBEEF))
    assert len(data) == 16
    assert compute_crypto_counter(NETWORK) == hashlib.md5(data).digest()


def test_derive_data_key(provider):
    passphrase = b"UDS passphrase"
    # AES-CTR over a single block: MD5(passphrase) ^ AES-ECB(counter)
    ecb = Cipher(algorithms.AES(SLOT_KEY), modes.ECB()).encryptor()
    keystream = ecb.update(compute_crypto_counter(NETWORK)) + ecb.finalize()
    expected = bytes(a ^ b for a, b in zip(
        hashlib.md5(passphrase).digest(), keystream))

    key = derive_data_key(passphrase, NETWORK, provider)
    assert len(key) == 16
    assert key == expected


def test_derive_data_key_deterministic(provider):
    assert derive_data_key(b"pass", NETWORK, provider) == \
        derive_data_key(b"pass", NETWORK, provider)
    assert derive_data_key(b"pass", NETWORK, provider) != \
        derive_data_key(b"other", NETWORK, provider)


def test_derive_data_key_depends_on_network(provider):
    other = NetworkInfo(NETWORK.host_mac_address, NETWORK.wlan_comm_id,
                        NETWORK.id + 1, NETWORK.network_id)
    assert derive_data_key(b"pass", NETWORK, provider) != \
        derive_data_key(b"pass", other, provider)


def test_derive_data_key_default_provider(configured_provider):
    assert derive_data_key(b"pass", NETWORK) == \
        derive_data_key(b"pass", NETWORK, configured_provider)


def test_derive_data_key_without_provider():
    old = conf.key_provider
    conf.key_provider = None
    try:
        with pytest.raises(ConfigurationError):
            derive_data_key(b"pass", NETWORK)
    finally:
        conf.key_provider = old


@pytest.mark.parametrize("broken", [
    StaticKeyProvider({}),
    _BrokenProvider(result=None),
    _BrokenProvider(result=b"\x00" * 15),
    _BrokenProvider(exc=OSError("no such file")),
    _BrokenProvider(exc=KeyError(0x2D)),
    _BrokenProvider(result="x" * 16),
    _BrokenProvider(result=12345),
    _BrokenProvider(exc=RuntimeError("hsm down")),
])
def test_derive_data_key_missing_key(broken):
    with pytest.raises(ConfigurationError):
        derive_data_key(b"pass", NETWORK, broken)


def test_conf_key_provider_validation():
    with pytest.raises(ValueError):
        conf.key_provider = object()


def test_conf_read_only_version():
    with pytest.raises(ValueError):
        conf.version = "1.0"


def test_conf_log_level():
    old = conf.logLevel
    try:
        conf.logLevel = logging.DEBUG
        assert log_uds.level == logging.DEBUG
    finally:
        conf.logLevel = old
    assert log_uds.level == old
