# SPDX-License-Identifier: GPL-2.0-or-later
# This file is part of udslink

"""
Network and node descriptions shared with the UDS session layer.

Both records are owned by the session layer: NetworkInfo lives as long as
the hosted or joined network, NodeInfo entries come from its membership
table and are copied into handshake frames.
"""

from dataclasses import dataclass

from udslink.utils import mac_bytes


@dataclass(frozen=True)
class NetworkInfo:
    ''' Identity of a UDS network. '''
    host_mac_address: bytes
    ''' MAC address of the host console. '''
    wlan_comm_id: int
    ''' 32 bits identifier of the application community. '''
    id: int
    ''' 8 bits network instance id. '''
    network_id: int
    ''' 32 bits network id. '''

    def __post_init__(self):
        # type: () -> None
        object.__setattr__(self, "host_mac_address",
                           mac_bytes(self.host_mac_address))


@dataclass
class NodeInfo:
    ''' A participant of a UDS network. '''
    friend_code_seed: int = 0
    username: str = ""
    ''' At most 10 UTF-16 code units. '''
    network_node_id: int = 0
