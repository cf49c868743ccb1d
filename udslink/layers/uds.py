# SPDX-License-Identifier: GPL-2.0-or-later
# This file is part of udslink

"""
UDS link layer framing.

Every UDS frame starts with an 802.2 LLC header using the SNAP extension,
whose EtherType selects either a SecureData header (application data) or a
Nintendo specific EAPoL handshake packet. All multi-byte fields are big
endian and every structure has a fixed size::

    LLC / SNAP(code=0x876D) / UDSSecureData / data
    LLC / SNAP(code=0x888E) / UDSEAPoLStart
    LLC / SNAP(code=0x888E) / UDSEAPoLLogoff
"""

import struct

from scapy.compat import raw
from scapy.data import ETHER_ANY
from scapy.fields import (
    ByteField,
    MACField,
    PacketField,
    PacketListField,
    ShortField,
    StrFixedLenField,
    XLongField,
    XShortEnumField,
    XShortField,
    XStrFixedLenField,
)
from scapy.packet import Packet, bind_layers, bind_top_down
from scapy.layers.l2 import LLC, SNAP

from udslink.data import (
    EAPOL_LOGOFF_MAGIC,
    EAPOL_LOGOFF_SIZE,
    EAPOL_MAGIC_TYPES,
    EAPOL_NODEINFO_SIZE,
    EAPOL_START_HW_TRAILER,
    EAPOL_START_MAGIC,
    EAPOL_START_SIZE,
    LLC_CTRL_UI,
    LLC_HEADER_SIZE,
    LLC_SAP_SNAP,
    SECUREDATA_HEADER_SIZE,
    SECUREDATA_SIZE_OFFSET,
    UDS_MAX_NODES,
    UDS_USERNAME_LENGTH,
    EtherType,
)
from udslink.error import BufferTooShort, InvalidNodeInfo, InvalidNodeList
from udslink.nodes import NodeInfo
from udslink.utils import MacAddress, mac_bytes

# Typing imports
from typing import (
    Any,
    Optional,
    Sequence,
    Tuple,
    Union,
)


def _check_length(frame, needed, what):
    # type: (bytes, int, str) -> None
    if len(frame) < needed:
        raise BufferTooShort("%s needs %d bytes, got %d" % (
            what, needed, len(frame)))


def encode_username(username):
    # type: (str) -> bytes
    """
    Encode a username as the 20 bytes UTF-16BE field of the handshake frames.
    Names longer than the field are rejected, never truncated.
    """
    b = username.encode("utf-16-be")
    if len(b) > 2 * UDS_USERNAME_LENGTH:
        raise InvalidNodeInfo(
            "username %r is longer than %d UTF-16 code units" % (
                username, UDS_USERNAME_LENGTH))
    return b.ljust(2 * UDS_USERNAME_LENGTH, b"\x00")


def decode_username(b):
    # type: (bytes) -> str
    s = b.decode("utf-16-be", errors="replace")
    return s.split("\x00", 1)[0]


class UDSUsernameField(StrFixedLenField):
    """Fixed width UTF-16BE username, zero padded."""

    def __init__(self, name, default):
        # type: (str, bytes) -> None
        StrFixedLenField.__init__(self, name, default,
                                  length=2 * UDS_USERNAME_LENGTH)

    def any2i(self, pkt, x):
        # type: (Optional[Packet], Any) -> bytes
        if isinstance(x, str):
            return self.h2i(pkt, x)
        return super(UDSUsernameField, self).any2i(pkt, x)

    def h2i(self, pkt, x):
        # type: (Optional[Packet], Any) -> bytes
        if isinstance(x, str):
            return encode_username(x)
        if x is not None and len(x) > 2 * UDS_USERNAME_LENGTH:
            raise InvalidNodeInfo("username is %d bytes long, at most %d "
                                  "are allowed" % (len(x),
                                                   2 * UDS_USERNAME_LENGTH))
        return x

    def i2h(self, pkt, x):
        # type: (Optional[Packet], bytes) -> str
        return decode_username(x or b"")

    def i2repr(self, pkt, x):
        # type: (Optional[Packet], bytes) -> str
        return repr(self.i2h(pkt, x))


#####################
#     SecureData    #
#####################


class UDSSecureData(Packet):
    name = "UDS SecureData"
    fields_desc = [
        ShortField("protocol_size", None),
        XShortField("reserved", 0),
        # Everything but the first 4 bytes of this header: those are likely
        # the header of another container protocol.
        ShortField("securedata_size", None),
        # Frames sent by applications are never management frames
        ByteField("is_management", 0),
        ByteField("data_channel", 0),
        ShortField("sequence_number", 0),
        ShortField("dest_node_id", 0),
        ShortField("src_node_id", 0),
    ]

    def post_build(self, p, pay):
        # type: (bytes, bytes) -> bytes
        protocol_size = self.protocol_size
        if protocol_size is None:
            protocol_size = len(p) + len(pay)
            p = struct.pack("!H", protocol_size) + p[2:]
        if self.securedata_size is None:
            p = p[:4] + struct.pack(
                "!H", protocol_size - SECUREDATA_SIZE_OFFSET) + p[6:]
        return p + pay

    def actual_data_size(self):
        # type: () -> int
        """Size of the data following this header"""
        return max(0, (self.protocol_size or 0) - SECUREDATA_HEADER_SIZE)

    def extract_padding(self, s):
        # type: (bytes) -> Tuple[bytes, bytes]
        tmp_len = self.actual_data_size()
        return s[:tmp_len], s[tmp_len:]

    def mysummary(self):
        # type: () -> str
        return self.sprintf("UDS SecureData %src_node_id% > %dest_node_id% "
                            "chan=%data_channel% seq=%sequence_number%")


#####################
#       EAPoL       #
#####################


class UDSNodeInfo(Packet):
    name = "UDS EAPoL node info"
    fields_desc = [
        XLongField("friend_code_seed", 0),
        UDSUsernameField("username", b""),
        XStrFixedLenField("reserved1", b"", 4),
        ShortField("network_node_id", 0),
        XStrFixedLenField("reserved2", b"", 6),
    ]

    def extract_padding(self, s):
        # type: (bytes) -> Tuple[bytes, bytes]
        return b"", s


class UDSEAPoLStart(Packet):
    name = "UDS EAPoL-Start"
    fields_desc = [
        XShortEnumField("magic", EAPOL_START_MAGIC, EAPOL_MAGIC_TYPES),
        ShortField("association_id", 0),
        # Hardcoded to 1 by the console
        ShortField("unknown", 1),
        XStrFixedLenField("reserved", b"", 2),
        PacketField("node", UDSNodeInfo(), UDSNodeInfo),
    ]


class UDSEAPoLLogoff(Packet):
    name = "UDS EAPoL-Logoff"
    fields_desc = [
        XShortEnumField("magic", EAPOL_LOGOFF_MAGIC, EAPOL_MAGIC_TYPES),
        XStrFixedLenField("reserved1", b"", 2),
        ShortField("assigned_node_id", 0),
        MACField("client_mac_address", ETHER_ANY),
        XStrFixedLenField("reserved2", b"", 6),
        ByteField("connected_nodes", 0),
        ByteField("max_nodes", 0),
        XStrFixedLenField("reserved3", b"", 4),
        # Always UDS_MAX_NODES entries on the wire, only the first max_nodes
        # ones are meaningful.
        PacketListField("nodes", [], UDSNodeInfo,
                        count_from=lambda pkt: UDS_MAX_NODES),
    ]

    def post_build(self, p, pay):
        # type: (bytes, bytes) -> bytes
        # Missing entries are sent as empty nodes
        if len(p) < EAPOL_LOGOFF_SIZE:
            p += b"\x00" * (EAPOL_LOGOFF_SIZE - len(p))
        return p + pay

    def mysummary(self):
        # type: () -> str
        return self.sprintf("UDS EAPoL-Logoff node=%assigned_node_id% "
                            "%connected_nodes%/%max_nodes%")


def _check_node_counts(max_nodes, total_nodes):
    # type: (int, int) -> None
    if not 0 <= total_nodes <= max_nodes <= UDS_MAX_NODES:
        raise InvalidNodeList(
            "expected total_nodes (%d) <= max_nodes (%d) <= %d" % (
                total_nodes, max_nodes, UDS_MAX_NODES))


def _node_to_packet(node_info, with_node_id=True):
    # type: (NodeInfo, bool) -> UDSNodeInfo
    return UDSNodeInfo(
        friend_code_seed=node_info.friend_code_seed,
        username=encode_username(node_info.username),
        network_node_id=node_info.network_node_id if with_node_id else 0,
    )


#####################
#      Helpers      #
#####################


def encode_llc_header(protocol):
    # type: (int) -> bytes
    """
    Generate a SNAP-enabled 802.2 LLC header for the specified protocol.
    """
    return raw(LLC(dsap=LLC_SAP_SNAP, ssap=LLC_SAP_SNAP, ctrl=LLC_CTRL_UI) /
               SNAP(OUI=0, code=int(protocol)))


def encode_secure_data_header(data_size, channel, dest_node, src_node, seq):
    # type: (int, int, int, int, int) -> bytes
    """
    Generate a SecureData header for ``data_size`` bytes of data.
    """
    if not 0 <= data_size <= 0xFFFF - SECUREDATA_HEADER_SIZE:
        raise ValueError("data_size %d does not fit a SecureData header" %
                         data_size)
    protocol_size = data_size + SECUREDATA_HEADER_SIZE
    return raw(UDSSecureData(
        protocol_size=protocol_size,
        securedata_size=protocol_size - SECUREDATA_SIZE_OFFSET,
        is_management=0,
        data_channel=channel,
        sequence_number=seq,
        dest_node_id=dest_node,
        src_node_id=src_node,
    ))


def build_data_frame(data, channel, dest_node, src_node, seq):
    # type: (bytes, int, int, int, int) -> bytes
    """
    Build a complete data frame: LLC header, SecureData header then data.
    """
    return (encode_llc_header(EtherType.SecureData) +
            encode_secure_data_header(len(data), channel, dest_node,
                                      src_node, seq) +
            bytes(data))


def parse_secure_data_header(frame):
    # type: (bytes) -> UDSSecureData
    """
    Parse the SecureData header following the LLC header of ``frame``.

    :raise udslink.error.BufferTooShort: if the frame cannot hold both headers
    """
    end = LLC_HEADER_SIZE + SECUREDATA_HEADER_SIZE
    _check_length(frame, end, "SecureData frame")
    return UDSSecureData(bytes(frame[LLC_HEADER_SIZE:end]))


def build_eapol_start_frame(association_id, node_info, hw_trailer=False):
    # type: (int, NodeInfo, bool) -> bytes
    """
    Build an EAPoL-Start frame announcing ``node_info``.

    The network node id and reserved bytes ending the frame are left to zero.
    Real consoles were seen sending a fixed, unexplained pattern there
    instead: set ``hw_trailer`` to reproduce it verbatim.
    """
    eapol_start = UDSEAPoLStart(
        association_id=association_id,
        node=_node_to_packet(node_info, with_node_id=False),
    )
    frame = encode_llc_header(EtherType.EAPoL) + raw(eapol_start)
    if hw_trailer:
        frame = frame[:-len(EAPOL_START_HW_TRAILER)] + EAPOL_START_HW_TRAILER
    return frame


def build_eapol_logoff_frame(mac, network_node_id, nodes, max_nodes,
                             total_nodes):
    # type: (MacAddress, int, Sequence[NodeInfo], int, int) -> bytes
    """
    Build an EAPoL-Logoff frame, sent by the host to a joining client with
    the node id it was assigned and the list of nodes of the network.

    :param nodes: at least ``max_nodes`` entries, only the first ``max_nodes``
        ones are serialized
    :raise udslink.error.BufferTooShort: if ``nodes`` is too short
    :raise udslink.error.InvalidNodeList: if the node counts are inconsistent
    """
    _check_node_counts(max_nodes, total_nodes)
    if len(nodes) < max_nodes:
        raise BufferTooShort("node list needs %d entries, got %d" % (
            max_nodes, len(nodes)))
    entries = [_node_to_packet(n) for n in nodes[:max_nodes]]
    entries += [UDSNodeInfo() for _ in range(UDS_MAX_NODES - max_nodes)]
    eapol_logoff = UDSEAPoLLogoff(
        assigned_node_id=network_node_id,
        client_mac_address=mac_bytes(mac),
        connected_nodes=total_nodes,
        max_nodes=max_nodes,
        nodes=entries,
    )
    return encode_llc_header(EtherType.EAPoL) + raw(eapol_logoff)


def get_frame_ether_type(frame):
    # type: (bytes) -> Union[EtherType, int]
    """
    Return the protocol of the LLC header of ``frame``. Unknown protocols
    are returned as plain integers.
    """
    _check_length(frame, LLC_HEADER_SIZE, "LLC header")
    code = SNAP(bytes(frame[3:LLC_HEADER_SIZE])).code
    try:
        return EtherType(code)
    except ValueError:
        return code


def get_eapol_frame_type(frame):
    # type: (bytes) -> int
    """
    Return the magic of an EAPoL frame (EAPOL_START_MAGIC or
    EAPOL_LOGOFF_MAGIC for valid frames).
    """
    _check_length(frame, LLC_HEADER_SIZE + 2, "EAPoL frame")
    return struct.unpack("!H", frame[LLC_HEADER_SIZE:LLC_HEADER_SIZE + 2])[0]


def parse_eapol_logoff_frame(frame):
    # type: (bytes) -> UDSEAPoLLogoff
    """
    Parse an EAPoL-Logoff frame.

    :raise udslink.error.BufferTooShort: on truncated frames
    :raise udslink.error.InvalidNodeList: if the node counts are inconsistent
    """
    end = LLC_HEADER_SIZE + EAPOL_LOGOFF_SIZE
    _check_length(frame, end, "EAPoL-Logoff frame")
    eapol_logoff = UDSEAPoLLogoff(bytes(frame[LLC_HEADER_SIZE:end]))
    _check_node_counts(eapol_logoff.max_nodes, eapol_logoff.connected_nodes)
    return eapol_logoff


def deserialize_node_info_from_frame(frame):
    # type: (bytes) -> NodeInfo
    """
    Extract the node announced by an EAPoL-Start frame. The network node id
    is not meaningful in those frames and is left to 0.
    """
    end = LLC_HEADER_SIZE + EAPOL_START_SIZE
    _check_length(frame, end, "EAPoL-Start frame")
    eapol_start = UDSEAPoLStart(bytes(frame[LLC_HEADER_SIZE:end]))
    node = eapol_start.node
    return NodeInfo(
        friend_code_seed=node.friend_code_seed,
        username=decode_username(node.getfieldval("username")),
    )


def deserialize_node_info(node):
    # type: (Union[UDSNodeInfo, bytes]) -> NodeInfo
    """
    Convert a node entry of an EAPoL-Logoff frame into a NodeInfo.
    """
    if not isinstance(node, UDSNodeInfo):
        _check_length(node, EAPOL_NODEINFO_SIZE, "EAPoL node info")
        node = UDSNodeInfo(bytes(node[:EAPOL_NODEINFO_SIZE]))
    return NodeInfo(
        friend_code_seed=node.friend_code_seed,
        username=decode_username(node.getfieldval("username")),
        network_node_id=node.network_node_id,
    )


bind_layers(SNAP, UDSSecureData, code=int(EtherType.SecureData))
# Dissection of SNAP code 0x888E is left to scapy.layers.eap
bind_top_down(SNAP, UDSEAPoLStart, code=int(EtherType.EAPoL))
bind_top_down(SNAP, UDSEAPoLLogoff, code=int(EtherType.EAPoL))
