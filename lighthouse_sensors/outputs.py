"""Output channels: serial streams and UDP broadcast."""

import ipaddress
import socket
import sys
from dataclasses import dataclass
from typing import BinaryIO, Mapping, Optional, Union

NUM_OUTPUTS = 4
USB_SERIAL_OUTPUT_IDX = 0
WIFI_OUTPUT_IDX = 2
DEFAULT_LOCAL_PORT = 33000
DEFAULT_REMOTE_PORT = 3300
_MAX_DATAGRAM = 65535

IpLike = Union[str, int, ipaddress.IPv4Address]


@dataclass
class OutputDef:
    """Configuration of one output."""

    bitrate: int = 0


def broadcast_address(local_ip: IpLike, subnet_mask: IpLike) -> str:
    """Return the broadcast address of the subnet the local address belongs to."""
    local = int(ipaddress.IPv4Address(local_ip))
    mask = int(ipaddress.IPv4Address(subnet_mask))
    return str(ipaddress.IPv4Address(local | (~mask & 0xFFFFFFFF)))


class StreamOutput:
    """An output that writes to and reads from a binary stream."""

    def __init__(
        self,
        idx: int,
        definition: OutputDef,
        stream: BinaryIO,
        configure_bitrate: bool = False,
    ) -> None:
        self.idx = idx
        self.definition = definition
        self.stream = stream
        self.configure_bitrate = configure_bitrate

    def start(self) -> None:
        """Apply the configured bitrate to streams that have one."""
        if self.configure_bitrate and hasattr(self.stream, "baudrate"):
            self.stream.baudrate = self.definition.bitrate

    def write(self, data: bytes) -> int:
        written = self.stream.write(data)
        return len(data) if written is None else written

    def read(self) -> int:
        """Return the next byte, or -1 if none is available."""
        chunk = self.stream.read(1)
        return chunk[0] if chunk else -1


class UdpBroadcastOutput:
    """An output that broadcasts each write as one UDP datagram."""

    def __init__(
        self,
        idx: int,
        definition: OutputDef,
        local_ip: IpLike = "127.0.0.1",
        subnet_mask: IpLike = "255.255.255.255",
        local_port: int = DEFAULT_LOCAL_PORT,
        remote_port: int = DEFAULT_REMOTE_PORT,
    ) -> None:
        self.idx = idx
        self.definition = definition
        self.local_ip = local_ip
        self.subnet_mask = subnet_mask
        self.local_port = local_port
        self.remote_port = remote_port
        self.remote_ip: Optional[str] = None
        self._socket: Optional[socket.socket] = None
        self._packet = b""

    def start(self) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.bind(("", self.local_port))
        sock.setblocking(False)
        self._socket = sock
        self.local_port = sock.getsockname()[1]
        self.remote_ip = broadcast_address(self.local_ip, self.subnet_mask)

    def _require_socket(self) -> socket.socket:
        if self._socket is None:
            raise RuntimeError("UDP output is not started")
        return self._socket

    def write(self, data: bytes) -> int:
        sock = self._require_socket()
        try:
            return sock.sendto(data, (self.remote_ip, self.remote_port))
        except OSError as exc:
            sys.stderr.write(f"Error sending UDP packet: {exc}\n")
            return 0

    def read(self) -> int:
        """Return the next byte of the current datagram, or -1 if none is available."""
        sock = self._require_socket()
        if not self._packet:
            try:
                self._packet = sock.recv(_MAX_DATAGRAM)
            except (BlockingIOError, InterruptedError):
                return -1
        if not self._packet:
            return -1
        byte, self._packet = self._packet[0], self._packet[1:]
        return byte

    def close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        self._packet = b""

    def __enter__(self) -> "UdpBroadcastOutput":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def create_output(
    idx: int, definition: OutputDef, streams: Mapping[int, BinaryIO]
) -> Union[StreamOutput, UdpBroadcastOutput]:
    """Create the output for an index: USB serial, a hardware serial or UDP broadcast."""
    if not 0 <= idx < NUM_OUTPUTS:
        raise ValueError(f"Output index {idx} out of range 0..{NUM_OUTPUTS - 1}")
    if idx == USB_SERIAL_OUTPUT_IDX:
        if idx not in streams:
            raise ValueError("No stream for the USB serial output")
        return StreamOutput(idx, definition, streams[idx])
    if idx in streams:
        return StreamOutput(idx, definition, streams[idx], configure_bitrate=True)
    if idx == WIFI_OUTPUT_IDX:
        return UdpBroadcastOutput(idx, definition)
    raise ValueError(f"No output available for index {idx}")