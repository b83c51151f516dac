"""UDP writer: encodes GELF envelopes and sends them as datagrams."""

import logging
import socket

from journal2gelf.gelf import DEFAULT_CHUNK_SIZE, encode_message, split_chunks

logger = logging.getLogger(__name__)


class GELFWriter:
    """Sends GELF messages to a Graylog UDP input.

    The socket is connected, so an ICMP port-unreachable caused by one
    datagram surfaces as an OSError on a later send.
    """

    def __init__(self, host: str, port: int, compression: str = "gzip",
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._host = host
        self._port = port
        self._compression = compression
        self._chunk_size = chunk_size

        family, socktype, proto, _, address = socket.getaddrinfo(
            host, port, type=socket.SOCK_DGRAM
        )[0]
        self._sock = socket.socket(family, socktype, proto)
        try:
            self._sock.connect(address)
        except OSError:
            self._sock.close()
            raise
        logger.info("Sending GELF to %s:%d (%s)", host, port, compression)

    @property
    def address(self) -> tuple[str, int]:
        return self._host, self._port

    def write_message(self, message: dict) -> int:
        """Encode and send one envelope. Returns the number of datagrams sent.

        Raises OSError on transport failure and ChunkLimitExceeded when the
        message cannot be chunked.
        """
        payload = encode_message(message, self._compression)
        chunks = split_chunks(payload, self._chunk_size)
        for chunk in chunks:
            self._sock.send(chunk)
        return len(chunks)

    def close(self):
        """Close the underlying UDP socket."""
        self._sock.close()
