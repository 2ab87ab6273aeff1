# src/testrelay/server/framing.py

"""
Length-prefixed framing used between the test launcher and the result server.

A frame is the payload's byte length in ASCII decimal, a `:` delimiter, then
exactly that many payload bytes. The UTF-8 payload holds fields separated by
the ASCII unit separator; the first field is the command:

    start   <test id>
    result  <test id> <outcome> <message> <traceback>
    log     <message>
    error   <message>

Fields may be empty. The launcher script carries its own copy of the
encoder, since it runs under the target interpreter without this package.
"""

import structlog

from testrelay.exceptions import ProtocolError
from testrelay.server.events import ErrorEvent, LogEvent, ResultEvent, ServerEvent, StartEvent

log = structlog.get_logger("server.framing")

HEADER_DELIMITER = b":"
FIELD_SEPARATOR = "\x1f"
MAX_HEADER_LENGTH = 20
DEFAULT_MAX_FRAME_SIZE = 16 * 1024 * 1024
DEFAULT_MAX_PENDING_READS = 256
# Large frames get one extra read of slack per this many bytes.
MIN_READ_PROGRESS = 512

# command -> number of fields after the command
COMMAND_ARITY = {
    "start": 1,
    "result": 4,
    "log": 1,
    "error": 1,
}


def encode_frame(command: str, *fields: str) -> bytes:
    """Encodes one message as a frame."""
    payload = FIELD_SEPARATOR.join((command, *fields)).encode("utf-8")
    return str(len(payload)).encode("ascii") + HEADER_DELIMITER + payload


def decode_payload(payload: bytes) -> ServerEvent:
    """Turns one frame payload into a typed event."""
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"Frame payload is not valid UTF-8: {e}", details=e) from e

    command, *fields = text.split(FIELD_SEPARATOR)
    arity = COMMAND_ARITY.get(command)
    if arity is None:
        raise ProtocolError(f"Unknown command '{command}'")
    if len(fields) != arity:
        raise ProtocolError(f"Command '{command}' expects {arity} field(s), got {len(fields)}")

    if command == "start":
        return StartEvent(test=fields[0])
    if command == "result":
        test, outcome, message, traceback = fields
        return ResultEvent(test=test, outcome=outcome, message=message, traceback=traceback)
    if command == "log":
        return LogEvent(message=fields[0])
    return ErrorEvent(message=fields[0])


class FrameDecoder:
    """
    Incremental decoder for a byte stream of frames.

    `feed()` accepts whatever a transport read produced and returns every
    event completed by it, in order. Malformed input is returned as a
    ProtocolError in the same list and the offending bytes are dropped.
    """

    def __init__(
        self,
        max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
        max_pending_reads: int = DEFAULT_MAX_PENDING_READS,
    ):
        self.max_frame_size = max_frame_size
        self.max_pending_reads = max_pending_reads
        self._buffer = bytearray()
        self._pending_reads = 0
        self._skip_remaining = 0

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def feed(self, data: bytes) -> list[ServerEvent | ProtocolError]:
        self._buffer.extend(data)
        items: list[ServerEvent | ProtocolError] = []
        if self._skip_remaining:
            skipped = min(self._skip_remaining, len(self._buffer))
            del self._buffer[:skipped]
            self._skip_remaining -= skipped

        while self._buffer:
            delimiter_at = self._buffer.find(HEADER_DELIMITER, 0, MAX_HEADER_LENGTH + 1)
            if delimiter_at < 0:
                if len(self._buffer) > MAX_HEADER_LENGTH:
                    items.append(self._discard(len(self._buffer), "Frame header is missing its delimiter"))
                    continue
                break  # header split across reads

            header = bytes(self._buffer[:delimiter_at])
            if not header.isdigit():
                items.append(self._discard(delimiter_at + 1, f"Frame length {header!r} is not numeric"))
                continue

            length = int(header)
            if length > self.max_frame_size:
                items.append(
                    self._discard(delimiter_at + 1, f"Frame length {length} exceeds limit {self.max_frame_size}")
                )
                continue

            frame_end = delimiter_at + 1 + length
            if len(self._buffer) < frame_end:
                self._pending_reads += 1
                if self._pending_reads > max(self.max_pending_reads, -(-length // MIN_READ_PROGRESS)):
                    # The rest of this frame is still in flight; drop it on arrival.
                    missing = frame_end - len(self._buffer)
                    items.append(
                        self._discard(
                            len(self._buffer),
                            f"Frame of {length} bytes still incomplete after {self._pending_reads} reads",
                        )
                    )
                    self._skip_remaining = missing
                break

            payload = bytes(self._buffer[delimiter_at + 1:frame_end])
            del self._buffer[:frame_end]
            self._pending_reads = 0
            try:
                items.append(decode_payload(payload))
            except ProtocolError as e:
                log.warning("Dropping undecodable frame", error=str(e))
                items.append(e)

        return items

    def close(self) -> list[ProtocolError]:
        """Flushes the decoder at end of stream, reporting a truncated frame if any."""
        self._skip_remaining = 0
        if not self._buffer:
            return []
        return [self._discard(len(self._buffer), f"Connection closed with {len(self._buffer)} byte(s) of partial frame")]

    def _discard(self, count: int, reason: str) -> ProtocolError:
        log.warning("Discarding malformed frame bytes", reason=reason, discarded=count)
        del self._buffer[:count]
        self._pending_reads = 0
        return ProtocolError(reason)

# 🔼⚙️
