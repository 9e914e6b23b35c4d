"""Producer nodes and the loggers that can be attached to them for debugging."""

from collections import deque
from typing import Any, Callable, List, Optional, Sequence, TextIO

LOG_VALUES_TO_KEEP = 16


def format_value(value: Any) -> str:
    """Render a produced message for debug logs."""
    formatter = getattr(value, "format_log", None)
    if callable(formatter):
        return formatter()
    return f"\n{value!r} "


def _header(name: str, idx: Optional[int]) -> str:
    return f"{name}{'' if idx is None else idx}: "


class CountingProducerLogger:
    """Counts produced values between prints."""

    def __init__(self, name: str, idx: Optional[int] = None) -> None:
        self.name = name
        self.idx = idx
        self.counter = 0

    def log_produce(self, value: Any) -> None:
        self.counter += 1

    def print_logs(self, stream: TextIO) -> None:
        stream.write(f"{_header(self.name, self.idx)}{self.counter} items\n")
        self.counter = 0


class PrintingProducerLogger:
    """Keeps the most recent produced values and prints them."""

    def __init__(self, name: str, idx: Optional[int] = None) -> None:
        self.name = name
        self.idx = idx
        self.counter = 0
        self._log: deque = deque(maxlen=LOG_VALUES_TO_KEEP)

    def log_produce(self, value: Any) -> None:
        self._log.append(value)
        self.counter += 1

    def print_logs(self, stream: TextIO) -> None:
        stream.write(_header(self.name, self.idx))
        if not self._log:
            stream.write("accumulating..\n")
            return
        stream.write("| ".join(format_value(v) for v in self._log))
        self._log.clear()
        stream.write(f"({self.counter} total)\n")
        self.counter = 0


class Producer:
    """Sends values to its consumers and to an optional logger."""

    def __init__(self) -> None:
        self._consumers: List[Callable[[Any], None]] = []
        self.logger: Any = None

    def add_consumer(self, consumer: Callable[[Any], None]) -> None:
        self._consumers.append(consumer)

    def set_logger(self, logger: Any) -> None:
        self.logger = logger

    def produce(self, value: Any) -> None:
        if self.logger is not None:
            self.logger.log_produce(value)
        for consumer in self._consumers:
            consumer(value)


def producer_debug_cmd(
    producer: Producer, words: Sequence[str], name: str, idx: Optional[int] = None
) -> bool:
    """Handle 'count', 'show' or 'off'; return whether the command was recognised."""
    command = words[0] if words else None
    if command == "count":
        producer.set_logger(CountingProducerLogger(name, idx))
    elif command == "show":
        producer.set_logger(PrintingProducerLogger(name, idx))
    elif command == "off":
        producer.set_logger(None)
    else:
        return False
    return True


def producer_debug_print(producer: Producer, stream: TextIO) -> None:
    print_logs = getattr(producer.logger, "print_logs", None)
    if callable(print_logs):
        print_logs(stream)