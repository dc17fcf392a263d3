"""Append-only output sink for a single deployment's response body."""

import io


class OutputSink:
    """Ordered, append-only text buffer owned by one deployment.

    Pipeline stages write into it in order; the HTTP layer reads the
    accumulated text once the deployment is over.
    """

    def __init__(self, initial: str = ""):
        self._buffer = io.StringIO()
        if initial:
            self._buffer.write(initial)

    def write(self, text: str) -> int:
        return self._buffer.write(text)

    def writeline(self, text: str = "") -> int:
        return self._buffer.write(f"{text}\n")

    def getvalue(self) -> str:
        return self._buffer.getvalue()

    def __len__(self) -> int:
        return len(self._buffer.getvalue())

    def __str__(self) -> str:
        return self._buffer.getvalue()
