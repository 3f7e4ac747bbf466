from __future__ import annotations

from dataclasses import dataclass

from loadkit.lexicon import STATUS_INVALID, STATUS_OK, STATUS_TRUNCATED


@dataclass(frozen=True)
class BoundedWrite:
    """Outcome of writing into a caller-owned, fixed-capacity buffer."""

    status: str
    written: int

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def truncated(self) -> bool:
        return self.status == STATUS_TRUNCATED

    @property
    def invalid(self) -> bool:
        return self.status == STATUS_INVALID


INVALID_WRITE = BoundedWrite(STATUS_INVALID, 0)


def bounded(written: int, truncated: bool) -> BoundedWrite:
    return BoundedWrite(STATUS_TRUNCATED if truncated else STATUS_OK, int(written))
