"""Document tree abstraction the harvesting engine reads and drives."""
from dataclasses import dataclass
from typing import Callable, Protocol

# Attribute stamped on elements whose rendered visibility was measured live.
VISIBILITY_ATTR = "data-harvest-visible"

# Elements whose visibility is measured before every snapshot.
MEASURED_SELECTORS = (
    '.ms-DetailsRow[role="row"]',
    ".LoadingIndicator",
    ".ms-Spinner",
)


@dataclass(frozen=True)
class AddedNode:
    """An element added to the document tree."""

    classes: tuple[str, ...] = ()
    contains_row: bool = False


MutationListener = Callable[[list[AddedNode]], None]
Unsubscribe = Callable[[], None]


class Document(Protocol):
    """A live, mutable document tree.

    Every call re-reads the live tree; nothing is cached between calls.
    """

    async def snapshot(self) -> str:
        """Serialized HTML of the current tree, with visibility markers."""
        ...

    async def click(self, selector: str, index: int = 0) -> bool:
        """Activate the index-th element matching selector."""
        ...

    def subscribe(self, listener: MutationListener) -> Unsubscribe:
        """Register a listener for batches of added nodes."""
        ...
