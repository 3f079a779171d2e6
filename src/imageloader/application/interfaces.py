from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Callable, Optional


class BindTarget(ABC):
    """A reusable UI slot that images are delivered to.

    The loader only touches the slot through these four methods.  ``tag`` is
    the key the slot currently expects; a delivery is applied only while the
    tag still matches the url it was fetched for.
    """

    @abstractmethod
    def set_tag(self, key: Optional[str]) -> None:
        """Record the url this slot now expects (``None`` clears it)."""
        pass

    @abstractmethod
    def get_tag(self) -> Optional[str]:
        """Return the url this slot currently expects."""
        pass

    @abstractmethod
    def set_placeholder(self) -> None:
        """Show the placeholder visual."""
        pass

    @abstractmethod
    def set_image(self, image: Any) -> None:
        """Show a decoded image."""
        pass


class ImageDecoder(ABC):
    """Interface for the opaque bytes → image codec."""

    @abstractmethod
    def decode(self, data: bytes | BinaryIO) -> Any:
        """Decode *data*; raise ``DecodeFailure`` when it is not a valid image."""
        pass

    @abstractmethod
    def size_of(self, image: Any) -> int:
        """Return the decoded byte footprint used for memory accounting."""
        pass


class Dispatcher(ABC):
    """Runs callables on the context that owns the bind targets."""

    @abstractmethod
    def post(self, callback: Callable[[], None]) -> None:
        """Schedule *callback* on the owning context."""
        pass
