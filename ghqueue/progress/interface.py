from abc import ABC, abstractmethod


class ProgressBarInterface(ABC):
    """
    Abstract base class for progress displays.

    The toolkit calls update() on every queue event and removeBar() once on
    shutdown. Implementations read whatever state they need from the queue
    registry they were created with.
    """

    @abstractmethod
    def update(self) -> None:
        """Refresh displayed progress."""
        pass

    @abstractmethod
    def removeBar(self) -> None:
        """Remove display and release its resources."""
        pass
