from abc import ABC, abstractmethod

from relaymeet.models import Athlete, Team


class TeamBalancer(ABC):
    """
    Interface for all team balancing algorithms.
    """

    def __init__(self):
        # observers receive progress callbacks while athletes are placed
        self.observers = []

    @abstractmethod
    def balance(self, athletes: list[Athlete], teams: list[Team]) -> None:
        """
        Mutate `teams` by appending every athlete in `athletes` to exactly one team.
        """
        raise NotImplementedError

    def add_observer(self, observer):
        """Register a balancing observer callback.

        The callback receives `(event_type, payload)`. Observers may raise to
        abort balancing, so algorithms should not swallow observer errors.

        Args:
            observer: Callable accepting (event_type: str, payload: dict).
        """
        if not hasattr(self, "observers"):
            self.observers = []
        self.observers.append(observer)

    def _notify(self, event_type: str, payload: dict):
        """Notify observers about algorithm progress.

        Args:
            event_type: Short label describing the notification.
            payload: Arbitrary metadata for the observer.
        """
        for observer in getattr(self, "observers", []):
            observer(event_type, payload)
