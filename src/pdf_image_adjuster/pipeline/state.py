import threading
from dataclasses import dataclass
from typing import Callable, List, Union


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Preparing:
    pass


@dataclass(frozen=True)
class Processing:
    current: int
    total: int

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(1.0, self.current / self.total)


@dataclass(frozen=True)
class Completed:
    pass


ProcessingState = Union[Idle, Preparing, Processing, Completed]

StateListener = Callable[[ProcessingState], None]


class ProcessingStateTracker:
    """
    Unified progress state for one batch run.

    Idle -> Preparing -> Processing(current, total)* -> Completed -> Idle
    Any state may be cancelled back to Idle without reaching Completed.
    Only the batch coordinator drives transitions; UI code just listens.
    """
    def __init__(self):
        self._state: ProcessingState = Idle()
        self._lock = threading.Lock()
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> ProcessingState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return isinstance(self._state, (Preparing, Processing))

    def add_listener(self, listener: StateListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def prepare(self):
        self._transition(Preparing(), allowed=(Idle,))

    def advance(self, current: int, total: int):
        previous = self._state
        if isinstance(previous, Processing) and current < previous.current:
            raise ValueError(f"Progress went backwards: {previous.current} -> {current}")
        self._transition(Processing(current, total), allowed=(Preparing, Processing))

    def complete(self):
        self._transition(Completed(), allowed=(Preparing, Processing))

    def cancel(self):
        """Return to Idle from any state (cancellation or failure)"""
        self._transition(Idle(), allowed=(Idle, Preparing, Processing, Completed))

    def reset(self):
        self._transition(Idle(), allowed=(Idle, Completed))

    def _transition(self, new_state: ProcessingState, allowed):
        with self._lock:
            if not isinstance(self._state, allowed):
                raise ValueError(
                    f"Illegal state transition {type(self._state).__name__} -> {type(new_state).__name__}"
                )
            self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)
