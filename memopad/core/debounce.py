from dataclasses import dataclass


@dataclass
class Debounce:
    """
    Trailing-edge debounce timer as plain state.

    reset() is the "qualifying event happened" transition: it cancels any pending
    deadline and starts a new one. fire() is polled by the owner; it returns True
    exactly once per burst, when the quiet period has elapsed.
    """
    delay: float
    pending: bool = False
    deadline: float = 0.0

    def reset(self, now: float) -> None:
        self.pending = True
        self.deadline = now + self.delay

    def cancel(self) -> None:
        self.pending = False

    def is_due(self, now: float) -> bool:
        return self.pending and now >= self.deadline

    def fire(self, now: float) -> bool:
        if not self.is_due(now):
            return False
        self.pending = False
        return True
