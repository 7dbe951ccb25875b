from typing import Set


class PresenceRegistry:
    """Identities of the connections that are currently live."""

    def __init__(self) -> None:
        self._identities: Set[str] = set()

    def join(self, identity: str) -> bool:
        if identity in self._identities:
            return False
        self._identities.add(identity)
        return True

    def leave(self, identity: str) -> bool:
        if identity not in self._identities:
            return False
        self._identities.discard(identity)
        return True

    def size(self) -> int:
        return len(self._identities)

    def __contains__(self, identity: str) -> bool:
        return identity in self._identities
