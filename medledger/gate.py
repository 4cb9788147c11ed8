from __future__ import annotations

from typing import Optional, Set

from medledger.errors import InvalidArgumentError, UnauthorizedError
from medledger.identifiers import is_zero_address
from medledger.models import LedgerState


class AuthorizationGate:
    """Owner singleton plus the writer allow-list. Callers pass normalized addresses."""

    def __init__(self, state: LedgerState):
        self.state = state
        self._authorized: Set[str] = set()

    @property
    def owner(self) -> str:
        return self.state.owner

    def is_owner(self, address: str) -> bool:
        return address == self.state.owner

    def is_authorized(self, address: str) -> bool:
        return self.is_owner(address) or address in self._authorized

    def require_owner(self, caller: str, action: str) -> None:
        if not self.is_owner(caller):
            raise UnauthorizedError("Only owner can perform this action.", action=action, caller=caller)

    def require_writer(self, caller: str, action: str) -> None:
        if not self.is_authorized(caller):
            raise UnauthorizedError("Not authorized to manage records.", action=action, caller=caller)

    def require_reader(self, caller: str, owner_address: str) -> None:
        if caller != owner_address and not self.is_owner(caller):
            raise UnauthorizedError("Not authorized to view these records.", caller=caller, patient=owner_address)

    def authorize(self, caller: str, address: str) -> None:
        self.require_owner(caller, "authorize")
        if is_zero_address(address):
            raise InvalidArgumentError("Invalid patient address.", patient=address)
        self._authorized.add(address)

    def deauthorize(self, caller: str, address: str) -> None:
        self.require_owner(caller, "deauthorize")
        self._authorized.discard(address)

    def transfer_ownership(self, caller: str, new_owner: str) -> str:
        self.require_owner(caller, "transfer_ownership")
        if is_zero_address(new_owner):
            raise InvalidArgumentError("Invalid new owner address.", new_owner=new_owner)
        previous = self.state.owner
        self.state.owner = new_owner
        return previous

    def link_registry(self, caller: str, registry: str) -> Optional[str]:
        self.require_owner(caller, "link_registry")
        self.state.registry_address = None if is_zero_address(registry) else registry
        return self.state.registry_address
