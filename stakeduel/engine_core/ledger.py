"""
Ledger - Value custody and the external value-transfer call.

The ledger stands in for the platform the game runs on:
- Accounts hold balances keyed by 20-byte identity
- The game holds pooled stakes in a single custody balance
- Crediting an account runs its receiver hook, which may call back
  into the session machine before the transfer returns

Transfers are synchronous and never retried. A hook that raises is a
rejection: that one transfer is rolled back and reported as failed.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable
import logging

from .errors import InsufficientPayment
from .state import format_identity


logger = logging.getLogger(__name__)

ReceiverHook = Callable[[bytes, int], None]


class BlockClock:
    """Monotonic block-height clock."""

    def __init__(self, height: int = 1):
        if height < 0:
            raise ValueError("height must be non-negative")
        self.height = height

    def now(self) -> int:
        return self.height

    def advance(self, blocks: int = 1) -> int:
        if blocks < 0:
            raise ValueError("clock cannot move backwards")
        self.height += blocks
        return self.height


@dataclass
class TransferReceipt:
    """Outcome of a single best-effort transfer."""
    recipient: bytes
    amount: int
    success: bool
    reason: str | None = None


@dataclass
class Ledger:
    balances: dict[bytes, int] = field(default_factory=dict)
    custody: int = 0
    _receivers: dict[bytes, ReceiverHook] = field(default_factory=dict)

    def balance_of(self, account: bytes) -> int:
        return self.balances.get(account, 0)

    def fund(self, account: bytes, amount: int) -> int:
        """Mint funds into an account (test/simulation helper)."""
        if amount < 0:
            raise ValueError("amount must be non-negative")
        self.balances[account] = self.balance_of(account) + amount
        return self.balances[account]

    def register_receiver(self, account: bytes, hook: ReceiverHook | None):
        """Install (or with None, remove) the hook run when account is credited."""
        if hook is None:
            self._receivers.pop(account, None)
        else:
            self._receivers[account] = hook

    def collect(self, account: bytes, amount: int):
        """Move amount from account into custody."""
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientPayment(
                f"{format_identity(account)} holds {balance}, needs {amount}"
            )
        self.balances[account] = balance - amount
        self.custody += amount

    def transfer(self, recipient: bytes, amount: int) -> TransferReceipt:
        """
        Send amount from custody to recipient.

        Never raises on recipient refusal. Raises ValueError only if custody
        cannot cover the amount, which would be a machine bug.
        """
        if amount < 0 or amount > self.custody:
            raise ValueError(f"cannot transfer {amount} from custody of {self.custody}")

        self.custody -= amount
        self.balances[recipient] = self.balance_of(recipient) + amount

        hook = self._receivers.get(recipient)
        if hook is not None:
            try:
                hook(recipient, amount)
            except Exception as e:
                self.balances[recipient] -= amount
                self.custody += amount
                logger.warning(
                    "transfer of %d to %s rejected: %s",
                    amount, format_identity(recipient), e,
                )
                return TransferReceipt(recipient, amount, success=False, reason=str(e))

        return TransferReceipt(recipient, amount, success=True)
