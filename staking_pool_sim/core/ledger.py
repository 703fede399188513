#!/usr/bin/env python3
"""
Token Ledger Collaborators

The pool never holds token balances itself: native and staked tokens live on
external ledgers, and LP shares live on the pool's own share token. This module
defines the ledger interface the engine consumes, a dict-backed ledger used
by tests and simulations, and the journal a pool operation uses to undo its
own ledger calls when it fails.
"""

import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, List, Tuple

from .errors import AmountZero, InsufficientAllowance, InsufficientBalance, MintingNotSupported


class Asset(Enum):
    """Asset roles handled by the pool"""
    NATIVE = "NATIVE"
    STAKED = "STAKED"
    SHARE = "SHARE"


class TokenLedger(ABC):
    """Fungible token ledger consumed by the pool"""

    symbol: str

    @abstractmethod
    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        pass

    @abstractmethod
    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        pass

    @abstractmethod
    def balance_of(self, account: str) -> int:
        pass

    @abstractmethod
    def allowance(self, owner: str, spender: str) -> int:
        pass

    @abstractmethod
    def approve(self, owner: str, spender: str, amount: int) -> None:
        pass

    @abstractmethod
    def mint(self, recipient: str, amount: int) -> None:
        pass

    @abstractmethod
    def burn(self, account: str, amount: int) -> None:
        pass


class InMemoryTokenLedger(TokenLedger):
    """Dict-backed ledger with ERC20-style allowances, safe to share between pools"""

    def __init__(self, symbol: str, name: str = "", mintable: bool = False):
        self.symbol = symbol
        self.name = name or symbol
        self.mintable = mintable
        self.total_supply = 0
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}
        self._lock = threading.RLock()

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        with self._lock:
            self.allowances[(owner, spender)] = amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        with self._lock:
            self._move(sender, recipient, amount)

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        with self._lock:
            allowed = self.allowance(owner, spender)
            if allowed < amount:
                raise InsufficientAllowance(
                    f"{spender} may move {allowed} {self.symbol} from {owner}, requested {amount}"
                )
            self._move(owner, recipient, amount)
            self.allowances[(owner, spender)] = allowed - amount

    def mint(self, recipient: str, amount: int) -> None:
        if not self.mintable:
            raise MintingNotSupported(f"{self.symbol} cannot be minted")
        if amount <= 0:
            raise AmountZero(f"Cannot mint {amount} {self.symbol}")
        with self._lock:
            self.balances[recipient] = self.balance_of(recipient) + amount
            self.total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        with self._lock:
            balance = self.balance_of(account)
            if balance < amount:
                raise InsufficientBalance(
                    f"{account} holds {balance} {self.symbol}, cannot burn {amount}"
                )
            self.balances[account] = balance - amount
            self.total_supply -= amount

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(
                f"{sender} holds {balance} {self.symbol}, cannot transfer {amount}"
            )
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount


class ShareToken(InMemoryTokenLedger):
    """The pool's own LP share token"""

    def __init__(self, name: str, symbol: str):
        super().__init__(symbol, name, mintable=True)


class LedgerJournal:
    """Undo log for the ledger calls of one pool operation"""

    def __init__(self):
        self._undo: List[Callable[[], None]] = []

    def __len__(self) -> int:
        return len(self._undo)

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def clear(self) -> None:
        self._undo.clear()

    def rollback(self) -> None:
        """Undo recorded calls newest first"""
        while self._undo:
            self._undo.pop()()


class JournaledLedger(TokenLedger):
    """Forwards to a ledger and journals the inverse of every successful write

    Only the calls made through this wrapper are undone, so other users of a
    shared ledger keep whatever they committed in the meantime.
    """

    def __init__(self, ledger: TokenLedger, journal: LedgerJournal):
        self.ledger = ledger
        self.journal = journal
        self.symbol = ledger.symbol

    def balance_of(self, account: str) -> int:
        return self.ledger.balance_of(account)

    def allowance(self, owner: str, spender: str) -> int:
        return self.ledger.allowance(owner, spender)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        previous = self.ledger.allowance(owner, spender)
        self.ledger.approve(owner, spender, amount)
        self.journal.record(lambda: self.ledger.approve(owner, spender, previous))

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        self.ledger.transfer(sender, recipient, amount)
        self.journal.record(lambda: self.ledger.transfer(recipient, sender, amount))

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        self.ledger.transfer_from(spender, owner, recipient, amount)
        self.journal.record(lambda: self._return_pulled(spender, owner, recipient, amount))

    def mint(self, recipient: str, amount: int) -> None:
        before = self.ledger.balance_of(recipient)
        self.ledger.mint(recipient, amount)
        # undo only what actually arrived
        minted = self.ledger.balance_of(recipient) - before
        if minted > 0:
            self.journal.record(lambda: self.ledger.burn(recipient, minted))

    def burn(self, account: str, amount: int) -> None:
        self.ledger.burn(account, amount)
        self.journal.record(lambda: self.ledger.mint(account, amount))

    def _return_pulled(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        self.ledger.transfer(recipient, owner, amount)
        self.ledger.approve(owner, spender, self.ledger.allowance(owner, spender) + amount)
