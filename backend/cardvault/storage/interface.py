"""
Abstract Storage Interface

Every client-originated read or write goes through a user-scoped method
that takes the requesting user's id. A row that does not exist and a row
owned by someone else look exactly the same to the caller:

- reads and mutators return None / False
- creates that reference an unowned parent raise OwnershipError

Two backends implement this: MemoryStorage (dev/tests) and SqlStorage.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Optional

from cardvault.schemas.autopay import AutopayRead, AutopayUpsert
from cardvault.schemas.bill import BillCreate, BillRead, PaymentCreate, PaymentRead
from cardvault.schemas.card import CardCreate, CardRead, CardUpdate
from cardvault.schemas.credit_score import CreditScoreCreate, CreditScoreRead
from cardvault.schemas.notification import NotificationCreate, NotificationRead
from cardvault.schemas.reward import RewardCreate, RewardRead, RewardUpdate
from cardvault.schemas.sms import SmsCreate, SmsRead
from cardvault.schemas.transaction import TransactionCreate, TransactionRead, TransactionUpdate
from cardvault.schemas.user import UserRead, UserUpsert


class Storage(ABC):

    # --- users ---

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserRead]:
        """Unscoped lookup, used when resolving a session."""

    @abstractmethod
    async def upsert_user(self, user: UserUpsert) -> UserRead:
        """Create or refresh a user keyed by the identity provider's id."""

    # --- cards ---

    @abstractmethod
    async def list_cards(self, user_id: str) -> list[CardRead]:
        """The user's cards in creation order (oldest first)."""

    @abstractmethod
    async def get_card(self, card_id: str, user_id: str) -> Optional[CardRead]: ...

    @abstractmethod
    async def create_card(self, user_id: str, card: CardCreate) -> CardRead: ...

    @abstractmethod
    async def update_card(self, card_id: str, user_id: str, changes: CardUpdate) -> Optional[CardRead]: ...

    @abstractmethod
    async def delete_card(self, card_id: str, user_id: str) -> bool:
        """Delete the card together with everything hanging off it."""

    @abstractmethod
    async def update_card_balance(self, card_id: str, user_id: str, balance: Decimal) -> Optional[CardRead]: ...

    @abstractmethod
    async def increment_card_balance(self, card_id: str, user_id: str, delta: Decimal) -> Optional[CardRead]:
        """Atomically add delta to the cached balance."""

    @abstractmethod
    async def resync_card_balance(self, card_id: str, user_id: str) -> Optional[CardRead]:
        """Recompute the cached balance from the card's transactions."""

    # --- rewards ---

    @abstractmethod
    async def list_rewards(self, user_id: str) -> list[RewardRead]: ...

    @abstractmethod
    async def list_rewards_by_card(self, card_id: str, user_id: str) -> list[RewardRead]: ...

    @abstractmethod
    async def get_reward(self, reward_id: str, user_id: str) -> Optional[RewardRead]: ...

    @abstractmethod
    async def create_reward(self, user_id: str, reward: RewardCreate) -> RewardRead: ...

    @abstractmethod
    async def update_reward(self, reward_id: str, user_id: str, changes: RewardUpdate) -> Optional[RewardRead]: ...

    @abstractmethod
    async def delete_reward(self, reward_id: str, user_id: str) -> bool: ...

    @abstractmethod
    async def update_reward_progress(self, reward_id: str, user_id: str, progress: Decimal) -> Optional[RewardRead]: ...

    @abstractmethod
    async def increment_reward_progress(self, reward_id: str, user_id: str, delta: Decimal) -> Optional[RewardRead]:
        """
        Atomically add delta to the reward's progress and return the new row.

        The previous progress is exactly ``new.current_progress - delta``,
        which lets callers detect threshold crossings without a separate
        read that could race with a concurrent increment.
        """

    # --- transactions ---

    @abstractmethod
    async def list_transactions(self, user_id: str) -> list[TransactionRead]:
        """Newest first by transaction date."""

    @abstractmethod
    async def list_transactions_by_card(self, card_id: str, user_id: str) -> list[TransactionRead]: ...

    @abstractmethod
    async def get_transaction(self, transaction_id: str, user_id: str) -> Optional[TransactionRead]: ...

    @abstractmethod
    async def create_transaction(self, user_id: str, transaction: TransactionCreate) -> TransactionRead: ...

    @abstractmethod
    async def update_transaction(
        self, transaction_id: str, user_id: str, changes: TransactionUpdate
    ) -> Optional[TransactionRead]:
        """Edit a transaction; an amount change moves the card balance by the difference."""

    @abstractmethod
    async def delete_transaction(self, transaction_id: str, user_id: str) -> bool:
        """Delete a transaction and take its amount back off the card balance."""

    # --- notifications ---

    @abstractmethod
    async def list_notifications(self, user_id: str) -> list[NotificationRead]:
        """Newest first."""

    @abstractmethod
    async def create_notification(self, user_id: str, notification: NotificationCreate) -> NotificationRead: ...

    @abstractmethod
    async def mark_notification_as_read(self, notification_id: str, user_id: str) -> Optional[NotificationRead]: ...

    # --- sms audit log ---

    @abstractmethod
    async def list_sms_messages(self, user_id: str) -> list[SmsRead]: ...

    @abstractmethod
    async def create_sms_message(self, user_id: str, sms: SmsCreate) -> SmsRead: ...

    @abstractmethod
    async def mark_sms_processed(
        self, sms_id: str, user_id: str, extracted_data: Optional[dict[str, Any]]
    ) -> Optional[SmsRead]: ...

    # --- bills & payments ---

    @abstractmethod
    async def list_bills(self, user_id: str) -> list[BillRead]:
        """Latest due date first."""

    @abstractmethod
    async def get_bill(self, bill_id: str, user_id: str) -> Optional[BillRead]: ...

    @abstractmethod
    async def create_bill(self, user_id: str, bill: BillCreate) -> BillRead: ...

    @abstractmethod
    async def update_bill_status(
        self, bill_id: str, user_id: str, status: str, expected_status: Optional[str] = None
    ) -> Optional[BillRead]:
        """
        Set a bill's status. With ``expected_status`` the change only
        happens if the bill is currently in that state (compare-and-set);
        otherwise None, same as a missing or foreign bill.
        """

    @abstractmethod
    async def list_payments(self, user_id: str) -> list[PaymentRead]:
        """Newest first by payment date."""

    @abstractmethod
    async def create_payment(self, user_id: str, payment: PaymentCreate) -> PaymentRead: ...

    # --- autopay ---

    @abstractmethod
    async def list_autopay_settings(self, user_id: str) -> list[AutopayRead]: ...

    @abstractmethod
    async def save_autopay_settings(self, card_id: str, user_id: str, settings: AutopayUpsert) -> AutopayRead:
        """Create or replace the single autopay row of a card."""

    @abstractmethod
    async def delete_autopay_settings(self, autopay_id: str, user_id: str) -> bool: ...

    # --- credit scores ---

    @abstractmethod
    async def list_credit_scores(self, user_id: str) -> list[CreditScoreRead]:
        """Most recently recorded first."""

    @abstractmethod
    async def create_credit_score(self, user_id: str, score: CreditScoreCreate) -> CreditScoreRead: ...
