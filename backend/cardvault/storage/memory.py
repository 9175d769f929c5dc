"""
In-memory storage backend.

One arena (dict keyed by id) per entity plus an index of card ids per
user. Ownership is checked by walking each row's parent chain up to the
card and comparing the card's user_id.

No locking: every method runs to completion without awaiting, so it is
only safe when confined to a single event loop.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from cardvault.core.exceptions import OwnershipError
from cardvault.models._base import new_id, utcnow
from cardvault.models.bill import BillStatus
from cardvault.schemas.autopay import AutopayRead, AutopayUpsert
from cardvault.schemas.base import to_money
from cardvault.schemas.bill import BillCreate, BillRead, PaymentCreate, PaymentRead
from cardvault.schemas.card import CardCreate, CardRead, CardUpdate
from cardvault.schemas.credit_score import CreditScoreCreate, CreditScoreRead
from cardvault.schemas.notification import NotificationCreate, NotificationRead
from cardvault.schemas.reward import RewardCreate, RewardRead, RewardUpdate
from cardvault.schemas.sms import SmsCreate, SmsRead
from cardvault.schemas.transaction import TransactionCreate, TransactionRead, TransactionUpdate
from cardvault.schemas.user import UserRead, UserUpsert
from cardvault.storage.interface import Storage
from cardvault.storage.values import plain_values

logger = logging.getLogger(__name__)


def _replace(row, **changes):
    """Re-validated copy of a frozen read model."""
    return type(row).model_validate({**row.model_dump(), **changes})


class MemoryStorage(Storage):
    def __init__(self):
        self._users: dict[str, UserRead] = {}
        self._users_by_external_id: dict[str, str] = {}
        self._cards: dict[str, CardRead] = {}
        self._card_ids_by_user: dict[str, list[str]] = {}
        self._rewards: dict[str, RewardRead] = {}
        self._transactions: dict[str, TransactionRead] = {}
        self._notifications: dict[str, NotificationRead] = {}
        self._sms_messages: dict[str, SmsRead] = {}
        self._bills: dict[str, BillRead] = {}
        self._payments: dict[str, PaymentRead] = {}
        self._autopay: dict[str, AutopayRead] = {}
        self._credit_scores: dict[str, CreditScoreRead] = {}

    # =========================
    # OWNERSHIP CHAIN
    # =========================
    def _owned_card(self, card_id: Optional[str], user_id: str) -> Optional[CardRead]:
        card = self._cards.get(card_id) if card_id else None
        if card is None or card.user_id != user_id:
            return None
        return card

    def _owned_by_card(self, arena: dict, row_id: str, user_id: str):
        row = arena.get(row_id)
        if row is None or self._owned_card(row.card_id, user_id) is None:
            return None
        return row

    def _owned_notification(self, notification_id: str, user_id: str) -> Optional[NotificationRead]:
        notification = self._notifications.get(notification_id)
        if notification is None:
            return None
        if notification.user_id == user_id:
            return notification
        if notification.card_id and self._owned_card(notification.card_id, user_id):
            return notification
        return None

    def _user_card_ids(self, user_id: str) -> list[str]:
        return list(self._card_ids_by_user.get(user_id, []))

    def _require_card(self, card_id: str, user_id: str) -> CardRead:
        card = self._owned_card(card_id, user_id)
        if card is None:
            raise OwnershipError("Card", card_id)
        return card

    # =========================
    # USERS
    # =========================
    async def get_user(self, user_id):
        return self._users.get(user_id)

    async def upsert_user(self, user: UserUpsert):
        values = plain_values(user)
        now = utcnow()
        existing_id = self._users_by_external_id.get(user.external_id)
        if existing_id:
            row = _replace(self._users[existing_id], **values, updated_at=now)
        else:
            row = UserRead(id=new_id(), created_at=now, updated_at=now, **values)
            self._users_by_external_id[user.external_id] = row.id
        self._users[row.id] = row
        return row

    # =========================
    # CARDS
    # =========================
    async def list_cards(self, user_id):
        cards = [self._cards[card_id] for card_id in self._user_card_ids(user_id)]
        return sorted(cards, key=lambda c: (c.created_at, c.id))

    async def get_card(self, card_id, user_id):
        return self._owned_card(card_id, user_id)

    async def create_card(self, user_id, card: CardCreate):
        row = CardRead(
            id=new_id(),
            user_id=user_id,
            current_balance=Decimal("0"),
            created_at=utcnow(),
            **plain_values(card),
        )
        self._cards[row.id] = row
        self._card_ids_by_user.setdefault(user_id, []).append(row.id)
        return row

    async def update_card(self, card_id, user_id, changes: CardUpdate):
        card = self._owned_card(card_id, user_id)
        if card is None:
            return None
        row = _replace(card, **plain_values(changes, partial=True))
        self._cards[card_id] = row
        return row

    async def delete_card(self, card_id, user_id):
        if self._owned_card(card_id, user_id) is None:
            return False

        for arena in (self._rewards, self._transactions, self._bills, self._payments, self._autopay):
            for row_id in [k for k, v in arena.items() if v.card_id == card_id]:
                del arena[row_id]
        for row_id in [k for k, v in self._notifications.items() if v.card_id == card_id]:
            del self._notifications[row_id]

        del self._cards[card_id]
        self._card_ids_by_user[user_id].remove(card_id)
        return True

    async def update_card_balance(self, card_id, user_id, balance):
        card = self._owned_card(card_id, user_id)
        if card is None:
            return None
        row = _replace(card, current_balance=to_money(balance))
        self._cards[card_id] = row
        return row

    async def increment_card_balance(self, card_id, user_id, delta):
        card = self._owned_card(card_id, user_id)
        if card is None:
            return None
        return await self.update_card_balance(card_id, user_id, card.current_balance + to_money(delta))

    async def resync_card_balance(self, card_id, user_id):
        if self._owned_card(card_id, user_id) is None:
            return None
        total = sum(
            (t.amount for t in self._transactions.values() if t.card_id == card_id),
            Decimal("0"),
        )
        return await self.update_card_balance(card_id, user_id, total)

    # =========================
    # REWARDS
    # =========================
    async def list_rewards(self, user_id):
        card_ids = set(self._user_card_ids(user_id))
        rows = [r for r in self._rewards.values() if r.card_id in card_ids]
        return sorted(rows, key=lambda r: (r.created_at, r.id))

    async def list_rewards_by_card(self, card_id, user_id):
        if self._owned_card(card_id, user_id) is None:
            return []
        rows = [r for r in self._rewards.values() if r.card_id == card_id]
        return sorted(rows, key=lambda r: (r.created_at, r.id))

    async def get_reward(self, reward_id, user_id):
        return self._owned_by_card(self._rewards, reward_id, user_id)

    async def create_reward(self, user_id, reward: RewardCreate):
        self._require_card(reward.card_id, user_id)
        row = RewardRead(
            id=new_id(),
            current_progress=Decimal("0"),
            created_at=utcnow(),
            **plain_values(reward),
        )
        self._rewards[row.id] = row
        return row

    async def update_reward(self, reward_id, user_id, changes: RewardUpdate):
        reward = self._owned_by_card(self._rewards, reward_id, user_id)
        if reward is None:
            return None
        row = _replace(reward, **plain_values(changes, partial=True))
        self._rewards[reward_id] = row
        return row

    async def delete_reward(self, reward_id, user_id):
        if self._owned_by_card(self._rewards, reward_id, user_id) is None:
            return False
        del self._rewards[reward_id]
        return True

    async def update_reward_progress(self, reward_id, user_id, progress):
        reward = self._owned_by_card(self._rewards, reward_id, user_id)
        if reward is None:
            return None
        row = _replace(reward, current_progress=to_money(progress))
        self._rewards[reward_id] = row
        return row

    async def increment_reward_progress(self, reward_id, user_id, delta):
        reward = self._owned_by_card(self._rewards, reward_id, user_id)
        if reward is None:
            return None
        return await self.update_reward_progress(
            reward_id, user_id, reward.current_progress + to_money(delta)
        )

    # =========================
    # TRANSACTIONS
    # =========================
    async def list_transactions(self, user_id):
        card_ids = set(self._user_card_ids(user_id))
        rows = [t for t in self._transactions.values() if t.card_id in card_ids]
        return sorted(rows, key=lambda t: (t.transaction_date, t.id), reverse=True)

    async def list_transactions_by_card(self, card_id, user_id):
        if self._owned_card(card_id, user_id) is None:
            return []
        rows = [t for t in self._transactions.values() if t.card_id == card_id]
        return sorted(rows, key=lambda t: (t.transaction_date, t.id), reverse=True)

    async def get_transaction(self, transaction_id, user_id):
        return self._owned_by_card(self._transactions, transaction_id, user_id)

    async def create_transaction(self, user_id, transaction: TransactionCreate):
        self._require_card(transaction.card_id, user_id)
        values = plain_values(transaction)
        values["transaction_date"] = values.get("transaction_date") or utcnow()
        row = TransactionRead(id=new_id(), **values)
        self._transactions[row.id] = row
        return row

    async def update_transaction(self, transaction_id, user_id, changes: TransactionUpdate):
        transaction = self._owned_by_card(self._transactions, transaction_id, user_id)
        if transaction is None:
            return None
        row = _replace(transaction, **plain_values(changes, partial=True))
        self._transactions[transaction_id] = row
        if row.amount != transaction.amount:
            await self.increment_card_balance(row.card_id, user_id, row.amount - transaction.amount)
        return row

    async def delete_transaction(self, transaction_id, user_id):
        transaction = self._owned_by_card(self._transactions, transaction_id, user_id)
        if transaction is None:
            return False
        del self._transactions[transaction_id]
        await self.increment_card_balance(transaction.card_id, user_id, -transaction.amount)
        return True

    # =========================
    # NOTIFICATIONS
    # =========================
    async def list_notifications(self, user_id):
        rows = [
            n for n in self._notifications.values()
            if self._owned_notification(n.id, user_id) is not None
        ]
        return sorted(rows, key=lambda n: (n.created_at, n.id), reverse=True)

    async def create_notification(self, user_id, notification: NotificationCreate):
        if notification.card_id is not None:
            self._require_card(notification.card_id, user_id)
        row = NotificationRead(
            id=new_id(),
            user_id=user_id,
            is_read=False,
            created_at=utcnow(),
            **plain_values(notification),
        )
        self._notifications[row.id] = row
        return row

    async def mark_notification_as_read(self, notification_id, user_id):
        notification = self._owned_notification(notification_id, user_id)
        if notification is None:
            return None
        if notification.is_read:
            return notification
        row = _replace(notification, is_read=True)
        self._notifications[notification_id] = row
        return row

    # =========================
    # SMS
    # =========================
    async def list_sms_messages(self, user_id):
        rows = [s for s in self._sms_messages.values() if s.user_id == user_id]
        return sorted(rows, key=lambda s: (s.received_at, s.id), reverse=True)

    async def create_sms_message(self, user_id, sms: SmsCreate):
        row = SmsRead(
            id=new_id(),
            user_id=user_id,
            received_at=utcnow(),
            processed=False,
            extracted_data=None,
            **plain_values(sms),
        )
        self._sms_messages[row.id] = row
        return row

    async def mark_sms_processed(self, sms_id, user_id, extracted_data: Optional[dict[str, Any]]):
        sms = self._sms_messages.get(sms_id)
        if sms is None or sms.user_id != user_id:
            return None
        row = _replace(sms, processed=True, extracted_data=extracted_data)
        self._sms_messages[sms_id] = row
        return row

    # =========================
    # BILLS & PAYMENTS
    # =========================
    async def list_bills(self, user_id):
        card_ids = set(self._user_card_ids(user_id))
        rows = [b for b in self._bills.values() if b.card_id in card_ids]
        return sorted(rows, key=lambda b: (b.due_date, b.id), reverse=True)

    async def get_bill(self, bill_id, user_id):
        return self._owned_by_card(self._bills, bill_id, user_id)

    async def create_bill(self, user_id, bill: BillCreate):
        self._require_card(bill.card_id, user_id)
        row = BillRead(
            id=new_id(),
            status=BillStatus.PENDING,
            created_at=utcnow(),
            **plain_values(bill),
        )
        self._bills[row.id] = row
        return row

    async def update_bill_status(self, bill_id, user_id, status, expected_status=None):
        bill = self._owned_by_card(self._bills, bill_id, user_id)
        if bill is None:
            return None
        if expected_status is not None and bill.status != BillStatus(expected_status):
            return None
        row = _replace(bill, status=status)
        self._bills[bill_id] = row
        return row

    async def list_payments(self, user_id):
        card_ids = set(self._user_card_ids(user_id))
        rows = [p for p in self._payments.values() if p.card_id in card_ids]
        return sorted(rows, key=lambda p: (p.payment_date, p.id), reverse=True)

    async def create_payment(self, user_id, payment: PaymentCreate):
        bill = self._owned_by_card(self._bills, payment.bill_id, user_id)
        if bill is None:
            raise OwnershipError("Bill", payment.bill_id)
        row = PaymentRead(
            id=new_id(),
            card_id=bill.card_id,
            payment_date=utcnow(),
            **plain_values(payment),
        )
        self._payments[row.id] = row
        return row

    # =========================
    # AUTOPAY
    # =========================
    async def list_autopay_settings(self, user_id):
        card_ids = set(self._user_card_ids(user_id))
        rows = [a for a in self._autopay.values() if a.card_id in card_ids]
        return sorted(rows, key=lambda a: (a.created_at, a.id))

    async def save_autopay_settings(self, card_id, user_id, settings: AutopayUpsert):
        self._require_card(card_id, user_id)
        values = plain_values(settings)
        now = utcnow()
        existing = next((a for a in self._autopay.values() if a.card_id == card_id), None)
        if existing:
            row = _replace(existing, **values, updated_at=now)
        else:
            row = AutopayRead(id=new_id(), card_id=card_id, created_at=now, updated_at=now, **values)
        self._autopay[row.id] = row
        return row

    async def delete_autopay_settings(self, autopay_id, user_id):
        if self._owned_by_card(self._autopay, autopay_id, user_id) is None:
            return False
        del self._autopay[autopay_id]
        return True

    # =========================
    # CREDIT SCORES
    # =========================
    async def list_credit_scores(self, user_id):
        rows = [c for c in self._credit_scores.values() if c.user_id == user_id]
        return sorted(rows, key=lambda c: (c.recorded_at, c.id), reverse=True)

    async def create_credit_score(self, user_id, score: CreditScoreCreate):
        row = CreditScoreRead(id=new_id(), user_id=user_id, recorded_at=utcnow(), **plain_values(score))
        self._credit_scores[row.id] = row
        return row
