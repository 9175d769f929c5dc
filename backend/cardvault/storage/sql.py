"""
Relational storage backend (SQLAlchemy).

Ownership is expressed as join / sub-select predicates against
``cards.user_id`` so a row belonging to another user simply never
matches. Session work is blocking, so each public coroutine hands its
body to Starlette's threadpool.
"""

import functools
import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, inspect, or_, select, update
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from cardvault.core.exceptions import OwnershipError
from cardvault.database import SessionLocal
from cardvault.models.autopay import AutopaySettings
from cardvault.models.bill import Bill, BillStatus
from cardvault.models.card import Card
from cardvault.models.credit_score import CreditScore
from cardvault.models.notification import Notification
from cardvault.models.payment import Payment
from cardvault.models.reward import Reward
from cardvault.models.sms_message import SmsMessage
from cardvault.models.transaction import Transaction
from cardvault.models.user import User
from cardvault.models._base import utcnow
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


def _offload(fn):
    @functools.wraps(fn)
    async def wrapper(self, *args, **kwargs):
        return await run_in_threadpool(fn, self, *args, **kwargs)
    return wrapper


def _row_dict(row) -> dict:
    # attribute names, with the trailing underscore of reserved names dropped
    return {
        attr.key.rstrip("_"): getattr(row, attr.key)
        for attr in inspect(row).mapper.column_attrs
    }


def _read(schema, row):
    if row is None:
        return None
    return schema.model_validate(_row_dict(row))


def _owned_card_ids(user_id: str):
    return select(Card.id).where(Card.user_id == user_id)


class SqlStorage(Storage):
    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    @contextmanager
    def _session(self):
        db: Session = self._session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # =========================
    # OWNERSHIP CHAIN
    # =========================
    def _owned_card(self, db: Session, card_id: str, user_id: str) -> Optional[Card]:
        return db.query(Card).filter(Card.id == card_id, Card.user_id == user_id).first()

    def _owned_by_card(self, db: Session, model, row_id: str, user_id: str):
        return (
            db.query(model)
            .join(Card, model.card_id == Card.id)
            .filter(model.id == row_id, Card.user_id == user_id)
            .first()
        )

    def _require_card(self, db: Session, card_id: str, user_id: str) -> Card:
        card = self._owned_card(db, card_id, user_id)
        if card is None:
            raise OwnershipError("Card", card_id)
        return card

    def _list_by_card(self, db: Session, model, user_id: str, *order_by):
        return (
            db.query(model)
            .join(Card, model.card_id == Card.id)
            .filter(Card.user_id == user_id)
            .order_by(*order_by)
            .all()
        )

    def _increment(self, db: Session, model, row_id: str, user_id: str, column, delta: Decimal):
        """UPDATE ... SET column = column + delta ... RETURNING *, ownership in the WHERE."""
        if model is Card:
            owner_filter = Card.user_id == user_id
        else:
            owner_filter = model.card_id.in_(_owned_card_ids(user_id))
        stmt = (
            update(model)
            .where(model.id == row_id, owner_filter)
            .values({column: column + to_money(delta)})
            .returning(*model.__table__.columns)
            .execution_options(synchronize_session=False)
        )
        row = db.execute(stmt).mappings().first()
        db.commit()
        return dict(row) if row is not None else None

    # =========================
    # USERS
    # =========================
    @_offload
    def get_user(self, user_id):
        with self._session() as db:
            return _read(UserRead, db.query(User).filter(User.id == user_id).first())

    @_offload
    def upsert_user(self, user: UserUpsert):
        with self._session() as db:
            row = db.query(User).filter(User.external_id == user.external_id).first()
            if row is None:
                row = User(**plain_values(user))
                db.add(row)
            else:
                for key, value in plain_values(user).items():
                    setattr(row, key, value)
                row.updated_at = utcnow()
            db.commit()
            db.refresh(row)
            return _read(UserRead, row)

    # =========================
    # CARDS
    # =========================
    @_offload
    def list_cards(self, user_id):
        with self._session() as db:
            rows = (
                db.query(Card)
                .filter(Card.user_id == user_id)
                .order_by(Card.created_at.asc(), Card.id.asc())
                .all()
            )
            return [_read(CardRead, r) for r in rows]

    @_offload
    def get_card(self, card_id, user_id):
        with self._session() as db:
            return _read(CardRead, self._owned_card(db, card_id, user_id))

    @_offload
    def create_card(self, user_id, card: CardCreate):
        with self._session() as db:
            row = Card(user_id=user_id, current_balance=Decimal("0"), **plain_values(card))
            db.add(row)
            db.commit()
            db.refresh(row)
            return _read(CardRead, row)

    @_offload
    def update_card(self, card_id, user_id, changes: CardUpdate):
        with self._session() as db:
            row = self._owned_card(db, card_id, user_id)
            if row is None:
                return None
            for key, value in plain_values(changes, partial=True).items():
                setattr(row, key, value)
            db.commit()
            db.refresh(row)
            return _read(CardRead, row)

    @_offload
    def delete_card(self, card_id, user_id):
        with self._session() as db:
            card = self._owned_card(db, card_id, user_id)
            if card is None:
                return False

            # children first, no ON DELETE CASCADE on the schema
            for model in (Payment, AutopaySettings, Bill, Notification, Transaction, Reward):
                db.query(model).filter(model.card_id == card_id).delete(synchronize_session=False)
            db.delete(card)
            db.commit()
            return True

    @_offload
    def update_card_balance(self, card_id, user_id, balance):
        with self._session() as db:
            row = self._owned_card(db, card_id, user_id)
            if row is None:
                return None
            row.current_balance = to_money(balance)
            db.commit()
            db.refresh(row)
            return _read(CardRead, row)

    @_offload
    def increment_card_balance(self, card_id, user_id, delta):
        with self._session() as db:
            row = self._increment(db, Card, card_id, user_id, Card.current_balance, delta)
            return CardRead.model_validate(row) if row else None

    @_offload
    def resync_card_balance(self, card_id, user_id):
        with self._session() as db:
            row = self._owned_card(db, card_id, user_id)
            if row is None:
                return None
            total = (
                db.query(func.coalesce(func.sum(Transaction.amount), 0))
                .filter(Transaction.card_id == card_id)
                .scalar()
            )
            row.current_balance = to_money(total or 0)
            db.commit()
            db.refresh(row)
            return _read(CardRead, row)

    # =========================
    # REWARDS
    # =========================
    @_offload
    def list_rewards(self, user_id):
        with self._session() as db:
            rows = self._list_by_card(db, Reward, user_id, Reward.created_at, Reward.id)
            return [_read(RewardRead, r) for r in rows]

    @_offload
    def list_rewards_by_card(self, card_id, user_id):
        with self._session() as db:
            rows = (
                db.query(Reward)
                .join(Card, Reward.card_id == Card.id)
                .filter(Reward.card_id == card_id, Card.user_id == user_id)
                .order_by(Reward.created_at, Reward.id)
                .all()
            )
            return [_read(RewardRead, r) for r in rows]

    @_offload
    def get_reward(self, reward_id, user_id):
        with self._session() as db:
            return _read(RewardRead, self._owned_by_card(db, Reward, reward_id, user_id))

    @_offload
    def create_reward(self, user_id, reward: RewardCreate):
        with self._session() as db:
            self._require_card(db, reward.card_id, user_id)
            row = Reward(current_progress=Decimal("0"), **plain_values(reward))
            db.add(row)
            db.commit()
            db.refresh(row)
            return _read(RewardRead, row)

    @_offload
    def update_reward(self, reward_id, user_id, changes: RewardUpdate):
        with self._session() as db:
            row = self._owned_by_card(db, Reward, reward_id, user_id)
            if row is None:
                return None
            for key, value in plain_values(changes, partial=True).items():
                setattr(row, key, value)
            db.commit()
            db.refresh(row)
            return _read(RewardRead, row)

    @_offload
    def delete_reward(self, reward_id, user_id):
        with self._session() as db:
            row = self._owned_by_card(db, Reward, reward_id, user_id)
            if row is None:
                return False
            db.delete(row)
            db.commit()
            return True

    @_offload
    def update_reward_progress(self, reward_id, user_id, progress):
        with self._session() as db:
            row = self._owned_by_card(db, Reward, reward_id, user_id)
            if row is None:
                return None
            row.current_progress = to_money(progress)
            db.commit()
            db.refresh(row)
            return _read(RewardRead, row)

    @_offload
    def increment_reward_progress(self, reward_id, user_id, delta):
        with self._session() as db:
            row = self._increment(db, Reward, reward_id, user_id, Reward.current_progress, delta)
            return RewardRead.model_validate(row) if row else None

    # =========================
    # TRANSACTIONS
    # =========================
    @_offload
    def list_transactions(self, user_id):
        with self._session() as db:
            rows = self._list_by_card(
                db, Transaction, user_id, Transaction.transaction_date.desc(), Transaction.id.desc()
            )
            return [_read(TransactionRead, r) for r in rows]

    @_offload
    def list_transactions_by_card(self, card_id, user_id):
        with self._session() as db:
            rows = (
                db.query(Transaction)
                .join(Card, Transaction.card_id == Card.id)
                .filter(Transaction.card_id == card_id, Card.user_id == user_id)
                .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
                .all()
            )
            return [_read(TransactionRead, r) for r in rows]

    @_offload
    def get_transaction(self, transaction_id, user_id):
        with self._session() as db:
            return _read(TransactionRead, self._owned_by_card(db, Transaction, transaction_id, user_id))

    @_offload
    def create_transaction(self, user_id, transaction: TransactionCreate):
        with self._session() as db:
            self._require_card(db, transaction.card_id, user_id)
            values = plain_values(transaction)
            if values.get("transaction_date") is None:
                values.pop("transaction_date", None)
            row = Transaction(**values)
            db.add(row)
            db.commit()
            db.refresh(row)
            return _read(TransactionRead, row)

    @_offload
    def update_transaction(self, transaction_id, user_id, changes: TransactionUpdate):
        with self._session() as db:
            row = self._owned_by_card(db, Transaction, transaction_id, user_id)
            if row is None:
                return None
            old_amount = to_money(row.amount)
            for key, value in plain_values(changes, partial=True).items():
                setattr(row, key, value)
            db.flush()
            difference = to_money(row.amount) - old_amount
            if difference:
                db.execute(
                    update(Card)
                    .where(Card.id == row.card_id)
                    .values(current_balance=Card.current_balance + difference)
                    .execution_options(synchronize_session=False)
                )
            db.commit()
            db.refresh(row)
            return _read(TransactionRead, row)

    @_offload
    def delete_transaction(self, transaction_id, user_id):
        with self._session() as db:
            row = self._owned_by_card(db, Transaction, transaction_id, user_id)
            if row is None:
                return False
            db.execute(
                update(Card)
                .where(Card.id == row.card_id)
                .values(current_balance=Card.current_balance - to_money(row.amount))
                .execution_options(synchronize_session=False)
            )
            db.delete(row)
            db.commit()
            return True

    # =========================
    # NOTIFICATIONS
    # =========================
    def _notification_filter(self, user_id: str):
        return or_(
            Notification.user_id == user_id,
            Notification.card_id.in_(_owned_card_ids(user_id)),
        )

    @_offload
    def list_notifications(self, user_id):
        with self._session() as db:
            rows = (
                db.query(Notification)
                .filter(self._notification_filter(user_id))
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .all()
            )
            return [_read(NotificationRead, r) for r in rows]

    @_offload
    def create_notification(self, user_id, notification: NotificationCreate):
        with self._session() as db:
            if notification.card_id is not None:
                self._require_card(db, notification.card_id, user_id)
            values = plain_values(notification)
            values["metadata_"] = values.pop("metadata")
            row = Notification(user_id=user_id, is_read=False, **values)
            db.add(row)
            db.commit()
            db.refresh(row)
            return _read(NotificationRead, row)

    @_offload
    def mark_notification_as_read(self, notification_id, user_id):
        with self._session() as db:
            row = (
                db.query(Notification)
                .filter(Notification.id == notification_id, self._notification_filter(user_id))
                .first()
            )
            if row is None:
                return None
            if not row.is_read:
                row.is_read = True
                db.commit()
                db.refresh(row)
            return _read(NotificationRead, row)

    # =========================
    # SMS
    # =========================
    @_offload
    def list_sms_messages(self, user_id):
        with self._session() as db:
            rows = (
                db.query(SmsMessage)
                .filter(SmsMessage.user_id == user_id)
                .order_by(SmsMessage.received_at.desc(), SmsMessage.id.desc())
                .all()
            )
            return [_read(SmsRead, r) for r in rows]

    @_offload
    def create_sms_message(self, user_id, sms: SmsCreate):
        with self._session() as db:
            row = SmsMessage(user_id=user_id, processed=False, **plain_values(sms))
            db.add(row)
            db.commit()
            db.refresh(row)
            return _read(SmsRead, row)

    @_offload
    def mark_sms_processed(self, sms_id, user_id, extracted_data: Optional[dict[str, Any]]):
        with self._session() as db:
            row = (
                db.query(SmsMessage)
                .filter(SmsMessage.id == sms_id, SmsMessage.user_id == user_id)
                .first()
            )
            if row is None:
                return None
            row.processed = True
            row.extracted_data = extracted_data
            db.commit()
            db.refresh(row)
            return _read(SmsRead, row)

    # =========================
    # BILLS & PAYMENTS
    # =========================
    @_offload
    def list_bills(self, user_id):
        with self._session() as db:
            rows = self._list_by_card(db, Bill, user_id, Bill.due_date.desc(), Bill.id.desc())
            return [_read(BillRead, r) for r in rows]

    @_offload
    def get_bill(self, bill_id, user_id):
        with self._session() as db:
            return _read(BillRead, self._owned_by_card(db, Bill, bill_id, user_id))

    @_offload
    def create_bill(self, user_id, bill: BillCreate):
        with self._session() as db:
            self._require_card(db, bill.card_id, user_id)
            row = Bill(status=BillStatus.PENDING.value, **plain_values(bill))
            db.add(row)
            db.commit()
            db.refresh(row)
            return _read(BillRead, row)

    @_offload
    def update_bill_status(self, bill_id, user_id, status, expected_status=None):
        with self._session() as db:
            conditions = [Bill.id == bill_id, Bill.card_id.in_(_owned_card_ids(user_id))]
            if expected_status is not None:
                conditions.append(Bill.status == BillStatus(expected_status).value)
            stmt = (
                update(Bill)
                .where(*conditions)
                .values(status=BillStatus(status).value)
                .returning(*Bill.__table__.columns)
                .execution_options(synchronize_session=False)
            )
            row = db.execute(stmt).mappings().first()
            db.commit()
            return BillRead.model_validate(dict(row)) if row is not None else None

    @_offload
    def list_payments(self, user_id):
        with self._session() as db:
            rows = self._list_by_card(db, Payment, user_id, Payment.payment_date.desc(), Payment.id.desc())
            return [_read(PaymentRead, r) for r in rows]

    @_offload
    def create_payment(self, user_id, payment: PaymentCreate):
        with self._session() as db:
            bill = self._owned_by_card(db, Bill, payment.bill_id, user_id)
            if bill is None:
                raise OwnershipError("Bill", payment.bill_id)
            row = Payment(card_id=bill.card_id, **plain_values(payment))
            db.add(row)
            db.commit()
            db.refresh(row)
            return _read(PaymentRead, row)

    # =========================
    # AUTOPAY
    # =========================
    @_offload
    def list_autopay_settings(self, user_id):
        with self._session() as db:
            rows = self._list_by_card(
                db, AutopaySettings, user_id, AutopaySettings.created_at, AutopaySettings.id
            )
            return [_read(AutopayRead, r) for r in rows]

    @_offload
    def save_autopay_settings(self, card_id, user_id, settings: AutopayUpsert):
        with self._session() as db:
            self._require_card(db, card_id, user_id)
            row = db.query(AutopaySettings).filter(AutopaySettings.card_id == card_id).first()
            if row is None:
                row = AutopaySettings(card_id=card_id, **plain_values(settings))
                db.add(row)
            else:
                for key, value in plain_values(settings).items():
                    setattr(row, key, value)
                row.updated_at = utcnow()
            db.commit()
            db.refresh(row)
            return _read(AutopayRead, row)

    @_offload
    def delete_autopay_settings(self, autopay_id, user_id):
        with self._session() as db:
            row = self._owned_by_card(db, AutopaySettings, autopay_id, user_id)
            if row is None:
                return False
            db.delete(row)
            db.commit()
            return True

    # =========================
    # CREDIT SCORES
    # =========================
    @_offload
    def list_credit_scores(self, user_id):
        with self._session() as db:
            rows = (
                db.query(CreditScore)
                .filter(CreditScore.user_id == user_id)
                .order_by(CreditScore.recorded_at.desc(), CreditScore.id.desc())
                .all()
            )
            return [_read(CreditScoreRead, r) for r in rows]

    @_offload
    def create_credit_score(self, user_id, score: CreditScoreCreate):
        with self._session() as db:
            row = CreditScore(user_id=user_id, **plain_values(score))
            db.add(row)
            db.commit()
            db.refresh(row)
            return _read(CreditScoreRead, row)
