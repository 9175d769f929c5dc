"""
Transaction ingestion.

Two entry points, manual entry and SMS parsing, converge on the same
fan-out once the transaction row exists:

1. create + push a "transaction" notification
2. for every active reward on the card, add the amount to its progress
   and, when that addition crosses the threshold, create + push a
   "reward" notification
3. add the amount to the card's cached balance

The fan-out is best-effort. Each step is attempted on its own, its
outcome is recorded as a StepResult, and a failure is logged with the
transaction id and step name without stopping the steps after it. The
transaction itself is never rolled back.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from cardvault.core.exceptions import ExtractionError, NoCardError
from cardvault.models.notification import NotificationType
from cardvault.models.transaction import TransactionSource
from cardvault.schemas.card import CardRead
from cardvault.schemas.extraction import ExtractedTransaction
from cardvault.schemas.notification import NotificationCreate, NotificationRead
from cardvault.schemas.reward import RewardRead
from cardvault.schemas.sms import SmsCreate
from cardvault.schemas.transaction import TransactionCreate, TransactionRead
from cardvault.services.broadcast import ConnectionManager
from cardvault.storage.interface import Storage

logger = logging.getLogger(__name__)

TransactionExtractor = Callable[[str], Awaitable[Optional[ExtractedTransaction]]]


@dataclass
class StepResult:
    name: str
    ok: bool
    error: Optional[str] = None


@dataclass
class IngestionOutcome:
    transaction: TransactionRead
    steps: list[StepResult] = field(default_factory=list)
    notifications: list[NotificationRead] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return all(step.ok for step in self.steps)

    @property
    def failed_steps(self) -> list[str]:
        return [step.name for step in self.steps if not step.ok]


def crossed_threshold(reward: RewardRead, old_progress, new_progress) -> bool:
    """True only on the transition from below the threshold to at-or-above it."""
    return old_progress < reward.threshold <= new_progress


def format_amount(amount) -> str:
    return f"₹{amount}"


class IngestionPipeline:
    def __init__(self, storage: Storage, broadcaster: ConnectionManager):
        self.storage = storage
        self.broadcaster = broadcaster

    # =========================
    # ENTRY A: MANUAL
    # =========================
    async def ingest_manual(self, user_id: str, transaction: TransactionCreate) -> IngestionOutcome:
        # OwnershipError from the store propagates; nothing is written in that case
        created = await self.storage.create_transaction(
            user_id, transaction.model_copy(update={"source": TransactionSource.MANUAL})
        )
        return await self.fan_out(user_id, created)

    # =========================
    # ENTRY B: SMS
    # =========================
    async def ingest_sms(
        self, user_id: str, sms: SmsCreate, extract: TransactionExtractor
    ) -> IngestionOutcome:
        record = await self.storage.create_sms_message(user_id, sms)

        try:
            extracted = await extract(sms.message)
        except Exception:
            logger.exception("Extractor raised for sms %s", record.id)
            extracted = None

        if extracted is None:
            await self.storage.mark_sms_processed(record.id, user_id, None)
            raise ExtractionError()

        await self.storage.mark_sms_processed(
            record.id, user_id, extracted.model_dump(mode="json", by_alias=True)
        )

        card = await self.match_card(user_id, extracted.last_four_digits)
        if card is None:
            raise NoCardError()

        created = await self.storage.create_transaction(user_id, TransactionCreate(
            card_id=card.id,
            merchant_name=extracted.merchant_name,
            amount=extracted.amount,
            category=extracted.category,
            description=extracted.description or f"Parsed from SMS: {sms.phone_number}",
            source=TransactionSource.SMS,
        ))
        return await self.fan_out(user_id, created, card=card)

    async def match_card(self, user_id: str, last_four_digits: Optional[str]) -> Optional[CardRead]:
        """Card whose last four digits match, else the user's first card."""
        cards = await self.storage.list_cards(user_id)
        if not cards:
            return None
        if last_four_digits:
            for card in cards:
                if card.last_four_digits == last_four_digits:
                    return card
        return cards[0]

    # =========================
    # FAN-OUT
    # =========================
    async def fan_out(
        self, user_id: str, transaction: TransactionRead, card: Optional[CardRead] = None
    ) -> IngestionOutcome:
        outcome = IngestionOutcome(transaction=transaction)

        if card is None:
            try:
                card = await self.storage.get_card(transaction.card_id, user_id)
            except Exception:
                logger.exception("Card lookup failed for transaction %s", transaction.id)

        await self._step(outcome, "notify_transaction", self._notify_transaction(user_id, transaction, outcome))

        rewards = []
        try:
            rewards = await self.storage.list_rewards_by_card(transaction.card_id, user_id)
        except Exception as e:
            self._record_failure(outcome, "list_rewards", e)

        for reward in rewards:
            if not reward.is_active:
                continue
            await self._step(
                outcome, f"reward:{reward.id}",
                self._advance_reward(user_id, transaction, reward, card, outcome)
            )

        await self._step(outcome, "card_balance", self._update_balance(user_id, transaction))

        if outcome.complete:
            logger.info("Transaction %s ingested (%d steps)", transaction.id, len(outcome.steps))
        else:
            logger.warning("Transaction %s ingested with failed side effects: %s",
                           transaction.id, ", ".join(outcome.failed_steps))
        return outcome

    async def _step(self, outcome: IngestionOutcome, name: str, action) -> None:
        try:
            await action
        except Exception as e:
            self._record_failure(outcome, name, e)
        else:
            outcome.steps.append(StepResult(name=name, ok=True))

    def _record_failure(self, outcome: IngestionOutcome, name: str, error: Exception) -> None:
        logger.exception("Fan-out step %s failed for transaction %s", name, outcome.transaction.id)
        outcome.steps.append(StepResult(name=name, ok=False, error=str(error)))

    async def _notify_transaction(self, user_id, transaction: TransactionRead, outcome: IngestionOutcome):
        notification = await self.storage.create_notification(user_id, NotificationCreate(
            card_id=transaction.card_id,
            title="New Transaction",
            message=f"{format_amount(transaction.amount)} spent at {transaction.merchant_name}",
            type=NotificationType.TRANSACTION,
            metadata={"transactionId": transaction.id},
        ))
        outcome.notifications.append(notification)
        await self.broadcaster.broadcast(notification, user_id)

    async def _advance_reward(
        self, user_id, transaction: TransactionRead, reward: RewardRead,
        card: Optional[CardRead], outcome: IngestionOutcome
    ):
        updated = await self.storage.increment_reward_progress(reward.id, user_id, transaction.amount)
        if updated is None:
            raise LookupError(f"reward {reward.id} disappeared during ingestion")

        new_progress = updated.current_progress
        old_progress = new_progress - transaction.amount
        if not crossed_threshold(updated, old_progress, new_progress):
            return

        card_name = card.card_name if card else "card"
        notification = await self.storage.create_notification(user_id, NotificationCreate(
            card_id=transaction.card_id,
            title="Reward Unlocked! 🎉",
            message=f"You've unlocked {updated.reward_value} on your {card_name}!",
            type=NotificationType.REWARD,
            metadata={"rewardId": updated.id, "transactionId": transaction.id},
        ))
        outcome.notifications.append(notification)
        await self.broadcaster.broadcast(notification, user_id)

    async def _update_balance(self, user_id, transaction: TransactionRead):
        card = await self.storage.increment_card_balance(transaction.card_id, user_id, transaction.amount)
        if card is None:
            raise LookupError(f"card {transaction.card_id} disappeared during ingestion")
