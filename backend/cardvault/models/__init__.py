from cardvault.models.user import User
from cardvault.models.card import Card
from cardvault.models.reward import Reward
from cardvault.models.transaction import Transaction, TransactionSource
from cardvault.models.notification import Notification, NotificationType
from cardvault.models.sms_message import SmsMessage
from cardvault.models.bill import Bill, BillStatus
from cardvault.models.payment import Payment
from cardvault.models.autopay import AutopaySettings, AutopayType
from cardvault.models.credit_score import CreditScore

__all__ = [
    "User", "Card", "Reward", "Transaction", "TransactionSource",
    "Notification", "NotificationType", "SmsMessage", "Bill", "BillStatus",
    "Payment", "AutopaySettings", "AutopayType", "CreditScore",
]
