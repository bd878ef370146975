# Registrar todas las tablas en db.Base.metadata al importar el paquete
from models.account import Account
from models.transaction import Transaction
from models.transfer import Transfer
from models.investment import Investment, InvestmentPurchase, PriceSnapshot
from models.reminder_settings import ReminderSettings
from models.goal import Goal

__all__ = [
    "Account",
    "Transaction",
    "Transfer",
    "Investment",
    "InvestmentPurchase",
    "PriceSnapshot",
    "ReminderSettings",
    "Goal",
]
