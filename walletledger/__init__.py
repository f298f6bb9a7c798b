"""Personal-finance ledger: wallets, categorised transactions and transfers."""

__version__ = "1.0.0"
